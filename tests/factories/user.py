"""
User test factory.

Generates realistic shop accounts for testing authentication, authorization
and actor attribution in the audit trail.
"""

import factory
from faker import Faker

fake = Faker("fr_FR")


class UserFactory(factory.Factory):
    """
    Factory for generating User test data.

    Usage:
        user = User(**UserFactory(), hashed_password=...)
        user = UserFactory(email="custom@example.com")
    """

    class Meta:
        model = dict

    email = factory.Sequence(lambda n: f"user{n}@{fake.free_email_domain()}")
    first_name = factory.LazyFunction(fake.first_name)
    last_name = factory.LazyFunction(fake.last_name)
    phone = factory.LazyFunction(fake.phone_number)
    role = "client"
    is_active = True


class AdminUserFactory(UserFactory):
    """Factory for administrators."""

    role = "admin"


class EmployeeUserFactory(UserFactory):
    """Factory for workshop employees."""

    role = "employe"


class ProfessionalClientFactory(UserFactory):
    """Factory for business clients."""

    role = "client_professionnel"
    company_name = factory.LazyFunction(fake.company)
