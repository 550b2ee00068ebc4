"""
Quote test factory.
"""

import factory
from decimal import Decimal
from faker import Faker

fake = Faker()


class QuoteFactory(factory.Factory):
    """
    Factory for generating Quote test data.

    Usage:
        quote = Quote(**QuoteFactory(client_id=client.id, service_id=service.id))
    """

    class Meta:
        model = dict

    reference = factory.Sequence(lambda n: f"DEV-01-{n + 1:05d}")
    client_id = None
    service_id = None
    status = "pending"
    quote_amount = Decimal("100.00")
    wheel_count = 4
    diameter = factory.LazyFunction(lambda: f"{fake.random_int(min=15, max=21)} pouces")
    notes = factory.LazyFunction(fake.sentence)
