"""
Reservation test factory.
"""

import factory
from datetime import datetime, timedelta, timezone
from faker import Faker

fake = Faker()


class ReservationFactory(factory.Factory):
    """Factory for Reservation test data."""

    class Meta:
        model = dict

    client_id = None
    service_id = None
    scheduled_date = factory.LazyFunction(
        lambda: datetime.now(timezone.utc).replace(microsecond=0)
        + timedelta(days=fake.random_int(min=1, max=30))
    )
    wheel_count = 4
    status = "pending"
    notes = None
