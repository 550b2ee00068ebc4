"""
Invoice test factory.

Generates realistic invoice data for testing.
"""

import factory
from decimal import Decimal
from faker import Faker

fake = Faker()


class InvoiceFactory(factory.Factory):
    """
    Factory for generating Invoice test data.

    Usage:
        invoice = Invoice(**InvoiceFactory(client_id=client.id))
        invoice = InvoiceFactory(status="paid")
    """

    class Meta:
        model = dict

    invoice_number = factory.Sequence(lambda n: f"FACT-01-01-{n + 1:03d}")
    client_id = None
    quote_id = None
    amount = factory.LazyFunction(
        lambda: Decimal(fake.random_int(min=80, max=900)).quantize(Decimal("0.01"))
    )
    payment_method = factory.LazyFunction(
        lambda: fake.random_element(["cash", "wire_transfer", "card"])
    )
    wheel_count = factory.LazyFunction(lambda: fake.random_int(min=1, max=4))
    diameter = factory.LazyFunction(lambda: f"{fake.random_int(min=15, max=21)} pouces")
    status = "pending"
