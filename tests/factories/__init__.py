"""
Test factories for generating realistic test data.

Uses factory_boy for declarative test data generation.
"""

from .user import (
    UserFactory,
    AdminUserFactory,
    EmployeeUserFactory,
    ProfessionalClientFactory,
)
from .service import ServiceFactory, WorkflowStepFactory
from .quote import QuoteFactory
from .invoice import InvoiceFactory
from .reservation import ReservationFactory

__all__ = [
    "UserFactory",
    "AdminUserFactory",
    "EmployeeUserFactory",
    "ProfessionalClientFactory",
    "ServiceFactory",
    "WorkflowStepFactory",
    "QuoteFactory",
    "InvoiceFactory",
    "ReservationFactory",
]
