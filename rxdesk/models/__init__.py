"""
RxDesk SQLAlchemy Models
========================

Central import point for all ORM models. Import ``Base`` from here for
Alembic auto-generation and for the ``create_all`` convenience in tests.

Usage::

    from rxdesk.models import Base, Order, ProviderAvailability
"""

# -- Base & Mixins --
from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin

# -- Users --
from .user import User, UserStatus

# -- Providers --
from .provider import (
    ProviderAvailability,
    ProviderAvailabilityException,
    ProviderProfile,
)

# -- Orders --
from .order import Order, OrderStatus, ReviewStatus

# -- Prescriptions --
from .prescription import Prescription, PrescriptionStatus

# -- System logs --
from .system_log import LogStatus, SystemLog

# -- Medication catalog --
from .medication import MedicationCatalogItem

# -- Vitals --
from .vitals import VitalReading, VitalSource, VitalType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    # Users
    "User",
    "UserStatus",
    # Providers
    "ProviderProfile",
    "ProviderAvailability",
    "ProviderAvailabilityException",
    # Orders
    "Order",
    "OrderStatus",
    "ReviewStatus",
    # Prescriptions
    "Prescription",
    "PrescriptionStatus",
    # System logs
    "SystemLog",
    "LogStatus",
    # Medication catalog
    "MedicationCatalogItem",
    # Vitals
    "VitalReading",
    "VitalType",
    "VitalSource",
]
