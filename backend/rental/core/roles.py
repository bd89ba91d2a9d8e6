# rental/core/roles.py

import enum


class Role(str, enum.Enum):
    ADMIN = "admin"    # landlord / property manager, sees every record
    TENANT = "tenant"  # resident, sees only own records


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


PAYMENT_STATUSES = frozenset(s.value for s in PaymentStatus)
