from momopay.models.payment import (
    Payment,
    PaymentStatus,
    FeatureType,
    MobileMoneyProvider,
    TERMINAL_STATUSES,
)
from momopay.models.user import AppUser, UserRole, SubscriptionStatus, PRIVILEGED_ROLES
from momopay.models.audit_log import PaymentAuditLog

__all__ = [
    'Payment',
    'PaymentStatus',
    'FeatureType',
    'MobileMoneyProvider',
    'TERMINAL_STATUSES',
    'AppUser',
    'UserRole',
    'SubscriptionStatus',
    'PRIVILEGED_ROLES',
    'PaymentAuditLog',
]
