"""
Schemas Package
Marshmallow schemas for request/response validation
"""

from momopay.schemas.payment_schema import (
    InitiatePaymentSchema,
    FeatureQuerySchema,
    PaymentSchema,
    SubscriptionSchema,
    AuditLogSchema
)

__all__ = [
    'InitiatePaymentSchema',
    'FeatureQuerySchema',
    'PaymentSchema',
    'SubscriptionSchema',
    'AuditLogSchema'
]
