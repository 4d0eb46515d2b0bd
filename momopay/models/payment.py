import uuid
from enum import Enum

from sqlalchemy import Uuid, text

from momopay.extensions import db
from momopay.utils.clock import utcnow


class PaymentStatus(str, Enum):
    PENDING = 'PENDING'
    SUCCESSFUL = 'SUCCESSFUL'
    FAILED = 'FAILED'


class FeatureType(str, Enum):
    SURVEY = 'SURVEY'
    VIDEO = 'VIDEO'


class MobileMoneyProvider(str, Enum):
    MTN = 'MTN'
    AIRTEL = 'AIRTEL'


TERMINAL_STATUSES = (PaymentStatus.SUCCESSFUL.value, PaymentStatus.FAILED.value)

_STATUS_MESSAGES = {
    PaymentStatus.PENDING.value: 'Waiting for payment confirmation...',
    PaymentStatus.SUCCESSFUL.value: 'Payment completed successfully',
    PaymentStatus.FAILED.value: 'Payment failed. Please try again.',
}


class Payment(db.Model):
    __tablename__ = 'payments'
    __table_args__ = (
        db.Index('ix_payments_user_feature_status', 'user_id', 'feature_type', 'status'),
        # At most one open charge per user and feature
        db.Index(
            'uq_payments_one_pending_per_feature',
            'user_id', 'feature_type',
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )

    id = db.Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = db.Column(Uuid, db.ForeignKey('app_users.id'), nullable=False, index=True)
    idempotency_key = db.Column(db.String(255), unique=True, nullable=True, index=True)

    # Subscription being purchased
    feature_type = db.Column(db.String(20), nullable=False, default=FeatureType.SURVEY.value)
    plan_type = db.Column(db.String(50), nullable=False)
    amount = db.Column(db.Numeric(15, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default='UGX')

    # Provider information
    provider = db.Column(db.String(20), nullable=False)
    phone_number = db.Column(db.String(20), nullable=False)
    transaction_id = db.Column(db.String(64), unique=True, nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)

    # Subscription window
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship('AppUser', backref=db.backref('payments', lazy='dynamic'))
    audit_logs = db.relationship('PaymentAuditLog', backref='payment', lazy='dynamic')

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def status_message(self) -> str:
        return _STATUS_MESSAGES.get(self.status, 'Unknown status')

    @property
    def completed_at(self):
        return self.updated_at if self.status == PaymentStatus.SUCCESSFUL.value else None

    @property
    def failed_at(self):
        return self.updated_at if self.status == PaymentStatus.FAILED.value else None

    @property
    def subscription_id(self):
        return self.id if self.status == PaymentStatus.SUCCESSFUL.value else None

    def __repr__(self):
        return f'<Payment {self.id} - {self.status}>'
