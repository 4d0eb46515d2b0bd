import uuid
from sqlalchemy import Uuid

from momopay.extensions import db
from momopay.utils.clock import utcnow


class PaymentAuditLog(db.Model):
    """One row per lifecycle event of a payment (initiated, successful, failed)"""
    __tablename__ = 'payment_audit_logs'

    id = db.Column(Uuid, primary_key=True, default=uuid.uuid4)
    payment_id = db.Column(Uuid, db.ForeignKey('payments.id'), nullable=False, index=True)

    # payment.initiated / payment.successful / payment.failed
    event_type = db.Column(db.String(100), nullable=False)
    # Settlement verdicts carry 'source' (settlement, reconciliation)
    event_data = db.Column(db.JSON)

    # Request context, empty for worker-side events
    user_id = db.Column(db.String(255))
    ip_address = db.Column(db.String(45))
    user_agent = db.Column(db.String(500))

    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    def __repr__(self):
        return f'<PaymentAuditLog {self.id} - {self.event_type}>'
