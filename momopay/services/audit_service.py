"""
Audit Service
Append-only event trail for payment lifecycle transitions
"""

import uuid
from typing import Dict, Any, Optional
from flask import request, has_request_context

from momopay.extensions import db
from momopay.models import PaymentAuditLog


class AuditService:
    """Service for creating and reading payment audit logs"""

    @staticmethod
    def record_event(
            payment_id: uuid.UUID,
            event_type: str,
            event_data: Dict[str, Any],
            user_id: Optional[str] = None
    ) -> PaymentAuditLog:
        """
        Add an audit log entry to the current session.

        The caller commits, so the entry lands in the same transaction as the
        state change it describes.

        Args:
            payment_id: UUID of the payment
            event_type: Type of event (e.g., 'payment.initiated', 'payment.successful')
            event_data: Additional event data
            user_id: User ID if available

        Returns:
            The pending PaymentAuditLog object
        """
        ip_address = None
        user_agent = None

        if has_request_context():
            ip_address = AuditService._get_client_ip()
            user_agent = request.headers.get('User-Agent')

        audit_log = PaymentAuditLog(
            payment_id=payment_id,
            event_type=event_type,
            event_data=event_data,
            user_id=str(user_id) if user_id else None,
            ip_address=ip_address,
            user_agent=user_agent
        )

        db.session.add(audit_log)
        return audit_log

    @staticmethod
    def get_payment_audit_trail(payment_id: uuid.UUID) -> list:
        """
        Get complete audit trail for a payment

        Returns:
            List of audit log entries ordered by timestamp
        """
        return PaymentAuditLog.query.filter_by(
            payment_id=payment_id
        ).order_by(PaymentAuditLog.timestamp.asc()).all()

    @staticmethod
    def _get_client_ip() -> Optional[str]:
        """
        Get client IP address from request
        Handles proxy headers (X-Forwarded-For, X-Real-IP)
        """
        if request.headers.get('X-Forwarded-For'):
            # X-Forwarded-For can contain multiple IPs, get the first one
            return request.headers.get('X-Forwarded-For').split(',')[0].strip()
        if request.headers.get('X-Real-IP'):
            return request.headers.get('X-Real-IP')
        return request.remote_addr
