"""
Admin API Endpoints
Maintenance operations for subscription payments
"""

from flask import Blueprint, request, jsonify

from momopay.errors import PaymentNotFound, ValidationError
from momopay.extensions import db
from momopay.models import Payment
from momopay.schemas.payment_schema import AuditLogSchema
from momopay.services.audit_service import AuditService
from momopay.services.payment_service import PaymentService
from momopay.utils.decorators import privileged_required, log_execution_time

admin_bp = Blueprint('admin', __name__)

audit_log_schema = AuditLogSchema()


@admin_bp.route('/payments/sweep-stale', methods=['POST'])
@privileged_required
@log_execution_time
def sweep_stale_payments():
    """
    Fail PENDING payments older than the stale cutoff

    Body (optional):
        {
            "older_than_seconds": 900
        }
    """
    data = request.get_json(silent=True) or {}
    older_than = data.get('older_than_seconds')

    if older_than is not None and (not isinstance(older_than, int) or older_than < 0):
        raise ValidationError('older_than_seconds must be a non-negative integer')

    result = PaymentService.sweep_stale_payments(older_than_seconds=older_than)

    return jsonify({
        'success': True,
        'data': result
    }), 200


@admin_bp.route('/payments/<uuid:payment_id>/audit', methods=['GET'])
@privileged_required
def get_payment_audit_trail(payment_id):
    """
    Get the audit trail of a payment

    Path Parameters:
        - payment_id: Payment UUID
    """
    if not db.session.get(Payment, payment_id):
        raise PaymentNotFound(f'Payment {payment_id} not found')

    logs = AuditService.get_payment_audit_trail(payment_id)

    return jsonify({
        'success': True,
        'data': audit_log_schema.dump(logs, many=True)
    }), 200
