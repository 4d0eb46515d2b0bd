from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from momopay.models import PaymentStatus
from momopay.schemas.payment_schema import (
    InitiatePaymentSchema,
    FeatureQuerySchema,
    PaymentSchema,
    SubscriptionSchema
)
from momopay.services.payment_service import PaymentService
from momopay.services.plan_catalog import get_plan_catalog

payments_bp = Blueprint('payments', __name__)

initiate_schema = InitiatePaymentSchema()
feature_query_schema = FeatureQuerySchema()
payment_schema = PaymentSchema()
subscription_schema = SubscriptionSchema()


def _validation_error(e: ValidationError):
    return jsonify({
        'success': False,
        'error': 'Validation error',
        'details': e.messages
    }), 400


@payments_bp.route('/plans', methods=['GET'])
def list_plans():
    """
    List active subscription plans

    Query Parameters:
        - feature_type: SURVEY (default) or VIDEO
    """
    try:
        args = feature_query_schema.load(request.args.to_dict())
    except ValidationError as e:
        return _validation_error(e)

    catalog = get_plan_catalog()
    plans = catalog.list_plans(args['feature_type'] or 'SURVEY')

    return jsonify({
        'success': True,
        'data': [plan.to_dict() for plan in plans]
    }), 200


@payments_bp.route('/initiate', methods=['POST'])
@jwt_required()
def initiate_payment():
    """
    Initiate a mobile-money subscription payment

    Headers:
        - Idempotency-Key: Optional; retries with the same key return the first payment

    Body:
        {
            "phone_number": "0772 123 456",
            "provider": "MTN",
            "plan_type": "MONTHLY",
            "feature_type": "SURVEY",
            "idempotency_key": "idk_lq2x7k_8f3a9c1d"
        }

    Returns:
        201 for a new payment, 200 for an idempotent replay
    """
    try:
        data = initiate_schema.load(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error(e)

    idempotency_key = request.headers.get('Idempotency-Key') or data.get('idempotency_key')

    result = PaymentService.initiate_payment(
        user_id=get_jwt_identity(),
        phone_number=data['phone_number'],
        provider=data['provider'],
        plan_type=data['plan_type'],
        feature_type=data['feature_type'],
        idempotency_key=idempotency_key
    )
    payment = result.payment

    return jsonify({
        'success': True,
        'data': {
            'payment': payment_schema.dump(payment),
            'message': (
                f'A payment request of {payment.amount:,.0f} {payment.currency} has been sent to your '
                f'{payment.provider} number ({payment.phone_number}). '
                f'Please check your phone to complete the payment.'
            ),
            'requires_confirmation': payment.status == PaymentStatus.PENDING.value,
            'expires_at': result.expires_at.isoformat(),
            'idempotent': result.idempotent
        }
    }), 200 if result.idempotent else 201


@payments_bp.route('/<uuid:payment_id>/status', methods=['GET'])
@jwt_required()
def get_payment_status(payment_id):
    """
    Get payment status, reconciling with the provider if the payment looks stuck

    Path Parameters:
        - payment_id: Payment UUID
    """
    payment = PaymentService.get_payment_status(payment_id, requester_id=get_jwt_identity())

    subscription = None
    if payment.status == PaymentStatus.SUCCESSFUL.value:
        subscription = subscription_schema.dump(payment)

    return jsonify({
        'success': True,
        'data': {
            'payment': payment_schema.dump(payment),
            'subscription': subscription,
            'subscription_status': payment.user.subscription_status(payment.feature_type)
        }
    }), 200


@payments_bp.route('/history', methods=['GET'])
@jwt_required()
def get_payment_history():
    """
    List the current user's most recent payments (newest first)

    Query Parameters:
        - feature_type: Filter by SURVEY or VIDEO (optional)
    """
    try:
        args = feature_query_schema.load(request.args.to_dict())
    except ValidationError as e:
        return _validation_error(e)

    payments = PaymentService.get_payment_history(
        user_id=get_jwt_identity(),
        feature_type=args['feature_type']
    )

    return jsonify({
        'success': True,
        'data': payment_schema.dump(payments, many=True)
    }), 200


@payments_bp.route('/subscription', methods=['GET'])
@jwt_required()
def get_subscription_status():
    """
    Get the current user's subscription status for a feature

    Query Parameters:
        - feature_type: SURVEY (default) or VIDEO
    """
    try:
        args = feature_query_schema.load(request.args.to_dict())
    except ValidationError as e:
        return _validation_error(e)

    status = PaymentService.get_subscription_status(
        user_id=get_jwt_identity(),
        feature_type=args['feature_type'] or 'SURVEY'
    )

    return jsonify({
        'success': True,
        'data': status
    }), 200
