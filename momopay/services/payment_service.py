import math
import uuid
from collections import namedtuple
from datetime import timedelta
from typing import Optional

from flask import current_app
from kombu.exceptions import OperationalError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from momopay.errors import (
    ValidationError,
    Forbidden,
    PaymentNotFound,
    UserNotFound,
    PaymentInProgress,
)
from momopay.extensions import db
from momopay.models import (
    Payment,
    PaymentStatus,
    FeatureType,
    AppUser,
    SubscriptionStatus,
)
from momopay.providers import (
    get_provider,
    list_available_providers,
    CollectionStatus,
)
from momopay.services.audit_service import AuditService
from momopay.services.lock_service import InitiationLock
from momopay.services.plan_catalog import PlanCatalog, get_plan_catalog
from momopay.utils.clock import utcnow
from momopay.utils.logger import get_logger
from momopay.utils.validators import normalize_phone_number, validate_phone_number, validate_choice

logger = get_logger(__name__)

InitiationResult = namedtuple('InitiationResult', ['payment', 'idempotent', 'expires_at'])

_PENDING = PaymentStatus.PENDING.value
_SUCCESSFUL = PaymentStatus.SUCCESSFUL.value
_FAILED = PaymentStatus.FAILED.value


def _as_uuid(value) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


class PaymentService:
    """Subscription payment lifecycle: initiation, settlement, reconciliation and expiry"""

    @staticmethod
    def initiate_payment(
            user_id,
            phone_number: str,
            provider: str,
            plan_type: str,
            feature_type: str = FeatureType.SURVEY.value,
            idempotency_key: Optional[str] = None,
            catalog: Optional[PlanCatalog] = None
    ) -> InitiationResult:
        """
        Create a PENDING payment and schedule its settlement

        Args:
            user_id: Authenticated user paying for the subscription
            phone_number: Payer MSISDN (whitespace is stripped)
            provider: Mobile-money network (MTN, AIRTEL)
            plan_type: Plan identifier within the feature's catalog
            feature_type: Subscription family (SURVEY, VIDEO)
            idempotency_key: Optional client token; retries with it replay the first payment
            catalog: Plan catalog to resolve against (defaults to the app's)

        Returns:
            InitiationResult(payment, idempotent, expires_at)

        Raises:
            ValidationError: Bad phone number, provider, feature or plan
            UserNotFound: Unknown user
            PaymentInProgress: A PENDING payment for this user and feature is in flight
        """
        cfg = current_app.config
        user_id = _as_uuid(user_id)

        # Replays skip validation; the stored payment is returned as is
        replay = PaymentService._find_replay(idempotency_key, user_id)
        if replay:
            return replay

        is_valid, error = validate_phone_number(phone_number)
        if not is_valid:
            raise ValidationError(error)
        clean_phone = normalize_phone_number(phone_number)

        is_valid, error = validate_choice(provider, list_available_providers(), 'Provider')
        if not is_valid:
            raise ValidationError(error)
        provider = provider.upper()

        feature_type = PaymentService._normalize_feature_type(feature_type)

        catalog = catalog or get_plan_catalog()
        plan = catalog.get_plan(plan_type, feature_type)
        if plan is None:
            raise ValidationError('Invalid subscription plan type')

        user = db.session.get(AppUser, user_id)
        if not user:
            raise UserNotFound(f'User {user_id} not found')

        with InitiationLock.hold(user_id, feature_type, ttl=cfg['INITIATION_LOCK_TTL_SECONDS']) as acquired:
            # A concurrent request with the same key may have committed since the first lookup
            replay = PaymentService._find_replay(idempotency_key, user_id)
            if replay:
                return replay

            if not acquired:
                raise PaymentInProgress(
                    'A payment is already being initiated. Please wait a moment and check its status.'
                )

            in_flight = PaymentService._find_in_flight_payment(user_id, feature_type)
            if in_flight:
                raise PaymentInProgress(
                    'A payment is already in progress. Please wait for it to complete '
                    'or try again in a few minutes.',
                    existing_payment_id=in_flight.id
                )

            PaymentService._expire_abandoned_payments(user_id, feature_type)

            now = utcnow()
            payment_id = uuid.uuid4()
            payment = Payment(
                id=payment_id,
                user_id=user_id,
                idempotency_key=idempotency_key or None,
                feature_type=feature_type,
                plan_type=plan.type,
                amount=plan.price,
                currency=plan.currency,
                provider=provider,
                phone_number=clean_phone,
                transaction_id=str(uuid.uuid4()),
                status=_PENDING,
                start_date=now,
                end_date=now + timedelta(days=plan.duration_days),
                created_at=now,
                updated_at=now
            )
            db.session.add(payment)

            AuditService.record_event(
                payment_id=payment_id,
                event_type='payment.initiated',
                event_data={
                    'provider': provider,
                    'plan_type': plan.type,
                    'feature_type': feature_type,
                    'amount': float(plan.price),
                    'currency': plan.currency
                },
                user_id=user_id
            )

            try:
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                # Lost a race the lock did not cover; report what won it
                replay = PaymentService._find_replay(idempotency_key, user_id)
                if replay:
                    return replay

                pending = Payment.query.filter_by(
                    user_id=user_id, feature_type=feature_type, status=_PENDING
                ).first()
                if pending:
                    raise PaymentInProgress(
                        'A payment is already in progress. Please wait for it to complete '
                        'or try again in a few minutes.',
                        existing_payment_id=pending.id
                    )
                raise

        logger.info(
            f'Payment {payment_id} created for user {user_id}: '
            f'{feature_type}/{plan.type} {plan.price} {plan.currency} via {provider}'
        )

        PaymentService.schedule_settlement(payment_id)

        expires_at = now + timedelta(seconds=cfg['PAYMENT_PROMPT_EXPIRY_SECONDS'])
        return InitiationResult(payment=payment, idempotent=False, expires_at=expires_at)

    @staticmethod
    def schedule_settlement(payment_id: uuid.UUID):
        """Queue the settlement task without waiting for it"""
        from momopay.tasks.settle_payment_task import settle_payment

        try:
            settle_payment.delay(str(payment_id))
        except OperationalError as e:
            # Row stays PENDING; reconciliation or the janitor resolves it
            logger.error(f'Could not schedule settlement for payment {payment_id}: {str(e)}')

    @staticmethod
    def settle_payment(payment_id) -> Optional[Payment]:
        """
        Ask the provider to collect a PENDING payment and record the verdict

        Runs in the Celery worker. A payment that is already terminal is left
        untouched. Every gateway failure (error, timeout, rejected prompt)
        settles the payment as FAILED.

        Returns:
            The payment, or None if it does not exist
        """
        payment = db.session.get(Payment, _as_uuid(payment_id))

        if not payment:
            logger.warning(f'Settlement skipped: payment {payment_id} not found')
            return None

        if payment.is_terminal:
            logger.info(f'Settlement skipped: payment {payment_id} is already {payment.status}')
            return payment

        try:
            provider_instance = get_provider(payment.provider)
            result = provider_instance.initiate_collection(
                amount=payment.amount,
                phone_number=payment.phone_number,
                reference_id=payment.transaction_id
            )
            succeeded = bool(result.get('success'))
            event_data = {'provider_status': result.get('status')}
        except Exception as e:
            logger.error(f'Collection for payment {payment_id} failed: {str(e)}')
            succeeded = False
            event_data = {'error': str(e)}

        PaymentService.transition(
            payment,
            _SUCCESSFUL if succeeded else _FAILED,
            source='settlement',
            event_data=event_data
        )
        return payment

    @staticmethod
    def transition(payment: Payment, new_status: str, source: str, event_data: Optional[dict] = None) -> bool:
        """
        Move a payment out of PENDING.

        The status update is conditioned on the row still being PENDING, so
        concurrent settlement and reconciliation cannot both win. A SUCCESSFUL
        transition activates the owner's subscription flag in the same
        transaction.

        Returns:
            True if this call performed the transition, False if the payment
            was already terminal
        """
        if new_status not in (_SUCCESSFUL, _FAILED):
            raise ValueError(f'Invalid terminal status: {new_status}')

        payment_id = payment.id
        user_id = payment.user_id
        feature_type = payment.feature_type

        try:
            changed = Payment.query.filter_by(id=payment_id, status=_PENDING).update(
                {'status': new_status, 'updated_at': utcnow()},
                synchronize_session=False
            )

            if changed != 1:
                db.session.rollback()
                logger.info(f'Payment {payment_id} already terminal; {source} transition to {new_status} skipped')
                return False

            if new_status == _SUCCESSFUL:
                AppUser.query.filter_by(id=user_id).update(
                    {AppUser.subscription_column(feature_type): SubscriptionStatus.ACTIVE.value},
                    synchronize_session=False
                )

            AuditService.record_event(
                payment_id=payment_id,
                event_type=f'payment.{new_status.lower()}',
                event_data={'source': source, **(event_data or {})},
                user_id=user_id
            )

            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        logger.info(f'Payment {payment_id} -> {new_status} ({source})')
        return True

    @staticmethod
    def get_payment_status(payment_id, requester_id) -> Payment:
        """
        Read a payment, repairing it against the provider if it looks stuck

        Raises:
            PaymentNotFound: Unknown payment id
            Forbidden: Requester is neither the owner nor privileged
        """
        try:
            payment = db.session.get(Payment, _as_uuid(payment_id))
        except ValueError:
            payment = None

        if not payment:
            raise PaymentNotFound(f'Payment {payment_id} not found')

        PaymentService._authorize(payment, requester_id)

        return PaymentService.reconcile_payment(payment)

    @staticmethod
    def reconcile_payment(payment: Payment) -> Payment:
        """
        Query the provider for a PENDING payment older than the reconcile threshold.

        Younger payments are returned as stored since settlement is probably
        still running. Gateway errors leave the payment unchanged.
        """
        if payment.status != _PENDING:
            return payment

        threshold = current_app.config['PAYMENT_RECONCILE_AFTER_SECONDS']
        age = (utcnow() - payment.created_at).total_seconds()
        if age <= threshold:
            return payment

        try:
            provider_instance = get_provider(payment.provider)
            provider_status = provider_instance.check_collection_status(payment.transaction_id)
        except Exception as e:
            logger.warning(f'Reconciliation check for payment {payment.id} failed: {str(e)}')
            return payment

        if provider_status == CollectionStatus.SUCCESSFUL:
            PaymentService.transition(payment, _SUCCESSFUL, source='reconciliation')
        elif provider_status == CollectionStatus.FAILED:
            PaymentService.transition(payment, _FAILED, source='reconciliation')

        return payment

    @staticmethod
    def sweep_stale_payments(older_than_seconds: Optional[int] = None) -> dict:
        """
        Fail every PENDING payment created before the stale cutoff

        Subscription flags are not touched. Running it again only affects
        payments that became stale in between.

        Returns:
            {'count': number of payments failed}
        """
        if older_than_seconds is None:
            older_than_seconds = current_app.config['PAYMENT_STALE_AFTER_SECONDS']

        now = utcnow()
        cutoff = now - timedelta(seconds=older_than_seconds)

        try:
            count = Payment.query.filter(
                Payment.status == _PENDING,
                Payment.created_at < cutoff
            ).update({'status': _FAILED, 'updated_at': now}, synchronize_session=False)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise

        logger.info(f'Stale payment sweep failed {count} payment(s) created before {cutoff.isoformat()}')
        return {'count': count}

    @staticmethod
    def get_payment_history(user_id, feature_type: Optional[str] = None, limit: Optional[int] = None) -> list:
        """Most recent payments for a user, newest first. Never reconciles."""
        if limit is None:
            limit = current_app.config['PAYMENT_HISTORY_LIMIT']

        query = Payment.query.filter_by(user_id=_as_uuid(user_id))

        if feature_type:
            query = query.filter_by(feature_type=PaymentService._normalize_feature_type(feature_type))

        return query.order_by(Payment.created_at.desc()).limit(limit).all()

    @staticmethod
    def get_subscription_status(user_id, feature_type: str = FeatureType.SURVEY.value) -> dict:
        """
        Combined view of a user's subscription for one feature

        A SUCCESSFUL payment whose window has not ended counts as a mobile-money
        subscription; otherwise an ACTIVE flag on the user (set by another
        billing channel) counts as external.
        """
        feature_type = PaymentService._normalize_feature_type(feature_type)
        user = db.session.get(AppUser, _as_uuid(user_id))
        if not user:
            raise UserNotFound(f'User {user_id} not found')

        now = utcnow()
        latest = Payment.query.filter(
            Payment.user_id == user.id,
            Payment.feature_type == feature_type,
            Payment.status == _SUCCESSFUL,
            Payment.end_date > now
        ).order_by(Payment.end_date.desc()).first()

        flag_active = user.subscription_status(feature_type) == SubscriptionStatus.ACTIVE.value

        remaining_days = 0
        if latest:
            remaining_days = math.ceil((latest.end_date - now).total_seconds() / 86400)
            source = 'MOBILE_MONEY'
        elif flag_active:
            source = 'EXTERNAL'
        else:
            source = 'NONE'

        return {
            'feature_type': feature_type,
            'is_active': bool(latest) or flag_active,
            'source': source,
            'plan_type': latest.plan_type if latest else None,
            'expiration_date': latest.end_date.isoformat() if latest else None,
            'remaining_days': remaining_days,
            'can_renew': remaining_days <= 7,
            'subscription_status': user.subscription_status(feature_type)
        }

    # Internal helpers

    @staticmethod
    def _find_replay(idempotency_key: Optional[str], user_id: uuid.UUID) -> Optional[InitiationResult]:
        if not idempotency_key:
            return None

        existing = Payment.query.filter_by(idempotency_key=idempotency_key).first()
        if not existing:
            return None
        return PaymentService._replay(existing, user_id)

    @staticmethod
    def _replay(existing: Payment, user_id: uuid.UUID) -> InitiationResult:
        if existing.user_id != user_id:
            raise ValidationError('Idempotency key has already been used for another request')

        logger.info(f'Idempotent replay of payment {existing.id}')
        expires_at = existing.created_at + timedelta(
            seconds=current_app.config['PAYMENT_PROMPT_EXPIRY_SECONDS']
        )
        return InitiationResult(payment=existing, idempotent=True, expires_at=expires_at)

    @staticmethod
    def _find_in_flight_payment(user_id: uuid.UUID, feature_type: str) -> Optional[Payment]:
        window_start = utcnow() - timedelta(seconds=current_app.config['PAYMENT_INFLIGHT_WINDOW_SECONDS'])
        return Payment.query.filter(
            Payment.user_id == user_id,
            Payment.feature_type == feature_type,
            Payment.status == _PENDING,
            Payment.created_at > window_start
        ).order_by(Payment.created_at.desc()).first()

    @staticmethod
    def _expire_abandoned_payments(user_id: uuid.UUID, feature_type: str) -> int:
        """Fail PENDING payments of this user/feature that fell out of the in-flight window"""
        now = utcnow()
        window_start = now - timedelta(seconds=current_app.config['PAYMENT_INFLIGHT_WINDOW_SECONDS'])
        count = Payment.query.filter(
            Payment.user_id == user_id,
            Payment.feature_type == feature_type,
            Payment.status == _PENDING,
            Payment.created_at <= window_start
        ).update({'status': _FAILED, 'updated_at': now}, synchronize_session=False)

        if count:
            logger.info(f'Expired {count} abandoned {feature_type} payment(s) for user {user_id}')
        return count

    @staticmethod
    def _authorize(payment: Payment, requester_id):
        if requester_id is not None and str(payment.user_id) == str(requester_id):
            return

        try:
            requester = db.session.get(AppUser, _as_uuid(requester_id))
        except ValueError:
            requester = None

        if not requester or not requester.is_privileged:
            raise Forbidden('Access denied')

    @staticmethod
    def _normalize_feature_type(feature_type: Optional[str]) -> str:
        is_valid, error = validate_choice(feature_type, [f.value for f in FeatureType], 'Feature type')
        if not is_valid:
            raise ValidationError(error)
        return feature_type.upper()
