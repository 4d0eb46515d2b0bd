from momopay.extensions import celery_app
from momopay.models import PaymentStatus
from momopay.services.payment_service import PaymentService
from momopay.utils.logger import get_logger

logger = get_logger(__name__)


@celery_app.task(name='settle_payment_task')
def settle_payment(payment_id: str) -> bool:
    """
    Settle a newly initiated payment against its provider

    Args:
        payment_id: UUID of the PENDING payment

    Returns:
        True if the payment reached SUCCESSFUL, False otherwise
    """
    try:
        payment = PaymentService.settle_payment(payment_id)
    except Exception as e:
        # Payment stays PENDING; reconciliation or the janitor resolves it
        logger.error(f'Settlement of payment {payment_id} crashed: {str(e)}')
        return False

    return bool(payment and payment.status == PaymentStatus.SUCCESSFUL.value)
