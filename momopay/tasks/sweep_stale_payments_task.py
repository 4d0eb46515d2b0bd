from momopay.extensions import celery_app
from momopay.services.payment_service import PaymentService


@celery_app.task(name='sweep_stale_payments_task')
def sweep_stale_payments() -> int:
    """
    Fail payments stuck in PENDING past the stale cutoff

    Scheduled by celery beat (see STALE_SWEEP_INTERVAL_SECONDS).

    Returns:
        Number of payments failed
    """
    return PaymentService.sweep_stale_payments()['count']
