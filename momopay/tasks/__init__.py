from momopay.tasks.settle_payment_task import settle_payment
from momopay.tasks.sweep_stale_payments_task import sweep_stale_payments

__all__ = ['settle_payment', 'sweep_stale_payments']
