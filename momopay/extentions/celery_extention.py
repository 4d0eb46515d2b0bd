from celery import Celery


def create_celery(app=None):
    celery = Celery(__name__, include=[
        'momopay.tasks.settle_payment_task',
        'momopay.tasks.sweep_stale_payments_task',
    ])

    if app:
        init_celery(celery, app)

    return celery


def init_celery(celery, app):
    celery.conf.update(
        broker_url=app.config["CELERY_BROKER_URL"],
        result_backend=app.config["CELERY_RESULT_BACKEND"],
        task_always_eager=app.config.get("CELERY_TASK_ALWAYS_EAGER", False),
        task_track_started=True,
        task_time_limit=30 * 60,
        # Stale-payment janitor
        beat_schedule={
            'sweep-stale-payments': {
                'task': 'sweep_stale_payments_task',
                'schedule': float(app.config["STALE_SWEEP_INTERVAL_SECONDS"]),
            },
        },
    )

    class ContextTask(celery.Task):
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return super().__call__(*args, **kwargs)

    celery.Task = ContextTask
