"""
Celery entrypoint

    celery -A celery_worker.celery_app worker --loglevel=info
    celery -A celery_worker.celery_app beat --loglevel=info
"""

import os
from momopay import create_app
from momopay.extensions import celery_app

app = create_app(os.getenv('FLASK_ENV', 'development'))
app.app_context().push()

__all__ = ['app', 'celery_app']
