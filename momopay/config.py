import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'dev-jwt-secret')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)

    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'postgresql://localhost/momopay_dev')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

    CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/1')
    CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', 'redis://localhost:6379/2')
    CELERY_TASK_ALWAYS_EAGER = False

    # Payment lifecycle timings (seconds)
    PAYMENT_INFLIGHT_WINDOW_SECONDS = int(os.getenv('PAYMENT_INFLIGHT_WINDOW_SECONDS', 15 * 60))
    PAYMENT_RECONCILE_AFTER_SECONDS = int(os.getenv('PAYMENT_RECONCILE_AFTER_SECONDS', 30))
    PAYMENT_STALE_AFTER_SECONDS = int(os.getenv('PAYMENT_STALE_AFTER_SECONDS', 15 * 60))
    PAYMENT_PROMPT_EXPIRY_SECONDS = int(os.getenv('PAYMENT_PROMPT_EXPIRY_SECONDS', 5 * 60))
    PAYMENT_HISTORY_LIMIT = int(os.getenv('PAYMENT_HISTORY_LIMIT', 50))
    INITIATION_LOCK_TTL_SECONDS = int(os.getenv('INITIATION_LOCK_TTL_SECONDS', 10))
    STALE_SWEEP_INTERVAL_SECONDS = int(os.getenv('STALE_SWEEP_INTERVAL_SECONDS', 5 * 60))

    # None falls back to momopay.services.plan_catalog.DEFAULT_PLANS
    SUBSCRIPTION_PLANS = None

    # Provider behaviour
    PROVIDER_HTTP_TIMEOUT = float(os.getenv('PROVIDER_HTTP_TIMEOUT', 30))
    PROVIDER_STATUS_TIMEOUT = float(os.getenv('PROVIDER_STATUS_TIMEOUT', 5))
    COLLECTION_POLL_ATTEMPTS = int(os.getenv('COLLECTION_POLL_ATTEMPTS', 10))
    COLLECTION_POLL_INTERVAL = float(os.getenv('COLLECTION_POLL_INTERVAL', 3))

    # MTN MoMo Configuration
    MTN_BASE_URL = os.getenv('MTN_BASE_URL', 'https://sandbox.momodeveloper.mtn.com')
    MTN_USER_ID = os.getenv('MTN_USER_ID')
    MTN_API_KEY = os.getenv('MTN_API_KEY')
    MTN_PRIMARY_KEY = os.getenv('MTN_PRIMARY_KEY')
    MTN_TARGET_ENVIRONMENT = os.getenv('MTN_TARGET_ENVIRONMENT', 'sandbox')
    MTN_CURRENCY = os.getenv('MTN_CURRENCY', 'EUR')

    # Airtel Money Configuration
    AIRTEL_BASE_URL = os.getenv('AIRTEL_BASE_URL', 'https://openapiuat.airtel.africa')
    AIRTEL_CLIENT_ID = os.getenv('AIRTEL_CLIENT_ID')
    AIRTEL_CLIENT_SECRET = os.getenv('AIRTEL_CLIENT_SECRET')
    AIRTEL_COUNTRY = os.getenv('AIRTEL_COUNTRY', 'UG')
    AIRTEL_CURRENCY = os.getenv('AIRTEL_CURRENCY', 'UGX')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    JWT_SECRET_KEY = 'testing-jwt-secret-key-0123456789abcdef'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    REDIS_URL = 'redis://localhost:6379/15'
    CELERY_BROKER_URL = 'memory://'
    CELERY_RESULT_BACKEND = 'cache+memory://'
    COLLECTION_POLL_ATTEMPTS = 3
    COLLECTION_POLL_INTERVAL = 0


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
