"""
Health Check and System Monitoring Endpoints
"""

from flask import Blueprint, jsonify
import os

from redis.exceptions import RedisError
from sqlalchemy import text, func
from sqlalchemy.exc import SQLAlchemyError

from momopay.extensions import db, redis_client
from momopay.utils.clock import utcnow

health_bp = Blueprint('health', __name__)

SERVICE_NAME = 'momopay'
SERVICE_VERSION = '1.0.0'


def _check_database():
    try:
        db.session.execute(text('SELECT 1'))
        return True, 'Database connection OK'
    except SQLAlchemyError as e:
        db.session.rollback()
        return False, f'Database error: {str(e)}'


def _check_redis():
    try:
        redis_client.ping()
        return True, 'Redis connection OK'
    except RedisError as e:
        return False, f'Redis error: {str(e)}'


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Basic health check endpoint

    Returns:
        200 if system is healthy
        503 if system has issues
    """
    checks = {}
    overall_healthy = True

    for name, check in (('database', _check_database), ('redis', _check_redis)):
        ok, message = check()
        checks[name] = {
            'status': 'healthy' if ok else 'unhealthy',
            'message': message
        }
        overall_healthy = overall_healthy and ok

    return jsonify({
        'status': 'healthy' if overall_healthy else 'unhealthy',
        'timestamp': utcnow().isoformat(),
        'service': SERVICE_NAME,
        'version': SERVICE_VERSION,
        'checks': checks
    }), 200 if overall_healthy else 503


@health_bp.route('/health/live', methods=['GET'])
def liveness_probe():
    """
    Kubernetes liveness probe
    Returns 200 if the application is running
    """
    return jsonify({
        'status': 'alive',
        'timestamp': utcnow().isoformat()
    }), 200


@health_bp.route('/health/ready', methods=['GET'])
def readiness_probe():
    """
    Kubernetes readiness probe
    Returns 200 if the application is ready to serve traffic
    """
    database_ok, _ = _check_database()
    redis_ok, _ = _check_redis()
    ready = database_ok and redis_ok

    return jsonify({
        'status': 'ready' if ready else 'not_ready',
        'checks': {
            'database': 'ready' if database_ok else 'not_ready',
            'redis': 'ready' if redis_ok else 'not_ready'
        },
        'timestamp': utcnow().isoformat()
    }), 200 if ready else 503


@health_bp.route('/metrics', methods=['GET'])
def metrics():
    """
    Payment counts by status and feature
    """
    from momopay.models import Payment

    rows = db.session.query(
        Payment.feature_type,
        Payment.status,
        func.count(Payment.id)
    ).group_by(Payment.feature_type, Payment.status).all()

    payments = {}
    for feature_type, status, count in rows:
        payments.setdefault(feature_type, {})[status.lower()] = count

    return jsonify({
        'timestamp': utcnow().isoformat(),
        'application': {
            'payments': payments,
            'total': sum(count for _, _, count in rows)
        }
    }), 200


@health_bp.route('/version', methods=['GET'])
def version():
    """
    Get application version information
    """
    return jsonify({
        'service': SERVICE_NAME,
        'version': SERVICE_VERSION,
        'environment': os.getenv('FLASK_ENV', 'production')
    }), 200
