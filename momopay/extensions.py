from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from momopay.extentions.celery_extention import create_celery

jwt = JWTManager()
db = SQLAlchemy()
migrate = Migrate()
celery_app = create_celery()


class RedisClient:
    def __init__(self):
        self.client = None

    def init_app(self, app):
        import redis
        self.client = redis.Redis.from_url(app.config['REDIS_URL'], decode_responses=True)

    def get(self, key):
        return self.client.get(key)

    def set(self, key, value, ex=None, nx=False):
        return self.client.set(key, value, ex=ex, nx=nx)

    def delete(self, key):
        return self.client.delete(key)

    def eval(self, script, numkeys, *keys_and_args):
        return self.client.eval(script, numkeys, *keys_and_args)

    def exists(self, key):
        return self.client.exists(key)

    def ping(self):
        return self.client.ping()


redis_client = RedisClient()
