import uuid
from enum import Enum

from sqlalchemy import Uuid

from momopay.extensions import db
from momopay.models.payment import FeatureType
from momopay.utils.clock import utcnow


class UserRole(str, Enum):
    USER = 'USER'
    ADMIN = 'ADMIN'
    MODERATOR = 'MODERATOR'


class SubscriptionStatus(str, Enum):
    ACTIVE = 'ACTIVE'
    INACTIVE = 'INACTIVE'
    PENDING = 'PENDING'


PRIVILEGED_ROLES = (UserRole.ADMIN.value, UserRole.MODERATOR.value)

# Per-feature subscription flag columns
_SUBSCRIPTION_COLUMNS = {
    FeatureType.SURVEY.value: 'survey_subscription_status',
    FeatureType.VIDEO.value: 'video_subscription_status',
}


class AppUser(db.Model):
    __tablename__ = 'app_users'

    id = db.Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    first_name = db.Column(db.String(100))
    last_name = db.Column(db.String(100))
    role = db.Column(db.String(20), nullable=False, default=UserRole.USER.value)

    survey_subscription_status = db.Column(
        db.String(20), nullable=False, default=SubscriptionStatus.INACTIVE.value
    )
    video_subscription_status = db.Column(
        db.String(20), nullable=False, default=SubscriptionStatus.INACTIVE.value
    )

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    @staticmethod
    def subscription_column(feature_type: str) -> str:
        """Name of the flag column a feature's subscription is tracked in"""
        return _SUBSCRIPTION_COLUMNS[feature_type]

    def subscription_status(self, feature_type: str) -> str:
        return getattr(self, self.subscription_column(feature_type))

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    def __repr__(self):
        return f'<AppUser {self.id} - {self.email}>'
