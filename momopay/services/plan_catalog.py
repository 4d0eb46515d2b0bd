"""
Plan Catalog
Read-only lookup of subscription plans per feature family
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from flask import current_app


@dataclass(frozen=True)
class Plan:
    id: str
    type: str
    name: str
    price: Decimal
    currency: str
    duration_days: int
    description: str = ''
    features: tuple = field(default_factory=tuple)
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'type': self.type,
            'name': self.name,
            'description': self.description,
            'price': float(self.price),
            'currency': self.currency,
            'duration_days': self.duration_days,
            'features': list(self.features)
        }


def _plan(plan_id, plan_type, name, price, duration_days, description, features):
    return {
        'id': plan_id,
        'type': plan_type,
        'name': name,
        'price': price,
        'currency': 'UGX',
        'duration_days': duration_days,
        'description': description,
        'features': features,
    }


DEFAULT_PLANS: Dict[str, List[dict]] = {
    'SURVEY': [
        _plan('plan_once', 'ONCE', 'Single Access', 500, 1,
              'One-time access to a single survey', ['Access to 1 survey', 'Basic analytics']),
        _plan('plan_daily', 'DAILY', 'Daily', 300, 1,
              '24 hours of unlimited survey access', ['Unlimited surveys for 24 hours', 'Basic analytics']),
        _plan('plan_weekly', 'WEEKLY', 'Weekly', 1500, 7,
              '7 days of unlimited survey access', ['Unlimited surveys', 'Basic analytics', 'Email support']),
        _plan('plan_monthly', 'MONTHLY', 'Monthly', 5000, 30,
              '30 days of unlimited survey access',
              ['Unlimited surveys', 'Advanced analytics', 'Priority support', 'Export data']),
        _plan('plan_quarterly', 'QUARTERLY', 'Quarterly', 12000, 90,
              '90 days of unlimited survey access',
              ['Unlimited surveys', 'Advanced analytics', 'Priority support', 'Export data', 'API access']),
        _plan('plan_half_yearly', 'HALF_YEARLY', 'Half Yearly', 22000, 180,
              '180 days of unlimited survey access',
              ['Unlimited surveys', 'Advanced analytics', 'Priority support', 'Export data', 'API access',
               'Custom branding']),
        _plan('plan_yearly', 'YEARLY', 'Yearly', 40000, 365,
              '365 days of unlimited survey access',
              ['Unlimited surveys', 'Advanced analytics', 'Priority support', 'Export data', 'API access',
               'Custom branding', 'Dedicated support']),
        _plan('plan_lifetime', 'LIFETIME', 'Lifetime', 100000, 36500,
              'Unlimited lifetime access',
              ['Lifetime access', 'All premium features', 'VIP support', 'Early access to new features']),
    ],
    'VIDEO': [
        _plan('video_daily', 'DAILY', 'Daily', 500, 1,
              '24 hours of premium video access', ['Ad-free videos', 'HD playback']),
        _plan('video_weekly', 'WEEKLY', 'Weekly', 2500, 7,
              '7 days of premium video access', ['Ad-free videos', 'HD playback', 'Offline saves']),
        _plan('video_monthly', 'MONTHLY', 'Monthly', 8000, 30,
              '30 days of premium video access',
              ['Ad-free videos', 'HD playback', 'Offline saves', 'Longer uploads']),
        _plan('video_quarterly', 'QUARTERLY', 'Quarterly', 20000, 90,
              '90 days of premium video access',
              ['Ad-free videos', 'HD playback', 'Offline saves', 'Longer uploads']),
        _plan('video_yearly', 'YEARLY', 'Yearly', 70000, 365,
              '365 days of premium video access',
              ['Ad-free videos', 'HD playback', 'Offline saves', 'Longer uploads', 'Priority support']),
    ],
}


class PlanCatalog:
    """Subscription plans keyed by feature type and plan type"""

    def __init__(self, plans: Dict[str, List[dict]]):
        self._plans: Dict[str, Dict[str, Plan]] = {}

        for feature_type, entries in plans.items():
            by_type = {}
            for entry in entries:
                plan = Plan(
                    id=entry['id'],
                    type=entry['type'].upper(),
                    name=entry['name'],
                    price=Decimal(str(entry['price'])),
                    currency=entry.get('currency', 'UGX'),
                    duration_days=int(entry['duration_days']),
                    description=entry.get('description', ''),
                    features=tuple(entry.get('features', ())),
                    is_active=entry.get('is_active', True),
                )
                by_type[plan.type] = plan
            self._plans[feature_type.upper()] = by_type

    def get_plan(self, plan_type: str, feature_type: str) -> Optional[Plan]:
        """Resolve an active plan, or None if the feature has no such plan"""
        if not plan_type or not feature_type:
            return None

        plan = self._plans.get(feature_type.upper(), {}).get(plan_type.upper())
        if plan is None or not plan.is_active:
            return None
        return plan

    def list_plans(self, feature_type: str) -> List[Plan]:
        return [
            plan for plan in self._plans.get(feature_type.upper(), {}).values()
            if plan.is_active
        ]

    def feature_types(self) -> List[str]:
        return list(self._plans.keys())


def get_plan_catalog() -> PlanCatalog:
    """Build the catalog for the current app (SUBSCRIPTION_PLANS overrides the defaults)"""
    return PlanCatalog(current_app.config.get('SUBSCRIPTION_PLANS') or DEFAULT_PLANS)
