from marshmallow import Schema, fields, validate, pre_load, EXCLUDE

from momopay.models import FeatureType, MobileMoneyProvider


def _upper(data, *keys):
    for key in keys:
        if isinstance(data.get(key), str):
            data[key] = data[key].strip().upper()
    return data


class InitiatePaymentSchema(Schema):
    """Payment initiation schema"""
    phone_number = fields.Str(required=True)
    provider = fields.Str(
        required=True,
        validate=validate.OneOf([p.value for p in MobileMoneyProvider])
    )
    plan_type = fields.Str(required=True)
    feature_type = fields.Str(
        load_default=FeatureType.SURVEY.value,
        validate=validate.OneOf([f.value for f in FeatureType])
    )
    idempotency_key = fields.Str(
        required=False,
        allow_none=True,
        validate=validate.Length(min=1, max=255)
    )

    @pre_load
    def normalize_choices(self, data, **kwargs):
        return _upper(dict(data), 'provider', 'plan_type', 'feature_type')


class FeatureQuerySchema(Schema):
    """Query string carrying an optional feature type"""
    class Meta:
        unknown = EXCLUDE

    feature_type = fields.Str(
        load_default=None,
        validate=validate.OneOf([f.value for f in FeatureType])
    )

    @pre_load
    def normalize_choices(self, data, **kwargs):
        return _upper(dict(data), 'feature_type')


class PaymentSchema(Schema):
    """Payment response schema"""
    id = fields.UUID(dump_only=True)
    user_id = fields.UUID(dump_only=True)
    amount = fields.Float(dump_only=True)
    currency = fields.Str(dump_only=True)
    phone_number = fields.Str(dump_only=True)
    provider = fields.Str(dump_only=True)
    feature_type = fields.Str(dump_only=True)
    plan_type = fields.Str(dump_only=True)
    transaction_id = fields.Str(dump_only=True)
    status = fields.Str(dump_only=True)
    status_message = fields.Str(dump_only=True)
    subscription_id = fields.UUID(dump_only=True, allow_none=True)
    start_date = fields.DateTime(dump_only=True)
    end_date = fields.DateTime(dump_only=True)
    initiated_at = fields.DateTime(attribute='created_at', dump_only=True)
    completed_at = fields.DateTime(dump_only=True, allow_none=True)
    failed_at = fields.DateTime(dump_only=True, allow_none=True)
    created_at = fields.DateTime(dump_only=True)
    updated_at = fields.DateTime(dump_only=True)


class SubscriptionSchema(Schema):
    """Subscription unlocked by a SUCCESSFUL payment"""
    id = fields.UUID(dump_only=True)
    user_id = fields.UUID(dump_only=True)
    feature_type = fields.Str(dump_only=True)
    plan_type = fields.Str(dump_only=True)
    status = fields.Constant('ACTIVE', dump_only=True)
    start_date = fields.DateTime(dump_only=True)
    end_date = fields.DateTime(dump_only=True)
    payment_id = fields.UUID(attribute='id', dump_only=True)
    auto_renew = fields.Constant(False, dump_only=True)


class AuditLogSchema(Schema):
    """Audit log entry schema"""
    id = fields.UUID(dump_only=True)
    payment_id = fields.UUID(dump_only=True)
    event_type = fields.Str(dump_only=True)
    event_data = fields.Dict(dump_only=True)
    user_id = fields.Str(dump_only=True)
    ip_address = fields.Str(dump_only=True)
    timestamp = fields.DateTime(dump_only=True)
