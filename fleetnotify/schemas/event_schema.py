from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, pre_load, validate, validates

from fleetnotify.models.device_event import DeviceEvent


class DeviceEventSchema(Schema):
    """
    Schema for the ``event`` object Traccar forwards.
    Unknown keys (Traccar adds more over time) are ignored.
    """
    class Meta:
        unknown = EXCLUDE

    id = fields.Int(load_default=None, allow_none=True)
    device_id = fields.Int(data_key='deviceId', required=True, strict=False, validate=validate.Range(min=1))
    name = fields.Str(load_default=None, allow_none=True)
    type = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    event_time = fields.DateTime(data_key='eventTime', load_default=None, allow_none=True)
    attributes = fields.Dict(keys=fields.Str(), load_default=dict, allow_none=True)
    geofence_id = fields.Int(data_key='geofenceId', load_default=None, allow_none=True)
    position_id = fields.Int(data_key='positionId', load_default=None, allow_none=True)
    maintenance_id = fields.Int(data_key='maintenanceId', load_default=None, allow_none=True)

    @validates('type')
    def validate_type_not_blank(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("type cannot be empty or whitespace only")

    @post_load
    def make_event(self, data, **kwargs):
        if data.get('attributes') is None:
            data['attributes'] = {}
        return DeviceEvent(**data)


class EventIngestRequestSchema(Schema):
    """
    Schema for the webhook body: ``{"identity": "...", "event": {...}}``.
    ``email`` is accepted in place of ``identity`` for older frontends.
    """
    class Meta:
        unknown = EXCLUDE

    identity = fields.Str(load_default=None, allow_none=True)
    event = fields.Nested(DeviceEventSchema, required=True)

    @pre_load
    def accept_email_alias(self, data, **kwargs):
        if isinstance(data, dict) and not data.get('identity') and data.get('email'):
            data = dict(data)
            data['identity'] = data['email']
        return data
