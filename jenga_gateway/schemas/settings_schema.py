from marshmallow import EXCLUDE, Schema, fields, validate


class SettingsUpdateSchema(Schema):
    """Runtime settings update; every field is optional"""

    class Meta:
        unknown = EXCLUDE

    merchant_code = fields.Str()
    consumer_secret = fields.Str()
    api_key = fields.Str()
    private_key = fields.Str()
    environment = fields.Str(validate=validate.OneOf(['sandbox', 'production']))
    callback_url = fields.Str()
    success_url = fields.Str()
    failure_url = fields.Str()
    verify_hash = fields.Bool()
    timeout = fields.Int(validate=validate.Range(min=1))
    verify_ssl = fields.Bool()
