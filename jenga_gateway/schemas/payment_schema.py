from marshmallow import EXCLUDE, Schema, fields, validates, ValidationError


class CheckoutRequestSchema(Schema):
    """Jenga checkout request; field rules are enforced by the gateway client"""

    class Meta:
        unknown = EXCLUDE

    orderReference = fields.Str()
    orderAmount = fields.Raw()
    currency = fields.Str()
    countryCode = fields.Str()
    customerFirstName = fields.Str()
    customerLastName = fields.Str()
    customerEmail = fields.Email()
    customerPhone = fields.Str()
    customerPostalCodeZip = fields.Str(allow_none=True)
    customerAddress = fields.Str(allow_none=True)
    productType = fields.Str(allow_none=True)
    productDescription = fields.Str(allow_none=True)
    extraData = fields.Str(allow_none=True)
    paymentTimeLimit = fields.Raw(allow_none=True)
    callbackUrl = fields.Url(allow_none=True, require_tld=False)
    secondaryReference = fields.Str(allow_none=True)
    orderItems = fields.List(fields.Dict(), allow_none=True)

    @validates('currency')
    def validate_currency(self, value, **kwargs):
        if len(value) != 3:
            raise ValidationError('Currency must be a 3-letter ISO code')


class PaymentInitiationSchema(Schema):
    """Checkout description returned to the caller"""
    payment_url = fields.Str(dump_only=True)
    form_data = fields.Dict(dump_only=True)
    method = fields.Str(dump_only=True)
