from marshmallow import Schema, fields


class TransactionSchema(Schema):
    """Transaction log record response schema"""
    id = fields.Int(dump_only=True)
    order_status = fields.Str(dump_only=True)
    order_reference = fields.Str(dump_only=True)
    transaction_reference = fields.Str(dump_only=True)
    transaction_amount = fields.Str(dump_only=True)
    formatted_amount = fields.Str(dump_only=True)
    transaction_currency = fields.Str(dump_only=True)
    payment_channel = fields.Str(dump_only=True)
    is_successful = fields.Bool(dump_only=True)
    transaction_date = fields.DateTime(dump_only=True)
    created_at = fields.DateTime(dump_only=True)
    updated_at = fields.DateTime(dump_only=True)
