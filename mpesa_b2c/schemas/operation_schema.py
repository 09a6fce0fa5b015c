from marshmallow import Schema, fields, post_load, validate, validates, ValidationError

from mpesa_b2c.utils.validators import normalise_phone, validate_amount, validate_phone_number

# CommandID values accepted by the B2C payment request
B2C_COMMANDS = ("SalaryPayment", "BusinessPayment", "PromotionPayment")


class B2CPaymentSchema(Schema):
    """B2C disbursement arguments"""
    amount = fields.Decimal(required=True)
    phone = fields.Str(required=True)
    command_id = fields.Str(required=True, validate=validate.OneOf(B2C_COMMANDS))
    remarks = fields.Str(load_default='B2C payment', validate=validate.Length(min=1, max=100))
    occasion = fields.Str(load_default='', validate=validate.Length(max=100))

    @validates('amount')
    def check_amount(self, value, **kwargs):
        is_valid, message = validate_amount(value)
        if not is_valid:
            raise ValidationError(message)

    @validates('phone')
    def check_phone(self, value, **kwargs):
        is_valid, message = validate_phone_number(value)
        if not is_valid:
            raise ValidationError(message)

    @post_load
    def normalise(self, data, **kwargs):
        data['amount'] = int(data['amount'])
        data['phone'] = normalise_phone(data['phone'])
        return data


class StatusQuerySchema(Schema):
    """Transaction status query arguments"""
    transaction_id = fields.Str(required=True, validate=validate.Length(min=1))
    remarks = fields.Str(load_default='Transaction status query', validate=validate.Length(min=1, max=100))
    occasion = fields.Str(load_default='', validate=validate.Length(max=100))


class ReversalSchema(Schema):
    """Transaction reversal arguments"""
    receiver = fields.Str(required=True)
    transaction_id = fields.Str(required=True, validate=validate.Length(min=1))
    amount = fields.Decimal(required=True)
    remarks = fields.Str(load_default='Transaction reversal', validate=validate.Length(min=1, max=100))

    @validates('amount')
    def check_amount(self, value, **kwargs):
        is_valid, message = validate_amount(value)
        if not is_valid:
            raise ValidationError(message)

    @validates('receiver')
    def check_receiver(self, value, **kwargs):
        is_valid, message = validate_phone_number(value)
        if not is_valid:
            raise ValidationError(message)

    @post_load
    def normalise(self, data, **kwargs):
        data['amount'] = int(data['amount'])
        data['receiver'] = normalise_phone(data['receiver'])
        return data


class AccountBalanceSchema(Schema):
    """Account balance query arguments"""
    remarks = fields.Str(load_default='Account balance query', validate=validate.Length(min=1, max=100))
