"""
Schemas Package
Marshmallow schemas for operation argument validation
"""

from mpesa_b2c.schemas.operation_schema import (
    B2CPaymentSchema,
    StatusQuerySchema,
    ReversalSchema,
    AccountBalanceSchema
)

__all__ = [
    'B2CPaymentSchema',
    'StatusQuerySchema',
    'ReversalSchema',
    'AccountBalanceSchema'
]
