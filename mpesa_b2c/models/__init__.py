from mpesa_b2c.models.gateway_result import GatewayResult, ResultKind

__all__ = ['GatewayResult', 'ResultKind']
