import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ResultKind(str, Enum):
    SUCCESS = 'success'
    AUTH_FAILURE = 'auth_failure'
    SIGNING_FAILURE = 'signing_failure'
    DISPATCH_FAILURE = 'dispatch_failure'
    GATEWAY_ERROR = 'gateway_error'


@dataclass(frozen=True)
class GatewayResult:
    """
    Outcome of a B2C operation.

    body holds the raw gateway response whenever one was received
    (SUCCESS and GATEWAY_ERROR). The other kinds mean nothing reached
    the gateway or nothing came back; error describes why.
    """
    kind: ResultKind
    body: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind is ResultKind.SUCCESS

    def __bool__(self) -> bool:
        return self.ok

    def json(self) -> Any:
        """Parse the body; raises ValueError when there is none or it is not JSON."""
        if self.body is None:
            raise ValueError(f'No response body for {self.kind.value} result')
        return json.loads(self.body)

    @classmethod
    def success(cls, body: str, status_code: int) -> 'GatewayResult':
        return cls(ResultKind.SUCCESS, body=body, status_code=status_code)

    @classmethod
    def gateway_error(cls, body: str, status_code: int) -> 'GatewayResult':
        return cls(ResultKind.GATEWAY_ERROR, body=body, status_code=status_code)

    @classmethod
    def auth_failure(cls, error: str) -> 'GatewayResult':
        return cls(ResultKind.AUTH_FAILURE, error=error)

    @classmethod
    def signing_failure(cls, error: str) -> 'GatewayResult':
        return cls(ResultKind.SIGNING_FAILURE, error=error)

    @classmethod
    def dispatch_failure(cls, error: str) -> 'GatewayResult':
        return cls(ResultKind.DISPATCH_FAILURE, error=error)
