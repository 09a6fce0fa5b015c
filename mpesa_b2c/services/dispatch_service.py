from typing import Any, Dict, Optional

import requests

from mpesa_b2c.config import ClientConfig
from mpesa_b2c.errors.exceptions import AuthenticationError, DispatchError
from mpesa_b2c.models import GatewayResult
from mpesa_b2c.services.auth_service import Authenticator
from mpesa_b2c.utils.logger import get_logger

logger = get_logger(__name__)


class RequestDispatcher:
    """
    Submit a command payload to a Daraja endpoint.

    The response body is relayed untouched. An HTTP error status with a body
    is a GATEWAY_ERROR result, not an exception: Daraja error payloads carry
    the detail the caller needs, and the final outcome of an accepted
    request arrives later on the ResultURL.
    """

    def __init__(
        self,
        config: ClientConfig,
        authenticator: Optional[Authenticator] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.authenticator = authenticator or Authenticator(config)
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    def submit(self, url: str, payload: Dict[str, Any], context: str = "") -> GatewayResult:
        try:
            token = self.authenticator.get_token()
        except AuthenticationError as exc:
            logger.warning("Daraja [%s]: authentication failed – %s", context, exc)
            return GatewayResult.auth_failure(str(exc))

        try:
            resp = self._post(url, payload, token)
        except DispatchError as exc:
            logger.error("Daraja [%s]: %s", context, exc)
            return GatewayResult.dispatch_failure(str(exc))

        if resp.status_code == 401:
            # the cached token was rejected; the next call fetches a new one
            self.authenticator.invalidate()

        if resp.status_code >= 400:
            logger.warning("Daraja [%s] HTTP %s: gateway returned an error body", context, resp.status_code)
            return GatewayResult.gateway_error(resp.text, resp.status_code)

        logger.info("Daraja [%s] HTTP %s: request accepted", context, resp.status_code)
        return GatewayResult.success(resp.text, resp.status_code)

    def _post(self, url: str, payload: Dict[str, Any], token: str) -> requests.Response:
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type":  "application/json",
        }
        try:
            return self._session.post(url, json=payload, headers=headers, timeout=self.config.request_timeout)
        except requests.RequestException as exc:
            raise DispatchError(f"network error – {exc}") from exc
