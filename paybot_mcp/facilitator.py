"""PayBot facilitator client.

Thin HTTP client for communicating with the PayBot facilitator REST API.
This module handles authentication, error handling, and response parsing.
"""

import json as jsonlib
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError

from paybot_mcp.config import FacilitatorIdentity
from paybot_mcp.errors import FacilitatorHttpError, FacilitatorProtocolError
from paybot_mcp.models import (
    BalanceResult,
    HealthStatus,
    HistoryEvent,
    PaymentRequest,
    PaymentResult,
    RegisterResult,
)

logger = structlog.get_logger()

UNREADABLE_BODY = "Unknown error"

ModelT = TypeVar("ModelT", bound=BaseModel)

_history_adapter = TypeAdapter(list[HistoryEvent])


def _error_message(body: str) -> str | None:
    """Extract the facilitator's own error message from a JSON error body."""
    try:
        payload = jsonlib.loads(body)
    except ValueError:
        return None
    if isinstance(payload, dict):
        for key in ("error", "message"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return None


class FacilitatorClient:
    """HTTP client for the PayBot facilitator.

    One client is bound to one FacilitatorIdentity; tool handlers open a
    fresh client per invocation and close it when the call completes.
    """

    def __init__(
        self,
        identity: FacilitatorIdentity,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the facilitator client.

        Args:
            identity: Credentials, bot id and base URL for this call.
            transport: Optional httpx transport, used to stub the network.
        """
        self.identity = identity
        self.base_url = identity.facilitator_url.rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def bot_id(self) -> str:
        return self.identity.bot_id

    @property
    def _bot_path(self) -> str:
        return quote(self.bot_id, safe="")

    @property
    def has_wallet_key(self) -> bool:
        return bool(self.identity.wallet_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.identity.timeout,
                transport=self._transport,
                headers={
                    "Authorization": f"Bearer {self.identity.api_key}",
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FacilitatorClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make a facilitator request and return the decoded JSON body.

        Args:
            method: HTTP method.
            path: API endpoint path.
            json: Request body as JSON.
            params: Query parameters.

        Returns:
            Decoded JSON value.

        Raises:
            FacilitatorHttpError: On a non-success status or transport failure.
            FacilitatorProtocolError: If a success body is not JSON.
        """
        client = await self._get_client()

        # Filter out None params
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        logger.debug(
            "Making facilitator request",
            method=method,
            path=path,
            has_body=json is not None,
        )

        try:
            response = await client.request(
                method=method,
                url=path,
                json=json,
                params=params,
            )
        except httpx.TimeoutException as e:
            logger.error("Facilitator request timeout", path=path, error=str(e))
            raise FacilitatorHttpError(
                504,
                f"Request timed out: {path}",
            ) from e
        except httpx.RequestError as e:
            logger.error("Facilitator request failed", path=path, error=str(e))
            raise FacilitatorHttpError(
                502,
                f"Request failed: {e}",
            ) from e

        if not response.is_success:
            body = await self._read_body(response)
            logger.warning(
                "Facilitator returned error status",
                path=path,
                status_code=response.status_code,
            )
            raise FacilitatorHttpError(
                response.status_code,
                body,
                message=_error_message(body),
            )

        try:
            return response.json()
        except ValueError as e:
            raise FacilitatorProtocolError(
                f"Facilitator returned a non-JSON response for {method} {path}",
                details={"status_code": response.status_code},
            ) from e

    @staticmethod
    async def _read_body(response: httpx.Response) -> str:
        try:
            await response.aread()
            return response.text
        except (httpx.HTTPError, httpx.StreamError, UnicodeDecodeError):
            return UNREADABLE_BODY

    @staticmethod
    def _parse(model: type[ModelT], payload: Any) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise FacilitatorProtocolError(
                f"Unexpected {model.__name__} payload from facilitator",
                details={"errors": e.errors(include_url=False)},
            ) from e

    # =========================================================================
    # Payment Endpoints
    # =========================================================================

    async def pay(self, payment: PaymentRequest) -> PaymentResult:
        """Submit a payment.

        Args:
            payment: Payment to submit.

        Returns:
            PaymentResult; a declined payment has success=False.
        """
        payload = await self.request(
            method="POST",
            path="/v1/payments",
            json=payment.to_payload(),
        )
        return self._parse(PaymentResult, payload)

    # =========================================================================
    # Bot Endpoints
    # =========================================================================

    async def balance(self) -> BalanceResult:
        """Get spending limits and trust level for the bound bot."""
        payload = await self.request(
            method="GET",
            path=f"/v1/bots/{self._bot_path}/balance",
        )
        return self._parse(BalanceResult, payload)

    async def history(self, limit: int) -> list[HistoryEvent]:
        """Get recent events for the bound bot.

        Args:
            limit: Maximum number of events to return.

        Returns:
            Events in the order the facilitator returned them.
        """
        payload = await self.request(
            method="GET",
            path=f"/v1/bots/{self._bot_path}/history",
            params={"limit": limit},
        )
        if isinstance(payload, dict) and "events" in payload:
            payload = payload["events"]
        try:
            return _history_adapter.validate_python(payload)
        except ValidationError as e:
            raise FacilitatorProtocolError(
                "Unexpected history payload from facilitator",
                details={"errors": e.errors(include_url=False)},
            ) from e

    async def register(self, trust_level: int) -> RegisterResult:
        """Register the bound bot.

        Args:
            trust_level: Requested initial trust level (0-5).

        Returns:
            RegisterResult with the trust level actually assigned.
        """
        payload = await self.request(
            method="POST",
            path="/v1/bots",
            json={"botId": self.bot_id, "trustLevel": trust_level},
        )
        return self._parse(RegisterResult, payload)

    # =========================================================================
    # Service Endpoints
    # =========================================================================

    async def health(self) -> HealthStatus:
        """Check that the facilitator is reachable."""
        payload = await self.request(method="GET", path="/health")
        return self._parse(HealthStatus, payload)
