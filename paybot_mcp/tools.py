"""MCP Tools for PayBot.

Defines the 4 MCP tools as thin adapters over the PayBot facilitator:
1. paybot_pay - Make a USDC payment
2. paybot_balance - Check spending limits and trust level
3. paybot_history - View recent payment history
4. paybot_register - Register a new bot

Each tool resolves a fresh FacilitatorIdentity from the Settings it is
given, makes exactly one facilitator call, and returns a ToolResult
holding a single text block.
"""

import httpx
import structlog

from paybot_mcp.config import Settings
from paybot_mcp.errors import ErrorKind, FacilitatorError
from paybot_mcp.facilitator import FacilitatorClient
from paybot_mcp.formatting import (
    format_balance,
    format_history,
    format_payment,
    format_payment_failure,
    format_registration,
    format_registration_failure,
)
from paybot_mcp.models import PaymentRequest, ToolResult

logger = structlog.get_logger()


class PayBotTools:
    """MCP Tools for PayBot.

    Provides methods for each MCP tool that wrap the facilitator API.
    Each method returns a formatted result suitable for AI agent consumption.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialize PayBot tools.

        Args:
            transport: Optional httpx transport handed to every facilitator
                client, used to stub the network.
        """
        self.transport = transport

    def _client(self, settings: Settings, bot_id: str | None) -> FacilitatorClient:
        return FacilitatorClient(settings.identity(bot_id), transport=self.transport)

    # =========================================================================
    # Tool 1: paybot_pay
    # =========================================================================

    async def pay(
        self,
        settings: Settings,
        amount: str,
        recipient: str,
        resource: str,
        bot_id: str | None = None,
        network: str | None = None,
    ) -> ToolResult:
        """Make a USDC payment for an API, service, or resource.

        A payment the facilitator declines is returned as an error result,
        not raised.

        Args:
            settings: Resolved server settings for this call.
            amount: Amount in USD as a decimal string (e.g. "0.05").
            recipient: Recipient wallet address.
            resource: URL or description of what is being paid for.
            bot_id: Bot identifier; defaults to the configured bot.
            network: CAIP-2 network id; defaults to the configured network.

        Returns:
            Transaction hash and commission breakdown, or the decline reason.
        """
        async with self._client(settings, bot_id) as client:
            logger.info(
                "Submitting payment",
                bot_id=client.bot_id,
                amount=amount,
                recipient=recipient,
                local_signing=client.has_wallet_key,
            )
            result = await client.pay(
                PaymentRequest(
                    resource=resource,
                    amount=amount,
                    pay_to=recipient,
                    network=network or settings.network,
                    bot_id=client.bot_id,
                )
            )

        if not result.success:
            logger.info("Payment declined", error=result.error)
            return ToolResult.error(format_payment_failure(result), kind=ErrorKind.BUSINESS)

        return ToolResult.text(
            format_payment(
                result,
                amount=amount,
                recipient=recipient,
                explorer_tx_url=settings.explorer_tx_url,
            )
        )

    # =========================================================================
    # Tool 2: paybot_balance
    # =========================================================================

    async def balance(self, settings: Settings, bot_id: str | None = None) -> ToolResult:
        """Check spending limits, trust level, and remaining daily budget."""
        async with self._client(settings, bot_id) as client:
            logger.info("Getting balance", bot_id=client.bot_id)
            balance = await client.balance()

        return ToolResult.text(format_balance(balance))

    # =========================================================================
    # Tool 3: paybot_history
    # =========================================================================

    async def history(
        self,
        settings: Settings,
        bot_id: str | None = None,
        limit: int | None = None,
    ) -> ToolResult:
        """View recent payment history and audit events.

        Events are listed in the order the facilitator returns them.
        """
        limit = limit or settings.history_limit

        async with self._client(settings, bot_id) as client:
            logger.info("Getting history", bot_id=client.bot_id, limit=limit)
            events = await client.history(limit)

        return ToolResult.text(format_history(events))

    # =========================================================================
    # Tool 4: paybot_register
    # =========================================================================

    async def register(
        self,
        settings: Settings,
        bot_id: str,
        trust_level: int | None = None,
    ) -> ToolResult:
        """Register a new bot with the facilitator.

        The facilitator may assign a different trust level than requested;
        the assigned level is reported.
        """
        if trust_level is None:
            trust_level = settings.default_trust_level

        try:
            async with self._client(settings, bot_id) as client:
                logger.info("Registering bot", bot_id=bot_id, trust_level=trust_level)
                result = await client.register(trust_level)
        except FacilitatorError as e:
            logger.warning("Registration failed", bot_id=bot_id, error_kind=e.kind.value)
            return ToolResult.error(format_registration_failure(e.message), kind=e.kind)
        except Exception as e:
            logger.exception("Registration failed", bot_id=bot_id)
            return ToolResult.error(format_registration_failure(str(e)))

        return ToolResult.text(format_registration(bot_id, result.trust_level))
