"""Typed records exchanged with the facilitator and the MCP host."""

from dataclasses import dataclass, field
from typing import Any

from mcp.types import CallToolResult, TextContent
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from paybot_mcp.errors import ErrorKind


class FacilitatorModel(BaseModel):
    """Base for facilitator payloads, which use camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ============================================================================
# Outbound
# ============================================================================


class PaymentRequest(FacilitatorModel):
    """Payment submitted to the facilitator."""

    resource: str
    amount: str
    pay_to: str
    network: str | None = None
    bot_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the facilitator's JSON body, dropping unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


# ============================================================================
# Inbound
# ============================================================================


class PaymentResult(FacilitatorModel):
    """Outcome of a payment as reported by the facilitator."""

    success: bool
    tx_hash: str | None = None
    commission_rate: float = 0.0
    # Smallest USDC unit (1e6 per USDC); may arrive as a numeric string.
    commission_amount: int = 0
    network: str | None = None
    error: str | None = None


class BalanceResult(FacilitatorModel):
    """Spending limits and trust level for a bot."""

    bot_id: str
    trust_level: int = Field(ge=0, le=5)
    trust_level_name: str
    daily_spent_usd: float
    daily_limit_usd: float
    daily_remaining_usd: float
    hourly_transactions: int
    hourly_limit: int


class HistoryEvent(FacilitatorModel):
    """Single payment or audit event."""

    event_type: str
    action: str
    timestamp: int | float | str


class RegisterResult(FacilitatorModel):
    """Registration outcome; the facilitator decides the trust level."""

    bot_id: str | None = None
    trust_level: int = Field(ge=0, le=5)


class HealthStatus(FacilitatorModel):
    """Facilitator health document, kept as received."""

    model_config = ConfigDict(extra="allow")

    status: str | None = None


# ============================================================================
# Tool results
# ============================================================================


@dataclass(frozen=True)
class ToolResult:
    """Result of one tool invocation, returned to the MCP host."""

    content: tuple[TextContent, ...]
    is_error: bool = False
    error_kind: ErrorKind | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not self.content:
            raise ValueError("ToolResult requires at least one content block")

    @classmethod
    def text(cls, text: str) -> "ToolResult":
        """Create a successful single-block result."""
        return cls(content=(TextContent(type="text", text=text),))

    @classmethod
    def error(cls, text: str, kind: ErrorKind | None = None) -> "ToolResult":
        """Create a failed single-block result."""
        return cls(
            content=(TextContent(type="text", text=text),),
            is_error=True,
            error_kind=kind,
        )

    @property
    def first_text(self) -> str:
        """Text of the leading content block."""
        return self.content[0].text

    def to_call_tool_result(self) -> CallToolResult:
        """Convert to the MCP wire type."""
        return CallToolResult(content=list(self.content), isError=self.is_error)
