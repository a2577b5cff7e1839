"""Text rendering for PayBot tool results.

Every tool answers with exactly one text block. The numeric rules here
are fixed per field: callers and hosts compare against the exact text.
"""

from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

from paybot_mcp.errors import ErrorKind, FacilitatorError, FacilitatorProtocolError
from paybot_mcp.models import BalanceResult, HistoryEvent, PaymentResult

USDC_UNITS = Decimal(1_000_000)
CENT = Decimal("0.01")
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
NO_HISTORY = "No payment history found."


def format_number(value: float) -> str:
    """Shortest round-trip rendering in JavaScript number notation.

    Positional for magnitudes in [1e-6, 1e21), exponent form ('1e-7',
    '1e+21') outside it, never a trailing '.0'.
    """
    value = float(value)
    magnitude = abs(value)
    if value.is_integer() and magnitude < 1e21:
        return str(int(value))

    text = repr(value)
    if "e" not in text:
        return text
    if 1e-6 <= magnitude < 1e21:
        return format(Decimal(text), "f")

    mantissa, exponent = text.split("e")
    exponent_value = int(exponent)
    sign = "+" if exponent_value > 0 else "-"
    return f"{mantissa}e{sign}{abs(exponent_value)}"


def format_usd(amount: float) -> str:
    """Format a USD amount with exactly two decimals, ties rounded up."""
    # JS renders -0 as "0.00"
    cents = Decimal(amount or 0.0).quantize(CENT, rounding=ROUND_HALF_UP)
    return f"${cents}"


def format_usdc_units(units: int) -> str:
    """Convert smallest-unit USDC to a six-decimal amount."""
    return f"{Decimal(units) / USDC_UNITS:.6f}"


def format_timestamp(value: int | float | str) -> str:
    """Render an epoch-milliseconds or ISO-8601 value as UTC ISO-8601.

    Output always has millisecond precision and a 'Z' suffix,
    e.g. '2024-01-15T10:00:00.000Z'. Naive ISO values are taken as UTC.

    Raises:
        FacilitatorProtocolError: If the value is not a valid timestamp.
    """
    try:
        if isinstance(value, bool):
            raise ValueError("boolean timestamp")
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            value = int(value.strip())
        if isinstance(value, (int, float)):
            moment = EPOCH + timedelta(milliseconds=value)
        else:
            text = value.strip()
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            moment = datetime.fromisoformat(text)
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=timezone.utc)
            moment = moment.astimezone(timezone.utc)
    except (ValueError, OverflowError, TypeError) as e:
        raise FacilitatorProtocolError(
            f"Invalid event timestamp: {value!r}",
            details={"timestamp": value},
        ) from e

    return moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{moment.microsecond // 1000:03d}Z"


def format_payment(
    result: PaymentResult,
    amount: str,
    recipient: str,
    explorer_tx_url: str,
) -> str:
    """Render a successful payment."""
    lines = [
        "Payment successful!",
        f"Transaction: {result.tx_hash or 'unknown'}",
        f"Amount: ${amount} USDC",
        f"Recipient: {recipient}",
        f"Commission: {format_number(result.commission_rate * 100)}% "
        f"(${format_usdc_units(result.commission_amount)})",
        f"Network: {result.network}" if result.network else "",
        f"Explorer: {explorer_tx_url.format(tx_hash=result.tx_hash)}" if result.tx_hash else "",
    ]
    return "\n".join(line for line in lines if line)


def format_payment_failure(result: PaymentResult) -> str:
    return f"Payment failed: {result.error}"


def format_balance(balance: BalanceResult) -> str:
    """Render spending limits and trust level."""
    return "\n".join([
        f"Bot: {balance.bot_id}",
        f"Trust Level: {balance.trust_level} ({balance.trust_level_name})",
        f"Daily Spent: {format_usd(balance.daily_spent_usd)}",
        f"Daily Limit: {format_usd(balance.daily_limit_usd)}",
        f"Remaining: {format_usd(balance.daily_remaining_usd)}",
        f"Hourly Transactions: {balance.hourly_transactions}/{balance.hourly_limit}",
    ])


def format_history(events: list[HistoryEvent]) -> str:
    """Render events as a numbered list, in the order given."""
    if not events:
        return NO_HISTORY

    formatted = "\n".join(
        f"{i}. [{event.event_type}] {event.action} ({format_timestamp(event.timestamp)})"
        for i, event in enumerate(events, start=1)
    )
    return f"Recent events:\n{formatted}"


def format_registration(bot_id: str, trust_level: int) -> str:
    return f'Bot "{bot_id}" registered at trust level {trust_level}. Ready to make payments.'


def format_registration_failure(message: str) -> str:
    return f"Registration failed: {message}"


def format_failure(error: FacilitatorError) -> str:
    """Map a tagged adapter error to the text shown to the agent."""
    if error.kind is ErrorKind.CONFIGURATION:
        return error.message
    if error.kind is ErrorKind.HTTP:
        status = error.details.get("status_code")
        detail = error.details.get("api_message") or error.details.get("body")
        return f"PayBot API error ({status}): {detail}"
    if error.kind is ErrorKind.PROTOCOL:
        return f"Unexpected response from PayBot facilitator: {error.message}"
    raise ValueError(f"Unhandled error kind: {error.kind}")
