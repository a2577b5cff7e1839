"""Tests for result formatting helpers."""

import pytest

from paybot_mcp.errors import (
    ConfigurationError,
    ErrorKind,
    FacilitatorError,
    FacilitatorHttpError,
    FacilitatorProtocolError,
)
from paybot_mcp.formatting import (
    format_balance,
    format_failure,
    format_history,
    format_number,
    format_timestamp,
    format_usd,
    format_usdc_units,
)
from paybot_mcp.models import BalanceResult, ToolResult


class TestNumberHelpers:
    """Tests for numeric formatting."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (2.0, "2"),
            (1.5, "1.5"),
            (0.25, "0.25"),
            (0, "0"),
            (0.015 * 100, "1.5"),
        ],
    )
    def test_format_number(self, value, expected):
        """Test trailing '.0' is dropped."""
        assert format_number(value) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (5e-05, "0.00005"),
            (0.0000005 * 100, "0.000049999999999999996"),
            (1e-06, "0.000001"),
            (1e-07, "1e-7"),
            (2.5e-07, "2.5e-7"),
            (1e21, "1e+21"),
        ],
    )
    def test_format_number_tiny_and_huge(self, value, expected):
        """Test positional rendering down to 1e-6 and JS exponent form beyond."""
        assert format_number(value) == expected

    @pytest.mark.parametrize(
        ("units", "expected"),
        [
            (0, "0.000000"),
            (1, "0.000001"),
            (1000, "0.001000"),
            (2_500_000, "2.500000"),
        ],
    )
    def test_format_usdc_units(self, units, expected):
        """Test smallest-unit USDC conversion."""
        assert format_usdc_units(units) == expected

    def test_format_usd(self):
        """Test two-decimal USD formatting."""
        assert format_usd(12.5) == "$12.50"
        assert format_usd(50) == "$50.00"
        assert format_usd(0.129) == "$0.13"

    @pytest.mark.parametrize(
        ("amount", "expected"),
        [
            (12.625, "$12.63"),
            (0.125, "$0.13"),
            (37.375, "$37.38"),
            (-0.0, "$0.00"),
        ],
    )
    def test_format_usd_rounds_ties_up(self, amount, expected):
        """Test exact half-cent values round up."""
        assert format_usd(amount) == expected


class TestTimestamps:
    """Tests for timestamp normalization."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (1705312800000, "2024-01-15T10:00:00.000Z"),
            (1705312800123.9, "2024-01-15T10:00:00.123Z"),
            ("1705312800000", "2024-01-15T10:00:00.000Z"),
            ("2024-01-15T10:00:00Z", "2024-01-15T10:00:00.000Z"),
            ("2024-01-15T10:00:00.123456Z", "2024-01-15T10:00:00.123Z"),
            ("2024-01-15T12:00:00+02:00", "2024-01-15T10:00:00.000Z"),
            ("2024-01-15T10:00:00", "2024-01-15T10:00:00.000Z"),
        ],
    )
    def test_format_timestamp(self, value, expected):
        """Test epoch milliseconds and ISO strings render as UTC."""
        assert format_timestamp(value) == expected

    @pytest.mark.parametrize("value", ["yesterday", "", True])
    def test_invalid_timestamp(self, value):
        """Test invalid timestamps raise a protocol error."""
        with pytest.raises(FacilitatorProtocolError):
            format_timestamp(value)


class TestBalance:
    """Tests for balance rendering."""

    def test_two_decimal_round_trip(self):
        """Test fixed 2-decimal amounts regardless of input precision."""
        balance = BalanceResult.model_validate({
            "botId": "mcp-agent",
            "trustLevel": 3,
            "trustLevelName": "Trusted",
            "dailySpentUsd": 12.5,
            "dailyLimitUsd": 50,
            "dailyRemainingUsd": 37.5,
            "hourlyTransactions": 7,
            "hourlyLimit": 60,
        })

        text = format_balance(balance)

        assert "Daily Spent: $12.50" in text
        assert "Daily Limit: $50.00" in text
        assert "Trust Level: 3 (Trusted)" in text
        assert "Hourly Transactions: 7/60" in text


class TestHistory:
    """Tests for history rendering."""

    def test_empty_history(self):
        """Test the fixed empty-history text."""
        assert format_history([]) == "No payment history found."


class TestFormatFailure:
    """Tests for error text mapping."""

    def test_configuration_error(self):
        """Test configuration errors are shown as-is."""
        error = ConfigurationError("API key missing")
        assert format_failure(error) == "API key missing"

    def test_http_error_with_api_message(self):
        """Test HTTP errors prefer the facilitator message."""
        error = FacilitatorHttpError(403, '{"error": "bot suspended"}', message="bot suspended")
        assert format_failure(error) == "PayBot API error (403): bot suspended"

    def test_http_error_with_body(self):
        """Test HTTP errors fall back to the body text."""
        error = FacilitatorHttpError(500, "Internal Server Error")
        assert format_failure(error) == "PayBot API error (500): Internal Server Error"

    def test_protocol_error(self):
        """Test protocol errors are labelled."""
        error = FacilitatorProtocolError("not JSON")
        assert format_failure(error) == (
            "Unexpected response from PayBot facilitator: not JSON"
        )

    def test_business_kind_has_no_exception_text(self):
        """Test business failures are not rendered through exceptions."""

        class DeclinedError(FacilitatorError):
            kind = ErrorKind.BUSINESS

        with pytest.raises(ValueError):
            format_failure(DeclinedError("declined"))


class TestToolResult:
    """Tests for ToolResult."""

    def test_requires_content(self):
        """Test a result must carry at least one block."""
        with pytest.raises(ValueError):
            ToolResult(content=())

    def test_to_call_tool_result(self):
        """Test conversion to the MCP wire type."""
        result = ToolResult.error("Payment failed: declined").to_call_tool_result()

        assert result.isError is True
        assert len(result.content) == 1
        assert result.content[0].type == "text"
        assert result.content[0].text == "Payment failed: declined"
