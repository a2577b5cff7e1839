"""PayBot MCP Server.

Exposes PayBot payment capabilities to AI agents via the Model Context
Protocol. This is a thin adapter over the PayBot facilitator REST API.

MCP Tools:
1. paybot_pay - Make a USDC payment
2. paybot_balance - Check spending limits and trust level
3. paybot_history - View recent payment history
4. paybot_register - Register a new bot
"""

import argparse
import asyncio
import json
import sys
from typing import Any

import httpx
import structlog
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, Tool
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from paybot_mcp import __version__
from paybot_mcp.config import Settings, configure_logging, load_settings
from paybot_mcp.errors import ConfigurationError, FacilitatorError
from paybot_mcp.facilitator import FacilitatorClient
from paybot_mcp.formatting import format_failure, format_registration_failure
from paybot_mcp.models import ToolResult
from paybot_mcp.tools import PayBotTools

logger = structlog.get_logger()

EXIT_STARTUP_FAILURE = 1


# ============================================================================
# Tool Input Schemas
# ============================================================================


class ToolInput(BaseModel):
    """Base for tool inputs; parameter names are the camelCase wire names."""

    model_config = ConfigDict(populate_by_name=True)


class PayInput(ToolInput):
    """Input schema for paybot_pay tool."""

    amount: str = Field(
        ...,
        description='Amount in USD (e.g., "0.05" for 5 cents)',
    )
    recipient: str = Field(
        ...,
        description="Recipient wallet address (0x...)",
    )
    resource: str = Field(
        ...,
        description="URL or description of what you are paying for",
    )
    bot_id: str | None = Field(
        None,
        alias="botId",
        description="Bot identifier (defaults to env PAYBOT_BOT_ID)",
    )
    network: str | None = Field(
        None,
        description="Network CAIP-2 ID (default: eip155:84532 Base Sepolia)",
    )


class BalanceInput(ToolInput):
    """Input schema for paybot_balance tool."""

    bot_id: str | None = Field(
        None,
        alias="botId",
        description="Bot identifier (defaults to env PAYBOT_BOT_ID)",
    )


class HistoryInput(ToolInput):
    """Input schema for paybot_history tool."""

    bot_id: str | None = Field(
        None,
        alias="botId",
        description="Bot identifier (defaults to env PAYBOT_BOT_ID)",
    )
    limit: int | None = Field(
        None,
        ge=1,
        description="Max events to return (default: 10)",
    )


class RegisterInput(ToolInput):
    """Input schema for paybot_register tool."""

    bot_id: str = Field(
        ...,
        alias="botId",
        description="Unique bot identifier",
    )
    trust_level: int | None = Field(
        None,
        alias="trustLevel",
        ge=0,
        le=5,
        description="Initial trust level 0-5 (default: 1)",
    )


TOOL_DEFINITIONS: list[Tool] = [
    Tool(
        name="paybot_pay",
        description=(
            "Make a USDC payment for an API, service, or resource. "
            "Returns transaction hash and commission breakdown."
        ),
        inputSchema=PayInput.model_json_schema(),
    ),
    Tool(
        name="paybot_balance",
        description="Check spending limits, trust level, and remaining daily budget for a bot.",
        inputSchema=BalanceInput.model_json_schema(),
    ),
    Tool(
        name="paybot_history",
        description="View recent payment history and audit events for a bot.",
        inputSchema=HistoryInput.model_json_schema(),
    ),
    Tool(
        name="paybot_register",
        description=(
            "Register a new bot with the PayBot facilitator. "
            "Returns the assigned trust level."
        ),
        inputSchema=RegisterInput.model_json_schema(),
    ),
]


# ============================================================================
# Dispatch
# ============================================================================


def _resolve_settings() -> Settings:
    try:
        return load_settings()
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid PayBot configuration: {e}",
            details={"errors": e.errors(include_url=False)},
        ) from e


async def dispatch_tool(
    tools: PayBotTools,
    name: str,
    arguments: dict[str, Any] | None,
) -> ToolResult:
    """Validate arguments, resolve settings and run one tool.

    Never raises: every failure becomes an error ToolResult so a broken
    call cannot take down the MCP session.
    """
    arguments = arguments or {}
    logger.info("Tool called", tool=name, arguments=arguments)

    try:
        if name == "paybot_pay":
            pay_input = PayInput.model_validate(arguments)
            result = await tools.pay(
                _resolve_settings(),
                amount=pay_input.amount,
                recipient=pay_input.recipient,
                resource=pay_input.resource,
                bot_id=pay_input.bot_id,
                network=pay_input.network,
            )
        elif name == "paybot_balance":
            balance_input = BalanceInput.model_validate(arguments)
            result = await tools.balance(
                _resolve_settings(),
                bot_id=balance_input.bot_id,
            )
        elif name == "paybot_history":
            history_input = HistoryInput.model_validate(arguments)
            result = await tools.history(
                _resolve_settings(),
                bot_id=history_input.bot_id,
                limit=history_input.limit,
            )
        elif name == "paybot_register":
            register_input = RegisterInput.model_validate(arguments)
            # Registration reports every failure in its own wording.
            try:
                settings = _resolve_settings()
            except ConfigurationError as e:
                result = ToolResult.error(format_registration_failure(e.message), kind=e.kind)
            else:
                result = await tools.register(
                    settings,
                    bot_id=register_input.bot_id,
                    trust_level=register_input.trust_level,
                )
        else:
            result = ToolResult.error(f"Unknown tool: {name}")

    except ValidationError as e:
        logger.warning("Invalid tool arguments", tool=name, errors=e.error_count())
        result = ToolResult.error(f"Invalid arguments for {name}: {e}")

    except FacilitatorError as e:
        logger.warning("Tool failed", tool=name, error_kind=e.kind.value, error=e.message)
        result = ToolResult.error(format_failure(e), kind=e.kind)

    except Exception as e:
        logger.exception("Tool execution failed", tool=name)
        result = ToolResult.error(f"Tool execution failed: {e}")

    logger.info(
        "Tool completed",
        tool=name,
        is_error=result.is_error,
        error_kind=result.error_kind.value if result.error_kind else None,
    )
    return result


# ============================================================================
# MCP Server Implementation
# ============================================================================


def create_mcp_server(tools: PayBotTools | None = None) -> Server:
    """Create and configure the MCP server with all tools."""
    server = Server("paybot", version=__version__)
    tools = tools or PayBotTools()

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List all available MCP tools."""
        return TOOL_DEFINITIONS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> CallToolResult:
        """Handle tool invocation."""
        result = await dispatch_tool(tools, name, arguments)
        return result.to_call_tool_result()

    return server


async def run_server(settings: Settings) -> None:
    """Run the MCP server using stdio transport."""
    logger.info(
        "Starting PayBot MCP Server",
        version=__version__,
        facilitator_url=settings.facilitator_url,
        bot_id=settings.bot_id,
    )

    server = create_mcp_server()

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


async def check_facilitator(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Probe the facilitator's health endpoint.

    Returns:
        Process exit status: 0 if reachable, 1 otherwise.
    """
    try:
        async with FacilitatorClient(settings.identity(), transport=transport) as client:
            status = await client.health()
    except FacilitatorError as e:
        print(format_failure(e), file=sys.stderr)
        return 1

    print(json.dumps(status.model_dump(by_alias=True, exclude_none=True), indent=2))
    return 0


def main(argv: list[str] | None = None) -> None:
    """Run the MCP server.

    Entry point for the MCP server. Uses stdio transport for
    communication with AI agents. Exits with status 1 if the
    server cannot start.
    """
    parser = argparse.ArgumentParser(
        prog="paybot-mcp",
        description="PayBot payment tools for MCP hosts over stdio.",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="check that the configured facilitator is reachable, then exit",
    )
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except ValidationError as e:
        print(f"Invalid PayBot configuration: {e}", file=sys.stderr)
        sys.exit(EXIT_STARTUP_FAILURE)

    configure_logging(settings.log_level)

    if args.check:
        sys.exit(asyncio.run(check_facilitator(settings)))

    try:
        asyncio.run(run_server(settings))
    except KeyboardInterrupt:
        pass
    except Exception:
        logger.exception("Failed to start PayBot MCP server")
        sys.exit(EXIT_STARTUP_FAILURE)


if __name__ == "__main__":
    main()
