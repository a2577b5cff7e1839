"""Server configuration.

Loads settings from environment variables with sensible defaults.
Settings are resolved again for every tool call, so changes to the
environment take effect without restarting the server.
"""

import logging
import sys
from dataclasses import dataclass

import structlog
from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from paybot_mcp.errors import ConfigurationError

MISSING_API_KEY_MESSAGE = (
    "PayBot MCP server requires an API key. "
    "Set the PAYBOT_API_KEY (or API_KEY) environment variable before using PayBot tools."
)


@dataclass(frozen=True)
class FacilitatorIdentity:
    """Credentials and target for a single facilitator call."""

    api_key: str
    facilitator_url: str
    bot_id: str
    wallet_key: str | None = None
    timeout: float | None = 30.0

    def __repr__(self) -> str:
        return (
            f"FacilitatorIdentity(facilitator_url={self.facilitator_url!r}, "
            f"bot_id={self.bot_id!r})"
        )


class Settings(BaseSettings):
    """MCP Server settings."""

    api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("PAYBOT_API_KEY", "API_KEY"),
        description="Bearer credential for the PayBot facilitator",
    )
    facilitator_url: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices("PAYBOT_FACILITATOR_URL", "X402_FACILITATOR_URL"),
        description="PayBot facilitator base URL",
    )
    bot_id: str = Field(
        default="mcp-agent",
        validation_alias="PAYBOT_BOT_ID",
        description="Bot identity used when a tool call omits botId",
    )
    wallet_key: SecretStr | None = Field(
        default=None,
        validation_alias="PAYBOT_WALLET_KEY",
        description="Wallet signing key for payments that need local signing",
    )
    network: str | None = Field(
        default=None,
        validation_alias="PAYBOT_NETWORK",
        description="Default CAIP-2 network; unset lets the facilitator decide",
    )
    explorer_tx_url: str = Field(
        default="https://sepolia.basescan.org/tx/{tx_hash}",
        validation_alias="PAYBOT_EXPLORER_TX_URL",
        description="Block explorer URL template for transaction hashes",
    )
    history_limit: int = Field(
        default=10,
        ge=1,
        validation_alias="PAYBOT_HISTORY_LIMIT",
        description="Number of history events returned when limit is omitted",
    )
    default_trust_level: int = Field(
        default=1,
        ge=0,
        le=5,
        validation_alias="PAYBOT_DEFAULT_TRUST_LEVEL",
        description="Trust level requested when registering without one",
    )
    request_timeout: float | None = Field(
        default=30.0,
        validation_alias="PAYBOT_REQUEST_TIMEOUT",
        description="Facilitator request timeout in seconds",
    )
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    def identity(self, bot_id: str | None = None) -> FacilitatorIdentity:
        """Build the facilitator identity for one tool call.

        Args:
            bot_id: Bot identifier from the tool call, if given.

        Returns:
            FacilitatorIdentity for the call.

        Raises:
            ConfigurationError: If no API key is configured.
        """
        api_key = self.api_key.get_secret_value() if self.api_key else ""
        if not api_key:
            raise ConfigurationError(MISSING_API_KEY_MESSAGE)

        return FacilitatorIdentity(
            api_key=api_key,
            facilitator_url=self.facilitator_url,
            bot_id=bot_id or self.bot_id,
            wallet_key=self.wallet_key.get_secret_value() if self.wallet_key else None,
            timeout=self.request_timeout,
        )


def load_settings() -> Settings:
    """Resolve settings from the current environment."""
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog to write JSON lines to stderr.

    Stdout carries the MCP stdio channel and must stay clean.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        stream=sys.stderr,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
