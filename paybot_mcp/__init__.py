"""PayBot MCP Server.

Exposes PayBot payment capabilities as MCP tools for AI agent interaction.

This package provides:
- MCP tools for paying, checking budget, viewing history and registering bots
- Thin adapter layer over the PayBot facilitator REST API
- A startup health check against the configured facilitator

Tools:
1. paybot_pay - Make a USDC payment
2. paybot_balance - Check spending limits and trust level
3. paybot_history - View recent payment history
4. paybot_register - Register a new bot
"""

__version__ = "0.1.0"
