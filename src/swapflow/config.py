"""Application configuration using pydantic-settings.

Defaults target Arbitrum One and its route processor deployment.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Log level when debug is off")

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Chain
    # ======================
    rpc_url: str = Field(default="https://arb1.arbitrum.io/rpc", description="JSON-RPC endpoint")
    expected_chain_id: int = Field(default=42161, description="Chain the router is deployed on")
    explorer_url: str = Field(default="https://arbiscan.io", description="Block explorer base URL")
    rpc_timeout: float = Field(default=15.0, description="JSON-RPC request timeout in seconds")

    # ======================
    # Router
    # ======================
    router_address: str = Field(
        default="0xfc506AaA1340b4dedFfd88bE278bEe058952D674",
        description="Route processor contract address",
    )
    router_function_signature: str = Field(
        default="processRoute(address,uint256,address,uint256,address,bytes)",
        description=(
            "Router swap function signature. Defaults to RouteProcessor3's public "
            "processRoute entry point; point it at a fork's own entry point "
            "(e.g. toobExecute(...)) when the deployed router exposes one"
        ),
    )

    # ======================
    # Refresh / confirmation timing
    # ======================
    balance_refresh_interval: float = Field(default=30.0, description="Balance refresh interval (s)")
    allowance_refresh_interval: float = Field(
        default=30.0, description="Allowance refresh interval (s)"
    )
    receipt_timeout: float = Field(default=120.0, description="Max wait for a receipt (s)")
    receipt_poll_interval: float = Field(default=2.0, description="Receipt polling interval (s)")

    # ======================
    # Approvals
    # ======================
    approve_max: bool = Field(
        default=False, description="Approve max uint256 instead of the exact amount"
    )

    # ======================
    # Notifications
    # ======================
    telegram_bot_token: str = Field(default="", description="Telegram bot token for notifications")
    telegram_chat_id: Optional[int] = Field(default=None, description="Chat receiving notifications")

    # ======================
    # Local wallet (scripts only)
    # ======================
    wallet_private_key: Optional[str] = Field(
        default=None, description="Hex private key for the local signing wallet"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def has_telegram(self) -> bool:
        """Check if Telegram notifications are configured."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "chain": {
                "rpc": self._redact_url(self.rpc_url),
                "expected_chain_id": self.expected_chain_id,
                "explorer": self.explorer_url,
            },
            "router": {
                "address": self.router_address,
                "function": self.router_function_signature,
            },
            "timing": {
                "balance_refresh_interval": self.balance_refresh_interval,
                "allowance_refresh_interval": self.allowance_refresh_interval,
                "receipt_timeout": self.receipt_timeout,
            },
            "approve_max": self.approve_max,
            "telegram_bot_token": "***" if self.telegram_bot_token else "(not set)",
            "wallet_configured": bool(self.wallet_private_key),
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact credentials and API keys embedded in an RPC URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            creds, host = rest.rsplit("@", 1)
            if ":" in creds:
                user, _ = creds.split(":", 1)
                return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
