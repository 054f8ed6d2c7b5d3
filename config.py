"""
Configuration module for SwapTracker.
Loads environment variables and provides application settings.
"""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from core.models import AmountStrategy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Solana endpoints
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    solana_ws_url: str = "wss://api.mainnet-beta.solana.com"
    commitment: str = "confirmed"

    # Swap detection
    target_program_id: str = "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"
    wrapped_sol_mint: str = "So11111111111111111111111111111111111111112"
    # "route_transfer" or "swap"
    filter_mode: str = "route_transfer"

    # Amount extraction and validation
    amount_strategy: AmountStrategy = AmountStrategy.NATIVE_BALANCE_DIFF
    lamports_per_sol: float = 1e9
    native_max_amount: Optional[float] = None
    token_max_amount: Optional[float] = 10.0
    round_epsilon: float = 1e-5

    # Fetch budget: concurrent getTransaction calls and spacing between starts
    fetch_max_concurrent: int = 10
    fetch_min_time_ms: int = 100

    # Dispatch budget: bytes handed to the parser per refill window
    dispatch_reservoir_bytes: int = 100 * 1024 * 1024
    dispatch_refresh_interval_ms: int = 30_000
    # Fixed cost per record instead of the response size
    dispatch_nominal_cost: Optional[int] = None

    # Optional throttle on inbound event handling: caps handler tasks in
    # flight and spaces their starts (unset and 0 disable the limiter)
    event_max_concurrent: Optional[int] = None
    event_min_time_ms: int = 0

    # None keeps every signature for the process lifetime
    dedup_max_size: Optional[int] = None

    # Performance Settings
    rpc_request_timeout: float = 30.0
    ws_reconnect_delay: int = 1
    ws_max_reconnect_delay: int = 60
    ws_ping_interval: int = 30
    ws_ping_timeout: int = 20

    # Seconds between status lines
    status_interval: int = 60

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def max_amount_for(self, strategy: AmountStrategy) -> Optional[float]:
        """Upper plausibility bound configured for an extraction strategy."""
        if strategy == AmountStrategy.TOKEN_BALANCE_DIFF:
            return self.token_max_amount
        return self.native_max_amount


def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()
