from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from tidepool.core.errors import ConfigurationError

load_dotenv(Path.cwd() / ".env", override=False)


def _as_bool(value: str | None, default: bool = False) -> bool:
    """Parse a truthy/falsey string into a boolean."""
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _as_optional_float(value: str | None) -> Optional[float]:
    """Parse an optional float; empty or missing means None."""
    if value is None or not value.strip():
        return None
    return float(value)


class Settings:
    # Credentials
    RPC_URL: str = os.getenv("RPC_URL", "")
    PRIVATE_KEY: str = os.getenv("PRIVATE_KEY", "")

    # Deployment
    TIDEPOOL_NETWORK: str = os.getenv("TIDEPOOL_NETWORK", "sepolia").strip().lower()

    # Swap
    SWAP_INPUT_AMOUNT: str = os.getenv("SWAP_INPUT_AMOUNT", "1")
    SWAP_AMOUNT_OUT_MINIMUM: int = int(os.getenv("SWAP_AMOUNT_OUT_MINIMUM", "0"))
    SWAP_SQRT_PRICE_LIMIT_X96: int = int(os.getenv("SWAP_SQRT_PRICE_LIMIT_X96", "0"))

    # Aave
    AAVE_SUPPLY_GAS_LIMIT: int = int(os.getenv("AAVE_SUPPLY_GAS_LIMIT", "900000"))

    # EVM transport
    EVM_REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("EVM_REQUEST_TIMEOUT_SECONDS", "30"))
    EVM_RECEIPT_TIMEOUT_SECONDS: Optional[float] = _as_optional_float(os.getenv("EVM_RECEIPT_TIMEOUT_SECONDS"))
    EVM_FALLBACK_GAS_LIMIT: int = int(os.getenv("EVM_FALLBACK_GAS_LIMIT", "400000"))

    # Debug / logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "WARNING").upper()
    LOG_LEVEL_TIDEPOOL: str = os.getenv("LOG_LEVEL_TIDEPOOL", "INFO").upper()
    LOG_LEVEL_LIB_WEB3: str = os.getenv("LOG_LEVEL_LIB_WEB3", "WARNING").upper()
    LOG_LEVEL_LIB_URLLIB3: str = os.getenv("LOG_LEVEL_LIB_URLLIB3", "WARNING").upper()
    LOG_LEVEL_LIB_AIOHTTP: str = os.getenv("LOG_LEVEL_LIB_AIOHTTP", "WARNING").upper()
    LOG_LEVEL_LIB_ASYNCIO: str = os.getenv("LOG_LEVEL_LIB_ASYNCIO", "WARNING").upper()
    NO_COLOR: bool = _as_bool(os.getenv("NO_COLOR"), False)

    def require_credentials(self) -> None:
        """Fail fast when the RPC endpoint or the signing key is missing."""
        missing = [name for name in ("RPC_URL", "PRIVATE_KEY") if not str(getattr(self, name) or "").strip()]
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)} (set via environment or .env).")


def _to_dict(instance: Settings) -> Dict[str, Any]:
    """Public settings as a plain dict, secrets masked."""
    values: Dict[str, Any] = {}
    for name in dir(type(instance)):
        if not name.isupper():
            continue
        value = getattr(instance, name)
        if name == "PRIVATE_KEY":
            value = "***" if value else ""
        values[name] = value
    return values


settings = Settings()
