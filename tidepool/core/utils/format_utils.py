from decimal import Decimal
from typing import Union


def _tail(address: str, n: int = 6) -> str:
    """Return the last n characters of a lowercased address (for concise logs)."""
    addr = (address or "").lower()
    return addr[-n:] if len(addr) >= n else addr


def _hex_hash(tx_hash: Union[bytes, str]) -> str:
    """Normalize a transaction hash to a 0x-prefixed lowercase hex string."""
    if isinstance(tx_hash, (bytes, bytearray)):
        text = bytes(tx_hash).hex()
    else:
        text = str(tx_hash)
    text = text.lower()
    return text if text.startswith("0x") else f"0x{text}"


def format_tx_url(explorer_base_url: str, tx_hash: Union[bytes, str]) -> str:
    """Render a transaction hash as a block-explorer URL."""
    return f"{explorer_base_url.rstrip('/')}/tx/{_hex_hash(tx_hash)}"


def format_token_amount(amount: Decimal, symbol: str) -> str:
    """Format a decimal token amount without scientific notation."""
    return f"{amount.normalize():f} {symbol}"
