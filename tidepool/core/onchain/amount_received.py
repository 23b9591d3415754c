from __future__ import annotations

from decimal import Decimal
from typing import Awaitable, Callable, Tuple, TypeVar

from tidepool.core.errors import SwapOutputError
from tidepool.logging.logger import get_logger

log = get_logger(__name__)

T = TypeVar("T")


def compute_balance_delta(balance_before: Decimal, balance_after: Decimal) -> Decimal:
    """Amount received, as the exact difference of two balance readings."""
    return balance_after - balance_before


async def measure_received_amount(
        read_balance: Callable[[], Awaitable[Decimal]],
        operation: Callable[[], Awaitable[T]],
) -> Tuple[T, Decimal]:
    """
    Run `operation` between two balance readings and return its result with the delta.

    This is the only place the amount received by a swap is determined. The
    router's own return value is not decoded. The reading is only sound while
    no other actor moves funds in or out of the account during the operation.

    Raises:
        SwapOutputError if the balance did not increase.
    """
    balance_before = await read_balance()
    result = await operation()
    balance_after = await read_balance()

    received = compute_balance_delta(balance_before, balance_after)
    log.debug("[ORACLE][DELTA] before=%s after=%s received=%s", balance_before, balance_after, received)
    if received <= 0:
        raise SwapOutputError(f"Balance did not increase after the operation (before={balance_before}, after={balance_after}).")
    return result, received
