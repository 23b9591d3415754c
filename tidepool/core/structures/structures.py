from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from tidepool.core.utils.format_utils import _tail


@dataclass(frozen=True)
class TokenDescriptor:
    """Static description of an ERC-20 token on one chain."""
    chain_id: int
    address: str
    decimals: int
    symbol: str
    name: str


@dataclass(frozen=True)
class PoolReference:
    """A Uniswap V3 pool resolved from the factory for one run."""
    address: str
    token0: str
    token1: str
    fee: int

    def __str__(self) -> str:
        return f"[pool=…{_tail(self.address)} token0=…{_tail(self.token0)} token1=…{_tail(self.token1)} fee={self.fee}]"


@dataclass(frozen=True)
class SwapSafety:
    """
    Price protection applied to exactInputSingle.

    Both values default to zero: any output amount is accepted and the price
    is not limited. That is only acceptable on a test network.
    """
    amount_out_minimum: int = 0
    sqrt_price_limit_x96: int = 0

    @property
    def is_unprotected(self) -> bool:
        return self.amount_out_minimum == 0 and self.sqrt_price_limit_x96 == 0


@dataclass(frozen=True)
class SwapParameters:
    """ExactInputSingleParams for SwapRouter02 (no deadline field)."""
    token_in: str
    token_out: str
    fee: int
    recipient: str
    amount_in: int
    amount_out_minimum: int = 0
    sqrt_price_limit_x96: int = 0

    def to_router_tuple(self) -> Dict[str, Any]:
        return {
            "tokenIn": self.token_in,
            "tokenOut": self.token_out,
            "fee": int(self.fee),
            "recipient": self.recipient,
            "amountIn": int(self.amount_in),
            "amountOutMinimum": int(self.amount_out_minimum),
            "sqrtPriceLimitX96": int(self.sqrt_price_limit_x96),
        }


@dataclass(frozen=True)
class TransactionOutcome:
    """Confirmation record of a mined transaction, kept for logging only."""
    tx_hash: str
    block_number: Optional[int]
    status: int
    explorer_url: str


class PipelineStage(str, Enum):
    IDLE = "IDLE"
    APPROVED = "APPROVED"
    POOL_RESOLVED = "POOL_RESOLVED"
    SWAPPED = "SWAPPED"
    LENDING_APPROVED = "LENDING_APPROVED"
    SUPPLIED = "SUPPLIED"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class PipelineReport:
    """
    Inspectable progress of one pipeline run.

    `stage` is where the run ended. When it ended in FAILED, `failed_from`
    holds the last stage that completed before the error.
    """
    input_amount: Decimal
    stage: PipelineStage = PipelineStage.IDLE
    failed_from: Optional[PipelineStage] = None
    error: Optional[str] = None
    amount_in_base_units: Optional[int] = None
    pool: Optional[PoolReference] = None
    swapped_amount: Optional[Decimal] = None
    transactions: Dict[str, TransactionOutcome] = field(default_factory=dict)
    history: List[PipelineStage] = field(default_factory=lambda: [PipelineStage.IDLE])

    @property
    def succeeded(self) -> bool:
        return self.stage is PipelineStage.DONE
