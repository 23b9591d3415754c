"""
Error taxonomy for the swap-then-supply pipeline.
"""
from typing import Optional


class TidepoolError(Exception):
    """Base class for every error raised by tidepool itself."""


class ConfigurationError(TidepoolError):
    """Missing credentials, malformed deployment or wrong network. Fatal."""


class TokenApprovalError(TidepoolError):
    """An ERC-20 approval could not be submitted or confirmed."""

    def __init__(self, message: str = "Token approval failed") -> None:
        super().__init__(message)


class PoolNotFoundError(TidepoolError):
    """The factory returned no pool for the token pair and fee tier."""


class TransactionRevertedError(TidepoolError):
    """A mined transaction came back with status 0."""

    def __init__(self, tx_hash: str, block_number: Optional[int] = None) -> None:
        self.tx_hash = tx_hash
        self.block_number = block_number
        super().__init__(f"Transaction {tx_hash} reverted (block={block_number})")


class SwapOutputError(TidepoolError):
    """The output-token balance did not increase after a confirmed swap."""


class InvalidStageTransitionError(TidepoolError):
    """The pipeline was asked to move between two stages that are not adjacent."""
