from __future__ import annotations

"""
EVM signer using an eth-account private key and AsyncWeb3.

Design goals:
- One signing identity per process, derived from PRIVATE_KEY.
- Build and sign EIP-1559 transactions with dynamic fees.
- Block until the receipt is available; a reverted receipt is an error.
- Never log secrets or raw calldata.

Environment:
- settings.RPC_URL
- settings.PRIVATE_KEY
- settings.EVM_RECEIPT_TIMEOUT_SECONDS (unset: wait indefinitely)
"""

from dataclasses import dataclass
from typing import Any, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3
from web3.types import TxParams

from tidepool.configuration.config import settings
from tidepool.configuration.networks import NetworkDeployment
from tidepool.core.errors import ConfigurationError, TransactionRevertedError
from tidepool.core.structures.structures import TransactionOutcome
from tidepool.core.utils.format_utils import _hex_hash, format_tx_url
from tidepool.logging.logger import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class EvmSignerConfig:
    rpc_url: str
    private_key: str
    chain_id: int
    explorer_base_url: str
    request_timeout_seconds: float = 30.0
    receipt_timeout_seconds: Optional[float] = None
    fallback_gas_limit: int = 400000


def build_web3(rpc_url: str, request_timeout_seconds: float = 30.0) -> AsyncWeb3:
    """Create the shared read/write connection handle to the node."""
    if not rpc_url:
        raise ConfigurationError("RPC_URL is required to build the web3 connection.")
    return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout_seconds}))


class EvmSigner:
    """Sign and broadcast contract calls from a single private key using eth-account."""

    def __init__(self, config: EvmSignerConfig, web3: AsyncWeb3) -> None:
        if not config.rpc_url or not config.private_key:
            raise ConfigurationError("EVM signer requires RPC URL and private key (set via environment variables).")

        self.config = config
        self.web3 = web3
        try:
            self.account: LocalAccount = Account.from_key(config.private_key)
        except Exception as exc:
            raise ConfigurationError("PRIVATE_KEY is not a valid secp256k1 private key.") from exc
        self.address: str = self.account.address

        log.info("[EVM][SIGNER] Signer initialized. Address=%s ChainId=%s", self.address, config.chain_id)

    async def ensure_chain(self) -> None:
        """Check the node serves the chain this signer signs for."""
        remote_chain_id = int(await self.web3.eth.chain_id)
        if remote_chain_id != self.config.chain_id:
            raise ConfigurationError(
                f"RPC endpoint serves chain {remote_chain_id}, expected {self.config.chain_id}."
            )
        log.debug("[EVM][SIGNER] Connected to chain %s", remote_chain_id)

    async def _build_eip1559(self, contract_call: Any, gas_limit: Optional[int]) -> TxParams:
        """Construct a typed EIP-1559 transaction with dynamic fees and filled nonce."""
        latest = await self.web3.eth.get_block("latest")
        base_fee = int(latest.get("baseFeePerGas") or 0)
        try:
            max_priority = int(await self.web3.eth.max_priority_fee)
        except Exception as exc:
            log.debug("[EVM][TX] max_priority_fee unavailable (%s), using 1 gwei", exc)
            max_priority = int(AsyncWeb3.to_wei(1, "gwei"))
        max_fee = base_fee * 2 + max_priority

        nonce = await self.web3.eth.get_transaction_count(self.address, "pending")
        base: TxParams = {
            "from": self.address,
            "chainId": self.config.chain_id,
            "type": 2,
            "nonce": nonce,
            "value": 0,
            "maxPriorityFeePerGas": max_priority,
            "maxFeePerGas": int(max_fee),
        }
        if gas_limit is not None:
            base["gas"] = int(gas_limit)
        else:
            try:
                estimated = await contract_call.estimate_gas({"from": self.address, "value": 0})
                base["gas"] = int(estimated)
            except Exception as exc:
                log.warning("[EVM][TX] Gas estimation failed (%s). Falling back to static limit %s.",
                            exc, self.config.fallback_gas_limit)
                base["gas"] = int(self.config.fallback_gas_limit)

        tx: TxParams = await contract_call.build_transaction(base)
        log.debug("[EVM][TX] skeleton built: nonce=%s gas=%s maxFeePerGas=%s", tx.get("nonce"), tx.get("gas"),
                  tx.get("maxFeePerGas"))
        return tx

    async def send_transaction(self, contract_call: Any, *, gas_limit: Optional[int] = None,
                               label: str = "transaction") -> TransactionOutcome:
        """
        Sign and broadcast a contract call, then block until it is mined.

        Raises:
            TransactionRevertedError when the receipt status is 0.
        """
        log.info("[EVM][TX] Sending %s...", label)
        tx = await self._build_eip1559(contract_call, gas_limit)
        signed = self.account.sign_transaction(tx)
        tx_hash = await self.web3.eth.send_raw_transaction(signed.raw_transaction)
        hex_hash = _hex_hash(tx_hash)
        log.info("[EVM][TX] %s sent: %s", label, hex_hash)

        receipt = await self.web3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.config.receipt_timeout_seconds
        )
        status = int(receipt["status"])
        block_number = receipt.get("blockNumber")
        if status != 1:
            log.warning("[EVM][TX] %s reverted: %s", label, hex_hash)
            raise TransactionRevertedError(hex_hash, block_number)

        return TransactionOutcome(
            tx_hash=hex_hash,
            block_number=block_number,
            status=status,
            explorer_url=format_tx_url(self.config.explorer_base_url, hex_hash),
        )


def build_default_evm_signer(deployment: NetworkDeployment, web3: Optional[AsyncWeb3] = None) -> EvmSigner:
    """Factory using Settings for convenience."""
    settings.require_credentials()
    cfg = EvmSignerConfig(
        rpc_url=settings.RPC_URL,
        private_key=settings.PRIVATE_KEY,
        chain_id=deployment.chain_id,
        explorer_base_url=deployment.explorer_base_url,
        request_timeout_seconds=settings.EVM_REQUEST_TIMEOUT_SECONDS,
        receipt_timeout_seconds=settings.EVM_RECEIPT_TIMEOUT_SECONDS,
        fallback_gas_limit=settings.EVM_FALLBACK_GAS_LIMIT,
    )
    return EvmSigner(cfg, web3 or build_web3(cfg.rpc_url, cfg.request_timeout_seconds))
