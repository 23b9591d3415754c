from __future__ import annotations

from decimal import Decimal

from web3 import AsyncWeb3

from tidepool.core.errors import TokenApprovalError
from tidepool.core.onchain.erc20_abis import ERC20_ABI
from tidepool.core.onchain.evm_signer import EvmSigner
from tidepool.core.structures.structures import TokenDescriptor, TransactionOutcome
from tidepool.core.utils.format_utils import _tail
from tidepool.core.utils.unit_utils import DecimalLike, from_base_units, to_base_units
from tidepool.logging.logger import get_logger

log = get_logger(__name__)


async def read_token_balance(web3: AsyncWeb3, token: TokenDescriptor, owner: str) -> Decimal:
    """Balance of `owner` in decimal token units, using the token's declared precision."""
    contract = web3.eth.contract(address=AsyncWeb3.to_checksum_address(token.address), abi=ERC20_ABI)
    raw_balance = await contract.functions.balanceOf(AsyncWeb3.to_checksum_address(owner)).call()
    balance = from_base_units(int(raw_balance), token.decimals)
    log.debug("[ERC20][BALANCE] %s owner=…%s balance=%s", token.symbol, _tail(owner), balance)
    return balance


async def approve_token(
        web3: AsyncWeb3,
        signer: EvmSigner,
        token: TokenDescriptor,
        spender: str,
        amount: DecimalLike,
) -> TransactionOutcome:
    """
    Authorize `spender` to move up to `amount` of `token` out of the signer's account.

    The amount is converted with the token's own precision. No balance check is
    performed first. Any failure is logged and re-raised as TokenApprovalError.
    """
    try:
        approve_amount = to_base_units(amount, token.decimals)
        contract = web3.eth.contract(address=AsyncWeb3.to_checksum_address(token.address), abi=ERC20_ABI)
        log.info("[ERC20][APPROVE] Approving …%s for %s base units of %s", _tail(spender), approve_amount, token.symbol)
        call = contract.functions.approve(AsyncWeb3.to_checksum_address(spender), approve_amount)
        outcome = await signer.send_transaction(call, label=f"{token.symbol} approval")
    except Exception as error:
        log.error("[ERC20][APPROVE] An error occurred during token approval: %s", error)
        raise TokenApprovalError() from error

    log.info("[ERC20][APPROVE] Approval Transaction Confirmed! %s", outcome.explorer_url)
    return outcome
