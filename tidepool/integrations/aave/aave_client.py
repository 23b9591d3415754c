from __future__ import annotations

from decimal import Decimal

from web3 import AsyncWeb3

from tidepool.core.onchain.erc20 import approve_token
from tidepool.core.onchain.evm_signer import EvmSigner
from tidepool.core.structures.structures import TokenDescriptor, TransactionOutcome
from tidepool.core.utils.format_utils import format_token_amount
from tidepool.core.utils.unit_utils import to_base_units
from tidepool.integrations.aave.aave_abis import AAVE_DEFAULT_REFERRAL_CODE, AAVE_POOL_ABI
from tidepool.logging.logger import get_logger

logger = get_logger(__name__)


async def authorize_lending_pool(
        web3: AsyncWeb3,
        signer: EvmSigner,
        token: TokenDescriptor,
        lending_pool_address: str,
        amount: Decimal,
) -> TransactionOutcome:
    """Approve the Aave pool for exactly `amount` of `token` (the just-swapped quantity)."""
    logger.info(f"[AAVE][APPROVE] Approving Lending Pool for {format_token_amount(amount, token.symbol)}...")
    outcome = await approve_token(web3, signer, token, lending_pool_address, amount)
    logger.info(f"[AAVE][APPROVE] {token.symbol} approved for Aave lending.")
    return outcome


async def supply_to_pool(
        web3: AsyncWeb3,
        signer: EvmSigner,
        lending_pool_address: str,
        token: TokenDescriptor,
        amount: Decimal,
        gas_limit: int,
) -> TransactionOutcome:
    """
    Deposit `amount` of `token` into the Aave V3 pool on behalf of the signer.

    Uses a fixed gas limit and referral code 0. No retry; reverts propagate.
    """
    supply_amount = to_base_units(amount, token.decimals)
    pool_contract = web3.eth.contract(address=AsyncWeb3.to_checksum_address(lending_pool_address), abi=AAVE_POOL_ABI)
    call = pool_contract.functions.supply(
        AsyncWeb3.to_checksum_address(token.address),
        supply_amount,
        signer.address,
        AAVE_DEFAULT_REFERRAL_CODE,
    )
    outcome = await signer.send_transaction(call, gas_limit=gas_limit, label=f"{token.symbol} supply")
    logger.info(f"[AAVE][SUPPLY] Supply successful {outcome.explorer_url}")
    return outcome
