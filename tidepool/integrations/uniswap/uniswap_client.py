from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Tuple

from web3 import AsyncWeb3
from web3.contract import AsyncContract

from tidepool.configuration.networks import NetworkDeployment
from tidepool.core.errors import PoolNotFoundError
from tidepool.core.onchain.amount_received import measure_received_amount
from tidepool.core.onchain.erc20 import read_token_balance
from tidepool.core.onchain.evm_signer import EvmSigner
from tidepool.core.structures.structures import (
    PoolReference,
    SwapParameters,
    SwapSafety,
    TokenDescriptor,
    TransactionOutcome,
)
from tidepool.core.utils.format_utils import _tail, format_token_amount
from tidepool.integrations.uniswap.uniswap_abis import (
    SWAP_ROUTER_02_ABI,
    UNISWAP_V3_FACTORY_ABI,
    UNISWAP_V3_POOL_ABI,
)
from tidepool.logging.logger import get_logger

log = get_logger(__name__)


def _is_empty_address(address: object) -> bool:
    if not address:
        return True
    try:
        return int(str(address), 16) == 0
    except ValueError:
        return True


async def get_pool_info(
        web3: AsyncWeb3,
        factory_address: str,
        token_in: TokenDescriptor,
        token_out: TokenDescriptor,
        fee_tier: int,
) -> Tuple[AsyncContract, PoolReference]:
    """
    Resolve the Uniswap V3 pool for a token pair at one fee tier.

    The pool's token0, token1 and fee are read concurrently once the address
    is known. No retry: read errors propagate.

    Raises:
        PoolNotFoundError if the factory returns an empty or zero address.
    """
    factory = web3.eth.contract(address=AsyncWeb3.to_checksum_address(factory_address), abi=UNISWAP_V3_FACTORY_ABI)
    pool_address = await factory.functions.getPool(token_in.address, token_out.address, fee_tier).call()
    if _is_empty_address(pool_address):
        log.debug("[SWAP][POOL] not found %s/%s fee=%s", token_in.symbol, token_out.symbol, fee_tier)
        raise PoolNotFoundError(f"Failed to get pool address for {token_in.symbol}/{token_out.symbol} fee={fee_tier}")

    pool_contract = web3.eth.contract(address=AsyncWeb3.to_checksum_address(pool_address), abi=UNISWAP_V3_POOL_ABI)
    token0, token1, fee = await asyncio.gather(
        pool_contract.functions.token0().call(),
        pool_contract.functions.token1().call(),
        pool_contract.functions.fee().call(),
    )
    pool = PoolReference(address=str(pool_address), token0=str(token0), token1=str(token1), fee=int(fee))
    log.info("[SWAP][POOL] %s/%s resolved %s", token_in.symbol, token_out.symbol, pool)
    return pool_contract, pool


async def prepare_swap_params(
        pool_contract: AsyncContract,
        deployment: NetworkDeployment,
        recipient: str,
        amount_in: int,
        safety: SwapSafety = SwapSafety(),
) -> SwapParameters:
    """
    Build exactInputSingle parameters selling `amount_in` base units of the
    deployment's input token for its output token, paid to `recipient`.

    The fee is re-read from the pool. Price protection comes from `safety`,
    which defaults to none at all.
    """
    fee = await pool_contract.functions.fee().call()
    if safety.is_unprotected:
        log.warning(
            "[SWAP][PARAMS] amountOutMinimum=0 and sqrtPriceLimitX96=0: swap accepts any price. "
            "Set SWAP_AMOUNT_OUT_MINIMUM / SWAP_SQRT_PRICE_LIMIT_X96 outside test networks."
        )
    return SwapParameters(
        token_in=deployment.token_in.address,
        token_out=deployment.token_out.address,
        fee=int(fee),
        recipient=recipient,
        amount_in=int(amount_in),
        amount_out_minimum=safety.amount_out_minimum,
        sqrt_price_limit_x96=safety.sqrt_price_limit_x96,
    )


async def execute_swap(
        web3: AsyncWeb3,
        signer: EvmSigner,
        router_address: str,
        params: SwapParameters,
        output_token: TokenDescriptor,
) -> Tuple[TransactionOutcome, Decimal]:
    """
    Submit exactInputSingle and measure the output token received.

    The received amount is the signer's output-token balance after
    confirmation minus the balance before submission.
    """
    router = web3.eth.contract(address=AsyncWeb3.to_checksum_address(router_address), abi=SWAP_ROUTER_02_ABI)

    async def _read_balance() -> Decimal:
        return await read_token_balance(web3, output_token, signer.address)

    async def _swap() -> TransactionOutcome:
        call = router.functions.exactInputSingle(params.to_router_tuple())
        return await signer.send_transaction(call, label="swap")

    outcome, swapped_amount = await measure_received_amount(_read_balance, _swap)
    log.info("[SWAP][EXEC] Transaction Confirmed: %s", outcome.explorer_url)
    log.info("[SWAP][EXEC] Swapped amount: %s (router=…%s)",
             format_token_amount(swapped_amount, output_token.symbol), _tail(router_address))
    return outcome, swapped_amount
