from __future__ import annotations

from decimal import Decimal
from typing import Tuple

from web3 import AsyncWeb3
from web3.contract import AsyncContract

from tidepool.configuration.networks import NetworkDeployment
from tidepool.core.onchain.erc20 import approve_token
from tidepool.core.onchain.evm_signer import EvmSigner
from tidepool.core.structures.structures import PoolReference, SwapSafety, TransactionOutcome
from tidepool.integrations.uniswap.uniswap_client import execute_swap, get_pool_info, prepare_swap_params
from tidepool.logging.logger import get_logger

log = get_logger(__name__)


class SwapStage:
    """
    DEX half of the pipeline: approve the router, resolve the pool, swap.
    """

    def __init__(self, web3: AsyncWeb3, signer: EvmSigner, deployment: NetworkDeployment,
                 safety: SwapSafety = SwapSafety()) -> None:
        self.web3 = web3
        self.signer = signer
        self.deployment = deployment
        self.safety = safety

    async def approve_router(self, amount: Decimal) -> TransactionOutcome:
        """Let the swap router pull `amount` of the input token."""
        return await approve_token(
            self.web3,
            self.signer,
            self.deployment.token_in,
            self.deployment.swap_router_address,
            amount,
        )

    async def resolve_pool(self) -> Tuple[AsyncContract, PoolReference]:
        return await get_pool_info(
            self.web3,
            self.deployment.pool_factory_address,
            self.deployment.token_in,
            self.deployment.token_out,
            self.deployment.fee_tier,
        )

    async def swap(self, pool_contract: AsyncContract, amount_in: int) -> Tuple[TransactionOutcome, Decimal]:
        """Swap `amount_in` base units and return the confirmation and the output amount received."""
        params = await prepare_swap_params(
            pool_contract,
            self.deployment,
            recipient=self.signer.address,
            amount_in=amount_in,
            safety=self.safety,
        )
        log.debug("[SWAP][PARAMS] %s", params)
        return await execute_swap(
            self.web3,
            self.signer,
            self.deployment.swap_router_address,
            params,
            self.deployment.token_out,
        )
