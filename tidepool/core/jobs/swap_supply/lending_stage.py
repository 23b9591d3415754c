from __future__ import annotations

from decimal import Decimal

from web3 import AsyncWeb3

from tidepool.configuration.networks import NetworkDeployment
from tidepool.core.onchain.evm_signer import EvmSigner
from tidepool.core.structures.structures import TransactionOutcome
from tidepool.integrations.aave.aave_client import authorize_lending_pool, supply_to_pool


class LendingStage:
    """
    Lending half of the pipeline: approve the Aave pool for the swapped
    output token, then supply it on behalf of the signer.
    """

    def __init__(self, web3: AsyncWeb3, signer: EvmSigner, deployment: NetworkDeployment,
                 supply_gas_limit: int = 900000) -> None:
        self.web3 = web3
        self.signer = signer
        self.deployment = deployment
        self.supply_gas_limit = supply_gas_limit

    async def authorize(self, amount: Decimal) -> TransactionOutcome:
        return await authorize_lending_pool(
            self.web3,
            self.signer,
            self.deployment.token_out,
            self.deployment.lending_pool_address,
            amount,
        )

    async def supply(self, amount: Decimal) -> TransactionOutcome:
        return await supply_to_pool(
            self.web3,
            self.signer,
            self.deployment.lending_pool_address,
            self.deployment.token_out,
            amount,
            gas_limit=self.supply_gas_limit,
        )
