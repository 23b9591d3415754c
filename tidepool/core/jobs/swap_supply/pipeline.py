from __future__ import annotations

from typing import Dict, FrozenSet, Optional

from web3 import AsyncWeb3

from tidepool.configuration.config import settings
from tidepool.configuration.networks import NetworkDeployment
from tidepool.core.errors import InvalidStageTransitionError
from tidepool.core.jobs.swap_supply.lending_stage import LendingStage
from tidepool.core.jobs.swap_supply.swap_stage import SwapStage
from tidepool.core.onchain.evm_signer import EvmSigner
from tidepool.core.structures.structures import PipelineReport, PipelineStage, SwapSafety
from tidepool.core.utils.format_utils import format_token_amount
from tidepool.core.utils.unit_utils import DecimalLike, as_decimal, to_base_units
from tidepool.logging.logger import get_logger

log = get_logger(__name__)

_TRANSITIONS: Dict[PipelineStage, FrozenSet[PipelineStage]] = {
    PipelineStage.IDLE: frozenset({PipelineStage.APPROVED, PipelineStage.FAILED}),
    PipelineStage.APPROVED: frozenset({PipelineStage.POOL_RESOLVED, PipelineStage.FAILED}),
    PipelineStage.POOL_RESOLVED: frozenset({PipelineStage.SWAPPED, PipelineStage.FAILED}),
    PipelineStage.SWAPPED: frozenset({PipelineStage.LENDING_APPROVED, PipelineStage.FAILED}),
    PipelineStage.LENDING_APPROVED: frozenset({PipelineStage.SUPPLIED, PipelineStage.FAILED}),
    PipelineStage.SUPPLIED: frozenset({PipelineStage.DONE, PipelineStage.FAILED}),
    PipelineStage.DONE: frozenset(),
    PipelineStage.FAILED: frozenset(),
}


def _advance(report: PipelineReport, target: PipelineStage) -> None:
    """Move the report to `target`, refusing anything but the next step or FAILED."""
    if target not in _TRANSITIONS[report.stage]:
        raise InvalidStageTransitionError(f"Cannot move from {report.stage.value} to {target.value}")
    log.debug("[PIPELINE][STAGE] %s -> %s", report.stage.value, target.value)
    report.stage = target
    report.history.append(target)


class SwapSupplyPipeline:
    """
    Approve → resolve pool → swap → approve lending pool → supply, strictly in
    sequence, once per call to run().

    Every failure ends the run in FAILED with a single error log line. Nothing
    is rolled back; running again starts from the router approval.
    """

    def __init__(self, deployment: NetworkDeployment, swap_stage: SwapStage, lending_stage: LendingStage) -> None:
        self.deployment = deployment
        self.swap_stage = swap_stage
        self.lending_stage = lending_stage

    async def run(self, amount: DecimalLike) -> PipelineReport:
        """Execute one full swap-then-supply cycle for `amount` of the input token."""
        token_in = self.deployment.token_in
        token_out = self.deployment.token_out
        input_amount = as_decimal(amount)
        report = PipelineReport(input_amount=input_amount)
        report.amount_in_base_units = to_base_units(input_amount, token_in.decimals)

        log.info("[PIPELINE][RUN] %s -> %s -> Aave on %s",
                 format_token_amount(input_amount, token_in.symbol), token_out.symbol, self.deployment.name)
        try:
            # 1) Router allowance for the input token
            report.transactions["router_approval"] = await self.swap_stage.approve_router(input_amount)
            _advance(report, PipelineStage.APPROVED)

            # 2) Pool discovery
            pool_contract, report.pool = await self.swap_stage.resolve_pool()
            _advance(report, PipelineStage.POOL_RESOLVED)

            # 3) Swap, amount received measured by balance delta
            swap_outcome, swapped_amount = await self.swap_stage.swap(pool_contract, report.amount_in_base_units)
            report.transactions["swap"] = swap_outcome
            report.swapped_amount = swapped_amount
            _advance(report, PipelineStage.SWAPPED)

            # 4) Lending pool allowance for exactly what was received
            report.transactions["lending_approval"] = await self.lending_stage.authorize(swapped_amount)
            _advance(report, PipelineStage.LENDING_APPROVED)

            # 5) Supply
            report.transactions["supply"] = await self.lending_stage.supply(swapped_amount)
            _advance(report, PipelineStage.SUPPLIED)

            _advance(report, PipelineStage.DONE)
        except Exception as error:
            report.failed_from = report.stage
            report.error = str(error)
            _advance(report, PipelineStage.FAILED)
            log.error("[PIPELINE][RUN] An error occurred after %s: %s", report.failed_from.value, error)
            return report

        log.info("[PIPELINE][RUN] Done: supplied %s to Aave", format_token_amount(swapped_amount, token_out.symbol))
        return report


def build_default_pipeline(
        deployment: NetworkDeployment,
        web3: AsyncWeb3,
        signer: EvmSigner,
        safety: Optional[SwapSafety] = None,
) -> SwapSupplyPipeline:
    """Factory wiring both stages from Settings."""
    swap_safety = safety or SwapSafety(
        amount_out_minimum=settings.SWAP_AMOUNT_OUT_MINIMUM,
        sqrt_price_limit_x96=settings.SWAP_SQRT_PRICE_LIMIT_X96,
    )
    return SwapSupplyPipeline(
        deployment=deployment,
        swap_stage=SwapStage(web3, signer, deployment, swap_safety),
        lending_stage=LendingStage(web3, signer, deployment, supply_gas_limit=settings.AAVE_SUPPLY_GAS_LIMIT),
    )
