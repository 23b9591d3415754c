"""End-to-end tests for the swap-then-supply pipeline against a scripted chain."""

import logging
from decimal import Decimal

import pytest

from tests.conftest import ZERO_ADDRESS
from tidepool.core.errors import InvalidStageTransitionError
from tidepool.core.jobs.swap_supply.lending_stage import LendingStage
from tidepool.core.jobs.swap_supply.pipeline import SwapSupplyPipeline, _advance, build_default_pipeline
from tidepool.core.jobs.swap_supply.swap_stage import SwapStage
from tidepool.core.structures.structures import PipelineReport, PipelineStage, SwapSafety


def _pipeline(chain, signer, deployment) -> SwapSupplyPipeline:
    return SwapSupplyPipeline(
        deployment=deployment,
        swap_stage=SwapStage(chain, signer, deployment, SwapSafety()),
        lending_stage=LendingStage(chain, signer, deployment, supply_gas_limit=900000),
    )


def _error_records(caplog):
    return [record for record in caplog.records if record.levelno >= logging.ERROR]


@pytest.mark.asyncio
async def test_full_run_swaps_then_supplies(scripted_chain, fake_signer, deployment) -> None:
    report = await _pipeline(scripted_chain, fake_signer, deployment).run(Decimal("1"))

    assert report.stage is PipelineStage.DONE
    assert report.succeeded
    assert report.history == [
        PipelineStage.IDLE,
        PipelineStage.APPROVED,
        PipelineStage.POOL_RESOLVED,
        PipelineStage.SWAPPED,
        PipelineStage.LENDING_APPROVED,
        PipelineStage.SUPPLIED,
        PipelineStage.DONE,
    ]
    assert report.amount_in_base_units == 1000000
    assert report.swapped_amount == Decimal("3.275")
    assert set(report.transactions) == {"router_approval", "swap", "lending_approval", "supply"}

    sent = [entry[0].fn_name for entry in fake_signer.sent]
    assert sent == ["approve", "exactInputSingle", "approve", "supply"]

    router_approval, swap, lending_approval, supply = [entry[0] for entry in fake_signer.sent]
    assert router_approval.args == (deployment.swap_router_address, 1000000)

    (get_pool,) = scripted_chain.calls_named("getPool")
    assert get_pool.args == (deployment.token_in.address, deployment.token_out.address, 3000)

    (swap_params,) = swap.args
    assert swap_params["recipient"] == fake_signer.address
    assert swap_params["amountIn"] == 1000000
    assert swap_params["amountOutMinimum"] == 0
    assert swap_params["sqrtPriceLimitX96"] == 0

    assert lending_approval.args == (deployment.lending_pool_address, 3275000000000000000)
    assert supply.args == (deployment.token_out.address, 3275000000000000000, fake_signer.address, 0)
    assert fake_signer.sent[-1][1] == 900000


@pytest.mark.asyncio
async def test_swap_failure_stops_before_lending(scripted_chain, make_signer, deployment, caplog) -> None:
    signer = make_signer(fail_on="exactInputSingle")

    with caplog.at_level(logging.ERROR):
        report = await _pipeline(scripted_chain, signer, deployment).run(Decimal("1"))

    assert report.stage is PipelineStage.FAILED
    assert report.failed_from is PipelineStage.POOL_RESOLVED
    assert not report.succeeded
    assert "exactInputSingle submission failed" in report.error
    assert [entry[0].fn_name for entry in signer.sent] == ["approve", "exactInputSingle"]
    assert signer.sent_named("supply") == []
    assert len(_error_records(caplog)) == 1


@pytest.mark.asyncio
async def test_router_approval_failure_stops_everything(scripted_chain, make_signer, deployment, caplog) -> None:
    signer = make_signer(fail_on="approve")

    with caplog.at_level(logging.ERROR):
        report = await _pipeline(scripted_chain, signer, deployment).run(Decimal("1"))

    assert report.stage is PipelineStage.FAILED
    assert report.failed_from is PipelineStage.IDLE
    assert scripted_chain.calls_named("getPool") == []
    assert report.transactions == {}
    # one line from the approval helper, one from the pipeline boundary
    assert len(_error_records(caplog)) == 2


@pytest.mark.asyncio
async def test_missing_pool_fails_after_approval(fake_chain, fake_signer, deployment) -> None:
    fake_chain.respond(deployment.pool_factory_address, "getPool", ZERO_ADDRESS)

    report = await _pipeline(fake_chain, fake_signer, deployment).run("2.5")

    assert report.stage is PipelineStage.FAILED
    assert report.failed_from is PipelineStage.APPROVED
    assert report.amount_in_base_units == 2500000
    assert [entry[0].fn_name for entry in fake_signer.sent] == ["approve"]


@pytest.mark.asyncio
async def test_supply_failure_keeps_earlier_transactions(scripted_chain, make_signer, deployment) -> None:
    signer = make_signer(fail_on="supply")

    report = await _pipeline(scripted_chain, signer, deployment).run(Decimal("1"))

    assert report.failed_from is PipelineStage.LENDING_APPROVED
    assert set(report.transactions) == {"router_approval", "swap", "lending_approval"}
    assert report.swapped_amount == Decimal("3.275")


@pytest.mark.asyncio
async def test_unrepresentable_amount_raises_before_any_transaction(scripted_chain, fake_signer, deployment) -> None:
    with pytest.raises(ValueError):
        await _pipeline(scripted_chain, fake_signer, deployment).run(Decimal("0.0000001"))
    assert fake_signer.sent == []


def test_stages_only_move_forward_one_step() -> None:
    report = PipelineReport(input_amount=Decimal("1"))

    with pytest.raises(InvalidStageTransitionError):
        _advance(report, PipelineStage.SWAPPED)

    _advance(report, PipelineStage.APPROVED)
    with pytest.raises(InvalidStageTransitionError):
        _advance(report, PipelineStage.IDLE)
    assert report.history == [PipelineStage.IDLE, PipelineStage.APPROVED]


@pytest.mark.parametrize("terminal", [PipelineStage.DONE, PipelineStage.FAILED])
def test_terminal_stages_accept_nothing(terminal) -> None:
    report = PipelineReport(input_amount=Decimal("1"), stage=terminal)

    with pytest.raises(InvalidStageTransitionError):
        _advance(report, PipelineStage.FAILED)


def test_build_default_pipeline_reads_settings(fake_chain, fake_signer, deployment, monkeypatch) -> None:
    from tidepool.configuration.config import settings

    monkeypatch.setattr(settings, "SWAP_AMOUNT_OUT_MINIMUM", 42)
    monkeypatch.setattr(settings, "AAVE_SUPPLY_GAS_LIMIT", 750000)

    pipeline = build_default_pipeline(deployment, fake_chain, fake_signer)

    assert pipeline.swap_stage.safety.amount_out_minimum == 42
    assert pipeline.lending_stage.supply_gas_limit == 750000


@pytest.mark.asyncio
async def test_float_amount_is_accepted(scripted_chain, fake_signer, deployment) -> None:
    report = await _pipeline(scripted_chain, fake_signer, deployment).run(0.5)

    assert report.stage is PipelineStage.DONE
    assert report.input_amount == Decimal("0.5")
    assert fake_signer.sent[0][0].args == (deployment.swap_router_address, 500000)
