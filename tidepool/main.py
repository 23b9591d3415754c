from __future__ import annotations

from tidepool.logging.logger import init_logging

init_logging()

import asyncio
import sys
from decimal import Decimal
from typing import List, Optional

from tidepool.configuration.config import _to_dict, settings
from tidepool.configuration.networks import resolve_deployment
from tidepool.core.jobs.swap_supply.pipeline import build_default_pipeline
from tidepool.core.onchain.evm_signer import build_default_evm_signer
from tidepool.core.structures.structures import PipelineReport
from tidepool.core.utils.unit_utils import as_decimal
from tidepool.logging.logger import get_logger

log = get_logger(__name__)


async def main(swap_amount: Decimal) -> PipelineReport:
    """
    Build the deployment, connection and signer, then run the pipeline once.

    Configuration problems raise before anything is sent.
    """
    log.debug("[MAIN] Effective settings: %s", _to_dict(settings))
    deployment = resolve_deployment(settings.TIDEPOOL_NETWORK)
    signer = build_default_evm_signer(deployment)
    await signer.ensure_chain()

    pipeline = build_default_pipeline(deployment, signer.web3, signer)
    return await pipeline.run(swap_amount)


def _parse_amount(argv: List[str]) -> Decimal:
    raw = argv[0] if argv else settings.SWAP_INPUT_AMOUNT
    amount = as_decimal(raw)
    if amount <= 0:
        raise ValueError(f"Swap amount must be positive, got {raw!r}")
    return amount


def cli(argv: Optional[List[str]] = None) -> None:
    """Console entry point: `tidepool [AMOUNT]`."""
    args = sys.argv[1:] if argv is None else argv
    asyncio.run(main(_parse_amount(args)))


if __name__ == "__main__":
    cli()
