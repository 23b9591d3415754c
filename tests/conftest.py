"""Shared fixtures: an in-process stand-in for the node, its contracts and the signer."""

from collections import defaultdict
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from tidepool.configuration.networks import SEPOLIA, NetworkDeployment
from tidepool.core.structures.structures import TransactionOutcome

SIGNER_ADDRESS = "0x1000000000000000000000000000000000000001"
POOL_ADDRESS = "0x224cc4e5b50036108c1d862442365054600c260c"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class FakeCall:
    """A bound contract function: `.call()` answers from the chain's scripted responses."""

    def __init__(self, contract: "FakeContract", fn_name: str, args: Tuple[Any, ...]):
        self.contract = contract
        self.fn_name = fn_name
        self.args = args

    async def call(self) -> Any:
        return self.contract.chain.answer(self.contract.address, self.fn_name, self.args)

    def __repr__(self) -> str:
        return f"FakeCall({self.fn_name}{self.args} @ {self.contract.address})"


class FakeFunctions:
    def __init__(self, contract: "FakeContract"):
        self._contract = contract

    def __getattr__(self, fn_name: str) -> Callable[..., FakeCall]:
        def _bind(*args: Any) -> FakeCall:
            call = FakeCall(self._contract, fn_name, args)
            self._contract.chain.calls.append(call)
            return call

        return _bind


class FakeContract:
    def __init__(self, chain: "FakeChain", address: str, abi: List[Any]):
        self.chain = chain
        self.address = address.lower()
        self.abi = abi
        self.functions = FakeFunctions(self)


class FakeChain:
    """
    Minimal AsyncWeb3 look-alike exposing only `eth.contract(address=, abi=)`.

    Responses are keyed by (contract address, function name). A list response
    is consumed one element per call; a callable receives the call arguments.
    """

    def __init__(self) -> None:
        self.calls: List[FakeCall] = []
        self._responses: Dict[Tuple[str, str], Any] = {}
        self.read_counts: Dict[Tuple[str, str], int] = defaultdict(int)
        self.eth = SimpleNamespace(contract=self._contract)

    def _contract(self, address: str, abi: List[Any]) -> FakeContract:
        return FakeContract(self, address, abi)

    def respond(self, address: str, fn_name: str, value: Any) -> None:
        self._responses[(address.lower(), fn_name)] = list(value) if isinstance(value, list) else value

    def answer(self, address: str, fn_name: str, args: Tuple[Any, ...]) -> Any:
        key = (address.lower(), fn_name)
        self.read_counts[key] += 1
        if key not in self._responses:
            raise AssertionError(f"Unexpected read {fn_name}{args} on {address}")
        value = self._responses[key]
        if isinstance(value, list):
            return value.pop(0)
        if callable(value):
            return value(*args)
        return value

    def calls_named(self, fn_name: str) -> List[FakeCall]:
        return [call for call in self.calls if call.fn_name == fn_name]


class FakeSigner:
    """Records every submitted contract call instead of signing it."""

    def __init__(self, address: str = SIGNER_ADDRESS, fail_on: Optional[str] = None):
        self.address = address
        self.fail_on = fail_on
        self.sent: List[Tuple[FakeCall, Optional[int], str]] = []

    async def send_transaction(self, contract_call: FakeCall, *, gas_limit: Optional[int] = None,
                               label: str = "transaction") -> TransactionOutcome:
        self.sent.append((contract_call, gas_limit, label))
        if self.fail_on is not None and contract_call.fn_name == self.fail_on:
            raise RuntimeError(f"{contract_call.fn_name} submission failed")
        tx_hash = "0x" + f"{len(self.sent):064x}"
        return TransactionOutcome(
            tx_hash=tx_hash,
            block_number=100 + len(self.sent),
            status=1,
            explorer_url=f"https://sepolia.etherscan.io/tx/{tx_hash}",
        )

    def sent_named(self, fn_name: str) -> List[Tuple[FakeCall, Optional[int], str]]:
        return [entry for entry in self.sent if entry[0].fn_name == fn_name]


@pytest.fixture
def deployment() -> NetworkDeployment:
    return SEPOLIA.validate()


@pytest.fixture
def fake_chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def fake_signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def make_signer() -> Callable[..., FakeSigner]:
    return FakeSigner


@pytest.fixture
def scripted_chain(fake_chain: FakeChain, deployment: NetworkDeployment) -> FakeChain:
    """A chain where the USDC/LINK pool exists and LINK goes from 0 to 3.275 across the swap."""
    fake_chain.respond(deployment.pool_factory_address, "getPool", POOL_ADDRESS)
    fake_chain.respond(POOL_ADDRESS, "token0", deployment.token_out.address)
    fake_chain.respond(POOL_ADDRESS, "token1", deployment.token_in.address)
    fake_chain.respond(POOL_ADDRESS, "fee", 3000)
    fake_chain.respond(deployment.token_out.address, "balanceOf", [0, 3275000000000000000])
    return fake_chain
