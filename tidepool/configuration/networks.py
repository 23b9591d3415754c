from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Final, FrozenSet

from web3 import Web3

from tidepool.core.errors import ConfigurationError
from tidepool.core.structures.structures import TokenDescriptor
from tidepool.logging.logger import get_logger

log = get_logger(__name__)

UNISWAP_V3_FEE_TIERS: Final[FrozenSet[int]] = frozenset({100, 500, 3000, 10000})
MAX_TOKEN_DECIMALS: Final[int] = 77


@dataclass(frozen=True)
class NetworkDeployment:
    """
    Everything that binds the pipeline to one chain.

    The three contract addresses, both tokens, the fee tier and the chain id
    only make sense together; porting to another network means adding a new
    entry, never editing one field of an existing one.

    Attributes:
        name: Registry key (e.g. 'sepolia').
        chain_id: EVM chain id the node must report.
        explorer_base_url: Block explorer root used to render transaction links.
        pool_factory_address: Uniswap V3 factory.
        swap_router_address: Uniswap SwapRouter02.
        lending_pool_address: Aave V3 Pool.
        token_in: Token sold on the DEX.
        token_out: Token bought on the DEX and supplied to Aave.
        fee_tier: Uniswap V3 fee in hundredths of a bip (3000 = 0.30%).
    """
    name: str
    chain_id: int
    explorer_base_url: str
    pool_factory_address: str
    swap_router_address: str
    lending_pool_address: str
    token_in: TokenDescriptor
    token_out: TokenDescriptor
    fee_tier: int = 3000

    def validate(self) -> "NetworkDeployment":
        """Check the deployment once; return it with checksummed addresses."""
        if self.chain_id <= 0:
            raise ConfigurationError(f"[{self.name}] chain id must be positive, got {self.chain_id}.")
        if not self.explorer_base_url.startswith(("http://", "https://")):
            raise ConfigurationError(f"[{self.name}] explorer URL must be http(s): {self.explorer_base_url!r}")
        if self.fee_tier not in UNISWAP_V3_FEE_TIERS:
            raise ConfigurationError(f"[{self.name}] unsupported fee tier {self.fee_tier}.")

        contracts = {
            "pool_factory_address": self.pool_factory_address,
            "swap_router_address": self.swap_router_address,
            "lending_pool_address": self.lending_pool_address,
        }
        checksummed = {label: _checksum(self.name, label, address) for label, address in contracts.items()}

        tokens = {}
        for label, token in (("token_in", self.token_in), ("token_out", self.token_out)):
            if token.chain_id != self.chain_id:
                raise ConfigurationError(
                    f"[{self.name}] {label} {token.symbol} is on chain {token.chain_id}, deployment is on {self.chain_id}."
                )
            if not 0 <= token.decimals <= MAX_TOKEN_DECIMALS:
                raise ConfigurationError(f"[{self.name}] {label} {token.symbol} has invalid decimals {token.decimals}.")
            tokens[label] = TokenDescriptor(
                chain_id=token.chain_id,
                address=_checksum(self.name, label, token.address),
                decimals=token.decimals,
                symbol=token.symbol,
                name=token.name,
            )

        if tokens["token_in"].address == tokens["token_out"].address:
            raise ConfigurationError(f"[{self.name}] token_in and token_out must differ.")

        return NetworkDeployment(
            name=self.name,
            chain_id=self.chain_id,
            explorer_base_url=self.explorer_base_url.rstrip("/"),
            fee_tier=self.fee_tier,
            token_in=tokens["token_in"],
            token_out=tokens["token_out"],
            **checksummed,
        )


def _checksum(network: str, label: str, address: str) -> str:
    if not isinstance(address, str) or not Web3.is_address(address):
        raise ConfigurationError(f"[{network}] {label} is not a valid address: {address!r}")
    return Web3.to_checksum_address(address)


SEPOLIA_CHAIN_ID: Final[int] = 11155111

SEPOLIA_USDC: Final[TokenDescriptor] = TokenDescriptor(
    chain_id=SEPOLIA_CHAIN_ID,
    address="0x94a9D9AC8a22534E3FaCa9F4e7F2E2cf85d5E4C8",
    decimals=6,
    symbol="USDC",
    name="USD//C",
)

SEPOLIA_LINK: Final[TokenDescriptor] = TokenDescriptor(
    chain_id=SEPOLIA_CHAIN_ID,
    address="0xf8Fb3713D459D7C1018BD0A49D19b4C44290EBE5",
    decimals=18,
    symbol="LINK",
    name="Chainlink",
)

SEPOLIA: Final[NetworkDeployment] = NetworkDeployment(
    name="sepolia",
    chain_id=SEPOLIA_CHAIN_ID,
    explorer_base_url="https://sepolia.etherscan.io",
    pool_factory_address="0x0227628f3F023bb0B980b67D528571c95c6DaC1c",
    swap_router_address="0x3bFA4769FB09eefC5a80d6E87c3B9C650f7Ae48E",
    lending_pool_address="0x6Ae43d3271ff6888e7Fc43Fd7321a503ff738951",
    token_in=SEPOLIA_USDC,
    token_out=SEPOLIA_LINK,
    fee_tier=3000,
)

_DEPLOYMENT_REGISTRY: Dict[str, NetworkDeployment] = {
    SEPOLIA.name: SEPOLIA,
}


def resolve_deployment(name: str) -> NetworkDeployment:
    """Look up a deployment by name and validate it."""
    key = (name or "").strip().lower()
    deployment = _DEPLOYMENT_REGISTRY.get(key)
    if deployment is None:
        known = ", ".join(sorted(_DEPLOYMENT_REGISTRY))
        raise ConfigurationError(f"Unknown network '{name}'. Known networks: {known}.")
    validated = deployment.validate()
    log.debug("[CONFIG][NETWORK] Using %s (chainId=%s)", validated.name, validated.chain_id)
    return validated
