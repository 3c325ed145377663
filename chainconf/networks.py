from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from web3 import Web3

from . import config
from .errors import (
    ConfigurationError,
    MissingSecretError,
    NetworkMismatchError,
    NetworkUnavailableError,
    UnknownNetworkError,
)
from .nonce_tracker import NonceTrackerSubprovider
from .wallet import WalletProvider

logger = logging.getLogger(__name__)

ANY_NETWORK = "*"

NetworkId = Union[int, str]
ProviderFactory = Callable[[], Any]


@dataclass(frozen=True)
class NetworkProfile:
    name: str
    network_id: NetworkId = ANY_NETWORK
    host: Optional[str] = None
    port: Optional[int] = None
    provider: Optional[ProviderFactory] = None
    gas: Optional[int] = None
    gas_price: Optional[int] = None

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError("network profile needs a name")
        if self.network_id != ANY_NETWORK and (
            isinstance(self.network_id, bool) or not isinstance(self.network_id, int)
        ):
            raise ConfigurationError(
                f"network {self.name!r}: network_id must be an int or '*', got {self.network_id!r}"
            )

    @property
    def url(self) -> Optional[str]:
        if self.host is None or self.port is None:
            return None
        return f"http://{self.host}:{self.port}"

    @property
    def requires_signing(self) -> bool:
        return self.provider is not None

    def matches(self, network_id: NetworkId) -> bool:
        """True when a node reporting ``network_id`` belongs to this profile."""
        if self.network_id == ANY_NETWORK:
            return True
        try:
            return int(network_id) == self.network_id
        except (TypeError, ValueError):
            return False

    def make_provider(self) -> Any:
        if self.provider is not None:
            return self.provider()
        if self.url is None:
            raise ConfigurationError(
                f"network {self.name!r} has neither a provider nor host/port"
            )
        return Web3.HTTPProvider(self.url)

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.host is not None:
            out["host"] = self.host
        if self.port is not None:
            out["port"] = self.port
        out["network_id"] = self.network_id
        if self.provider is not None:
            out["provider"] = self.provider
        if self.gas is not None:
            out["gas"] = self.gas
        if self.gas_price is not None:
            out["gasPrice"] = self.gas_price
        return out


class NetworkRegistry:
    """Profiles by name, in declaration order. Names are unique."""

    def __init__(self):
        self._profiles: "OrderedDict[str, NetworkProfile]" = OrderedDict()

    def register(self, profile: NetworkProfile) -> NetworkProfile:
        if profile.name in self._profiles:
            raise ConfigurationError(f"duplicate network profile: {profile.name!r}")
        self._profiles[profile.name] = profile
        return profile

    def get(self, name: str) -> NetworkProfile:
        try:
            return self._profiles[name]
        except KeyError:
            known = ", ".join(self._profiles) or "none"
            raise UnknownNetworkError(f"unknown network {name!r} (known: {known})") from None

    def names(self) -> List[str]:
        return list(self._profiles)

    def __contains__(self, name: object) -> bool:
        return name in self._profiles

    def __iter__(self) -> Iterator[NetworkProfile]:
        return iter(self._profiles.values())

    def __len__(self) -> int:
        return len(self._profiles)

    def as_dict(self) -> Dict[str, Dict[str, Any]]:
        return {name: p.as_dict() for name, p in self._profiles.items()}


def require_secrets(mnemonic: str, endpoint: str, network: str = "rinkeby") -> None:
    missing = []
    if not mnemonic or not mnemonic.strip():
        missing.append("CHAINCONF_MNEMONIC")
    if not endpoint or not endpoint.strip():
        missing.append("CHAINCONF_RINKEBY_URL")
    if missing:
        raise MissingSecretError(
            f"network {network!r} signs transactions and needs {', '.join(missing)} "
            "set in the environment or .env"
        )


def rinkeby_provider(
    mnemonic: Optional[str] = None,
    endpoint: Optional[str] = None,
    transport: Any = None,
) -> WalletProvider:
    """HD wallet provider with a nonce tracker in front of its engine."""
    mnemonic = config.MNEMONIC if mnemonic is None else mnemonic
    endpoint = config.RINKEBY_URL if endpoint is None else endpoint
    require_secrets(mnemonic, endpoint)

    wallet = WalletProvider(
        mnemonic,
        endpoint,
        address_index=config.as_int("CHAINCONF_ADDRESS_INDEX", config.ADDRESS_INDEX),
        num_addresses=config.as_int("CHAINCONF_NUM_ADDRESSES", config.NUM_ADDRESSES),
        transport=transport,
    )
    nonce_tracker = NonceTrackerSubprovider()
    wallet.engine.providers.insert(0, nonce_tracker)
    nonce_tracker.set_engine(wallet.engine)
    logger.info("rinkeby provider ready for %s", ", ".join(wallet.addresses))
    return wallet


def default_networks() -> NetworkRegistry:
    registry = NetworkRegistry()
    registry.register(
        NetworkProfile(
            name="development",
            host=config.DEV_HOST,
            port=config.as_int("CHAINCONF_DEV_PORT", config.DEV_PORT),
            network_id=ANY_NETWORK,
        )
    )
    registry.register(
        NetworkProfile(
            name="rinkeby",
            provider=rinkeby_provider,
            network_id=config.RINKEBY_NETWORK_ID,
            gas=config.as_int("CHAINCONF_RINKEBY_GAS", config.RINKEBY_GAS, optional=True),
            gas_price=config.as_int("CHAINCONF_RINKEBY_GAS_PRICE", config.RINKEBY_GAS_PRICE, optional=True),
        )
    )
    return registry


def connect(profile: NetworkProfile) -> Web3:
    """Connect to the profile's node and check it is the expected network."""
    provider = profile.make_provider()
    w3 = Web3(provider)
    if not w3.is_connected():
        raise NetworkUnavailableError(
            f"Could not connect to network {profile.name!r} via {provider}"
        )

    network_id = w3.net.version
    if not profile.matches(network_id):
        raise NetworkMismatchError(
            f"network {profile.name!r} expects network id {profile.network_id}, "
            f"node reports {network_id}"
        )
    logger.info("connected to %s (network id %s)", profile.name, network_id)
    return w3
