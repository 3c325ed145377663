"""Network profiles, signing providers and compiler selection."""

from .compilers import CompilerSelector
from .errors import (
    ChainConfError,
    CompilerResolutionError,
    ConfigurationError,
    InvalidVersionRangeError,
    MissingSecretError,
    NetworkMismatchError,
    NetworkUnavailableError,
    RPCError,
    UnknownNetworkError,
)
from .networks import NetworkProfile, NetworkRegistry, connect, default_networks, rinkeby_provider
from .project import ProjectConfig, load_project

__version__ = "0.1.0"
