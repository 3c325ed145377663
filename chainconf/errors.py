from typing import Any, Optional


class ChainConfError(Exception):
    """Base class for every error raised by chainconf."""


class ConfigurationError(ChainConfError):
    pass


class MissingSecretError(ConfigurationError):
    """A profile that signs transactions was used without its secrets."""


class UnknownNetworkError(ChainConfError, KeyError):
    def __str__(self) -> str:
        return Exception.__str__(self)


class NetworkUnavailableError(ChainConfError):
    pass


class NetworkMismatchError(ChainConfError):
    pass


class InvalidVersionRangeError(ChainConfError, ValueError):
    pass


class CompilerResolutionError(ChainConfError):
    pass


class RPCError(ChainConfError):
    """JSON-RPC level failure, from the node or from a provider stage."""

    def __init__(self, message: str, code: int = -32000, data: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    def to_error(self) -> dict:
        err = {"code": self.code, "message": self.message}
        if self.data is not None:
            err["data"] = self.data
        return err
