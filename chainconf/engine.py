"""
Synchronous provider engine.

A request travels through an ordered list of stages ("subproviders").
Each stage either answers it (returns a value) or hands it on by calling
``next_()``, which runs the rest of the chain and returns that result so
the stage can inspect it on the way back.

The last stage is normally an :class:`RpcSubprovider` that sends the
request to a node over HTTP.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from web3 import Web3

from .errors import RPCError

logger = logging.getLogger(__name__)

Payload = Dict[str, Any]
NextHandler = Callable[[], Any]


class Subprovider:
    """Base stage. Subclasses override :meth:`handle_request`."""

    engine: Optional["ProviderEngine"] = None

    def set_engine(self, engine: "ProviderEngine") -> None:
        self.engine = engine

    def emit(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        """Send a fresh request through the whole engine, from the first stage."""
        if self.engine is None:
            raise RPCError(f"{type(self).__name__} is not bound to an engine")
        return self.engine.send(method, params)

    def handle_request(self, payload: Payload, next_: NextHandler) -> Any:
        return next_()


class ProviderEngine:
    def __init__(self, providers: Optional[List[Subprovider]] = None):
        self._providers: List[Subprovider] = []
        self._ids = itertools.count(1)
        for p in providers or []:
            self.add_provider(p)

    @property
    def providers(self) -> List[Subprovider]:
        # The live list; callers may insert stages directly and then bind
        # them with set_engine().
        return self._providers

    def add_provider(self, provider: Subprovider) -> None:
        self._providers.append(provider)
        provider.set_engine(self)

    def payload(self, method: str, params: Optional[Sequence[Any]] = None) -> Payload:
        return {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params or []),
        }

    def send(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        return self.handle(self.payload(method, params))

    def handle(self, payload: Payload) -> Any:
        logger.debug("engine request %s #%s", payload["method"], payload["id"])
        return self._run(payload, 0)

    def _run(self, payload: Payload, index: int) -> Any:
        if index >= len(self._providers):
            raise RPCError(f"no stage handled {payload['method']}", code=-32601)
        stage = self._providers[index]
        return stage.handle_request(payload, lambda: self._run(payload, index + 1))


class RpcSubprovider(Subprovider):
    """Terminal stage: forward the request to a JSON-RPC node."""

    def __init__(self, endpoint: str, transport: Any = None):
        self.endpoint = endpoint
        self.transport = transport if transport is not None else Web3.HTTPProvider(endpoint)

    def handle_request(self, payload: Payload, next_: NextHandler) -> Any:
        response = self.transport.make_request(payload["method"], payload["params"])
        if response.get("error"):
            err = response["error"]
            if isinstance(err, dict):
                raise RPCError(
                    err.get("message", "unknown RPC error"),
                    code=err.get("code", -32000),
                    data=err.get("data"),
                )
            raise RPCError(str(err))
        return response.get("result")
