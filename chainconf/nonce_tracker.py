from __future__ import annotations

import logging
from typing import Any, Dict, Tuple, Union

import rlp
from eth_account import Account
from eth_utils import big_endian_to_int, to_bytes, to_hex

from .engine import NextHandler, Payload, Subprovider

logger = logging.getLogger(__name__)


def decode_raw_transaction(raw: Union[str, bytes]) -> Tuple[str, int]:
    """Return ``(sender, nonce)`` of a signed raw transaction.

    Handles legacy RLP transactions and EIP-2718 typed envelopes, where the
    nonce is the second field after the chain id.
    """
    data = to_bytes(hexstr=raw) if isinstance(raw, str) else bytes(raw)
    if not data:
        raise ValueError("empty raw transaction")
    if data[0] <= 0x7F:
        fields = rlp.decode(data[1:])
        nonce_field = fields[1]
    else:
        fields = rlp.decode(data)
        nonce_field = fields[0]
    sender = Account.recover_transaction(data)
    return sender, big_endian_to_int(nonce_field)


class NonceTrackerSubprovider(Subprovider):
    """Keeps the next nonce per sender so back-to-back transactions don't
    reuse one while the node's pending count lags behind."""

    def __init__(self):
        self.nonce_cache: Dict[str, Any] = {}

    def handle_request(self, payload: Payload, next_: NextHandler) -> Any:
        method = payload["method"]
        if method == "eth_getTransactionCount":
            return self._transaction_count(payload, next_)
        if method == "eth_sendRawTransaction":
            return self._send_raw(payload, next_)
        if method == "evm_revert":
            # a reverted test chain rewinds every account
            self.nonce_cache = {}
        return next_()

    def _transaction_count(self, payload: Payload, next_: NextHandler) -> Any:
        params = payload["params"]
        block_tag = params[1] if len(params) > 1 else "latest"
        if block_tag != "pending":
            return next_()

        address = str(params[0]).lower()
        cached = self.nonce_cache.get(address)
        if cached is not None:
            return cached

        result = next_()
        if address not in self.nonce_cache:
            self.nonce_cache[address] = result
        return result

    def _send_raw(self, payload: Payload, next_: NextHandler) -> Any:
        # errors propagate and leave the cache untouched
        result = next_()
        try:
            sender, nonce = decode_raw_transaction(payload["params"][0])
        except Exception as e:
            # the transaction is already on its way; only the cache misses out
            logger.warning("nonce tracker could not decode raw transaction: %s", e)
            return result
        self.nonce_cache[sender.lower()] = to_hex(nonce + 1)
        logger.debug("next nonce for %s is %d", sender, nonce + 1)
        return result
