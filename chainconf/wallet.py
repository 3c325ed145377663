"""
HD wallet provider.

Accounts are derived from a BIP-39 recovery phrase with eth-account. The
provider is an engine of two stages: a signing stage that turns
``eth_sendTransaction`` into a locally signed ``eth_sendRawTransaction``,
and a terminal RPC stage talking to the node. Any stage placed in front of
them (the nonce tracker, for one) sees both the original request and the
raw transaction, because signed transactions re-enter the engine from the
first stage.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import ValidationError, to_checksum_address, to_hex
from web3.providers import BaseProvider

from .engine import NextHandler, Payload, ProviderEngine, RpcSubprovider, Subprovider
from .errors import ConfigurationError, RPCError

logger = logging.getLogger(__name__)

DEFAULT_PATH_PREFIX = "m/44'/60'/0'/0"

Account.enable_unaudited_hdwallet_features()

# fields eth-account accepts when signing; everything else is dropped
_SIGNABLE_FIELDS = (
    "to",
    "value",
    "data",
    "gas",
    "gasPrice",
    "nonce",
    "chainId",
    "maxFeePerGas",
    "maxPriorityFeePerGas",
    "accessList",
    "type",
)
_INT_FIELDS = ("value", "gas", "gasPrice", "nonce", "chainId", "maxFeePerGas", "maxPriorityFeePerGas", "type")


def derive_accounts(
    mnemonic: str,
    address_index: int = 0,
    num_addresses: int = 1,
    path_prefix: str = DEFAULT_PATH_PREFIX,
) -> List[Any]:
    """Derive ``num_addresses`` accounts starting at ``address_index``."""
    if not mnemonic or not mnemonic.strip():
        raise ConfigurationError("empty recovery phrase")
    if address_index < 0 or num_addresses < 1:
        raise ConfigurationError(
            f"invalid account range: index={address_index}, count={num_addresses}"
        )
    accounts = []
    for i in range(address_index, address_index + num_addresses):
        try:
            acct = Account.from_mnemonic(mnemonic.strip(), account_path=f"{path_prefix}/{i}")
        except (ValidationError, ValueError) as e:
            raise ConfigurationError(f"invalid recovery phrase: {e}") from e
        accounts.append(acct)
    return accounts


def _to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.startswith(("0x", "0X")) else int(value)
    raise RPCError(f"expected an integer quantity, got {value!r}", code=-32602)


class HookedWalletSubprovider(Subprovider):
    """Answers account queries and signs with the wallet's local keys."""

    def __init__(self, accounts: Sequence[Any]):
        self._accounts: Dict[str, Any] = {a.address.lower(): a for a in accounts}
        self.addresses: List[str] = [a.address for a in accounts]

    def account_for(self, address: Optional[str]) -> Any:
        if not address:
            raise RPCError("transaction has no 'from' address", code=-32602)
        acct = self._accounts.get(str(address).lower())
        if acct is None:
            raise RPCError(f"unknown account {address}", code=-32602)
        return acct

    def handle_request(self, payload: Payload, next_: NextHandler) -> Any:
        method = payload["method"]
        params = payload["params"]

        if method in ("eth_accounts", "eth_requestAccounts"):
            return list(self.addresses)
        if method == "eth_coinbase":
            return self.addresses[0] if self.addresses else None
        if method == "eth_signTransaction":
            return self.signed_transaction_result(params[0])
        if method == "eth_sendTransaction":
            raw = self.sign_transaction(params[0])
            return self.emit("eth_sendRawTransaction", [raw])
        if method == "personal_sign":
            return self.sign_message(params[1], params[0])
        if method == "eth_sign":
            return self.sign_message(params[0], params[1])
        return next_()

    def fill_transaction(self, tx: Dict[str, Any]) -> Dict[str, Any]:
        """Fill in nonce, gas, fee and chain id by asking the engine."""
        sender = tx.get("from")
        filled = dict(tx)
        if "input" in filled and "data" not in filled:
            filled["data"] = filled.pop("input")

        if filled.get("nonce") is None:
            filled["nonce"] = self.emit("eth_getTransactionCount", [sender, "pending"])
        if filled.get("gas") is None:
            filled["gas"] = self.emit("eth_estimateGas", [{k: v for k, v in filled.items() if k != "gas"}])
        if filled.get("gasPrice") is None and filled.get("maxFeePerGas") is None:
            filled["gasPrice"] = self.emit("eth_gasPrice")
        if filled.get("chainId") is None:
            filled["chainId"] = self.emit("eth_chainId")
        return filled

    def _sign(self, tx: Dict[str, Any]):
        acct = self.account_for(tx.get("from"))
        filled = self.fill_transaction(tx)

        signable: Dict[str, Any] = {}
        for key in _SIGNABLE_FIELDS:
            value = filled.get(key)
            if value is None:
                continue
            signable[key] = _to_int(value) if key in _INT_FIELDS else value
        if signable.get("type") == 0:
            # legacy transactions carry no envelope type
            signable.pop("type")
        if signable.get("to"):
            signable["to"] = to_checksum_address(signable["to"])
        else:
            signable.pop("to", None)

        signed = acct.sign_transaction(signable)
        logger.debug("signed transaction nonce=%s from %s", signable["nonce"], acct.address)
        return acct, signable, signed

    def sign_transaction(self, tx: Dict[str, Any]) -> str:
        _, _, signed = self._sign(tx)
        return to_hex(signed.raw_transaction)

    def signed_transaction_result(self, tx: Dict[str, Any]) -> Dict[str, Any]:
        """JSON-RPC shape of eth_signTransaction: the raw bytes plus the
        transaction as it was signed, quantities hex-encoded."""
        acct, signable, signed = self._sign(tx)
        tx_json: Dict[str, Any] = {"from": acct.address}
        for key, value in signable.items():
            if key == "data":
                tx_json["input"] = value
            elif key in _INT_FIELDS:
                tx_json[key] = to_hex(value)
            else:
                tx_json[key] = value
        tx_json.setdefault("value", "0x0")
        tx_json.setdefault("input", "0x")
        tx_json["hash"] = to_hex(signed.hash)
        return {"raw": to_hex(signed.raw_transaction), "tx": tx_json}

    def sign_message(self, address: str, data: str) -> str:
        acct = self.account_for(address)
        if isinstance(data, str) and data.startswith("0x"):
            message = encode_defunct(hexstr=data)
        else:
            message = encode_defunct(text=str(data))
        return to_hex(acct.sign_message(message).signature)


class WalletProvider(BaseProvider):
    """web3 provider that signs locally with HD wallet keys."""

    def __init__(
        self,
        mnemonic: str,
        endpoint: str,
        address_index: int = 0,
        num_addresses: int = 1,
        transport: Any = None,
    ):
        super().__init__()
        if not endpoint:
            raise ConfigurationError("wallet provider needs an endpoint URL")
        self.endpoint = endpoint
        self.accounts = derive_accounts(mnemonic, address_index, num_addresses)
        self.wallet = HookedWalletSubprovider(self.accounts)
        self.engine = ProviderEngine([self.wallet, RpcSubprovider(endpoint, transport)])

    @property
    def addresses(self) -> List[str]:
        return list(self.wallet.addresses)

    def make_request(self, method, params) -> Dict[str, Any]:
        payload = self.engine.payload(method, params)
        try:
            result = self.engine.handle(payload)
        except RPCError as e:
            return {"jsonrpc": "2.0", "id": payload["id"], "error": e.to_error()}
        return {"jsonrpc": "2.0", "id": payload["id"], "result": result}

    def is_connected(self, show_traceback: bool = False) -> bool:
        try:
            self.engine.send("web3_clientVersion")
        except (RPCError, OSError):
            if show_traceback:
                raise
            return False
        return True

    def __repr__(self) -> str:
        return f"<WalletProvider {self.endpoint} accounts={len(self.accounts)}>"
