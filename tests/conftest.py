import pytest

from chainconf import config

TEST_MNEMONIC = "candy maple cake sugar pudding cream honey rich smooth crumble sweet treat"
TEST_ADDRESS = "0x627306090abaB3A6e1400e9345bC60c78a8BEf57"
TEST_KEY = "0xc87509a1c067bbde78beb793e6fa76530b6382a4c0241e5e4a9ec0a0f44dc0d3"
TX_HASH = "0x" + "ab" * 32


class FakeNode:
    """In-memory JSON-RPC node that lags on pending nonces."""

    def __init__(self, pending_nonce=5, network_id="4", fail_send=False):
        self.pending_nonce = pending_nonce
        self.network_id = network_id
        self.fail_send = fail_send
        self.calls = []
        self.raw_transactions = []

    def count(self, method):
        return sum(1 for m, _ in self.calls if m == method)

    def make_request(self, method, params):
        self.calls.append((method, list(params)))
        if method == "eth_sendRawTransaction":
            if self.fail_send:
                return {"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "nonce too low"}}
            self.raw_transactions.append(params[0])
            return {"jsonrpc": "2.0", "id": 1, "result": TX_HASH}
        results = {
            "eth_getTransactionCount": hex(self.pending_nonce),
            "eth_chainId": "0x4",
            "eth_gasPrice": "0x3b9aca00",
            "eth_estimateGas": "0x5208",
            "eth_blockNumber": "0x10",
            "net_version": self.network_id,
            "web3_clientVersion": "FakeNode/v1",
        }
        if method not in results:
            return {"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": f"method {method} not found"}}
        return {"jsonrpc": "2.0", "id": 1, "result": results[method]}


@pytest.fixture
def node():
    return FakeNode()


@pytest.fixture
def secrets(monkeypatch):
    monkeypatch.setattr(config, "MNEMONIC", TEST_MNEMONIC)
    monkeypatch.setattr(config, "RINKEBY_URL", "https://rinkeby.example.invalid/v3/key")
    monkeypatch.setattr(config, "ADDRESS_INDEX", 0)
    monkeypatch.setattr(config, "NUM_ADDRESSES", 1)


@pytest.fixture
def no_secrets(monkeypatch):
    monkeypatch.setattr(config, "MNEMONIC", "")
    monkeypatch.setattr(config, "RINKEBY_URL", "")
