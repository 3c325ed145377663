"""tests for the HD wallet provider."""

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from chainconf.errors import ConfigurationError, RPCError
from chainconf.nonce_tracker import decode_raw_transaction
from chainconf.wallet import HookedWalletSubprovider, WalletProvider, derive_accounts

from conftest import TEST_ADDRESS, TEST_MNEMONIC, TX_HASH

RECIPIENT = "0x0000000000000000000000000000000000000001"


class TestDeriveAccounts:

    def test_first_account(self):
        (acct,) = derive_accounts(TEST_MNEMONIC)
        assert acct.address == TEST_ADDRESS

    def test_range(self):
        accounts = derive_accounts(TEST_MNEMONIC, address_index=1, num_addresses=3)
        assert len(accounts) == 3
        assert TEST_ADDRESS not in [a.address for a in accounts]
        assert len({a.address for a in accounts}) == 3

    def test_offset_matches_full_list(self):
        full = derive_accounts(TEST_MNEMONIC, num_addresses=3)
        tail = derive_accounts(TEST_MNEMONIC, address_index=2)
        assert full[2].address == tail[0].address

    def test_empty_phrase(self):
        with pytest.raises(ConfigurationError):
            derive_accounts("   ")

    def test_bad_phrase(self):
        with pytest.raises(ConfigurationError):
            derive_accounts("not a real recovery phrase at all")

    def test_bad_range(self):
        with pytest.raises(ConfigurationError):
            derive_accounts(TEST_MNEMONIC, num_addresses=0)


class TestWalletProvider:

    def test_engine_stages(self, node):
        wallet = WalletProvider(TEST_MNEMONIC, "http://node.invalid", transport=node)
        assert len(wallet.engine.providers) == 2
        assert isinstance(wallet.engine.providers[0], HookedWalletSubprovider)
        assert all(p.engine is wallet.engine for p in wallet.engine.providers)

    def test_needs_endpoint(self):
        with pytest.raises(ConfigurationError):
            WalletProvider(TEST_MNEMONIC, "")

    def test_accounts_answered_locally(self, node):
        wallet = WalletProvider(TEST_MNEMONIC, "http://node.invalid", transport=node)
        response = wallet.make_request("eth_accounts", [])
        assert response["result"] == [TEST_ADDRESS]
        assert response["jsonrpc"] == "2.0"
        assert node.calls == []

    def test_other_methods_reach_node(self, node):
        wallet = WalletProvider(TEST_MNEMONIC, "http://node.invalid", transport=node)
        assert wallet.make_request("eth_blockNumber", [])["result"] == "0x10"

    def test_node_error_becomes_response_error(self, node):
        wallet = WalletProvider(TEST_MNEMONIC, "http://node.invalid", transport=node)
        response = wallet.make_request("debug_traceTransaction", [TX_HASH])
        assert response["error"]["code"] == -32601
        assert "result" not in response

    def test_send_transaction_signs_locally(self, node):
        wallet = WalletProvider(TEST_MNEMONIC, "http://node.invalid", transport=node)
        response = wallet.make_request(
            "eth_sendTransaction",
            [{"from": TEST_ADDRESS.lower(), "to": RECIPIENT, "value": "0x1"}],
        )
        assert response["result"] == TX_HASH
        assert node.count("eth_sendTransaction") == 0
        sender, nonce = decode_raw_transaction(node.raw_transactions[0])
        assert sender == TEST_ADDRESS
        assert nonce == 5

    def test_explicit_fields_not_refetched(self, node):
        wallet = WalletProvider(TEST_MNEMONIC, "http://node.invalid", transport=node)
        tx = {
            "from": TEST_ADDRESS,
            "to": RECIPIENT,
            "nonce": "0x2",
            "gas": "0x5208",
            "gasPrice": "0x1",
            "chainId": "0x4",
        }
        result = wallet.make_request("eth_signTransaction", [tx])["result"]
        assert decode_raw_transaction(result["raw"]) == (TEST_ADDRESS, 2)
        assert result["tx"]["nonce"] == "0x2"
        assert result["tx"]["from"] == TEST_ADDRESS
        assert node.calls == []

    def test_sign_transaction_through_web3(self, node):
        w3 = Web3(WalletProvider(TEST_MNEMONIC, "http://node.invalid", transport=node))
        signed = w3.eth.sign_transaction(
            {
                "from": TEST_ADDRESS,
                "to": RECIPIENT,
                "value": 1,
                "gas": 21000,
                "gasPrice": 1,
                "nonce": 0,
                "chainId": 4,
            }
        )
        assert decode_raw_transaction(signed["raw"]) == (TEST_ADDRESS, 0)
        assert signed["tx"]["nonce"] == 0
        assert signed["tx"]["value"] == 1
        assert node.count("eth_sendRawTransaction") == 0

    def test_unknown_sender(self, node):
        wallet = WalletProvider(TEST_MNEMONIC, "http://node.invalid", transport=node)
        response = wallet.make_request("eth_sendTransaction", [{"from": RECIPIENT, "to": RECIPIENT}])
        assert "unknown account" in response["error"]["message"]

    def test_personal_sign(self, node):
        wallet = WalletProvider(TEST_MNEMONIC, "http://node.invalid", transport=node)
        signature = wallet.make_request("personal_sign", ["0x68656c6c6f", TEST_ADDRESS])["result"]
        recovered = Account.recover_message(encode_defunct(text="hello"), signature=signature)
        assert recovered == TEST_ADDRESS

    def test_is_connected(self, node):
        wallet = WalletProvider(TEST_MNEMONIC, "http://node.invalid", transport=node)
        assert wallet.is_connected()

    def test_disconnected(self):
        class DeadTransport:
            def make_request(self, method, params):
                raise ConnectionError("refused")

        wallet = WalletProvider(TEST_MNEMONIC, "http://node.invalid", transport=DeadTransport())
        assert not wallet.is_connected()
        with pytest.raises(ConnectionError):
            wallet.is_connected(show_traceback=True)

    def test_usable_from_web3(self, node):
        w3 = Web3(WalletProvider(TEST_MNEMONIC, "http://node.invalid", transport=node))
        assert w3.eth.accounts == [TEST_ADDRESS]


class TestHookedWallet:

    def test_unbound_stage_cannot_emit(self):
        stage = HookedWalletSubprovider(derive_accounts(TEST_MNEMONIC))
        with pytest.raises(RPCError):
            stage.emit("eth_chainId")
