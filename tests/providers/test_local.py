from unittest.mock import MagicMock

import pytest
from eth_account import Account
from web3.exceptions import ContractLogicError

from revamp_client.domain import NetworkDescriptor
from revamp_client.errors import TransactionRejectedError, TransactionRevertedError
from revamp_client.providers import CHAIN_CHANGED, LocalWalletProvider
from revamp_client.settings import RevampSettings

PRIVATE_KEY = "0x" + "4c" * 32
RECIPIENT = "0x" + "22" * 20


def _network(chain_id: int = 56, label: str = "BSC Mainnet") -> NetworkDescriptor:
    return NetworkDescriptor(
        chain_id=chain_id,
        label=label,
        currency="BNB",
        rpc_url="https://rpc.example",
        explorer_url="https://explorer.example",
        contract_address="0x" + "11" * 20,
    )


def _w3(chain_id: int = 56) -> MagicMock:
    w3 = MagicMock()
    w3.eth.chain_id = chain_id
    w3.eth.gas_price = 1_000_000_000
    w3.eth.get_transaction_count.return_value = 3
    w3.eth.estimate_gas.return_value = 21_000
    w3.eth.send_raw_transaction.return_value = b"\x12" * 32
    w3.eth.block_number = 101
    w3.eth.wait_for_transaction_receipt.return_value = {
        "status": 1,
        "blockNumber": 100,
    }
    return w3


@pytest.fixture
def settings():
    return RevampSettings(
        private_key=PRIVATE_KEY, rpc_delay=0, rpc_jitter=0, receipt_timeout=5
    )


@pytest.mark.asyncio
async def test_accounts_and_chain(settings):
    provider = LocalWalletProvider(settings, _network(), w3=_w3())

    assert await provider.get_accounts() == [Account.from_key(PRIVATE_KEY).address]
    assert await provider.get_chain_id() == 56


@pytest.mark.asyncio
async def test_send_transaction_signs_and_broadcasts(settings):
    w3 = _w3()
    provider = LocalWalletProvider(settings, _network(), w3=w3)

    submitted = await provider.send_transaction(
        {"to": RECIPIENT, "data": "0x", "value": 5}
    )

    assert submitted.hash == "0x" + "12" * 32
    params = w3.eth.estimate_gas.call_args.args[0]
    assert params["nonce"] == 3
    assert params["chainId"] == 56
    assert params["value"] == 5
    assert params["from"] == provider.address
    w3.eth.send_raw_transaction.assert_called_once()


@pytest.mark.asyncio
async def test_send_transaction_rejection_is_wrapped(settings):
    w3 = _w3()
    w3.eth.estimate_gas.side_effect = ContractLogicError("execution reverted")
    provider = LocalWalletProvider(settings, _network(), w3=w3)

    with pytest.raises(TransactionRejectedError, match="execution reverted"):
        await provider.send_transaction({"to": RECIPIENT, "data": "0x"})
    w3.eth.send_raw_transaction.assert_not_called()


@pytest.mark.asyncio
async def test_wait_returns_receipt_after_confirmations(settings):
    provider = LocalWalletProvider(settings, _network(), w3=_w3())
    submitted = await provider.send_transaction({"to": RECIPIENT})

    receipt = await submitted.wait(confirmations=2)

    assert receipt["status"] == 1
    assert receipt["blockNumber"] == 100


@pytest.mark.asyncio
async def test_wait_raises_on_reverted_receipt(settings):
    w3 = _w3()
    w3.eth.wait_for_transaction_receipt.return_value = {
        "status": 0,
        "blockNumber": 100,
    }
    provider = LocalWalletProvider(settings, _network(), w3=w3)
    submitted = await provider.send_transaction({"to": RECIPIENT})

    with pytest.raises(TransactionRevertedError):
        await submitted.wait()


def test_switch_network_notifies_subscribers(settings):
    provider = LocalWalletProvider(settings, _network(), w3=_w3())
    seen = []
    unsubscribe = provider.subscribe(CHAIN_CHANGED, seen.append)

    provider.switch_network(_network(8453, "Base Mainnet"), w3=_w3(8453))
    unsubscribe()
    provider.switch_network(_network(), w3=_w3())

    assert seen == [8453]


def test_missing_private_key_is_rejected():
    with pytest.raises(ValueError, match="private_key"):
        LocalWalletProvider(RevampSettings(private_key=None), _network(), w3=_w3())
