"""Wallet provider backed by a local private key and a JSON-RPC endpoint."""

from __future__ import annotations

import asyncio
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_typing import URI
from web3 import Web3
from web3.exceptions import Web3Exception

from ..clients.rpc import ThrottledRpc
from ..domain import NetworkDescriptor
from ..errors import TransactionRejectedError, TransactionRevertedError
from ..logger import get_logger
from ..settings import RevampSettings
from .base import (
    ACCOUNTS_CHANGED,
    CHAIN_CHANGED,
    BaseWalletProvider,
    SubmittedTransaction,
    TxRequest,
)

logger = get_logger(__name__)

CONFIRMATION_POLL_INTERVAL = 2.0  # seconds


class LocalSubmittedTransaction(SubmittedTransaction):
    def __init__(
        self,
        w3: Web3,
        tx_hash: str,
        rpc: ThrottledRpc,
        *,
        timeout: float,
        poll_interval: float = CONFIRMATION_POLL_INTERVAL,
    ):
        self._w3 = w3
        self._hash = tx_hash
        self._rpc = rpc
        self._timeout = timeout
        self._poll_interval = poll_interval

    @property
    def hash(self) -> str:
        return self._hash

    async def wait(self, confirmations: int = 1) -> dict[str, Any]:
        receipt = await asyncio.to_thread(
            self._w3.eth.wait_for_transaction_receipt,
            self._hash,
            timeout=self._timeout,
        )
        if receipt["status"] != 1:
            raise TransactionRevertedError(self._hash)

        mined_block = receipt["blockNumber"]
        target = mined_block + confirmations - 1
        async with asyncio.timeout(self._timeout):
            while True:
                latest = await self._rpc(lambda: self._w3.eth.block_number)
                if latest >= target:
                    break
                await asyncio.sleep(self._poll_interval)

        logger.debug(
            "Transaction %s mined in block %d (%d confirmation(s))",
            self._hash,
            mined_block,
            confirmations,
        )
        return dict(receipt)


class LocalWalletProvider(BaseWalletProvider):
    """Signs with a private key held in settings; one account, one chain."""

    def __init__(
        self,
        settings: RevampSettings,
        network: NetworkDescriptor,
        *,
        w3: Web3 | None = None,
    ):
        super().__init__()
        self._settings = settings
        self._account: LocalAccount = Account.from_key(settings.private_key_required)
        self._rpc = ThrottledRpc(settings)
        self._network = network
        self._w3 = w3 or self._build_web3(network.rpc_url, settings.rpc_timeout)

    @staticmethod
    def _build_web3(rpc_url: str, timeout: float) -> Web3:
        return Web3(
            Web3.HTTPProvider(URI(rpc_url), request_kwargs={"timeout": timeout})
        )

    @property
    def address(self) -> str:
        return self._account.address

    async def get_chain_id(self) -> int:
        return int(await self._rpc(lambda: self._w3.eth.chain_id))

    async def get_accounts(self) -> list[str]:
        return [self._account.address]

    async def send_transaction(self, tx: TxRequest) -> SubmittedTransaction:
        sender = self._account.address
        try:
            chain_id, nonce, gas_price = await asyncio.gather(
                self.get_chain_id(),
                self._rpc(self._w3.eth.get_transaction_count, sender, "pending"),
                self._rpc(lambda: self._w3.eth.gas_price),
            )
            params: dict[str, Any] = {
                "from": sender,
                "to": Web3.to_checksum_address(tx["to"]),
                "data": tx.get("data", "0x"),
                "value": int(tx.get("value", 0)),
                "nonce": nonce,
                "chainId": chain_id,
                "gasPrice": gas_price,
            }
            params["gas"] = await self._rpc(self._w3.eth.estimate_gas, params)
            signed = self._account.sign_transaction(params)
            raw_hash = await self._rpc(
                self._w3.eth.send_raw_transaction, signed.raw_transaction
            )
        except (Web3Exception, ValueError) as e:
            raise TransactionRejectedError(str(e)) from e

        tx_hash = Web3.to_hex(raw_hash)
        logger.info("Broadcast transaction %s from %s", tx_hash, sender)
        return LocalSubmittedTransaction(
            self._w3, tx_hash, self._rpc, timeout=self._settings.receipt_timeout
        )

    def switch_network(
        self, network: NetworkDescriptor, *, w3: Web3 | None = None
    ) -> None:
        """Point the provider at another chain and notify subscribers."""
        self._network = network
        self._w3 = w3 or self._build_web3(network.rpc_url, self._settings.rpc_timeout)
        logger.info(
            "Wallet switched to %s (chain id %d)", network.label, network.chain_id
        )
        self._emit(CHAIN_CHANGED, network.chain_id)

    def switch_account(self, private_key: str) -> None:
        """Replace the signing account and notify subscribers."""
        self._account = Account.from_key(private_key)
        self._emit(ACCOUNTS_CHANGED, [self._account.address])
