"""Calldata encoding for protocol writes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from web3 import Web3

from ..abi import load_erc20_abi, load_revamp_abi, load_shareholding_abi
from ..constants import MAX_UINT256
from ..errors import InvalidOperationError
from ..logger import get_logger
from ..providers.base import TxRequest
from .states import OperationKind

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TokenLeg:
    """ERC20 amount the target contract will pull from the sender."""

    token: str
    spender: str
    amount: int  # base units


@dataclass(frozen=True, slots=True)
class PlannedTransaction:
    operation: OperationKind
    to: str
    data: str
    value: int = 0
    token_leg: Optional[TokenLeg] = None

    def as_request(self) -> TxRequest:
        return TxRequest(to=self.to, data=self.data, value=self.value)


def encode_call(
    address: str, abi: list[dict], function: str, args: Sequence[Any] = ()
) -> str:
    """Encode a contract call offline and return 0x-prefixed calldata."""
    w3 = Web3()
    contract = w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
    return contract.encode_abi(abi_element_identifier=function, args=list(args))


def plan_approve(token: str, spender: str, amount: int) -> PlannedTransaction:
    """Approve exactly ``amount``; unlimited approvals are refused."""
    if amount <= 0:
        raise InvalidOperationError("Approval amount must be positive")
    if amount >= MAX_UINT256:
        raise InvalidOperationError("Unbounded approvals are not allowed")
    spender = Web3.to_checksum_address(spender)
    return PlannedTransaction(
        operation=OperationKind.APPROVE,
        to=Web3.to_checksum_address(token),
        data=encode_call(token, load_erc20_abi(), "approve", [spender, amount]),
    )


def plan_list_asset(
    core: str, token: str, rate: int, logo_url: str, fee: int
) -> PlannedTransaction:
    token = Web3.to_checksum_address(token)
    logger.debug("Encoding listNewAsset(%s, %d, %r)", token, rate, logo_url)
    return PlannedTransaction(
        operation=OperationKind.LIST_ASSET,
        to=core,
        data=encode_call(
            core, load_revamp_abi(), "listNewAsset", [token, rate, logo_url]
        ),
        value=fee,
    )


def plan_delist_asset(core: str, token: str, fee: int) -> PlannedTransaction:
    token = Web3.to_checksum_address(token)
    return PlannedTransaction(
        operation=OperationKind.DELIST_ASSET,
        to=core,
        data=encode_call(core, load_revamp_abi(), "delistAsset", [token]),
        value=fee,
    )


def plan_deposit(
    core: str,
    token: str,
    token_amount: int,
    native_amount: int,
    operation: OperationKind = OperationKind.DEPOSIT,
) -> PlannedTransaction:
    """Deposit ``token_amount`` of ``token`` together with ``native_amount``.

    Reinvesting a pending reward is the same contract call, tagged
    ``OperationKind.REINVEST``.
    """
    token = Web3.to_checksum_address(token)
    return PlannedTransaction(
        operation=operation,
        to=core,
        data=encode_call(core, load_revamp_abi(), "deposit", [token, token_amount]),
        value=native_amount,
        token_leg=TokenLeg(token=token, spender=core, amount=token_amount),
    )


def plan_claim(core: str) -> PlannedTransaction:
    return PlannedTransaction(
        operation=OperationKind.CLAIM,
        to=core,
        data=encode_call(core, load_revamp_abi(), "claim"),
    )


def plan_buy_shares(pool: str, native_amount: int) -> PlannedTransaction:
    return PlannedTransaction(
        operation=OperationKind.BUY_SHARES,
        to=pool,
        data=encode_call(pool, load_shareholding_abi(), "buyShares"),
        value=native_amount,
    )


def plan_claim_rewards(pool: str) -> PlannedTransaction:
    return PlannedTransaction(
        operation=OperationKind.CLAIM_REWARDS,
        to=pool,
        data=encode_call(pool, load_shareholding_abi(), "claimRewards"),
    )


def plan_reinvest_rewards(pool: str) -> PlannedTransaction:
    return PlannedTransaction(
        operation=OperationKind.REINVEST_REWARDS,
        to=pool,
        data=encode_call(pool, load_shareholding_abi(), "reinvestRewards"),
    )
