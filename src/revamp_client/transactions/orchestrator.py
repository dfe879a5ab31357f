"""Sequencing of multi-step protocol writes.

Every write follows the same path: pre-flight guards, then an optional
allowance check and exact-amount approval, then the primary call and a
confirmation wait. Each step is awaited before the next one starts and a
failed attempt is never retried automatically.
"""

from __future__ import annotations

import inspect
from decimal import ROUND_UP, Decimal
from typing import Any, Awaitable, Callable, Optional, Union

from web3 import Web3
from web3.exceptions import Web3Exception

from ..clients import ChainDataFetcher
from ..constants import NATIVE_DECIMALS, RATE_DECIMALS
from ..domain import FeeKind, ListedAsset, NetworkDescriptor
from ..errors import (
    InvalidOperationError,
    NetworkMismatchError,
    RevampError,
    UnsupportedNetworkError,
    WalletNotConnectedError,
)
from ..logger import get_logger
from ..network import NetworkResolver, NetworkStatus
from ..processors.rates import asset_to_native, native_to_asset
from ..providers.base import BaseWalletProvider
from ..settings import RevampSettings
from ..units import to_base_units
from . import builder
from .builder import PlannedTransaction
from .states import OperationKind, TransactionAttempt, TxState

logger = get_logger(__name__)

StateHandler = Callable[[TransactionAttempt], None]
ConfirmedHandler = Callable[[TransactionAttempt], Union[Awaitable[None], None]]

# Everything a provider may raise for a refused, reverted or timed-out tx
SUBMISSION_ERRORS = (RevampError, Web3Exception, TimeoutError)

APPROVAL_FAILED = "approval rejected or reverted"


def _positive(value: Any, what: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except ArithmeticError as e:
        raise InvalidOperationError(f"{what} {value!r} is not a number") from e
    if not number.is_finite() or number <= 0:
        raise InvalidOperationError(f"{what} must be a positive number")
    return number


class TransactionOrchestrator:
    """Runs protocol writes against the wallet's active network.

    Args:
        provider: Injected wallet provider used for chain discovery and signing.
        fetcher: Read access for fees, balances and allowances.
        resolver: Network table used by the pre-flight guards.
        settings: Application settings (confirmation depth).
        selected_network: Network the user is operating on. Writes are
            refused unless the wallet reports the same chain.
    """

    def __init__(
        self,
        provider: BaseWalletProvider,
        fetcher: ChainDataFetcher,
        resolver: NetworkResolver,
        settings: RevampSettings,
        selected_network: Optional[NetworkDescriptor] = None,
    ):
        self.provider = provider
        self.fetcher = fetcher
        self.resolver = resolver
        self.settings = settings
        self.selected_network = selected_network
        self._state_handlers: list[StateHandler] = []
        self._confirmed_handlers: list[ConfirmedHandler] = []

    def on_state(self, handler: StateHandler) -> Callable[[], None]:
        self._state_handlers.append(handler)
        return lambda: self._state_handlers.remove(handler)

    def on_confirmed(self, handler: ConfirmedHandler) -> Callable[[], None]:
        self._confirmed_handlers.append(handler)
        return lambda: self._confirmed_handlers.remove(handler)

    async def preflight(self) -> tuple[NetworkDescriptor, str]:
        """Check that writes are allowed right now.

        Returns:
            The active network and the sending account.

        Raises:
            UnsupportedNetworkError: Wallet chain has no deployed contract.
            NetworkMismatchError: Wallet chain differs from the selection.
            WalletNotConnectedError: The wallet exposes no account.
        """
        chain_id = await self.provider.get_chain_id()
        status = self.resolver.status(self.selected_network, chain_id)
        if status is NetworkStatus.UNSUPPORTED:
            raise UnsupportedNetworkError(chain_id)
        if status is not NetworkStatus.OK:
            selected = self.selected_network
            raise NetworkMismatchError(
                selected.chain_id if selected else None, chain_id
            )

        accounts = await self.provider.get_accounts()
        if not accounts:
            raise WalletNotConnectedError("No wallet account connected")

        network = self.resolver.resolve(chain_id)
        assert network is not None
        return network, Web3.to_checksum_address(accounts[0])

    def _advance(self, attempt: TransactionAttempt, state: TxState) -> None:
        attempt.advance(state)
        logger.debug("%s -> %s", attempt.operation.value, state.value)
        for handler in list(self._state_handlers):
            try:
                handler(attempt)
            except Exception as e:
                logger.error("State handler failed: %s", e)

    def _fail(self, attempt: TransactionAttempt, reason: str) -> TransactionAttempt:
        attempt.error = reason
        self._advance(attempt, TxState.FAILED)
        logger.error("%s failed: %s", attempt.operation.value, reason)
        return attempt

    async def _notify_confirmed(self, attempt: TransactionAttempt) -> None:
        for handler in list(self._confirmed_handlers):
            try:
                result = handler(attempt)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error("Confirmation handler failed: %s", e)

    async def _required_fee(self, network: NetworkDescriptor, kind: FeeKind) -> Decimal:
        try:
            return await self.fetcher.required_fee(network, kind)
        except Exception as e:
            logger.error(
                "Could not read the %s fee on %s: %s", kind.value, network.label, e
            )
            raise InvalidOperationError(f"could not read the {kind.value} fee") from e

    async def execute(
        self, plan: PlannedTransaction, network: NetworkDescriptor, account: str
    ) -> TransactionAttempt:
        """Drive ``plan`` through the state machine to a terminal state."""
        attempt = TransactionAttempt(operation=plan.operation)
        confirmations = self.settings.confirmations

        if plan.token_leg is not None:
            leg = plan.token_leg
            self._advance(attempt, TxState.CHECKING_ALLOWANCE)
            try:
                current = await self.fetcher.allowance(
                    network, account, leg.token, leg.spender
                )
            except Exception as e:
                return self._fail(attempt, f"allowance check failed: {e}")

            if current < leg.amount:
                self._advance(attempt, TxState.AWAITING_APPROVAL)
                try:
                    approval = builder.plan_approve(leg.token, leg.spender, leg.amount)
                    submitted = await self.provider.send_transaction(
                        approval.as_request()
                    )
                    attempt.approval_hash = submitted.hash
                    await submitted.wait(confirmations)
                except SUBMISSION_ERRORS as e:
                    logger.warning("Approval of %s failed: %s", leg.token, e)
                    return self._fail(attempt, APPROVAL_FAILED)
                logger.info(
                    "Approved %d of %s for %s", leg.amount, leg.token, leg.spender
                )
            else:
                logger.debug("Allowance %d already covers %d", current, leg.amount)

        self._advance(attempt, TxState.AWAITING_PRIMARY_SUBMISSION)
        try:
            submitted = await self.provider.send_transaction(plan.as_request())
        except SUBMISSION_ERRORS as e:
            return self._fail(attempt, f"submission rejected: {e}")

        attempt.hash = submitted.hash
        self._advance(attempt, TxState.AWAITING_CONFIRMATION)
        logger.info(
            "%s submitted: %s", plan.operation.value, network.tx_url(submitted.hash)
        )
        try:
            attempt.receipt = await submitted.wait(confirmations)
        except SUBMISSION_ERRORS as e:
            return self._fail(attempt, f"confirmation failed: {e}")

        self._advance(attempt, TxState.CONFIRMED)
        logger.info("%s confirmed in %s", plan.operation.value, submitted.hash)
        await self._notify_confirmed(attempt)
        return attempt

    # --- revamp contract --------------------------------------------------

    async def list_asset(
        self, token: str, rate: Any, logo_url: str = ""
    ) -> TransactionAttempt:
        """List ``token`` at ``rate`` native per unit, paying the listing fee."""
        if not Web3.is_address(token):
            raise InvalidOperationError(f"{token!r} is not a token address")
        raw_rate = to_base_units(_positive(rate, "Rate"), RATE_DECIMALS)
        if raw_rate == 0:
            raise InvalidOperationError("Rate is below the smallest representable unit")

        network, account = await self.preflight()
        fee = await self._required_fee(network, FeeKind.LISTING)
        plan = builder.plan_list_asset(
            network.contract_address_required,
            token,
            raw_rate,
            logo_url.strip(),
            to_base_units(fee, NATIVE_DECIMALS),
        )
        return await self.execute(plan, network, account)

    async def delist_asset(self, token: str) -> TransactionAttempt:
        if not Web3.is_address(token):
            raise InvalidOperationError(f"{token!r} is not a token address")
        network, account = await self.preflight()
        fee = await self._required_fee(network, FeeKind.DELIST)
        plan = builder.plan_delist_asset(
            network.contract_address_required,
            token,
            to_base_units(fee, NATIVE_DECIMALS),
        )
        return await self.execute(plan, network, account)

    async def join(
        self,
        asset: ListedAsset,
        token_amount: Any = None,
        native_amount: Any = None,
    ) -> TransactionAttempt:
        """Deposit ``asset`` alongside native currency at the listed rate.

        Give either amount; the other is derived from the asset's rate.
        """
        if (token_amount is None) == (native_amount is None):
            raise InvalidOperationError("Give exactly one of token or native amount")
        if token_amount is not None:
            tokens = _positive(token_amount, "Token amount")
            native = asset_to_native(tokens, asset.rate).require()
        else:
            native = _positive(native_amount, "Native amount")
            tokens = native_to_asset(native, asset.rate).require()

        raw_tokens = to_base_units(tokens, asset.decimals)
        raw_native = to_base_units(native, NATIVE_DECIMALS)
        if raw_tokens == 0 or raw_native == 0:
            raise InvalidOperationError("Amount is below the smallest token unit")

        network, account = await self.preflight()
        plan = builder.plan_deposit(
            network.contract_address_required,
            asset.token_address,
            raw_tokens,
            raw_native,
        )
        return await self.execute(plan, network, account)

    async def claim(self) -> TransactionAttempt:
        network, account = await self.preflight()
        pending = await self.fetcher.pending_reward(network, account)
        claim_fee = await self._required_fee(network, FeeKind.CLAIM)
        if pending <= claim_fee:
            raise InvalidOperationError(
                f"Pending reward {pending} does not cover the claim fee {claim_fee}"
            )
        plan = builder.plan_claim(network.contract_address_required)
        return await self.execute(plan, network, account)

    async def reinvest(self, asset: ListedAsset) -> TransactionAttempt:
        """Revamp the whole pending reward into ``asset``.

        The token leg is ``pending / rate`` rounded up to the next base unit
        so the deposit is never short of the reward it pairs with.
        """
        network, account = await self.preflight()
        pending = await self.fetcher.pending_reward(network, account)
        if pending <= 0:
            raise InvalidOperationError("No pending reward to reinvest")

        tokens = native_to_asset(pending, asset.rate).require()
        raw_tokens = to_base_units(tokens, asset.decimals, rounding=ROUND_UP)
        balance = await self.fetcher.token_balance(
            network, account, asset.token_address, asset.decimals
        )
        if balance < tokens:
            raise InvalidOperationError(
                f"{asset.symbol} balance {balance} is below the required {tokens}"
            )

        plan = builder.plan_deposit(
            network.contract_address_required,
            asset.token_address,
            raw_tokens,
            to_base_units(pending, NATIVE_DECIMALS),
            operation=OperationKind.REINVEST,
        )
        return await self.execute(plan, network, account)

    # --- shareholding pool ------------------------------------------------

    def _pool_address(self, network: NetworkDescriptor) -> str:
        if network.shareholding_address is None:
            raise InvalidOperationError(f"No shareholding pool on {network.label}")
        return network.shareholding_address

    async def buy_shares(self, native_amount: Any) -> TransactionAttempt:
        amount = _positive(native_amount, "Amount")
        network, account = await self.preflight()
        pool = self._pool_address(network)
        wallet = await self.fetcher.native_balance(network, account)
        if amount > wallet:
            raise InvalidOperationError(
                f"Amount {amount} exceeds wallet balance {wallet}"
            )
        plan = builder.plan_buy_shares(pool, to_base_units(amount, NATIVE_DECIMALS))
        return await self.execute(plan, network, account)

    async def claim_rewards(self) -> TransactionAttempt:
        network, account = await self.preflight()
        plan = builder.plan_claim_rewards(self._pool_address(network))
        return await self.execute(plan, network, account)

    async def reinvest_rewards(self) -> TransactionAttempt:
        network, account = await self.preflight()
        plan = builder.plan_reinvest_rewards(self._pool_address(network))
        return await self.execute(plan, network, account)
