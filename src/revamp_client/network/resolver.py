"""Chain id to network metadata resolution."""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional

from web3 import Web3

from ..constants import AVAILABLE_NETWORKS, REVAMP_ADDRESSES, SHAREHOLDING_ADDRESSES
from ..domain import NetworkDescriptor
from ..logger import get_logger
from ..settings import RevampSettings

logger = get_logger(__name__)


class NetworkStatus(str, Enum):
    LOADING = "loading"
    UNSUPPORTED = "unsupported"
    MISMATCH = "mismatch"
    OK = "ok"


def _checksum_or_none(address: Optional[str]) -> Optional[str]:
    if not address:
        return None
    return Web3.to_checksum_address(address)


def load_networks(settings: RevampSettings) -> tuple[NetworkDescriptor, ...]:
    """Build the immutable network table from constants plus settings overrides."""
    networks = []
    for entry in AVAILABLE_NETWORKS:
        chain_id = entry["chain_id"]
        revamp = settings.revamp_addresses.get(chain_id) or REVAMP_ADDRESSES.get(
            chain_id
        )
        shareholding = settings.shareholding_addresses.get(
            chain_id
        ) or SHAREHOLDING_ADDRESSES.get(chain_id)
        networks.append(
            NetworkDescriptor(
                chain_id=chain_id,
                label=entry["label"],
                currency=entry["currency"],
                rpc_url=settings.rpc_urls.get(chain_id, entry["rpc_url"]),
                explorer_url=entry["explorer_url"],
                contract_address=_checksum_or_none(revamp),
                shareholding_address=_checksum_or_none(shareholding),
            )
        )

    known = {network.chain_id for network in networks}
    unknown = set(settings.revamp_addresses) - known
    if unknown:
        logger.warning(
            "Ignoring contract overrides for unknown chain ids: %s",
            ", ".join(str(chain_id) for chain_id in sorted(unknown)),
        )
    return tuple(networks)


def matches(
    selected: Optional[NetworkDescriptor], active: Optional[NetworkDescriptor]
) -> bool:
    """True iff both networks are known and share a chain id."""
    if selected is None or active is None:
        return False
    return selected.chain_id == active.chain_id


class NetworkResolver:
    """Pure lookup over the static network table."""

    def __init__(self, networks: Iterable[NetworkDescriptor]):
        self._by_chain_id = {network.chain_id: network for network in networks}

    @property
    def networks(self) -> tuple[NetworkDescriptor, ...]:
        return tuple(self._by_chain_id.values())

    def resolve(self, chain_id: Optional[int]) -> Optional[NetworkDescriptor]:
        """Return the descriptor for ``chain_id`` or None when unsupported."""
        if chain_id is None:
            return None
        return self._by_chain_id.get(int(chain_id))

    def status(
        self,
        selected: Optional[NetworkDescriptor],
        active_chain_id: Optional[int],
    ) -> NetworkStatus:
        """Classify the wallet chain relative to the selected network.

        ``active_chain_id`` of None means the wallet has not reported a chain
        yet, which is a loading state and not an unsupported one.
        """
        if active_chain_id is None:
            return NetworkStatus.LOADING
        active = self.resolve(active_chain_id)
        if active is None or not active.is_supported:
            return NetworkStatus.UNSUPPORTED
        if not matches(selected, active):
            return NetworkStatus.MISMATCH
        return NetworkStatus.OK
