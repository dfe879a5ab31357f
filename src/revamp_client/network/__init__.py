from __future__ import annotations

from .resolver import NetworkResolver, NetworkStatus, load_networks, matches

__all__ = ["NetworkResolver", "NetworkStatus", "load_networks", "matches"]
