from __future__ import annotations

from .chain_data import ChainDataFetcher
from .rpc import ThrottledRpc

__all__ = ["ChainDataFetcher", "ThrottledRpc"]
