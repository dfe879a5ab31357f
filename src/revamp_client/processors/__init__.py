from __future__ import annotations

from .eligibility import evaluate_eligibility, find_eligible_assets, required_amount
from .rates import Conversion, asset_to_native, native_to_asset, truncate
from .snapshot import build_snapshot, load_snapshot

__all__ = [
    "Conversion",
    "asset_to_native",
    "native_to_asset",
    "truncate",
    "evaluate_eligibility",
    "find_eligible_assets",
    "required_amount",
    "build_snapshot",
    "load_snapshot",
]
