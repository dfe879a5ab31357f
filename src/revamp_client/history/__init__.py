from __future__ import annotations

from .aggregator import HistoryAggregator, compute_windows, decode_point

__all__ = ["HistoryAggregator", "compute_windows", "decode_point"]
