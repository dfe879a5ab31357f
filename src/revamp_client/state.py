"""Application state container."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .domain import NetworkDescriptor
from .settings import RevampSettings


@dataclass
class AppState:
    """Container for application-wide state and dependencies.

    Passed through the CLI to avoid global state and enable testing.
    """

    settings: RevampSettings
    logger: logging.Logger
    networks: tuple[NetworkDescriptor, ...]
