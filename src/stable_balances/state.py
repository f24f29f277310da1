"""Application state container."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .service import BalanceService
from .settings import BalanceSettings


@dataclass
class AppState:
    """Container for application-wide state and dependencies.

    Passed to the CLI commands and the HTTP app to avoid global state and
    enable testing.
    """

    settings: BalanceSettings
    logger: logging.Logger
    service: BalanceService
