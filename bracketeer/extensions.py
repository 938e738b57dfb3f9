"""Application-scoped service objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from flask import current_app

if TYPE_CHECKING:
    from .locks import KeyedLocks
    from .store import DocumentStore
    from .tournament.scheduler import AutoTournamentScheduler
    from .tournament.services import TournamentService
    from .user.services import UserService
    from .user.stats import StatsUpdater

EXTENSION_KEY = "bracketeer"


@dataclass
class Services:
    """Everything a request handler needs, built once per app."""

    store: DocumentStore
    locks: KeyedLocks
    stats: StatsUpdater
    users: UserService
    tournaments: TournamentService
    scheduler: AutoTournamentScheduler


def get_services() -> Services:
    """Return the services of the current app."""
    return current_app.extensions[EXTENSION_KEY]
