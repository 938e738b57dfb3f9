"""Service layer for admin-related operations."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any

from bracketeer.core.constants import (
    ACTIVE_STATUSES,
    MATCH_COMPLETED,
    STATUS_FINISHED,
)
from bracketeer.store import from_iso, utcnow

if TYPE_CHECKING:
    from bracketeer.store import DocumentStore


class AdminService:
    """Service class for admin-related operations."""

    @staticmethod
    def get_admin_stats(
        store: DocumentStore, now: datetime.datetime | None = None
    ) -> dict[str, Any]:
        """Fetch high-level counts of users, tournaments and matches."""
        now = now or utcnow()
        users = store.list_users()
        tournaments = store.list_tournaments()

        stats = {
            "totalUsers": len(users),
            "totalTournaments": len(tournaments),
            "activeTournaments": 0,
            "completedTournaments": 0,
            "totalMatches": 0,
            "completedMatches": 0,
        }
        for tournament in tournaments:
            status = tournament.get("status")
            if status in ACTIVE_STATUSES:
                stats["activeTournaments"] += 1
            elif status == STATUS_FINISHED:
                stats["completedTournaments"] += 1

            bracket = tournament.get("bracket") or {}
            for round_ in bracket.get("rounds", []):
                matches = round_.get("matches", [])
                stats["totalMatches"] += len(matches)
                stats["completedMatches"] += sum(
                    1 for m in matches if m.get("status") == MATCH_COMPLETED
                )

        week_ago = now - datetime.timedelta(days=7)
        created = [from_iso(u.get("createdAt")) for u in users]
        stats["todayRegistrations"] = sum(
            1 for c in created if c is not None and c.date() == now.date()
        )
        stats["weekRegistrations"] = sum(
            1 for c in created if c is not None and c > week_ago
        )
        return stats
