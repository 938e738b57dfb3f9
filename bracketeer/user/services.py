"""Service layer for the user registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from bracketeer.core.constants import (
    GAMERTAG_PLATFORMS,
    MAX_GAMERTAG_LENGTH,
    MAX_USERNAME_LENGTH,
)
from bracketeer.errors import DuplicateResourceError, NotFoundError, ValidationError
from bracketeer.locks import user_key
from bracketeer.store import to_iso, utcnow

if TYPE_CHECKING:
    from bracketeer.locks import KeyedLocks
    from bracketeer.store import DocumentStore

    from .models import UserRecord

logger = logging.getLogger(__name__)

USERNAME_REGISTRY_KEY = "users:usernames"


def normalize_wallet(wallet_address: str) -> str:
    """User documents are keyed by the lower-cased wallet address."""
    return wallet_address.strip().lower()


def smart_display_name(user: dict[str, Any]) -> str:
    """Return the best available display name for a user or participant."""
    return str(
        user.get("platformUsername") or user.get("walletAddress") or user.get("id")
    )


def shorten_wallet(wallet_address: str) -> str:
    """Abbreviate a wallet address for public listings."""
    if len(wallet_address) <= 10:  # noqa: PLR2004
        return wallet_address
    return f"{wallet_address[:6]}...{wallet_address[-4:]}"


def _stats(user: dict[str, Any]) -> dict[str, Any]:
    return user.get("stats") or {}


def clean_gamertags(gamertags: dict[str, Any] | None) -> dict[str, str]:
    """Trim gamertags and fill in every known platform."""
    gamertags = gamertags or {}
    cleaned = {}
    for platform in GAMERTAG_PLATFORMS:
        value = (gamertags.get(platform) or "").strip()
        if len(value) > MAX_GAMERTAG_LENGTH:
            raise ValidationError(
                f"{platform} gamertag must be at most {MAX_GAMERTAG_LENGTH} characters."
            )
        cleaned[platform] = value
    return cleaned


class UserService:
    """Registration and lookup of global users."""

    def __init__(
        self, store: DocumentStore, locks: KeyedLocks, game_ids: Iterable[str]
    ) -> None:
        self.store = store
        self.locks = locks
        self.game_ids = list(game_ids)

    def _validate_username(self, username: str | None) -> str:
        username = (username or "").strip()
        if not username:
            raise ValidationError("Platform username is required.")
        if len(username) > MAX_USERNAME_LENGTH:
            raise ValidationError(
                f"Username must be at most {MAX_USERNAME_LENGTH} characters."
            )
        return username

    def _ensure_username_free(self, username: str, user_id: str) -> None:
        for other in self.store.list_users():
            if (
                other["id"] != user_id
                and (other.get("platformUsername") or "").lower() == username.lower()
            ):
                raise DuplicateResourceError("This username is already taken.")

    def get_user(self, wallet_address: str) -> UserRecord:
        """Fetch a user by wallet address."""
        user = self.store.get_user(normalize_wallet(wallet_address))
        if user is None:
            raise NotFoundError("User not found.")
        return user

    def list_users(self) -> list[UserRecord]:
        """Every registered user, oldest first."""
        users = self.store.list_users()
        users.sort(key=lambda u: u.get("createdAt") or "")
        return users

    def register_user(
        self,
        wallet_address: str,
        platform_username: str,
        gamertags: dict[str, Any] | None = None,
    ) -> tuple[UserRecord, bool]:
        """Create a user or update an existing one. Returns (user, created)."""
        if not wallet_address or not wallet_address.strip():
            raise ValidationError("Wallet address is required.")
        username = self._validate_username(platform_username)
        cleaned_tags = clean_gamertags(gamertags)
        user_id = normalize_wallet(wallet_address)
        now = to_iso(utcnow())

        with self.locks.hold(USERNAME_REGISTRY_KEY), self.locks.hold(
            user_key(user_id)
        ):
            self._ensure_username_free(username, user_id)
            user = self.store.get_user(user_id)
            created = user is None
            if user is None:
                user = {
                    "id": user_id,
                    "walletAddress": wallet_address.strip(),
                    "stats": {
                        "totalWins": 0,
                        "gameStats": {
                            game_id: {"tournamentsPlayed": 0, "wins": 0}
                            for game_id in self.game_ids
                        },
                    },
                    "createdAt": now,
                }
            user["platformUsername"] = username
            user["gamertags"] = cleaned_tags
            user["updatedAt"] = now
            self.store.save_user(user)

        if created:
            logger.info(f"Registered user {user_id} as {username}")
        return user, created

    def update_user(
        self,
        wallet_address: str,
        platform_username: str,
        gamertags: dict[str, Any] | None = None,
    ) -> UserRecord:
        """Update the profile of an existing user."""
        username = self._validate_username(platform_username)
        cleaned_tags = clean_gamertags(gamertags)
        user_id = normalize_wallet(wallet_address)

        with self.locks.hold(USERNAME_REGISTRY_KEY), self.locks.hold(
            user_key(user_id)
        ):
            user = self.store.get_user(user_id)
            if user is None:
                raise NotFoundError("User not found.")
            self._ensure_username_free(username, user_id)
            user["platformUsername"] = username
            user["gamertags"] = cleaned_tags
            user["updatedAt"] = to_iso(utcnow())
            self.store.save_user(user)
        return user

    # Leaderboards

    def leaderboard(self, limit: int = 10) -> dict[str, Any]:
        """Top players by total tournament wins."""
        users = self.store.list_users()
        winners = [u for u in users if _stats(u).get("totalWins", 0) > 0]
        winners.sort(key=lambda u: _stats(u)["totalWins"], reverse=True)
        return {
            "totalPlayers": len(users),
            "topPlayers": [
                {
                    "rank": rank,
                    "platformUsername": user.get("platformUsername"),
                    "totalWins": _stats(user)["totalWins"],
                    "gameStats": _stats(user).get("gameStats", {}),
                    "walletAddress": shorten_wallet(user.get("walletAddress", "")),
                }
                for rank, user in enumerate(winners[:limit], start=1)
            ],
            "lastUpdated": to_iso(utcnow()),
        }

    def game_leaderboard(
        self, game_id: str, game_name: str, limit: int = 50
    ) -> dict[str, Any]:
        """Top players of one game by wins, then tournaments played."""

        def game_stats(user: UserRecord) -> dict[str, int]:
            return _stats(user).get("gameStats", {}).get(game_id) or {}

        users = self.store.list_users()
        ranked = [u for u in users if game_stats(u).get("wins", 0) > 0]
        ranked.sort(
            key=lambda u: (
                game_stats(u).get("wins", 0),
                game_stats(u).get("tournamentsPlayed", 0),
            ),
            reverse=True,
        )
        return {
            "gameId": game_id,
            "gameName": game_name,
            "totalPlayers": sum(
                1 for u in users if game_stats(u).get("tournamentsPlayed", 0) > 0
            ),
            "topPlayers": [
                {
                    "rank": rank,
                    "platformUsername": user.get("platformUsername"),
                    "wins": game_stats(user).get("wins", 0),
                    "tournamentsPlayed": game_stats(user).get("tournamentsPlayed", 0),
                    "walletAddress": shorten_wallet(user.get("walletAddress", "")),
                }
                for rank, user in enumerate(ranked[:limit], start=1)
            ],
            "lastUpdated": to_iso(utcnow()),
        }
