"""Firestore-backed document store for tournaments and users."""

from __future__ import annotations

import datetime
import functools
import logging
from typing import TYPE_CHECKING, Any, Callable, TypeVar, cast

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from .core.constants import TOURNAMENTS_COLLECTION, USERS_COLLECTION
from .errors import StoreError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

    from .tournament.models import Tournament
    from .user.models import UserRecord

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def utcnow() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def to_iso(moment: datetime.datetime) -> str:
    """Serialize a datetime the way documents store it."""
    return moment.astimezone(datetime.timezone.utc).isoformat()


def from_iso(value: str | None) -> datetime.datetime | None:
    """Parse a stored timestamp, returning None for empty values."""
    if not value:
        return None
    parsed = datetime.datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def _wrap_store_errors(func: F) -> F:
    """Surface Firestore API failures as StoreError."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Firestore call {func.__name__} failed: {e}")
            raise StoreError() from e

    return cast(F, wrapper)


def _snapshot_to_dict(doc: DocumentSnapshot) -> dict[str, Any] | None:
    if not doc.exists:
        return None
    data = doc.to_dict()
    if data is None:
        return None
    data["id"] = doc.id
    return data


class DocumentStore:
    """Whole-document reads and writes over the two collections.

    The store does no locking of its own; callers serialize their critical
    sections with :class:`bracketeer.locks.KeyedLocks`.
    """

    def __init__(self, db: Client | None = None) -> None:
        self._db = db

    @property
    def db(self) -> Client:
        if self._db is None:
            self._db = firestore.client()
        return self._db

    # Tournaments

    @_wrap_store_errors
    def get_tournament(self, tournament_id: str) -> Tournament | None:
        """Fetch a tournament document by its ID."""
        ref = self.db.collection(TOURNAMENTS_COLLECTION).document(tournament_id)
        return cast("Tournament | None", _snapshot_to_dict(ref.get()))

    @_wrap_store_errors
    def save_tournament(self, tournament: Tournament) -> None:
        """Write the whole tournament document."""
        data = dict(tournament)
        tournament_id = data.pop("id")
        self.db.collection(TOURNAMENTS_COLLECTION).document(tournament_id).set(data)

    @_wrap_store_errors
    def delete_tournament(self, tournament_id: str) -> None:
        """Delete a tournament document."""
        self.db.collection(TOURNAMENTS_COLLECTION).document(tournament_id).delete()

    @_wrap_store_errors
    def list_tournaments(
        self, game_id: str | None = None, status: str | None = None
    ) -> list[Tournament]:
        """List tournaments, optionally filtered by game and status."""
        query: Any = self.db.collection(TOURNAMENTS_COLLECTION)
        if game_id:
            query = query.where(
                filter=firestore.FieldFilter("gameId", "==", game_id)
            )
        if status:
            query = query.where(filter=firestore.FieldFilter("status", "==", status))

        tournaments = []
        for doc in query.stream():
            data = _snapshot_to_dict(doc)
            if data:
                tournaments.append(cast("Tournament", data))
        tournaments.sort(key=lambda t: t.get("createdAt") or "")
        return tournaments

    # Users

    @_wrap_store_errors
    def get_user(self, user_id: str) -> UserRecord | None:
        """Fetch a user document by its ID."""
        ref = self.db.collection(USERS_COLLECTION).document(user_id)
        return cast("UserRecord | None", _snapshot_to_dict(ref.get()))

    @_wrap_store_errors
    def save_user(self, user: UserRecord) -> None:
        """Write the whole user document."""
        data = dict(user)
        user_id = data.pop("id")
        self.db.collection(USERS_COLLECTION).document(user_id).set(data)

    @_wrap_store_errors
    def list_users(self) -> list[UserRecord]:
        """Fetch every user document."""
        users = []
        for doc in self.db.collection(USERS_COLLECTION).stream():
            data = _snapshot_to_dict(doc)
            if data:
                users.append(cast("UserRecord", data))
        return users
