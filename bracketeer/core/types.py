"""Core data types for the bracketeer application."""

from typing import TypedDict


class _FirestoreDocumentBase(TypedDict):
    id: str


class FirestoreDocument(_FirestoreDocumentBase, total=False):
    """A Firestore document with its id folded in."""

    createdAt: str
    updatedAt: str
