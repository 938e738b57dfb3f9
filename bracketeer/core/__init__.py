"""Core module for the bracketeer application."""

from .types import FirestoreDocument

__all__ = ["FirestoreDocument"]
