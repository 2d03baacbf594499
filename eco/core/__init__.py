"""Core module for the ECO application."""

from .types import FirestoreDocument, Profile

__all__ = ["FirestoreDocument", "Profile"]
