"""Service layer for profiles, neighborhoods and pickup addresses."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from eco.constants import (
    ADDRESS_PROFILES,
    NEIGHBORHOODS,
    PROFILES,
    ROLE_RESIDENT,
    ROLES,
)
from eco.core.types import Neighborhood, Profile
from eco.errors import NotFoundError, ValidationError
from eco.utils import doc_to_dict, docs_to_list, utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


class ProfileService:
    """Service class for profile-related operations."""

    @staticmethod
    def get_profile(db: Client, user_id: str) -> Profile | None:
        """Fetch a profile with its neighborhood embedded, or None."""
        profile = doc_to_dict(db.collection(PROFILES).document(user_id).get())
        if profile is None:
            return None
        neighborhood_id = profile.get("neighborhood_id")
        profile["neighborhood"] = (
            ProfileService.get_neighborhood(db, neighborhood_id)
            if neighborhood_id
            else None
        )
        return profile  # type: ignore[return-value]

    @staticmethod
    def ensure_profile(db: Client, user_id: str, email: str | None = None) -> Profile:
        """Return the user's profile, creating a resident profile on first login."""
        profile = ProfileService.get_profile(db, user_id)
        if profile is not None:
            return profile
        display_name = (email or "").split("@")[0] or "Morador"
        data = {
            "user_id": user_id,
            "role": ROLE_RESIDENT,
            "display_name": display_name,
            "neighborhood_id": None,
            "created_at": utcnow(),
        }
        db.collection(PROFILES).document(user_id).set(data)
        data["neighborhood"] = None
        return data  # type: ignore[return-value]

    @staticmethod
    def update_profile(db: Client, user_id: str, update_data: dict[str, Any]) -> None:
        """Update display name, neighborhood or role of a profile."""
        allowed = {"display_name", "neighborhood_id", "role"}
        unknown = set(update_data) - allowed
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if "role" in update_data and update_data["role"] not in ROLES:
            raise ValidationError("Invalid role.")
        neighborhood_id = update_data.get("neighborhood_id")
        if neighborhood_id and ProfileService.get_neighborhood(db, neighborhood_id) is None:
            raise NotFoundError("Bairro não encontrado.")
        db.collection(PROFILES).document(user_id).update(update_data)

    @staticmethod
    def get_neighborhood(db: Client, neighborhood_id: str) -> Neighborhood | None:
        """Fetch one neighborhood."""
        return doc_to_dict(  # type: ignore[return-value]
            db.collection(NEIGHBORHOODS).document(neighborhood_id).get()
        )

    @staticmethod
    def get_neighborhood_by_slug(db: Client, slug: str) -> Neighborhood | None:
        docs = (
            db.collection(NEIGHBORHOODS)
            .where(filter=firestore.FieldFilter("slug", "==", slug))
            .limit(1)
            .stream()
        )
        found = docs_to_list(docs)
        return found[0] if found else None  # type: ignore[return-value]

    @staticmethod
    def list_neighborhoods(db: Client, search: str | None = None) -> list[Neighborhood]:
        """List neighborhoods by name, optionally filtered by a search term."""
        neighborhoods = docs_to_list(db.collection(NEIGHBORHOODS).stream())
        if search:
            term = search.strip().lower()
            neighborhoods = [
                n
                for n in neighborhoods
                if term in (n.get("name") or "").lower()
                or term in (n.get("slug") or "").lower()
            ]
        neighborhoods.sort(key=lambda n: (n.get("name") or "").lower())
        return neighborhoods  # type: ignore[return-value]

    @staticmethod
    def get_address(db: Client, user_id: str) -> dict[str, Any] | None:
        """Fetch the user's private pickup address."""
        return doc_to_dict(db.collection(ADDRESS_PROFILES).document(user_id).get())

    @staticmethod
    def save_address(
        db: Client, user_id: str, address_full: str, contact_phone: str
    ) -> None:
        """Upsert the user's pickup address; both fields are required."""
        address_full = (address_full or "").strip()
        contact_phone = (contact_phone or "").strip()
        if not address_full or not contact_phone:
            raise ValidationError("Endereço e telefone são obrigatórios.")
        db.collection(ADDRESS_PROFILES).document(user_id).set(
            {
                "user_id": user_id,
                "address_full": address_full,
                "contact_phone": contact_phone,
                "updated_at": utcnow(),
            },
            merge=True,
        )
