"""Core data types for the ECO application."""

from typing import Any, Dict, List, Optional, TypedDict  # noqa: UP035


class _FirestoreDocumentBase(TypedDict):
    id: str
    created_at: Any


class FirestoreDocument(_FirestoreDocumentBase, total=False):
    """Generic Firestore document structure."""

    updated_at: Any


class Neighborhood(FirestoreDocument, total=False):
    """A neighborhood document."""

    slug: str
    name: str


class Profile(TypedDict, total=False):
    """A profile document, keyed by the Firebase uid."""

    user_id: str
    role: str
    display_name: str
    neighborhood_id: Optional[str]
    neighborhood: Optional[Neighborhood]
    created_at: Any


class PickupItem(TypedDict):
    """One line of a pickup request."""

    material: str
    unit: str
    qty: int


class PickupRequest(FirestoreDocument, total=False):
    """A pickup request document."""

    created_by: str
    neighborhood_id: str
    status: str
    fulfillment_mode: str
    drop_point_id: Optional[str]
    notes: str
    items: List[PickupItem]  # noqa: UP006
    assigned_cooperado: Optional[str]
    receipt_id: Optional[str]


class Receipt(FirestoreDocument, total=False):
    """An immutable proof-of-collection record."""

    request_id: str
    cooperado_id: str
    receipt_code: str
    final_notes: Optional[str]


class MediaObject(FirestoreDocument, total=False):
    """A private-bucket file reference."""

    bucket: str
    path: str
    owner_id: str
    entity_type: str
    entity_id: str
    mime: str
    bytes: int


class Post(FirestoreDocument, total=False):
    """A mural post."""

    created_by: str
    neighborhood_id: str
    kind: str
    title: str
    body: str
    receipt_id: Optional[str]


class OnboardingState(TypedDict, total=False):
    """Wizard progress, one document per user."""

    user_id: str
    step: str
    chosen_mode: Optional[str]
    chosen_drop_point_id: Optional[str]
    completed_at: Any
    updated_at: Any


class Notification(FirestoreDocument, total=False):
    """A per-user alert."""

    user_id: str
    kind: str
    title: str
    body: str
    action_url: Optional[str]
    is_read: bool


class PayoutPeriod(TypedDict):
    """A payout period; dates are ISO strings."""

    id: str
    period_start: str
    period_end: str
    status: str


class SignedUrlItem(TypedDict):
    """One resolved media URL."""

    media_id: str
    signed_url: str


class EntitySignedUrls(TypedDict):
    """Signed URLs for every media object of an entity."""

    entity_type: str
    entity_id: str
    expires_in: int
    items: List[SignedUrlItem]  # noqa: UP006


class APIError(TypedDict):
    """Error body returned by the JSON endpoints."""

    error: str


JSONDict = Dict[str, Any]  # noqa: UP006
