"""Media access control, V4 signed URLs and proof-photo uploads."""

from __future__ import annotations

import io
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore, storage
from flask import current_app
from PIL import Image, ImageOps, UnidentifiedImageError

from eco.constants import (
    DEFAULT_MEDIA_BUCKET,
    IMAGE_JPEG_QUALITY,
    IMAGE_MAX_DIMENSION,
    MEDIA_ENTITY_TYPES,
    MEDIA_OBJECTS,
    PICKUP_REQUESTS,
    PROFILES,
    RECEIPTS,
    ROLE_OPERATOR,
)
from eco.core.types import EntitySignedUrls, MediaObject
from eco.errors import (
    AuthRequired,
    Forbidden,
    NotFoundError,
    UpstreamFailure,
    ValidationError,
)
from eco.utils import doc_to_dict, docs_to_list, is_uuid, new_id, utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from werkzeug.datastructures import FileStorage

MIN_EXPIRES_IN = 60
MAX_EXPIRES_IN = 300
DEFAULT_EXPIRES_IN = 120

ENTITY_FOLDERS = {"receipt": "receipts", "post": "posts"}


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def parse_expires_in(raw: Any) -> int:
    """Integer seconds clamped to [60, 300]; anything else falls back to 120."""
    if raw is None or raw == "":
        return DEFAULT_EXPIRES_IN
    if isinstance(raw, bool):
        return DEFAULT_EXPIRES_IN
    if isinstance(raw, int):
        value = raw
    else:
        try:
            value = int(str(raw).strip())
        except ValueError:
            return DEFAULT_EXPIRES_IN
    return clamp(value, MIN_EXPIRES_IN, MAX_EXPIRES_IN)


def compress_image(data: bytes) -> bytes:
    """Shrink an image to fit 1200x1200 and re-encode it as JPEG (quality 80)."""
    try:
        image = Image.open(io.BytesIO(data))
        image = ImageOps.exif_transpose(image)
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("Arquivo de imagem inválido.") from e
    if image.mode != "RGB":
        image = image.convert("RGB")
    image.thumbnail((IMAGE_MAX_DIMENSION, IMAGE_MAX_DIMENSION))
    output = io.BytesIO()
    image.save(output, format="JPEG", quality=IMAGE_JPEG_QUALITY, optimize=True)
    return output.getvalue()


class MediaService:
    """Service class for private media objects."""

    @staticmethod
    def get_actor(db: Client, user_id: str) -> dict[str, Any]:
        """Return ``{user_id, role}`` for a verified user; the profile must exist."""
        profile = doc_to_dict(db.collection(PROFILES).document(user_id).get())
        if profile is None:
            raise AuthRequired("Invalid auth token or missing profile.")
        return {"user_id": user_id, "role": profile.get("role")}

    @staticmethod
    def can_access_receipt(db: Client, actor: dict[str, Any], receipt_id: str) -> bool:
        """Receipt cooperado, request creator or assigned cooperado (or operator)."""
        if actor.get("role") == ROLE_OPERATOR:
            return True
        receipt = doc_to_dict(db.collection(RECEIPTS).document(receipt_id).get())
        if receipt is None:
            return False
        user_id = actor["user_id"]
        if receipt.get("cooperado_id") == user_id:
            return True
        request_id = receipt.get("request_id")
        if not request_id:
            return False
        pickup = doc_to_dict(db.collection(PICKUP_REQUESTS).document(request_id).get())
        if pickup is None:
            return False
        return user_id in (pickup.get("created_by"), pickup.get("assigned_cooperado"))

    @staticmethod
    def can_access(db: Client, actor: dict[str, Any], media: MediaObject) -> bool:
        if actor.get("role") == ROLE_OPERATOR:
            return True
        if media.get("owner_id") == actor["user_id"]:
            return True
        if media.get("entity_type") == "receipt":
            return MediaService.can_access_receipt(db, actor, media["entity_id"])
        # Post media: owner and operators only.
        return False

    @staticmethod
    def sign(media: MediaObject, expires_in: int) -> str:
        """Generate a V4 signed GET URL for a media object."""
        try:
            bucket = storage.bucket(media.get("bucket") or DEFAULT_MEDIA_BUCKET)
            blob = bucket.blob(media["path"])
            return blob.generate_signed_url(
                expiration=timedelta(seconds=expires_in), version="v4", method="GET"
            )
        except Exception as e:
            current_app.logger.error(f"Error signing media {media.get('id')}: {e}")
            raise UpstreamFailure("Failed to generate signed URL.") from e

    @staticmethod
    def resolve_media(
        db: Client, user_id: str, media_id: str, expires_in: int
    ) -> dict[str, Any]:
        """Signed URL for one media object the user may see."""
        if not is_uuid(media_id):
            raise ValidationError("Invalid media_id.")
        actor = MediaService.get_actor(db, user_id)
        media = doc_to_dict(db.collection(MEDIA_OBJECTS).document(media_id).get())
        if media is None:
            raise NotFoundError("Media not found.")
        if not MediaService.can_access(db, actor, media):  # type: ignore[arg-type]
            raise Forbidden("Forbidden.")
        expires_in = parse_expires_in(expires_in)
        return {
            "media_id": media["id"],
            "entity_type": media.get("entity_type"),
            "entity_id": media.get("entity_id"),
            "expires_in": expires_in,
            "signed_url": MediaService.sign(media, expires_in),  # type: ignore[arg-type]
        }

    @staticmethod
    def list_entity_media(
        db: Client, entity_type: str, entity_id: str
    ) -> list[MediaObject]:
        docs = (
            db.collection(MEDIA_OBJECTS)
            .where(filter=firestore.FieldFilter("entity_type", "==", entity_type))
            .where(filter=firestore.FieldFilter("entity_id", "==", entity_id))
            .order_by("created_at")
            .stream()
        )
        return docs_to_list(docs)  # type: ignore[return-value]

    @staticmethod
    def resolve_entity(
        db: Client, user_id: str, entity_type: str, entity_id: str, expires_in: int
    ) -> EntitySignedUrls:
        """Signed URLs for every media object of an entity the user may see.

        Each row is checked on its own. Rows that exist but are all refused
        raise ``Forbidden``; an entity without media yields an empty list.
        """
        if entity_type not in MEDIA_ENTITY_TYPES or not is_uuid(entity_id):
            raise ValidationError(
                "Provide media_id OR entity_type + entity_id (uuid)."
            )
        actor = MediaService.get_actor(db, user_id)
        rows = MediaService.list_entity_media(db, entity_type, entity_id)
        allowed = [row for row in rows if MediaService.can_access(db, actor, row)]
        if rows and not allowed:
            raise Forbidden("Forbidden.")
        expires_in = parse_expires_in(expires_in)
        return {
            "entity_type": entity_type,
            "entity_id": entity_id,
            "expires_in": expires_in,
            "items": [
                {"media_id": row["id"], "signed_url": MediaService.sign(row, expires_in)}
                for row in allowed
            ],
        }

    @staticmethod
    def store_photo(
        owner_id: str,
        entity_type: str,
        entity_id: str,
        file_storage: FileStorage,
    ) -> MediaObject:
        """Compress an uploaded photo and store it privately.

        Only the blob is written; the returned record (with its id) still has
        to be saved with ``record_media``.
        """
        if entity_type not in ENTITY_FOLDERS:
            raise ValidationError("Invalid entity_type.")
        data = compress_image(file_storage.read())
        path = f"{ENTITY_FOLDERS[entity_type]}/{entity_id}/{new_id()}.jpg"
        bucket_name = current_app.config.get("ECO_MEDIA_BUCKET") or DEFAULT_MEDIA_BUCKET
        try:
            blob = storage.bucket(bucket_name).blob(path)
            blob.upload_from_string(data, content_type="image/jpeg")
        except Exception as e:
            current_app.logger.error(f"Error uploading media to {path}: {e}")
            raise UpstreamFailure("Falha ao enviar a foto.") from e

        return {  # type: ignore[return-value]
            "id": new_id(),
            "bucket": bucket_name,
            "path": path,
            "owner_id": owner_id,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "mime": "image/jpeg",
            "bytes": len(data),
            "created_at": utcnow(),
        }

    @staticmethod
    def record_media(db: Client, media: MediaObject, writer: Any = None) -> None:
        """Save a stored photo's record; inside ``writer`` when one is given."""
        data = {key: value for key, value in media.items() if key != "id"}
        ref = db.collection(MEDIA_OBJECTS).document(media["id"])
        if writer is None:
            ref.set(data)
        else:
            writer.set(ref, data)
        current_app.logger.info(f"Stored media {media['id']} at {media['path']}")

    @staticmethod
    def upload_media(
        db: Client,
        owner_id: str,
        entity_type: str,
        entity_id: str,
        file_storage: FileStorage,
    ) -> MediaObject:
        """Store a photo and record it right away."""
        media = MediaService.store_photo(owner_id, entity_type, entity_id, file_storage)
        MediaService.record_media(db, media)
        return media
