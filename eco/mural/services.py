"""Service layer for the community mural."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from eco.constants import MURAL_LIMIT, POST_KINDS, POSTS, RECEIPTS
from eco.core.types import Post
from eco.errors import NotFoundError, ValidationError
from eco.media.services import MediaService
from eco.utils import docs_to_list, new_id, utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from werkzeug.datastructures import FileStorage

POST_KIND_LABELS = {
    "registro": "Registro",
    "recibo": "Recibo",
    "mutirao": "Mutirão",
    "chamado": "Chamado",
    "ponto_critico": "Ponto crítico",
    "transparencia": "Transparência",
}


class MuralService:
    """Service class for mural posts."""

    @staticmethod
    def list_posts(
        db: Client, neighborhood_id: str | None = None, limit: int = MURAL_LIMIT
    ) -> list[Post]:
        """Newest posts, scoped to a neighborhood when one is given."""
        query: Any = db.collection(POSTS)
        if neighborhood_id:
            query = query.where(
                filter=firestore.FieldFilter("neighborhood_id", "==", neighborhood_id)
            )
        docs = (
            query.order_by("created_at", direction=firestore.Query.DESCENDING)
            .limit(limit)
            .stream()
        )
        return docs_to_list(docs)  # type: ignore[return-value]

    @staticmethod
    def create_post(
        db: Client,
        user_id: str,
        neighborhood_id: str | None,
        kind: str,
        title: str,
        body: str,
        receipt_id: str | None = None,
        photo: FileStorage | None = None,
    ) -> str:
        if not neighborhood_id:
            raise ValidationError("Complete seu perfil com bairro para continuar.")
        if kind not in POST_KINDS:
            raise ValidationError("Tipo de post inválido.")
        if not (body or "").strip():
            raise ValidationError("Escreva algo no post.")
        if receipt_id and not db.collection(RECEIPTS).document(receipt_id).get().exists:
            raise NotFoundError("Recibo não encontrado.")

        post_id = new_id()
        media = None
        if photo is not None and photo.filename:
            media = MediaService.store_photo(user_id, "post", post_id, photo)

        batch = db.batch()
        batch.set(
            db.collection(POSTS).document(post_id),
            {
                "created_by": user_id,
                "neighborhood_id": neighborhood_id,
                "kind": kind,
                "title": (title or "").strip(),
                "body": body.strip(),
                "receipt_id": receipt_id or None,
                "created_at": utcnow(),
            },
        )
        if media is not None:
            MediaService.record_media(db, media, writer=batch)
        batch.commit()
        return post_id
