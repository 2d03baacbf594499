"""Service layer for receipts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from eco.constants import PICKUP_REQUESTS, RECEIPTS, ROLE_OPERATOR
from eco.errors import Forbidden, NotFoundError
from eco.profile.services import ProfileService
from eco.utils import doc_to_dict, docs_to_list

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


class ReceiptService:
    """Service class for receipt lookups."""

    @staticmethod
    def get_receipt(db: Client, receipt_id: str) -> dict[str, Any] | None:
        return doc_to_dict(db.collection(RECEIPTS).document(receipt_id).get())

    @staticmethod
    def get_for_viewer(
        db: Client, receipt_id: str, viewer_id: str, viewer_role: str | None
    ) -> dict[str, Any]:
        """Receipt with its request and cooperado; resident, cooperado or operator only."""
        receipt = ReceiptService.get_receipt(db, receipt_id)
        if receipt is None:
            raise NotFoundError("Recibo não encontrado.")
        pickup = None
        if receipt.get("request_id"):
            pickup = doc_to_dict(
                db.collection(PICKUP_REQUESTS).document(receipt["request_id"]).get()
            )
        allowed = {receipt.get("cooperado_id")}
        if pickup:
            allowed.update({pickup.get("created_by"), pickup.get("assigned_cooperado")})
        if viewer_role != ROLE_OPERATOR and viewer_id not in allowed:
            raise Forbidden("Você não tem acesso a este recibo.")
        cooperado = ProfileService.get_profile(db, receipt.get("cooperado_id") or "")
        return {"receipt": receipt, "request": pickup, "cooperado": cooperado}

    @staticmethod
    def list_for_cooperado(db: Client, cooperado_id: str) -> list[dict[str, Any]]:
        docs = (
            db.collection(RECEIPTS)
            .where(filter=firestore.FieldFilter("cooperado_id", "==", cooperado_id))
            .order_by("created_at", direction=firestore.Query.DESCENDING)
            .stream()
        )
        return docs_to_list(docs)
