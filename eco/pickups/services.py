"""Service layer for pickup requests, subscriptions and collection."""

from __future__ import annotations

import datetime
import secrets
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from eco.constants import (
    CADENCES,
    DROP_POINTS,
    EARNINGS_LEDGER,
    FULFILLMENT_MODES,
    MATERIALS,
    MAX_ITEMS_PER_REQUEST,
    MAX_QTY_PER_ITEM,
    MODE_DOORSTEP,
    MODE_DROP_POINT,
    NOTIFICATION_PICKUP_ACCEPTED,
    NOTIFICATION_RECEIPT_READY,
    PICKUP_PRIVATE,
    PICKUP_PRIVATE_DOC,
    PICKUP_REQUESTS,
    PICKUP_TRANSITIONS,
    POSTS,
    PRICING_RULES,
    RECEIPT_CODE_PREFIX,
    RECEIPTS,
    ROLE_OPERATOR,
    ROUTE_WINDOWS,
    STATUS_ACCEPTED,
    STATUS_COLLECTED,
    STATUS_EN_ROUTE,
    STATUS_OPEN,
    SUBSCRIPTION_ACTIVE,
    SUBSCRIPTION_PAUSED,
    SUBSCRIPTIONS,
    TRANSPARENCY_WEEKS,
    UNITS,
)
from eco.core.types import PickupItem, PickupRequest
from eco.errors import Forbidden, NotFoundError, ValidationError
from eco.media.services import MediaService
from eco.notifications.services import NotificationService
from eco.utils import doc_to_dict, docs_to_list, new_id, utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.transaction import Transaction
    from werkzeug.datastructures import FileStorage


def make_receipt_code() -> str:
    """``ECO-`` followed by eight uppercase hex digits."""
    return f"{RECEIPT_CODE_PREFIX}{secrets.token_hex(4).upper()}"


def clean_items(raw_items: list[dict[str, Any]]) -> list[PickupItem]:
    """Validate pickup lines; rows without a quantity are dropped."""
    items: list[PickupItem] = []
    for raw in raw_items:
        qty = raw.get("qty")
        if qty in (None, "", 0):
            continue
        try:
            qty = int(qty)
        except (TypeError, ValueError) as e:
            raise ValidationError("Quantidade inválida.") from e
        if not 1 <= qty <= MAX_QTY_PER_ITEM:
            raise ValidationError(f"Quantidade deve ficar entre 1 e {MAX_QTY_PER_ITEM}.")
        if raw.get("material") not in MATERIALS:
            raise ValidationError("Material inválido.")
        if raw.get("unit") not in UNITS:
            raise ValidationError("Unidade inválida.")
        items.append({"material": raw["material"], "unit": raw["unit"], "qty": qty})
    if not items:
        raise ValidationError("Adicione pelo menos um item.")
    if len(items) > MAX_ITEMS_PER_REQUEST:
        raise ValidationError(f"Máximo de {MAX_ITEMS_PER_REQUEST} itens por pedido.")
    return items


def price_items(rules: list[dict[str, Any]], items: list[PickupItem]) -> int:
    """Total in cents for the items, using the active rule per material/unit."""
    prices = {
        (r.get("material_kind"), r.get("unit_kind")): int(r.get("amount_cents") or 0)
        for r in rules
        if r.get("active")
    }
    return sum(
        prices.get((item["material"], item["unit"]), 0) * int(item["qty"])
        for item in items
    )


class PickupService:
    """Service class for pickup-related operations."""

    @staticmethod
    def create_request(
        db: Client,
        user_id: str,
        neighborhood_id: str | None,
        fulfillment_mode: str,
        raw_items: list[dict[str, Any]],
        notes: str = "",
        drop_point_id: str | None = None,
        address_full: str | None = None,
        contact_phone: str | None = None,
    ) -> str:
        """Create an open pickup request; doorstep requests keep a private address."""
        if not neighborhood_id:
            raise ValidationError("Complete seu perfil com bairro para continuar.")
        if fulfillment_mode not in FULFILLMENT_MODES:
            raise ValidationError("Modo inválido.")
        items = clean_items(raw_items)

        if fulfillment_mode == MODE_DROP_POINT:
            if not drop_point_id:
                raise ValidationError("Selecione um Ponto ECO.")
            if not db.collection(DROP_POINTS).document(drop_point_id).get().exists:
                raise NotFoundError("Ponto de entrega não encontrado.")
        else:
            drop_point_id = None
            if not (address_full or "").strip() or not (contact_phone or "").strip():
                raise ValidationError("Endereço e telefone são obrigatórios.")

        request_id = new_id()
        request_ref = db.collection(PICKUP_REQUESTS).document(request_id)
        request_ref.set(
            {
                "created_by": user_id,
                "neighborhood_id": neighborhood_id,
                "status": STATUS_OPEN,
                "fulfillment_mode": fulfillment_mode,
                "drop_point_id": drop_point_id,
                "notes": (notes or "").strip(),
                "items": items,
                "assigned_cooperado": None,
                "receipt_id": None,
                "created_at": utcnow(),
            }
        )
        if fulfillment_mode == MODE_DOORSTEP:
            request_ref.collection(PICKUP_PRIVATE).document(PICKUP_PRIVATE_DOC).set(
                {
                    "address_full": address_full.strip(),  # type: ignore[union-attr]
                    "contact_phone": contact_phone.strip(),  # type: ignore[union-attr]
                }
            )
        return request_id

    @staticmethod
    def get_request(db: Client, request_id: str) -> PickupRequest | None:
        return doc_to_dict(  # type: ignore[return-value]
            db.collection(PICKUP_REQUESTS).document(request_id).get()
        )

    @staticmethod
    def get_private_address(db: Client, request_id: str) -> dict[str, Any] | None:
        return doc_to_dict(
            db.collection(PICKUP_REQUESTS)
            .document(request_id)
            .collection(PICKUP_PRIVATE)
            .document(PICKUP_PRIVATE_DOC)
            .get()
        )

    @staticmethod
    def list_for_resident(db: Client, user_id: str) -> list[PickupRequest]:
        """The resident's requests, newest first."""
        docs = (
            db.collection(PICKUP_REQUESTS)
            .where(filter=firestore.FieldFilter("created_by", "==", user_id))
            .order_by("created_at", direction=firestore.Query.DESCENDING)
            .stream()
        )
        return docs_to_list(docs)  # type: ignore[return-value]

    @staticmethod
    def list_open(db: Client, neighborhood_id: str) -> list[PickupRequest]:
        """Open requests of a neighborhood, oldest first."""
        docs = (
            db.collection(PICKUP_REQUESTS)
            .where(filter=firestore.FieldFilter("status", "==", STATUS_OPEN))
            .where(
                filter=firestore.FieldFilter("neighborhood_id", "==", neighborhood_id)
            )
            .order_by("created_at")
            .stream()
        )
        return docs_to_list(docs)  # type: ignore[return-value]

    @staticmethod
    def list_assigned(db: Client, cooperado_id: str) -> list[PickupRequest]:
        """Requests the cooperado accepted and has not collected yet."""
        docs = (
            db.collection(PICKUP_REQUESTS)
            .where(filter=firestore.FieldFilter("assigned_cooperado", "==", cooperado_id))
            .stream()
        )
        active = [
            r
            for r in docs_to_list(docs)
            if r.get("status") in (STATUS_ACCEPTED, STATUS_EN_ROUTE)
        ]
        return sorted(active, key=lambda r: r["created_at"])  # type: ignore[return-value]

    @staticmethod
    def accept(
        db: Client,
        request_id: str,
        actor_id: str,
        actor_role: str | None,
        actor_neighborhood_id: str | None,
    ) -> None:
        """``open -> accepted``; the request is assigned to the actor.

        The status check and the write run in one transaction, so of two
        concurrent accepts only one succeeds.
        """
        ref = db.collection(PICKUP_REQUESTS).document(request_id)

        @firestore.transactional
        def claim(transaction: Transaction) -> dict[str, Any]:
            pickup = doc_to_dict(ref.get(transaction=transaction))
            if pickup is None:
                raise NotFoundError("Pedido não encontrado.")
            if pickup.get("status") != STATUS_OPEN:
                raise ValidationError("Este pedido já foi aceito.")
            if (
                actor_role != ROLE_OPERATOR
                and pickup.get("neighborhood_id") != actor_neighborhood_id
            ):
                raise Forbidden("Pedido de outro bairro.")
            transaction.update(
                ref,
                {
                    "status": STATUS_ACCEPTED,
                    "assigned_cooperado": actor_id,
                    "accepted_at": utcnow(),
                },
            )
            return pickup

        pickup = claim(db.transaction())
        NotificationService.notify(
            db,
            pickup["created_by"],
            NOTIFICATION_PICKUP_ACCEPTED,
            "Seu pedido foi aceito",
            "Uma cooperada vai passar na próxima janela.",
            "/pedidos",
        )

    @staticmethod
    def check_transition(
        pickup: dict[str, Any] | None,
        actor_id: str,
        actor_role: str | None,
        target_status: str,
    ) -> dict[str, Any]:
        """Raise unless the actor may move ``pickup`` to ``target_status``."""
        if pickup is None:
            raise NotFoundError("Pedido não encontrado.")
        current = pickup.get("status")
        if target_status == STATUS_ACCEPTED or PICKUP_TRANSITIONS.get(current) != target_status:
            raise ValidationError(f"Transição inválida: {current} -> {target_status}.")
        if actor_role != ROLE_OPERATOR and pickup.get("assigned_cooperado") != actor_id:
            raise Forbidden("Apenas a cooperada responsável pode avançar este pedido.")
        return pickup

    @staticmethod
    def advance(
        db: Client,
        request_id: str,
        actor_id: str,
        actor_role: str | None,
        target_status: str,
        final_notes: str = "",
        photo: FileStorage | None = None,
    ) -> str | None:
        """Move an accepted request forward; returns the receipt id on collection."""
        ref = db.collection(PICKUP_REQUESTS).document(request_id)
        pickup = PickupService.check_transition(
            doc_to_dict(ref.get()), actor_id, actor_role, target_status
        )

        if target_status == STATUS_EN_ROUTE:

            @firestore.transactional
            def start_route(transaction: Transaction) -> None:
                PickupService.check_transition(
                    doc_to_dict(ref.get(transaction=transaction)),
                    actor_id,
                    actor_role,
                    STATUS_EN_ROUTE,
                )
                transaction.update(ref, {"status": STATUS_EN_ROUTE})

            start_route(db.transaction())
            return None
        return PickupService._collect(db, pickup, actor_id, actor_role, final_notes, photo)

    @staticmethod
    def _collect(
        db: Client,
        pickup: dict[str, Any],
        actor_id: str,
        actor_role: str | None,
        final_notes: str,
        photo: FileStorage | None,
    ) -> str:
        """Close a request: receipt, photo record, ledger, status, post, notification.

        The photo is uploaded before anything is written; the records then
        commit together in one transaction that re-checks the status, so a
        failed upload leaves nothing behind and a request gets one receipt.
        """
        cooperado_id = pickup.get("assigned_cooperado") or actor_id
        receipt_id = new_id()
        rules = docs_to_list(
            db.collection(PRICING_RULES)
            .where(filter=firestore.FieldFilter("active", "==", True))
            .stream()
        )
        total_cents = price_items(rules, pickup.get("items") or [])
        media = None
        if photo is not None and photo.filename:
            media = MediaService.store_photo(actor_id, "receipt", receipt_id, photo)

        request_ref = db.collection(PICKUP_REQUESTS).document(pickup["id"])

        @firestore.transactional
        def record(transaction: Transaction) -> None:
            current = PickupService.check_transition(
                doc_to_dict(request_ref.get(transaction=transaction)),
                actor_id,
                actor_role,
                STATUS_COLLECTED,
            )
            now = utcnow()
            transaction.set(
                db.collection(RECEIPTS).document(receipt_id),
                {
                    "request_id": current["id"],
                    "cooperado_id": cooperado_id,
                    "receipt_code": make_receipt_code(),
                    "final_notes": (final_notes or "").strip() or None,
                    "created_at": now,
                },
            )
            if media is not None:
                MediaService.record_media(db, media, writer=transaction)
            transaction.set(
                db.collection(EARNINGS_LEDGER).document(new_id()),
                {
                    "cooperado_id": cooperado_id,
                    "receipt_id": receipt_id,
                    "neighborhood_id": current.get("neighborhood_id"),
                    "total_cents": total_cents,
                    "created_at": now,
                },
            )
            transaction.update(
                request_ref,
                {"status": STATUS_COLLECTED, "receipt_id": receipt_id, "collected_at": now},
            )
            transaction.set(
                db.collection(POSTS).document(new_id()),
                {
                    "created_by": actor_id,
                    "neighborhood_id": current.get("neighborhood_id"),
                    "kind": "recibo",
                    "title": "Coleta concluída",
                    "body": "Recibo de coleta publicado.",
                    "receipt_id": receipt_id,
                    "created_at": now,
                },
            )
            NotificationService.notify(
                db,
                current["created_by"],
                NOTIFICATION_RECEIPT_READY,
                "Seu recibo está pronto",
                "A coleta foi concluída e o recibo já pode ser conferido.",
                f"/recibos/{receipt_id}",
                writer=transaction,
            )

        record(db.transaction())
        return receipt_id

    @staticmethod
    def weekly_summary(
        db: Client,
        neighborhood_id: str,
        now: datetime.datetime | None = None,
        weeks: int = TRANSPARENCY_WEEKS,
    ) -> list[dict[str, Any]]:
        """Per-week counts of a neighborhood's requests and collections, newest first.

        Weeks start on Monday (UTC). Only counts leave this function, and weeks
        without any activity are skipped.
        """
        today = (now or utcnow()).date()
        first_week = today - datetime.timedelta(days=today.weekday() + 7 * (weeks - 1))
        rows = {
            first_week + datetime.timedelta(weeks=i): {
                "requests_count": 0,
                "drop_point_count": 0,
                "receipts_count": 0,
            }
            for i in range(weeks)
        }

        def week_of(moment: Any) -> datetime.date | None:
            if not isinstance(moment, datetime.datetime):
                return None
            day = moment.date()
            return day - datetime.timedelta(days=day.weekday())

        docs = (
            db.collection(PICKUP_REQUESTS)
            .where(
                filter=firestore.FieldFilter("neighborhood_id", "==", neighborhood_id)
            )
            .stream()
        )
        for pickup in docs_to_list(docs):
            created = rows.get(week_of(pickup.get("created_at")))  # type: ignore[arg-type]
            if created is not None:
                created["requests_count"] += 1
                if pickup.get("fulfillment_mode") == MODE_DROP_POINT:
                    created["drop_point_count"] += 1
            if pickup.get("status") == STATUS_COLLECTED:
                collected = rows.get(week_of(pickup.get("collected_at")))  # type: ignore[arg-type]
                if collected is not None:
                    collected["receipts_count"] += 1

        return [
            {
                "week_start": week_start,
                "week_end": week_start + datetime.timedelta(days=6),
                **counts,
            }
            for week_start, counts in sorted(rows.items(), reverse=True)
            if counts["requests_count"] or counts["receipts_count"]
        ]

    @staticmethod
    def get_drop_point(db: Client, drop_point_id: str) -> dict[str, Any] | None:
        return doc_to_dict(db.collection(DROP_POINTS).document(drop_point_id).get())

    @staticmethod
    def list_drop_points(db: Client, neighborhood_id: str) -> list[dict[str, Any]]:
        """Active drop points of a neighborhood."""
        docs = (
            db.collection(DROP_POINTS)
            .where(
                filter=firestore.FieldFilter("neighborhood_id", "==", neighborhood_id)
            )
            .where(filter=firestore.FieldFilter("active", "==", True))
            .stream()
        )
        return sorted(docs_to_list(docs), key=lambda d: d.get("name") or "")

    @staticmethod
    def list_windows(db: Client, neighborhood_id: str) -> list[dict[str, Any]]:
        """Active route windows ordered by weekday and start time."""
        docs = (
            db.collection(ROUTE_WINDOWS)
            .where(
                filter=firestore.FieldFilter("neighborhood_id", "==", neighborhood_id)
            )
            .where(filter=firestore.FieldFilter("active", "==", True))
            .stream()
        )
        return sorted(
            docs_to_list(docs),
            key=lambda w: (w.get("weekday", 0), w.get("start_time") or ""),
        )


class SubscriptionService:
    """Recurring pickup subscriptions. Occurrences are not generated here."""

    @staticmethod
    def create(
        db: Client,
        user_id: str,
        neighborhood_id: str | None,
        fulfillment_mode: str,
        cadence: str,
        preferred_weekday: int,
        preferred_window_id: str | None = None,
        drop_point_id: str | None = None,
        notes: str = "",
    ) -> str:
        if not neighborhood_id:
            raise ValidationError("Complete seu perfil com bairro para continuar.")
        if fulfillment_mode not in FULFILLMENT_MODES:
            raise ValidationError("Modo inválido.")
        if fulfillment_mode == MODE_DROP_POINT and not drop_point_id:
            raise ValidationError("Selecione um Ponto ECO para recorrência.")
        if cadence not in CADENCES:
            raise ValidationError("Frequência inválida.")
        if not 0 <= int(preferred_weekday) <= 6:
            raise ValidationError("Dia da semana inválido.")

        subscription_id = new_id()
        db.collection(SUBSCRIPTIONS).document(subscription_id).set(
            {
                "created_by": user_id,
                "neighborhood_id": neighborhood_id,
                "fulfillment_mode": fulfillment_mode,
                "drop_point_id": (
                    drop_point_id if fulfillment_mode == MODE_DROP_POINT else None
                ),
                "cadence": cadence,
                "preferred_weekday": int(preferred_weekday),
                "preferred_window_id": preferred_window_id or None,
                "notes": (notes or "").strip() or None,
                "status": SUBSCRIPTION_ACTIVE,
                "created_at": utcnow(),
            }
        )
        return subscription_id

    @staticmethod
    def list_for_user(db: Client, user_id: str) -> list[dict[str, Any]]:
        docs = (
            db.collection(SUBSCRIPTIONS)
            .where(filter=firestore.FieldFilter("created_by", "==", user_id))
            .order_by("created_at", direction=firestore.Query.DESCENDING)
            .stream()
        )
        return docs_to_list(docs)

    @staticmethod
    def toggle(db: Client, user_id: str, subscription_id: str) -> str:
        """Pause an active subscription or resume a paused one."""
        ref = db.collection(SUBSCRIPTIONS).document(subscription_id)
        subscription = doc_to_dict(ref.get())
        if subscription is None:
            raise NotFoundError("Recorrência não encontrada.")
        if subscription.get("created_by") != user_id:
            raise Forbidden("Esta recorrência não é sua.")
        next_status = (
            SUBSCRIPTION_PAUSED
            if subscription.get("status") == SUBSCRIPTION_ACTIVE
            else SUBSCRIPTION_ACTIVE
        )
        ref.update({"status": next_status})
        return next_status
