"""Service layer for admin-related operations."""

from __future__ import annotations

import csv
import datetime
import io
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from firebase_admin import firestore

from eco.constants import (
    AUDIT_LOG,
    DROP_POINTS,
    EARNING_ADJUSTMENTS,
    EARNINGS_LEDGER,
    EARNINGS_RECENT_DAYS,
    FIRESTORE_BATCH_LIMIT,
    MATERIALS,
    NEIGHBORHOODS,
    PAYOUT_PERIODS,
    PAYOUTS,
    PICKUP_REQUESTS,
    PRICING_RULES,
    PROFILES,
    RECEIPTS,
    ROLE_COOPERADO,
    ROLE_OPERATOR,
    ROLES,
    ROUTE_WINDOWS,
    STATUS_OPEN,
    SUBSCRIPTIONS,
)
from eco.errors import Forbidden, InternalError, NotFoundError, ValidationError
from eco.utils import day_bounds, doc_to_dict, docs_to_list, is_uuid, new_id, utcnow

BOM = "\ufeff"
CSV_COLUMNS = (
    "cooperado_display_name",
    "cooperado_id",
    "period_start",
    "period_end",
    "ledger_sum_cents",
    "adjustments_sum_cents",
    "payout_total_cents",
    "payout_status",
    "payout_reference",
)
DEFAULT_PAYOUT_REFERENCE = "MANUAL"

PERIOD_OPEN = "open"
PERIOD_CLOSED = "closed"
PERIOD_PAID = "paid"
PAYOUT_PENDING = "pending"
PAYOUT_PAID = "paid"


def csv_line(values: list[Any]) -> str:
    """One CSV record without its terminator (``QUOTE_MINIMAL``, ``None`` as empty).

    Writing with a ``\\r\\n`` terminator makes the writer quote fields holding
    either a bare ``\\r`` or ``\\n``.
    """
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\r\n", quoting=csv.QUOTE_MINIMAL).writerow(values)
    return buffer.getvalue()[: -len("\r\n")]


def build_csv(rows: list[dict[str, Any]]) -> str:
    """BOM-prefixed CSV in the fixed column order, rows sorted by cooperado id."""
    lines = [csv_line(list(CSV_COLUMNS))]
    for row in sorted(rows, key=lambda r: r["cooperado_id"]):
        lines.append(csv_line([row.get(col) for col in CSV_COLUMNS]))
    return BOM + "\n".join(lines)


def export_filename(period: dict[str, Any]) -> str:
    start = period["period_start"].replace("-", "")
    end = period["period_end"].replace("-", "")
    return f"payouts_{start}_{end}.csv"


def sum_by_cooperado(rows: list[dict[str, Any]], field: str) -> dict[str, int]:
    totals: dict[str, int] = {}
    for row in rows:
        cooperado_id = row.get("cooperado_id")
        if not cooperado_id:
            continue
        totals[cooperado_id] = totals.get(cooperado_id, 0) + int(row.get(field) or 0)
    return totals


class AuditService:
    """Append-only admin audit trail."""

    @staticmethod
    def record(
        db: Any,
        actor_id: str,
        action: str,
        target_type: str,
        target_id: str,
        meta: dict[str, Any] | None = None,
    ) -> str:
        entry_id = new_id()
        db.collection(AUDIT_LOG).document(entry_id).set(
            {
                "actor_id": actor_id,
                "action": action,
                "target_type": target_type,
                "target_id": target_id,
                "meta": meta or {},
                "created_at": utcnow(),
            }
        )
        return entry_id

    @staticmethod
    def list_recent(db: Any, limit: int = 20) -> list[dict[str, Any]]:
        docs = (
            db.collection(AUDIT_LOG)
            .order_by("created_at", direction=firestore.Query.DESCENDING)
            .limit(limit)
            .stream()
        )
        return docs_to_list(docs)


class PayoutService:
    """Payout periods, per-cooperado payouts and earning adjustments."""

    @staticmethod
    def get_period(db: Any, period_id: str) -> dict[str, Any] | None:
        return doc_to_dict(db.collection(PAYOUT_PERIODS).document(period_id).get())

    @staticmethod
    def require_period(db: Any, period_id: str) -> dict[str, Any]:
        period = PayoutService.get_period(db, period_id)
        if period is None:
            raise NotFoundError("Period not found.")
        return period

    @staticmethod
    def list_periods(db: Any) -> list[dict[str, Any]]:
        """Periods, newest first."""
        docs = (
            db.collection(PAYOUT_PERIODS)
            .order_by("period_start", direction=firestore.Query.DESCENDING)
            .stream()
        )
        return docs_to_list(docs)

    @staticmethod
    def fetch_payouts(db: Any, period_id: str) -> list[dict[str, Any]]:
        docs = (
            db.collection(PAYOUTS)
            .where(filter=firestore.FieldFilter("period_id", "==", period_id))
            .stream()
        )
        return sorted(docs_to_list(docs), key=lambda p: p.get("cooperado_id") or "")

    @staticmethod
    def fetch_ledger(db: Any, period: dict[str, Any]) -> list[dict[str, Any]]:
        """Ledger rows created within the period's days (UTC, inclusive)."""
        start, end = day_bounds(period["period_start"], period["period_end"])
        docs = (
            db.collection(EARNINGS_LEDGER)
            .where(filter=firestore.FieldFilter("created_at", ">=", start))
            .where(filter=firestore.FieldFilter("created_at", "<=", end))
            .stream()
        )
        return docs_to_list(docs)

    @staticmethod
    def fetch_adjustments(db: Any, period_id: str) -> list[dict[str, Any]]:
        docs = (
            db.collection(EARNING_ADJUSTMENTS)
            .where(filter=firestore.FieldFilter("period_id", "==", period_id))
            .stream()
        )
        return docs_to_list(docs)

    @staticmethod
    def display_names(db: Any, user_ids: list[str]) -> dict[str, str]:
        names = {}
        for user_id in dict.fromkeys(user_ids):
            profile = doc_to_dict(db.collection(PROFILES).document(user_id).get())
            names[user_id] = (profile or {}).get("display_name") or ""
        return names

    @staticmethod
    def create_period(db: Any, actor_id: str, period_start: str, period_end: str) -> str:
        """Open a new period; dates are ISO ``YYYY-MM-DD`` and start <= end."""
        try:
            start = datetime.date.fromisoformat(period_start)
            end = datetime.date.fromisoformat(period_end)
        except (TypeError, ValueError) as e:
            raise ValidationError("Datas inválidas.") from e
        if start > end:
            raise ValidationError("O início deve ser antes do fim.")
        period_id = new_id()
        db.collection(PAYOUT_PERIODS).document(period_id).set(
            {
                "period_start": start.isoformat(),
                "period_end": end.isoformat(),
                "status": PERIOD_OPEN,
                "created_by": actor_id,
                "created_at": utcnow(),
            }
        )
        AuditService.record(
            db,
            actor_id,
            "create_payout_period",
            "period",
            period_id,
            {"period_start": start.isoformat(), "period_end": end.isoformat()},
        )
        return period_id

    @staticmethod
    def close_period(db: Any, actor_id: str, period_id: str) -> int:
        """Compute one pending payout per cooperado (ledger + adjustments)."""
        period = PayoutService.require_period(db, period_id)
        if period.get("status") != PERIOD_OPEN:
            raise ValidationError("Apenas períodos abertos podem ser fechados.")

        ledger = sum_by_cooperado(PayoutService.fetch_ledger(db, period), "total_cents")
        adjustments = sum_by_cooperado(
            PayoutService.fetch_adjustments(db, period_id), "amount_cents"
        )
        cooperado_ids = sorted(set(ledger) | set(adjustments))

        batch = db.batch()
        operation_count = 0
        now = utcnow()
        for cooperado_id in cooperado_ids:
            batch.set(
                db.collection(PAYOUTS).document(new_id()),
                {
                    "period_id": period_id,
                    "cooperado_id": cooperado_id,
                    "total_cents": ledger.get(cooperado_id, 0)
                    + adjustments.get(cooperado_id, 0),
                    "status": PAYOUT_PENDING,
                    "payout_reference": None,
                    "created_at": now,
                },
            )
            operation_count += 1
            if operation_count >= FIRESTORE_BATCH_LIMIT:
                batch.commit()
                batch = db.batch()
                operation_count = 0
        batch.update(
            db.collection(PAYOUT_PERIODS).document(period_id),
            {"status": PERIOD_CLOSED, "closed_at": now},
        )
        batch.commit()

        AuditService.record(
            db,
            actor_id,
            "close_payout_period",
            "period",
            period_id,
            {"payouts": len(cooperado_ids)},
        )
        return len(cooperado_ids)

    @staticmethod
    def list_payouts(db: Any, period_id: str) -> list[dict[str, Any]]:
        payouts = PayoutService.fetch_payouts(db, period_id)
        names = PayoutService.display_names(db, [p["cooperado_id"] for p in payouts])
        for payout in payouts:
            payout["display_name"] = names.get(payout["cooperado_id"], "")
        return payouts

    @staticmethod
    def mark_paid(
        db: Any, actor_id: str, payout_id: str, reference: str | None = None
    ) -> str:
        """Mark a payout paid; the period is paid once all its payouts are."""
        ref = db.collection(PAYOUTS).document(payout_id)
        payout = doc_to_dict(ref.get())
        if payout is None:
            raise NotFoundError("Pagamento não encontrado.")
        if payout.get("status") == PAYOUT_PAID:
            raise ValidationError("Pagamento já marcado como pago.")
        reference = (reference or "").strip() or DEFAULT_PAYOUT_REFERENCE
        ref.update(
            {"status": PAYOUT_PAID, "payout_reference": reference, "paid_at": utcnow()}
        )

        period_id = payout["period_id"]
        remaining = [
            p
            for p in PayoutService.fetch_payouts(db, period_id)
            if p.get("status") != PAYOUT_PAID
        ]
        if not remaining:
            db.collection(PAYOUT_PERIODS).document(period_id).update(
                {"status": PERIOD_PAID}
            )
        AuditService.record(
            db,
            actor_id,
            "mark_payout_paid",
            "payout",
            payout_id,
            {"period_id": period_id, "payout_reference": reference},
        )
        return reference

    @staticmethod
    def add_adjustment(
        db: Any,
        actor_id: str,
        period_id: str,
        cooperado_id: str,
        amount_cents: Any,
        reason: str,
    ) -> str:
        """Record a manual credit or debit for a cooperado in an open period."""
        try:
            amount = int(amount_cents)
        except (TypeError, ValueError) as e:
            raise ValidationError("Valor deve ser um inteiro em centavos.") from e
        if amount == 0:
            raise ValidationError("Valor não pode ser zero.")
        if not (reason or "").strip():
            raise ValidationError("Informe o motivo do ajuste.")
        period = PayoutService.require_period(db, period_id)
        if period.get("status") != PERIOD_OPEN:
            raise ValidationError("Ajustes só em períodos abertos.")
        profile = doc_to_dict(db.collection(PROFILES).document(cooperado_id).get())
        if profile is None or profile.get("role") != ROLE_COOPERADO:
            raise NotFoundError("Cooperada não encontrada.")

        adjustment_id = new_id()
        db.collection(EARNING_ADJUSTMENTS).document(adjustment_id).set(
            {
                "cooperado_id": cooperado_id,
                "period_id": period_id,
                "amount_cents": amount,
                "reason": reason.strip(),
                "created_by": actor_id,
                "created_at": utcnow(),
            }
        )
        AuditService.record(
            db,
            actor_id,
            "add_earning_adjustment",
            "period",
            period_id,
            {"cooperado_id": cooperado_id, "amount_cents": amount},
        )
        return adjustment_id


class PayoutExportService:
    """CSV export of a payout period, audited."""

    @staticmethod
    def require_operator(db: Any, user_id: str) -> None:
        profile = doc_to_dict(db.collection(PROFILES).document(user_id).get())
        if profile is None or profile.get("role") != ROLE_OPERATOR:
            raise Forbidden("Forbidden.")

    @staticmethod
    def fetch_export_data(
        db: Any, period: dict[str, Any]
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]], list[dict[str, Any]]]:
        """Read payouts, ledger and adjustments concurrently; any failure aborts."""
        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="eco-export") as pool:
            payouts = pool.submit(PayoutService.fetch_payouts, db, period["id"])
            ledger = pool.submit(PayoutService.fetch_ledger, db, period)
            adjustments = pool.submit(PayoutService.fetch_adjustments, db, period["id"])
            try:
                return payouts.result(), ledger.result(), adjustments.result()
            except Exception as e:
                raise InternalError("Failed to fetch payout export data.") from e

    @staticmethod
    def build_rows(
        period: dict[str, Any],
        payouts: list[dict[str, Any]],
        ledger: list[dict[str, Any]],
        adjustments: list[dict[str, Any]],
        names: dict[str, str],
    ) -> list[dict[str, Any]]:
        ledger_sums = sum_by_cooperado(ledger, "total_cents")
        adjustment_sums = sum_by_cooperado(adjustments, "amount_cents")
        return [
            {
                "cooperado_display_name": names.get(p["cooperado_id"], ""),
                "cooperado_id": p["cooperado_id"],
                "period_start": period["period_start"],
                "period_end": period["period_end"],
                "ledger_sum_cents": ledger_sums.get(p["cooperado_id"], 0),
                "adjustments_sum_cents": adjustment_sums.get(p["cooperado_id"], 0),
                "payout_total_cents": p.get("total_cents", 0),
                "payout_status": p.get("status"),
                "payout_reference": p.get("payout_reference"),
            }
            for p in payouts
        ]

    @staticmethod
    def export(db: Any, actor_id: str, period_id: str) -> tuple[str, str]:
        """Return ``(filename, csv_body)``; the audit entry is written first."""
        if not is_uuid(period_id):
            raise ValidationError("Invalid period_id.")
        PayoutExportService.require_operator(db, actor_id)
        period = PayoutService.require_period(db, period_id)

        payouts, ledger, adjustments = PayoutExportService.fetch_export_data(db, period)
        try:
            names = PayoutService.display_names(
                db, [p["cooperado_id"] for p in payouts]
            )
        except Exception as e:
            raise InternalError("Failed to load cooperado profiles.") from e
        rows = PayoutExportService.build_rows(
            period, payouts, ledger, adjustments, names
        )
        body = build_csv(rows)

        try:
            AuditService.record(
                db,
                actor_id,
                "export_payout_csv",
                "period",
                period_id,
                {"period_id": period_id, "rows": len(rows)},
            )
        except Exception as e:
            raise InternalError("Failed to write audit log.") from e
        return export_filename(period), body


class PricingService:
    """Pricing rules. Changes only affect receipts created afterwards."""

    @staticmethod
    def list_rules(db: Any) -> list[dict[str, Any]]:
        rules = docs_to_list(db.collection(PRICING_RULES).stream())
        return sorted(
            rules, key=lambda r: (r.get("material_kind") or "", r.get("unit_kind") or "")
        )

    @staticmethod
    def toggle_rule(db: Any, actor_id: str, rule_id: str) -> bool:
        ref = db.collection(PRICING_RULES).document(rule_id)
        rule = doc_to_dict(ref.get())
        if rule is None:
            raise NotFoundError("Regra não encontrada.")
        active = not rule.get("active", False)
        ref.update({"active": active})
        AuditService.record(
            db, actor_id, "toggle_pricing_rule", "pricing_rule", rule_id, {"active": active}
        )
        return active


class EarningsService:
    """A cooperado's own view of the ledger and of the payouts made to them."""

    @staticmethod
    def fetch_cooperado_ledger(db: Any, cooperado_id: str) -> list[dict[str, Any]]:
        """The cooperado's ledger entries, newest first."""
        docs = (
            db.collection(EARNINGS_LEDGER)
            .where(filter=firestore.FieldFilter("cooperado_id", "==", cooperado_id))
            .order_by("created_at", direction=firestore.Query.DESCENDING)
            .stream()
        )
        return docs_to_list(docs)

    @staticmethod
    def neighborhood_names(db: Any, neighborhood_ids: list[str]) -> dict[str, str]:
        names = {}
        for neighborhood_id in dict.fromkeys(i for i in neighborhood_ids if i):
            hood = doc_to_dict(db.collection(NEIGHBORHOODS).document(neighborhood_id).get())
            names[neighborhood_id] = (hood or {}).get("name") or "N/A"
        return names

    @staticmethod
    def ledger_summary(
        db: Any, cooperado_id: str, now: datetime.datetime | None = None
    ) -> dict[str, Any]:
        """Ledger entries plus the total of the last 30 days."""
        entries = EarningsService.fetch_cooperado_ledger(db, cooperado_id)
        names = EarningsService.neighborhood_names(
            db, [e.get("neighborhood_id") for e in entries]
        )
        for entry in entries:
            entry["neighborhood_name"] = names.get(entry.get("neighborhood_id"), "N/A")
        since = (now or utcnow()) - datetime.timedelta(days=EARNINGS_RECENT_DAYS)
        recent_total = sum(
            int(e.get("total_cents") or 0)
            for e in entries
            if e.get("created_at") and e["created_at"] >= since
        )
        return {"items": entries, "recent_total_cents": recent_total, "count": len(entries)}

    @staticmethod
    def payout_history(db: Any, cooperado_id: str) -> list[dict[str, Any]]:
        """Payouts of the cooperado with their period, ledger sum and adjustments."""
        docs = (
            db.collection(PAYOUTS)
            .where(filter=firestore.FieldFilter("cooperado_id", "==", cooperado_id))
            .stream()
        )
        payouts = docs_to_list(docs)
        ledger = EarningsService.fetch_cooperado_ledger(db, cooperado_id)
        for payout in payouts:
            period = PayoutService.get_period(db, payout["period_id"]) or {}
            payout["period"] = period
            payout["ledger_sum_cents"] = 0
            if period.get("period_start") and period.get("period_end"):
                start, end = day_bounds(period["period_start"], period["period_end"])
                payout["ledger_sum_cents"] = sum(
                    int(e.get("total_cents") or 0)
                    for e in ledger
                    if e.get("created_at") and start <= e["created_at"] <= end
                )
            payout["adjustments"] = [
                a
                for a in PayoutService.fetch_adjustments(db, payout["period_id"])
                if a.get("cooperado_id") == cooperado_id
            ]
        return sorted(
            payouts,
            key=lambda p: p["period"].get("period_start") or "",
            reverse=True,
        )


def parse_materials(raw: str | None) -> list[str]:
    """Comma-separated material kinds, lowercased and de-duplicated."""
    materials = list(
        dict.fromkeys(m.strip().lower() for m in (raw or "").split(",") if m.strip())
    )
    unknown = [m for m in materials if m not in MATERIALS]
    if unknown:
        raise ValidationError(f"Material inválido: {', '.join(unknown)}.")
    if not materials:
        raise ValidationError("Informe ao menos um material aceito.")
    return materials


TIME_REGEX = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class DropPointService:
    """Operator administration of Ponto ECO drop points."""

    @staticmethod
    def list_all(db: Any) -> list[dict[str, Any]]:
        """Every drop point, active or not, with its neighborhood name."""
        points = docs_to_list(db.collection(DROP_POINTS).stream())
        names = EarningsService.neighborhood_names(
            db, [p.get("neighborhood_id") for p in points]
        )
        for point in points:
            point["neighborhood_name"] = names.get(point.get("neighborhood_id"), "N/A")
        return sorted(
            points,
            key=lambda p: (p["neighborhood_name"].lower(), (p.get("name") or "").lower()),
        )

    @staticmethod
    def create(
        db: Any,
        actor_id: str,
        neighborhood_id: str,
        name: str,
        address_public: str,
        hours: str,
        accepted_materials: str,
    ) -> str:
        name = (name or "").strip()
        address_public = (address_public or "").strip()
        if not neighborhood_id or not name or not address_public:
            raise ValidationError("Preencha os campos obrigatórios do Ponto ECO.")
        if not db.collection(NEIGHBORHOODS).document(neighborhood_id).get().exists:
            raise NotFoundError("Bairro não encontrado.")
        materials = parse_materials(accepted_materials)

        point_id = new_id()
        db.collection(DROP_POINTS).document(point_id).set(
            {
                "neighborhood_id": neighborhood_id,
                "name": name,
                "address_public": address_public,
                "hours": (hours or "").strip() or None,
                "accepted_materials": materials,
                "active": True,
                "created_at": utcnow(),
            }
        )
        AuditService.record(
            db,
            actor_id,
            "create_drop_point",
            "drop_point",
            point_id,
            {"neighborhood_id": neighborhood_id, "name": name},
        )
        return point_id

    @staticmethod
    def toggle(db: Any, actor_id: str, point_id: str) -> bool:
        ref = db.collection(DROP_POINTS).document(point_id)
        point = doc_to_dict(ref.get())
        if point is None:
            raise NotFoundError("Ponto ECO não encontrado.")
        active = not point.get("active", False)
        ref.update({"active": active})
        AuditService.record(
            db, actor_id, "toggle_drop_point", "drop_point", point_id, {"active": active}
        )
        return active


class RouteWindowService:
    """Operator administration of weekly route windows.

    Weekdays count from 0 (Sunday) to 6 and times are ``HH:MM``. Recurring
    requests are not generated from here.
    """

    @staticmethod
    def list_for_neighborhood(db: Any, neighborhood_id: str) -> list[dict[str, Any]]:
        docs = (
            db.collection(ROUTE_WINDOWS)
            .where(
                filter=firestore.FieldFilter("neighborhood_id", "==", neighborhood_id)
            )
            .stream()
        )
        return sorted(
            docs_to_list(docs),
            key=lambda w: (w.get("weekday", 0), w.get("start_time") or ""),
        )

    @staticmethod
    def list_subscriptions(db: Any, neighborhood_id: str) -> list[dict[str, Any]]:
        docs = (
            db.collection(SUBSCRIPTIONS)
            .where(
                filter=firestore.FieldFilter("neighborhood_id", "==", neighborhood_id)
            )
            .stream()
        )
        return sorted(
            docs_to_list(docs),
            key=lambda s: (s.get("preferred_weekday", 0), s.get("status") or ""),
        )

    @staticmethod
    def create(
        db: Any,
        actor_id: str,
        neighborhood_id: str,
        weekday: Any,
        start_time: str,
        end_time: str,
        capacity: Any,
    ) -> str:
        try:
            weekday = int(weekday)
            capacity = int(capacity)
        except (TypeError, ValueError) as e:
            raise ValidationError("Dia e capacidade devem ser números.") from e
        if not 0 <= weekday <= 6:
            raise ValidationError("Dia da semana inválido.")
        start_time = (start_time or "").strip()
        end_time = (end_time or "").strip()
        if not TIME_REGEX.match(start_time) or not TIME_REGEX.match(end_time):
            raise ValidationError("Horários devem estar no formato HH:MM.")
        if start_time >= end_time:
            raise ValidationError("O início deve ser antes do fim.")
        if capacity < 1:
            raise ValidationError("Capacidade deve ser ao menos 1.")
        if not db.collection(NEIGHBORHOODS).document(neighborhood_id).get().exists:
            raise NotFoundError("Bairro não encontrado.")

        window_id = new_id()
        db.collection(ROUTE_WINDOWS).document(window_id).set(
            {
                "neighborhood_id": neighborhood_id,
                "weekday": weekday,
                "start_time": start_time,
                "end_time": end_time,
                "capacity": capacity,
                "active": True,
                "created_at": utcnow(),
            }
        )
        AuditService.record(
            db,
            actor_id,
            "create_route_window",
            "route_window",
            window_id,
            {"neighborhood_id": neighborhood_id, "weekday": weekday},
        )
        return window_id

    @staticmethod
    def toggle(db: Any, actor_id: str, window_id: str) -> dict[str, Any]:
        """Flip a window's ``active`` flag; returns the updated window."""
        ref = db.collection(ROUTE_WINDOWS).document(window_id)
        window = doc_to_dict(ref.get())
        if window is None:
            raise NotFoundError("Janela não encontrada.")
        window["active"] = not window.get("active", False)
        ref.update({"active": window["active"]})
        AuditService.record(
            db,
            actor_id,
            "toggle_route_window",
            "route_window",
            window_id,
            {"active": window["active"]},
        )
        return window


class AdminService:
    """Service class for the operator dashboard."""

    @staticmethod
    def get_admin_stats(db: Any) -> dict[str, Any]:
        """Fetch dashboard counters using count aggregations."""
        open_requests = (
            db.collection(PICKUP_REQUESTS)
            .where(filter=firestore.FieldFilter("status", "==", STATUS_OPEN))
            .count()
            .get()[0][0]
            .value
        )
        receipts = db.collection(RECEIPTS).count().get()[0][0].value
        cooperados = (
            db.collection(PROFILES)
            .where(filter=firestore.FieldFilter("role", "==", ROLE_COOPERADO))
            .count()
            .get()[0][0]
            .value
        )
        return {
            "open_requests": open_requests,
            "receipts": receipts,
            "cooperados": cooperados,
        }

    @staticmethod
    def set_role(db: Any, actor_id: str, user_id: str, role: str) -> None:
        """Change a profile's role."""
        if role not in ROLES:
            raise ValidationError("Papel inválido.")
        ref = db.collection(PROFILES).document(user_id)
        if not ref.get().exists:
            raise NotFoundError("Perfil não encontrado.")
        ref.update({"role": role})
        AuditService.record(db, actor_id, "set_profile_role", "profile", user_id, {"role": role})

    @staticmethod
    def list_feature_items(db: Any, collection: str, limit: int = 100) -> list[dict[str, Any]]:
        """Read-only listing of a feature subtree's collection."""
        return docs_to_list(db.collection(collection).limit(limit).stream())
