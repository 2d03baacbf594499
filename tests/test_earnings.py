"""Tests for the cooperado earnings and payouts pages."""

import datetime
import unittest

from eco.admin.services import EarningsService, PayoutService
from eco.utils import utcnow
from tests.conftest import (
    COOPERADO_ID,
    NEIGHBORHOOD_ID,
    OPERATOR_ID,
    RESIDENT_ID,
    EcoTestCase,
)

OTHER_COOPERADO_ID = "cooperado_b"
NOW = datetime.datetime(2026, 3, 20, 12, tzinfo=datetime.timezone.utc)
INSIDE = datetime.datetime(2026, 3, 5, 10, tzinfo=datetime.timezone.utc)


class EarningsTestCase(EcoTestCase):
    def setUp(self):
        super().setUp()
        self.add_neighborhood()
        self.add_profile(OPERATOR_ID, role="operator")
        self.add_profile(COOPERADO_ID, role="cooperado", display_name="Maria")
        self.add_profile(OTHER_COOPERADO_ID, role="cooperado", display_name="Ana")
        self.add_profile(RESIDENT_ID)

    def add_ledger(self, entry_id, cooperado_id, cents, created_at, **extra):
        data = {
            "cooperado_id": cooperado_id,
            "total_cents": cents,
            "created_at": created_at,
            "receipt_id": f"receipt-{entry_id}",
            "neighborhood_id": NEIGHBORHOOD_ID,
        }
        data.update(extra)
        self.db.collection("coop_earnings_ledger").document(entry_id).set(data)


class EarningsServiceTestCase(EarningsTestCase):
    def test_ledger_summary(self):
        self.add_ledger("old", COOPERADO_ID, 900, NOW - datetime.timedelta(days=45))
        self.add_ledger("recent", COOPERADO_ID, 450, NOW - datetime.timedelta(days=2))
        self.add_ledger(
            "no-hood", COOPERADO_ID, 100, NOW - datetime.timedelta(days=1), neighborhood_id=None
        )
        self.add_ledger("theirs", OTHER_COOPERADO_ID, 5000, NOW - datetime.timedelta(days=1))

        summary = EarningsService.ledger_summary(self.db, COOPERADO_ID, now=NOW)
        self.assertEqual([e["id"] for e in summary["items"]], ["no-hood", "recent", "old"])
        self.assertEqual(summary["count"], 3)
        self.assertEqual(summary["recent_total_cents"], 550)
        names = {e["id"]: e["neighborhood_name"] for e in summary["items"]}
        self.assertEqual(names, {"no-hood": "N/A", "recent": "Centro", "old": "Centro"})

    def test_payout_history(self):
        period_id = PayoutService.create_period(
            self.db, OPERATOR_ID, "2026-03-01", "2026-03-15"
        )
        self.add_ledger("l1", COOPERADO_ID, 700, INSIDE)
        self.add_ledger("l2", COOPERADO_ID, 300, INSIDE)
        self.add_ledger("l3", OTHER_COOPERADO_ID, 200, INSIDE)
        self.add_ledger("late", COOPERADO_ID, 9000, INSIDE + datetime.timedelta(days=11))
        PayoutService.add_adjustment(
            self.db, OPERATOR_ID, period_id, COOPERADO_ID, -150, "Sacos faltando"
        )
        PayoutService.add_adjustment(
            self.db, OPERATOR_ID, period_id, OTHER_COOPERADO_ID, 50, "Bônus"
        )
        PayoutService.close_period(self.db, OPERATOR_ID, period_id)
        payouts = PayoutService.fetch_payouts(self.db, period_id)
        (mine,) = [p for p in payouts if p["cooperado_id"] == COOPERADO_ID]
        PayoutService.mark_paid(self.db, OPERATOR_ID, mine["id"], "PIX-1")

        (payout,) = EarningsService.payout_history(self.db, COOPERADO_ID)
        self.assertEqual(payout["period"]["period_start"], "2026-03-01")
        self.assertEqual(payout["ledger_sum_cents"], 1000)
        self.assertEqual(payout["total_cents"], 850)
        self.assertEqual(payout["status"], "paid")
        self.assertEqual(payout["payout_reference"], "PIX-1")
        self.assertEqual(
            [(a["amount_cents"], a["reason"]) for a in payout["adjustments"]],
            [(-150, "Sacos faltando")],
        )

    def test_payout_history_is_empty_without_payouts(self):
        self.assertEqual(EarningsService.payout_history(self.db, COOPERADO_ID), [])


class EarningsRoutesTestCase(EarningsTestCase):
    def test_earnings_page(self):
        self.add_ledger("recent", COOPERADO_ID, 450, utcnow() - datetime.timedelta(days=1))
        self.login(COOPERADO_ID)
        response = self.client.get("/cooperado/ganhos")
        self.assertEqual(response.status_code, 200)
        body = response.get_data(as_text=True)
        self.assertIn("R$ 4.50", body)
        self.assertIn("Centro", body)
        self.assertIn("/recibos/receipt-recent", body)

    def test_earnings_page_empty(self):
        self.login(COOPERADO_ID)
        response = self.client.get("/cooperado/ganhos")
        self.assertEqual(response.status_code, 200)
        self.assertIn("Nenhum lançamento encontrado.", response.get_data(as_text=True))

    def test_payouts_page(self):
        period_id = PayoutService.create_period(
            self.db, OPERATOR_ID, "2026-03-01", "2026-03-15"
        )
        self.add_ledger("l1", COOPERADO_ID, 500, INSIDE)
        PayoutService.close_period(self.db, OPERATOR_ID, period_id)
        self.login(COOPERADO_ID)
        response = self.client.get("/cooperado/pagamentos")
        self.assertEqual(response.status_code, 200)
        body = response.get_data(as_text=True)
        self.assertIn("2026-03-01 a 2026-03-15", body)
        self.assertIn("Status: pending", body)
        self.assertIn("Sem ajustes para este período.", body)

    def test_payouts_page_empty(self):
        self.login(COOPERADO_ID)
        response = self.client.get("/cooperado/pagamentos")
        self.assertIn("Nenhum payout disponível.", response.get_data(as_text=True))

    def test_residents_are_refused(self):
        self.login(RESIDENT_ID)
        self.assertEqual(self.client.get("/cooperado/ganhos").status_code, 403)
        self.assertEqual(self.client.get("/cooperado/pagamentos").status_code, 403)


if __name__ == "__main__":
    unittest.main()
