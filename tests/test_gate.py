"""Tests for route authorization."""

import unittest
from unittest.mock import patch

from eco.auth.gate import (
    DENIAL_CARDS,
    PUBLIC_PREFIXES,
    DenialReason,
    evaluate_access,
    get_auth_requirement,
)
from tests.conftest import (
    COOPERADO_ID,
    OPERATOR_ID,
    RESIDENT_ID,
    EcoTestCase,
)

USER = {"uid": "u1", "email": "u1@example.com"}


class GetAuthRequirementTestCase(unittest.TestCase):
    def test_public_prefixes_never_require_auth(self):
        for prefix in PUBLIC_PREFIXES:
            for path in (prefix, f"{prefix.rstrip('/')}/algo"):
                with self.subTest(path=path):
                    self.assertFalse(get_auth_requirement(path).requires_auth)

    def test_public_decision_ignores_session_state(self):
        requirement = get_auth_requirement("/mural")
        for user, profile in ((None, None), (USER, None), (USER, {"role": "resident"})):
            decision = evaluate_access(requirement, user, profile, False)
            self.assertTrue(decision.is_allowed)
            self.assertIsNone(decision.reason)

    def test_operator_prefix(self):
        requirement = get_auth_requirement("/admin/pagamentos")
        self.assertTrue(requirement.requires_auth)
        self.assertTrue(requirement.requires_neighborhood)
        self.assertEqual(requirement.allowed_roles, ("operator",))

    def test_cooperado_prefix_allows_operators(self):
        requirement = get_auth_requirement("/cooperado")
        self.assertEqual(requirement.allowed_roles, ("cooperado", "operator"))

    def test_protected_exact_paths(self):
        for path in ("/pedidos", "/pedir-coleta", "/notificacoes", "/recorrencia"):
            requirement = get_auth_requirement(path)
            self.assertTrue(requirement.requires_auth)
            self.assertTrue(requirement.requires_neighborhood)
            self.assertIsNone(requirement.allowed_roles)

    def test_prefix_match_is_segment_based(self):
        self.assertFalse(get_auth_requirement("/administrativo").requires_auth)
        self.assertFalse(get_auth_requirement("/pedidos-antigos").requires_auth)

    def test_unknown_paths_are_public(self):
        self.assertFalse(get_auth_requirement("/qualquer/coisa").requires_auth)


class EvaluateAccessTestCase(unittest.TestCase):
    def setUp(self):
        self.operator_only = get_auth_requirement("/admin")

    def test_non_operator_with_neighborhood_is_forbidden_role(self):
        decision = evaluate_access(
            self.operator_only, USER, {"role": "cooperado", "neighborhood_id": "n1"}, False
        )
        self.assertFalse(decision.is_allowed)
        self.assertEqual(decision.reason, DenialReason.FORBIDDEN_ROLE)

    def test_missing_neighborhood_is_checked_before_role(self):
        decision = evaluate_access(
            self.operator_only, USER, {"role": "cooperado", "neighborhood_id": None}, False
        )
        self.assertEqual(decision.reason, DenialReason.MISSING_NEIGHBORHOOD)

    def test_unauthenticated(self):
        decision = evaluate_access(self.operator_only, None, None, False)
        self.assertEqual(decision.reason, DenialReason.UNAUTHENTICATED)

    def test_loading_wins_over_denial(self):
        decision = evaluate_access(self.operator_only, None, None, True)
        self.assertTrue(decision.is_loading)
        self.assertFalse(decision.is_allowed)
        self.assertIsNone(decision.reason)

    def test_operator_allowed(self):
        decision = evaluate_access(
            self.operator_only, USER, {"role": "operator", "neighborhood_id": "n1"}, False
        )
        self.assertTrue(decision.is_allowed)

    def test_same_inputs_same_decision(self):
        profile = {"role": "resident", "neighborhood_id": "n1"}
        first = evaluate_access(self.operator_only, USER, profile, False)
        second = evaluate_access(self.operator_only, USER, profile, False)
        self.assertEqual(first, second)

    def test_each_reason_has_its_own_call_to_action(self):
        labels = {card.cta_label for card in DENIAL_CARDS.values()}
        self.assertEqual(len(labels), 3)
        self.assertEqual(
            DENIAL_CARDS[DenialReason.UNAUTHENTICATED].cta_href, "/auth/login"
        )


class RouteGateTestCase(EcoTestCase):
    def setUp(self):
        super().setUp()
        self.add_neighborhood()

    def test_anonymous_protected_page_shows_login_card(self):
        response = self.client.get("/pedidos")
        self.assertEqual(response.status_code, 401)
        self.assertIn("Ir para login", response.get_data(as_text=True))

    def test_missing_neighborhood_card(self):
        self.add_profile(RESIDENT_ID, neighborhood_id=None)
        self.login(RESIDENT_ID)
        response = self.client.get("/pedir-coleta")
        self.assertEqual(response.status_code, 403)
        self.assertIn("Completar perfil", response.get_data(as_text=True))

    def test_resident_on_cooperado_panel_is_forbidden(self):
        self.add_profile(RESIDENT_ID)
        self.login(RESIDENT_ID)
        response = self.client.get("/cooperado/")
        self.assertEqual(response.status_code, 403)
        self.assertIn("não tem permissão", response.get_data(as_text=True))

    def test_cooperado_reaches_panel(self):
        self.add_profile(COOPERADO_ID, role="cooperado")
        self.login(COOPERADO_ID)
        response = self.client.get("/cooperado/")
        self.assertEqual(response.status_code, 200)
        self.assertIn("Painel da cooperada", response.get_data(as_text=True))

    def test_operator_reaches_pricing(self):
        self.add_profile(OPERATOR_ID, role="operator")
        self.login(OPERATOR_ID)
        response = self.client.get("/admin/precos")
        self.assertEqual(response.status_code, 200)
        self.assertIn(
            "Alterar preço impacta apenas recibos futuros",
            response.get_data(as_text=True),
        )

    def test_public_page_for_anonymous(self):
        response = self.client.get("/mural")
        self.assertEqual(response.status_code, 200)

    def test_profile_lookup_failure_renders_loading(self):
        self.login(RESIDENT_ID)
        with patch(
            "eco.auth.context.ProfileService.get_profile",
            side_effect=Exception("unavailable"),
        ):
            response = self.client.get("/pedidos")
        self.assertEqual(response.status_code, 200)
        self.assertIn("Validando acesso", response.get_data(as_text=True))


if __name__ == "__main__":
    unittest.main()
