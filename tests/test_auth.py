import unittest
from unittest.mock import MagicMock, patch

from eco.auth.providers import (
    FirebaseAuthProvider,
    FixtureAuthProvider,
    build_auth_provider,
)
from eco.auth.routes import safe_next
from eco.errors import AuthRequired
from tests.conftest import NEIGHBORHOOD_ID, RESIDENT_ID, EcoTestCase


class SafeNextTestCase(unittest.TestCase):
    def test_only_relative_paths(self):
        self.assertEqual(safe_next("/pedidos"), "/pedidos")
        self.assertEqual(safe_next("//evil.example"), "/")
        self.assertEqual(safe_next("https://evil.example"), "/")
        self.assertEqual(safe_next(None), "/")


class ProviderTestCase(unittest.TestCase):
    def test_fixture_provider(self):
        provider = build_auth_provider(
            {"ECO_AUTH_PROVIDER": "fixture", "ECO_AUTH_FIXTURES": '{"t": {"uid": "u"}}'}
        )
        self.assertIsInstance(provider, FixtureAuthProvider)
        self.assertEqual(provider.verify_token("t"), {"uid": "u", "email": None})
        with self.assertRaises(AuthRequired):
            provider.verify_token("other")
        with self.assertRaises(AuthRequired):
            provider.verify_token("")

    def test_default_is_firebase(self):
        self.assertIsInstance(build_auth_provider({}), FirebaseAuthProvider)

    def test_unknown_provider(self):
        with self.assertRaises(ValueError):
            build_auth_provider({"ECO_AUTH_PROVIDER": "ldap"})

    @patch("eco.auth.providers.auth")
    def test_firebase_provider_rejects_bad_tokens(self, mock_auth):
        mock_auth.verify_id_token.side_effect = Exception("expired")
        provider = FirebaseAuthProvider()
        with self.assertRaises(AuthRequired) as ctx, patch(
            "eco.auth.providers.current_app", new=MagicMock()
        ):
            provider.verify_token("token")
        self.assertEqual(ctx.exception.message, "Invalid auth token.")

    @patch("eco.auth.providers.auth")
    def test_firebase_provider_returns_uid(self, mock_auth):
        mock_auth.verify_id_token.return_value = {"uid": "u1", "email": "a@b.c"}
        self.assertEqual(
            FirebaseAuthProvider().verify_token("token"),
            {"uid": "u1", "email": "a@b.c"},
        )


class SessionLoginTestCase(EcoTestCase):
    def post_token(self, token, next_url=None):
        return self.client.post(
            "/auth/session_login", json={"idToken": token, "next": next_url}
        )

    def test_invalid_token(self):
        response = self.post_token("forged")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()["status"], "error")
        with self.client.session_transaction() as sess:
            self.assertNotIn("user_id", sess)

    def test_first_login_creates_profile_and_starts_onboarding(self):
        response = self.post_token("resident-token", "/pedidos")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"status": "success", "next": "/começar/"})
        profile = self.db.collection("profiles").document(RESIDENT_ID).get().to_dict()
        self.assertEqual(profile["role"], "resident")
        self.assertEqual(profile["display_name"], "ana")
        self.assertIsNone(profile["neighborhood_id"])
        with self.client.session_transaction() as sess:
            self.assertEqual(sess["user_id"], RESIDENT_ID)
            self.assertNotIn("id_token", sess)

    def test_returning_user_goes_to_next(self):
        self.add_neighborhood()
        self.add_profile(RESIDENT_ID, neighborhood_id=NEIGHBORHOOD_ID)
        response = self.post_token("resident-token", "/pedidos")
        self.assertEqual(response.get_json()["next"], "/pedidos")

    def test_external_next_is_ignored(self):
        self.add_neighborhood()
        self.add_profile(RESIDENT_ID)
        response = self.post_token("resident-token", "https://evil.example/")
        self.assertEqual(response.get_json()["next"], "/")

    def test_profile_failure_is_502(self):
        with patch(
            "eco.auth.routes.ProfileService.ensure_profile",
            side_effect=Exception("unavailable"),
        ):
            response = self.post_token("resident-token")
        self.assertEqual(response.status_code, 502)

    def test_logout_clears_session(self):
        self.login(RESIDENT_ID)
        response = self.client.get("/auth/logout")
        self.assertEqual(response.status_code, 302)
        with self.client.session_transaction() as sess:
            self.assertNotIn("user_id", sess)

    def test_login_page_uses_fixture_form(self):
        response = self.client.get("/auth/login?next=/pedidos")
        self.assertEqual(response.status_code, 200)
        body = response.get_data(as_text=True)
        self.assertIn('data-provider="fixture"', body)
        self.assertIn('data-next="/pedidos"', body)

    def test_logged_in_user_skips_login_page(self):
        self.add_neighborhood()
        self.add_profile(RESIDENT_ID)
        self.login(RESIDENT_ID)
        response = self.client.get("/auth/login?next=/pedidos")
        self.assertEqual(response.status_code, 302)
        self.assertTrue(response.headers["Location"].endswith("/pedidos"))

    def test_firebase_config_without_api_key(self):
        self.app.config["FIREBASE_API_KEY"] = None
        response = self.client.get("/auth/firebase-config.js")
        self.assertEqual(response.mimetype, "application/javascript")
        self.assertIn("console.error", response.get_data(as_text=True))

    def test_firebase_config(self):
        self.app.config["FIREBASE_API_KEY"] = "key"
        self.app.config["FIREBASE_PROJECT_ID"] = "eco-dev"
        body = self.client.get("/auth/firebase-config.js").get_data(as_text=True)
        self.assertIn('"authDomain": "eco-dev.firebaseapp.com"', body)


if __name__ == "__main__":
    unittest.main()
