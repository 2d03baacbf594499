"""Tests for the community mural."""

import datetime
import unittest

from eco.errors import NotFoundError, ValidationError
from eco.mural.services import MuralService
from tests.conftest import NEIGHBORHOOD_ID, RESIDENT_ID, EcoTestCase

OTHER_NEIGHBORHOOD_ID = "hood-norte"


class MuralTestCase(EcoTestCase):
    def setUp(self):
        super().setUp()
        self.add_neighborhood()
        self.add_neighborhood(OTHER_NEIGHBORHOOD_ID, name="Norte", slug="norte")
        self.add_profile(RESIDENT_ID)

    def add_post(self, post_id, neighborhood_id, minutes, body="Oi"):
        self.db.collection("posts").document(post_id).set(
            {
                "created_by": RESIDENT_ID,
                "neighborhood_id": neighborhood_id,
                "kind": "registro",
                "title": "",
                "body": body,
                "receipt_id": None,
                "created_at": datetime.datetime(2026, 3, 1, tzinfo=datetime.timezone.utc)
                + datetime.timedelta(minutes=minutes),
            }
        )

    def test_list_is_scoped_and_newest_first(self):
        self.add_post("a", NEIGHBORHOOD_ID, 1)
        self.add_post("b", NEIGHBORHOOD_ID, 2)
        self.add_post("c", OTHER_NEIGHBORHOOD_ID, 3)
        ids = [p["id"] for p in MuralService.list_posts(self.db, NEIGHBORHOOD_ID)]
        self.assertEqual(ids, ["b", "a"])
        self.assertEqual(len(MuralService.list_posts(self.db)), 3)

    def test_create_post_validation(self):
        with self.assertRaises(ValidationError):
            MuralService.create_post(self.db, RESIDENT_ID, None, "registro", "", "Oi")
        with self.assertRaises(ValidationError):
            MuralService.create_post(self.db, RESIDENT_ID, NEIGHBORHOOD_ID, "spam", "", "Oi")
        with self.assertRaises(ValidationError):
            MuralService.create_post(
                self.db, RESIDENT_ID, NEIGHBORHOOD_ID, "registro", "", "   "
            )
        with self.assertRaises(NotFoundError):
            MuralService.create_post(
                self.db, RESIDENT_ID, NEIGHBORHOOD_ID, "registro", "", "Oi", receipt_id="r"
            )

    def test_anonymous_sees_every_post(self):
        self.add_post("a", NEIGHBORHOOD_ID, 1, body="Mutirão sábado")
        self.add_post("c", OTHER_NEIGHBORHOOD_ID, 3, body="Ponto lotado")
        body = self.client.get("/mural").get_data(as_text=True)
        self.assertIn("Mutirão sábado", body)
        self.assertIn("Ponto lotado", body)

    def test_resident_sees_own_neighborhood(self):
        self.add_post("a", NEIGHBORHOOD_ID, 1, body="Mutirão sábado")
        self.add_post("c", OTHER_NEIGHBORHOOD_ID, 3, body="Ponto lotado")
        self.login(RESIDENT_ID)
        body = self.client.get("/mural").get_data(as_text=True)
        self.assertIn("Mutirão sábado", body)
        self.assertNotIn("Ponto lotado", body)

    def test_new_post_form(self):
        self.login(RESIDENT_ID)
        response = self.client.post(
            "/mural/novo", data={"kind": "chamado", "title": "Lixo", "body": "Na esquina"}
        )
        self.assertEqual(response.status_code, 302)
        posts = MuralService.list_posts(self.db, NEIGHBORHOOD_ID)
        self.assertEqual(len(posts), 1)
        self.assertEqual(posts[0]["kind"], "chamado")
        self.assertEqual(posts[0]["created_by"], RESIDENT_ID)

    def test_neighborhood_page(self):
        self.add_post("a", NEIGHBORHOOD_ID, 1, body="Mutirão sábado")
        response = self.client.get("/bairros/centro")
        self.assertEqual(response.status_code, 200)
        self.assertIn("Mutirão sábado", response.get_data(as_text=True))
        self.assertEqual(self.client.get("/bairros/nenhum").status_code, 404)


if __name__ == "__main__":
    unittest.main()
