"""Common utilities for tests."""

import json
import unittest.mock
from typing import Any, Optional
from unittest.mock import MagicMock, patch

from mockfirestore import CollectionReference, MockFirestore, Query
from mockfirestore.document import DocumentReference

from eco import create_app

OPERATOR_ID = "operator_uid"
COOPERADO_ID = "cooperado_uid"
RESIDENT_ID = "resident_uid"
NEIGHBORHOOD_ID = "hood-centro"

AUTH_FIXTURES = {
    "operator-token": {"uid": OPERATOR_ID, "email": "op@example.com"},
    "cooperado-token": {"uid": COOPERADO_ID, "email": "coop@example.com"},
    "resident-token": {"uid": RESIDENT_ID, "email": "ana@example.com"},
}


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore to support FieldFilter and equality."""

    def collection_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(CollectionReference, "_where"):
        CollectionReference._where = CollectionReference.where
        CollectionReference.where = collection_where

    def query_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(Query, "_where"):
        Query._where = Query.where
        Query.where = query_where

    def doc_ref_eq(self: Any, other: Any) -> bool:
        if not isinstance(other, DocumentReference):
            return False
        return self._path == other._path

    if not hasattr(DocumentReference, "_orig_eq"):
        DocumentReference._orig_eq = DocumentReference.__eq__
        DocumentReference.__eq__ = doc_ref_eq
        DocumentReference.__hash__ = lambda self: hash(tuple(self._path))

    def doc_ref_get(
        self: Any, field_paths: Any = None, transaction: Any = None, **kwargs: Any
    ) -> Any:
        return self._orig_get()

    if not hasattr(DocumentReference, "_orig_get"):
        DocumentReference._orig_get = DocumentReference.get
        DocumentReference.get = doc_ref_get


class MockBatch:
    """Write batch over a MockFirestore; applies operations on commit."""

    def __init__(self, db: Any) -> None:
        self.db = db
        self.operations: list[tuple[str, Any, Any, bool]] = []
        self.commit = unittest.mock.MagicMock(side_effect=self._real_commit)

    def update(self, ref: Any, data: Any) -> None:
        self.operations.append(("update", ref, data, False))

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.operations.append(("set", ref, data, merge))

    def delete(self, ref: Any) -> None:
        self.operations.append(("delete", ref, None, False))

    def _real_commit(self) -> None:
        operations, self.operations = self.operations, []
        for kind, ref, data, merge in operations:
            if kind == "delete":
                ref.delete()
            elif kind == "set":
                ref.set(data, merge=merge)
            else:
                ref.update(data)


class MockTransaction:
    """Transaction over a MockFirestore; writes apply immediately.

    Used with ``firestore.transactional`` patched to a pass-through, so the
    decorated function runs once and nothing commits afterwards.
    """

    def __init__(self, db: Any) -> None:
        self.db = db

    def update(self, ref: Any, data: Any) -> None:
        ref.update(data)

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        ref.set(data, merge=merge)

    def delete(self, ref: Any) -> None:
        ref.delete()


patch_mockfirestore()


class EcoTestCase(unittest.TestCase):
    """Base case: an app wired to a MockFirestore and the fixture provider."""

    config: dict[str, Any] = {}

    def setUp(self) -> None:
        self.db = MockFirestore()
        self.db.batch = lambda: MockBatch(self.db)
        self.db.transaction = lambda: MockTransaction(self.db)

        patchers = [
            patch("firebase_admin.initialize_app"),
            patch("firebase_admin.firestore.client", return_value=self.db),
            patch("firebase_admin.firestore.transactional", side_effect=lambda f: f),
        ]
        for p in patchers:
            p.start()
            self.addCleanup(p.stop)

        self.app = create_app(
            {
                "TESTING": True,
                "WTF_CSRF_ENABLED": False,
                "SECRET_KEY": "test",
                "ECO_ENV": "dev",
                "ECO_AUTH_PROVIDER": "fixture",
                "ECO_AUTH_FIXTURES": json.dumps(AUTH_FIXTURES),
                **self.config,
            }
        )
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()
        self.addCleanup(self.app_context.pop)

    # Fixtures

    def add_neighborhood(self, neighborhood_id=NEIGHBORHOOD_ID, name="Centro", slug="centro"):
        self.db.collection("neighborhoods").document(neighborhood_id).set(
            {"name": name, "slug": slug}
        )

    def add_profile(self, user_id, role="resident", neighborhood_id=NEIGHBORHOOD_ID, **extra):
        data = {
            "user_id": user_id,
            "role": role,
            "display_name": extra.pop("display_name", user_id),
            "neighborhood_id": neighborhood_id,
            **extra,
        }
        self.db.collection("profiles").document(user_id).set(data)
        return data

    def login(self, user_id):
        with self.client.session_transaction() as sess:
            sess["user_id"] = user_id
            sess["email"] = f"{user_id}@example.com"

    @staticmethod
    def bearer(token):
        return {"Authorization": f"Bearer {token}"}


def mock_storage():
    """A storage module mock whose blobs sign to a predictable URL."""
    storage = MagicMock()

    def bucket(name=None):
        b = MagicMock()

        def blob(path):
            obj = MagicMock()
            obj.generate_signed_url.return_value = f"https://signed.example/{path}"
            return obj

        b.blob.side_effect = blob
        return b

    storage.bucket.side_effect = bucket
    return storage
