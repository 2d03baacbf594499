"""Identity providers: Firebase Authentication or static test fixtures.

One provider is chosen when the app is created and stored in
``app.extensions``. Views and services only see the ``AuthProvider``
interface.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, TypedDict

from firebase_admin import auth
from flask import current_app, request

from eco.errors import AuthRequired

EXTENSION_KEY = "eco.auth_provider"
BEARER_PREFIX = "Bearer "


class AuthUser(TypedDict, total=False):
    """The identity behind a verified token."""

    uid: str
    email: str | None


class AuthProvider:
    """Verifies bearer tokens and returns the identity behind them."""

    name = "base"

    def verify_token(self, token: str | None) -> AuthUser:
        """Return the user for a token or raise ``AuthRequired``."""
        raise NotImplementedError


class FirebaseAuthProvider(AuthProvider):
    """Verifies Firebase ID tokens with the Admin SDK."""

    name = "firebase"

    def verify_token(self, token: str | None) -> AuthUser:
        if not token:
            raise AuthRequired("Missing bearer token.")
        try:
            decoded = auth.verify_id_token(token)
        except Exception as e:
            current_app.logger.warning(f"Rejected ID token: {e}")
            raise AuthRequired("Invalid auth token.") from e
        return {"uid": decoded["uid"], "email": decoded.get("email")}


class FixtureAuthProvider(AuthProvider):
    """Maps opaque fixture tokens to users, for local and e2e runs."""

    name = "fixture"

    def __init__(self, fixtures: Mapping[str, Mapping[str, Any]]) -> None:
        self.fixtures = dict(fixtures)

    def verify_token(self, token: str | None) -> AuthUser:
        if not token:
            raise AuthRequired("Missing bearer token.")
        user = self.fixtures.get(token)
        if not user or not user.get("uid"):
            raise AuthRequired("Invalid auth token.")
        return {"uid": user["uid"], "email": user.get("email")}


def build_auth_provider(config: Mapping[str, Any]) -> AuthProvider:
    """Select the provider named by ``ECO_AUTH_PROVIDER``."""
    name = (config.get("ECO_AUTH_PROVIDER") or "firebase").lower()
    if name == "firebase":
        return FirebaseAuthProvider()
    if name == "fixture":
        fixtures = config.get("ECO_AUTH_FIXTURES")
        if isinstance(fixtures, str):
            fixtures = json.loads(fixtures)
        return FixtureAuthProvider(fixtures or {})
    raise ValueError(f"Unknown ECO_AUTH_PROVIDER: {name}")


def get_auth_provider() -> AuthProvider:
    """Return the provider configured for the current app."""
    return current_app.extensions[EXTENSION_KEY]


def bearer_token_from_request() -> str:
    """Extract the bearer token from the Authorization header."""
    header = request.headers.get("Authorization", "")
    if not header.startswith(BEARER_PREFIX):
        raise AuthRequired("Missing bearer token.")
    token = header[len(BEARER_PREFIX) :].strip()
    if not token:
        raise AuthRequired("Missing bearer token.")
    return token


def authenticate_bearer() -> tuple[AuthUser, str]:
    """Verify the request's bearer token; returns the user and the token."""
    token = bearer_token_from_request()
    return get_auth_provider().verify_token(token), token
