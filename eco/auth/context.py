"""Per-request authentication context and the page gate hook."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from firebase_admin import firestore
from flask import current_app, g, render_template, request, session

from eco.constants import ROLE_OPERATOR
from eco.core.types import Profile
from eco.profile.services import ProfileService

from .gate import DENIAL_CARDS, evaluate_access, get_auth_requirement
from .providers import AuthUser

GATE_EXEMPT_PREFIXES = ("/api/", "/auth/", "/static/")
GATE_EXEMPT_PATHS = ("/robots.txt", "/health")

SESSION_USER_ID = "user_id"
SESSION_EMAIL = "email"


@dataclass(frozen=True)
class AuthContext:
    """The session as seen by one request."""

    user: AuthUser | None = None
    profile: Profile | None = None
    is_loading: bool = False

    @property
    def uid(self) -> str | None:
        return self.user["uid"] if self.user else None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def role(self) -> str | None:
        return (self.profile or {}).get("role")

    @property
    def neighborhood_id(self) -> str | None:
        return (self.profile or {}).get("neighborhood_id")

    @property
    def is_operator(self) -> bool:
        return self.role == ROLE_OPERATOR


def load_auth_context() -> AuthContext:
    """Build the context from the signed session cookie."""
    user_id = session.get(SESSION_USER_ID)
    if user_id is None:
        return AuthContext()

    user: AuthUser = {"uid": user_id, "email": session.get(SESSION_EMAIL)}
    try:
        db = firestore.client()
        profile = ProfileService.get_profile(db, user_id)
    except Exception as e:
        # The session exists but cannot be resolved yet; pages retry.
        current_app.logger.error(f"Error loading profile for {user_id}: {e}")
        return AuthContext(user=user, is_loading=True)
    return AuthContext(user=user, profile=profile)


def current_auth() -> AuthContext:
    """Return the context of the current request."""
    auth_ctx = g.get("auth")
    if auth_ctx is None:
        return AuthContext()
    return auth_ctx


def attach_auth_context() -> None:
    """before_request hook: resolve the session once per request."""
    g.auth = load_auth_context()


def enforce_route_gate() -> Any:
    """before_request hook: decide access before the view fetches data."""
    path = request.path
    if (
        request.endpoint is None
        or path in GATE_EXEMPT_PATHS
        or path.startswith(GATE_EXEMPT_PREFIXES)
    ):
        return None

    auth_ctx = current_auth()
    requirement = get_auth_requirement(path)
    decision = evaluate_access(
        requirement, auth_ctx.user, auth_ctx.profile, auth_ctx.is_loading
    )
    if decision.is_allowed:
        return None
    if decision.is_loading:
        return render_template("loading.html", text="Validando acesso...")

    card = DENIAL_CARDS[decision.reason]
    current_app.logger.warning(
        f"Access to {path} denied ({decision.reason.value}) for {auth_ctx.uid}"
    )
    return render_template("require_auth.html", card=card), card.status_code


def inject_auth() -> dict[str, Any]:
    """Injects the auth context into the template context."""
    return {"auth": current_auth()}
