"""Route authorization: which paths need a session, a neighborhood or a role.

Both functions are pure: the same inputs always give the same decision,
so the gate can be evaluated on every request without any stored state.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from eco.constants import ROLE_COOPERADO, ROLE_OPERATOR

OPERATOR_PREFIX = "/admin"
COOPERADO_PREFIX = "/cooperado"

PUBLIC_PREFIXES = (
    "/",
    "/mural",
    "/mapa",
    "/aprender",
    "/perfil",
    "/parceiros",
    "/bairros",
)

PROTECTED_EXACT = frozenset(
    {"/pedidos", "/pedir-coleta", "/notificacoes", "/recorrencia"}
)


class DenialReason(str, Enum):
    """Why access to a page was refused."""

    UNAUTHENTICATED = "unauthenticated"
    MISSING_NEIGHBORHOOD = "missing_neighborhood"
    FORBIDDEN_ROLE = "forbidden_role"


@dataclass(frozen=True)
class AuthRequirement:
    """What a path demands from the session."""

    requires_auth: bool
    requires_neighborhood: bool
    allowed_roles: tuple[str, ...] | None = None


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of checking a requirement against the session."""

    is_loading: bool
    is_allowed: bool
    reason: DenialReason | None = None


@dataclass(frozen=True)
class DenialCard:
    """User-facing copy and call-to-action for a denial reason."""

    title: str
    body: str
    cta_label: str
    cta_href: str
    status_code: int


DENIAL_CARDS = {
    DenialReason.UNAUTHENTICATED: DenialCard(
        title="Acesso necessário",
        body="Entre na sua conta para continuar.",
        cta_label="Ir para login",
        cta_href="/auth/login",
        status_code=401,
    ),
    DenialReason.MISSING_NEIGHBORHOOD: DenialCard(
        title="Perfil incompleto",
        body="Complete seu perfil com bairro para liberar esta área.",
        cta_label="Completar perfil",
        cta_href="/perfil",
        status_code=403,
    ),
    DenialReason.FORBIDDEN_ROLE: DenialCard(
        title="Acesso necessário",
        body="Seu perfil não tem permissão para esta área.",
        cta_label="Ir para perfil",
        cta_href="/perfil",
        status_code=403,
    ),
}

NO_REQUIREMENT = AuthRequirement(requires_auth=False, requires_neighborhood=False)


def _under(pathname: str, prefix: str) -> bool:
    return pathname == prefix or pathname.startswith(f"{prefix}/")


def is_public_path(pathname: str) -> bool:
    """Return True for paths on the public allow-list."""
    if pathname == "/":
        return True
    if pathname in PROTECTED_EXACT:
        return False
    return any(_under(pathname, prefix) for prefix in PUBLIC_PREFIXES)


def get_auth_requirement(pathname: str) -> AuthRequirement:
    """Classify a path into its access requirement."""
    if _under(pathname, OPERATOR_PREFIX):
        return AuthRequirement(
            requires_auth=True,
            requires_neighborhood=True,
            allowed_roles=(ROLE_OPERATOR,),
        )
    if _under(pathname, COOPERADO_PREFIX):
        return AuthRequirement(
            requires_auth=True,
            requires_neighborhood=True,
            allowed_roles=(ROLE_COOPERADO, ROLE_OPERATOR),
        )
    if pathname in PROTECTED_EXACT:
        return AuthRequirement(requires_auth=True, requires_neighborhood=True)
    if is_public_path(pathname):
        return NO_REQUIREMENT
    return NO_REQUIREMENT


def evaluate_access(
    requirement: AuthRequirement,
    user: Mapping[str, Any] | None,
    profile: Mapping[str, Any] | None,
    is_loading: bool,
) -> AccessDecision:
    """Decide whether the session satisfies a requirement.

    A loading session never yields a denial; the neighborhood is checked
    before the role.
    """
    if not requirement.requires_auth:
        return AccessDecision(is_loading=is_loading, is_allowed=True)
    if is_loading:
        return AccessDecision(is_loading=True, is_allowed=False)
    if not user:
        return AccessDecision(False, False, DenialReason.UNAUTHENTICATED)
    if requirement.requires_neighborhood and not (profile or {}).get(
        "neighborhood_id"
    ):
        return AccessDecision(False, False, DenialReason.MISSING_NEIGHBORHOOD)
    if requirement.allowed_roles and (
        not profile or profile.get("role") not in requirement.allowed_roles
    ):
        return AccessDecision(False, False, DenialReason.FORBIDDEN_ROLE)
    return AccessDecision(is_loading=False, is_allowed=True)
