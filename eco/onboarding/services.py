"""Onboarding wizard: start -> neighborhood -> mode -> [address] -> first_action -> done.

Every step writes its choice to the user's ``onboarding_state`` document
before the next page is shown. Going back never rolls anything back.
"""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from eco.constants import (
    MODE_DOORSTEP,
    MODE_DROP_POINT,
    ONBOARDING_STATE,
    PILOT_CONFIGS,
)
from eco.core.types import OnboardingState
from eco.errors import NotFoundError, ValidationError
from eco.pickups.services import PickupService
from eco.pickups.windows import pick_next_window
from eco.profile.services import ProfileService
from eco.utils import doc_to_dict, docs_to_list, utcnow

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

STEP_NEIGHBORHOOD = "neighborhood"
STEP_MODE = "mode"
STEP_ADDRESS = "address"
STEP_FIRST_ACTION = "first_action"
STEP_DONE = "done"

ROUTE_START = "/começar/"
ROUTE_NEIGHBORHOOD = "/começar/bairro"
ROUTE_MODE = "/começar/modo"
ROUTE_ADDRESS = "/começar/endereco"
ROUTE_ACTION = "/começar/acao"

FIRST_ACTION_TARGETS = {
    "pedir-coleta": "/pedir-coleta",
    "recorrencia": "/recorrencia",
}

STEP_ROUTES = {
    STEP_NEIGHBORHOOD: ROUTE_NEIGHBORHOOD,
    STEP_MODE: ROUTE_MODE,
    STEP_ADDRESS: ROUTE_ADDRESS,
    STEP_FIRST_ACTION: ROUTE_ACTION,
}


class OnboardingService:
    """Service class for the onboarding wizard."""

    @staticmethod
    def get_state(db: Client, user_id: str) -> OnboardingState | None:
        return doc_to_dict(  # type: ignore[return-value]
            db.collection(ONBOARDING_STATE).document(user_id).get()
        )

    @staticmethod
    def save_state(db: Client, user_id: str, data: dict[str, Any]) -> None:
        """Upsert the user's wizard state."""
        payload = {**data, "user_id": user_id, "updated_at": utcnow()}
        db.collection(ONBOARDING_STATE).document(user_id).set(payload, merge=True)

    @staticmethod
    def start(db: Client, user_id: str) -> str:
        OnboardingService.save_state(db, user_id, {"step": STEP_NEIGHBORHOOD})
        return ROUTE_NEIGHBORHOOD

    @staticmethod
    def choose_neighborhood(db: Client, user_id: str, neighborhood_id: str) -> str:
        """Attach the neighborhood to the profile and move on to the mode."""
        if not neighborhood_id:
            raise ValidationError("Escolha um bairro.")
        if ProfileService.get_neighborhood(db, neighborhood_id) is None:
            raise NotFoundError("Bairro não encontrado.")
        ProfileService.update_profile(db, user_id, {"neighborhood_id": neighborhood_id})
        OnboardingService.save_state(db, user_id, {"step": STEP_MODE})
        return ROUTE_MODE

    @staticmethod
    def choose_mode(
        db: Client, user_id: str, mode: str, drop_point_id: str | None = None
    ) -> str:
        """Persist the fulfillment mode; drop points skip the address step."""
        if mode == MODE_DROP_POINT:
            if not drop_point_id:
                raise ValidationError("Escolha um ponto de entrega.")
            if PickupService.get_drop_point(db, drop_point_id) is None:
                raise NotFoundError("Ponto de entrega não encontrado.")
            OnboardingService.save_state(
                db,
                user_id,
                {
                    "step": STEP_FIRST_ACTION,
                    "chosen_mode": MODE_DROP_POINT,
                    "chosen_drop_point_id": drop_point_id,
                },
            )
            return ROUTE_ACTION
        if mode == MODE_DOORSTEP:
            OnboardingService.save_state(
                db, user_id, {"step": STEP_ADDRESS, "chosen_mode": MODE_DOORSTEP}
            )
            return ROUTE_ADDRESS
        raise ValidationError("Modo inválido.")

    @staticmethod
    def save_address(
        db: Client, user_id: str, address_full: str, contact_phone: str
    ) -> str:
        ProfileService.save_address(db, user_id, address_full, contact_phone)
        OnboardingService.save_state(db, user_id, {"step": STEP_FIRST_ACTION})
        return ROUTE_ACTION

    @staticmethod
    def complete(db: Client, user_id: str) -> None:
        """Mark the wizard done."""
        OnboardingService.save_state(
            db, user_id, {"step": STEP_DONE, "completed_at": utcnow()}
        )

    @staticmethod
    def resume_route(state: OnboardingState | None) -> str:
        """Where a returning user should land."""
        if not state:
            return ROUTE_START
        return STEP_ROUTES.get(state.get("step", ""), ROUTE_START)

    @staticmethod
    def pilot_neighborhood_ids(db: Client) -> set[str]:
        """Neighborhoods with an active pilot configuration."""
        docs = (
            db.collection(PILOT_CONFIGS)
            .where(filter=firestore.FieldFilter("status", "==", "active"))
            .stream()
        )
        return {
            p["neighborhood_id"] for p in docs_to_list(docs) if p.get("neighborhood_id")
        }

    @staticmethod
    def next_window(
        db: Client, neighborhood_id: str, now: datetime.datetime | None = None
    ) -> dict[str, Any] | None:
        """The next active route window of a neighborhood."""
        return pick_next_window(
            PickupService.list_windows(db, neighborhood_id), now or utcnow()
        )
