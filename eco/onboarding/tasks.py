"""Background tasks for onboarding."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from firebase_admin import firestore

from .services import OnboardingService

if TYPE_CHECKING:
    from flask import Flask


def complete_onboarding_background(app: Flask, user_id: str) -> threading.Thread:
    """Mark onboarding done without holding up the redirect."""

    def task() -> None:
        with app.app_context():
            try:
                OnboardingService.complete(firestore.client(), user_id)
                app.logger.info(f"Onboarding completed for {user_id}")
            except Exception as e:
                app.logger.error(f"Background onboarding completion failed: {e}")

    thread = threading.Thread(target=task, daemon=True)
    thread.start()
    return thread
