"""Boolean feature switches that gate whole page subtrees."""

from __future__ import annotations

import os
from functools import wraps
from typing import Any, Callable

from flask import current_app, render_template

FEATURES = {
    "pilot": "ECO_FEATURES_PILOT",
    "anchors": "ECO_FEATURES_ANCHORS",
    "galpao": "ECO_FEATURES_GALPAO",
    "gov": "ECO_FEATURES_GOV",
    "learn": "ECO_FEATURES_LEARN",
}


def is_feature_enabled(name: str) -> bool:
    """Return True if the named feature is switched on.

    The app config wins over the process environment. Only the string
    "true" (any case) or a literal True enables a feature.
    """
    key = FEATURES[name]
    raw = current_app.config.get(key)
    if raw is None:
        raw = os.environ.get(key, "false")
    if isinstance(raw, bool):
        return raw
    return str(raw).lower() == "true"


def feature_required(
    name: str, title: str, back_href: str = "/"
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Render a placeholder instead of the view when the feature is off."""

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def decorated_function(*args: Any, **kwargs: Any) -> Any:
            if not is_feature_enabled(name):
                return render_template(
                    "placeholder.html",
                    title=title,
                    back_href=back_href,
                    description=f"Feature {FEATURES[name]} desativada neste ambiente.",
                )
            return func(*args, **kwargs)

        return decorated_function

    return decorator


def inject_features() -> dict[str, Any]:
    """Injects the feature switches into the template context."""
    return {"features": {name: is_feature_enabled(name) for name in FEATURES}}
