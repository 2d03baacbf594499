"""Routes for the main blueprint: home, map, learning and neighborhood pages."""

from __future__ import annotations

from firebase_admin import firestore
from flask import abort, render_template

from eco.admin.services import AdminService
from eco.auth.context import current_auth
from eco.constants import DROP_POINTS, EDU_TIPS, WEEKDAY_NAMES
from eco.features import feature_required
from eco.mural.services import POST_KIND_LABELS, MuralService
from eco.onboarding.services import OnboardingService
from eco.pickups.services import PickupService
from eco.profile.services import ProfileService
from eco.query import run_query
from eco.utils import docs_to_list

from . import bp


@bp.route("/")
def index():
    """Home: next steps for the session, or the pitch for visitors."""
    auth_ctx = current_auth()
    onboarding = None
    if auth_ctx.is_authenticated and not auth_ctx.is_loading:
        state = OnboardingService.get_state(firestore.client(), auth_ctx.uid)
        if not state or state.get("step") != "done":
            onboarding = OnboardingService.resume_route(state)
    return render_template("index.html", onboarding=onboarding)


@bp.route("/mapa")
def drop_point_map():
    """Public list of active drop points grouped by neighborhood."""
    db = firestore.client()

    def fetch(token):
        neighborhoods = {n["id"]: n for n in ProfileService.list_neighborhoods(db)}
        points = docs_to_list(
            db.collection(DROP_POINTS)
            .where(filter=firestore.FieldFilter("active", "==", True))
            .stream()
        )
        groups: dict[str, list] = {}
        for point in sorted(points, key=lambda p: p.get("name") or ""):
            name = neighborhoods.get(point.get("neighborhood_id"), {}).get("name", "Sem bairro")
            groups.setdefault(name, []).append(point)
        return [{"neighborhood": k, "points": v} for k, v in sorted(groups.items())]

    return render_template("map.html", state=run_query(fetch))


@bp.route("/aprender")
@feature_required("learn", "Aprender")
def learn():
    db = firestore.client()
    tips = run_query(lambda token: AdminService.list_feature_items(db, EDU_TIPS))
    return render_template("learn.html", tips=tips)


@bp.route("/bairros/<slug>")
def neighborhood(slug):
    """Public page of a neighborhood: drop points, windows and its mural."""
    db = firestore.client()
    hood = ProfileService.get_neighborhood_by_slug(db, slug)
    if hood is None:
        abort(404)
    posts = run_query(lambda token: MuralService.list_posts(db, hood["id"], limit=10))
    return render_template(
        "neighborhood.html",
        hood=hood,
        drop_points=PickupService.list_drop_points(db, hood["id"]),
        windows=PickupService.list_windows(db, hood["id"]),
        posts=posts,
        kind_labels=POST_KIND_LABELS,
        weekday_names=WEEKDAY_NAMES,
    )


@bp.route("/bairros/<slug>/transparencia")
def transparency(slug):
    """Weekly aggregate counts of a neighborhood; no personal data."""
    db = firestore.client()
    hood = ProfileService.get_neighborhood_by_slug(db, slug)
    if hood is None:
        abort(404)
    weeks = run_query(lambda token: PickupService.weekly_summary(db, hood["id"]))
    return render_template("transparency.html", hood=hood, weeks=weeks)
