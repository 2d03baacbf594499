"""Routes for the onboarding wizard."""

from firebase_admin import firestore
from flask import (
    abort,
    current_app,
    flash,
    redirect,
    render_template,
    request,
)

from eco.auth.context import current_auth
from eco.auth.decorators import login_required
from eco.constants import WEEKDAY_NAMES
from eco.errors import AppError
from eco.pickups.services import PickupService
from eco.profile.forms import AddressForm
from eco.profile.services import ProfileService

from . import bp
from .forms import ModeForm, NeighborhoodForm, StartForm
from .services import (
    FIRST_ACTION_TARGETS,
    ROUTE_NEIGHBORHOOD,
    OnboardingService,
)
from .tasks import complete_onboarding_background


@bp.route("/", methods=["GET", "POST"])
@login_required
def start():
    form = StartForm()
    if form.validate_on_submit():
        db = firestore.client()
        try:
            return redirect(OnboardingService.start(db, current_auth().uid))
        except AppError as e:
            flash(e.message, "danger")
    return render_template("onboarding/start.html", form=form)


@bp.route("/bairro", methods=["GET", "POST"])
@login_required
def neighborhood():
    """Pick a neighborhood; pilot neighborhoods are tagged."""
    db = firestore.client()
    form = NeighborhoodForm()
    if form.validate_on_submit():
        try:
            return redirect(
                OnboardingService.choose_neighborhood(
                    db, current_auth().uid, form.neighborhood_id.data
                )
            )
        except AppError as e:
            flash(e.message, "danger")

    search = request.args.get("q", "")
    return render_template(
        "onboarding/neighborhood.html",
        form=form,
        search=search,
        neighborhoods=ProfileService.list_neighborhoods(db, search),
        pilot_ids=OnboardingService.pilot_neighborhood_ids(db),
        current_id=current_auth().neighborhood_id,
    )


@bp.route("/modo", methods=["GET", "POST"])
@login_required
def mode():
    auth_ctx = current_auth()
    if not auth_ctx.neighborhood_id:
        return redirect(ROUTE_NEIGHBORHOOD)

    db = firestore.client()
    form = ModeForm()
    if form.validate_on_submit():
        try:
            return redirect(
                OnboardingService.choose_mode(
                    db, auth_ctx.uid, form.mode.data, form.drop_point_id.data or None
                )
            )
        except AppError as e:
            flash(e.message, "danger")

    return render_template(
        "onboarding/mode.html",
        form=form,
        drop_points=PickupService.list_drop_points(db, auth_ctx.neighborhood_id),
    )


@bp.route("/endereco", methods=["GET", "POST"])
@login_required
def address():
    db = firestore.client()
    user_id = current_auth().uid
    form = AddressForm()
    if request.method == "GET":
        saved = ProfileService.get_address(db, user_id) or {}
        form.address_full.data = saved.get("address_full")
        form.contact_phone.data = saved.get("contact_phone")

    if form.validate_on_submit():
        try:
            return redirect(
                OnboardingService.save_address(
                    db, user_id, form.address_full.data, form.contact_phone.data
                )
            )
        except AppError as e:
            flash(e.message, "danger")
    return render_template("onboarding/address.html", form=form)


@bp.route("/acao")
@login_required
def first_action():
    """Summary of the chosen mode plus the next route window."""
    auth_ctx = current_auth()
    db = firestore.client()
    state = OnboardingService.get_state(db, auth_ctx.uid) or {}
    drop_point = None
    if state.get("chosen_drop_point_id"):
        drop_point = PickupService.get_drop_point(db, state["chosen_drop_point_id"])
    next_window = None
    if auth_ctx.neighborhood_id:
        next_window = OnboardingService.next_window(db, auth_ctx.neighborhood_id)
    return render_template(
        "onboarding/action.html",
        state=state,
        drop_point=drop_point,
        next_window=next_window,
        weekday_names=WEEKDAY_NAMES,
        form=StartForm(),
    )


@bp.route("/concluir/<target>", methods=["POST"])
@login_required
def finish(target):
    """Schedule the completion write and go straight to the chosen action."""
    destination = FIRST_ACTION_TARGETS.get(target)
    if destination is None:
        abort(404)
    complete_onboarding_background(
        current_app._get_current_object(), current_auth().uid
    )
    return redirect(destination)
