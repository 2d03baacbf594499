"""Routes for residents' pickups and the cooperado panel."""

from firebase_admin import firestore
from flask import (
    abort,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)

from eco.admin.services import EarningsService
from eco.auth.context import current_auth
from eco.auth.decorators import login_required
from eco.constants import (
    ROLE_COOPERADO,
    ROLE_OPERATOR,
    STATUS_COLLECTED,
    STATUS_EN_ROUTE,
    WEEKDAY_NAMES,
)
from eco.errors import AppError
from eco.profile.services import ProfileService
from eco.query import run_query
from eco.receipts.services import ReceiptService

from . import bp, coop_bp
from .forms import ActionForm, CollectForm, PickupRequestForm, SubscriptionForm
from .services import PickupService, SubscriptionService
from .windows import format_window_label

COOP_ROLES = (ROLE_COOPERADO, ROLE_OPERATOR)


def _drop_point_choices(db, neighborhood_id):
    return [("", "Selecione...")] + [
        (d["id"], d.get("name", d["id"]))
        for d in PickupService.list_drop_points(db, neighborhood_id)
    ]


@bp.route("/pedir-coleta", methods=["GET", "POST"])
@login_required(neighborhood_required=True)
def request_pickup():
    """Create a pickup request."""
    auth_ctx = current_auth()
    db = firestore.client()
    form = PickupRequestForm()
    form.drop_point_id.choices = _drop_point_choices(db, auth_ctx.neighborhood_id)
    if request.method == "GET":
        saved = ProfileService.get_address(db, auth_ctx.uid) or {}
        form.address_full.data = saved.get("address_full")
        form.contact_phone.data = saved.get("contact_phone")

    if form.validate_on_submit():
        try:
            request_id = PickupService.create_request(
                db,
                auth_ctx.uid,
                auth_ctx.neighborhood_id,
                form.fulfillment_mode.data,
                [entry.data for entry in form.items.entries],
                notes=form.notes.data or "",
                drop_point_id=form.drop_point_id.data or None,
                address_full=form.address_full.data,
                contact_phone=form.contact_phone.data,
            )
            current_app.logger.info(f"Pickup request {request_id} created")
            flash("Pedido criado! Acompanhe em Meus pedidos.", "success")
            return redirect(url_for(".my_requests"))
        except AppError as e:
            flash(e.message, "danger")
    return render_template("pickups/request.html", form=form)


@bp.route("/pedidos")
@login_required(neighborhood_required=True)
def my_requests():
    db = firestore.client()
    uid = current_auth().uid
    state = run_query(lambda token: PickupService.list_for_resident(db, uid))
    return render_template("pickups/list.html", state=state)


@bp.route("/recorrencia", methods=["GET", "POST"])
@login_required(neighborhood_required=True)
def subscriptions():
    """Create and manage recurring pickups."""
    auth_ctx = current_auth()
    db = firestore.client()
    windows = PickupService.list_windows(db, auth_ctx.neighborhood_id)
    form = SubscriptionForm()
    form.drop_point_id.choices = _drop_point_choices(db, auth_ctx.neighborhood_id)
    form.preferred_window_id.choices = [("", "Qualquer janela")] + [
        (w["id"], format_window_label(w)) for w in windows
    ]

    if form.validate_on_submit():
        try:
            SubscriptionService.create(
                db,
                auth_ctx.uid,
                auth_ctx.neighborhood_id,
                form.fulfillment_mode.data,
                form.cadence.data,
                form.preferred_weekday.data,
                preferred_window_id=form.preferred_window_id.data or None,
                drop_point_id=form.drop_point_id.data or None,
                notes=form.notes.data or "",
            )
            flash("Recorrência criada.", "success")
            return redirect(url_for(".subscriptions"))
        except AppError as e:
            flash(e.message, "danger")

    uid = auth_ctx.uid
    state = run_query(lambda token: SubscriptionService.list_for_user(db, uid))
    return render_template(
        "pickups/subscriptions.html",
        form=form,
        state=state,
        action_form=ActionForm(),
        weekday_names=WEEKDAY_NAMES,
    )


@bp.route("/recorrencia/<subscription_id>/alternar", methods=["POST"])
@login_required(neighborhood_required=True)
def toggle_subscription(subscription_id):
    form = ActionForm()
    if form.validate_on_submit():
        try:
            status = SubscriptionService.toggle(
                firestore.client(), current_auth().uid, subscription_id
            )
            flash(
                "Recorrência pausada." if status == "paused" else "Recorrência retomada.",
                "success",
            )
        except AppError as e:
            flash(e.message, "danger")
    return redirect(url_for(".subscriptions"))


@coop_bp.route("")
@coop_bp.route("/")
@login_required(roles=COOP_ROLES, neighborhood_required=True)
def panel():
    """Open requests of the neighborhood and the cooperado's own route."""
    auth_ctx = current_auth()
    db = firestore.client()
    neighborhood_id = auth_ctx.neighborhood_id
    uid = auth_ctx.uid
    open_state = run_query(lambda token: PickupService.list_open(db, neighborhood_id))
    mine_state = run_query(lambda token: PickupService.list_assigned(db, uid))
    receipts_state = run_query(
        lambda token: ReceiptService.list_for_cooperado(db, uid)[:10]
    )
    return render_template(
        "cooperado/panel.html",
        open_state=open_state,
        mine_state=mine_state,
        receipts_state=receipts_state,
        form=ActionForm(),
    )


@coop_bp.route("/pedido/<request_id>/aceitar", methods=["POST"])
@login_required(roles=COOP_ROLES, neighborhood_required=True)
def accept(request_id):
    auth_ctx = current_auth()
    form = ActionForm()
    if form.validate_on_submit():
        try:
            PickupService.accept(
                firestore.client(),
                request_id,
                auth_ctx.uid,
                auth_ctx.role,
                auth_ctx.neighborhood_id,
            )
            flash("Pedido aceito.", "success")
            return redirect(url_for(".request_detail", request_id=request_id))
        except AppError as e:
            flash(e.message, "danger")
    return redirect(url_for(".panel"))


@coop_bp.route("/pedido/<request_id>")
@login_required(roles=COOP_ROLES, neighborhood_required=True)
def request_detail(request_id):
    auth_ctx = current_auth()
    db = firestore.client()
    pickup = PickupService.get_request(db, request_id)
    if pickup is None:
        abort(404)
    can_act = (
        auth_ctx.is_operator or pickup.get("assigned_cooperado") == auth_ctx.uid
    )
    private_address = (
        PickupService.get_private_address(db, request_id) if can_act else None
    )
    drop_point = None
    if pickup.get("drop_point_id"):
        drop_point = PickupService.get_drop_point(db, pickup["drop_point_id"])
    return render_template(
        "cooperado/request.html",
        pickup=pickup,
        can_act=can_act,
        private_address=private_address,
        drop_point=drop_point,
        action_form=ActionForm(),
        collect_form=CollectForm(),
    )


@coop_bp.route("/pedido/<request_id>/a-caminho", methods=["POST"])
@login_required(roles=COOP_ROLES, neighborhood_required=True)
def mark_en_route(request_id):
    auth_ctx = current_auth()
    form = ActionForm()
    if form.validate_on_submit():
        try:
            PickupService.advance(
                firestore.client(),
                request_id,
                auth_ctx.uid,
                auth_ctx.role,
                STATUS_EN_ROUTE,
            )
            flash("Status atualizado: a caminho.", "success")
        except AppError as e:
            flash(e.message, "danger")
    return redirect(url_for(".request_detail", request_id=request_id))


@coop_bp.route("/pedido/<request_id>/concluir", methods=["POST"])
@login_required(roles=COOP_ROLES, neighborhood_required=True)
def collect(request_id):
    """Finish the collection and issue the receipt."""
    auth_ctx = current_auth()
    form = CollectForm()
    if form.validate_on_submit():
        try:
            receipt_id = PickupService.advance(
                firestore.client(),
                request_id,
                auth_ctx.uid,
                auth_ctx.role,
                STATUS_COLLECTED,
                final_notes=form.final_notes.data or "",
                photo=form.photo.data,
            )
            current_app.logger.info(f"Request {request_id} collected: {receipt_id}")
            flash("Coleta concluída. Recibo gerado!", "success")
            return redirect(url_for("receipts.detail", receipt_id=receipt_id))
        except AppError as e:
            flash(e.message, "danger")
    else:
        for errors in form.errors.values():
            for error in errors:
                flash(error, "danger")
    return redirect(url_for(".request_detail", request_id=request_id))


@coop_bp.route("/ganhos")
@login_required(roles=COOP_ROLES, neighborhood_required=True)
def earnings():
    """The cooperado's ledger entries, newest first."""
    db = firestore.client()
    uid = current_auth().uid
    state = run_query(lambda token: EarningsService.ledger_summary(db, uid))
    return render_template("cooperado/earnings.html", state=state)


@coop_bp.route("/pagamentos")
@login_required(roles=COOP_ROLES, neighborhood_required=True)
def payouts():
    """Payouts made to the cooperado, per period, with adjustments."""
    db = firestore.client()
    uid = current_auth().uid
    state = run_query(lambda token: EarningsService.payout_history(db, uid))
    return render_template("cooperado/payouts.html", state=state)
