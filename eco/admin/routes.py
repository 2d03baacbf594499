"""Admin routes for the application."""

from firebase_admin import firestore
from flask import (
    Response,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)

from eco.auth.context import current_auth
from eco.auth.decorators import login_required
from eco.auth.providers import bearer_token_from_request, get_auth_provider
from eco.constants import (
    ANCHOR_COMMITMENTS,
    GOVERNANCE_TERMS,
    LOTS,
    PILOT_CONFIGS,
    ROLE_OPERATOR,
    WEEKDAY_NAMES,
)
from eco.errors import AppError, ValidationError
from eco.features import feature_required
from eco.profile.services import ProfileService
from eco.query import run_query
from eco.utils import is_uuid

from . import api_bp, bp
from .forms import (
    AdjustmentForm,
    ConfirmForm,
    DropPointForm,
    MarkPaidForm,
    PeriodForm,
    RoleForm,
    RouteWindowForm,
)
from .services import (
    AdminService,
    AuditService,
    DropPointService,
    PayoutExportService,
    PayoutService,
    PricingService,
    RouteWindowService,
)

operator_required = login_required(roles=(ROLE_OPERATOR,), neighborhood_required=True)


def csv_response(filename, body):
    return Response(
        body,
        content_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-store",
        },
    )


@bp.route("")
@bp.route("/")
@operator_required
def admin():
    """Render the operator dashboard."""
    db = firestore.client()
    stats = run_query(lambda token: AdminService.get_admin_stats(db))
    audit = run_query(lambda token: AuditService.list_recent(db))
    return render_template(
        "admin/dashboard.html", stats=stats, audit=audit, role_form=RoleForm()
    )


@bp.route("/papel", methods=["POST"])
@operator_required
def set_role():
    form = RoleForm()
    if form.validate_on_submit():
        try:
            AdminService.set_role(
                firestore.client(),
                current_auth().uid,
                form.user_id.data.strip(),
                form.role.data,
            )
            flash("Papel atualizado.", "success")
        except AppError as e:
            flash(e.message, "danger")
    return redirect(url_for(".admin"))


@bp.route("/pagamentos")
@operator_required
def payouts():
    """Payout periods; ``?period_id=`` opens one period's payouts."""
    db = firestore.client()
    periods = run_query(lambda token: PayoutService.list_periods(db))
    period = None
    period_payouts = None
    period_id = request.args.get("period_id")
    if period_id:
        period = PayoutService.get_period(db, period_id)
        if period is not None:
            period_payouts = run_query(
                lambda token: PayoutService.list_payouts(db, period_id)
            )
    return render_template(
        "admin/payouts.html",
        periods=periods,
        period=period,
        period_payouts=period_payouts,
        period_form=PeriodForm(),
        adjustment_form=AdjustmentForm(),
        paid_form=MarkPaidForm(),
        confirm_form=ConfirmForm(),
    )


@bp.route("/pagamentos/periodos", methods=["POST"])
@operator_required
def create_period():
    form = PeriodForm()
    if form.validate_on_submit():
        try:
            period_id = PayoutService.create_period(
                firestore.client(),
                current_auth().uid,
                form.period_start.data.isoformat(),
                form.period_end.data.isoformat(),
            )
            flash("Período criado.", "success")
            return redirect(url_for(".payouts", period_id=period_id))
        except AppError as e:
            flash(e.message, "danger")
    else:
        flash("Datas inválidas.", "danger")
    return redirect(url_for(".payouts"))


@bp.route("/pagamentos/<period_id>/fechar", methods=["POST"])
@operator_required
def close_period(period_id):
    form = ConfirmForm()
    if form.validate_on_submit():
        try:
            count = PayoutService.close_period(
                firestore.client(), current_auth().uid, period_id
            )
            flash(f"Período fechado com {count} pagamento(s).", "success")
        except AppError as e:
            flash(e.message, "danger")
    return redirect(url_for(".payouts", period_id=period_id))


@bp.route("/pagamentos/<period_id>/ajustes", methods=["POST"])
@operator_required
def add_adjustment(period_id):
    form = AdjustmentForm()
    if form.validate_on_submit():
        try:
            PayoutService.add_adjustment(
                firestore.client(),
                current_auth().uid,
                period_id,
                form.cooperado_id.data.strip(),
                form.amount_cents.data,
                form.reason.data,
            )
            flash("Ajuste registrado.", "success")
        except AppError as e:
            flash(e.message, "danger")
    else:
        flash("Preencha cooperada, valor e motivo.", "danger")
    return redirect(url_for(".payouts", period_id=period_id))


@bp.route("/pagamentos/pagar/<payout_id>", methods=["POST"])
@operator_required
def mark_paid(payout_id):
    form = MarkPaidForm()
    period_id = request.form.get("period_id")
    if form.validate_on_submit():
        try:
            reference = PayoutService.mark_paid(
                firestore.client(),
                current_auth().uid,
                payout_id,
                form.payout_reference.data,
            )
            flash(f"Pagamento marcado como pago ({reference}).", "success")
        except AppError as e:
            flash(e.message, "danger")
    return redirect(url_for(".payouts", period_id=period_id))


@bp.route("/pagamentos/<period_id>/csv")
@operator_required
def download_csv(period_id):
    """Same export as the API, authorized by the session."""
    filename, body = PayoutExportService.export(
        firestore.client(), current_auth().uid, period_id
    )
    current_app.logger.info(f"Payout CSV {filename} exported by {current_auth().uid}")
    return csv_response(filename, body)


@bp.route("/precos")
@operator_required
def pricing():
    db = firestore.client()
    rules = run_query(lambda token: PricingService.list_rules(db))
    return render_template("admin/pricing.html", rules=rules, form=ConfirmForm())


@bp.route("/precos/<rule_id>/alternar", methods=["POST"])
@operator_required
def toggle_pricing_rule(rule_id):
    form = ConfirmForm()
    if form.validate_on_submit():
        try:
            active = PricingService.toggle_rule(
                firestore.client(), current_auth().uid, rule_id
            )
            flash("Regra ativada." if active else "Regra desativada.", "success")
        except AppError as e:
            flash(e.message, "danger")
    return redirect(url_for(".pricing"))


@bp.route("/pontos", methods=["GET", "POST"])
@operator_required
def drop_points():
    """Create Ponto ECO drop points and switch them on or off."""
    db = firestore.client()
    form = DropPointForm()
    form.neighborhood_id.choices = [
        (n["id"], n.get("name", n["id"])) for n in ProfileService.list_neighborhoods(db)
    ]
    if request.method == "POST":
        if form.validate_on_submit():
            try:
                DropPointService.create(
                    db,
                    current_auth().uid,
                    form.neighborhood_id.data,
                    form.name.data,
                    form.address_public.data,
                    form.hours.data,
                    form.accepted_materials.data,
                )
                flash("Ponto ECO criado.", "success")
                return redirect(url_for(".drop_points"))
            except AppError as e:
                flash(e.message, "danger")
        else:
            flash("Preencha os campos obrigatórios do Ponto ECO.", "danger")
    points = run_query(lambda token: DropPointService.list_all(db))
    return render_template(
        "admin/drop_points.html", form=form, points=points, confirm_form=ConfirmForm()
    )


@bp.route("/pontos/<point_id>/alternar", methods=["POST"])
@operator_required
def toggle_drop_point(point_id):
    form = ConfirmForm()
    if form.validate_on_submit():
        try:
            active = DropPointService.toggle(
                firestore.client(), current_auth().uid, point_id
            )
            flash("Ponto ativado." if active else "Ponto desativado.", "success")
        except AppError as e:
            flash(e.message, "danger")
    return redirect(url_for(".drop_points"))


@bp.route("/rotas")
@operator_required
def route_windows():
    """Route windows and subscriptions of one neighborhood (``?bairro=<id>``)."""
    db = firestore.client()
    neighborhoods = ProfileService.list_neighborhoods(db)
    selected_id = request.args.get("bairro") or current_auth().neighborhood_id
    if selected_id not in {n["id"] for n in neighborhoods}:
        selected_id = neighborhoods[0]["id"] if neighborhoods else None
    windows = subscriptions = None
    if selected_id:
        windows = run_query(
            lambda token: RouteWindowService.list_for_neighborhood(db, selected_id)
        )
        subscriptions = run_query(
            lambda token: RouteWindowService.list_subscriptions(db, selected_id)
        )
    return render_template(
        "admin/route_windows.html",
        neighborhoods=neighborhoods,
        selected_id=selected_id,
        windows=windows,
        subscriptions=subscriptions,
        form=RouteWindowForm(),
        confirm_form=ConfirmForm(),
        weekday_names=WEEKDAY_NAMES,
    )


@bp.route("/rotas/<neighborhood_id>/janelas", methods=["POST"])
@operator_required
def create_route_window(neighborhood_id):
    form = RouteWindowForm()
    if form.validate_on_submit():
        try:
            RouteWindowService.create(
                firestore.client(),
                current_auth().uid,
                neighborhood_id,
                form.weekday.data,
                form.start_time.data,
                form.end_time.data,
                form.capacity.data,
            )
            flash("Janela criada.", "success")
        except AppError as e:
            flash(e.message, "danger")
    else:
        flash("Dia (0-6), horários e capacidade são obrigatórios.", "danger")
    return redirect(url_for(".route_windows", bairro=neighborhood_id))


@bp.route("/rotas/janelas/<window_id>/alternar", methods=["POST"])
@operator_required
def toggle_route_window(window_id):
    form = ConfirmForm()
    neighborhood_id = request.form.get("bairro")
    if form.validate_on_submit():
        try:
            window = RouteWindowService.toggle(
                firestore.client(), current_auth().uid, window_id
            )
            neighborhood_id = window.get("neighborhood_id")
            flash("Janela ativada." if window["active"] else "Janela desativada.", "success")
        except AppError as e:
            flash(e.message, "danger")
    return redirect(url_for(".route_windows", bairro=neighborhood_id))


def _feature_listing(title, collection):
    db = firestore.client()
    items = run_query(lambda token: AdminService.list_feature_items(db, collection))
    return render_template("admin/feature_list.html", title=title, items=items)


@bp.route("/piloto")
@operator_required
@feature_required("pilot", "Piloto", back_href="/admin")
def pilot():
    return _feature_listing("Piloto", PILOT_CONFIGS)


@bp.route("/ancoras")
@operator_required
@feature_required("anchors", "Âncoras", back_href="/admin")
def anchors():
    return _feature_listing("Âncoras", ANCHOR_COMMITMENTS)


@bp.route("/galpao")
@operator_required
@feature_required("galpao", "Galpão", back_href="/admin")
def galpao():
    return _feature_listing("Galpão", LOTS)


@bp.route("/governanca")
@operator_required
@feature_required("gov", "Governança", back_href="/admin")
def governance():
    return _feature_listing("Governança", GOVERNANCE_TERMS)


@api_bp.route("/payouts/export", methods=["GET"])
def export_payouts():
    """CSV export of one payout period (operators only)."""
    token = bearer_token_from_request()
    period_id = request.args.get("period_id")
    if not is_uuid(period_id):
        raise ValidationError("Invalid period_id.")
    user = get_auth_provider().verify_token(token)
    filename, body = PayoutExportService.export(
        firestore.client(), user["uid"], period_id
    )
    current_app.logger.info(f"Payout CSV {filename} exported by {user['uid']}")
    return csv_response(filename, body)
