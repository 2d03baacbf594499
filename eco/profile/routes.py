"""Routes for the profile blueprint."""

from firebase_admin import firestore
from flask import flash, redirect, render_template, request, url_for

from eco.auth.context import current_auth
from eco.auth.decorators import login_required
from eco.auth.gate import DENIAL_CARDS, DenialReason
from eco.errors import AppError

from . import bp
from .forms import AddressForm, ProfileForm
from .services import ProfileService


@bp.route("", methods=["GET", "POST"])
@bp.route("/", methods=["GET", "POST"])
def view_profile():
    """Show the profile and handle display name / neighborhood edits."""
    auth_ctx = current_auth()
    if not auth_ctx.is_authenticated:
        return render_template(
            "profile/anonymous.html", card=DENIAL_CARDS[DenialReason.UNAUTHENTICATED]
        )

    db = firestore.client()
    profile = auth_ctx.profile or {}
    form = ProfileForm()
    form.neighborhood_id.choices = [
        (n["id"], n.get("name", n["id"])) for n in ProfileService.list_neighborhoods(db)
    ]
    if request.method == "GET":
        form.display_name.data = profile.get("display_name")
        form.neighborhood_id.data = profile.get("neighborhood_id")

    if form.validate_on_submit():
        try:
            ProfileService.update_profile(
                db,
                auth_ctx.uid,
                {
                    "display_name": form.display_name.data.strip(),
                    "neighborhood_id": form.neighborhood_id.data,
                },
            )
            flash("Perfil atualizado.", "success")
            return redirect(url_for(".view_profile"))
        except AppError as e:
            flash(e.message, "danger")

    return render_template(
        "profile/view.html",
        form=form,
        profile=profile,
        address=ProfileService.get_address(db, auth_ctx.uid),
        missing_neighborhood=not auth_ctx.neighborhood_id,
    )


@bp.route("/endereco", methods=["GET", "POST"])
@login_required
def edit_address():
    """Edit the private pickup address."""
    db = firestore.client()
    user_id = current_auth().uid
    form = AddressForm()
    if request.method == "GET":
        address = ProfileService.get_address(db, user_id) or {}
        form.address_full.data = address.get("address_full")
        form.contact_phone.data = address.get("contact_phone")

    if form.validate_on_submit():
        try:
            ProfileService.save_address(
                db, user_id, form.address_full.data, form.contact_phone.data
            )
            flash("Endereço salvo.", "success")
            return redirect(url_for(".view_profile"))
        except AppError as e:
            flash(e.message, "danger")

    return render_template("profile/address.html", form=form)
