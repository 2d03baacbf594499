"""Routes for the mural blueprint."""

from firebase_admin import firestore
from flask import flash, redirect, render_template, url_for

from eco.auth.context import current_auth
from eco.auth.decorators import login_required
from eco.errors import AppError
from eco.query import run_query

from . import bp
from .forms import PostForm
from .services import POST_KIND_LABELS, MuralService


@bp.route("")
@bp.route("/")
def index():
    """Neighborhood feed; visitors without a neighborhood see every post."""
    db = firestore.client()
    neighborhood_id = current_auth().neighborhood_id
    state = run_query(lambda token: MuralService.list_posts(db, neighborhood_id))
    return render_template(
        "mural/index.html", state=state, kind_labels=POST_KIND_LABELS
    )


@bp.route("/novo", methods=["GET", "POST"])
@login_required(neighborhood_required=True)
def new_post():
    auth_ctx = current_auth()
    form = PostForm()
    if form.validate_on_submit():
        try:
            MuralService.create_post(
                firestore.client(),
                auth_ctx.uid,
                auth_ctx.neighborhood_id,
                form.kind.data,
                form.title.data or "",
                form.body.data,
                receipt_id=(form.receipt_id.data or "").strip() or None,
                photo=form.photo.data,
            )
            flash("Post publicado no mural.", "success")
            return redirect(url_for(".index"))
        except AppError as e:
            flash(e.message, "danger")
    return render_template("mural/new.html", form=form)
