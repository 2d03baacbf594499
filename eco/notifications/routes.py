"""Routes for notifications: bearer-token JSON API and the HTML page."""

from firebase_admin import firestore
from flask import current_app, flash, jsonify, redirect, render_template, request, url_for

from eco.auth.context import current_auth
from eco.auth.decorators import login_required
from eco.auth.providers import authenticate_bearer
from eco.errors import AppError
from eco.query import run_query

from . import api_bp, bp
from .services import NotificationService, serialize_notification


@api_bp.route("/list", methods=["GET"])
def list_notifications():
    """Up to 20 notifications of the caller, unread first then newest first."""
    user, _token = authenticate_bearer()
    items = NotificationService.list_for_user(firestore.client(), user["uid"])
    return jsonify({"items": [serialize_notification(n) for n in items]})


@api_bp.route("/mark-read", methods=["POST"])
def mark_read():
    """Mark ``ids`` (or ``all``) of the caller's notifications read."""
    user, _token = authenticate_bearer()
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    mark_all = bool(payload.get("all"))
    ids = payload.get("ids") if isinstance(payload.get("ids"), list) else None
    updated = NotificationService.mark_read(
        firestore.client(), user["uid"], ids=ids, mark_all=mark_all
    )
    current_app.logger.info(f"Marked {updated} notifications read for {user['uid']}")
    return jsonify({"updated": updated, "user_id": user["uid"]})


@bp.route("", methods=["GET"])
@login_required
def index():
    db = firestore.client()
    uid = current_auth().uid
    state = run_query(lambda token: {"items": NotificationService.list_for_user(db, uid)})
    return render_template("notifications/index.html", state=state)


@bp.route("/marcar", methods=["POST"])
@login_required
def mark_read_page():
    """Form handler for the page's mark-read buttons."""
    mark_all = request.form.get("all") == "1"
    ids = request.form.getlist("ids")
    try:
        updated = NotificationService.mark_read(
            firestore.client(), current_auth().uid, ids=ids, mark_all=mark_all
        )
        flash(f"{updated} notificação(ões) marcada(s) como lida(s).", "success")
    except AppError as e:
        flash(e.message, "danger")
    return redirect(url_for(".index"))
