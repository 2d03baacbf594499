"""Routes for the receipts blueprint."""

from firebase_admin import firestore
from flask import render_template

from eco.auth.context import current_auth
from eco.auth.decorators import login_required
from eco.media.cache import SessionCaller, get_signed_url_cache
from eco.query import run_query

from . import bp
from .services import ReceiptService


@bp.route("/<receipt_id>")
@login_required
def detail(receipt_id):
    """Receipt detail with its proof photos."""
    auth_ctx = current_auth()
    data = ReceiptService.get_for_viewer(
        firestore.client(), receipt_id, auth_ctx.uid, auth_ctx.role
    )
    cache = get_signed_url_cache()
    caller = SessionCaller(auth_ctx.uid)
    photos = run_query(
        lambda cancel: cache.get_by_entity(caller, "receipt", receipt_id, 180)
    )
    return render_template("receipts/detail.html", photos=photos, **data)
