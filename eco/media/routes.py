"""JSON API for signed media URLs."""

from firebase_admin import firestore
from flask import jsonify, request

from eco.auth.providers import authenticate_bearer
from eco.errors import ValidationError
from eco.utils import is_uuid

from . import bp
from .services import MediaService, parse_expires_in


@bp.route("/signed-url", methods=["GET"])
def signed_url():
    """Resolve ``media_id`` or ``entity_type`` + ``entity_id`` to signed URLs."""
    user, _token = authenticate_bearer()
    expires_in = parse_expires_in(request.args.get("expires_in"))
    media_id = request.args.get("media_id")
    entity_type = request.args.get("entity_type")
    entity_id = request.args.get("entity_id")

    if media_id and not is_uuid(media_id):
        raise ValidationError("Invalid media_id.")

    db = firestore.client()
    if media_id:
        return jsonify(MediaService.resolve_media(db, user["uid"], media_id, expires_in))
    return jsonify(
        MediaService.resolve_entity(
            db, user["uid"], entity_type or "", entity_id or "", expires_in
        )
    )
