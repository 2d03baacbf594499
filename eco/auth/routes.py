import json

from firebase_admin import firestore
from flask import (
    Response,
    current_app,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    session,
    url_for,
)

from eco.errors import AuthRequired
from eco.profile.services import ProfileService

from . import bp
from .context import SESSION_EMAIL, SESSION_USER_ID, current_auth
from .forms import LoginForm
from .providers import get_auth_provider

ONBOARDING_START = "/começar/"


def safe_next(target):
    """Only allow same-site relative redirects."""
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return "/"


@bp.route("/login", methods=["GET"])
def login():
    """
    Renders the login page.
    Sign-in itself happens in the browser; the page then posts the ID token
    to ``session_login``.
    """
    if current_auth().is_authenticated:
        return redirect(safe_next(request.args.get("next")))
    form = LoginForm()
    return render_template(
        "login.html",
        form=form,
        provider=get_auth_provider().name,
        next_url=safe_next(request.args.get("next")),
    )


@bp.route("/session_login", methods=["POST"])
def session_login():
    """
    Receives an ID token from the browser, verifies it with the configured
    provider and creates the server-side session.
    """
    payload = request.get_json(silent=True) or {}
    id_token = payload.get("idToken")
    try:
        user = get_auth_provider().verify_token(id_token)
    except AuthRequired as e:
        return jsonify({"status": "error", "message": e.message}), 401

    try:
        db = firestore.client()
        profile = ProfileService.ensure_profile(db, user["uid"], user.get("email"))
    except Exception as e:
        current_app.logger.error(f"Error during session login: {e}")
        return (
            jsonify({"status": "error", "message": "Falha ao carregar o perfil."}),
            502,
        )

    session.clear()
    session[SESSION_USER_ID] = user["uid"]
    session[SESSION_EMAIL] = user.get("email")
    current_app.logger.info(f"Session started for {user['uid']}")

    if not profile.get("neighborhood_id"):
        next_url = ONBOARDING_START
    else:
        next_url = safe_next(payload.get("next"))
    return jsonify({"status": "success", "next": next_url})


@bp.route("/logout")
def logout():
    """Clear the server-side session; the browser SDK signs out on its own."""
    session.clear()
    flash("Você saiu da sua conta.", "success")
    return redirect(url_for("main.index"))


@bp.route("/firebase-config.js")
def firebase_config():
    api_key = current_app.config.get("FIREBASE_API_KEY")
    if not api_key:
        current_app.logger.error(
            "FIREBASE_API_KEY is not set. Frontend will not be able to connect to Firebase."
        )
        error_script = 'console.error("Firebase API key is missing. Please set the FIREBASE_API_KEY environment variable.");'
        return Response(error_script, mimetype="application/javascript")

    project_id = current_app.config.get("FIREBASE_PROJECT_ID") or ""
    config = {
        "apiKey": api_key,
        "authDomain": f"{project_id}.firebaseapp.com",
        "projectId": project_id,
    }
    js_config = f"const firebaseConfig = {json.dumps(config)};"
    return Response(js_config, mimetype="application/javascript")
