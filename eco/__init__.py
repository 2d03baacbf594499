"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import credentials
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from .constants import DEFAULT_MEDIA_BUCKET
from .extensions import csrf


def _env_flag(name):
    return os.environ.get(name)


def _load_credentials(app):
    """Resolve Firebase credentials: env JSON, then a local file, then ADC."""
    cred = None
    project_id = None

    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = app.config.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )
    return cred, project_id


def init_firebase(app):
    """Initialize the Firebase Admin SDK once per process."""
    cred, project_id = _load_credentials(app)
    if not cred or firebase_admin._apps:
        return
    storage_bucket = app.config.get("FIREBASE_STORAGE_BUCKET")
    if not storage_bucket and project_id:
        storage_bucket = f"{project_id}.firebasestorage.app"

    firebase_options = {"storageBucket": storage_bucket}
    if project_id:
        firebase_options["projectId"] = project_id
    try:
        firebase_admin.initialize_app(cred, firebase_options)
    except ValueError:
        # Already initialized by another app instance in this process.
        app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(
        __name__,
        instance_relative_config=True,
        static_folder="static",
        static_url_path="/static",
    )

    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        ECO_ENV=os.environ.get("ECO_ENV") or "dev",
        ECO_STAGING_PASS=os.environ.get("ECO_STAGING_PASS"),
        ECO_AUTH_PROVIDER=os.environ.get("ECO_AUTH_PROVIDER") or "firebase",
        ECO_AUTH_FIXTURES=os.environ.get("ECO_AUTH_FIXTURES_JSON"),
        ECO_MEDIA_BUCKET=os.environ.get("ECO_MEDIA_BUCKET") or DEFAULT_MEDIA_BUCKET,
        FIREBASE_API_KEY=os.environ.get("FIREBASE_API_KEY"),
        FIREBASE_PROJECT_ID=os.environ.get("FIREBASE_PROJECT_ID"),
        FIREBASE_STORAGE_BUCKET=os.environ.get("FIREBASE_STORAGE_BUCKET"),
        MAX_CONTENT_LENGTH=int(os.environ.get("MAX_CONTENT_LENGTH") or 16 * 1024 * 1024),
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
    )
    # Feature switches are only copied when set; unset ones fall back to the env.
    for key in (
        "ECO_FEATURES_PILOT",
        "ECO_FEATURES_ANCHORS",
        "ECO_FEATURES_GALPAO",
        "ECO_FEATURES_GOV",
        "ECO_FEATURES_LEARN",
    ):
        if _env_flag(key) is not None:
            app.config[key] = _env_flag(key)

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        init_firebase(app)

    from .auth.providers import EXTENSION_KEY, build_auth_provider

    app.extensions[EXTENSION_KEY] = build_auth_provider(app.config)

    from .media.cache import EXTENSION_KEY as SIGNED_URLS_KEY
    from .media.cache import SignedUrlCache

    app.extensions[SIGNED_URLS_KEY] = SignedUrlCache()

    csrf.init_app(app)

    # The edge filter must run before the auth hooks.
    from .edge import edge_bp

    app.register_blueprint(edge_bp)

    from .auth.context import (
        attach_auth_context,
        enforce_route_gate,
        inject_auth,
    )
    from .features import inject_features

    app.before_request(attach_auth_context)
    app.before_request(enforce_route_gate)
    app.context_processor(inject_auth)
    app.context_processor(inject_features)

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import main as main_bp

    app.register_blueprint(main_bp.bp)

    from . import profile as profile_bp

    app.register_blueprint(profile_bp.bp)

    from . import onboarding as onboarding_bp

    app.register_blueprint(onboarding_bp.bp)

    from . import pickups as pickups_bp

    app.register_blueprint(pickups_bp.bp)
    app.register_blueprint(pickups_bp.coop_bp)

    from . import mural as mural_bp

    app.register_blueprint(mural_bp.bp)

    from . import receipts as receipts_bp

    app.register_blueprint(receipts_bp.bp)

    from . import notifications as notifications_bp

    app.register_blueprint(notifications_bp.bp)
    app.register_blueprint(notifications_bp.api_bp)
    csrf.exempt(notifications_bp.api_bp)

    from . import media as media_bp

    app.register_blueprint(media_bp.bp)
    csrf.exempt(media_bp.bp)

    from . import admin as admin_bp

    app.register_blueprint(admin_bp.bp)
    app.register_blueprint(admin_bp.api_bp)
    csrf.exempt(admin_bp.api_bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.context_processor
    def inject_version():
        """Injects the application version into the template context."""
        return dict(app_version=os.environ.get("APP_VERSION", "dev"))

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
