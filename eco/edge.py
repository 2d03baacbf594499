"""Request filter in front of every route: robots.txt and the staging gate."""

from __future__ import annotations

from urllib.parse import urlencode

from flask import (
    Blueprint,
    Response,
    after_this_request,
    current_app,
    redirect,
    render_template,
    request,
)

edge_bp = Blueprint("edge", __name__)

STAGING_GATE_COOKIE = "eco_staging_gate"
STAGING_CLIENT_COOKIE = "eco_staging_pass"
STAGING_HEADER = "X-Eco-Staging-Pass"
STAGING_QUERY_PARAM = "access"
STAGING_GATE_MAX_AGE = 60 * 60 * 8

STATIC_PREFIXES = ("/static/", "/manifest")
STATIC_EXACT = ("/favicon.ico",)


def is_staging() -> bool:
    """Return True when the deployment is a staging environment."""
    return current_app.config.get("ECO_ENV") == "staging"


def build_robots_body() -> str:
    """Disallow crawling on staging, allow it everywhere else."""
    if is_staging():
        return "User-agent: *\nDisallow: /\n"
    return "User-agent: *\nAllow: /\n"


def is_static_bypass(path: str) -> bool:
    """Static assets skip the staging gate."""
    return path in STATIC_EXACT or path.startswith(STATIC_PREFIXES)


@edge_bp.route("/robots.txt")
def robots_txt():
    """Serve robots.txt based on the deployment environment."""
    return Response(
        build_robots_body(),
        mimetype="text/plain",
        headers={"Cache-Control": "no-store"},
    )


@edge_bp.before_app_request
def staging_gate():
    """Challenge every non-static request for the staging password."""
    if request.path == "/robots.txt" or not is_staging():
        return None

    staging_pass = current_app.config.get("ECO_STAGING_PASS") or ""
    if not staging_pass:
        return Response(
            "Staging bloqueado: configure ECO_STAGING_PASS.",
            status=503,
            mimetype="text/plain",
        )

    if is_static_bypass(request.path):
        return None

    if request.cookies.get(STAGING_GATE_COOKIE, "") == staging_pass:
        return None

    pass_from_query = request.args.get(STAGING_QUERY_PARAM, "")
    candidate = (
        pass_from_query
        or request.headers.get(STAGING_HEADER, "")
        or request.cookies.get(STAGING_CLIENT_COOKIE, "")
    )

    if candidate == staging_pass:
        if pass_from_query:
            remaining = [
                (key, value)
                for key, value in request.args.items(multi=True)
                if key != STAGING_QUERY_PARAM
            ]
            clean_url = request.path
            if remaining:
                clean_url = f"{clean_url}?{urlencode(remaining)}"
            response = redirect(clean_url)
        else:
            response = None
        current_app.logger.info(f"Staging gate passed for {request.path}")
        return _with_gate_cookie(response, staging_pass)

    current_app.logger.warning(f"Staging gate challenged {request.path}")
    response = Response(
        render_template("staging_gate.html", action=request.path),
        status=401,
        mimetype="text/html",
    )
    response.headers["Cache-Control"] = "no-store"
    return response


def _with_gate_cookie(response, staging_pass):
    """Attach the verified-pass cookie to the response.

    When the request should continue to its view, the cookie is set after
    the view runs.
    """
    cookie_kwargs = dict(
        max_age=STAGING_GATE_MAX_AGE,
        httponly=True,
        samesite="Lax",
        secure=request.scheme == "https",
        path="/",
    )
    if response is not None:
        response.set_cookie(STAGING_GATE_COOKIE, staging_pass, **cookie_kwargs)
        return response

    @after_this_request
    def set_gate_cookie(resp):
        resp.set_cookie(STAGING_GATE_COOKIE, staging_pass, **cookie_kwargs)
        return resp

    return None
