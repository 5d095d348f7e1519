import functools
import logging

from flask import current_app, flash, g, redirect, render_template, request, url_for

from ..auth import AdminAuth, AuthStore
from ..elections import parse_timestamp
from ..validators import is_profile_complete

logger = logging.getLogger(__name__)


def auth_store() -> AuthStore:
    if "auth" not in g:
        g.auth = AuthStore(g.api, g.tokens)
    return g.auth


def admin_auth() -> AdminAuth:
    return AdminAuth(g.api, g.tokens)


def flows():
    return current_app.extensions["digivote.flows"]


def confirmed() -> bool:
    return request.form.get("confirm") == "yes"


def render_confirm(message: str, cancel_url: str, title: str = "Please confirm"):
    """Confirmation page for a destructive action; re-posts the form with confirm=yes."""
    fields = [(k, v) for k, v in request.form.items(multi=True) if k != "confirm"]
    return render_template("confirm.html", title=title, message=message, action=request.path,
                           fields=fields, cancel_url=cancel_url)


def render_message(title: str, message: str, back_url: str, back_label: str = "Go Back", status: int = 200):
    return render_template("message.html", title=title, message=message, back_url=back_url,
                           back_label=back_label), status


def login_required(view):
    @functools.wraps(view)
    def wrapped(*args, **kwargs):
        if not g.tokens.user_token:
            flash("Please log in to continue.", "info")
            return redirect(url_for("auth.login"))
        state = auth_store().rehydrate()
        if not state.is_authenticated:
            if state.token:
                return render_message("Service unavailable",
                                      "We could not reach the server. Please try again shortly.",
                                      request.path, "Retry", 503)
            flash(state.error or "Please log in to continue.", "warning")
            return redirect(url_for("auth.login"))
        g.user = state.user
        return view(*args, **kwargs)
    return wrapped


def admin_required(view):
    @functools.wraps(view)
    def wrapped(*args, **kwargs):
        if not g.tokens.admin_token:
            flash("Please log in as an administrator.", "info")
            return redirect(url_for("admin.login"))
        return view(*args, **kwargs)
    return wrapped


def _fmt_date(value, fmt="%d %b %Y, %H:%M"):
    parsed = parse_timestamp(value)
    return parsed.strftime(fmt) if parsed else ""


def template_helpers():
    return {
        "fmt_date": _fmt_date,
        "profile_complete": is_profile_complete,
        "poll_interval": current_app.config["POLL_INTERVAL_SECONDS"],
        "debounce_ms": current_app.config["SEARCH_DEBOUNCE_MS"],
        "is_admin_session": bool(getattr(g, "tokens", None) and g.tokens.admin_token),
        "is_user_session": bool(getattr(g, "tokens", None) and g.tokens.user_token),
    }
