import logging
from typing import Any, Dict, Optional

import click
import requests
from flask import Flask, flash, g, redirect, request, session, url_for

from .api import ApiAuthError, ApiClient, ApiError
from .config import Config
from .session_store import FLOW_KEY, TokenStore
from .voting_flow import FlowStore

logger = logging.getLogger("digivote")


def create_app(config_overrides: Optional[Dict[str, Any]] = None,
               http_session: Optional[requests.Session] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.basicConfig(level=getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO),
                        format="%(asctime)s %(levelname)s %(message)s")

    app.extensions["digivote.http"] = http_session or requests.Session()
    app.extensions["digivote.flows"] = FlowStore(app.config["FLOW_STORE_SIZE"], app.config["FLOW_TTL_SECONDS"])

    # -------------------------
    # Per-request client
    # -------------------------

    @app.before_request
    def bind_api():
        g.tokens = TokenStore(session)
        g.api = ApiClient(app.config["API_URL"], timeout=app.config["API_TIMEOUT"],
                          tokens=g.tokens, session=app.extensions["digivote.http"])

    @app.errorhandler(ApiAuthError)
    def handle_auth_error(e: ApiAuthError):
        tokens = TokenStore(session)
        if (request.blueprint or "").startswith("admin"):
            tokens.clear_admin()
            target = url_for("admin.login")
        else:
            tokens.clear_user()
            session.pop(FLOW_KEY, None)
            target = url_for("auth.login")
        logger.info("Session rejected on %s (HTTP %s), redirecting to login", request.path, e.status)
        flash(e.message or "Your session has expired. Please log in again.", "warning")
        return redirect(target)

    # -------------------------
    # Templates
    # -------------------------

    from .views import template_helpers
    app.context_processor(template_helpers)

    from .views.public import bp as public_bp
    from .views.auth import bp as auth_bp
    from .views.voter import bp as voter_bp
    from .views.voting import bp as voting_bp
    from .views.admin import bp as admin_bp
    from .views.admin_catalog import bp as admin_catalog_bp
    for bp in (public_bp, auth_bp, voter_bp, voting_bp, admin_bp, admin_catalog_bp):
        app.register_blueprint(bp)

    # -------------------------
    # CLI
    # -------------------------

    @app.cli.command("watch-elections")
    @click.option("--token", envvar="DIGIVOTE_ADMIN_TOKEN", required=True, help="Admin bearer token.")
    @click.option("--interval", type=float, default=None, help="Seconds between refreshes.")
    @click.option("--count", type=int, default=0, help="Stop after this many refreshes (0 = forever).")
    def watch_elections(token, interval, count):
        """Print the election list every poll interval until interrupted."""
        from .polling import Poller
        from .resources import elections_resource

        tokens = TokenStore({})
        tokens.set_admin_token(token)
        api = ApiClient(app.config["API_URL"], timeout=app.config["API_TIMEOUT"], tokens=tokens,
                        session=app.extensions["digivote.http"])
        resource = elections_resource(api, page_size=app.config["PAGE_SIZE"])
        seen = {"n": 0}

        def show(page):
            seen["n"] += 1
            click.echo(f"-- {page.total} elections (page {page.current_page}/{page.total_pages})")
            for e in page.items:
                click.echo(f"{e.get('status', '?'):<10} {e.get('title', '')}")
            if count and seen["n"] >= count:
                poller.cancel()

        def failed(e: ApiError):
            click.echo(f"refresh failed: {e.message or e}", err=True)

        poller = Poller(lambda: resource.load({}), show, interval or app.config["POLL_INTERVAL_SECONDS"],
                        on_error=failed)
        poller.start()
        try:
            while not poller.cancelled:
                poller.join(0.5)
        except KeyboardInterrupt:
            poller.cancel()

    return app
