import time

from flask import Blueprint, g, render_template

from ..api import ApiError

bp = Blueprint("public", __name__)


@bp.route('/')
@bp.route('/home')
def home():
    return render_template('index.html')


@bp.route('/health')
def health():
    return {"status": "ok", "time": time.time()}


@bp.route('/ready')
def ready():
    api_ok = True
    try:
        g.api.health()
    except ApiError:
        api_ok = False
    return {"api": api_ok, "api_url": g.api.base_url}, (200 if api_ok else 503)
