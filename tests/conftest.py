from typing import Any, Dict, NamedTuple, Optional
from urllib.parse import urlsplit

import pytest
import requests

from digivote import create_app
from digivote.api import ApiClient
from digivote.session_store import TokenStore

API_URL = "http://api.test"

COMPLETE_USER = {
    "_id": "u1",
    "fullName": "Asha Patel",
    "email": "asha@example.com",
    "mobile": "9876543210",
    "gender": "female",
    "address": "12 Station Road",
    "currentAddress": "12 Station Road",
    "state": "Gujarat",
    "district": "Mehsana",
    "taluka": "Kadi",
    "city": "Agol",
    "voterId": "ABC1234567",
    "photo": "data:image/jpeg;base64,AAAA",
    "role": "voter",
}


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Optional[Any] = None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("no JSON body")
        return self._body


class Call(NamedTuple):
    method: str
    path: str
    params: Optional[Dict[str, Any]]
    json: Optional[Dict[str, Any]]
    headers: Dict[str, str]


class FakeSession:
    """Stands in for ``requests.Session``; routes by (method, path) and records every call."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method: str, path: str, data: Any = None, status: int = 200, message: Optional[str] = None,
            body: Optional[Dict[str, Any]] = None):
        if body is None:
            body = {"success": 200 <= status < 300, "data": data or {}}
            if message:
                body["message"] = message
        self.routes[(method, path)] = FakeResponse(status, body)

    def fail(self, method: str, path: str, exc: Exception = None):
        self.routes[(method, path)] = exc or requests.exceptions.ConnectionError("connection refused")

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = urlsplit(url).path
        self.calls.append(Call(method, path, params, json, dict(headers or {})))
        route = self.routes.get((method, path))
        if route is None:
            return FakeResponse(404, {"success": False, "message": f"no route for {method} {path}"})
        if isinstance(route, Exception):
            raise route
        return route

    def calls_to(self, method: str, path: str):
        return [c for c in self.calls if c.method == method and c.path == path]


@pytest.fixture
def fake():
    return FakeSession()


@pytest.fixture
def storage():
    return {}


@pytest.fixture
def api(fake, storage):
    return ApiClient(API_URL, timeout=5, tokens=TokenStore(storage), session=fake)


@pytest.fixture
def app(fake):
    return create_app({"TESTING": True, "SECRET_KEY": "test", "API_URL": API_URL}, http_session=fake)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def voter(client, fake):
    """A logged-in voter with a complete profile."""
    with client.session_transaction() as sess:
        sess["token"] = "user-token"
    fake.add("GET", "/api/auth/me", {"user": dict(COMPLETE_USER)})
    return dict(COMPLETE_USER)


@pytest.fixture
def admin(client):
    with client.session_transaction() as sess:
        sess["adminToken"] = "admin-token"
    return "admin-token"
