import logging
from typing import Any, Dict, Iterable, Optional

import requests

logger = logging.getLogger(__name__)

# -------------------------
# Errors
# -------------------------


class ApiError(Exception):
    """A failed call to the voting API.

    ``message`` is the server-reported message when the body carried one,
    otherwise ``None``; call sites pick their own fallback text.
    """

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None,
                 payload: Optional[Dict[str, Any]] = None):
        super().__init__(message or f"API request failed (HTTP {status})")
        self.message = message
        self.status = status
        self.payload = payload or {}


class ApiAuthError(ApiError):
    """401/403 from the API; the session must be dropped."""


class ApiRequestError(ApiError):
    """Any other failure: business errors, 5xx, network errors and timeouts."""


def error_message(exc: ApiError, fallback: str) -> str:
    return exc.message or fallback


# -------------------------
# Token routing
# -------------------------

# Election routes reachable with a voter token
_VOTER_ELECTION_ROUTES = ("/available", "/available-user", "/meta", "/results-public", "/published-")


def is_admin_endpoint(path: str) -> bool:
    if path.startswith("/api/admin"):
        return True
    if path.startswith("/api/candidates"):
        return True
    if path.startswith("/api/elections"):
        return not any(marker in path for marker in _VOTER_ELECTION_ROUTES)
    return False


class Reply:
    """Successful API response: the ``data`` object and the server message."""

    def __init__(self, body: Dict[str, Any]):
        self.body = body
        self.data: Dict[str, Any] = body.get("data") or {}
        self.message: Optional[str] = body.get("message")

    def __repr__(self):
        return f"Reply(message={self.message!r}, data={self.data!r})"


# -------------------------
# Client
# -------------------------


class ApiClient:
    def __init__(self, base_url: str, timeout: float = 60, tokens=None,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.tokens = tokens
        self.session = session or requests.Session()

    def _token_for(self, path: str) -> Optional[str]:
        if self.tokens is None:
            return None
        if is_admin_endpoint(path):
            # user tokens are never sent to admin endpoints
            return self.tokens.admin_token
        return self.tokens.user_token

    def request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                json: Optional[Dict[str, Any]] = None) -> Reply:
        headers = {"Content-Type": "application/json"}
        token = self._token_for(path)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, params=params, json=json,
                                        headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning("Network error on %s %s: %r", method, path, e)
            raise ApiRequestError(None, None, {}) from e

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}

        status = resp.status_code
        if status in (401, 403):
            logger.error("API auth error %s %s (HTTP %s): %s", method, path, status, body)
            raise ApiAuthError(body.get("message"), status, body)
        if not 200 <= status < 300 or body.get("success") is False:
            logger.error("API error %s %s (HTTP %s): %s", method, path, status, body)
            raise ApiRequestError(body.get("message"), status, body)
        return Reply(body)

    def get(self, path, params=None) -> Reply:
        return self.request("GET", path, params=params)

    def post(self, path, json=None) -> Reply:
        return self.request("POST", path, json=json)

    def put(self, path, json=None) -> Reply:
        return self.request("PUT", path, json=json)

    def delete(self, path) -> Reply:
        return self.request("DELETE", path)

    # -------------------------
    # Health
    # -------------------------

    def health(self) -> Reply:
        return self.get("/health")

    # -------------------------
    # Auth (voters)
    # -------------------------

    def login(self, email: str, password: str) -> Reply:
        return self.post("/api/auth/login", {"email": email, "password": password})

    def verify_login(self, email: str, otp: str) -> Reply:
        return self.post("/api/auth/verify-login", {"email": email, "otp": otp})

    def generate_registration_otp(self, user_data: Dict[str, Any]) -> Reply:
        return self.post("/api/auth/generate-registration-otp", user_data)

    def verify_registration(self, user_data: Dict[str, Any], otp: str) -> Reply:
        return self.post("/api/auth/verify-registration", {**user_data, "otp": otp})

    def me(self) -> Reply:
        return self.get("/api/auth/me")

    def logout(self) -> Reply:
        return self.post("/api/auth/logout")

    def forgot_password(self, email: str) -> Reply:
        return self.post("/api/auth/forgot-password", {"email": email})

    def reset_password(self, email: str, otp: str, new_password: str) -> Reply:
        return self.post("/api/auth/reset-password",
                         {"email": email, "otp": otp, "newPassword": new_password})

    # -------------------------
    # Profile
    # -------------------------

    def get_profile(self) -> Reply:
        return self.get("/api/users/profile")

    def update_profile(self, data: Dict[str, Any]) -> Reply:
        return self.put("/api/users/profile", data)

    # -------------------------
    # Elections
    # -------------------------

    def list_elections(self, params: Optional[Dict[str, Any]] = None) -> Reply:
        return self.get("/api/elections", params)

    def available_user_elections(self) -> Reply:
        return self.get("/api/elections/available-user")

    def get_election(self, election_id: str) -> Reply:
        return self.get(f"/api/elections/{election_id}")

    def create_election(self, data: Dict[str, Any]) -> Reply:
        return self.post("/api/elections", data)

    def update_election(self, election_id: str, data: Dict[str, Any]) -> Reply:
        return self.put(f"/api/elections/{election_id}", data)

    def archive_election(self, election_id: str) -> Reply:
        return self.post(f"/api/elections/{election_id}/archive")

    def restore_election(self, election_id: str) -> Reply:
        return self.post(f"/api/elections/{election_id}/restore")

    def delete_election_permanently(self, election_id: str) -> Reply:
        return self.delete(f"/api/elections/{election_id}/permanent")

    def election_results(self, election_id: str) -> Reply:
        return self.get(f"/api/elections/{election_id}/results")

    def publish_results(self, election_id: str) -> Reply:
        return self.post(f"/api/elections/{election_id}/publish-results")

    def public_results(self, election_id: str) -> Reply:
        return self.get(f"/api/elections/{election_id}/results-public")

    def published_elections(self, params: Optional[Dict[str, Any]] = None) -> Reply:
        return self.get("/api/elections/published-list", params)

    def assign_candidate(self, election_id: str, candidate_id: str) -> Reply:
        return self.post(f"/api/elections/{election_id}/candidates", {"candidateId": candidate_id})

    def remove_candidate(self, election_id: str, candidate_id: str) -> Reply:
        return self.delete(f"/api/elections/{election_id}/candidates/{candidate_id}")

    # -------------------------
    # Candidates
    # -------------------------

    def list_candidates(self, params: Optional[Dict[str, Any]] = None) -> Reply:
        return self.get("/api/candidates", params)

    def get_candidate(self, candidate_id: str) -> Reply:
        return self.get(f"/api/candidates/{candidate_id}")

    def create_candidate(self, data: Dict[str, Any]) -> Reply:
        return self.post("/api/candidates", data)

    def update_candidate(self, candidate_id: str, data: Dict[str, Any]) -> Reply:
        return self.put(f"/api/candidates/{candidate_id}", data)

    def delete_candidate(self, candidate_id: str) -> Reply:
        return self.delete(f"/api/candidates/{candidate_id}")

    # -------------------------
    # Admin: users, roles, notifications
    # -------------------------

    def admin_dashboard(self) -> Reply:
        return self.get("/api/admin/dashboard")

    def list_users(self, params: Optional[Dict[str, Any]] = None) -> Reply:
        return self.get("/api/admin/users", params)

    def get_user(self, user_id: str) -> Reply:
        return self.get(f"/api/admin/users/{user_id}")

    def update_user(self, user_id: str, data: Dict[str, Any]) -> Reply:
        return self.put(f"/api/admin/users/{user_id}", data)

    def delete_user(self, user_id: str) -> Reply:
        return self.delete(f"/api/admin/users/{user_id}")

    def assign_admin(self, user_ids: Iterable[str]) -> Reply:
        return self.post("/api/admin/users/assign-admin", {"userIds": list(user_ids)})

    def remove_admin(self, user_ids: Iterable[str]) -> Reply:
        return self.post("/api/admin/users/remove-admin", {"userIds": list(user_ids)})

    def send_notification(self, payload: Dict[str, Any]) -> Reply:
        return self.post("/api/admin/notifications/send", payload)

    # -------------------------
    # Voting
    # -------------------------

    def check_vote_status(self, election_id: str) -> Reply:
        return self.get(f"/api/voting/check-status/{election_id}")

    def request_voting_password(self, email: str, card_number: str, election_id: str) -> Reply:
        return self.post("/api/voting/request-password", {
            "email": email,
            "electionCardNumber": card_number,
            "electionId": election_id,
        })

    def verify_voting_credentials(self, email: str, card_number: str, password: str,
                                  election_id: str) -> Reply:
        return self.post("/api/voting/verify-credentials", {
            "email": email,
            "electionCardNumber": card_number,
            "votingPassword": password,
            "electionId": election_id,
        })

    def cast_vote(self, election_id: str, candidate_id: str) -> Reply:
        return self.post("/api/voting/cast-vote", {"electionId": election_id, "candidateId": candidate_id})

    def view_vote(self, election_id: str) -> Reply:
        return self.post(f"/api/voting/view-vote/{election_id}")

    # -------------------------
    # Admin auth channel
    # -------------------------

    def admin_send_otp(self, email: str, password: str) -> Reply:
        return self.post("/api/admin-auth/send-otp", {"email": email, "password": password})

    def admin_verify_otp(self, email: str, otp: str) -> Reply:
        return self.post("/api/admin-auth/verify-otp", {"email": email, "otp": otp})

    def admin_me(self) -> Reply:
        return self.get("/api/admin-auth/me")
