import enum
import logging
import time
from typing import Any, Dict, NamedTuple, Optional

from .api import ApiAuthError, ApiClient, ApiError, ApiRequestError, error_message
from .session_store import TokenStore

logger = logging.getLogger(__name__)

DASHBOARD_PATH = "/dashboard"


# -------------------------
# State and reducer
# -------------------------

class AuthAction(enum.Enum):
    AUTH_START = "AUTH_START"
    AUTH_SUCCESS = "AUTH_SUCCESS"
    AUTH_FAILURE = "AUTH_FAILURE"
    LOGOUT = "LOGOUT"
    UPDATE_USER = "UPDATE_USER"
    CLEAR_ERROR = "CLEAR_ERROR"


class AuthState(NamedTuple):
    user: Optional[Dict[str, Any]] = None
    token: Optional[str] = None
    is_authenticated: bool = False
    is_loading: bool = False
    error: Optional[str] = None


def reduce(state: AuthState, action: AuthAction, payload: Any = None) -> AuthState:
    """Pure transition function; never touches storage or the network."""
    if action is AuthAction.AUTH_START:
        return state._replace(is_loading=True, error=None)
    if action is AuthAction.AUTH_SUCCESS:
        return AuthState(user=payload["user"], token=payload["token"],
                         is_authenticated=True, is_loading=False, error=None)
    if action is AuthAction.AUTH_FAILURE:
        return AuthState(error=payload)
    if action is AuthAction.LOGOUT:
        return AuthState()
    if action is AuthAction.UPDATE_USER:
        return state._replace(user=payload)
    if action is AuthAction.CLEAR_ERROR:
        return state._replace(error=None)
    raise ValueError(f"Unknown auth action: {action!r}")


class Outcome(NamedTuple):
    success: bool
    message: Optional[str] = None
    email: Optional[str] = None
    redirect: Optional[str] = None


# -------------------------
# Voter auth store
# -------------------------

class AuthStore:
    def __init__(self, api: ApiClient, tokens: TokenStore):
        self.api = api
        self.tokens = tokens
        token = tokens.user_token
        self.state = AuthState(token=token, is_loading=bool(token))

    def dispatch(self, action: AuthAction, payload: Any = None) -> AuthState:
        self.state = reduce(self.state, action, payload)
        if action is AuthAction.AUTH_SUCCESS:
            self.tokens.set_user_token(self.state.token)
        elif action in (AuthAction.AUTH_FAILURE, AuthAction.LOGOUT):
            self.tokens.clear_user()
        return self.state

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        return self.state.user

    def _fail(self, exc: ApiError, fallback: str) -> Outcome:
        # a rejected login or registration step leaves a stored session in place
        message = error_message(exc, fallback)
        self.state = reduce(self.state, AuthAction.AUTH_FAILURE, message)
        return Outcome(False, message)

    def login(self, email: str, password: str) -> Outcome:
        self.dispatch(AuthAction.AUTH_START)
        try:
            reply = self.api.login(email, password)
        except ApiError as e:
            return self._fail(e, "Login failed")
        logger.info("Login OTP requested for %s", email)
        return Outcome(True, reply.message or "OTP sent to your email for verification", email=email)

    def verify_login_otp(self, email: str, otp: str) -> Outcome:
        self.dispatch(AuthAction.AUTH_START)
        try:
            reply = self.api.verify_login(email, otp)
        except ApiError as e:
            return self._fail(e, "OTP verification failed")
        # a voter session never coexists with an admin one
        self.tokens.clear_admin()
        self.dispatch(AuthAction.AUTH_SUCCESS, {"user": reply.data.get("user"), "token": reply.data.get("token")})
        logger.info("User logged in: %s", email)
        return Outcome(True, "Login successful! Welcome back.", email=email, redirect=DASHBOARD_PATH)

    def register(self, user_data: Dict[str, Any]) -> Outcome:
        self.dispatch(AuthAction.AUTH_START)
        try:
            reply = self.api.generate_registration_otp(user_data)
        except ApiError as e:
            return self._fail(e, "Registration failed")
        logger.info("Registration OTP requested for %s", user_data.get("email"))
        return Outcome(True, reply.message or "OTP sent to your email", email=user_data.get("email"))

    def verify_registration(self, user_data: Dict[str, Any], otp: str) -> Outcome:
        self.dispatch(AuthAction.AUTH_START)
        try:
            reply = self.api.verify_registration(user_data, otp)
        except ApiError as e:
            return self._fail(e, "OTP verification failed")
        user, token = reply.data.get("user"), reply.data.get("token")
        if token:
            self.tokens.clear_admin()
            self.dispatch(AuthAction.AUTH_SUCCESS, {"user": user, "token": token})
            return Outcome(True, "Registration successful!", email=user_data.get("email"),
                           redirect=DASHBOARD_PATH)
        self.dispatch(AuthAction.LOGOUT)
        return Outcome(True, reply.message or "Registration successful! Please log in.",
                       email=user_data.get("email"))

    def rehydrate(self) -> AuthState:
        """Restore the user behind a stored token via /api/auth/me.

        Auth errors end the session; other failures keep the token so the
        next request can try again.
        """
        token = self.tokens.user_token
        if not token:
            return self.dispatch(AuthAction.AUTH_FAILURE, None)
        self.dispatch(AuthAction.AUTH_START)
        try:
            reply = self.api.me()
        except ApiAuthError:
            logger.info("Stored session rejected by the API")
            return self.dispatch(AuthAction.AUTH_FAILURE, "Session expired")
        except ApiRequestError as e:
            logger.warning("Could not restore session: %s", e)
            self.state = self.state._replace(is_loading=False)
            return self.state
        user = reply.data.get("user")
        if not user:
            return self.dispatch(AuthAction.AUTH_FAILURE, "Session expired")
        return self.dispatch(AuthAction.AUTH_SUCCESS, {"user": user, "token": token})

    def logout(self) -> AuthState:
        if self.tokens.user_token:
            try:
                self.api.logout()
            except ApiError as e:
                logger.warning("Logout request failed: %s", e)
        return self.dispatch(AuthAction.LOGOUT)

    def update_profile(self, data: Dict[str, Any]) -> Outcome:
        try:
            reply = self.api.update_profile(data)
        except ApiRequestError as e:
            return Outcome(False, error_message(e, "Profile update failed"))
        user = reply.data.get("user")
        if user:
            self.dispatch(AuthAction.UPDATE_USER, user)
        return Outcome(True, reply.message or "Profile updated successfully")

    def forgot_password(self, email: str) -> Outcome:
        try:
            reply = self.api.forgot_password(email)
        except ApiError as e:
            return Outcome(False, error_message(e, "Failed to send reset OTP"))
        return Outcome(True, reply.message or "Password reset OTP sent to your email", email=email)

    def reset_password(self, email: str, otp: str, new_password: str) -> Outcome:
        try:
            reply = self.api.reset_password(email, otp, new_password)
        except ApiError as e:
            return Outcome(False, error_message(e, "Password reset failed"))
        logger.info("Password reset for %s", email)
        return Outcome(True, reply.message or "Password reset successfully", email=email)


# -------------------------
# Admin auth channel
# -------------------------

class AdminAuth:
    def __init__(self, api: ApiClient, tokens: TokenStore):
        self.api = api
        self.tokens = tokens

    @property
    def is_authenticated(self) -> bool:
        return bool(self.tokens.admin_token)

    def send_otp(self, email: str, password: str) -> Outcome:
        try:
            reply = self.api.admin_send_otp(email, password)
        except ApiError as e:
            return Outcome(False, error_message(e, "Failed to send OTP"))
        return Outcome(True, reply.message or "OTP sent to admin email", email=email)

    def verify_otp(self, email: str, otp: str) -> Outcome:
        try:
            reply = self.api.admin_verify_otp(email, otp)
        except ApiError as e:
            return Outcome(False, error_message(e, "OTP verification failed"))
        token = reply.data.get("token")
        if not token:
            return Outcome(False, "OTP verification failed")
        self.tokens.set_admin_token(token)
        logger.info("Admin logged in: %s", email)
        return Outcome(True, "Admin login successful", email=email, redirect="/admin")

    def me(self) -> Optional[Dict[str, Any]]:
        reply = self.api.admin_me()
        return reply.data.get("admin")

    def logout(self):
        self.tokens.clear_admin()


class PendingAuth:
    """A login or registration form held until its OTP is verified.

    Resending the OTP re-submits the first step, so the form is kept whole.
    """

    def __init__(self, flow_id: str, data: Optional[Dict[str, Any]] = None):
        self.id = flow_id
        self.data = dict(data or {})
        self.touched = time.monotonic()

    @property
    def email(self) -> Optional[str]:
        return self.data.get("email")
