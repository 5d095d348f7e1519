from typing import MutableMapping, Optional

USER_TOKEN_KEY = "token"
ADMIN_TOKEN_KEY = "adminToken"
FLOW_KEY = "flow"  # id of the in-progress voting flow, not a credential


class TokenStore:
    """Bearer tokens kept in the browser session.

    ``storage`` is any mutable mapping; the app passes ``flask.session``.
    Nothing else about the user is persisted.
    """

    def __init__(self, storage: MutableMapping):
        self._storage = storage

    @property
    def user_token(self) -> Optional[str]:
        return self._storage.get(USER_TOKEN_KEY) or None

    @property
    def admin_token(self) -> Optional[str]:
        return self._storage.get(ADMIN_TOKEN_KEY) or None

    def set_user_token(self, token: str):
        self._storage[USER_TOKEN_KEY] = token

    def set_admin_token(self, token: str):
        self._storage[ADMIN_TOKEN_KEY] = token

    def clear_user(self):
        self._storage.pop(USER_TOKEN_KEY, None)

    def clear_admin(self):
        self._storage.pop(ADMIN_TOKEN_KEY, None)

    def clear_all(self):
        self.clear_user()
        self.clear_admin()
