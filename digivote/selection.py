from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional

LOCATION_KEYS = ("state", "district", "taluka", "city")


def search_users(users: List[Dict[str, Any]], query: str) -> List[Dict[str, Any]]:
    """Case-insensitive match on name, email or city."""
    query = (query or "").strip().lower()
    if not query:
        return list(users)
    return [u for u in users
            if any(query in (u.get(k) or "").lower() for k in ("fullName", "email", "city"))]


class RoleSelection(NamedTuple):
    users: List[Dict[str, Any]]
    selected_ids: List[str]

    @classmethod
    def build(cls, users: List[Dict[str, Any]], query: str, selected_ids: Iterable[str]) -> "RoleSelection":
        visible = search_users(users, query)
        visible_ids = {u.get("_id") for u in visible}
        # selections hidden by the current search do not count
        selected = [i for i in dict.fromkeys(selected_ids) if i in visible_ids]
        return cls(visible, selected)

    def _selected_with_role(self, role: str) -> List[Dict[str, Any]]:
        chosen = set(self.selected_ids)
        return [u for u in self.users if u.get("_id") in chosen and u.get("role") == role]

    @property
    def selected_admins(self) -> List[Dict[str, Any]]:
        return self._selected_with_role("admin")

    @property
    def selected_voters(self) -> List[Dict[str, Any]]:
        return self._selected_with_role("voter")

    @property
    def all_selected(self) -> bool:
        return bool(self.users) and len(self.selected_ids) == len(self.users)

    def assign_ids(self) -> List[str]:
        return [u["_id"] for u in self.selected_voters]

    def remove_ids(self) -> List[str]:
        return [u["_id"] for u in self.selected_admins]


# -------------------------
# Notifications
# -------------------------

def location_filter(form: Mapping[str, str]) -> Dict[str, str]:
    """Read the filter; levels below the one named by ``cascade`` are cleared."""
    flt = {k: (form.get(k) or "").strip() for k in LOCATION_KEYS}
    changed = form.get("cascade")
    if changed in LOCATION_KEYS:
        for k in LOCATION_KEYS[LOCATION_KEYS.index(changed) + 1:]:
            flt[k] = ""
    return flt


def matches_location(user: Mapping[str, Any], flt: Mapping[str, str]) -> bool:
    return all(not flt.get(k) or user.get(k) == flt[k] for k in LOCATION_KEYS)


def location_options(users: List[Dict[str, Any]], flt: Mapping[str, str]) -> Dict[str, List[str]]:
    """Distinct values per level, narrowed by the levels above it."""
    options = {}
    for depth, key in enumerate(LOCATION_KEYS):
        parent = {k: flt.get(k) for k in LOCATION_KEYS[:depth]}
        values = {u.get(key) for u in users if u.get(key) and matches_location(u, parent)}
        options[key] = sorted(values)
    return options


def build_notification(mode: str, subject: str, message: str, user_ids: Optional[Iterable[str]] = None,
                       flt: Optional[Mapping[str, str]] = None):
    """Returns ``(payload, error)``; exactly one of them is ``None``."""
    subject, message = (subject or "").strip(), (message or "").strip()
    if not subject or not message:
        return None, "Subject and message are required"
    payload = {"subject": subject, "message": message}
    if mode == "location":
        flt = {k: v for k, v in (flt or {}).items() if k in LOCATION_KEYS and v}
        if not flt:
            return None, "Please select at least one location filter"
        payload["locationFilter"] = flt
    else:
        ids = list(dict.fromkeys(user_ids or []))
        if not ids:
            return None, "Please select at least one user"
        payload["userIds"] = ids
    return payload, None
