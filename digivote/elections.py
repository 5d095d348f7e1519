import datetime
from typing import Any, Dict, List, Mapping, Optional

ELECTION_TYPES = [
    "Lok Sabha", "Rajya Sabha", "State Assembly", "Municipal Corporation", "Panchayat",
    "Zila Parishad", "Block Development", "Mayor", "Other",
]
ELECTION_LEVELS = ["National", "State", "District", "Municipal", "Village", "Block"]
ELECTION_STATUSES = ["draft", "upcoming", "active", "completed", "cancelled", "postponed"]

EDITABLE_STATUSES = ("draft", "upcoming")
DELETABLE_STATUSES = ("draft", "upcoming")
PERMANENTLY_DELETABLE_STATUSES = ("draft", "upcoming", "completed")

FORM_FIELDS = (
    "title", "panchayatName", "description", "type", "level", "state", "district", "taluka",
    "villageCity", "votingStartDate", "votingEndDate", "resultDeclarationDate", "status",
)
DATE_FIELDS = ("votingStartDate", "votingEndDate", "resultDeclarationDate")

ACTIVATION_WARNING = ("After changing status to Active, you can only change status to Completed. "
                      "All other fields will be locked. Continue?")


class ElectionRuleError(ValueError):
    pass


def parse_timestamp(value: Optional[str]) -> Optional[datetime.datetime]:
    """Parse API/ISO timestamps; naive values are treated as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def to_input_value(value: Optional[str]) -> str:
    """ISO timestamp -> ``datetime-local`` input value (minutes precision)."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return ""
    return parsed.astimezone(datetime.timezone.utc).strftime("%Y-%m-%dT%H:%M")


def _now(now: Optional[datetime.datetime]) -> datetime.datetime:
    return now or datetime.datetime.now(datetime.timezone.utc)


# -------------------------
# Gates
# -------------------------

def can_edit(election: Mapping[str, Any]) -> bool:
    return election.get("status") in EDITABLE_STATUSES or election.get("status") == "active"


def can_archive(election: Mapping[str, Any]) -> bool:
    return election.get("status") == "completed" and not election.get("archived")


def can_delete(election: Mapping[str, Any]) -> bool:
    return election.get("status") in DELETABLE_STATUSES


def can_delete_permanently(election: Mapping[str, Any]) -> bool:
    """Manage-list deletes plus completed elections removed from history."""
    return election.get("status") in PERMANENTLY_DELETABLE_STATUSES


def is_locked(election: Mapping[str, Any], requested_status: Optional[str] = None) -> bool:
    """Everything but status is frozen once an election is, or is being made, active."""
    return election.get("status") == "active" or requested_status == "active"


def allowed_statuses(election: Mapping[str, Any]) -> List[str]:
    if election.get("status") == "active":
        return ["active", "completed"]
    return ["draft", "upcoming", "active", "completed"]


def is_declared(election: Mapping[str, Any]) -> bool:
    return bool((election.get("results") or {}).get("isDeclared"))


def can_publish(election: Mapping[str, Any], now: Optional[datetime.datetime] = None) -> bool:
    if is_declared(election):
        return False
    end = parse_timestamp(election.get("votingEndDate"))
    return end is not None and end <= _now(now)


def can_assign_to(election: Mapping[str, Any]) -> bool:
    return election.get("status") == "upcoming"


def assignable_elections(elections: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [e for e in elections if can_assign_to(e)]


# -------------------------
# Forms
# -------------------------

def form_values(election: Mapping[str, Any]) -> Dict[str, str]:
    """The edit form's initial values for ``election``."""
    values = {field: election.get(field) or "" for field in FORM_FIELDS}
    for field in DATE_FIELDS:
        values[field] = to_input_value(election.get(field))
    values["type"] = values["type"] or "Panchayat"
    values["level"] = values["level"] or "Village"
    values["status"] = values["status"] or "draft"
    return values


def read_form(form: Mapping[str, str]) -> Dict[str, str]:
    return {field: (form.get(field) or "").strip() for field in FORM_FIELDS if field in form}


def changed_fields(election: Mapping[str, Any], submitted: Mapping[str, str]) -> Dict[str, str]:
    original = form_values(election)
    return {k: v for k, v in submitted.items() if k in original and v != original[k]}


def edit_payload(election: Mapping[str, Any], submitted: Mapping[str, str]) -> Dict[str, str]:
    """Only the changed fields, after applying the status rules.

    Raises ``ElectionRuleError`` for an edit the rules forbid.
    """
    status = election.get("status")
    if not can_edit(election):
        raise ElectionRuleError(f"Elections in status '{status}' cannot be edited")
    payload = changed_fields(election, submitted)
    new_status = payload.get("status")
    if new_status and new_status not in allowed_statuses(election):
        raise ElectionRuleError("An active election can only be moved to completed")
    if is_locked(election, new_status):
        locked = sorted(k for k in payload if k != "status")
        if locked:
            raise ElectionRuleError("Only the status of an active election can change "
                                    f"(locked: {', '.join(locked)})")
    return payload


def needs_activation_confirm(payload: Mapping[str, str]) -> bool:
    return payload.get("status") == "active"


def validate_create(data: Mapping[str, str]) -> Dict[str, str]:
    errors = {}
    if not data.get("title"):
        errors["title"] = "Title is required"
    if not data.get("description"):
        errors["description"] = "Description is required"
    if data.get("type") and data["type"] not in ELECTION_TYPES:
        errors["type"] = "Unknown election type"
    if data.get("level") and data["level"] not in ELECTION_LEVELS:
        errors["level"] = "Unknown election level"
    for field in DATE_FIELDS:
        if not data.get(field):
            errors[field] = "Date is required"
    start, end = parse_timestamp(data.get("votingStartDate")), parse_timestamp(data.get("votingEndDate"))
    declare = parse_timestamp(data.get("resultDeclarationDate"))
    if start and end and end <= start:
        errors["votingEndDate"] = "Voting end must be after voting start"
    if end and declare and declare < end:
        errors["resultDeclarationDate"] = "Results cannot be declared before voting ends"
    return errors

