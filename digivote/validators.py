import datetime
import re
from typing import Any, Dict, Mapping, Optional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MOBILE_RE = re.compile(r"^[6-9]\d{9}$")
OTP_RE = re.compile(r"^\d{6}$")
CARD_NUMBER_RE = re.compile(r"^[A-Z]{3}\d{7}$")

MIN_PASSWORD_LENGTH = 8
VOTING_PASSWORD_LENGTH = 8
MIN_VOTER_AGE = 18

PROFILE_REQUIRED_FIELDS = (
    "fullName", "mobile", "gender", "address", "currentAddress",
    "state", "city", "voterId", "photo",
)
GENDER_UNSET = "prefer-not-to-say"


def valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match((email or "").strip()))


def valid_mobile(mobile: str) -> bool:
    return bool(MOBILE_RE.match((mobile or "").strip()))


def valid_otp(otp: str) -> bool:
    return bool(OTP_RE.match((otp or "").strip()))


def normalize_card_number(value: str) -> str:
    """Uppercase and drop everything that is not A-Z/0-9; length is left to validation."""
    return re.sub(r"[^A-Z0-9]", "", (value or "").upper())


def valid_card_number(value: str) -> bool:
    return bool(CARD_NUMBER_RE.match(value or ""))


def age_on(birth_date: datetime.date, today: Optional[datetime.date] = None) -> int:
    today = today or datetime.date.today()
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def parse_date(value: str) -> Optional[datetime.date]:
    try:
        return datetime.date.fromisoformat((value or "").strip())
    except ValueError:
        return None


def is_profile_complete(user: Optional[Mapping[str, Any]]) -> bool:
    if not user:
        return False
    for field in PROFILE_REQUIRED_FIELDS:
        value = user.get(field)
        if not isinstance(value, str) or not value.strip():
            return False
    return user.get("gender") != GENDER_UNSET


# -------------------------
# Form validators: return {field: message}
# -------------------------

def validate_login(form: Mapping[str, str]) -> Dict[str, str]:
    errors = {}
    email = (form.get("email") or "").strip()
    if not email:
        errors["email"] = "Email is required"
    elif not valid_email(email):
        errors["email"] = "Please enter a valid email address"
    if not form.get("password"):
        errors["password"] = "Password is required"
    return errors


def validate_registration(form: Mapping[str, str], today: Optional[datetime.date] = None) -> Dict[str, str]:
    errors = {}

    full_name = (form.get("fullName") or "").strip()
    if not full_name:
        errors["fullName"] = "Full name is required"
    elif len(full_name) < 2:
        errors["fullName"] = "Full name must be at least 2 characters long"

    email = (form.get("email") or "").strip()
    if not email:
        errors["email"] = "Email is required"
    elif not valid_email(email):
        errors["email"] = "Please enter a valid email address"

    mobile = (form.get("mobile") or "").strip()
    if not mobile:
        errors["mobile"] = "Mobile number is required"
    elif not valid_mobile(mobile):
        errors["mobile"] = "Please enter a valid 10-digit mobile number"

    dob_raw = form.get("dateOfBirth") or ""
    if not dob_raw:
        errors["dateOfBirth"] = "Date of birth is required"
    else:
        dob = parse_date(dob_raw)
        if dob is None:
            errors["dateOfBirth"] = "Please enter a valid date"
        elif age_on(dob, today) < MIN_VOTER_AGE:
            errors["dateOfBirth"] = "You must be at least 18 years old"

    errors.update(validate_new_password(form.get("password") or "", form.get("confirmPassword") or ""))
    return errors


def validate_new_password(password: str, confirm: str, field: str = "password") -> Dict[str, str]:
    errors = {}
    if not password:
        errors[field] = "Password is required"
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors[field] = "Password must be at least 8 characters long"
    if not confirm:
        errors["confirmPassword"] = "Please confirm your password"
    elif password != confirm:
        errors["confirmPassword"] = "Passwords do not match"
    return errors


def validate_otp(otp: str) -> Optional[str]:
    otp = (otp or "").strip()
    if not otp:
        return "Please enter the OTP"
    if not valid_otp(otp):
        return "OTP must be 6 digits"
    return None


def validate_voting_credentials(email: str, card_number: str) -> Dict[str, str]:
    errors = {}
    if not valid_email(email):
        errors["email"] = "Please enter a valid email address"
    if not valid_card_number(card_number):
        errors["electionCardNumber"] = "Format: 3 letters (A-Z) + 7 digits (0-9)"
    return errors


def validate_voting_password(card_number: str, password: str) -> Dict[str, str]:
    errors = {}
    if not valid_card_number(card_number):
        errors["electionCardNumber"] = "Format: 3 letters (A-Z) + 7 digits (0-9)"
    if len(password or "") != VOTING_PASSWORD_LENGTH:
        errors["votingPassword"] = "Voting password must be 8 characters"
    return errors


def validate_candidate(data: Mapping[str, Any]) -> Dict[str, str]:
    errors = {}
    if not (data.get("name") or "").strip():
        errors["name"] = "Candidate name is required"
    if not (data.get("village") or "").strip():
        errors["village"] = "Village is required"
    card = data.get("electionCardNumber") or ""
    if not card:
        errors["electionCardNumber"] = "Election card number is required"
    elif not valid_card_number(card):
        errors["electionCardNumber"] = "Format: 3 letters (A-Z) + 7 digits (e.g., NNI1234567)"
    if not (data.get("partyName") or "").strip():
        errors["partyName"] = "Party name is required"
    contact = (data.get("contactNumber") or "").strip()
    if contact and not valid_mobile(contact):
        errors["contactNumber"] = "Please enter a valid 10-digit mobile number"
    email = (data.get("email") or "").strip()
    if email and not valid_email(email):
        errors["email"] = "Please enter a valid email address"
    return errors


def validate_profile(data: Mapping[str, Any]) -> Dict[str, str]:
    errors = {}
    mobile = (data.get("mobile") or "").strip()
    if mobile and not valid_mobile(mobile):
        errors["mobile"] = "Please enter a valid 10-digit mobile number"
    voter_id = data.get("voterId") or ""
    if voter_id and not valid_card_number(voter_id):
        errors["voterId"] = "Voter ID must be 3 letters followed by 7 digits"
    return errors
