"""Vote-casting state machine.

    ElectionListing -> CredentialVerification -> PasswordEntry -> Ballot -> Confirmation
    ElectionListing -> AlreadyVotedDisclosure

Every state carries the payload it needs and refuses to be built without it. Flows live in a
bounded in-process ``FlowStore``; the browser session only holds the flow id.
"""
import logging
import secrets
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from .api import ApiClient, ApiError, ApiRequestError, error_message
from .validators import (normalize_card_number, validate_voting_credentials,
                         validate_voting_password)

logger = logging.getLogger(__name__)

MAX_VOTE_VIEWS = 2


class InvalidTransition(Exception):
    pass


def _require_election(election) -> Dict[str, Any]:
    if not isinstance(election, dict) or not election.get("_id"):
        raise ValueError("an election with an _id is required")
    return election


# -------------------------
# States
# -------------------------

class ElectionListing:
    name = "listing"

    def __repr__(self):
        return "ElectionListing()"


class CredentialVerification:
    name = "credentials"

    def __init__(self, election: Dict[str, Any]):
        self.election = _require_election(election)


class PasswordEntry:
    name = "password"

    def __init__(self, election: Dict[str, Any], card_number: str = ""):
        self.election = _require_election(election)
        self.card_number = card_number


class Ballot:
    name = "ballot"

    def __init__(self, election: Dict[str, Any], candidates: List[Dict[str, Any]],
                 selected: Optional[str] = None):
        self.election = _require_election(election)
        if not candidates:
            raise ValueError("a ballot needs at least one candidate")
        self.candidates = list(candidates)
        if selected is not None and self.candidate(selected) is None:
            raise ValueError(f"candidate {selected!r} is not on this ballot")
        self.selected = selected

    def candidate(self, candidate_id: Optional[str]) -> Optional[Dict[str, Any]]:
        for c in self.candidates:
            if c.get("_id") == candidate_id:
                return c
        return None


class Confirmation:
    name = "confirmation"

    def __init__(self, election: Dict[str, Any], candidate: Dict[str, Any], voted_at: Optional[str] = None):
        self.election = _require_election(election)
        if not isinstance(candidate, dict) or not candidate.get("_id"):
            raise ValueError("the voted candidate is required")
        self.candidate = candidate
        self.voted_at = voted_at


class AlreadyVotedDisclosure:
    name = "already_voted"

    def __init__(self, election: Dict[str, Any], view_count: int = 0,
                 revealed: Optional[Dict[str, Any]] = None):
        self.election = _require_election(election)
        if view_count < 0:
            raise ValueError("view_count cannot be negative")
        self.view_count = view_count
        self.revealed = revealed

    @property
    def remaining_views(self) -> int:
        return max(0, MAX_VOTE_VIEWS - self.view_count)

    @property
    def can_reveal(self) -> bool:
        return self.view_count < MAX_VOTE_VIEWS


class StepResult(NamedTuple):
    ok: bool
    message: Optional[str] = None
    errors: Dict[str, str] = {}


# -------------------------
# Listing helpers
# -------------------------

def split_elections(elections: List[Dict[str, Any]]) -> Tuple[List[Dict], List[Dict]]:
    """(active, upcoming); only active elections can be voted in."""
    active = [e for e in elections if e.get("status") == "active"]
    upcoming = [e for e in elections if e.get("status") == "upcoming"]
    return active, upcoming


# -------------------------
# Flow
# -------------------------

class VotingFlow:
    def __init__(self, flow_id: str):
        self.id = flow_id
        self.state = ElectionListing()
        self.touched = time.monotonic()

    def _expect(self, *kinds):
        if not isinstance(self.state, kinds):
            wanted = ", ".join(k.__name__ for k in kinds)
            raise InvalidTransition(f"expected {wanted}, flow is in {type(self.state).__name__}")

    @property
    def election(self) -> Optional[Dict[str, Any]]:
        return getattr(self.state, "election", None)

    def choose(self, api: ApiClient, election: Dict[str, Any]) -> StepResult:
        """Check vote status and route to credentials or the already-voted page.

        A failed status check still proceeds to credentials; the API refuses
        a second vote anyway.
        """
        self._expect(ElectionListing)
        election = _require_election(election)
        if election.get("status") != "active":
            return StepResult(False, "Voting is not open for this election")
        try:
            reply = api.check_vote_status(election["_id"])
        except ApiRequestError as e:
            logger.warning("Vote status check failed for %s: %s", election["_id"], e)
            self.state = CredentialVerification(election)
            return StepResult(True)
        if reply.data.get("hasVoted"):
            vote = reply.data.get("vote") or {}
            self.state = AlreadyVotedDisclosure(election, int(vote.get("viewCount") or 0))
        else:
            self.state = CredentialVerification(election)
        return StepResult(True)

    def request_password(self, api: ApiClient, email: str, card_number: str) -> StepResult:
        self._expect(CredentialVerification)
        card_number = normalize_card_number(card_number)
        errors = validate_voting_credentials(email, card_number)
        if errors:
            return StepResult(False, None, errors)
        election = self.state.election
        try:
            reply = api.request_voting_password(email, card_number, election["_id"])
        except ApiError as e:
            return StepResult(False, error_message(e, "Failed to send voting password"))
        logger.info("Voting password requested for election %s", election["_id"])
        self.state = PasswordEntry(election, card_number)
        return StepResult(True, reply.message or "Voting password sent to your email")

    def verify_credentials(self, api: ApiClient, email: str, card_number: str, password: str) -> StepResult:
        self._expect(PasswordEntry)
        card_number = normalize_card_number(card_number)
        password = (password or "").strip()
        errors = validate_voting_password(card_number, password)
        if errors:
            return StepResult(False, None, errors)
        election = self.state.election
        try:
            reply = api.verify_voting_credentials(email, card_number, password, election["_id"])
        except ApiError as e:
            return StepResult(False, error_message(e, "Invalid credentials"))
        candidates = reply.data.get("candidates") or []
        if not candidates:
            return StepResult(False, "No candidates are available for this election")
        detail = {**election, **(reply.data.get("election") or {})}
        self.state = Ballot(detail, candidates)
        return StepResult(True, reply.message or "Credentials verified successfully")

    def select(self, candidate_id: str) -> StepResult:
        self._expect(Ballot)
        if self.state.candidate(candidate_id) is None:
            return StepResult(False, "Please select a candidate")
        self.state = Ballot(self.state.election, self.state.candidates, candidate_id)
        return StepResult(True)

    def cast(self, api: ApiClient, confirmed: bool) -> StepResult:
        self._expect(Ballot)
        ballot = self.state
        if ballot.selected is None:
            return StepResult(False, "Please select a candidate")
        if not confirmed:
            return StepResult(False, "Please confirm your vote")
        try:
            reply = api.cast_vote(ballot.election["_id"], ballot.selected)
        except ApiRequestError as e:
            # stay on the ballot, selection intact
            return StepResult(False, error_message(e, "Failed to cast vote"))
        logger.info("Vote cast in election %s", ballot.election["_id"])
        self.state = Confirmation(ballot.election, ballot.candidate(ballot.selected),
                                  reply.data.get("votedAt"))
        return StepResult(True, reply.message or "Vote cast successfully")

    def reveal(self, api: ApiClient) -> StepResult:
        self._expect(AlreadyVotedDisclosure)
        state = self.state
        if not state.can_reveal:
            return StepResult(False, "You have already viewed your vote the maximum number of times")
        try:
            reply = api.view_vote(state.election["_id"])
        except ApiError as e:
            return StepResult(False, error_message(e, "Failed to load your vote"))
        view_count = reply.data.get("viewCount")
        if view_count is None:
            view_count = state.view_count + 1
        self.state = AlreadyVotedDisclosure(state.election, int(view_count), reply.data.get("candidate"))
        return StepResult(True)

    def back_to_listing(self):
        self.state = ElectionListing()


# -------------------------
# Transient storage
# -------------------------

class FlowStore:
    """Bounded, expiring map of id -> in-progress flow, oldest evicted first.

    Anything with ``id`` and ``touched`` attributes can be stored; the
    registration OTP step keeps its pending form here too.
    """

    def __init__(self, maxlen: int = 500, ttl: float = 900):
        self.maxlen = maxlen
        self.ttl = ttl
        self._flows: "OrderedDict[str, Any]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._flows)

    def create(self, factory: Callable[[str], Any] = VotingFlow):
        flow = factory(secrets.token_urlsafe(16))
        with self._lock:
            self._flows[flow.id] = flow
            while len(self._flows) > self.maxlen:
                self._flows.popitem(last=False)
        return flow

    def get(self, flow_id: Optional[str], kind: type = VotingFlow):
        if not flow_id:
            return None
        with self._lock:
            flow = self._flows.get(flow_id)
            if not isinstance(flow, kind):
                return None
            if time.monotonic() - flow.touched > self.ttl:
                del self._flows[flow_id]
                return None
            flow.touched = time.monotonic()
            self._flows.move_to_end(flow_id)
            return flow

    def discard(self, flow_id: Optional[str]):
        with self._lock:
            self._flows.pop(flow_id, None)
