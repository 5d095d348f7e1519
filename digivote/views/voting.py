import logging

from flask import Blueprint, flash, g, redirect, render_template, request, session, url_for

from ..api import ApiRequestError, error_message
from ..session_store import FLOW_KEY
from ..validators import is_profile_complete
from ..voting_flow import (MAX_VOTE_VIEWS, AlreadyVotedDisclosure, Ballot, Confirmation,
                           CredentialVerification, PasswordEntry, split_elections)
from . import flows, login_required, render_message

logger = logging.getLogger(__name__)

bp = Blueprint("voting", __name__)

STEP_ENDPOINTS = {
    CredentialVerification: "voting.credentials",
    PasswordEntry: "voting.password",
    Ballot: "voting.ballot",
    Confirmation: "voting.success",
    AlreadyVotedDisclosure: "voting.already_voted",
}


def _missing():
    return render_message("Nothing to show here",
                          "This voting step is no longer available. Please pick the election again.",
                          url_for("voting.vote_now"))


def _flow_in(*kinds):
    """The session's flow if it is currently in one of ``kinds``."""
    flow = flows().get(session.get(FLOW_KEY))
    if flow is None or not isinstance(flow.state, kinds):
        return None
    return flow


def _go(flow):
    return redirect(url_for(STEP_ENDPOINTS[type(flow.state)]))


@bp.route('/vote-now')
@login_required
def vote_now():
    try:
        elections = g.api.available_user_elections().data.get("elections") or []
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to load elections'), 'danger')
        elections = []
    active, upcoming = split_elections(elections)
    return render_template('vote_now.html', active=active, upcoming=upcoming,
                           profile_ok=is_profile_complete(g.user))


@bp.route('/vote-now/<election_id>', methods=['POST'])
@login_required
def choose(election_id):
    if not is_profile_complete(g.user):
        flash('Please complete your profile before voting.', 'warning')
        return redirect(url_for('voter.profile', edit=1))
    try:
        elections = g.api.available_user_elections().data.get("elections") or []
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to load elections'), 'danger')
        return redirect(url_for('voting.vote_now'))
    election = next((e for e in elections if e.get("_id") == election_id), None)
    if election is None:
        flash('Election not found', 'warning')
        return redirect(url_for('voting.vote_now'))

    flows().discard(session.get(FLOW_KEY))
    flow = flows().create()
    result = flow.choose(g.api, election)
    if not result.ok:
        flows().discard(flow.id)
        flash(result.message, 'warning')
        return redirect(url_for('voting.vote_now'))
    session[FLOW_KEY] = flow.id
    return _go(flow)


@bp.route('/vote/credentials', methods=['GET', 'POST'])
@login_required
def credentials():
    flow = _flow_in(CredentialVerification)
    if flow is None:
        return _missing()
    email = g.user.get("email", "")
    if request.method == 'GET':
        return render_template('voting_credentials.html', election=flow.election, email=email,
                               card_number="", errors={})
    result = flow.request_password(g.api, request.form.get("email", email).strip(),
                                   request.form.get("electionCardNumber", ""))
    if not result.ok:
        if result.message:
            flash(result.message, 'danger')
        return render_template('voting_credentials.html', election=flow.election,
                               email=request.form.get("email", email),
                               card_number=request.form.get("electionCardNumber", ""), errors=result.errors)
    flash(result.message, 'success')
    return _go(flow)


@bp.route('/vote/password', methods=['GET', 'POST'])
@login_required
def password():
    flow = _flow_in(PasswordEntry)
    if flow is None:
        return _missing()
    if request.method == 'GET':
        return render_template('voting_password.html', election=flow.election,
                               card_number=flow.state.card_number, errors={})
    card_number = request.form.get("electionCardNumber", flow.state.card_number)
    result = flow.verify_credentials(g.api, g.user.get("email", ""), card_number,
                                     request.form.get("votingPassword", ""))
    if not result.ok:
        if result.message:
            flash(result.message, 'danger')
        return render_template('voting_password.html', election=flow.election, card_number=card_number,
                               errors=result.errors)
    flash(result.message, 'success')
    return _go(flow)


@bp.route('/vote/ballot', methods=['GET', 'POST'])
@login_required
def ballot():
    flow = _flow_in(Ballot)
    if flow is None:
        return _missing()
    if request.method == 'GET':
        return render_template('voting_ballot.html', ballot=flow.state)

    if request.form.get("candidateId"):
        picked = flow.select(request.form["candidateId"])
        if not picked.ok:
            flash(picked.message, 'warning')
            return render_template('voting_ballot.html', ballot=flow.state)
    if request.form.get("action") != "cast":
        return render_template('voting_ballot.html', ballot=flow.state, confirming=flow.state.selected is not None)

    result = flow.cast(g.api, confirmed=request.form.get("confirm") == "yes")
    if not result.ok:
        flash(result.message, 'danger')
        return render_template('voting_ballot.html', ballot=flow.state,
                               confirming=flow.state.selected is not None)
    flash(result.message, 'success')
    return _go(flow)


@bp.route('/vote/success')
@login_required
def success():
    flow = _flow_in(Confirmation)
    if flow is None:
        return _missing()
    return render_template('vote_success.html', confirmation=flow.state)


@bp.route('/vote/already-voted', methods=['GET', 'POST'])
@login_required
def already_voted():
    flow = _flow_in(AlreadyVotedDisclosure)
    if flow is None:
        return _missing()
    if request.method == 'POST':
        result = flow.reveal(g.api)
        if not result.ok:
            flash(result.message, 'warning')
    return render_template('already_voted.html', disclosure=flow.state, max_views=MAX_VOTE_VIEWS)


@bp.route('/vote/done', methods=['POST'])
@login_required
def done():
    flows().discard(session.pop(FLOW_KEY, None))
    return redirect(url_for('voting.vote_now'))
