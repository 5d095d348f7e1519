import logging

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, url_for

from ..api import ApiRequestError, error_message
from ..locations import LocationSelection
from ..results import order_published, placeholder
from ..uploads import UploadError, read_upload
from ..validators import GENDER_UNSET, normalize_card_number, validate_profile
from . import auth_store, login_required

logger = logging.getLogger(__name__)

bp = Blueprint("voter", __name__)

PROFILE_FIELDS = ("fullName", "mobile", "gender", "address", "currentAddress",
                  "state", "district", "taluka", "city", "voterId", "photo")
GENDERS = [("prefer-not-to-say", "Prefer not to say"), ("male", "Male"), ("female", "Female"), ("other", "Other")]


def _profile_values(user):
    values = {k: user.get(k) or "" for k in PROFILE_FIELDS}
    values["gender"] = values["gender"] or GENDER_UNSET
    return values


@bp.route('/dashboard')
@login_required
def dashboard():
    return render_template('dashboard.html', user=g.user)


@bp.route('/profile', methods=['GET', 'POST'])
@login_required
def profile():
    user = g.user
    original = _profile_values(user)
    if request.method == 'GET':
        editing = request.args.get("edit") == "1"
        return render_template('profile.html', user=user, form=original, editing=editing, errors={},
                               location=LocationSelection.from_record(user), genders=GENDERS)

    location = LocationSelection.from_form(request.form)
    form = {k: request.form.get(k, "").strip() for k in PROFILE_FIELDS if k != "photo"}
    form.update(location.as_dict())
    form["voterId"] = normalize_card_number(form.get("voterId", ""))
    form["photo"] = original["photo"]

    if request.form.get("cascade"):
        # location select changed; redraw with the narrowed options
        return render_template('profile.html', user=user, form=form, editing=True, errors={},
                               location=location, genders=GENDERS)

    errors = validate_profile(form)
    try:
        photo, _ = read_upload(request.files.get("photo"), current_app.config["MAX_UPLOAD_BYTES"],
                               photo_only=True)
    except UploadError as e:
        errors["photo"] = str(e)
        photo = None
    if photo:
        form["photo"] = photo
    if errors:
        return render_template('profile.html', user=user, form=form, editing=True, errors=errors,
                               location=location, genders=GENDERS)

    changes = {k: v for k, v in form.items() if v != original.get(k, "")}
    if not changes:
        flash('No changes were made to save.', 'info')
        return redirect(url_for('voter.profile'))

    outcome = auth_store().update_profile(form)
    if not outcome.success:
        flash(outcome.message, 'danger')
        return render_template('profile.html', user=user, form=form, editing=True, errors={},
                               location=location, genders=GENDERS)
    logger.info("Profile updated: %s", ", ".join(sorted(changes)))
    flash(outcome.message, 'success')
    return redirect(url_for('voter.profile'))


# -------------------------
# Results
# -------------------------

def _published_for(user):
    params = {k: user.get(k) or "" for k in ("state", "district", "taluka", "city")}
    reply = g.api.published_elections(params)
    return order_published(reply.data.get("elections") or [])


@bp.route('/results')
@login_required
def results():
    try:
        elections = _published_for(g.user)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to load results'), 'danger')
        elections = []
    return render_template('results.html', elections=elections, detail=None)


@bp.route('/results/<election_id>')
@login_required
def result_detail(election_id):
    try:
        elections = _published_for(g.user)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to load results'), 'danger')
        return redirect(url_for('voter.results'))
    election = next((e for e in elections if e.get("_id") == election_id), None)
    if election is None:
        flash('Election not found', 'warning')
        return redirect(url_for('voter.results'))

    if not (election.get("results") or {}).get("isDeclared"):
        detail = placeholder(election)
    else:
        try:
            detail = g.api.public_results(election_id).data
        except ApiRequestError as e:
            if e.status != 400:
                flash(error_message(e, 'Failed to load election details'), 'danger')
                return redirect(url_for('voter.results'))
            detail = placeholder(election)
    return render_template('results.html', elections=elections, detail=detail, selected=election_id)
