"""Admin screens over the election catalogue: elections, history, candidates, results."""
import logging

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, send_file, url_for

from ..api import ApiRequestError, error_message
from ..elections import (ACTIVATION_WARNING, ELECTION_LEVELS, ELECTION_STATUSES, ELECTION_TYPES,
                         ElectionRuleError, allowed_statuses, assignable_elections, can_archive, can_delete,
                         can_delete_permanently, can_edit, can_publish, edit_payload, form_values, is_declared, is_locked,
                         needs_activation_confirm, read_form, validate_create)
from ..locations import LocationSelection
from ..resources import candidates_resource, elections_resource, history_resource
from ..results import candidate_table, csv_filename, party_totals, results_csv, winner
from ..uploads import UploadError, read_upload
from ..validators import normalize_card_number, validate_candidate
from . import admin_required, confirmed, render_confirm

logger = logging.getLogger(__name__)

bp = Blueprint("admin_catalog", __name__, url_prefix="/admin")

CANDIDATE_FIELDS = ("name", "village", "electionCardNumber", "partyName", "contactNumber", "email",
                    "address", "state", "district", "taluka", "notes")
CANDIDATE_UPLOADS = ("candidatePhoto", "partySymbol", "electionCardPhoto")


def _page_size():
    return current_app.config["PAGE_SIZE"]


def _election(election_id):
    return g.api.get_election(election_id).data.get("election") or {}


def _election_form(template, election, form, errors, location):
    return render_template(template, election=election, form=form, errors=errors, location=location,
                           types=ELECTION_TYPES, levels=ELECTION_LEVELS,
                           statuses=allowed_statuses(election) if election else ["draft", "upcoming"],
                           locked=is_locked(election or {}, form.get("status")) if election else False)


# -------------------------
# Elections
# -------------------------

@bp.route('/elections')
@admin_required
def elections():
    try:
        page = elections_resource(g.api, _page_size()).load(request.args)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to load elections'), 'danger')
        page = None
    return render_template('admin/elections.html', page=page, args=request.args,
                           types=ELECTION_TYPES, statuses=ELECTION_STATUSES,
                           can_edit=can_edit, can_archive=can_archive, can_delete=can_delete)


@bp.route('/elections/new', methods=['GET', 'POST'])
@admin_required
def election_create():
    if request.method == 'GET':
        form = {"type": "Panchayat", "level": "Village", "status": "draft"}
        return _election_form('admin/election_form.html', None, form, {}, LocationSelection())

    location = LocationSelection.from_form(request.form, place_key="villageCity")
    form = read_form(request.form)
    form.update(location.as_dict(place_key="villageCity"))
    if request.form.get("cascade"):
        return _election_form('admin/election_form.html', None, form, {}, location)
    errors = validate_create(form)
    if errors:
        return _election_form('admin/election_form.html', None, form, errors, location)
    try:
        reply = g.api.create_election(form)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to create election'), 'danger')
        return _election_form('admin/election_form.html', None, form, {}, location)
    logger.info("Election created: %s", form.get("title"))
    flash(reply.message or 'Election created successfully', 'success')
    return redirect(url_for('admin_catalog.elections'))


@bp.route('/elections/<election_id>')
@admin_required
def election_detail(election_id):
    try:
        election = _election(election_id)
    except ApiRequestError as e:
        flash(error_message(e, 'Election not found'), 'danger')
        return redirect(url_for('admin_catalog.elections'))
    return render_template('admin/election_detail.html', election=election)


@bp.route('/elections/<election_id>/edit', methods=['GET', 'POST'])
@admin_required
def election_edit(election_id):
    try:
        election = _election(election_id)
    except ApiRequestError as e:
        flash(error_message(e, 'Election not found'), 'danger')
        return redirect(url_for('admin_catalog.elections'))
    if not can_edit(election):
        flash(f"Elections in status '{election.get('status')}' cannot be edited", 'warning')
        return redirect(url_for('admin_catalog.elections'))

    if request.method == 'GET':
        return _election_form('admin/election_form.html', election, form_values(election), {},
                              LocationSelection.from_record(election, place_key="villageCity"))

    location = LocationSelection.from_form(request.form, place_key="villageCity")
    form = read_form(request.form)
    if not is_locked(election, form.get("status")):
        form.update(location.as_dict(place_key="villageCity"))
    if request.form.get("cascade"):
        return _election_form('admin/election_form.html', election, form, {}, location)
    try:
        payload = edit_payload(election, form)
    except ElectionRuleError as e:
        flash(str(e), 'warning')
        return _election_form('admin/election_form.html', election, form, {}, location)
    if not payload:
        flash('No changes were made to save.', 'info')
        return redirect(url_for('admin_catalog.elections'))
    if needs_activation_confirm(payload) and not confirmed():
        return render_confirm(ACTIVATION_WARNING, url_for('admin_catalog.election_edit', election_id=election_id))
    try:
        reply = g.api.update_election(election_id, payload)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to update election'), 'danger')
        return _election_form('admin/election_form.html', election, form, {}, location)
    logger.info("Election %s updated: %s", election_id, ", ".join(sorted(payload)))
    flash(reply.message or 'Election updated successfully', 'success')
    return redirect(url_for('admin_catalog.elections'))


@bp.route('/elections/<election_id>/archive', methods=['POST'])
@admin_required
def election_archive(election_id):
    if not confirmed():
        return render_confirm('Remove from manage list? You can restore it from history later.',
                              url_for('admin_catalog.elections'))
    try:
        election = _election(election_id)
        if not can_archive(election):
            flash('Only completed elections can be archived.', 'warning')
        else:
            reply = g.api.archive_election(election_id)
            flash(reply.message or 'Election archived', 'success')
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to archive election'), 'danger')
    return redirect(url_for('admin_catalog.elections'))


@bp.route('/elections/<election_id>/delete', methods=['POST'])
@admin_required
def election_delete(election_id):
    back = url_for('admin_catalog.elections')
    if request.form.get("back") == url_for('admin_catalog.history'):
        back = url_for('admin_catalog.history')
    if not confirmed():
        return render_confirm('This will permanently delete the election. Continue?', back)
    try:
        election = _election(election_id)
        if not can_delete_permanently(election):
            flash('Only completed, upcoming or draft elections can be deleted permanently.', 'warning')
        else:
            reply = g.api.delete_election_permanently(election_id)
            logger.info("Election %s deleted permanently", election_id)
            flash(reply.message or 'Election deleted permanently', 'success')
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to delete election'), 'danger')
    return redirect(back)


# -------------------------
# History
# -------------------------

@bp.route('/history')
@admin_required
def history():
    try:
        page = history_resource(g.api, _page_size()).load(request.args)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to load election history'), 'danger')
        page = None
    return render_template('admin/history.html', page=page, args=request.args)


@bp.route('/history/<election_id>/restore', methods=['POST'])
@admin_required
def history_restore(election_id):
    try:
        reply = g.api.restore_election(election_id)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to restore election'), 'danger')
    else:
        flash(reply.message or 'Election restored', 'success')
    return redirect(url_for('admin_catalog.history'))


# -------------------------
# Candidates
# -------------------------

def _candidate_form(candidate, form, errors, location):
    return render_template('admin/candidate_form.html', candidate=candidate, form=form, errors=errors,
                           location=location)


def _read_candidate(location):
    form = {k: request.form.get(k, "").strip() for k in CANDIDATE_FIELDS}
    form.update(location.as_dict(place_key="village"))
    form["electionCardNumber"] = normalize_card_number(form["electionCardNumber"])
    errors = validate_candidate(form)
    for field in CANDIDATE_UPLOADS:
        try:
            data_url, _ = read_upload(request.files.get(field), current_app.config["MAX_UPLOAD_BYTES"])
        except UploadError as e:
            errors[field] = str(e)
            continue
        if data_url:
            form[field] = data_url
    return form, errors


@bp.route('/candidates')
@admin_required
def candidates():
    try:
        page = candidates_resource(g.api, _page_size()).load(request.args)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to load candidates'), 'danger')
        page = None
    return render_template('admin/candidates.html', page=page, args=request.args)


@bp.route('/candidates/new', methods=['GET', 'POST'])
@admin_required
def candidate_create():
    if request.method == 'GET':
        return _candidate_form(None, {}, {}, LocationSelection())
    location = LocationSelection.from_form(request.form, place_key="village")
    if request.form.get("cascade"):
        form = {k: request.form.get(k, "") for k in CANDIDATE_FIELDS}
        form.update(location.as_dict(place_key="village"))
        return _candidate_form(None, form, {}, location)
    form, errors = _read_candidate(location)
    if errors:
        return _candidate_form(None, form, errors, location)
    try:
        reply = g.api.create_candidate(form)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to create candidate'), 'danger')
        return _candidate_form(None, form, {}, location)
    logger.info("Candidate created: %s (%s)", form["name"], form["partyName"])
    flash(reply.message or 'Candidate created successfully', 'success')
    return redirect(url_for('admin_catalog.candidates'))


@bp.route('/candidates/<candidate_id>')
@admin_required
def candidate_detail(candidate_id):
    try:
        candidate = g.api.get_candidate(candidate_id).data.get("candidate") or {}
    except ApiRequestError as e:
        flash(error_message(e, 'Candidate not found'), 'danger')
        return redirect(url_for('admin_catalog.candidates'))

    assigned = []
    for entry in candidate.get("assignedElections") or []:
        election_id = entry.get("electionId")
        try:
            assigned.append({**entry, **_election(election_id)})
        except ApiRequestError as e:
            logger.warning("Assigned election %s unavailable: %s", election_id, e)
            assigned.append(entry)
    try:
        upcoming = g.api.list_elections({"status": "upcoming", "archived": "false", "limit": 100})
        taken = {a.get("electionId") for a in assigned}
        options = [e for e in assignable_elections(upcoming.data.get("elections") or []) if e.get("_id") not in taken]
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to load elections'), 'danger')
        options = []
    return render_template('admin/candidate_detail.html', candidate=candidate, assigned=assigned,
                           options=options)


@bp.route('/candidates/<candidate_id>/edit', methods=['GET', 'POST'])
@admin_required
def candidate_edit(candidate_id):
    try:
        candidate = g.api.get_candidate(candidate_id).data.get("candidate") or {}
    except ApiRequestError as e:
        flash(error_message(e, 'Candidate not found'), 'danger')
        return redirect(url_for('admin_catalog.candidates'))
    if request.method == 'GET':
        form = {k: candidate.get(k) or "" for k in CANDIDATE_FIELDS}
        return _candidate_form(candidate, form, {}, LocationSelection.from_record(candidate, place_key="village"))
    location = LocationSelection.from_form(request.form, place_key="village")
    if request.form.get("cascade"):
        form = {k: request.form.get(k, "") for k in CANDIDATE_FIELDS}
        form.update(location.as_dict(place_key="village"))
        return _candidate_form(candidate, form, {}, location)
    form, errors = _read_candidate(location)
    if errors:
        return _candidate_form(candidate, form, errors, location)
    try:
        reply = g.api.update_candidate(candidate_id, form)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to update candidate'), 'danger')
        return _candidate_form(candidate, form, {}, location)
    flash(reply.message or 'Candidate updated successfully', 'success')
    return redirect(url_for('admin_catalog.candidate_detail', candidate_id=candidate_id))


@bp.route('/candidates/<candidate_id>/delete', methods=['POST'])
@admin_required
def candidate_delete(candidate_id):
    if not confirmed():
        return render_confirm('Are you sure you want to delete this candidate? This action cannot be undone.',
                              url_for('admin_catalog.candidates'))
    try:
        reply = g.api.delete_candidate(candidate_id)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to delete candidate'), 'danger')
    else:
        logger.info("Candidate deleted: %s", candidate_id)
        flash(reply.message or 'Candidate deleted successfully', 'success')
    return redirect(url_for('admin_catalog.candidates'))


@bp.route('/candidates/<candidate_id>/assign', methods=['POST'])
@admin_required
def candidate_assign(candidate_id):
    election_id = request.form.get("electionId", "")
    back = url_for('admin_catalog.candidate_detail', candidate_id=candidate_id)
    if not election_id:
        flash('Please select an election.', 'warning')
        return redirect(back)
    try:
        if not assignable_elections([_election(election_id)]):
            flash('Candidates can only be assigned to upcoming elections.', 'warning')
            return redirect(back)
        reply = g.api.assign_candidate(election_id, candidate_id)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to assign candidate'), 'danger')
    else:
        flash(reply.message or 'Candidate assigned to election', 'success')
    return redirect(back)


@bp.route('/candidates/<candidate_id>/unassign/<election_id>', methods=['POST'])
@admin_required
def candidate_unassign(candidate_id, election_id):
    back = url_for('admin_catalog.candidate_detail', candidate_id=candidate_id)
    if not confirmed():
        return render_confirm('Are you sure you want to remove this candidate from the election?', back)
    try:
        # status may have moved on since the page was rendered
        status = _election(election_id).get("status")
        if status != "upcoming":
            flash('Only upcoming elections can be removed. Active or completed elections cannot be modified.',
                  'danger')
            return redirect(back)
        reply = g.api.remove_candidate(election_id, candidate_id)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to remove candidate from election'), 'danger')
    else:
        flash(reply.message or 'Candidate removed from election', 'success')
    return redirect(back)


# -------------------------
# Results
# -------------------------

@bp.route('/results')
@admin_required
def results():
    try:
        page = elections_resource(g.api, _page_size(), archived=None).load(request.args)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to load elections'), 'danger')
        page = None
    return render_template('admin/results.html', page=page, args=request.args, can_publish=can_publish,
                           is_declared=is_declared)


def _results(election_id):
    data = g.api.election_results(election_id).data
    return data.get("election") or {}, data.get("candidates") or []


@bp.route('/results/<election_id>')
@admin_required
def result_detail(election_id):
    try:
        summary, rows = _results(election_id)
        election = _election(election_id)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to load results'), 'danger')
        return redirect(url_for('admin_catalog.results'))
    election = {**election, **summary}
    return render_template('admin/result_detail.html', election=election,
                           table=candidate_table(rows).to_dict("records"),
                           parties=party_totals(rows).to_dict("records"),
                           leader=winner(rows), publishable=can_publish(election))


@bp.route('/results/<election_id>/publish', methods=['POST'])
@admin_required
def result_publish(election_id):
    back = url_for('admin_catalog.result_detail', election_id=election_id)
    try:
        election = _election(election_id)
        if not can_publish(election):
            flash('Results can only be published once voting has ended, and only once.', 'warning')
            return redirect(back)
        if not confirmed():
            return render_confirm('Publish results for this election? This cannot be undone.', back)
        reply = g.api.publish_results(election_id)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to publish results'), 'danger')
    else:
        logger.info("Results published for election %s", election_id)
        flash(reply.message or 'Results published successfully', 'success')
    return redirect(back)


@bp.route('/results/<election_id>/export.csv')
@admin_required
def result_export(election_id):
    try:
        election, rows = _results(election_id)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to export results'), 'danger')
        return redirect(url_for('admin_catalog.results'))
    return send_file(results_csv(election, rows), mimetype='text/csv', as_attachment=True,
                     download_name=csv_filename(election))
