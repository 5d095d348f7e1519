import logging

from flask import Blueprint, flash, g, redirect, render_template, request, url_for

from ..api import ApiRequestError, error_message
from ..locations import LocationSelection
from ..resources import users_resource
from ..selection import RoleSelection, build_notification, location_filter, location_options, matches_location
from ..validators import normalize_card_number, validate_otp, validate_profile, valid_email
from . import admin_auth, admin_required, confirmed, render_confirm

logger = logging.getLogger(__name__)

bp = Blueprint("admin", __name__, url_prefix="/admin")

USER_FIELDS = ("fullName", "email", "mobile", "gender", "address", "currentAddress",
               "state", "district", "taluka", "city", "voterId", "role")


# -------------------------
# Admin login (credentials -> OTP)
# -------------------------

@bp.route('/login', methods=['GET', 'POST'])
def login():
    if request.method == 'GET':
        if g.tokens.admin_token:
            return redirect(url_for('admin.home'))
        return render_template('admin/login.html', step=1, email="", errors={})

    email = request.form.get("email", "").strip()
    password = request.form.get("password", "")
    errors = {}
    if not valid_email(email):
        errors["email"] = "Please enter a valid email address"
    if not password:
        errors["password"] = "Password is required"
    if errors:
        return render_template('admin/login.html', step=1, email=email, errors=errors)
    outcome = admin_auth().send_otp(email, password)
    if not outcome.success:
        flash(outcome.message, 'danger')
        return render_template('admin/login.html', step=1, email=email, errors={})
    flash(outcome.message, 'success')
    return render_template('admin/login.html', step=2, email=email, errors={})


@bp.route('/login/verify', methods=['POST'])
def verify_login():
    email = request.form.get("email", "").strip()
    otp = request.form.get("otp", "").strip()
    error = validate_otp(otp)
    if error:
        return render_template('admin/login.html', step=2, email=email, errors={"otp": error})
    outcome = admin_auth().verify_otp(email, otp)
    if not outcome.success:
        flash(outcome.message, 'danger')
        return render_template('admin/login.html', step=2, email=email, errors={})
    flash(outcome.message, 'success')
    return redirect(url_for('admin.home'))


@bp.route('/logout')
def logout():
    admin_auth().logout()
    flash('Logged out successfully', 'success')
    return redirect(url_for('admin.login'))


@bp.route('/')
@admin_required
def home():
    try:
        admin = admin_auth().me()
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to load admin profile'), 'danger')
        admin = None
    try:
        stats = g.api.admin_dashboard().data.get("stats") or {}
    except ApiRequestError as e:
        logger.warning("Admin dashboard stats unavailable: %s", e)
        stats = {}
    return render_template('admin/home.html', admin=admin or {}, stats=stats)


# -------------------------
# Users
# -------------------------

@bp.route('/users')
@admin_required
def users():
    try:
        page = users_resource(g.api).load(request.args)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to load users'), 'danger')
        page = None
    return render_template('admin/users.html', page=page, q=request.args.get("q", ""))


@bp.route('/users/<user_id>')
@admin_required
def user_detail(user_id):
    try:
        user = g.api.get_user(user_id).data.get("user") or {}
    except ApiRequestError as e:
        flash(error_message(e, 'User not found'), 'danger')
        return redirect(url_for('admin.users'))
    return render_template('admin/user_detail.html', user=user)


@bp.route('/users/<user_id>/edit', methods=['GET', 'POST'])
@admin_required
def user_edit(user_id):
    try:
        user = g.api.get_user(user_id).data.get("user") or {}
    except ApiRequestError as e:
        flash(error_message(e, 'User not found'), 'danger')
        return redirect(url_for('admin.users'))
    if request.method == 'GET':
        form = {k: user.get(k) or "" for k in USER_FIELDS}
        form["isActive"] = user.get("isActive", True)
        return render_template('admin/user_edit.html', user=user, form=form, errors={},
                               location=LocationSelection.from_record(user))

    location = LocationSelection.from_form(request.form)
    form = {k: request.form.get(k, "").strip() for k in USER_FIELDS}
    form.update(location.as_dict())
    form["voterId"] = normalize_card_number(form["voterId"])
    form["isActive"] = request.form.get("isActive") == "on"
    if request.form.get("cascade"):
        return render_template('admin/user_edit.html', user=user, form=form, errors={}, location=location)
    errors = validate_profile(form)
    if form["email"] and not valid_email(form["email"]):
        errors["email"] = "Please enter a valid email address"
    if errors:
        return render_template('admin/user_edit.html', user=user, form=form, errors=errors, location=location)
    try:
        reply = g.api.update_user(user_id, form)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to update user'), 'danger')
        return render_template('admin/user_edit.html', user=user, form=form, errors={}, location=location)
    flash(reply.message or 'User updated successfully', 'success')
    return redirect(url_for('admin.users'))


@bp.route('/users/<user_id>/delete', methods=['POST'])
@admin_required
def user_delete(user_id):
    if not confirmed():
        return render_confirm('Delete this user? This cannot be undone.', url_for('admin.users'))
    try:
        reply = g.api.delete_user(user_id)
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to delete user'), 'danger')
    else:
        logger.info("User deleted: %s", user_id)
        flash(reply.message or 'User deleted', 'success')
    return redirect(url_for('admin.users'))


# -------------------------
# Access / roles
# -------------------------

def _all_users():
    return users_resource(g.api).load({}).items


@bp.route('/access-roles', methods=['GET', 'POST'])
@admin_required
def access_roles():
    q = request.values.get("q", "")
    try:
        all_users = _all_users()
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to load users'), 'danger')
        all_users = []
    selection = RoleSelection.build(all_users, q, request.form.getlist("userIds"))

    action = request.form.get("action")
    if request.method == 'POST' and action in ("assign", "remove"):
        ids = selection.assign_ids() if action == "assign" else selection.remove_ids()
        if not ids:
            flash('Select at least one user for this action.', 'warning')
        elif not confirmed():
            verb = "Assign admin role to" if action == "assign" else "Remove admin role from"
            return render_confirm(f"{verb} {len(ids)} selected user(s)?", url_for('admin.access_roles', q=q))
        else:
            call = g.api.assign_admin if action == "assign" else g.api.remove_admin
            try:
                reply = call(ids)
            except ApiRequestError as e:
                flash(error_message(e, 'Failed to update roles'), 'danger')
            else:
                logger.info("Admin role %s for %d user(s)", "granted" if action == "assign" else "revoked", len(ids))
                flash(reply.message or 'Roles updated', 'success')
            return redirect(url_for('admin.access_roles', q=q))
    return render_template('admin/access_roles.html', selection=selection, q=q)


# -------------------------
# Notifications
# -------------------------

@bp.route('/notifications', methods=['GET', 'POST'])
@admin_required
def notifications():
    try:
        all_users = _all_users()
    except ApiRequestError as e:
        flash(error_message(e, 'Failed to load users'), 'danger')
        all_users = []
    mode = request.form.get("mode", request.args.get("mode", "individual"))
    flt = location_filter(request.form)
    form = {"subject": request.form.get("subject", ""), "message": request.form.get("message", "")}
    selected = request.form.getlist("userIds")
    context = dict(mode=mode, flt=flt, form=form, selected=selected, users=all_users,
                   options=location_options(all_users, flt),
                   recipients=[u for u in all_users if matches_location(u, flt)])

    if request.method == 'POST' and request.form.get("action") == "send":
        payload, error = build_notification(mode, form["subject"], form["message"], selected, flt)
        if error:
            flash(error, 'warning')
            return render_template('admin/notifications.html', **context)
        try:
            reply = g.api.send_notification(payload)
        except ApiRequestError as e:
            flash(error_message(e, 'Failed to send notification'), 'danger')
            return render_template('admin/notifications.html', **context)
        logger.info("Notification sent (%s mode)", mode)
        flash(reply.message or 'Notification sent successfully', 'success')
        return redirect(url_for('admin.notifications', mode=mode))
    return render_template('admin/notifications.html', **context)
