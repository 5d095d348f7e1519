from flask import Blueprint, flash, g, redirect, render_template, request, session, url_for

from ..auth import PendingAuth
from ..session_store import FLOW_KEY
from ..validators import validate_login, validate_new_password, validate_otp, validate_registration, valid_email
from . import auth_store, flows

bp = Blueprint("auth", __name__)

REGISTRATION_FIELDS = ("fullName", "email", "mobile", "dateOfBirth", "password")


def _pending():
    return flows().get(request.form.get("pending"), PendingAuth)


def _expired(endpoint: str):
    flash("Your verification step expired. Please start again.", "warning")
    return redirect(url_for(endpoint))


# -------------------------
# Login (credentials -> OTP)
# -------------------------

@bp.route('/login', methods=['GET', 'POST'])
def login():
    if g.tokens.user_token and request.method == 'GET':
        return redirect(url_for("voter.dashboard"))
    if request.method == 'GET':
        return render_template('login.html', step=1, form={}, errors={})

    form = {"email": request.form.get("email", "").strip(), "password": request.form.get("password", "")}
    errors = validate_login(form)
    if errors:
        return render_template('login.html', step=1, form=form, errors=errors)
    outcome = auth_store().login(form["email"], form["password"])
    if not outcome.success:
        flash(outcome.message, 'danger')
        return render_template('login.html', step=1, form=form, errors={})
    pending = flows().create(lambda fid: PendingAuth(fid, form))
    flash(outcome.message, 'success')
    return render_template('login.html', step=2, email=form["email"], pending=pending.id, errors={})


@bp.route('/login/verify', methods=['POST'])
def verify_login():
    pending = _pending()
    if pending is None:
        return _expired("auth.login")
    otp = request.form.get("otp", "").strip()
    error = validate_otp(otp)
    if error:
        return render_template('login.html', step=2, email=pending.email, pending=pending.id,
                               errors={"otp": error})
    outcome = auth_store().verify_login_otp(pending.email, otp)
    if not outcome.success:
        flash(outcome.message, 'danger')
        return render_template('login.html', step=2, email=pending.email, pending=pending.id, errors={})
    flows().discard(pending.id)
    flash(outcome.message, 'success')
    return redirect(outcome.redirect)


@bp.route('/login/resend', methods=['POST'])
def resend_login_otp():
    pending = _pending()
    if pending is None:
        return _expired("auth.login")
    outcome = auth_store().login(pending.data["email"], pending.data["password"])
    flash("OTP resent successfully" if outcome.success else outcome.message,
          'success' if outcome.success else 'danger')
    return render_template('login.html', step=2, email=pending.email, pending=pending.id, errors={})


# -------------------------
# Registration (details -> OTP)
# -------------------------

@bp.route('/register', methods=['GET', 'POST'])
def register():
    if request.method == 'GET':
        return render_template('register.html', step=1, form={}, errors={})

    form = {k: request.form.get(k, "").strip() for k in REGISTRATION_FIELDS}
    form["password"] = request.form.get("password", "")
    form["confirmPassword"] = request.form.get("confirmPassword", "")
    errors = validate_registration(form)
    if errors:
        return render_template('register.html', step=1, form=form, errors=errors)
    user_data = {k: form[k] for k in REGISTRATION_FIELDS}
    outcome = auth_store().register(user_data)
    if not outcome.success:
        flash(outcome.message, 'danger')
        return render_template('register.html', step=1, form=form, errors={})
    pending = flows().create(lambda fid: PendingAuth(fid, user_data))
    flash(outcome.message, 'success')
    return render_template('register.html', step=2, email=pending.email, pending=pending.id, errors={})


@bp.route('/register/verify', methods=['POST'])
def verify_registration():
    pending = _pending()
    if pending is None:
        return _expired("auth.register")
    otp = request.form.get("otp", "").strip()
    error = validate_otp(otp)
    if error:
        return render_template('register.html', step=2, email=pending.email, pending=pending.id,
                               errors={"otp": error})
    outcome = auth_store().verify_registration(pending.data, otp)
    if not outcome.success:
        flash(outcome.message, 'danger')
        return render_template('register.html', step=2, email=pending.email, pending=pending.id, errors={})
    flows().discard(pending.id)
    flash(outcome.message, 'success')
    return redirect(outcome.redirect or url_for("auth.login"))


@bp.route('/register/resend', methods=['POST'])
def resend_registration_otp():
    pending = _pending()
    if pending is None:
        return _expired("auth.register")
    outcome = auth_store().register(pending.data)
    flash("OTP resent successfully" if outcome.success else outcome.message,
          'success' if outcome.success else 'danger')
    return render_template('register.html', step=2, email=pending.email, pending=pending.id, errors={})


# -------------------------
# Forgot password (email -> OTP + new password)
# -------------------------

@bp.route('/forgot-password', methods=['GET', 'POST'])
def forgot_password():
    if request.method == 'GET':
        return render_template('forgot_password.html', step=1, email="", errors={})

    step = request.form.get("step", "1")
    email = request.form.get("email", "").strip()
    if step == "1":
        if not valid_email(email):
            return render_template('forgot_password.html', step=1, email=email,
                                   errors={"email": "Please enter a valid email address"})
        outcome = auth_store().forgot_password(email)
        if not outcome.success:
            flash(outcome.message, 'danger')
            return render_template('forgot_password.html', step=1, email=email, errors={})
        flash(outcome.message, 'success')
        return render_template('forgot_password.html', step=2, email=email, errors={})

    otp = request.form.get("otp", "").strip()
    password = request.form.get("newPassword", "")
    errors = validate_new_password(password, request.form.get("confirmPassword", ""), field="newPassword")
    otp_error = validate_otp(otp)
    if otp_error:
        errors["otp"] = otp_error
    if errors:
        return render_template('forgot_password.html', step=2, email=email, errors=errors)
    outcome = auth_store().reset_password(email, otp, password)
    if not outcome.success:
        flash(outcome.message, 'danger')
        return render_template('forgot_password.html', step=2, email=email, errors={})
    flash(outcome.message, 'success')
    return render_template('forgot_password.html', step=3, email=email, errors={})


@bp.route('/logout')
def logout():
    auth_store().logout()
    session.pop(FLOW_KEY, None)
    flash('Logged out successfully', 'success')
    return redirect(url_for('public.home'))
