"""Server-rendered admin panel pages."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Dict, List

from flask import Blueprint, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required
from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField, SubmitField
from wtforms.validators import Email, InputRequired

from ..data_access import arenas_dao, bookings_dao, games_dao, users_dao
from ..data_access.directus import DirectusError
from ..models.schedule import to_date_only
from .auth import clear_auth_cookies, manager_required, set_auth_cookies

bp = Blueprint("pages", __name__, template_folder="../views")


class LoginForm(FlaskForm):
    """Basic credential form."""

    email = StringField("Email", validators=[InputRequired(), Email()])
    password = PasswordField("Password", validators=[InputRequired()])
    submit = SubmitField("Sign in")


def _safe_next(target: str | None) -> str:
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return url_for("pages.schedule")


def _selected_day() -> date:
    raw = to_date_only(request.args.get("date"))
    if raw:
        try:
            day = datetime.strptime(raw, "%Y-%m-%d").date()
        except ValueError:
            day = None
        # neighbouring days must exist for the previous/next links
        if day is not None and date.min < day < date.max:
            return day
        flash("Invalid date, showing today instead.", "warning")
    return date.today()


@bp.route("/")
def index():
    return redirect(url_for("pages.schedule"))


@bp.route("/login", methods=["GET", "POST"])
def login():
    """Sign in against Directus and store the tokens in cookies."""

    if current_user.is_authenticated:
        return redirect(url_for("pages.schedule"))

    form = LoginForm()
    if form.validate_on_submit():
        try:
            tokens = users_dao.login(form.email.data.strip(), form.password.data)
        except ValueError:
            flash("Could not obtain an access token.", "danger")
        except DirectusError as exc:
            if exc.status is None:
                flash("The booking backend is unreachable. Try again later.", "danger")
            else:
                form.email.errors.append("Invalid credentials. Please try again.")
        else:
            response = redirect(_safe_next(request.args.get("from")))
            return set_auth_cookies(response, tokens)
    return render_template("login.html", form=form)


@bp.route("/logout", methods=["POST"])
def logout():
    flash("You have been signed out.", "info")
    return clear_auth_cookies(redirect(url_for("pages.login")))


@bp.route("/schedule")
@login_required
def schedule():
    """Day view: one row per arena with its bookings in start order."""

    day = _selected_day()
    arenas = []
    events = []
    try:
        arenas = arenas_dao.list_arenas(current_user.access_token)
        events = bookings_dao.list_events(day, day + timedelta(days=1))
    except DirectusError as exc:
        flash(f"Could not load the schedule: {exc}", "warning")

    by_arena: Dict[Any, List] = {}
    for event in sorted(events, key=lambda item: item.start):
        by_arena.setdefault(event.resource_id, []).append(event)
    rows = [{"arena": arena, "events": by_arena.pop(arena.arena_id, [])} for arena in arenas]
    unassigned = [event for bucket in by_arena.values() for event in bucket]

    return render_template(
        "schedule.html",
        day=day,
        previous_day=day - timedelta(days=1),
        next_day=day + timedelta(days=1),
        rows=rows,
        unassigned=unassigned,
    )


@bp.route("/settings")
@manager_required
def settings():
    """Arena and game catalogue overview for managers."""

    arenas = []
    games = []
    try:
        arenas = arenas_dao.list_arenas(current_user.access_token)
        games = games_dao.list_games()
    except DirectusError as exc:
        flash(f"Could not load settings: {exc}", "warning")
    return render_template("settings.html", arenas=arenas, games=games)
