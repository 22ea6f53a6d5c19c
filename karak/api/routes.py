"""
Flask route handlers for the REST API.
"""

import logging
from datetime import timedelta

from flask import g, jsonify, request

from karak.api.auth import (
    Session,
    cleanup_expired_sessions,
    generate_token,
    get_state,
    token_required,
    utcnow,
)
from karak.errors import (
    AccessDenied,
    Conflict,
    InvalidCredentials,
    NoMedicalFolder,
    NotFound,
)
from karak.models import MedicalReport, PersonalData, ReportID, UserData, UserID
from karak.validation import (
    InvalidInput,
    parse_avs_number,
    parse_blood_type,
    parse_role,
    parse_username,
    password_problems,
)

logger = logging.getLogger(__name__)


# ── Serialization helpers ────────────────────────────────────────────

def user_view(user: UserData) -> dict:
    """Public form of a user: everything except the password hash."""
    data = user.to_dict()
    data.pop("password")
    return data


def report_view(report: MedicalReport) -> dict:
    return report.to_dict()


def parse_user_id(text: str) -> UserID:
    try:
        return UserID.parse(text)
    except ValueError:
        raise InvalidInput(f"Malformed user id: {text!r}") from None


def parse_report_id(text: str) -> ReportID:
    try:
        return ReportID.parse(text)
    except ValueError:
        raise InvalidInput(f"Malformed report id: {text!r}") from None


def json_body() -> dict:
    if not request.is_json:
        raise InvalidInput("Content-Type must be application/json")
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput("JSON body must be an object")
    return data


def required(data: dict, key: str) -> str:
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInput(f"{key} is required")
    return value


def register_routes(app):
    """Register all API routes on the Flask *app*."""

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "KARAK medical record API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "register": "/api/auth/register",
                "login": "/api/auth/login",
                "logout": "/api/auth/logout",
                "users": "/api/users/<id>",
                "reports": "/api/reports/<id>",
                "patients": "/api/patients",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        state = get_state()
        return jsonify({
            "status": "healthy",
            "users": len(state.db.users),
            "reports": len(state.db.reports),
            "active_sessions": len(state.sessions),
        }), 200

    # ── Auth ─────────────────────────────────────────────────────────

    @app.route("/api/auth/register", methods=["POST"])
    def register():
        data = json_body()
        username = parse_username(required(data, "username"))
        password = str(required(data, "password"))
        problems = password_problems(password, username)
        if problems:
            return jsonify({"error": "Password too weak", "details": problems}), 400

        state = get_state()
        with state.lock:
            user_id = state.new_service().register(username, password)
            state.db.save()
        return jsonify({"success": True, "id": str(user_id), "username": username}), 201

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        data = json_body()
        username = str(data.get("username", "")).strip()
        password = str(data.get("password", ""))

        state = get_state()
        service = state.new_service()
        with state.lock:
            cleanup_expired_sessions(state)
            user_id = service.login(username, password)
            token = generate_token(state, user_id)
            now = utcnow()
            state.sessions[token] = Session(
                service=service, user_id=user_id, created_at=now, last_activity=now,
            )
        return jsonify({
            "success": True,
            "token": token,
            "user_id": str(user_id),
            "expires_at": (now + timedelta(hours=state.token_expiry_hours)).isoformat(),
        }), 200

    @app.route("/api/auth/logout", methods=["POST"])
    @token_required
    def logout():
        state = get_state()
        with state.lock:
            g.session.service.logout()
            state.sessions.pop(g.token, None)
        return jsonify({"success": True, "message": "Logged out successfully"}), 200

    # ── Users ────────────────────────────────────────────────────────

    @app.route("/api/users/lookup", methods=["GET"])
    @token_required
    def lookup_user():
        username = parse_username(request.args.get("username", ""))
        with get_state().lock:
            user_id = g.session.service.lookup_user(username)
        if user_id is None:
            return jsonify({"error": "Unknown user"}), 404
        return jsonify({"success": True, "id": str(user_id)}), 200

    @app.route("/api/users/<user_id>", methods=["GET"])
    @token_required
    def get_user(user_id):
        uid = parse_user_id(user_id)
        with get_state().lock:
            user = user_view(g.session.service.get_data(uid))
        return jsonify({"success": True, "user": user}), 200

    @app.route("/api/users/<user_id>/data", methods=["PUT"])
    @token_required
    def update_data(user_id):
        uid = parse_user_id(user_id)
        data = json_body()
        personal_data = PersonalData(
            avs_number=parse_avs_number(required(data, "avs_number")),
            blood_type=parse_blood_type(required(data, "blood_type")),
        )
        state = get_state()
        with state.lock:
            g.session.service.update_data(uid, personal_data)
            state.db.save()
        return jsonify({"success": True}), 200

    @app.route("/api/users/<user_id>/data", methods=["DELETE"])
    @token_required
    def delete_data(user_id):
        uid = parse_user_id(user_id)
        state = get_state()
        with state.lock:
            g.session.service.delete_data(uid)
            state.db.save()
        return jsonify({"success": True}), 200

    @app.route("/api/users/<user_id>/role", methods=["PUT"])
    @token_required
    def update_role(user_id):
        uid = parse_user_id(user_id)
        role = parse_role(required(json_body(), "role"))
        state = get_state()
        with state.lock:
            g.session.service.update_role(uid, role)
            state.db.save()
        return jsonify({"success": True, "role": role.value}), 200

    @app.route("/api/users/<user_id>/doctors", methods=["POST"])
    @token_required
    def add_doctor(user_id):
        uid = parse_user_id(user_id)
        doctor_id = parse_user_id(required(json_body(), "doctor_id"))
        state = get_state()
        with state.lock:
            g.session.service.add_doctor(uid, doctor_id)
            state.db.save()
        return jsonify({"success": True}), 200

    @app.route("/api/users/<user_id>/doctors/<doctor_id>", methods=["DELETE"])
    @token_required
    def remove_doctor(user_id, doctor_id):
        uid = parse_user_id(user_id)
        did = parse_user_id(doctor_id)
        state = get_state()
        with state.lock:
            g.session.service.remove_doctor(uid, did)
            state.db.save()
        return jsonify({"success": True}), 200

    @app.route("/api/patients", methods=["GET"])
    @token_required
    def list_patients():
        with get_state().lock:
            patients = [user_view(u) for u in g.session.service.list_patients()]
        return jsonify({"success": True, "patients": patients}), 200

    # ── Reports ──────────────────────────────────────────────────────

    @app.route("/api/users/<user_id>/reports", methods=["GET"])
    @token_required
    def list_reports(user_id):
        uid = parse_user_id(user_id)
        with get_state().lock:
            reports = [report_view(r) for r in g.session.service.list_reports(uid)]
        return jsonify({"success": True, "reports": reports}), 200

    @app.route("/api/users/<user_id>/reports", methods=["POST"])
    @token_required
    def add_report(user_id):
        uid = parse_user_id(user_id)
        data = json_body()
        title = str(required(data, "title")).strip()
        content = str(data.get("content", ""))

        session = g.session
        state = get_state()
        with state.lock:
            report_id = session.service.add_report(session.user_id, uid, title, content)
            state.db.save()
        return jsonify({"success": True, "id": str(report_id)}), 201

    @app.route("/api/reports/<report_id>", methods=["GET"])
    @token_required
    def read_report(report_id):
        rid = parse_report_id(report_id)
        with get_state().lock:
            report = report_view(g.session.service.read_report(rid))
        return jsonify({"success": True, "report": report}), 200

    @app.route("/api/reports/<report_id>", methods=["PUT"])
    @token_required
    def update_report(report_id):
        rid = parse_report_id(report_id)
        content = str(json_body().get("content", ""))
        state = get_state()
        with state.lock:
            g.session.service.update_report(rid, content)
            state.db.save()
        return jsonify({"success": True}), 200

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(InvalidInput)
    def invalid_input(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(InvalidCredentials)
    def invalid_credentials(e):
        return jsonify({"error": str(e)}), 401

    @app.errorhandler(AccessDenied)
    def access_denied(e):
        return jsonify({"error": str(e)}), 403

    @app.errorhandler(NotFound)
    def not_found_entity(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(Conflict)
    def conflict(e):
        return jsonify({"error": str(e)}), 409

    @app.errorhandler(NoMedicalFolder)
    def no_folder(e):
        return jsonify({"error": str(e)}), 422

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(500)
    def internal_error(e):
        logger.error("Internal server error: %s", e)
        return jsonify({"error": "Internal server error"}), 500
