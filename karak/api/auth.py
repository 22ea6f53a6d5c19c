"""
JWT authentication helpers and middleware for the Flask API.

Every session owns its own record service; all of them share one database
and one decision point, and each request runs under the app-wide lock.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Dict, Optional

import jwt
from flask import current_app, g, jsonify, request

from karak.authorization import DecisionPoint
from karak.database import Database
from karak.models import UserID
from karak.services import Service


@dataclass
class Session:
    service: Service
    user_id: UserID
    created_at: datetime
    last_activity: datetime


@dataclass
class AppState:
    """Shared resources attached to the Flask app under ``extensions["karak"]``."""
    db: Database
    decision_point: DecisionPoint
    secret_key: str
    token_expiry_hours: int
    sessions: Dict[str, Session] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def new_service(self) -> Service:
        return Service(self.db, self.decision_point)


def get_state() -> AppState:
    return current_app.extensions["karak"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_token(state: AppState, user_id: UserID) -> str:
    """Generate a JWT token for an authenticated user."""
    now = utcnow()
    payload = {
        "sub": str(user_id),
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(hours=state.token_expiry_hours),
    }
    return jwt.encode(payload, state.secret_key, algorithm="HS256")


def verify_token(state: AppState, token: str) -> Optional[Dict[str, Any]]:
    """Verify a JWT token and return the decoded payload (or None)."""
    try:
        return jwt.decode(token, state.secret_key, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def token_required(f):
    """Decorator that protects endpoints with JWT authentication."""
    @wraps(f)
    def decorated(*args, **kwargs):
        token = None

        if "Authorization" in request.headers:
            auth_header = request.headers["Authorization"]
            try:
                token = auth_header.split(" ")[1]
            except IndexError:
                return jsonify({"error": "Invalid authorization header format"}), 401

        if not token:
            return jsonify({"error": "Authentication token is missing"}), 401

        state = get_state()
        payload = verify_token(state, token)
        if not payload:
            return jsonify({"error": "Invalid or expired token"}), 401

        with state.lock:
            session = state.sessions.get(token)
            if session is not None:
                session.last_activity = utcnow()
        if session is None:
            return jsonify({"error": "Session not found. Please login again."}), 401

        g.session = session
        g.token = token

        return f(*args, **kwargs)

    return decorated


def cleanup_expired_sessions(state: AppState) -> int:
    """Remove sessions that have been inactive beyond the token lifetime."""
    now = utcnow()
    limit = state.token_expiry_hours * 3600
    expired = [
        tok for tok, session in state.sessions.items()
        if (now - session.last_activity).total_seconds() > limit
    ]
    for tok in expired:
        state.sessions[tok].service.logout()
        del state.sessions[tok]
    if expired:
        print(f"[cleanup] Removed {len(expired)} expired sessions")
    return len(expired)
