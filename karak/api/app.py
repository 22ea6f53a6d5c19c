"""
Flask application factory and server entry-point.
"""

import sys
import traceback
from typing import Optional

from flask import Flask
from flask_cors import CORS

from karak.api.auth import AppState
from karak.api.routes import register_routes
from karak.authorization import DecisionPoint
from karak.config import (
    API_HOST,
    API_PORT,
    DB_FILE,
    SECRET_KEY,
    TOKEN_EXPIRY_HOURS,
    configure_logging,
)
from karak.database import Database
from karak.policy import RulePolicy


def create_app(
    db: Optional[Database] = None,
    decision_point: Optional[DecisionPoint] = None,
    secret_key: str = SECRET_KEY,
    token_expiry_hours: int = TOKEN_EXPIRY_HOURS,
) -> Flask:
    """Build and return a fully configured Flask application."""
    app = Flask(__name__)
    CORS(app)

    # ── Initialise shared resources ──────────────────────────────────
    if db is None:
        try:
            print(f"[init] Opening database {DB_FILE}...")
            db = Database.open(DB_FILE)
        except Exception as e:
            print(f"[FATAL] Failed to open database: {e}", file=sys.stderr)
            traceback.print_exc()
            sys.exit(1)

    app.extensions["karak"] = AppState(
        db=db,
        decision_point=decision_point if decision_point is not None else RulePolicy(),
        secret_key=secret_key,
        token_expiry_hours=token_expiry_hours,
    )

    # ── Register routes ──────────────────────────────────────────────
    register_routes(app)

    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print("KARAK – REST API Server")
    print("=" * 60)

    configure_logging()
    app = create_app()

    print(f"\n[server] Starting Flask API on {API_HOST}:{API_PORT}")
    print(f"[server] Session expiry: {TOKEN_EXPIRY_HOURS} hours")
    print("\nAPI Endpoints:")
    print(f"  - POST http://{API_HOST}:{API_PORT}/api/auth/register")
    print(f"  - POST http://{API_HOST}:{API_PORT}/api/auth/login")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/api/users/<id>")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/api/patients")
    print(f"  - POST http://{API_HOST}:{API_PORT}/api/auth/logout")
    print(f"  - GET  http://{API_HOST}:{API_PORT}/health")
    print("\n" + "=" * 60)

    try:
        app.run(host=API_HOST, port=API_PORT, threaded=True)
    finally:
        app.extensions["karak"].db.save()


if __name__ == "__main__":
    main()
