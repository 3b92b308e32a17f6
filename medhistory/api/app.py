"""
Flask application factory and server entry-point.
"""

import os
import sys
import traceback

from flask import Flask
from flask_cors import CORS

from medhistory.config import TOKEN_EXPIRY_HOURS
from medhistory.database import init_engine
from medhistory.identity import IdentityProvider
from medhistory.store import AccountStore, QuestionStore
from medhistory.api.routes import register_routes


def create_app(engine=None, identity=None, rng=None):
    """Build and return a fully configured Flask application.

    The engine and identity provider are created here unless given, and
    handed to the routes explicitly.
    """
    app = Flask(__name__)
    CORS(app)

    # ── Initialise shared resources ──────────────────────────────────
    try:
        if engine is None:
            print("[init] Initializing database connection...")
            engine = init_engine()
        if identity is None:
            identity = IdentityProvider(engine)
        accounts = AccountStore(engine)
        questions = QuestionStore(engine)
        print("[init] ✓ API server ready")
    except Exception as e:
        print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
        traceback.print_exc()
        sys.exit(1)

    # ── Register routes ──────────────────────────────────────────────
    register_routes(app, engine, identity, accounts, questions, rng=rng)

    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print("Medical History – REST API Server")
    print("=" * 60)

    app = create_app()

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask API on {host}:{port}")
    print(f"[server] Debug mode: {debug}")
    print(f"[server] Token expiry: {TOKEN_EXPIRY_HOURS} hours")
    print("\nAPI Endpoints:")
    print(f"  - POST http://{host}:{port}/login")
    print(f"  - POST http://{host}:{port}/token/refresh")
    print(f"  - POST http://{host}:{port}/users")
    print(f"  - GET  http://{host}:{port}/users")
    print(f"  - POST http://{host}:{port}/history")
    print(f"  - GET  http://{host}:{port}/history")
    print(f"  - GET  http://{host}:{port}/roles")
    print(f"  - GET  http://{host}:{port}/health")
    print("\n" + "=" * 60)

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
