"""
Flask route handlers for the REST API.
"""

import sys
import traceback

from flask import jsonify, request

from medhistory.accounts import list_roles, list_users, login, refresh, register
from medhistory.errors import MedHistoryError, ValidationFailure
from medhistory.history import read_history, submit_history
from medhistory.models import HistoryFilters
from medhistory.rbac import build_policy
from medhistory.resolver import resolve_targets
from medhistory.api.auth import build_token_required


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationFailure("Content-Type must be application/json")
    return data


def register_routes(app, engine, identity, accounts, questions, rng=None):
    """Register all API routes on the Flask *app*."""

    token_required = build_token_required(identity, accounts)

    def route(rule, **options):
        """Expose a view both at *rule* and under the /api prefix."""
        def decorator(f):
            app.add_url_rule(rule, f.__name__, f, **options)
            app.add_url_rule(f"/api{rule}".rstrip("/") or "/api",
                             f"api_{f.__name__}", f, **options)
            return f
        return decorator

    # ── Health / info ────────────────────────────────────────────────

    @route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "Medical History API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "login": "/login",
                "users": "/users",
                "history": "/history",
                "roles": "/roles",
                "refresh": "/token/refresh",
                "health": "/health",
            },
        })

    @route("/health", methods=["GET"])
    def health():
        from sqlalchemy import text as sa_text

        checks = {"database": False}
        try:
            with engine.connect() as conn:
                conn.execute(sa_text("SELECT 1"))
            checks["database"] = True
        except Exception as e:
            print(f"[WARN] Health check failed: {e}", file=sys.stderr)

        all_healthy = all(checks.values())
        return jsonify({
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
        }), 200 if all_healthy else 503

    # ── Auth / accounts ──────────────────────────────────────────────

    @route("/login", methods=["POST"])
    def do_login():
        data = _json_body()
        return jsonify(login(
            identity, accounts,
            str(data.get("email") or "").strip(), str(data.get("password") or ""),
        )), 200

    @route("/token/refresh", methods=["POST"])
    def refresh_token():
        data = _json_body()
        return jsonify(refresh(identity, str(data.get("refresh_token") or ""))), 200

    @route("/users", methods=["POST"])
    def create_user():
        return jsonify(register(identity, accounts, _json_body())), 201

    @route("/users", methods=["GET"])
    @token_required
    def get_users():
        requester = request.requester
        usuarios = list_users(accounts, requester, HistoryFilters.from_args(request.args))
        return jsonify({
            "message": "Authenticated",
            "usuario": requester.to_dict(),
            "usuarios": [u.to_dict() for u in usuarios],
        }), 200

    @route("/roles", methods=["GET"])
    def get_roles():
        return jsonify({"roles": list_roles(accounts)}), 200

    # ── History ──────────────────────────────────────────────────────

    @route("/history", methods=["POST"])
    @token_required
    def post_history():
        data = _json_body()
        if not isinstance(data, dict):
            raise ValidationFailure("Request body must be a JSON object")
        rows = submit_history(
            accounts, questions, request.requester, data.get("preguntas_medicas"), rng,
        )
        return jsonify({"message": "Preguntas inserted", "data": rows}), 200

    @route("/history", methods=["GET"])
    @token_required
    def get_history():
        requester = request.requester
        policy = build_policy(requester, HistoryFilters.from_args(request.args))
        target_ids = resolve_targets(accounts, requester, policy)
        results = read_history(accounts, questions, target_ids)
        return jsonify({"results": [r.to_dict() for r in results]}), 200

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(MedHistoryError)
    def domain_error(e):
        if e.status_code >= 500:
            print(f"[ERROR] {request.method} {request.path}: {e.message}", file=sys.stderr)
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(500)
    def internal_error(e):
        print(f"[ERROR] {request.method} {request.path}: {e}", file=sys.stderr)
        traceback.print_exc()
        return jsonify({"error": "Internal server error"}), 500
