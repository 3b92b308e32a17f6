"""
Bearer-token authentication for the Flask API.
"""

from functools import wraps

from flask import request

from medhistory.errors import Unauthenticated
from medhistory.rbac import load_requester


def bearer_token() -> str:
    """Extract the token from an "Authorization: Bearer <token>" header."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        raise Unauthenticated("Authentication token is missing")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("Invalid authorization header format")
    return token.strip()


def build_token_required(identity, accounts):
    """Return a decorator that resolves the requester before the view runs."""

    def token_required(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            token = bearer_token()
            # Attach the requester to the request context
            request.requester = load_requester(identity, accounts, token)
            request.token = token
            return f(*args, **kwargs)

        return decorated

    return token_required
