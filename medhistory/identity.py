"""
Local identity provider: email/password credentials and JWT bearer tokens.

Only the account layer's subject id leaves this module; the "usuario" row
is created separately by the account service.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict

import bcrypt
import jwt
from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from medhistory.config import (
    MAX_PASSWORD_BYTES, REFRESH_TOKEN_EXPIRY_DAYS, SECRET_KEY, TOKEN_EXPIRY_HOURS,
)
from medhistory.database import credenciales
from medhistory.errors import StoreFailure, Unauthenticated, ValidationFailure

ALGORITHM = "HS256"


@dataclass
class Session:
    """Token pair issued for one identity."""
    user_id: str
    email: str
    access_token: str
    refresh_token: str

    def tokens(self) -> Dict[str, str]:
        return {"access_token": self.access_token, "refresh_token": self.refresh_token}


class IdentityProvider:
    def __init__(
        self,
        engine,
        secret_key: str = SECRET_KEY,
        access_ttl: timedelta = timedelta(hours=TOKEN_EXPIRY_HOURS),
        refresh_ttl: timedelta = timedelta(days=REFRESH_TOKEN_EXPIRY_DAYS),
    ):
        self.engine = engine
        self.secret_key = secret_key
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    # ── Tokens ───────────────────────────────────────────────────────

    def _encode(self, user_id: str, email: str, kind: str, ttl: timedelta) -> str:
        now = datetime.utcnow()
        payload = {
            "sub": user_id,
            "email": email,
            "type": kind,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self.secret_key, algorithm=ALGORITHM)

    def _decode(self, token: str, kind: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("Token expired")
        except jwt.InvalidTokenError:
            raise Unauthenticated("Invalid token")
        if payload.get("type") != kind or not payload.get("sub"):
            raise Unauthenticated("Invalid token")
        return payload

    def _session(self, user_id: str, email: str) -> Session:
        return Session(
            user_id=user_id,
            email=email,
            access_token=self._encode(user_id, email, "access", self.access_ttl),
            refresh_token=self._encode(user_id, email, "refresh", self.refresh_ttl),
        )

    def verify(self, token: str) -> str:
        """Resolve an access token to the account id it was issued for."""
        if not token:
            raise Unauthenticated("Authentication token is missing")
        return str(self._decode(token, "access")["sub"])

    def refresh(self, refresh_token: str) -> Session:
        payload = self._decode(refresh_token or "", "refresh")
        return self._session(str(payload["sub"]), payload.get("email", ""))

    # ── Credentials ──────────────────────────────────────────────────

    def sign_up(self, email: str, password: str, conn=None) -> Session:
        """Store new credentials, inside *conn*'s transaction when given."""
        secret = password.encode("utf-8")
        if len(secret) > MAX_PASSWORD_BYTES:
            raise ValidationFailure(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        user_id = str(uuid.uuid4())
        hashed = bcrypt.hashpw(secret, bcrypt.gensalt()).decode("utf-8")
        stmt = insert(credenciales).values(
            id=user_id,
            email=email,
            password_hash=hashed,
            created_at=datetime.utcnow(),
        )
        try:
            if conn is not None:
                conn.execute(stmt)
            else:
                with self.engine.begin() as own:
                    own.execute(stmt)
        except IntegrityError:
            raise ValidationFailure("Email already registered")
        except SQLAlchemyError as e:
            raise StoreFailure(f"Could not create identity: {e.__class__.__name__}") from e
        return self._session(user_id, email)

    def sign_in(self, email: str, password: str) -> Session:
        secret = password.encode("utf-8")
        # Longer passwords can never have been stored
        if len(secret) > MAX_PASSWORD_BYTES:
            raise Unauthenticated("Invalid email or password")
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(credenciales).where(credenciales.c.email == email)
                ).mappings().first()
        except SQLAlchemyError as e:
            raise StoreFailure(f"Could not load identity: {e.__class__.__name__}") from e

        if not row or not bcrypt.checkpw(secret, row["password_hash"].encode("utf-8")):
            raise Unauthenticated("Invalid email or password")
        return self._session(row["id"], row["email"])
