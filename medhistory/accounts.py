"""
Account flows: registration, login, token refresh and user listing.
"""

from datetime import date
from typing import Any, Dict, List, Mapping

from medhistory.config import DEFAULT_ROLE, MAX_PASSWORD_BYTES, MIN_PASSWORD_LENGTH
from medhistory.errors import AccountNotFound, ValidationFailure
from medhistory.models import Account, HistoryFilters, normalize_role
from medhistory.rbac import build_policy
from medhistory.resolver import resolve_targets

REQUIRED_FIELDS = ("email", "password", "nombre", "apellido")


def _parse_birth_date(value: Any):
    if value in (None, ""):
        return None
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationFailure("fecha_nacimiento must be an ISO date (YYYY-MM-DD)")


def _optional_text(body: Mapping[str, Any], field: str):
    value = body.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationFailure(f"{field} must be a string")
    return value.strip() or None


def register(identity, accounts, body: Mapping[str, Any]) -> Dict[str, Any]:
    """Create the identity and its "usuario" row.

    Every field, the requested role included, is checked before anything is
    written. Both rows are written in one transaction.
    """
    if not isinstance(body, Mapping):
        raise ValidationFailure("Request body must be a JSON object")

    missing = [f for f in REQUIRED_FIELDS if not str(body.get(f) or "").strip()]
    if missing:
        raise ValidationFailure(f"Missing required fields: {', '.join(missing)}")

    password = str(body["password"])
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailure(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationFailure(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

    rol = normalize_role(body.get("rol") or DEFAULT_ROLE)
    if not accounts.role_allowed(rol):
        raise ValidationFailure("Invalid role")

    birth = _parse_birth_date(body.get("fecha_nacimiento"))
    direccion = _optional_text(body, "direccion")
    email = str(body["email"]).strip()

    with accounts.transaction() as conn:
        session = identity.sign_up(email, password, conn=conn)
        account = accounts.create(Account(
            id=session.user_id,
            email=email,
            nombre=str(body["nombre"]).strip(),
            apellido=str(body["apellido"]).strip(),
            rol=rol,
            fecha_nacimiento=birth,
            direccion=direccion,
        ), conn=conn)
    print(f"[auth] Registered account {account.id} (rol={account.rol})")
    return {**session.tokens(), "usuario": account.to_dict()}


def login(identity, accounts, email: str, password: str) -> Dict[str, Any]:
    if not email or not password:
        raise ValidationFailure("email and password are required")
    session = identity.sign_in(email, password)
    account = accounts.get(session.user_id)
    if account is None:
        raise AccountNotFound("User not found")
    return {**session.tokens(), "usuario": account.to_dict()}


def refresh(identity, refresh_token: str) -> Dict[str, str]:
    return identity.refresh(refresh_token).tokens()


def list_users(accounts, requester: Account, filters: HistoryFilters) -> List[Account]:
    """Accounts the requester may see; unlike history reads, nothing is omitted."""
    policy = build_policy(requester, filters)
    target_ids = resolve_targets(accounts, requester, policy)
    if not target_ids:
        return []
    return accounts.find(ids=list(dict.fromkeys(target_ids)))


def list_roles(accounts) -> List[str]:
    return accounts.roles()
