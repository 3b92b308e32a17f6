"""
Role-Based Access Control – loading the requester and building policies.
"""

from medhistory.errors import AccountNotFound, Forbidden
from medhistory.models import Account, HistoryFilters, Policy, Role


def load_requester(identity, accounts, token: str) -> Account:
    """Resolve a bearer token to the requesting account."""
    account_id = identity.verify(token)
    account = accounts.get(account_id)
    if account is None:
        raise AccountNotFound("User not found")
    return account


def role_of(account: Account) -> Role:
    """Map the stored role string onto the closed Role enumeration."""
    try:
        return Role(account.rol)
    except ValueError:
        raise Forbidden(f"Unsupported role '{account.rol}'")


def require_role(account: Account, *allowed: Role) -> Role:
    role = role_of(account)
    if role not in allowed:
        raise Forbidden("Forbidden")
    return role


def _user_policy(filters: HistoryFilters) -> Policy:
    return Policy(
        role=Role.USER,
        filters=filters.only(),
        notes="User can only access their own records.",
    )


def _doctor_policy(filters: HistoryFilters) -> Policy:
    return Policy(
        role=Role.DOCTOR,
        filters=filters.only("user_name"),
        notes="Doctor can access records of assigned patients, optionally narrowed by name.",
    )


def _admin_policy(filters: HistoryFilters) -> Policy:
    return Policy(
        role=Role.ADMIN,
        filters=filters,
        notes="Admin can access all records, filtered by user or doctor.",
    )


_POLICIES = {
    Role.USER: _user_policy,
    Role.DOCTOR: _doctor_policy,
    Role.ADMIN: _admin_policy,
}


def build_policy(account: Account, filters: HistoryFilters = HistoryFilters()) -> Policy:
    """Derive a Policy from the requester, dropping filters their role may not use."""
    return _POLICIES[role_of(account)](filters)
