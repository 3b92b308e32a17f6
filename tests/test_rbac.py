"""
Unit tests for RBAC – requester loading and policy building.
"""

import pytest

from medhistory.config import get_env
from medhistory.errors import AccountNotFound, Forbidden, Unauthenticated
from medhistory.models import Account, HistoryFilters, Role
from medhistory.rbac import build_policy, load_requester, require_role, role_of


# ── Helpers / Fakes ──────────────────────────────────────────────────

class FakeIdentity:
    def __init__(self, tokens):
        self._tokens = tokens

    def verify(self, token):
        if token not in self._tokens:
            raise Unauthenticated("Invalid token")
        return self._tokens[token]


class FakeAccounts:
    def __init__(self, *accounts):
        self._by_id = {a.id: a for a in accounts}
        self.lookups = []

    def get(self, account_id):
        self.lookups.append(account_id)
        return self._by_id.get(account_id)


def make_account(rol, account_id="u1"):
    return Account(id=account_id, email="x@example.com", nombre="X", apellido="Y", rol=rol)


ALL_FILTERS = HistoryFilters(user_id="u9", doctor_id="d9", user_name="an", doctor_name="house")


# ── Tests: get_env ───────────────────────────────────────────────────

def test_get_env_ok(monkeypatch):
    monkeypatch.setenv("X", "123")
    assert get_env("X") == "123"


def test_get_env_missing_exits(monkeypatch, capsys):
    monkeypatch.delenv("MISSING_ENV", raising=False)
    with pytest.raises(SystemExit) as e:
        get_env("MISSING_ENV")
    assert e.value.code == 1
    err = capsys.readouterr().err
    assert "ERROR: env var MISSING_ENV is not set" in err


# ── Tests: load_requester ────────────────────────────────────────────

def test_load_requester_ok():
    user = make_account("USER")
    ctx = load_requester(FakeIdentity({"tok": "u1"}), FakeAccounts(user), "tok")
    assert ctx is user


def test_load_requester_invalid_token_skips_account_lookup():
    accounts = FakeAccounts(make_account("USER"))
    with pytest.raises(Unauthenticated):
        load_requester(FakeIdentity({}), accounts, "bad")
    assert accounts.lookups == []


def test_load_requester_missing_account():
    with pytest.raises(AccountNotFound, match="User not found"):
        load_requester(FakeIdentity({"tok": "ghost"}), FakeAccounts(), "tok")


# ── Tests: role_of / require_role ────────────────────────────────────

def test_role_of_unknown_role_is_forbidden():
    with pytest.raises(Forbidden, match="Unsupported role 'NURSE'"):
        role_of(make_account("NURSE"))


def test_role_of_requires_canonical_spelling():
    assert role_of(make_account("DOCTOR")) is Role.DOCTOR
    with pytest.raises(Forbidden):
        role_of(make_account("doctor"))


def test_require_role_rejects_other_roles():
    with pytest.raises(Forbidden):
        require_role(make_account("DOCTOR"), Role.USER)
    assert require_role(make_account("USER"), Role.USER) is Role.USER


# ── Tests: build_policy ─────────────────────────────────────────────

def test_build_policy_user_drops_every_filter():
    policy = build_policy(make_account("USER"), ALL_FILTERS)
    assert policy.role is Role.USER
    assert policy.filters == HistoryFilters()


def test_build_policy_doctor_keeps_only_user_name():
    policy = build_policy(make_account("DOCTOR"), ALL_FILTERS)
    assert policy.role is Role.DOCTOR
    assert policy.filters == HistoryFilters(user_name="an")


def test_build_policy_admin_keeps_all_filters():
    policy = build_policy(make_account("ADMIN"), ALL_FILTERS)
    assert policy.role is Role.ADMIN
    assert policy.filters == ALL_FILTERS


def test_build_policy_unknown_role():
    with pytest.raises(Forbidden):
        build_policy(make_account("PHARMACY"), ALL_FILTERS)


# ── Tests: HistoryFilters.from_args ──────────────────────────────────

def test_filters_from_args_accepts_both_spellings_and_ignores_blanks():
    f = HistoryFilters.from_args({
        "user-id": "u1", "doctor_id": "d1", "user-name": "  ", "doctor-name": "House",
    })
    assert f == HistoryFilters(user_id="u1", doctor_id="d1", user_name=None, doctor_name="House")
