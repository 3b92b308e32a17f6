"""
Shared fixtures: an in-memory SQLite database with the full schema.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from medhistory.database import create_schema
from medhistory.models import Account
from medhistory.store import AccountStore, QuestionStore


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def accounts(engine):
    return AccountStore(engine)


@pytest.fixture
def questions(engine):
    return QuestionStore(engine)


@pytest.fixture
def add_account(accounts):
    """Insert a "usuario" row directly, bypassing registration."""
    def _add(account_id, nombre, apellido, rol="USER", doctor_id=None):
        return accounts.create(Account(
            id=account_id,
            email=f"{account_id}@example.com",
            nombre=nombre,
            apellido=apellido,
            rol=rol,
            doctor_id=doctor_id,
        ))
    return _add


@pytest.fixture
def clinic(add_account):
    """
    Three doctors, four patients and one admin:

        d1 Gregory House  -> p1 Ana Garcia, p2 Daniel Soto, p3 Mario Ruiz
        d2 Ana Lopez      -> p4 Lucia Fernandez
        d3 Juan Perez     -> (nobody)
        p5 Pedro Gomez has no doctor yet.
    """
    people = {
        "a1": add_account("a1", "Sofia", "Root", rol="ADMIN"),
        "d1": add_account("d1", "Gregory", "House", rol="DOCTOR"),
        "d2": add_account("d2", "Ana", "Lopez", rol="DOCTOR"),
        "d3": add_account("d3", "Juan", "Perez", rol="DOCTOR"),
        "p1": add_account("p1", "Ana", "Garcia", doctor_id="d1"),
        "p2": add_account("p2", "Daniel", "Soto", doctor_id="d1"),
        "p3": add_account("p3", "Mario", "Ruiz", doctor_id="d1"),
        "p4": add_account("p4", "Lucia", "Fernandez", doctor_id="d2"),
        "p5": add_account("p5", "Pedro", "Gomez"),
    }
    return people
