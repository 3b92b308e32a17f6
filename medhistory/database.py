"""
Database engine initialisation and table definitions.
"""

import sys
from typing import Iterable

from sqlalchemy import (
    Column, Date, DateTime, ForeignKey, Integer, MetaData, String, Table, Text,
    create_engine, insert, select, text,
)

from medhistory.config import get_env, SEED_ROLES

metadata = MetaData()

rol = Table(
    "rol", metadata,
    Column("rol", String(32), primary_key=True),
)

usuario = Table(
    "usuario", metadata,
    Column("id", String(64), primary_key=True),
    Column("email", String(255), nullable=False),
    Column("nombre", String(255), nullable=False),
    Column("apellido", String(255), nullable=False),
    Column("rol", String(32), nullable=False),
    Column("doctor_id", String(64), ForeignKey("usuario.id"), nullable=True, index=True),
    Column("fecha_nacimiento", Date, nullable=True),
    Column("direccion", Text, nullable=True),
)

preguntas = Table(
    "preguntas", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("id_usuario", String(64), ForeignKey("usuario.id"), nullable=False, index=True),
    Column("pregunta", Text, nullable=False),
    Column("value", Text, nullable=False),
)

# Owned by the local identity provider, not by the account layer.
credenciales = Table(
    "credenciales", metadata,
    Column("id", String(64), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("created_at", DateTime, nullable=False),
)


def init_engine(db_uri: str = None):
    """Create a SQLAlchemy engine and verify the connection."""
    db_uri = db_uri or get_env("DB_URI")
    engine = create_engine(db_uri, echo=False, future=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Connected to DB.")
    return engine


def create_schema(engine, roles: Iterable[str] = SEED_ROLES) -> None:
    """Create any missing tables and make sure *roles* are allow-listed."""
    metadata.create_all(engine)
    with engine.begin() as conn:
        existing = set(conn.execute(select(rol.c.rol)).scalars())
        missing = [r for r in roles if r not in existing]
        if missing:
            conn.execute(insert(rol), [{"rol": r} for r in missing])
    print(f"[init] Schema ready ({len(metadata.tables)} tables).")
