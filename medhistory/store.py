"""
Row-oriented access to the "usuario", "rol" and "preguntas" tables.

Every SQLAlchemy error is re-raised as StoreFailure so callers deal with a
single failure type and the request aborts without partial results.
"""

from contextlib import contextmanager
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy import String, func, insert, or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from medhistory.database import preguntas, rol, usuario
from medhistory.errors import StoreFailure
from medhistory.models import Account, QuestionEntry, normalize_role


@contextmanager
def _store_errors(action: str):
    try:
        yield
    except SQLAlchemyError as e:
        raise StoreFailure(f"Could not {action}: {e.__class__.__name__}") from e


def _name_matches(name: str):
    """Case-insensitive substring match on first OR last name."""
    needle = name.lower()
    return or_(
        func.lower(usuario.c.nombre, type_=String).contains(needle, autoescape=True),
        func.lower(usuario.c.apellido, type_=String).contains(needle, autoescape=True),
    )


class AccountStore:
    """Accounts plus the role allow-list."""

    def __init__(self, engine):
        self.engine = engine

    def get(self, account_id: str) -> Optional[Account]:
        with _store_errors("load account"), self.engine.connect() as conn:
            row = conn.execute(
                select(usuario).where(usuario.c.id == account_id)
            ).mappings().first()
        return Account.from_row(row) if row else None

    def find(
        self,
        *,
        ids: Optional[Sequence[str]] = None,
        role: Optional[str] = None,
        doctor_ids: Optional[Sequence[str]] = None,
        name: Optional[str] = None,
    ) -> List[Account]:
        """Return accounts matching every supplied filter, in id order."""
        query = select(usuario)
        if ids is not None:
            query = query.where(usuario.c.id.in_(list(ids)))
        if role is not None:
            query = query.where(usuario.c.rol == role)
        if doctor_ids is not None:
            query = query.where(usuario.c.doctor_id.in_(list(doctor_ids)))
        if name:
            query = query.where(_name_matches(name))
        query = query.order_by(usuario.c.id)

        with _store_errors("query accounts"), self.engine.connect() as conn:
            rows = conn.execute(query).mappings().all()
        return [Account.from_row(r) for r in rows]

    def all_ids(self) -> List[str]:
        with _store_errors("list accounts"), self.engine.connect() as conn:
            return list(conn.execute(select(usuario.c.id).order_by(usuario.c.id)).scalars())

    def patient_counts(self, doctor_ids: Iterable[str]) -> Dict[str, int]:
        """Number of accounts assigned to each doctor (0 when none)."""
        doctor_ids = list(doctor_ids)
        counts = {d: 0 for d in doctor_ids}
        if not doctor_ids:
            return counts
        query = (
            select(usuario.c.doctor_id, func.count())
            .where(usuario.c.doctor_id.in_(doctor_ids))
            .group_by(usuario.c.doctor_id)
        )
        with _store_errors("count patients"), self.engine.connect() as conn:
            for doctor_id, n in conn.execute(query):
                counts[doctor_id] = int(n)
        return counts

    def assign_doctor_if_unset(self, account_id: str, doctor_id: str) -> bool:
        """Set doctor_id only while it is still NULL. True if this call set it."""
        stmt = (
            update(usuario)
            .where(usuario.c.id == account_id, usuario.c.doctor_id.is_(None))
            .values(doctor_id=doctor_id)
        )
        with _store_errors("assign doctor"), self.engine.begin() as conn:
            return conn.execute(stmt).rowcount == 1

    def set_doctor(self, account_id: str, doctor_id: str) -> None:
        stmt = update(usuario).where(usuario.c.id == account_id).values(doctor_id=doctor_id)
        with _store_errors("reassign doctor"), self.engine.begin() as conn:
            conn.execute(stmt)

    def display_names(self, account_ids: Iterable[str]) -> Dict[str, str]:
        account_ids = list(account_ids)
        if not account_ids:
            return {}
        query = select(usuario.c.id, usuario.c.nombre, usuario.c.apellido).where(
            usuario.c.id.in_(account_ids)
        )
        with _store_errors("load names"), self.engine.connect() as conn:
            rows = conn.execute(query).all()
        return {r.id: f"{r.nombre or ''} {r.apellido or ''}".strip() for r in rows}

    @contextmanager
    def transaction(self):
        """One transaction shared by several writes; all or nothing."""
        with _store_errors("save changes"), self.engine.begin() as conn:
            yield conn

    def create(self, account: Account, conn=None) -> Account:
        row = account.to_dict()
        row["fecha_nacimiento"] = account.fecha_nacimiento
        stmt = insert(usuario).values(**row)
        with _store_errors("create account"):
            if conn is not None:
                conn.execute(stmt)
            else:
                with self.engine.begin() as own:
                    own.execute(stmt)
        return account

    # ── Role allow-list ──────────────────────────────────────────────

    def roles(self) -> List[str]:
        with _store_errors("list roles"), self.engine.connect() as conn:
            return list(conn.execute(select(rol.c.rol).order_by(rol.c.rol)).scalars())

    def role_allowed(self, role: str) -> bool:
        with _store_errors("check role"), self.engine.connect() as conn:
            hit = conn.execute(select(rol.c.rol).where(rol.c.rol == role)).first()
        return hit is not None

    def add_role(self, role: str) -> bool:
        """Allow-list *role*. Returns False when it was already present."""
        role = normalize_role(role)
        if self.role_allowed(role):
            return False
        with _store_errors("add role"), self.engine.begin() as conn:
            conn.execute(insert(rol).values(rol=role))
        return True


class QuestionStore:
    """Append-only question/answer entries."""

    def __init__(self, engine):
        self.engine = engine

    def for_owners(self, owner_ids: Iterable[str]) -> List[QuestionEntry]:
        """Entries owned by any of *owner_ids*, in insertion order."""
        owner_ids = list(owner_ids)
        if not owner_ids:
            return []
        query = (
            select(preguntas.c.id_usuario, preguntas.c.pregunta, preguntas.c.value)
            .where(preguntas.c.id_usuario.in_(owner_ids))
            .order_by(preguntas.c.id)
        )
        with _store_errors("load history"), self.engine.connect() as conn:
            rows = conn.execute(query).all()
        return [QuestionEntry(owner_id=r.id_usuario, pregunta=r.pregunta, value=r.value)
                for r in rows]

    def insert(self, owner_id: str, pairs: Sequence[Mapping[str, str]]) -> List[Dict[str, str]]:
        rows = [
            {"id_usuario": owner_id, "pregunta": p["pregunta"], "value": p["value"]}
            for p in pairs
        ]
        with _store_errors("insert history"), self.engine.begin() as conn:
            conn.execute(insert(preguntas), rows)
        return rows
