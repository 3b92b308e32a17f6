"""
Domain dataclasses used across the application.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class Role(str, Enum):
    """Closed set of roles the access-control layer understands."""
    USER = "USER"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


def normalize_role(value: Any) -> str:
    """Canonical spelling of a role string, as stored in "rol" and "usuario"."""
    return str(value).strip().upper()


@dataclass
class Account:
    """A row of the "usuario" table."""
    id: str
    email: str
    nombre: str
    apellido: str
    rol: str                        # validated against the "rol" allow-list
    doctor_id: Optional[str] = None # only meaningful for USER accounts
    fecha_nacimiento: Optional[date] = None
    direccion: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{self.nombre or ''} {self.apellido or ''}".strip()

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Account":
        return cls(
            id=str(row["id"]),
            email=row["email"],
            nombre=row["nombre"],
            apellido=row["apellido"],
            rol=str(row["rol"]).strip(),
            doctor_id=str(row["doctor_id"]) if row["doctor_id"] is not None else None,
            fecha_nacimiento=row["fecha_nacimiento"],
            direccion=row["direccion"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "nombre": self.nombre,
            "apellido": self.apellido,
            "rol": self.rol,
            "doctor_id": self.doctor_id,
            "fecha_nacimiento": (
                self.fecha_nacimiento.isoformat() if self.fecha_nacimiento else None
            ),
            "direccion": self.direccion,
        }


@dataclass(frozen=True)
class HistoryFilters:
    """Optional filters a caller may put on a history or user query."""
    user_id: Optional[str] = None
    doctor_id: Optional[str] = None
    user_name: Optional[str] = None
    doctor_name: Optional[str] = None

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "HistoryFilters":
        """Build filters from query parameters, accepting - and _ spellings."""
        def pick(*names: str) -> Optional[str]:
            for name in names:
                value = (args.get(name) or "").strip()
                if value:
                    return value
            return None

        return cls(
            user_id=pick("user_id", "user-id"),
            doctor_id=pick("doctor_id", "doctor-id"),
            user_name=pick("user-name", "user_name"),
            doctor_name=pick("doctor-name", "doctor_name"),
        )

    def only(self, *names: str) -> "HistoryFilters":
        """Return a copy keeping just the named filters."""
        dropped = {n: None for n in ("user_id", "doctor_id", "user_name", "doctor_name")
                   if n not in names}
        return replace(self, **dropped)


@dataclass
class Policy:
    """What a requester may see, derived from their role."""
    role: Role
    filters: HistoryFilters
    notes: str


@dataclass
class QuestionEntry:
    """A row of the "preguntas" table."""
    owner_id: str
    pregunta: str
    value: str

    def to_dict(self) -> Dict[str, str]:
        return {"pregunta": self.pregunta, "value": self.value}


@dataclass
class PatientHistory:
    """All entries of one owner, with the owner's display name."""
    owner_id: str
    nombre: str
    preguntas: List[QuestionEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nombre": self.nombre,
            "preguntas_medicas": [p.to_dict() for p in self.preguntas],
        }
