"""
History reads and writes: grouping entries per patient and accepting new
question/answer submissions.
"""

import random
from typing import Any, Dict, List, Optional, Sequence

from medhistory.balancer import ensure_assigned_doctor
from medhistory.config import UNKNOWN_NAME
from medhistory.errors import ValidationFailure
from medhistory.models import Account, PatientHistory, Role
from medhistory.rbac import require_role


def read_history(accounts, questions, target_ids: Sequence[str]) -> List[PatientHistory]:
    """
    Group the target accounts' entries per owner.

    Owners without entries are left out, even when they were valid targets.
    Owners appear in the order their first entry comes back from the store.
    """
    entries = questions.for_owners(dict.fromkeys(target_ids))
    if not entries:
        return []

    grouped: Dict[str, PatientHistory] = {}
    for entry in entries:
        if entry.owner_id not in grouped:
            grouped[entry.owner_id] = PatientHistory(owner_id=entry.owner_id, nombre="")
        grouped[entry.owner_id].preguntas.append(entry)

    names = accounts.display_names(grouped.keys())
    for owner_id, history in grouped.items():
        history.nombre = names.get(owner_id) or UNKNOWN_NAME
    return list(grouped.values())


def validate_submission(payload: Any) -> List[Dict[str, str]]:
    """Check a preguntas_medicas payload and normalise it to string pairs."""
    if not isinstance(payload, list) or not payload:
        raise ValidationFailure("No preguntas provided")

    pairs = []
    for i, item in enumerate(payload):
        if not isinstance(item, dict):
            raise ValidationFailure(f"preguntas_medicas[{i}] must be an object")
        pregunta = item.get("pregunta")
        if not isinstance(pregunta, str) or not pregunta.strip():
            raise ValidationFailure(f"preguntas_medicas[{i}].pregunta is required")
        if item.get("value") is None:
            raise ValidationFailure(f"preguntas_medicas[{i}].value is required")
        pairs.append({"pregunta": pregunta, "value": str(item["value"])})
    return pairs


def submit_history(accounts, questions, requester: Account, payload: Any,
                   rng: Optional[random.Random] = None) -> List[Dict[str, str]]:
    """Store a USER's answers, assigning them a doctor on first submission."""
    require_role(requester, Role.USER)
    pairs = validate_submission(payload)
    ensure_assigned_doctor(accounts, requester, rng)
    return questions.insert(requester.id, pairs)
