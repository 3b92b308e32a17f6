"""
Doctor assignment: every USER gets a least-loaded doctor before their
first history submission.
"""

import random
from typing import Optional

from medhistory.errors import AccountNotFound, NoDoctorsAvailable, ValidationFailure
from medhistory.models import Account, Role


def pick_least_loaded(counts, rng: Optional[random.Random] = None) -> str:
    """Choose uniformly among the doctors with the fewest patients."""
    if not counts:
        raise NoDoctorsAvailable("No doctors available for assignment")
    fewest = min(counts.values())
    candidates = sorted(d for d, n in counts.items() if n == fewest)
    return (rng or random).choice(candidates)


def ensure_assigned_doctor(accounts, account: Account,
                           rng: Optional[random.Random] = None) -> str:
    """
    Return the account's doctor, assigning the least-loaded one if unset.

    Counting and assigning are separate store calls, so two different users
    submitting at the same time may both land on the same doctor. The write
    itself only succeeds while doctor_id is still NULL, so one account is
    never assigned twice.
    """
    if account.doctor_id:
        return account.doctor_id

    doctors = accounts.find(role=Role.DOCTOR.value)
    counts = accounts.patient_counts(d.id for d in doctors)
    doctor_id = pick_least_loaded(counts, rng)

    if accounts.assign_doctor_if_unset(account.id, doctor_id):
        print(f"[balancer] Assigned doctor {doctor_id} to {account.id} "
              f"({counts[doctor_id]} patients before)")
        account.doctor_id = doctor_id
        return doctor_id

    current = accounts.get(account.id)
    if current is None:
        raise AccountNotFound("User not found")
    account.doctor_id = current.doctor_id
    return current.doctor_id


def reassign_doctor(accounts, account_id: str, doctor_id: str) -> Account:
    """Admin-level manual reassignment; the target must be a DOCTOR account."""
    account = accounts.get(account_id)
    if account is None:
        raise AccountNotFound(f"User {account_id} not found")
    if account.rol != Role.USER.value:
        raise ValidationFailure(f"{account_id} is not a patient account")
    doctor = accounts.get(doctor_id)
    if doctor is None or doctor.rol != Role.DOCTOR.value:
        raise ValidationFailure(f"{doctor_id} is not a doctor account")
    accounts.set_doctor(account_id, doctor_id)
    account.doctor_id = doctor_id
    return account
