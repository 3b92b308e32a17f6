"""
Candidate resolution: which account ids a requester may read records for.
"""

from typing import List

from medhistory.models import Account, Policy, Role


def _resolve_user(accounts, requester: Account, policy: Policy) -> List[str]:
    return [requester.id]


def _resolve_doctor(accounts, requester: Account, policy: Policy) -> List[str]:
    patients = accounts.find(doctor_ids=[requester.id], name=policy.filters.user_name)
    return [a.id for a in patients]


def _resolve_admin(accounts, requester: Account, policy: Policy) -> List[str]:
    f = policy.filters

    # Not checked against "usuario": ownership is decided on "preguntas".
    if f.user_id:
        return [f.user_id]

    if f.doctor_id:
        return [a.id for a in accounts.find(doctor_ids=[f.doctor_id])]

    if f.doctor_name:
        doctors = accounts.find(role=Role.DOCTOR.value, name=f.doctor_name)
        if not doctors:
            return []
        return [a.id for a in accounts.find(doctor_ids=[d.id for d in doctors])]

    if f.user_name:
        return [a.id for a in accounts.find(name=f.user_name)]

    return accounts.all_ids()


_RESOLVERS = {
    Role.USER: _resolve_user,
    Role.DOCTOR: _resolve_doctor,
    Role.ADMIN: _resolve_admin,
}


def resolve_targets(accounts, requester: Account, policy: Policy) -> List[str]:
    """Return the target set for *requester* under *policy*."""
    return _RESOLVERS[policy.role](accounts, requester, policy)
