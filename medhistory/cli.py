"""
Administrative CLI for the medical history service.
Creates the schema, manages the role allow-list and reassigns doctors.
"""

import argparse
import sys

from medhistory.balancer import reassign_doctor
from medhistory.database import create_schema, init_engine
from medhistory.errors import MedHistoryError
from medhistory.models import normalize_role
from medhistory.store import AccountStore


def cmd_init_db(engine, args):
    create_schema(engine)
    print("Roles:", ", ".join(AccountStore(engine).roles()))


def cmd_roles(engine, args):
    for r in AccountStore(engine).roles():
        print(r)


def cmd_add_role(engine, args):
    role = normalize_role(args.name)
    if not role:
        raise MedHistoryError("Role name must not be empty")
    if AccountStore(engine).add_role(role):
        print(f"Added role {role}.")
    else:
        print(f"Role {role} already allowed.")


def cmd_assign_doctor(engine, args):
    account = reassign_doctor(AccountStore(engine), args.user_id, args.doctor_id)
    print(f"{account.display_name or account.id} -> doctor {account.doctor_id}")


def build_parser():
    parser = argparse.ArgumentParser(prog="medhistory", description=__doc__)
    parser.add_argument("--db-uri", help="SQLAlchemy URL (default: $DB_URI)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="create tables and seed roles").set_defaults(func=cmd_init_db)
    sub.add_parser("roles", help="list allowed roles").set_defaults(func=cmd_roles)

    p = sub.add_parser("add-role", help="allow a new role string")
    p.add_argument("name")
    p.set_defaults(func=cmd_add_role)

    p = sub.add_parser("assign-doctor", help="manually reassign a patient")
    p.add_argument("user_id")
    p.add_argument("doctor_id")
    p.set_defaults(func=cmd_assign_doctor)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    engine = init_engine(args.db_uri)
    try:
        args.func(engine, args)
    except MedHistoryError as e:
        print(f"[ERROR] {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
