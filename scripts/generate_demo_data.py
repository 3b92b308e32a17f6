"""
Fill a development database with demo doctors, patients and history.

Accounts are created through the regular registration flow and patients
submit answers through the regular submission flow, so every patient ends
up with a least-loaded doctor.

Usage: DB_URI=sqlite:///demo.db python scripts/generate_demo_data.py
"""

import random

from faker import Faker

from medhistory.accounts import register
from medhistory.database import create_schema, init_engine
from medhistory.history import submit_history
from medhistory.identity import IdentityProvider
from medhistory.store import AccountStore, QuestionStore

# --------------------------------------------------------------------
# CONFIG
# --------------------------------------------------------------------
NUM_DOCTORS = 4
NUM_PATIENTS = 20
DEMO_PASSWORD = "demo1234"

# (min, max) answers per patient; 0 leaves the patient without history
ANSWERS_PER_PATIENT = (0, 5)

QUESTIONS = [
    ("Ha experimentado fiebre en los ultimos 7 dias?", ["Si", "No"]),
    ("Tiene alergias a medicamentos?", ["Si", "No", "No sabe"]),
    ("Fuma actualmente?", ["Si", "No", "Ocasionalmente"]),
    ("Toma algun medicamento de forma habitual?", ["Si", "No"]),
    ("Ha sido operado alguna vez?", ["Si", "No"]),
    ("Tiene antecedentes familiares de diabetes?", ["Si", "No", "No sabe"]),
    ("Realiza actividad fisica semanalmente?", ["Si", "No"]),
]

# --------------------------------------------------------------------
# SETUP
# --------------------------------------------------------------------
fake = Faker("es_ES")
random.seed(42)
Faker.seed(42)


# --------------------------------------------------------------------
# SEED FUNCTIONS
# --------------------------------------------------------------------
def seed_account(identity, accounts, rol):
    body = {
        "email": fake.unique.email(),
        "password": DEMO_PASSWORD,
        "nombre": fake.first_name(),
        "apellido": fake.last_name(),
        "fecha_nacimiento": fake.date_of_birth(minimum_age=18, maximum_age=90).isoformat(),
        "direccion": fake.street_address(),
        "rol": rol,
    }
    return register(identity, accounts, body)["usuario"]


def seed_answers(accounts, questions, patient, rng):
    lo, hi = ANSWERS_PER_PATIENT
    count = random.randint(lo, hi)
    if count == 0:
        return 0
    picked = random.sample(QUESTIONS, k=min(count, len(QUESTIONS)))
    payload = [{"pregunta": q, "value": random.choice(answers)} for q, answers in picked]
    submit_history(accounts, questions, patient, payload, rng)
    return len(payload)


# --------------------------------------------------------------------
# MAIN
# --------------------------------------------------------------------
def main():
    engine = init_engine()
    create_schema(engine)

    identity = IdentityProvider(engine)
    accounts = AccountStore(engine)
    questions = QuestionStore(engine)
    rng = random.Random(42)

    print("Seeding admin...")
    admin = seed_account(identity, accounts, "ADMIN")

    print("Seeding doctors...")
    for _ in range(NUM_DOCTORS):
        seed_account(identity, accounts, "DOCTOR")

    print("Seeding patients and history...")
    total = 0
    for _ in range(NUM_PATIENTS):
        row = seed_account(identity, accounts, "USER")
        total += seed_answers(accounts, questions, accounts.get(row["id"]), rng)

    print(f"Done! {total} answers. Admin login: {admin['email']} / {DEMO_PASSWORD}")


if __name__ == "__main__":
    main()
