"""
Seed script: populates demo data for the Jamie Rivera account.

- Safe to run on a server where the account already exists.
- Clears any existing logs/timeline/appointments/tasks/expenses for Jamie,
  then inserts fresh demo data (60 days of symptom logs and related records).
- Does NOT touch other user accounts.

Usage:
    python3 seed.py
"""

import random
from datetime import datetime, timedelta

from config import _to_storage, _utcnow
from db import get_db, init_db
from security import _hash_password
from store import ENTITIES, EntityStore

USERNAME = "jamie"
PASSWORD = "demo1234"
NOW = _utcnow().replace(second=0)

SYMPTOMS = ["cramps", "bloating", "headache", "back pain", "nausea", "insomnia"]
MEDS = [("Ibuprofen", "400mg"), ("Naproxen", "220mg"), ("Magnesium", "250mg")]
MOODS = ["terrible", "bad", "okay", "good", "great"]


def at(days_ago: int, hour: int = 8, minute: int = 0) -> datetime:
    return (NOW - timedelta(days=days_ago)).replace(hour=hour, minute=minute)


def ahead(days: int, hour: int = 10) -> datetime:
    return (NOW + timedelta(days=days)).replace(hour=hour, minute=0)


def main():
    init_db()
    store = EntityStore()
    rng = random.Random(42)  # fixed seed for reproducibility

    row = store.get_user_credentials(USERNAME)
    if row:
        uid = row["id"]
        print(f"Found existing account: {USERNAME} (id={uid})")
    else:
        user = store.create_user(
            USERNAME,
            _hash_password(PASSWORD),
            {"first_name": "Jamie", "last_name": "Rivera", "email": "jamie@example.com"},
        )
        uid = user["id"]
        print(f"Created account: {USERNAME} (id={uid})")

    with get_db() as conn:
        for spec in ENTITIES.values():
            conn.execute(f"DELETE FROM {spec.table} WHERE user_id = ?", (uid,))
        conn.commit()
    print(f"Cleared existing data for {USERNAME}.")

    # Symptom logs: a rough monthly cycle with a flare in the first few days
    for days_ago in range(59, -1, -1):
        if rng.random() < 0.2:
            continue
        cycle_day = (59 - days_ago) % 28
        flare = cycle_day < 5
        pain = min(10, max(0, (7 if flare else 2) + rng.randint(-2, 2)))
        fatigue = min(10, max(0, (6 if flare else 3) + rng.randint(-2, 3)))
        symptoms = rng.sample(SYMPTOMS, k=rng.randint(1, 3) if flare else rng.randint(0, 1))
        meds = []
        if flare or rng.random() < 0.1:
            name, dosage = rng.choice(MEDS)
            meds.append({"name": name, "dosage": dosage, "time": "08:00"})
        store.create("symptom_logs", uid, {
            "date": at(days_ago, hour=rng.randint(7, 21)),
            "pain_level": pain,
            "fatigue_level": fatigue,
            "energy_level": max(1, min(5, 5 - fatigue // 2)),
            "mood": MOODS[max(0, min(4, 4 - pain // 2))],
            "additional_symptoms": symptoms,
            "medications": meds,
            "notes": "Flare day" if flare else None,
        })
    print("Inserted symptom logs.")

    timeline = [
        ("Initial GP consultation", "visit", 400, "Dr. Patel"),
        ("Pelvic ultrasound", "scan", 380, "Dr. Osei"),
        ("Endometriosis diagnosis", "diagnosis", 300, "Dr. Osei"),
        ("Laparoscopy", "surgery", 200, "Dr. Osei"),
        ("Hormonal therapy started", "treatment", 150, "Dr. Patel"),
        ("Blood panel", "test", 20, "Dr. Patel"),
    ]
    for title, kind, days_ago, doctor in timeline:
        store.create("medical_timeline", uid, {
            "title": title,
            "type": kind,
            "date": _to_storage(at(days_ago, hour=10)),
            "doctor_name": doctor,
            "location": "City Women's Health Clinic",
        })

    store.create("appointments", uid, {
        "title": "Gynecology follow-up", "doctor_name": "Dr. Osei",
        "date": _to_storage(ahead(9)), "location": "City Women's Health Clinic",
        "prep_notes": "Bring symptom report",
    })
    store.create("appointments", uid, {
        "title": "Physiotherapy", "date": _to_storage(ahead(3, hour=15)),
    })
    store.create("appointments", uid, {
        "title": "GP review", "doctor_name": "Dr. Patel",
        "date": _to_storage(at(14, hour=9)), "completed": True,
    })

    for title, due, priority, category in [
        ("Refill ibuprofen", 2, "high", "medication"),
        ("Book pelvic floor class", 10, "medium", "self-care"),
        ("Export report for Dr. Osei", 8, "high", "appointment"),
    ]:
        store.create("health_tasks", uid, {
            "title": title, "due_date": _to_storage(ahead(due, hour=9)),
            "priority": priority, "category": category,
        })

    for description, amount, days_ago, category in [
        ("Ultrasound co-pay", "45.00", 380, "test"),
        ("Ibuprofen 100ct", "9.49", 30, "medication"),
        ("Physio session", "80.00", 12, "appointment"),
    ]:
        store.create("expenses", uid, {
            "description": description, "amount": amount,
            "date": _to_storage(at(days_ago)), "category": category,
        })
    print("Inserted timeline, appointments, tasks and expenses.")


if __name__ == "__main__":
    main()
