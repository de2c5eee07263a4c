import sqlite3
from contextlib import contextmanager

from config import DB_PATH


def init_db():
    with sqlite3.connect(DB_PATH) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id                 INTEGER PRIMARY KEY AUTOINCREMENT,
                username           TEXT    NOT NULL UNIQUE,
                password_hash      TEXT    NOT NULL,
                first_name         TEXT,
                last_name          TEXT,
                email              TEXT,
                faith_mode_enabled INTEGER NOT NULL DEFAULT 0,
                anonymous_mode     INTEGER NOT NULL DEFAULT 0,
                created_at         TEXT    NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS symptom_logs (
                id                  INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id             INTEGER NOT NULL REFERENCES users(id),
                date                TEXT    NOT NULL,
                pain_level          INTEGER CHECK (pain_level BETWEEN 0 AND 10),
                fatigue_level       INTEGER CHECK (fatigue_level BETWEEN 0 AND 10),
                energy_level        INTEGER CHECK (energy_level BETWEEN 1 AND 5),
                mood                TEXT,
                additional_symptoms TEXT,
                medications         TEXT,
                notes               TEXT,
                voice_note          TEXT
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS medical_timeline (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id     INTEGER NOT NULL REFERENCES users(id),
                title       TEXT    NOT NULL,
                description TEXT,
                type        TEXT    NOT NULL,
                date        TEXT    NOT NULL,
                doctor_name TEXT,
                location    TEXT,
                attachments TEXT,
                created_at  TEXT    NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS appointments (
                id            INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id       INTEGER NOT NULL REFERENCES users(id),
                title         TEXT    NOT NULL,
                doctor_name   TEXT,
                date          TEXT    NOT NULL,
                location      TEXT,
                prep_notes    TEXT,
                completed     INTEGER NOT NULL DEFAULT 0,
                reminder_sent INTEGER NOT NULL DEFAULT 0
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS health_tasks (
                id            INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id       INTEGER NOT NULL REFERENCES users(id),
                title         TEXT    NOT NULL,
                description   TEXT,
                due_date      TEXT,
                completed     INTEGER NOT NULL DEFAULT 0,
                snoozed_until TEXT,
                priority      TEXT    NOT NULL DEFAULT 'medium',
                category      TEXT
            )
        """)
        # amount is kept as text so the 2-decimal fixed-point value survives untouched
        conn.execute("""
            CREATE TABLE IF NOT EXISTS expenses (
                id              INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id         INTEGER NOT NULL REFERENCES users(id),
                description     TEXT    NOT NULL,
                amount          TEXT    NOT NULL,
                date            TEXT    NOT NULL,
                category        TEXT,
                receipt_url     TEXT,
                reimbursed      INTEGER NOT NULL DEFAULT 0,
                insurance_claim TEXT
            )
        """)
        # Indexes for common query patterns (all filtered by user_id)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_symptom_logs_user_date ON symptom_logs(user_id, date)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_medical_timeline_user_id ON medical_timeline(user_id)"
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_appointments_user_id ON appointments(user_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_health_tasks_user_id ON health_tasks(user_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_expenses_user_id ON expenses(user_id)")
        conn.commit()


@contextmanager
def get_db():
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()
