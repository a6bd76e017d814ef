"""
Clinic Front Desk Database Schema
Patients (with embedded visit ledger) and appointments.
"""

SCHEMA = """
-- =============================================================================
-- 1. PATIENTS - Registration data plus the embedded financial ledger
-- =============================================================================
CREATE TABLE IF NOT EXISTS patients (
    id TEXT PRIMARY KEY,

    -- Human-readable sequential number, assigned on insert
    file_number TEXT NOT NULL UNIQUE,

    -- Demographics
    full_name TEXT NOT NULL,
    dob TEXT DEFAULT '',
    job TEXT DEFAULT '',
    address TEXT DEFAULT '',
    phone TEXT DEFAULT '',
    email TEXT DEFAULT '',

    -- Flag groups (JSON objects keyed by camelCase flag names)
    medical_history TEXT DEFAULT '{}',
    questions TEXT DEFAULT '{}',
    medications TEXT DEFAULT '{}',

    -- Ledger: agreed cost and the whole visit list (JSON array, newest first)
    total_cost REAL DEFAULT 0,
    visits TEXT DEFAULT '[]',

    -- Metadata
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_patients_phone ON patients(phone);
CREATE INDEX IF NOT EXISTS idx_patients_name ON patients(full_name);
CREATE INDEX IF NOT EXISTS idx_patients_created ON patients(created_at);


-- =============================================================================
-- 2. APPOINTMENTS - Booked 30-minute slots
-- =============================================================================
-- Timestamps are UTC ISO-8601 strings, so range filters compare as text.
-- Overlapping bookings are allowed.
CREATE TABLE IF NOT EXISTS appointments (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL,

    -- Scheduling
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,

    -- Status: scheduled, completed, cancelled
    status TEXT DEFAULT 'scheduled',

    procedure TEXT DEFAULT '',
    notes TEXT DEFAULT '',

    created_at TEXT DEFAULT CURRENT_TIMESTAMP,

    FOREIGN KEY (patient_id) REFERENCES patients(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_appointments_patient ON appointments(patient_id);
CREATE INDEX IF NOT EXISTS idx_appointments_start ON appointments(start_time);
CREATE INDEX IF NOT EXISTS idx_appointments_status ON appointments(status);
"""
