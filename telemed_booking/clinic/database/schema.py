"""
Telemedicine Database Schema
Accounts with role profiles, slots, consultations, payments, prescriptions
and pharmacy orders. Deleting a user cascades to everything that hangs off it.
"""

SCHEMA = """
-- =============================================================================
-- 1. USERS - Identity shared by doctors and patients
-- =============================================================================
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    role TEXT NOT NULL CHECK (role IN ('doctor', 'patient')),
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_users_role ON users(role);


-- =============================================================================
-- 2. DOCTORS - Profile for users with role 'doctor'
-- =============================================================================
CREATE TABLE IF NOT EXISTS doctors (
    user_id TEXT PRIMARY KEY,
    specialty TEXT NOT NULL,
    experience INTEGER NOT NULL,

    -- Spoken languages (JSON array: ["English", "Spanish"])
    languages TEXT,

    price REAL NOT NULL,
    rating REAL DEFAULT 4.5,

    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_doctors_specialty ON doctors(specialty);


-- =============================================================================
-- 3. PATIENTS - Profile for users with role 'patient'
-- =============================================================================
CREATE TABLE IF NOT EXISTS patients (
    user_id TEXT PRIMARY KEY,
    age INTEGER,
    gender TEXT CHECK (gender IS NULL OR gender IN ('male', 'female', 'other')),
    phone TEXT,

    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);


-- =============================================================================
-- 4. SLOTS - Bookable date/time entries published by doctors
-- =============================================================================
CREATE TABLE IF NOT EXISTS slots (
    id TEXT PRIMARY KEY,
    doctor_id TEXT NOT NULL,
    date TEXT NOT NULL,
    time TEXT NOT NULL,
    available INTEGER NOT NULL DEFAULT 1,
    is_critical INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,

    FOREIGN KEY (doctor_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_slots_doctor ON slots(doctor_id, available);


-- =============================================================================
-- 5. APPOINTMENTS - Consultations created from a reserved slot
-- =============================================================================
-- Status: scheduled, ongoing, completed, cancelled
CREATE TABLE IF NOT EXISTS appointments (
    id TEXT PRIMARY KEY,
    doctor_id TEXT NOT NULL,
    patient_id TEXT NOT NULL,
    slot_id TEXT NOT NULL UNIQUE,

    date TEXT NOT NULL,
    time TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'scheduled'
        CHECK (status IN ('scheduled', 'ongoing', 'completed', 'cancelled')),
    is_critical INTEGER NOT NULL DEFAULT 0,
    meeting_link TEXT NOT NULL,

    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,

    FOREIGN KEY (doctor_id) REFERENCES users(id) ON DELETE CASCADE,
    FOREIGN KEY (patient_id) REFERENCES users(id) ON DELETE CASCADE,
    FOREIGN KEY (slot_id) REFERENCES slots(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_appointments_doctor ON appointments(doctor_id);
CREATE INDEX IF NOT EXISTS idx_appointments_patient ON appointments(patient_id);


-- =============================================================================
-- 6. PAYMENTS - One per appointment, charged at the doctor's price
-- =============================================================================
CREATE TABLE IF NOT EXISTS payments (
    id TEXT PRIMARY KEY,
    appointment_id TEXT NOT NULL UNIQUE,
    amount REAL NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'paid', 'failed')),
    created_at TEXT NOT NULL,
    settled_at TEXT,

    FOREIGN KEY (appointment_id) REFERENCES appointments(id) ON DELETE CASCADE
);


-- =============================================================================
-- 7. PRESCRIPTIONS - At most one per appointment
-- =============================================================================
CREATE TABLE IF NOT EXISTS prescriptions (
    id TEXT PRIMARY KEY,
    consultation_id TEXT NOT NULL UNIQUE,
    doctor_id TEXT NOT NULL,
    patient_id TEXT NOT NULL,
    instructions TEXT NOT NULL DEFAULT '',
    date TEXT NOT NULL,
    created_at TEXT NOT NULL,

    FOREIGN KEY (consultation_id) REFERENCES appointments(id) ON DELETE CASCADE,
    FOREIGN KEY (doctor_id) REFERENCES users(id) ON DELETE CASCADE,
    FOREIGN KEY (patient_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_prescriptions_patient ON prescriptions(patient_id);


-- =============================================================================
-- 8. MEDICINES - Lines of a prescription, kept in entry order
-- =============================================================================
CREATE TABLE IF NOT EXISTS medicines (
    id TEXT PRIMARY KEY,
    prescription_id TEXT NOT NULL,
    position INTEGER NOT NULL,
    name TEXT NOT NULL,
    dosage TEXT NOT NULL,
    frequency TEXT NOT NULL,
    duration TEXT NOT NULL,
    quantity INTEGER NOT NULL CHECK (quantity > 0),

    FOREIGN KEY (prescription_id) REFERENCES prescriptions(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_medicines_prescription ON medicines(prescription_id);


-- =============================================================================
-- 9. PHARMACY_ORDERS - Fulfillment of a prescription
-- =============================================================================
-- Status: pending, confirmed, preparing, out_for_delivery, delivered
CREATE TABLE IF NOT EXISTS pharmacy_orders (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL,
    prescription_id TEXT NOT NULL,

    -- Medicines copied from the prescription at order time (JSON array)
    medicines TEXT NOT NULL,

    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'confirmed', 'preparing', 'out_for_delivery', 'delivered')),
    total_amount REAL NOT NULL,
    estimated_delivery TEXT NOT NULL,

    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,

    FOREIGN KEY (patient_id) REFERENCES users(id) ON DELETE CASCADE,
    FOREIGN KEY (prescription_id) REFERENCES prescriptions(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_orders_patient ON pharmacy_orders(patient_id);
CREATE INDEX IF NOT EXISTS idx_orders_prescription ON pharmacy_orders(prescription_id);
"""
