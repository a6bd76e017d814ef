"""Seed the database with mock patients, visit ledgers and this month's appointments."""

from datetime import date, timedelta

from clinic_desk.ledger import PatientLedger, VisitDraft
from clinic_desk.scheduler import AppointmentScheduler
from clinic_desk.store import AppointmentRepository, PatientRepository, init_database
from clinic_desk.store.patient_repository import MedicalHistory, MedicalQuestions, Medications, Patient


MOCK_PATIENTS = [
    Patient(
        full_name="أحمد محمود علي",
        dob="1985-03-15",
        job="مهندس",
        address="المعادي، القاهرة",
        phone="01001234567",
        email="ahmed.m@email.com",
        medical_history=MedicalHistory(high_blood_pressure=True),
        medications=Medications(blood_pressure=True),
    ),
    Patient(
        full_name="سارة إبراهيم حسن",
        dob="1992-07-22",
        job="معلمة",
        address="مدينة نصر، القاهرة",
        phone="01112345678",
        questions=MedicalQuestions(antibiotic_allergy=True),
    ),
    Patient(
        full_name="Mona Fathy",
        dob="1978-11-08",
        job="Accountant",
        address="Dokki, Giza",
        phone="01223456789",
        email="mona.fathy@email.com",
        medical_history=MedicalHistory(diabetes=True),
        medications=Medications(diabetes=True, other="Vitamin D"),
    ),
    Patient(
        full_name="Karim Adel",
        dob="2001-01-30",
        job="Student",
        phone="01534567890",
    ),
]

# (patient index, agreed cost, [(days ago, procedure, paid)])
MOCK_LEDGERS = [
    (0, 3000, [(40, "كشف", 200), (30, "حشو عصب", 1000), (10, "تركيب طربوش", 800)]),
    (1, 1500, [(5, "تنظيف جير", 500)]),
    (2, 800, [(20, "خلع", 500), (15, "متابعة", 400)]),
]

# (patient index, day offset from today, time, procedure)
MOCK_APPOINTMENTS = [
    (0, 0, "10:00", "متابعة"),
    (1, 0, "11:30", "كشف"),
    (2, 0, "11:30", "حشو"),
    (3, 1, "17:00", "كشف"),
    (0, 3, "12:00", "تركيب"),
    (1, 7, "13:30", "تبييض"),
]


def seed_database():
    """Seed the database with mock data."""
    init_database()

    patient_repo = PatientRepository()
    ledger = PatientLedger(patient_repo)
    scheduler = AppointmentScheduler(AppointmentRepository())

    existing = {p.phone for p in patient_repo.list_patients()}

    # Seed patients
    print("Creating mock patients...")
    patients = []
    for patient in MOCK_PATIENTS:
        if patient.phone in existing:
            print(f"  Skipping {patient.full_name} (already exists)")
            patients.append(None)
            continue
        created = patient_repo.insert_patient(patient)
        patients.append(created)
        print(f"  Created {created.full_name} (#{created.file_number})")

    # Seed ledgers
    print("Creating mock ledgers...")
    visit_count = 0
    today = date.today()
    for index, cost, visits in MOCK_LEDGERS:
        patient = patients[index]
        if patient is None:
            continue
        patient = ledger.set_agreed_cost(patient, cost)
        # Oldest first so the newest ends up at the top
        for days_ago, procedure, paid in visits:
            draft = VisitDraft(
                procedure=procedure,
                visit_date=today - timedelta(days=days_ago),
                paid_amount=paid,
            )
            patient = ledger.add_visit(patient, draft)
            visit_count += 1
        print(f"  Ledger for {patient.full_name}: {len(visits)} visits")

    # Seed appointments
    print("Creating appointments...")
    appointment_count = 0
    for index, offset, time_of_day, procedure in MOCK_APPOINTMENTS:
        patient = patients[index]
        if patient is None:
            continue
        scheduler.book(patient.id, today + timedelta(days=offset), time_of_day, procedure)
        appointment_count += 1

    print("\nDatabase seeded successfully!")
    print(f"  - {sum(1 for p in patients if p)} patients")
    print(f"  - {visit_count} visits")
    print(f"  - {appointment_count} appointments")


if __name__ == "__main__":
    seed_database()
