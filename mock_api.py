"""Mock booking API for the appointment workflow.

Flask server with realistic endpoints for:
- Patient and doctor directory search
- Service and reason-for-visit picklists
- Doctor availability check
- Appointment creation

Run with: python mock_api.py
"""
from datetime import datetime

from flask import Flask, jsonify, request
from flask_cors import CORS

from booking_workflow import config

app = Flask(__name__)
CORS(app)

PATIENTS = [
    {"value": "pat-001", "label": "John Smith"},
    {"value": "pat-002", "label": "Johanna Berg"},
    {"value": "pat-003", "label": "Maria Lopez"},
    {"value": "pat-004", "label": "Ahmed Khan"},
    {"value": "pat-005", "label": "Li Wei"},
]

DOCTORS = [
    {"value": "doc-001", "label": "Dr. Garcia"},
    {"value": "doc-002", "label": "Dr. Gallagher"},
    {"value": "doc-003", "label": "Dr. Okafor"},
]

SERVICES = [
    {"value": "srv-001", "label": "General Consultation"},
    {"value": "srv-002", "label": "Specialized Consultation"},
    {"value": "srv-003", "label": "Follow-up Appointment"},
]

REASONS = [
    {"value": "checkup", "label": "Routine Checkup"},
    {"value": "follow_up", "label": "Follow-up"},
    {"value": "new_symptoms", "label": "New Symptoms"},
    {"value": "prescription", "label": "Prescription Renewal"},
]

MAX_SEARCH_RESULTS = 10

# In-memory storage
appointments = []
appointment_counter = 1000


def search_directory(records, term):
    """Case-insensitive substring match on the display label."""
    needle = term.strip().lower()
    if not needle:
        return []
    return [r for r in records if needle in r["label"].lower()][:MAX_SEARCH_RESULTS]


def parse_canonical(value):
    """Parse a canonical UTC timestamp, or return None."""
    try:
        return datetime.strptime(value, config.CANONICAL_DATETIME_FORMAT)
    except (TypeError, ValueError):
        return None


def within_booking_hours(moment):
    hours = config.BOOKING_HOURS_UTC
    return hours["start_hour"] <= moment.hour < hours["end_hour"]


def is_slot_taken(doctor_id, utc_datetime):
    return any(
        apt["doctor_id"] == doctor_id
        and apt["datetime"] == utc_datetime
        and apt.get("status") != "cancelled"
        for apt in appointments
    )


def find_option(options, value):
    return next((o for o in options if o["value"] == value), None)


@app.route('/patients/search', methods=['GET'])
def search_patients():
    """GET /patients/search?term=Joh"""
    term = request.args.get('term', '')
    return jsonify({"success": True, "results": search_directory(PATIENTS, term)})


@app.route('/doctors/search', methods=['GET'])
def search_doctors():
    """GET /doctors/search?term=Ga"""
    term = request.args.get('term', '')
    return jsonify({"success": True, "results": search_directory(DOCTORS, term)})


@app.route('/services', methods=['GET'])
def get_services():
    """GET /services - List bookable services."""
    return jsonify({"success": True, "services": SERVICES, "total": len(SERVICES)})


@app.route('/reasons', methods=['GET'])
def get_reasons():
    """GET /reasons - List reasons for visit."""
    return jsonify({"success": True, "reasons": REASONS, "total": len(REASONS)})


@app.route('/availability/check', methods=['GET'])
def check_availability():
    """GET /availability/check?doctor_id=doc-001&datetime=2025-01-15 10:00:00"""
    doctor_id = request.args.get('doctor_id')
    utc_datetime = request.args.get('datetime')

    if not doctor_id or not utc_datetime:
        return jsonify({
            "success": False,
            "error": "doctor_id and datetime parameters are required"
        }), 400

    if not find_option(DOCTORS, doctor_id):
        return jsonify({
            "success": False,
            "error": f"Doctor '{doctor_id}' not found"
        }), 404

    moment = parse_canonical(utc_datetime)
    if moment is None:
        return jsonify({
            "success": False,
            "error": "Invalid datetime format. Use YYYY-MM-DD HH:MM:SS"
        }), 400

    available = within_booking_hours(moment) and not is_slot_taken(doctor_id, utc_datetime)
    return jsonify({"success": True, "available": available})


@app.route('/appointments', methods=['POST'])
def create_appointment():
    """POST /appointments - Create a new appointment.

    Expected JSON body:
    {
        "patient_id": "pat-001",
        "doctor_id": "doc-001",
        "datetime": "2025-01-15 10:00:00",
        "service_id": "srv-001",
        "reason": "checkup"
    }
    """
    global appointment_counter

    data = request.get_json(silent=True)
    if not data:
        return jsonify({
            "success": False,
            "error": "Request body is required"
        }), 400

    required_fields = ['patient_id', 'doctor_id', 'datetime', 'service_id', 'reason']
    for field in required_fields:
        if not data.get(field):
            return jsonify({
                "success": False,
                "error": f"Missing required field: {field}"
            }), 400

    patient = find_option(PATIENTS, data['patient_id'])
    doctor = find_option(DOCTORS, data['doctor_id'])
    service = find_option(SERVICES, data['service_id'])
    reason = find_option(REASONS, data['reason'])
    for name, record, value in (
        ("Patient", patient, data['patient_id']),
        ("Doctor", doctor, data['doctor_id']),
        ("Service", service, data['service_id']),
        ("Reason", reason, data['reason']),
    ):
        if record is None:
            return jsonify({
                "success": False,
                "error": f"{name} '{value}' not found"
            }), 404

    moment = parse_canonical(data['datetime'])
    if moment is None:
        return jsonify({
            "success": False,
            "error": "Invalid datetime format. Use YYYY-MM-DD HH:MM:SS"
        }), 400

    if not within_booking_hours(moment):
        return jsonify({
            "success": False,
            "error": config.MESSAGES["outside_hours"]
        }), 400

    if is_slot_taken(data['doctor_id'], data['datetime']):
        return jsonify({
            "success": False,
            "error": "This time slot is no longer available"
        }), 409  # Conflict

    appointment_counter += 1
    appointment = {
        "id": f"APPT-{appointment_counter}",
        "patient_id": patient["value"],
        "patient_name": patient["label"],
        "doctor_id": doctor["value"],
        "doctor_name": doctor["label"],
        "datetime": data['datetime'],
        "service_id": service["value"],
        "service_name": service["label"],
        "reason": reason["value"],
        "status": "confirmed",
        "created_at": datetime.now().isoformat()
    }
    appointments.append(appointment)

    return jsonify({
        "success": True,
        "appointment": appointment,
        "message": f"Appointment confirmed! Reference: {appointment['id']}"
    }), 201


@app.route('/health', methods=['GET'])
def health():
    return jsonify({"status": "ok"})


if __name__ == '__main__':
    print(f"Mock booking API running on http://localhost:{config.BOOKING_API_PORT}")
    app.run(port=config.BOOKING_API_PORT, debug=True)
