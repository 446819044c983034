"""Configuration for the appointment booking workflow.

All business rules centralized here - modify as needed without touching code.
Deployment settings can be overridden through environment variables (or a .env file).
"""
import os

from dotenv import load_dotenv

load_dotenv()

# API Configuration
BOOKING_API_BASE_URL = os.getenv("BOOKING_API_BASE_URL", "http://localhost:5000")
BOOKING_API_PORT = int(os.getenv("BOOKING_API_PORT", "5000"))

HTTP_TIMEOUT_SECONDS = int(os.getenv("HTTP_TIMEOUT_SECONDS", "15"))
HTTP_MAX_RETRIES = int(os.getenv("HTTP_MAX_RETRIES", "3"))

CIRCUIT_FAILURE_THRESHOLD = 5
CIRCUIT_RESET_TIMEOUT_SECONDS = 60

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# IANA zone name used to read picker values; empty means the host's local zone
BOOKING_TIMEZONE = os.getenv("BOOKING_TIMEZONE", "")

# Typeahead
SEARCH_DEBOUNCE_MS = 300
MIN_SEARCH_LENGTH = {
    "patient": 3,
    "doctor": 2,
}

# Bookable window, UTC hours [start_hour, end_hour)
BOOKING_HOURS_UTC = {
    "start_hour": 9,
    "end_hour": 17,
}

CANONICAL_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
PICKER_DATETIME_FORMAT = "%Y-%m-%dT%H:%M"

# User-facing texts
MESSAGES = {
    "patient_required": "Please select a patient from the list.",
    "doctor_required": "Please select a doctor from the list.",
    "datetime_required": "Please select an appointment date and time.",
    "service_required": "Please select a service.",
    "reason_required": "Please select a reason for visit.",
    "outside_hours": "Appointments can only be scheduled between 9 AM and 5 PM GMT.",
    "invalid_datetime": "Please enter a valid appointment date and time.",
    "slot_unavailable": "The selected time slot is no longer available.",
    "availability_error": "An error occurred while checking appointment availability: {message}",
    "created": "Appointment created successfully.",
    "already_submitting": "A booking submission is already in progress.",
}
