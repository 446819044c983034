"""Pydantic models for booking service payloads."""
from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from booking_workflow import config


class CandidateOption(BaseModel):
    """A patient or doctor returned by a directory search."""
    id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("id", "value"),
        description="Directory record identifier",
    )
    label: str = Field(..., description="Display text shown in the suggestion list")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {"id": "pat-001", "label": "John Smith"}
        }
    )


class ReferenceOption(BaseModel):
    """Entry of the service or visit-reason picklist."""
    value: str = Field(..., description="Opaque identifier sent back on create")
    label: str = Field(..., description="Display text")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {"value": "srv-001", "label": "General Consultation"}
        }
    )


def _check_canonical(value: str) -> str:
    try:
        datetime.strptime(value, config.CANONICAL_DATETIME_FORMAT)
    except ValueError:
        raise ValueError(
            f"datetime must use the format YYYY-MM-DD HH:MM:SS, got {value!r}"
        )
    return value


class AvailabilityRequest(BaseModel):
    """Query for GET /availability/check."""
    doctor_id: str = Field(..., min_length=1)
    datetime: str = Field(..., description="Canonical UTC timestamp")

    @field_validator("datetime")
    @classmethod
    def validate_datetime(cls, v: str) -> str:
        return _check_canonical(v)


class AppointmentRequest(BaseModel):
    """Body for POST /appointments."""
    patient_id: str = Field(..., min_length=1)
    doctor_id: str = Field(..., min_length=1)
    datetime: str = Field(..., description="Canonical UTC timestamp")
    service_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, description="Reason-for-visit value")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "patient_id": "pat-001",
                "doctor_id": "doc-002",
                "datetime": "2025-01-15 10:30:00",
                "service_id": "srv-001",
                "reason": "checkup"
            }
        }
    )

    @field_validator("datetime")
    @classmethod
    def validate_datetime(cls, v: str) -> str:
        return _check_canonical(v)
