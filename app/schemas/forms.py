from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.utils.validators import PHONE_PATTERN, is_valid_email, normalize_email

Industry = Literal["Technology", "Finance", "Healthcare", "Retail", "Manufacturing", "Other"]
CompanySize = Literal["1-10", "11-50", "51-200", "201-500", "500+"]
ConsultationType = Literal[
    "Business Strategy",
    "Digital Transformation",
    "Performance Optimization",
    "Market Analysis",
    "Innovation Consulting",
]

INVALID_EMAIL = "Please enter a valid email address"


class ValidationIssue(BaseModel):
    field: str
    message: str


class FormSubmission(BaseModel):
    """Common behaviour of every public form payload.

    Strings are trimmed, unknown keys ignored, and ``honeypot`` is accepted
    as-is so the bot check can run after schema validation.
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        extra="ignore",
    )

    honeypot: Optional[str] = Field(default=None, max_length=1000)

    # (field, pydantic error type) -> user-facing message
    error_messages: ClassVar[Dict[Tuple[str, str], str]] = {}

    @field_validator("email", mode="before", check_fields=False)
    @classmethod
    def normalize_email_field(cls, v: Any) -> Any:
        return normalize_email(v)

    @field_validator("email", check_fields=False)
    @classmethod
    def validate_email_syntax(cls, v: str) -> str:
        if not is_valid_email(v):
            raise ValueError(INVALID_EMAIL)
        return v

    @property
    def honeypot_triggered(self) -> bool:
        return bool(self.honeypot)

    def template_fields(self) -> Dict[str, Any]:
        """Validated fields keyed as on the wire, without the honeypot."""
        return self.model_dump(by_alias=True, exclude={"honeypot"}, exclude_none=True)

    @classmethod
    def describe_errors(cls, exc: ValidationError) -> List[Dict[str, str]]:
        issues = []
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"]) or "body"
            message = cls.error_messages.get((field, error["type"]))
            if message is None and error["type"] == "value_error":
                message = str(error.get("ctx", {}).get("error") or error["msg"])
            issues.append(
                ValidationIssue(field=field, message=message or error["msg"]).model_dump()
            )
        return issues


class ContactRequest(FormSubmission):
    name: str = Field(..., min_length=2, max_length=100, pattern=r"^[a-zA-Z\s]*$")
    email: str = Field(..., max_length=254)
    message: str = Field(..., min_length=10, max_length=1000)
    timestamp: Optional[datetime] = None

    error_messages: ClassVar[Dict[Tuple[str, str], str]] = {
        ("name", "string_too_short"): "Name must be at least 2 characters",
        ("name", "string_pattern_mismatch"): "Name must contain only letters",
        ("message", "string_too_short"): "Message must be at least 10 characters",
        ("message", "string_too_long"): "Message must not exceed 1000 characters",
    }

    def template_fields(self) -> Dict[str, Any]:
        return self.model_dump(include={"name", "email", "message"})


class ConsultationRequest(FormSubmission):
    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., max_length=254)
    company: str = Field(..., min_length=2, max_length=200)
    industry: Industry
    company_size: CompanySize = Field(..., alias="companySize")
    consultation_type: ConsultationType = Field(..., alias="consultationType")
    message: str = Field(..., min_length=10, max_length=5000)
    preferred_date: str = Field(..., min_length=1, max_length=100, alias="preferredDate")

    error_messages: ClassVar[Dict[Tuple[str, str], str]] = {
        ("name", "string_too_short"): "Name must be at least 2 characters",
        ("company", "string_too_short"): "Company name must be at least 2 characters",
        ("message", "string_too_short"): "Please provide more details about your needs",
        ("preferredDate", "string_too_short"): "Please select a preferred date",
        ("preferredDate", "missing"): "Please select a preferred date",
    }


class ApplicationRequest(FormSubmission):
    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., max_length=254)
    phone: str = Field(..., max_length=16, pattern=PHONE_PATTERN.pattern)
    message: str = Field(..., min_length=10, max_length=5000)

    error_messages: ClassVar[Dict[Tuple[str, str], str]] = {
        ("name", "string_too_short"): "Name must be at least 2 characters",
        ("phone", "string_pattern_mismatch"): "Invalid phone number",
        ("phone", "string_too_long"): "Invalid phone number",
        ("message", "string_too_short"): "Please provide more details",
    }


class ContactResponse(BaseModel):
    message: str


class ConsultationResponse(BaseModel):
    success: bool = True
    message: str


class ApplicationResponse(BaseModel):
    message: str
