"""Declarative input schemas for sections, specifications and users.

Pydantic does the shape checking; :func:`validate_form_fields` and
:func:`validate_user` translate its error locations into positional
:class:`FieldError` entries that a form can display next to each input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator

MAX_SECTIONS = 10
MAX_SPECIFICATIONS = 20
SECTION_NAME_LENGTH = (2, 50)
SPECIFICATION_NAME_LENGTH = (2, 100)
MAX_PRICE = 999_999
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

_MESSAGES: dict[tuple[str, str], str] = {
    ("formFields", "missing"): "At least one section is required",
    ("formFields", "too_short"): "At least one section is required",
    ("formFields", "too_long"): f"Maximum {MAX_SECTIONS} sections allowed",
    ("formFields", "list_type"): "Sections must be a list",
    ("specifications", "missing"): "At least one specification is required per section",
    ("specifications", "too_short"): "At least one specification is required per section",
    ("specifications", "too_long"): f"Maximum {MAX_SPECIFICATIONS} specifications per section",
    ("specifications", "list_type"): "Specifications must be a list",
    ("section.name", "missing"): "Section name is required",
    ("section.name", "string_type"): "Section name is required",
    ("section.name", "string_too_short"): f"Section name must be at least {SECTION_NAME_LENGTH[0]} characters",
    ("section.name", "string_too_long"): f"Section name must be less than {SECTION_NAME_LENGTH[1]} characters",
    ("specification.name", "missing"): "Specification name is required",
    ("specification.name", "string_type"): "Specification name is required",
    ("specification.name", "string_too_short"): (
        f"Specification name must be at least {SPECIFICATION_NAME_LENGTH[0]} characters"
    ),
    ("specification.name", "string_too_long"): (
        f"Specification name must be less than {SPECIFICATION_NAME_LENGTH[1]} characters"
    ),
    ("price", "float_type"): "Price must be a number",
    ("price", "finite_number"): "Price must be a number",
    ("price", "greater_than_equal"): "Price cannot be negative",
    ("price", "less_than_equal"): f"Price cannot exceed ${MAX_PRICE:,}",
    ("email", "missing"): "Email is required",
    ("email", "string_type"): "Email is required",
    ("email", "string_too_short"): "Email is required",
    ("email", "string_pattern_mismatch"): "Email address is invalid",
    ("email", "string_too_long"): "Email address is too long",
    ("firstName", "string_too_long"): "First name must be less than 100 characters",
    ("lastName", "string_too_long"): "Last name must be less than 100 characters",
}

_BLANK_IS_REQUIRED = {"section.name", "specification.name", "email"}


@dataclass(slots=True, frozen=True)
class FieldError:
    """One rejected field, addressed by its position in the submitted form."""

    section_index: int | None
    specification_index: int | None
    field: str
    message: str

    @property
    def key(self) -> str:
        parts = [str(index) for index in (self.section_index, self.specification_index) if index is not None]
        return ".".join([*parts, self.field])

    def to_dict(self) -> dict[str, Any]:
        return {
            "sectionIndex": self.section_index,
            "specificationIndex": self.specification_index,
            "field": self.field,
            "message": self.message,
        }


class FormValidationError(ValueError):
    """Raised when submitted form data does not satisfy the input schemas."""

    def __init__(self, errors: Sequence[FieldError]) -> None:
        self.errors = list(errors)
        summary = self.errors[0].message if self.errors else "invalid input"
        super().__init__(summary)

    def to_dict(self) -> list[dict[str, Any]]:
        return [error.to_dict() for error in self.errors]


class SpecificationInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: StrictStr = Field(min_length=SPECIFICATION_NAME_LENGTH[0], max_length=SPECIFICATION_NAME_LENGTH[1])
    price: float = Field(default=0, ge=0, le=MAX_PRICE, strict=True, allow_inf_nan=False)


class SectionInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: StrictStr = Field(min_length=SECTION_NAME_LENGTH[0], max_length=SECTION_NAME_LENGTH[1])


class SectionWithSpecifications(BaseModel):
    section: SectionInput
    specifications: list[SpecificationInput] = Field(min_length=1, max_length=MAX_SPECIFICATIONS)


class FormBuilderInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    form_fields: list[SectionWithSpecifications] = Field(
        min_length=1, max_length=MAX_SECTIONS, alias="formFields"
    )


class UserCreate(BaseModel):
    """The single validated contract for registering a user."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    email: StrictStr = Field(min_length=3, max_length=254, pattern=EMAIL_PATTERN)
    first_name: StrictStr = Field(default="", max_length=100, alias="firstName")
    last_name: StrictStr = Field(default="", max_length=100, alias="lastName")

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.lower()


def _message(kind: str, error: dict[str, Any]) -> str:
    if kind in _BLANK_IS_REQUIRED and error["type"] == "string_too_short":
        raw = error.get("input")
        if not isinstance(raw, str) or not raw.strip():
            return _MESSAGES.get((kind, "missing"), error["msg"])
    return _MESSAGES.get((kind, error["type"]), error["msg"])


def _form_field_error(error: dict[str, Any]) -> FieldError:
    loc = list(error["loc"])
    if len(loc) <= 1:
        return FieldError(None, None, "formFields", _message("formFields", error))

    section_index = int(loc[1])
    if len(loc) == 2:
        return FieldError(section_index, None, "section", error["msg"])

    group = str(loc[2])
    if group == "section":
        if len(loc) == 3:
            return FieldError(section_index, None, "name", _message("section.name", {**error, "type": "missing"}))
        return FieldError(section_index, None, str(loc[3]), _message(f"section.{loc[3]}", error))

    if group == "specifications":
        if len(loc) == 3:
            return FieldError(section_index, None, "specifications", _message("specifications", error))
        specification_index = int(loc[3])
        if len(loc) == 4:
            return FieldError(section_index, specification_index, "specification", error["msg"])
        field = str(loc[4])
        kind = "price" if field == "price" else f"specification.{field}"
        return FieldError(section_index, specification_index, field, _message(kind, error))

    return FieldError(section_index, None, group, error["msg"])


def validate_form_fields(payload: Any) -> list[SectionWithSpecifications]:
    """Validate a submitted aggregate.

    ``payload`` is either the bare list of ``{section, specifications}`` entries
    or an object wrapping that list under ``formFields``.
    """
    if not isinstance(payload, dict):
        payload = {"formFields": payload}
    try:
        return FormBuilderInput.model_validate(payload).form_fields
    except ValidationError as error:
        raise FormValidationError([_form_field_error(item) for item in error.errors()]) from error


def validate_user(payload: Any) -> UserCreate:
    if not isinstance(payload, dict):
        raise FormValidationError([FieldError(None, None, "email", _MESSAGES[("email", "missing")])])
    try:
        return UserCreate.model_validate(payload)
    except ValidationError as error:
        errors = []
        for item in error.errors():
            field = str(item["loc"][0]) if item["loc"] else "user"
            errors.append(FieldError(None, None, field, _message(field, item)))
        raise FormValidationError(errors) from error
