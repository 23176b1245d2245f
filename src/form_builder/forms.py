from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from .validation import FieldError, FormValidationError, validate_form_fields

logger = logging.getLogger(__name__)

FIELD_NAME_PATTERN = re.compile(r"^sections-(\d+)-(?:name|specifications-(\d+)-(name|price))$")

SubmitAction = Callable[[list[dict[str, Any]]], Mapping[str, Any]]


@dataclass(slots=True)
class SpecificationDraft:
    name: str = ""
    price: float | str = 0

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "price": self.price}


@dataclass(slots=True)
class SectionDraft:
    name: str = ""
    specifications: list[SpecificationDraft] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "section": {"name": self.name},
            "specifications": [specification.to_dict() for specification in self.specifications],
        }


def _parse_price(raw: str) -> float | str:
    text = raw.strip()
    if not text:
        return 0
    try:
        return float(text)
    except ValueError:
        return text


class FormBuilderDraft:
    """Editable sections and specifications, before they are submitted.

    Sections and their specifications are addressed by position, the same
    indices used by :class:`~form_builder.validation.FieldError`.
    """

    def __init__(self, sections: list[SectionDraft] | None = None) -> None:
        self.sections: list[SectionDraft] = sections or []
        self.message: str | None = None
        self.is_submitting = False

    def __len__(self) -> int:
        return len(self.sections)

    @classmethod
    def from_form(cls, form: Mapping[str, str]) -> FormBuilderDraft:
        """Rebuild a draft from flat field names such as ``sections-0-specifications-1-price``."""
        names: dict[int, str] = {}
        specifications: dict[int, dict[int, dict[str, str]]] = {}
        for key, value in form.items():
            match = FIELD_NAME_PATTERN.match(key)
            if match is None:
                continue
            section_index = int(match.group(1))
            names.setdefault(section_index, "")
            if match.group(2) is None:
                names[section_index] = value
            else:
                specification = specifications.setdefault(section_index, {}).setdefault(int(match.group(2)), {})
                specification[match.group(3)] = value

        sections = []
        for section_index in sorted(names):
            section = SectionDraft(name=names[section_index])
            for _, values in sorted(specifications.get(section_index, {}).items()):
                section.specifications.append(
                    SpecificationDraft(name=values.get("name", ""), price=_parse_price(values.get("price", "")))
                )
            sections.append(section)
        return cls(sections)

    def append_section(self) -> SectionDraft:
        section = SectionDraft(specifications=[SpecificationDraft()])
        self.sections.append(section)
        return section

    def append_specification(self, section_index: int) -> SpecificationDraft:
        specification = SpecificationDraft()
        self.sections[section_index].specifications.append(specification)
        return specification

    def remove_section(self, section_index: int) -> None:
        del self.sections[section_index]

    def remove_specification(self, section_index: int, specification_index: int) -> None:
        del self.sections[section_index].specifications[specification_index]

    def update(self, section_index: int, specification_index: int | None, field_name: str, value: Any) -> None:
        section = self.sections[section_index]
        if specification_index is None:
            if field_name != "name":
                raise ValueError(f"unknown section field: {field_name}")
            section.name = str(value)
            return

        specification = section.specifications[specification_index]
        if field_name == "name":
            specification.name = str(value)
        elif field_name == "price":
            specification.price = _parse_price(value) if isinstance(value, str) else value
        else:
            raise ValueError(f"unknown specification field: {field_name}")

    def clear(self) -> None:
        self.sections = []

    def to_form_fields(self) -> list[dict[str, Any]]:
        return [section.to_dict() for section in self.sections]

    def errors(self) -> list[FieldError]:
        try:
            validate_form_fields(self.to_form_fields())
        except FormValidationError as error:
            return error.errors
        return []

    def error_map(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        for error in self.errors():
            errors.setdefault(error.key, error.message)
        return errors

    def structural_error(self) -> str | None:
        if not self.sections:
            return "Please add at least one section"
        if any(not section.name.strip() for section in self.sections):
            return "Please provide names for all sections"
        for section in self.sections:
            if any(not specification.name.strip() for specification in section.specifications):
                return f'Please provide names for all specifications in "{section.name}"'
        return None

    def submit(self, action: SubmitAction) -> bool:
        """Run the structural checks, then hand the form fields to ``action``.

        The draft is cleared only when the action reports success.
        """
        if self.is_submitting:
            return False

        problem = self.structural_error()
        if problem is not None:
            self.message = problem
            return False

        self.is_submitting = True
        self.message = None
        try:
            result = action(self.to_form_fields())
        except Exception:
            logger.exception("form_builder_submit_failed", extra={"section_count": len(self.sections)})
            self.message = "An unexpected error occurred"
            return False
        finally:
            self.is_submitting = False

        if result.get("success"):
            self.message = str(result.get("message", ""))
            self.clear()
            return True
        self.message = f"Error: {result.get('error', 'Unknown error occurred')}"
        return False


def split_full_name(full_name: str) -> tuple[str, str]:
    parts = full_name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])
