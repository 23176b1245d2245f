"""Server-side actions behind the form builder pages and JSON API.

Every action returns a response envelope (``success`` plus ``data``/``error``
and ``message``) instead of raising, so callers only branch on
``result["success"]``.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from .db import (
    StorageClient,
    StorageError,
    count_sections,
    count_users,
    create_section,
    create_specification,
    delete_all_sections,
    delete_all_specifications,
    get_user_by_email,
    list_sections_with_specifications,
    list_users,
)
from .db import create_user as insert_user
from .validation import FormValidationError, SectionWithSpecifications, validate_form_fields, validate_user

logger = logging.getLogger(__name__)

SEED_FORM_FIELDS: list[dict[str, Any]] = [
    {
        "section": {"name": "Chassis"},
        "specifications": [
            {"name": "Body Color", "price": 0},
            {"name": "Wheel Type", "price": 500},
        ],
    },
    {
        "section": {"name": "Interior"},
        "specifications": [
            {"name": "Seat Material", "price": 200},
            {"name": "Dashboard Color", "price": 100},
        ],
    },
]


def _error_text(error: Exception) -> str:
    return str(error) or "Unknown error occurred"


def _coerce_form_fields(form_fields: Any) -> list[SectionWithSpecifications]:
    items = list(form_fields) if isinstance(form_fields, (list, tuple)) else form_fields
    if isinstance(items, list) and items and all(isinstance(item, SectionWithSpecifications) for item in items):
        return items
    return validate_form_fields(items)


def _create_sections(client: StorageClient, form_fields: list[SectionWithSpecifications]) -> list[dict[str, Any]]:
    results = []
    for field in form_fields:
        section = create_section(client, field.section.name)
        specifications = []
        for specification in field.specifications:
            specifications.append(create_specification(client, specification.name, specification.price, section.id))
        results.append(
            {
                "section": section.to_dict(exclude={"specifications", "total_price"}),
                "specifications": [item.to_dict() for item in specifications],
            }
        )
    return results


def create_form_builder(
    client: StorageClient,
    form_fields: Sequence[Any],
    *,
    atomic: bool = False,
) -> dict[str, Any]:
    """Persist each section followed by its specifications, in submission order.

    Without ``atomic`` every insert commits on its own, so a failure part way
    through leaves the rows created so far in place.
    """
    try:
        validated = _coerce_form_fields(form_fields)
        if atomic:
            with client.transaction():
                results = _create_sections(client, validated)
        else:
            results = _create_sections(client, validated)
    except FormValidationError as error:
        logger.info("form_builder_invalid", extra={"error_count": len(error.errors)})
        return {
            "success": False,
            "error": _error_text(error),
            "message": "Failed to create form data",
            "errors": error.to_dict(),
        }
    except StorageError as error:
        logger.error("form_builder_create_failed", extra={"atomic": atomic, "error": str(error)})
        return {"success": False, "error": _error_text(error), "message": "Failed to create form data"}
    except Exception as error:
        logger.exception("form_builder_create_crashed", extra={"atomic": atomic})
        return {"success": False, "error": _error_text(error), "message": "Failed to create form data"}

    logger.info(
        "form_builder_created",
        extra={
            "section_count": len(results),
            "specification_count": sum(len(item["specifications"]) for item in results),
            "atomic": atomic,
        },
    )
    return {
        "success": True,
        "data": results,
        "message": f"Successfully created {len(results)} sections with their specifications",
    }


def get_all_sections_with_specs(client: StorageClient) -> dict[str, Any]:
    try:
        sections = list_sections_with_specifications(client)
    except StorageError as error:
        logger.error("sections_fetch_failed", extra={"error": str(error)})
        return {"success": False, "error": _error_text(error)}
    return {"success": True, "data": [section.to_dict() for section in sections]}


def check_database_connection(client: StorageClient) -> dict[str, Any]:
    try:
        client.connect()
        user_count = count_users(client)
    except StorageError as error:
        logger.error("database_connection_failed", extra={"error": str(error)})
        return {"success": False, "error": _error_text(error)}
    logger.info("database_connection_ok", extra={"user_count": user_count})
    return {"success": True, "message": "Database connection successful"}


def seed_test_data(client: StorageClient) -> dict[str, Any]:
    try:
        if count_sections(client) > 0:
            return {"success": True, "message": "Test data already exists", "skipped": True}
        results = _create_sections(client, validate_form_fields(SEED_FORM_FIELDS))
    except StorageError as error:
        logger.error("seed_failed", extra={"error": str(error)})
        return {"success": False, "error": _error_text(error)}

    logger.info("seed_completed", extra={"section_count": len(results)})
    return {
        "success": True,
        "message": f"Successfully seeded {len(results)} sections with specifications",
        "data": results,
    }


def clear_test_data(client: StorageClient) -> dict[str, Any]:
    try:
        deleted_specifications = delete_all_specifications(client)
        deleted_sections = delete_all_sections(client)
    except StorageError as error:
        logger.error("clear_failed", extra={"error": str(error)})
        return {"success": False, "error": _error_text(error)}

    logger.info(
        "clear_completed",
        extra={"deleted_specifications": deleted_specifications, "deleted_sections": deleted_sections},
    )
    return {
        "success": True,
        "message": f"Cleared {deleted_specifications} specifications and {deleted_sections} sections",
        "data": {"deletedSpecs": deleted_specifications, "deletedSections": deleted_sections},
    }


def create_user(client: StorageClient, payload: Any) -> dict[str, Any]:
    try:
        user_input = validate_user(payload)
        if get_user_by_email(client, user_input.email) is not None:
            return {
                "success": False,
                "error": f"A user with email {user_input.email} already exists",
                "message": "Failed to create user",
            }
        user = insert_user(client, user_input.email, user_input.first_name, user_input.last_name)
    except FormValidationError as error:
        return {
            "success": False,
            "error": _error_text(error),
            "message": "Failed to create user",
            "errors": error.to_dict(),
        }
    except StorageError as error:
        logger.error("user_create_failed", extra={"error": str(error)})
        return {"success": False, "error": _error_text(error), "message": "Failed to create user"}

    logger.info("user_created", extra={"user_id": user.id})
    return {"success": True, "data": user.to_dict(), "message": f"Success! User {user.email} has been created."}


def get_all_users(client: StorageClient) -> dict[str, Any]:
    try:
        users = list_users(client)
    except StorageError as error:
        logger.error("users_fetch_failed", extra={"error": str(error)})
        return {"success": False, "error": _error_text(error)}
    return {"success": True, "data": [user.to_dict() for user in users]}
