import pytest

from form_builder.validation import FormValidationError, validate_form_fields, validate_user


def entry(name: str = "Chassis", specifications=None) -> dict:
    if specifications is None:
        specifications = [{"name": "Color", "price": 0}]
    return {"section": {"name": name}, "specifications": specifications}


def rejected(payload) -> list:
    with pytest.raises(FormValidationError) as excinfo:
        validate_form_fields(payload)
    return excinfo.value.errors


def test_accepts_boundary_aggregates() -> None:
    smallest = validate_form_fields([entry("Ab", [{"name": "Xy", "price": 0}])])
    assert smallest[0].section.name == "Ab"

    largest = validate_form_fields(
        [
            entry("S" * 50, [{"name": "N" * 100, "price": 999_999} for _ in range(20)])
            for _ in range(10)
        ]
    )
    assert len(largest) == 10
    assert all(len(item.specifications) == 20 for item in largest)


def test_accepts_wrapped_payload_and_defaults_price() -> None:
    result = validate_form_fields({"formFields": [entry(specifications=[{"name": "Sunroof"}])]})
    assert result[0].specifications[0].price == 0


def test_trims_names_before_length_check() -> None:
    result = validate_form_fields([entry("  Interior  ", [{"name": "  Seats ", "price": 12.5}])])
    assert result[0].section.name == "Interior"
    assert result[0].specifications[0].name == "Seats"

    errors = rejected([entry("  a  ")])
    assert errors[0].message == "Section name must be at least 2 characters"


def test_rejects_empty_aggregate() -> None:
    errors = rejected([])
    assert len(errors) == 1
    assert errors[0].section_index is None
    assert errors[0].field == "formFields"
    assert errors[0].message == "At least one section is required"


def test_rejects_too_many_sections() -> None:
    errors = rejected([entry() for _ in range(11)])
    assert errors[0].message == "Maximum 10 sections allowed"


@pytest.mark.parametrize(
    ("price", "message"),
    [
        (-1, "Price cannot be negative"),
        (1_000_000, "Price cannot exceed $999,999"),
        ("500", "Price must be a number"),
        (True, "Price must be a number"),
    ],
)
def test_rejects_out_of_range_prices(price, message) -> None:
    errors = rejected([entry(), entry("Interior", [{"name": "Seats", "price": 1}, {"name": "Dash", "price": price}])])
    assert len(errors) == 1
    error = errors[0]
    assert (error.section_index, error.specification_index, error.field) == (1, 1, "price")
    assert error.message == message
    assert error.key == "1.1.price"


def test_reports_specification_list_bounds() -> None:
    errors = rejected([entry(specifications=[])])
    assert errors[0].field == "specifications"
    assert errors[0].message == "At least one specification is required per section"

    errors = rejected([entry(specifications=[{"name": "Opt", "price": 1}] * 21)])
    assert errors[0].message == "Maximum 20 specifications per section"


def test_reports_every_bad_field_with_its_position() -> None:
    errors = rejected(
        [
            {"section": {"name": ""}, "specifications": [{"name": "x", "price": 1}]},
            {"section": {"name": "L" * 51}, "specifications": [{"name": "N" * 101}]},
        ]
    )
    by_key = {error.key: error.message for error in errors}
    assert by_key == {
        "0.name": "Section name is required",
        "0.0.name": "Specification name must be at least 2 characters",
        "1.name": "Section name must be less than 50 characters",
        "1.0.name": "Specification name must be less than 100 characters",
    }


def test_missing_section_object_is_reported_as_missing_name() -> None:
    errors = rejected([{"specifications": [{"name": "Seats", "price": 1}]}])
    assert errors[0].key == "0.name"
    assert errors[0].message == "Section name is required"


def test_error_serialization_uses_wire_keys() -> None:
    with pytest.raises(FormValidationError) as excinfo:
        validate_form_fields([entry(specifications=[{"name": "Seats", "price": -5}])])
    assert excinfo.value.to_dict() == [
        {"sectionIndex": 0, "specificationIndex": 0, "field": "price", "message": "Price cannot be negative"}
    ]
    assert str(excinfo.value) == "Price cannot be negative"


def test_user_contract_normalizes_email() -> None:
    user = validate_user({"email": " Jane@Example.COM ", "firstName": "Jane"})
    assert user.email == "jane@example.com"
    assert user.first_name == "Jane"
    assert user.last_name == ""


@pytest.mark.parametrize(
    ("payload", "message"),
    [
        ({}, "Email is required"),
        ({"email": ""}, "Email is required"),
        ({"email": "not-an-email"}, "Email address is invalid"),
        ("jane@example.com", "Email is required"),
    ],
)
def test_user_contract_rejects_bad_email(payload, message) -> None:
    with pytest.raises(FormValidationError) as excinfo:
        validate_user(payload)
    assert excinfo.value.errors[0].field == "email"
    assert excinfo.value.errors[0].message == message
