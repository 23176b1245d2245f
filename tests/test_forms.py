import pytest

from form_builder.forms import FormBuilderDraft, SectionDraft, SpecificationDraft, split_full_name


def filled_draft() -> FormBuilderDraft:
    draft = FormBuilderDraft()
    draft.append_section()
    draft.update(0, None, "name", "Chassis")
    draft.update(0, 0, "name", "Color")
    draft.append_specification(0)
    draft.update(0, 1, "name", "Wheels")
    draft.update(0, 1, "price", "500")
    return draft


def test_append_and_update_build_nested_form_fields() -> None:
    draft = filled_draft()

    assert draft.to_form_fields() == [
        {
            "section": {"name": "Chassis"},
            "specifications": [{"name": "Color", "price": 0}, {"name": "Wheels", "price": 500.0}],
        }
    ]
    assert draft.errors() == []


def test_remove_operations_shift_positions() -> None:
    draft = filled_draft()
    draft.append_section()
    draft.update(1, None, "name", "Interior")

    draft.remove_specification(0, 0)
    draft.remove_section(0)

    assert [section.name for section in draft.sections] == ["Interior"]
    assert len(draft) == 1


def test_update_rejects_unknown_fields_and_positions() -> None:
    draft = filled_draft()
    with pytest.raises(ValueError):
        draft.update(0, None, "price", 1)
    with pytest.raises(ValueError):
        draft.update(0, 0, "colour", "red")
    with pytest.raises(IndexError):
        draft.update(3, None, "name", "Missing")


def test_errors_are_keyed_by_position() -> None:
    draft = filled_draft()
    draft.update(0, 1, "price", "-3")
    draft.update(0, 0, "name", "C")

    assert draft.error_map() == {
        "0.0.name": "Specification name must be at least 2 characters",
        "0.1.price": "Price cannot be negative",
    }


def test_unparseable_price_is_kept_and_flagged() -> None:
    draft = filled_draft()
    draft.update(0, 1, "price", "abc")

    assert draft.sections[0].specifications[1].price == "abc"
    assert draft.error_map() == {"0.1.price": "Price must be a number"}


@pytest.mark.parametrize(
    ("draft", "message"),
    [
        (FormBuilderDraft(), "Please add at least one section"),
        (FormBuilderDraft([SectionDraft("  ", [SpecificationDraft("Color")])]), "Please provide names for all sections"),
        (
            FormBuilderDraft([SectionDraft("Chassis", [SpecificationDraft("")])]),
            'Please provide names for all specifications in "Chassis"',
        ),
    ],
)
def test_submit_runs_structural_checks_before_the_action(draft, message) -> None:
    calls = []

    assert draft.submit(lambda fields: calls.append(fields) or {"success": True}) is False
    assert draft.message == message
    assert calls == []


def test_successful_submit_clears_the_draft() -> None:
    draft = filled_draft()
    seen = []

    def action(fields):
        seen.append(fields)
        assert draft.is_submitting
        return {"success": True, "message": "Successfully created 1 sections with their specifications"}

    assert draft.submit(action) is True
    assert seen[0][0]["section"]["name"] == "Chassis"
    assert draft.sections == []
    assert draft.message == "Successfully created 1 sections with their specifications"
    assert draft.is_submitting is False


def test_failed_submit_keeps_the_draft() -> None:
    draft = filled_draft()

    assert draft.submit(lambda fields: {"success": False, "error": "database is unreachable"}) is False
    assert draft.message == "Error: database is unreachable"
    assert len(draft.sections) == 1


def test_submit_is_ignored_while_another_is_in_flight() -> None:
    draft = filled_draft()
    draft.is_submitting = True

    assert draft.submit(lambda fields: {"success": True}) is False
    assert len(draft.sections) == 1


def test_raising_action_surfaces_a_generic_message() -> None:
    draft = filled_draft()

    def action(fields):
        raise RuntimeError("boom")

    assert draft.submit(action) is False
    assert draft.message == "An unexpected error occurred"
    assert draft.is_submitting is False


def test_from_form_restores_order_from_field_names() -> None:
    draft = FormBuilderDraft.from_form(
        {
            "sections-1-name": "Interior",
            "sections-0-name": "Chassis",
            "sections-0-specifications-1-name": "Wheels",
            "sections-0-specifications-1-price": "500",
            "sections-0-specifications-0-name": "Color",
            "sections-0-specifications-0-price": "",
            "sections-1-specifications-0-name": "Seats",
            "sections-1-specifications-0-price": "12.5",
            "action": "submit",
        }
    )

    assert draft.to_form_fields() == [
        {
            "section": {"name": "Chassis"},
            "specifications": [{"name": "Color", "price": 0}, {"name": "Wheels", "price": 500.0}],
        },
        {"section": {"name": "Interior"}, "specifications": [{"name": "Seats", "price": 12.5}]},
    ]


@pytest.mark.parametrize(
    ("full_name", "expected"),
    [("Jane Doe", ("Jane", "Doe")), ("Cher", ("Cher", "")), ("", ("", "")), ("Mary Ann  Smith", ("Mary", "Ann Smith"))],
)
def test_split_full_name(full_name, expected) -> None:
    assert split_full_name(full_name) == expected
