"""Unit tests for form, component and submission models.

Tests cover:
- FormDefinition parsing and payload preservation
- Component variant dispatch and tree walking
- Submission parsing and state handling
- Timestamp parsing
- Service error bodies
"""

import pytest

from formio_bridge.errors import ErrorDetail, FormioError
from formio_bridge.models import (
    COMPONENT_TYPES,
    ChoiceComponent,
    Component,
    ContainerComponent,
    FormDefinition,
    NumberComponent,
    OpaqueComponent,
    Submission,
    SurveyComponent,
    TextFieldComponent,
    parse_timestamp,
)
from formio_bridge.samples import SAMPLE_HEALTH_SURVEY
from formio_bridge.types import ErrorLevel, SubmissionState


class TestFormDefinition:
    """Test form definition parsing."""

    def test_from_dict(self, form_payload):
        """Should parse identity, metadata and components."""
        form = FormDefinition.from_dict(form_payload)

        assert form.id == "X"
        assert form.title == "Contact"
        assert form.path == "contact"
        assert form.tags == ("demo",)
        assert form.field_count == 3
        assert form.created.year == 2024

    def test_to_dict_preserves_payload(self, form_payload):
        """Should return exactly the payload it was parsed from."""
        payload = dict(form_payload, settings={"theme": "dark"}, properties={"x": "1"})
        assert FormDefinition.from_dict(payload).to_dict() == payload

    def test_to_dict_returns_copy(self, form):
        """Should not let callers mutate the stored payload."""
        form.to_dict()["title"] = "Changed"
        assert form.to_dict()["title"] == "Contact"

    def test_built_definition_to_dict(self):
        """Should serialize a definition built in code."""
        form = FormDefinition(id="", title="T", name="t", path="t", tags=("a",))
        assert form.to_dict() == {
            "title": "T",
            "name": "t",
            "path": "t",
            "type": "form",
            "display": "form",
            "components": [],
            "tags": ["a"],
        }

    def test_find_and_keys(self, form):
        """Should locate components by key."""
        assert form.find("email").label == "Email"
        assert form.find("missing") is None
        assert "name" in form.keys()

    def test_sample_survey(self):
        """Should parse every component of the bundled survey."""
        form = FormDefinition.from_dict(SAMPLE_HEALTH_SURVEY)

        assert form.field_count == 11
        assert isinstance(form.find("healthRating"), ChoiceComponent)
        assert form.find("healthRating").option_values() == ["excellent", "good", "fair", "poor"]
        assert isinstance(form.find("satisfaction"), SurveyComponent)
        assert form.find("urgentConcerns").conditional["eq"] == "poor"


class TestComponents:
    """Test component variant dispatch."""

    def test_known_types_dispatch(self):
        """Should build the registered variant for each type."""
        assert isinstance(Component.from_dict({"type": "email", "key": "e"}), TextFieldComponent)
        assert isinstance(Component.from_dict({"type": "currency", "key": "c"}), NumberComponent)
        assert isinstance(Component.from_dict({"type": "panel", "key": "p"}), ContainerComponent)
        assert COMPONENT_TYPES["select"] is ChoiceComponent

    def test_unknown_type_is_opaque(self):
        """Should keep unknown components as opaque payloads."""
        raw = {"type": "signature", "key": "sig", "penColor": "black"}
        component = Component.from_dict(raw)

        assert isinstance(component, OpaqueComponent)
        assert component.to_dict() == raw
        assert component.extra_fields == {}

    def test_required_from_either_location(self):
        """Should read required from the top level or from validate."""
        assert Component.from_dict({"type": "textfield", "key": "a", "required": True}).required
        assert Component.from_dict({"type": "textfield", "key": "b", "validate": {"required": True}}).required
        assert not Component.from_dict({"type": "textfield", "key": "c"}).required

    def test_extra_fields(self):
        """Should report keys the variant does not know."""
        component = Component.from_dict({"type": "number", "key": "n", "decimalLimit": 2, "custom": 1})
        assert component.decimal_limit == 2
        assert component.extra_fields == {"custom": 1}

    def test_select_values_under_data(self):
        """Should read select options from data.values."""
        component = Component.from_dict({
            "type": "select",
            "key": "s",
            "data": {"values": [{"label": "A", "value": "a"}]},
        })
        assert component.option_values() == ["a"]

    def test_columns_children_are_flattened(self):
        """Should walk into the children of each column."""
        form = FormDefinition.from_dict({
            "_id": "F",
            "title": "F",
            "name": "f",
            "path": "f",
            "components": [
                {
                    "type": "columns",
                    "key": "cols",
                    "columns": [
                        {"components": [{"type": "textfield", "key": "first", "input": True}]},
                        {"components": [{"type": "textfield", "key": "last", "input": True}]},
                    ],
                },
            ],
        })

        assert [c.key for c in form.walk()] == ["cols", "first", "last"]
        assert form.keys() == ["first", "last"]

    def test_repr(self):
        assert repr(Component.from_dict({"type": "email", "key": "e", "label": "E"})) == (
            "TextFieldComponent(type='email', key='e', label='E', ...)"
        )


class TestSubmission:
    """Test submission parsing."""

    def test_from_dict(self):
        """Should parse ids, data and timestamps."""
        submission = Submission.from_dict({
            "_id": "S1",
            "form": "X",
            "state": "draft",
            "data": {"a": 1},
            "created": "2024-03-01T12:00:00.000Z",
        })

        assert submission.id == "S1"
        assert submission.is_draft
        assert submission.data == {"a": 1}
        assert submission.created.tzinfo is not None

    def test_missing_state_is_submitted(self):
        assert Submission.from_dict({"_id": "S1", "form": "X"}).state == SubmissionState.SUBMITTED

    def test_unknown_state_is_submitted(self, caplog):
        """Should treat an unknown state as submitted and warn."""
        submission = Submission.from_dict({"_id": "S1", "form": "X", "state": "archived"})

        assert submission.state == SubmissionState.SUBMITTED
        assert "archived" in caplog.text

    def test_built_submission_to_dict(self):
        """Should serialize a submission built in code."""
        submission = Submission(id="S1", form="X", data={"a": 1})
        assert submission.to_dict() == {"_id": "S1", "form": "X", "state": "submitted", "data": {"a": 1}}


class TestTimestamps:
    """Test ISO 8601 parsing."""

    @pytest.mark.parametrize(
        "value",
        ["2024-03-01T12:00:00.000Z", "2024-03-01T12:00:00+00:00", "2024-03-01"],
    )
    def test_valid(self, value):
        assert parse_timestamp(value).year == 2024

    @pytest.mark.parametrize("value", [None, "", "yesterday", "2024-13-45"])
    def test_invalid_returns_none(self, value):
        assert parse_timestamp(value) is None


class TestServiceErrors:
    """Test error bodies in the service's shape."""

    def test_from_body(self):
        """Should read name, message and details."""
        error = FormioError.from_body({
            "name": "ValidationError",
            "message": "Invalid",
            "details": [{"message": "Too short", "path": "name", "level": "warning"}],
        })

        assert error.name == "ValidationError"
        assert error.details == [ErrorDetail(message="Too short", path=["name"], level=ErrorLevel.WARNING)]
        assert error.to_dict()["details"][0]["level"] == "warning"

    def test_from_text_body(self):
        error = FormioError.from_body("Bad things")
        assert error.message == "Bad things"
        assert error.name == "FormioError"

    def test_from_empty_body_uses_fallback(self):
        assert FormioError.from_body(None, fallback="Not Found").message == "Not Found"
