"""Tests for the renderer document builder.

Tests cover:
- Embedded JSON blocks decode back to the inputs
- Script-breaking content stays inside its block
- Render options and renderer version
"""

import pytest

from formio_bridge.document import (
    DEFINITION_BLOCK,
    INITIAL_DATA_BLOCK,
    OPTIONS_BLOCK,
    RenderOptions,
    build_form_document,
    embed_json,
    extract_embedded_json,
)


class TestEmbeddedJson:
    """Test that embedded values reach the page unchanged."""

    def test_definition_and_data_round_trip(self, form, form_payload):
        """Should embed the definition and initial data verbatim."""
        data = {"name": "Ada", "tags": ["x", "y"], "nested": {"n": 1.5, "ok": True, "none": None}}

        document = build_form_document(form, data)

        assert extract_embedded_json(document, DEFINITION_BLOCK) == form_payload
        assert extract_embedded_json(document, INITIAL_DATA_BLOCK) == data

    def test_missing_initial_data_is_empty_object(self, form):
        """Should embed {} when no initial data is given."""
        document = build_form_document(form)
        assert extract_embedded_json(document, INITIAL_DATA_BLOCK) == {}

    def test_script_closing_text_is_escaped(self, form_payload):
        """Should never let embedded strings close the script element."""
        hostile = dict(form_payload, title='</script><script>alert("x")</script>')
        data = {"note": "a < b && c > d", "sep": "line\u2028para\u2029end"}

        document = build_form_document(hostile, data)

        block = document.split(f'id="{INITIAL_DATA_BLOCK}">', 1)[1].split("</script>", 1)[0]
        assert "<" not in block
        assert extract_embedded_json(document, DEFINITION_BLOCK)["title"] == hostile["title"]
        assert extract_embedded_json(document, INITIAL_DATA_BLOCK) == data

    def test_embed_json_escapes(self):
        """Should write <, > and & as unicode escapes."""
        assert embed_json("<&>") == '"\\u003c\\u0026\\u003e"'

    def test_non_ascii_preserved(self):
        """Should keep non-ASCII text intact."""
        document = build_form_document({"title": "Café", "components": []}, {"city": "Zürich"})
        assert extract_embedded_json(document, INITIAL_DATA_BLOCK) == {"city": "Zürich"}

    def test_missing_block_raises(self):
        with pytest.raises(KeyError):
            extract_embedded_json("<html></html>", DEFINITION_BLOCK)


class TestRenderOptions:
    """Test render flags and page resources."""

    def test_default_options(self, form):
        """Should default to an editable form with a submit button."""
        document = build_form_document(form)
        assert extract_embedded_json(document, OPTIONS_BLOCK) == {
            "readOnly": False,
            "showSubmitButton": True,
            "submitLabel": "Submit Form",
        }

    def test_read_only_without_button(self, form):
        """Should embed the read-only flag and hidden button."""
        options = RenderOptions(read_only=True, show_submit_button=False)
        document = build_form_document(form, options=options)

        embedded = extract_embedded_json(document, OPTIONS_BLOCK)
        assert embedded["readOnly"] is True
        assert embedded["showSubmitButton"] is False

    def test_renderer_version(self, form):
        """Should load the configured renderer version."""
        document = build_form_document(form, options=RenderOptions(renderer_version="5.0.0"))
        assert "formiojs@5.0.0/dist/formio.full.min.js" in document

    def test_title_is_html_escaped(self, form_payload):
        """Should escape the page title."""
        document = build_form_document(dict(form_payload, title="A & B <C>"))
        assert "<title>A &amp; B &lt;C&gt;</title>" in document
