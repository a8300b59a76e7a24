"""Self-contained renderer document for a form definition.

``build_form_document`` produces one HTML page that loads the third-party
Form.io renderer and hands it the form definition, the initial submission
data and the render options. The three values are embedded as JSON blocks
(``<script type="application/json">``) and read back by the page script with
``JSON.parse``, so whatever is embedded reaches the renderer verbatim.

``<``, ``>`` and ``&`` are written as JSON unicode escapes inside the blocks.
They can only occur inside JSON strings, so the escaped text decodes to the
same value while never closing the surrounding script element.
"""

import html
import json
import re
from dataclasses import dataclass
from string import Template
from typing import Any, Dict, Optional, Union

from formio_bridge.config import get_settings
from formio_bridge.models import FormDefinition, SubmissionData

DEFINITION_BLOCK = "formio-definition"
INITIAL_DATA_BLOCK = "formio-initial-data"
OPTIONS_BLOCK = "formio-options"

RENDERER_URL = "https://cdn.jsdelivr.net/npm/formiojs@{version}/dist/formio.full.min.js"

_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}
_JSON_ESCAPE_RE = re.compile("[<>&\u2028\u2029]")


@dataclass(frozen=True)
class RenderOptions:
    """Flags handed to the renderer.

    Attributes:
        read_only: Render every component disabled
        show_submit_button: Keep the renderer's own submit button visible
        submit_label: Caption of the submit button
        renderer_version: formiojs version loaded from the CDN
        stylesheet_url: Stylesheet loaded before the renderer
    """
    read_only: bool = False
    show_submit_button: bool = True
    submit_label: str = "Submit Form"
    renderer_version: Optional[str] = None
    stylesheet_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "readOnly": self.read_only,
            "showSubmitButton": self.show_submit_button,
            "submitLabel": self.submit_label,
        }


def embed_json(value: Any) -> str:
    """Serialize ``value`` so it can sit inside a script element."""
    text = json.dumps(value, ensure_ascii=False)
    return _JSON_ESCAPE_RE.sub(lambda m: _JSON_ESCAPES[m.group(0)], text)


def extract_embedded_json(document: str, block_id: str) -> Any:
    """Read back the JSON block with the given id from a built document.

    Raises:
        KeyError: If the document has no such block
    """
    pattern = re.compile(
        r'<script type="application/json" id="' + re.escape(block_id) + r'">(.*?)</script>',
        re.DOTALL,
    )
    match = pattern.search(document)
    if match is None:
        raise KeyError(block_id)
    return json.loads(match.group(1))


_PAGE = Template("""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>$title</title>
    <link rel="stylesheet" href="$stylesheet_url">
    <script src="$renderer_url"></script>
    <style>
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; padding: 20px; margin: 0; background-color: #f5f5f5; }
        .formio-container { background: white; padding: 20px; border-radius: 8px; box-shadow: 0 2px 8px rgba(0,0,0,0.1); }
        .form-title { color: #333; margin-bottom: 20px; font-size: 24px; font-weight: 600; }
        .error-message { color: #ff3b30; background-color: #ffebee; padding: 12px; border-radius: 4px; margin-bottom: 20px; }
        .loading-spinner { display: flex; justify-content: center; align-items: center; height: 200px; }
    </style>
</head>
<body>
    <div class="formio-container">
        <h1 class="form-title">$title</h1>
        <div id="formio-form"></div>
        <div id="loading" class="loading-spinner">
            <div class="spinner-border text-primary" role="status"><span class="visually-hidden">Loading...</span></div>
        </div>
        <div id="error" class="error-message" style="display: none;"></div>
    </div>

    <script type="application/json" id="$definition_block">$definition_json</script>
    <script type="application/json" id="$initial_data_block">$initial_data_json</script>
    <script type="application/json" id="$options_block">$options_json</script>

    <script>
        var formInstance = null;
        var started = false;

        function readBlock(id) {
            return JSON.parse(document.getElementById(id).textContent);
        }

        function post(message) {
            var text = JSON.stringify(message);
            if (window.ReactNativeWebView) {
                window.ReactNativeWebView.postMessage(text);
            } else if (window.parent && window.parent !== window) {
                window.parent.postMessage(text, '*');
            }
        }

        function initializeForm() {
            if (started) { return; }
            started = true;
            var loadingDiv = document.getElementById('loading');
            var errorDiv = document.getElementById('error');
            var formDiv = document.getElementById('formio-form');
            var definition = readBlock('$definition_block');
            var initialData = readBlock('$initial_data_block');
            var options = readBlock('$options_block');

            Formio.createForm(formDiv, definition, {
                readOnly: options.readOnly,
                noAlerts: true,
                i18n: { en: { submit: options.submitLabel } },
                hooks: {
                    beforeSubmit: function (submission, next) {
                        post({ type: 'beforeSubmit', data: submission.data });
                        next();
                    }
                }
            }).then(function (form) {
                formInstance = form;
                if (initialData && Object.keys(initialData).length > 0) {
                    form.submission = { data: initialData };
                }
                form.on('submit', function (submission) {
                    post({ type: 'submit', submission: submission });
                });
                form.on('error', function (errors) {
                    post({ type: 'error', errors: errors });
                });
                form.on('change', function (changed) {
                    post({ type: 'change', changed: changed });
                });
                form.on('render', function () {
                    loadingDiv.style.display = 'none';
                    post({ type: 'ready', formId: String(definition._id || '') });
                });
                if (!options.showSubmitButton) {
                    setTimeout(function () {
                        var button = formDiv.querySelector('button[type="submit"]');
                        if (button) { button.style.display = 'none'; }
                    }, 100);
                }
            }).catch(function (error) {
                errorDiv.textContent = 'Failed to load form: ' + error.message;
                errorDiv.style.display = 'block';
                loadingDiv.style.display = 'none';
                post({ type: 'error', error: error.message });
            });
        }

        function handleCommand(event) {
            var message;
            try {
                message = typeof event.data === 'string' ? JSON.parse(event.data) : event.data;
            } catch (e) {
                return;
            }
            if (!formInstance || !message) { return; }
            switch (message.type) {
                case 'submit':
                    formInstance.submit();
                    break;
                case 'setData':
                    formInstance.submission = { data: message.data };
                    break;
                case 'getData':
                    post({ type: 'currentData', data: formInstance.submission.data });
                    break;
                case 'validate':
                    post({
                        type: 'validationResult',
                        isValid: formInstance.checkValidity(null, true),
                        errors: formInstance.errors
                    });
                    break;
            }
        }

        window.addEventListener('message', handleCommand);
        document.addEventListener('message', handleCommand);

        if (document.readyState === 'loading') {
            document.addEventListener('DOMContentLoaded', initializeForm);
        } else {
            initializeForm();
        }
    </script>
</body>
</html>
""")


def build_form_document(
    form: Union[FormDefinition, Dict[str, Any]],
    initial_data: Optional[SubmissionData] = None,
    options: Optional[RenderOptions] = None,
) -> str:
    """Build the renderer document for a form.

    Args:
        form: The definition to render (a FormDefinition or its payload)
        initial_data: Submission data to pre-fill, if any
        options: Render flags; defaults to an editable form with a submit button

    Returns:
        A complete HTML document as a string
    """
    settings = get_settings()
    options = options or RenderOptions()
    definition = form.to_dict() if isinstance(form, FormDefinition) else form
    title = definition.get("title") or "Form"

    return _PAGE.substitute(
        title=html.escape(str(title)),
        stylesheet_url=html.escape(options.stylesheet_url or settings.stylesheet_url, quote=True),
        renderer_url=html.escape(
            RENDERER_URL.format(version=options.renderer_version or settings.renderer_version),
            quote=True,
        ),
        definition_block=DEFINITION_BLOCK,
        initial_data_block=INITIAL_DATA_BLOCK,
        options_block=OPTIONS_BLOCK,
        definition_json=embed_json(definition),
        initial_data_json=embed_json(initial_data or {}),
        options_json=embed_json(options.to_dict()),
    )


__all__ = [
    "DEFINITION_BLOCK",
    "INITIAL_DATA_BLOCK",
    "OPTIONS_BLOCK",
    "RenderOptions",
    "embed_json",
    "extract_embedded_json",
    "build_form_document",
]
