"""Form.io Bridge: client, renderer bridge and screen controllers.

Form.io Bridge is the front-end layer for a self-hosted Form.io service:
- An async REST client with token auth and a normalized error taxonomy
- A message bridge that renders a form definition in an embedded web
  surface and persists its submissions
- Screen controllers for the form list, the native render screen and the
  hosted form page
- An import utility that seeds forms from JSON files

Basic usage:
    >>> from formio_bridge import FormioClient, FormRenderController
    >>> async with FormioClient(base_url="http://localhost:3001") as client:
    ...     form = await client.get_form("abc123")
    ...     screen = FormRenderController(client, form, post_message=webview.post)
    ...     webview.load_html(screen.document)
"""

__version__ = "0.1.0"
__author__ = "Form.io Bridge Team"

# Version info
VERSION = (0, 1, 0)

# Core exports
from formio_bridge.bridge import MessageBridge
from formio_bridge.client import FormioClient
from formio_bridge.errors import AuthError, FormioError, NetworkError, ParseError, RequestError
from formio_bridge.models import FormDefinition, Submission
from formio_bridge.screens import (
    FormListController,
    FormRenderController,
    HostedFormController,
    hosted_form_url,
)
from formio_bridge.session import AuthSession

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "FormioClient",
    "AuthSession",
    "MessageBridge",
    "FormListController",
    "FormRenderController",
    "HostedFormController",
    "hosted_form_url",
    "FormDefinition",
    "Submission",
    "FormioError",
    "AuthError",
    "RequestError",
    "NetworkError",
    "ParseError",
]
