"""Core type definitions for the Form.io bridge.

This module defines the enumerations shared across the client, the message
bridge and the screen controllers:
- SubmissionState: Lifecycle states of a stored submission
- InboundMessageType: Messages emitted by the embedded renderer
- CommandType: Commands sent from the host to the embedded renderer
- BridgeEventType: Events the bridge dispatches to its listeners
- HostedMessageType: Messages posted by an externally hosted form page
- ScreenState: View states of the screen controllers
- ErrorLevel: Severity of a service-side error detail
"""

from enum import Enum


class SubmissionState(str, Enum):
    """Submission lifecycle states as stored by the form service."""
    DRAFT = "draft"
    SUBMITTED = "submitted"


class InboundMessageType(str, Enum):
    """Discriminants of messages posted by the renderer document."""
    READY = "ready"
    SUBMIT = "submit"
    ERROR = "error"
    CHANGE = "change"
    BEFORE_SUBMIT = "beforeSubmit"
    CURRENT_DATA = "currentData"
    VALIDATION_RESULT = "validationResult"


class CommandType(str, Enum):
    """Discriminants of commands posted to the renderer document.

    Commands are fire-and-forget; responses arrive asynchronously as
    CURRENT_DATA or VALIDATION_RESULT inbound messages.
    """
    SUBMIT = "submit"
    SET_DATA = "setData"
    GET_DATA = "getData"
    VALIDATE = "validate"


class BridgeEventType(str, Enum):
    """Events dispatched by MessageBridge to its listeners."""
    READY = "ready"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    ERROR = "error"
    CHANGE = "change"
    BEFORE_SUBMIT = "beforeSubmit"
    CURRENT_DATA = "currentData"
    VALIDATION_RESULT = "validationResult"


class HostedMessageType(str, Enum):
    """Messages understood from an externally hosted form page."""
    FORM_SUBMIT = "formSubmit"
    APP_READY = "appReady"


class ScreenState(str, Enum):
    """View states shared by all screen controllers.

    Each controller restricts the reachable states through its own
    transition table (see formio_bridge.state_machine).
    """
    LOADING = "loading"
    READY = "ready"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    ERROR = "error"
    IDLE = "idle"


class ErrorLevel(str, Enum):
    """Severity of an ErrorDetail reported by the form service."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


__all__ = [
    "SubmissionState",
    "InboundMessageType",
    "CommandType",
    "BridgeEventType",
    "HostedMessageType",
    "ScreenState",
    "ErrorLevel",
]
