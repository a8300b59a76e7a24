"""Message bridge between the host and the embedded form renderer.

The bridge owns one rendered form. Outbound, it builds the renderer document
and posts commands (submit, setData, getData, validate) through the string
channel the host provides. Inbound, it decodes each message once at the
boundary and dispatches it through a table with one handler per message type:

- ready: clear loading and error
- submit: persist the submission with ``FormioClient.create_submission``
- error: record the error and stop loading
- change, beforeSubmit, currentData, validationResult: record the latest
  payload and notify listeners (extension points)

Every handler except ``submit`` is idempotent, so late or duplicated
messages are harmless. A ``submit`` arriving while another one is in flight
is dropped. Messages that fail to decode are logged and dropped; they never
reach the host as exceptions.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from formio_bridge.client import FormioClient
from formio_bridge.document import RenderOptions, build_form_document
from formio_bridge.errors import FormioError, ParseError
from formio_bridge.events import BridgeEvent, EventEmitter, EventListener
from formio_bridge.messages import (
    Command,
    ErrorMessage,
    GetDataCommand,
    InboundMessage,
    RawMessage,
    SetDataCommand,
    SubmitCommand,
    SubmitMessage,
    ValidateCommand,
    decode_message,
)
from formio_bridge.models import FormDefinition, Submission, SubmissionData
from formio_bridge.types import BridgeEventType, InboundMessageType

logger = logging.getLogger(__name__)

PostMessage = Callable[[str], None]
Handler = Callable[[InboundMessage], Awaitable[None]]

# Message types with no local effect beyond notifying listeners
_PASSTHROUGH_EVENTS: Dict[InboundMessageType, BridgeEventType] = {
    InboundMessageType.CHANGE: BridgeEventType.CHANGE,
    InboundMessageType.BEFORE_SUBMIT: BridgeEventType.BEFORE_SUBMIT,
    InboundMessageType.CURRENT_DATA: BridgeEventType.CURRENT_DATA,
    InboundMessageType.VALIDATION_RESULT: BridgeEventType.VALIDATION_RESULT,
}


class MessageBridge:
    """Bridge for one form rendered on an embedded surface.

    Attributes:
        client: API client used to persist submissions
        form: The definition being rendered
        initial_data: Data pre-filled into the form
        options: Render flags embedded in the document
        loading: True until the renderer reports ready, and while submitting
        error: Message of the last error, or None
        submission: The server-assigned submission after a successful submit
        latest: Last decoded message per inbound type

    Examples:
        >>> bridge = MessageBridge(client, form, post_message=webview.post)
        >>> bridge.on(BridgeEventType.SUBMITTED, lambda event: print(event.payload.id))
        >>> html = bridge.document()
        >>> await bridge.receive('{"type": "ready", "formId": "abc"}')
    """

    def __init__(
        self,
        client: FormioClient,
        form: FormDefinition,
        initial_data: Optional[SubmissionData] = None,
        options: Optional[RenderOptions] = None,
        post_message: Optional[PostMessage] = None,
    ):
        self.client = client
        self.form = form
        self.initial_data = dict(initial_data or {})
        self.options = options or RenderOptions()
        self.post_message = post_message
        self.events = EventEmitter()
        self.loading = True
        self.error: Optional[str] = None
        self.last_error: Optional[FormioError] = None
        self.submission: Optional[Submission] = None
        self.latest: Dict[InboundMessageType, InboundMessage] = {}
        self._submitting = False
        self._handlers: Dict[InboundMessageType, Handler] = {
            InboundMessageType.READY: self._handle_ready,
            InboundMessageType.SUBMIT: self._handle_submit,
            InboundMessageType.ERROR: self._handle_error,
        }
        for message_type in _PASSTHROUGH_EVENTS:
            self._handlers[message_type] = self._handle_passthrough

    @property
    def form_id(self) -> str:
        return self.form.id

    @property
    def submitting(self) -> bool:
        return self._submitting

    def on(self, event_type: BridgeEventType, listener: EventListener) -> None:
        self.events.on(event_type, listener)

    def document(self) -> str:
        """Build the renderer document for this bridge's form."""
        return build_form_document(self.form, self.initial_data, self.options)

    def reset(self) -> None:
        """Return to the freshly-rendered state before a re-render."""
        self.loading = True
        self.error = None
        self.last_error = None
        self.submission = None
        self.latest.clear()

    # Inbound

    async def receive(self, raw: RawMessage) -> Optional[InboundMessage]:
        """Decode and dispatch one message from the renderer.

        Returns:
            The decoded message, or None if it was dropped
        """
        try:
            message = decode_message(raw)
        except ParseError as exc:
            logger.warning("Dropping renderer message for form %s: %s", self.form_id, exc.message)
            return None

        message_type = InboundMessageType(message.type)
        self.latest[message_type] = message
        await self._handlers[message_type](message)
        return message

    async def _handle_ready(self, message: InboundMessage) -> None:
        # The renderer re-renders (and re-sends ready) while a submit is pending
        if not self._submitting:
            self.loading = False
        self.error = None
        self._emit(BridgeEventType.READY, message)

    async def _handle_submit(self, message: SubmitMessage) -> None:
        if self._submitting:
            logger.warning("Submission already in flight for form %s; dropping duplicate", self.form_id)
            return

        self._submitting = True
        self.loading = True
        self._emit(BridgeEventType.SUBMITTING, message.data)
        try:
            submission = await self.client.create_submission(self.form_id, message.data)
        except FormioError as exc:
            logger.warning("Submission for form %s failed: %s", self.form_id, exc.message)
            self._fail(exc)
            return
        finally:
            self._submitting = False

        self.loading = False
        self.error = None
        self.submission = submission
        logger.info("Form %s submitted as %s", self.form_id, submission.id)
        self._emit(BridgeEventType.SUBMITTED, submission)

    async def _handle_error(self, message: ErrorMessage) -> None:
        self._fail(message.to_formio_error())

    async def _handle_passthrough(self, message: InboundMessage) -> None:
        self._emit(_PASSTHROUGH_EVENTS[InboundMessageType(message.type)], message)

    def _fail(self, error: FormioError) -> None:
        self.loading = False
        self.error = error.message
        self.last_error = error
        self._emit(BridgeEventType.ERROR, error)

    def _emit(self, event_type: BridgeEventType, payload: Any) -> None:
        self.events.emit(BridgeEvent(type=event_type, form_id=self.form_id, payload=payload))

    # Outbound

    def _post(self, command: Command) -> str:
        text = command.to_json()
        if self.post_message is None:
            logger.debug("No renderer attached; dropping %s command", command.type)
        else:
            self.post_message(text)
        return text

    def submit(self) -> str:
        """Ask the renderer to submit; the result arrives as a submit message."""
        return self._post(SubmitCommand())

    def set_data(self, data: SubmissionData) -> str:
        return self._post(SetDataCommand(data=dict(data)))

    def get_data(self) -> str:
        """Request the current data; the answer arrives as currentData."""
        return self._post(GetDataCommand())

    def validate(self) -> str:
        """Request validation; the answer arrives as validationResult."""
        return self._post(ValidateCommand())


__all__ = ["MessageBridge", "PostMessage"]
