"""Screen controllers: view state for the three form screens.

Controllers hold only what a screen shows (loading flags, error strings,
data) and drive it through a ScreenStateMachine. They talk to the form
service through an explicitly passed FormioClient and see failures only as
formio_bridge.errors exceptions.

- FormListController: the list of user forms, with refresh and retry
- FormRenderController: one form rendered through the message bridge
- HostedFormController: a form page hosted entirely by the form service
"""

import asyncio
import copy
import json
import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from formio_bridge.bridge import MessageBridge, PostMessage
from formio_bridge.client import FormioClient
from formio_bridge.config import Settings, get_settings
from formio_bridge.document import RenderOptions
from formio_bridge.errors import FormioError, ParseError
from formio_bridge.events import BridgeEvent
from formio_bridge.messages import HostedMessage, InboundMessage, RawMessage, decode_hosted_message
from formio_bridge.models import FormDefinition, Submission, SubmissionData
from formio_bridge.samples import SAMPLE_HEALTH_SURVEY
from formio_bridge.state_machine import (
    HOSTED_TRANSITIONS,
    LIST_TRANSITIONS,
    RENDER_TRANSITIONS,
    ScreenStateMachine,
)
from formio_bridge.types import BridgeEventType, HostedMessageType, ScreenState

logger = logging.getLogger(__name__)

# Forms served under these paths belong to the service itself
SYSTEM_PATHS = ("admin", "user")


def is_user_form(form: FormDefinition) -> bool:
    """True for forms created by users, False for resources and system forms.

    Examples:
        >>> is_user_form(FormDefinition(id="1", title="", name="", path="admin/login"))
        False
        >>> is_user_form(FormDefinition(id="2", title="", name="", path="my-survey"))
        True
    """
    if form.type != "form":
        return False
    path = form.path.strip("/")
    return not any(path == p or path.startswith(p + "/") for p in SYSTEM_PATHS)


def _format_ts(value: Optional[datetime]) -> str:
    if value is None:
        return "unknown"
    return value.strftime("%Y-%m-%d %H:%M:%S")


class FormListController:
    """State for the form list screen.

    Every load is tagged with a sequence number; a response that is not the
    latest one is discarded, so a slow early response cannot overwrite the
    result of a later refresh.

    Attributes:
        forms: Visible user forms, in service order
        error: Message of the last failed load, or None
        refreshing: True while a pull-to-refresh is in flight
    """

    def __init__(self, client: FormioClient):
        self.client = client
        self.machine = ScreenStateMachine(screen="list", transitions=LIST_TRANSITIONS)
        self.forms: List[FormDefinition] = []
        self.error: Optional[str] = None
        self.refreshing = False
        self._sequence = 0

    @property
    def state(self) -> ScreenState:
        return self.machine.state

    @property
    def is_empty(self) -> bool:
        return self.state == ScreenState.READY and not self.forms

    async def load(self) -> None:
        """Fetch the forms; called on mount and by refresh/retry."""
        self._sequence += 1
        sequence = self._sequence
        self.machine.try_transition_to(ScreenState.LOADING)

        try:
            forms = await self.client.list_forms()
        except FormioError as exc:
            if sequence != self._sequence:
                logger.debug("Discarding stale form list failure #%d", sequence)
                return
            logger.warning("Error loading forms: %s", exc.message)
            self.error = exc.message
            self.refreshing = False
            self.machine.try_transition_to(ScreenState.ERROR)
            return

        if sequence != self._sequence:
            logger.debug("Discarding stale form list response #%d", sequence)
            return
        self.forms = [form for form in forms if is_user_form(form)]
        self.error = None
        self.refreshing = False
        self.machine.try_transition_to(ScreenState.READY)

    async def refresh(self) -> None:
        self.refreshing = True
        await self.load()

    async def retry(self) -> None:
        self.error = None
        await self.load()

    async def create_sample_form(self) -> FormDefinition:
        """Create the bundled health survey, then reload the list.

        Raises:
            FormioError: If the service rejected the form
        """
        form = await self.client.create_form(copy.deepcopy(SAMPLE_HEALTH_SURVEY))
        logger.info("Created sample form %s", form.id)
        await self.load()
        return form

    @staticmethod
    def summary(form: FormDefinition) -> str:
        """List-row text for one form."""
        lines = [
            form.title,
            f"{form.name} • {form.field_count} fields",
            f"Path: /{form.path}",
        ]
        if form.tags:
            lines.append(" ".join(f"#{tag}" for tag in form.tags))
        return "\n".join(lines)


class FormRenderController:
    """State for a form rendered natively through the message bridge.

    ``loading`` until the renderer reports ready, ``submitting`` while the
    submission is persisted, then ``submitted`` or ``error``. Events that
    arrive late or twice are ignored when the state table forbids them.

    Attributes:
        bridge: The MessageBridge for this form
        document: The renderer document currently displayed
        error: Message of the last error, or None
        submission: The server-assigned submission once submitted
    """

    def __init__(
        self,
        client: FormioClient,
        form: FormDefinition,
        initial_data: Optional[SubmissionData] = None,
        read_only: bool = False,
        show_submit_button: bool = True,
        post_message: Optional[PostMessage] = None,
        on_submit: Optional[Callable[[Submission], None]] = None,
        on_error: Optional[Callable[[FormioError], None]] = None,
    ):
        self.form = form
        self.on_submit = on_submit
        self.on_error = on_error
        self.machine = ScreenStateMachine(screen="render", transitions=RENDER_TRANSITIONS)
        self.bridge = MessageBridge(
            client,
            form,
            initial_data=initial_data,
            options=RenderOptions(read_only=read_only, show_submit_button=show_submit_button),
            post_message=post_message,
        )
        self.bridge.on(BridgeEventType.READY, self._on_ready)
        self.bridge.on(BridgeEventType.SUBMITTING, self._on_submitting)
        self.bridge.on(BridgeEventType.SUBMITTED, self._on_submitted)
        self.bridge.on(BridgeEventType.ERROR, self._on_error)
        self.error: Optional[str] = None
        self.submission: Optional[Submission] = None
        self.document = self.bridge.document()

    @property
    def state(self) -> ScreenState:
        return self.machine.state

    @property
    def loading(self) -> bool:
        return self.state in (ScreenState.LOADING, ScreenState.SUBMITTING)

    async def receive(self, raw: RawMessage) -> Optional[InboundMessage]:
        """Feed one renderer message; malformed ones are dropped by the bridge."""
        return await self.bridge.receive(raw)

    def _on_ready(self, event: BridgeEvent) -> None:
        if self.machine.try_transition_to(ScreenState.READY):
            self.error = None

    def _on_submitting(self, event: BridgeEvent) -> None:
        if self.machine.try_transition_to(ScreenState.SUBMITTING):
            self.error = None

    def _on_submitted(self, event: BridgeEvent) -> None:
        self.submission = event.payload
        self.error = None
        self.machine.try_transition_to(ScreenState.SUBMITTED)
        if self.on_submit is not None:
            self.on_submit(event.payload)

    def _on_error(self, event: BridgeEvent) -> None:
        error: FormioError = event.payload
        # Repeated errors while already in error still replace the message
        if not self.machine.try_transition_to(ScreenState.ERROR) and self.state != ScreenState.ERROR:
            return
        self.error = error.message
        logger.warning("Form %s error: %s", self.form.id, error.message)
        if self.on_error is not None:
            self.on_error(error)

    def retry(self) -> str:
        """Re-render the form after an error or a completed submission.

        Returns:
            The fresh renderer document

        Raises:
            InvalidScreenTransitionError: While loading or submitting
        """
        self.machine.transition_to(ScreenState.LOADING)
        self.error = None
        self.submission = None
        self.bridge.reset()
        self.document = self.bridge.document()
        return self.document

    # Commands to the renderer

    def submit(self) -> str:
        return self.bridge.submit()

    def set_data(self, data: SubmissionData) -> str:
        return self.bridge.set_data(data)

    def get_data(self) -> str:
        return self.bridge.get_data()

    def validate(self) -> str:
        return self.bridge.validate()

    # Text shown after a submission

    def _require_submission(self, submission: Optional[Submission]) -> Submission:
        submission = submission or self.submission
        if submission is None:
            raise ValueError("No submission available")
        return submission

    def submission_details(self, submission: Optional[Submission] = None) -> str:
        submission = self._require_submission(submission)
        data = json.dumps(submission.data, indent=2, ensure_ascii=False)
        return f"Submission ID: {submission.id}\n\nData:\n{data}"

    def share_text(self, submission: Optional[Submission] = None) -> str:
        """Plain-text rendering of a submission for the share sheet."""
        submission = self._require_submission(submission)
        data = json.dumps(submission.data, indent=2, ensure_ascii=False)
        return (
            f"{self.form.title} - Submission\n\n"
            f"Submission ID: {submission.id}\n"
            f"Submitted: {_format_ts(submission.created)}\n\n"
            f"Data:\n{data}"
        )

    def form_details(self) -> List[Tuple[str, str]]:
        """Label/value rows describing the form and its components."""
        form = self.form
        rows = [
            ("Title", form.title),
            ("Name", form.name),
            ("Path", f"/{form.path}"),
            ("Type", form.type),
            ("Fields", str(form.field_count)),
            ("Created", _format_ts(form.created)),
            ("Modified", _format_ts(form.modified)),
        ]
        if form.tags:
            rows.append(("Tags", ", ".join(form.tags)))
        rows.append(("Form ID", form.id))
        for component in form.components:
            rows.append((
                component.label or component.key,
                f"{component.type} • {'Required' if component.required else 'Optional'}",
            ))
        return rows


def hosted_form_url(base_url: str, path: str) -> str:
    """URL of a form page hosted by the service, embedded without chrome."""
    return f"{base_url.rstrip('/')}/#/{path.strip('/')}?iframe=1&header=0"


class HostedFormController:
    """State for a form page hosted entirely by the form service.

    The hosted single-page app has no completion signal of its own by
    default, so after the surface reports load-end the loading indicator is
    cleared after ``ready_delay`` seconds. A page that posts ``appReady``
    clears it immediately. A ``formSubmit`` message closes the screen.

    Attributes:
        url: Page URL shown in the web surface
        error: Description of the last load failure, or None
        ready_delay: Fallback delay in seconds after load-end
    """

    def __init__(
        self,
        url: str,
        on_close: Optional[Callable[[], None]] = None,
        ready_delay: Optional[float] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.url = url
        self.on_close = on_close
        self.ready_delay = settings.hosted_ready_delay if ready_delay is None else ready_delay
        self.machine = ScreenStateMachine(screen="hosted", transitions=HOSTED_TRANSITIONS)
        self.error: Optional[str] = None
        self._ready_timer: Optional[asyncio.TimerHandle] = None

    @property
    def state(self) -> ScreenState:
        return self.machine.state

    @property
    def loading(self) -> bool:
        return self.state == ScreenState.LOADING

    def _cancel_timer(self) -> None:
        if self._ready_timer is not None:
            self._ready_timer.cancel()
            self._ready_timer = None

    def _mark_ready(self) -> None:
        self._ready_timer = None
        self.machine.try_transition_to(ScreenState.READY)

    def on_load_start(self) -> None:
        self._cancel_timer()
        self.error = None
        self.machine.try_transition_to(ScreenState.LOADING)

    def on_load_end(self) -> None:
        """Schedule the fallback that clears the loading indicator.

        Must be called from within the running event loop.
        """
        self._cancel_timer()
        if self.state != ScreenState.LOADING:
            return
        loop = asyncio.get_running_loop()
        self._ready_timer = loop.call_later(self.ready_delay, self._mark_ready)

    def on_load_error(self, description: Optional[str] = None) -> None:
        self._cancel_timer()
        if self.machine.try_transition_to(ScreenState.ERROR):
            self.error = description or "Failed to load form"
            logger.warning("Hosted form %s failed to load: %s", self.url, self.error)

    def retry(self) -> None:
        self.on_load_start()

    def receive(self, raw: RawMessage) -> Optional[HostedMessage]:
        """Handle one message posted by the hosted page.

        Returns:
            The decoded message, or None if it was not a JSON object
        """
        try:
            message = decode_hosted_message(raw)
        except ParseError as exc:
            logger.info("Ignoring message from hosted page: %s", exc.message)
            return None

        if message.known_type == HostedMessageType.APP_READY:
            self._cancel_timer()
            self._mark_ready()
        elif message.known_type == HostedMessageType.FORM_SUBMIT:
            self._cancel_timer()
            if self.machine.try_transition_to(ScreenState.IDLE):
                logger.info("Hosted form %s submitted", self.url)
                if self.on_close is not None:
                    self.on_close()
        else:
            logger.debug("Unhandled hosted page message %r", message.type)
        return message

    def close(self) -> None:
        """Release the pending timer when the screen goes away."""
        self._cancel_timer()


__all__ = [
    "SYSTEM_PATHS",
    "is_user_form",
    "FormListController",
    "FormRenderController",
    "hosted_form_url",
    "HostedFormController",
]
