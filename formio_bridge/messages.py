"""Typed envelopes for the renderer message channel.

The embedded renderer and the host exchange JSON strings. This module is the
single boundary where those strings are decoded: ``decode_message`` parses the
JSON, validates it against a JSON Schema for its ``type`` discriminant
(Draft 7, via jsonschema), and returns a typed message object. Code past this
point never handles untyped payloads.

Inbound (renderer -> host): ready, submit, error, change, beforeSubmit,
currentData, validationResult.
Outbound (host -> renderer): submit, setData, getData, validate.

Every message keeps keys it does not model in ``extra``, so
``decode_message(msg.to_json()) == msg`` holds for any decoded message.

Usage:
    >>> msg = decode_message('{"type": "ready", "formId": "abc"}')
    >>> msg
    ReadyMessage(extra={}, form_id='abc')
    >>> SetDataCommand(data={"a": 1}).to_json()
    '{"type": "setData", "data": {"a": 1}}'
"""

import copy
import json
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional, Type, Union

from jsonschema import Draft7Validator
from jsonschema.exceptions import best_match

from formio_bridge.errors import ErrorDetail, FormioError, ParseError
from formio_bridge.types import CommandType, HostedMessageType, InboundMessageType

RawMessage = Union[str, bytes, Dict[str, Any]]

_OBJECT = {"type": "object"}

INBOUND_SCHEMAS: Dict[InboundMessageType, Dict[str, Any]] = {
    InboundMessageType.READY: {
        "type": "object",
        "properties": {"formId": {"type": "string"}},
        "required": ["formId"],
    },
    InboundMessageType.SUBMIT: {
        "type": "object",
        "properties": {
            "submission": {
                "type": "object",
                "properties": {"data": _OBJECT},
                "required": ["data"],
            },
        },
        "required": ["submission"],
    },
    InboundMessageType.ERROR: {
        "type": "object",
        "properties": {
            "error": {"type": ["string", "object"]},
            "errors": {"type": ["array", "object", "string"]},
        },
        "anyOf": [{"required": ["error"]}, {"required": ["errors"]}],
    },
    InboundMessageType.CHANGE: {
        "type": "object",
    },
    InboundMessageType.BEFORE_SUBMIT: {
        "type": "object",
        "properties": {"data": _OBJECT},
        "required": ["data"],
    },
    InboundMessageType.CURRENT_DATA: {
        "type": "object",
        "properties": {"data": _OBJECT},
        "required": ["data"],
    },
    InboundMessageType.VALIDATION_RESULT: {
        "type": "object",
        "properties": {
            "isValid": {"type": "boolean"},
            "errors": {"type": ["array", "null"]},
        },
        "required": ["isValid"],
    },
}

COMMAND_SCHEMAS: Dict[CommandType, Dict[str, Any]] = {
    CommandType.SUBMIT: {"type": "object"},
    CommandType.SET_DATA: {
        "type": "object",
        "properties": {"data": _OBJECT},
        "required": ["data"],
    },
    CommandType.GET_DATA: {"type": "object"},
    CommandType.VALIDATE: {"type": "object"},
}


def _envelope_schema(types: List[str]) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {"type": {"type": "string", "enum": types}},
        "required": ["type"],
    }


def _compile(schema: Dict[str, Any]) -> Draft7Validator:
    Draft7Validator.check_schema(schema)
    return Draft7Validator(schema)


_INBOUND_ENVELOPE = _compile(_envelope_schema([t.value for t in InboundMessageType]))
_INBOUND_VALIDATORS = {t: _compile(s) for t, s in INBOUND_SCHEMAS.items()}


def _load(raw: RawMessage) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise ParseError(f"Message is not valid JSON: {exc}", raw=raw) from exc
    if not isinstance(data, dict):
        raise ParseError("Message must be a JSON object", raw=raw)
    return data


def _check(validator: Draft7Validator, data: Dict[str, Any], raw: RawMessage) -> None:
    error = best_match(validator.iter_errors(data))
    if error is not None:
        location = ".".join(str(p) for p in error.absolute_path) or "message"
        raise ParseError(f"Invalid {location}: {error.message}", raw=raw)


@dataclass(frozen=True)
class _Envelope:
    """Shared serialization for inbound messages and outbound commands."""

    # Wire name -> attribute name for modelled keys
    wire_fields: ClassVar[Dict[str, str]] = {}

    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.type}
        for wire_name, attr in self.wire_fields.items():
            value = getattr(self, attr)
            if value is not None:
                result[wire_name] = copy.deepcopy(value)
        result.update(copy.deepcopy(self.extra))
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        known: FrozenSet[str] = frozenset(cls.wire_fields) | {"type"}
        kwargs = {attr: copy.deepcopy(data.get(wire)) for wire, attr in cls.wire_fields.items()}
        extra = {k: copy.deepcopy(v) for k, v in data.items() if k not in known}
        return cls(extra=extra, **kwargs)


@dataclass(frozen=True)
class InboundMessage(_Envelope):
    """Base class of messages posted by the renderer."""

    message_type: ClassVar[InboundMessageType]

    @property
    def type(self) -> str:
        return self.message_type.value


@dataclass(frozen=True)
class ReadyMessage(InboundMessage):
    """The renderer finished building the form."""
    message_type: ClassVar[InboundMessageType] = InboundMessageType.READY
    wire_fields: ClassVar[Dict[str, str]] = {"formId": "form_id"}

    form_id: str = ""


@dataclass(frozen=True)
class SubmitMessage(InboundMessage):
    """The user submitted the form; ``submission`` is the renderer's object."""
    message_type: ClassVar[InboundMessageType] = InboundMessageType.SUBMIT
    wire_fields: ClassVar[Dict[str, str]] = {"submission": "submission"}

    submission: Dict[str, Any] = field(default_factory=dict)

    @property
    def data(self) -> Dict[str, Any]:
        return self.submission.get("data") or {}


@dataclass(frozen=True)
class ErrorMessage(InboundMessage):
    """The renderer failed to load, or rejected a submission.

    Either a single ``error`` (string or object) or a list of ``errors``
    is present.
    """
    message_type: ClassVar[InboundMessageType] = InboundMessageType.ERROR
    wire_fields: ClassVar[Dict[str, str]] = {"error": "error", "errors": "errors"}

    error: Optional[Any] = None
    errors: Optional[Any] = None

    def _error_list(self) -> List[Any]:
        if self.errors is None:
            return []
        if isinstance(self.errors, list):
            return self.errors
        return [self.errors]

    @property
    def message(self) -> str:
        """Best human-readable message out of ``error`` / ``errors``."""
        if isinstance(self.error, str) and self.error:
            return self.error
        if isinstance(self.error, dict) and self.error.get("message"):
            return str(self.error["message"])
        for item in self._error_list():
            if isinstance(item, dict) and item.get("message"):
                return str(item["message"])
            if isinstance(item, str) and item:
                return item
        return "Form error occurred"

    def to_formio_error(self) -> FormioError:
        return FormioError(
            message=self.message,
            name="FormioError",
            details=[ErrorDetail.from_dict(item) for item in self._error_list()],
        )


@dataclass(frozen=True)
class ChangeMessage(InboundMessage):
    message_type: ClassVar[InboundMessageType] = InboundMessageType.CHANGE
    wire_fields: ClassVar[Dict[str, str]] = {"changed": "changed"}

    changed: Optional[Any] = None


@dataclass(frozen=True)
class BeforeSubmitMessage(InboundMessage):
    message_type: ClassVar[InboundMessageType] = InboundMessageType.BEFORE_SUBMIT
    wire_fields: ClassVar[Dict[str, str]] = {"data": "data"}

    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CurrentDataMessage(InboundMessage):
    """Answer to a getData command."""
    message_type: ClassVar[InboundMessageType] = InboundMessageType.CURRENT_DATA
    wire_fields: ClassVar[Dict[str, str]] = {"data": "data"}

    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ValidationResultMessage(InboundMessage):
    """Answer to a validate command."""
    message_type: ClassVar[InboundMessageType] = InboundMessageType.VALIDATION_RESULT
    wire_fields: ClassVar[Dict[str, str]] = {"isValid": "is_valid", "errors": "errors"}

    is_valid: bool = False
    errors: Optional[List[Any]] = None

    @property
    def details(self) -> List[ErrorDetail]:
        return [ErrorDetail.from_dict(e) for e in self.errors or []]


INBOUND_TYPES: Dict[InboundMessageType, Type[InboundMessage]] = {
    cls.message_type: cls
    for cls in (
        ReadyMessage,
        SubmitMessage,
        ErrorMessage,
        ChangeMessage,
        BeforeSubmitMessage,
        CurrentDataMessage,
        ValidationResultMessage,
    )
}


@dataclass(frozen=True)
class Command(_Envelope):
    """Base class of commands posted to the renderer."""

    command_type: ClassVar[CommandType]

    @property
    def type(self) -> str:
        return self.command_type.value


@dataclass(frozen=True)
class SubmitCommand(Command):
    command_type: ClassVar[CommandType] = CommandType.SUBMIT


@dataclass(frozen=True)
class SetDataCommand(Command):
    command_type: ClassVar[CommandType] = CommandType.SET_DATA
    wire_fields: ClassVar[Dict[str, str]] = {"data": "data"}

    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GetDataCommand(Command):
    command_type: ClassVar[CommandType] = CommandType.GET_DATA


@dataclass(frozen=True)
class ValidateCommand(Command):
    command_type: ClassVar[CommandType] = CommandType.VALIDATE


def decode_message(raw: RawMessage) -> InboundMessage:
    """Decode one inbound renderer message.

    Args:
        raw: JSON text (or an already parsed mapping)

    Returns:
        The typed message for the ``type`` discriminant

    Raises:
        ParseError: If the content is not JSON, not an object, has an
            unknown ``type``, or does not match the schema for its type
    """
    data = _load(raw)
    _check(_INBOUND_ENVELOPE, data, raw)
    message_type = InboundMessageType(data["type"])
    _check(_INBOUND_VALIDATORS[message_type], data, raw)
    return INBOUND_TYPES[message_type].from_dict(data)


_HOSTED_ENVELOPE = _compile({
    "type": "object",
    "properties": {"type": {"type": "string"}},
    "required": ["type"],
})


@dataclass(frozen=True)
class HostedMessage:
    """Message posted by an externally hosted form page.

    Hosted pages are not under this package's control, so any string
    ``type`` is accepted; ``known_type`` is None for types we do not act on.
    """
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def known_type(self) -> Optional[HostedMessageType]:
        try:
            return HostedMessageType(self.type)
        except ValueError:
            return None


def decode_hosted_message(raw: RawMessage) -> HostedMessage:
    """Decode a message from a hosted page.

    Raises:
        ParseError: If the content is not a JSON object with a string ``type``
    """
    data = _load(raw)
    _check(_HOSTED_ENVELOPE, data, raw)
    payload = {k: copy.deepcopy(v) for k, v in data.items() if k != "type"}
    return HostedMessage(type=data["type"], payload=payload)


__all__ = [
    "RawMessage",
    "INBOUND_SCHEMAS",
    "COMMAND_SCHEMAS",
    "InboundMessage",
    "ReadyMessage",
    "SubmitMessage",
    "ErrorMessage",
    "ChangeMessage",
    "BeforeSubmitMessage",
    "CurrentDataMessage",
    "ValidationResultMessage",
    "Command",
    "SubmitCommand",
    "SetDataCommand",
    "GetDataCommand",
    "ValidateCommand",
    "decode_message",
    "HostedMessage",
    "decode_hosted_message",
]
