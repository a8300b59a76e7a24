"""Value types for form definitions, components and submissions.

Form definitions and submissions are owned by the form service; the client
treats them as immutable values once fetched. Each value keeps the raw
mapping it was parsed from, so ``to_dict()`` returns exactly what the service
sent (unknown keys included) and embedding a definition into the renderer
document never loses information.

Components form a tree of tagged variants keyed by ``type``. Known types are
looked up in COMPONENT_TYPES; anything else becomes an OpaqueComponent so a
new component type on the service side never breaks parsing.

Usage:
    >>> form = FormDefinition.from_dict({
    ...     "_id": "abc", "title": "Survey", "name": "survey", "path": "survey",
    ...     "components": [{"type": "textfield", "key": "name", "label": "Name"}],
    ... })
    >>> form.components[0]
    TextFieldComponent(type='textfield', key='name', label='Name', ...)
    >>> form.keys()
    ['name']
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Dict, FrozenSet, Iterator, List, Optional, Tuple, Type

from dateutil import parser as date_parser
from typing_extensions import NotRequired, TypedDict

from formio_bridge.types import SubmissionState

logger = logging.getLogger(__name__)

SubmissionData = Dict[str, Any]

# Keys understood by every component variant
BASE_FIELDS: FrozenSet[str] = frozenset({
    "type", "key", "label", "input", "required", "validate", "conditional",
    "hidden", "components", "placeholder", "description", "tooltip",
    "defaultValue", "tableView", "clearOnHide", "customClass", "properties",
    "logic", "customConditional", "calculateValue", "multiple",
})


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a service timestamp, returning None when absent or malformed."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return date_parser.isoparse(str(value))
    except (ValueError, OverflowError):
        logger.warning("Ignoring malformed timestamp %r", value)
        return None


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


@dataclass(frozen=True, repr=False)
class Component:
    """A single node in a form's component tree.

    Attributes:
        type: Discriminant, e.g. "textfield" or "panel"
        key: Data-bag field name, unique among siblings
        label: Display label
        input: Whether the component contributes a value to SubmissionData
        validate: Validation metadata (enforced by the service, not here)
        conditional: Simple visibility rule, if any
        hidden: Whether the component is hidden
        components: Nested child components (containers only)
        raw: The mapping this component was parsed from
    """
    type: str
    key: str
    label: str = ""
    input: bool = False
    validate: Dict[str, Any] = field(default_factory=dict)
    conditional: Optional[Dict[str, Any]] = None
    hidden: bool = False
    components: Tuple["Component", ...] = ()
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    # Variant-specific keys on top of BASE_FIELDS
    fields: ClassVar[FrozenSet[str]] = frozenset()

    @property
    def required(self) -> bool:
        """True when the component is marked required in either location."""
        return bool(self.raw.get("required") or self.validate.get("required"))

    @property
    def expected_fields(self) -> FrozenSet[str]:
        return BASE_FIELDS | self.fields

    @property
    def extra_fields(self) -> Dict[str, Any]:
        """Keys present in the payload but unknown to this variant."""
        known = self.expected_fields
        return {k: v for k, v in self.raw.items() if k not in known}

    def walk(self) -> Iterator["Component"]:
        """Yield this component and all descendants, depth-first."""
        yield self
        for child in self.components:
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        """Return the service payload for this component."""
        if self.raw:
            return copy.deepcopy(self.raw)
        result: Dict[str, Any] = {
            "type": self.type,
            "key": self.key,
            "label": self.label,
            "input": self.input,
        }
        if self.validate:
            result["validate"] = copy.deepcopy(self.validate)
        if self.conditional is not None:
            result["conditional"] = copy.deepcopy(self.conditional)
        if self.hidden:
            result["hidden"] = True
        if self.components:
            result["components"] = [c.to_dict() for c in self.components]
        return result

    @classmethod
    def _variant_kwargs(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        """Hook for variants to parse their own keys."""
        return {}

    @classmethod
    def _children(cls, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        children = data.get("components") or []
        return [c for c in children if isinstance(c, dict)]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Component":
        """Parse a component payload into its registered variant.

        Called on the base class this dispatches on ``type``; unknown
        types produce an OpaqueComponent.
        """
        if cls is Component:
            variant = COMPONENT_TYPES.get(str(data.get("type", "")), OpaqueComponent)
            return variant.from_dict(data)
        return cls(
            type=str(data.get("type", "")),
            key=str(data.get("key", "")),
            label=str(data.get("label") or ""),
            input=bool(data.get("input", False)),
            validate=dict(data.get("validate") or {}),
            conditional=data.get("conditional"),
            hidden=bool(data.get("hidden", False)),
            components=tuple(Component.from_dict(c) for c in cls._children(data)),
            raw=copy.deepcopy(data),
            **cls._variant_kwargs(data),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(type={self.type!r}, key={self.key!r}, label={self.label!r}, ...)"


COMPONENT_TYPES: Dict[str, Type[Component]] = {}


def register_component(*type_names: str):
    """Class decorator registering a Component variant for the given types."""
    def decorator(component_cls: Type[Component]) -> Type[Component]:
        for name in type_names:
            COMPONENT_TYPES[name] = component_cls
        return component_cls
    return decorator


@register_component("textfield", "email", "phoneNumber", "password", "url", "textarea")
@dataclass(frozen=True, repr=False)
class TextFieldComponent(Component):
    """Free-text inputs."""
    input_mask: Optional[str] = None
    rows: Optional[int] = None

    fields: ClassVar[FrozenSet[str]] = frozenset({
        "inputMask", "inputFormat", "inputType", "mask", "rows", "wysiwyg",
        "editor", "widget", "autoExpand",
    })

    @classmethod
    def _variant_kwargs(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {"input_mask": data.get("inputMask"), "rows": data.get("rows")}


@register_component("number", "currency")
@dataclass(frozen=True, repr=False)
class NumberComponent(Component):
    decimal_limit: Optional[int] = None

    fields: ClassVar[FrozenSet[str]] = frozenset({
        "delimiter", "requireDecimal", "decimalLimit", "currency",
    })

    @classmethod
    def _variant_kwargs(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {"decimal_limit": data.get("decimalLimit")}


@register_component("select", "radio", "selectboxes")
@dataclass(frozen=True, repr=False)
class ChoiceComponent(Component):
    """Components offering a fixed list of options.

    ``select`` keeps its options under ``data.values``; ``radio`` and
    ``selectboxes`` keep them under ``values``.
    """
    values: Tuple[Dict[str, Any], ...] = ()

    fields: ClassVar[FrozenSet[str]] = frozenset({
        "values", "data", "dataSrc", "valueProperty", "template", "widget",
        "inline", "optionsLabelPosition",
    })

    @classmethod
    def _variant_kwargs(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        values = data.get("values")
        if not values and isinstance(data.get("data"), dict):
            values = data["data"].get("values")
        return {"values": tuple(v for v in values or [] if isinstance(v, dict))}

    def option_values(self) -> List[Any]:
        return [v.get("value") for v in self.values]


@register_component("checkbox")
@dataclass(frozen=True, repr=False)
class CheckboxComponent(Component):
    fields: ClassVar[FrozenSet[str]] = frozenset({"inputType", "name", "value"})


@register_component("survey")
@dataclass(frozen=True, repr=False)
class SurveyComponent(Component):
    """Rating grid: one answer per question, chosen from ``values``."""
    questions: Tuple[Dict[str, Any], ...] = ()
    values: Tuple[Dict[str, Any], ...] = ()

    fields: ClassVar[FrozenSet[str]] = frozenset({"questions", "values"})

    @classmethod
    def _variant_kwargs(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "questions": tuple(q for q in data.get("questions") or [] if isinstance(q, dict)),
            "values": tuple(v for v in data.get("values") or [] if isinstance(v, dict)),
        }


@register_component("datetime", "day", "time")
@dataclass(frozen=True, repr=False)
class DateTimeComponent(Component):
    format: Optional[str] = None

    fields: ClassVar[FrozenSet[str]] = frozenset({
        "format", "datePicker", "timePicker", "enableDate", "enableTime", "widget",
    })

    @classmethod
    def _variant_kwargs(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {"format": data.get("format")}


@register_component("file")
@dataclass(frozen=True, repr=False)
class FileComponent(Component):
    storage: Optional[str] = None

    fields: ClassVar[FrozenSet[str]] = frozenset({
        "storage", "url", "options", "fileTypes", "filePattern", "fileMaxSize",
    })

    @classmethod
    def _variant_kwargs(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {"storage": data.get("storage")}


@register_component(
    "panel", "fieldset", "well", "container", "datagrid", "editgrid", "columns", "button",
)
@dataclass(frozen=True, repr=False)
class ContainerComponent(Component):
    """Layout and grouping components.

    ``columns`` nests its children one level deeper, under each column's
    ``components`` list; those are flattened into ``components`` here.
    """
    fields: ClassVar[FrozenSet[str]] = frozenset({
        "columns", "title", "theme", "collapsible", "legend", "action",
        "disableOnInvalid", "size", "block",
    })

    @classmethod
    def _children(cls, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        children = super()._children(data)
        for column in data.get("columns") or []:
            if isinstance(column, dict):
                children.extend(c for c in column.get("components") or [] if isinstance(c, dict))
        return children


@dataclass(frozen=True, repr=False)
class OpaqueComponent(Component):
    """Component of a type this client does not know about.

    The full payload is kept in ``raw`` and passed through unchanged.
    """

    @property
    def extra_fields(self) -> Dict[str, Any]:
        return {}


@dataclass(frozen=True)
class FormDefinition:
    """A form schema as stored by the form service.

    Attributes:
        id: Service identifier (``_id``)
        title: Display title
        name: Machine name
        path: URL path the form is served under
        type: "form" or "resource"
        display: Rendering mode ("form", "wizard", "pdf")
        components: Top-level components in order
        tags: Optional tags
        owner: Owner id, if any
        created: Creation timestamp
        modified: Last modification timestamp
        raw: The mapping this definition was parsed from
    """
    id: str
    title: str
    name: str
    path: str
    type: str = "form"
    display: str = "form"
    components: Tuple[Component, ...] = ()
    tags: Tuple[str, ...] = ()
    owner: Optional[str] = None
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def field_count(self) -> int:
        """Number of top-level components."""
        return len(self.components)

    def walk(self) -> Iterator[Component]:
        for component in self.components:
            yield from component.walk()

    def keys(self) -> List[str]:
        """Data keys of every input component in the tree."""
        return [c.key for c in self.walk() if c.input and c.key]

    def find(self, key: str) -> Optional[Component]:
        for component in self.walk():
            if component.key == key:
                return component
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Return the service payload for this definition."""
        if self.raw:
            return copy.deepcopy(self.raw)
        result: Dict[str, Any] = {
            "title": self.title,
            "name": self.name,
            "path": self.path,
            "type": self.type,
            "display": self.display,
            "components": [c.to_dict() for c in self.components],
        }
        if self.id:
            result["_id"] = self.id
        if self.tags:
            result["tags"] = list(self.tags)
        if self.owner is not None:
            result["owner"] = self.owner
        if self.created is not None:
            result["created"] = _format_timestamp(self.created)
        if self.modified is not None:
            result["modified"] = _format_timestamp(self.modified)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormDefinition":
        return cls(
            id=str(data.get("_id") or data.get("id") or ""),
            title=str(data.get("title") or ""),
            name=str(data.get("name") or data.get("machineName") or ""),
            path=str(data.get("path") or ""),
            type=str(data.get("type") or "form"),
            display=str(data.get("display") or "form"),
            components=tuple(
                Component.from_dict(c) for c in data.get("components") or [] if isinstance(c, dict)
            ),
            tags=tuple(str(t) for t in data.get("tags") or []),
            owner=data.get("owner"),
            created=parse_timestamp(data.get("created")),
            modified=parse_timestamp(data.get("modified")),
            raw=copy.deepcopy(data),
        )


@dataclass(frozen=True)
class Submission:
    """A stored instance of user-entered data tied to one form.

    Attributes:
        id: Service identifier (``_id``)
        form: Identifier of the owning FormDefinition
        state: draft or submitted
        data: The SubmissionData payload
        created: Creation timestamp
        modified: Last modification timestamp
        owner: Owner id, if any
        metadata: Service-side metadata
        raw: The mapping this submission was parsed from
    """
    id: str
    form: str
    state: SubmissionState = SubmissionState.SUBMITTED
    data: SubmissionData = field(default_factory=dict)
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    owner: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_draft(self) -> bool:
        return self.state == SubmissionState.DRAFT

    def to_dict(self) -> Dict[str, Any]:
        if self.raw:
            return copy.deepcopy(self.raw)
        result: Dict[str, Any] = {
            "_id": self.id,
            "form": self.form,
            "state": self.state.value,
            "data": copy.deepcopy(self.data),
        }
        if self.created is not None:
            result["created"] = _format_timestamp(self.created)
        if self.modified is not None:
            result["modified"] = _format_timestamp(self.modified)
        if self.owner is not None:
            result["owner"] = self.owner
        if self.metadata:
            result["metadata"] = copy.deepcopy(self.metadata)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Submission":
        try:
            state = SubmissionState(data.get("state") or SubmissionState.SUBMITTED.value)
        except ValueError:
            logger.warning("Unknown submission state %r, treating as submitted", data.get("state"))
            state = SubmissionState.SUBMITTED
        return cls(
            id=str(data.get("_id") or data.get("id") or ""),
            form=str(data.get("form") or ""),
            state=state,
            data=copy.deepcopy(data.get("data") or {}),
            created=parse_timestamp(data.get("created")),
            modified=parse_timestamp(data.get("modified")),
            owner=data.get("owner"),
            metadata=copy.deepcopy(data.get("metadata") or {}),
            raw=copy.deepcopy(data),
        )


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful login."""
    token: str
    user: Dict[str, Any] = field(default_factory=dict)


class HealthStatus(TypedDict):
    """Body of ``GET /health``."""
    status: str
    version: NotRequired[str]


__all__ = [
    "SubmissionData",
    "Component",
    "COMPONENT_TYPES",
    "register_component",
    "TextFieldComponent",
    "NumberComponent",
    "ChoiceComponent",
    "CheckboxComponent",
    "SurveyComponent",
    "DateTimeComponent",
    "FileComponent",
    "ContainerComponent",
    "OpaqueComponent",
    "FormDefinition",
    "Submission",
    "LoginResult",
    "HealthStatus",
    "parse_timestamp",
]
