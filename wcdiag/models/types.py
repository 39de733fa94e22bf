# wcdiag/models/types.py

from typing import Dict, Optional, Any, List, Tuple, FrozenSet, Mapping, Callable
from dataclasses import dataclass, field
from types import MappingProxyType
from enum import Enum


class Severity(Enum):
    """Diagnostic severity levels as written in configuration."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"
    OFF = "off"

    @property
    def lsp_code(self) -> Optional[int]:
        """Numeric severity used by language-server clients."""
        return {
            Severity.ERROR: 1,
            Severity.WARNING: 2,
            Severity.INFO: 3,
            Severity.HINT: 4,
        }.get(self)

    @classmethod
    def is_valid(cls, value: Any) -> bool:
        return isinstance(value, str) and value in cls._value2member_map_


class RuleName(Enum):
    """Diagnostic kinds produced by the engine."""
    UNKNOWN_ELEMENT = "unknownElement"
    UNKNOWN_ATTRIBUTE = "unknownAttribute"
    INVALID_BOOLEAN = "invalidBoolean"
    INVALID_NUMBER = "invalidNumber"
    INVALID_ATTRIBUTE_VALUE = "invalidAttributeValue"
    DEPRECATED_ELEMENT = "deprecatedElement"
    DEPRECATED_ATTRIBUTE = "deprecatedAttribute"
    DUPLICATE_ATTRIBUTE = "duplicateAttribute"
    # Not configurable; reported once when configuration fails to load
    INVALID_CONFIG = "invalidConfig"

    @classmethod
    def configurable(cls) -> Tuple["RuleName", ...]:
        return tuple(rule for rule in cls if rule is not cls.INVALID_CONFIG)

    @classmethod
    def from_string(cls, name: str) -> "RuleName":
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown rule name: {name}")


DEFAULT_SEVERITIES: Dict[RuleName, Severity] = {
    RuleName.INVALID_BOOLEAN: Severity.ERROR,
    RuleName.INVALID_NUMBER: Severity.ERROR,
    RuleName.INVALID_ATTRIBUTE_VALUE: Severity.ERROR,
    RuleName.DEPRECATED_ATTRIBUTE: Severity.WARNING,
    RuleName.DEPRECATED_ELEMENT: Severity.WARNING,
    RuleName.DUPLICATE_ATTRIBUTE: Severity.ERROR,
    RuleName.UNKNOWN_ELEMENT: Severity.HINT,
    RuleName.UNKNOWN_ATTRIBUTE: Severity.HINT,
}

DEFAULT_TYPE_SOURCE = "parsedType"


@dataclass(frozen=True)
class Position:
    """Zero-based line/character position."""
    line: int
    character: int

    def to_dict(self) -> Dict[str, int]:
        return {"line": self.line, "character": self.character}


@dataclass(frozen=True)
class Range:
    """Half-open source range."""
    start: Position
    end: Position

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}


class TypeKind(Enum):
    """Resolved kind governing value validation for one attribute."""
    BOOLEAN = "boolean"
    NUMBER = "number"
    ENUM = "enum"
    OPEN_STRING = "string"
    UNCHECKED = "unchecked"


@dataclass(frozen=True)
class TypeDescriptor:
    """Closed variant for attribute value types, resolved at load time."""
    kind: TypeKind
    literals: Tuple[str, ...] = ()

    @property
    def is_checked(self) -> bool:
        return self.kind not in (TypeKind.OPEN_STRING, TypeKind.UNCHECKED)

    def allows(self, value: str) -> bool:
        """Check membership for enumerated literal sets."""
        if self.kind is not TypeKind.ENUM:
            return True
        return value in self.literals

    def display(self) -> str:
        if self.kind is TypeKind.ENUM:
            return " | ".join(f"'{literal}'" for literal in self.literals)
        return self.kind.value


OPEN_STRING = TypeDescriptor(kind=TypeKind.OPEN_STRING)


@dataclass(frozen=True)
class AttributeDefinition:
    """Schema definition of one attribute."""
    name: str
    type: TypeDescriptor = OPEN_STRING
    type_text: str = ""
    deprecated: bool = False
    deprecation_message: Optional[str] = None
    default: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class ElementDefinition:
    """Schema definition of one custom element, keyed by its formatted name."""
    tag_name: str
    raw_tag_name: str
    library: Optional[str] = None
    description: str = ""
    deprecated: bool = False
    deprecation_message: Optional[str] = None
    attributes: Tuple[AttributeDefinition, ...] = ()
    _attribute_map: Mapping[str, AttributeDefinition] = field(
        default_factory=lambda: MappingProxyType({}), init=False, repr=False, compare=False
    )

    def __post_init__(self):
        object.__setattr__(
            self,
            "_attribute_map",
            MappingProxyType({attr.name: attr for attr in self.attributes}),
        )

    def get_attribute(self, name: str) -> Optional[AttributeDefinition]:
        return self._attribute_map.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self._attribute_map

    @property
    def attribute_names(self) -> Tuple[str, ...]:
        return tuple(attr.name for attr in self.attributes)


@dataclass(frozen=True)
class EffectiveConfig:
    """Resolved configuration for the workspace root or one library."""
    library: Optional[str] = None
    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()
    diagnostic_severity: Mapping[RuleName, Severity] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_SEVERITIES))
    )
    tag_formatter: Optional[Callable[[str], str]] = None
    type_source: str = DEFAULT_TYPE_SOURCE
    manifest_src: Optional[str] = None
    debug: bool = False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EffectiveConfig):
            return NotImplemented
        return (
            self.library == other.library
            and self.include == other.include
            and self.exclude == other.exclude
            and dict(self.diagnostic_severity) == dict(other.diagnostic_severity)
            and self.tag_formatter == other.tag_formatter
            and self.type_source == other.type_source
            and self.manifest_src == other.manifest_src
            and self.debug == other.debug
        )

    def __hash__(self) -> int:
        return hash((
            self.library,
            self.include,
            self.exclude,
            tuple(sorted((rule.value, sev.value) for rule, sev in self.diagnostic_severity.items())),
            self.type_source,
            self.manifest_src,
        ))

    def severity_for(self, rule: RuleName) -> Severity:
        return self.diagnostic_severity.get(rule, DEFAULT_SEVERITIES.get(rule, Severity.ERROR))

    def is_enabled(self, rule: RuleName) -> bool:
        return self.severity_for(rule) is not Severity.OFF

    def format_tag(self, tag_name: str) -> str:
        if self.tag_formatter is None:
            return tag_name
        return self.tag_formatter(tag_name)


@dataclass(frozen=True)
class SchemaSource:
    """A declared location providing element definitions for one library."""
    library: Optional[str]
    location: Optional[str] = None
    manifest: Optional[Mapping[str, Any]] = field(default=None, compare=False)
    base_path: Optional[str] = None
    config: EffectiveConfig = field(default_factory=EffectiveConfig)

    @property
    def label(self) -> str:
        origin = self.location or "<inline>"
        return f"{self.library or 'workspace'} ({origin})"

    @property
    def is_remote(self) -> bool:
        return bool(self.location) and self.location.lower().startswith(
            ("http://", "https://", "file://")
        )


@dataclass(frozen=True)
class AttributeOccurrence:
    """One attribute as written on an element's opening tag."""
    name: str
    value: Optional[str]
    name_range: Range
    value_range: Optional[Range] = None
    full_range: Optional[Range] = None
    quote: Optional[str] = None
    binding_prefix: Optional[str] = None

    @property
    def is_bound(self) -> bool:
        return self.binding_prefix is not None


class SuppressionScope(Enum):
    WHOLE_FILE = "whole-file"
    REST_OF_FILE = "rest-of-file"
    NEXT_ELEMENT = "next-element"


@dataclass(frozen=True)
class SuppressionDirective:
    """An author-written comment silencing some or all rules over a line range."""
    scope: SuppressionScope
    rules: FrozenSet[str]
    first_line: int
    last_line: Optional[int] = None

    @property
    def applies_to_all(self) -> bool:
        return not self.rules

    def governs(self, line: int) -> bool:
        if line < self.first_line:
            return False
        return self.last_line is None or line <= self.last_line

    def matches(self, rule: str, line: int) -> bool:
        return self.governs(line) and (self.applies_to_all or rule in self.rules)


@dataclass(frozen=True)
class Diagnostic:
    """A single reported problem."""
    rule: RuleName
    message: str
    severity: Severity
    range: Range
    source: str = "wcdiag"

    def to_dict(self) -> Dict[str, Any]:
        """Render as a language-server style record."""
        return {
            "range": self.range.to_dict(),
            "message": self.message,
            "severity": self.severity.lsp_code,
            "code": self.rule.value,
            "source": self.source,
        }


class ProcessingPhase(Enum):
    """Phases of engine work, used for logging."""
    CONFIG = "config"
    SCHEMA_LOAD = "schema_load"
    VALIDATION = "validation"
    RELOAD = "reload"


class DiagnosticsError(Exception):
    """Base class for engine errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigError(DiagnosticsError):
    """Malformed configuration shape."""

    def __init__(self, problems: List[str], path: Optional[str] = None):
        self.problems = list(problems)
        self.path = path
        where = f" in {path}" if path else ""
        super().__init__(
            f"Invalid configuration{where}: " + "; ".join(self.problems),
            context={"path": path},
        )


class SchemaSourceError(DiagnosticsError):
    """Fetch or parse failure for one schema source."""

    def __init__(self, source: SchemaSource, reason: str):
        self.source = source
        super().__init__(
            f"Could not load schema source {source.label}: {reason}",
            context={"library": source.library, "location": source.location},
        )


class ParseRecoveryError(DiagnosticsError):
    """Malformed attribute fragment; skipped by the attribute parser."""

    def __init__(self, message: str, offset: int):
        self.offset = offset
        super().__init__(message, context={"offset": offset})
