"""Configuration resolution: validation, layering and published snapshots."""
from typing import Dict, Optional, Any, Union, List, Mapping, Callable, Tuple
from dataclasses import dataclass, field
from types import MappingProxyType
from pathlib import Path
from fnmatch import fnmatchcase
import importlib
import os

from jsonschema import Draft7Validator, validators

from .loaders.config_loader import ConfigLoader
from ..event_manager import EventManager, EventType
from ..utils.cache import SnapshotStore
from ..utils.logger import DiagnosticsLogger, log_processing_phase
from ..models.types import (
    ConfigError,
    Diagnostic,
    EffectiveConfig,
    Position,
    ProcessingPhase,
    Range,
    RuleName,
    Severity,
    DEFAULT_SEVERITIES,
    DEFAULT_TYPE_SOURCE,
)

KNOWN_KEYS = {
    "include", "exclude", "manifestSrc", "tagFormatter", "typeSrc",
    "diagnosticSeverity", "debug", "libraries",
}
LIBRARY_KEYS = {"manifestSrc", "tagFormatter", "typeSrc", "diagnosticSeverity", "debug"}


@dataclass(frozen=True)
class TemplateFormatter:
    """Tag formatter from a template such as 'ui-{tag}'."""
    template: str

    def __call__(self, tag_name: str) -> str:
        return self.template.replace("{tag}", tag_name)


@dataclass(frozen=True)
class PrefixFormatter:
    """Tag formatter replacing one leading prefix with another."""
    from_prefix: str
    to_prefix: str = ""

    def __call__(self, tag_name: str) -> str:
        if self.from_prefix and tag_name.startswith(self.from_prefix):
            return self.to_prefix + tag_name[len(self.from_prefix):]
        return tag_name


@dataclass(frozen=True)
class ResolvedConfig:
    """Root configuration plus each library's layered configuration."""
    root: EffectiveConfig = field(default_factory=EffectiveConfig)
    libraries: Mapping[str, EffectiveConfig] = field(
        default_factory=lambda: MappingProxyType({})
    )

    __hash__ = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResolvedConfig):
            return NotImplemented
        return self.root == other.root and dict(self.libraries) == dict(other.libraries)

    def for_library(self, library: Optional[str]) -> EffectiveConfig:
        if library is None:
            return self.root
        return self.libraries.get(library, self.root)

    @property
    def library_names(self) -> Tuple[str, ...]:
        return tuple(self.libraries)


def _resolve_tag_formatter(value: Any, where: str, problems: List[str]) -> Optional[Callable[[str], str]]:
    if value is None:
        return None
    if callable(value):
        return value
    if isinstance(value, str):
        if "{tag}" in value:
            return TemplateFormatter(value)
        if ":" in value:
            module_name, _, attr = value.partition(":")
            try:
                formatter = getattr(importlib.import_module(module_name), attr)
            except (ImportError, AttributeError) as e:
                problems.append(f"{where}.tagFormatter could not import '{value}': {str(e)}")
                return None
            if not callable(formatter):
                problems.append(f"{where}.tagFormatter '{value}' is not callable")
                return None
            return formatter
    if isinstance(value, Mapping) and "from" in value and set(value) <= {"from", "to"}:
        return PrefixFormatter(str(value["from"]), str(value.get("to", "")))

    problems.append(
        f"{where}.tagFormatter must be a callable, a 'module:function' reference, "
        "a template containing '{tag}', or a {from, to} prefix mapping"
    )
    return None


def _is_array(checker, instance) -> bool:
    return isinstance(instance, (list, tuple))


def _is_object(checker, instance) -> bool:
    return isinstance(instance, Mapping)


# Inline configuration may arrive as tuples or read-only mappings
ConfigValidator = validators.extend(
    Draft7Validator,
    type_checker=Draft7Validator.TYPE_CHECKER.redefine_many({
        "array": _is_array,
        "object": _is_object,
    }),
)

_PATTERNS_SCHEMA = {"type": ["array", "null"], "items": {"type": "string"}}
_SEVERITY_SCHEMA = {
    "type": ["object", "null"],
    "propertyNames": {"enum": [rule.value for rule in RuleName.configurable()]},
    "additionalProperties": {"enum": [level.value for level in Severity]},
}
_LIBRARY_SCHEMA = {
    "type": ["object", "null"],
    "properties": {
        "manifestSrc": {"type": "string"},
        "typeSrc": {"type": "string"},
        "diagnosticSeverity": _SEVERITY_SCHEMA,
        "debug": {"type": "boolean"},
    },
}
CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "include": _PATTERNS_SCHEMA,
        "exclude": _PATTERNS_SCHEMA,
        "manifestSrc": {"type": "string"},
        "typeSrc": {"type": "string"},
        "diagnosticSeverity": _SEVERITY_SCHEMA,
        "debug": {"type": "boolean"},
        "libraries": {"type": ["object", "null"], "additionalProperties": _LIBRARY_SCHEMA},
    },
}


def _severity_map(value: Optional[Mapping[str, str]]) -> Dict[RuleName, Severity]:
    return {RuleName(rule): Severity(level) for rule, level in (value or {}).items()}


def _schema_problems(raw: Mapping[str, Any]) -> List[str]:
    """Every JSON schema violation in raw, as 'path: message'."""
    errors = sorted(
        ConfigValidator(CONFIG_SCHEMA).iter_errors(raw),
        key=lambda error: [str(part) for part in error.absolute_path],
    )
    problems = []
    for error in errors:
        where = ".".join(str(part) for part in error.absolute_path) or "config"
        problems.append(f"{where}: {error.message}")
    return problems


def resolve_config(raw: Optional[Mapping[str, Any]], logger: Optional[DiagnosticsLogger] = None) -> ResolvedConfig:
    """
    Validate a raw configuration mapping and layer it over the defaults.

    Severity maps merge key by key: defaults < root < library. The tag
    formatter and type source take the library's value, then the root's,
    then the default.

    Args:
        raw: Raw configuration mapping (None means empty)
        logger: Optional logger for non-fatal notes

    Returns:
        ResolvedConfig: Immutable resolved configuration

    Raises:
        ConfigError: If any part of the configuration has the wrong shape
    """
    logger = logger or DiagnosticsLogger(name=__name__)
    raw = raw or {}

    if not isinstance(raw, Mapping):
        raise ConfigError(["Configuration root must be a mapping"])

    for key in raw:
        if key not in KNOWN_KEYS:
            logger.warning(f"Ignoring unknown configuration key '{key}'")

    problems = _schema_problems(raw)
    root_formatter = _resolve_tag_formatter(raw.get("tagFormatter"), "config", problems)

    raw_libraries = raw.get("libraries")
    library_formatters: Dict[str, Optional[Callable[[str], str]]] = {}
    if isinstance(raw_libraries, Mapping):
        for name, library_raw in raw_libraries.items():
            if not isinstance(library_raw, Mapping):
                continue
            for key in library_raw:
                if key not in LIBRARY_KEYS:
                    logger.warning(f"Ignoring unknown key '{key}' in libraries.{name}")
            library_formatters[str(name)] = _resolve_tag_formatter(
                library_raw.get("tagFormatter"), f"libraries.{name}", problems
            )

    if problems:
        raise ConfigError(problems)

    include = tuple(raw.get("include") or ())
    exclude = tuple(raw.get("exclude") or ())
    root_type_source = raw.get("typeSrc") or DEFAULT_TYPE_SOURCE
    debug = raw.get("debug", False)

    root_severity_map = {
        **DEFAULT_SEVERITIES,
        **_severity_map(raw.get("diagnosticSeverity")),
    }
    root = EffectiveConfig(
        library=None,
        include=include,
        exclude=exclude,
        diagnostic_severity=MappingProxyType(root_severity_map),
        tag_formatter=root_formatter,
        type_source=root_type_source,
        manifest_src=raw.get("manifestSrc"),
        debug=debug,
    )

    libraries: Dict[str, EffectiveConfig] = {}
    for name, library_raw in (raw_libraries or {}).items():
        library_raw = library_raw or {}
        library_formatter = library_formatters.get(str(name))
        libraries[str(name)] = EffectiveConfig(
            library=str(name),
            include=include,
            exclude=exclude,
            diagnostic_severity=MappingProxyType({
                **root_severity_map,
                **_severity_map(library_raw.get("diagnosticSeverity")),
            }),
            tag_formatter=library_formatter if library_formatter is not None else root_formatter,
            type_source=library_raw.get("typeSrc") or root_type_source,
            manifest_src=library_raw.get("manifestSrc"),
            debug=library_raw.get("debug", debug),
        )

    logger.debug(
        f"Resolved configuration: include={list(include)}, exclude={list(exclude)}, "
        f"libraries={list(libraries)}, debug={debug}"
    )
    return ResolvedConfig(root=root, libraries=MappingProxyType(libraries))


def _glob_match(candidate: str, pattern: str) -> bool:
    if fnmatchcase(candidate, pattern):
        return True
    # '**/' may also stand for zero directories
    return "**/" in pattern and fnmatchcase(candidate, pattern.replace("**/", ""))


def should_include(
    config: EffectiveConfig,
    file_path: Union[str, Path],
    workspace_root: Optional[Union[str, Path]] = None
) -> bool:
    """
    Decide whether a file is validated, based on include/exclude globs.

    Patterns are tried against the absolute path, the workspace-relative
    path, and every trailing segment run of the relative path, so
    'src/**/*.html' also matches inside nested packages.
    """
    root = os.path.abspath(workspace_root or os.getcwd())
    absolute = os.path.abspath(file_path)
    abs_norm = Path(absolute).as_posix()
    relative = Path(os.path.relpath(absolute, root)).as_posix()
    segments = relative.split("/")
    candidates = [abs_norm, relative] + ["/".join(segments[i:]) for i in range(1, len(segments))]

    def matches(patterns: Tuple[str, ...]) -> bool:
        return any(_glob_match(candidate, pattern) for pattern in patterns for candidate in candidates)

    if not config.include:
        return not matches(config.exclude)
    if not matches(config.include):
        return False
    return not matches(config.exclude)


class ConfigResolver:
    """
    Configuration management facade.
    Loads raw configuration, resolves it and publishes immutable snapshots.
    """

    def __init__(
        self,
        workspace_root: Union[str, Path],
        event_manager: Optional[EventManager] = None,
        config_path: Optional[Union[str, Path]] = None,
        loader: Optional[ConfigLoader] = None,
        logger: Optional[DiagnosticsLogger] = None
    ):
        self.workspace_root = Path(workspace_root)
        self.config_path = Path(config_path) if config_path else None
        self.event_manager = event_manager or EventManager()
        self.loader = loader or ConfigLoader(self.workspace_root)
        self.logger = logger or DiagnosticsLogger(name=__name__)

        self._store: SnapshotStore[ResolvedConfig] = SnapshotStore("config", ResolvedConfig())
        self.error: Optional[ConfigError] = None

    @property
    def generation(self) -> int:
        return self._store.generation

    @property
    def is_stale(self) -> bool:
        return self._store.is_stale

    def current(self) -> ResolvedConfig:
        """Current resolved configuration snapshot; never mutate it."""
        return self._store.current() or ResolvedConfig()

    def for_library(self, library: Optional[str]) -> EffectiveConfig:
        return self.current().for_library(library)

    def invalidate(self) -> None:
        self._store.invalidate()
        self.event_manager.emit(EventType.CACHE_INVALIDATE, target="config")

    @log_processing_phase(ProcessingPhase.CONFIG)
    def load(self, source: Optional[Union[Mapping[str, Any], str, Path]] = None) -> ResolvedConfig:
        """
        Load and publish configuration.

        Args:
            source: Raw mapping, explicit file path, or None to use the
                configured path or discovery in the workspace root

        Returns:
            ResolvedConfig: The newly published snapshot (defaults on error)
        """
        generation = self._store.next_generation()
        try:
            if isinstance(source, Mapping):
                raw = source
            else:
                raw = self.loader.load(source or self.config_path)
            resolved = resolve_config(raw, logger=self.logger)
            self.error = None
        except ConfigError as e:
            if e.path is None and self.loader.last_loaded_path is not None and not isinstance(source, Mapping):
                e.path = str(self.loader.last_loaded_path)
            self.logger.log_error(e, ProcessingPhase.CONFIG)
            self.error = e
            resolved = ResolvedConfig()
            self.event_manager.emit(EventType.CONFIG_ERROR, error=e)

        self._store.publish(resolved, generation)
        DiagnosticsLogger.set_debug(resolved.root.debug)
        self.event_manager.emit(EventType.CONFIG_UPDATE, config=resolved)
        return resolved

    def config_diagnostics(self) -> List[Diagnostic]:
        """A single diagnostic describing the last configuration error, if any."""
        if self.error is None:
            return []
        origin = Position(line=0, character=0)
        return [Diagnostic(
            rule=RuleName.INVALID_CONFIG,
            message=self.error.message,
            severity=Severity.ERROR,
            range=Range(start=origin, end=origin),
        )]

    def is_config_file(self, path: Union[str, Path]) -> bool:
        path = Path(path)
        if self.config_path is not None and path.name == self.config_path.name:
            return True
        return self.loader.is_config_file(path)
