import json
import os
from types import MappingProxyType

import pytest

from wcdiag.config.config_manager import (
    ConfigResolver,
    PrefixFormatter,
    TemplateFormatter,
    resolve_config,
    should_include,
)
from wcdiag.config.loaders.config_loader import ConfigLoader
from wcdiag.event_manager import EventManager, EventType
from wcdiag.models.types import (
    ConfigError,
    DEFAULT_SEVERITIES,
    EffectiveConfig,
    RuleName,
    Severity,
)

LAYERED_CONFIG = {
    "tagFormatter": "ui-{tag}",
    "diagnosticSeverity": {"unknownAttribute": "warning"},
    "libraries": {
        "shoelace": {
            "tagFormatter": {"from": "sl-", "to": "x-"},
            "typeSrc": "expandedType",
            "diagnosticSeverity": {"unknownAttribute": "error", "invalidBoolean": "off"},
        },
        "plain": {},
    },
}


def test_defaults_when_empty():
    resolved = resolve_config({})

    assert dict(resolved.root.diagnostic_severity) == DEFAULT_SEVERITIES
    assert resolved.root.type_source == "parsedType"
    assert resolved.root.format_tag("my-el") == "my-el"
    assert resolved.root.severity_for(RuleName.UNKNOWN_ELEMENT) is Severity.HINT
    assert resolved.root.severity_for(RuleName.DUPLICATE_ATTRIBUTE) is Severity.ERROR


def test_severities_merge_key_by_key():
    resolved = resolve_config(LAYERED_CONFIG)
    root = resolved.root
    shoelace = resolved.for_library("shoelace")

    assert root.severity_for(RuleName.UNKNOWN_ATTRIBUTE) is Severity.WARNING
    assert root.severity_for(RuleName.INVALID_BOOLEAN) is Severity.ERROR
    assert shoelace.severity_for(RuleName.UNKNOWN_ATTRIBUTE) is Severity.ERROR
    assert shoelace.severity_for(RuleName.DEPRECATED_ELEMENT) is Severity.WARNING
    assert not shoelace.is_enabled(RuleName.INVALID_BOOLEAN)
    # Libraries without their own map inherit the root's
    assert resolved.for_library("plain").severity_for(RuleName.UNKNOWN_ATTRIBUTE) is Severity.WARNING


def test_formatter_and_type_source_fall_back_to_root():
    resolved = resolve_config(LAYERED_CONFIG)

    assert resolved.for_library("shoelace").format_tag("sl-button") == "x-button"
    assert resolved.for_library("shoelace").type_source == "expandedType"
    assert resolved.for_library("plain").format_tag("badge") == "ui-badge"
    assert resolved.for_library("plain").type_source == "parsedType"
    assert resolved.for_library("missing") is resolved.root


def test_resolving_twice_gives_equal_snapshots():
    assert resolve_config(LAYERED_CONFIG) == resolve_config(LAYERED_CONFIG)


def test_shape_problems_are_collected():
    raw = {
        "include": "src/**",
        "diagnosticSeverity": {"unknownElement": "loud", "madeUpRule": "error"},
        "tagFormatter": 42,
        "libraries": {"ui": "not a mapping"},
    }

    with pytest.raises(ConfigError) as exc_info:
        resolve_config(raw)

    problems = exc_info.value.problems
    assert len(problems) == 5
    assert "include: 'src/**' is not of type 'array', 'null'" in problems
    assert any(p.startswith("diagnosticSeverity: 'madeUpRule' is not one of") for p in problems)
    assert any(p.startswith("diagnosticSeverity.unknownElement: 'loud' is not one of") for p in problems)
    assert any(p.startswith("libraries.ui: 'not a mapping' is not of type") for p in problems)
    assert any(p.startswith("config.tagFormatter must be") for p in problems)


@pytest.mark.parametrize("raw", [
    {"debug": "false"},
    {"libraries": {"ui": {"debug": "yes"}}},
    {"exclude": ["dist/**", 3]},
    {"libraries": {"ui": {"manifestSrc": ["a.json"]}}},
])
def test_scalar_types_are_enforced(raw):
    with pytest.raises(ConfigError):
        resolve_config(raw)


def test_empty_yaml_sections_are_accepted():
    resolved = resolve_config({"include": None, "diagnosticSeverity": None, "libraries": {"ui": None}})

    assert resolved.root.include == ()
    assert resolved.for_library("ui").library == "ui"
    assert resolved.root.debug is False


def test_tuples_and_read_only_mappings_are_accepted():
    resolved = resolve_config(MappingProxyType({
        "include": ("src/**",),
        "diagnosticSeverity": MappingProxyType({"unknownElement": "error"}),
    }))

    assert resolved.root.include == ("src/**",)
    assert resolved.root.severity_for(RuleName.UNKNOWN_ELEMENT) is Severity.ERROR


@pytest.mark.parametrize("value, tag, expected", [
    ("ui-{tag}", "badge", "ui-badge"),
    ({"from": "sl-", "to": "ui-"}, "sl-button", "ui-button"),
    ({"from": "sl-"}, "sl-button", "button"),
    ("os.path:basename", "a/b-c", "b-c"),
])
def test_tag_formatter_forms(value, tag, expected):
    resolved = resolve_config({"tagFormatter": value})
    assert resolved.root.format_tag(tag) == expected


def test_tag_formatter_callable_and_bad_import():
    resolved = resolve_config({"tagFormatter": str.upper})
    assert resolved.root.format_tag("my-el") == "MY-EL"

    with pytest.raises(ConfigError):
        resolve_config({"tagFormatter": "no_such_module_here:fmt"})


def test_formatters_compare_by_value():
    assert TemplateFormatter("ui-{tag}") == TemplateFormatter("ui-{tag}")
    assert PrefixFormatter("sl-", "ui-")("other-el") == "other-el"


def test_resolver_publishes_defaults_on_error():
    events = EventManager()
    errors = []
    events.subscribe(EventType.CONFIG_ERROR, lambda error: errors.append(error))
    resolver = ConfigResolver(".", event_manager=events)

    resolved = resolver.load({"include": 5})

    assert resolved.root == EffectiveConfig()
    assert isinstance(resolver.error, ConfigError)
    assert len(errors) == 1
    (diagnostic,) = resolver.config_diagnostics()
    assert diagnostic.rule is RuleName.INVALID_CONFIG
    assert diagnostic.severity is Severity.ERROR

    resolver.load({})
    assert resolver.error is None
    assert resolver.config_diagnostics() == []


def test_resolver_generation_and_invalidate():
    resolver = ConfigResolver(".")
    resolver.load({"debug": False})
    first = resolver.generation

    resolver.invalidate()
    assert resolver.is_stale
    resolver.load({"diagnosticSeverity": {"unknownElement": "error"}})

    assert resolver.generation == first + 1
    assert not resolver.is_stale
    assert resolver.current().root.severity_for(RuleName.UNKNOWN_ELEMENT) is Severity.ERROR


def test_loader_discovers_yaml_before_json(tmp_path):
    (tmp_path / "wc.config.yaml").write_text("diagnosticSeverity:\n  unknownElement: warning\n")
    (tmp_path / "wc.config.json").write_text(json.dumps({"debug": True}))

    loader = ConfigLoader(tmp_path)

    assert loader.find_config_file() == tmp_path / "wc.config.yaml"
    assert loader.load() == {"diagnosticSeverity": {"unknownElement": "warning"}}
    assert loader.load("wc.config.json") == {"debug": True}


def test_loader_errors(tmp_path):
    loader = ConfigLoader(tmp_path)
    assert loader.load() == {}

    with pytest.raises(ConfigError):
        loader.load("missing.yaml")

    (tmp_path / "wc.config.yaml").write_text("- just\n- a list\n")
    with pytest.raises(ConfigError):
        loader.load()

    (tmp_path / "broken.json").write_text("{not json")
    with pytest.raises(ConfigError):
        loader.load("broken.json")


def test_resolver_reads_config_file(tmp_path):
    (tmp_path / "wc.config.json").write_text(json.dumps({"include": ["src"], "exclude": 3}))
    resolver = ConfigResolver(tmp_path)

    resolver.load()

    assert resolver.error is not None
    assert resolver.error.path == str(tmp_path / "wc.config.json")


@pytest.fixture
def filtered():
    return EffectiveConfig(include=("src/**/*.html",), exclude=("**/node_modules/**",))


@pytest.mark.parametrize("relative, expected", [
    ("src/index.html", True),
    ("src/components/card/card.html", True),
    ("lib/index.html", False),
    ("src/index.js", False),
    ("src/node_modules/pkg/demo.html", False),
    ("packages/app/src/page.html", True),
])
def test_should_include(tmp_path, filtered, relative, expected):
    assert should_include(filtered, tmp_path / relative, tmp_path) is expected


def test_should_include_without_include_list(tmp_path):
    config = EffectiveConfig(exclude=("dist/**",))

    assert should_include(config, tmp_path / "anything" / "page.html", tmp_path)
    assert not should_include(config, tmp_path / "dist" / "page.html", tmp_path)
    assert not should_include(
        EffectiveConfig(exclude=(os.path.join(str(tmp_path), "*").replace(os.sep, "/"),)),
        tmp_path / "page.html",
        tmp_path,
    )


def test_loader_rejects_undecodable_file(tmp_path):
    (tmp_path / "wc.config.json").write_bytes(b'{"debug": "\xff\xfe"}')
    resolver = ConfigResolver(tmp_path)

    resolved = resolver.load()

    assert resolved.root == EffectiveConfig()
    assert resolver.error.path == str(tmp_path / "wc.config.json")
    assert "Failed to read configuration" in resolver.error.message
    assert len(resolver.config_diagnostics()) == 1
