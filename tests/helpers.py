"""Shared manifests and shortcuts for the test suite."""
import copy

from wcdiag.config.config_manager import resolve_config
from wcdiag.parsers.document import TextDocument
from wcdiag.schema.manifest_reader import read_manifest
from wcdiag.schema.schema_manager import SchemaIndex
from wcdiag.validation_manager import ValidationEngine

BADGE_MANIFEST = {
    "schemaVersion": "1.0.0",
    "modules": [
        {
            "kind": "javascript-module",
            "path": "src/badge.js",
            "declarations": [
                {
                    "kind": "class",
                    "name": "MyBadge",
                    "customElement": True,
                    "tagName": "my-badge",
                    "description": "A small status badge.",
                    "attributes": [
                        {"name": "size", "type": {"text": "'small' | 'large'"}},
                        {"name": "pill", "type": {"text": "boolean"}},
                        {"name": "count", "type": {"text": "number"}},
                        {"name": "label", "type": {"text": "string"}},
                        {"name": "variant", "type": {"text": "'primary' | string"}},
                        {"name": "tone", "type": {"text": "string"}, "deprecated": "Use variant instead."},
                    ],
                },
                {
                    "kind": "class",
                    "name": "OldCard",
                    "customElement": True,
                    "tagName": "old-card",
                    "deprecated": True,
                    "attributes": [],
                },
            ],
        }
    ],
}


def make_manifest(*tags, attributes=None):
    """Minimal manifest declaring the given tag names."""
    return {
        "schemaVersion": "1.0.0",
        "modules": [{
            "kind": "javascript-module",
            "path": "src/index.js",
            "declarations": [
                {
                    "kind": "class",
                    "customElement": True,
                    "tagName": tag,
                    "attributes": copy.deepcopy(attributes or []),
                }
                for tag in tags
            ],
        }],
    }


def diagnose(html, raw_config=None, manifest=None, library=None):
    """Validate html synchronously against a manifest and raw configuration."""
    resolved = resolve_config(raw_config or {})
    index = SchemaIndex(read_manifest(
        manifest or BADGE_MANIFEST,
        resolved.for_library(library),
        library,
    ))
    engine = ValidationEngine(schema_manager=None, config_resolver=None)
    return engine.validate(TextDocument("test.html", html), index, resolved)
