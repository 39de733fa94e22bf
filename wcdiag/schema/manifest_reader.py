# wcdiag/schema/manifest_reader.py

import re
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..models.types import (
    AttributeDefinition,
    EffectiveConfig,
    ElementDefinition,
    TypeDescriptor,
    TypeKind,
    OPEN_STRING,
)

logger = logging.getLogger(__name__)

BOOLEAN = TypeDescriptor(kind=TypeKind.BOOLEAN)
NUMBER = TypeDescriptor(kind=TypeKind.NUMBER)
UNCHECKED = TypeDescriptor(kind=TypeKind.UNCHECKED)

NULLISH_MEMBERS = frozenset({"undefined", "null"})
NUMERIC_LITERAL = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_OPENERS = {"(": ")", "[": "]", "{": "}", "<": ">"}


def split_union(type_text: str) -> List[str]:
    """Split a type expression on top-level '|', respecting quotes and brackets."""
    members: List[str] = []
    depth = 0
    quote: Optional[str] = None
    current = []

    for char in type_text:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in ("'", '"', "`"):
            quote = char
        elif char in _OPENERS:
            depth += 1
        elif char in _OPENERS.values() and depth > 0:
            depth -= 1
        elif char == "|" and depth == 0:
            members.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    members.append("".join(current).strip())
    return [member for member in members if member]


def _strip_parens(text: str) -> str:
    text = text.strip()
    while text.startswith("(") and text.endswith(")"):
        inner = text[1:-1].strip()
        # '(a) | (b)' is not wrapped as a whole
        depth = 0
        balanced = True
        for char in inner:
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
                if depth < 0:
                    balanced = False
                    break
        if not balanced:
            break
        text = inner
    return text


def _literal_value(member: str) -> Optional[str]:
    if len(member) >= 2 and member[0] == member[-1] and member[0] in ("'", '"', "`"):
        # `${number}px` is a pattern, not a fixed value
        if member[0] == "`" and "${" in member:
            return None
        return member[1:-1]
    if NUMERIC_LITERAL.match(member):
        return member
    return None


def parse_type_descriptor(type_text: Optional[str]) -> TypeDescriptor:
    """
    Resolve a declared type expression into a TypeDescriptor.

    Args:
        type_text: Type text as written in the manifest (may be empty)

    Returns:
        TypeDescriptor: boolean, number, enum, open string or unchecked
    """
    if not type_text or not type_text.strip():
        return OPEN_STRING

    text = _strip_parens(type_text)
    members = [m for m in (_strip_parens(m) for m in split_union(text)) if m not in NULLISH_MEMBERS]

    if not members:
        return OPEN_STRING
    if len(members) == 1:
        member = members[0]
        if member == "boolean":
            return BOOLEAN
        if member == "number":
            return NUMBER
        if member == "string":
            return OPEN_STRING

    literals: List[str] = []
    for member in members:
        value = _literal_value(member)
        if value is None:
            return UNCHECKED
        if value not in literals:
            literals.append(value)
    return TypeDescriptor(kind=TypeKind.ENUM, literals=tuple(literals))


def _deprecation(value: Any) -> Tuple[bool, Optional[str]]:
    if isinstance(value, str):
        return True, value.strip() or None
    return bool(value), None


def resolve_type_text(attribute: Mapping[str, Any], type_source: str) -> str:
    """Pick the type text from the configured property, falling back to 'type'."""
    preferred = attribute.get(type_source)
    if isinstance(preferred, Mapping) and preferred.get("text"):
        return str(preferred["text"])
    declared = attribute.get("type")
    if isinstance(declared, Mapping) and declared.get("text"):
        return str(declared["text"])
    return ""


def read_attribute(attribute: Mapping[str, Any], type_source: str) -> Optional[AttributeDefinition]:
    name = attribute.get("name")
    if not isinstance(name, str) or not name:
        return None

    type_text = resolve_type_text(attribute, type_source)
    deprecated, message = _deprecation(attribute.get("deprecated"))
    default = attribute.get("default")

    return AttributeDefinition(
        name=name,
        type=parse_type_descriptor(type_text),
        type_text=type_text,
        deprecated=deprecated,
        deprecation_message=message,
        default=str(default) if default is not None else None,
        description=str(attribute.get("description") or attribute.get("summary") or ""),
    )


def _iter_declarations(manifest: Mapping[str, Any]):
    modules = manifest.get("modules")
    if not isinstance(modules, list):
        return
    for module in modules:
        if not isinstance(module, Mapping):
            continue
        declarations = module.get("declarations")
        if not isinstance(declarations, list):
            continue
        for declaration in declarations:
            if isinstance(declaration, Mapping):
                yield declaration


def read_manifest(
    manifest: Mapping[str, Any],
    config: EffectiveConfig,
    library: Optional[str] = None
) -> Dict[str, ElementDefinition]:
    """
    Extract element definitions from a Custom Elements Manifest.

    The tag formatter of config is applied exactly once to each tag name,
    and attribute types are resolved with config's type source.

    Args:
        manifest: Decoded manifest JSON
        config: Effective configuration of the owning library
        library: Library name recorded on each definition

    Returns:
        Dict[str, ElementDefinition]: Definitions keyed by formatted tag name
    """
    elements: Dict[str, ElementDefinition] = {}

    for declaration in _iter_declarations(manifest):
        raw_tag = declaration.get("tagName")
        if not isinstance(raw_tag, str) or not raw_tag:
            continue
        if declaration.get("customElement") is False:
            continue

        attributes = []
        seen = set()
        for attribute in declaration.get("attributes") or []:
            if not isinstance(attribute, Mapping):
                continue
            definition = read_attribute(attribute, config.type_source)
            if definition is None or definition.name in seen:
                continue
            seen.add(definition.name)
            attributes.append(definition)

        tag_name = config.format_tag(raw_tag)
        deprecated, message = _deprecation(declaration.get("deprecated"))
        if tag_name in elements:
            logger.debug(f"Tag <{tag_name}> declared twice in one manifest, keeping the last")

        elements[tag_name] = ElementDefinition(
            tag_name=tag_name,
            raw_tag_name=raw_tag,
            library=library,
            description=str(declaration.get("description") or declaration.get("summary") or ""),
            deprecated=deprecated,
            deprecation_message=message,
            attributes=tuple(attributes),
        )

    return elements
