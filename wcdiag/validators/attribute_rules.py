# wcdiag/validators/attribute_rules.py

import re
from typing import Optional

from .base_validator import AttributeRule, ElementContext
from ..models.types import (
    AttributeDefinition,
    AttributeOccurrence,
    Diagnostic,
    RuleName,
    TypeKind,
)

GLOBAL_ATTRIBUTES = frozenset({
    "id", "class", "style", "slot", "part", "exportparts", "hidden", "title",
    "lang", "dir", "tabindex", "role", "is", "key", "ref", "accesskey",
    "autocapitalize", "autofocus", "contenteditable", "draggable", "enterkeyhint",
    "inert", "inputmode", "nonce", "popover", "spellcheck", "translate",
    "itemid", "itemprop", "itemref", "itemscope", "itemtype",
})
GLOBAL_PREFIXES = ("aria-", "data-", "on")

BOOLEAN_VALUES = frozenset({"", "true", "false"})

# Accepts what JavaScript's Number() accepts for non-empty strings
NUMBER_PATTERN = re.compile(
    r"^\s*(?:"
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|Infinity)"
    r"|0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+"
    r")\s*$"
)


def is_global_attribute(name: str) -> bool:
    lowered = name.lower()
    return lowered in GLOBAL_ATTRIBUTES or lowered.startswith(GLOBAL_PREFIXES)


def is_number(value: str) -> bool:
    return bool(NUMBER_PATTERN.match(value))


class UnknownAttributeRule(AttributeRule):
    rule = RuleName.UNKNOWN_ATTRIBUTE

    def check_attribute(
        self,
        context: ElementContext,
        occurrence: AttributeOccurrence,
        attribute: Optional[AttributeDefinition]
    ) -> Optional[Diagnostic]:
        if attribute is not None or occurrence.is_bound or is_global_attribute(occurrence.name):
            return None
        return self.diagnostic(
            context.config,
            f"'{occurrence.name}' is not a known attribute of '{context.node.tag}'.",
            occurrence.name_range,
        )


class InvalidBooleanRule(AttributeRule):
    """Boolean attributes take no value, or 'true'/'false' for compatibility."""

    rule = RuleName.INVALID_BOOLEAN

    def check_attribute(self, context, occurrence, attribute):
        if attribute is None or attribute.type.kind is not TypeKind.BOOLEAN or occurrence.is_bound:
            return None
        if occurrence.value is None or occurrence.value in BOOLEAN_VALUES:
            return None
        return self.diagnostic(
            context.config,
            f"'{occurrence.value}' is not a valid value for boolean attribute "
            f"'{occurrence.name}'. Boolean attributes are enabled by their presence alone.",
            self.value_range(occurrence),
        )


class InvalidNumberRule(AttributeRule):
    rule = RuleName.INVALID_NUMBER

    def check_attribute(self, context, occurrence, attribute):
        if attribute is None or attribute.type.kind is not TypeKind.NUMBER or occurrence.is_bound:
            return None
        if not occurrence.value or is_number(occurrence.value):
            return None
        return self.diagnostic(
            context.config,
            f"'{occurrence.value}' is not a valid number for '{occurrence.name}'.",
            self.value_range(occurrence),
        )


class InvalidAttributeValueRule(AttributeRule):
    rule = RuleName.INVALID_ATTRIBUTE_VALUE

    def check_attribute(self, context, occurrence, attribute):
        if attribute is None or attribute.type.kind is not TypeKind.ENUM or occurrence.is_bound:
            return None
        if not occurrence.value or attribute.type.allows(occurrence.value):
            return None
        return self.diagnostic(
            context.config,
            f"'{occurrence.value}' is not a valid value for '{occurrence.name}'. "
            f"Expected one of: {attribute.type.display()}",
            self.value_range(occurrence),
        )


class DeprecatedAttributeRule(AttributeRule):
    rule = RuleName.DEPRECATED_ATTRIBUTE

    def check_attribute(self, context, occurrence, attribute):
        if attribute is None or not attribute.deprecated or occurrence.is_bound:
            return None
        message = f"'{occurrence.name}' is deprecated."
        if attribute.deprecation_message:
            message += f" {attribute.deprecation_message}"
        return self.diagnostic(context.config, message, occurrence.name_range)


class DuplicateAttributeRule(AttributeRule):
    """Second and later occurrences of the same raw name on one element."""

    rule = RuleName.DUPLICATE_ATTRIBUTE
    requires_definition = False

    def check_attribute(self, context, occurrence, attribute):
        if occurrence.name not in context.seen_names:
            return None
        return self.diagnostic(
            context.config,
            f"Duplicate attribute '{occurrence.name}'.",
            occurrence.name_range,
        )
