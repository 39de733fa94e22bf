# wcdiag/validators/element_rules.py

from typing import Optional

from .base_validator import ElementContext, ElementRule
from ..models.types import Diagnostic, RuleName


class UnknownElementRule(ElementRule):
    """Custom element tag with no schema definition."""

    rule = RuleName.UNKNOWN_ELEMENT

    def check_element(self, context: ElementContext) -> Optional[Diagnostic]:
        if context.definition is not None or not context.node.is_custom:
            return None
        return self.diagnostic(
            context.config,
            f"'{context.node.tag}' is not a known custom element. "
            "Make sure its manifest is loaded or check the tag name.",
            context.tag_range,
        )


class DeprecatedElementRule(ElementRule):
    rule = RuleName.DEPRECATED_ELEMENT

    def check_element(self, context: ElementContext) -> Optional[Diagnostic]:
        definition = context.definition
        if definition is None or not definition.deprecated:
            return None
        message = f"'{definition.tag_name}' is deprecated."
        if definition.deprecation_message:
            message += f" {definition.deprecation_message}"
        return self.diagnostic(context.config, message, context.tag_range)
