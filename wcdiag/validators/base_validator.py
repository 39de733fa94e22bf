"""Abstract base classes for all diagnostic rules."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Set

from ..models.types import (
    AttributeDefinition,
    AttributeOccurrence,
    Diagnostic,
    EffectiveConfig,
    ElementDefinition,
    Range,
    RuleName,
)
from ..parsers.document import ElementNode, TextDocument
from ..utils.logger import DiagnosticsLogger


@dataclass
class ElementContext:
    """Everything a rule may look at while one element is validated."""
    document: TextDocument
    node: ElementNode
    definition: Optional[ElementDefinition]
    config: EffectiveConfig
    seen_names: Set[str] = field(default_factory=set)

    @property
    def tag_range(self) -> Range:
        return self.node.tag_range(self.document)


class BaseRule(ABC):
    """Abstract base for one diagnostic rule."""

    rule: RuleName

    def __init__(self, logger: Optional[DiagnosticsLogger] = None):
        self.logger = logger or DiagnosticsLogger(name=__name__)

    def is_enabled(self, config: EffectiveConfig) -> bool:
        return config.is_enabled(self.rule)

    def diagnostic(self, config: EffectiveConfig, message: str, range: Range) -> Diagnostic:
        return Diagnostic(
            rule=self.rule,
            message=message,
            severity=config.severity_for(self.rule),
            range=range,
        )


class ElementRule(BaseRule):
    """Rule evaluated once per element."""

    @abstractmethod
    def check_element(self, context: ElementContext) -> Optional[Diagnostic]:
        """
        Evaluate the rule against an element's tag.

        Args:
            context: Element being validated

        Returns:
            Optional[Diagnostic]: The finding, or None when the element passes
        """
        pass


class AttributeRule(BaseRule):
    """Rule evaluated once per attribute occurrence of a known element."""

    requires_definition = True

    @abstractmethod
    def check_attribute(
        self,
        context: ElementContext,
        occurrence: AttributeOccurrence,
        attribute: Optional[AttributeDefinition]
    ) -> Optional[Diagnostic]:
        """
        Evaluate the rule against one attribute occurrence.

        Args:
            context: Element being validated
            occurrence: The attribute as written
            attribute: Its schema definition, None if the element lacks one

        Returns:
            Optional[Diagnostic]: The finding, or None when the attribute passes
        """
        pass

    @staticmethod
    def value_range(occurrence: AttributeOccurrence) -> Range:
        return occurrence.value_range or occurrence.name_range
