"""Centralized validation of documents against the loaded schema."""

from typing import Callable, List, Optional, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from .config.config_manager import ConfigResolver, ResolvedConfig
    from .schema.schema_manager import SchemaManager, SchemaIndex

from .models.types import Diagnostic, ProcessingPhase
from .parsers.attribute_parser import parse_attributes
from .parsers.document import ElementNode, TextDocument, parse_elements
from .utils.logger import DiagnosticsLogger, log_processing_phase
from .validators.base_validator import AttributeRule, BaseRule, ElementContext, ElementRule
from .validators.element_rules import DeprecatedElementRule, UnknownElementRule
from .validators.attribute_rules import (
    DeprecatedAttributeRule,
    DuplicateAttributeRule,
    InvalidAttributeValueRule,
    InvalidBooleanRule,
    InvalidNumberRule,
    UnknownAttributeRule,
)
from .validators.suppression import scan_directives


class DiagnosticsProvider(Protocol):
    """Narrow capability hosts depend on."""

    async def provide_diagnostics(self, document: TextDocument) -> List[Diagnostic]:
        ...


def default_rules(logger: Optional[DiagnosticsLogger] = None) -> List[BaseRule]:
    return [
        UnknownElementRule(logger),
        DeprecatedElementRule(logger),
        UnknownAttributeRule(logger),
        InvalidBooleanRule(logger),
        InvalidNumberRule(logger),
        InvalidAttributeValueRule(logger),
        DeprecatedAttributeRule(logger),
        DuplicateAttributeRule(logger),
    ]


class ValidationEngine:
    """
    Runs the rule pipeline over each custom element of a document.

    Rules are evaluated in registration order; diagnostics are returned in
    document order after suppression directives are applied.
    """

    def __init__(
        self,
        schema_manager: "SchemaManager",
        config_resolver: "ConfigResolver",
        logger: Optional[DiagnosticsLogger] = None,
        element_parser: Callable[[TextDocument], List[ElementNode]] = parse_elements,
        rules: Optional[List[BaseRule]] = None
    ):
        self.schema_manager = schema_manager
        self.config_resolver = config_resolver
        self.logger = logger or DiagnosticsLogger(name=__name__)
        self.element_parser = element_parser
        self.rules: List[BaseRule] = rules if rules is not None else default_rules(self.logger)

    def add_rule(self, rule: BaseRule, position: Optional[int] = None) -> None:
        """
        Add a rule to the pipeline.

        Args:
            rule: Rule instance
            position: Optional position in pipeline (default: append)
        """
        if position is not None:
            self.rules.insert(position, rule)
        else:
            self.rules.append(rule)

    @log_processing_phase(ProcessingPhase.VALIDATION)
    async def provide_diagnostics(self, document: TextDocument) -> List[Diagnostic]:
        """
        Diagnose one document. Waits only for the schema snapshot.

        Args:
            document: Document to validate

        Returns:
            List[Diagnostic]: Diagnostics in document order
        """
        index = await self.schema_manager.snapshot()
        return self.validate(document, index, self.config_resolver.current())

    def validate(
        self,
        document: TextDocument,
        index: "SchemaIndex",
        resolved: "ResolvedConfig"
    ) -> List[Diagnostic]:
        """Synchronous validation against an explicit index and configuration."""
        try:
            nodes = self.element_parser(document)
        except Exception as e:
            self.logger.create_error_log(e, {"uri": document.uri, "phase": "element parsing"})
            return []

        diagnostics: List[Diagnostic] = []
        for node in nodes:
            if not node.is_custom:
                continue
            try:
                diagnostics.extend(self._validate_element(document, node, index, resolved))
            except Exception as e:
                self.logger.error(
                    f"Error validating <{node.tag}> at offset {node.start} in {document.uri}: {str(e)}"
                )

        if not diagnostics:
            return diagnostics

        suppressions = scan_directives(document)
        if not len(suppressions):
            return diagnostics
        return [d for d in diagnostics if not suppressions.is_suppressed(d.rule, d.range)]

    def _validate_element(
        self,
        document: TextDocument,
        node: ElementNode,
        index: "SchemaIndex",
        resolved: "ResolvedConfig"
    ) -> List[Diagnostic]:
        definition = index.get(node.tag)
        config = resolved.for_library(definition.library if definition else None)
        context = ElementContext(document=document, node=node, definition=definition, config=config)

        enabled = [rule for rule in self.rules if rule.is_enabled(config)]
        results: List[Diagnostic] = []

        for rule in enabled:
            if isinstance(rule, ElementRule):
                diagnostic = rule.check_element(context)
                if diagnostic is not None:
                    results.append(diagnostic)

        attribute_rules = [rule for rule in enabled if isinstance(rule, AttributeRule)]
        if not attribute_rules:
            return results

        for occurrence in parse_attributes(document, node.start, node.end):
            attribute = definition.get_attribute(occurrence.name) if definition else None
            for rule in attribute_rules:
                if rule.requires_definition and definition is None:
                    continue
                diagnostic = rule.check_attribute(context, occurrence, attribute)
                if diagnostic is not None:
                    results.append(diagnostic)
            context.seen_names.add(occurrence.name)

        return results
