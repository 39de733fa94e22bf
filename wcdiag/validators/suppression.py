# wcdiag/validators/suppression.py

import re
import logging
from typing import Iterable, List, Union

from ..models.types import (
    Range,
    RuleName,
    SuppressionDirective,
    SuppressionScope,
)
from ..parsers.attribute_parser import find_tag_end
from ..parsers.document import TextDocument

logger = logging.getLogger(__name__)

_DIRECTIVE_NAME = r"(wctools-(?:disable-next-line|ignore-next-line|disable|ignore))(?![\w-])"

# Longest directive names first so 'disable' does not shadow 'disable-next-line'.
# Block comments may list rules across several lines; '//' comments end at the newline.
DIRECTIVE_PATTERN = re.compile(
    r"<!--\s*" + _DIRECTIVE_NAME + r"(.*?)-->"
    r"|/\*\s*" + _DIRECTIVE_NAME + r"(.*?)\*/"
    r"|//[ \t]*" + _DIRECTIVE_NAME + r"([^\n]*)",
    re.DOTALL,
)
TAG_START_PATTERN = re.compile(r"<[A-Za-z][\w.:-]*")
RULE_SEPARATOR = re.compile(r"[,\s*]+")

SCOPES = {
    "wctools-ignore": SuppressionScope.WHOLE_FILE,
    "wctools-disable": SuppressionScope.REST_OF_FILE,
    "wctools-disable-next-line": SuppressionScope.NEXT_ELEMENT,
    "wctools-ignore-next-line": SuppressionScope.NEXT_ELEMENT,
}


def _parse_rules(text: str) -> frozenset:
    return frozenset(rule for rule in RULE_SEPARATOR.split(text.strip()) if rule)


def _next_element_lines(document: TextDocument, after: int, directive_line: int):
    """Line span of the opening tag that follows a next-line directive."""
    text = document.text
    match = TAG_START_PATTERN.search(text, after)
    next_line = directive_line + 1

    if match is not None:
        start_line = document.position_at(match.start()).line
        if start_line <= next_line:
            end = find_tag_end(text, match.start())
            # end is just past '>', so the tag's last character sits at end - 1
            end_line = document.position_at(max(match.start(), end - 1)).line
            return max(start_line, directive_line), max(end_line, next_line)

    return next_line, next_line


class SuppressionSet:
    """Directives found in one document."""

    def __init__(self, directives: Iterable[SuppressionDirective] = ()):
        self.directives: List[SuppressionDirective] = list(directives)

    def __len__(self) -> int:
        return len(self.directives)

    def is_suppressed(self, rule: Union[RuleName, str], range: Range) -> bool:
        rule_name = rule.value if isinstance(rule, RuleName) else rule
        line = range.start.line
        return any(directive.matches(rule_name, line) for directive in self.directives)


def scan_directives(document: TextDocument) -> SuppressionSet:
    """
    Collect suppression directives from HTML and JS comments.

    Args:
        document: Document to scan

    Returns:
        SuppressionSet: Directives in source order
    """
    text = document.text
    directives: List[SuppressionDirective] = []

    for match in DIRECTIVE_PATTERN.finditer(text):
        name, rule_text = [group for group in match.groups() if group is not None]
        scope = SCOPES[name]
        rules = _parse_rules(rule_text)
        line = document.position_at(match.start()).line
        closing_line = document.position_at(match.end()).line

        if scope is SuppressionScope.WHOLE_FILE:
            directive = SuppressionDirective(scope=scope, rules=rules, first_line=0)
        elif scope is SuppressionScope.REST_OF_FILE:
            directive = SuppressionDirective(scope=scope, rules=rules, first_line=line)
        else:
            first, last = _next_element_lines(document, match.end(), closing_line)
            directive = SuppressionDirective(scope=scope, rules=rules, first_line=first, last_line=last)

        logger.debug(
            f"{name} at line {line + 1} in {document.uri}: "
            f"{', '.join(sorted(rules)) or 'all rules'}"
        )
        directives.append(directive)

    return SuppressionSet(directives)


def is_suppressed(document: TextDocument, rule: Union[RuleName, str], range: Range) -> bool:
    """Whether a diagnostic for rule at range is silenced by a directive."""
    return scan_directives(document).is_suppressed(rule, range)
