"""Diagnostic rules and suppression directives."""

from .base_validator import BaseRule, ElementRule, AttributeRule, ElementContext
from .suppression import SuppressionSet, scan_directives, is_suppressed

__all__ = [
    'BaseRule',
    'ElementRule',
    'AttributeRule',
    'ElementContext',
    'SuppressionSet',
    'scan_directives',
    'is_suppressed',
]
