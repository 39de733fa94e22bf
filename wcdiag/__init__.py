"""
Custom element diagnostics engine.
Validates HTML-like documents against Custom Elements Manifests.
"""

from .service import DiagnosticsService, create_service
from .validation_manager import DiagnosticsProvider, ValidationEngine
from .parsers.document import TextDocument
from .models.types import Diagnostic, RuleName, Severity

__all__ = [
    'DiagnosticsService',
    'create_service',
    'DiagnosticsProvider',
    'ValidationEngine',
    'TextDocument',
    'Diagnostic',
    'RuleName',
    'Severity',
]
