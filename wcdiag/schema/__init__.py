# wcdiag/schema/__init__.py
from .schema_manager import SchemaIndex, SchemaManager, build_sources
from .source_fetcher import SourceFetcher
from .manifest_reader import parse_type_descriptor, read_manifest

__all__ = [
    'SchemaIndex',
    'SchemaManager',
    'build_sources',
    'SourceFetcher',
    'parse_type_descriptor',
    'read_manifest',
]
