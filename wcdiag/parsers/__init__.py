# wcdiag/parsers/__init__.py
from .document import TextDocument, ElementNode, parse_elements
from .attribute_parser import parse_attributes

__all__ = ['TextDocument', 'ElementNode', 'parse_elements', 'parse_attributes']
