# wcdiag/parsers/document.py

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import List, Optional
import logging

from bs4 import BeautifulSoup

from ..models.types import Position, Range
from .attribute_parser import find_tag_end, read_tag_name

logger = logging.getLogger(__name__)


class TextDocument:
    """Raw document text with offset <-> line/character conversion."""

    def __init__(self, uri: str, text: str, version: int = 0):
        self.uri = uri
        self.text = text
        self.version = version
        self._line_offsets: Optional[List[int]] = None

    def get_text(self) -> str:
        return self.text

    @property
    def line_offsets(self) -> List[int]:
        if self._line_offsets is None:
            offsets = [0]
            for index, char in enumerate(self.text):
                if char == "\n":
                    offsets.append(index + 1)
            self._line_offsets = offsets
        return self._line_offsets

    @property
    def line_count(self) -> int:
        return len(self.line_offsets)

    def position_at(self, offset: int) -> Position:
        offset = max(0, min(offset, len(self.text)))
        line = bisect_right(self.line_offsets, offset) - 1
        return Position(line=line, character=offset - self.line_offsets[line])

    def offset_at(self, position: Position) -> int:
        if position.line < 0:
            return 0
        if position.line >= self.line_count:
            return len(self.text)
        line_start = self.line_offsets[position.line]
        if position.line + 1 < self.line_count:
            line_end = self.line_offsets[position.line + 1] - 1
        else:
            line_end = len(self.text)
        return max(line_start, min(line_start + position.character, line_end))

    def range_of(self, start: int, end: int) -> Range:
        return Range(start=self.position_at(start), end=self.position_at(end))


@dataclass
class ElementNode:
    """An element's opening tag located in the document text."""
    tag: str
    start: int
    end: int
    name_start: int = field(default=-1)

    def __post_init__(self):
        if self.name_start < 0:
            self.name_start = self.start + 1

    @property
    def name_end(self) -> int:
        return self.name_start + len(self.tag)

    @property
    def is_custom(self) -> bool:
        return "-" in self.tag

    def tag_range(self, document: TextDocument) -> Range:
        return document.range_of(self.name_start, self.name_end)

    def span_range(self, document: TextDocument) -> Range:
        return document.range_of(self.start, self.end)


def element_at(document: TextDocument, start: int) -> Optional[ElementNode]:
    """Build an ElementNode for the opening tag whose '<' sits at start."""
    text = document.text
    if start >= len(text) or text[start] != "<":
        return None
    name = read_tag_name(text, start + 1)
    if not name:
        return None
    return ElementNode(tag=name, start=start, end=find_tag_end(text, start))


def parse_elements(document: TextDocument) -> List[ElementNode]:
    """
    Locate every opening tag in an HTML document.

    Uses BeautifulSoup's html.parser builder, which records the source line
    and column of each start tag.
    """
    soup = BeautifulSoup(document.text, "html.parser")
    nodes: List[ElementNode] = []

    for tag in soup.find_all(True):
        if tag.sourceline is None or tag.sourcepos is None:
            continue
        offset = document.offset_at(Position(line=tag.sourceline - 1, character=tag.sourcepos))
        node = element_at(document, offset)
        if node is None:
            logger.debug(f"Could not locate <{tag.name}> at {tag.sourceline}:{tag.sourcepos}")
            continue
        nodes.append(node)

    return nodes
