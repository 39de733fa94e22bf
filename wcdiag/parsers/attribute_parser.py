"""Attribute-level parsing of opening tags with exact source ranges."""

from typing import List, Optional, Tuple, TYPE_CHECKING
import logging

from ..models.types import AttributeOccurrence, ParseRecoveryError

if TYPE_CHECKING:
    from .document import TextDocument

logger = logging.getLogger(__name__)

QUOTES = ('"', "'")

# Leading characters marking framework-bound attributes (lit, Vue, Angular)
BINDING_SIGILS = frozenset(".?@:[(*#")
BINDING_PREFIXES: Tuple[str, ...] = ("v-bind:", "v-on:")


def binding_prefix(name: str) -> Optional[str]:
    """Return the binding prefix of an attribute name, if any."""
    for prefix in BINDING_PREFIXES:
        if name.startswith(prefix):
            return prefix
    if name and name[0] in BINDING_SIGILS:
        return name[0]
    return None


def _is_name_terminator(text: str, i: int) -> bool:
    char = text[i]
    if char.isspace() or char in ("=", ">") or char in QUOTES:
        return True
    return char == "/" and text.startswith("/>", i)


def read_tag_name(text: str, i: int) -> str:
    """Read an element name starting right after '<'."""
    start = i
    while i < len(text) and not (text[i].isspace() or text[i] in ("/", ">")):
        i += 1
    return text[start:i]


def find_tag_end(text: str, start: int) -> int:
    """
    Find the offset just past the '>' closing the opening tag at start.

    Quoted values may contain '>' and newlines. A quote that never closes
    is treated as a stray character. Returns len(text) for unclosed tags.
    """
    i = start + 1
    length = len(text)
    after_equals = False

    while i < length:
        char = text[i]
        if char in QUOTES and after_equals:
            close = text.find(char, i + 1)
            if close != -1:
                i = close + 1
                after_equals = False
                continue
        if char == ">":
            return i + 1
        if char == "<" and i > start + 1:
            # A new tag began before this one closed
            return i
        if char == "=":
            after_equals = True
        elif not char.isspace():
            after_equals = False
        i += 1

    return length


def _skip_token(text: str, i: int, end: int) -> int:
    """Advance past a malformed token to the next whitespace or tag end."""
    i += 1
    while i < end and not text[i].isspace() and text[i] != ">":
        i += 1
    return i


def _read_attribute(document: "TextDocument", i: int, end: int) -> Tuple[AttributeOccurrence, int]:
    text = document.text
    char = text[i]
    if char == "=" or char in QUOTES:
        raise ParseRecoveryError(f"Unexpected {char!r} where an attribute name was expected", i)

    name_start = i
    while i < end and not _is_name_terminator(text, i):
        i += 1
    name_end = i
    name = text[name_start:name_end]

    # Look past whitespace for '='
    j = i
    while j < end and text[j].isspace():
        j += 1

    if j >= end or text[j] != "=":
        occurrence = AttributeOccurrence(
            name=name,
            value=None,
            name_range=document.range_of(name_start, name_end),
            full_range=document.range_of(name_start, name_end),
            binding_prefix=binding_prefix(name),
        )
        return occurrence, name_end

    j += 1
    while j < end and text[j].isspace():
        j += 1

    quote = None
    if j < end and text[j] in QUOTES:
        quote = text[j]
        close = text.find(quote, j + 1, end)
        if close == -1:
            raise ParseRecoveryError(f"Unterminated {quote} value for '{name}'", j)
        value_start, value_end, next_i = j + 1, close, close + 1
    else:
        value_start = j
        while j < end and not text[j].isspace() and text[j] != ">":
            j += 1
        value_end = j
        if value_end > value_start and text.startswith("/>", value_end - 1):
            value_end -= 1
        next_i = j

    occurrence = AttributeOccurrence(
        name=name,
        value=text[value_start:value_end],
        name_range=document.range_of(name_start, name_end),
        value_range=document.range_of(value_start, value_end),
        full_range=document.range_of(name_start, next_i),
        quote=quote,
        binding_prefix=binding_prefix(name),
    )
    return occurrence, next_i


def parse_attributes(
    document: "TextDocument",
    start: int,
    end: Optional[int] = None
) -> List[AttributeOccurrence]:
    """
    Parse the attributes of the opening tag whose '<' is at start.

    Args:
        document: Document holding the raw text
        start: Offset of the element's '<'
        end: Offset just past the opening tag; found when omitted

    Returns:
        List[AttributeOccurrence]: Occurrences in source order
    """
    text = document.text
    if end is None:
        end = find_tag_end(text, start)

    i = start + 1 + len(read_tag_name(text, start + 1))
    occurrences: List[AttributeOccurrence] = []

    while i < end:
        char = text[i]
        if char == ">":
            break
        if char.isspace() or char == "/":
            i += 1
            continue
        try:
            occurrence, i = _read_attribute(document, i, end)
        except ParseRecoveryError as e:
            logger.debug(f"Skipping malformed attribute in {document.uri}: {e.message}")
            i = _skip_token(text, e.offset, end)
            continue
        occurrences.append(occurrence)

    return occurrences
