"""
Text cleanup grammars shared by the extraction layers.

Everything here is pure string work: counts, ratings, publication lines
and the series/position grammar used by every series strategy.
"""
import re
from typing import List, Optional, Tuple

# Thousands separators that sit between two digits ("1,234", "1 234")
DIGIT_SEPARATOR = re.compile(r"(?<=\d)[,\u00a0\u202f](?=\d)")
FIRST_DIGITS = re.compile(r"\d+")
AVERAGE_RATING = re.compile(r"\d{1,2}\.\d{1,2}")

PUBLISHED = re.compile(r"Published\s+(.+)")
FIRST_PUBLISHED = re.compile(r"First published\s+(.+)")
BY_SEPARATOR = re.compile(r"\s+by\s+")

# One grammar for both "Name (#1)" and "Name #1,2" shapes.
# A position must contain at least one digit.
SERIES_PATTERN = re.compile(
    r"^(?P<name>.*?)"
    r"(?:\s*\(#(?P<paren>[\d.,\-]*\d[\d.,\-]*)\)"
    r"|[\s#]+(?P<bare>[\d.,\-]*\d[\d.,\-]*))?$",
    re.DOTALL,
)
COMMA_SPACING = re.compile(r"\s*,\s*")


def clean_text(value: Optional[str]) -> Optional[str]:
    """Strip a string, mapping empty results to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def append_unique(target: List[str], values) -> int:
    """Append trimmed, non-empty values not already present. Returns the number added."""
    added = 0
    for value in values:
        if not isinstance(value, str):
            continue
        value = value.strip()
        if value and value not in target:
            target.append(value)
            added += 1
    return added


def first_int(text: Optional[str]) -> Optional[int]:
    """Return the first run of digits as an int, ignoring thousands separators."""
    if not text:
        return None
    match = FIRST_DIGITS.search(DIGIT_SEPARATOR.sub("", text))
    return int(match.group(0)) if match else None


def to_int(value) -> Optional[int]:
    """Coerce a JSON scalar (int, float or numeric string) to int."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        return first_int(value)
    return None


def parse_ratings_count(text: Optional[str]) -> Optional[str]:
    """'1,234,567 ratings' -> '1234567'."""
    if not text:
        return None
    match = FIRST_DIGITS.search(DIGIT_SEPARATOR.sub("", text))
    if not match:
        return None
    return str(int(match.group(0)))


def parse_average_rating(text: Optional[str]) -> Optional[str]:
    """
    Pull the first decimal rating out of a rating label.

    'Average rating 4.14 ·' -> '4.14'. Text without a decimal number is
    kept as-is, since some pages render the rating in an unexpected shape.
    """
    text = clean_text(text)
    if text is None:
        return None
    match = AVERAGE_RATING.search(text)
    return match.group(0) if match else text


def split_publication_info(text: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Split a publication line into (date, publisher).

    'Published May 1, 2006 by William Morrow' -> ('May 1, 2006', 'William Morrow')
    'First published May 1, 1990'            -> ('May 1, 1990', None)
    Anything else is returned whole as the date.
    """
    text = clean_text(text)
    if text is None:
        return None, None

    match = PUBLISHED.search(text)
    if match:
        parts = BY_SEPARATOR.split(match.group(1), maxsplit=1)
        publisher = clean_text(parts[1]) if len(parts) > 1 else None
        return clean_text(parts[0]), publisher

    match = FIRST_PUBLISHED.search(text)
    if match:
        return clean_text(match.group(1)), None

    return text, None


def position_pattern(position: str) -> str:
    """Regex source matching a position with or without spaces after commas."""
    parts = [re.escape(part.strip()) for part in position.split(",")]
    return r",\s*".join(parts)


def strip_position_suffix(name: str, position: Optional[str]) -> str:
    """Remove a trailing '(#pos)' or '#pos' for a known position from a series name."""
    if not position:
        return name.strip()
    pos = position_pattern(position)
    name = re.sub(r"\s*\(#" + pos + r"\)\s*$", "", name).strip()
    name = re.sub(r"\s*#" + pos + r"\s*$", "", name).strip()
    return name


def parse_series(text: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Split series link text into (name, position).

    'Discworld (#1)'  -> ('Discworld', '1')
    'Foundation #1,2' -> ('Foundation', '1,2')
    'Earthsea Cycle'  -> ('Earthsea Cycle', None)
    """
    text = clean_text(text)
    if text is None:
        return None, None

    match = SERIES_PATTERN.match(text)
    name = match.group("name").strip()
    position = match.group("paren") or match.group("bare")
    if position:
        position = position.lstrip("#").strip()
        name = strip_position_suffix(name, position)

    if not name:
        return None, None
    return name, position or None


def format_position(position: Optional[str]) -> Optional[str]:
    """'1,2' -> '1, 2'. Already formatted positions are left unchanged."""
    position = clean_text(position)
    if position is None:
        return None
    return COMMA_SPACING.sub(", ", position)
