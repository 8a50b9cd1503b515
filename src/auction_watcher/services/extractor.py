"""Extract listing records from the auction page HTML."""

import logging
import re
from typing import List, NamedTuple, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from ..models.listing import ListingRecord

logger = logging.getLogger(__name__)

SIZE_PATTERN = re.compile(r"\d\+\d")
DATE_PATTERN = re.compile(r"\d{2}\.\d{2}\.\d{4}")

# Paragraph-like elements treated as text units
UNIT_TAGS = ["p", "li", "h1", "h2", "h3", "h4", "h5", "h6", "td", "dt", "dd"]

WHITESPACE = re.compile(r"\s+")


class CarryOver(NamedTuple):
    """Last size and link seen so far in document order."""

    last_size: Optional[str] = None
    last_link: Optional[str] = None


def extract(html: str, base_url: str) -> List[ListingRecord]:
    """
    Extract listing records from the auction page.

    The page puts the apartment size and the detail link in blocks that
    precede the block holding the auction date, so size and link are
    carried forward from unit to unit until overwritten. A record is
    emitted for each unit with a date once both have been seen.

    Args:
        html: Raw HTML document text
        base_url: Origin used to absolutize relative links

    Returns:
        Records in document order, without de-duplication
    """
    state = CarryOver()
    records = []

    for unit in _iter_units(html):
        state, record = _step(state, unit, base_url)
        if record is not None:
            records.append(record)

    logger.debug(f"Extracted {len(records)} records")
    return records


def extract_units(html: str) -> List[str]:
    """Return the cleaned text of every unit, for diagnostics."""
    return [_unit_text(unit) for unit in _iter_units(html)]


def _step(state: CarryOver, unit: Tag, base_url: str) -> Tuple[CarryOver, Optional[ListingRecord]]:
    """Advance the carry-over state over one unit, maybe emitting a record."""
    last_size, last_link = state

    anchor = unit.find("a", href=True)
    if anchor is not None and anchor["href"].strip():
        last_link = urljoin(base_url, anchor["href"].strip())

    # Link labels count for size and date, but not for the description
    text = _collapse(unit.get_text(" "))
    description = _unit_text(unit)

    size_match = SIZE_PATTERN.search(text)
    if size_match:
        last_size = size_match.group(0)

    record = None
    date_match = DATE_PATTERN.search(text)
    if date_match and last_size and last_link:
        record = ListingRecord(
            size=last_size,
            description=description,
            date=date_match.group(0),
            link=last_link,
        )
    elif date_match:
        logger.debug(f"Dropping dated unit before size/link were seen: {text[:60]}")

    return CarryOver(last_size, last_link), record


def _iter_units(html: str) -> List[Tag]:
    """Paragraph-like elements in document order, each reduced to its own content."""
    if not html or not html.strip():
        return []

    soup = BeautifulSoup(html, "html.parser")
    for element in soup(["script", "style", "noscript"]):
        element.decompose()

    return [_own_content(unit) for unit in soup.find_all(UNIT_TAGS)]


def _own_content(unit: Tag) -> Tag:
    """
    Detached copy of unit without the unit elements nested inside it.

    Nested units are visited on their own, so every piece of text is
    seen exactly once.
    """
    fragment = BeautifulSoup(str(unit), "html.parser")
    root = fragment.find(unit.name)
    nested = [element for element in root.find_all(UNIT_TAGS) if element.find_parent(UNIT_TAGS) is root]
    for element in nested:
        element.decompose()
    return root


def _unit_text(unit: Tag) -> str:
    """Text of a detached unit with anchors removed."""
    for anchor in unit.find_all("a"):
        anchor.decompose()
    return _collapse(unit.get_text(" "))


def _collapse(text: str) -> str:
    return WHITESPACE.sub(" ", text).strip()
