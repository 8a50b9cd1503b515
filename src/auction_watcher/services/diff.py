"""Change detection between the current extraction and the stored snapshot."""

import logging
from typing import Iterable, List, Optional, Sequence

from ..models.listing import TARGET_SIZES, ListingRecord

logger = logging.getLogger(__name__)


def compute_new_entries(
    current: Sequence[ListingRecord],
    previous: Sequence[ListingRecord],
) -> List[ListingRecord]:
    """
    Records in current with no structurally equal record in previous.

    Equality covers size, description, date and link, so a description
    edit makes a listing new again. Repeats within current are reported
    once, at their first position.
    """
    seen = set(previous)
    new_entries = []
    for record in current:
        if record in seen:
            continue
        seen.add(record)
        new_entries.append(record)
    return new_entries


def filter_target_sizes(
    records: Iterable[ListingRecord],
    target_sizes: Iterable[str] = TARGET_SIZES,
) -> List[ListingRecord]:
    """Keep records whose size token is literally one of the targets."""
    targets = frozenset(target_sizes)
    return [record for record in records if record.size in targets]


def compute_relevant_new(
    current: Sequence[ListingRecord],
    previous: Optional[Sequence[ListingRecord]],
    target_sizes: Iterable[str] = TARGET_SIZES,
    notify_on_cold_start: bool = False,
) -> List[ListingRecord]:
    """
    New target-sized records worth a notification.

    Args:
        current: Records from this run's extraction
        previous: Last snapshot, or None when nothing is stored yet
        target_sizes: Room configurations to keep
        notify_on_cold_start: Treat every current record as new when
            there is no previous snapshot, instead of only seeding it

    Returns:
        Relevant new records in current's order; empty means nothing to send
    """
    if previous is None:
        if not notify_on_cold_start:
            logger.info("No previous snapshot - seeding without notification")
            return []
        previous = []

    new_entries = compute_new_entries(current, previous)
    relevant = filter_target_sizes(new_entries, target_sizes)

    logger.info(
        f"Diff: {len(current)} current, {len(previous)} previous, "
        f"{len(new_entries)} new, {len(relevant)} relevant"
    )
    return relevant
