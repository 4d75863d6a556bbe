from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from releasenotes.models import PullRequestRecord, SortSpec
from releasenotes.regex import RegexExtractor, extract_values
from releasenotes.stages.sorter import sort_records
from releasenotes.utils import get_logger

logger = get_logger(__name__)


# ---------- Key dedup (regex-extracted ID) ----------

def dedup_by_key(
    records: Sequence[PullRequestRecord],
    extractor: Optional[RegexExtractor],
    sort: SortSpec,
) -> Tuple[List[PullRequestRecord], int]:
    """Keep one record per extracted key; records without a key are always kept.

    For a repeated key the last record seen wins, at the position of the first
    one. Survivors are re-sorted with ``sort``. Returns ``(records, removed)``.
    """
    if extractor is None or not records:
        return list(records), 0

    by_key: Dict[str, PullRequestRecord] = {}
    unmatched: List[PullRequestRecord] = []
    for pr in records:
        extracted = extract_values(pr, extractor, "duplicate_filter")
        if extracted:
            by_key[extracted[0]] = pr
        else:
            logger.debug("dedup.key: pr=%d did not resolve an ID", pr.number)
            unmatched.append(pr)

    survivors = list(by_key.values()) + unmatched
    removed = len(records) - len(survivors)
    logger.info("dedup.key: kept=%d from=%d removed=%d", len(survivors), len(records), removed)
    return sort_records(survivors, sort), removed
