from __future__ import annotations

from typing import Sequence

from releasenotes.models import PullRequestRecord
from releasenotes.regex import RegexExtractor, extract_values
from releasenotes.utils import get_logger

logger = get_logger(__name__)


def extract_labels(records: Sequence[PullRequestRecord], extractors: Sequence[RegexExtractor]) -> int:
    """Append labels extracted by each extractor, in extractor order. Returns the number added."""
    added = 0
    for extractor in extractors:
        for pr in records:
            extracted = extract_values(pr, extractor, "label_extractor")
            if not extracted:
                continue
            for label in extracted:
                pr.add_label(label)
            added += len(extracted)
    if extractors:
        logger.info("labels.extract: extractors=%d added=%d", len(extractors), added)
    return added
