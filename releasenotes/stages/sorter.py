from __future__ import annotations

import datetime as dt
from typing import Any, Callable, Dict, List, Sequence

from releasenotes.exceptions import ConfigurationError
from releasenotes.models import PullRequestRecord, SortSpec
from releasenotes.utils import get_logger

logger = get_logger(__name__)


def _aware(value: dt.datetime) -> dt.datetime:
    return value if value.tzinfo else value.replace(tzinfo=dt.timezone.utc)


def _merged_key(pr: PullRequestRecord) -> dt.datetime:
    # unmerged PRs fall back to their creation date
    return _aware(pr.merged_at or pr.created_at)


def _created_key(pr: PullRequestRecord) -> dt.datetime:
    return _aware(pr.created_at)


_SORT_KEYS: Dict[str, Callable[[PullRequestRecord], Any]] = {
    "mergedAt": _merged_key,
    "merged_at": _merged_key,
    "createdAt": _created_key,
    "created_at": _created_key,
    "title": lambda pr: pr.title.casefold(),
    "number": lambda pr: pr.number,
}

_UNSORTABLE = {"labels", "assignees", "requested_reviewers", "approved_reviewers", "reviews"}


def _key_for(field: str) -> Callable[[PullRequestRecord], Any]:
    if field in _SORT_KEYS:
        return _SORT_KEYS[field]
    if field in PullRequestRecord.model_fields and field not in _UNSORTABLE:
        # caller-defined key: any scalar record field, missing values first
        return lambda pr: (getattr(pr, field) is not None, getattr(pr, field) or "")
    raise ConfigurationError(f"Unknown sort field: {field}")


def sort_records(records: Sequence[PullRequestRecord], spec: SortSpec) -> List[PullRequestRecord]:
    """Stable sort by ``spec.on_property``; ties keep their prior relative order."""
    key = _key_for(spec.on_property)
    out = sorted(records, key=key, reverse=spec.order == "DESC")
    logger.debug("sort: on=%s order=%s n=%d", spec.on_property, spec.order, len(out))
    return out
