"""Read pull requests, diff statistics and release context from a JSON/YAML export.

Expected shape::

    owner: mikepenz
    repo: release-changelog-builder-action
    from_tag: {name: v1.0.0, date: 2024-01-01T00:00:00Z}
    to_tag: {name: v1.1.0, date: 2024-02-01T00:00:00Z}
    diff: {changed_files: 3, additions: 10, deletions: 2, changes: 12, commits: 4}
    pull_requests:
      - number: 1
        title: Fix crash
        created_at: 2024-01-10T00:00:00Z
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from pydantic import TypeAdapter, ValidationError

from releasenotes.exceptions import ReleaseNotesError
from releasenotes.models import DiffSummary, PullRequestRecord, ReleaseContext
from releasenotes.utils import get_logger, load_structured

logger = get_logger(__name__)

_RECORDS_ADAPTER = TypeAdapter(List[PullRequestRecord])


@dataclass
class ChangelogInput:
    records: List[PullRequestRecord] = field(default_factory=list)
    diff: DiffSummary = field(default_factory=DiffSummary)
    context: ReleaseContext = field(default_factory=ReleaseContext)


def parse(payload: Dict[str, Any]) -> ChangelogInput:
    if not isinstance(payload, dict):
        raise ReleaseNotesError("Input must be a mapping with a `pull_requests` list")
    try:
        records = _RECORDS_ADAPTER.validate_python(payload.get("pull_requests") or [])
        diff = DiffSummary.model_validate(payload.get("diff") or {})
        context = ReleaseContext.model_validate(
            {k: payload[k] for k in ("owner", "repo", "from_tag", "to_tag") if payload.get(k) is not None}
        )
    except ValidationError as e:
        raise ReleaseNotesError(f"Input validation error: {e}") from e

    numbers = [pr.number for pr in records]
    if len(set(numbers)) != len(numbers):
        raise ReleaseNotesError("Input validation error: pull request numbers must be unique")
    return ChangelogInput(records=records, diff=diff, context=context)


def fetch(path: str) -> ChangelogInput:
    data = parse(load_structured(path))
    logger.info("file_adapter: path=%s prs=%d", path, len(data.records))
    return data
