"""Category routing for rendered pull request bodies.

Membership is non-exclusive: every category is evaluated for every record, in
configured order. Ignored records short-circuit before any category check.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from releasenotes.models import Category, PullRequestRecord
from releasenotes.regex import CompiledRule, compile_rules, matches_rules
from releasenotes.utils import get_logger

logger = get_logger(__name__)


@dataclass
class CategoryBucket:
    category: Category
    rules: Optional[List[CompiledRule]]
    bodies: List[str] = field(default_factory=list)


@dataclass
class Classification:
    buckets: List[CategoryBucket] = field(default_factory=list)
    categorized: List[str] = field(default_factory=list)
    uncategorized: List[str] = field(default_factory=list)
    open: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)

    def serialized(self) -> dict:
        """Category key (or title) to bodies, in configured order."""
        return {b.category.output_key: list(b.bodies) for b in self.buckets}


def _lower(labels: Optional[Iterable[str]]) -> Set[str]:
    return {lbl.lower() for lbl in labels or []}


def _matches(bucket: CategoryBucket, pr: PullRequestRecord, pr_labels: Set[str]) -> bool:
    category = bucket.category
    has_rules = bucket.rules is not None
    if category.exhaustive and (category.labels is not None or has_rules):
        matched = True
        if category.labels is not None:
            matched = _lower(category.labels).issubset(pr_labels)
        exhaustive_rules = True if category.exhaustive_rules is None else category.exhaustive_rules
        if matched and has_rules:
            matched = matches_rules(bucket.rules, pr, exhaustive_rules)
        return matched

    matched = False
    if category.labels is not None:
        matched = not _lower(category.labels).isdisjoint(pr_labels)
    exhaustive_rules = bool(category.exhaustive_rules)
    if not matched and has_rules:
        matched = matches_rules(bucket.rules, pr, exhaustive_rules)
    return matched


def classify(
    rendered: Sequence[Tuple[PullRequestRecord, str]],
    categories: Sequence[Category],
    ignore_labels: Sequence[str],
) -> Classification:
    """Route each ``(record, body)`` pair into category, open, uncategorized or ignored buckets."""
    result = Classification(
        buckets=[
            CategoryBucket(category=c, rules=compile_rules(c.rules) if c.rules is not None else None)
            for c in categories
        ]
    )
    catch_all = next((b for b in result.buckets if b.category.is_catch_all), None)
    ignored = _lower(ignore_labels)

    for pr, body in rendered:
        pr_labels = _lower(pr.labels)
        if not ignored.isdisjoint(pr_labels):
            result.ignored.append(body)
            continue

        if pr.status == "open":
            result.open.append(body)

        matched_once = False
        for bucket in result.buckets:
            if bucket.category.exclude_labels is not None and not _lower(bucket.category.exclude_labels).isdisjoint(pr_labels):
                logger.debug("classify: pr=%d excluded from %r", pr.number, bucket.category.output_key)
                continue
            if _matches(bucket, pr, pr_labels):
                bucket.bodies.append(body)
                matched_once = True

        if matched_once:
            result.categorized.append(body)
        else:
            if catch_all is not None:
                catch_all.bodies.append(body)
            result.uncategorized.append(body)

    logger.info(
        "classify: categories=%d categorized=%d uncategorized=%d open=%d ignored=%d",
        len(result.buckets),
        len(result.categorized),
        len(result.uncategorized),
        len(result.open),
        len(result.ignored),
    )
    return result
