"""Parent/child linking between pull requests (e.g. a backport referencing its original).

Children are tracked as a number relation next to the root list rather than as
pointers on the parent record. Linking is single-pass: a child's own children
are recorded, but chains are not flattened onto the top-level parent.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from releasenotes.models import PullRequestRecord
from releasenotes.regex import RegexExtractor, extract_values
from releasenotes.utils import get_logger

logger = get_logger(__name__)

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


@dataclass
class LinkedRecords:
    roots: List[PullRequestRecord]
    children: Dict[int, List[int]] = field(default_factory=dict)
    index: Dict[int, PullRequestRecord] = field(default_factory=dict)

    def children_of(self, number: int) -> List[PullRequestRecord]:
        return [self.index[n] for n in self.children.get(number, [])]

    @property
    def child_count(self) -> int:
        return sum(len(v) for v in self.children.values())


def parse_reference(value: str) -> Optional[int]:
    """Leading-integer parse; ``None`` when the value does not start with a number."""
    m = _LEADING_INT_RE.match(value)
    return int(m.group(1)) if m else None


def link_references(records: Sequence[PullRequestRecord], extractor: Optional[RegexExtractor]) -> LinkedRecords:
    index = {pr.number: pr for pr in records}
    if extractor is None:
        return LinkedRecords(roots=list(records), index=index)

    roots: List[PullRequestRecord] = []
    children: Dict[int, List[int]] = {}
    for pr in records:
        extracted = extract_values(pr, extractor, "reference")
        if not extracted:
            roots.append(pr)
            continue
        parent_number = parse_reference(extracted[0])
        if parent_number is None:
            logger.warning("references: pr=%d extracted reference is not a number: %s", pr.number, extracted)
            roots.append(pr)
        elif parent_number in index and parent_number != pr.number:
            children.setdefault(parent_number, []).append(pr.number)
            logger.debug("references: pr=%d linked to parent=%d", pr.number, parent_number)
        else:
            roots.append(pr)

    linked = LinkedRecords(roots=roots, children=children, index=index)
    logger.info("references: roots=%d children=%d", len(roots), linked.child_count)
    return linked
