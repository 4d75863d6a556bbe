from __future__ import annotations

import typing as t
from dataclasses import dataclass, field

from releasenotes.models import DiffSummary
from releasenotes.rendering.template import PlaceholderTable
from releasenotes.stages.classifier import Classification
from releasenotes.utils import get_logger

logger = get_logger(__name__)


@dataclass
class ChangelogResult:
    document: str
    categorized: t.Dict[str, t.List[str]] = field(default_factory=dict)
    categorized_count: int = 0
    uncategorized_count: int = 0
    open_count: int = 0
    ignored_count: int = 0
    removed_duplicates: int = 0

    def to_dict(self) -> dict:
        return {
            "document": self.document,
            "categorized": self.categorized,
            "categorized_prs": self.categorized_count,
            "uncategorized_prs": self.uncategorized_count,
            "open_prs": self.open_count,
            "ignored_prs": self.ignored_count,
            "removed_duplicates": self.removed_duplicates,
        }


def join_bodies(bodies: t.Sequence[str]) -> str:
    return "".join(f"{b}\n" for b in bodies)


def assemble_categories(classification: Classification) -> str:
    """Category sections in configured order; empty categories only show with ``empty_content``."""
    out: t.List[str] = []
    for bucket in classification.buckets:
        category = bucket.category
        if bucket.bodies:
            if category.title:
                out.append(f"{category.title}\n\n")
            out.append(join_bodies(bucket.bodies))
            out.append("\n")
        elif category.empty_content is not None:
            if category.title:
                out.append(f"{category.title}\n\n")
            out.append(f"{category.empty_content}\n\n")
    return "".join(out)


def fill_section_placeholders(table: PlaceholderTable, classification: Classification, diff: DiffSummary) -> None:
    table.set("CHANGELOG", assemble_categories(classification))
    table.set("UNCATEGORIZED", join_bodies(classification.uncategorized))
    table.set("OPEN", join_bodies(classification.open))
    table.set("IGNORED", join_bodies(classification.ignored))
    table.set("CATEGORIZED_COUNT", str(len(classification.categorized)))
    table.set("UNCATEGORIZED_COUNT", str(len(classification.uncategorized)))
    table.set("OPEN_COUNT", str(len(classification.open)))
    table.set("IGNORED_COUNT", str(len(classification.ignored)))
    table.set("CHANGED_FILES", str(diff.changed_files))
    table.set("ADDITIONS", str(diff.additions))
    table.set("DELETIONS", str(diff.deletions))
    table.set("CHANGES", str(diff.changes))
    table.set("COMMITS", str(diff.commits))
    logger.info(
        "assemble: categorized=%d uncategorized=%d open=%d ignored=%d",
        len(classification.categorized),
        len(classification.uncategorized),
        len(classification.open),
        len(classification.ignored),
    )


def to_result(document: str, classification: Classification, removed_duplicates: int = 0) -> ChangelogResult:
    return ChangelogResult(
        document=document,
        categorized=classification.serialized(),
        categorized_count=len(classification.categorized),
        uncategorized_count=len(classification.uncategorized),
        open_count=len(classification.open),
        ignored_count=len(classification.ignored),
        removed_duplicates=removed_duplicates,
    )
