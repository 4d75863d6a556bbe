"""Placeholder substitution for ``${{KEY}}`` templates.

Substitution order matters: array placeholders (``KEY[i]``, ``KEY[*]``,
``KEY[i].field``) are replaced before scalar ones, and custom placeholders are
derived from each key's original value as that key is handled. Values produced
by custom placeholders are tracked across records so the document-level pass
can resolve ``${{NAME[i]}}`` / ``${{NAME[*]}}``.
"""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from releasenotes.models import Configuration, Placeholder, PullRequestRecord, ReleaseContext
from releasenotes.regex import RegexExtractor, compile_transformer
from releasenotes.utils import get_logger, iso_format

logger = get_logger(__name__)

INTERNAL_LABEL_PREFIX = "--rcba-"

ARRAY_KEYS = ("REVIEWS", "REFERENCED", "ASSIGNEES", "REVIEWERS", "APPROVERS")

# template field name -> model attribute
PR_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("number", "number"),
    ("title", "title"),
    ("htmlURL", "html_url"),
    ("baseBranch", "base_branch"),
    ("branch", "branch"),
    ("createdAt", "created_at"),
    ("mergedAt", "merged_at"),
    ("mergeCommitSha", "merge_commit_sha"),
    ("author", "author"),
    ("repoName", "repo_name"),
    ("labels", "labels"),
    ("milestone", "milestone"),
    ("body", "body"),
    ("assignees", "assignees"),
    ("requestedReviewers", "requested_reviewers"),
    ("approvedReviewers", "approved_reviewers"),
    ("status", "status"),
)

COMMENT_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("id", "id"),
    ("htmlURL", "html_url"),
    ("submittedAt", "submitted_at"),
    ("author", "author"),
    ("body", "body"),
    ("state", "state"),
)

_ARRAY_CLEANUP_RES = [re.compile(r"\$\{\{" + key + r"\[[^\]]+?\](?:\..*?)?\}\}") for key in ARRAY_KEYS]


def token(key: str) -> str:
    return "${{" + key + "}}"


class PlaceholderTable:
    """Insertion-ordered key/value table; re-setting a key keeps its original position."""

    def __init__(self) -> None:
        self._values: Dict[str, str] = {}

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(list(self._values.items()))

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)


@dataclass(frozen=True)
class CompiledPlaceholder:
    name: str
    extractor: RegexExtractor


def compile_placeholders(placeholders: Sequence[Placeholder]) -> Dict[str, List[CompiledPlaceholder]]:
    """Group custom placeholders by the key they derive from; invalid ones are skipped."""
    out: Dict[str, List[CompiledPlaceholder]] = {}
    for ph in placeholders or []:
        extractor = compile_transformer(ph.transformer.model_copy(update={"method": "replace"}), "custom_placeholder")
        if extractor is None:
            continue
        out.setdefault(ph.source, []).append(CompiledPlaceholder(name=ph.name, extractor=extractor))
    return out


def _field_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, dt.datetime):
        return iso_format(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def fill_array_placeholders(table: PlaceholderTable, key: str, values: Sequence[str]) -> None:
    if not values:
        return
    for i, value in enumerate(values):
        table.set(f"{key}[{i}]", value)
    table.set(f"{key}[*]", ", ".join(values))


def fill_object_placeholders(table: PlaceholderTable, key: str, objects: Sequence, fields: Sequence[Tuple[str, str]]) -> None:
    """``KEY[i].field`` and ``KEY[*].field`` for every field of every object, field-major."""
    if not objects:
        return
    for name, attr in fields:
        rendered = [_field_text(getattr(obj, attr)) for obj in objects]
        for i, text in enumerate(rendered):
            table.set(f"{key}[{i}].{name}", text)
        table.set(f"{key}[*].{name}", ", ".join(rendered))


def fill_release_placeholders(table: PlaceholderTable, context: ReleaseContext) -> None:
    from_date = context.from_tag.date
    to_date = context.to_tag.date
    table.set("OWNER", context.owner)
    table.set("REPO", context.repo)
    table.set("FROM_TAG", context.from_tag.name)
    table.set("FROM_TAG_DATE", iso_format(from_date))
    table.set("TO_TAG", context.to_tag.name)
    table.set("TO_TAG_DATE", iso_format(to_date))
    if from_date is not None and to_date is not None:
        table.set("DAYS_SINCE", str(_days_between(from_date, to_date)))
    else:
        table.set("DAYS_SINCE", "")
    table.set(
        "RELEASE_DIFF",
        f"https://github.com/{context.owner}/{context.repo}/compare/{context.from_tag.name}...{context.to_tag.name}",
    )


def _days_between(start: dt.datetime, end: dt.datetime) -> int:
    if start.tzinfo is None:
        start = start.replace(tzinfo=dt.timezone.utc)
    if end.tzinfo is None:
        end = end.replace(tzinfo=dt.timezone.utc)
    seconds = (end - start).total_seconds()
    # truncate toward zero
    return int(seconds / 86400)


@dataclass
class TemplateEngine:
    configuration: Configuration
    placeholders: Dict[str, List[CompiledPlaceholder]]
    tracked: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_configuration(cls, configuration: Configuration) -> "TemplateEngine":
        return cls(configuration=configuration, placeholders=compile_placeholders(configuration.custom_placeholders))

    def _value(self, value: str) -> str:
        return value.strip() if self.configuration.trim_values else value

    def _handle(self, text: str, key: str, value: str, track: bool) -> str:
        text = text.replace(token(key), self._value(value))
        for ph in self.placeholders.get(key, []):
            extracted = ph.extractor.substitute(value)
            # a replace that returns its input only counts when the pattern matched
            if extracted and (extracted != value or ph.extractor.matches(value)):
                if track:
                    self.tracked.setdefault(ph.name, []).append(extracted)
                text = text.replace(token(ph.name), self._value(extracted))
                logger.debug("template: custom placeholder %s matched key=%s", ph.name, key)
            else:
                logger.debug("template: custom placeholder %s skipped for key=%s", ph.name, key)
        return text

    def replace_placeholders(
        self,
        template: str,
        arrays: Optional[PlaceholderTable],
        scalars: PlaceholderTable,
        track: bool = True,
    ) -> str:
        text = template
        if arrays is not None:
            for key, value in arrays.items():
                text = self._handle(text, key, value, track)
        for key, value in scalars.items():
            text = self._handle(text, key, value, track)
        return text

    def fill_pr_template(self, pr: PullRequestRecord, children: Sequence[PullRequestRecord] = ()) -> str:
        arrays = PlaceholderTable()
        fill_object_placeholders(arrays, "REVIEWS", pr.reviews, COMMENT_FIELDS)
        fill_object_placeholders(arrays, "REFERENCED", children, PR_FIELDS)

        scalars = PlaceholderTable()
        scalars.set("NUMBER", str(pr.number))
        scalars.set("TITLE", pr.title)
        scalars.set("URL", pr.html_url)
        scalars.set("STATUS", pr.status)
        scalars.set("CREATED_AT", iso_format(pr.created_at))
        scalars.set("MERGED_AT", iso_format(pr.merged_at))
        scalars.set("MERGE_SHA", pr.merge_commit_sha)
        scalars.set("AUTHOR", pr.author)
        scalars.set("LABELS", ", ".join(lbl for lbl in pr.labels if not lbl.startswith(INTERNAL_LABEL_PREFIX)))
        scalars.set("MILESTONE", pr.milestone or "")
        scalars.set("BODY", pr.body)
        fill_array_placeholders(arrays, "ASSIGNEES", pr.assignees)
        scalars.set("ASSIGNEES", ", ".join(pr.assignees))
        fill_array_placeholders(arrays, "REVIEWERS", pr.requested_reviewers)
        scalars.set("REVIEWERS", ", ".join(pr.requested_reviewers))
        fill_array_placeholders(arrays, "APPROVERS", pr.approved_reviewers)
        scalars.set("APPROVERS", ", ".join(pr.approved_reviewers))
        scalars.set("BRANCH", pr.branch)
        scalars.set("BASE_BRANCH", pr.base_branch)

        body = self.replace_placeholders(self.configuration.pr_template, arrays, scalars)
        return self._value(body)

    def replace_pr_placeholders(self, text: str) -> str:
        """Second pass: ``${{NAME[i]}}`` / ``${{NAME[*]}}`` from values tracked across records."""
        for name, values in self.tracked.items():
            for i, value in enumerate(values):
                text = text.replace(token(f"{name}[{i}]"), self._value(value))
            text = text.replace(token(f"{name}[*]"), "".join(values))
        return text

    def cleanup_pr_placeholders(self, text: str) -> str:
        for phs in self.placeholders.values():
            for ph in phs:
                text = re.sub(r"\$\{\{" + re.escape(ph.name) + r"(?:\[.+?\])?\}\}", "", text)
        return text

    @staticmethod
    def cleanup_placeholders(text: str) -> str:
        for pattern in _ARRAY_CLEANUP_RES:
            text = pattern.sub("", text)
        return text

    def finalize(self, text: str) -> str:
        text = self.replace_pr_placeholders(text)
        text = self.cleanup_pr_placeholders(text)
        return self.cleanup_placeholders(text)


def render_empty_template(configuration: Configuration, context: ReleaseContext) -> str:
    """Render ``empty_template`` against document-level placeholders only."""
    engine = TemplateEngine.from_configuration(configuration)
    scalars = PlaceholderTable()
    fill_release_placeholders(scalars, context)
    text = engine.replace_placeholders(configuration.empty_template, None, scalars, track=False)
    return engine.cleanup_placeholders(engine.cleanup_pr_placeholders(text))
