"""Pydantic models for the two external inputs: pull request records and configuration.

Records are built once per invocation by the PR supplier and mutated in place
only by the label extraction stage. Configuration is validated once and then
treated as read-only by every stage.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from releasenotes.exceptions import ConfigurationError
from releasenotes.utils import parse_datetime_safe


def _coerce_datetime(value: Any) -> Any:
    if isinstance(value, str):
        parsed = parse_datetime_safe(value)
        return parsed if parsed is not None else value
    return value


# ---------- Records ----------

class CommentRecord(BaseModel):
    """A single review left on a pull request."""

    id: str = ""
    html_url: str = ""
    submitted_at: Optional[dt.datetime] = None
    author: str = ""
    body: str = ""
    state: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("submitted_at", mode="before")
    @classmethod
    def _parse_submitted(cls, v: Any) -> Any:
        return _coerce_datetime(v)

    @field_validator("body", "author", "state", "html_url", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class PullRequestRecord(BaseModel):
    """One pull request and its metadata, keyed by ``number``."""

    number: int
    title: str
    html_url: str = ""
    base_branch: str = ""
    branch: str = ""
    created_at: dt.datetime
    merged_at: Optional[dt.datetime] = None
    merge_commit_sha: str = ""
    author: str = ""
    repo_name: str = ""
    labels: List[str] = Field(default_factory=list)
    milestone: Optional[str] = None
    body: str = ""
    assignees: List[str] = Field(default_factory=list)
    requested_reviewers: List[str] = Field(default_factory=list)
    approved_reviewers: List[str] = Field(default_factory=list)
    status: Literal["open", "merged", "closed"] = "merged"
    reviews: List[CommentRecord] = Field(default_factory=list)

    @field_validator("created_at", "merged_at", mode="before")
    @classmethod
    def _parse_dates(cls, v: Any) -> Any:
        return _coerce_datetime(v)

    @field_validator("body", "merge_commit_sha", "author", "branch", "base_branch", "html_url", "repo_name", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("labels", mode="before")
    @classmethod
    def _normalize_labels(cls, v: Any) -> Any:
        if v is None:
            return []
        if not isinstance(v, (list, tuple)):
            return v
        # case-folded, first occurrence wins
        return list(dict.fromkeys(str(lbl).lower() for lbl in v))

    def add_label(self, label: str) -> None:
        self.labels.append(label.lower())


class DiffSummary(BaseModel):
    """Change statistics between the two tags, read-only to the pipeline."""

    changed_files: int = Field(default=0, ge=0)
    additions: int = Field(default=0, ge=0)
    deletions: int = Field(default=0, ge=0)
    changes: int = Field(default=0, ge=0)
    commits: int = Field(default=0, ge=0)


class TagInfo(BaseModel):
    name: str
    date: Optional[dt.datetime] = None

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, v: Any) -> Any:
        return _coerce_datetime(v)


class ReleaseContext(BaseModel):
    """Repository coordinates and the tag range the changelog covers."""

    owner: str = ""
    repo: str = ""
    from_tag: TagInfo = Field(default_factory=lambda: TagInfo(name=""))
    to_tag: TagInfo = Field(default_factory=lambda: TagInfo(name=""))


# ---------- Configuration ----------

PropertyRef = Union[str, List[str]]


class Rule(BaseModel):
    model_config = ConfigDict(frozen=True)

    pattern: str
    on_property: PropertyRef = "title"
    flags: str = "gu"


class Transformer(BaseModel):
    """Configuration form of a regex extractor; compiled by ``releasenotes.regex``."""

    model_config = ConfigDict(frozen=True)

    pattern: str
    target: str = "$1"
    flags: str = "gu"
    method: Literal["replace", "match"] = "replace"
    on_property: Optional[PropertyRef] = None
    on_empty: Optional[str] = None


class Placeholder(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    source: str
    transformer: Transformer


class Category(BaseModel):
    title: str = ""
    key: Optional[str] = None
    labels: Optional[List[str]] = None
    exclude_labels: Optional[List[str]] = None
    rules: Optional[List[Rule]] = None
    exhaustive: bool = False
    exhaustive_rules: Optional[bool] = None
    empty_content: Optional[str] = None

    @property
    def output_key(self) -> str:
        return self.key or self.title

    @property
    def is_catch_all(self) -> bool:
        return not self.labels and self.rules is None


class SortSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    order: Literal["ASC", "DESC"] = "ASC"
    on_property: str = "mergedAt"


DEFAULT_TEMPLATE = "${{CHANGELOG}}\n\n<details>\n<summary>Uncategorized</summary>\n\n${{UNCATEGORIZED}}\n</details>"
DEFAULT_PR_TEMPLATE = "- ${{TITLE}}\n   - PR: #${{NUMBER}}"
DEFAULT_EMPTY_TEMPLATE = "- no changes"


def _default_categories() -> List[Category]:
    return [
        Category(title="## 🚀 Features", labels=["feature"]),
        Category(title="## 🐛 Fixes", labels=["fix"]),
        Category(title="## 🧪 Tests", labels=["test"]),
    ]


class Configuration(BaseModel):
    template: str = DEFAULT_TEMPLATE
    pr_template: str = DEFAULT_PR_TEMPLATE
    empty_template: str = DEFAULT_EMPTY_TEMPLATE
    categories: List[Category] = Field(default_factory=_default_categories)
    ignore_labels: List[str] = Field(default_factory=lambda: ["ignore"])
    label_extractor: List[Transformer] = Field(default_factory=list)
    transformers: List[Transformer] = Field(default_factory=list)
    custom_placeholders: List[Placeholder] = Field(default_factory=list)
    reference: Optional[Transformer] = None
    duplicate_filter: Optional[Transformer] = None
    sort: SortSpec = Field(default_factory=SortSpec)
    trim_values: bool = False

    @field_validator("sort", mode="before")
    @classmethod
    def _sort_shorthand(cls, v: Any) -> Any:
        if isinstance(v, str):
            return {"order": v.upper(), "on_property": "mergedAt"}
        return v


DEFAULT_CONFIGURATION = Configuration()


def parse_configuration(raw: Optional[Dict[str, Any]]) -> Configuration:
    """Build a ``Configuration`` from an already schema-validated dict.

    Keys missing from ``raw`` fall back to ``DEFAULT_CONFIGURATION``.
    """
    try:
        return Configuration.model_validate(raw or {})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
