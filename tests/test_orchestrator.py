import json

import pytest
import yaml

from releasenotes.exceptions import ConfigurationError
from releasenotes.models import DiffSummary, ReleaseContext, TagInfo, parse_configuration
from releasenotes.orchestrator import build_changelog, run_once

CONTEXT = ReleaseContext(owner="octo", repo="app", from_tag=TagInfo(name="v1.0.0"), to_tag=TagInfo(name="v1.1.0"))


def test_empty_input_renders_empty_template():
    config = parse_configuration({"empty_template": "No changes."})
    result = build_changelog([], DiffSummary(), CONTEXT, config)
    assert result.document == "No changes."
    assert result.categorized_count == 0
    assert result.uncategorized_count == 0


def test_bug_and_catch_all_categories(make_pr):
    config = parse_configuration({
        "pr_template": "- ${{TITLE}}",
        "template": "${{CHANGELOG}}---\n${{UNCATEGORIZED}}",
        "categories": [{"title": "## Bugs", "labels": ["bug"]}, {"title": "## Other"}],
    })
    prs = [make_pr(1, "Fix bug", labels=["bug"]), make_pr(2, "Other")]
    result = build_changelog(prs, DiffSummary(), CONTEXT, config)
    assert result.document == "## Bugs\n\n- Fix bug\n\n## Other\n\n- Other\n\n---\n- Other\n"
    assert result.categorized_count == 1
    assert result.uncategorized_count == 1
    assert result.categorized == {"## Bugs": ["- Fix bug"], "## Other": ["- Other"]}


def test_full_pipeline_links_dedups_and_labels(make_pr):
    config = parse_configuration({
        "pr_template": "- ${{TITLE}} [${{LABELS}}]${{REFERENCED[*].number}}",
        "template": "${{CHANGELOG}}${{IGNORED}}dups:${{CATEGORIZED_COUNT}}/${{IGNORED_COUNT}} ${{ADDITIONS}}+ ${{RELEASE_DIFF}}",
        "categories": [{"title": "## Features", "labels": ["feat"]}, {"title": "## Fixes", "labels": ["fix"]}],
        "ignore_labels": ["chore"],
        "reference": {"pattern": ".*backport of #(\\d+).*", "target": "$1"},
        "duplicate_filter": {"pattern": ".*\\[(T-\\d+)\\].*", "target": "$1", "on_property": "title"},
        "label_extractor": [{"pattern": "^(\\w+):.*", "target": "$1", "on_property": "title"}],
        "transformers": [{"pattern": "\\[\\]", "target": ""}],
    })
    prs = [
        make_pr(1, "feat: search [T-1]"),
        make_pr(2, "fix: crash"),
        make_pr(3, "fix: crash backport", body="backport of #2"),
        make_pr(4, "feat: search again [T-1]"),
        make_pr(5, "chore: deps"),
    ]
    result = build_changelog(prs, DiffSummary(additions=7), CONTEXT, config)
    assert result.removed_duplicates == 1
    assert result.document == (
        "## Features\n\n- feat: search again [T-1] [feat]\n\n"
        "## Fixes\n\n- fix: crash [fix]3\n\n"
        "- chore: deps [chore]\n"
        "dups:2/1 7+ https://github.com/octo/app/compare/v1.0.0...v1.1.0"
    )
    # inputs are not mutated
    assert prs[0].labels == []


def test_render_is_deterministic(make_pr):
    config = parse_configuration({
        "label_extractor": [{"pattern": "^(\\w+):.*", "target": "$1", "on_property": "title"}],
        "template": "${{CHANGELOG}}${{UNCATEGORIZED}}",
    })
    prs = [make_pr(1, "feature: a"), make_pr(2, "fix: b"), make_pr(3, "other")]
    first = build_changelog(prs, DiffSummary(), CONTEXT, config)
    second = build_changelog(prs, DiffSummary(), CONTEXT, config)
    assert first == second


def test_no_placeholder_tokens_left_behind(make_pr):
    config = parse_configuration({
        "pr_template": "- ${{TITLE}} ${{REVIEWS[0].author}} ${{ISSUE}}",
        "template": "${{CHANGELOG}}${{ISSUE[0]}}${{ISSUE[*]}}",
        "categories": [{"title": "All"}],
        "custom_placeholders": [
            {"name": "ISSUE", "source": "BODY", "transformer": {"pattern": ".*#(\\d+).*", "target": "$1"}},
        ],
    })
    result = build_changelog([make_pr(1, "a"), make_pr(2, "b", body="fixes #9")], DiffSummary(), CONTEXT, config)
    assert "${{" not in result.document
    assert result.document == "All\n\n- a  \n- b  9\n\n99"


def test_unknown_sort_field_aborts(make_pr):
    config = parse_configuration({"sort": {"order": "ASC", "on_property": "stars"}})
    with pytest.raises(ConfigurationError):
        build_changelog([make_pr(1)], DiffSummary(), CONTEXT, config)


def test_run_once_writes_outputs(tmp_path):
    config_path = tmp_path / "config.yml"
    config_path.write_text(
        yaml.safe_dump({
            "pr_template": "- ${{TITLE}} (#${{NUMBER}})",
            "template": "# ${{TO_TAG}}\n\n${{CHANGELOG}}",
            "categories": [{"title": "## Fixes", "key": "fixes", "labels": ["fix"]}],
            "sort": "DESC",
        }),
        encoding="utf-8",
    )
    input_path = tmp_path / "input.json"
    input_path.write_text(
        json.dumps({
            "owner": "octo",
            "repo": "app",
            "from_tag": {"name": "v1.0.0", "date": "2024-01-01T00:00:00Z"},
            "to_tag": {"name": "v1.1.0", "date": "2024-01-05T00:00:00Z"},
            "diff": {"changed_files": 1, "additions": 2, "deletions": 0, "changes": 2, "commits": 2},
            "pull_requests": [
                {"number": 1, "title": "Fix a", "created_at": "2024-01-02T00:00:00Z", "merged_at": "2024-01-02T00:00:00Z", "labels": ["Fix"]},
                {"number": 2, "title": "Fix b", "created_at": "2024-01-03T00:00:00Z", "merged_at": "2024-01-03T00:00:00Z", "labels": ["fix"]},
            ],
        }),
        encoding="utf-8",
    )
    out_dir = tmp_path / "out"
    result = run_once(str(config_path), str(input_path), output_dir=str(out_dir), formats=["md", "json"])
    assert result.document == "# v1.1.0\n\n## Fixes\n\n- Fix b (#2)\n- Fix a (#1)\n\n"
    written = sorted(p.suffix for p in out_dir.iterdir())
    assert written == [".json", ".md"]
    payload = json.loads(next(out_dir.glob("*.json")).read_text(encoding="utf-8"))
    assert payload["categorized"] == {"fixes": ["- Fix b (#2)", "- Fix a (#1)"]}


def test_invalid_config_file_is_rejected(tmp_path):
    config_path = tmp_path / "config.yml"
    config_path.write_text(yaml.safe_dump({"categories": [{"labels": "bug"}]}), encoding="utf-8")
    input_path = tmp_path / "input.yml"
    input_path.write_text(yaml.safe_dump({"pull_requests": []}), encoding="utf-8")
    with pytest.raises(ConfigurationError):
        run_once(str(config_path), str(input_path))


def test_run_once_overrides_trim(tmp_path):
    input_path = tmp_path / "input.yml"
    input_path.write_text(
        yaml.safe_dump({"pull_requests": [{"number": 1, "title": " Padded ", "created_at": "2024-01-02T00:00:00Z", "labels": ["feature"]}]}),
        encoding="utf-8",
    )
    result = run_once(None, str(input_path), overrides={"trim_values": True})
    assert result.categorized == {"## 🚀 Features": ["- Padded\n   - PR: #1"], "## 🐛 Fixes": [], "## 🧪 Tests": []}
