import datetime as dt

from releasenotes.models import CommentRecord, Configuration, Placeholder, ReleaseContext, TagInfo, Transformer
from releasenotes.rendering.template import (
    PlaceholderTable,
    TemplateEngine,
    fill_release_placeholders,
    render_empty_template,
)


def _engine(**kwargs) -> TemplateEngine:
    return TemplateEngine.from_configuration(Configuration(**kwargs))


def test_scalar_placeholders(make_pr):
    pr = make_pr(
        12,
        "Add thing",
        labels=["feature", "--rcba-internal"],
        milestone="v2",
        merged_at=dt.datetime(2024, 5, 6, 7, 8, 9, 123000, tzinfo=dt.timezone.utc),
        branch="feat/x",
        base_branch="main",
    )
    engine = _engine(pr_template="#${{NUMBER}} ${{TITLE}} [${{LABELS}}] ${{MILESTONE}} ${{MERGED_AT}} ${{BRANCH}}->${{BASE_BRANCH}}")
    assert engine.fill_pr_template(pr) == "#12 Add thing [feature] v2 2024-05-06T07:08:09.123Z feat/x->main"


def test_array_placeholders(make_pr):
    pr = make_pr(1, assignees=["amy", "bob"], approved_reviewers=["cat"])
    engine = _engine(pr_template="${{ASSIGNEES[1]}}|${{ASSIGNEES[*]}}|${{APPROVERS[0]}}|${{ASSIGNEES}}")
    assert engine.fill_pr_template(pr) == "bob|amy, bob|cat|amy, bob"


def test_review_and_referenced_placeholders(make_pr):
    pr = make_pr(
        1,
        reviews=[
            CommentRecord(id=10, author="amy", body="LGTM", state="APPROVED"),
            CommentRecord(id=11, author="bob", body="nit", state="COMMENTED"),
        ],
    )
    children = [make_pr(7, "Backport A"), make_pr(8, "Backport B")]
    engine = _engine(pr_template="${{REVIEWS[*].author}} / ${{REVIEWS[1].body}} / ${{REFERENCED[0].number}} ${{REFERENCED[*].title}}")
    assert engine.fill_pr_template(pr, children) == "amy, bob / nit / 7 Backport A, Backport B"


def test_trim_values_scenario(make_pr):
    pr = make_pr(1, " Fix bug ")
    assert _engine(pr_template="${{TITLE}} ", trim_values=True).fill_pr_template(pr) == "Fix bug"
    assert _engine(pr_template="${{TITLE}} ", trim_values=False).fill_pr_template(pr) == " Fix bug  "


def test_custom_placeholder_inline_and_tracked(make_pr):
    engine = _engine(
        pr_template="${{TITLE}} (${{TICKET}})",
        custom_placeholders=[
            Placeholder(name="TICKET", source="BODY", transformer=Transformer(pattern=r".*(JIRA-\d+).*", target="$1")),
        ],
    )
    first = engine.fill_pr_template(make_pr(1, "A", body="refs JIRA-1"))
    second = engine.fill_pr_template(make_pr(2, "B", body="no ticket here"))
    third = engine.fill_pr_template(make_pr(3, "C", body="JIRA-3"))
    assert first == "A (JIRA-1)"
    # unmatched value: the token stays until cleanup
    assert second == "B (${{TICKET}})"
    # replace-with-self still counts because the pattern matched
    assert third == "C (JIRA-3)"
    assert engine.tracked == {"TICKET": ["JIRA-1", "JIRA-3"]}

    doc = engine.finalize(f"{first}\n{second}\n${{{{TICKET[1]}}}} ${{{{TICKET[*]}}}} ${{{{TICKET[5]}}}}")
    assert doc == "A (JIRA-1)\nB ()\nJIRA-3 JIRA-1JIRA-3 "


def test_cleanup_removes_unpopulated_indexed_builtins(make_pr):
    engine = _engine(pr_template="${{TITLE}}${{REVIEWS[0].body}}${{REFERENCED[*].title}}${{ASSIGNEES[0]}}")
    body = engine.fill_pr_template(make_pr(1, "Solo"))
    assert engine.finalize(body) == "Solo"


def test_release_placeholders():
    context = ReleaseContext(
        owner="octo",
        repo="app",
        from_tag=TagInfo(name="v1.0.0", date=dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)),
        to_tag=TagInfo(name="v1.1.0", date=dt.datetime(2024, 1, 11, 12, tzinfo=dt.timezone.utc)),
    )
    table = PlaceholderTable()
    fill_release_placeholders(table, context)
    assert table.get("DAYS_SINCE") == "10"
    assert table.get("FROM_TAG_DATE") == "2024-01-01T00:00:00.000Z"
    assert table.get("RELEASE_DIFF") == "https://github.com/octo/app/compare/v1.0.0...v1.1.0"

    table = PlaceholderTable()
    fill_release_placeholders(table, ReleaseContext(from_tag=TagInfo(name="a"), to_tag=TagInfo(name="b")))
    assert table.get("DAYS_SINCE") == ""


def test_placeholder_table_keeps_first_position():
    table = PlaceholderTable()
    table.set("A", "1")
    table.set("B", "2")
    table.set("A", "3")
    assert list(table.items()) == [("A", "3"), ("B", "2")]


def test_empty_template_uses_document_placeholders_only():
    config = Configuration(
        empty_template="No changes between ${{FROM_TAG}} and ${{TO_TAG}}${{CHANGELOG}}${{VERSION}}",
        custom_placeholders=[
            Placeholder(name="VERSION", source="TO_TAG", transformer=Transformer(pattern=r"v(\d+)\..*", target=" (major $1)")),
        ],
    )
    context = ReleaseContext(from_tag=TagInfo(name="v1.0.0"), to_tag=TagInfo(name="v2.0.0"))
    assert render_empty_template(config, context) == "No changes between v1.0.0 and v2.0.0${{CHANGELOG}} (major 2)"
