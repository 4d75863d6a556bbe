import logging

from releasenotes.models import Transformer
from releasenotes.regex import compile_transformer
from releasenotes.stages.references import link_references, parse_reference

REFERENCE = Transformer(pattern=r".*#(\d+).*", target="$1")


def test_closes_reference_links_child_to_parent(make_pr):
    prs = [make_pr(3), make_pr(5, body="Closes #3"), make_pr(7)]
    linked = link_references(prs, compile_transformer(REFERENCE, "reference"))
    assert [p.number for p in linked.roots] == [3, 7]
    assert [p.number for p in linked.children_of(3)] == [5]
    assert linked.children_of(7) == []


def test_unparsable_reference_stays_root_with_warning(make_pr, caplog):
    prs = [make_pr(1, body="see issue"), make_pr(2)]
    extractor = compile_transformer(Transformer(pattern=r"see (\w+)", target="$1"), "reference")
    with caplog.at_level(logging.WARNING):
        linked = link_references(prs, extractor)
    assert [p.number for p in linked.roots] == [1, 2]
    assert "not a number" in caplog.text


def test_self_and_unknown_references_stay_root(make_pr):
    prs = [make_pr(4, body="backport of #4"), make_pr(6, body="backport of #99")]
    linked = link_references(prs, compile_transformer(REFERENCE, "reference"))
    assert [p.number for p in linked.roots] == [4, 6]
    assert linked.children == {}


def test_linking_is_single_pass(make_pr):
    # 1 <- 2 <- 3: 2 is consumed as a child of 1, 3 hangs off 2 but is not lifted to 1
    prs = [make_pr(1), make_pr(2, body="#1"), make_pr(3, body="#2")]
    linked = link_references(prs, compile_transformer(REFERENCE, "reference"))
    assert [p.number for p in linked.roots] == [1]
    assert [p.number for p in linked.children_of(1)] == [2]
    assert [p.number for p in linked.children_of(2)] == [3]


def test_no_extractor_keeps_everything(make_pr):
    prs = [make_pr(1), make_pr(2, body="#1")]
    linked = link_references(prs, None)
    assert [p.number for p in linked.roots] == [1, 2]


def test_parse_reference_leading_integer():
    assert parse_reference("42") == 42
    assert parse_reference(" 7abc") == 7
    assert parse_reference("#3") is None
