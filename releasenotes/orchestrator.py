import time
import uuid
from typing import Dict, Any, List, Optional, Sequence

from releasenotes.models import Configuration, DiffSummary, PullRequestRecord, ReleaseContext, parse_configuration
from releasenotes.regex import apply_transformers, compile_transformer, compile_transformers
from releasenotes.rendering.template import (
    PlaceholderTable,
    TemplateEngine,
    fill_release_placeholders,
    render_empty_template,
)
from releasenotes.sources import file_adapter
from releasenotes.stages.assembler import ChangelogResult, fill_section_placeholders, to_result
from releasenotes.stages.classifier import classify
from releasenotes.stages.dedup import dedup_by_key
from releasenotes.stages.labels import extract_labels
from releasenotes.stages.references import link_references
from releasenotes.stages.sorter import sort_records
from releasenotes.utils import get_logger, load_config, write_output

logger = get_logger(__name__)


def build_changelog(
    records: Sequence[PullRequestRecord],
    diff: DiffSummary,
    context: ReleaseContext,
    configuration: Configuration,
) -> ChangelogResult:
    """Sort, link, dedup, label, render, classify and assemble ``records`` into a changelog.

    Inputs are copied first, so repeated calls with the same arguments yield the
    same document and counts.
    """
    if not records:
        logger.warning("build: no pull requests found")
        return ChangelogResult(
            document=render_empty_template(configuration, context),
            categorized={c.output_key: [] for c in configuration.categories},
        )

    prs: List[PullRequestRecord] = [pr.model_copy(deep=True) for pr in records]

    t0 = time.monotonic()
    prs = sort_records(prs, configuration.sort)
    logger.info("sort: prs=%d on=%s order=%s", len(prs), configuration.sort.on_property, configuration.sort.order)

    linked = link_references(prs, compile_transformer(configuration.reference, "reference"))
    prs, removed = dedup_by_key(
        linked.roots,
        compile_transformer(configuration.duplicate_filter, "duplicate_filter"),
        configuration.sort,
    )
    extract_labels(prs, compile_transformers(configuration.label_extractor, "label_extractor"))

    engine = TemplateEngine.from_configuration(configuration)
    transformers = compile_transformers(configuration.transformers, "transformers")
    rendered = [
        (pr, apply_transformers(engine.fill_pr_template(pr, linked.children_of(pr.number)), transformers))
        for pr in prs
    ]
    logger.info("render: prs=%d transformers=%d", len(rendered), len(transformers))

    classification = classify(rendered, configuration.categories, configuration.ignore_labels)

    table = PlaceholderTable()
    fill_section_placeholders(table, classification, diff)
    fill_release_placeholders(table, context)
    document = engine.replace_placeholders(configuration.template, None, table)
    document = engine.finalize(document)
    logger.info("build: filled template took_ms=%d", int((time.monotonic() - t0) * 1000))
    return to_result(document, classification, removed)


def _apply_overrides(cfg: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> None:
    if not overrides:
        return

    if overrides.get("trim_values") is not None:
        cfg["trim_values"] = bool(overrides["trim_values"])

    if overrides.get("sort_order") is not None or overrides.get("sort_on") is not None:
        sort = cfg.get("sort")
        if isinstance(sort, str):
            sort = {"order": sort.upper()}
        sort = dict(sort or {})
        if overrides.get("sort_order") is not None:
            sort["order"] = str(overrides["sort_order"]).upper()
        if overrides.get("sort_on") is not None:
            sort["on_property"] = overrides["sort_on"]
        cfg["sort"] = sort


def run_once(
    config_path: Optional[str],
    input_path: str,
    *,
    output_dir: Optional[str] = None,
    formats: Optional[List[str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ChangelogResult:
    """Build a changelog once from a config file (or defaults) and an input export."""
    run_id = uuid.uuid4().hex[:8]
    logger.info("=== run start id=%s ===", run_id)

    try:
        cfg = load_config(config_path) if config_path else {}
        _apply_overrides(cfg, overrides)
        configuration = parse_configuration(cfg)
        logger.info("config loaded path=%s categories=%d", config_path, len(configuration.categories))

        t0 = time.monotonic()
        data = file_adapter.fetch(input_path)
        logger.info("fetched prs=%d took_ms=%d", len(data.records), int((time.monotonic() - t0) * 1000))

        result = build_changelog(data.records, data.diff, data.context, configuration)

        if output_dir:
            generated_files = write_output(result.document, result.to_dict(), {"dir": output_dir, "formats": formats or ["md"]})
            logger.info("output written files=%s", generated_files)
        return result

    except Exception as e:
        logger.error("Pipeline execution failed: %s", e)
        raise
    finally:
        logger.info("=== run end id=%s ===", run_id)
