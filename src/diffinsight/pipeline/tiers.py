"""Tier attempt functions.

Each returns ``Ok(records)`` or ``Err(reason, message)``; none raises for a
per-artifact failure. The generic tier cannot fail.
"""

from __future__ import annotations

import structlog

from diffinsight.config.models import AnalysisConfig
from diffinsight.core.errors import DiffInsightError, ExtractionError, InternalError
from diffinsight.diff.engine import diff_models
from diffinsight.diff.models import ChangeRecord, ChangeType, EntityKind
from diffinsight.extraction import ExtractorRegistry
from diffinsight.parsing.grammars import Grammar
from diffinsight.parsing.treesitter import TreeSitterParser
from diffinsight.pipeline.models import Err, Ok, TierResult
from diffinsight.pipeline.patterns import detect_patterns, split_diff

log = structlog.get_logger(__name__)


def run_ast_tier(
    path: str,
    old_content: str,
    new_content: str,
    grammar: Grammar,
    *,
    config: AnalysisConfig,
    parser: TreeSitterParser,
    registry: ExtractorRegistry,
) -> TierResult:
    """Parse both versions, extract both models, and diff them.

    Blocking; the batch layer runs it in a worker thread. An empty record
    list is a failure so that the pattern tier gets a chance.
    """
    try:
        old_model = registry.extract(old_content, grammar, path=path, parser=parser, config=config)
        new_model = registry.extract(new_content, grammar, path=path, parser=parser, config=config)
        records = diff_models(old_model, new_model, config)
    except DiffInsightError as e:
        return Err.from_error(e)
    except Exception as e:
        log.error("extractor_failed", path=path, grammar=grammar.value, error=str(e), exc_info=True)
        return Err.from_error(InternalError.unexpected(str(e), path=path))

    if not records:
        return Err.from_error(ExtractionError.empty_result(path))
    return Ok(tuple(records))


def run_pattern_tier(
    path: str,
    diff_text: str,
    grammar: Grammar,
    config: AnalysisConfig | None = None,
) -> TierResult:
    """Regex detectors over the artifact's unified diff text."""
    try:
        return Ok(tuple(detect_patterns(path, diff_text, grammar, config)))
    except DiffInsightError as e:
        return Err.from_error(e)


def count_lines(diff_text: str) -> tuple[int, int]:
    lines = split_diff(diff_text)
    return len(lines.added), len(lines.removed)


def run_generic_tier(path: str, insertions: int, deletions: int, diff_text: str = "") -> TierResult:
    """Line-count summary. Counts fall back to the diff text when both are zero."""
    if not insertions and not deletions and diff_text:
        insertions, deletions = count_lines(diff_text)
    summary = f"+{insertions} -{deletions} lines"
    return Ok(
        (
            ChangeRecord(
                change_type=ChangeType.MODIFIED,
                entity_kind=EntityKind.FILE,
                identity_key=path,
                after=summary,
                details=(summary,),
            ),
        )
    )
