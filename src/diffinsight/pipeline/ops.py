"""Artifact analysis operations.

``analyze_artifact`` runs the fallback controller for one changed artifact;
``analyze_artifacts`` fans a batch out concurrently. Artifacts share no
mutable state: the parser only caches loaded languages, and every
Structural Model is built and discarded inside one AST attempt.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from diffinsight.config.models import DiffInsightConfig
from diffinsight.core.errors import ContentError, ExtractionError, InternalError
from diffinsight.core.logging import bind_artifact, get_run_id, set_run_id
from diffinsight.diff.models import ChangeRecord, ChangeType, EntityKind, Tier
from diffinsight.extraction import ExtractorRegistry, default_registry
from diffinsight.parsing.grammars import GrammarFamily, grammar_family, select_grammar
from diffinsight.parsing.treesitter import TreeSitterParser
from diffinsight.pipeline.controller import FallbackController
from diffinsight.pipeline.models import (
    ArtifactAnalysis,
    ChangedArtifact,
    ContentResolver,
    Err,
    TierResult,
    VersionPair,
)
from diffinsight.pipeline.tiers import run_ast_tier, run_generic_tier, run_pattern_tier

log = structlog.get_logger(__name__)


@dataclass
class AnalysisContext:
    """Collaborators injected into every artifact analysis."""

    resolver: ContentResolver
    versions: VersionPair
    config: DiffInsightConfig = field(default_factory=DiffInsightConfig)
    parser: TreeSitterParser | None = None
    registry: ExtractorRegistry = field(default_factory=default_registry)

    def __post_init__(self) -> None:
        if self.parser is None:
            self.parser = TreeSitterParser(max_error_ratio=self.config.analysis.max_error_ratio)


def _binary_analysis(artifact: ChangedArtifact) -> ArtifactAnalysis:
    return ArtifactAnalysis(
        path=artifact.path,
        status=artifact.status,
        grammar=select_grammar(artifact.path),
        tier=Tier.GENERIC,
        records=(
            ChangeRecord(
                change_type=ChangeType.MODIFIED,
                entity_kind=EntityKind.FILE,
                identity_key=artifact.path,
                details=("binary file changed",),
            ),
        ),
        insertions=artifact.insertions,
        deletions=artifact.deletions,
        old_path=artifact.old_path,
    )


def _rename_record(artifact: ChangedArtifact) -> ChangeRecord:
    return ChangeRecord(
        change_type=ChangeType.MODIFIED,
        entity_kind=EntityKind.FILE,
        identity_key=artifact.path,
        before=artifact.old_path,
        after=artifact.path,
        details=(f"renamed from {artifact.old_path}",),
    )


async def analyze_artifact(artifact: ChangedArtifact, context: AnalysisContext) -> ArtifactAnalysis:
    """Analyze one changed artifact through the tiered fallback pipeline."""
    if artifact.binary:
        log.debug("binary_artifact", path=artifact.path)
        return _binary_analysis(artifact)

    path = artifact.path
    analysis_config = context.config.analysis
    timeout = context.config.pipeline.artifact_timeout_sec
    grammar = select_grammar(path)

    async def ast_attempt() -> TierResult:
        nonlocal grammar
        if grammar_family(grammar) == GrammarFamily.GENERIC:
            return Err.from_error(ExtractionError.unsupported_grammar(path, grammar.value))
        try:
            old, new = await context.resolver.resolve(path, context.versions, old_path=artifact.old_path)
        except ContentError as e:
            return Err.from_error(e)
        grammar = select_grammar(path, new or old)

        work = asyncio.to_thread(
            run_ast_tier,
            path,
            old,
            new,
            grammar,
            config=analysis_config,
            parser=context.parser,
            registry=context.registry,
        )
        if timeout is None:
            return await work
        try:
            return await asyncio.wait_for(work, timeout)
        except TimeoutError:
            return Err.from_error(InternalError.timeout(path, timeout))

    async def pattern_attempt() -> TierResult:
        return run_pattern_tier(path, artifact.diff_text, grammar, analysis_config)

    async def generic_attempt() -> TierResult:
        return run_generic_tier(path, artifact.insertions, artifact.deletions, artifact.diff_text)

    controller = FallbackController(
        path,
        {Tier.AST: ast_attempt, Tier.PATTERN: pattern_attempt, Tier.GENERIC: generic_attempt},
    )
    outcome = await controller.run()

    records = outcome.records
    if artifact.is_rename:
        records = (_rename_record(artifact), *records)

    log.debug(
        "artifact_analyzed",
        path=path,
        grammar=grammar.value,
        tier=outcome.tier.value,
        records=len(records),
        demotions=len(outcome.failures),
    )
    return ArtifactAnalysis(
        path=path,
        status=artifact.status,
        grammar=grammar,
        tier=outcome.tier,
        records=records,
        insertions=artifact.insertions,
        deletions=artifact.deletions,
        old_path=artifact.old_path,
        failures=outcome.failures,
    )


async def analyze_artifacts(
    artifacts: Sequence[ChangedArtifact],
    resolver: ContentResolver,
    versions: VersionPair,
    config: DiffInsightConfig | None = None,
) -> list[ArtifactAnalysis]:
    """Analyze a batch concurrently; results keep input order.

    Concurrency is bounded by ``pipeline.max_concurrency``. One artifact's
    failure never affects another's result.
    """
    context = AnalysisContext(resolver=resolver, versions=versions, config=config or DiffInsightConfig())
    if get_run_id() is None:
        set_run_id()
    sem = asyncio.Semaphore(context.config.pipeline.max_concurrency)

    async def run_one(artifact: ChangedArtifact) -> ArtifactAnalysis:
        async with sem:
            with bind_artifact(artifact.path):
                return await analyze_artifact(artifact, context)

    log.info("batch_started", artifacts=len(artifacts), old=versions.old, new=versions.new or "worktree")
    results = await asyncio.gather(*(run_one(a) for a in artifacts))
    counts = tier_counts(results)
    log.info("batch_completed", artifacts=len(results), **{t.value: n for t, n in counts.items()})
    return list(results)


def tier_counts(analyses: Sequence[ArtifactAnalysis]) -> dict[Tier, int]:
    return {tier: sum(1 for a in analyses if a.tier == tier) for tier in Tier}


__all__ = [
    "AnalysisContext",
    "analyze_artifact",
    "analyze_artifacts",
    "tier_counts",
]
