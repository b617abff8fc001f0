"""Analysis pipeline: tier attempts, fallback controller, batch operations.

Public API:
- ``analyze_artifacts`` / ``analyze_artifact``: run the tiered pipeline
- ``ChangedArtifact`` / ``ArtifactAnalysis``: input and output units
- ``ContentResolver`` protocol and ``MemoryContentResolver``
"""

from diffinsight.pipeline.controller import FallbackController, TierOutcome
from diffinsight.pipeline.models import (
    ArtifactAnalysis,
    ChangedArtifact,
    ContentResolver,
    Err,
    MemoryContentResolver,
    Ok,
    TierFailure,
    TierResult,
    VersionPair,
)
from diffinsight.pipeline.ops import AnalysisContext, analyze_artifact, analyze_artifacts, tier_counts
from diffinsight.pipeline.patterns import detect_patterns, split_diff
from diffinsight.pipeline.tiers import run_ast_tier, run_generic_tier, run_pattern_tier

__all__ = [
    # Operations
    "AnalysisContext",
    "analyze_artifact",
    "analyze_artifacts",
    "tier_counts",
    # Tiers
    "FallbackController",
    "TierOutcome",
    "detect_patterns",
    "run_ast_tier",
    "run_generic_tier",
    "run_pattern_tier",
    "split_diff",
    # Models
    "ArtifactAnalysis",
    "ChangedArtifact",
    "ContentResolver",
    "Err",
    "MemoryContentResolver",
    "Ok",
    "TierFailure",
    "TierResult",
    "VersionPair",
]
