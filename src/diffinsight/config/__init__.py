"""Config module exports."""

from diffinsight.config.loader import load_config
from diffinsight.config.models import (
    AnalysisConfig,
    DiffInsightConfig,
    LoggingConfig,
    PipelineConfig,
)

__all__ = [
    "load_config",
    "AnalysisConfig",
    "DiffInsightConfig",
    "LoggingConfig",
    "PipelineConfig",
]
