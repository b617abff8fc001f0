"""Configuration sections for an analysis run.

Each section maps to a top-level YAML key and to an environment prefix,
``DIFFINSIGHT__<SECTION>__<KEY>``; for example
``DIFFINSIGHT__ANALYSIS__COMPLEXITY_THRESHOLD=3`` or
``DIFFINSIGHT__PIPELINE__MAX_CONCURRENCY=4``. How the layers combine is
described in ``diffinsight.config.loader``.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
STREAM_DESTINATIONS = ("stderr", "stdout")


class LogOutputConfig(BaseModel):
    """One log sink: a standard stream or an absolute file path."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"
    # None means use LoggingConfig.level
    level: LogLevel | None = None

    @field_validator("destination")
    @classmethod
    def _absolute_file_or_stream(cls, destination: str) -> str:
        if destination in STREAM_DESTINATIONS:
            return destination
        resolved = Path(destination).expanduser()
        if not resolved.is_absolute():
            raise ValueError(f"log file must be an absolute path, got {destination!r}")
        return str(resolved)


class LoggingConfig(BaseModel):
    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. INFO reports every tier demotion and artifact result.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class AnalysisConfig(BaseModel):
    """Structural extraction and diff thresholds.

    Env vars:
        DIFFINSIGHT__ANALYSIS__COMPLEXITY_THRESHOLD: Minimum complexity growth to report
        DIFFINSIGHT__ANALYSIS__MAX_ERROR_RATIO: Tolerated parse-error ratio
    """

    complexity_threshold: int = Field(
        default=2,
        description="A function's complexity change is reported when it is at least this large. "
        "TRADEOFF: Lower values report trivial edits.",
    )
    high_complexity: int = Field(
        default=5,
        description="Newly added functions at or above this complexity are flagged.",
    )
    max_error_ratio: float = Field(
        default=0.0,
        description="Fraction of ERROR/missing nodes a parse may contain before the file "
        "is treated as unparseable. 0.0 rejects any syntax error.",
    )
    api_call_names: list[str] = Field(
        default_factory=lambda: [
            "fetch",
            "axios",
            "http",
            "request",
            "get",
            "post",
            "put",
            "delete",
        ],
        description="Callee names that mark a function as calling an external API.",
    )
    hook_prefix: str = Field(
        default="use",
        description="Calls whose callee starts with this prefix are recorded as hook calls.",
    )
    tracked_hooks: list[str] = Field(
        default_factory=lambda: [
            "useState",
            "useEffect",
            "useContext",
            "useReducer",
            "useCallback",
            "useMemo",
            "useRef",
            "useLayoutEffect",
        ],
        description="Built-in hooks. Any other prefixed call is reported as a custom hook.",
    )
    ui_base_classes: list[str] = Field(
        default_factory=lambda: ["Component", "PureComponent"],
        description="Superclass names that make a class a UI component.",
    )
    framework_sources: list[str] = Field(
        default_factory=lambda: ["react", "react-dom", "preact"],
        description="Import sources flagged as UI-framework imports.",
    )
    deep_nesting_threshold: int = Field(
        default=2,
        description="Stylesheet nesting depth above which a warning record is emitted.",
    )

    @field_validator("max_error_ratio")
    @classmethod
    def validate_ratio(cls, v: float) -> float:
        if not (0.0 <= v <= 1.0):
            raise ValueError(f"max_error_ratio must be 0.0-1.0, got {v}")
        return v


class PipelineConfig(BaseModel):
    """Batch analysis configuration.

    Env vars:
        DIFFINSIGHT__PIPELINE__MAX_CONCURRENCY: Artifacts analyzed concurrently
        DIFFINSIGHT__PIPELINE__ARTIFACT_TIMEOUT_SEC: Per-artifact AST tier timeout
    """

    max_concurrency: int = Field(
        default=8,
        description="Artifacts analyzed concurrently. Extraction runs in worker threads.",
    )
    artifact_timeout_sec: float | None = Field(
        default=None,
        description="Per-artifact AST tier timeout. A timeout demotes to the pattern tier.",
    )
    file_patterns: list[str] | None = Field(
        default=None,
        description="Glob patterns restricting which changed files are analyzed.",
    )

    @field_validator("max_concurrency")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {v}")
        return v


class DiffInsightConfig(BaseModel):
    """Everything one ``analyze`` run needs; built by ``load_config``."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
