"""Structural diff module.

Public API:
- ``diff_models``: compare two Structural Models of one artifact
- ``normalize_value``: canonical form for stylesheet values
- Data models: Entity, StructuralModel, ChangeRecord and their enums
"""

from diffinsight.diff.engine import diff_models, summarize
from diffinsight.diff.models import (
    ChangeRecord,
    ChangeType,
    ClassMethod,
    Entity,
    EntityKind,
    Parameter,
    SourceLocation,
    StructuralModel,
    Tier,
)
from diffinsight.diff.normalize import normalize_value
from diffinsight.diff.styles import property_prose

__all__ = [
    # Engine
    "diff_models",
    "normalize_value",
    "property_prose",
    "summarize",
    # Models
    "ChangeRecord",
    "ChangeType",
    "ClassMethod",
    "Entity",
    "EntityKind",
    "Parameter",
    "SourceLocation",
    "StructuralModel",
    "Tier",
]
