"""Pure structural diff engine.

Compares two Structural Models of one artifact by identity key, per entity
kind. No parsing or I/O happens here.

Per kind:
- keys only in the new model: Added (count carries multiplicity)
- keys only in the old model: Removed
- keys in both: a kind-specific field comparison yielding at most one
  Modified record with field-level details
Declarations follow the multiset rules in ``diff.styles``. Malformed
entities that are new in this version produce Warning records.
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from diffinsight.config.models import AnalysisConfig
from diffinsight.diff.models import (
    ChangeRecord,
    ChangeType,
    ClassMethod,
    Entity,
    EntityKind,
    Parameter,
    StructuralModel,
)
from diffinsight.diff.styles import (
    at_rule_added_details,
    compare_at_rules,
    diff_declarations,
    selector_added_details,
)

log = structlog.get_logger(__name__)

ACCESSIBILITY_ATTRIBUTES = ("aria-", "role", "alt", "tabindex")


def diff_models(
    old: StructuralModel,
    new: StructuralModel,
    config: AnalysisConfig | None = None,
) -> list[ChangeRecord]:
    """Compute change records between two versions of one artifact.

    Args:
        old: Model of the old version (empty for a new artifact).
        new: Model of the new version (empty for a deleted artifact).
        config: Thresholds; defaults apply when omitted.

    Returns:
        Records ordered by entity kind, then first appearance.
    """
    config = config or AnalysisConfig()
    records: list[ChangeRecord] = []
    for kind in EntityKind:
        old_groups = old.group(kind)
        new_groups = new.group(kind)
        if not old_groups and not new_groups:
            continue
        if kind == EntityKind.DECLARATION:
            records.extend(diff_declarations(old_groups, new_groups))
        else:
            records.extend(_diff_kind(kind, old_groups, new_groups, config))

    records.extend(_warning_records(old, new))
    records.extend(_nesting_records(old, new, config))
    log.debug(
        "models_diffed",
        old_entities=len(old),
        new_entities=len(new),
        records=len(records),
    )
    return records


def _diff_kind(
    kind: EntityKind,
    old_groups: dict[str, list[Entity]],
    new_groups: dict[str, list[Entity]],
    config: AnalysisConfig,
) -> list[ChangeRecord]:
    records: list[ChangeRecord] = []
    for key, new in new_groups.items():
        old = old_groups.get(key)
        if old is None:
            records.append(
                ChangeRecord(
                    change_type=ChangeType.ADDED,
                    entity_kind=kind,
                    identity_key=key,
                    after=summarize(new[-1]),
                    details=tuple(_added_details(new[-1], config)),
                    count=len(new),
                )
            )
            continue
        details = _compare(kind, old, new, config)
        if details:
            records.append(
                ChangeRecord(
                    change_type=ChangeType.MODIFIED,
                    entity_kind=kind,
                    identity_key=key,
                    before=summarize(old[-1]),
                    after=summarize(new[-1]),
                    details=tuple(details),
                    count=len(new),
                )
            )

    for key, old in old_groups.items():
        if key not in new_groups:
            records.append(
                ChangeRecord(
                    change_type=ChangeType.REMOVED,
                    entity_kind=kind,
                    identity_key=key,
                    before=summarize(old[-1]),
                    count=len(old),
                )
            )
    return records


# =============================================================================
# Summaries
# =============================================================================


def _signature(entity: Entity) -> str:
    params: tuple[Parameter, ...] = entity.get("params", ())
    prefix = "async " if entity.get("is_async") else ""
    star = "*" if entity.get("is_generator") else ""
    return f"{prefix}{star}{entity.identity_key}({', '.join(p.render() for p in params)})"


def summarize(entity: Entity) -> str | None:
    """Short human-readable rendering used for ``before``/``after``."""
    kind = entity.kind
    if kind == EntityKind.FUNCTION:
        return _signature(entity)
    if kind == EntityKind.CLASS:
        superclass = entity.get("superclass")
        return f"class {entity.identity_key}" + (f" extends {superclass}" if superclass else "")
    if kind == EntityKind.IMPORT:
        bindings = entity.get("bindings", ())
        return f"{{{', '.join(bindings)}}} from {entity.identity_key}" if bindings else entity.identity_key
    if kind == EntityKind.EXPORT:
        return entity.get("target")
    if kind == EntityKind.VARIABLE:
        return f"{entity.get('declaration_kind')} {entity.identity_key}"
    if kind == EntityKind.COMPONENT:
        return f"{entity.get('form')} component {entity.identity_key}"
    if kind == EntityKind.SELECTOR:
        return entity.get("selector")
    return entity.identity_key


# =============================================================================
# Added details
# =============================================================================


def _added_details(entity: Entity, config: AnalysisConfig) -> list[str]:
    kind = entity.kind
    details: list[str] = []
    if kind == EntityKind.FUNCTION:
        if entity.get("is_async"):
            details.append("async")
        if entity.get("calls_api"):
            details.append("calls external API")
        complexity = entity.get("complexity", 1)
        if complexity >= config.high_complexity:
            details.append(f"high complexity ({complexity})")
    elif kind == EntityKind.CLASS:
        if entity.get("superclass"):
            details.append(f"extends {entity.get('superclass')}")
        if entity.get("is_component"):
            details.append("UI component")
        methods: tuple[ClassMethod, ...] = entity.get("methods", ())
        if methods:
            details.append(f"{len(methods)} method(s)")
    elif kind == EntityKind.IMPORT:
        if entity.get("is_framework"):
            details.append("framework import")
        if entity.get("bindings"):
            details.append("imports " + ", ".join(entity.get("bindings")))
    elif kind == EntityKind.EXPORT:
        details.append("default export" if entity.get("is_default") else "named export")
    elif kind == EntityKind.VARIABLE:
        details.append(f"declared with {entity.get('declaration_kind')}")
    elif kind == EntityKind.HOOK_CALL:
        if entity.get("custom"):
            details.append("custom hook")
    elif kind == EntityKind.COMPONENT:
        details.append(f"{entity.get('form')} component")
        if entity.get("event_handlers"):
            details.append("event handlers: " + ", ".join(entity.get("event_handlers")))
    elif kind == EntityKind.SELECTOR:
        details.extend(selector_added_details(entity))
    elif kind == EntityKind.AT_RULE:
        details.extend(at_rule_added_details(entity))
    elif kind == EntityKind.MARKUP_ELEMENT:
        if entity.get("semantic"):
            details.append("semantic element")
        if entity.get("accessibility"):
            details.append("accessibility: " + ", ".join(entity.get("accessibility")))
    return details


# =============================================================================
# Field comparisons
# =============================================================================


def _param_map(params: tuple[Parameter, ...]) -> dict[str, tuple[int, Parameter]]:
    mapped: dict[str, tuple[int, Parameter]] = {}
    for index, param in enumerate(params):
        key = f"<destructured #{index}>" if param.destructured else param.name
        mapped[key] = (index, param)
    return mapped


def _compare_parameters(old: tuple[Parameter, ...], new: tuple[Parameter, ...]) -> list[str]:
    details: list[str] = []
    old_map = _param_map(old)
    new_map = _param_map(new)
    for key, (_, param) in new_map.items():
        if key not in old_map:
            suffix = " (has default)" if param.has_default else ""
            if param.rest:
                suffix += " (rest)"
            details.append(f"parameter {param.name} added{suffix}")
            continue
        _, before = old_map[key]
        if param.destructured:
            gained = [m for m in param.members if m not in before.members]
            lost = [m for m in before.members if m not in param.members]
            details.extend(f"destructured parameter gained {m}" for m in gained)
            details.extend(f"destructured parameter lost {m}" for m in lost)
        if param.has_default and not before.has_default:
            details.append(f"parameter {param.name} now has a default")
        elif before.has_default and not param.has_default:
            details.append(f"parameter {param.name} default removed")
        if param.rest != before.rest:
            details.append(f"parameter {param.name} {'became' if param.rest else 'is no longer'} a rest parameter")
    details.extend(
        f"parameter {param.name} removed" for key, (_, param) in old_map.items() if key not in new_map
    )
    return details


def _compare_functions(old: Entity, new: Entity, config: AnalysisConfig) -> list[str]:
    details = _compare_parameters(old.get("params", ()), new.get("params", ()))

    if new.get("is_async") != old.get("is_async"):
        details.append("changed to async" if new.get("is_async") else "changed to sync")
    if new.get("is_generator") != old.get("is_generator"):
        details.append("became a generator" if new.get("is_generator") else "no longer a generator")

    before, after = old.get("complexity", 1), new.get("complexity", 1)
    if abs(after - before) >= config.complexity_threshold:
        details.append(f"complexity {before} → {after}")

    if new.get("calls_api") != old.get("calls_api"):
        details.append("API calls added" if new.get("calls_api") else "API calls removed")
    if new.get("has_return") != old.get("has_return"):
        details.append("return statement added" if new.get("has_return") else "return statement removed")

    if old.get("binding") and new.get("binding") and old.get("binding") != new.get("binding"):
        details.append(
            f"changed {new.identity_key} from '{old.get('binding')}' to '{new.get('binding')}'"
        )
    return details


def _method_label(method: ClassMethod) -> str:
    if method.kind == "constructor":
        return "constructor"
    label = {"getter": "getter", "setter": "setter"}.get(method.kind, "method")
    return f"{'static ' if method.static else ''}{label} {method.name}"


def _compare_classes(old: Entity, new: Entity, config: AnalysisConfig) -> list[str]:  # noqa: ARG001
    details: list[str] = []
    if old.get("superclass") != new.get("superclass"):
        details.append(
            f"superclass changed: {old.get('superclass') or 'none'} → {new.get('superclass') or 'none'}"
        )
    if new.get("is_component") != old.get("is_component"):
        details.append("became a UI component" if new.get("is_component") else "no longer a UI component")

    old_methods = {(m.name, m.kind): m for m in old.get("methods", ())}
    new_methods = {(m.name, m.kind): m for m in new.get("methods", ())}
    for key, method in new_methods.items():
        previous = old_methods.get(key)
        if previous is None:
            details.append(f"{_method_label(method)} added")
            continue
        if method.is_async != previous.is_async:
            details.append(f"method {method.name} changed to {'async' if method.is_async else 'sync'}")
        if method.static != previous.static:
            details.append(f"method {method.name} {'became' if method.static else 'is no longer'} static")
    details.extend(
        f"{_method_label(method)} removed" for key, method in old_methods.items() if key not in new_methods
    )
    return details


def _compare_imports(old: Entity, new: Entity, config: AnalysisConfig) -> list[str]:  # noqa: ARG001
    old_bindings = old.get("bindings", ())
    new_bindings = new.get("bindings", ())
    details = [f"imports {b}" for b in new_bindings if b not in old_bindings]
    details.extend(f"no longer imports {b}" for b in old_bindings if b not in new_bindings)
    if old.get("default_binding") != new.get("default_binding") and old.get("default_binding") and new.get(
        "default_binding"
    ):
        details.append(f"default binding renamed {old.get('default_binding')} → {new.get('default_binding')}")
    return details


def _compare_exports(old: Entity, new: Entity, config: AnalysisConfig) -> list[str]:  # noqa: ARG001
    details: list[str] = []
    if old.get("target") != new.get("target"):
        if new.get("is_default"):
            details.append(f"default export changed: {old.get('target')} → {new.get('target')}")
        else:
            details.append(f"export {new.identity_key} now refers to {new.get('target')}")
    if old.get("declaration_kind") != new.get("declaration_kind"):
        details.append(
            f"exported declaration kind {old.get('declaration_kind')} → {new.get('declaration_kind')}"
        )
    if old.get("source") != new.get("source"):
        details.append(f"re-export source {old.get('source') or 'local'} → {new.get('source') or 'local'}")
    return details


def _compare_variables(old: Entity, new: Entity, config: AnalysisConfig) -> list[str]:  # noqa: ARG001
    details: list[str] = []
    if old.get("declaration_kind") != new.get("declaration_kind"):
        details.append(
            f"changed {new.identity_key} from '{old.get('declaration_kind')}' to '{new.get('declaration_kind')}'"
        )
    if old.get("has_initializer") != new.get("has_initializer"):
        details.append("initializer added" if new.get("has_initializer") else "initializer removed")
    elif old.get("initializer_kind") != new.get("initializer_kind"):
        details.append(f"initializer changed from {old.get('initializer_kind')} to {new.get('initializer_kind')}")
    return details


def _set_delta(label: str, old: tuple[str, ...], new: tuple[str, ...]) -> list[str]:
    added = [f"{label} {item} added" for item in new if item not in old]
    return added + [f"{label} {item} removed" for item in old if item not in new]


def _compare_components(old: Entity, new: Entity, config: AnalysisConfig) -> list[str]:  # noqa: ARG001
    details: list[str] = []
    if old.get("form") != new.get("form"):
        details.append(f"converted from {old.get('form')} component to {new.get('form')} component")
    details.extend(_set_delta("event handler", old.get("event_handlers", ()), new.get("event_handlers", ())))
    details.extend(_set_delta("hook", old.get("hooks", ()), new.get("hooks", ())))
    details.extend(_set_delta("lifecycle method", old.get("lifecycle", ()), new.get("lifecycle", ())))
    return details


def _compare_markup(old: Entity, new: Entity, config: AnalysisConfig) -> list[str]:  # noqa: ARG001
    details: list[str] = []
    old_attrs: dict[str, str | None] = old.get("attributes", {})
    new_attrs: dict[str, str | None] = new.get("attributes", {})

    def tag(name: str) -> str:
        return " (accessibility)" if name.startswith(ACCESSIBILITY_ATTRIBUTES) else ""

    for name, value in new_attrs.items():
        if name not in old_attrs:
            details.append(f"attribute {name} added{tag(name)}")
        elif old_attrs[name] != value:
            details.append(f"attribute {name} changed: {old_attrs[name]} → {value}{tag(name)}")
    details.extend(f"attribute {name} removed{tag(name)}" for name in old_attrs if name not in new_attrs)
    return details


def _compare_selectors(old: Entity, new: Entity, config: AnalysisConfig) -> list[str]:  # noqa: ARG001
    return []


def _compare_at_rules(old: Entity, new: Entity, config: AnalysisConfig) -> list[str]:  # noqa: ARG001
    return compare_at_rules(old, new)


_Comparator = Callable[[Entity, Entity, AnalysisConfig], list[str]]

_COMPARATORS: dict[EntityKind, _Comparator] = {
    EntityKind.FUNCTION: _compare_functions,
    EntityKind.CLASS: _compare_classes,
    EntityKind.IMPORT: _compare_imports,
    EntityKind.EXPORT: _compare_exports,
    EntityKind.VARIABLE: _compare_variables,
    EntityKind.COMPONENT: _compare_components,
    EntityKind.MARKUP_ELEMENT: _compare_markup,
    EntityKind.SELECTOR: _compare_selectors,
    EntityKind.AT_RULE: _compare_at_rules,
}


def _compare(
    kind: EntityKind,
    old: list[Entity],
    new: list[Entity],
    config: AnalysisConfig,
) -> list[str]:
    """Field-level details for one identity key present in both models."""
    if kind == EntityKind.HOOK_CALL:
        name = new[-1].identity_key
        delta = len(new) - len(old)
        if delta > 0:
            return [f"Added {delta} {name} call(s)"]
        if delta < 0:
            return [f"Removed {-delta} {name} call(s)"]
        return []

    comparator = _COMPARATORS.get(kind)
    details: list[str] = []
    if comparator is not None:
        if kind == EntityKind.MARKUP_ELEMENT:
            for before, after in zip(old, new, strict=False):
                for detail in comparator(before, after, config):
                    if detail not in details:
                        details.append(detail)
        else:
            details.extend(comparator(old[-1], new[-1], config))

    if len(old) != len(new):
        details.append(f"occurrences {len(old)} → {len(new)}")
    return details


# =============================================================================
# Warnings
# =============================================================================


def _malformed_counts(model: StructuralModel) -> dict[tuple[EntityKind, str], list[Entity]]:
    found: dict[tuple[EntityKind, str], list[Entity]] = {}
    for entity in model:
        if entity.get("malformed"):
            found.setdefault((entity.kind, entity.identity_key), []).append(entity)
    return found


def _warning_records(old: StructuralModel, new: StructuralModel) -> list[ChangeRecord]:
    """Warnings for malformed entities this version introduces."""
    old_found = _malformed_counts(old)
    records: list[ChangeRecord] = []
    for (kind, key), entities in _malformed_counts(new).items():
        introduced = len(entities) - len(old_found.get((kind, key), ()))
        if introduced > 0:
            records.append(
                ChangeRecord(
                    change_type=ChangeType.WARNING,
                    entity_kind=kind,
                    identity_key=key,
                    details=(entities[-1].get("malformed"),),
                    count=introduced,
                )
            )
    return records


def _nesting_records(
    old: StructuralModel,
    new: StructuralModel,
    config: AnalysisConfig,
) -> list[ChangeRecord]:
    before = old.metadata.get("nesting_depth", 0)
    after = new.metadata.get("nesting_depth", 0)
    if after <= config.deep_nesting_threshold or after <= before:
        return []
    return [
        ChangeRecord(
            change_type=ChangeType.WARNING,
            entity_kind=EntityKind.FILE,
            identity_key="nesting depth",
            before=str(before),
            after=str(after),
            details=(
                f"nesting depth {before} → {after} exceeds {config.deep_nesting_threshold} "
                "(approximate: lexical brace count)",
            ),
        )
    ]
