"""Stylesheet diff rules: declaration multisets, special properties, at-rules.

Declaration values are compared as multisets of normalized values per
identity key (rule path + property):

- one distinct old value vs one distinct new value, and they differ:
  a single Modified ``changed X → Y`` record;
- anything else that differs: plain set difference on distinct values,
  one Added/Removed record per value, no "changed" framing;
- whenever the new rule declares the property more than once and the value
  sequence changed: an Overridden record naming the last-wins value.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable

from diffinsight.diff.models import ChangeRecord, ChangeType, Entity, EntityKind
from diffinsight.diff.layout import FLEX_DISPLAYS, GRID_DISPLAYS

SPECIAL_PROPERTIES = frozenset({"display", "position", "visibility", "opacity", "z-index"})

_OUT_OF_FLOW = frozenset({"absolute", "fixed"})


def _bare(value: str | None) -> str | None:
    if value is None:
        return None
    return value.removesuffix(" !important").strip().lower()


# =============================================================================
# Special property prose
# =============================================================================


def _display_prose(old: str | None, new: str | None) -> list[str]:
    prose: list[str] = []
    if new == "none" and old != "none":
        prose.append("element hidden (display: none)")
    elif old == "none" and new is not None:
        prose.append(f"element shown (display: {new})")
    if new in FLEX_DISPLAYS and old not in FLEX_DISPLAYS:
        prose.append("switched to flexbox layout")
    elif new in GRID_DISPLAYS and old not in GRID_DISPLAYS:
        prose.append("switched to grid layout")
    elif new is not None and old in FLEX_DISPLAYS | GRID_DISPLAYS and new not in FLEX_DISPLAYS | GRID_DISPLAYS:
        prose.append(f"left {'flexbox' if old in FLEX_DISPLAYS else 'grid'} layout")
    return prose


def _position_prose(old: str | None, new: str | None) -> list[str]:
    if new in _OUT_OF_FLOW and old not in _OUT_OF_FLOW:
        return [f"removed from normal flow (position: {new})"]
    if new == "sticky" and old != "sticky":
        return ["pinned while scrolling (position: sticky)"]
    if old in _OUT_OF_FLOW | {"sticky"} and new in (None, "static", "relative"):
        return ["returned to normal flow"]
    return []


def _visibility_prose(old: str | None, new: str | None) -> list[str]:
    if new == "hidden" and old != "hidden":
        return ["element hidden (visibility: hidden)"]
    if old == "hidden" and new in (None, "visible"):
        return ["element shown (visibility: visible)"]
    return []


def _opacity_prose(old: str | None, new: str | None) -> list[str]:  # noqa: ARG001
    if new is None:
        return []
    try:
        level = float(new)
    except ValueError:
        return []
    if level == 0:
        return ["element fully transparent (opacity: 0)"]
    if level < 0.5:
        return [f"element semi-transparent (opacity: {new})"]
    return []


def _z_index_prose(old: str | None, new: str | None) -> list[str]:
    if old is not None and new is not None:
        return [f"stacking order changed (z-index: {old} → {new})"]
    if new is not None:
        return [f"stacking order set (z-index: {new})"]
    return ["stacking order reset"]


_PROSE: dict[str, Callable[[str | None, str | None], list[str]]] = {
    "display": _display_prose,
    "position": _position_prose,
    "visibility": _visibility_prose,
    "opacity": _opacity_prose,
    "z-index": _z_index_prose,
}


def property_prose(prop: str, old: str | None, new: str | None) -> list[str]:
    """Domain prose for a special property's value transition (normalized values)."""
    handler = _PROSE.get(prop)
    if handler is None:
        return []
    return handler(_bare(old), _bare(new))


def _value_details(entity: Entity | None, old: str | None, new: str | None) -> list[str]:
    if entity is None:
        return []
    prop = entity.get("property", "")
    details: list[str] = []
    if prop.startswith("--"):
        details.append(f"CSS variable {prop}")
    details.extend(property_prose(prop, old, new))
    if new is not None and entity.get("layout"):
        details.extend(entity.get("layout"))
    return details


# =============================================================================
# Declarations
# =============================================================================


def _last_with(entities: list[Entity], normalized: str) -> Entity:
    return next(e for e in reversed(entities) if e.get("normalized") == normalized)


def _diff_declaration_key(key: str, old: list[Entity], new: list[Entity]) -> list[ChangeRecord]:
    old_values = [e.get("normalized") for e in old]
    new_values = [e.get("normalized") for e in new]
    if old_values == new_values:
        return []

    records: list[ChangeRecord] = []
    old_counts = Counter(old_values)
    new_counts = Counter(new_values)
    old_distinct = list(old_counts)
    new_distinct = list(new_counts)

    if len(old_distinct) == 1 and len(new_distinct) == 1 and old_distinct != new_distinct:
        before, after = old[-1], new[-1]
        records.append(
            ChangeRecord(
                change_type=ChangeType.MODIFIED,
                entity_kind=EntityKind.DECLARATION,
                identity_key=key,
                before=before.get("value"),
                after=after.get("value"),
                details=(
                    f"changed {before.get('value')} → {after.get('value')}",
                    *_value_details(after, old_distinct[0], new_distinct[0]),
                ),
            )
        )
    elif old_counts.keys() != new_counts.keys():
        for value in new_distinct:
            if value not in old_counts:
                entity = _last_with(new, value)
                records.append(
                    ChangeRecord(
                        change_type=ChangeType.ADDED,
                        entity_kind=EntityKind.DECLARATION,
                        identity_key=key,
                        after=entity.get("value"),
                        details=tuple(_value_details(entity, None, value)),
                        count=new_counts[value],
                    )
                )
        for value in old_distinct:
            if value not in new_counts:
                entity = _last_with(old, value)
                records.append(
                    ChangeRecord(
                        change_type=ChangeType.REMOVED,
                        entity_kind=EntityKind.DECLARATION,
                        identity_key=key,
                        before=entity.get("value"),
                        count=old_counts[value],
                    )
                )

    if len(new) > 1:
        records.append(_overridden(key, old, new))
    return records


def _overridden(key: str, old: list[Entity], new: list[Entity]) -> ChangeRecord:
    last = new[-1].get("value")
    details = [f"declared {len(new)} times in one rule (was {len(old)}); last value wins: {last}"]
    if old and old[-1].get("normalized") != new[-1].get("normalized"):
        details.append(f"effective value {old[-1].get('value')} → {last}")
    return ChangeRecord(
        change_type=ChangeType.OVERRIDDEN,
        entity_kind=EntityKind.DECLARATION,
        identity_key=key,
        before=old[-1].get("value") if old else None,
        after=last,
        details=tuple(details),
        count=len(new),
    )


def diff_declarations(
    old_groups: dict[str, list[Entity]],
    new_groups: dict[str, list[Entity]],
) -> list[ChangeRecord]:
    """Change records for Declaration entities grouped by identity key."""
    records: list[ChangeRecord] = []
    for key, new in new_groups.items():
        old = old_groups.get(key)
        if old is None:
            last = new[-1]
            records.append(
                ChangeRecord(
                    change_type=ChangeType.ADDED,
                    entity_kind=EntityKind.DECLARATION,
                    identity_key=key,
                    after=last.get("value"),
                    details=tuple(_value_details(last, None, last.get("normalized"))),
                    count=len(new),
                )
            )
            if len(new) > 1:
                records.append(_overridden(key, [], new))
            continue
        records.extend(_diff_declaration_key(key, old, new))

    for key, old in old_groups.items():
        if key in new_groups:
            continue
        last = old[-1]
        prop = last.get("property", "")
        records.append(
            ChangeRecord(
                change_type=ChangeType.REMOVED,
                entity_kind=EntityKind.DECLARATION,
                identity_key=key,
                before=last.get("value"),
                details=tuple(property_prose(prop, last.get("normalized"), None)),
                count=len(old),
            )
        )
    return records


# =============================================================================
# Selectors and at-rules
# =============================================================================


def selector_added_details(entity: Entity) -> list[str]:
    count = entity.get("declaration_count", 0)
    details = [f"{count} declaration{'s' if count != 1 else ''}"]
    if entity.get("nested_rules"):
        details.append(f"{entity.get('nested_rules')} nested rule(s)")
    return details


def at_rule_added_details(entity: Entity) -> list[str]:
    details: list[str] = []
    if entity.get("breakpoints"):
        details.append("breakpoints: " + ", ".join(entity.get("breakpoints")))
    if entity.get("steps"):
        details.append("steps: " + ", ".join(entity.get("steps")))
    if entity.get("bucket") == "import" and entity.get("media"):
        details.append(f"media: {entity.get('media')}")
    return details


def compare_at_rules(old: Entity, new: Entity) -> list[str]:
    details: list[str] = []
    old_steps = old.get("steps") or ()
    new_steps = new.get("steps") or ()
    details.extend(f"keyframe step {s} added" for s in new_steps if s not in old_steps)
    details.extend(f"keyframe step {s} removed" for s in old_steps if s not in new_steps)
    if old.get("bucket") == "import" and old.get("media") != new.get("media"):
        details.append(f"import media changed: {old.get('media') or 'all'} → {new.get('media') or 'all'}")
    return details
