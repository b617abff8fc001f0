"""Tiered fallback controller.

A three-state machine per artifact, terminal on the first ``Ok``::

    AST --Err--> PATTERN --Err--> GENERIC

Transitions only move down. Every ``Err`` is kept as a ``TierFailure`` on
the outcome so consumers can see why fidelity was lost.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field

import structlog

from diffinsight.diff.models import ChangeRecord, Tier
from diffinsight.pipeline.models import Ok, TierFailure, TierResult

log = structlog.get_logger(__name__)

TierAttempt = Callable[[], Awaitable[TierResult]]

_NEXT: dict[Tier, Tier] = {
    Tier.AST: Tier.PATTERN,
    Tier.PATTERN: Tier.GENERIC,
}


@dataclass(frozen=True, slots=True)
class TierOutcome:
    tier: Tier
    records: tuple[ChangeRecord, ...]
    failures: tuple[TierFailure, ...] = ()


@dataclass
class FallbackController:
    """Runs tier attempts for one artifact until one succeeds."""

    path: str
    attempts: Mapping[Tier, TierAttempt]
    state: Tier = Tier.AST
    failures: list[TierFailure] = field(default_factory=list)

    async def run(self) -> TierOutcome:
        while True:
            result = await self.attempts[self.state]()

            if isinstance(result, Ok):
                log.debug("tier_succeeded", path=self.path, tier=self.state.value, records=len(result.records))
                return TierOutcome(self.state, result.records, tuple(self.failures))

            self.failures.append(TierFailure(self.state, result.reason, result.message))
            next_state = _NEXT.get(self.state)
            if next_state is None:
                log.error("all_tiers_failed", path=self.path, reason=result.reason)
                return TierOutcome(self.state, (), tuple(self.failures))
            log.warning(
                "tier_demoted",
                path=self.path,
                from_tier=self.state.value,
                to_tier=next_state.value,
                reason=result.reason,
                message=result.message,
            )
            self.state = next_state
