"""Tiered query execution.

Handlers describe a read as an ordered list of tiers: the preferred query
(usually carrying a join onto ``profiles``) followed by degraded variants
that drop the join or a filter. Tiers are evaluated in order and the first
one that completes is returned as a :class:`QueryOutcome`; store errors
never escape this module.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class QueryTier(Generic[T]):
    """A named query that maps its rows into response items."""

    name: str
    run: Callable[[Session], list[T]]


@dataclass(frozen=True)
class QueryOutcome(Generic[T]):
    """Result of evaluating a tier list.

    Attributes:
        items: Rows produced by the tier that succeeded (empty on failure).
        tier: Name of the tier that produced ``items``, or of the last tier tried.
        error: The last store error when every tier failed.
        failures: Names of tiers that failed before the outcome was settled.
    """

    items: list[T] = field(default_factory=list)
    tier: str | None = None
    error: SQLAlchemyError | None = None
    failures: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def degraded(self) -> bool:
        """True when a fallback tier answered instead of the preferred one."""
        return self.ok and bool(self.failures)


def run_tier(db: Session, tier: QueryTier[T]) -> QueryOutcome[T]:
    """Run a single tier, converting store errors into a failed outcome."""
    try:
        items = tier.run(db)
    except SQLAlchemyError as exc:
        # A failed statement leaves the transaction unusable on PostgreSQL.
        db.rollback()
        return QueryOutcome(tier=tier.name, error=exc, failures=(tier.name,))
    return QueryOutcome(items=items, tier=tier.name)


def first_successful(db: Session, tiers: Sequence[QueryTier[T]]) -> QueryOutcome[T]:
    """Evaluate ``tiers`` in order and return the first successful outcome."""
    if not tiers:
        raise ValueError("at least one query tier is required")

    failures: list[str] = []
    outcome: QueryOutcome[T] = QueryOutcome()
    for tier in tiers:
        outcome = run_tier(db, tier)
        if outcome.ok:
            if failures:
                logger.warning(
                    "Query tier %s answered after failures in %s",
                    tier.name,
                    ", ".join(failures),
                )
            return QueryOutcome(items=outcome.items, tier=tier.name, failures=tuple(failures))
        logger.warning("Query tier %s failed: %s", tier.name, outcome.error)
        failures.append(tier.name)

    return QueryOutcome(tier=outcome.tier, error=outcome.error, failures=tuple(failures))
