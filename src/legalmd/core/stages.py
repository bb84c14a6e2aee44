"""Stage descriptors and the stage order validator"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from pydantic import BaseModel


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageDescriptor:
    """A pipeline stage with its declared ordering constraints."""
    id:              str
    run:             Callable[..., None]
    must_run_before: tuple[str, ...] = ()
    must_run_after:  tuple[str, ...] = ()
    description:     str = ""


class OrderViolation(BaseModel):
    stage:   str
    related: str
    rule:    str                        # e.g. '"imports" must run BEFORE "template-fields"'


class OrderValidationResult(BaseModel):
    valid:           bool
    violations:      list[OrderViolation] = []
    suggested_order: Optional[list[str]] = None


def _edges(stages: Iterable[StageDescriptor]) -> set[tuple[str, str]]:
    """(earlier, later) pairs implied by all constraints among the given stages."""
    ids = {s.id for s in stages}
    edges = set()
    for s in stages:
        for other in s.must_run_before:
            if other in ids:
                edges.add((s.id, other))
        for other in s.must_run_after:
            if other in ids:
                edges.add((other, s.id))
    return edges


def suggest_order(stages: list[StageDescriptor]) -> list[str]:
    """Topological sort of stage ids, keeping the given order wherever constraints allow.

    Raises ValueError when the constraints contain a cycle.
    """
    ids = [s.id for s in stages]
    edges = _edges(stages)
    incoming = {i: {a for a, b in edges if b == i} for i in ids}
    order: list[str] = []
    remaining = list(ids)
    while remaining:
        ready = next((i for i in remaining if not (incoming[i] - set(order))), None)
        if ready is None:
            raise ValueError(f"Circular ordering constraints among: {', '.join(remaining)}")
        order.append(ready)
        remaining.remove(ready)
    return order


def validate_stage_order(stages: list[StageDescriptor], suggest: bool = True) -> OrderValidationResult:
    """Check the realized order against every declared constraint; report all violations."""
    position = {s.id: i for i, s in enumerate(stages)}
    violations = []
    for i, stage in enumerate(stages):
        for other in stage.must_run_before:
            if other in position and position[other] <= i:
                violations.append(OrderViolation(
                    stage=stage.id, related=other,
                    rule=f'"{stage.id}" must run BEFORE "{other}"',
                ))
        for other in stage.must_run_after:
            if other in position and position[other] >= i:
                violations.append(OrderViolation(
                    stage=stage.id, related=other,
                    rule=f'"{stage.id}" must run AFTER "{other}"',
                ))

    result = OrderValidationResult(valid=not violations, violations=violations)
    if violations and suggest:
        try:
            result.suggested_order = suggest_order(stages)
        except ValueError as e:
            logger.warning("No valid stage order: %s", e)
    return result
