"""Rule-driven bands and markers over a solar series."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Sequence

from .series import SolarSeries

__all__ = ["NatureEventRule", "Band", "Marker", "NatureEvalResult", "evaluate_rules"]

TriggerKind = Literal["photoperiod"]


@dataclass(frozen=True)
class NatureEventRule:
    id: str
    trigger: TriggerKind
    threshold: float  # Daylight hours.
    label: str


@dataclass(frozen=True)
class Band:
    start: float
    end: float
    label: str


@dataclass(frozen=True)
class Marker:
    index: float
    label: str


@dataclass
class NatureEvalResult:
    bands: List[Band] = field(default_factory=list)
    markers: List[Marker] = field(default_factory=list)


def evaluate_rules(series: SolarSeries, rules: Sequence[NatureEventRule]) -> NatureEvalResult:
    """Evaluate *rules* against *series*.

    No rule kinds are interpreted yet, so the result is always empty.
    """

    return NatureEvalResult()
