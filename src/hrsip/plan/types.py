# src/hrsip/plan/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

from hrsip.plan.predicate import Predicate


@dataclass(frozen=True)
class Sample:
    id: str
    attributes: Dict[str, str] = field(default_factory=dict)  # grouping-variable name -> level (as str)

    @classmethod
    def from_mapping(cls, sample_id: Any, attributes: Mapping[str, Any]) -> "Sample":
        """Normalize levels to strings so day=3 and day='3' are the same level."""
        attrs = {str(k): ("" if v is None else str(v)) for k, v in attributes.items()}
        return cls(id=str(sample_id), attributes=attrs)

    def get(self, axis: str, default: str | None = None) -> str | None:
        return self.attributes.get(axis, default)


@dataclass(frozen=True)
class Design:
    axis: str             # treatment axis, e.g. "substrate"
    control_value: str    # baseline level, e.g. "12C-Con"


@dataclass(frozen=True)
class ComparisonGroup:
    label: str                          # rendered label predicate
    treatment_value: str
    strata: Tuple[Tuple[str, str], ...]  # ((axis, level), ...) in declaration order
    predicate: Predicate                # filter actually applied to the samples
    samples: Tuple[Sample, ...]

    @property
    def sample_ids(self) -> List[str]:
        return [s.id for s in self.samples]

    def describe(self) -> Dict[str, str]:
        """Flat columns echoed into the combined results table."""
        out = {"treatment": self.treatment_value}
        out.update(dict(self.strata))
        return out
