# src/hrsip/config/schema.py
from __future__ import annotations
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

class GroupingVariable(BaseModel):
    """Explicit level declaration for the treatment axis; replaces implicit factor ordering."""
    name: str
    control_value: str
    treatment_values: Optional[List[str]] = None

    @field_validator("control_value", mode="before")
    @classmethod
    def _as_str(cls, v):
        return str(v)

    @field_validator("treatment_values", mode="before")
    @classmethod
    def _as_str_list(cls, v):
        if v is None:
            return v
        return [str(x) for x in v]

class Window(BaseModel):
    density_min: float
    density_max: float

    @model_validator(mode="after")
    def _check_order(self) -> "Window":
        if self.density_min >= self.density_max:
            raise ValueError(f"window min {self.density_min} must be < max {self.density_max}")
        return self

def _default_windows() -> List[Window]:
    return [Window(density_min=lo, density_max=hi) for lo, hi in ((1.70, 1.73), (1.72, 1.75), (1.74, 1.77))]

class Params(BaseModel):
    # subsetting
    treatment: GroupingVariable
    stratify: List[str] = Field(default_factory=list)
    strata_levels: Dict[str, List[str]] = Field(default_factory=dict)

    # engine
    density_col: str = "Buoyant_density"
    windows: List[Window] = Field(default_factory=_default_windows)
    sparsity_thresholds: List[float] = Field(default_factory=lambda: [0.0, 0.1, 0.2, 0.3])
    padj_cutoff: float = 0.1
    l2fc_threshold: float = 0.25
    min_fractions: int = 2
    pseudocount: float = 1e-6

    # dispatch
    workers: int = 1
    executor: str = "process"

    # post-processing
    rank: str = "Phylum"

    @field_validator("strata_levels", mode="before")
    @classmethod
    def _levels_as_str(cls, v):
        if not v:
            return {}
        return {str(k): [str(x) for x in vals] for k, vals in v.items()}

    @field_validator("sparsity_thresholds")
    @classmethod
    def _check_sparsity(cls, v: List[float]) -> List[float]:
        if not v:
            raise ValueError("sparsity_thresholds must not be empty")
        bad = [x for x in v if not 0.0 <= x <= 1.0]
        if bad:
            raise ValueError(f"sparsity thresholds must be in [0, 1]: {bad}")
        return v

    @field_validator("windows")
    @classmethod
    def _check_windows(cls, v: List[Window]) -> List[Window]:
        if not v:
            raise ValueError("at least one density window is required")
        return v

    @field_validator("padj_cutoff")
    @classmethod
    def _check_cutoff(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError("padj_cutoff must be in (0, 1]")
        return v

    @field_validator("executor")
    @classmethod
    def _check_executor(cls, v: str) -> str:
        if v not in ("process", "thread"):
            raise ValueError("executor must be one of: process, thread")
        return v

    @field_validator("pseudocount")
    @classmethod
    def _check_pseudocount(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("pseudocount must be > 0")
        return v

    @field_validator("min_fractions", "workers")
    @classmethod
    def _check_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @model_validator(mode="after")
    def _check_axes(self) -> "Params":
        if self.treatment.name in self.stratify:
            raise ValueError(f"'{self.treatment.name}' cannot be both the treatment axis and a stratification axis")
        unknown = sorted(set(self.strata_levels) - set(self.stratify))
        if unknown:
            raise ValueError(f"strata_levels given for undeclared stratification axes: {', '.join(unknown)}")
        return self

    def window_bounds(self) -> List[tuple[float, float]]:
        return [(w.density_min, w.density_max) for w in self.windows]
