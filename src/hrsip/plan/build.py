# src/hrsip/plan/build.py
from __future__ import annotations

from collections import OrderedDict
from itertools import product
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from hrsip.errors import ConfigurationError, ValidationError
from hrsip.plan.predicate import Eq, Predicate, all_of, any_of
from hrsip.plan.types import ComparisonGroup, Sample
from hrsip.utils.logger import get_logger

LOG = get_logger("plan")


def _first_seen(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


def _check_inputs(samples: Sequence[Sample], treatment_axis: str, stratify: Sequence[str]) -> None:
    problems: List[str] = []
    if not samples:
        raise ConfigurationError("no samples given")
    if not treatment_axis:
        problems.append("treatment axis name is empty")
    if treatment_axis in stratify:
        problems.append(f"treatment axis '{treatment_axis}' is also listed as a stratification axis")
    dupes = sorted({a for a in stratify if list(stratify).count(a) > 1})
    if dupes:
        problems.append(f"stratification axes listed more than once: {', '.join(dupes)}")
    if problems:
        raise ConfigurationError(problems)

    axes = [treatment_axis, *stratify]
    missing: Dict[str, List[str]] = {}
    for s in samples:
        for a in axes:
            if s.get(a) in (None, ""):
                missing.setdefault(a, []).append(s.id)
    for a, ids in missing.items():
        shown = ", ".join(ids[:5]) + (", ..." if len(ids) > 5 else "")
        problems.append(f"grouping variable '{a}' missing for {len(ids)} sample(s): {shown}")
    if problems:
        raise ConfigurationError(problems)


def treatment_levels(
    samples: Sequence[Sample],
    axis: str,
    control_value: str,
    declared: Optional[Sequence[str]] = None,
) -> List[str]:
    """
    Treatment levels in enumeration order: the declared ones, else every observed
    non-control level in first-seen order. The control level is never included.
    """
    if declared:
        wanted = [str(v) for v in _first_seen(declared) if str(v) != control_value]
        observed = {s.get(axis) for s in samples}
        absent = [v for v in wanted if v not in observed]
        levels = [v for v in wanted if v in observed]
        if absent and not levels:
            raise ConfigurationError(
                f"none of the declared treatment levels for '{axis}' are present in the samples: "
                f"{', '.join(absent)}"
            )
        for v in absent:
            LOG.warning("Declared treatment level %s=%r not present in any sample", axis, v)
    else:
        levels = [v for v in _first_seen(s.get(axis) for s in samples) if v != control_value]
    if not levels:
        raise ConfigurationError(
            f"no treatment levels for '{axis}' besides the control level '{control_value}'"
        )
    return levels


def strata_combinations(
    samples: Sequence[Sample],
    stratify: Sequence[str],
    levels: Optional[Mapping[str, Sequence[str]]] = None,
) -> List[Tuple[Tuple[str, str], ...]]:
    """
    Cross product of each stratification axis's observed levels. Axes keep their
    declared order; levels are first-seen unless an explicit order is given.
    Observed levels missing from an explicit order are appended in first-seen order.
    """
    levels = levels or {}
    per_axis: List[List[Tuple[str, str]]] = []
    for axis in stratify:
        observed = _first_seen(s.get(axis) for s in samples)
        order = [str(v) for v in levels.get(axis, [])]
        ordered = [v for v in order if v in observed] + [v for v in observed if v not in order]
        per_axis.append([(axis, v) for v in ordered])
    return [tuple(combo) for combo in product(*per_axis)]


def _bind(treatment_axis: str, control_value: str, value: str,
          strata: Tuple[Tuple[str, str], ...]) -> Tuple[Predicate, Predicate]:
    """Return (label predicate, filter predicate) for one (treatment level, strata) pair."""
    fixed = [Eq(a, v) for a, v in strata]
    label_pred = all_of(Eq(treatment_axis, value), *fixed)
    filter_pred = all_of(any_of(Eq(treatment_axis, control_value), Eq(treatment_axis, value)), *fixed)
    return label_pred, filter_pred


def build_comparison_groups(
    samples: Sequence[Sample],
    *,
    treatment_axis: str,
    control_value: str,
    treatment_values: Optional[Sequence[str]] = None,
    stratify: Sequence[str] = (),
    strata_levels: Optional[Mapping[str, Sequence[str]]] = None,
) -> "OrderedDict[str, ComparisonGroup]":
    """
    Partition samples into treatment-vs-control comparison groups.

    One group per (strata combination, treatment level), strata outer and treatment
    inner. Each group holds the control-level and treatment-level samples sharing
    that strata binding. A pair with no treatment-side sample yields no group.
    A pair with treatment samples but no control samples is invalid; all invalid
    groups are reported together in a single ValidationError.
    """
    control_value = str(control_value)
    stratify = list(stratify)
    _check_inputs(samples, treatment_axis, stratify)
    t_levels = treatment_levels(samples, treatment_axis, control_value, treatment_values)
    combos = strata_combinations(samples, stratify, strata_levels)

    groups: "OrderedDict[str, ComparisonGroup]" = OrderedDict()
    invalid: Dict[str, str] = {}
    for strata in combos:
        for value in t_levels:
            label_pred, filter_pred = _bind(treatment_axis, control_value, value, strata)
            label = label_pred.render()
            members = tuple(s for s in samples if filter_pred.evaluate(s.attributes))
            n_trt = sum(1 for s in members if s.get(treatment_axis) == value)
            n_ctl = len(members) - n_trt
            if n_trt == 0:
                LOG.warning("No '%s' samples for %s; no group built", value, label)
                continue
            if n_ctl == 0:
                invalid[label] = f"no control-level ({treatment_axis}=={control_value!r}) samples"
                continue
            LOG.debug("Group %s: %d control + %d treatment samples", label, n_ctl, n_trt)
            groups[label] = ComparisonGroup(
                label=label,
                treatment_value=value,
                strata=strata,
                predicate=filter_pred,
                samples=members,
            )

    if invalid:
        raise ValidationError(invalid)
    LOG.info("Built %d comparison group(s) over %d sample(s)", len(groups), len(samples))
    return groups
