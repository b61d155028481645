# src/hrsip/analysis/dispatch.py
from __future__ import annotations

from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

import pandas as pd

from hrsip.analysis.dataset import SipDataset
from hrsip.analysis.engine import RESULT_COLUMNS, hrsip_engine
from hrsip.config.schema import Params
from hrsip.errors import GroupEngineError
from hrsip.plan.types import ComparisonGroup, Design
from hrsip.utils.logger import get_logger

LOG = get_logger("dispatch")

Engine = Callable[..., pd.DataFrame]


@dataclass
class DispatchOutcome:
    results: pd.DataFrame                                   # combined, in collection order
    errors: Dict[str, GroupEngineError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def engine_options(params: Params) -> Dict[str, Any]:
    return {
        "windows": params.window_bounds(),
        "sparsity_thresholds": list(params.sparsity_thresholds),
        "padj_cutoff": params.padj_cutoff,
        "density_col": params.density_col,
        "l2fc_threshold": params.l2fc_threshold,
        "min_fractions": params.min_fractions,
        "pseudocount": params.pseudocount,
    }


def _run_one(engine: Engine, label: str, dataset: SipDataset, design: Design,
             options: Mapping[str, Any]) -> pd.DataFrame:
    # module-level so ProcessPoolExecutor can pickle it
    return engine(dataset, design=design, **options)


def _make_executor(kind: str, workers: int) -> Executor:
    if kind == "thread":
        return ThreadPoolExecutor(max_workers=workers)
    if kind == "process":
        return ProcessPoolExecutor(max_workers=workers)
    raise ValueError(f"unknown executor: {kind!r}")


def run_comparisons(
    groups: Mapping[str, ComparisonGroup],
    dataset: SipDataset,
    design: Design,
    options: Mapping[str, Any],
    *,
    engine: Engine = hrsip_engine,
    workers: int = 1,
    executor: str = "process",
    fail_fast: bool = False,
    padj_cutoff: Optional[float] = None,
) -> DispatchOutcome:
    """
    Invoke the engine once per comparison group and merge the results.

    Groups share nothing mutable, so with workers > 1 they run on a pool and are
    collected as they finish. A failing group is recorded under its label and the
    remaining groups still complete, unless fail_fast is set.
    """
    subsets = {label: dataset.subset(g.sample_ids) for label, g in groups.items()}
    results: Dict[str, pd.DataFrame] = {}
    errors: Dict[str, GroupEngineError] = {}

    def _record_error(label: str, exc: BaseException) -> None:
        err = GroupEngineError(label, exc)
        LOG.error("Engine failed for %s: %s", label, exc)
        if fail_fast:
            raise err from exc
        errors[label] = err

    if workers <= 1 or len(subsets) <= 1:
        for label, sub in subsets.items():
            LOG.info("Running engine for %s (%d samples, %d features)", label, sub.counts.shape[1], sub.counts.shape[0])
            try:
                results[label] = _run_one(engine, label, sub, design, options)
            except Exception as e:
                _record_error(label, e)
    else:
        LOG.info("Dispatching %d group(s) to %d %s worker(s)", len(subsets), workers, executor)
        with _make_executor(executor, workers) as pool:
            futures = {
                pool.submit(_run_one, engine, label, sub, design, dict(options)): label
                for label, sub in subsets.items()
            }
            for fut in as_completed(futures):
                label = futures[fut]
                try:
                    results[label] = fut.result()
                    LOG.info("Finished %s", label)
                except Exception as e:
                    _record_error(label, e)

    cutoff = padj_cutoff if padj_cutoff is not None else options.get("padj_cutoff")
    combined = merge_results(groups, results, taxonomy=dataset.taxonomy, padj_cutoff=cutoff)
    return DispatchOutcome(results=combined, errors=errors)


def merge_results(
    groups: Mapping[str, ComparisonGroup],
    results: Mapping[str, pd.DataFrame],
    *,
    taxonomy: Optional[pd.DataFrame] = None,
    padj_cutoff: Optional[float] = None,
) -> pd.DataFrame:
    """
    Concatenate per-group engine tables in collection order, tagging each row with
    the group label and its treatment/strata bindings. Taxonomy columns are echoed
    when available. No rows are dropped.
    """
    frames = []
    for label, group in groups.items():
        df = results.get(label)
        if df is None:
            continue
        # the label is authoritative; an engine-supplied group column is replaced
        df = df.drop(columns=["group"], errors="ignore")
        df.insert(0, "group", label)
        for col, val in group.describe().items():
            if col not in df.columns:
                df[col] = val
        frames.append(df)
    if not frames:
        return pd.DataFrame(columns=["group", *RESULT_COLUMNS])
    out = pd.concat(frames, ignore_index=True)
    if padj_cutoff is not None and "padj" in out.columns:
        out["incorporator"] = out["padj"] < padj_cutoff
    if taxonomy is not None and "feature_id" in out.columns:
        tax = taxonomy.loc[:, [c for c in taxonomy.columns if c not in out.columns]]
        out = out.merge(tax, how="left", left_on="feature_id", right_index=True)
    return out


def write_results(df: pd.DataFrame, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, sep="\t", index=False)
    LOG.info("Wrote %d result row(s) → %s", len(df), path)
    return path


def run_from_params(
    groups: Mapping[str, ComparisonGroup],
    dataset: SipDataset,
    params: Params,
    *,
    engine: Engine = hrsip_engine,
    fail_fast: bool = False,
) -> DispatchOutcome:
    design = Design(axis=params.treatment.name, control_value=params.treatment.control_value)
    return run_comparisons(
        groups, dataset, design, engine_options(params),
        engine=engine,
        workers=params.workers,
        executor=params.executor,
        fail_fast=fail_fast,
    )
