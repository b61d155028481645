# src/hrsip/analysis/engine.py
"""
Default multi-window differential-abundance engine.

For each sparsity threshold and density window, treatment fractions are compared
against control fractions per feature (one-sided Mann-Whitney U on relative
abundance), p-values are BH-adjusted across all windows of that threshold, and
each feature keeps the window with its largest log2 fold change.
"""
from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.multitest import multipletests

from hrsip.analysis.dataset import SipDataset
from hrsip.errors import EngineError
from hrsip.plan.types import Design
from hrsip.utils.logger import get_logger

LOG = get_logger("engine")

RESULT_COLUMNS = [
    "feature_id", "sparsity_threshold", "density_min", "density_max",
    "log2_fold_change", "p_value", "padj",
]


def _densities(dataset: SipDataset, density_col: str) -> pd.Series:
    raw = {s.id: s.get(density_col) for s in dataset.samples}
    missing = [sid for sid, v in raw.items() if v in (None, "")]
    if missing:
        raise EngineError(f"'{density_col}' missing for sample(s): {', '.join(missing[:5])}")
    try:
        return pd.Series({sid: float(v) for sid, v in raw.items()})
    except ValueError as e:
        raise EngineError(f"non-numeric '{density_col}' value: {e}") from e


def _test_window(
    rel: pd.DataFrame,
    trt_ids: List[str],
    ctl_ids: List[str],
    l2fc_threshold: float,
    pseudocount: float,
) -> pd.DataFrame:
    trt = rel[trt_ids].to_numpy()
    ctl = rel[ctl_ids].to_numpy()
    l2fc = np.log2((trt.mean(axis=1) + pseudocount) / (ctl.mean(axis=1) + pseudocount))
    shifted = ctl * (2.0 ** l2fc_threshold)
    pvals = np.ones(len(rel))
    for i in range(len(rel)):
        if np.all(trt[i] == 0):
            continue
        pvals[i] = stats.mannwhitneyu(trt[i], shifted[i], alternative="greater").pvalue
    return pd.DataFrame({"feature_id": rel.index, "log2_fold_change": l2fc, "p_value": pvals})


def hrsip_engine(
    dataset: SipDataset,
    *,
    design: Design,
    windows: Sequence[Tuple[float, float]],
    sparsity_thresholds: Sequence[float],
    padj_cutoff: float = 0.1,
    density_col: str = "Buoyant_density",
    l2fc_threshold: float = 0.25,
    min_fractions: int = 2,
    pseudocount: float = 1e-6,
) -> pd.DataFrame:
    """
    Run MW-HR-SIP on one comparison group.

    Returns one row per (sparsity threshold, feature) with the window of maximal
    log2 fold change; `padj_cutoff` is only used for logging here, callers flag
    incorporators themselves.
    """
    dens = _densities(dataset, density_col)
    sides = {s.id: s.get(design.axis) for s in dataset.samples}

    per_window = []
    for lo, hi in windows:
        in_win = [sid for sid in dataset.sample_ids if lo <= dens[sid] <= hi]
        ctl_ids = [sid for sid in in_win if sides[sid] == design.control_value]
        trt_ids = [sid for sid in in_win if sides[sid] != design.control_value]
        if len(ctl_ids) < min_fractions or len(trt_ids) < min_fractions:
            raise EngineError(
                f"insufficient replication in window {lo}-{hi}: "
                f"{len(ctl_ids)} control / {len(trt_ids)} treatment fraction(s), need {min_fractions} each"
            )
        counts = dataset.counts.loc[:, in_win]
        totals = counts.sum(axis=0).replace(0, np.nan)
        rel = counts.div(totals, axis=1).fillna(0.0)
        occupancy = (counts > 0).mean(axis=1)
        per_window.append((lo, hi, rel, occupancy, trt_ids, ctl_ids))

    frames = []
    for thr in sparsity_thresholds:
        rows = []
        for lo, hi, rel, occupancy, trt_ids, ctl_ids in per_window:
            keep = occupancy >= thr
            if not keep.any():
                continue
            res = _test_window(rel.loc[keep], trt_ids, ctl_ids, l2fc_threshold, pseudocount)
            res["density_min"] = lo
            res["density_max"] = hi
            rows.append(res)
        if not rows:
            LOG.debug("No features pass sparsity threshold %s", thr)
            continue
        res = pd.concat(rows, ignore_index=True)
        res["padj"] = multipletests(res["p_value"].to_numpy(), method="fdr_bh")[1]
        best = res.loc[res.groupby("feature_id", sort=False)["log2_fold_change"].idxmax()]
        best = best.assign(sparsity_threshold=thr)
        LOG.debug("Sparsity %s: %d features, %d with padj < %s",
                  thr, len(best), int((best["padj"] < padj_cutoff).sum()), padj_cutoff)
        frames.append(best)

    if not frames:
        return pd.DataFrame(columns=RESULT_COLUMNS)
    return pd.concat(frames, ignore_index=True)[RESULT_COLUMNS]


def best_sparsity_threshold(results: pd.DataFrame, padj_cutoff: float = 0.1) -> pd.DataFrame:
    """
    Per group, the sparsity threshold that rejects the most hypotheses (ties go to
    the lowest threshold). Reporting only; rows are never dropped here.
    """
    key = ["group"] if "group" in results.columns else []
    hits = (results.assign(rejected=results["padj"] < padj_cutoff)
            .groupby(key + ["sparsity_threshold"], sort=False)["rejected"].sum()
            .reset_index())

    def _pick(df: pd.DataFrame) -> pd.Series:
        return df.sort_values(["rejected", "sparsity_threshold"], ascending=[False, True], kind="stable").iloc[0]

    if key:
        picked = [_pick(sub) for _, sub in hits.groupby("group", sort=False)]
    else:
        picked = [_pick(hits)]
    return pd.DataFrame(picked).reset_index(drop=True)
