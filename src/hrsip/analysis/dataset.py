# src/hrsip/analysis/dataset.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from hrsip.errors import ConfigurationError
from hrsip.plan.types import Sample
from hrsip.utils.logger import get_logger

LOG = get_logger("dataset")

RANKS = ["Domain", "Phylum", "Class", "Order", "Family", "Genus", "Species"]
_PREFIXES = {"d": "Domain", "k": "Domain", "p": "Phylum", "c": "Class", "o": "Order",
             "f": "Family", "g": "Genus", "s": "Species"}


@dataclass(frozen=True)
class SipDataset:
    """
    Count matrix (features x samples) plus the per-sample attributes and,
    optionally, per-feature taxonomy. Subsets are new objects; nothing is mutated.
    """
    counts: pd.DataFrame
    samples: tuple
    taxonomy: Optional[pd.DataFrame] = None

    @property
    def sample_ids(self) -> List[str]:
        return [s.id for s in self.samples]

    def sample_table(self) -> pd.DataFrame:
        return pd.DataFrame([s.attributes for s in self.samples], index=pd.Index(self.sample_ids, name="sample_id"))

    def subset(self, sample_ids: Iterable[str], drop_empty_features: bool = True) -> "SipDataset":
        ids = list(sample_ids)
        missing = [i for i in ids if i not in self.counts.columns]
        if missing:
            raise ConfigurationError(f"samples missing from count table: {', '.join(missing[:5])}")
        wanted = set(ids)
        samples = tuple(s for s in self.samples if s.id in wanted)
        counts = self.counts.loc[:, ids]
        if drop_empty_features:
            counts = counts.loc[counts.sum(axis=1) > 0]
        return SipDataset(counts=counts, samples=samples, taxonomy=self.taxonomy)


def build_dataset(counts: pd.DataFrame, samples: Sequence[Sample],
                  taxonomy: Optional[pd.DataFrame] = None) -> SipDataset:
    """Align counts and samples on sample ID; samples absent from the count table are dropped with a warning."""
    counts = counts.copy()
    counts.columns = [str(c) for c in counts.columns]
    counts.index = counts.index.astype(str)
    in_table = set(counts.columns)
    kept = [s for s in samples if s.id in in_table]
    dropped = [s.id for s in samples if s.id not in in_table]
    if dropped:
        LOG.warning("%d sample(s) in metadata but not in count table: %s", len(dropped), ", ".join(dropped[:5]))
    if not kept:
        raise ConfigurationError("no sample IDs shared between metadata and count table")
    extra = sorted(in_table - {s.id for s in kept})
    if extra:
        LOG.warning("%d count-table column(s) without metadata ignored", len(extra))
    counts = counts.loc[:, [s.id for s in kept]].fillna(0)
    return SipDataset(counts=counts, samples=tuple(kept), taxonomy=taxonomy)


def read_count_table(path: Path) -> pd.DataFrame:
    """
    Read a features x samples TSV. Handles the '# Constructed from biom file'
    preamble emitted by `biom convert --to-tsv`.
    """
    if not path.exists():
        raise ConfigurationError(f"count table not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        first = fh.readline()
    skip = 1 if first.startswith("# Constructed from biom") else 0
    df = pd.read_csv(path, sep="\t", skiprows=skip, index_col=0)
    df.index = df.index.astype(str)
    df.index.name = "feature_id"
    df = df.apply(pd.to_numeric, errors="coerce").fillna(0)
    LOG.info("Loaded count table %s: %d features x %d samples", path, df.shape[0], df.shape[1])
    return df


def split_taxonomy(df: pd.DataFrame, column: str = "Taxon") -> pd.DataFrame:
    """
    Split a QIIME taxon string ('d__Bacteria; p__Firmicutes; ...') into rank columns.
    Unprefixed strings are assigned to ranks by position. Empty ranks become NA.
    """
    records = []
    for taxon in df[column].fillna("").astype(str):
        rec = {r: None for r in RANKS}
        parts = [p.strip() for p in taxon.split(";") if p.strip()]
        for i, part in enumerate(parts):
            prefix, sep, name = part.partition("__")
            if sep and prefix.lower() in _PREFIXES:
                rank = _PREFIXES[prefix.lower()]
            elif i < len(RANKS):
                rank, name = RANKS[i], part
            else:
                continue
            rec[rank] = name.strip() or None
        records.append(rec)
    out = pd.DataFrame(records, index=df.index, columns=RANKS)
    return out


def read_taxonomy(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise ConfigurationError(f"taxonomy table not found: {path}")
    df = pd.read_csv(path, sep="\t", index_col=0, dtype=str)
    df.index = df.index.astype(str)
    df.index.name = "feature_id"
    if "Taxon" in df.columns:
        df = split_taxonomy(df)
    else:
        df = df[[c for c in df.columns if c in RANKS]]
    LOG.info("Loaded taxonomy for %d features from %s", len(df), path)
    return df
