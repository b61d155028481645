from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from hrsip.analysis.dataset import SipDataset, build_dataset
from hrsip.plan.types import Sample

CONTROL = "12C-Con"


@pytest.fixture
def tutorial_samples():
    rows = [
        (1, "12C-Con", 3),
        (2, "13C-Glu", 3),
        (3, "13C-Cel", 3),
        (4, "12C-Con", 14),
        (5, "13C-Glu", 14),
    ]
    return [Sample.from_mapping(i, {"substrate": s, "day": d}) for i, s, d in rows]


def _densities(n: int = 19, start: float = 1.69, step: float = 0.005):
    return [round(start + i * step, 3) for i in range(n)]


def make_sip_dataset(
    substrates=("12C-Con", "13C-Glu"),
    days=("3",),
    n_features: int = 12,
    labeled=("OTU.1",),
    seed: int = 0,
) -> SipDataset:
    """
    Synthetic gradient: every (substrate, day) gets 19 fractions from 1.690 to 1.780.
    Features in `labeled` are 20x enriched in heavy (>= 1.72) treatment fractions.
    OTU.sparse is present in a single fraction only.
    """
    rng = np.random.RandomState(seed)
    features = [f"OTU.{i}" for i in range(1, n_features + 1)] + ["OTU.sparse"]
    samples, columns = [], {}
    for day in days:
        for sub in substrates:
            for j, dens in enumerate(_densities()):
                sid = f"{sub}_d{day}_f{j:02d}"
                samples.append(Sample.from_mapping(sid, {"substrate": sub, "day": day, "Buoyant_density": dens}))
                col = rng.poisson(50, size=len(features)).astype(float)
                col[-1] = 0.0
                if sub != CONTROL and dens >= 1.72:
                    for name in labeled:
                        col[features.index(name)] *= 20
                columns[sid] = col
    first = next(iter(columns))
    columns[first][-1] = 5.0
    counts = pd.DataFrame(columns, index=pd.Index(features, name="feature_id"))
    taxonomy = pd.DataFrame(
        {"Phylum": ["Firmicutes" if i % 2 else "Proteobacteria" for i in range(len(features))],
         "Genus": [f"G{i}" for i in range(len(features))]},
        index=pd.Index(features, name="feature_id"),
    )
    taxonomy.loc["OTU.sparse", "Phylum"] = None
    return build_dataset(counts, samples, taxonomy)


@pytest.fixture
def sip_dataset():
    return make_sip_dataset()


def write_inputs(tmp_path: Path, dataset: SipDataset, params_text: str):
    """Write counts/metadata/taxonomy/params files for CLI tests; returns their paths."""
    counts = tmp_path / "counts.tsv"
    with counts.open("w", encoding="utf-8") as fh:
        fh.write("# Constructed from biom file\n")
        dataset.counts.rename_axis("#OTU ID").to_csv(fh, sep="\t")
    meta = tmp_path / "metadata.tsv"
    table = dataset.sample_table().reset_index().rename(columns={"sample_id": "#SampleID"})
    table.to_csv(meta, sep="\t", index=False)
    tax = tmp_path / "taxonomy.tsv"
    taxon = dataset.taxonomy.apply(
        lambda r: "; ".join(f"{p}__{v}" for p, v in (("p", r["Phylum"]), ("g", r["Genus"])) if isinstance(v, str)),
        axis=1,
    )
    pd.DataFrame({"Feature ID": taxon.index, "Taxon": taxon.values}).to_csv(tax, sep="\t", index=False)
    params = tmp_path / "params.yaml"
    params.write_text(params_text, encoding="utf-8")
    return counts, meta, tax, params
