# src/hrsip/metadata/read.py
from __future__ import annotations

import csv
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from hrsip.errors import ConfigurationError
from hrsip.metadata import SAMPLE_ID_COL
from hrsip.plan.types import Sample
from hrsip.utils.logger import get_logger

LOG = get_logger("metadata")


def _unquote(s: str) -> str:
    """
    Strip BOM, surrounding quotes, and outer whitespace from a single cell.
    """
    s = s.replace("\ufeff", "")
    s = s.strip()
    if len(s) >= 2 and ((s[0] == s[-1] == '"') or (s[0] == s[-1] == "'")):
        s = s[1:-1].strip()
    return s


# Header aliases that should normalize to '#SampleID'
_SAMPLE_ID_ALIASES = {
    "#sampleid", "#sample id", "sample id", "sample-id", "sampleid", "sample_name", "sample", "id",
}


def _normalize_header(raw: List[str]) -> List[str]:
    out: List[str] = []
    for i, cell in enumerate(raw):
        c = _unquote(cell)
        if i == 0 and c.lower() in _SAMPLE_ID_ALIASES:
            c = SAMPLE_ID_COL
        out.append(c)
    return out


def load_metadata_table(path: Path) -> Tuple[List[str], List[Dict[str, str]]]:
    """
    Load a QIIME-style sample metadata TSV.

    Returns:
      header: List[str] (first element guaranteed to be '#SampleID')
      rows:   List[Dict[str, str]] (keys are header names)

    Skips an optional '#q2:types' second row if present.
    """
    if not path.exists():
        raise ConfigurationError(f"metadata file not found: {path}")
    with path.open("r", encoding="utf-8", errors="replace", newline="") as fh:
        lines = [row for row in csv.reader(fh, delimiter="\t") if any(c.strip() for c in row)]
    if not lines:
        raise ConfigurationError(f"empty metadata file: {path}")

    header = _normalize_header(lines[0])
    if header[0] != SAMPLE_ID_COL:
        raise ConfigurationError(f"{path}: first column must be '#SampleID' (or an alias), got {header[0]!r}")

    start = 1
    if len(lines) > 1 and _unquote(lines[1][0]).lower() == "#q2:types":
        start = 2

    rows: List[Dict[str, str]] = []
    for raw in lines[start:]:
        cols = [_unquote(c) for c in raw]
        rows.append({header[i]: (cols[i] if i < len(cols) else "") for i in range(len(header))})
    return header, rows


def samples_from_rows(rows: Sequence[Dict[str, str]], columns: Optional[Sequence[str]] = None) -> List[Sample]:
    """
    Turn metadata rows into Samples. `columns` restricts the attributes kept;
    by default every non-ID column is kept. Duplicate IDs are a configuration error.
    """
    out: List[Sample] = []
    seen: Dict[str, int] = {}
    for r in rows:
        sid = (r.get(SAMPLE_ID_COL) or "").strip()
        if not sid or sid.startswith("#"):
            continue
        seen[sid] = seen.get(sid, 0) + 1
        keep = columns if columns is not None else [k for k in r if k != SAMPLE_ID_COL]
        out.append(Sample.from_mapping(sid, {k: r.get(k, "") for k in keep}))
    dupes = sorted(k for k, n in seen.items() if n > 1)
    if dupes:
        raise ConfigurationError(f"duplicate sample IDs: {', '.join(dupes)}")
    return out


def load_samples(path: Path) -> List[Sample]:
    header, rows = load_metadata_table(path)
    samples = samples_from_rows(rows)
    LOG.info("Loaded %d samples (%d columns) from %s", len(samples), len(header) - 1, path)
    return samples
