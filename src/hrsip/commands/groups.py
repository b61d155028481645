# src/hrsip/commands/groups.py
from __future__ import annotations

import csv
from pathlib import Path

from hrsip.commands.common import build_groups, fail, load_params
from hrsip.errors import HrsipError
from hrsip.metadata.read import load_samples
from hrsip.utils.logger import get_logger

LOG = get_logger("groups")


def setup_parser(subparsers, parent) -> None:
    p = subparsers.add_parser(
        "groups", parents=[parent],
        help="Build treatment/control comparison groups from a sample metadata TSV and list them.",
    )
    p.add_argument("--metadata-file", type=Path, required=True, help="Sample metadata TSV (#SampleID first).")
    p.add_argument("--params", type=Path, required=True, help="YAML/JSON params (treatment axis, strata, ...)")
    p.add_argument("--output", type=Path, default=None, help="Optional TSV of group,sample_id membership.")
    p.set_defaults(func=run)


def run(args) -> None:
    try:
        params = load_params(args.params)
        groups = build_groups(load_samples(args.metadata_file), params)
    except HrsipError as e:
        fail(e)

    for label, g in groups.items():
        print(f"{label}\t{len(g.samples)} samples\t{','.join(g.sample_ids)}")

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with args.output.open("w", encoding="utf-8", newline="") as fh:
            w = csv.writer(fh, delimiter="\t", lineterminator="\n")
            w.writerow(["group", "sample_id"])
            for label, g in groups.items():
                for sid in g.sample_ids:
                    w.writerow([label, sid])
        LOG.info("Group membership written → %s", args.output)
    print(f"[ok] {len(groups)} comparison group(s)")
