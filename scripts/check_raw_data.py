#!/usr/bin/env python
"""
Quick sanity checks for raw input tables under data/raw/.

- Verifies that expected files exist
- Reads a few rows of each and checks required columns
- Reports how many screen compounds would survive name normalization

Run from project root:

    python scripts/check_raw_data.py
"""

from __future__ import annotations

from pathlib import Path
import sys

import pandas as pd

from dsprep.harmonize import normalize_drug_names


PROJECT_ROOT = Path(__file__).resolve().parents[1]
RAW_DIR = PROJECT_ROOT / "data" / "raw"

DATASETS = [
    # ----------------- CORE (required) -----------------
    {
        "name": "screen",
        "path": RAW_DIR / "v20.data.per_cpd_post_qc.txt",
        "sep": "\t",
        "required_cols": ["master_ccl_id", "master_cpd_id", "cpd_avg_pv"],
        "required": True,
    },
    {
        "name": "cell_lines",
        "path": RAW_DIR / "v20.meta.per_cell_line.txt",
        "sep": "\t",
        "required_cols": ["master_ccl_id", "ccl_name"],
        "required": True,
    },
    {
        "name": "compounds",
        "path": RAW_DIR / "v20.meta.per_compound.txt",
        "sep": "\t",
        "required_cols": ["master_cpd_id", "cpd_name"],
        "required": True,
    },
    {
        "name": "targets",
        "path": RAW_DIR / "kinobeads_targets.pkl",
        "sep": None,
        "required_cols": ["Drug", "Gene Name", "Apparent Kd", "EC50", "Target Classification"],
        "required": True,
    },

    # ----------------- OPTIONAL -----------------
    {
        "name": "cell_line_annotation",
        "path": RAW_DIR / "cell_line_annotation.txt",
        "sep": "\t",
        "required_cols": ["DepMap_ID", "ccl_name"],
        "required": False,
    },
    {
        "name": "mutations",
        "path": RAW_DIR / "CCLE_mutations.csv",
        "sep": ",",
        "required_cols": ["DepMap_ID", "Hugo_Symbol"],
        "required": False,
    },
]


def read_sample_file(path: Path, sep: str | None) -> pd.DataFrame:
    """Read a small sample of a table (pickles are read whole)."""
    if path.suffix in {".pkl", ".pickle"}:
        return pd.read_pickle(path).head(5)
    return pd.read_csv(path, sep=sep, nrows=5)


def check_dataset(
    name: str,
    path: Path,
    sep: str | None,
    required_cols: list[str],
    required: bool,
) -> bool:
    print(f"\nChecking dataset: {name}")
    if not path.exists():
        msg = f"File not found: {path}"
        if required:
            print(f"  ❌ {msg}")
            return False
        else:
            print(f"  ⚠️ (optional) {msg}")
            return True

    df = read_sample_file(path, sep=sep)

    missing = [c for c in required_cols if c not in df.columns]
    if missing:
        msg = f"Missing required columns: {missing}\n  📎 Columns present: {list(df.columns)}"
        if required:
            print(f"  ❌ {msg}")
            return False
        else:
            print(f"  ⚠️ (optional) {msg}")
            return True

    print("  ✅ All required columns present.")
    return True


def report_compound_tokens(path: Path) -> None:
    """Print how many compound names collapse onto the same token."""
    if not path.exists():
        return
    df = pd.read_csv(path, sep="\t")
    names = df["cpd_name"].dropna()
    tokens = normalize_drug_names(names)
    print(
        f"\nCompound names: {len(names)} named, {tokens.nunique()} unique tokens "
        f"({len(names) - tokens.nunique()} duplicates will be dropped)."
    )


def main() -> None:
    print(f"Project root: {PROJECT_ROOT}")
    print(f"Raw data dir: {RAW_DIR}")

    if not RAW_DIR.exists():
        print("❌ data/raw directory does not exist. Create it and add datasets.")
        sys.exit(1)

    ok_all_required = True
    for ds in DATASETS:
        ok = check_dataset(
            name=ds["name"],
            path=ds["path"],
            sep=ds["sep"],
            required_cols=ds["required_cols"],
            required=ds["required"],
        )
        if ds["required"]:
            ok_all_required = ok_all_required and ok

    report_compound_tokens(RAW_DIR / "v20.meta.per_compound.txt")

    if ok_all_required:
        print("\n✅ All required raw dataset checks passed.")
        sys.exit(0)
    else:
        print("\n⚠️ Some required datasets are missing or malformed. See messages above.")
        sys.exit(1)


if __name__ == "__main__":
    main()
