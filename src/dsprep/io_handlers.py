# src/dsprep/io_handlers.py

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional

import joblib
import pandas as pd
from loguru import logger

from .config import InputFilesConfig
from .data_models import MissingnessReport, PreprocessedBundle


@dataclass(frozen=True)
class RawTables:
    """Raw input tables, as read from disk with only column checks applied."""
    screen: pd.DataFrame
    cell_lines: pd.DataFrame
    compounds: pd.DataFrame
    targets: pd.DataFrame
    cell_line_annotation: Optional[pd.DataFrame] = None
    mutations: Optional[pd.DataFrame] = None
    synonyms: Optional[Dict[str, str]] = None


def require_columns(df: pd.DataFrame, columns: Iterable[Optional[str]], table: str) -> None:
    missing = [c for c in columns if c is not None and c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns in {table}: {missing}")


def read_table(path: Path, sep: str = "\t") -> pd.DataFrame:
    """
    Read a delimited table.

    Pickled DataFrames (``.pkl`` / ``.pickle``) are read directly, which is
    how the kinobead target list is usually shipped.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file does not exist: {path}")
    if path.suffix in {".pkl", ".pickle"}:
        return pd.read_pickle(path)
    return pd.read_csv(path, sep=sep)


def load_synonyms(path: Path) -> Dict[str, str]:
    """
    Load extra synonym overrides from a CSV with columns [source, target].

    Both sides are expected to be normalized tokens already.
    """
    df = read_table(path, sep=",")
    require_columns(df, ["source", "target"], str(path))
    df = df.dropna(subset=["source", "target"])
    return dict(
        zip(
            df["source"].astype(str).str.strip(),
            df["target"].astype(str).str.strip(),
        )
    )


def load_input_tables(cfg: InputFilesConfig) -> RawTables:
    """
    Load all inputs according to the given configuration.

    Expected minimal schemas (defaults):

    - screen_file (tab):
        columns: [master_ccl_id, master_cpd_id, cpd_avg_pv]

    - cell_lines_file (tab):
        columns: [master_ccl_id, ccl_name]

    - compounds_file (tab):
        columns: [master_cpd_id, cpd_name]

    - targets_file (pickle, or tab-delimited):
        columns: [Drug, Gene Name, Apparent Kd, Target Classification, EC50]
        (set target_potency_col=None for tables without a potency column)

    - cell_line_annotation_file (tab, optional):
        columns: [DepMap_ID, ccl_name]

    - mutations_file (comma, optional):
        columns: [DepMap_ID, Hugo_Symbol]

    Returns
    -------
    RawTables
    """
    cfg = cfg.resolve_paths()

    screen = read_table(cfg.screen_file, sep=cfg.table_sep)
    require_columns(
        screen,
        [cfg.screen_cell_line_id_col, cfg.screen_compound_id_col, cfg.screen_value_col],
        "screen table",
    )

    cell_lines = read_table(cfg.cell_lines_file, sep=cfg.table_sep)
    require_columns(cell_lines, [cfg.cell_line_id_col, cfg.cell_line_name_col], "cell-line table")

    compounds = read_table(cfg.compounds_file, sep=cfg.table_sep)
    require_columns(compounds, [cfg.compound_id_col, cfg.compound_name_col], "compound table")

    targets = read_table(cfg.targets_file, sep=cfg.table_sep)
    require_columns(
        targets,
        [
            cfg.target_drug_col,
            cfg.target_name_col,
            cfg.target_affinity_col,
            cfg.target_confidence_col,
            cfg.target_potency_col,
        ],
        "target-affinity table",
    )

    if (cfg.cell_line_annotation_file is None) != (cfg.mutations_file is None):
        raise ValueError(
            "Mutation calls need the cell-line annotation to resolve DepMap ids: "
            "provide both files or neither"
        )

    annotation = None
    mutations = None
    if cfg.mutations_file is not None:
        annotation = read_table(cfg.cell_line_annotation_file, sep=cfg.table_sep)
        require_columns(annotation, [cfg.annotation_id_col, cfg.annotation_name_col], "cell-line annotation")
        mutations = read_table(cfg.mutations_file, sep=cfg.mutations_sep)
        require_columns(mutations, [cfg.mutation_id_col, cfg.mutation_gene_col], "mutation table")

    synonyms = load_synonyms(cfg.synonyms_file) if cfg.synonyms_file is not None else None

    logger.info(
        "Loaded {} screen rows, {} cell lines, {} compounds, {} target records",
        len(screen),
        len(cell_lines),
        len(compounds),
        len(targets),
    )
    return RawTables(
        screen=screen,
        cell_lines=cell_lines,
        compounds=compounds,
        targets=targets,
        cell_line_annotation=annotation,
        mutations=mutations,
        synonyms=synonyms,
    )


def load_toy_tables(base_path: Path) -> RawTables:
    """
    Load the toy dataset from the given directory.

    Expected files:
        - toy_screen.txt
        - toy_cell_lines.txt
        - toy_compounds.txt
        - toy_targets.txt
        - toy_cell_line_annotation.txt
        - toy_mutations.csv
    """
    return load_input_tables(toy_files_config(base_path))


def toy_files_config(base_path: Path) -> InputFilesConfig:
    base_path = Path(base_path)
    return InputFilesConfig(
        screen_file=base_path / "toy_screen.txt",
        cell_lines_file=base_path / "toy_cell_lines.txt",
        compounds_file=base_path / "toy_compounds.txt",
        targets_file=base_path / "toy_targets.txt",
        cell_line_annotation_file=base_path / "toy_cell_line_annotation.txt",
        mutations_file=base_path / "toy_mutations.csv",
    )


def save_bundle(bundle: PreprocessedBundle, path: Path) -> Path:
    """
    Persist the aligned outputs as a single joblib file.

    The payload is a plain dict so it can be read without this package:
        affinity, response, affinity_metadata, mutations, missingness, drugs
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "affinity": bundle.affinity,
        "response": bundle.response,
        "affinity_metadata": bundle.affinity_metadata,
        "mutations": bundle.mutations,
        "missingness": {
            "curve": bundle.missingness.curve,
            "cutoff": bundle.missingness.cutoff,
            "retained": bundle.missingness.retained,
            "dropped": bundle.missingness.dropped,
        },
        "drugs": bundle.drugs,
    }
    joblib.dump(payload, path)
    logger.info("Bundle written to {}", path.resolve())
    return path


def load_bundle(path: Path) -> PreprocessedBundle:
    payload = joblib.load(Path(path))
    miss = payload["missingness"]
    return PreprocessedBundle(
        affinity=payload["affinity"],
        response=payload["response"],
        affinity_metadata=payload["affinity_metadata"],
        missingness=MissingnessReport(
            curve=miss["curve"],
            cutoff=miss["cutoff"],
            retained=list(miss["retained"]),
            dropped=list(miss["dropped"]),
        ),
        mutations=payload.get("mutations"),
    )
