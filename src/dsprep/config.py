# src/dsprep/config.py

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional


@dataclass
class InputFilesConfig:
    """
    Configuration for loading the raw screen tables and the pre-built
    target-affinity table.

    The idea:
        - You provide file paths
        - We assume standard column names, or you can override them
    """

    # File paths
    screen_file: Path
    cell_lines_file: Path
    compounds_file: Path
    targets_file: Path
    cell_line_annotation_file: Optional[Path] = None
    mutations_file: Optional[Path] = None
    synonyms_file: Optional[Path] = None

    # Delimiters: the screen and metadata tables are tab-delimited,
    # the mutation calls are comma-delimited.
    table_sep: str = "\t"
    mutations_sep: str = ","

    # Screen results: columns [cell line id, compound id, measured value]
    screen_cell_line_id_col: str = "master_ccl_id"
    screen_compound_id_col: str = "master_cpd_id"
    screen_value_col: str = "cpd_avg_pv"

    # Cell lines: columns [id, canonical name]
    cell_line_id_col: str = "master_ccl_id"
    cell_line_name_col: str = "ccl_name"

    # Compounds: columns [id, canonical name]
    compound_id_col: str = "master_cpd_id"
    compound_name_col: str = "cpd_name"

    # Target affinity records
    target_drug_col: str = "Drug"
    target_name_col: str = "Gene Name"
    target_affinity_col: str = "Apparent Kd"
    target_potency_col: Optional[str] = "EC50"
    target_confidence_col: str = "Target Classification"

    # Manual cell-line annotation: DepMap-style id -> canonical name
    annotation_id_col: str = "DepMap_ID"
    annotation_name_col: str = "ccl_name"

    # Mutation calls
    mutation_id_col: str = "DepMap_ID"
    mutation_gene_col: str = "Hugo_Symbol"

    def resolve_paths(self, base_dir: Path | None = None) -> "InputFilesConfig":
        """
        Return a copy of this config with all paths resolved (absolute).
        If base_dir is provided, relative paths are interpreted relative to it.
        """
        base_dir = Path(base_dir) if base_dir is not None else Path(".")

        def _resolve(path: Optional[Path]) -> Optional[Path]:
            return (base_dir / path).resolve() if path is not None else None

        return replace(
            self,
            screen_file=_resolve(self.screen_file),
            cell_lines_file=_resolve(self.cell_lines_file),
            compounds_file=_resolve(self.compounds_file),
            targets_file=_resolve(self.targets_file),
            cell_line_annotation_file=_resolve(self.cell_line_annotation_file),
            mutations_file=_resolve(self.mutations_file),
            synonyms_file=_resolve(self.synonyms_file),
        )


@dataclass
class PreprocessConfig:
    """
    Tunable parameters of the preprocessing run.

    The missingness cutoff is a human decision: inspect the curve printed by
    ``dsprep curve`` and re-run with ``--cutoff`` rather than editing code.
    """

    # Affinity matrix
    confidence_level: str = "High"
    correlation_threshold: float = 0.9
    correlation_min_periods: int = 3

    # Missingness policy
    missing_cutoff: int = 15
    max_threshold: Optional[int] = None

    # Iterative imputation
    n_estimators: int = 100
    max_iter: int = 10
    random_state: Optional[int] = 0
    n_jobs: Optional[int] = None
