# src/dsprep/pipeline.py

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import pandas as pd
from loguru import logger

from .config import InputFilesConfig, PreprocessConfig
from .data_models import DEFAULT_SYNONYMS, PreprocessedBundle, SynonymTable
from .harmonize import harmonize_drug_names
from .imputation import impute_response_matrix
from .io_handlers import RawTables, load_input_tables, toy_files_config
from .matrices import (
    align_matrices,
    build_affinity_matrix,
    build_mutation_matrix,
    build_response_matrix,
    process_affinity_matrix,
)
from .missingness import select_columns
from .normalize import standardize_columns
from .resolve import resolve_compounds, resolve_mutations, resolve_screen


def build_aligned_matrices(
    tables: RawTables,
    cfg: InputFilesConfig,
    params: PreprocessConfig,
    synonyms: Optional[SynonymTable] = None,
) -> Tuple[pd.DataFrame, Dict[str, Any], pd.DataFrame]:
    """
    Run the stages up to (and including) drug alignment.

    Steps:
        1) Resolve cell-line and compound identifiers of the screen
        2) Harmonize drug names with the affinity table
        3) Build, transform and decorrelate the affinity matrix
        4) Build the replicate-averaged response matrix
        5) Align both matrices on the shared drugs

    Returns
    -------
    affinity : pandas.DataFrame
    affinity_metadata : dict
    response : pandas.DataFrame
        Not yet filtered, imputed or standardized.
    """
    synonyms = synonyms if synonyms is not None else DEFAULT_SYNONYMS
    if tables.synonyms:
        synonyms = synonyms.extend(tables.synonyms)

    # 1. Resolve
    screen = resolve_screen(tables.screen, tables.cell_lines, tables.compounds, cfg)
    compounds = resolve_compounds(tables.compounds, cfg)

    # 2. Harmonize
    harmonized = harmonize_drug_names(compounds, tables.targets, cfg, synonyms=synonyms)
    if not harmonized.drugs:
        raise ValueError("No drugs shared between affinity and screen")

    # 3. Affinity
    affinity = build_affinity_matrix(harmonized.affinity, cfg, confidence_level=params.confidence_level)
    affinity, metadata = process_affinity_matrix(
        affinity,
        confidence_level=params.confidence_level,
        threshold=params.correlation_threshold,
        min_periods=params.correlation_min_periods,
    )
    metadata["synonyms_version"] = harmonized.synonyms_version
    metadata["n_exact_matches"] = len(harmonized.initial_overlap)

    # 4. Response
    response = build_response_matrix(screen, harmonized.compounds, cfg)

    # 5. Align
    affinity, response = align_matrices(affinity, response)
    if response.empty:
        raise ValueError("No drugs shared between affinity and screen after alignment")
    metadata["drugs"] = list(affinity.index)

    return affinity, metadata, response


def run_pipeline(
    cfg: InputFilesConfig,
    params: Optional[PreprocessConfig] = None,
    synonyms: Optional[SynonymTable] = None,
) -> PreprocessedBundle:
    """
    Run the full preprocessing pipeline on the configured input files.

    Steps:
        1) Load input tables
        2) Build aligned affinity and response matrices
        3) Apply the missingness cutoff
        4) Impute the remaining missing entries
        5) Standardize each cell line
        6) Resolve mutation calls for the retained cell lines (if provided)

    Parameters
    ----------
    cfg : InputFilesConfig
        Configuration with file paths and column mappings.
    params : PreprocessConfig, optional
        Cutoff, affinity and imputer settings (defaults if omitted).
    synonyms : SynonymTable, optional
        Drug name overrides (DEFAULT_SYNONYMS if omitted).

    Returns
    -------
    PreprocessedBundle
        Aligned affinity and response matrices plus metadata.
    """
    params = params if params is not None else PreprocessConfig()

    # 1. Load
    tables = load_input_tables(cfg)

    # 2. Matrices
    affinity, metadata, response = build_aligned_matrices(tables, cfg, params, synonyms=synonyms)

    # 3. Missingness
    response, report = select_columns(
        response,
        cutoff=params.missing_cutoff,
        max_threshold=params.max_threshold,
    )

    # 4. Impute
    response = impute_response_matrix(
        response,
        n_estimators=params.n_estimators,
        max_iter=params.max_iter,
        random_state=params.random_state,
        n_jobs=params.n_jobs,
    )

    # 5. Standardize
    response = standardize_columns(response)

    # 6. Mutations
    mutations = None
    if tables.mutations is not None and tables.cell_line_annotation is not None:
        resolved = resolve_mutations(tables.mutations, tables.cell_line_annotation, cfg)
        mutations = build_mutation_matrix(resolved, gene_col=cfg.mutation_gene_col)
        mutations = mutations.loc[[c for c in response.columns if c in mutations.index]]

    logger.info(
        "Finished: {} drugs, {} targets, {} cell lines",
        response.shape[0],
        affinity.shape[1],
        response.shape[1],
    )
    return PreprocessedBundle(
        affinity=affinity,
        response=response,
        affinity_metadata=metadata,
        missingness=report,
        mutations=mutations,
    )


def run_toy_pipeline(
    data_dir: Path,
    params: Optional[PreprocessConfig] = None,
) -> PreprocessedBundle:
    """
    Run the full pipeline on the toy dataset in ``data_dir`` (e.g. 'data/toy').
    """
    return run_pipeline(toy_files_config(Path(data_dir)), params=params)
