# src/dsprep/matrices.py

from __future__ import annotations

from typing import Any, Dict, List, Tuple

import networkx as nx
import numpy as np
import pandas as pd
from loguru import logger

from .config import InputFilesConfig
from .harmonize import DRUG_COL
from .resolve import CELL_LINE_COL, VALUE_COL, resolve_identifiers


PKD_TRANSFORM = "pKd = 9 - log10(Kd [nM])"


def build_affinity_matrix(
    affinity: pd.DataFrame,
    cfg: InputFilesConfig,
    confidence_level: str = "High",
) -> pd.DataFrame:
    """
    Pivot high-confidence affinity records into a drug x target matrix.

    Parameters
    ----------
    affinity : pandas.DataFrame
        Harmonized affinity records (see HarmonizationResult.affinity);
        must contain 'drug'.
    cfg : InputFilesConfig
        Column configuration for target name, affinity and confidence.
    confidence_level : str
        Only records with this classification are used.

    Returns
    -------
    pandas.DataFrame
        Rows: drug tokens. Columns: target names. Values: affinity; pairs
        without a record are NaN, never zero. Repeated pairs are averaged.
    """
    high = affinity[affinity[cfg.target_confidence_col] == confidence_level]
    high = high.dropna(subset=[cfg.target_name_col])

    values = pd.to_numeric(high[cfg.target_affinity_col], errors="coerce")
    high = high.assign(**{cfg.target_affinity_col: values})

    matrix = high.pivot_table(
        index=DRUG_COL,
        columns=cfg.target_name_col,
        values=cfg.target_affinity_col,
        aggfunc="mean",
    )
    matrix.index.name = DRUG_COL
    matrix.columns.name = "target"

    logger.info(
        "Affinity matrix: {} drugs x {} targets from {}/{} '{}' records",
        matrix.shape[0],
        matrix.shape[1],
        len(high),
        len(affinity),
        confidence_level,
    )
    return matrix


def transform_affinity(matrix: pd.DataFrame) -> pd.DataFrame:
    """
    Convert apparent Kd values (nM) into pKd.

    Missing entries stay missing. Non-positive Kd values are rejected.
    """
    values = matrix.to_numpy(dtype=float)
    if np.any(values[~np.isnan(values)] <= 0):
        bad = matrix.columns[(matrix <= 0).any(axis=0)].tolist()
        raise ValueError(f"Affinity values must be positive to log-transform, got non-positive for targets {bad}")
    return 9.0 - np.log10(matrix)


def decorrelate_targets(
    matrix: pd.DataFrame,
    threshold: float = 0.9,
    min_periods: int = 3,
) -> Tuple[pd.DataFrame, Dict[str, List[str]]]:
    """
    Collapse groups of highly correlated targets onto one representative.

    Targets are linked when the absolute Pearson correlation over drugs
    observed for both is at least ``threshold``. Every connected component
    of that graph keeps a single column: the one observed for the most
    drugs (ties broken by name).

    Parameters
    ----------
    matrix : pandas.DataFrame
        Drug x target matrix, NaN for missing pairs.
    threshold : float
        Absolute correlation above which two targets are considered redundant.
    min_periods : int
        Minimum number of shared observed drugs to compute a correlation.

    Returns
    -------
    reduced : pandas.DataFrame
        Matrix restricted to the representative targets (original order).
    groups : dict
        Mapping representative -> sorted members, for groups of size > 1.
    """
    corr = matrix.corr(min_periods=min_periods).abs()
    targets = list(matrix.columns)

    G = nx.Graph()
    G.add_nodes_from(targets)
    values = corr.to_numpy()
    rows, cols = np.where(np.triu(values >= threshold, k=1))
    G.add_edges_from((targets[i], targets[j]) for i, j in zip(rows, cols))

    n_observed = matrix.notna().sum(axis=0)
    keep = set()
    groups: Dict[str, List[str]] = {}
    for component in nx.connected_components(G):
        rep = min(component, key=lambda t: (-int(n_observed[t]), str(t)))
        keep.add(rep)
        if len(component) > 1:
            groups[rep] = sorted(component, key=str)

    reduced = matrix[[t for t in targets if t in keep]]
    return reduced, groups


def process_affinity_matrix(
    matrix: pd.DataFrame,
    confidence_level: str = "High",
    threshold: float = 0.9,
    min_periods: int = 3,
) -> Tuple[pd.DataFrame, Dict[str, Any]]:
    """
    Transform and decorrelate an affinity matrix.

    Returns
    -------
    matrix : pandas.DataFrame
        pKd matrix restricted to representative targets.
    metadata : dict
        transform, confidence_level, correlation_threshold, targets,
        dropped_targets, target_groups.
    """
    pkd = transform_affinity(matrix)
    reduced, groups = decorrelate_targets(pkd, threshold=threshold, min_periods=min_periods)

    dropped = [t for t in pkd.columns if t not in reduced.columns]
    metadata: Dict[str, Any] = {
        "transform": PKD_TRANSFORM,
        "confidence_level": confidence_level,
        "correlation_threshold": threshold,
        "correlation_min_periods": min_periods,
        "targets": list(reduced.columns),
        "dropped_targets": dropped,
        "target_groups": groups,
    }

    logger.info(
        "Decorrelated targets: kept {}, dropped {} in {} groups",
        reduced.shape[1],
        len(dropped),
        len(groups),
    )
    return reduced, metadata


def build_response_matrix(
    screen: pd.DataFrame,
    compounds: pd.DataFrame,
    cfg: InputFilesConfig,
) -> pd.DataFrame:
    """
    Average replicate measurements per (drug, cell line) and pivot.

    Parameters
    ----------
    screen : pandas.DataFrame
        Resolved screen records (see resolve.resolve_screen).
    compounds : pandas.DataFrame
        Harmonized compounds with 'drug' tokens (HarmonizationResult.compounds).
        Screen rows whose compound id is not listed are dropped.
    cfg : InputFilesConfig
        Column configuration for compound ids.

    Returns
    -------
    pandas.DataFrame
        Rows: drug tokens. Columns: cell-line names. Missing pairs are NaN.
    """
    records = resolve_identifiers(
        screen,
        compounds,
        id_col=cfg.screen_compound_id_col,
        name_col=DRUG_COL,
        out_col=DRUG_COL,
        lookup_id_col=cfg.compound_id_col,
    )
    records = records.dropna(subset=[VALUE_COL])

    matrix = records.groupby([DRUG_COL, CELL_LINE_COL])[VALUE_COL].mean().unstack()
    matrix.columns.name = CELL_LINE_COL

    logger.info(
        "Response matrix: {} drugs x {} cell lines, {} missing entries",
        matrix.shape[0],
        matrix.shape[1],
        int(matrix.isna().sum().sum()),
    )
    return matrix


def build_mutation_matrix(mutations: pd.DataFrame, gene_col: str) -> pd.DataFrame:
    """
    Cell line x gene 0/1 indicator from resolved mutation calls.
    """
    calls = mutations.dropna(subset=[gene_col])
    matrix = pd.crosstab(calls[CELL_LINE_COL], calls[gene_col])
    matrix = (matrix > 0).astype(int)
    matrix.index.name = CELL_LINE_COL
    matrix.columns.name = "gene"
    return matrix


def align_matrices(
    affinity: pd.DataFrame,
    response: pd.DataFrame,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Restrict both matrices to the drugs they share, in the same sorted order.
    """
    shared = sorted(set(affinity.index) & set(response.index))
    dropped = (set(affinity.index) | set(response.index)) - set(shared)
    if dropped:
        logger.info("Alignment dropped {} drugs present in only one matrix: {}", len(dropped), sorted(dropped))
    return affinity.loc[shared], response.loc[shared]
