# src/dsprep/missingness.py

from __future__ import annotations

from typing import Optional

import pandas as pd
from loguru import logger

from .data_models import MissingnessReport


def missingness_curve(matrix: pd.DataFrame, max_threshold: Optional[int] = None) -> pd.Series:
    """
    Count, for every candidate cutoff, how many columns would survive.

    For each threshold t in 0..max_threshold (inclusive), the value is the
    number of columns whose missing-entry count is <= t. The curve is
    monotone non-decreasing.

    Parameters
    ----------
    matrix : pandas.DataFrame
        Drug x cell-line response matrix.
    max_threshold : int, optional
        Largest threshold to evaluate; defaults to the number of rows.

    Returns
    -------
    pandas.Series
        Index 'max_missing' (thresholds), values 'n_retained'.
    """
    if max_threshold is None:
        max_threshold = matrix.shape[0]
    if max_threshold < 0:
        raise ValueError(f"max_threshold must be >= 0, got {max_threshold}")

    n_missing = matrix.isna().sum(axis=0)
    thresholds = pd.RangeIndex(0, max_threshold + 1, name="max_missing")
    counts = [int((n_missing <= t).sum()) for t in thresholds]
    return pd.Series(counts, index=thresholds, name="n_retained")


def apply_missingness_cutoff(matrix: pd.DataFrame, cutoff: int) -> pd.DataFrame:
    """
    Keep only the columns with at most ``cutoff`` missing entries.

    Other columns are dropped entirely; rows are left unchanged.
    """
    if cutoff < 0:
        raise ValueError(f"Missingness cutoff must be >= 0, got {cutoff}")
    n_missing = matrix.isna().sum(axis=0)
    return matrix.loc[:, n_missing <= cutoff]


def select_columns(
    matrix: pd.DataFrame,
    cutoff: int,
    max_threshold: Optional[int] = None,
) -> tuple[pd.DataFrame, MissingnessReport]:
    """
    Compute the diagnostic curve, apply ``cutoff`` and report both.
    """
    curve = missingness_curve(matrix, max_threshold=max_threshold)
    reduced = apply_missingness_cutoff(matrix, cutoff)

    retained = list(reduced.columns)
    dropped = [c for c in matrix.columns if c not in reduced.columns]

    logger.info(
        "Missingness cutoff {}: {}/{} cell lines retained",
        cutoff,
        len(retained),
        matrix.shape[1],
    )
    logger.debug("Missingness curve: {}", curve.to_dict())

    report = MissingnessReport(curve=curve, cutoff=cutoff, retained=retained, dropped=dropped)
    return reduced, report
