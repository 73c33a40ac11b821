# src/dsprep/normalize.py

from __future__ import annotations

from typing import List

import numpy as np
import pandas as pd


class ZeroVarianceError(ValueError):
    """Raised when a column cannot be standardized."""

    def __init__(self, columns: List[str]):
        self.columns = columns
        super().__init__(
            f"Cannot standardize {len(columns)} column(s) with zero or undefined variance: {columns}"
        )


def standardize_columns(matrix: pd.DataFrame) -> pd.DataFrame:
    """
    Z-score every column: subtract its mean, divide by its standard deviation.

    Columns are cell lines, so drugs are compared within the same sample.
    The sample standard deviation (ddof=1) is used.

    Raises
    ------
    ZeroVarianceError
        If any column has zero or undefined (fewer than two values) variance.
    """
    means = matrix.mean(axis=0)
    stds = matrix.std(axis=0)

    bad = stds[~np.isfinite(stds) | (stds == 0)]
    if not bad.empty:
        raise ZeroVarianceError([str(c) for c in bad.index])

    return (matrix - means) / stds
