# src/dsprep/imputation.py

"""
Missing-value imputation for the reduced response matrix.

Uses scikit-learn's IterativeImputer with a random forest as the per-column
estimator (the MissForest scheme): each drug is regressed on all the others
across cell lines, round-robin, until the imputed values stop changing or
``max_iter`` is reached.
"""

from __future__ import annotations

from typing import Optional

import pandas as pd
from loguru import logger
from sklearn.ensemble import RandomForestRegressor
from sklearn.experimental import enable_iterative_imputer  # noqa: F401
from sklearn.impute import IterativeImputer


def _check_imputable(matrix: pd.DataFrame) -> None:
    empty_rows = matrix.index[matrix.isna().all(axis=1)].tolist()
    empty_cols = matrix.columns[matrix.isna().all(axis=0)].tolist()
    if empty_rows or empty_cols:
        raise ValueError(
            "Cannot impute entirely missing rows/columns: "
            f"rows={empty_rows}, columns={empty_cols}"
        )


def impute_response_matrix(
    matrix: pd.DataFrame,
    n_estimators: int = 100,
    max_iter: int = 10,
    random_state: Optional[int] = 0,
    n_jobs: Optional[int] = None,
) -> pd.DataFrame:
    """
    Fill the missing entries of a drug x cell-line matrix.

    The imputer sees cell lines as samples and drugs as features, so the
    matrix is transposed in and out.

    Parameters
    ----------
    matrix : pandas.DataFrame
        Drug x cell-line matrix with missing cells but no fully missing
        row or column.
    n_estimators : int
        Trees per random forest.
    max_iter : int
        Maximum imputation rounds.
    random_state : int, optional
        Seed for the imputer and the forests; None gives non-reproducible runs.
    n_jobs : int, optional
        Parallelism of the forests.

    Returns
    -------
    pandas.DataFrame
        Dense matrix with the same shape and labels.
    """
    _check_imputable(matrix)

    n_missing = int(matrix.isna().sum().sum())
    if n_missing == 0:
        logger.info("No missing entries, skipping imputation")
        return matrix.copy()

    estimator = RandomForestRegressor(
        n_estimators=n_estimators,
        random_state=random_state,
        n_jobs=n_jobs,
    )
    imputer = IterativeImputer(
        estimator=estimator,
        max_iter=max_iter,
        random_state=random_state,
    )

    samples = matrix.T
    filled = imputer.fit_transform(samples.to_numpy(dtype=float))

    logger.info(
        "Imputed {} missing entries in {} rounds",
        n_missing,
        imputer.n_iter_,
    )
    return pd.DataFrame(filled, index=samples.index, columns=samples.columns).T
