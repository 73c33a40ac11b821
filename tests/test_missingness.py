# tests/test_missingness.py

import numpy as np
import pandas as pd
import pytest

from dsprep.missingness import apply_missingness_cutoff, missingness_curve, select_columns


def _matrix_with_missing(n_rows, missing_per_column):
    data = {}
    for j, n_missing in enumerate(missing_per_column):
        col = np.arange(n_rows, dtype=float) + j
        col[:n_missing] = np.nan
        data[f"CL{j}"] = col
    return pd.DataFrame(data, index=[f"drug{i}" for i in range(n_rows)])


def test_curve_is_monotone_and_covers_all_thresholds():
    matrix = _matrix_with_missing(68, [0, 3, 15, 16, 20, 40, 68])

    curve = missingness_curve(matrix)

    assert list(curve.index) == list(range(0, 69))
    assert (curve.diff().dropna() >= 0).all()
    assert curve.loc[0] == 1
    assert curve.loc[15] == 3
    assert curve.loc[68] == 7


def test_curve_respects_max_threshold():
    matrix = _matrix_with_missing(10, [0, 1, 2])

    curve = missingness_curve(matrix, max_threshold=1)

    assert curve.tolist() == [1, 2]


def test_cell_line_over_cutoff_is_dropped():
    # 20 of 68 drugs missing and cutoff 15 -> the column must be absent
    matrix = _matrix_with_missing(68, [0, 15, 20])

    reduced = apply_missingness_cutoff(matrix, cutoff=15)

    assert list(reduced.columns) == ["CL0", "CL1"]
    assert "CL2" not in reduced.columns
    # Rows are untouched
    assert list(reduced.index) == list(matrix.index)


def test_negative_cutoff_is_rejected():
    matrix = _matrix_with_missing(5, [0])
    with pytest.raises(ValueError):
        apply_missingness_cutoff(matrix, cutoff=-1)


def test_select_columns_reports_decision():
    matrix = _matrix_with_missing(5, [0, 1, 2, 3])

    reduced, report = select_columns(matrix, cutoff=2)

    assert report.cutoff == 2
    assert report.retained == ["CL0", "CL1", "CL2"]
    assert report.dropped == ["CL3"]
    assert report.curve.tolist() == [1, 2, 3, 4, 4, 4]
    assert list(reduced.columns) == report.retained
