# src/dsprep/resolve.py

from __future__ import annotations

import pandas as pd
from loguru import logger

from .config import InputFilesConfig


CELL_LINE_COL = "cell_line"
COMPOUND_NAME_COL = "compound_name"
VALUE_COL = "value"


def _join_keys(left: pd.Series, right: pd.Series) -> tuple[pd.Series, pd.Series]:
    """
    Make both id columns comparable.

    Numeric ids are compared as numbers (so 101 matches 101.0); anything
    else is compared as a stripped string.
    """
    if pd.api.types.is_numeric_dtype(left) and pd.api.types.is_numeric_dtype(right):
        return left, right
    return left.astype(str).str.strip(), right.astype(str).str.strip()


def _clean_names(names: pd.Series) -> pd.Series:
    names = names.astype(object).map(lambda v: v.strip() if isinstance(v, str) else v)
    return names.mask(names.eq(""))


def resolve_identifiers(
    records: pd.DataFrame,
    lookup: pd.DataFrame,
    id_col: str,
    name_col: str,
    out_col: str,
    lookup_id_col: str | None = None,
) -> pd.DataFrame:
    """
    Attach canonical names to records by exact id match and drop the rows
    that stay unresolved.

    Parameters
    ----------
    records : pandas.DataFrame
        Table carrying an internal identifier in ``id_col``.
    lookup : pandas.DataFrame
        Table mapping identifier -> canonical name. Duplicated ids keep the
        first row, so the join never multiplies records.
    id_col : str
        Identifier column in ``records``.
    name_col : str
        Canonical name column in ``lookup``.
    out_col : str
        Name of the column written to the result.
    lookup_id_col : str, optional
        Identifier column in ``lookup`` (defaults to ``id_col``).

    Returns
    -------
    pandas.DataFrame
        Copy of the surviving records with ``out_col`` set; it is never null.
    """
    lookup_id_col = lookup_id_col or id_col

    table = lookup[[lookup_id_col, name_col]].dropna(subset=[lookup_id_col])
    record_keys, lookup_keys = _join_keys(records[id_col], table[lookup_id_col])

    name_by_id = pd.Series(_clean_names(table[name_col]).to_numpy(), index=lookup_keys.to_numpy())
    name_by_id = name_by_id[~name_by_id.index.duplicated(keep="first")]

    out = records.copy()
    out[out_col] = record_keys.map(name_by_id)
    out = out[out[out_col].notna()].reset_index(drop=True)

    logger.debug(
        "Resolved {} via {}: {}/{} rows kept",
        id_col,
        name_col,
        len(out),
        len(records),
    )
    return out


def resolve_screen(
    screen: pd.DataFrame,
    cell_lines: pd.DataFrame,
    compounds: pd.DataFrame,
    cfg: InputFilesConfig,
) -> pd.DataFrame:
    """
    Resolve both identifiers of the screen results.

    Returns
    -------
    pandas.DataFrame
        Columns:
            - compound id (as in ``cfg.screen_compound_id_col``)
            - cell_line
            - compound_name
            - value
    """
    out = resolve_identifiers(
        screen,
        cell_lines,
        id_col=cfg.screen_cell_line_id_col,
        name_col=cfg.cell_line_name_col,
        out_col=CELL_LINE_COL,
        lookup_id_col=cfg.cell_line_id_col,
    )
    out = resolve_identifiers(
        out,
        compounds,
        id_col=cfg.screen_compound_id_col,
        name_col=cfg.compound_name_col,
        out_col=COMPOUND_NAME_COL,
        lookup_id_col=cfg.compound_id_col,
    )
    out = out.rename(columns={cfg.screen_value_col: VALUE_COL})
    out[VALUE_COL] = pd.to_numeric(out[VALUE_COL], errors="coerce")

    logger.info(
        "Screen records with resolved cell line and compound: {}/{}",
        len(out),
        len(screen),
    )
    return out[[cfg.screen_compound_id_col, CELL_LINE_COL, COMPOUND_NAME_COL, VALUE_COL]]


def resolve_compounds(compounds: pd.DataFrame, cfg: InputFilesConfig) -> pd.DataFrame:
    """Compound metadata restricted to rows with a canonical name."""
    out = compounds.copy()
    out[COMPOUND_NAME_COL] = _clean_names(out[cfg.compound_name_col])
    out = out[out[COMPOUND_NAME_COL].notna()].reset_index(drop=True)
    return out[[cfg.compound_id_col, COMPOUND_NAME_COL]]


def resolve_mutations(
    mutations: pd.DataFrame,
    annotation: pd.DataFrame,
    cfg: InputFilesConfig,
) -> pd.DataFrame:
    """
    Bridge DepMap-style ids in the mutation calls to canonical cell-line
    names through the manual cell-line annotation.
    """
    out = resolve_identifiers(
        mutations,
        annotation,
        id_col=cfg.mutation_id_col,
        name_col=cfg.annotation_name_col,
        out_col=CELL_LINE_COL,
        lookup_id_col=cfg.annotation_id_col,
    )
    logger.info("Mutation calls with resolved cell line: {}/{}", len(out), len(mutations))
    return out
