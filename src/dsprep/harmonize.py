# src/dsprep/harmonize.py

"""
Drug name harmonization between the target-affinity table and the screen.

Matching is exact on normalized tokens, plus a hand-curated SynonymTable
for names that normalization cannot reconcile (internal code names versus
generic names). There is no fuzzy matching: anything outside the final
intersection is excluded from both matrices.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Set

import pandas as pd
from loguru import logger

from .config import InputFilesConfig
from .data_models import DEFAULT_SYNONYMS, HarmonizationResult, SynonymTable
from .resolve import COMPOUND_NAME_COL


DRUG_COL = "drug"

_STRIP_CHARS = re.compile(r"[- ]")


def normalize_drug_name(name: str) -> str:
    """
    Lower-case a drug name and delete hyphens and spaces.

    >>> normalize_drug_name("SNS-032")
    'sns032'
    """
    return _STRIP_CHARS.sub("", name.lower())


def normalize_drug_names(names: pd.Series) -> pd.Series:
    return names.astype(str).str.lower().str.replace(_STRIP_CHARS, "", regex=True)


def unique_compound_tokens(compounds: pd.DataFrame) -> pd.DataFrame:
    """
    Add a normalized ``drug`` token to resolved compounds and keep the first
    row per token.

    Parameters
    ----------
    compounds : pandas.DataFrame
        Must contain 'compound_name' (see resolve.resolve_compounds).

    Returns
    -------
    pandas.DataFrame
        Same columns plus 'drug', one row per token.
    """
    out = compounds.dropna(subset=[COMPOUND_NAME_COL]).copy()
    out[DRUG_COL] = normalize_drug_names(out[COMPOUND_NAME_COL])
    n_before = len(out)
    out = out.drop_duplicates(subset=[DRUG_COL], keep="first").reset_index(drop=True)
    if len(out) < n_before:
        logger.debug("Dropped {} duplicated compound tokens", n_before - len(out))
    return out


def intersect_names(affinity_names: Iterable[str], response_tokens: Iterable[str]) -> Set[str]:
    return set(affinity_names) & set(response_tokens)


def harmonize_drug_names(
    compounds: pd.DataFrame,
    targets: pd.DataFrame,
    cfg: InputFilesConfig,
    synonyms: Optional[SynonymTable] = None,
) -> HarmonizationResult:
    """
    Reconcile the affinity-side and response-side drug vocabularies.

    Steps:
        1) Normalize response-side compound names into tokens (first
           occurrence of a token wins)
        2) Intersect with affinity-side names (diagnostic)
        3) Rewrite affinity-side names through the SynonymTable
        4) Intersect again; this final set is authoritative

    Parameters
    ----------
    compounds : pandas.DataFrame
        Resolved compounds with 'compound_name'.
    targets : pandas.DataFrame
        Target-affinity records, drug names in ``cfg.target_drug_col``.
    cfg : InputFilesConfig
        Column configuration.
    synonyms : SynonymTable, optional
        Overrides to apply (defaults to DEFAULT_SYNONYMS).

    Returns
    -------
    HarmonizationResult
    """
    synonyms = synonyms if synonyms is not None else DEFAULT_SYNONYMS

    compounds = unique_compound_tokens(compounds)
    response_tokens = set(compounds[DRUG_COL])

    affinity = targets.dropna(subset=[cfg.target_drug_col]).copy()
    affinity_names = affinity[cfg.target_drug_col].astype(str)

    initial = intersect_names(affinity_names, response_tokens)

    affinity[DRUG_COL] = affinity_names.map(synonyms.apply)
    final = intersect_names(affinity[DRUG_COL], response_tokens)

    logger.info(
        "Drug overlap: {} exact, {} after synonyms (version {}); {} affinity drugs, {} screen drugs",
        len(initial),
        len(final),
        synonyms.version,
        affinity_names.nunique(),
        len(response_tokens),
    )

    affinity = affinity[affinity[DRUG_COL].isin(final)].reset_index(drop=True)
    compounds = compounds[compounds[DRUG_COL].isin(final)].reset_index(drop=True)

    return HarmonizationResult(
        drugs=frozenset(final),
        initial_overlap=frozenset(initial),
        synonyms_version=synonyms.version,
        compounds=compounds,
        affinity=affinity,
    )
