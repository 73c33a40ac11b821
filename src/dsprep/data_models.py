# src/dsprep/data_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

import pandas as pd


@dataclass(frozen=True)
class SynonymTable:
    """
    Hand-curated drug name corrections applied to the affinity side.

    Attributes
    ----------
    version : str
        Version label of the table; bump it whenever an entry changes so
        the value recorded in the output bundle identifies the curation.
    overrides : Mapping[str, str]
        Normalized affinity-side token -> normalized response-side token.
    """
    version: str
    overrides: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "overrides", MappingProxyType(dict(self.overrides)))

    def apply(self, name: str) -> str:
        return self.overrides.get(name, name)

    def extend(self, extra: Mapping[str, str], version: Optional[str] = None) -> "SynonymTable":
        """Return a new table with ``extra`` entries layered on top."""
        merged = dict(self.overrides)
        merged.update(extra)
        return SynonymTable(version=version or f"{self.version}+custom", overrides=merged)


DEFAULT_SYNONYMS = SynonymTable(
    version="1",
    overrides={
        "bms387032": "sns032",
    },
)


@dataclass(frozen=True)
class HarmonizationResult:
    """
    Outcome of reconciling the affinity-side and response-side vocabularies.

    Attributes
    ----------
    drugs : frozenset[str]
        Final intersection of drug tokens; the authoritative drug set.
    initial_overlap : frozenset[str]
        Intersection before synonym overrides (diagnostic only).
    synonyms_version : str
        Version of the SynonymTable that was applied.
    compounds : pandas.DataFrame
        Response-side compounds (one row per token) restricted to ``drugs``.
    affinity : pandas.DataFrame
        Affinity records restricted to ``drugs``, drug column rewritten
        with the overridden names.
    """
    drugs: FrozenSet[str]
    initial_overlap: FrozenSet[str]
    synonyms_version: str
    compounds: pd.DataFrame
    affinity: pd.DataFrame


@dataclass(frozen=True)
class MissingnessReport:
    """
    Diagnostic curve and the decision taken from it.

    Attributes
    ----------
    curve : pandas.Series
        Threshold -> number of columns with at most that many missing values.
    cutoff : int
        Chosen threshold.
    retained : list[str]
        Columns kept (missing count <= cutoff).
    dropped : list[str]
        Columns removed entirely.
    """
    curve: pd.Series
    cutoff: int
    retained: List[str]
    dropped: List[str]


@dataclass(frozen=True)
class PreprocessedBundle:
    """
    Aligned outputs of a preprocessing run, keyed by drug token.
    """
    affinity: pd.DataFrame
    response: pd.DataFrame
    affinity_metadata: Dict[str, Any]
    missingness: MissingnessReport
    mutations: Optional[pd.DataFrame] = None

    @property
    def drugs(self) -> List[str]:
        return list(self.response.index)
