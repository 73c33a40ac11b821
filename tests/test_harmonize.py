# tests/test_harmonize.py

from pathlib import Path

import pandas as pd
import pytest

from dsprep.data_models import DEFAULT_SYNONYMS, SynonymTable
from dsprep.harmonize import harmonize_drug_names, normalize_drug_name, unique_compound_tokens
from dsprep.io_handlers import load_synonyms, load_toy_tables, toy_files_config
from dsprep.resolve import resolve_compounds

TOY_DIR = Path(__file__).resolve().parents[1] / "data" / "toy"

TOY_DRUGS = {"sns032", "dasatinib", "imatinib", "gefitinib", "erlotinib"}


def _harmonize(synonyms=None):
    tables = load_toy_tables(TOY_DIR)
    cfg = toy_files_config(TOY_DIR)
    compounds = resolve_compounds(tables.compounds, cfg)
    return harmonize_drug_names(compounds, tables.targets, cfg, synonyms=synonyms)


def test_normalize_drug_name():
    assert normalize_drug_name("SNS-032") == "sns032"
    assert normalize_drug_name("Foo Bar-1") == "foobar1"
    # Only hyphens and spaces are removed
    assert normalize_drug_name("5-FU (oral)") == "5fu(oral)"
    assert normalize_drug_name("a_b.c") == "a_b.c"


def test_duplicate_tokens_keep_first_occurrence():
    compounds = pd.DataFrame(
        {
            "master_cpd_id": [2, 7, 9],
            "compound_name": ["Dasatinib", "dasatinib", "DASA TINIB"],
        }
    )

    out = unique_compound_tokens(compounds)

    assert out["drug"].tolist() == ["dasatinib"]
    assert out["master_cpd_id"].tolist() == [2]


def test_synonym_override_brings_in_sns032():
    result = _harmonize()

    assert set(result.drugs) == TOY_DRUGS
    assert "sns032" not in result.initial_overlap
    assert len(result.initial_overlap) == 4
    assert result.synonyms_version == DEFAULT_SYNONYMS.version

    # Affinity records are renamed and restricted to the final drugs
    assert set(result.affinity["drug"]) == TOY_DRUGS
    assert "staurosporine" not in set(result.affinity["Drug"])
    assert "bms387032" in set(result.affinity["Drug"])

    # First compound id per token is retained
    dasatinib = result.compounds[result.compounds["drug"] == "dasatinib"]
    assert dasatinib["master_cpd_id"].tolist() == [2]


def test_without_synonyms_unmatched_drug_is_excluded():
    result = _harmonize(synonyms=SynonymTable(version="0"))

    assert "sns032" not in result.drugs
    assert set(result.drugs) == TOY_DRUGS - {"sns032"}


def test_harmonization_is_idempotent():
    first = _harmonize()
    second = _harmonize()

    assert first.drugs == second.drugs
    pd.testing.assert_frame_equal(first.affinity, second.affinity)


def test_synonym_table_is_read_only_and_extendable():
    with pytest.raises(TypeError):
        DEFAULT_SYNONYMS.overrides["x"] = "y"

    extended = DEFAULT_SYNONYMS.extend({"abc123": "foo"})
    assert extended.apply("abc123") == "foo"
    assert extended.apply("bms387032") == "sns032"
    assert extended.version != DEFAULT_SYNONYMS.version
    assert "abc123" not in DEFAULT_SYNONYMS.overrides


def test_load_synonyms_csv():
    synonyms = load_synonyms(TOY_DIR / "toy_synonyms.csv")
    assert synonyms == {"bms387032": "sns032"}
