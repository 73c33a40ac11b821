# tests/test_pipeline.py

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from dsprep.cli import main
from dsprep.config import PreprocessConfig
from dsprep.data_models import SynonymTable
from dsprep.io_handlers import load_bundle, save_bundle, toy_files_config
from dsprep.normalize import ZeroVarianceError
from dsprep.pipeline import run_pipeline, run_toy_pipeline

TOY_DIR = Path(__file__).resolve().parents[1] / "data" / "toy"


def _params(**overrides):
    values = dict(missing_cutoff=2, n_estimators=10, max_iter=3, random_state=0)
    values.update(overrides)
    return PreprocessConfig(**values)


def test_toy_pipeline_end_to_end():
    bundle = run_toy_pipeline(TOY_DIR, params=_params())

    # HT29 misses 3 of 5 drugs and is dropped at cutoff 2
    assert list(bundle.response.columns) == ["A549", "HELA", "K562", "MCF7"]
    assert bundle.missingness.dropped == ["HT29"]
    assert bundle.missingness.curve.tolist() == [2, 3, 4, 5, 5, 5]

    # Both matrices share the same drug rows in the same order
    assert list(bundle.affinity.index) == list(bundle.response.index)
    assert set(bundle.drugs) == {"dasatinib", "erlotinib", "gefitinib", "imatinib", "sns032"}

    # Imputed and standardized per cell line
    assert not bundle.response.isna().any().any()
    np.testing.assert_allclose(bundle.response.mean(axis=0), 0.0, atol=1e-10)
    np.testing.assert_allclose(bundle.response.std(axis=0), 1.0, atol=1e-10)

    meta = bundle.affinity_metadata
    assert meta["synonyms_version"] == "1"
    assert meta["n_exact_matches"] == 4
    assert meta["drugs"] == bundle.drugs

    # Mutations are restricted to retained cell lines
    assert set(bundle.mutations.index) <= set(bundle.response.columns)
    assert "HT29" not in bundle.mutations.index


def test_bundle_can_be_saved_and_loaded(tmp_path):
    bundle = run_toy_pipeline(TOY_DIR, params=_params())

    path = save_bundle(bundle, tmp_path / "out" / "bundle.joblib")
    loaded = load_bundle(path)

    pd.testing.assert_frame_equal(loaded.response, bundle.response)
    pd.testing.assert_frame_equal(loaded.affinity, bundle.affinity)
    assert loaded.affinity_metadata == bundle.affinity_metadata
    assert loaded.missingness.retained == bundle.missingness.retained


def test_missing_required_column_is_reported(tmp_path):
    bad_screen = tmp_path / "screen.txt"
    bad_screen.write_text("master_ccl_id\tmaster_cpd_id\n101\t1\n")
    cfg = toy_files_config(TOY_DIR)
    cfg.screen_file = bad_screen

    with pytest.raises(ValueError, match="cpd_avg_pv"):
        run_pipeline(cfg, params=_params())


def test_constant_cell_line_fails_normalization(tmp_path):
    screen = pd.read_csv(TOY_DIR / "toy_screen.txt", sep="\t")
    screen.loc[screen["master_ccl_id"] == 102, "cpd_avg_pv"] = 0.5
    flat_screen = tmp_path / "screen.txt"
    screen.to_csv(flat_screen, sep="\t", index=False)

    cfg = toy_files_config(TOY_DIR)
    cfg.screen_file = flat_screen

    with pytest.raises(ZeroVarianceError) as excinfo:
        run_pipeline(cfg, params=_params())
    assert excinfo.value.columns == ["HELA"]


def test_cli_toy_writes_bundle(tmp_path, capsys):
    out = tmp_path / "toy_bundle.joblib"

    main([
        "toy",
        "--toy-data-dir", str(TOY_DIR),
        "--cutoff", "2",
        "--n-estimators", "5",
        "--output", str(out),
    ])

    assert out.exists()
    printed = capsys.readouterr().out
    assert "Preprocessing summary" in printed
    assert "cell lines kept" in printed


def test_cli_curve_prints_all_thresholds(capsys):
    main(["curve", "--toy", "--toy-data-dir", str(TOY_DIR)])

    printed = capsys.readouterr().out
    assert "max_missing" in printed
    assert "n_retained" in printed


def test_cli_run_requires_existing_files(tmp_path):
    with pytest.raises(SystemExit):
        main([
            "run",
            "--screen-file", str(tmp_path / "missing.txt"),
            "--cell-lines-file", str(TOY_DIR / "toy_cell_lines.txt"),
            "--compounds-file", str(TOY_DIR / "toy_compounds.txt"),
            "--targets-file", str(TOY_DIR / "toy_targets.txt"),
            "--output", str(tmp_path / "bundle.joblib"),
        ])


def test_mutations_without_annotation_are_rejected():
    cfg = toy_files_config(TOY_DIR)
    cfg.cell_line_annotation_file = None

    with pytest.raises(ValueError, match="annotation"):
        run_pipeline(cfg, params=_params())


def test_missing_potency_column_is_reported(tmp_path):
    targets = pd.read_csv(TOY_DIR / "toy_targets.txt", sep="\t").drop(columns=["EC50"])
    no_potency = tmp_path / "targets.txt"
    targets.to_csv(no_potency, sep="\t", index=False)

    cfg = toy_files_config(TOY_DIR)
    cfg.targets_file = no_potency

    with pytest.raises(ValueError, match="EC50"):
        run_pipeline(cfg, params=_params())


def test_synonyms_file_extends_overrides():
    cfg = toy_files_config(TOY_DIR)
    cfg.synonyms_file = TOY_DIR / "toy_synonyms.csv"

    # The empty table leaves the file as the only source of overrides
    bundle = run_pipeline(cfg, params=_params(), synonyms=SynonymTable("0", {}))

    assert "sns032" in bundle.drugs
    assert bundle.affinity_metadata["synonyms_version"] == "0+custom"
    assert bundle.affinity_metadata["n_exact_matches"] == 4


def test_no_shared_drugs_is_reported(tmp_path):
    targets = pd.read_csv(TOY_DIR / "toy_targets.txt", sep="\t")
    targets["Drug"] = "unscreened" + targets["Drug"]
    unmatched = tmp_path / "targets.txt"
    targets.to_csv(unmatched, sep="\t", index=False)

    cfg = toy_files_config(TOY_DIR)
    cfg.targets_file = unmatched

    with pytest.raises(ValueError, match="No drugs shared"):
        run_pipeline(cfg, params=_params())


def test_cli_run_writes_bundle(tmp_path, capsys):
    out = tmp_path / "run_bundle.joblib"

    main([
        "run",
        "--screen-file", str(TOY_DIR / "toy_screen.txt"),
        "--cell-lines-file", str(TOY_DIR / "toy_cell_lines.txt"),
        "--compounds-file", str(TOY_DIR / "toy_compounds.txt"),
        "--targets-file", str(TOY_DIR / "toy_targets.txt"),
        "--synonyms-file", str(TOY_DIR / "toy_synonyms.csv"),
        "--cutoff", "2",
        "--n-estimators", "5",
        "--max-iter", "3",
        "--output", str(out),
    ])

    assert out.exists()
    loaded = load_bundle(out)
    assert "sns032" in loaded.drugs
    assert loaded.mutations is None
    assert "Preprocessing summary" in capsys.readouterr().out


def test_cli_toy_and_curve_log_at_info(tmp_path, capsys):
    toy_log = tmp_path / "toy.log"
    curve_log = tmp_path / "curve.log"

    main(["toy", "--toy-data-dir", str(TOY_DIR), "--n-estimators", "5", "--log-file", str(toy_log)])
    main(["curve", "--toy", "--toy-data-dir", str(TOY_DIR), "--log-file", str(curve_log)])

    assert "Drug overlap" in toy_log.read_text()
    assert curve_log.exists()
    assert "DEBUG" not in capsys.readouterr().err


def test_cli_run_help_states_n_jobs_default(capsys):
    with pytest.raises(SystemExit):
        main(["run", "--help"])

    help_text = " ".join(capsys.readouterr().out.split())
    assert "(default: None, one job)" in help_text
