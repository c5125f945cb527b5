import csv
import json
from pathlib import Path

import pytest

from neuralnets.data import get_dataset
from neuralnets.training import pipelines


def _separable_config(run_dir, **train):
    config = pipelines.merge_config(
        pipelines.load_preset("separable"),
        {"train": {"epochs": 12, "run_dir": str(run_dir), **train}},
    )
    return config


def test_run_pipeline_writes_artifacts(tmp_path, capsys):
    run_dir = tmp_path / "run"
    result = pipelines.run_pipeline(_separable_config(run_dir))

    assert result.epochs == 12
    for name in ("metrics.jsonl", "metrics.csv", "manifest.json", "summary.json", "config.json", "metrics_eval.json"):
        assert (run_dir / name).exists(), name

    lines = Path(result.metrics_path).read_text().splitlines()
    assert len(lines) == 12
    last = json.loads(lines[-1])
    assert last["epoch"] == 12
    assert last["cost"] == pytest.approx(result.final_cost)

    with (run_dir / "metrics.csv").open() as handle:
        rows = list(csv.DictReader(handle))
    assert len(rows) == 12
    assert set(rows[0]) == {"accuracy", "cost", "epoch", "split"}

    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["dataset"]["type"] == "table"
    assert manifest["network"]["parameters"] == 3
    assert manifest["config"]["train"]["epochs"] == 12

    evaluation = json.loads((run_dir / "metrics_eval.json").read_text())
    assert set(evaluation) == {"cost", "accuracy", "mae"}

    summary = json.loads(Path(result.summary_path).read_text())
    assert summary["epochs"] == 12
    assert 1 <= summary["best_epoch"] <= 12

    out = capsys.readouterr().out
    assert "separable (4 items)" in out
    assert "Dense layer: 1 neurons, sigmoid" in out


def test_pipeline_runs_are_reproducible(tmp_path):
    first = pipelines.run_pipeline(_separable_config(tmp_path / "a"))
    second = pipelines.run_pipeline(_separable_config(tmp_path / "b"))
    assert first.final_cost == second.final_cost
    assert Path(first.summary_path).read_text() == Path(second.summary_path).read_text()


def test_pipeline_renders_plot_when_enabled(tmp_path):
    run_dir = tmp_path / "plotted"
    pipelines.run_pipeline(_separable_config(run_dir, enable_plots=True))
    assert (run_dir / "training.png").exists()


def test_pipeline_rejects_missing_sections(tmp_path):
    with pytest.raises(KeyError, match="train"):
        pipelines.run_pipeline({"data": {"name": "xor"}, "model": {"layers": []}})


def test_pipeline_rejects_dataset_network_mismatch(tmp_path):
    config = _separable_config(tmp_path / "bad")
    config["data"] = {"name": "prime", "options": {"bits": 4}}
    with pytest.raises(ValueError, match="inputs"):
        pipelines.run_pipeline(config)


def test_presets_include_builtin_and_file_presets():
    names = set(pipelines.presets())
    assert {"gaussian", "circle_in_circle", "quarters", "spiral", "prime", "separable", "xor"} <= names

    xor = pipelines.load_preset("xor")
    assert xor["data"]["name"] == "xor"
    assert xor["model"]["layers"][0]["activation"] == "tanh"

    with pytest.raises(KeyError, match="Available presets"):
        pipelines.load_preset("moons")


def test_every_preset_builds_a_matching_network():
    for name, config in pipelines.presets().items():
        network = pipelines.build_network(config)
        spec = get_dataset(config["data"]["name"], **config["data"].get("options", {}))
        assert network.input_size == spec.d_in, name
        assert network.output_size == spec.d_out, name


def test_load_config_reads_yaml_and_json(tmp_path):
    yaml_path = tmp_path / "run.yaml"
    yaml_path.write_text("data:\n  name: xor\ntrain:\n  epochs: 3\n")
    json_path = tmp_path / "run.json"
    json_path.write_text(json.dumps({"train": {"lr": 0.2}}))

    merged = pipelines.merge_config(pipelines.load_config(yaml_path), pipelines.load_config(json_path))
    assert merged == {"data": {"name": "xor"}, "train": {"epochs": 3, "lr": 0.2}}

    with pytest.raises(ValueError):
        pipelines.load_config(tmp_path / "run.toml")
