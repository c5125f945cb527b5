import json

from neuralnets.reporting import CsvSink, JsonlSink, MetricsCapture, PlotAdapter, write_manifest, write_summary
from neuralnets.reporting.summary import summarise


def _feed(sinks, costs):
    for epoch, cost in enumerate(costs, start=1):
        for sink in sinks:
            sink.on_epoch(epoch, {"cost": cost, "accuracy": 1.0 - cost})


def test_jsonl_sink_and_summary(tmp_path):
    sink = JsonlSink(tmp_path / "metrics.jsonl", seed=4, sha="abc")
    _feed([sink], [0.5, 0.2, 0.3])

    records = [json.loads(line) for line in sink.path.read_text().splitlines()]
    assert records[0] == {"epoch": 1, "split": "train", "seed": 4, "sha": "abc", "cost": 0.5, "accuracy": 0.5}

    out = write_summary(sink.path, tmp_path / "summary.json", tail=2)
    summary = json.loads((tmp_path / "summary.json").read_text())
    assert out.endswith("summary.json")
    assert summary["best_epoch"] == 2
    assert summary["tail_window"] == 2
    assert summary["metrics"]["cost"]["tail_mean"] == 0.25
    assert summary["metrics"]["cost"]["first"] == 0.5


def test_summary_of_no_records():
    summary = summarise([], tail=5)
    assert summary["epochs"] == 0
    assert summary["best_epoch"] is None


def test_csv_sink_writes_header_once(tmp_path):
    sink = CsvSink(tmp_path / "metrics.csv")
    _feed([sink], [0.4, 0.1])
    lines = sink.path.read_text().splitlines()
    assert lines[0] == "accuracy,cost,epoch,split"
    assert len(lines) == 3


def test_metrics_capture_keeps_history():
    capture = MetricsCapture()
    _feed([capture], [0.4, 0.1])
    assert [epoch for epoch, _ in capture.history] == [1, 2]
    assert capture.last == {"cost": 0.1, "accuracy": 0.9}


def test_plot_adapter_disabled_writes_nothing(tmp_path):
    plots = PlotAdapter(tmp_path / "plots", enable_plots=False)
    _feed([plots], [0.3])
    assert plots.close() is None
    assert not (tmp_path / "plots").exists()


def test_manifest_records_config_and_environment(tmp_path):
    path = write_manifest(
        tmp_path / "manifest.json",
        config={"train": {"epochs": 1}},
        dataset_provenance={"type": "table"},
        network={"parameters": 3},
    )
    manifest = json.loads(open(path).read())
    assert manifest["config"] == {"train": {"epochs": 1}}
    assert manifest["network"] == {"parameters": 3}
    assert set(manifest["environment"]) == {"python", "numpy"}
