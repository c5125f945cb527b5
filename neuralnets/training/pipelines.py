"""Config-driven assembly of datasets, networks and run artifacts."""

from __future__ import annotations

import json
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

import numpy as np

from ..core.types import RunResult
from ..data import registry
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink, MetricsCapture
from ..reporting.plots import PlotAdapter
from ..reporting.summary import write_summary
from .metrics import compute_metrics
from .network import Network


def _dense(input_size: int, neuron_count: int, activation: str) -> Dict[str, object]:
    return {
        "kind": "dense",
        "input_size": input_size,
        "neuron_count": neuron_count,
        "activation": activation,
    }


def _dropout(input_size: int, percent: float) -> Dict[str, object]:
    return {"kind": "dropout", "input_size": input_size, "drop_probability_percent": percent}


_PRESETS: Dict[str, Mapping[str, object]] = {
    "gaussian": {
        "data": {"name": "gaussian", "options": {"count": 100, "seed": 0}},
        "model": {
            "layers": [_dense(2, 2, "tanh"), _dense(2, 1, "sigmoid")],
            "loss": "mse",
            "weight_range": 1.0,
        },
        "train": {
            "epochs": 100,
            "batch_size": 1,
            "lr": 0.03,
            "seed": 7,
            "run_dir": "runs/gaussian",
            "enable_plots": False,
        },
    },
    "circle_in_circle": {
        "data": {"name": "circle_in_circle", "options": {"count": 400, "seed": 0}},
        "model": {
            "layers": [
                _dense(4, 4, "tanh"),
                _dense(4, 4, "sigmoid"),
                _dense(4, 1, "sigmoid"),
            ],
            "loss": "mse",
            "weight_range": 1.0,
        },
        "train": {
            "epochs": 200,
            "batch_size": 16,
            "lr": 0.3,
            "seed": 7,
            "run_dir": "runs/circle-in-circle",
            "enable_plots": False,
        },
    },
    "quarters": {
        "data": {"name": "quarters", "options": {"count": 400, "seed": 0}},
        "model": {
            "layers": [
                _dense(4, 4, "tanh"),
                _dense(4, 2, "tanh"),
                _dense(2, 1, "sigmoid"),
            ],
            "loss": "mse",
            "weight_range": 1.0,
        },
        "train": {
            "epochs": 200,
            "batch_size": 16,
            "lr": 0.03,
            "seed": 7,
            "run_dir": "runs/quarters",
            "enable_plots": False,
        },
    },
    "spiral": {
        "data": {"name": "spiral", "options": {"count": 400, "seed": 0}},
        "model": {
            "layers": [
                _dense(6, 16, "tanh"),
                _dropout(16, 5),
                _dense(16, 4, "tanh"),
                _dense(4, 1, "sigmoid"),
            ],
            "loss": "mse",
            "weight_range": 1.0,
        },
        "train": {
            "epochs": 300,
            "batch_size": 16,
            "lr": 0.03,
            "seed": 7,
            "run_dir": "runs/spiral",
            "enable_plots": False,
        },
    },
    "prime": {
        "data": {"name": "prime", "options": {"bits": 4}},
        "model": {
            "layers": [
                _dense(4, 10, "sigmoid"),
                _dense(10, 10, "sigmoid"),
                _dense(10, 1, "sigmoid"),
            ],
            "loss": "mse",
            "weight_range": 1.0,
        },
        "train": {
            "epochs": 200,
            "batch_size": 5,
            "lr": 5.0,
            "seed": 1,
            "run_dir": "runs/prime",
            "enable_plots": False,
        },
    },
    "separable": {
        "data": {"name": "separable", "options": {}},
        "model": {
            "layers": [_dense(2, 1, "sigmoid")],
            "loss": "mse",
            "weight_range": 1.0,
        },
        "train": {
            "epochs": 300,
            "batch_size": 2,
            "lr": 2.0,
            "seed": 0,
            "run_dir": "runs/separable",
            "enable_plots": False,
        },
    },
}

_REQUIRED_SECTIONS = {"data", "model", "train"}
_TASK_METRICS = {
    "binary": ("accuracy",),
    "multiclass": ("class_accuracy",),
    "regression": ("mae",),
}
_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


def load_config(path: str | Path) -> Mapping[str, object]:
    """Read a JSON or YAML config file into a mapping."""

    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        import yaml

        data = yaml.safe_load(path.read_text()) or {}
    elif suffix == ".json":
        data = json.loads(path.read_text() or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def merge_config(base: Mapping[str, object], override: Mapping[str, object]) -> Dict[str, object]:
    """Recursively merge ``override`` into a copy of ``base``."""

    merged: Dict[str, object] = deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_config(merged[key], value)  # type: ignore[arg-type]
        else:
            merged[key] = deepcopy(value)
    return merged


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = load_config(file)
                _check_sections(data, source=file.name)
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return file_overrides[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        available = ", ".join(sorted(presets()))
        raise KeyError(f"Unknown preset: {name}. Available presets: {available}") from exc


def build_network(config: Mapping[str, object], **overrides: object) -> Network:
    """Construct the :class:`Network` described by ``config["model"]`` and ``config["train"]``."""

    model_cfg = dict(config["model"])  # type: ignore[arg-type]
    train_cfg = dict(config["train"])  # type: ignore[arg-type]
    layers = model_cfg.get("layers")
    if not isinstance(layers, Sequence) or isinstance(layers, (str, bytes)) or not layers:
        raise TypeError("model.layers must be a non-empty list of layer mappings")
    options: Dict[str, object] = {
        "loss": str(model_cfg.get("loss", "mse")),
        "learning_rate": float(train_cfg.get("lr", 0.1)),
        "epochs": int(train_cfg.get("epochs", 1)),
        "batch_size": int(train_cfg.get("batch_size", 1)),
        "seed": int(train_cfg.get("seed", 0)),
        "weight_range": float(model_cfg.get("weight_range", 1.0)),
        "workers": int(train_cfg.get("workers", 1)),
    }
    options.update(overrides)
    return Network(list(layers), **options)  # type: ignore[arg-type]


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    """Build the dataset and network from ``config``, train, and write artifacts."""

    _check_sections(config, source="config")
    data_cfg = dict(config["data"])  # type: ignore[arg-type]
    train_cfg = dict(config["train"])  # type: ignore[arg-type]

    spec = registry.get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))
    seed = int(train_cfg.get("seed", 0))
    run_dir = _resolve_run_dir(train_cfg, spec.name)
    run_dir.mkdir(parents=True, exist_ok=True)

    train_jsonl = JsonlSink(run_dir / "metrics.jsonl", split="train", seed=seed)
    train_csv = CsvSink(run_dir / "metrics.csv", split="train")
    capture = MetricsCapture()
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    network = build_network(config, callbacks=[train_jsonl, train_csv, capture, plots])
    if spec.d_in and spec.d_in != network.input_size:
        raise ValueError(f"Dataset {spec.name} has {spec.d_in} inputs but the network takes {network.input_size}")
    if spec.d_out and spec.d_out != network.output_size:
        raise ValueError(
            f"Dataset {spec.name} has {spec.d_out} targets but the network produces {network.output_size}"
        )

    _print_startup_summary(
        dataset_name=spec.name,
        items=len(spec.dataset),
        layers=network.summary().splitlines(),
        loss=network.loss.name,
        learning_rate=network.learning_rate,
        batch_size=network.batch_size,
        epochs=network.epochs,
        param_count=network.parameter_count(),
    )

    try:
        final_cost = network.train(spec.dataset)
        evaluation = dict(network.evaluate(spec.dataset))
        if len(spec.dataset):
            inputs, targets = spec.dataset.arrays()
            predictions = np.stack([network.predict(row).body for row in inputs])
            evaluation.update(compute_metrics(_TASK_METRICS[spec.task_type], predictions, targets))
    finally:
        network.close()
    plots.close()

    (run_dir / "metrics_eval.json").write_text(json.dumps(dict(evaluation), indent=2))

    safe_config = json.loads(json.dumps(config))
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=safe_config,
        dataset_provenance=spec.provenance,
        network={
            "layers": network.summary().splitlines(),
            "parameters": network.parameter_count(),
        },
    )
    summary_tail = int(train_cfg.get("summary_tail", 10))
    summary_path = write_summary(train_jsonl.path, run_dir / "summary.json", tail=summary_tail)
    (run_dir / "config.json").write_text(json.dumps(safe_config, indent=2))

    return RunResult(
        epochs=len(capture.history),
        final_cost=float(final_cost),
        metrics_path=str(train_jsonl.path),
        manifest_path=manifest,
        summary_path=summary_path,
    )


def _check_sections(config: Mapping[str, object], *, source: str) -> None:
    missing = _REQUIRED_SECTIONS - set(config)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise KeyError(f"{source} is missing required sections: {missing_str}")


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def _print_startup_summary(
    *,
    dataset_name: str,
    items: int,
    layers: List[str],
    loss: str,
    learning_rate: float,
    batch_size: int,
    epochs: int,
    param_count: int,
) -> None:
    print("=== neuralnets run ===")
    print(f"Dataset       : {dataset_name} ({items} items)")
    for index, line in enumerate(layers):
        label = "Layers" if index == 0 else ""
        print(f"{label:<14}: {line}")
    print(f"Loss          : {loss}")
    print(f"Learning rate : {learning_rate}")
    print(f"Batch size    : {batch_size}")
    print(f"Epochs        : {epochs}")
    print(f"Parameters    : {param_count}")
    print("======================")


__all__ = ["build_network", "load_config", "load_preset", "merge_config", "presets", "run_pipeline"]
