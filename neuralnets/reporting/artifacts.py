"""Run artifact helpers."""

from __future__ import annotations

import json
import platform
import time
from pathlib import Path
from typing import Mapping

import numpy as np

from .metrics import _git_sha


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    dataset_provenance: Mapping[str, object],
    network: Mapping[str, object] | None = None,
) -> str:
    """Write a manifest JSON file capturing what a run was built from."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "git_sha": _git_sha(),
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "config": config,
        "dataset": dict(dataset_provenance),
        "network": dict(network or {}),
        "environment": {
            "python": platform.python_version(),
            "numpy": np.__version__,
        },
    }
    path.write_text(json.dumps(manifest, indent=2))
    return str(path)


__all__ = ["write_manifest"]
