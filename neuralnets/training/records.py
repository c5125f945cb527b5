"""Plain-data records of a network for external serialisers.

``encode_network`` produces a JSON-safe mapping; ``decode_network`` rebuilds
a network from it. Weights are stored as the exact float32 values, so a
decoded network predicts bit-for-bit what the encoded one did.
"""

from __future__ import annotations

from typing import Dict, Mapping

from ..core.layers import layer_from_record
from .network import Network

RECORD_VERSION = 1


def encode_network(network: Network) -> Dict[str, object]:
    return {
        "version": RECORD_VERSION,
        "loss": network.loss.name,
        "learning_rate": network.learning_rate,
        "epochs": network.epochs,
        "batch_size": network.batch_size,
        "layers": [layer.to_record() for layer in network.layers],
    }


def decode_network(record: Mapping[str, object], **overrides: object) -> Network:
    """Rebuild a :class:`Network` from :func:`encode_network` output.

    ``overrides`` are forwarded to the constructor (``seed``, ``workers``,
    ``callbacks`` ...).
    """

    version = int(record.get("version", RECORD_VERSION))  # type: ignore[arg-type]
    if version != RECORD_VERSION:
        raise ValueError(f"Unsupported network record version {version}")
    missing = {"loss", "learning_rate", "epochs", "batch_size", "layers"} - set(record)
    if missing:
        raise KeyError(f"Network record is missing fields: {', '.join(sorted(missing))}")
    layers = [layer_from_record(item) for item in record["layers"]]  # type: ignore[union-attr]
    return Network(
        layers,
        loss=str(record["loss"]),
        learning_rate=float(record["learning_rate"]),  # type: ignore[arg-type]
        epochs=int(record["epochs"]),  # type: ignore[arg-type]
        batch_size=int(record["batch_size"]),  # type: ignore[arg-type]
        **overrides,  # type: ignore[arg-type]
    )


__all__ = ["RECORD_VERSION", "decode_network", "encode_network"]
