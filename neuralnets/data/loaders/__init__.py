"""Built-in dataset loaders registered on import."""

from __future__ import annotations

from . import planar, tables

__all__ = ["planar", "tables"]
