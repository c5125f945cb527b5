"""Headless-safe plotting of training curves."""

from __future__ import annotations

from pathlib import Path
from typing import List, Mapping, Tuple


class PlotAdapter:
    """Collect per-epoch metrics and optionally render them with matplotlib."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self._history: List[Tuple[int, float, float]] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        if not self.enable_plots:
            return
        cost = float(metrics.get("cost", 0.0))
        accuracy = float(metrics.get("accuracy", 0.0))
        self._history.append((epoch, cost, accuracy))

    def close(self) -> Path | None:
        if not self.enable_plots or not self._history:
            return None
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # imported lazily for headless safety

        epochs, costs, accuracies = zip(*self._history)
        fig, (ax_cost, ax_acc) = plt.subplots(1, 2, figsize=(10, 4))
        ax_cost.plot(epochs, costs)
        ax_cost.set_xlabel("Epoch")
        ax_cost.set_ylabel("Cost")
        ax_cost.set_title("Training cost")
        ax_acc.plot(epochs, accuracies, color="tab:green")
        ax_acc.set_xlabel("Epoch")
        ax_acc.set_ylabel("Accuracy")
        ax_acc.set_ylim(0.0, 1.0)
        ax_acc.set_title("Rounded accuracy")
        fig.tight_layout()
        plot_path = self.run_dir / "training.png"
        fig.savefig(plot_path)
        plt.close(fig)
        return plot_path

    __call__ = on_epoch


__all__ = ["PlotAdapter"]
