"""
Visualization utilities for fraud decision analysis.

Generates plots of risk score history, severity distribution,
investigation ROI by context and classification confusion matrices.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from fraud_engine.performance import EvaluationMetrics
from fraud_engine.risk import RiskEntity, SeverityLevel
from fraud_engine.scorer import RiskScorer


class DecisionVisualizer:
    """Generates visualizations of engine outputs.

    All methods optionally save to disk and/or display interactively.
    """

    # Consistent styling
    COLORS = {
        "primary": "#1a73e8",
        "secondary": "#ea4335",
        "success": "#34a853",
        "warning": "#fbbc04",
        "bg": "#fafafa",
    }

    SEVERITY_COLORS = {
        SeverityLevel.VERY_LOW: "#9e9e9e",
        SeverityLevel.LOW: "#34a853",
        SeverityLevel.MEDIUM: "#fbbc04",
        SeverityLevel.HIGH: "#fb8c00",
        SeverityLevel.VERY_HIGH: "#ea4335",
        SeverityLevel.CRITICAL: "#8e0000",
    }

    def __init__(self, output_dir: Optional[str | Path] = None) -> None:
        """
        Args:
            output_dir: Directory for saving plots. Created if missing.
                If ``None``, plots are shown but not saved.
        """
        self._output_dir: Optional[Path] = None
        if output_dir:
            self._output_dir = Path(output_dir)
            self._output_dir.mkdir(parents=True, exist_ok=True)

        plt.style.use("seaborn-v0_8-whitegrid")
        plt.rcParams.update({
            "figure.dpi": 150,
            "font.size": 10,
            "axes.titlesize": 12,
            "axes.labelsize": 10,
        })

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def plot_score_history(
        self,
        entity: RiskEntity,
        *,
        show: bool = False,
    ) -> Optional[Path]:
        """Plot the final-score history of one risk entity.

        Args:
            entity: Entity whose history is plotted.
            show: Whether to display the plot interactively.

        Returns:
            Path to the saved image, or ``None`` if there is no history
            or nothing is saved.
        """
        history = RiskScorer.history_frame(entity)
        if history.empty:
            return None

        fig, ax = plt.subplots(figsize=(9, 5))
        ax.plot(
            history["timestamp"],
            history["score"],
            marker="o",
            color=self.COLORS["primary"],
            linewidth=2,
        )

        # Severity threshold lines
        for level, threshold in RiskScorer.LEVEL_THRESHOLDS.items():
            ax.axhline(
                y=threshold,
                color=self.SEVERITY_COLORS[level],
                linestyle="--",
                linewidth=1,
                alpha=0.6,
            )
            ax.text(
                0.01,
                threshold + 1,
                level.value,
                fontsize=8,
                color=self.SEVERITY_COLORS[level],
                transform=ax.get_yaxis_transform(),
            )

        ax.set_ylim([0, 105])
        ax.set_xlabel("Time")
        ax.set_ylabel("Final Score")
        ax.set_title(f"Score History: {entity.risk_id}")
        fig.autofmt_xdate()
        fig.tight_layout()
        return self._save_or_show(fig, f"score_history_{entity.risk_id}.png", show=show)

    def plot_severity_distribution(
        self,
        entities: Iterable[RiskEntity],
        *,
        show: bool = False,
    ) -> Optional[Path]:
        """Plot the number of risk entities per severity level.

        Args:
            entities: Entities to count.
            show: Whether to display interactively.

        Returns:
            Path to saved image, or ``None``.
        """
        levels = list(SeverityLevel)
        counts = (
            pd.Series([e.level.value for e in entities], dtype=object)
            .value_counts()
            .reindex([level.value for level in levels], fill_value=0)
        )

        fig, ax = plt.subplots(figsize=(8, 5))
        bars = ax.bar(
            list(counts.index),
            counts.values,
            color=[self.SEVERITY_COLORS[level] for level in levels],
            edgecolor="white",
        )
        for bar, count in zip(bars, counts.values):
            ax.text(
                bar.get_x() + bar.get_width() / 2,
                bar.get_height(),
                f"{int(count)}",
                ha="center",
                va="bottom",
                fontsize=9,
            )

        ax.set_xlabel("Severity")
        ax.set_ylabel("Risk Count")
        ax.set_title("Risk Severity Distribution")
        fig.tight_layout()
        return self._save_or_show(fig, "severity_distribution.png", show=show)

    def plot_roi_by_context(
        self,
        comparison: pd.DataFrame,
        *,
        show: bool = False,
    ) -> Optional[Path]:
        """Plot cost, benefit and net ROI per lifecycle context.

        Args:
            comparison: Output of ``ROICalculator.compare_contexts``.
            show: Whether to display interactively.

        Returns:
            Path to saved image, or ``None``.
        """
        if comparison.empty:
            return None

        contexts = list(comparison.index)
        x = np.arange(len(contexts))
        width = 0.27

        fig, ax = plt.subplots(figsize=(9, 5))
        ax.bar(x - width, comparison["total_cost"], width, label="Cost", color=self.COLORS["secondary"], alpha=0.8)
        ax.bar(x, comparison["benefit"], width, label="Benefit", color=self.COLORS["success"], alpha=0.8)
        ax.bar(x + width, comparison["net_roi"], width, label="Net ROI", color=self.COLORS["primary"], alpha=0.8)
        ax.axhline(y=0, color="gray", linewidth=1)

        ax.set_xticks(x)
        ax.set_xticklabels([str(c) for c in contexts])
        ax.set_xlabel("Context")
        ax.set_ylabel("EUR")
        fraud_type = comparison["fraud_type"].iloc[0]
        ax.set_title(f"Investigation ROI by Context: {fraud_type}")
        ax.legend()
        fig.tight_layout()
        return self._save_or_show(fig, f"roi_by_context_{fraud_type}.png", show=show)

    def plot_confusion_matrix(
        self,
        metrics: EvaluationMetrics,
        *,
        show: bool = False,
    ) -> Optional[Path]:
        """Plot the classification confusion matrix as a heatmap.

        Args:
            metrics: Evaluation metrics containing the confusion matrix.
            show: Whether to display the plot interactively.

        Returns:
            Path to the saved image, or ``None`` if not saving.
        """
        if metrics.confusion_matrix is None:
            return None

        cm = metrics.confusion_matrix
        fig, ax = plt.subplots(figsize=(7, 6))

        im = ax.imshow(cm, interpolation="nearest", cmap="Blues")
        fig.colorbar(im, ax=ax, shrink=0.8)

        labels = ["Dismissed", "Fraud"]
        tick_marks = np.arange(len(labels))
        ax.set_xticks(tick_marks)
        ax.set_xticklabels(labels)
        ax.set_yticks(tick_marks)
        ax.set_yticklabels(labels)

        # Annotate cells
        thresh = cm.max() / 2.0
        for i in range(cm.shape[0]):
            for j in range(cm.shape[1]):
                ax.text(
                    j,
                    i,
                    f"{cm[i, j]:,}",
                    ha="center",
                    va="center",
                    color="white" if cm[i, j] > thresh else "black",
                    fontsize=14,
                    fontweight="bold",
                )

        ax.set_xlabel("Classifier Call")
        ax.set_ylabel("Analyst Verdict")
        ax.set_title("Classification Confusion Matrix")
        fig.tight_layout()
        return self._save_or_show(fig, "confusion_matrix.png", show=show)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _save_or_show(
        self,
        fig: plt.Figure,
        filename: str,
        *,
        show: bool,
    ) -> Optional[Path]:
        """Save figure to disk and/or display it."""
        saved_path: Optional[Path] = None
        if self._output_dir:
            saved_path = self._output_dir / filename
            fig.savefig(saved_path, bbox_inches="tight", dpi=150)

        if show:
            plt.show()
        else:
            plt.close(fig)

        return saved_path
