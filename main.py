"""
Fraud Decision Engine - End-to-End Demo
=======================================

Runs the complete decision flow on a synthetic batch of detection
signals: classification, risk scoring, correlation, ROI valuation,
investigation planning, performance evaluation and visualization.

Usage:
    python main.py
    python main.py --signals 200 --visualize
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import numpy as np

from fraud_engine.catalog import SourceTag
from fraud_engine.classifier import DetectionSignal
from fraud_engine.engine import DecisionEngine
from fraud_engine.exceptions import NotFound
from fraud_engine.performance import InvestigationOutcome
from fraud_engine.risk import AdjustmentFactors, ComponentScores, QualityMetrics
from fraud_engine.roi import format_for_display
from fraud_engine.typology import FINDING_TYPOLOGIES
from fraud_engine.visualizer import DecisionVisualizer

CONTEXTS = ["auto", "health insurance", "home", "professional liability", "travel"]


def _divider(title: str) -> None:
    """Print a section divider."""
    width = 60
    print(f"\n{'=' * width}")
    print(f"  {title}")
    print(f"{'=' * width}\n")


def generate_signals(
    n_signals: int, n_subjects: int, seed: int = 42
) -> list[tuple[str, DetectionSignal, datetime]]:
    """Generate a reproducible batch of detection signals.

    Returns:
        ``(subject_id, signal, detected_at)`` tuples.
    """
    rng = np.random.default_rng(seed)
    sources = list(SourceTag)
    codes = sorted(FINDING_TYPOLOGIES)
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)

    batch = []
    for _ in range(n_signals):
        signal = DetectionSignal(
            source=sources[rng.integers(len(sources))],
            business_context=CONTEXTS[rng.integers(len(CONTEXTS))],
            score=float(np.clip(rng.normal(65, 18), 0, 100)),
            confidence=float(np.clip(rng.beta(5, 2), 0, 1)),
            finding_codes=tuple(
                rng.choice(codes, size=int(rng.integers(0, 3)), replace=False)
            ),
        )
        subject = f"SUBJ-{int(rng.integers(n_subjects)):04d}"
        detected_at = start + timedelta(hours=float(rng.uniform(0, 24 * 60)))
        batch.append((subject, signal, detected_at))
    return batch


def run_pipeline(
    n_signals: int = 100,
    n_subjects: int = 25,
    visualize: bool = False,
    output_dir: str = "output",
) -> None:
    """Execute the full decision flow.

    Args:
        n_signals: Number of synthetic signals.
        n_subjects: Number of distinct subjects the signals belong to.
        visualize: Whether to generate visualization plots.
        output_dir: Directory for all output artifacts.
    """
    output = Path(output_dir)
    output.mkdir(parents=True, exist_ok=True)

    engine = DecisionEngine()

    # ------------------------------------------------------------------
    # 1. Catalog
    # ------------------------------------------------------------------
    _divider("1. CATALOG")

    for entry in engine.catalog.list():
        print(
            f"  {entry.catalog_id:24s} {entry.source.value:12s} "
            f"rules={len(entry.rules)} sla={entry.playbook.default_sla_hours:g}h"
        )

    # ------------------------------------------------------------------
    # 2. Classification
    # ------------------------------------------------------------------
    _divider("2. CLASSIFICATION")

    batch = generate_signals(n_signals, n_subjects)
    results = engine.classify_many(signal for _, signal, _ in batch)
    frame = engine.classifier.to_dataframe(results)

    print(f"  Classified {len(results)} signals")
    print(f"  Generic (no typology): {int((frame['catalog_id'] == 'GENERIC').sum())}")
    print(f"  Escalations required:  {int(frame['escalation_required'].sum())}")
    print("\n  By catalog entry:")
    for catalog_id, count in frame["catalog_id"].value_counts().items():
        print(f"    {catalog_id:24s} {count:>4d}")

    # ------------------------------------------------------------------
    # 3. Risk Scoring
    # ------------------------------------------------------------------
    _divider("3. RISK SCORING")

    risk_ids = []
    for (subject, signal, detected_at), result in zip(batch, results):
        entity = engine.open_risk_from_classification(
            subject, signal, result, created_at=detected_at
        )
        risk_ids.append(entity.risk_id)

    # Rescore the first few risks with richer context
    for risk_id in risk_ids[:5]:
        entity = engine.apply_score(
            risk_id,
            ComponentScores(historical=70, behavioral=85, contextual=60, predictive=75),
            AdjustmentFactors(volume_weight=0.1, complexity_bonus=0.05),
            QualityMetrics(data_completeness=0.9, data_freshness=0.8),
            actor="demo",
            reason="Enriched with claim history",
        )
        print(
            f"  {entity.risk_id} -> score={entity.final_score:.2f} "
            f"level={entity.level.value} history={len(entity.history)}"
        )

    print(f"\n{engine.generate_report()}")

    # ------------------------------------------------------------------
    # 4. Correlation
    # ------------------------------------------------------------------
    _divider("4. CORRELATION")

    subjects = sorted({subject for subject, _, _ in batch})
    total = 0
    for subject in subjects:
        found = engine.link_correlations(subject)
        total += len(found)
        for c in found[:1]:
            print(f"  {subject}: {c.pattern} (strength={c.strength:.2f})")
    print(f"\n  Correlations found: {total}")

    # ------------------------------------------------------------------
    # 5. ROI and Planning
    # ------------------------------------------------------------------
    _divider("5. ROI AND PLANNING")

    shown = 0
    for (_, signal, _), result in zip(batch, results):
        if result.is_generic or not signal.finding_codes:
            continue
        roi = engine.valuate(result, signal.finding_codes)
        display = format_for_display(roi)
        plan = engine.plan_for(result)
        print(f"  [{result.catalog_id}] {display['summary']}")
        print(
            f"    plan: {len(plan.steps)} steps, {plan.total_hours:g}h, "
            f"critical path {' -> '.join(plan.critical_path)}"
        )
        shown += 1
        if shown == 5:
            break

    try:
        engine.plan_for(next(r for r in results if r.is_generic))
    except (StopIteration, NotFound) as exc:
        print(f"\n  Generic detections have no playbook: {exc}")

    # ------------------------------------------------------------------
    # 6. Performance
    # ------------------------------------------------------------------
    _divider("6. PERFORMANCE")

    # Simulated analyst verdicts: higher scores are more often confirmed
    rng = np.random.default_rng(7)
    outcomes = [
        InvestigationOutcome(
            classification=result,
            confirmed_fraud=bool(rng.random() < result.score / 100),
            investigation_hours=float(rng.uniform(2, 30)),
        )
        for result in results
    ]
    metrics = engine.evaluate(outcomes)
    print(metrics.summary())
    engine.record_outcomes(outcomes)

    # ------------------------------------------------------------------
    # 7. Visualization
    # ------------------------------------------------------------------
    if visualize:
        _divider("7. VISUALIZATION")

        visualizer = DecisionVisualizer(output_dir=output / "plots")
        paths = [
            visualizer.plot_severity_distribution(engine.list_risks()),
            visualizer.plot_score_history(engine.get_risk(risk_ids[0])),
            visualizer.plot_roi_by_context(
                engine.roi.compare_contexts("document_forged", "auto")
            ),
            visualizer.plot_confusion_matrix(metrics),
        ]
        saved = [p for p in paths if p is not None]
        print(f"  Generated {len(saved)} plots:")
        for p in saved:
            print(f"    - {p}")

    # ------------------------------------------------------------------
    # Done
    # ------------------------------------------------------------------
    _divider("PIPELINE COMPLETE")
    stats = engine.statistics()
    print(f"  Risks opened:       {stats['total']}")
    print(f"  Mean risk score:    {stats['mean_score']:.2f}")
    print(f"  Awaiting approval:  {stats['pending_approval']}")
    print(f"  Classifier F1:      {metrics.f1:.4f}")
    engine.close()


def main() -> int:
    """Parse arguments and run the pipeline."""
    parser = argparse.ArgumentParser(
        description="Fraud Decision Engine - End-to-End Demo",
    )
    parser.add_argument(
        "--signals",
        type=int,
        default=100,
        help="Number of synthetic signals (default: 100)",
    )
    parser.add_argument(
        "--subjects",
        type=int,
        default=25,
        help="Number of distinct subjects (default: 25)",
    )
    parser.add_argument(
        "--visualize",
        action="store_true",
        help="Generate visualization plots",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="output",
        help="Output directory (default: output)",
    )

    args = parser.parse_args()

    try:
        run_pipeline(
            n_signals=args.signals,
            n_subjects=args.subjects,
            visualize=args.visualize,
            output_dir=args.output,
        )
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130
    except Exception as exc:
        print(f"\nFatal error: {exc}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
