"""
Command-line interface for the fraud decision engine.

Provides subcommands for classifying a detection, valuing an
investigation, building an investigation plan, browsing the catalog
and producing portfolio reports.
"""

from __future__ import annotations

import argparse
import json
import sys

import pandas as pd

from fraud_engine.catalog import (
    BusinessDistrict,
    CatalogFilter,
    CatalogRepository,
    SourceTag,
    dump_catalog,
    load_catalog,
)
from fraud_engine.classifier import DetectionSignal, RiskLevel
from fraud_engine.default_catalog import default_catalog
from fraud_engine.engine import DecisionEngine
from fraud_engine.exceptions import FraudEngineError
from fraud_engine.performance import InvestigationOutcome
from fraud_engine.planner import AlertContext
from fraud_engine.roi import (
    Complexity,
    FraudContext,
    FraudType,
    LineOfBusiness,
    format_for_display,
)
from fraud_engine.visualizer import DecisionVisualizer


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="fraud-engine",
        description="Fraud investigation decision engine",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- classify ---
    classify_parser = subparsers.add_parser("classify", help="Classify a detection signal")
    classify_parser.add_argument(
        "--source",
        type=str,
        required=True,
        choices=[s.value for s in SourceTag],
        help="Detection source tag",
    )
    classify_parser.add_argument(
        "--context",
        type=str,
        default="auto",
        help="Free-text business context (default: auto)",
    )
    classify_parser.add_argument("--score", type=float, required=True, help="Anomaly score (0-100)")
    classify_parser.add_argument("--confidence", type=float, required=True, help="Confidence (0-1)")
    classify_parser.add_argument(
        "--finding-code",
        dest="finding_codes",
        action="append",
        default=[],
        help="Technical finding code; repeat for several",
    )
    classify_parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    _add_catalog_argument(classify_parser)

    # --- roi ---
    roi_parser = subparsers.add_parser("roi", help="Value an investigation")
    roi_parser.add_argument(
        "--fraud-type",
        type=str,
        required=True,
        help="Fraud type, e.g. document_forged",
    )
    roi_parser.add_argument(
        "--context",
        type=str,
        default=FraudContext.CLAIM.value,
        choices=[c.value for c in FraudContext],
        help="Lifecycle context (default: claim)",
    )
    roi_parser.add_argument(
        "--line",
        type=str,
        default=LineOfBusiness.AUTO.value,
        help="Line of business (default: auto)",
    )
    roi_parser.add_argument(
        "--amount",
        type=float,
        default=0.0,
        help="Detected amount; 0 uses the fraud type's typical amount",
    )
    roi_parser.add_argument(
        "--complexity",
        type=str,
        default=Complexity.MEDIUM.value,
        choices=[c.value for c in Complexity],
        help="Investigation complexity (default: medium)",
    )
    roi_parser.add_argument(
        "--compare",
        action="store_true",
        help="Compare every lifecycle context",
    )

    # --- plan ---
    plan_parser = subparsers.add_parser("plan", help="Build an investigation plan")
    plan_parser.add_argument("--catalog-id", type=str, required=True, help="Catalog entry id")
    plan_parser.add_argument(
        "--severity",
        type=str,
        default=RiskLevel.MEDIUM.value,
        choices=[r.value for r in RiskLevel],
        help="Alert severity (default: medium)",
    )
    plan_parser.add_argument(
        "--confidence",
        type=float,
        default=0.8,
        help="Alert confidence (default: 0.8)",
    )
    _add_catalog_argument(plan_parser)

    # --- catalog ---
    catalog_parser = subparsers.add_parser("catalog", help="List catalog entries")
    catalog_parser.add_argument(
        "--source",
        type=str,
        choices=[s.value for s in SourceTag],
        help="Only entries for this source",
    )
    catalog_parser.add_argument(
        "--district",
        type=str,
        choices=[d.value for d in BusinessDistrict],
        help="Only entries covering this district",
    )
    catalog_parser.add_argument(
        "--export",
        type=str,
        help="Write the catalog to this JSON file",
    )
    _add_catalog_argument(catalog_parser)

    # --- report ---
    report_parser = subparsers.add_parser("report", help="Score signals and generate reports")
    report_parser.add_argument(
        "--data",
        type=str,
        required=True,
        help="CSV of signals: subject_id, source, business_context, score, "
        "confidence and optionally confirmed",
    )
    report_parser.add_argument(
        "--output",
        type=str,
        default="plots",
        help="Directory for plot output (default: plots)",
    )
    report_parser.add_argument(
        "--fraud-type",
        type=str,
        default=FraudType.DOCUMENT_FORGED.value,
        help="Fraud type for the ROI comparison plot",
    )
    _add_catalog_argument(report_parser)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        if args.command == "classify":
            return _cmd_classify(args)
        elif args.command == "roi":
            return _cmd_roi(args)
        elif args.command == "plan":
            return _cmd_plan(args)
        elif args.command == "catalog":
            return _cmd_catalog(args)
        elif args.command == "report":
            return _cmd_report(args)
    except (FraudEngineError, ValueError, KeyError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    return 0


def _add_catalog_argument(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument(
        "--catalog",
        type=str,
        default=None,
        help="Catalog JSON file (default: bundled catalog)",
    )


def _load_catalog(args: argparse.Namespace) -> CatalogRepository:
    if args.catalog:
        return load_catalog(args.catalog)
    return default_catalog()


def _cmd_classify(args: argparse.Namespace) -> int:
    """Classify one signal and print the decision."""
    signal = DetectionSignal(
        source=SourceTag(args.source),
        business_context=args.context,
        score=args.score,
        confidence=args.confidence,
        finding_codes=tuple(args.finding_codes),
    )
    with DecisionEngine(_load_catalog(args)) as engine:
        result = engine.classify(signal)

        if args.json:
            print(json.dumps(result.to_dict(), indent=2))
            return 0

        print(f"Catalog entry:     {result.catalog_id}")
        print(f"District:          {result.district.value}")
        print(f"Confidence:        {result.confidence:.2f}")
        print(f"Risk level:        {result.risk_level.value}")
        print(f"Business impact:   {result.business_impact.value}")
        print(f"Recommended team:  {result.recommended_team.value}")
        print(f"SLA:               {result.sla_hours:g}h")
        print(f"Escalation:        {'yes' if result.escalation_required else 'no'}")
        rules = ", ".join(r.rule_id for r in result.triggered_rules) or "none"
        print(f"Triggered rules:   {rules}")

        if signal.finding_codes and not result.is_generic:
            roi = engine.valuate(result, signal.finding_codes)
            print(f"\n{format_for_display(roi)['summary']}")
    return 0


def _cmd_roi(args: argparse.Namespace) -> int:
    """Value an investigation and print the business summary."""
    with DecisionEngine() as engine:
        if args.compare:
            frame = engine.roi.compare_contexts(
                args.fraud_type, args.line, args.amount, args.complexity
            )
            columns = ["total_cost", "benefit", "net_roi", "ratio", "payback_days"]
            print(frame[columns].round(2).to_string())
            return 0

        roi = engine.calculate_roi(
            args.fraud_type, args.context, args.line, args.amount, args.complexity
        )

    display = format_for_display(roi)
    print(display["summary"])
    for line in display["details"]:
        print(f"  {line}")
    for line in display["recommendations"]:
        print(f"  * {line}")
    return 0


def _cmd_plan(args: argparse.Namespace) -> int:
    """Build and print an investigation plan."""
    alert = AlertContext(severity=RiskLevel(args.severity), confidence=args.confidence)
    with DecisionEngine(_load_catalog(args)) as engine:
        plan = engine.build_plan(args.catalog_id, alert)

    print(f"Plan {plan.plan_id} for {plan.catalog_id}")
    print(f"Teams: {', '.join(t.value for t in plan.assigned_teams)}")
    print(f"Total effort: {plan.total_hours:g}h")
    print("-" * 60)
    for step in plan.steps:
        flag = "*" if step.step_id in plan.critical_path else " "
        deps = ", ".join(step.dependencies) or "-"
        print(
            f" {flag} {step.step_id:8s} {step.adjusted_hours:>6.2f}h "
            f"[{step.required_role.value}] {step.action} (after: {deps})"
        )
    if plan.parallel_tracks:
        print(f"Parallel start: {', '.join(plan.parallel_tracks[0])}")
    reviews = [c.step_id for c in plan.checkpoints if c.review_required]
    if reviews:
        print(f"Review checkpoints: {', '.join(reviews)}")
    return 0


def _cmd_catalog(args: argparse.Namespace) -> int:
    """List catalog entries, best performing first."""
    catalog = _load_catalog(args)
    filters = CatalogFilter(
        sources=[SourceTag(args.source)] if args.source else None,
        districts=[BusinessDistrict(args.district)] if args.district else None,
    )
    entries = catalog.list(filters)

    print(f"{len(entries)} of {len(catalog)} entries ({catalog.total_rules} rules)")
    for entry in entries:
        districts = ",".join(d.value for d in entry.districts)
        print(
            f"  {entry.catalog_id:24s} {entry.source.value:12s} "
            f"success={entry.performance.success_rate:.0%} "
            f"sla={entry.playbook.default_sla_hours:g}h [{districts}]"
        )

    if args.export:
        dump_catalog(catalog, args.export)
        print(f"Catalog written to {args.export}")
    return 0


def _cmd_report(args: argparse.Namespace) -> int:
    """Classify a CSV of signals, open risks and generate reports."""
    print(f"Loading signals from {args.data}...")
    df = pd.read_csv(args.data)
    print(f"  {len(df):,} signals loaded")

    visualizer = DecisionVisualizer(output_dir=args.output)
    with DecisionEngine(_load_catalog(args)) as engine:
        outcomes: list[InvestigationOutcome] = []
        for row in df.itertuples(index=False):
            signal = DetectionSignal(
                source=SourceTag(row.source),
                business_context=str(row.business_context),
                score=float(row.score),
                confidence=float(row.confidence),
            )
            result = engine.classify(signal)
            engine.open_risk_from_classification(str(row.subject_id), signal, result)
            if "confirmed" in df.columns:
                outcomes.append(
                    InvestigationOutcome(result, confirmed_fraud=bool(row.confirmed))
                )

        print(f"\n{engine.generate_report()}")

        paths = [
            visualizer.plot_severity_distribution(engine.list_risks()),
            visualizer.plot_roi_by_context(
                engine.roi.compare_contexts(args.fraud_type, LineOfBusiness.AUTO)
            ),
        ]
        if outcomes:
            metrics = engine.evaluate(outcomes)
            print(f"\n{metrics.summary()}")
            paths.append(visualizer.plot_confusion_matrix(metrics))

    saved = [p for p in paths if p is not None]
    print(f"Generated {len(saved)} visualizations in {args.output}/")
    for p in saved:
        print(f"  {p}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
