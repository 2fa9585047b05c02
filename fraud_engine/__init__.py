"""
Fraud Decision Engine
=====================

Decision support for insurance fraud investigation: classifies detection
signals against a catalog of fraud typologies, scores and tracks risk
entities, values investigations and plans them from catalog playbooks.
"""

__version__ = "1.0.0"

from fraud_engine.catalog import CatalogRepository, load_catalog
from fraud_engine.classifier import DetectionSignal, FraudClassifier
from fraud_engine.correlation import CorrelationDetector
from fraud_engine.default_catalog import default_catalog
from fraud_engine.engine import DecisionEngine
from fraud_engine.performance import PerformanceEvaluator
from fraud_engine.planner import PlanBuilder
from fraud_engine.risk import RiskRepository
from fraud_engine.roi import ROICalculator
from fraud_engine.scorer import RiskScorer
from fraud_engine.visualizer import DecisionVisualizer

__all__ = [
    "CatalogRepository",
    "CorrelationDetector",
    "DecisionEngine",
    "DecisionVisualizer",
    "DetectionSignal",
    "FraudClassifier",
    "PerformanceEvaluator",
    "PlanBuilder",
    "ROICalculator",
    "RiskRepository",
    "RiskScorer",
    "default_catalog",
    "load_catalog",
]
