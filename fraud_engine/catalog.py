"""
Fraud catalog: typology definitions and their repository.

A catalog entry describes one known fraud typology: where it is
detected (source tag), which business districts it applies to, the
detection rules that qualify a signal, the investigation playbook and
the governance policy attached to it.  Entries are read-only to the
engine; administrative edits replace whole entries.
"""

from __future__ import annotations

import json
import threading
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Protocol

from fraud_engine.exceptions import CatalogValidationError, NotFound


class SourceTag(str, Enum):
    """Detection source that produced a signal."""

    CYBER = "cyber"
    AML = "aml"
    DOCUMENTARY = "documentary"
    BEHAVIORAL = "behavioral"


class BusinessDistrict(str, Enum):
    """Business line in which a signal was raised."""

    AUTO = "auto"
    HEALTH = "health"
    HOME = "home"
    PROFESSIONAL = "professional"
    TRAVEL = "travel"


class SpecializedTeam(str, Enum):
    """Teams that can own an investigation."""

    CLAIMS_HANDLER = "claims_handler"
    FRAUD = "fraud"
    EXPERT = "expert"
    COMPLIANCE = "compliance"
    CYBER_FRAUD = "cyber_fraud_team"
    BEHAVIOR_ANALYSIS = "behavior_analysis_team"
    AUTOMOTIVE_FRAUD = "automotive_fraud_team"
    HEALTH_FRAUD = "health_fraud_team"
    PROPERTY_FRAUD = "property_fraud_team"
    COMMERCIAL_FRAUD = "commercial_fraud_team"
    TRAVEL_FRAUD = "travel_fraud_team"


class AuditLevel(str, Enum):
    STANDARD = "standard"
    ENHANCED = "enhanced"
    FORENSIC = "forensic"


# Keyword -> district, checked in order.  First match wins.
_DISTRICT_KEYWORDS: list[tuple[tuple[str, ...], BusinessDistrict]] = [
    (("auto", "vehicle"), BusinessDistrict.AUTO),
    (("health", "medical"), BusinessDistrict.HEALTH),
    (("home", "housing"), BusinessDistrict.HOME),
    (("pro", "business"), BusinessDistrict.PROFESSIONAL),
    (("travel",), BusinessDistrict.TRAVEL),
]


def map_business_context(context: str) -> BusinessDistrict:
    """Map a free-text business context to a district.

    Matching is by keyword containment, case-insensitive.  Contexts that
    match nothing fall back to ``auto``.
    """
    lowered = (context or "").lower()
    for keywords, district in _DISTRICT_KEYWORDS:
        if any(k in lowered for k in keywords):
            return district
    return BusinessDistrict.AUTO


# ----------------------------------------------------------------------
# Entry components
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class DetectionRule:
    """Threshold test that qualifies a signal under a catalog entry.

    ``condition`` is descriptive text for analysts.  Only ``threshold``
    and ``confidence_required`` take part in evaluation.
    """

    rule_id: str
    name: str
    threshold: float
    confidence_required: float
    escalation_score: float
    assigned_team: SpecializedTeam
    business_contexts: tuple[BusinessDistrict, ...] = ()
    condition: str = ""
    active: bool = True

    def is_triggered(self, score: float, confidence: float) -> bool:
        """Whether a signal satisfies this rule."""
        return (
            self.active
            and score >= self.threshold
            and confidence >= self.confidence_required
        )

    def escalates(self, score: float) -> bool:
        return score >= self.escalation_score


@dataclass(frozen=True)
class InvestigationStep:
    step_order: int
    action: str
    required_role: SpecializedTeam
    estimated_hours: float
    description: str = ""
    dependencies: tuple[str, ...] = ()
    deliverables: tuple[str, ...] = ()
    is_mandatory: bool = True
    can_be_automated: bool = False

    @property
    def step_id(self) -> str:
        return f"step_{self.step_order}"


@dataclass(frozen=True)
class EvidenceRequirement:
    evidence_id: str
    evidence_type: str
    description: str = ""
    is_mandatory: bool = True
    collection_method: str = ""
    validation_criteria: tuple[str, ...] = ()
    legal_weight: str = "medium"


@dataclass(frozen=True)
class EscalationRule:
    trigger: str
    escalate_to_team: SpecializedTeam
    escalate_to_role: str = ""
    notification_required: bool = False
    sla_adjustment_hours: float = 0.0
    reason_template: str = ""


@dataclass(frozen=True)
class Playbook:
    """Investigation procedure attached to a catalog entry."""

    steps: tuple[InvestigationStep, ...]
    specialized_team: SpecializedTeam
    default_sla_hours: float
    evidence_requirements: tuple[EvidenceRequirement, ...] = ()
    escalation_rules: tuple[EscalationRule, ...] = ()
    risk_assessment_method: str = ""


@dataclass(frozen=True)
class GovernancePolicy:
    approval_required: bool = False
    audit_level: AuditLevel = AuditLevel.STANDARD
    regulatory_tags: tuple[str, ...] = ()
    legal_implications: tuple[str, ...] = ()
    retention_days: int = 1825


@dataclass(frozen=True)
class PerformanceMetrics:
    """Rolling outcome metrics of a catalog entry."""

    success_rate: float = 0.5
    average_duration_hours: float = 24.0
    false_positive_rate: float = 0.2
    cost_per_investigation: float = 200.0
    roi_factor: float = 1.0


@dataclass(frozen=True)
class CatalogEntry:
    """A named fraud typology definition.

    Raises:
        CatalogValidationError: If the entry has no district, no
            detection rule, or an inverted severity range.
    """

    catalog_id: str
    name: str
    source: SourceTag
    districts: tuple[BusinessDistrict, ...]
    fraud_type: str
    severity_range: tuple[float, float]
    rules: tuple[DetectionRule, ...]
    playbook: Playbook
    governance: GovernancePolicy = field(default_factory=GovernancePolicy)
    performance: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    description: str = ""
    version: str = "1.0"
    active: bool = True
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.districts:
            raise CatalogValidationError(
                f"Catalog entry {self.catalog_id} has no applicable district"
            )
        if not self.rules:
            raise CatalogValidationError(
                f"Catalog entry {self.catalog_id} has no detection rule"
            )
        low, high = self.severity_range
        if low > high:
            raise CatalogValidationError(
                f"Catalog entry {self.catalog_id} has severity range "
                f"[{low}, {high}] with low > high"
            )

    def applies_to(self, source: SourceTag, district: BusinessDistrict) -> bool:
        return self.active and self.source == source and district in self.districts

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dictionary."""
        return _plain(asdict(self))

    @classmethod
    def from_dict(cls, data: dict) -> "CatalogEntry":
        """Build an entry from the dictionary form produced by ``to_dict``."""
        try:
            playbook = data["playbook"]
            return cls(
                catalog_id=data["catalog_id"],
                name=data["name"],
                source=SourceTag(data["source"]),
                districts=tuple(BusinessDistrict(d) for d in data["districts"]),
                fraud_type=data["fraud_type"],
                severity_range=tuple(data["severity_range"]),
                rules=tuple(_rule_from_dict(r) for r in data["rules"]),
                playbook=Playbook(
                    steps=tuple(_step_from_dict(s) for s in playbook["steps"]),
                    specialized_team=SpecializedTeam(playbook["specialized_team"]),
                    default_sla_hours=playbook["default_sla_hours"],
                    evidence_requirements=tuple(
                        EvidenceRequirement(
                            **{
                                **e,
                                "validation_criteria": tuple(
                                    e.get("validation_criteria", ())
                                ),
                            }
                        )
                        for e in playbook.get("evidence_requirements", [])
                    ),
                    escalation_rules=tuple(
                        EscalationRule(
                            **{
                                **e,
                                "escalate_to_team": SpecializedTeam(
                                    e["escalate_to_team"]
                                ),
                            }
                        )
                        for e in playbook.get("escalation_rules", [])
                    ),
                    risk_assessment_method=playbook.get("risk_assessment_method", ""),
                ),
                governance=_governance_from_dict(data.get("governance", {})),
                performance=PerformanceMetrics(**data.get("performance", {})),
                description=data.get("description", ""),
                version=data.get("version", "1.0"),
                active=data.get("active", True),
                tags=tuple(data.get("tags", ())),
            )
        except (KeyError, TypeError, ValueError) as exc:
            if isinstance(exc, CatalogValidationError):
                raise
            raise CatalogValidationError(
                f"Malformed catalog entry {data.get('catalog_id', '?')}: {exc}"
            ) from exc


def _rule_from_dict(data: dict) -> DetectionRule:
    return DetectionRule(
        rule_id=data["rule_id"],
        name=data["name"],
        threshold=data["threshold"],
        confidence_required=data["confidence_required"],
        escalation_score=data["escalation_score"],
        assigned_team=SpecializedTeam(data["assigned_team"]),
        business_contexts=tuple(
            BusinessDistrict(d) for d in data.get("business_contexts", ())
        ),
        condition=data.get("condition", ""),
        active=data.get("active", True),
    )


def _step_from_dict(data: dict) -> InvestigationStep:
    return InvestigationStep(
        step_order=data["step_order"],
        action=data["action"],
        required_role=SpecializedTeam(data["required_role"]),
        estimated_hours=data["estimated_hours"],
        description=data.get("description", ""),
        dependencies=tuple(data.get("dependencies", ())),
        deliverables=tuple(data.get("deliverables", ())),
        is_mandatory=data.get("is_mandatory", True),
        can_be_automated=data.get("can_be_automated", False),
    )


def _governance_from_dict(data: dict) -> GovernancePolicy:
    return GovernancePolicy(
        approval_required=data.get("approval_required", False),
        audit_level=AuditLevel(data.get("audit_level", "standard")),
        regulatory_tags=tuple(data.get("regulatory_tags", ())),
        legal_implications=tuple(data.get("legal_implications", ())),
        retention_days=data.get("retention_days", 1825),
    )


def _plain(value):
    """Convert enums and tuples to JSON-friendly values, recursively."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


# ----------------------------------------------------------------------
# Repository
# ----------------------------------------------------------------------


@dataclass
class CatalogFilter:
    """Criteria for listing catalog entries.  ``None`` means no constraint."""

    sources: Optional[list[SourceTag]] = None
    districts: Optional[list[BusinessDistrict]] = None
    teams: Optional[list[SpecializedTeam]] = None
    active_only: Optional[bool] = None
    min_success_rate: Optional[float] = None
    requires_approval: Optional[bool] = None
    tags: Optional[list[str]] = None

    def matches(self, entry: CatalogEntry) -> bool:
        if self.sources is not None and entry.source not in self.sources:
            return False
        if self.districts is not None and not any(
            d in self.districts for d in entry.districts
        ):
            return False
        if (
            self.teams is not None
            and entry.playbook.specialized_team not in self.teams
        ):
            return False
        if self.active_only is not None and entry.active != self.active_only:
            return False
        if (
            self.min_success_rate is not None
            and entry.performance.success_rate < self.min_success_rate
        ):
            return False
        if (
            self.requires_approval is not None
            and entry.governance.approval_required != self.requires_approval
        ):
            return False
        if self.tags is not None and not set(self.tags) & set(entry.tags):
            return False
        return True


class CatalogStore(Protocol):
    """Minimal persistence contract the engine relies on."""

    def get(self, catalog_id: str) -> Optional[CatalogEntry]: ...

    def list(self, filters: Optional[CatalogFilter] = None) -> list[CatalogEntry]: ...

    def put(self, entry: CatalogEntry) -> None: ...


class CatalogRepository:
    """In-memory, copy-on-write store of catalog entries.

    Readers take the current snapshot without locking; writers build a
    new snapshot under a lock and swap it in, so a reader never sees a
    half-applied edit.
    """

    def __init__(self, entries: Optional[Iterable[CatalogEntry]] = None) -> None:
        self._write_lock = threading.Lock()
        self._entries: dict[str, CatalogEntry] = {}
        if entries:
            self.put_many(entries)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, catalog_id: str) -> Optional[CatalogEntry]:
        """Return the entry with this id, or ``None``."""
        return self._entries.get(catalog_id)

    def require(self, catalog_id: str) -> CatalogEntry:
        """Return the entry with this id.

        Raises:
            NotFound: If no such entry exists.
        """
        entry = self._entries.get(catalog_id)
        if entry is None:
            raise NotFound("Catalog entry", catalog_id)
        return entry

    def list(self, filters: Optional[CatalogFilter] = None) -> list[CatalogEntry]:
        """List entries matching ``filters``, best success rate first.

        Ties keep catalog id order.
        """
        snapshot = self._entries
        entries = sorted(snapshot.values(), key=lambda e: e.catalog_id)
        if filters is not None:
            entries = [e for e in entries if filters.matches(e)]
        return sorted(entries, key=lambda e: -e.performance.success_rate)

    def find_applicable(
        self, source: SourceTag, district: BusinessDistrict
    ) -> list[CatalogEntry]:
        """Active entries for a source tag and district, ordered by id."""
        snapshot = self._entries
        return sorted(
            (e for e in snapshot.values() if e.applies_to(source, district)),
            key=lambda e: e.catalog_id,
        )

    def put(self, entry: CatalogEntry) -> None:
        """Insert or replace an entry."""
        self.put_many([entry])

    def put_many(self, entries: Iterable[CatalogEntry]) -> None:
        with self._write_lock:
            updated = dict(self._entries)
            for entry in entries:
                updated[entry.catalog_id] = entry
            self._entries = updated

    def remove(self, catalog_id: str) -> None:
        with self._write_lock:
            if catalog_id not in self._entries:
                raise NotFound("Catalog entry", catalog_id)
            updated = dict(self._entries)
            del updated[catalog_id]
            self._entries = updated

    def clear(self) -> None:
        with self._write_lock:
            self._entries = {}

    @property
    def total_rules(self) -> int:
        """Number of detection rules across all entries."""
        return sum(len(e.rules) for e in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, catalog_id: object) -> bool:
        return catalog_id in self._entries


# ----------------------------------------------------------------------
# JSON persistence
# ----------------------------------------------------------------------


def load_catalog(path: str | Path) -> CatalogRepository:
    """Load a catalog from a JSON file holding a list of entries.

    Args:
        path: Path to the JSON file.

    Returns:
        Repository populated with the parsed entries.
    """
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    if isinstance(raw, dict):
        raw = raw.get("entries", [])
    return CatalogRepository(CatalogEntry.from_dict(item) for item in raw)


def dump_catalog(repository: CatalogRepository, path: str | Path) -> None:
    """Write every entry of ``repository`` to ``path`` as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    entries = sorted(repository.list(), key=lambda e: e.catalog_id)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([e.to_dict() for e in entries], f, indent=2)
