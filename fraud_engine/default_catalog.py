"""
Bundled reference catalog.

Covers each detection source with at least one typology so the engine
and CLI are usable without an external catalog file.
"""

from __future__ import annotations

from fraud_engine.catalog import (
    AuditLevel,
    BusinessDistrict as D,
    CatalogEntry,
    CatalogRepository,
    DetectionRule,
    EscalationRule,
    EvidenceRequirement,
    GovernancePolicy,
    InvestigationStep,
    PerformanceMetrics,
    Playbook,
    SourceTag,
    SpecializedTeam as T,
)


def _cyber_network() -> CatalogEntry:
    return CatalogEntry(
        catalog_id="CATALOG-CYBER-001",
        name="Organised network - cyber fraud",
        description="Organised fraud rings exhibiting cyber patterns",
        source=SourceTag.CYBER,
        districts=(D.AUTO, D.HEALTH, D.HOME, D.PROFESSIONAL),
        fraud_type="organised_network",
        severity_range=(70, 100),
        rules=(
            DetectionRule(
                rule_id="CYBER-001",
                name="Network pattern detected",
                condition="correlation_score > 0.8 AND affected_entities > 5",
                threshold=75,
                confidence_required=0.7,
                escalation_score=85,
                assigned_team=T.CYBER_FRAUD,
                business_contexts=(D.AUTO, D.HEALTH),
            ),
        ),
        playbook=Playbook(
            steps=(
                InvestigationStep(
                    step_order=1,
                    action="Multi-subject correlation analysis",
                    description="Identify every potentially affected policyholder",
                    required_role=T.CYBER_FRAUD,
                    estimated_hours=4,
                    deliverables=("impacted_subjects", "correlation_map"),
                    can_be_automated=True,
                ),
                InvestigationStep(
                    step_order=2,
                    action="Coordinate business teams",
                    description="Alert the affected auto and health teams",
                    required_role=T.CYBER_FRAUD,
                    estimated_hours=2,
                    dependencies=("step_1",),
                    deliverables=("team_notifications", "coordination_plan"),
                ),
            ),
            specialized_team=T.CYBER_FRAUD,
            default_sla_hours=24,
            evidence_requirements=(
                EvidenceRequirement(
                    evidence_id="CYBER-EVIDENCE-001",
                    evidence_type="technical_proof",
                    description="Technical logs and correlation patterns",
                    collection_method="automatic_extraction",
                    validation_criteria=("correlation_score", "pattern_consistency"),
                    legal_weight="high",
                ),
            ),
            escalation_rules=(
                EscalationRule(
                    trigger="affected_entities > 10",
                    escalate_to_team=T.COMPLIANCE,
                    escalate_to_role="compliance_manager",
                    notification_required=True,
                    sla_adjustment_hours=-12,
                    reason_template="Systemic impact detected - compliance escalation required",
                ),
            ),
            risk_assessment_method="systemic_impact_analysis",
        ),
        governance=GovernancePolicy(
            approval_required=True,
            audit_level=AuditLevel.FORENSIC,
            regulatory_tags=("GDPR", "PSD2"),
            legal_implications=("financial_intelligence_report", "authority_cooperation"),
            retention_days=2555,
        ),
        performance=PerformanceMetrics(
            success_rate=0.92,
            average_duration_hours=48,
            false_positive_rate=0.05,
            cost_per_investigation=1200,
            roi_factor=25.5,
        ),
        tags=("cyber", "network", "systemic", "high_priority"),
    )


def _documentary_auto() -> CatalogEntry:
    return CatalogEntry(
        catalog_id="CATALOG-DOC-AUTO-001",
        name="Automotive document fraud",
        description="Forged auto documents: insurance record, registration, licence",
        version="1.2",
        source=SourceTag.DOCUMENTARY,
        districts=(D.AUTO,),
        fraud_type="document_forged",
        severity_range=(40, 90),
        rules=(
            DetectionRule(
                rule_id="DOC-AUTO-001",
                name="Suspicious auto document",
                condition="document_type IN [insurance_record, registration] AND anomaly_score > 0.6",
                threshold=60,
                confidence_required=0.6,
                escalation_score=80,
                assigned_team=T.AUTOMOTIVE_FRAUD,
                business_contexts=(D.AUTO,),
            ),
        ),
        playbook=Playbook(
            steps=(
                InvestigationStep(
                    step_order=1,
                    action="Verify official documents",
                    description="Check with the issuing registries and previous insurers",
                    required_role=T.AUTOMOTIVE_FRAUD,
                    estimated_hours=2,
                    deliverables=("official_verification", "vehicle_history"),
                ),
                InvestigationStep(
                    step_order=2,
                    action="Technical document analysis",
                    description="Forensic review of the document when score exceeds 80",
                    required_role=T.EXPERT,
                    estimated_hours=4,
                    dependencies=("step_1",),
                    deliverables=("expert_report", "forgery_proof"),
                    is_mandatory=False,
                ),
            ),
            specialized_team=T.AUTOMOTIVE_FRAUD,
            default_sla_hours=72,
            evidence_requirements=(
                EvidenceRequirement(
                    evidence_id="DOC-AUTO-EVIDENCE-001",
                    evidence_type="official_verification",
                    description="Confirmation from the issuing registry",
                    collection_method="registry_api_verification",
                    validation_criteria=("official_source", "data_consistency"),
                    legal_weight="critical",
                ),
            ),
            escalation_rules=(
                EscalationRule(
                    trigger="amount > 5000 OR repeat_offender",
                    escalate_to_team=T.EXPERT,
                    escalate_to_role="automotive_expert",
                    sla_adjustment_hours=24,
                    reason_template="High amount or repeat offence - expert review required",
                ),
            ),
            risk_assessment_method="financial_impact_analysis",
        ),
        governance=GovernancePolicy(
            audit_level=AuditLevel.STANDARD,
            regulatory_tags=("insurance_code",),
            legal_implications=("contract_nullity", "civil_action"),
            retention_days=1825,
        ),
        performance=PerformanceMetrics(
            success_rate=0.78,
            average_duration_hours=36,
            false_positive_rate=0.12,
            cost_per_investigation=180,
            roi_factor=4.2,
        ),
        tags=("documentary", "auto", "verification", "standard"),
    )


def _documentary_health() -> CatalogEntry:
    return CatalogEntry(
        catalog_id="CATALOG-DOC-HEALTH-001",
        name="Inflated medical invoices",
        description="Altered or inflated invoices submitted with health claims",
        source=SourceTag.DOCUMENTARY,
        districts=(D.HEALTH,),
        fraud_type="inflated_amount",
        severity_range=(30, 85),
        rules=(
            DetectionRule(
                rule_id="DOC-HEALTH-001",
                name="Invoice amount anomaly",
                condition="amount_zscore > 3",
                threshold=55,
                confidence_required=0.5,
                escalation_score=85,
                assigned_team=T.HEALTH_FRAUD,
                business_contexts=(D.HEALTH,),
            ),
            DetectionRule(
                rule_id="DOC-HEALTH-002",
                name="Practitioner seal mismatch",
                condition="seal_match < 0.4",
                threshold=70,
                confidence_required=0.75,
                escalation_score=90,
                assigned_team=T.EXPERT,
                business_contexts=(D.HEALTH,),
            ),
        ),
        playbook=Playbook(
            steps=(
                InvestigationStep(
                    step_order=1,
                    action="Contact practitioner",
                    required_role=T.HEALTH_FRAUD,
                    estimated_hours=1.5,
                    deliverables=("practitioner_statement",),
                ),
                InvestigationStep(
                    step_order=2,
                    action="Compare with reference tariffs",
                    required_role=T.HEALTH_FRAUD,
                    estimated_hours=2,
                    deliverables=("tariff_comparison",),
                    can_be_automated=True,
                ),
                InvestigationStep(
                    step_order=3,
                    action="Settlement decision",
                    required_role=T.CLAIMS_HANDLER,
                    estimated_hours=1,
                    dependencies=("step_1", "step_2"),
                    deliverables=("decision",),
                ),
            ),
            specialized_team=T.HEALTH_FRAUD,
            default_sla_hours=48,
            risk_assessment_method="financial_impact_analysis",
        ),
        governance=GovernancePolicy(
            audit_level=AuditLevel.ENHANCED,
            regulatory_tags=("insurance_code", "health_data"),
            retention_days=1825,
        ),
        performance=PerformanceMetrics(
            success_rate=0.7,
            average_duration_hours=20,
            false_positive_rate=0.18,
            cost_per_investigation=150,
            roi_factor=3.1,
        ),
        tags=("documentary", "health", "invoice"),
    )


def _aml_layering() -> CatalogEntry:
    return CatalogEntry(
        catalog_id="CATALOG-AML-001",
        name="Premium laundering through early surrender",
        description="Large premiums paid then surrendered to clean funds",
        source=SourceTag.AML,
        districts=(D.PROFESSIONAL, D.HOME, D.AUTO),
        fraud_type="money_laundering",
        severity_range=(60, 100),
        rules=(
            DetectionRule(
                rule_id="AML-001",
                name="Rapid premium surrender",
                condition="surrender_days < 90 AND premium > 10000",
                threshold=65,
                confidence_required=0.65,
                escalation_score=80,
                assigned_team=T.COMPLIANCE,
                business_contexts=(D.PROFESSIONAL,),
            ),
        ),
        playbook=Playbook(
            steps=(
                InvestigationStep(
                    step_order=1,
                    action="Screen sanctions and PEP lists",
                    required_role=T.COMPLIANCE,
                    estimated_hours=1,
                    can_be_automated=True,
                    deliverables=("screening_report",),
                ),
                InvestigationStep(
                    step_order=2,
                    action="Trace fund origin",
                    required_role=T.COMPLIANCE,
                    estimated_hours=6,
                    deliverables=("fund_trace",),
                ),
                InvestigationStep(
                    step_order=3,
                    action="Regulatory filing decision",
                    required_role=T.COMPLIANCE,
                    estimated_hours=2,
                    dependencies=("step_1", "step_2"),
                    deliverables=("decision", "filing"),
                ),
            ),
            specialized_team=T.COMPLIANCE,
            default_sla_hours=36,
            risk_assessment_method="regulatory_exposure_analysis",
        ),
        governance=GovernancePolicy(
            approval_required=True,
            audit_level=AuditLevel.FORENSIC,
            regulatory_tags=("AMLD5",),
            legal_implications=("suspicious_activity_report",),
            retention_days=3650,
        ),
        performance=PerformanceMetrics(
            success_rate=0.88,
            average_duration_hours=36,
            false_positive_rate=0.09,
            cost_per_investigation=900,
            roi_factor=12.0,
        ),
        tags=("aml", "regulatory", "high_priority"),
    )


def _behavioral_claims() -> CatalogEntry:
    return CatalogEntry(
        catalog_id="CATALOG-BEHAV-001",
        name="Repeated claim pattern",
        description="Unusual claim frequency shortly after subscription",
        source=SourceTag.BEHAVIORAL,
        districts=(D.AUTO, D.HOME, D.TRAVEL),
        fraud_type="fictitious_claim",
        severity_range=(20, 80),
        rules=(
            DetectionRule(
                rule_id="BEHAV-001",
                name="Early claim after subscription",
                condition="days_since_subscription < 30",
                threshold=50,
                confidence_required=0.5,
                escalation_score=85,
                assigned_team=T.BEHAVIOR_ANALYSIS,
            ),
        ),
        playbook=Playbook(
            steps=(
                InvestigationStep(
                    step_order=1,
                    action="Review claim history",
                    required_role=T.BEHAVIOR_ANALYSIS,
                    estimated_hours=2,
                    deliverables=("history_review",),
                ),
                InvestigationStep(
                    step_order=2,
                    action="Interview policyholder",
                    required_role=T.CLAIMS_HANDLER,
                    estimated_hours=3,
                    dependencies=("step_1",),
                    deliverables=("interview_notes", "decision"),
                    is_mandatory=False,
                ),
            ),
            specialized_team=T.BEHAVIOR_ANALYSIS,
            default_sla_hours=96,
            risk_assessment_method="pattern_analysis",
        ),
        performance=PerformanceMetrics(
            success_rate=0.65,
            average_duration_hours=18,
            false_positive_rate=0.25,
            cost_per_investigation=120,
            roi_factor=2.4,
        ),
        tags=("behavioral", "claims"),
    )


def default_entries() -> list[CatalogEntry]:
    """Return the bundled catalog entries."""
    return [
        _cyber_network(),
        _documentary_auto(),
        _documentary_health(),
        _aml_layering(),
        _behavioral_claims(),
    ]


def default_catalog() -> CatalogRepository:
    """Return a repository pre-populated with the bundled entries."""
    return CatalogRepository(default_entries())
