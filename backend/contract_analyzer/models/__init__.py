"""
German Contract Analyzer models package.
"""

from .schemas import (
    Annotation,
    AnnotationType,
    AnalysisResult,
    CandidateSpan,
    ClassificationResult,
    ComplianceCheck,
    ContractDocument,
    ContractType,
    ContributingFactor,
    DocumentPage,
    HighlightResult,
    HighlightSpan,
    HighlightStyle,
    LocalSpan,
    MissingClauseAnnotation,
    Recommendation,
    RenderSegment,
    RiskLevel,
    Section,
    SectionKind,
    Severity,
    SourceType,
    SpecificTextAnnotation,
    StructuralIndicators,
    StructuralInferenceAnnotation,
    parse_severity,
    severity_rank,
)

from .config import (
    settings,
    get_settings,
    Settings,
)

__all__ = [
    # Schemas
    "Annotation",
    "AnnotationType",
    "AnalysisResult",
    "CandidateSpan",
    "ClassificationResult",
    "ComplianceCheck",
    "ContractDocument",
    "ContractType",
    "ContributingFactor",
    "DocumentPage",
    "HighlightResult",
    "HighlightSpan",
    "HighlightStyle",
    "LocalSpan",
    "MissingClauseAnnotation",
    "Recommendation",
    "RenderSegment",
    "RiskLevel",
    "Section",
    "SectionKind",
    "Severity",
    "SourceType",
    "SpecificTextAnnotation",
    "StructuralIndicators",
    "StructuralInferenceAnnotation",
    "parse_severity",
    "severity_rank",

    # Configuration
    "settings",
    "get_settings",
    "Settings",
]
