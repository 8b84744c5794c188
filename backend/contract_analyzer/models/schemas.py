"""
Core data models for the German Contract Analyzer.
Field names are snake_case in Python and camelCase on the wire.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model accepting both snake_case names and camelCase aliases."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Enumerations

class ContractType(str, Enum):
    """Legal categories used to pick a specialized analysis prompt."""
    ARBEITSVERTRAG = "arbeitsvertrag"
    WERKVERTRAG = "werkvertrag"
    DIENSTVERTRAG = "dienstvertrag"
    NDA = "nda"
    SERVICE_AGREEMENT = "service_agreement"
    PURCHASE_AGREEMENT = "purchase_agreement"
    RENTAL_AGREEMENT = "rental_agreement"
    GENERAL = "general"


class AnalysisStatus(str, Enum):
    """Document analysis lifecycle."""
    PENDING = "pending"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    ERROR = "error"


class AnnotationType(str, Enum):
    """Kind of issue an annotation describes."""
    LEGAL_RISK = "legal_risk"
    COMPLIANCE_ISSUE = "compliance_issue"
    IMPROVEMENT_SUGGESTION = "improvement_suggestion"
    LANGUAGE_CLARITY = "language_clarity"
    MISSING_CLAUSE = "missing_clause"
    GDPR_CONCERN = "gdpr_concern"


class Severity(str, Enum):
    """Annotation severity, totally ordered by rank."""
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]


SEVERITY_RANK: Dict[Severity, int] = {
    Severity.CRITICAL: 5,
    Severity.HIGH: 4,
    Severity.MEDIUM: 3,
    Severity.LOW: 2,
    Severity.INFO: 1,
}

# German labels the model occasionally uses instead of the English enum values
SEVERITY_SYNONYMS: Dict[str, Severity] = {
    "kritisch": Severity.CRITICAL,
    "sehr hoch": Severity.CRITICAL,
    "hoch": Severity.HIGH,
    "mittel": Severity.MEDIUM,
    "niedrig": Severity.LOW,
    "gering": Severity.LOW,
    "hinweis": Severity.INFO,
}


def parse_severity(value: Any, default: Optional[Severity] = None) -> Optional[Severity]:
    """Map a loosely formatted severity label onto Severity, or return default."""
    if isinstance(value, Severity):
        return value
    if not isinstance(value, str):
        return default
    label = value.strip().lower()
    try:
        return Severity(label)
    except ValueError:
        return SEVERITY_SYNONYMS.get(label, default)


def severity_rank(value: Any) -> int:
    """Rank used for tie-breaking; unknown severities rank 0."""
    severity = parse_severity(value)
    return severity.rank if severity else 0


class SourceType(str, Enum):
    """How an annotation is evidenced in the contract text."""
    SPECIFIC_TEXT = "specific_text"
    STRUCTURAL_INFERENCE = "structural_inference"
    MISSING_CLAUSE = "missing_clause"


class HighlightStyle(str, Enum):
    """Rendering style of a highlight span."""
    DIRECT_VIOLATION = "direct_violation"        # red solid underline
    CONTRIBUTING_FACTOR = "contributing_factor"  # yellow dotted border
    RELATED_SECTION = "related_section"          # blue dashed outline
    MISSING_REFERENCE = "missing_reference"      # gray background


class SectionKind(str, Enum):
    """Structural role of a document section."""
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST_ITEM = "list_item"


class RiskLevel(str, Enum):
    """Overall contract risk."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Priority(str, Enum):
    """Recommendation priority."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    NON_COMPLIANT = "non_compliant"
    UNCLEAR = "unclear"


# Document Models

class Section(CamelModel):
    """Structural unit of a document with absolute offsets into its content."""
    kind: SectionKind = Field(..., description="heading, paragraph or list item")
    start: int = Field(..., description="Absolute start offset (inclusive)")
    end: int = Field(..., description="Absolute end offset (exclusive)")
    text: str = Field(default="", description="Section text as extracted")
    level: Optional[int] = Field(None, description="Heading level, headings only")

    @model_validator(mode="after")
    def _check_bounds(self) -> "Section":
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"invalid section bounds [{self.start}, {self.end})")
        return self

    @property
    def length(self) -> int:
        return self.end - self.start


class DocumentPage(CamelModel):
    """One page of extracted text."""
    page_number: int = Field(..., ge=1)
    content: str
    start_offset: int = Field(0, ge=0)
    end_offset: int = Field(0, ge=0)


class ContractDocument(CamelModel):
    """Parsed upload: plain text plus page and section structure."""
    id: str = Field(default_factory=lambda: f"contract_{uuid.uuid4().hex[:12]}")
    name: str
    type: ContractType = ContractType.GENERAL
    content: str
    formatted_content: Optional[str] = None
    pages: List[DocumentPage] = Field(default_factory=list)
    sections: List[Section] = Field(default_factory=list)
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)
    analysis_status: AnalysisStatus = AnalysisStatus.PENDING


# Annotation Models

class ContributingFactor(CamelModel):
    """One clause contributing to a structural legal conclusion."""
    clause_reference: str = ""
    factor_text: str = ""
    severity: Optional[Severity] = None
    start_offset: Optional[int] = None
    end_offset: Optional[int] = None
    explanation: str = ""

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # Model output uses null for "not given"; fall back to field defaults
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value: Any) -> Optional[Severity]:
        return parse_severity(value)

    @field_validator("clause_reference", "factor_text", "explanation", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Any:
        return str(value) if isinstance(value, (int, float)) else value


class AnnotationBase(CamelModel):
    """Fields shared by every annotation variant."""
    id: str
    type: AnnotationType = AnnotationType.LEGAL_RISK
    severity: Severity = Severity.MEDIUM
    text: str = ""
    comment: str = ""
    explanation: str = ""
    legal_reference: Optional[str] = None
    suggested_replacement: Optional[str] = None
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    page_number: int = 1
    start_offset: Optional[int] = None
    end_offset: Optional[int] = None

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> Any:
        if isinstance(value, str) and value not in AnnotationType._value2member_map_:
            return AnnotationType.LEGAL_RISK
        return value

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value: Any) -> Severity:
        return parse_severity(value, Severity.MEDIUM)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        if value is None:
            return 0.8
        try:
            return min(1.0, max(0.0, float(value)))
        except (TypeError, ValueError):
            return 0.8

    @field_validator("text", "comment", "explanation", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class SpecificTextAnnotation(AnnotationBase):
    """Issue located at a literal or near-literal passage."""
    source_type: Literal["specific_text"] = "specific_text"


class StructuralInferenceAnnotation(AnnotationBase):
    """Issue concluded from several clauses or the overall contract structure."""
    source_type: Literal["structural_inference"] = "structural_inference"
    contributing_factors: List[ContributingFactor] = Field(default_factory=list)
    text_evidence: List[str] = Field(default_factory=list)
    recommended_highlight: Optional[str] = None

    @field_validator("contributing_factors", mode="before")
    @classmethod
    def _factor_list(cls, value: Any) -> List[Any]:
        if isinstance(value, (dict, ContributingFactor)):
            return [value]
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, (dict, ContributingFactor))]

    @field_validator("text_evidence", mode="before")
    @classmethod
    def _evidence_list(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if item is not None and str(item).strip()]


class MissingClauseAnnotation(AnnotationBase):
    """Mandatory provision that is absent; never highlighted."""
    source_type: Literal["missing_clause"] = "missing_clause"


Annotation = Annotated[
    Union[SpecificTextAnnotation, StructuralInferenceAnnotation, MissingClauseAnnotation],
    Field(discriminator="source_type"),
]

annotation_adapter: TypeAdapter = TypeAdapter(Annotation)


# Highlight Models

class HighlightSpan(CamelModel):
    """Resolved [start, end) highlight over the document content."""
    start: int
    end: int
    severity: Optional[Severity] = None
    style: HighlightStyle
    annotation_id: str = Field(..., description="Annotation or synthesized factor id")
    source_annotation_id: str = Field(..., description="Id of the annotation that produced the span")


# Spans produced by the evidence mapper have the same shape as reconciled ones
CandidateSpan = HighlightSpan


class LocalSpan(HighlightSpan):
    """Highlight span in the coordinate frame of a single section."""
    section_index: int


class RenderSegment(CamelModel):
    """Contiguous slice of content, highlighted or plain."""
    text: str
    start: int
    end: int
    span: Optional[HighlightSpan] = None


class HighlightResult(CamelModel):
    """Render-ready highlights for one document."""
    spans: List[HighlightSpan] = Field(default_factory=list)
    section_spans: Dict[int, List[LocalSpan]] = Field(default_factory=dict)
    unlocated_annotation_ids: List[str] = Field(default_factory=list)


# Analysis Models

class Recommendation(CamelModel):
    """Actionable improvement for the contract."""
    id: str
    title: str = ""
    description: str = ""
    priority: Priority = Priority.MEDIUM
    category: str = "General"
    action_required: bool = True

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> Any:
        if isinstance(value, str) and value.lower() in Priority._value2member_map_:
            return value.lower()
        return Priority.MEDIUM


class ComplianceCheck(CamelModel):
    """Compliance status against one statute section."""
    law: str = ""
    section: str = ""
    status: ComplianceStatus = ComplianceStatus.UNCLEAR
    description: str = ""
    recommendation: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> Any:
        if isinstance(value, str) and value in ComplianceStatus._value2member_map_:
            return value
        return ComplianceStatus.UNCLEAR


class AnalysisResult(CamelModel):
    """Normalized result of one model analysis call."""
    contract_id: str
    analysis_date: datetime = Field(default_factory=datetime.utcnow)
    overall_risk: RiskLevel = RiskLevel.MEDIUM
    summary: str = ""
    annotations: List[Annotation] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)
    legal_compliance: List[ComplianceCheck] = Field(default_factory=list)


# Classification Models

class StructuralIndicators(CamelModel):
    """Keyword-level structure signals used by the classifier."""
    has_deliverables: bool = False
    has_time_based_payment: bool = False
    has_success_metrics: bool = False
    has_employment_terms: bool = False
    has_confidentiality_terms: bool = False
    clause_count: int = 0
    contract_length: Literal["short", "medium", "long"] = "short"


class SecondaryType(CamelModel):
    type: ContractType
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    reasoning: str = ""


class ClassificationResult(CamelModel):
    """Contract type decision with supporting signals."""
    primary_type: ContractType = ContractType.GENERAL
    confidence: float = Field(0.6, ge=0.0, le=1.0)
    secondary_types: List[SecondaryType] = Field(default_factory=list)
    reasoning: str = ""
    structural_indicators: StructuralIndicators = Field(default_factory=StructuralIndicators)
    is_compound_contract: bool = False
    risk_factors: List[str] = Field(default_factory=list)


# API Request/Response Models

class ClassifyContractRequest(CamelModel):
    content: str = Field(..., min_length=1)


class ClassifyContractResponse(CamelModel):
    classification: ClassificationResult


class AnalyzeContractRequest(CamelModel):
    """Analysis request as sent by the frontend."""
    content: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    pages: List[str] = Field(default_factory=list)
    sections: List[Section] = Field(default_factory=list)
    contract_type: Optional[ContractType] = None


class AnalyzeContractResponse(CamelModel):
    analysis: AnalysisResult
    classification: Optional[ClassificationResult] = None
    highlights: HighlightResult


class HighlightRequest(CamelModel):
    """Highlight computation for an existing analysis, without a model call."""
    content: str
    sections: List[Section] = Field(default_factory=list)
    annotations: List[Dict[str, Any]] = Field(default_factory=list)
    raw: Optional[Dict[str, Any]] = Field(None, description="Unnormalized model response")


class ParseDocumentResponse(CamelModel):
    contract: ContractDocument


class HealthCheckResponse(CamelModel):
    status: str
    version: str
    configured: bool
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ErrorResponse(CamelModel):
    """API error response."""
    error: str
    status_code: int
    timestamp: datetime
    details: Optional[Dict[str, Any]] = None
