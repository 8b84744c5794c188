"""
Contract Analysis Service
Classify, ask the model, normalize its answer and resolve highlights.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from ..exceptions import LLMServiceError
from ..highlighting.normalizer import AnnotationNormalizer
from ..highlighting.pipeline import HighlightPipeline, apply_offsets, create_pipeline
from ..models.config import Settings, settings as default_settings
from ..models.schemas import (
    AnalysisResult,
    AnalyzeContractResponse,
    Annotation,
    ComplianceCheck,
    ContractType,
    Recommendation,
    RiskLevel,
    Section,
)
from .contract_classifier import ContractClassifier
from .llm_client import GroqClient
from .prompts import build_user_prompt, get_system_prompt

logger = logging.getLogger(__name__)


def estimate_overall_risk(annotation_count: int) -> RiskLevel:
    """Risk level used when the model does not state one."""
    if annotation_count > 5:
        return RiskLevel.HIGH
    if annotation_count > 2:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def page_starts(content: str, pages: Sequence[str]) -> List[int]:
    """
    Start offset of each page's text inside the joined content.

    Pages are searched in order; a page that cannot be found inherits the
    previous page's start.
    """
    starts: List[int] = []
    cursor = 0
    for page in pages:
        found = content.find(page.strip(), cursor) if page.strip() else -1
        if found == -1:
            starts.append(starts[-1] if starts else 0)
            continue
        starts.append(found)
        cursor = found + len(page.strip())
    return starts


def assign_page_numbers(annotations: Sequence[Annotation], pages: Sequence[str], content: str) -> List[Annotation]:
    """Set page_number from the located start offset; unlocated annotations keep theirs."""
    if not pages:
        return list(annotations)
    starts = page_starts(content, pages)
    numbered = []
    for annotation in annotations:
        if annotation.start_offset is None:
            numbered.append(annotation)
            continue
        page_number = 1
        for index, start in enumerate(starts):
            if start <= annotation.start_offset:
                page_number = index + 1
        numbered.append(annotation.model_copy(update={"page_number": page_number}))
    return numbered


def normalize_recommendations(raw: Any) -> List[Recommendation]:
    recommendations = []
    for index, item in enumerate(raw if isinstance(raw, list) else []):
        if not isinstance(item, dict):
            continue
        recommendations.append(Recommendation(
            id=f"rec_{index}",
            title=item.get("title") or "",
            description=item.get("description") or "",
            priority=item.get("priority") or "medium",
            category=item.get("category") or "General",
            action_required=item.get("actionRequired") is not False,
        ))
    return recommendations


def normalize_compliance(raw: Any) -> List[ComplianceCheck]:
    checks = []
    for item in raw if isinstance(raw, list) else []:
        if not isinstance(item, dict):
            continue
        try:
            checks.append(ComplianceCheck(
                law=item.get("law") or "",
                section=item.get("section") or "",
                status=item.get("status") or "unclear",
                description=item.get("description") or "",
                recommendation=item.get("recommendation"),
            ))
        except ValidationError as e:
            logger.warning(f"Skipping malformed compliance entry: {e.error_count()} errors")
    return checks


def build_analysis_result(
    raw: Dict[str, Any],
    annotations: Sequence[Annotation],
    contract_id: str,
) -> AnalysisResult:
    """Assemble the analysis result, filling fields the model left out."""
    try:
        overall_risk = RiskLevel(str(raw.get("overallRisk")).lower())
    except ValueError:
        overall_risk = estimate_overall_risk(len(annotations))

    summary = raw.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        summary = f"{len(annotations)} rechtliche Probleme identifiziert."

    return AnalysisResult(
        contract_id=contract_id,
        overall_risk=overall_risk,
        summary=summary,
        annotations=list(annotations),
        recommendations=normalize_recommendations(raw.get("recommendations")),
        legal_compliance=normalize_compliance(raw.get("compliance") or raw.get("legalCompliance")),
    )


class ContractAnalysisService:
    """
    End-to-end contract analysis.

    Workflow:
    1. Classify the contract (unless the caller already knows its type)
    2. Ask the model with the specialized prompt
    3. Normalize the answer into canonical annotations
    4. Resolve highlight spans against the contract text
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        llm_client: Optional[GroqClient] = None,
        classifier: Optional[ContractClassifier] = None,
        normalizer: Optional[AnnotationNormalizer] = None,
        pipeline: Optional[HighlightPipeline] = None,
    ):
        self.config = config or default_settings
        self.llm_client = llm_client or GroqClient(self.config)
        self.classifier = classifier or ContractClassifier(self.llm_client, self.config)
        self.normalizer = normalizer or AnnotationNormalizer()
        self.pipeline = pipeline or create_pipeline(self.config)

    async def analyze(
        self,
        content: str,
        name: str,
        sections: Optional[Sequence[Section]] = None,
        contract_type: Optional[ContractType] = None,
        contract_id: Optional[str] = None,
        pages: Optional[Sequence[str]] = None,
    ) -> AnalyzeContractResponse:
        """
        Analyze one contract.

        Raises:
            LLMServiceError: model service not configured or failing
            AnalysisResponseError: the model answered with something other than JSON
        """
        if not self.llm_client.is_configured:
            raise LLMServiceError("AI analysis service not configured", status_code=500)

        classification = None
        if contract_type is None:
            classification = await self.classifier.classify(content)
            contract_type = classification.primary_type

        logger.info(f"Analyzing contract '{name}' as {contract_type.value}")
        raw = await self.llm_client.complete_json(
            build_user_prompt(name, content, contract_type),
            system_prompt=get_system_prompt(contract_type),
        )

        annotations = self.normalizer.normalize(raw)
        highlights = self.pipeline.build_highlights(content, annotations, sections)
        annotations = apply_offsets(annotations, highlights.spans)
        annotations = assign_page_numbers(annotations, pages or [], content)

        result = build_analysis_result(raw, annotations, contract_id or f"contract_{uuid.uuid4().hex[:12]}")
        logger.info(
            f"Analysis of '{name}' completed: {len(annotations)} annotations, "
            f"{len(highlights.spans)} highlights, risk {result.overall_risk.value}"
        )
        return AnalyzeContractResponse(analysis=result, classification=classification, highlights=highlights)


def create_analysis_service(config: Optional[Settings] = None, **kwargs) -> ContractAnalysisService:
    """Factory function to create the analysis service."""
    return ContractAnalysisService(config=config, **kwargs)
