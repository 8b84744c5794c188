"""
Contract Classification Service
Picks the contract type that selects the specialized analysis prompt.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from ..exceptions import AnalysisResponseError, LLMServiceError
from ..models.config import Settings, settings as default_settings
from ..models.schemas import ClassificationResult, ContractType, SecondaryType, StructuralIndicators
from .llm_client import GroqClient
from .prompts import build_classification_prompt

logger = logging.getLogger(__name__)


DELIVERABLE_TERMS = [
    "lieferung", "erstellung", "entwicklung", "fertigstellung",
    "abnahme", "werk", "leistungsgegenstand", "endergebnis",
    "deliverable", "milestone", "abgabe", "übergabe",
]
TIME_BASED_PAYMENT_TERMS = [
    "stundenlohn", "tagessatz", "monatlich", "wöchentlich",
    "pro stunde", "zeitaufwand", "arbeitszeit", "vergütung pro",
    "hourly", "monthly", "weekly", "per hour",
]
SUCCESS_METRIC_TERMS = [
    "erfolg", "ziel", "kennzahl", "messwert", "qualität",
    "performance", "ergebnis", "zielerreichung", "erfolgsmessung",
]
EMPLOYMENT_TERMS = [
    "kündigung", "probezeit", "urlaub", "arbeitszeit",
    "überstunden", "sozialversicherung", "lohnsteuer",
    "betriebsrat", "tarifvertrag", "arbeitsplatz",
]
CONFIDENTIALITY_TERMS = [
    "geheimhaltung", "vertraulich", "nda", "stillschweigen",
    "confidential", "non-disclosure", "betriebsgeheimnis",
]
WERK_TERMS = ["abnahme", "fertigstellung", "werk", "erfolg", "leistungsgegenstand"]
DIENST_TERMS = ["dienstleistung", "beratung", "unterstützung", "service"]

CLAUSE_PATTERNS = [
    re.compile(r"§\s*\d+"),
    re.compile(r"^\s*\d+\.\s", re.MULTILINE),
    re.compile(r"^\s*\(\d+\)", re.MULTILINE),
    re.compile(r"^\s*[a-z]\)\s", re.MULTILINE),
]

SCORE_THRESHOLD = 0.6
FALLBACK_CONFIDENCE = 0.6
SECONDARY_CONFIDENCE_THRESHOLD = 0.4
COMPOUND_CLAUSE_COUNT = 15

# Types whose Werk/Dienst distinction is re-checked by scoring
_SERVICE_TYPES = {ContractType.SERVICE_AGREEMENT, ContractType.DIENSTVERTRAG, ContractType.WERKVERTRAG}


def _contains_any(text: str, terms: List[str]) -> bool:
    return any(term in text for term in terms)


def analyze_structure(content: str) -> StructuralIndicators:
    """Keyword-level structure signals of a contract."""
    lower = content.lower()
    word_count = len(content.split())
    if word_count < 500:
        length = "short"
    elif word_count < 2000:
        length = "medium"
    else:
        length = "long"

    return StructuralIndicators(
        has_deliverables=_contains_any(lower, DELIVERABLE_TERMS),
        has_time_based_payment=_contains_any(lower, TIME_BASED_PAYMENT_TERMS),
        has_success_metrics=_contains_any(lower, SUCCESS_METRIC_TERMS),
        has_employment_terms=_contains_any(lower, EMPLOYMENT_TERMS),
        has_confidentiality_terms=_contains_any(lower, CONFIDENTIALITY_TERMS),
        clause_count=sum(len(pattern.findall(content)) for pattern in CLAUSE_PATTERNS),
        contract_length=length,
    )


def werkvertrag_score(indicators: StructuralIndicators, content: str) -> float:
    score = 0.0
    if indicators.has_deliverables:
        score += 0.4
    if indicators.has_success_metrics:
        score += 0.3
    if not indicators.has_time_based_payment:
        score += 0.2
    if not indicators.has_employment_terms:
        score += 0.2
    lower = content.lower()
    score += sum(term in lower for term in WERK_TERMS) / len(WERK_TERMS) * 0.3
    return min(score, 1.0)


def dienstvertrag_score(indicators: StructuralIndicators, content: str) -> float:
    score = 0.0
    if indicators.has_time_based_payment:
        score += 0.4
    if not indicators.has_success_metrics:
        score += 0.2
    if not indicators.has_deliverables:
        score += 0.2
    if not indicators.has_employment_terms:
        score += 0.1
    lower = content.lower()
    score += sum(term in lower for term in DIENST_TERMS) / len(DIENST_TERMS) * 0.3
    return min(score, 1.0)


def is_compound_contract(secondary_types: List[SecondaryType], indicators: StructuralIndicators) -> bool:
    """Several confident secondary types, or structurally mixed signals."""
    confident = [s for s in secondary_types if s.confidence > SECONDARY_CONFIDENCE_THRESHOLD]
    mixed = (
        (indicators.has_deliverables and indicators.has_time_based_payment)
        or (indicators.has_employment_terms and indicators.has_success_metrics)
        or (indicators.has_confidentiality_terms and indicators.clause_count > COMPOUND_CLAUSE_COUNT)
    )
    return len(confident) > 1 or mixed


def _parse_type(value: Any) -> ContractType:
    try:
        return ContractType(str(value).strip().lower())
    except ValueError:
        return ContractType.GENERAL


def _parse_secondary(items: Any) -> List[SecondaryType]:
    secondary = []
    for item in items if isinstance(items, list) else []:
        if not isinstance(item, dict):
            continue
        try:
            confidence = min(1.0, max(0.0, float(item.get("confidence", 0.0))))
        except (TypeError, ValueError):
            confidence = 0.0
        secondary.append(SecondaryType(
            type=_parse_type(item.get("type")),
            confidence=confidence,
            reasoning=str(item.get("reasoning") or ""),
        ))
    return secondary


class ContractClassifier:
    """
    Classifies German contracts.

    The model's answer is combined with business rules: Werkvertrag and
    Dienstvertrag are re-scored from structural signals because the model
    confuses them most often. Any model failure degrades to keyword rules.
    """

    def __init__(self, llm_client: Optional[GroqClient] = None, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.llm_client = llm_client or GroqClient(self.config)

    async def classify(self, content: str) -> ClassificationResult:
        indicators = analyze_structure(content)

        if not (self.config.CLASSIFICATION_USE_LLM and self.llm_client.is_configured):
            logger.info("LLM classification disabled or not configured, using keyword rules")
            return self.fallback_classification(content, indicators)

        try:
            prompt = build_classification_prompt(content, indicators, self.config.CLASSIFICATION_EXCERPT_CHARS)
            ai_result = await self.llm_client.complete_json(
                prompt, max_tokens=self.config.CLASSIFICATION_MAX_TOKENS
            )
        except (LLMServiceError, AnalysisResponseError) as e:
            logger.warning(f"AI classification failed, falling back to heuristics: {e}")
            return self.fallback_classification(content, indicators)

        result = self.combine(ai_result, indicators, content)
        logger.info(f"Classified contract as {result.primary_type.value} (confidence {result.confidence:.2f})")
        return result

    def combine(
        self,
        ai_result: Dict[str, Any],
        indicators: StructuralIndicators,
        content: str,
    ) -> ClassificationResult:
        """Apply the Werk/Dienst business rules on top of the model's answer."""
        primary = _parse_type(ai_result.get("primaryType"))
        try:
            confidence = min(1.0, max(0.0, float(ai_result.get("confidence", FALLBACK_CONFIDENCE))))
        except (TypeError, ValueError):
            confidence = FALLBACK_CONFIDENCE
        raw_factors = ai_result.get("riskFactors")
        risk_factors = [str(r) for r in raw_factors if r] if isinstance(raw_factors, list) else []

        if primary in _SERVICE_TYPES:
            werk = werkvertrag_score(indicators, content)
            dienst = dienstvertrag_score(indicators, content)
            logger.debug(f"Werkvertrag score {werk:.2f}, Dienstvertrag score {dienst:.2f}")

            if werk > dienst and werk > SCORE_THRESHOLD:
                primary = ContractType.WERKVERTRAG
                if indicators.has_time_based_payment:
                    risk_factors.append("Zeitbasierte Vergütung bei Werkvertrag - Scheinselbstständigkeit prüfen")
            elif dienst > SCORE_THRESHOLD:
                primary = ContractType.DIENSTVERTRAG
                if indicators.has_success_metrics and not indicators.has_employment_terms:
                    risk_factors.append("Erfolgsabhängige Elemente bei Dienstvertrag - Vertragstyp prüfen")

        secondary = _parse_secondary(ai_result.get("secondaryTypes"))
        return ClassificationResult(
            primary_type=primary,
            confidence=confidence,
            secondary_types=secondary,
            reasoning=str(ai_result.get("reasoning") or ""),
            structural_indicators=indicators,
            is_compound_contract=is_compound_contract(secondary, indicators),
            risk_factors=risk_factors,
        )

    @staticmethod
    def fallback_classification(
        content: str,
        indicators: Optional[StructuralIndicators] = None,
    ) -> ClassificationResult:
        """Keyword rules used when the model cannot be asked."""
        lower = content.lower()
        if "arbeitsvertrag" in lower or "anstellungsvertrag" in lower:
            primary = ContractType.ARBEITSVERTRAG
        elif "werkvertrag" in lower or "werk" in lower:
            primary = ContractType.WERKVERTRAG
        elif "dienstleistung" in lower or "service" in lower:
            primary = ContractType.DIENSTVERTRAG
        elif "geheimhaltung" in lower or "nda" in lower:
            primary = ContractType.NDA
        else:
            primary = ContractType.GENERAL

        return ClassificationResult(
            primary_type=primary,
            confidence=FALLBACK_CONFIDENCE,
            secondary_types=[],
            reasoning="Fallback-Klassifikation aufgrund fehlgeschlagener KI-Analyse",
            structural_indicators=indicators or analyze_structure(content),
            is_compound_contract=False,
            risk_factors=["KI-Klassifikation fehlgeschlagen - manuelle Überprüfung empfohlen"],
        )


def create_classifier(config: Optional[Settings] = None, llm_client: Optional[GroqClient] = None) -> ContractClassifier:
    """Factory function to create a classifier."""
    return ContractClassifier(llm_client=llm_client, config=config)
