"""
Annotation normalization for model responses.

The model's answer schema changed several times; older shapes still show up.
`normalize()` accepts any of them and returns canonical annotations:

  1. non-empty ``annotations`` list  -> passed through (records coerced to models)
  2. otherwise every legacy extractor runs and all results are concatenated
  3. nothing recognised             -> [] ("no issues found")

Legacy extractors are independent pure functions ``(raw) -> List[Annotation]``
listed in LEGACY_EXTRACTORS in priority order.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from ..models.schemas import Annotation, AnnotationBase, SourceType, annotation_adapter

logger = logging.getLogger(__name__)

Extractor = Callable[[Dict[str, Any]], List[Annotation]]

_SOURCE_TYPES = {member.value for member in SourceType}


def coerce_annotation(record: Any, index: int = 0) -> Optional[Annotation]:
    """
    Build a canonical annotation from one loosely shaped record.

    Defaults: id ``annotation_{index}``; sourceType ``specific_text`` unless the
    record's type is ``missing_clause``. Returns None for records that cannot
    be salvaged.
    """
    if isinstance(record, AnnotationBase):
        return record
    if not isinstance(record, dict):
        logger.warning(f"Skipping annotation {index}: expected object, got {type(record).__name__}")
        return None

    # null means "not given": drop it so the field default applies
    data = {
        (to_camel(key) if "_" in key else key): value
        for key, value in record.items()
        if value is not None
    }
    if not data.get("id"):
        data["id"] = f"annotation_{index}"
    else:
        data["id"] = str(data["id"])

    if data.get("sourceType") not in _SOURCE_TYPES:
        data["sourceType"] = (
            SourceType.MISSING_CLAUSE.value
            if data.get("type") == SourceType.MISSING_CLAUSE.value
            else SourceType.SPECIFIC_TEXT.value
        )

    try:
        return annotation_adapter.validate_python(data)
    except ValidationError as e:
        logger.warning(f"Skipping malformed annotation {data['id']}: {e.error_count()} validation errors")
        return None


def _build(records: List[Dict[str, Any]]) -> List[Annotation]:
    annotations = []
    for index, record in enumerate(records):
        annotation = coerce_annotation(record, index)
        if annotation is not None:
            annotations.append(annotation)
    return annotations


def ensure_unique_ids(annotations: List[Annotation]) -> List[Annotation]:
    """
    Rename repeated ids to ``{id}_{position}`` so offsets and highlight spans
    keyed by id stay with their own annotation. The first occurrence keeps its id.
    """
    seen = set()
    unique = []
    for position, annotation in enumerate(annotations):
        new_id = annotation.id
        if new_id in seen:
            new_id = f"{annotation.id}_{position}"
            while new_id in seen:
                new_id = f"{new_id}_{position}"
            logger.warning(f"Duplicate annotation id {annotation.id!r} renamed to {new_id!r}")
            annotation = annotation.model_copy(update={"id": new_id})
        seen.add(new_id)
        unique.append(annotation)
    return unique


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _rating_severity(rating: Any) -> str:
    text = rating.lower() if isinstance(rating, str) else ""
    if "hoch" in text:
        return "high"
    if "mittel" in text:
        return "medium"
    return "low"


def _joined(value: Any, separator: str) -> str:
    if isinstance(value, list):
        return separator.join(str(item) for item in value)
    return ""


# Legacy extractors

def extract_kritische_hinweise(raw: Dict[str, Any]) -> List[Annotation]:
    """vertragsanalyse.kritische_hinweise: list of free-text hints (newest shape)."""
    section = raw.get("vertragsanalyse")
    hints = _as_list(section.get("kritische_hinweise")) if isinstance(section, dict) else []
    return _build([
        {
            "id": f"kritisch_hinweis_{i}",
            "type": "legal_risk",
            "severity": "high",
            "sourceType": "specific_text",
            "comment": "Kritischer Hinweis",
            "explanation": str(hint),
            "text": str(hint)[:30] + "...",
            "startOffset": i * 100,
            "endOffset": i * 100 + 30,
            "confidence": 0.9,
        }
        for i, hint in enumerate(hints)
    ])


def extract_abgrenzung_arbeitsvertrag(raw: Dict[str, Any]) -> List[Annotation]:
    """rechtliche_einordnung.abgrenzung_arbeitsvertrag: employment-vs-contractor finding."""
    section = raw.get("rechtliche_einordnung")
    finding = section.get("abgrenzung_arbeitsvertrag") if isinstance(section, dict) else None
    if not finding:
        return []
    if isinstance(finding, dict):
        explanation = f"{finding.get('problem', '')}. {finding.get('gefahr', '')}"
    else:
        explanation = str(finding)
    return _build([{
        "id": "abgrenzung_arbeitsvertrag",
        "type": "legal_risk",
        "severity": "high",
        "sourceType": "specific_text",
        "comment": "Abgrenzung Arbeitsvertrag",
        "explanation": explanation,
        "legalReference": "§ 611a BGB, §§ 631-651 BGB",
        "text": "Freier Werkvertrag",
        "startOffset": 0,
        "endOffset": 18,
        "confidence": 0.9,
    }])


def extract_fehlende_mindestangaben(raw: Dict[str, Any]) -> List[Annotation]:
    """fehlende_mindestangaben['pflichtangaben_nach_§2_nachweisg']: missing NachwG details."""
    section = raw.get("fehlende_mindestangaben")
    if not isinstance(section, dict):
        return []
    status = section.get("status", "")
    return _build([
        {
            "id": f"fehlende_angabe_{i}",
            "type": "missing_clause",
            "severity": "medium",
            "sourceType": "missing_clause",
            "comment": f"Fehlende Pflichtangabe: {item}",
            "explanation": f"Nach § 2 NachwG erforderlich: {item}. Status: {status}",
            "legalReference": "§ 2 NachwG",
            "text": str(item),
            "confidence": 0.8,
        }
        for i, item in enumerate(_as_list(section.get("pflichtangaben_nach_§2_nachweisg")))
    ])


def extract_compliance_verstoesse(raw: Dict[str, Any]) -> List[Annotation]:
    """compliance_verstoesse: mapping of topic -> {status, problem|hinweis}."""
    section = raw.get("compliance_verstoesse")
    if not isinstance(section, dict):
        return []
    records = []
    for i, (key, value) in enumerate(section.items()):
        if not isinstance(value, dict):
            continue
        status = value.get("status") or ""
        records.append({
            "id": f"compliance_{key}_{i}",
            "type": "compliance_issue",
            "severity": "medium" if "Nicht" in str(status) else "low",
            "sourceType": "specific_text",
            "comment": f"Compliance-Verstoß: {key}",
            "explanation": f"{status}. {value.get('problem') or value.get('hinweis') or ''}",
            "text": key,
            "startOffset": (i + 50) * 10,
            "endOffset": (i + 50) * 10 + len(key),
            "confidence": 0.7,
        })
    return _build(records)


def extract_rechtliche_maengel(raw: Dict[str, Any]) -> List[Annotation]:
    """rechtliche_mängel: list of legal defects (previous shape)."""
    records = []
    for i, item in enumerate(_as_list(raw.get("rechtliche_mängel"))):
        if not isinstance(item, dict):
            continue
        records.append({
            "id": f"rechtlich_{i}",
            "type": "legal_risk",
            "severity": str(item.get("schweregrad") or "high").lower(),
            "sourceType": "specific_text",
            "comment": item.get("kategorie") or item.get("beschreibung") or item.get("titel") or "Legal issue",
            "explanation": item.get("beschreibung") or item.get("erläuterung") or item.get("details") or "",
            "legalReference": item.get("rechtsgrundlage") or item.get("gesetz"),
            "text": item.get("kategorie") or item.get("titel") or "Legal issue",
            "startOffset": i * 100,
            "endOffset": i * 100 + 50,
            "confidence": 0.9,
        })
    return _build(records)


def extract_fehlende_klauseln(raw: Dict[str, Any]) -> List[Annotation]:
    """fehlende_klauseln: list of missing clauses (previous shape)."""
    records = []
    for i, item in enumerate(_as_list(raw.get("fehlende_klauseln"))):
        if not isinstance(item, dict):
            continue
        label = item.get("klausel") or item.get("bereich") or item.get("titel")
        records.append({
            "id": f"fehlende_{i}",
            "type": "missing_clause",
            "severity": "medium",
            "sourceType": "missing_clause",
            "comment": f"Fehlende Klausel: {label}",
            "explanation": item.get("beschreibung") or item.get("erläuterung") or item.get("grund") or "",
            "legalReference": item.get("rechtsgrundlage") or item.get("gesetz"),
            "text": label or "Missing clause",
            "confidence": 0.8,
        })
    return _build(records)


def extract_kritische_punkte(raw: Dict[str, Any]) -> List[Annotation]:
    """kritische_punkte: list of critical points (original shape)."""
    records = []
    for i, item in enumerate(_as_list(raw.get("kritische_punkte"))):
        if not isinstance(item, dict):
            continue
        explanation = (
            item.get("beschreibung")
            or _joined(item.get("details"), ". ")
            or _joined(item.get("indizien"), ". ")
            or _joined(item.get("folgen"), ". ")
        )
        records.append({
            "id": f"kritisch_{i}",
            "type": "legal_risk",
            "severity": "high",
            "sourceType": "specific_text",
            "comment": item.get("kategorie") or item.get("beschreibung") or "Critical legal issue",
            "explanation": explanation,
            "legalReference": _joined(item.get("rechtsgrundlagen"), ", ") or None,
            "text": item.get("kategorie") or item.get("beschreibung") or "Critical issue",
            "startOffset": i * 100,
            "endOffset": i * 100 + 50,
            "confidence": 0.9,
        })
    return _build(records)


def extract_fehlende_pflichtangaben(raw: Dict[str, Any]) -> List[Annotation]:
    """fehlende_pflichtangaben: list of missing mandatory provisions (original shape)."""
    records = []
    for i, item in enumerate(_as_list(raw.get("fehlende_pflichtangaben"))):
        if not isinstance(item, dict):
            continue
        requirement = item.get("gesetzliche_anforderung") or ""
        records.append({
            "id": f"fehlend_{i}",
            "type": "missing_clause",
            "severity": "medium",
            "sourceType": "missing_clause",
            "comment": f"Fehlende Regelung: {item.get('bereich', '')}",
            "explanation": f"{requirement}. Status: {item.get('status', '')}",
            "legalReference": requirement or None,
            "text": item.get("bereich") or "",
            "confidence": 0.8,
        })
    return _build(records)


def extract_weitere_maengel(raw: Dict[str, Any]) -> List[Annotation]:
    """weitere_mängel: further defects rated hoch/mittel/niedrig."""
    records = []
    for i, item in enumerate(_as_list(raw.get("weitere_mängel"))):
        if not isinstance(item, dict):
            continue
        records.append({
            "id": f"mangel_{i}",
            "type": "improvement_suggestion",
            "severity": _rating_severity(item.get("bewertung")),
            "sourceType": "specific_text",
            "comment": item.get("problem") or "",
            "explanation": item.get("beschreibung") or "",
            "legalReference": item.get("rechtsgrundlage"),
            "text": item.get("problem") or "",
            "startOffset": (i + 10) * 100,
            "endOffset": (i + 10) * 100 + 50,
            "confidence": 0.8,
        })
    return _build(records)


def extract_analyse_ergebnis(raw: Dict[str, Any]) -> List[Annotation]:
    """analyse_ergebnis.kritische_punkte: Werkvertrag-specific findings."""
    section = raw.get("analyse_ergebnis")
    items = _as_list(section.get("kritische_punkte")) if isinstance(section, dict) else []
    records = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        records.append({
            "id": f"werk_kritisch_{i}",
            "type": "legal_risk",
            "severity": _rating_severity(item.get("bewertung")),
            "sourceType": "specific_text",
            "comment": item.get("problem") or "",
            "explanation": item.get("beschreibung") or "",
            "suggestedReplacement": item.get("empfehlung"),
            "legalReference": item.get("rechtsgrundlage"),
            "text": item.get("problem") or "",
            "startOffset": (i + 20) * 100,
            "endOffset": (i + 20) * 100 + 50,
            "confidence": 0.9,
        })
    return _build(records)


LEGACY_EXTRACTORS: List[Tuple[str, Extractor]] = [
    ("vertragsanalyse.kritische_hinweise", extract_kritische_hinweise),
    ("rechtliche_einordnung.abgrenzung_arbeitsvertrag", extract_abgrenzung_arbeitsvertrag),
    ("fehlende_mindestangaben", extract_fehlende_mindestangaben),
    ("compliance_verstoesse", extract_compliance_verstoesse),
    ("rechtliche_mängel", extract_rechtliche_maengel),
    ("fehlende_klauseln", extract_fehlende_klauseln),
    ("kritische_punkte", extract_kritische_punkte),
    ("fehlende_pflichtangaben", extract_fehlende_pflichtangaben),
    ("weitere_mängel", extract_weitere_maengel),
    ("analyse_ergebnis.kritische_punkte", extract_analyse_ergebnis),
]


class AnnotationNormalizer:
    """Normalizes any known model response shape into canonical annotations."""

    def __init__(self, extractors: Optional[List[Tuple[str, Extractor]]] = None):
        self.extractors = extractors if extractors is not None else LEGACY_EXTRACTORS

    def normalize(self, raw_response: Any) -> List[Annotation]:
        if not isinstance(raw_response, dict):
            logger.warning("Model response is not an object; no annotations")
            return []

        current = raw_response.get("annotations")
        if isinstance(current, list) and current:
            if all(isinstance(item, AnnotationBase) for item in current):
                return current
            return ensure_unique_ids(_build(current))

        annotations: List[Annotation] = []
        for shape, extractor in self.extractors:
            try:
                found = extractor(raw_response)
            except (AttributeError, TypeError, ValueError) as e:
                logger.warning(f"Legacy shape {shape} could not be read: {e}")
                continue
            if found:
                logger.info(f"Normalized {len(found)} annotations from legacy shape {shape}")
                annotations.extend(found)

        return ensure_unique_ids(annotations)


def normalize(raw_response: Any) -> List[Annotation]:
    """Normalize a raw model response with the default extractor chain."""
    return AnnotationNormalizer().normalize(raw_response)
