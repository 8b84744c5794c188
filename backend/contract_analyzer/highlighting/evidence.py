"""
Evidence mapping: turns one annotation into candidate highlight spans.

specific_text        -> at most one direct_violation span
structural_inference -> one contributing_factor span per located factor,
                        else at most one related_section span
missing_clause       -> nothing, ever
"""

import logging
import re
from typing import List, Optional

from ..models.schemas import (
    Annotation,
    CandidateSpan,
    HighlightStyle,
    MissingClauseAnnotation,
    SpecificTextAnnotation,
    StructuralInferenceAnnotation,
)
from .locator import TextLocator, TextMatch

logger = logging.getLogger(__name__)

# Leading clause marker such as "§2", "§ 12a" or "§§ 3"
_CLAUSE_MARKER_RE = re.compile(r"^\s*§+\s*\d+[a-z]?\b\s*[:.\-–]?\s*", re.IGNORECASE)

# Truncation marks appended by the model or by legacy normalization
_ELLIPSIS_RE = re.compile(r"\s*(\.\.\.|…)\s*$")


def strip_clause_marker(text: str) -> str:
    """Remove a leading "§N" reference so only the quoted wording is searched."""
    return _CLAUSE_MARKER_RE.sub("", text, count=1)


class EvidenceMapper:
    """Maps annotations to candidate spans over a document's text."""

    def __init__(self, locator: Optional[TextLocator] = None, min_needle_length: int = 4):
        self.locator = locator or TextLocator()
        self.min_needle_length = min_needle_length

    def map(self, annotation: Annotation, document: str) -> List[CandidateSpan]:
        """
        Produce candidate spans for one annotation.

        An empty list is a valid outcome meaning the annotation cannot be
        anchored in the text; it is still shown in list views.
        """
        if isinstance(annotation, MissingClauseAnnotation):
            return []
        if isinstance(annotation, StructuralInferenceAnnotation):
            return self._map_structural(annotation, document)
        if isinstance(annotation, SpecificTextAnnotation):
            return self._map_specific_text(annotation, document)
        logger.warning(f"Unsupported annotation variant: {type(annotation).__name__}")
        return []

    def _map_specific_text(self, annotation: SpecificTextAnnotation, document: str) -> List[CandidateSpan]:
        needles = [annotation.text, annotation.comment.split(":", 1)[0]]
        match = self._first_match(document, needles)
        if match is None:
            logger.debug(f"Annotation {annotation.id} could not be located")
            return []
        return [CandidateSpan(
            start=match.start,
            end=match.end,
            severity=annotation.severity,
            style=HighlightStyle.DIRECT_VIOLATION,
            annotation_id=annotation.id,
            source_annotation_id=annotation.id,
        )]

    def _map_structural(self, annotation: StructuralInferenceAnnotation, document: str) -> List[CandidateSpan]:
        spans: List[CandidateSpan] = []

        for index, factor in enumerate(annotation.contributing_factors):
            match = self._first_match(document, [factor.factor_text])
            if match is None:
                continue
            reference = factor.clause_reference or str(index)
            spans.append(CandidateSpan(
                start=match.start,
                end=match.end,
                severity=factor.severity or annotation.severity,
                style=HighlightStyle.CONTRIBUTING_FACTOR,
                annotation_id=f"{annotation.id}_factor_{reference}",
                source_annotation_id=annotation.id,
            ))

        if spans:
            return spans

        candidates = [annotation.recommended_highlight or ""] + list(annotation.text_evidence)
        match = self._first_match(document, [strip_clause_marker(c) for c in candidates])
        if match is None:
            logger.debug(f"Structural annotation {annotation.id} has no locatable evidence")
            return []
        return [CandidateSpan(
            start=match.start,
            end=match.end,
            severity=annotation.severity,
            style=HighlightStyle.RELATED_SECTION,
            annotation_id=annotation.id,
            source_annotation_id=annotation.id,
        )]

    def _first_match(self, document: str, needles: List[str]) -> Optional[TextMatch]:
        for needle in needles:
            cleaned = self._clean(needle)
            if len(cleaned) < self.min_needle_length:
                continue
            match = self.locator.locate(document, cleaned)
            if match is not None:
                return match
        return None

    @staticmethod
    def _clean(needle: Optional[str]) -> str:
        if not needle:
            return ""
        return _ELLIPSIS_RE.sub("", needle.strip())
