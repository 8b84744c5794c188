"""
Highlight pipeline
Canonical annotations in, render-ready spans out.
"""

import logging
from typing import Dict, List, Optional, Sequence

from ..models.config import Settings, settings as default_settings
from ..models.schemas import (
    Annotation,
    HighlightResult,
    HighlightSpan,
    RenderSegment,
    Section,
    Severity,
)
from .evidence import EvidenceMapper
from .locator import TextLocator
from .reconciler import SpanReconciler
from .sections import SectionProjector

logger = logging.getLogger(__name__)


class HighlightPipeline:
    """
    Runs evidence mapping, reconciliation and section projection for one document.

    Stateless between calls: every call recomputes spans from the document
    text and the annotations it is given.
    """

    def __init__(
        self,
        mapper: Optional[EvidenceMapper] = None,
        reconciler: Optional[SpanReconciler] = None,
        projector: Optional[SectionProjector] = None,
    ):
        self.mapper = mapper or EvidenceMapper()
        self.reconciler = reconciler or SpanReconciler()
        self.projector = projector or SectionProjector(self.mapper, self.reconciler)

    def build_highlights(
        self,
        content: str,
        annotations: Sequence[Annotation],
        sections: Optional[Sequence[Section]] = None,
    ) -> HighlightResult:
        candidates: List[HighlightSpan] = []
        for annotation in annotations:
            candidates.extend(self.mapper.map(annotation, content))

        spans = self.reconciler.reconcile(candidates, document_length=len(content))

        section_spans = {}
        if sections:
            for section in sections:
                if section.end > len(content):
                    raise ValueError(
                        f"section [{section.start}, {section.end}) exceeds document length {len(content)}"
                    )
            section_spans = self.projector.project(spans, sections, annotations)

        located = {span.source_annotation_id for span in spans}
        for local_spans in section_spans.values():
            located.update(span.source_annotation_id for span in local_spans)
        unlocated = [a.id for a in annotations if a.id not in located]

        logger.info(
            f"Highlights: {len(annotations)} annotations, {len(candidates)} candidates, "
            f"{len(spans)} spans, {len(unlocated)} unlocated"
        )
        return HighlightResult(
            spans=spans,
            section_spans=section_spans,
            unlocated_annotation_ids=unlocated,
        )

    def resolve_offsets(self, content: str, annotations: Sequence[Annotation]) -> List[Annotation]:
        """
        Return copies of the annotations with offsets taken from their first
        reconciled span. Unlocated annotations get both offsets cleared.
        """
        result = self.build_highlights(content, annotations)
        return apply_offsets(annotations, result.spans)


def apply_offsets(annotations: Sequence[Annotation], spans: Sequence[HighlightSpan]) -> List[Annotation]:
    """Copy each annotation with the offsets of its first span, or none."""
    primary: Dict[str, HighlightSpan] = {}
    for span in spans:
        primary.setdefault(span.source_annotation_id, span)

    resolved = []
    for annotation in annotations:
        span = primary.get(annotation.id)
        resolved.append(annotation.model_copy(update={
            "start_offset": span.start if span else None,
            "end_offset": span.end if span else None,
        }))
    return resolved


def render_segments(content: str, spans: Sequence[HighlightSpan]) -> List[RenderSegment]:
    """
    Split content into alternating plain and highlighted segments.

    Spans must be reconciled (sorted, non-overlapping). Joining the segment
    texts gives back ``content`` unchanged.
    """
    segments: List[RenderSegment] = []
    cursor = 0
    for span in spans:
        if span.start < cursor or span.end > len(content):
            raise ValueError(f"span [{span.start}, {span.end}) is not reconciled against the content")
        if span.start > cursor:
            segments.append(RenderSegment(text=content[cursor:span.start], start=cursor, end=span.start))
        segments.append(RenderSegment(text=content[span.start:span.end], start=span.start, end=span.end, span=span))
        cursor = span.end
    if cursor < len(content):
        segments.append(RenderSegment(text=content[cursor:], start=cursor, end=len(content)))
    return segments


def severity_counts(annotations: Sequence[Annotation]) -> Dict[str, int]:
    """Bucket annotations the way the overview panel shows them."""
    counts = {"high": 0, "medium": 0, "low": 0}
    for annotation in annotations:
        if annotation.severity in (Severity.CRITICAL, Severity.HIGH):
            counts["high"] += 1
        elif annotation.severity == Severity.MEDIUM:
            counts["medium"] += 1
        else:
            counts["low"] += 1
    return counts


def create_pipeline(config: Optional[Settings] = None) -> HighlightPipeline:
    """Factory function to create a pipeline tuned from settings."""
    config = config or default_settings
    locator = TextLocator(**config.locator_config)
    mapper = EvidenceMapper(locator, min_needle_length=config.MIN_NEEDLE_LENGTH)
    reconciler = SpanReconciler()
    projector = SectionProjector(mapper, reconciler, fallback_enabled=config.SECTION_FALLBACK_ENABLED)
    return HighlightPipeline(mapper, reconciler, projector)
