"""
Section projection: global highlight spans re-expressed per document section.
"""

import logging
from typing import Dict, List, Optional, Sequence

from ..models.schemas import Annotation, HighlightSpan, LocalSpan, Section
from .evidence import EvidenceMapper
from .reconciler import SpanReconciler

logger = logging.getLogger(__name__)


class SectionProjector:
    """
    Clamps reconciled spans into each section's local coordinate frame.

    When a section receives no span by offset intersection, the projector can
    re-run evidence mapping on the section text alone. Annotations that
    already own a global span are skipped there so nothing is highlighted twice.
    """

    def __init__(
        self,
        mapper: Optional[EvidenceMapper] = None,
        reconciler: Optional[SpanReconciler] = None,
        fallback_enabled: bool = True,
    ):
        self.mapper = mapper or EvidenceMapper()
        self.reconciler = reconciler or SpanReconciler()
        self.fallback_enabled = fallback_enabled

    def project(
        self,
        spans: Sequence[HighlightSpan],
        sections: Sequence[Section],
        annotations: Optional[Sequence[Annotation]] = None,
    ) -> Dict[int, List[LocalSpan]]:
        """Map section index to its local spans (possibly empty)."""
        projected: Dict[int, List[LocalSpan]] = {}
        located_ids = {span.source_annotation_id for span in spans}

        for index, section in enumerate(sections):
            self._check_section(section)
            local = self._intersect(spans, section, index)
            if not local and self.fallback_enabled and annotations:
                local = self._rescan(section, index, annotations, located_ids)
            projected[index] = local

        return projected

    @staticmethod
    def _check_section(section: Section) -> None:
        # Sections are validated on construction; this guards mutated copies
        if section.start < 0 or section.length < 0:
            raise ValueError(f"invalid section bounds [{section.start}, {section.end})")

    @staticmethod
    def _intersect(spans: Sequence[HighlightSpan], section: Section, index: int) -> List[LocalSpan]:
        local: List[LocalSpan] = []
        for span in spans:
            if span.end <= section.start or span.start >= section.end:
                continue
            local_start = max(0, span.start - section.start)
            local_end = min(section.length, span.end - section.start)
            if local_start >= local_end:
                continue
            local.append(LocalSpan(
                start=local_start,
                end=local_end,
                severity=span.severity,
                style=span.style,
                annotation_id=span.annotation_id,
                source_annotation_id=span.source_annotation_id,
                section_index=index,
            ))
        return local

    def _rescan(
        self,
        section: Section,
        index: int,
        annotations: Sequence[Annotation],
        located_ids: set,
    ) -> List[LocalSpan]:
        if not section.text:
            return []

        candidates = []
        for annotation in annotations:
            if annotation.id in located_ids:
                continue
            candidates.extend(self.mapper.map(annotation, section.text))

        reconciled = self.reconciler.reconcile(candidates, document_length=len(section.text))
        local = [
            LocalSpan(**span.model_dump(), section_index=index)
            for span in reconciled
            if span.end <= section.length
        ]
        if local:
            logger.debug(f"Section {index}: {len(local)} spans recovered from section text")
            located_ids.update(span.source_annotation_id for span in local)
        return local


def project(spans: Sequence[HighlightSpan], sections: Sequence[Section]) -> Dict[int, List[LocalSpan]]:
    """Project spans onto sections by offset intersection only."""
    return SectionProjector(fallback_enabled=False).project(spans, sections)
