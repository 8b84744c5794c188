"""
Span reconciliation: one authoritative, non-overlapping highlight set per render.
"""

import logging
from typing import Iterable, List, Optional

from ..models.schemas import CandidateSpan, HighlightSpan, severity_rank

logger = logging.getLogger(__name__)


class SpanReconciler:
    """
    Sorts, validates and deduplicates candidate spans.

    Policy:
      - spans with start >= end, negative offsets or ends beyond the document
        are dropped;
      - spans are stably sorted by start, so equal starts keep input order;
      - a span that does not overlap the last accepted span is accepted;
      - a span with exactly the same range as the last accepted span replaces
        it only if its severity ranks strictly higher;
      - any other overlap is rejected (first accepted wins).
    """

    def reconcile(
        self,
        spans: Iterable[CandidateSpan],
        document_length: Optional[int] = None,
    ) -> List[HighlightSpan]:
        valid = [span for span in spans if self._is_valid(span, document_length)]
        ordered = sorted(valid, key=lambda span: span.start)

        accepted: List[HighlightSpan] = []
        rejected = 0
        for span in ordered:
            if not accepted or span.start >= accepted[-1].end:
                accepted.append(span)
                continue

            last = accepted[-1]
            if span.start == last.start and span.end == last.end:
                if severity_rank(span.severity) > severity_rank(last.severity):
                    accepted[-1] = span
                rejected += 1
            else:
                rejected += 1

        if rejected:
            logger.debug(f"Reconciled {len(accepted)} spans, {rejected} overlapping dropped")
        return accepted

    @staticmethod
    def _is_valid(span: CandidateSpan, document_length: Optional[int]) -> bool:
        if span.start < 0 or span.start >= span.end:
            return False
        if document_length is not None and span.end > document_length:
            return False
        return True


def reconcile(spans: Iterable[CandidateSpan], document_length: Optional[int] = None) -> List[HighlightSpan]:
    """Reconcile spans with the default policy."""
    return SpanReconciler().reconcile(spans, document_length)
