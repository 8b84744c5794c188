"""
Annotation offset resolution and highlight reconciliation.
"""

from .evidence import EvidenceMapper, strip_clause_marker
from .locator import MatchTier, TextLocator, TextMatch, locate
from .normalizer import LEGACY_EXTRACTORS, AnnotationNormalizer, coerce_annotation, normalize
from .pipeline import HighlightPipeline, apply_offsets, create_pipeline, render_segments, severity_counts
from .reconciler import SpanReconciler, reconcile
from .sections import SectionProjector, project

__all__ = [
    "AnnotationNormalizer",
    "EvidenceMapper",
    "HighlightPipeline",
    "LEGACY_EXTRACTORS",
    "MatchTier",
    "SectionProjector",
    "SpanReconciler",
    "TextLocator",
    "TextMatch",
    "apply_offsets",
    "coerce_annotation",
    "create_pipeline",
    "locate",
    "normalize",
    "project",
    "reconcile",
    "render_segments",
    "severity_counts",
    "strip_clause_marker",
]
