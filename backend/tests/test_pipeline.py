"""Tests for the end-to-end highlight pipeline."""

import pytest

from contract_analyzer.highlighting.pipeline import (
    HighlightPipeline,
    apply_offsets,
    create_pipeline,
    render_segments,
    severity_counts,
)
from contract_analyzer.models.config import Settings
from contract_analyzer.models.schemas import (
    ContributingFactor,
    HighlightSpan,
    HighlightStyle,
    MissingClauseAnnotation,
    Section,
    SectionKind,
    Severity,
    SpecificTextAnnotation,
    StructuralInferenceAnnotation,
)
from contract_analyzer.services.document_parser import detect_sections


CONTENT = "§1 Arbeitszeit: täglich 8 Stunden. §2 Kündigung: 4 Wochen."


@pytest.fixture
def pipeline():
    return HighlightPipeline()


def test_located_text_is_highlighted_and_content_is_preserved(pipeline):
    annotations = [
        SpecificTextAnnotation(id="a1", text="4 Wochen", severity="high"),
        MissingClauseAnnotation(id="m1", text="Urlaubsanspruch"),
    ]

    result = pipeline.build_highlights(CONTENT, annotations)

    assert len(result.spans) == 1
    span = result.spans[0]
    assert CONTENT[span.start:span.end] == "4 Wochen"
    assert span.style == HighlightStyle.DIRECT_VIOLATION
    assert result.unlocated_annotation_ids == ["m1"]
    assert result.section_spans == {}

    segments = render_segments(CONTENT, result.spans)
    assert "".join(s.text for s in segments) == CONTENT
    assert [s.span is not None for s in segments] == [False, True, False]


def test_overlapping_evidence_keeps_the_more_severe_annotation(pipeline):
    annotations = [
        SpecificTextAnnotation(id="low", text="Kündigung", severity="low"),
        SpecificTextAnnotation(id="critical", text="Kündigung", severity="critical"),
    ]

    result = pipeline.build_highlights(CONTENT, annotations)

    assert [s.annotation_id for s in result.spans] == ["critical"]
    assert result.unlocated_annotation_ids == ["low"]


def test_structural_annotation_contributes_factor_spans(pipeline):
    annotation = StructuralInferenceAnnotation(
        id="s1",
        severity="high",
        contributing_factors=[
            ContributingFactor(clause_reference="§1", factor_text="täglich 8 Stunden"),
            ContributingFactor(clause_reference="§2", factor_text="4 Wochen", severity="low"),
        ],
    )

    result = pipeline.build_highlights(CONTENT, [annotation])

    assert [s.annotation_id for s in result.spans] == ["s1_factor_§1", "s1_factor_§2"]
    assert [s.severity for s in result.spans] == [Severity.HIGH, Severity.LOW]
    assert result.unlocated_annotation_ids == []


def test_sections_receive_local_spans():
    content = "§ 1 Arbeitszeit\nDer Arbeitnehmer arbeitet täglich 8 Stunden.\n§ 2 Kündigung\nFrist: 4 Wochen."
    sections = detect_sections(content)
    annotations = [SpecificTextAnnotation(id="a1", text="4 Wochen")]

    result = HighlightPipeline().build_highlights(content, annotations, sections)

    assert sorted(result.section_spans) == [0, 1, 2, 3]
    [local] = result.section_spans[3]
    assert sections[3].text[local.start:local.end] == "4 Wochen"
    assert local.section_index == 3
    assert result.section_spans[0] == []


def test_section_beyond_content_is_rejected(pipeline):
    sections = [Section(kind=SectionKind.PARAGRAPH, start=0, end=len(CONTENT) + 5)]

    with pytest.raises(ValueError):
        pipeline.build_highlights(CONTENT, [], sections)


def test_resolve_offsets_returns_updated_copies(pipeline):
    located = SpecificTextAnnotation(id="a1", text="4 Wochen", start_offset=0, end_offset=30)
    unlocated = SpecificTextAnnotation(id="a2", text="qqqq zzzz", start_offset=100, end_offset=150)

    first, second = pipeline.resolve_offsets(CONTENT, [located, unlocated])

    assert CONTENT[first.start_offset:first.end_offset] == "4 Wochen"
    assert (second.start_offset, second.end_offset) == (None, None)
    assert (located.start_offset, located.end_offset) == (0, 30)


def test_apply_offsets_uses_first_span_per_annotation():
    annotation = StructuralInferenceAnnotation(id="s1")
    spans = [
        HighlightSpan(start=3, end=8, style=HighlightStyle.CONTRIBUTING_FACTOR,
                      annotation_id="s1_factor_0", source_annotation_id="s1"),
        HighlightSpan(start=20, end=25, style=HighlightStyle.CONTRIBUTING_FACTOR,
                      annotation_id="s1_factor_1", source_annotation_id="s1"),
    ]

    [resolved] = apply_offsets([annotation], spans)

    assert (resolved.start_offset, resolved.end_offset) == (3, 8)


def test_severity_counts():
    annotations = [
        SpecificTextAnnotation(id="1", severity="critical"),
        SpecificTextAnnotation(id="2", severity="high"),
        SpecificTextAnnotation(id="3", severity="medium"),
        MissingClauseAnnotation(id="4", severity="info"),
        MissingClauseAnnotation(id="5", severity="low"),
    ]

    assert severity_counts(annotations) == {"high": 2, "medium": 1, "low": 2}


class TestRenderSegments:

    def test_no_spans_gives_one_plain_segment(self):
        [segment] = render_segments(CONTENT, [])

        assert segment.text == CONTENT
        assert segment.span is None

    def test_empty_content(self):
        assert render_segments("", []) == []

    def test_overlapping_spans_are_rejected(self):
        spans = [
            HighlightSpan(start=0, end=10, style=HighlightStyle.DIRECT_VIOLATION, annotation_id="a", source_annotation_id="a"),
            HighlightSpan(start=5, end=15, style=HighlightStyle.DIRECT_VIOLATION, annotation_id="b", source_annotation_id="b"),
        ]

        with pytest.raises(ValueError):
            render_segments(CONTENT, spans)


def test_create_pipeline_applies_settings():
    config = Settings(_env_file=None, LOCATOR_PREFIX_LENGTH=8, MIN_NEEDLE_LENGTH=6, SECTION_FALLBACK_ENABLED=False)

    pipeline = create_pipeline(config)

    assert pipeline.mapper.locator.prefix_length == 8
    assert pipeline.mapper.min_needle_length == 6
    assert pipeline.projector.fallback_enabled is False
