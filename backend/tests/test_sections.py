"""Tests for projecting spans onto document sections."""

import pytest
from pydantic import ValidationError

from contract_analyzer.highlighting.sections import SectionProjector, project
from contract_analyzer.models.schemas import (
    HighlightSpan,
    HighlightStyle,
    Section,
    SectionKind,
    Severity,
    SpecificTextAnnotation,
)


def span(start, end, annotation_id="a1"):
    return HighlightSpan(
        start=start,
        end=end,
        severity=Severity.HIGH,
        style=HighlightStyle.DIRECT_VIOLATION,
        annotation_id=annotation_id,
        source_annotation_id=annotation_id,
    )


def section(start, end, text=""):
    return Section(kind=SectionKind.PARAGRAPH, start=start, end=end, text=text)


def test_span_is_clamped_on_both_sides():
    result = project([span(5, 25)], [section(10, 20)])

    local = result[0]
    assert [(s.start, s.end) for s in local] == [(0, 10)]
    assert local[0].section_index == 0
    assert local[0].severity == Severity.HIGH


def test_disjoint_section_gets_no_spans():
    assert project([span(5, 25)], [section(30, 40)]) == {0: []}


def test_every_section_index_is_present():
    result = project([span(12, 14)], [section(0, 10), section(10, 20), section(20, 30)])

    assert list(result) == [0, 1, 2]
    assert [(s.start, s.end) for s in result[1]] == [(2, 4)]
    assert result[0] == [] and result[2] == []


def test_span_touching_section_boundary_is_not_projected():
    assert project([span(0, 10)], [section(10, 20)]) == {0: []}


def test_inverted_section_bounds_are_rejected():
    with pytest.raises(ValidationError):
        section(20, 10)


def test_projector_rejects_unvalidated_negative_section():
    broken = Section.model_construct(kind=SectionKind.PARAGRAPH, start=-5, end=3, text="")

    with pytest.raises(ValueError):
        project([], [broken])


class TestSectionTextFallback:

    def test_rescans_section_text_when_no_span_intersects(self):
        annotation = SpecificTextAnnotation(id="a1", text="Kündigungsfrist")
        sections = [section(0, 20, "Die Kündigungsfrist.")]

        result = SectionProjector().project([], sections, [annotation])

        assert [(s.start, s.end) for s in result[0]] == [(4, 19)]
        assert result[0][0].source_annotation_id == "a1"

    def test_already_located_annotation_is_not_rescanned(self):
        annotation = SpecificTextAnnotation(id="a1", text="Kündigungsfrist")
        sections = [section(0, 20, "Die Kündigungsfrist.")]

        result = SectionProjector().project([span(100, 110)], sections, [annotation])

        assert result == {0: []}

    def test_annotation_is_recovered_in_one_section_only(self):
        annotation = SpecificTextAnnotation(id="a1", text="Kündigungsfrist")
        sections = [section(0, 20, "Die Kündigungsfrist."), section(21, 41, "Die Kündigungsfrist.")]

        result = SectionProjector().project([], sections, [annotation])

        assert len(result[0]) == 1
        assert result[1] == []

    def test_disabled_fallback(self):
        annotation = SpecificTextAnnotation(id="a1", text="Kündigungsfrist")
        sections = [section(0, 20, "Die Kündigungsfrist.")]

        result = SectionProjector(fallback_enabled=False).project([], sections, [annotation])

        assert result == {0: []}
