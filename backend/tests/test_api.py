"""Tests for the HTTP API."""

import pytest

from contract_analyzer.api.main import app, get_llm_client
from contract_analyzer.services.document_parser import detect_sections


CONTENT = "§1 Arbeitszeit: täglich 8 Stunden. §2 Kündigung: 4 Wochen."


@pytest.fixture
def use_llm(llm_client_factory):
    """Route the model dependency to a mock client answering with the given payloads."""

    def install(*answers, **kwargs):
        client = llm_client_factory(*answers, **kwargs)
        app.dependency_overrides[get_llm_client] = lambda: client
        return client

    return install


class TestHealth:

    def test_health_check(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert "configured" in body
        assert "timestamp" in body

    def test_root(self, test_client):
        assert test_client.get("/").json()["status"] == "healthy"


class TestHighlights:

    def test_from_annotations(self, test_client):
        response = test_client.post("/api/highlights", json={
            "content": CONTENT,
            "annotations": [
                {"id": "a1", "sourceType": "specific_text", "text": "4 Wochen", "severity": "hoch"},
                {"id": "m1", "sourceType": "missing_clause", "text": "Urlaub"},
            ],
        })

        assert response.status_code == 200
        body = response.json()
        [span] = body["spans"]
        assert CONTENT[span["start"]:span["end"]] == "4 Wochen"
        assert span["severity"] == "high"
        assert span["style"] == "direct_violation"
        assert span["sourceAnnotationId"] == "a1"
        assert body["unlocatedAnnotationIds"] == ["m1"]

    def test_from_raw_legacy_answer(self, test_client):
        response = test_client.post("/api/highlights", json={
            "content": CONTENT,
            "raw": {"weitere_mängel": [{"problem": "Kündigung", "bewertung": "hoch"}]},
        })

        assert response.status_code == 200
        [span] = response.json()["spans"]
        assert CONTENT[span["start"]:span["end"]] == "Kündigung"
        assert span["annotationId"] == "mangel_0"

    def test_with_sections(self, test_client):
        sections = [s.model_dump(mode="json", by_alias=True) for s in detect_sections(CONTENT)]

        response = test_client.post("/api/highlights", json={
            "content": CONTENT,
            "sections": sections,
            "annotations": [{"id": "a1", "text": "Kündigung"}],
        })

        assert response.status_code == 200
        section_spans = response.json()["sectionSpans"]
        assert list(section_spans) == ["0"]
        assert section_spans["0"][0]["sectionIndex"] == 0

    def test_requires_annotations_or_raw(self, test_client):
        response = test_client.post("/api/highlights", json={"content": CONTENT})

        assert response.status_code == 400
        assert response.json()["error"] == "Either annotations or raw must be provided"

    def test_section_outside_content(self, test_client):
        response = test_client.post("/api/highlights", json={
            "content": CONTENT,
            "sections": [{"kind": "paragraph", "start": 0, "end": 500}],
            "annotations": [{"id": "a1", "text": "Kündigung"}],
        })

        assert response.status_code == 400

    def test_invalid_section_bounds(self, test_client):
        response = test_client.post("/api/highlights", json={
            "content": CONTENT,
            "sections": [{"kind": "paragraph", "start": 10, "end": 5}],
            "annotations": [],
        })

        assert response.status_code == 400
        assert response.json()["error"] == "Missing or invalid contract data"


class TestParseDocument:

    def test_text_upload(self, test_client, contract_text):
        response = test_client.post(
            "/api/parse-document",
            files={"file": ("vertrag.txt", contract_text.encode("utf-8"), "text/plain")},
        )

        assert response.status_code == 200
        contract = response.json()["contract"]
        assert contract["content"] == contract_text
        assert contract["analysisStatus"] == "pending"
        assert contract["sections"][0]["kind"] == "heading"

    def test_rejects_unsupported_extension(self, test_client):
        response = test_client.post(
            "/api/parse-document",
            files={"file": ("bild.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Please upload a PDF or Word (.docx) file"

    def test_rejects_unreadable_pdf(self, test_client):
        response = test_client.post(
            "/api/parse-document",
            files={"file": ("vertrag.pdf", b"kein pdf", "application/pdf")},
        )

        assert response.status_code == 400


class TestClassify:

    def test_classify(self, test_client, use_llm):
        use_llm({"primaryType": "nda", "confidence": 0.95, "reasoning": "Geheimhaltung"})

        response = test_client.post("/api/classify-contract", json={"content": "Vereinbarung zur Geheimhaltung."})

        assert response.status_code == 200
        classification = response.json()["classification"]
        assert classification["primaryType"] == "nda"
        assert classification["confidence"] == 0.95
        assert "structuralIndicators" in classification

    def test_empty_content_is_rejected(self, test_client, use_llm):
        use_llm({})

        assert test_client.post("/api/classify-contract", json={"content": ""}).status_code == 400


class TestAnalyze:

    def test_analyze(self, test_client, use_llm, contract_text):
        client = use_llm({
            "overallRisk": "medium",
            "summary": "Weisungsgebundenheit",
            "annotations": [{
                "id": "s1",
                "sourceType": "structural_inference",
                "severity": "critical",
                "contributingFactors": [
                    {"clauseReference": "§ 2", "factorText": "täglich von 9 bis 17 Uhr"},
                    {"clauseReference": "§ 4", "factorText": "unterliegt den Weisungen"},
                ],
            }],
        })

        response = test_client.post("/api/analyze-contract", json={
            "content": contract_text,
            "name": "Werkvertrag",
            "contractType": "werkvertrag",
        })

        assert response.status_code == 200
        body = response.json()
        assert len(client.requests) == 1
        assert body["classification"] is None
        assert body["analysis"]["overallRisk"] == "medium"
        [annotation] = body["analysis"]["annotations"]
        assert annotation["sourceType"] == "structural_inference"
        assert annotation["startOffset"] == contract_text.index("täglich von 9 bis 17 Uhr")
        assert [s["annotationId"] for s in body["highlights"]["spans"]] == ["s1_factor_§ 2", "s1_factor_§ 4"]

    def test_missing_name(self, test_client, use_llm, contract_text):
        use_llm({})

        response = test_client.post("/api/analyze-contract", json={"content": contract_text})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Missing or invalid contract data"
        assert body["status_code"] == 400
        assert body["details"]["errors"]

    def test_invalid_model_answer(self, test_client, use_llm, contract_text):
        use_llm("Leider kein JSON.")

        response = test_client.post("/api/analyze-contract", json={
            "content": contract_text, "name": "Vertrag", "contractType": "general",
        })

        assert response.status_code == 502
        body = response.json()
        assert body["error"] == "Invalid AI response format"
        assert body["details"]["raw"] == "Leider kein JSON."

    def test_model_service_failure(self, test_client, use_llm, contract_text):
        use_llm({}, status_code=503)

        response = test_client.post("/api/analyze-contract", json={
            "content": contract_text, "name": "Vertrag", "contractType": "general",
        })

        assert response.status_code == 502
        assert response.json()["error"] == "AI service returned HTTP 503"

    def test_not_configured(self, test_client, use_llm, contract_text):
        use_llm({}, api_key="")

        response = test_client.post("/api/analyze-contract", json={"content": contract_text, "name": "Vertrag"})

        assert response.status_code == 500
        assert response.json()["error"] == "AI analysis service not configured"
