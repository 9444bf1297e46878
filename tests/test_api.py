"""Tests for the FastAPI service."""

import pytest
from fastapi.testclient import TestClient

import citemark_api
from citemark_api import DOCX_MEDIA_TYPE, app
from conftest import docx_bytes, run_summary
from docx_document import DocxDocument

client = TestClient(app)

BRIEF = docx_bytes(
    "Lee v The Minister of Foreign Affairs [2003] is authority.",
    "The Interpretation Act (1971) applies.",
)


def upload(data: bytes = BRIEF, filename: str = "brief.docx"):
    return {"file": (filename, data, DOCX_MEDIA_TYPE)}


def test_read_root() -> None:
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


class TestScan:
    def test_lists_matches(self) -> None:
        resp = client.post("/scan", files=upload())
        assert resp.status_code == 200
        body = resp.json()
        assert body["citations"][0]["respondent"] == "The Minister of Foreign Affairs"
        assert body["acts"][0]["name_part"] == "The Interpretation Act"
        assert "<strong>#1</strong>" in body["html"]

    def test_no_matches(self) -> None:
        resp = client.post("/scan", files=upload(docx_bytes("Nothing to see.")))
        assert resp.json()["html"] == "No matches found."

    def test_rejects_non_docx(self) -> None:
        resp = client.post("/scan", files=upload(b"plain", "notes.txt"))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Please upload a .docx file"}

    def test_rejects_unreadable_docx(self) -> None:
        resp = client.post("/scan", files=upload(b"not a zip"))
        assert resp.status_code == 400
        assert "Could not open document" in resp.json()["error"]


class TestMark:
    def test_returns_marked_document(self) -> None:
        resp = client.post("/mark", files=upload())
        assert resp.status_code == 200
        assert resp.headers["content-type"] == DOCX_MEDIA_TYPE
        assert 'filename="brief_marked.docx"' in resp.headers["content-disposition"]
        assert resp.headers["x-citemark-citations"] == "1"
        assert resp.headers["x-citemark-acts"] == "1"
        assert resp.headers["x-citemark-styled"] == "2"

        citation_para, act_para = DocxDocument.open(resp.content).paragraphs()
        assert run_summary(citation_para)[0] == ("Lee v The Minister of Foreign Affairs", True, "FF0000")
        assert run_summary(act_para)[0] == ("The Interpretation Act", True, "0000FF")

    def test_form_overrides(self) -> None:
        resp = client.post(
            "/mark",
            files=upload(),
            data={"mark_acts": "false", "citation_color": "#00AA00"},
        )
        assert resp.status_code == 200
        assert resp.headers["x-citemark-acts"] == "0"

        citation_para, act_para = DocxDocument.open(resp.content).paragraphs()
        assert run_summary(citation_para)[0][2] == "00AA00"
        assert len(act_para.runs) == 1

    def test_rejects_bad_color(self) -> None:
        resp = client.post("/mark", files=upload(), data={"act_color": "mauve-ish"})
        assert resp.status_code == 400
        assert "Unsupported color" in resp.json()["error"]

    def test_rejects_non_docx(self) -> None:
        resp = client.post("/mark", files=upload(BRIEF, "brief.pdf"))
        assert resp.status_code == 400

    def test_rejects_unreadable_docx(self) -> None:
        resp = client.post("/mark", files=upload(b"not a zip"))
        assert resp.status_code == 400


class TestAuth:
    @pytest.fixture
    def auth_configured(self, monkeypatch):
        monkeypatch.setattr(citemark_api, "SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setattr(citemark_api, "SUPABASE_ANON_KEY", "anon-key")

    def test_missing_token(self, auth_configured) -> None:
        resp = client.post("/scan", files=upload())
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Missing Authorization header"

    def test_open_when_not_configured(self, monkeypatch) -> None:
        monkeypatch.setattr(citemark_api, "SUPABASE_URL", None)
        resp = client.post("/scan", files=upload())
        assert resp.status_code == 200
