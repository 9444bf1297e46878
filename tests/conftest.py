from io import BytesIO

import pytest
from docx import Document
from docx.opc.constants import RELATIONSHIP_TYPE
from docx.oxml import OxmlElement
from docx.oxml.ns import qn

from docx_document import DocxDocument, paragraph_runs


def build_docx(*paragraphs):
    """
    Build an in-memory python-docx Document.

    Each paragraph is either a plain string (one run) or a list of
    (text, italic) tuples, one run per tuple.
    """
    doc = Document()
    for para in paragraphs:
        p = doc.add_paragraph()
        if isinstance(para, str):
            p.add_run(para)
        else:
            for text, italic in para:
                run = p.add_run(text)
                run.italic = italic
    return doc


def docx_bytes(*paragraphs) -> bytes:
    out = BytesIO()
    build_docx(*paragraphs).save(out)
    return out.getvalue()


def add_hyperlink(paragraph, text, url="https://example.com/case"):
    """
    Append `text` to the paragraph as a run wrapped in an external
    <w:hyperlink>, and return the hyperlink element.
    """
    r_el = paragraph.add_run(text)._element
    paragraph._p.remove(r_el)

    hyperlink = OxmlElement("w:hyperlink")
    r_id = paragraph.part.relate_to(url, RELATIONSHIP_TYPE.HYPERLINK, is_external=True)
    hyperlink.set(qn("r:id"), r_id)
    hyperlink.append(r_el)

    paragraph._p.append(hyperlink)
    return hyperlink


def run_summary(paragraph):
    """
    [(text, italic, "RRGGBB" or None), ...] for every run of `paragraph`,
    hyperlinked runs included.
    """
    summary = []
    for run in paragraph_runs(paragraph):
        rgb = run.font.color.rgb
        summary.append((run.text, run.font.italic, str(rgb) if rgb is not None else None))
    return summary


@pytest.fixture
def make_document():
    def _make(*paragraphs):
        return DocxDocument(build_docx(*paragraphs))
    return _make
