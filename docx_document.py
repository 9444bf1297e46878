# ============================================================
#   CITEMARK — DOCUMENT ADAPTER (python-docx)
# ============================================================
#
# Gives the marker a small search/format/sync surface over a python-docx
# Document:
#
#   doc = DocxDocument.open(docx_bytes)
#   for r in doc.search("Mills v Harris (1975)"):
#       for sub in r.search("Mills v Harris"):
#           sub.font.italic = True
#           sub.font.color = "red"
#   doc.sync()
#
# Ranges address a paragraph plus a character span over the text of its
# runs, hyperlinked runs included. Font writes are staged and only reach the XML when sync() runs.

import logging
import re
from copy import deepcopy
from io import BytesIO

from docx import Document
from docx.shared import RGBColor
from docx.table import Table
from docx.text.hyperlink import Hyperlink
from docx.text.paragraph import Paragraph
from docx.text.run import Run

logger = logging.getLogger(__name__)


NAMED_COLORS = {
    "red": "FF0000",
    "blue": "0000FF",
    "green": "008000",
    "black": "000000",
    "orange": "FFA500",
    "purple": "800080",
}

HEX_COLOR_PATTERN = re.compile(r"^#?([0-9A-Fa-f]{6})$")


class DocumentError(Exception):
    """A search, style write or sync against the document failed."""


class DocumentOpenError(DocumentError):
    """The document could not be read at all."""


class SyncError(DocumentError):
    """
    Some staged writes could not be applied; every other write in the
    batch was. `failures` holds (range, message) pairs.
    """

    def __init__(self, failures):
        self.failures = list(failures)
        super().__init__("; ".join(f"{rng.text!r}: {msg}" for rng, msg in self.failures))


def parse_color(value: str) -> RGBColor:
    """
    Turn a colour name ("red") or hex string ("#FF0000") into an RGBColor.
    Raises ValueError for anything else.
    """
    if not isinstance(value, str):
        raise ValueError(f"Unsupported color: {value!r}")
    key = value.strip().lower()
    if key in NAMED_COLORS:
        return RGBColor.from_string(NAMED_COLORS[key])
    m = HEX_COLOR_PATTERN.match(key)
    if m:
        return RGBColor.from_string(m.group(1).upper())
    raise ValueError(f"Unsupported color: {value!r}")


def run_is_italic(run) -> bool:
    """
    Return True if this run should be treated as italic, either because
    its direct font formatting is italic or because its character style
    is italic (e.g., Word's Emphasis style).
    """
    if bool(run.font.italic):
        return True

    style = getattr(run, "style", None)
    if style is not None:
        try:
            if bool(style.font.italic):
                return True
        except AttributeError:
            pass

    return False


def paragraph_runs(paragraph) -> list:
    """
    Runs of the paragraph in reading order, including the runs inside
    w:hyperlink elements, which `paragraph.runs` leaves out.
    """
    runs = []
    for item in paragraph.iter_inner_content():
        if isinstance(item, Hyperlink):
            runs.extend(item.runs)
        else:
            runs.append(item)
    return runs


def paragraph_text(paragraph) -> str:
    """
    Text of the paragraph's runs (hyperlinks included), in order.

    Offsets in DocxRange are measured against this string, so it has to be
    built from exactly the runs we later split and format.
    """
    return "".join(run.text for run in paragraph_runs(paragraph))


def iter_paragraphs(container):
    """
    Yield every paragraph of `container` in reading order, descending into
    table cells. Merged cells show up once.
    """
    for item in container.iter_inner_content():
        if isinstance(item, Paragraph):
            yield item
        elif isinstance(item, Table):
            seen = set()
            for row in item.rows:
                for cell in row.cells:
                    if cell._tc in seen:
                        continue
                    seen.add(cell._tc)
                    yield from iter_paragraphs(cell)


def split_run(run, offset: int):
    """
    Split `run` at character `offset` and return the new right-hand run.
    Both halves keep the original run properties.
    """
    text = run.text
    right_el = deepcopy(run._r)
    run._r.addnext(right_el)
    run.text = text[:offset]
    right = Run(right_el, run._parent)
    right.text = text[offset:]
    return right


def runs_in_span(paragraph, start: int, end: int) -> list:
    """
    Return the runs covering paragraph text [start, end), splitting the
    runs at either boundary so the span is covered exactly.
    """
    covered = []
    pos = 0
    for run in paragraph_runs(paragraph):
        text = run.text
        run_start, run_end = pos, pos + len(text)
        pos = run_end
        if not text or run_end <= start or run_start >= end:
            continue
        if run_start < start:
            run = split_run(run, start - run_start)
            run_start = start
        if run_end > end:
            split_run(run, end - run_start)
        covered.append(run)
    return covered


def _search_pattern(literal: str, case_sensitive: bool, whole_word: bool):
    body = re.escape(literal)
    if whole_word:
        body = rf"(?<!\w){body}(?!\w)"
    return re.compile(body, 0 if case_sensitive else re.IGNORECASE)


class RangeFont:
    """
    Font view of a DocxRange.

    Reads come from the live runs (a pending write is reported first).
    `italic` is None when the range is partly italic, `color` is None when
    the runs disagree or have no explicit colour.
    """

    def __init__(self, rng):
        self._range = rng

    def _pending(self, attr):
        for rng, name, value in reversed(self._range.document._pending):
            if rng is self._range and name == attr:
                return True, value
        return False, None

    def _live_runs(self):
        para = self._range.paragraph
        start, end = self._range.start, self._range.end
        runs = []
        pos = 0
        for run in paragraph_runs(para):
            text = run.text
            run_start, run_end = pos, pos + len(text)
            pos = run_end
            if text and run_end > start and run_start < end:
                runs.append(run)
        return runs

    @property
    def italic(self):
        staged, value = self._pending("italic")
        if staged:
            return value
        flags = {run_is_italic(run) for run in self._live_runs()}
        if len(flags) == 1:
            return flags.pop()
        return None if flags else False

    @italic.setter
    def italic(self, value):
        if not isinstance(value, bool):
            raise DocumentError(f"italic must be a bool, got {value!r}")
        self._range.document._stage(self._range, "italic", value)

    @property
    def color(self):
        staged, value = self._pending("color")
        if staged:
            return value
        colors = set()
        for run in self._live_runs():
            rgb = run.font.color.rgb
            colors.add(f"#{rgb}" if rgb is not None else None)
        if len(colors) == 1:
            return colors.pop()
        return None

    @color.setter
    def color(self, value):
        try:
            parse_color(value)
        except ValueError as exc:
            raise DocumentError(str(exc)) from exc
        self._range.document._stage(self._range, "color", value)


class DocxRange:
    """A contiguous span of one paragraph."""

    def __init__(self, document, paragraph, start: int, end: int):
        self.document = document
        self.paragraph = paragraph
        self.start = start
        self.end = end
        self.text = paragraph_text(paragraph)[start:end]

    def __repr__(self):
        return f"DocxRange({self.text!r}, start={self.start}, end={self.end})"

    @property
    def font(self) -> RangeFont:
        return RangeFont(self)

    def search(self, literal: str, *, case_sensitive: bool = False, whole_word: bool = False) -> list:
        """Literal search limited to this range."""
        if not literal:
            return []
        pattern = _search_pattern(literal, case_sensitive, whole_word)
        return [
            DocxRange(self.document, self.paragraph, self.start + m.start(), self.start + m.end())
            for m in pattern.finditer(self.text)
        ]

    def _apply(self, attr, value):
        current = paragraph_text(self.paragraph)[self.start:self.end]
        if current != self.text:
            raise DocumentError(f"Range {self.text!r} no longer matches the document")
        runs = runs_in_span(self.paragraph, self.start, self.end)
        if attr == "italic":
            for run in runs:
                run.font.italic = value
        elif attr == "color":
            rgb = parse_color(value)
            for run in runs:
                run.font.color.rgb = rgb
        else:
            raise DocumentError(f"Unknown font attribute {attr!r}")


class DocxDocument:
    """
    Search/format/sync adapter over a python-docx Document.

    Paragraph texts are recomputed on every call; nothing about the
    document's content is cached between searches.
    """

    def __init__(self, document):
        self.docx = document
        self._pending = []

    @classmethod
    def open(cls, source):
        """
        Load a .docx from raw bytes, a path, or a binary file object.
        Any failure is reported as DocumentOpenError.
        """
        if isinstance(source, (bytes, bytearray)):
            source = BytesIO(source)
        try:
            return cls(Document(source))
        except Exception as exc:
            raise DocumentOpenError(f"Could not open document: {exc}") from exc

    def paragraphs(self) -> list:
        return list(iter_paragraphs(self.docx))

    def get_full_text(self) -> str:
        return "\n".join(paragraph_text(p) for p in self.paragraphs())

    def search(self, literal: str, *, case_sensitive: bool = False, whole_word: bool = False) -> list:
        """
        Literal search over every paragraph. A hit never spans two paragraphs.
        """
        if not literal:
            return []
        pattern = _search_pattern(literal, case_sensitive, whole_word)
        hits = []
        for para in self.paragraphs():
            for m in pattern.finditer(paragraph_text(para)):
                hits.append(DocxRange(self, para, m.start(), m.end()))
        return hits

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def _stage(self, rng, attr, value):
        self._pending.append((rng, attr, value))

    def sync(self):
        """
        Apply staged font writes in the order they were made.

        Each write is applied on its own, so one bad write does not stop
        the rest. If any failed, a single SyncError lists them after the
        whole batch has been tried. The batch is cleared either way.
        """
        if not self.has_pending:
            return
        pending, self._pending = self._pending, []
        failures = []
        for rng, attr, value in pending:
            try:
                rng._apply(attr, value)
            except DocumentError as exc:
                failures.append((rng, str(exc)))
            except Exception as exc:
                failures.append((rng, f"Failed to apply {attr}: {exc}"))
        logger.debug("Synced %d font change(s), %d failed", len(pending) - len(failures), len(failures))
        if failures:
            raise SyncError(failures)

    def save(self, target):
        self.docx.save(target)

    def to_bytes(self) -> bytes:
        out = BytesIO()
        self.docx.save(out)
        return out.getvalue()
