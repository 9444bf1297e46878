#!/usr/bin/env python3
# ============================================================
#   CITEMARK — CITATION MARKER ENGINE
# ============================================================

import logging
import os
import sys
from dataclasses import dataclass, field

from citations import MatchSet, extract_matches
from docx_document import DocumentError, DocxDocument, SyncError, parse_color
from report import escape_html, publish_report, render_report

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StyleSpec:
    """Emphasis applied to the name part of a match."""
    color: str
    italic: bool = True


CITATION_STYLE = StyleSpec("red")
ACT_STYLE = StyleSpec("blue")


@dataclass
class MarkerConfig:
    """
    Configuration switches for the citation marker.

    mark_citations / mark_acts:
        Turn either grammar off entirely. Disabled matches are neither
        formatted nor reported.

    citation_color / act_color:
        Any colour name the document adapter knows ("red", "blue", ...)
        or a "#RRGGBB" string.
    """
    mark_citations: bool = True
    mark_acts: bool = True
    citation_color: str = CITATION_STYLE.color
    act_color: str = ACT_STYLE.color

    def citation_style(self) -> StyleSpec:
        return StyleSpec(self.citation_color)

    def act_style(self) -> StyleSpec:
        return StyleSpec(self.act_color)


def build_config(overrides: dict | None = None) -> MarkerConfig:
    """Default MarkerConfig with any known keys from `overrides` applied."""
    config = MarkerConfig()
    if overrides:
        for key, value in overrides.items():
            if hasattr(config, key):
                setattr(config, key, value)
            else:
                logger.warning("Ignoring unknown marker option %r", key)
    return config


@dataclass
class MarkResult:
    """
    What one marking run found and did.

    skipped counts matches whose full text was not found in the document;
    unplaced counts matches whose full text was found but whose pre-date
    text was not found inside any of those hits.
    """
    matches: MatchSet
    styled: int = 0
    skipped: int = 0
    unplaced: int = 0
    failures: list[str] = field(default_factory=list)

    def to_metadata(self) -> dict:
        return {
            "citations": len(self.matches.citations),
            "acts": len(self.matches.acts),
            "styled_ranges": self.styled,
            "skipped_matches": self.skipped,
            "unplaced_matches": self.unplaced,
            "failures": list(self.failures),
        }


# ============================================================
# RANGE RESOLUTION
# ============================================================

def iter_occurrences(document, match):
    """
    Yield (outer_range, sub_ranges) for every place `match` occurs.

    We search for the *full* match (name + date) first, so a name that
    shows up elsewhere without that date is left alone. Inside each hit
    we then search for the pre-date text only, which is what actually
    gets formatted.

    Occurrences are yielded one at a time; a caller that styles as it
    iterates finishes one occurrence before the next one is searched.
    """
    pre_date = match.pre_date
    if not pre_date:
        logger.debug("Empty pre-date text for %r; skipping", match.full_text)
        return

    outer_ranges = document.search(match.full_text, case_sensitive=False, whole_word=False)
    if not outer_ranges:
        logger.debug("%r not found in document; skipping", match.full_text)
        return

    for outer in outer_ranges:
        sub_ranges = outer.search(pre_date, case_sensitive=False, whole_word=False)
        if not sub_ranges:
            # Found the full text but not the name inside it. Left unformatted.
            logger.debug("No %r inside %r", pre_date, outer.text)
        yield outer, sub_ranges


def resolve_ranges(document, match) -> list:
    """Every range to format for `match`, in document order."""
    return [rng for _, sub_ranges in iter_occurrences(document, match) for rng in sub_ranges]


# ============================================================
# FORMATTING
# ============================================================

def apply_style(rng, style: StyleSpec):
    """
    Italicise (only if it isn't already) and colour one range.
    Running it twice leaves the range italic with the same colour.
    """
    if style.italic and not rng.font.italic:
        rng.font.italic = True
    rng.font.color = style.color


def _record_range_failure(result: MarkResult, rng, message):
    logger.error("Failed to set color/italic for range %r: %s", rng.text, message)
    result.failures.append(f"{rng.text}: {message}")


def mark_match(document, match, style: StyleSpec, result: MarkResult):
    """
    Format every target range of one match, then sync once.

    A failure on one range, whether staging the write or committing it,
    is logged and its siblings are still styled. A range only counts as
    styled once its writes are committed. Search or sync failures
    abandon this match only.
    """
    staged = []
    try:
        located = placed = False
        for _outer, sub_ranges in iter_occurrences(document, match):
            located = True
            placed = placed or bool(sub_ranges)
            for rng in sub_ranges:
                try:
                    apply_style(rng, style)
                    staged.append(rng)
                except DocumentError as e:
                    _record_range_failure(result, rng, e)

        if not located:
            result.skipped += 1
        elif not placed:
            result.unplaced += 1

        try:
            document.sync()
        except SyncError as e:
            failed = {id(rng) for rng, _ in e.failures}
            for rng, message in e.failures:
                _record_range_failure(result, rng, message)
            staged = [rng for rng in staged if id(rng) not in failed]
        result.styled += len(staged)
    except DocumentError as e:
        logger.error("Error processing match %r: %s", match.full_text, e)
        result.failures.append(f"{match.full_text}: {e}")


def mark_document(document, config: MarkerConfig | None = None, sink=None) -> MarkResult:
    """
    Find every citation and Act in `document` and format it in place.

    All matching is done on one text snapshot up front. Citations are
    formatted before acts, each in document order. The report goes to
    `sink` (or the log when there is no sink).
    """
    if config is None:
        config = MarkerConfig()

    text = document.get_full_text() or ""
    matches = extract_matches(text, citations=config.mark_citations, acts=config.mark_acts)
    result = MarkResult(matches=matches)

    for match in matches.citations:
        mark_match(document, match, config.citation_style(), result)
    for match in matches.acts:
        mark_match(document, match, config.act_style(), result)

    if result.failures:
        logger.warning("%d formatting failure(s)", len(result.failures))

    publish_report(matches, sink)
    return result


def run(source, sink=None, config: MarkerConfig | None = None) -> MarkResult | None:
    """
    The single user action: open, mark, report.

    If the document cannot be read, the error is written to `sink` (or
    logged) and nothing else happens.
    """
    try:
        document = source if isinstance(source, DocxDocument) else DocxDocument.open(source)
        return mark_document(document, config, sink)
    except DocumentError as err:
        logger.error("Error searching document: %s", err)
        if sink is not None:
            sink.write(f"Error: {escape_html(err)}")
        return None


# ============================================================
# FILE / BYTES ENTRY POINTS
# ============================================================

def mark_docx_bytes(
    docx_bytes: bytes,
    marker_config: dict | None = None,
) -> tuple[bytes, dict]:
    """
    High-level engine API for web/backend use.

    - Accepts a .docx file as raw bytes.
    - Returns (marked_docx_bytes, metadata_dict).
    - Raises DocumentOpenError if the bytes are not a readable .docx.

    'marker_config' can override fields on MarkerConfig, for example:
        {"mark_acts": False, "citation_color": "#AA0000"}
    """
    config = build_config(marker_config)
    document = DocxDocument.open(docx_bytes)
    result = mark_document(document, config)

    metadata = result.to_metadata()
    metadata["matches"] = result.matches.to_dict()
    return document.to_bytes(), metadata


def run_marker(
    docx_path: str,
    config: MarkerConfig | None = None,
    report_path: str | None = None,
) -> str:
    """
    Mark the document at `docx_path` and return the path of the saved
    *_marked.docx file. Optionally writes the HTML report as well.
    """
    document = DocxDocument.open(docx_path)
    result = mark_document(document, config)

    output_path = os.path.splitext(docx_path)[0] + "_marked.docx"
    document.save(output_path)

    if report_path:
        with open(report_path, "w", encoding="utf-8") as f:
            f.write(render_report(result.matches))

    logger.info("Marked %s: %s", docx_path, result.to_metadata())
    return output_path


def main(argv=None) -> int:
    import argparse

    parser = argparse.ArgumentParser(
        description="Italicise and colour case citations and Acts in .docx files.",
    )

    parser.add_argument(
        "documents",
        nargs="+",
        help="Path(s) to .docx file(s) to mark",
    )

    parser.add_argument(
        "--no-citations",
        action="store_true",
        help="Do not mark 'A v B [YYYY]' citations",
    )

    parser.add_argument(
        "--no-acts",
        action="store_true",
        help="Do not mark 'Name Act (YYYY)' references",
    )

    parser.add_argument(
        "--citation-color",
        default=CITATION_STYLE.color,
        help="Colour for citations (default: red)",
    )

    parser.add_argument(
        "--act-color",
        default=ACT_STYLE.color,
        help="Colour for Acts (default: blue)",
    )

    parser.add_argument(
        "--report",
        help="Write an HTML report of the matches to this path "
             "(with several documents, the last one wins)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log every skipped match and range",
    )

    args = parser.parse_args(argv)

    for color in (args.citation_color, args.act_color):
        try:
            parse_color(color)
        except ValueError as e:
            parser.error(str(e))

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = MarkerConfig(
        mark_citations=not args.no_citations,
        mark_acts=not args.no_acts,
        citation_color=args.citation_color,
        act_color=args.act_color,
    )

    status = 0
    for path in args.documents:
        try:
            output_path = run_marker(path, config=config, report_path=args.report)
            print(f"Marked: {path} -> {output_path}")
        except (DocumentError, OSError) as e:
            print(f"Error processing {path}: {e}", file=sys.stderr)
            status = 1
    return status


if __name__ == "__main__":
    sys.exit(main())
