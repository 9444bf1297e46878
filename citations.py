# ============================================================
#   CITEMARK — CITATION & ACT PATTERNS
# ============================================================

import re
from dataclasses import dataclass, field, asdict


# Characters allowed inside a party name or an Act name:
# letters, digits, straight and curly apostrophes, period, hyphen,
# comma, ampersand, parentheses and plain spaces.
NAME_CHARS = r"[A-Za-z0-9'’.\-,&() ]"

# "Lee v The Minister of Foreign Affairs [2003]" or "Mills v Harris (1975)"
#   - party names start with a letter and are matched lazily so that two
#     citations in one sentence are not swallowed into one
#   - 'v', 'v.' or 'versus'
#   - the year sits in square brackets or parentheses
CITATION_PATTERN = re.compile(
    rf"([A-Z]{NAME_CHARS}{{1,160}}?)"
    r"\s+v(?:\.|ersus)?\s+"
    rf"([A-Z]{NAME_CHARS}{{1,160}}?)"
    r"\s*[\[(]([0-9]{4})[\])]",
    re.IGNORECASE,
)

# "The Interpretation Act (1971)": the name has to end on the whole word "Act"
ACT_PATTERN = re.compile(
    rf"([A-Z]{NAME_CHARS}{{1,200}}?\bAct)"
    r"\s*[\[(]([0-9]{4})[\])]",
    re.IGNORECASE,
)

# One or more trailing "[1999]" / "(1999)" groups plus surrounding whitespace
TRAILING_YEAR_PATTERN = re.compile(r"(?:\s*[\[(][0-9]{4}[\])])+\s*$")


def pre_date_span(text: str) -> str:
    """
    Return `text` without its trailing bracketed year.

    "Mills v Harris (1975)" -> "Mills v Harris"

    Every trailing year group is removed, so running this on an already
    stripped string leaves it unchanged.
    """
    return TRAILING_YEAR_PATTERN.sub("", text)


@dataclass(frozen=True)
class CitationMatch:
    """A case citation such as "Lee v The Minister of Foreign Affairs [2003]"."""
    full_text: str
    claimant: str
    respondent: str
    year: str
    start: int

    @property
    def pre_date(self) -> str:
        return pre_date_span(self.full_text)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ActMatch:
    """A statute reference such as "The Interpretation Act (1971)"."""
    full_text: str
    name_part: str
    year: str
    start: int

    @property
    def pre_date(self) -> str:
        return pre_date_span(self.full_text)

    def to_dict(self) -> dict:
        return asdict(self)


def extract_citations(text: str) -> tuple[CitationMatch, ...]:
    """
    Scan `text` left to right for case citations.

    Matches never overlap and come back in document order. `finditer`
    steps past empty matches on its own, so pathological input such as
    "v v v" always terminates.
    """
    if not text:
        return ()
    return tuple(
        CitationMatch(
            full_text=m.group(0),
            claimant=m.group(1).strip(),
            respondent=m.group(2).strip(),
            year=m.group(3),
            start=m.start(),
        )
        for m in CITATION_PATTERN.finditer(text)
    )


def extract_acts(text: str) -> tuple[ActMatch, ...]:
    """Scan `text` left to right for "... Act (YYYY)" references."""
    if not text:
        return ()
    return tuple(
        ActMatch(
            full_text=m.group(0),
            name_part=m.group(1).strip(),
            year=m.group(2),
            start=m.start(),
        )
        for m in ACT_PATTERN.finditer(text)
    )


@dataclass(frozen=True)
class MatchSet:
    """
    Everything found in one snapshot of document text.

    Iterating yields citations first, then acts, which is also the order
    the marker formats them in.
    """
    citations: tuple[CitationMatch, ...] = field(default_factory=tuple)
    acts: tuple[ActMatch, ...] = field(default_factory=tuple)

    def __iter__(self):
        yield from self.citations
        yield from self.acts

    def __len__(self) -> int:
        return len(self.citations) + len(self.acts)

    def to_dict(self) -> dict:
        return {
            "citations": [c.to_dict() for c in self.citations],
            "acts": [a.to_dict() for a in self.acts],
        }


def extract_matches(text: str, *, citations: bool = True, acts: bool = True) -> MatchSet:
    """
    Run both grammars over the same text snapshot.

    All matching happens here, before the document is touched, so
    formatting one match can never shift the offsets of another.
    """
    return MatchSet(
        citations=extract_citations(text) if citations else (),
        acts=extract_acts(text) if acts else (),
    )
