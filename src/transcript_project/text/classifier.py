"""
classifier.py

This module categorizes single transcript lines.

Two source conventions are handled side by side:

    - TV transcripts: "PICARD: Make it so.", "[Bridge]", "(He sits.)",
      "Captain's log: ...", credit headers and a "<Back to the episode
      listing" footer.
    - Film screenplays: numbered scene headings ("12  INT. BRIDGE  12"),
      "42 OMITTED" placeholders and heavily indented speaker labels with
      the dialogue on the following lines.

classify_line() evaluates an ordered list of (kind, predicate) rules and the
first match wins. It is stateless; what a category *means* for the cue
being built is decided in assembler.py.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple


def clean_spaces(s: str) -> str:
    return re.sub(r"\s+", " ", s).strip()


class LineKind(Enum):
    CREDIT = "credit"
    BLANK = "blank"
    FOOTER = "footer"
    OMISSION = "omission"
    SCENE_HEADER = "scene_header"
    MOVIE_SPEAKER = "movie_speaker"
    CUE_START = "cue_start"
    CONTINUATION = "continuation"


@dataclass(frozen=True)
class ClassifiedLine:
    """
    kind: category of the line
    text: the line with surrounding whitespace stripped
    speaker: captured speaker name (CUE_START form (a) and MOVIE_SPEAKER)
    scene: whitespace-normalized scene text (SCENE_HEADER)
    """
    kind: LineKind
    text: str
    speaker: Optional[str] = None
    scene: Optional[str] = None


# Production credits and metadata headers. An optional "[null]" artifact may
# precede them in scraped transcripts.
CREDIT_RE = re.compile(
    r"""^(?:\s*\[null\]\s*)?
    (?:
        Story\ by | Screenplay\ by | Written\ by | Directed\ by | Produced\ by |
        Executive\ Producer | Co-Executive\ Producer | Associate\ Producer |
        Consulting\ Producer | Teleplay\ by | First\ Draft |
        Original\ Airdate: | Airdate: |
        Captain's\ log,\ supplemental |
        Stardate.*\d+\.\d+ |
        basée\ sur\ une\ idée\ originale | une\ coproduction\ de |
        adapté\ par | dialogues\ de | scénario\ et\ dialogues |
        September\ 29,\ 1995 |
        copyright | all\ rights\ reserved | transcribed\ by |
        credits?\ and\ transcriptions\ by
    )""",
    re.IGNORECASE | re.VERBOSE,
)

FOOTER_RE = re.compile(r"^\s*<Back to the episode listing")

# "42 OMITTED", "42 OMITTED 42" or a bare scene number.
OMISSION_RE = re.compile(r"^\s*(?:\d+\s+OMITTED(?:\s+\d+)?|\d+)\s*$")

# "  1   A BLACK VOID          1" -> "A BLACK VOID"
SCENE_HEADER_RE = re.compile(r"^\s*\d+\s+(.+?)\s+\d+\s*$")

# Screenplay speaker label: 10+ leading spaces, caps name, no colon.
MOVIE_SPEAKER_RE = re.compile(
    r"^\s{10,}([A-Z][A-Z0-9\s'.]*(?:\([A-Z\s.']+\))?(?:'S\sVOICE)?)\s*$"
)

_SPEAKER_TAG = (
    r"[A-Z][A-Z0-9\s,'\-.()]*"  # name, may contain literal parentheses
    r"(?:\s*\([^)]*?\))?"  # (V.O.)
    r"(?:\s*\[[^\]]*?\])?"  # [OC]
)

CUE_START_RE = re.compile(
    r"^\s*(?:"
    r"(?:(?:\([^)]*?\)\s*)?(?P<speaker>" + _SPEAKER_TAG + r")\s*:)"
    r"|(?:\((?P<paren>[^)]*?)\))"
    r"|(?:\[(?P<bracket>.*?)\])"
    r"|(?P<log>(?:Stardate|Captain's log|Original Airdate):)"
    r")"
)


Predicate = Callable[[str, str], Optional[object]]

# (kind, predicate(raw, stripped)) in precedence order.
_RULES: List[Tuple[LineKind, Predicate]] = [
    (LineKind.CREDIT, lambda raw, s: CREDIT_RE.match(s)),
    (LineKind.BLANK, lambda raw, s: not s),
    (LineKind.FOOTER, lambda raw, s: FOOTER_RE.match(raw)),
    (LineKind.OMISSION, lambda raw, s: OMISSION_RE.match(raw)),
    (LineKind.SCENE_HEADER, lambda raw, s: SCENE_HEADER_RE.match(s)),
    (LineKind.MOVIE_SPEAKER, lambda raw, s: MOVIE_SPEAKER_RE.match(raw)),
    (LineKind.CUE_START, lambda raw, s: CUE_START_RE.match(s)),
]


def classify_line(raw: str) -> ClassifiedLine:
    """
    Classify one raw line (without its trailing newline).

    Trailing "\\r" and other surrounding whitespace are insignificant. Only
    the movie-speaker rule looks at the leading indentation of the raw line.
    """
    stripped = raw.strip()
    for kind, predicate in _RULES:
        m = predicate(raw, stripped)
        if not m:
            continue

        if kind is LineKind.SCENE_HEADER:
            return ClassifiedLine(kind, stripped, scene=clean_spaces(m.group(1)))
        if kind is LineKind.MOVIE_SPEAKER:
            return ClassifiedLine(kind, stripped, speaker=m.group(1).strip())
        if kind is LineKind.CUE_START:
            speaker = m.group("speaker")
            return ClassifiedLine(kind, stripped, speaker=speaker.strip() if speaker else None)
        return ClassifiedLine(kind, stripped)

    return ClassifiedLine(LineKind.CONTINUATION, stripped)
