"""
search.py

Pattern search over every transcript's cue sequence.

Two predicates, both case-insensitive regular expressions:

    - speaker: the cue's speaker must equal the pattern, ignoring a trailing
      "(V.O.)" / "[OC]" style annotation on the speaker
    - keyword: the pattern must occur in the cue's dialogue body (the
      "SPEAKER:" prefix is not searched)

Each match carries up to N cues before and after it, taken from the same
file only. Files are processed one after another in sorted path order, so
results come out in file-then-position order.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from tqdm import tqdm

from transcript_project.pipeline.transcript_engine import TranscriptEngine
from transcript_project.text.assembler import Cue

logger = logging.getLogger(__name__)

CuePredicate = Callable[[Cue], bool]

ON_ERROR_CHOICES = ("raise", "skip")


@dataclass(frozen=True)
class CueWithContext:
    cue: Cue
    before: List[Cue] = field(default_factory=list)  # oldest first
    after: List[Cue] = field(default_factory=list)  # nearest first
    file: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "cue": self.cue.to_dict(),
            "before": [c.to_dict() for c in self.before],
            "after": [c.to_dict() for c in self.after],
        }


@dataclass(frozen=True)
class SearchResult:
    matches: List[CueWithContext]
    total: int
    pattern: str
    context_lines_used: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matches": [m.to_dict() for m in self.matches],
            "total": self.total,
            "pattern": self.pattern,
            "contextLinesUsed": self.context_lines_used,
        }


def extract_dialogue(cue: Cue) -> str:
    """Cue text without its "SPEAKER:" prefix (unchanged for descriptions)."""
    text = cue.text
    if cue.speaker:
        prefix = f"{cue.speaker}:"
        if text.upper().startswith(prefix.upper()):
            text = text[len(prefix):].strip()
    return text


def speaker_matcher(pattern: str) -> CuePredicate:
    rx = re.compile(rf"^(?:{pattern})(?:\s*\([^)]*?\))?(?:\s*\[[^\]]*?\])?$", re.IGNORECASE)

    def match(cue: Cue) -> bool:
        return bool(cue.speaker) and rx.match(cue.speaker) is not None

    return match


def keyword_matcher(pattern: str) -> CuePredicate:
    rx = re.compile(pattern, re.IGNORECASE)

    def match(cue: Cue) -> bool:
        return rx.search(extract_dialogue(cue)) is not None

    return match


def clamp_context(context_lines: Any) -> int:
    try:
        n = int(context_lines or 0)
    except (TypeError, ValueError):
        return 0
    return max(0, n)


def collect_matches(cues: List[Cue], predicate: CuePredicate, context_lines: int = 0, file: str = "") -> List[CueWithContext]:
    """Matches within one file's cues, each with its bounded context window."""
    n = clamp_context(context_lines)
    out: List[CueWithContext] = []
    for idx, cue in enumerate(cues):
        if not predicate(cue):
            continue
        out.append(
            CueWithContext(
                cue=cue,
                before=cues[max(0, idx - n):idx],
                after=cues[idx + 1:idx + 1 + n],
                file=file,
            )
        )
    return out


class SearchEngine:
    """
    Args:
        engine: TranscriptEngine supplying (cached) cue sequences.
        on_error: "raise" aborts the whole search on an unreadable file;
            "skip" logs a warning and continues with the next file.
        show_progress: Show a tqdm bar over files.
    """

    def __init__(self, engine: TranscriptEngine, *, on_error: str = "raise", show_progress: bool = False):
        if on_error not in ON_ERROR_CHOICES:
            raise ValueError(f"on_error must be one of {ON_ERROR_CHOICES}, got {on_error!r}")
        self.engine = engine
        self.on_error = on_error
        self.show_progress = show_progress

    async def _search(self, predicate: CuePredicate, pattern: str, context_lines: int) -> SearchResult:
        n = clamp_context(context_lines)
        files = await self.engine.get_transcript_files()
        matches: List[CueWithContext] = []

        for path in tqdm(files, desc="search", unit="file", disable=not self.show_progress):
            try:
                cues = await self.engine.parse_transcript(path)
            except (OSError, UnicodeDecodeError) as exc:
                if self.on_error == "raise":
                    raise
                logger.warning("skipping unreadable transcript %s: %s", path, exc)
                continue
            matches.extend(collect_matches(cues, predicate, n, file=path))

        logger.info("search %r: %d match(es) across %d file(s)", pattern, len(matches), len(files))
        return SearchResult(matches=matches, total=len(matches), pattern=pattern, context_lines_used=n)

    async def search_dialog(self, pattern: str, context_lines: int = 0) -> SearchResult:
        """Cues spoken by a speaker matching pattern (e.g. "PICARD|LOCUTUS")."""
        return await self._search(speaker_matcher(pattern), pattern, context_lines)

    async def search_keyword(self, pattern: str, context_lines: int = 0) -> SearchResult:
        return await self._search(keyword_matcher(pattern), pattern, context_lines)
