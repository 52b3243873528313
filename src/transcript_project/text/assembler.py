"""
assembler.py

This module turns classified transcript lines into Cue objects.

Purpose in the pipeline
-----------------------
classifier.py only says what a single line *looks like*. Whether that line
starts a cue, extends one, attributes the next line to a screenplay speaker
or carries a scene heading forward depends on what came before. That
context lives in a ParsingState:

    - current:         the cue being accumulated (DraftCue or None)
    - pending_speaker: a name from an indented screenplay label, waiting for
                       the next content line
    - scene_context:   the most recent scene heading text, prefixed onto
                       bare description lines as "[context] ..."

step() is a pure transition: (state, classified line) -> (state, emitted
cue or None). At most one cue is emitted per line. parse_lines() folds it
over a whole file and flushes the last cue.

This module is deterministic and performs no I/O.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

from transcript_project.text.classifier import ClassifiedLine, LineKind, classify_line

logger = logging.getLogger(__name__)

NULL_ARTIFACT = "[null]"


@dataclass(frozen=True)
class Cue:
    """
    One finalized utterance or stage direction.

    For dialogue, text already carries the "SPEAKER: " prefix.
    """
    text: str
    speaker: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"text": self.text}
        if self.speaker is not None:
            d["speaker"] = self.speaker
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Cue":
        return cls(text=d["text"], speaker=d.get("speaker"))


@dataclass(frozen=True)
class DraftCue:
    text: str
    speaker: Optional[str] = None


@dataclass(frozen=True)
class ParsingState:
    current: Optional[DraftCue] = None
    pending_speaker: Optional[str] = None
    scene_context: Optional[str] = None


def _strip_null_artifact(text: str) -> str:
    if text.startswith(NULL_ARTIFACT + " "):
        text = text[len(NULL_ARTIFACT) + 1:]
    if text == NULL_ARTIFACT:
        text = ""
    return text


def finalize(state: ParsingState) -> Tuple[ParsingState, Optional[Cue]]:
    """
    Close the in-progress cue.

    Returns the state with `current` cleared and the finished Cue, or None
    when nothing worth emitting was accumulated. Dialogue always clears the
    scene context; a description line consumes it only when the line is
    exactly "[context]".
    """
    draft = state.current
    state = replace(state, current=None)
    if draft is None or not draft.text.strip():
        return state, None

    text = _strip_null_artifact(draft.text.strip())
    speaker = draft.speaker.strip() if draft.speaker and draft.speaker.strip() else None
    if not text and not speaker:
        return state, None

    if speaker:
        body = text
        if text.upper().startswith(f"{speaker.upper()}:"):
            body = text[len(speaker) + 1:].strip()
        cue = Cue(text=f"{speaker}: {body}", speaker=speaker)
        state = replace(state, scene_context=None)
    else:
        context = state.scene_context
        if context:
            tag = f"[{context}]"
            bracketed = text.startswith("[") and text.endswith("]")
            if bracketed and text.upper() == tag.upper():
                state = replace(state, scene_context=None)
            elif not bracketed and not text.upper().startswith(tag.upper()):
                text = f"{tag} {text}"
        cue = Cue(text=text)

    if not cue.text.strip():
        return state, None
    logger.debug("finalized cue: %s", cue.to_dict())
    return state, cue


def step(state: ParsingState, line: ClassifiedLine) -> Tuple[ParsingState, Optional[Cue]]:
    kind = line.kind

    if kind is LineKind.CREDIT:
        state, cue = finalize(state)
        return replace(state, pending_speaker=None, scene_context=None), cue

    if kind in (LineKind.BLANK, LineKind.FOOTER, LineKind.OMISSION):
        # pending speaker and scene context survive these
        return finalize(state)

    if kind is LineKind.SCENE_HEADER:
        state, cue = finalize(state)
        logger.debug("scene header: %s", line.scene)
        return replace(state, pending_speaker=None, scene_context=line.scene), cue

    if kind is LineKind.MOVIE_SPEAKER:
        state, cue = finalize(state)
        logger.debug("movie speaker: %s", line.speaker)
        return replace(state, pending_speaker=line.speaker), cue

    if kind is LineKind.CUE_START:
        state, cue = finalize(state)
        draft = DraftCue(text=line.text, speaker=line.speaker)
        return replace(state, current=draft, pending_speaker=None), cue

    # continuation
    if state.pending_speaker:
        state, cue = finalize(state)
        draft = DraftCue(text=line.text, speaker=state.pending_speaker)
        return replace(state, current=draft, pending_speaker=None), cue
    if state.current is not None:
        draft = replace(state.current, text=f"{state.current.text} {line.text}")
        return replace(state, current=draft), None
    return replace(state, current=DraftCue(text=line.text)), None


def parse_lines(lines: Iterable[str]) -> List[Cue]:
    """
    Parse raw lines (in file order) into cues.

    The ParsingState is created here and discarded once the last cue has
    been flushed.
    """
    state = ParsingState()
    cues: List[Cue] = []
    for raw in lines:
        state, cue = step(state, classify_line(raw))
        if cue is not None:
            cues.append(cue)

    _, cue = finalize(state)
    if cue is not None:
        cues.append(cue)
    return cues


def parse_text(text: str) -> List[Cue]:
    return parse_lines(text.split("\n"))
