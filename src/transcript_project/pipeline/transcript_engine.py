"""
transcript_engine.py

Produces the cached cue sequence for each transcript file.

For one file:

1) Look up the "transcripts" cache by the file's path relative to the
   transcript directory.
2) On a miss, read the raw text (off the event loop), run the line
   classifier and cue assembler over it.
3) Store the cues (as JSON-safe dicts) and return them.

The cache is mandatory: constructing a TranscriptEngine without a
"transcripts" namespace in the CacheContext raises
MissingCacheNamespaceError. A read failure propagates to the caller; a
failed cache write never does.

Two overlapping parse_transcript() calls for the same file both parse and
both write the cache; callers that need exactly-once parsing serialize above
this layer.
"""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Callable, Iterable, List, Optional

from transcript_project.io.cache import TRANSCRIPT_CACHE_NAMESPACE, CacheContext
from transcript_project.io.transcript_reader import (
    DEFAULT_EXTENSIONS,
    list_transcript_files,
    read_transcript_text,
)
from transcript_project.text.assembler import Cue, parse_text

logger = logging.getLogger(__name__)


def _cues_from_cache(value: Any) -> Optional[List[Cue]]:
    """Rebuild cues from a cached value; None if it is not a list of cue dicts."""
    if not isinstance(value, list):
        return None
    cues: List[Cue] = []
    for d in value:
        if not isinstance(d, dict) or not isinstance(d.get("text"), str):
            return None
        speaker = d.get("speaker")
        if speaker is not None and not isinstance(speaker, str):
            return None
        cues.append(Cue.from_dict(d))
    return cues


class TranscriptEngine:
    """
    Args:
        transcript_dir: Root directory searched for transcript files.
        caches: CacheContext holding the "transcripts" namespace.
        extensions: File extensions treated as transcripts.
        read_text: Collaborator that returns a file's raw text.
    """

    def __init__(
        self,
        transcript_dir: str,
        caches: CacheContext,
        *,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        read_text: Callable[[str], str] = read_transcript_text,
    ):
        self.transcript_dir = transcript_dir
        self.cache = caches.require(TRANSCRIPT_CACHE_NAMESPACE)
        self.extensions = tuple(extensions)
        self._read_text = read_text
        logger.info(
            "transcript engine ready: dir=%s cache namespace=%s",
            transcript_dir,
            self.cache.namespace,
        )

    def cache_key(self, file_path: str) -> str:
        rel = os.path.relpath(os.path.abspath(file_path), os.path.abspath(self.transcript_dir))
        if rel.startswith(os.pardir):
            return os.path.abspath(file_path)
        return rel.replace(os.sep, "/")

    async def parse_transcript(self, file_path: str) -> List[Cue]:
        key = self.cache_key(file_path)

        cached = await self.cache.get(key)
        if cached is not None:
            cues = _cues_from_cache(cached)
            if cues is not None:
                logger.debug("cache hit for %s", key)
                return cues
            logger.warning("malformed cached cues for %s; deleting and parsing fresh", key)
            await self.cache.delete(key)

        logger.debug("cache miss for %s; parsing %s", key, file_path)
        text = await asyncio.to_thread(self._read_text, file_path)
        cues = parse_text(text)

        await self.cache.set(key, [c.to_dict() for c in cues])
        logger.info("parsed %s: %d cue(s)", file_path, len(cues))
        return cues

    async def get_transcript_files(self, directory: Optional[str] = None) -> List[str]:
        return await asyncio.to_thread(
            list_transcript_files, directory or self.transcript_dir, self.extensions
        )
