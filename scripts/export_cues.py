#!/usr/bin/env python
# Dump every transcript's cue sequence as {relative path: [cue, ...]} JSON.
import argparse
import asyncio
import os

from tqdm import tqdm

from transcript_project.io.cache import DEFAULT_CACHE_ROOT, init_shared_caches
from transcript_project.io.jsonio import safe_write_json
from transcript_project.logconfig import configure_logging
from transcript_project.pipeline.transcript_engine import TranscriptEngine


async def export(transcript_dir: str, cache_dir: str, extensions: list) -> dict:
    engine = TranscriptEngine(transcript_dir, init_shared_caches(cache_dir), extensions=extensions)
    out = {}
    for path in tqdm(await engine.get_transcript_files(), desc="parse", unit="file"):
        try:
            cues = await engine.parse_transcript(path)
        except (OSError, UnicodeDecodeError) as exc:
            print(f"[warn] skipping {path}: {exc}", flush=True)
            continue
        out[engine.cache_key(path)] = [c.to_dict() for c in cues]
    return out


def main() -> None:
    ap = argparse.ArgumentParser(description="Export parsed transcript cues to JSON.")
    ap.add_argument("--dir", default=os.environ.get("TRANSCRIPT_DIR", "data/transcripts"))
    ap.add_argument("--out", required=True)
    ap.add_argument("--cache_dir", default=os.environ.get("TRANSCRIPT_CACHE_DIR", DEFAULT_CACHE_ROOT))
    ap.add_argument("--extensions", default=".txt")
    ap.add_argument("--log_level", default="WARNING")
    ap.add_argument("--log_file", help="Also write log records to this file.")
    args = ap.parse_args()

    configure_logging(args.log_level, args.log_file)
    exported = asyncio.run(export(args.dir, args.cache_dir, args.extensions.split(",")))
    safe_write_json(args.out, exported)
    total = sum(len(v) for v in exported.values())
    print(f"[ok] files={len(exported)} cues={total} -> {args.out}", flush=True)


if __name__ == "__main__":
    main()
