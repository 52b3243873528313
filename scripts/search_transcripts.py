#!/usr/bin/env python
import argparse
import asyncio
import json
import os

from transcript_project.io.cache import DEFAULT_CACHE_ROOT, ONE_WEEK_SECONDS, init_shared_caches
from transcript_project.io.jsonio import safe_write_json
from transcript_project.logconfig import configure_logging
from transcript_project.pipeline.search import SearchEngine
from transcript_project.pipeline.transcript_engine import TranscriptEngine


async def run(args: argparse.Namespace) -> dict:
    caches = init_shared_caches(None if args.no_cache_files else args.cache_dir, args.ttl)
    engine = TranscriptEngine(args.dir, caches, extensions=args.extensions.split(","))
    search = SearchEngine(
        engine,
        on_error="skip" if args.skip_unreadable else "raise",
        show_progress=not args.quiet,
    )
    if args.speaker:
        result = await search.search_dialog(args.speaker, args.context)
    else:
        result = await search.search_keyword(args.keyword, args.context)
    return result.to_dict()


def main() -> None:
    """
    Command-line entry point for transcript search.

    All of the work happens in transcript_project.pipeline.search; this only
    wires arguments to it.
    """
    ap = argparse.ArgumentParser(description="Search parsed transcripts by speaker or keyword.")
    ap.add_argument("--dir", default=os.environ.get("TRANSCRIPT_DIR", "data/transcripts"))
    group = ap.add_mutually_exclusive_group(required=True)
    group.add_argument("--speaker", help="Regex matched against the speaker name (e.g. 'PICARD|LOCUTUS').")
    group.add_argument("--keyword", help="Regex searched in the dialogue body.")
    ap.add_argument("--context", type=int, default=0, help="Cues of context before and after each match.")
    ap.add_argument("--out", help="Write the result JSON here instead of stdout.")
    ap.add_argument(
        "--cache_dir",
        default=os.environ.get("TRANSCRIPT_CACHE_DIR", DEFAULT_CACHE_ROOT),
        help="Root directory for persisted cache files.",
    )
    ap.add_argument("--no_cache_files", action="store_true", help="Keep the cache in memory only.")
    ap.add_argument("--ttl", type=int, default=ONE_WEEK_SECONDS, help="Cache TTL in seconds (0 = never expire).")
    ap.add_argument("--extensions", default=".txt", help="Comma-separated transcript extensions, e.g. '.txt,.pdf'.")
    ap.add_argument(
        "--skip_unreadable",
        action="store_true",
        help="Skip files that cannot be read instead of aborting the search.",
    )
    ap.add_argument("--quiet", action="store_true", help="Hide the progress bar.")
    ap.add_argument("--log_level", default="WARNING")
    ap.add_argument("--log_file", help="Also write log records to this file.")
    args = ap.parse_args()

    configure_logging(args.log_level, args.log_file)
    result = asyncio.run(run(args))

    if args.out:
        safe_write_json(args.out, result)
        print(f"[ok] matches={result['total']} -> {args.out}", flush=True)
    else:
        print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
