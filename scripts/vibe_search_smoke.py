#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging

from engine.search_engine import UnifiedSearchService
from providers.errors import ProviderError, SearchError


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run one vibe search against the configured music providers.")
    parser.add_argument("vibe", nargs="+", help="Free-text vibe, e.g. 'chill study lofi'.")
    parser.add_argument("--max-results", type=int, default=10, help="Maximum merged tracks to print.")
    parser.add_argument("--no-fallback", action="store_true", help="Disable the parallel fallback phase.")
    parser.add_argument("--smart", action="store_true", help="Use every configured provider, Spotify first.")
    parser.add_argument("--json", action="store_true", help="Print the full response as JSON.")
    parser.add_argument("--verbose", action="store_true", help="Log provider events to stderr.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    vibe = " ".join(args.vibe).strip()
    service = UnifiedSearchService(
        config={"max_results": max(1, args.max_results), "fallback_enabled": not args.no_fallback},
    )
    try:
        response = service.smart_search(vibe) if args.smart else service.search_music(vibe)
    except (ProviderError, SearchError) as exc:
        print(f"search failed ({exc.kind.value}): {exc}")
        return 2

    if args.json:
        print(json.dumps(response.as_dict(), indent=2, ensure_ascii=False))
        return 0

    print(
        f"vibe={vibe!r} status={response.status.value} results={response.total_results} "
        f"providers={','.join(response.providers) or '-'} time_ms={response.search_time}"
    )
    for name, kind in response.errors.items():
        print(f"  ! {name}: {kind.value}")
    for idx, track in enumerate(response.tracks, start=1):
        print(f"{idx}. [{track.provider}] {track.title} | {track.artist} | {track.duration}s")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
