from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from ..api.schemas import SearchResponse
from .config import get_settings
from .errors import CredentialMissingError, InputInvalidError
from .orchestrator import run_search


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search Google Places for businesses matching a free-text query")
    parser.add_argument("query", help='e.g. "restaurants in New York"')
    parser.add_argument("--max-results", type=int, default=60,
                        help="result budget; above 60 the area is searched tile by tile")
    parser.add_argument("--intensity", choices=["low", "medium", "high"], default="low",
                        help="grid density for wide-area searches")
    parser.add_argument("--output", help="write the JSON response here instead of stdout")
    return parser


async def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )

    req = {
        "query": args.query,
        "max_results": args.max_results,
        "search_intensity": args.intensity,
    }
    try:
        response = await run_search(req, settings)
    except (InputInvalidError, CredentialMissingError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    payload = SearchResponse.model_validate(response).model_dump(mode="json", by_alias=True)
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(text)
        print(f"Got {len(response['results'])} results; wrote {args.output}")
    else:
        print(text)
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
