"""Command-line entry point for the article reader."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Sequence

from .config import ReaderConfig
from .errors import ArticleReaderError
from .pipeline import ArticlePipeline

logger = logging.getLogger("article_reader.cli")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Extract the readable content of a web article while keeping its "
            "video and social-post embeds."
        ),
    )
    parser.add_argument("url", help="Article URL to parse")
    parser.add_argument(
        "--format",
        choices=("json", "html"),
        default="json",
        help="Print the full article as JSON or only the content HTML",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Browser navigation timeout in seconds",
    )
    parser.add_argument(
        "--request-timeout",
        type=float,
        default=None,
        help="Timeout in seconds for the plain HTTP request",
    )
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Never escalate to a headless browser",
    )
    parser.add_argument(
        "--force-browser",
        action="store_true",
        help="Allow the headless browser even in a serverless environment",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ReaderConfig:
    overrides = {
        "navigation_timeout": args.timeout,
        "request_timeout": args.request_timeout,
    }
    if args.no_browser:
        overrides["browser_enabled"] = False
    if args.force_browser:
        overrides["force_browser"] = True
    return ReaderConfig.from_env(**overrides)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )

    pipeline = ArticlePipeline(build_config(args))
    try:
        article = asyncio.run(pipeline.parse(args.url))
    except ArticleReaderError as exc:
        logger.error("Error parsing article: %s", exc)
        sys.stderr.write(f"error: {exc}\n")
        return 1

    if args.format == "html":
        sys.stdout.write(article.content)
        if not article.content.endswith("\n"):
            sys.stdout.write("\n")
    else:
        json.dump(article.to_dict(), sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
