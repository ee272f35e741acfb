"""MCP server exposing the article parser as a tool."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from mcp.server.fastmcp import FastMCP

from .config import ReaderConfig
from .pipeline import ArticlePipeline

logger = logging.getLogger("article_reader.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="article-reader")


@mcp.tool()
async def parse_article(
    url: str,
) -> Dict[str, Optional[str]]:
    """Fetch an article and return its title, content HTML, excerpt, byline, and site name."""
    article = await ArticlePipeline(ReaderConfig.from_env()).parse(url)
    return article.to_dict()


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
