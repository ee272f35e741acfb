"""HTTP API exposing the article parser at ``POST /api/parse``."""

from __future__ import annotations

import logging
import os
import re
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import ReaderConfig
from .errors import (
    ArticleReaderError,
    AutomationUnavailableError,
    ExtractionFailedError,
    FetchError,
    InvalidUrlError,
)
from .pipeline import ArticlePipeline

logger = logging.getLogger("article_reader.server")

_FORBIDDEN_PATTERN = re.compile(r"(?<![\w.])403(?![\w.])")


class ParseRequest(BaseModel):
    url: Optional[str] = None


def status_for_error(exc: ArticleReaderError) -> int:
    """Map a pipeline failure onto the HTTP status returned to clients.

    Fetch failures that mention a 403, including escalations that also
    failed in the browser, are reported as 403.
    """
    if isinstance(exc, (InvalidUrlError, ExtractionFailedError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, AutomationUnavailableError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, FetchError) and _FORBIDDEN_PATTERN.search(str(exc)):
        return status.HTTP_403_FORBIDDEN
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.pipeline = ArticlePipeline(ReaderConfig.from_env())
    logger.info("Article reader API ready")
    yield


app = FastAPI(
    title="article-reader",
    description="Readable article extraction that keeps embedded media",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["Content-Type"],
)


@app.exception_handler(ArticleReaderError)
async def article_error_handler(request: Request, exc: ArticleReaderError):
    logger.error("Error parsing article: %s", exc)
    return JSONResponse(
        status_code=status_for_error(exc),
        content={"error": str(exc) or "An error occurred while parsing the article"},
    )


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.post("/api/parse")
async def parse(body: ParseRequest, request: Request):
    if not body.url:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "URL is required"},
        )
    article = await request.app.state.pipeline.parse(body.url)
    return article.to_dict()


def main() -> None:
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3000")))


if __name__ == "__main__":
    main()
