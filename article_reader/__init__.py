"""Readable article extraction that keeps video and social-post embeds."""

from .config import ReaderConfig
from .errors import ArticleReaderError
from .models import ArticleResult, EmbedDescriptor, EmbedKind
from .pipeline import ArticlePipeline, parse_article

__all__ = [
    "ArticlePipeline",
    "ArticleReaderError",
    "ArticleResult",
    "EmbedDescriptor",
    "EmbedKind",
    "ReaderConfig",
    "parse_article",
]
