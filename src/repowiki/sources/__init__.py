"""Repository sources: materialise repository content locally."""

from repowiki.sources.base import IngestionError, RepositorySource, ResolvedRepository
from repowiki.sources.git import GitSource

__all__ = ["GitSource", "IngestionError", "RepositorySource", "ResolvedRepository"]
