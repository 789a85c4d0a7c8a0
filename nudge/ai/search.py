import logging
from typing import Callable, List, Sequence

from ..catalog import AssetMatch, search_similar_assets
from ..errors import EmbeddingError, SearchError

logger = logging.getLogger(__name__)


class SimilaritySearch:
    """Embed a query and ask the catalog for its closest assets."""

    def __init__(self, embedder, threshold: float = 0.5,
                 procedure: Callable[[Sequence[float], float, int], List[AssetMatch]] = search_similar_assets):
        self.embedder = embedder
        self.threshold = threshold
        self.procedure = procedure

    def search(self, query: str, limit: int = 6) -> List[AssetMatch]:
        try:
            embedding = self.embedder.embed(query)
        except EmbeddingError as e:
            raise SearchError(f"Embedding failed: {e.message}", details=e.details) from e
        matches = self.procedure(embedding, self.threshold, limit)
        logger.info('Similarity search returned %d assets (limit=%d)', len(matches), limit)
        return matches
