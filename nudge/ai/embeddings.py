import logging
from numbers import Real
from typing import List

from openai import OpenAIError  # type: ignore

from ..errors import EmbeddingError

logger = logging.getLogger(__name__)


def _as_vector(values) -> List[float]:
    if values is None:
        raise EmbeddingError('Invalid embeddings response format')
    vec = list(values)
    if not vec or not all(isinstance(v, Real) for v in vec):
        raise EmbeddingError('Invalid embeddings response format')
    return [float(v) for v in vec]


class EmbeddingGenerator:
    """Embeds a metadata string with the OpenAI embeddings endpoint."""

    def __init__(self, client, model: str = 'text-embedding-3-small'):
        self.client = client
        self.model = model

    def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise EmbeddingError('Cannot embed empty text')
        try:
            resp = self.client.embeddings.create(model=self.model, input=text)
        except OpenAIError as e:
            raise EmbeddingError('Embeddings request failed', details=str(e)) from e
        try:
            values = resp.data[0].embedding
        except (AttributeError, IndexError, TypeError) as e:
            raise EmbeddingError('Invalid embeddings response format') from e
        return _as_vector(values)


class LocalEmbeddingGenerator:
    """sentence-transformers backend for offline development.

    The model is loaded on first use; sentence-transformers is an optional
    dependency (``pip install nudge[local]``).
    """

    def __init__(self, model_name: str = 'all-MiniLM-L6-v2'):
        self.model_name = model_name
        self._model = None

    def _load(self):
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer  # type: ignore
            except ImportError as e:
                raise EmbeddingError('sentence-transformers is not installed', details=str(e)) from e
            logger.info('Loading local embedding model %s', self.model_name)
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise EmbeddingError('Cannot embed empty text')
        model = self._load()
        try:
            values = model.encode([text], show_progress_bar=False)[0]
        except Exception as e:  # model runtime errors vary by backend
            raise EmbeddingError('Local embedding failed', details=str(e)) from e
        return _as_vector(values.tolist() if hasattr(values, 'tolist') else values)


_LOCAL_MODELS = {}


def build_embedder(config, client_factory):
    """Pick the embedding backend named by ``EMBEDDING_BACKEND``."""
    backend = (config.get('EMBEDDING_BACKEND') or 'openai').lower()
    if backend == 'local':
        name = config.get('LOCAL_EMBEDDING_MODEL', 'all-MiniLM-L6-v2')
        # Keep loaded models across requests; loading is slow
        if name not in _LOCAL_MODELS:
            _LOCAL_MODELS[name] = LocalEmbeddingGenerator(name)
        return _LOCAL_MODELS[name]
    return EmbeddingGenerator(client_factory(), model=config.get('EMBEDDING_MODEL', 'text-embedding-3-small'))
