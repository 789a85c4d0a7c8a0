"""AI package for metadata extraction, embeddings, search and imagery.

- vision: screenshot/brief/prompt -> {keywords, emotion, look_and_feel}
- embeddings: OpenAI embeddings (sentence-transformers when configured)
- search: embedding + catalog nearest-neighbour lookup
- imagery: metadata variations and per-slot image generation
- composer: the explore orchestrator
"""
from .composer import Explorer, plan_split  # type: ignore
from .embeddings import EmbeddingGenerator  # type: ignore
from .imagery import ImageSynthesizer  # type: ignore
from .search import SimilaritySearch  # type: ignore
from .vision import MetadataExtractor  # type: ignore

__all__ = ["Explorer", "plan_split", "EmbeddingGenerator", "ImageSynthesizer", "SimilaritySearch",
           "MetadataExtractor"]
