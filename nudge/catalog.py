"""Catalog store access: project lookup and the asset similarity procedure."""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity  # type: ignore
from sqlalchemy.exc import SQLAlchemyError  # type: ignore

from .errors import SearchError
from .extensions import db
from .metadata import MetadataTriple
from .models import Asset, Project

logger = logging.getLogger(__name__)


@dataclass
class AssetMatch:
    id: str
    file_url: str
    metadata: MetadataTriple
    similarity_score: float
    tags: List[str] = field(default_factory=list)


def get_project(project_id: str) -> Optional[Project]:
    return db.session.get(Project, project_id)


def search_similar_assets(query_embedding: Sequence[float], match_threshold: float = 0.5,
                          match_count: int = 6) -> List[AssetMatch]:
    """Nearest public assets by cosine similarity, best first.

    Assets scoring at or below ``match_threshold`` are excluded, as are
    assets whose stored vector has a different dimension than the query.
    """
    if match_count <= 0:
        return []
    query = np.asarray(query_embedding, dtype=float)
    if query.ndim != 1 or query.size == 0:
        raise SearchError('Query embedding must be a non-empty vector')
    try:
        rows = Asset.query.filter(Asset.is_public.is_(True), Asset.combined_vector.isnot(None)).all()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise SearchError('Database search failed', details=str(e)) from e

    candidates = [a for a in rows if isinstance(a.combined_vector, list) and len(a.combined_vector) == query.size]
    if len(candidates) < len(rows):
        logger.debug('Skipped %d assets with missing or mismatched vectors', len(rows) - len(candidates))
    if not candidates:
        return []
    matrix = np.asarray([a.combined_vector for a in candidates], dtype=float)
    scores = cosine_similarity(query.reshape(1, -1), matrix)[0]
    order = np.argsort(-scores, kind='stable')
    matches = []
    for i in order:
        score = float(scores[i])
        if score <= match_threshold:
            break
        asset = candidates[int(i)]
        matches.append(AssetMatch(
            id=asset.id,
            file_url=asset.file_url,
            metadata=asset.metadata_triple,
            similarity_score=score,
            tags=list(asset.tags or []),
        ))
        if len(matches) >= match_count:
            break
    return matches
