import json
import logging
import traceback

from flask import Blueprint, current_app, jsonify, request

from ..errors import ValidationError
from ..storage import get_storage
from .client import get_openai_client
from .composer import Explorer, ExploreRequest
from .embeddings import build_embedder
from .imagery import ImageSynthesizer, LocalImageProvider, OpenAIImageProvider
from .search import SimilaritySearch
from .vision import MetadataExtractor

logger = logging.getLogger(__name__)

ai_bp = Blueprint('ai', __name__)


def audit_log(event: str, detail: dict):
    logging.getLogger('ai_audit').info('%s | %s', event, detail)


def get_extractor() -> MetadataExtractor:
    return MetadataExtractor(get_openai_client(), model=current_app.config.get('VISION_MODEL', 'gpt-4o'))


def get_embedder():
    return build_embedder(current_app.config, get_openai_client)


def _get_image_provider():
    cfg = current_app.config
    if (cfg.get('IMAGE_BACKEND') or 'openai').lower() == 'local':
        return LocalImageProvider()
    return OpenAIImageProvider(get_openai_client(), model=cfg.get('IMAGE_MODEL', 'dall-e-3'),
                               size=cfg.get('IMAGE_SIZE', '1024x1024'))


def _get_explorer() -> Explorer:
    cfg = current_app.config
    synthesizer = ImageSynthesizer(
        client=get_openai_client(),
        provider=_get_image_provider(),
        storage=get_storage(),
        model=cfg.get('VISION_MODEL', 'gpt-4o'),
        max_retries=cfg.get('IMAGE_MAX_RETRIES', 2),
        retry_delay=cfg.get('IMAGE_RETRY_DELAY', 1.0),
        download_timeout=cfg.get('IMAGE_DOWNLOAD_TIMEOUT', 30.0),
    )
    return Explorer(
        extractor=get_extractor(),
        search=SimilaritySearch(get_embedder(), threshold=cfg.get('MATCH_THRESHOLD', 0.5)),
        synthesizer=synthesizer,
        result_count=cfg.get('EXPLORE_RESULT_COUNT', 6),
        max_assets=cfg.get('EXPLORE_MAX_ASSETS', 3),
    )


def _failure(e: Exception):
    details = ''.join(traceback.format_exception_only(type(e), e)).strip()
    return jsonify({'error': 'Explore function failed', 'details': details}), 500


@ai_bp.route('/explore', methods=['POST'])
def explore():
    """Compose six inspiration results from a screenshot, project and/or keywords.

    Request JSON:
        { "screenshot"?: "data:... | https://...", "projectId"?: "...", "keywords"?: "..." }
    Response JSON:
        { "results": [...], "total_count": int, "source_metadata": {...} }
    """
    try:
        payload = json.loads(request.get_data(as_text=True))
    except ValueError as e:
        logger.warning('Rejected explore request with malformed JSON: %s', e)
        return _failure(e)

    try:
        req = ExploreRequest.from_payload(payload)
    except ValidationError as e:
        return jsonify(e.to_dict()), e.status_code

    try:
        result = _get_explorer().explore(screenshot=req.screenshot, project_id=req.project_id,
                                         keywords=req.keywords)
    except Exception as e:  # top-level envelope; soft failures never reach here
        logger.exception('Explore function error')
        return _failure(e)

    meta = result.source_metadata
    audit_log('explore', {
        'screenshot': bool(req.screenshot),
        'project_id': req.project_id,
        'keywords': (req.keywords or '')[:100],
        'assets_used': meta.assets_used if meta.assets_used is not None else meta.assets_found,
        'images_generated': meta.images_generated or 0,
        'len': result.total_count,
    })
    return jsonify(result.to_dict())
