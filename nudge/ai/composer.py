"""Result composition for the explore endpoint.

Decides how many catalog assets versus freshly generated images to return,
runs the dependent AI calls, and degrades to fewer results (plus diagnostics)
whenever one of them fails.
"""
import logging
import uuid
from dataclasses import dataclass, field, fields
from typing import Any, Callable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError  # type: ignore

from ..catalog import AssetMatch, get_project
from ..errors import NudgeError, ValidationError
from ..metadata import DEFAULT_PROJECT_METADATA, fallback_for_prompt
from .imagery import GeneratedImage

logger = logging.getLogger(__name__)

RESULT_COUNT = 6
MAX_ASSETS = 3

EXPIRATION_WARNING = ('Some images could not be uploaded to storage and may expire in ~2 hours. '
                      'The remaining images are stored permanently.')
TEMPORARY_NOTE = ('Generated images are uploaded to storage for permanent access; '
                  'provider URLs are used only when the upload fails.')
STORAGE_SUCCESS_NOTE = 'All generated images were uploaded to storage for permanent access.'


def plan_split(found: int, total: int = RESULT_COUNT, max_assets: int = MAX_ASSETS) -> Tuple[int, int]:
    """Return ``(assets_to_use, images_to_generate)`` for ``found`` search hits.

    Up to ``max_assets`` hits are used as-is and generation tops the list up
    to ``total``; beyond that, exactly ``max_assets`` assets and
    ``total - max_assets`` generated images.
    """
    found = max(0, found)
    if found <= max_assets:
        return found, total - found
    return max_assets, total - max_assets


@dataclass
class ExploreRequest:
    screenshot: Optional[str] = None
    project_id: Optional[str] = None
    keywords: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> 'ExploreRequest':
        if not isinstance(payload, dict):
            raise ValidationError('Request body must be a JSON object')
        values = {}
        for key, attr in (('screenshot', 'screenshot'), ('projectId', 'project_id'), ('keywords', 'keywords')):
            value = payload.get(key)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ValidationError(f"'{key}' must be a string")
            values[attr] = value.strip() or None
        req = cls(**values)
        if not (req.screenshot or req.project_id or req.keywords):
            raise ValidationError('At least one of screenshot, projectId or keywords is required')
        return req


@dataclass
class SourceMetadata:
    screenshot_analysis: Optional[dict] = None
    screenshot_analysis_error: Optional[str] = None
    project_metadata: Optional[dict] = None
    project_fetch_error: Optional[str] = None
    project_error: Optional[str] = None
    asset_search_error: Optional[str] = None
    image_generation_error: Optional[str] = None
    combined_search_query: Optional[str] = None
    default_metadata_used: Optional[bool] = None
    assets_found: Optional[int] = None
    assets_used: Optional[int] = None
    images_generated: Optional[int] = None
    temporary_images: Optional[int] = None
    image_expiration_warning: Optional[str] = None
    temporary_solution_note: Optional[str] = None
    storage_success_note: Optional[str] = None

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


@dataclass
class ExploreResult:
    results: List[dict] = field(default_factory=list)
    source_metadata: SourceMetadata = field(default_factory=SourceMetadata)

    @property
    def total_count(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict:
        return {
            'results': self.results,
            'total_count': self.total_count,
            'source_metadata': self.source_metadata.to_dict(),
        }


def asset_result(match: AssetMatch) -> dict:
    return {
        'id': match.id,
        'type': 'asset',
        'image_url': match.file_url,
        'metadata': match.metadata.clamped().to_dict(),
        'similarity_score': match.similarity_score,
    }


def _error_text(e: Exception) -> str:
    if isinstance(e, NudgeError) and e.details:
        return f"{e.message}: {e.details}"
    return str(e)


class Explorer:
    """Orchestrates one explore request; holds no state between requests."""

    def __init__(self, extractor, search, synthesizer, project_loader: Callable = get_project,
                 result_count: int = RESULT_COUNT, max_assets: int = MAX_ASSETS):
        self.extractor = extractor
        self.search = search
        self.synthesizer = synthesizer
        self.project_loader = project_loader
        self.result_count = result_count
        self.max_assets = max_assets

    def _gather(self, req: ExploreRequest, meta: SourceMetadata) -> List[str]:
        parts = []
        if req.screenshot:
            try:
                analysis = self.extractor.analyze_screenshot(req.screenshot)
                meta.screenshot_analysis = analysis.to_dict()
                parts.append(analysis.as_query())
            except NudgeError as e:
                logger.warning('Screenshot analysis failed: %s', e)
                meta.screenshot_analysis_error = _error_text(e)
        if req.project_id:
            try:
                project = self.project_loader(req.project_id)
            except SQLAlchemyError as e:
                logger.warning('Project lookup failed: %s', e)
                meta.project_error = str(e)
            else:
                if project is None:
                    meta.project_fetch_error = f"Project not found: {req.project_id}"
                else:
                    triple = project.metadata_triple
                    meta.project_metadata = triple.to_dict()
                    if any(triple.to_dict().values()):
                        parts.append(triple.as_query())
        if req.keywords:
            parts.append(req.keywords)
        return parts

    def _search(self, query: str, meta: SourceMetadata) -> List[AssetMatch]:
        try:
            return self.search.search(query, self.result_count)
        except NudgeError as e:
            logger.warning('Asset search failed: %s', e)
            meta.asset_search_error = _error_text(e)
            return []

    def _keywords_only(self, keywords: str, meta: SourceMetadata) -> ExploreResult:
        meta.combined_search_query = keywords
        assets = self._search(keywords, meta)
        meta.assets_found = len(assets)
        return ExploreResult(results=[asset_result(a) for a in assets], source_metadata=meta)

    def _generate(self, query: str, count: int, meta: SourceMetadata) -> List[GeneratedImage]:
        try:
            images = self.synthesizer.synthesize(query, count)
        except NudgeError as e:
            logger.error('Image generation failed: %s', e)
            meta.image_generation_error = _error_text(e)
            return []
        if not images:
            meta.image_generation_error = f"All {count} image generation attempts failed"
        return images

    def _generated_result(self, image: GeneratedImage) -> dict:
        try:
            metadata = self.extractor.analyze_prompt(image.prompt)
        except NudgeError as e:
            logger.warning('Prompt metadata extraction failed, using fallback: %s', e)
            metadata = fallback_for_prompt(image.prompt)
        return {
            'id': str(uuid.uuid4()),
            'type': 'generated',
            'image_url': image.url,
            'metadata': metadata.clamped().to_dict(),
            'prompt_used': image.prompt,
            'metadata_variation': image.metadata_variation,
        }

    def explore(self, screenshot: Optional[str] = None, project_id: Optional[str] = None,
                keywords: Optional[str] = None) -> ExploreResult:
        req = ExploreRequest(screenshot=screenshot, project_id=project_id, keywords=keywords)
        meta = SourceMetadata()

        if req.keywords and not req.screenshot and not req.project_id:
            return self._keywords_only(req.keywords, meta)

        parts = self._gather(req, meta)
        query = ', '.join(parts).strip()
        if not query:
            query = DEFAULT_PROJECT_METADATA.as_query()
            meta.default_metadata_used = True

        assets = self._search(query, meta)
        assets_to_use, images_to_generate = plan_split(len(assets), self.result_count, self.max_assets)
        logger.info('Found %d similar assets, using %d, generating %d images',
                    len(assets), assets_to_use, images_to_generate)

        images = self._generate(query, images_to_generate, meta) if images_to_generate > 0 else []

        results = [asset_result(a) for a in assets[:assets_to_use]]
        results.extend(self._generated_result(img) for img in images)

        temporary = sum(1 for img in images if img.temporary)
        meta.combined_search_query = query
        meta.assets_found = len(assets)
        meta.assets_used = assets_to_use
        meta.images_generated = len(images)
        meta.temporary_images = temporary
        if temporary:
            meta.image_expiration_warning = EXPIRATION_WARNING
            meta.temporary_solution_note = TEMPORARY_NOTE
        elif images:
            meta.storage_success_note = STORAGE_SUCCESS_NOTE
        return ExploreResult(results=results, source_metadata=meta)
