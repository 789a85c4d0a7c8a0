import logging

from flask import Blueprint, jsonify, request
from sqlalchemy import or_  # type: ignore

from .ai.routes import audit_log, get_embedder, get_extractor
from .errors import AnalysisError, NotFoundError, ValidationError
from .extensions import db
from .metadata import DEFAULT_ASSET_METADATA, FIELDS, MetadataTriple
from .models import Asset, Project
from .utils import is_http_url, json_body, metadata_changes, optional_str, parse_pagination

logger = logging.getLogger(__name__)

assets_bp = Blueprint('assets', __name__)


def _load(asset_id: str) -> Asset:
    asset = db.session.get(Asset, asset_id)
    if asset is None:
        raise NotFoundError(f"Asset not found: {asset_id}")
    return asset


def _tags(data: dict) -> list:
    tags = data.get('tags', [])
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ValidationError("'tags' must be a list of strings")
    return [t.strip() for t in tags if t.strip()]


@assets_bp.route('', methods=['POST'])
def create_asset():
    data = json_body()
    filename = optional_str(data, 'filename')
    file_url = optional_str(data, 'file_url')
    project_id = optional_str(data, 'project_id')
    if not filename or not file_url or not project_id:
        raise ValidationError('filename, file_url, and project_id are required')
    if not is_http_url(file_url):
        raise ValidationError('Invalid file_url format', details='file_url must be an http(s) URL')
    if db.session.get(Project, project_id) is None:
        raise ValidationError(f"Unknown project_id: {project_id}")
    given = {key: optional_str(data, key) for key in FIELDS}
    tags = _tags(data)
    auto_analyze = bool(data.get('auto_analyze', True))

    analysis = None
    if not all(given.values()) and auto_analyze:
        logger.info('Auto-analyzing image %s', file_url)
        try:
            analysis = get_extractor().analyze_asset_image(file_url)
        except AnalysisError as e:
            logger.warning('Auto-analysis failed, using defaults: %s', e)
    triple = MetadataTriple.from_mapping(given, default=analysis or DEFAULT_ASSET_METADATA).clamped()

    asset = Asset(
        filename=filename,
        file_url=file_url,
        project_id=project_id,
        keywords=triple.keywords,
        emotion=triple.emotion,
        look_and_feel=triple.look_and_feel,
        tags=tags,
        combined_vector=get_embedder().embed(triple.as_text()),
        is_public=True,
    )
    db.session.add(asset)
    db.session.commit()
    audit_log('asset_create', {'id': asset.id, 'project_id': project_id, 'auto_analyzed': analysis is not None})
    return jsonify({
        'asset': asset.to_dict(),
        'message': 'Asset created successfully',
        'auto_analyzed': analysis is not None,
    }), 201


@assets_bp.route('', methods=['GET'])
def list_assets():
    limit, offset = parse_pagination()
    project_id = request.args.get('project_id')
    if project_id is not None and not project_id.strip():
        raise ValidationError('project_id cannot be empty')
    search = request.args.get('search')
    tags = [t.strip() for t in (request.args.get('tags') or '').split(',') if t.strip()]

    query = Asset.query.filter(Asset.is_public.is_(True))
    if project_id:
        query = query.filter(Asset.project_id == project_id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Asset.keywords.ilike(pattern), Asset.emotion.ilike(pattern),
                                 Asset.look_and_feel.ilike(pattern)))
    query = query.order_by(Asset.created_at.desc())

    if tags:
        # Tags live in a JSON column; the catalog is small enough to filter here
        wanted = set(tags)
        matching = [a for a in query.all() if wanted.issubset(set(a.tags or []))]
        total = len(matching)
        assets = matching[offset:offset + limit]
    else:
        total = query.count()
        assets = query.offset(offset).limit(limit).all()

    return jsonify({
        'assets': [a.to_dict() for a in assets],
        'total': total,
        'limit': limit,
        'offset': offset,
        'project_id': project_id or None,
        'hasMore': total > offset + limit,
    })


@assets_bp.route('/<asset_id>', methods=['GET'])
def get_asset(asset_id):
    return jsonify({'asset': _load(asset_id).to_dict()})


@assets_bp.route('/<asset_id>', methods=['PUT'])
def update_asset(asset_id):
    asset = _load(asset_id)
    data = json_body()
    changes = metadata_changes(data)
    if 'tags' in data:
        asset.tags = _tags(data)
    if changes:
        triple = MetadataTriple.from_mapping(changes, default=asset.metadata_triple).clamped()
        asset.keywords = triple.keywords
        asset.emotion = triple.emotion
        asset.look_and_feel = triple.look_and_feel
        asset.combined_vector = get_embedder().embed(triple.as_text())
    db.session.commit()
    return jsonify({'asset': asset.to_dict(), 'message': 'Asset updated successfully'})


@assets_bp.route('/<asset_id>', methods=['DELETE'])
def delete_asset(asset_id):
    asset = _load(asset_id)
    db.session.delete(asset)
    db.session.commit()
    audit_log('asset_delete', {'id': asset_id})
    return jsonify({'message': 'Asset deleted successfully'})
