import logging

from flask import Blueprint, jsonify, request
from sqlalchemy import or_  # type: ignore

from .ai.routes import audit_log, get_embedder, get_extractor
from .errors import AnalysisError, NotFoundError, ValidationError
from .extensions import db
from .metadata import DEFAULT_PROJECT_METADATA, FIELDS, MetadataTriple
from .models import Project
from .utils import json_body, metadata_changes, optional_str, parse_pagination

logger = logging.getLogger(__name__)

projects_bp = Blueprint('projects', __name__)


def _load(project_id: str) -> Project:
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError(f"Project not found: {project_id}")
    return project


@projects_bp.route('', methods=['POST'])
def create_project():
    data = json_body()
    name = (optional_str(data, 'name') or '').strip()
    if not name:
        raise ValidationError('Project name is required')
    brief = optional_str(data, 'brief') or ''
    given = {key: optional_str(data, key) for key in FIELDS}
    auto_analyze = bool(data.get('auto_analyze', True))

    analysis = None
    if not all(given.values()) and auto_analyze and brief.strip():
        try:
            analysis = get_extractor().analyze_brief(brief)
        except AnalysisError as e:
            logger.warning('Brief analysis failed, using defaults: %s', e)
    triple = MetadataTriple.from_mapping(given, default=analysis or DEFAULT_PROJECT_METADATA).clamped()

    project = Project(
        name=name,
        brief=brief,
        keywords=triple.keywords,
        emotion=triple.emotion,
        look_and_feel=triple.look_and_feel,
        combined_vector=get_embedder().embed(triple.as_text()),
    )
    db.session.add(project)
    db.session.commit()
    audit_log('project_create', {'id': project.id, 'auto_analyzed': analysis is not None})
    return jsonify({
        'project': project.to_dict(),
        'message': 'Project created successfully',
        'auto_analyzed': analysis is not None,
    }), 201


@projects_bp.route('', methods=['GET'])
def list_projects():
    limit, offset = parse_pagination()
    query = Project.query
    search = request.args.get('search')
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Project.name.ilike(pattern), Project.brief.ilike(pattern),
                                 Project.keywords.ilike(pattern)))
    total = query.count()
    projects = query.order_by(Project.created_at.desc()).offset(offset).limit(limit).all()
    return jsonify({
        'projects': [p.to_dict() for p in projects],
        'total': total,
        'limit': limit,
        'offset': offset,
        'hasMore': total > offset + limit,
    })


@projects_bp.route('/<project_id>', methods=['GET'])
def get_project(project_id):
    return jsonify({'project': _load(project_id).to_dict()})


@projects_bp.route('/<project_id>', methods=['PUT'])
def update_project(project_id):
    project = _load(project_id)
    data = json_body()
    name = optional_str(data, 'name')
    if name is not None and not name.strip():
        raise ValidationError('Project name cannot be empty')
    brief = optional_str(data, 'brief')
    changes = metadata_changes(data)

    if name is not None:
        project.name = name.strip()
    if brief is not None:
        project.brief = brief
    if changes:
        triple = MetadataTriple.from_mapping(changes, default=project.metadata_triple).clamped()
        project.keywords = triple.keywords
        project.emotion = triple.emotion
        project.look_and_feel = triple.look_and_feel
        project.combined_vector = get_embedder().embed(triple.as_text())
    db.session.commit()
    return jsonify({'project': project.to_dict(), 'message': 'Project updated successfully'})


@projects_bp.route('/<project_id>', methods=['DELETE'])
def delete_project(project_id):
    project = _load(project_id)
    db.session.delete(project)
    db.session.commit()
    audit_log('project_delete', {'id': project_id})
    return jsonify({'message': 'Project deleted successfully'})
