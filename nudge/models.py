import uuid
from datetime import datetime, timezone

from .extensions import db
from .metadata import MetadataTriple


def _utcnow():
    return datetime.now(timezone.utc)


def _new_id():
    return str(uuid.uuid4())


class Project(db.Model):
    __tablename__ = 'projects'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(200), nullable=False)
    brief = db.Column(db.Text, default='')
    keywords = db.Column(db.String(120))
    emotion = db.Column(db.String(120))
    look_and_feel = db.Column(db.String(120))
    combined_vector = db.Column(db.JSON)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    assets = db.relationship('Asset', back_populates='project', cascade='all, delete-orphan')

    @property
    def metadata_triple(self) -> MetadataTriple:
        return MetadataTriple(self.keywords or '', self.emotion or '', self.look_and_feel or '')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'brief': self.brief or '',
            'keywords': self.keywords,
            'emotion': self.emotion,
            'look_and_feel': self.look_and_feel,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Project {self.id} {self.name}>"


class Asset(db.Model):
    __tablename__ = 'assets'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    filename = db.Column(db.String(256), nullable=False)
    file_url = db.Column(db.String(2048), nullable=False)
    project_id = db.Column(db.String(36), db.ForeignKey('projects.id'), nullable=False, index=True)
    keywords = db.Column(db.String(120))
    emotion = db.Column(db.String(120))
    look_and_feel = db.Column(db.String(120))
    tags = db.Column(db.JSON, default=list)
    combined_vector = db.Column(db.JSON)
    is_public = db.Column(db.Boolean, default=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    project = db.relationship('Project', back_populates='assets')

    @property
    def metadata_triple(self) -> MetadataTriple:
        return MetadataTriple(self.keywords or '', self.emotion or '', self.look_and_feel or '')

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'filename': self.filename,
            'file_url': self.file_url,
            'project_id': self.project_id,
            'keywords': self.keywords,
            'emotion': self.emotion,
            'look_and_feel': self.look_and_feel,
            'tags': list(self.tags or []),
            'is_public': bool(self.is_public),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Asset {self.id} {self.filename}>"
