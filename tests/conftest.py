import pytest

from fakes import FakeOpenAI


class TestConfig:
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SECRET_KEY = 'test-secret'
    AUTO_CREATE_TABLES = True
    OPENAI_API_KEY = 'test-key'
    EMBEDDING_BACKEND = 'openai'
    IMAGE_BACKEND = 'openai'
    IMAGE_RETRY_DELAY = 0
    STORAGE_PUBLIC_URL = 'https://cdn.test/storage'


@pytest.fixture
def fake_openai():
    return FakeOpenAI()


@pytest.fixture
def app(tmp_path, fake_openai):
    from nudge import create_app
    from nudge.extensions import db

    cfg = type('Cfg', (TestConfig,), {'STORAGE_DIR': str(tmp_path / 'storage')})
    app = create_app(config_object=cfg)
    app.extensions['openai_client'] = fake_openai

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_project(app):
    from nudge.extensions import db
    from nudge.models import Project

    def _make(name='Spring campaign', vector=None, **fields):
        project = Project(name=name, combined_vector=vector, **fields)
        db.session.add(project)
        db.session.commit()
        return project
    return _make


@pytest.fixture
def make_asset(app, make_project):
    from nudge.extensions import db
    from nudge.models import Asset

    def _make(vector, project=None, is_public=True, tags=None, **fields):
        project = project or make_project()
        values = {
            'filename': 'asset.png',
            'file_url': 'https://assets.test/asset.png',
            'keywords': 'floral, pattern',
            'emotion': 'gentle',
            'look_and_feel': 'pastel',
        }
        values.update(fields)
        asset = Asset(project_id=project.id, combined_vector=vector, is_public=is_public,
                      tags=tags or [], **values)
        db.session.add(asset)
        db.session.commit()
        return asset
    return _make
