from flask_migrate import upgrade  # type: ignore
from sqlalchemy import inspect  # type: ignore

from conftest import TestConfig


def test_upgrade_creates_schema(tmp_path, fake_openai):
    from nudge import create_app
    from nudge.extensions import db

    cfg = type('Cfg', (TestConfig,), {
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'migrated.db'}",
        'AUTO_CREATE_TABLES': False,
        'STORAGE_DIR': str(tmp_path / 'storage'),
    })
    app = create_app(config_object=cfg)
    app.extensions['openai_client'] = fake_openai

    with app.app_context():
        assert 'projects' not in inspect(db.engine).get_table_names()
        upgrade()
        tables = set(inspect(db.engine).get_table_names())
        assert {'projects', 'assets', 'alembic_version'} <= tables

        client = app.test_client()
        resp = client.post('/api/projects', json={'name': 'Migrated', 'keywords': 'a', 'emotion': 'b',
                                                  'look_and_feel': 'c'})
        assert resp.status_code == 201
        db.session.remove()
        db.engine.dispose()
