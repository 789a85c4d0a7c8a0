import logging
import os
import traceback

from dotenv import load_dotenv  # type: ignore
from flask import Flask, jsonify
from flask_cors import CORS  # type: ignore
from werkzeug.exceptions import HTTPException  # type: ignore

load_dotenv()
import config as _config  # project-level config module

from .errors import NudgeError

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'migrations')

_NAMED_CONFIGS = {
    'production': _config.ProductionConfig,
    'development': _config.DevelopmentConfig,
}

_SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
}


def _load_config(app, config_object):
    if config_object is None:
        name = os.environ.get('FLASK_CONFIG', '').strip().lower()
        app.config.from_object(_NAMED_CONFIGS.get(name, _config.Config))
        return
    # Test/adhoc objects only override what they name
    app.config.from_object(_config.Config)
    app.config.from_object(config_object)


def _register_error_handlers(app):
    @app.errorhandler(NudgeError)
    def _nudge_error(e):
        if e.status_code >= 500:
            logger.error('%s: %s', type(e).__name__, e)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def _http_error(e):
        return jsonify({'error': e.name, 'details': e.description}), e.code

    @app.errorhandler(Exception)
    def _unhandled(e):
        logger.exception('Unhandled error')
        details = ''.join(traceback.format_exception_only(type(e), e)).strip()
        return jsonify({'error': str(e) or type(e).__name__, 'details': details}), 500


def create_app(config_object=None):
    """Application factory for the explore service."""
    app = Flask(__name__, instance_relative_config=False)
    _load_config(app, config_object)

    # The browser extension calls from its own origin; pre-flight OPTIONS gets an empty 200
    CORS(app, resources={
        r"/api/*": {"origins": app.config.get('CORS_ORIGINS', '*')},
        r"/storage/*": {"origins": '*'},
    })

    @app.after_request
    def _add_security_headers(resp):
        for header, value in _SECURITY_HEADERS.items():
            resp.headers.setdefault(header, value)
        return resp

    @app.get('/health')
    def health():
        return jsonify(status='ok')

    from .extensions import db, migrate
    db.init_app(app)
    migrate.init_app(app, db, directory=MIGRATIONS_DIR)

    from .ai.routes import ai_bp
    from .projects import projects_bp
    from .assets import assets_bp
    from .storage import storage_bp
    app.register_blueprint(ai_bp, url_prefix='/api')
    app.register_blueprint(projects_bp, url_prefix='/api/projects')
    app.register_blueprint(assets_bp, url_prefix='/api/assets')
    app.register_blueprint(storage_bp)

    _register_error_handlers(app)

    # Without migrations applied, make sure the tables exist
    from . import models  # noqa: F401
    if app.config.get('AUTO_CREATE_TABLES', True):
        with app.app_context():
            db.create_all()

    return app


__all__ = ['create_app']
