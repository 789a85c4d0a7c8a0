"""Entrypoint for running the Nudge explore service.

Environment:
- HOST / PORT (FLASK_RUN_HOST / FLASK_RUN_PORT also honoured), DEBUG
- LOG_LEVEL, AUDIT_LOG_FILE
- APPLY_MIGRATIONS=1 to run ``flask db upgrade`` before serving
"""
import logging
import os

from nudge import create_app

TRUTHY = {"1", "true", "yes", "on"}
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger("nudge.server")


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    return default if raw is None else raw.strip().lower() in TRUTHY


def configure_logging():
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)
    audit_file = os.environ.get("AUDIT_LOG_FILE")
    if audit_file:
        os.makedirs(os.path.dirname(os.path.abspath(audit_file)), exist_ok=True)
        handler = logging.FileHandler(audit_file)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger("ai_audit").addHandler(handler)


def maybe_apply_migrations(app) -> bool:
    if not _bool_env("APPLY_MIGRATIONS"):
        return False
    from flask_migrate import upgrade  # type: ignore
    with app.app_context():
        upgrade()
    logger.info("Database schema upgraded to head")
    return True


def main():
    configure_logging()
    app = create_app()
    maybe_apply_migrations(app)

    host = os.environ.get("HOST", os.environ.get("FLASK_RUN_HOST", "127.0.0.1"))
    port = int(os.environ.get("PORT", os.environ.get("FLASK_RUN_PORT", 5001)))
    debug = _bool_env("DEBUG", _bool_env("FLASK_DEBUG"))

    if not app.config.get("OPENAI_API_KEY"):
        logger.warning("OPENAI_API_KEY is not set; explore requests will fail upstream")
    logger.info("Serving Nudge on http://%s:%s (debug=%s, images=%s)", host, port, debug,
                app.config.get("IMAGE_BACKEND"))
    app.run(host=host, port=port, debug=debug, threaded=True, use_reloader=debug)


if __name__ == "__main__":
    main()
