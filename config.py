import os


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


class Config:
    """Base configuration loaded from environment variables."""
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///nudge.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Screenshots arrive as data URLs inside the JSON body
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', 16 * 1024 * 1024))
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    # Alembic owns the schema when migrations are applied at startup
    AUTO_CREATE_TABLES = os.environ.get('APPLY_MIGRATIONS', '').strip().lower() not in {'1', 'true', 'yes', 'on'}

    # AI provider
    OPENAI_API_KEY = os.environ.get('OPENAI_API_KEY')
    OPENAI_BASE_URL = os.environ.get('OPENAI_BASE_URL')
    OPENAI_TIMEOUT = _float_env('OPENAI_TIMEOUT', 90.0)
    # Retry policy lives in the callers (image slots), not in the SDK
    OPENAI_MAX_RETRIES = int(os.environ.get('OPENAI_MAX_RETRIES', 0))
    VISION_MODEL = os.environ.get('VISION_MODEL', 'gpt-4o')

    # EMBEDDING_BACKEND: 'openai' (default) or 'local' (sentence-transformers)
    EMBEDDING_BACKEND = os.environ.get('EMBEDDING_BACKEND', 'openai')
    EMBEDDING_MODEL = os.environ.get('EMBEDDING_MODEL', 'text-embedding-3-small')
    LOCAL_EMBEDDING_MODEL = os.environ.get('LOCAL_EMBEDDING_MODEL', 'all-MiniLM-L6-v2')

    # IMAGE_BACKEND: 'openai' (default) or 'local' (Pillow placeholder images)
    IMAGE_BACKEND = os.environ.get('IMAGE_BACKEND', 'openai')
    IMAGE_MODEL = os.environ.get('IMAGE_MODEL', 'dall-e-3')
    IMAGE_SIZE = os.environ.get('IMAGE_SIZE', '1024x1024')
    IMAGE_MAX_RETRIES = int(os.environ.get('IMAGE_MAX_RETRIES', 2))
    IMAGE_RETRY_DELAY = _float_env('IMAGE_RETRY_DELAY', 1.0)
    IMAGE_DOWNLOAD_TIMEOUT = _float_env('IMAGE_DOWNLOAD_TIMEOUT', 30.0)

    # Explore policy
    MATCH_THRESHOLD = _float_env('MATCH_THRESHOLD', 0.5)
    EXPLORE_RESULT_COUNT = int(os.environ.get('EXPLORE_RESULT_COUNT', 6))
    EXPLORE_MAX_ASSETS = int(os.environ.get('EXPLORE_MAX_ASSETS', 3))

    # Durable image bucket (directory on disk, served under /storage/<bucket>/)
    STORAGE_DIR = os.environ.get('STORAGE_DIR', os.path.join(os.path.dirname(__file__), 'data', 'storage'))
    STORAGE_BUCKET = os.environ.get('STORAGE_BUCKET', 'nudge-assets')
    # Optional absolute base URL (e.g. a CDN) used instead of this app's /storage route
    STORAGE_PUBLIC_URL = os.environ.get('STORAGE_PUBLIC_URL')


class DevelopmentConfig(Config):
    DEBUG = True
    IMAGE_BACKEND = os.environ.get('IMAGE_BACKEND', 'local')


class ProductionConfig(Config):
    DEBUG = False
