from flask import current_app
from openai import OpenAI  # type: ignore


class DeferredOpenAI:
    """Stands in for ``openai.OpenAI`` until a component actually calls it.

    Constructor failures (missing credentials) are raised as ``OpenAIError``
    at the call site, where each component maps them to its own error.
    """

    def __init__(self, **params):
        self._params = params
        self._client = None

    def __getattr__(self, name):
        if self._client is None:
            self._client = OpenAI(**self._params)
        return getattr(self._client, name)


def get_openai_client():
    """Return the application's OpenAI client, creating the deferred wrapper on first use.

    Tests install a stand-in under ``app.extensions['openai_client']``.
    """
    client = current_app.extensions.get('openai_client')
    if client is None:
        cfg = current_app.config
        params = {
            'api_key': cfg.get('OPENAI_API_KEY') or None,
            'timeout': cfg.get('OPENAI_TIMEOUT', 90.0),
            'max_retries': cfg.get('OPENAI_MAX_RETRIES', 0),
        }
        if cfg.get('OPENAI_BASE_URL'):
            params['base_url'] = cfg['OPENAI_BASE_URL']
        client = DeferredOpenAI(**params)
        current_app.extensions['openai_client'] = client
    return client
