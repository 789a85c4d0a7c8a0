"""Exception taxonomy for the explore service.

Soft errors (analysis, embedding, search, generation, persistence) are caught
where they originate and turned into diagnostics. ``ValidationError`` and
``NotFoundError`` are rendered by the Flask error handlers.
"""


class NudgeError(Exception):
    """Base class for all service errors."""

    status_code = 500

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {'error': self.message}
        if self.details:
            payload['details'] = self.details
        return payload


class AnalysisError(NudgeError):
    """Vision/text metadata extraction failed or returned unusable JSON."""


class EmbeddingError(NudgeError):
    """The embedding model call failed or returned a malformed vector."""


class SearchError(NudgeError):
    """Catalog vector search failed."""


class GenerationError(NudgeError):
    """A single image-generation attempt failed."""


class PersistenceError(NudgeError):
    """A generated image could not be written to durable storage."""


class ValidationError(NudgeError):
    status_code = 400


class NotFoundError(NudgeError):
    status_code = 404
