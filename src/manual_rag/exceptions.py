"""Custom exception hierarchy for the retrieval pipeline."""


class RAGEngineError(Exception):
    """Base exception for all pipeline errors."""


class CollaboratorError(RAGEngineError):
    """An external embedding/generation service failed or misbehaved."""


class EmbeddingError(CollaboratorError):
    """Error generating embeddings."""


class GenerationError(CollaboratorError):
    """Error during LLM generation."""


class StructuredOutputError(GenerationError):
    """LLM output could not be parsed as JSON."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class ResponseValidationError(RAGEngineError):
    """A rerank/generation response parsed but failed shape checks."""


class StoreError(RAGEngineError):
    """The relational store is unreachable or rejected a write."""


class NotFoundError(RAGEngineError):
    """A record explicitly addressed by the caller does not exist."""


class InvalidFeedbackError(RAGEngineError):
    """Feedback value outside the accepted vocabulary."""


class IndexingError(RAGEngineError):
    """Error while indexing a document."""


class ConfigurationError(RAGEngineError):
    """Error in system configuration."""
