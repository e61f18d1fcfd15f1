"""
MedRep Error Taxonomy

Typed failures raised by the chat pipeline. Errors that reach the API layer
carry an HTTP status code and a message that is safe to show to users.
"""


class MedRepError(Exception):
    """Base class for status-carrying pipeline errors."""

    status_code: int = 500
    user_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class QueryValidationError(MedRepError):
    """Raised when the chat query is missing, empty, or unsafe."""

    status_code = 400
    user_message = "Query is required."


class ConfigurationError(MedRepError):
    """Raised when a collaborator required by the call is not configured."""

    status_code = 503
    user_message = "The assistant is not fully configured. Please try again later."


class SynthesisError(MedRepError):
    """Raised when the generation call fails or returns nothing usable."""

    status_code = 502
    user_message = (
        "Sorry, I could not generate an answer right now. "
        "Please try again in a moment."
    )


class CollectionSearchError(Exception):
    """Raised by the vector index when one collection cannot be searched.

    Always handled by the retriever; never surfaces to callers.
    """

    def __init__(self, collection_id: str, reason: str) -> None:
        super().__init__(f"Search failed for collection '{collection_id}': {reason}")
        self.collection_id = collection_id
        self.reason = reason
