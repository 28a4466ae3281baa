"""
Error taxonomy shared by the relay and the session layer.

Rationale:
- Every failure the service reports carries its own HTTP status and a
  user-facing message; main.py turns these into {"error": message} bodies.
- Client-side handlers catch the same base class and show the message inline.
"""


class AssistantError(Exception):
    """Base error with a user-facing message and an HTTP status."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidRequestError(AssistantError):
    """Empty prompt, unknown provider and similar user-input problems."""

    status_code = 400


class ConfigurationError(AssistantError):
    """A provider credential is missing from the environment."""

    status_code = 500


class UpstreamError(AssistantError):
    """The provider answered with a non-success status; the status is relayed."""


class ProviderFailure(AssistantError):
    """Anything else that went wrong while talking to a provider."""

    status_code = 500


class IngestionError(AssistantError):
    status_code = 400
