"""
Domain errors. Services raise these; routers translate them to HTTP responses
with user-facing messages and log the details.
"""


class CodeScoreError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or ""


class ValidationError(CodeScoreError):
    """Invalid input."""


class DuplicateRequestError(CodeScoreError):
    """An approval request for this email is already pending."""


class InvalidOrExpiredTokenError(CodeScoreError):
    """Approval request not found or already processed."""


class AccountExistsError(CodeScoreError):
    """An account with this email already exists."""


class WeakCredentialError(CodeScoreError):
    """Credential rejected by the account store policy."""


class AccountCreationError(CodeScoreError):
    """Account could not be created. The request is still pending; retry the link."""


class ProviderError(CodeScoreError):
    """External service unavailable."""


class ProviderTimeoutError(ProviderError):
    """External service timed out. Please try again."""


class SessionRequiredError(CodeScoreError):
    """Sign in or request access to use this feature."""
