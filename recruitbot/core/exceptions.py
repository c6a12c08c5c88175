# recruitbot/core/exceptions.py


class RecruitBotError(Exception):
    """Base class for domain errors. status_code is used by the HTTP layer."""
    status_code = 500
    error = "Internal Server Error"


class ValidationError(RecruitBotError):
    status_code = 400
    error = "Bad Request"

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])


class NotFoundError(RecruitBotError):
    status_code = 404
    error = "Not Found"


class CandidateNotFound(NotFoundError):
    def __init__(self, tenant_id: str, candidate_id: str):
        self.tenant_id = tenant_id
        self.candidate_id = candidate_id
        super().__init__(f"Candidate not found: {candidate_id} (tenant {tenant_id})")


class TenantNotFound(NotFoundError):
    pass


class ConversationNotFound(NotFoundError):
    pass


class RateLimitError(RecruitBotError):
    """Text generation backend is overloaded. Retried with backoff, then raised."""
    status_code = 503
    error = "Service Unavailable"


class AuthError(RecruitBotError):
    status_code = 401
    error = "Unauthorized"


class ForbiddenError(AuthError):
    status_code = 403
    error = "Forbidden"
