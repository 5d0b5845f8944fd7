"""HTTP middleware."""
from publication_service.middleware.correlation_id import CorrelationIdMiddleware
from publication_service.middleware.rate_limit import RateLimitMiddleware

__all__ = ["CorrelationIdMiddleware", "RateLimitMiddleware"]
