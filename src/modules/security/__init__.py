from .rate_limiter import RateLimiter
from .middleware import InputSanitizationMiddleware, RateLimitMiddleware, SecurityHeadersMiddleware
from .dependencies import sensitive_document_id, valid_document_id, valid_user_id

__all__ = [
    'RateLimiter', 'InputSanitizationMiddleware', 'RateLimitMiddleware',
    'SecurityHeadersMiddleware', 'sensitive_document_id', 'valid_document_id', 'valid_user_id'
]
