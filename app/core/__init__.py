"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the orders, payments and billing apps.
Nothing here knows about providers, orders or subscriptions.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - MetadataMixin: Flexible JSON metadata storage

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes and HTTP status
    - ValidationError, AuthenticationError, ExternalServiceError

Resilience (import from core.circuit_breaker):
    - CircuitBreaker: Cache-backed breaker for outbound provider APIs
"""
