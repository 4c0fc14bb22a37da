"""
Service layer building blocks.

- ServiceResult: outcome wrapper for expected failures (unknown record,
  operation not allowed in the current state)
- BaseService: per-class logger and transaction helper

Unexpected failures (database errors, provider API outages) are raised as
exceptions, not wrapped.

Usage:
    from core.services import BaseService, ServiceResult

    class ReconciliationService(BaseService):
        @classmethod
        def replay(cls, webhook_event_id) -> ServiceResult[WebhookResult]:
            webhook_event = WebhookEvent.objects.filter(id=webhook_event_id).first()
            if webhook_event is None:
                return ServiceResult.failure("Webhook event not found", error_code="NOT_FOUND")
            return ServiceResult.success(cls.run(adapter, webhook_event))
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Result of a service operation.

    Attributes:
        success: Whether the operation succeeded
        data: Result data when successful
        error: Human-readable message when failed
        error_code: Machine-readable code when failed

    Truthiness follows success:
        result = ReconciliationService.replay(webhook_event_id)
        if not result:
            logger.warning(result.error, extra={"error_code": result.error_code})
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ServiceResult[T]:
        return cls(success=False, error=error, error_code=error_code)

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for services.

    Services expose classmethods only and keep no instance state.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the concrete service class."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """transaction.atomic() spelled as a service boundary."""
        with transaction.atomic():
            yield
