"""
Billing Provider Base Class

Common result shape and interface for payment provider adapters. Adapters never
raise past this boundary: every failure is returned as ProviderResult(success=False).
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class ProviderError(Exception):
    """Base exception for provider adapter errors."""

    def __init__(self, message: str, provider: str = "unknown"):
        self.message = message
        self.provider = provider
        super().__init__(message)


class ProviderNotConfigured(ProviderError):
    """Raised when provider credentials are missing."""


@dataclass
class ProviderResult:
    success: bool
    id: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: str) -> "ProviderResult":
        return cls(success=False, error=error)


@dataclass
class CustomerInfo:
    name: Optional[str] = None
    email: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


def request_key(prefix: str, idempotency_key: Optional[str] = None) -> str:
    """Derive a per-call idempotency token; a caller-supplied key stays stable across retries."""
    if idempotency_key:
        return f"{prefix}-{idempotency_key}"
    return f"{prefix}-{uuid.uuid4().hex}"


class BillingProvider(ABC):
    """
    Abstract base class for billing providers.

    Implementations translate orchestrator intent into provider wire calls and
    normalize the outcome into ProviderResult.
    """

    name: str = "unknown"

    @abstractmethod
    async def create_subscription(
        self,
        customer: CustomerInfo,
        plan_ref: str,
        payment_method_ref: Optional[str] = None,
        trial_end: Optional[int] = None,
        return_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ProviderResult:
        """
        Create (customer and) subscription against a plan/price reference.

        Returns:
            ProviderResult with id = provider subscription id and status
        """

    @abstractmethod
    async def cancel_subscription(
        self,
        provider_subscription_id: str,
        reason: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ProviderResult:
        """Request cancellation; ProviderResult.status carries the resulting state."""

    @abstractmethod
    async def list_products(self) -> ProviderResult:
        pass

    @abstractmethod
    async def list_plans(self) -> ProviderResult:
        pass

    @abstractmethod
    async def create_product(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ProviderResult:
        pass

    @abstractmethod
    async def create_plan(
        self,
        period: str,
        product_ref: str,
        idempotency_key: Optional[str] = None,
    ) -> ProviderResult:
        pass

    async def aclose(self) -> None:
        """Release network resources held by the adapter."""
        return None
