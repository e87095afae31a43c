"""FastAPI middleware."""

from __future__ import annotations

from fullstock.web.middleware.prometheus import PrometheusMiddleware, RequestIdMiddleware

__all__ = ["PrometheusMiddleware", "RequestIdMiddleware"]
