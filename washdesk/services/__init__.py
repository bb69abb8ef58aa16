"""Service package public API definitions.

``washdesk.clients.store`` imports ``washdesk.services.exceptions``, which
runs this module first. Importing the service implementations eagerly here
would pull the store client back in and create a circular import, so they
are resolved lazily on first attribute access.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__all__ = [
    "DashboardService",
    "MetricsRegistry",
    "MetricsService",
    "TenantDataReader",
]

_SERVICE_MODULES = {
    "DashboardService": "dashboard",
    "MetricsRegistry": "metrics",
    "MetricsService": "metrics",
    "TenantDataReader": "reader",
}


def __getattr__(name: str) -> Any:
    if name not in _SERVICE_MODULES:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module = import_module(f".{_SERVICE_MODULES[name]}", __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .dashboard import DashboardService as DashboardService
    from .metrics import MetricsRegistry as MetricsRegistry
    from .metrics import MetricsService as MetricsService
    from .reader import TenantDataReader as TenantDataReader
