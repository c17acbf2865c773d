"""Domain layer for tramita application."""

from importlib import import_module

_SERVICES = {
    "CaseService": "tramita.domain.case",
    "HistoryService": "tramita.domain.history",
    "DashboardService": "tramita.domain.dashboard",
    "ConfigurationService": "tramita.domain.configuration",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    # Services import the database layer, which imports the entities here
    if name in _SERVICES:
        return getattr(import_module(_SERVICES[name]), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
