"""
Dashboard module for the risk chart engine.

Contains the event-driven session that keeps chart specs in step with the
dataset, viewport size, risk filter and age-group animation.
"""

from src.dashboard.cache import DerivedStateCache
from src.dashboard.scheduling import AgeGroupCycler, Debouncer, PeriodicScheduler
from src.dashboard.session import (
    ALL_CHARTS,
    BAR,
    HEXBIN,
    SANKEY,
    DashboardData,
    DashboardSession,
    load_dashboard_data,
)

__all__ = [
    # Derived state
    "DerivedStateCache",
    # Event coalescing
    "AgeGroupCycler",
    "Debouncer",
    "PeriodicScheduler",
    # Session
    "ALL_CHARTS",
    "BAR",
    "HEXBIN",
    "SANKEY",
    "DashboardData",
    "DashboardSession",
    "load_dashboard_data",
]
