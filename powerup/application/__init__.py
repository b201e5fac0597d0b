"""Application services."""

from .admin_filter import AdminFilterBroadcast, apply_scope
from .dashboard import DashboardService
from .goals import GoalResolver
from .services import Services, build_services
from .sessions import SessionService
from .squads import SquadDirectory, SquadWriter, normalize_category

__all__ = [
    "AdminFilterBroadcast",
    "DashboardService",
    "GoalResolver",
    "Services",
    "SessionService",
    "SquadDirectory",
    "SquadWriter",
    "apply_scope",
    "build_services",
    "normalize_category",
]
