"""API dependency injection."""

from typing import Annotated

from fastapi import Depends, Query, Request

from fleetalerts.engine.state import AlertFilter, AlertStateStore
from fleetalerts.models.alert import AlertCategory, AlertPriority


def get_state_store(request: Request) -> AlertStateStore:
    """Get the state store of the running application."""
    return request.app.state.runtime.store


# Type aliases for dependency injection
StateStoreDep = Annotated[AlertStateStore, Depends(get_state_store)]


def get_alert_filter(
    category: AlertCategory | None = Query(default=None, description="Filter by category"),
    priority: AlertPriority | None = Query(default=None, description="Filter by priority"),
    status: str = Query(default="all", pattern="^(all|read|unread)$", description="Read status"),
    include_dismissed: bool = Query(default=False, description="Include dismissed alerts"),
) -> AlertFilter:
    """Get alert filter from query."""
    return AlertFilter(
        category=category,
        priority=priority,
        status=status,
        include_dismissed=include_dismissed,
    )


AlertFilterDep = Annotated[AlertFilter, Depends(get_alert_filter)]
