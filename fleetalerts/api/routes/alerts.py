"""Alert API routes."""

from fastapi import APIRouter, HTTPException

from fleetalerts.api.deps import AlertFilterDep, StateStoreDep
from fleetalerts.engine.state import AlertStateStore, AlertSummary
from fleetalerts.schemas.alert import AlertFlagResponse, AlertResponse, RefreshResponse
from fleetalerts.schemas.common import APIResponse, ListResponse

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.get("", response_model=ListResponse[AlertResponse])
async def list_alerts(
    store: StateStoreDep,
    alert_filter: AlertFilterDep,
) -> ListResponse[AlertResponse]:
    """List alerts of the latest snapshot, highest priority first."""
    alerts = [AlertResponse.from_alert(alert) for alert in store.get_alerts(alert_filter)]
    return ListResponse(data=alerts, total=len(alerts), partial=store.last_refresh_partial)


@router.get("/summary", response_model=APIResponse[AlertSummary])
async def get_summary(store: StateStoreDep) -> APIResponse[AlertSummary]:
    """Alert counters for the dashboard badge."""
    return APIResponse(data=store.summary())


@router.post("/refresh", response_model=APIResponse[RefreshResponse])
async def refresh_alerts(store: StateStoreDep) -> APIResponse[RefreshResponse]:
    """Run an aggregation pass now.

    Joins the pass already in flight instead of starting a second one.
    """
    result = await store.refresh()
    message = "partial" if result.partial else "success"
    return APIResponse(
        message=message,
        data=RefreshResponse(
            alert_count=result.alert_count,
            partial=result.partial,
            failed_sources=sorted(result.failures),
            failures=result.failures,
            refreshed_at=result.refreshed_at,
            pass_id=result.pass_id,
        ),
    )


@router.get("/{alert_id}", response_model=APIResponse[AlertResponse])
async def get_alert(alert_id: str, store: StateStoreDep) -> APIResponse[AlertResponse]:
    """Get a single alert by id."""
    alert = store.get_alert(alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
    return APIResponse(data=AlertResponse.from_alert(alert))


@router.post("/{alert_id}/read", response_model=APIResponse[AlertFlagResponse])
async def mark_alert_read(alert_id: str, store: StateStoreDep) -> APIResponse[AlertFlagResponse]:
    """Mark an alert read. Repeating the call is harmless."""
    changed = await store.mark_read(alert_id)
    return APIResponse(data=_flag_response(store, alert_id, changed))


@router.post("/{alert_id}/dismiss", response_model=APIResponse[AlertFlagResponse])
async def dismiss_alert(alert_id: str, store: StateStoreDep) -> APIResponse[AlertFlagResponse]:
    """Dismiss an alert so it drops out of the default listing."""
    changed = await store.dismiss(alert_id)
    return APIResponse(data=_flag_response(store, alert_id, changed))


def _flag_response(store: AlertStateStore, alert_id: str, changed: bool) -> AlertFlagResponse:
    alert = store.get_alert(alert_id)
    if alert is None:
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
    return AlertFlagResponse(
        id=alert.id,
        read=alert.read,
        dismissed=alert.dismissed,
        changed=changed,
    )
