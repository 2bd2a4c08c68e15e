from datetime import datetime

from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select, text
from sqlalchemy.orm import Session

from app.database.connection import get_db
from app.dependencies.auth import get_current_user_id
from app.middleware.metrics import get_metrics
from app.models.order import Order
from app.schemas.system import HealthCheckResponse, SystemMetricsResponse

router = APIRouter(tags=["System"])


def _uptime(request: Request, now: datetime) -> float:
    start_time = getattr(request.app.state, "start_time", now)
    return (now - start_time).total_seconds()


@router.get("/health", response_model=HealthCheckResponse)
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Lightweight public health check.
    Returns ok + DB connectivity check (SELECT 1).
    """
    now = datetime.utcnow()

    db_ok = True
    extra = {}
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        db_ok = False
        extra["db_error"] = type(e).__name__

    return HealthCheckResponse(
        status="ok" if db_ok else "degraded",
        now=now,
        uptime_seconds=_uptime(request, now),
        db_ok=db_ok,
        extra=extra or None,
    )


@router.get("/metrics", response_model=SystemMetricsResponse, dependencies=[Depends(get_current_user_id)])
def system_metrics(request: Request, db: Session = Depends(get_db)):
    """
    In-process request counters plus order counts from the database.
    """
    now = datetime.utcnow()

    metrics = get_metrics(request.app)
    requests_count = int(metrics.get("requests", 0))
    total_response_ms = float(metrics.get("total_response_ms", 0.0))
    avg_response_ms = (total_response_ms / requests_count) if requests_count > 0 else None

    start_today = datetime.combine(now.date(), datetime.min.time())
    total_orders_today = db.execute(
        select(func.count()).select_from(Order).where(Order.created_at >= start_today)
    ).scalar() or 0
    total_orders = db.execute(select(func.count()).select_from(Order)).scalar() or 0
    average_order_value = db.execute(select(func.avg(Order.total_amount))).scalar()

    return SystemMetricsResponse(
        uptime_seconds=_uptime(request, now),
        now=now,
        requests_count=requests_count,
        avg_response_ms=avg_response_ms,
        orders_placed=int(metrics.get("orders_placed", 0)),
        duplicate_payments=int(metrics.get("duplicate_payments", 0)),
        total_orders_today=int(total_orders_today),
        total_orders=int(total_orders),
        average_order_value=float(average_order_value) if average_order_value is not None else None,
    )
