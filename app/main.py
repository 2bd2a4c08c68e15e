from datetime import datetime

from fastapi import FastAPI

from app import models  # noqa: F401  registers every table on Base.metadata
from app.core.handlers import register_exception_handlers
from app.core.logging_config import configure_logging
from app.database.connection import Base, engine
from app.middleware.cors import CorsMiddleware
from app.middleware.metrics import MetricsMiddleware, new_metrics
from app.routes.auth import router as auth_router
from app.routes.orders import router as orders_router
from app.routes.payments import router as payments_router
from app.routes import system

configure_logging()

app = FastAPI(title="Checkout & Payment Reconciliation Service")

app.add_middleware(MetricsMiddleware)
# added last so it wraps everything, including preflights
app.add_middleware(CorsMiddleware)

register_exception_handlers(app)

app.include_router(auth_router)
app.include_router(orders_router)
app.include_router(payments_router)
app.include_router(system.router)


@app.on_event("startup")
async def startup_event():
    Base.metadata.create_all(bind=engine)
    app.state.start_time = datetime.utcnow()
    app.state.metrics = new_metrics()
