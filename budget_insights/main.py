import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from budget_insights.core.config import settings
from budget_insights.core.dependencies import get_pipeline
from budget_insights.core.errors import (
    AuthRequiredError,
    BudgetInsightsError,
    ExternalServiceError,
    InvalidRecordError,
    NotFoundError,
    StoreError,
)
from budget_insights.routers import analytics, budget, expenses, health, incomes, insights
from budget_insights.utils.scheduler import start_scheduler, stop_scheduler

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    AuthRequiredError: status.HTTP_401_UNAUTHORIZED,
    InvalidRecordError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ExternalServiceError: status.HTTP_502_BAD_GATEWAY,
    StoreError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.SCHEDULER_ENABLED:
        logger.info("Starting scheduler...")
        start_scheduler(get_pipeline)
    yield
    if settings.SCHEDULER_ENABLED:
        logger.info("Stopping scheduler...")
        stop_scheduler()


app = FastAPI(
    title=settings.PROJECT_NAME,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)


@app.exception_handler(BudgetInsightsError)
async def handle_domain_error(request: Request, exc: BudgetInsightsError):
    code = next(
        (value for error, value in ERROR_STATUS.items() if isinstance(exc, error)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    return JSONResponse(status_code=code, content={"detail": str(exc)})


# Root endpoint
@app.get("/")
def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME} API"}


# Register routers
app.include_router(health.router, prefix=f"{settings.API_PREFIX}", tags=["Health"])  # /api/health
app.include_router(expenses.router, prefix=f"{settings.API_PREFIX}/expenses", tags=["Expenses"])
app.include_router(incomes.router, prefix=f"{settings.API_PREFIX}/incomes", tags=["Incomes"])
app.include_router(budget.router, prefix=f"{settings.API_PREFIX}/budget", tags=["Budget"])
app.include_router(analytics.router, prefix=f"{settings.API_PREFIX}/analytics", tags=["Analytics"])
app.include_router(insights.router, prefix=f"{settings.API_PREFIX}/insights", tags=["Insights"])
