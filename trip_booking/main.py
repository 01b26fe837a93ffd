import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from trip_booking.config import settings
from trip_booking.database import Base, SessionLocal
from trip_booking.exceptions import AppError, InternalError
from trip_booking.log_config import configure_logging
from trip_booking.scheduler import StatusScheduler
from trip_booking.auth import router as auth_router
from trip_booking.users import router as users_router
from trip_booking.cities import router as cities_router
from trip_booking.buses import router as buses_router
from trip_booking.trips import router as trips_router, register_status_jobs
from trip_booking.tickets import router as tickets_router
from trip_booking.reviews import router as reviews_router

logger = logging.getLogger(__name__)

def _log_job_failure(job: dict, error: Exception) -> None:
    logger.error("Status job %s for trip %s marked failed: %s", job["name"], job["trip_id"], error)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and run the status scheduler for the app's lifetime"""
    session_factory = app.state.session_factory
    Base.metadata.create_all(bind=session_factory.kw["bind"])
    
    scheduler: StatusScheduler = app.state.scheduler
    task = None
    if settings.SCHEDULER_ENABLED:
        task = asyncio.create_task(scheduler.run_forever(settings.SCHEDULER_POLL_SECONDS))
    
    yield
    
    if task is not None:
        scheduler.stop()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

def create_app(session_factory=None) -> FastAPI:
    """Build the application; the composition root for the scheduler and routers"""
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    session_factory = session_factory or SessionLocal
    
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Bus trip scheduling and seat booking API",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    
    scheduler = StatusScheduler(session_factory)
    register_status_jobs(scheduler)
    scheduler.on_failure(_log_job_failure)
    app.state.session_factory = session_factory
    app.state.scheduler = scheduler
    
    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})
    
    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
        error = InternalError("Internal database error")
        return JSONResponse(status_code=error.status_code, content={"error": error.to_dict()})
    
    # Include routers
    app.include_router(auth_router, prefix=f"{settings.API_V1_STR}/auth", tags=["Authentication"])
    app.include_router(users_router, prefix=f"{settings.API_V1_STR}/users", tags=["Users"])
    app.include_router(cities_router, prefix=f"{settings.API_V1_STR}/cities", tags=["Cities"])
    app.include_router(buses_router, prefix=f"{settings.API_V1_STR}/buses", tags=["Buses"])
    app.include_router(trips_router, prefix=f"{settings.API_V1_STR}/trips", tags=["Trips"])
    app.include_router(tickets_router, prefix=f"{settings.API_V1_STR}/tickets", tags=["Tickets"])
    app.include_router(reviews_router, prefix=settings.API_V1_STR, tags=["Reviews"])
    
    @app.get("/")
    def root():
        """Root endpoint"""
        return {
            "message": settings.PROJECT_NAME,
            "version": "1.0.0",
            "docs": "/docs"
        }
    
    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}
    
    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
