from .router import router
from .service import TripService
from .lifecycle import TripLifecycleCoordinator, register_status_jobs

__all__ = ["router", "TripService", "TripLifecycleCoordinator", "register_status_jobs"]
