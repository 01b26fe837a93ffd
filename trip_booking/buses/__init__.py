from .router import router
from .service import BusService

__all__ = ["router", "BusService"]
