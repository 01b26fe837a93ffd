from .router import router
from .service import CityService

__all__ = ["router", "CityService"]
