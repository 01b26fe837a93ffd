from .router import router
from .service import ReviewService

__all__ = ["router", "ReviewService"]
