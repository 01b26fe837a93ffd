from .router import router
from .service import TicketService

__all__ = ["router", "TicketService"]
