from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from trip_booking.database import get_db
from trip_booking.auth.schemas import AuthContext
from trip_booking.auth.permissions import PermissionFlag
from trip_booking.auth.dependencies import get_auth_context, require_permissions, require_same_user_or_admin
from trip_booking.tickets.schemas import Ticket, TicketUpdate
from trip_booking.tickets.service import TicketService

router = APIRouter()

@router.get("/", response_model=List[Ticket])
def list_tickets(
    limit: int = Query(25, ge=1, le=100, description="Tickets per page"),
    page: int = Query(0, ge=0, description="Zero-based page number"),
    auth: AuthContext = Depends(require_permissions(PermissionFlag.ADMIN)),
    db: Session = Depends(get_db)
):
    """List all tickets (admin only)"""
    return TicketService.list_tickets(db, limit=limit, page=page)

@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
def delete_all_tickets(
    auth: AuthContext = Depends(require_permissions(PermissionFlag.ADMIN)),
    db: Session = Depends(get_db)
):
    TicketService.delete_all_tickets(db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/me", response_model=List[Ticket])
def my_tickets(auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """Get the current user's tickets"""
    return TicketService.list_user_tickets(db, auth.user_id)

@router.get("/{ticket_id}", response_model=Ticket)
def get_ticket(ticket_id: int, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """Get ticket by ID; owners see their own, admins see all"""
    ticket = TicketService.get_ticket_by_id(db, ticket_id)
    require_same_user_or_admin(auth, ticket.user_id)
    return ticket

@router.patch("/{ticket_id}", response_model=Ticket)
def update_ticket(
    ticket_id: int,
    ticket_update: TicketUpdate,
    auth: AuthContext = Depends(require_permissions(PermissionFlag.ADMIN)),
    db: Session = Depends(get_db)
):
    """Change a ticket's status (admin only)"""
    return TicketService.update_ticket_status(db, ticket_id, ticket_update.status)

@router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_ticket(
    ticket_id: int,
    auth: AuthContext = Depends(require_permissions(PermissionFlag.ADMIN)),
    db: Session = Depends(get_db)
):
    TicketService.delete_ticket(db, ticket_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.post("/{ticket_id}/cancel", response_model=Ticket)
def cancel_ticket(ticket_id: int, auth: AuthContext = Depends(get_auth_context), db: Session = Depends(get_db)):
    """Cancel a ticket and release its seat"""
    ticket = TicketService.get_ticket_by_id(db, ticket_id)
    require_same_user_or_admin(auth, ticket.user_id)
    return TicketService.cancel_ticket(db, ticket_id)
