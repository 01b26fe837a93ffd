from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Numeric, Float, JSON, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from trip_booking.database import Base

# ================================
# Users
# ================================
class User(Base):
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    permission_flags = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    tickets = relationship("Ticket", back_populates="user")
    reviews = relationship("Review", back_populates="user")

# ================================
# Cities & Buses
# ================================
class City(Base):
    __tablename__ = "cities"
    
    id = Column(Integer, primary_key=True, index=True)
    city_name = Column(String(255), unique=True, nullable=False, index=True)
    latitude = Column(Numeric(10, 6))
    longitude = Column(Numeric(10, 6))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

class Bus(Base):
    __tablename__ = "buses"
    
    id = Column(Integer, primary_key=True, index=True)
    bus_model = Column(String(255), nullable=False)
    seats = Column(Integer, nullable=False)
    bus_type = Column(String(100))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    trips = relationship("Trip", back_populates="bus")

# ================================
# Trips & Seat Inventory
# ================================
class Trip(Base):
    __tablename__ = "trips"
    __table_args__ = (
        Index("ix_trips_bus_status", "bus_id", "status"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    departure_city_id = Column(Integer, ForeignKey("cities.id"), nullable=False)
    arrival_city_id = Column(Integer, ForeignKey("cities.id"), nullable=False)
    departure_time = Column(DateTime, nullable=False)
    arrival_time = Column(DateTime, nullable=False)
    duration = Column(String(50), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    ratings = Column(Float, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active", index=True)
    bus_id = Column(Integer, ForeignKey("buses.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    departure_city = relationship("City", foreign_keys=[departure_city_id])
    arrival_city = relationship("City", foreign_keys=[arrival_city_id])
    bus = relationship("Bus", back_populates="trips")
    seats = relationship("BookedSeat", back_populates="trip", cascade="all, delete-orphan")
    tickets = relationship("Ticket", back_populates="trip")
    reviews = relationship("Review", back_populates="trip")
    
    @property
    def booked_seats(self):
        return sorted(seat.seat_number for seat in self.seats)

class BookedSeat(Base):
    """One held seat of one trip; the unique constraint is the atomic add-to-set"""
    __tablename__ = "booked_seats"
    __table_args__ = (
        UniqueConstraint("trip_id", "seat_number", name="uq_booked_seats_trip_seat"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    seat_number = Column(Integer, nullable=False)
    ticket_id = Column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    
    # Relationships
    trip = relationship("Trip", back_populates="seats")

# ================================
# Tickets & Reviews
# ================================
class Ticket(Base):
    __tablename__ = "tickets"
    __table_args__ = (
        Index("ix_tickets_trip_status", "trip_id", "status"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False)
    seat_number = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="active")
    price = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    user = relationship("User", back_populates="tickets")
    trip = relationship("Trip", back_populates="tickets")

class Review(Base):
    __tablename__ = "reviews"
    
    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    review_text = Column(Text, nullable=False)
    ratings = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    trip = relationship("Trip", back_populates="reviews")
    user = relationship("User", back_populates="reviews")

# ================================
# Scheduled Jobs
# ================================
class ScheduledJob(Base):
    """Durable deferred status transition keyed by (name, trip_id)"""
    __tablename__ = "scheduled_jobs"
    __table_args__ = (
        Index("ix_scheduled_jobs_name_trip", "name", "trip_id"),
        Index("ix_scheduled_jobs_status_fire_at", "status", "fire_at"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    trip_id = Column(Integer, nullable=False)
    fire_at = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    data = Column(JSON, nullable=False, default=dict)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text)
    fired_at = Column(DateTime)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
