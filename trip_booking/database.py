from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from trip_booking.config import settings

def build_engine(url: str):
    """Create an engine; SQLite needs cross-thread access for the job runner"""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)

engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    """Yield a database session for the duration of one request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
