import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from veloce.constants import DEFAULT_DB_URL

DATABASE_URL = os.getenv("VELOCE_DB_URL", DEFAULT_DB_URL)

# SQLite connections are shared between the request threads and the scheduler
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency yielding a session that is always closed"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
