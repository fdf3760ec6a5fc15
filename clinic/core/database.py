from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator
import redis
from .config import settings

DATABASE_URL = settings.get_database_url

# SQLite is used for tests; PostgreSQL gets a real connection pool
if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
else:
    engine = create_engine(
        DATABASE_URL,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,  # Recycle connections after 30 minutes
        pool_pre_ping=True,
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Redis setup - mock for testing
if settings.TESTING:
    # Use a simple dict-based mock for Redis in tests
    class RedisMock:
        def __init__(self):
            self.data = {}

        def setex(self, key, time, value):
            self.data[key] = str(value)
            return True

        def get(self, key):
            return self.data.get(key)

        def delete(self, key):
            self.data.pop(key, None)
            return 1

        def incr(self, key):
            self.data[key] = str(int(self.data.get(key, 0)) + 1)
            return int(self.data[key])

        def flushall(self):
            self.data.clear()
            return True

    redis_client = RedisMock()
else:
    redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)

# Database dependency
def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Redis dependency
def get_redis():
    """Get Redis client."""
    return redis_client

# Database initialization
def init_db():
    """Initialize database tables."""
    from .. import models  # noqa: F401  register mappers on Base.metadata

    Base.metadata.create_all(bind=engine)
