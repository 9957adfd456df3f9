from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from studyroom.core.config import settings

# SQLite needs cross-thread access for the sweeper task and test clients
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
