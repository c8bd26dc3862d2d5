from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from stepwright.core.config import DATABASE_URL

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    # SQLite connections are shared across the threadpool FastAPI runs sync routes in
    connect_args = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
