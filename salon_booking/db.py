# salon_booking/db.py

import os

from sqlmodel import SQLModel, create_engine, Session

# SQLite database (file-based) unless DATABASE_URL says otherwise
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./salon.db")

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

# Engine = connection to the database
engine = create_engine(
    DATABASE_URL,
    echo=False,          # set to True to see SQL
    connect_args=connect_args,
)


def create_db_and_tables(bind=None):
    SQLModel.metadata.create_all(bind or engine)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
