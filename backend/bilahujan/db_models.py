# backend/bilahujan/db_models.py
from sqlalchemy import Column, Integer, String, DateTime, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from datetime import datetime
import os

from .config import DATABASE_URL

Base = declarative_base()

class ZoneRecord(Base):
    __tablename__ = "flood_zones"
    id = Column(String, primary_key=True)
    state = Column(String, index=True)
    name = Column(String)
    severity = Column(Integer)
    provenance = Column(String)
    updated_at = Column(DateTime, default=datetime.utcnow)
    raw_json = Column(Text)

class ZoneActivity(Base):
    __tablename__ = "zone_activity"
    id = Column(Integer, primary_key=True, index=True)
    zone_id = Column(String, index=True)
    saved_at = Column(DateTime, default=datetime.utcnow)
    severity = Column(Integer)
    color = Column(String)
    reason = Column(String)

def make_engine(database_url: str = DATABASE_URL):
    if database_url.startswith("sqlite:///"):
        db_file = database_url[len("sqlite:///"):]
        if db_file and db_file != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(db_file)), exist_ok=True)
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url)

def make_session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)

def init_db(engine):
    Base.metadata.create_all(bind=engine)
