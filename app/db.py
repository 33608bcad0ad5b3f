from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy import create_engine
from os import getenv
from typing import Generator

from dotenv import load_dotenv

load_dotenv()


class Base(DeclarativeBase):
    pass


DATABASE_URL = getenv("DATABASE_URL")
if DATABASE_URL:
    engine = create_engine(DATABASE_URL, pool_pre_ping=True)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
else:
    # DATABASE_URL이 없으면 세션을 만들 수 없음 (테스트는 get_db를 override)
    engine = None
    SessionLocal = None


def get_db() -> Generator:
    """FastAPI 의존성으로 사용할 DB 세션"""
    if SessionLocal is None:
        raise RuntimeError("DATABASE_URL environment variable is not set")
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
