# urlcompare/data/db.py
from sqlalchemy import create_engine, Column, Integer, Float, String, Text, TIMESTAMP
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.sql import func
from urlcompare.config import settings
from urlcompare.models import ComparisonStatus, IterationResult
from typing import Optional, List, Sequence
import logging
import json


logger = logging.getLogger(__name__)

Base = declarative_base()
engine = create_engine(settings.DB_PATH, connect_args={"check_same_thread": False})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class ComparisonRun(Base):
    __tablename__ = "comparison_runs"
    id = Column(Integer, primary_key=True, index=True)
    comparison_mode = Column(String(16), nullable=False)
    baseline_operation = Column(String(16), nullable=True)
    total = Column(Integer, nullable=False)
    matches = Column(Integer, nullable=False)
    mismatches = Column(Integer, nullable=False)
    errors = Column(Integer, nullable=False)
    total_duration = Column(Float, nullable=False)
    results = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())


def initialize_database(bind=None):
    try:
        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database initialization complete")
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise RuntimeError(f"Database initialization failed: {str(e)}")


def insert_run(db: Session, comparison_mode: str, baseline_operation: Optional[str],
               results: Sequence[IterationResult]) -> ComparisonRun:
    try:
        durations = [
            (r.api1.duration if r.api1 and r.api1.duration else 0)
            + (r.api2.duration if r.api2 and r.api2.duration else 0)
            for r in results
        ]
        record = ComparisonRun(
            comparison_mode=comparison_mode,
            baseline_operation=baseline_operation,
            total=len(results),
            matches=sum(1 for r in results if r.status is ComparisonStatus.MATCH),
            mismatches=sum(1 for r in results if r.status is ComparisonStatus.MISMATCH),
            errors=sum(1 for r in results if r.status is ComparisonStatus.ERROR),
            total_duration=float(sum(durations)),
            results=json.dumps([r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in results]),
        )
        db.add(record)
        db.commit()
        db.refresh(record)
        return record
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to insert comparison run: {str(e)}")
        raise


def fetch_history(db: Session, limit: int = 10) -> List[ComparisonRun] | None:
    try:
        return (
            db.query(ComparisonRun)
            .order_by(ComparisonRun.created_at.desc(), ComparisonRun.id.desc())
            .limit(limit)
            .all()
        )
    except Exception as e:
        logger.error(f"Database query failed: {str(e)}")
        return None


def fetch_latest_run(db: Session) -> Optional[ComparisonRun]:
    try:
        return (
            db.query(ComparisonRun)
            .order_by(ComparisonRun.created_at.desc(), ComparisonRun.id.desc())
            .first()
        )
    except Exception as e:
        logger.error(f"Failed to fetch latest comparison run: {str(e)}")
        return None


def load_results(record: ComparisonRun) -> List[IterationResult]:
    return [IterationResult.model_validate(item) for item in json.loads(record.results)]
