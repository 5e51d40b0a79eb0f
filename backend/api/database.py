import json
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Any

from sqlalchemy import create_engine, Column, Integer, String, DateTime, Boolean, Text, ForeignKey, Index, func, or_
from sqlalchemy.orm import sessionmaker, relationship, declarative_base, Session
from datetime import datetime, timezone


def utc_now():
    """Return current UTC time (timezone-aware). Replaces deprecated datetime.utcnow()."""
    return datetime.now(timezone.utc)

Base = declarative_base()


class JobStatus(str, Enum):
    NEW = "new"
    MATCHED = "matched"
    INTERESTED = "interested"
    APPLIED = "applied"
    ARCHIVED = "archived"
    REJECTED = "rejected"
    IGNORED = "ignored"


class Job(Base):
    __tablename__ = 'jobs'

    id = Column(Integer, primary_key=True)
    source = Column(String, nullable=False, index=True)  # naukri, linkedin-recommended, manual, etc.
    external_id = Column(String)
    url = Column(String, nullable=False, unique=True)  # Canonical key for reconciliation

    # Posting details
    title = Column(String, nullable=False)
    company = Column(String)
    location = Column(String)
    salary = Column(String)
    experience = Column(String)
    description = Column(Text)  # May contain HTML from the detail page
    requirements = Column(Text)  # Comma-separated skills
    email = Column(String)
    apply_url = Column(String)
    posted_at = Column(String)  # As shown by the board ("3 days ago")

    # Tracking
    scraped_at = Column(DateTime, default=utc_now)
    match_score = Column(Integer)  # 0-100, null until scored
    status = Column(String, default=JobStatus.NEW.value, nullable=False, index=True)
    notes = Column(Text)

    applications = relationship("Application", back_populates="job", cascade="all, delete-orphan")

    __table_args__ = (
        Index('ix_jobs_scraped_at', 'scraped_at'),
    )


class Setting(Base):
    __tablename__ = 'settings'

    key = Column(String, primary_key=True)
    value = Column(Text)  # JSON for lists, plain text otherwise


class Application(Base):
    __tablename__ = 'applications'

    id = Column(Integer, primary_key=True)
    job_id = Column(Integer, ForeignKey('jobs.id'), nullable=False, index=True)
    email_subject = Column(String)
    email_body = Column(Text)
    sent_at = Column(DateTime, default=utc_now)
    response_received = Column(Boolean, default=False)
    response_notes = Column(Text)

    job = relationship("Job", back_populates="applications")


# Database setup - import settings for database URL
from api.config import settings

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

# Configure engine with connection pooling for better performance
engine = create_engine(
    settings.database_url,
    echo=False,
    connect_args=connect_args,
    pool_size=5,           # Number of connections to keep in pool
    max_overflow=10,       # Additional connections allowed beyond pool_size
    pool_pre_ping=True,    # Verify connections before use (handles stale connections)
    pool_recycle=3600,     # Recycle connections after 1 hour
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def init_db():
    database = engine.url.database
    if engine.url.get_backend_name() == "sqlite" and database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ============================================================
# RECORD STORE
# ============================================================

class JobStore:
    """
    Job records keyed by canonical URL, as used by reconciliation.

    Every insert and patch commits on its own, so one bad listing never
    loses the ones saved before it.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_by_url(self, url: str) -> Optional[Job]:
        return self.db.query(Job).filter(Job.url == url).first()

    def insert(self, listing) -> int:
        """Insert a scraped listing as a new record with status 'new'."""
        job = Job(
            source=listing.source,
            external_id=listing.external_id,
            url=listing.url,
            title=listing.title,
            company=listing.company,
            location=listing.location,
            salary=listing.salary,
            experience=listing.experience,
            description=listing.description,
            requirements=listing.requirements,
            email=listing.email,
            apply_url=listing.apply_url,
            posted_at=listing.posted_at,
            match_score=None,
            status=JobStatus.NEW.value,
            notes=None,
        )
        self.db.add(job)
        self.db.commit()
        return job.id

    def patch(self, job_id: int, fields: Dict[str, Any]) -> bool:
        """Apply field updates to one record. Returns False if it does not exist."""
        fields = {k: v for k, v in fields.items() if k not in ('id', 'scraped_at')}
        if not fields:
            return False
        job = self.db.query(Job).filter(Job.id == job_id).first()
        if job is None:
            return False
        for name, value in fields.items():
            setattr(job, name, value)
        self.db.commit()
        return True

    def rollback(self):
        self.db.rollback()


# ============================================================
# QUERIES
# ============================================================

def get_jobs(
    db: Session,
    status: Optional[str] = None,
    source: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    per_page: int = 20,
    sort: str = "date",
) -> Tuple[List[Job], int]:
    """
    Filtered, paginated job list.

    "all" for status or source means no filter. sort is "date" (newest
    first), "score" or "score_asc"; unscored jobs always sort last.
    """
    query = db.query(Job)

    if status and status != 'all':
        query = query.filter(Job.status == status)
    if source and source != 'all':
        query = query.filter(Job.source == source)
    if search:
        term = f"%{search}%"
        query = query.filter(or_(Job.title.ilike(term), Job.company.ilike(term), Job.description.ilike(term)))

    total = query.count()

    if sort == 'score':
        query = query.order_by(Job.match_score.is_(None), Job.match_score.desc(), Job.scraped_at.desc())
    elif sort == 'score_asc':
        query = query.order_by(Job.match_score.is_(None), Job.match_score.asc(), Job.scraped_at.desc())
    else:
        query = query.order_by(Job.scraped_at.desc(), Job.id.desc())

    jobs = query.offset((page - 1) * per_page).limit(per_page).all()
    return jobs, total


def get_job_stats(db: Session) -> Dict:
    by_status = db.query(Job.status, func.count(Job.id)).group_by(Job.status).all()
    by_source = db.query(Job.source, func.count(Job.id)).group_by(Job.source).all()
    return {
        "total": db.query(func.count(Job.id)).scalar() or 0,
        "by_status": {status: count for status, count in by_status},
        "by_source": {source: count for source, count in by_source},
    }


def create_application(db: Session, job_id: int, email_subject: Optional[str] = None,
                       email_body: Optional[str] = None) -> Application:
    application = Application(job_id=job_id, email_subject=email_subject, email_body=email_body)
    db.add(application)
    db.commit()
    return application


# ============================================================
# SCRAPE SETTINGS
# ============================================================

def get_all_settings(db: Session) -> Dict[str, str]:
    return {row.key: row.value for row in db.query(Setting).all()}


def set_setting(db: Session, key: str, value: str):
    row = db.query(Setting).filter(Setting.key == key).first()
    if row is None:
        db.add(Setting(key=key, value=value))
    else:
        row.value = value
    db.commit()


def get_scrape_defaults(db: Session) -> Dict:
    """Stored scrape defaults, falling back to application settings."""
    stored = get_all_settings(db)
    return {
        "keywords": json.loads(stored.get("keywords") or "[]"),
        "enabled_sources": json.loads(stored.get("enabled_sources") or "[]"),
        "pages_to_scrape": int(stored.get("pages_to_scrape") or settings.default_max_pages),
        "scrape_mode": stored.get("scrape_mode") or settings.default_scrape_mode,
    }


def save_scrape_defaults(db: Session, keywords: Optional[List[str]] = None,
                         enabled_sources: Optional[List[str]] = None,
                         pages_to_scrape: Optional[int] = None,
                         scrape_mode: Optional[str] = None):
    """Persist only the values that were given."""
    if keywords is not None:
        set_setting(db, "keywords", json.dumps(keywords))
    if enabled_sources is not None:
        set_setting(db, "enabled_sources", json.dumps(enabled_sources))
    if pages_to_scrape is not None:
        set_setting(db, "pages_to_scrape", str(pages_to_scrape))
    if scrape_mode is not None:
        set_setting(db, "scrape_mode", scrape_mode)
