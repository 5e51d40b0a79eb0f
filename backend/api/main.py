from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import List, Optional, Dict
from datetime import datetime
import logging
import asyncio
import re

from api.database import (
    get_db,
    init_db,
    engine,
    Job,
    JobStatus,
    get_jobs,
    get_job_stats,
    create_application,
    get_scrape_defaults,
    save_scrape_defaults,
)
from api.config import settings
from scrapers.base import ScrapeConfigError, BrowserUnavailableError, ScrapeMode
from scrapers.engine import PacingPolicy
from scrapers.manager import ScraperManager, SCRAPER_REGISTRY, launch_browser_surface
from pydantic import BaseModel, Field

# Setup logging directory
settings.log_dir.mkdir(exist_ok=True)


# Custom formatter to strip ANSI color codes from file logs
class ColorStripFormatter(logging.Formatter):
    """Formatter that strips ANSI color codes from log messages."""
    ansi_escape = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')

    def format(self, record):
        message = super().format(record)
        return self.ansi_escape.sub('', message)

# Setup logging with color support for console, stripped for file
file_handler = logging.FileHandler(settings.log_file, encoding='utf-8')
file_handler.setFormatter(ColorStripFormatter(settings.log_format))

console_handler = logging.StreamHandler()
console_handler.setFormatter(logging.Formatter(settings.log_format))

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    handlers=[file_handler, console_handler],
    force=True  # Override any existing configuration
)

# Per-site loggers live under 'scraper'; give them their own handlers so
# messages appear once
scraper_logger = logging.getLogger('scraper')
scraper_logger.propagate = False
if not scraper_logger.handlers:
    scraper_file_handler = logging.FileHandler(settings.log_file, encoding='utf-8')
    scraper_file_handler.setFormatter(ColorStripFormatter(settings.log_format))
    scraper_logger.addHandler(scraper_file_handler)

    scraper_console_handler = logging.StreamHandler()
    scraper_console_handler.setFormatter(logging.Formatter(settings.log_format))
    scraper_logger.addHandler(scraper_console_handler)
scraper_logger.setLevel(getattr(logging, settings.log_level.upper()))

logger = logging.getLogger(__name__)


async def cleanup_resources():
    """Clean up all resources on shutdown."""
    logger.info("Closing database connections...")
    try:
        await asyncio.wait_for(
            asyncio.get_running_loop().run_in_executor(None, lambda: engine.dispose(close=True)),
            timeout=2.0
        )
        logger.info("Database connections closed")
    except asyncio.TimeoutError:
        logger.warning("Database cleanup timed out")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info("Job Harvest Backend Starting Up")
    logger.info("=" * 60)
    logger.info(f"Log file: {settings.log_file}")
    logger.info(f"Database: {settings.database_url}")
    logger.info(f"Browser profile: {settings.browser_data_dir}")
    init_db()
    logger.info("Database initialized successfully")
    logger.info("Backend ready to accept requests")

    yield

    logger.info("=" * 60)
    logger.info("Job Harvest Backend Shutting Down")
    logger.info("=" * 60)
    try:
        await asyncio.wait_for(cleanup_resources(), timeout=5.0)
    except asyncio.TimeoutError:
        logger.warning("Shutdown cleanup timed out, forcing exit")

    logger.info("Shutdown complete")


app = FastAPI(
    title="Job Harvest API",
    version="1.0.0",
    lifespan=lifespan
)

# Note: allow_credentials must be False when allow_origins is ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    """Return empty response for favicon requests"""
    return Response(status_code=204)


# Dependencies for the scrape run; tests swap these for fakes

def get_surface_factory():
    return launch_browser_surface


def get_pacing_policy() -> PacingPolicy:
    return PacingPolicy.from_settings(settings)


# Pydantic models for API requests and responses

class JobResponse(BaseModel):
    id: int
    source: str
    external_id: Optional[str]
    url: str
    title: str
    company: Optional[str]
    location: Optional[str]
    salary: Optional[str]
    experience: Optional[str]
    description: Optional[str]
    requirements: Optional[str]
    email: Optional[str]
    apply_url: Optional[str]
    posted_at: Optional[str]
    scraped_at: Optional[datetime]
    match_score: Optional[int]
    status: str
    notes: Optional[str]

    class Config:
        from_attributes = True


class JobStatsResponse(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_source: Dict[str, int]


class JobListResponse(BaseModel):
    jobs: List[JobResponse]
    total: int
    page: int
    per_page: int
    stats: JobStatsResponse


class JobCreate(BaseModel):
    """Manually added job."""
    source: str = "manual"
    external_id: Optional[str] = None
    url: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    company: Optional[str] = None
    location: Optional[str] = None
    salary: Optional[str] = None
    experience: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[str] = None
    email: Optional[str] = None
    apply_url: Optional[str] = None
    posted_at: Optional[str] = None
    match_score: Optional[int] = Field(None, ge=0, le=100)
    status: JobStatus = JobStatus.NEW
    notes: Optional[str] = None


class JobUpdate(BaseModel):
    status: Optional[JobStatus] = None
    match_score: Optional[int] = Field(None, ge=0, le=100)
    notes: Optional[str] = None
    email: Optional[str] = None
    apply_url: Optional[str] = None
    # Recorded on the Application when status moves to 'applied'
    email_subject: Optional[str] = None
    email_body: Optional[str] = None


class ScrapeRequest(BaseModel):
    """Missing values fall back to the stored scrape settings."""
    sources: Optional[List[str]] = None
    keywords: Optional[List[str]] = None
    max_pages: Optional[int] = None  # Range checked by the manager (400, not 422)
    fetch_full_details: bool = True
    mode: Optional[str] = None


class ScrapeSettings(BaseModel):
    keywords: List[str]
    enabled_sources: List[str]
    pages_to_scrape: int
    scrape_mode: str


class ScrapeSettingsUpdate(BaseModel):
    keywords: Optional[List[str]] = None
    enabled_sources: Optional[List[str]] = None
    pages_to_scrape: Optional[int] = Field(None, ge=1, le=10)
    scrape_mode: Optional[ScrapeMode] = None


def get_job_or_404(db: Session, job_id: int) -> Job:
    job = db.query(Job).filter(Job.id == job_id).first()
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


# API Endpoints

@app.get("/")
async def root():
    return {"message": "Job Harvest API", "version": "1.0.0"}


@app.get("/api/scrapers")
async def list_scrapers():
    """List all configured job boards with their capabilities"""
    manager = ScraperManager()
    return {
        "scrapers": manager.list_scrapers(),
        "implemented": manager.get_implemented_scrapers()
    }


@app.post("/api/scrape")
async def run_scrape(
    request: Optional[ScrapeRequest] = None,
    db: Session = Depends(get_db),
    surface_factory=Depends(get_surface_factory),
    pacing: PacingPolicy = Depends(get_pacing_policy),
):
    """Scrape the requested boards and reconcile results into the job store"""
    request = request or ScrapeRequest()
    defaults = get_scrape_defaults(db)

    sources = request.sources if request.sources is not None else defaults["enabled_sources"]
    keywords = request.keywords if request.keywords is not None else defaults["keywords"]
    max_pages = request.max_pages if request.max_pages is not None else defaults["pages_to_scrape"]
    mode = request.mode or defaults["scrape_mode"]

    logger.info(
        f"Starting scrape: sources={','.join(sources)}, keywords={','.join(keywords)}, "
        f"mode={mode}, fetch_full_details={request.fetch_full_details}"
    )

    manager = ScraperManager(db, surface_factory=surface_factory, pacing=pacing)
    try:
        results = await manager.run(sources, keywords, max_pages, request.fetch_full_details, mode)
    except ScrapeConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BrowserUnavailableError as e:
        logger.error(f"Browser unavailable: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    return {
        "results": [r.to_dict() for r in results],
        "total_jobs_added": sum(r.jobs_added for r in results),
        "login_required": any(r.login_required for r in results),
        "warnings": [w for r in results for w in r.warnings],
    }


@app.get("/api/jobs", response_model=JobListResponse)
async def list_jobs(
    status: Optional[str] = Query(None, description="Filter by status ('all' for any)"),
    source: Optional[str] = Query(None, description="Filter by source ('all' for any)"),
    search: Optional[str] = Query(None, description="Search title, company and description"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=200),
    sort: str = Query("date", pattern="^(date|score|score_asc)$"),
    db: Session = Depends(get_db)
):
    """Get jobs with filters, pagination and overall stats"""
    jobs, total = get_jobs(db, status=status, source=source, search=search,
                           page=page, per_page=per_page, sort=sort)
    return {
        "jobs": jobs,
        "total": total,
        "page": page,
        "per_page": per_page,
        "stats": get_job_stats(db),
    }


@app.get("/api/jobs/{job_id}", response_model=JobResponse)
async def get_job(job_id: int, db: Session = Depends(get_db)):
    """Get a single job"""
    return get_job_or_404(db, job_id)


@app.post("/api/jobs", status_code=201)
async def create_job(job_in: JobCreate, db: Session = Depends(get_db)):
    """Add a job manually"""
    if db.query(Job).filter(Job.url == job_in.url).first():
        raise HTTPException(status_code=409, detail="Job with this URL already exists")

    data = job_in.model_dump()
    data["status"] = job_in.status.value
    data["email"] = data["email"] or None
    data["apply_url"] = data["apply_url"] or None

    job = Job(**data)
    db.add(job)
    db.commit()
    db.refresh(job)
    return {"success": True, "id": job.id}


@app.patch("/api/jobs/{job_id}")
async def update_job(job_id: int, update: JobUpdate, db: Session = Depends(get_db)):
    """Update tracking fields; moving to 'applied' records an application"""
    job = get_job_or_404(db, job_id)
    changes = update.model_dump(exclude_unset=True)

    email_subject = changes.pop("email_subject", None)
    email_body = changes.pop("email_body", None)

    new_status = changes.get("status")
    if new_status == JobStatus.APPLIED and job.status != JobStatus.APPLIED.value:
        create_application(db, job.id, email_subject=email_subject, email_body=email_body)
        logger.info(f"Recorded application for job {job.id}")

    for name, value in changes.items():
        setattr(job, name, value.value if isinstance(value, JobStatus) else value)
    db.commit()
    return {"success": True}


@app.delete("/api/jobs/{job_id}")
async def delete_job(job_id: int, db: Session = Depends(get_db)):
    """Delete a job"""
    job = get_job_or_404(db, job_id)
    db.delete(job)
    db.commit()
    return {"success": True}


@app.get("/api/settings", response_model=ScrapeSettings)
async def get_settings(db: Session = Depends(get_db)):
    """Get the stored scrape defaults"""
    return get_scrape_defaults(db)


@app.post("/api/settings")
async def update_settings(update: ScrapeSettingsUpdate, db: Session = Depends(get_db)):
    """Store scrape defaults; omitted values are left unchanged"""
    save_scrape_defaults(
        db,
        keywords=update.keywords,
        enabled_sources=update.enabled_sources,
        pages_to_scrape=update.pages_to_scrape,
        scrape_mode=update.scrape_mode.value if update.scrape_mode else None,
    )
    return {"success": True}


@app.get("/api/auth/status")
async def auth_status(
    site: Optional[str] = Query(None, description="Site key, or 'all'"),
    surface_factory=Depends(get_surface_factory),
    pacing: PacingPolicy = Depends(get_pacing_policy),
):
    """Check whether the browser profile is logged in to each site"""
    if site and site != "all" and site not in SCRAPER_REGISTRY:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid site: {site}. Supported sites: {', '.join(SCRAPER_REGISTRY.keys())}"
        )

    sites = [site] if site and site != "all" else list(SCRAPER_REGISTRY.keys())
    manager = ScraperManager(surface_factory=surface_factory, pacing=pacing)

    statuses = {}
    try:
        for key in sites:
            statuses[key] = await manager.check_login_status(key)
    except BrowserUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return statuses


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.main:app", host=settings.api_host, port=settings.api_port, reload=settings.api_debug)
