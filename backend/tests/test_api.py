"""
Tests for API endpoints.
"""

import pytest
from fastapi import status

from api.database import Application
from scrapers.base import BrowserUnavailableError, NavigationError
from scrapers.manager import SCRAPER_REGISTRY
from api.main import app, get_surface_factory

from conftest import FakeAdapter


class SinglePageAdapter(FakeAdapter):
    def __init__(self):
        super().__init__(next_page=False)


@pytest.fixture
def fake_registry(monkeypatch):
    monkeypatch.setitem(SCRAPER_REGISTRY, 'fake', SinglePageAdapter)


class TestRootEndpoint:
    """Test the root endpoint."""

    def test_root_returns_json(self, client):
        """Test that root endpoint returns expected JSON."""
        response = client.get("/")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["message"] == "Job Harvest API"
        assert "version" in data


class TestScrapersEndpoint:
    """Test the scraper registry endpoint."""

    def test_list_scrapers(self, client):
        """Test that both boards are listed."""
        response = client.get("/api/scrapers")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert {s["key"] for s in data["scrapers"]} >= {"naukri", "linkedin"}
        assert "naukri" in data["implemented"]


class TestScrapeEndpoint:
    """Test triggering a scrape run."""

    def test_scrape_adds_jobs(self, client, fake_surface, fake_registry):
        """Test a full run through the fake browser."""
        fake_surface.pages['https://fake.example/search?q=python&page=1'] = {'cards': [
            {'url': '/jobs/1', 'title': 'Backend Engineer', 'company': 'Acme'},
        ]}

        response = client.post("/api/scrape", json={
            "sources": ["fake"],
            "keywords": ["python"],
            "max_pages": 1,
            "fetch_full_details": False,
        })

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total_jobs_added"] == 1
        assert data["login_required"] is False
        assert data["results"][0]["source"] == "fake"
        assert data["results"][0]["success"] is True
        assert fake_surface.closed is True

        jobs = client.get("/api/jobs").json()["jobs"]
        assert jobs[0]["url"] == "https://fake.example/jobs/1"
        assert jobs[0]["status"] == "new"

    def test_scrape_uses_stored_settings(self, client, fake_surface, fake_registry):
        """Test that omitted request values come from stored settings."""
        fake_surface.pages['https://fake.example/search?q=django&page=1'] = {'cards': [
            {'url': '/jobs/7', 'title': 'Django Developer'},
        ]}
        client.post("/api/settings", json={"keywords": ["django"], "enabled_sources": ["fake"]})

        response = client.post("/api/scrape", json={"fetch_full_details": False})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["total_jobs_added"] == 1

    @pytest.mark.parametrize("payload, message", [
        ({"sources": ["monster"], "keywords": ["python"]}, "Unknown scraper"),
        ({"sources": ["naukri"], "keywords": []}, "Keywords are required"),
        ({"sources": ["naukri"], "keywords": ["python"], "max_pages": 50}, "max_pages"),
        ({"sources": ["naukri"], "keywords": ["python"], "mode": "everything"}, "Unknown scrape mode"),
        ({}, "No sources selected"),
    ])
    def test_scrape_rejects_bad_config(self, client, fake_surface, payload, message):
        """Test that configuration errors return 400 without opening the browser."""
        response = client.post("/api/scrape", json=payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert message in response.json()["detail"]
        assert fake_surface.visited == []

    def test_scrape_browser_unavailable(self, client):
        """Test that a missing browser returns 503."""
        async def broken_factory():
            raise BrowserUnavailableError("Chromium browser not found")

        app.dependency_overrides[get_surface_factory] = lambda: broken_factory

        response = client.post("/api/scrape", json={"sources": ["naukri"], "keywords": ["python"]})

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


class TestJobsEndpoint:
    """Test the jobs endpoints."""

    def test_get_jobs_empty(self, client):
        """Test getting jobs when database is empty."""
        response = client.get("/api/jobs")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["jobs"] == []
        assert data["total"] == 0
        assert data["stats"]["total"] == 0

    def test_get_jobs_with_filters(self, client, sample_job):
        """Test filtering jobs."""
        response = client.get("/api/jobs?status=new&source=naukri&search=python")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["total"] == 1

        response = client.get("/api/jobs?source=linkedin")
        assert response.json()["total"] == 0

        response = client.get("/api/jobs?sort=score")
        assert response.status_code == status.HTTP_200_OK

    def test_get_jobs_bad_sort(self, client):
        """Test that unknown sort keys are rejected."""
        response = client.get("/api/jobs?sort=random")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_get_job(self, client, sample_job):
        """Test getting a single job."""
        response = client.get(f"/api/jobs/{sample_job.id}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["title"] == "Python Developer"

    def test_get_job_not_found(self, client):
        """Test getting a non-existent job."""
        response = client.get("/api/jobs/99999")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Job not found"

    def test_create_job(self, client):
        """Test adding a job manually."""
        response = client.post("/api/jobs", json={
            "url": "https://careers.acme.io/42",
            "title": "Platform Engineer",
            "email": "",
        })

        assert response.status_code == status.HTTP_201_CREATED
        job_id = response.json()["id"]

        job = client.get(f"/api/jobs/{job_id}").json()
        assert job["source"] == "manual"
        assert job["status"] == "new"
        assert job["email"] is None

    def test_create_job_duplicate_url(self, client, sample_job):
        """Test that a duplicate URL is rejected."""
        response = client.post("/api/jobs", json={"url": sample_job.url, "title": "Again"})

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_update_job_to_applied_records_application(self, client, db_session, sample_job):
        """Test that marking a job applied creates one application."""
        response = client.patch(f"/api/jobs/{sample_job.id}", json={
            "status": "applied",
            "email_subject": "Application: Python Developer",
        })
        assert response.status_code == status.HTTP_200_OK

        # Applying again does not record a second application
        client.patch(f"/api/jobs/{sample_job.id}", json={"status": "applied"})

        applications = db_session.query(Application).all()
        assert len(applications) == 1
        assert applications[0].email_subject == "Application: Python Developer"
        assert client.get(f"/api/jobs/{sample_job.id}").json()["status"] == "applied"

    def test_update_job_notes_and_score(self, client, sample_job):
        """Test updating tracking fields."""
        client.patch(f"/api/jobs/{sample_job.id}", json={"notes": "Follow up", "match_score": 88})

        job = client.get(f"/api/jobs/{sample_job.id}").json()
        assert job["notes"] == "Follow up"
        assert job["match_score"] == 88

    def test_update_job_invalid_status(self, client, sample_job):
        """Test that unknown statuses are rejected."""
        response = client.patch(f"/api/jobs/{sample_job.id}", json={"status": "hired"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_delete_job(self, client, sample_job):
        """Test deleting a job."""
        response = client.delete(f"/api/jobs/{sample_job.id}")
        assert response.status_code == status.HTTP_200_OK

        response = client.get(f"/api/jobs/{sample_job.id}")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestSettingsEndpoint:
    """Test the scrape settings endpoints."""

    def test_get_default_settings(self, client):
        """Test defaults when nothing is stored."""
        response = client.get("/api/settings")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "keywords": [],
            "enabled_sources": [],
            "pages_to_scrape": 3,
            "scrape_mode": "search",
        }

    def test_update_settings(self, client):
        """Test storing settings."""
        response = client.post("/api/settings", json={
            "keywords": ["python"],
            "pages_to_scrape": 2,
            "scrape_mode": "both",
        })
        assert response.status_code == status.HTTP_200_OK

        data = client.get("/api/settings").json()
        assert data["keywords"] == ["python"]
        assert data["pages_to_scrape"] == 2
        assert data["scrape_mode"] == "both"

    def test_update_settings_invalid_mode(self, client):
        """Test that unknown scrape modes are rejected."""
        response = client.post("/api/settings", json={"scrape_mode": "everything"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestAuthStatusEndpoint:
    """Test the login status endpoint."""

    def test_single_site(self, client, fake_surface):
        """Test checking one site's login state."""
        fake_surface.pages['https://www.linkedin.com/feed/'] = {'elements': ['.global-nav__me-photo']}

        response = client.get("/api/auth/status?site=linkedin")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"linkedin": {
            "site": "linkedin",
            "logged_in": True,
            "username": None,
            "login_url": "https://www.linkedin.com/login",
        }}

    def test_blocked_home_page(self, client, fake_surface):
        """Test that a site refusing the home page reports logged out."""
        fake_surface.pages["https://www.linkedin.com/feed/"] = {
            "fail": NavigationError("HTTP 999 for https://www.linkedin.com/feed/"),
        }

        response = client.get("/api/auth/status?site=linkedin")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["linkedin"]["logged_in"] is False

    def test_all_sites(self, client, fake_surface):
        """Test checking every site."""
        response = client.get("/api/auth/status")

        data = response.json()
        assert set(data) == set(SCRAPER_REGISTRY)
        assert data["naukri"]["logged_in"] is False

    def test_invalid_site(self, client):
        """Test that unknown sites are rejected."""
        response = client.get("/api/auth/status?site=monster")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
