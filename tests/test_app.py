"""HTTP surface tests with in-memory collaborators."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from blogengine.app import SERVICE_NAME, create_application
from blogengine.rewriter.generator import ContentGenerator
from blogengine.services.container import wire_services
from blogengine.trender.models import Platform, TrendCandidate
from tests.fakes import FakeSource, InMemoryGateway, ScriptedProvider, full_replies

AUTH = {"Authorization": "Bearer test-secret"}


@pytest.fixture
def services(settings, gateway):
    return wire_services(
        settings,
        gateway=gateway,
        generator=ContentGenerator(ScriptedProvider(full_replies())),
        sources=[
            FakeSource(Platform.TIKTOK, [TrendCandidate(topic="Retinol Tips", trending_score=10)]),
            FakeSource(Platform.YOUTUBE, configured=False),
        ],
    )


@pytest.fixture
def client(services):
    with TestClient(create_application(services=services)) as test_client:
        yield test_client


class TestReadEndpoints:

    def test_healthz(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["service"] == SERVICE_NAME

    @pytest.mark.parametrize("path", ["/", "/health"])
    def test_health(self, client, path):
        data = client.get(path).json()
        assert data["status"] == "healthy"
        assert data["isRunning"] is False
        assert data["lastRunResult"] is None

    def test_status(self, client):
        data = client.get("/status").json()
        assert data["isRunning"] is False
        assert data["cmsConfigured"] is True
        assert data["sources"] == {"tiktok": True, "youtube": False}

    def test_stats(self, client, gateway):
        gateway.add({"title": "A", "showOnSite": True, "autoGenerated": True})
        gateway.add({"title": "B", "showOnSite": False, "autoGenerated": True})

        data = client.get("/stats").json()
        assert data["totalArticles"] == 2
        assert data["visibleArticles"] == 1
        assert data["hiddenArticles"] == 1
        assert data["autoGenerated"] == 2

    def test_stats_cms_error(self, client, gateway):
        gateway.fail_queries = True
        assert client.get("/stats").status_code == 502

    def test_health_shows_last_run(self, client, services):
        services.runner.status.try_start("generate")
        services.runner.status.finish("generate", {"job": "generate", "success": True, "articlesGenerated": 2})

        data = client.get("/health").json()
        assert data["lastRunResult"] == {"job": "generate", "success": True, "articlesGenerated": 2}
        assert data["lastRunTime"]


class TestTriggerEndpoints:

    @pytest.mark.parametrize("path", ["/generate", "/trigger", "/migrate-geo", "/backfill-geo",
                                      "/migrate-blog-geo", "/backfill-blog-geo",
                                      "/backfill-references", "/migrate-references"])
    def test_requires_token(self, client, path):
        assert client.post(path).status_code == 401
        assert client.post(path, headers={"Authorization": "Bearer wrong"}).status_code == 401
        assert client.post(path, headers={"Authorization": "Basic test-secret"}).status_code == 401

    def test_get_not_allowed(self, client):
        assert client.get("/generate").status_code == 405

    def test_generate_started(self, client):
        response = client.post("/generate", headers=AUTH)
        assert response.status_code == 202
        assert response.json() == {
            "success": True,
            "status": "started",
            "job": "generate",
            "message": "Article generation started",
        }

    @pytest.mark.parametrize("path", ["/generate", "/migrate-geo", "/backfill-references"])
    def test_busy_when_job_running(self, client, services, path):
        services.runner.status.try_start("generate")

        response = client.post(path, headers=AUTH)

        assert response.status_code == 409
        data = response.json()
        assert data["status"] == "busy"
        assert data["runningJob"] == "generate"

    def test_geo_limit_validated(self, client):
        assert client.post("/migrate-geo?limit=0", headers=AUTH).status_code == 422

    def test_references_started(self, client):
        response = client.post("/backfill-references?limit=2", headers=AUTH)
        assert response.status_code == 202
        assert response.json()["job"] == "backfill-references"

    def test_blog_post_geo_started(self, client):
        response = client.post("/backfill-blog-geo?limit=3", headers=AUTH)
        assert response.status_code == 202
        assert response.json()["job"] == "migrate-blog-geo"


class TestStartup:

    def test_reference_types_migrated_on_startup(self, services, gateway):
        doc_id = gateway.add({"title": "Old", "references": [{"_type": "reference", "_key": "k"}]})

        with TestClient(create_application(services=services)):
            pass

        assert gateway.documents[doc_id]["references"][0]["_type"] == "sourceReference"


class TestShutdown:

    def test_running_job_finishes_before_gateway_closes(self, services, gateway):
        events = []

        async def slow_sweep(limit=None, dry_run=False):
            await asyncio.sleep(0.05)
            events.append("job finished")
            return {"success": True}

        async def aclose():
            events.append("gateway closed")

        services.run_geo = slow_sweep
        gateway.aclose = aclose

        with TestClient(create_application(services=services)) as client:
            assert client.post("/migrate-geo", headers=AUTH).status_code == 202

        assert events == ["job finished", "gateway closed"]
        assert services.runner.is_running is False
        assert services.runner.status.last_results["migrate-geo"]["success"] is True

    def test_stuck_job_cancelled_after_grace_period(self, services, gateway):
        events = []

        async def stuck_sweep(limit=None, dry_run=False):
            await asyncio.Event().wait()

        async def aclose():
            events.append("gateway closed")

        services.run_geo = stuck_sweep
        services.settings.shutdown_grace_seconds = 0.01
        gateway.aclose = aclose

        with TestClient(create_application(services=services)) as client:
            assert client.post("/migrate-geo", headers=AUTH).status_code == 202

        assert events == ["gateway closed"]
        assert services.runner.is_running is False
        assert services.runner.status.last_results["migrate-geo"]["success"] is False


class TestWithoutCMS:

    @pytest.fixture
    def client(self, settings):
        services = wire_services(
            settings,
            gateway=None,
            generator=ContentGenerator(ScriptedProvider()),
            sources=[],
        )
        with TestClient(create_application(services=services)) as test_client:
            yield test_client

    def test_trigger_unavailable(self, client):
        assert client.post("/generate", headers=AUTH).status_code == 503

    def test_stats_unavailable(self, client):
        assert client.get("/stats").status_code == 503

    def test_status_reports_cms(self, client):
        assert client.get("/status").json()["cmsConfigured"] is False

    def test_health_still_ok(self, client):
        assert client.get("/health").status_code == 200


def test_in_memory_gateway_is_a_persistence_gateway():
    from blogengine.publisher.gateway import PersistenceGateway
    assert isinstance(InMemoryGateway(), PersistenceGateway)
