"""
Tests unitarios para los endpoints del importador y el trigger externo.

Verifica el contrato HTTP:
- status / run / schedule con JSON camelCase
- 409 cuando ya hay una corrida activa
- el trigger /cron/import exige Bearer CRON_SECRET y corre sincronicamente
"""
from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from propsync.api.v1.dependencies.import_deps import get_import_scheduler, get_settings
from propsync.application.services.import_scheduler import ImportScheduler
from propsync.core.config import Settings
from propsync.shared.exceptions.sync import FetchError


FEED = b"""<listings>
    <listing><reference_id>A</reference_id></listing>
    <listing><reference_id>B</reference_id></listing>
</listings>"""
CRON_SECRET = "s3cret"


@pytest.fixture
def scheduler(orchestrator_factory) -> ImportScheduler:
    return ImportScheduler(orchestrator_factory(FEED))


@pytest.fixture
def app_with_scheduler(scheduler: ImportScheduler):
    """Crea la app FastAPI con el scheduler y la configuracion via dependency_overrides."""
    from main import create_application
    app = create_application()
    app.dependency_overrides[get_import_scheduler] = lambda: scheduler
    app.dependency_overrides[get_settings] = lambda: Settings(CRON_SECRET=CRON_SECRET)
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app_with_scheduler):
    transport = ASGITransport(app=app_with_scheduler)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


class TestImportStatusEndpoint:
    """Tests para GET /import/status."""

    @pytest.mark.asyncio
    async def test_returns_idle_status(self, client) -> None:
        """Verifica el snapshot inicial con las claves camelCase."""
        response = await client.get("/api/v1/import/status")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Import status retrieved"
        status = data["status"]
        assert status["isRunning"] is False
        assert status["currentPhase"] == "idle"
        assert status["currentProgress"] == 0
        assert status["totalImported"] == 0
        assert status["lastRun"] is None
        assert status["lastError"] is None
        assert status["nextRun"].startswith("2030-01-02")

    @pytest.mark.asyncio
    async def test_reports_last_error(self, client, scheduler) -> None:
        """Verifica que el error de la ultima corrida se expone en el estado."""
        scheduler.orchestrator._feed.error = FetchError("XML Import Error: XML response is empty")
        await scheduler.run_and_wait()

        response = await client.get("/api/v1/import/status")

        assert response.json()["status"]["lastError"] == "XML Import Error: XML response is empty"


class TestImportRunEndpoint:
    """Tests para POST /import/run."""

    @pytest.mark.asyncio
    async def test_starts_import_in_background(self, client, scheduler) -> None:
        """Verifica que responde de inmediato con la corrida activa."""
        response = await client.post("/api/v1/import/run")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Import started successfully"
        assert data["status"]["isRunning"] is True
        assert data["status"]["currentPhase"] == "data"

        await scheduler.wait_for_background()
        assert scheduler.status().total_imported == 2

    @pytest.mark.asyncio
    async def test_returns_409_when_running(self, client, scheduler) -> None:
        """Verifica que con una corrida activa responde 409 sin tocar el estado."""
        scheduler.orchestrator.acquire()
        before = scheduler.status()

        response = await client.post("/api/v1/import/run")

        assert response.status_code == 409
        data = response.json()
        assert data["success"] is False
        assert data["message"] == "Import is already running"
        assert data["error"] == "An import process is already in progress"
        assert scheduler.status() == before


class TestImportScheduleEndpoint:
    """Tests para GET /import/schedule."""

    @pytest.mark.asyncio
    async def test_returns_schedule_info(self, client) -> None:
        """Verifica la informacion de programacion."""
        response = await client.get("/api/v1/import/schedule")

        assert response.status_code == 200
        status = response.json()["status"]
        assert status["nextRun"].startswith("2030-01-02")
        assert status["isRunning"] is False
        assert status["currentPhase"] == "idle"
        assert set(status) == {"nextRun", "lastRun", "isRunning", "currentProgress", "currentPhase"}


class TestCronImportEndpoint:
    """Tests para el trigger externo /cron/import."""

    @pytest.mark.asyncio
    async def test_missing_token_returns_401(self, client) -> None:
        """Verifica que sin Authorization responde 401."""
        response = await client.post("/api/v1/cron/import")

        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_wrong_token_returns_401(self, client, scheduler) -> None:
        """Verifica que un token invalido responde 401 y no corre la importacion."""
        response = await client.post(
            "/api/v1/cron/import", headers={"Authorization": "Bearer otro-secreto"}
        )

        assert response.status_code == 401
        assert scheduler.status().last_run is None

    @pytest.mark.asyncio
    async def test_unconfigured_secret_disables_trigger(self, client, app_with_scheduler) -> None:
        """Verifica que sin CRON_SECRET configurado el trigger siempre responde 401."""
        app_with_scheduler.dependency_overrides[get_settings] = lambda: Settings(CRON_SECRET="")

        response = await client.post("/api/v1/cron/import", headers={"Authorization": "Bearer cualquiera"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["GET", "POST"])
    async def test_valid_token_runs_import(self, client, method: str) -> None:
        """Verifica que con el token correcto corre la importacion y retorna el resumen."""
        response = await client.request(
            method, "/api/v1/cron/import", headers={"Authorization": f"Bearer {CRON_SECRET}"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["summary"]["imported"] == 2
        assert data["summary"]["updated"] == 0
        assert data["summary"]["errors"] == 0
        assert data["summary"]["archived"] == 0
        assert data["summary"]["totalRecords"] == 2
        assert data["status"]["currentProgress"] == 100
        assert data["status"]["isRunning"] is False

    @pytest.mark.asyncio
    async def test_busy_returns_409(self, client, scheduler) -> None:
        """Verifica que con una corrida activa responde 409."""
        scheduler.orchestrator.acquire()

        response = await client.post(
            "/api/v1/cron/import", headers={"Authorization": f"Bearer {CRON_SECRET}"}
        )

        assert response.status_code == 409
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_failed_run_returns_500(self, client, scheduler) -> None:
        """Verifica que una corrida abortada responde 500 con el error."""
        scheduler.orchestrator._feed.error = FetchError("XML Import Error: Failed to fetch XML: HTTP 502")

        response = await client.post(
            "/api/v1/cron/import", headers={"Authorization": f"Bearer {CRON_SECRET}"}
        )

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "XML Import Error: Failed to fetch XML: HTTP 502"
        assert data["status"]["lastError"] == data["error"]


class TestAppWiring:
    """Tests para el armado de la aplicacion."""

    @pytest.mark.asyncio
    async def test_scheduler_not_initialized_returns_503(self) -> None:
        """Verifica que sin scheduler en app.state responde 503."""
        from main import create_application
        app = create_application()

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as http_client:
            response = await http_client.get("/api/v1/import/status")

        assert response.status_code == 503
        assert response.json()["error"] == "SCHEDULER_NOT_INITIALIZED"

    @pytest.mark.asyncio
    async def test_health(self, client) -> None:
        """Verifica el health check."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
