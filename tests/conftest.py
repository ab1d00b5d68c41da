"""
Configuracion de fixtures para pytest.

Incluye:
- un WordPress falso en memoria que implementa la parte de la API REST que usa
  el cliente (posts, terminos, media) sobre una interfaz compatible con
  requests.Session
- un backend de listados en memoria para probar el orquestador sin HTTP
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import urlparse

import pytest

from propsync.application.use_cases.sync_orchestrator import SyncOrchestrator
from propsync.domain.entities.property_record import ListingOperation, PropertyRecord
from propsync.infrastructure.backend.types import AttachmentResult, BackendPost, UpsertResult
from propsync.infrastructure.backend.wordpress_client import WordPressClient, WordPressCredentials
from propsync.infrastructure.feed.feed_parser import FeedParser
from propsync.shared.exceptions.sync import UpsertError


WP_BASE_URL = "https://wp.test"
API_PREFIX = "/wp-json/wp/v2"
META_KEY = "property_identity"


class FakeResponse:
    """Respuesta minima con la interfaz de requests.Response que usa el cliente."""

    def __init__(
        self,
        status_code: int = 200,
        payload: Any = None,
        *,
        content: bytes = b"",
        headers: Optional[dict[str, str]] = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.url = url
        if payload is not None:
            self.text = json.dumps(payload)
            self.content = content or self.text.encode()
        else:
            self.text = content.decode(errors="ignore")
            self.content = content

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeWordPressSession:
    """
    WordPress en memoria.

    - `posts`: id -> dict con title, content, status, meta y taxonomias asignadas
    - `terms`: taxonomia -> lista de {"id", "name"}
    - `images`: url -> bytes descargables (cualquier otra url responde 404)
    - `fail_next`: lista de (method, path_prefix, status) a responder una vez
    - `ignore_meta_filter`: simula un sitio que ignora meta_key/meta_value
    """

    def __init__(self) -> None:
        self.posts: dict[int, dict[str, Any]] = {}
        self.terms: dict[str, list[dict[str, Any]]] = {}
        self.media: dict[int, dict[str, Any]] = {}
        self.images: dict[str, bytes] = {}
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.downloads: list[dict[str, Any]] = []
        self.fail_next: list[tuple[str, str, int]] = []
        self.ignore_meta_filter = False
        self._next_id = 100

    # ------------------------------------------------------------------
    # Helpers de setup
    # ------------------------------------------------------------------

    def new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def add_post(self, external_id: str, *, status: str = "publish", title: str = "") -> int:
        post_id = self.new_id()
        self.posts[post_id] = {
            "id": post_id,
            "title": title or f"Post {external_id}",
            "content": "",
            "status": status,
            "meta": {META_KEY: external_id} if external_id else {},
        }
        return post_id

    def add_term(self, taxonomy: str, name: str) -> int:
        term_id = self.new_id()
        self.terms.setdefault(taxonomy, []).append({"id": term_id, "name": name})
        return term_id

    def count_calls(self, method: str, path: str) -> int:
        return sum(1 for m, p, _ in self.calls if m == method and p == path)

    # ------------------------------------------------------------------
    # Interfaz requests.Session
    # ------------------------------------------------------------------

    def get(self, url: str, headers: Optional[dict[str, str]] = None, timeout: Any = None, **kwargs: Any):
        self.downloads.append({"url": url, "headers": headers or {}, **kwargs})
        body = self.images.get(url)
        if body is None:
            return FakeResponse(404, content=b"not found", url=url)
        return FakeResponse(200, content=body, headers={"Content-Type": "image/jpeg"}, url=url)

    def request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
        files: Optional[dict[str, Any]] = None,
        data: Optional[dict[str, Any]] = None,
        auth: Any = None,
        timeout: Any = None,
    ) -> FakeResponse:
        path = urlparse(url).path
        assert path.startswith(API_PREFIX), path
        path = path[len(API_PREFIX):]
        self.calls.append((method, path, {"params": params, "json": json, "data": data, "auth": auth}))

        for i, (fail_method, fail_prefix, status) in enumerate(self.fail_next):
            if fail_method == method and path.startswith(fail_prefix):
                del self.fail_next[i]
                return FakeResponse(status, {"code": "error", "message": "fallo simulado"}, url=url)

        segments = [s for s in path.split("/") if s]
        if segments[0] == "posts":
            if len(segments) == 1:
                if method == "GET":
                    return self._list_posts(params or {}, url)
                return self._create_post(json or {}, url)
            return self._update_post(int(segments[1]), json or {}, url)
        if segments[0] == "media":
            media_id = self.new_id()
            self.media[media_id] = {"post": (data or {}).get("post"), "file": (files or {}).get("file")}
            return FakeResponse(201, {"id": media_id}, url=url)
        return self._terms(segments[0], method, params or {}, json or {}, url)

    # ------------------------------------------------------------------
    # Rutas
    # ------------------------------------------------------------------

    def _list_posts(self, params: dict[str, Any], url: str) -> FakeResponse:
        statuses = str(params.get("status", "publish")).split(",")
        posts = [p for p in self.posts.values() if p["status"] in statuses]

        if "meta_key" in params and not self.ignore_meta_filter:
            posts = [p for p in posts if p["meta"].get(params["meta_key"]) == params["meta_value"]]
            return FakeResponse(200, posts, url=url)
        if "meta_key" in params:
            return FakeResponse(200, posts, url=url)

        per_page = int(params.get("per_page", 10))
        page = int(params.get("page", 1))
        total_pages = max(1, -(-len(posts) // per_page))
        chunk = posts[(page - 1) * per_page:page * per_page]
        return FakeResponse(200, chunk, headers={"X-WP-TotalPages": str(total_pages)}, url=url)

    def _create_post(self, body: dict[str, Any], url: str) -> FakeResponse:
        post_id = self.new_id()
        self.posts[post_id] = {"id": post_id, "meta": {}}
        return self._update_post(post_id, body, url, status_code=201)

    def _update_post(self, post_id: int, body: dict[str, Any], url: str, status_code: int = 200) -> FakeResponse:
        post = self.posts.get(post_id)
        if post is None:
            return FakeResponse(404, {"code": "rest_post_invalid_id"}, url=url)
        for key, value in body.items():
            if key == "meta":
                post["meta"].update(value)
            else:
                post[key] = value
        return FakeResponse(status_code, post, url=url)

    def _terms(
        self,
        taxonomy: str,
        method: str,
        params: dict[str, Any],
        body: dict[str, Any],
        url: str,
    ) -> FakeResponse:
        terms = self.terms.setdefault(taxonomy, [])
        if method == "GET":
            search = str(params.get("search", "")).lower()
            return FakeResponse(200, [t for t in terms if search in t["name"].lower()], url=url)

        for term in terms:
            if term["name"].lower() == body["name"].lower():
                return FakeResponse(
                    400,
                    {"code": "term_exists", "message": "A term with the name provided already exists.",
                     "data": {"status": 400, "term_id": term["id"]}},
                    url=url,
                )
        term_id = self.add_term(taxonomy, body["name"])
        return FakeResponse(201, {"id": term_id, "name": body["name"]}, url=url)


@pytest.fixture
def fake_wp() -> FakeWordPressSession:
    return FakeWordPressSession()


@pytest.fixture
def wp_client(fake_wp: FakeWordPressSession) -> WordPressClient:
    """Cliente real apuntando al WordPress en memoria, sin esperas de backoff."""
    return WordPressClient(
        WP_BASE_URL,
        WordPressCredentials(username="importer", password="app-password"),
        session=fake_wp,
        external_id_meta_key=META_KEY,
        min_backoff_s=0.0,
        max_backoff_s=0.0,
    )


def make_record(external_id: str = "C21-001", **overrides: Any) -> PropertyRecord:
    """Construye un PropertyRecord con valores tipicos del feed."""
    values: dict[str, Any] = {
        "title": f"Apartamento {external_id}",
        "description": "Apartamento con vista",
        "price": "350000000",
        "bedrooms": "3",
        "bathrooms": "2",
        "floor_area": "85",
        "property_type": "apartment",
        "operation": ListingOperation.SALE,
        "latitude": "4.65",
        "longitude": "-74.05",
    }
    values.update(overrides)
    return PropertyRecord(external_id=external_id, **values)


@pytest.fixture
def record_factory():
    return make_record


# ----------------------------------------------------------------------
# Orquestador con backend en memoria
# ----------------------------------------------------------------------

class StaticFeed:
    """Fuente de feed que retorna un cuerpo fijo o lanza el error configurado."""

    def __init__(self, body: bytes = b"<listings/>", error: Optional[Exception] = None) -> None:
        self.body = body
        self.error = error
        self.calls = 0

    def fetch(self) -> bytes:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.body


class InMemoryBackend:
    """
    Backend de listados en memoria con la interfaz que usa el orquestador.

    Registra el progreso y la fase publicados en cada llamada para poder
    verificar la maquina de fases desde afuera.
    """

    def __init__(self) -> None:
        self.orchestrator = None
        self.posts: dict[str, int] = {}
        self.archived: list[str] = []
        self.attached: dict[int, list[str]] = {}
        self.fail_upsert: set[str] = set()
        self.fail_attach: set[str] = set()
        self.archive_error: Optional[Exception] = None
        self.observed: list[tuple[str, int, str]] = []
        self._next_id = 0

    def _observe(self, call: str) -> None:
        if self.orchestrator is not None:
            snapshot = self.orchestrator.snapshot()
            self.observed.append((call, snapshot.current_progress, snapshot.current_phase.label))

    def reset_term_cache(self) -> None:
        self._observe("reset_term_cache")

    def find_by_external_id(self, external_id: str):
        self._observe("find")
        post_id = self.posts.get(external_id)
        if post_id is None:
            return None
        return BackendPost(id=post_id, title="", content="", status="publish", meta={META_KEY: external_id})

    def upsert(self, record: PropertyRecord) -> UpsertResult:
        self._observe("upsert")
        if record.external_id in self.fail_upsert:
            raise UpsertError(record.external_id, "rechazado")
        created = record.external_id not in self.posts
        if created:
            self._next_id += 1
            self.posts[record.external_id] = self._next_id
        return UpsertResult(post_id=self.posts[record.external_id], created=created)

    def attach_images(self, post_id: int, image_urls) -> AttachmentResult:
        self._observe("attach")
        external_id = next(k for k, v in self.posts.items() if v == post_id)
        if external_id in self.fail_attach:
            raise RuntimeError("media server down")
        self.attached[post_id] = list(image_urls)
        return AttachmentResult(attachment_ids=tuple(range(len(image_urls))))

    def archive_stale(self, current_ids) -> int:
        self._observe("archive")
        if self.archive_error is not None:
            raise self.archive_error
        current = set(current_ids)
        stale = [external_id for external_id in self.posts if external_id not in current]
        new = [external_id for external_id in stale if external_id not in self.archived]
        self.archived.extend(new)
        return len(new)


FIXED_NEXT_RUN = datetime(2030, 1, 2, 0, 0, tzinfo=timezone.utc)


def build_test_orchestrator(
    feed: StaticFeed,
    backend: InMemoryBackend,
    *,
    batch_size: int = 20,
) -> SyncOrchestrator:
    orchestrator = SyncOrchestrator(
        feed=feed,
        parser=FeedParser(),
        backend=backend,
        batch_size=batch_size,
        next_run_fn=lambda: FIXED_NEXT_RUN,
    )
    backend.orchestrator = orchestrator
    return orchestrator


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def orchestrator_factory(backend: InMemoryBackend):
    """Construye un orquestador sobre el backend en memoria para un feed dado."""
    def factory(body: bytes = b"<listings/>", *, error: Optional[Exception] = None, batch_size: int = 20):
        return build_test_orchestrator(StaticFeed(body, error), backend, batch_size=batch_size)
    return factory
