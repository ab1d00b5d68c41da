"""
Cliente de la API REST de WordPress (wp-json/wp/v2) para el catalogo de propiedades.

Requisitos cubiertos:
- requests + basic auth (application password)
- busqueda por external id en metadata, create/update idempotente
- resolucion/creacion de terminos de taxonomia con cache por corrida
- descarga secuencial de imagenes y subida como media
- archivado (draft) de posts que ya no vienen en el feed
- rate-limit/backoff (429, 5xx)
"""

from __future__ import annotations

import html
import json
import mimetypes
import posixpath
import time
from dataclasses import dataclass
from typing import Any, Iterable, Optional
from urllib.parse import unquote, urlparse

import requests
from loguru import logger

from propsync.domain.entities.property_record import PropertyRecord
from propsync.infrastructure.backend.taxonomy_mappings import TaxonomyMapping
from propsync.infrastructure.backend.types import AttachmentResult, BackendPost, UpsertResult
from propsync.infrastructure.feed.feed_client import BROWSER_USER_AGENT
from propsync.shared.exceptions.sync import (
    ArchiveError,
    BackendRequestError,
    MediaError,
    TaxonomyError,
    UpsertError,
)

DEFAULT_IMAGE_NAME = "image.jpg"
DEFAULT_IMAGE_TYPE = "image/jpeg"


@dataclass(frozen=True)
class WordPressCredentials:
    username: str
    password: str


class WordPressClient:
    """
    Cliente HTTP de WordPress. Una superficie de llamada por responsabilidad.

    Importante:
    - Todas las llamadas son secuenciales; el cliente no abre concurrencia.
    - La cache de terminos vive hasta `reset_term_cache()` (una corrida).
    - Las credenciales solo viajan a WordPress, nunca al origen de las imagenes.
    """

    def __init__(
        self,
        base_url: str,
        credentials: WordPressCredentials,
        *,
        session: Optional[requests.Session] = None,
        post_type: str = "real-estate",
        external_id_meta_key: str = "property_identity",
        taxonomy_mapping: Optional[TaxonomyMapping] = None,
        timeout_s: float = 30.0,
        media_timeout_s: float = 45.0,
        max_retries: int = 2,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
        page_size: int = 100,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_url = f"{self._base_url}/wp-json/wp/v2"
        self._auth = (credentials.username, credentials.password)
        self._session = session or requests.Session()
        self._post_type = post_type
        self._meta_key = external_id_meta_key
        self._taxonomies = taxonomy_mapping or TaxonomyMapping()
        self._timeout_s = timeout_s
        self._media_timeout_s = media_timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._page_size = page_size
        self._term_cache: dict[tuple[str, str], int] = {}

    @property
    def api_url(self) -> str:
        return self._api_url

    @property
    def external_id_meta_key(self) -> str:
        return self._meta_key

    # ------------------------------------------------------------------
    # Lookup / upsert
    # ------------------------------------------------------------------

    def find_by_external_id(self, external_id: str) -> Optional[BackendPost]:
        """
        Busca el post que guarda `external_id` en su metadata.

        Cualquier error de transporte se loguea y se trata como "no encontrado".
        """
        try:
            posts = self._request_json(
                "GET",
                "/posts",
                params={
                    "type": self._post_type,
                    "meta_key": self._meta_key,
                    "meta_value": external_id,
                    "status": "publish,draft",
                    "context": "edit",
                },
            )
        except BackendRequestError as e:
            logger.error(f"[WORDPRESS] Error buscando propiedad {external_id}: {e.message}")
            return None

        if not isinstance(posts, list):
            return None
        for raw in posts:
            post = BackendPost.from_api(raw)
            # Si el sitio no expone el meta en REST confiamos en el filtro del servidor
            if self._meta_key not in post.meta or post.external_id(self._meta_key) == external_id:
                return post
        return None

    def upsert(self, record: PropertyRecord) -> UpsertResult:
        """
        Crea o actualiza el post de la propiedad y asigna sus taxonomias.

        Returns:
            UpsertResult: post_id, si fue creado y los fallos de taxonomia

        Raises:
            UpsertError: Si WordPress rechaza el create/update
        """
        existing = self.find_by_external_id(record.external_id)
        post_data = self._post_payload(record)

        try:
            if existing:
                self._request_json("POST", f"/posts/{existing.id}", json_body=post_data)
                post_id = existing.id
            else:
                created = self._request_json("POST", "/posts", json_body=post_data)
                post_id = int(created["id"])
        except BackendRequestError as e:
            raise UpsertError(record.external_id, e.message) from e
        except (KeyError, TypeError, ValueError) as e:
            raise UpsertError(record.external_id, f"respuesta invalida de WordPress: {e}") from e

        failures = self._assign_taxonomies(post_id, record)
        return UpsertResult(post_id=post_id, created=existing is None, taxonomy_failures=tuple(failures))

    def _post_payload(self, record: PropertyRecord) -> dict[str, Any]:
        return {
            "title": record.title,
            "content": record.description,
            "type": self._post_type,
            "status": "publish",
            "meta": {
                self._meta_key: record.external_id,
                "property_price_value": record.price,
                "property_bedrooms": record.bedrooms,
                "property_bathrooms": record.bathrooms,
                "nivel_de_piso": record.floor,
                "property_additional_detail": f"Cuota: {record.fee}",
                "property_land": record.plot_area,
                "property_size": record.floor_area,
                "property_location": record.location,
                "property_address": record.address,
                "property_postal_code": record.postal_code,
                "property_other_agent_name": record.agent_name,
                "property_other_agent_email": record.agent_email,
                "property_other_agent_phone": record.agent_phone,
            },
        }

    # ------------------------------------------------------------------
    # Taxonomias
    # ------------------------------------------------------------------

    def reset_term_cache(self) -> None:
        self._term_cache.clear()

    def resolve_or_create_term(self, taxonomy: str, label: str) -> int:
        """
        Retorna el id del termino `label` en `taxonomy`, creandolo si no existe.

        Raises:
            TaxonomyError: Si la busqueda o la creacion fallan
        """
        key = (taxonomy, label.strip().casefold())
        cached = self._term_cache.get(key)
        if cached is not None:
            return cached

        try:
            terms = self._request_json(
                "GET", f"/{taxonomy}", params={"search": label, "per_page": 100}
            )
            term_id = _match_term(terms or [], label)
            if term_id is None:
                term_id = self._create_term(taxonomy, label)
        except BackendRequestError as e:
            raise TaxonomyError(taxonomy, [label], e.message) from e
        except (KeyError, TypeError, ValueError) as e:
            raise TaxonomyError(taxonomy, [label], f"respuesta invalida: {e}") from e

        self._term_cache[key] = term_id
        return term_id

    def _create_term(self, taxonomy: str, label: str) -> int:
        try:
            created = self._request_json("POST", f"/{taxonomy}", json_body={"name": label})
        except BackendRequestError as e:
            # Carrera o busqueda difusa: WordPress informa el id del termino existente
            existing_id = _term_exists_id(e)
            if existing_id is None:
                raise
            return existing_id
        logger.debug(f"[WORDPRESS] Termino creado {taxonomy}: {label} ({created['id']})")
        return int(created["id"])

    def _assign_taxonomies(self, post_id: int, record: PropertyRecord) -> list[TaxonomyError]:
        failures: list[TaxonomyError] = []
        for taxonomy, labels in self._taxonomies.assignments(record):
            try:
                term_ids = [self.resolve_or_create_term(taxonomy, label) for label in labels]
                self._request_json("POST", f"/posts/{post_id}", json_body={taxonomy: term_ids})
            except TaxonomyError as e:
                failures.append(e)
            except BackendRequestError as e:
                failures.append(TaxonomyError(taxonomy, labels, e.message))
        for failure in failures:
            logger.warning(f"[WORDPRESS] Post {post_id}: {failure.message}")
        return failures

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    def attach_images(self, post_id: int, image_urls: Iterable[str]) -> AttachmentResult:
        """
        Descarga y sube cada imagen, una a la vez y sin reintentos.

        Si al menos una se subio, la primera queda como imagen destacada y la
        lista completa se guarda como galeria.

        Raises:
            BackendRequestError: Si falla la actualizacion final del post
        """
        attachment_ids: list[int] = []
        failures: list[MediaError] = []

        for image_url in image_urls:
            try:
                attachment_ids.append(self._create_media_from_url(post_id, image_url))
            except MediaError as e:
                logger.warning(f"[WORDPRESS] {e.message}")
                failures.append(e)

        if attachment_ids:
            self._request_json(
                "POST",
                f"/posts/{post_id}",
                json_body={
                    "featured_media": attachment_ids[0],
                    "meta": {
                        "tf_gallery_images": attachment_ids,
                        "gallery_images": json.dumps(attachment_ids),
                    },
                },
            )

        return AttachmentResult(attachment_ids=tuple(attachment_ids), failures=tuple(failures))

    def _create_media_from_url(self, post_id: int, image_url: str) -> int:
        try:
            resp = self._session.get(
                image_url,
                headers={"User-Agent": BROWSER_USER_AGENT},
                timeout=self._media_timeout_s,
            )
        except requests.RequestException as e:
            raise MediaError(image_url, f"Failed to download image: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise MediaError(image_url, f"Failed to download image: HTTP {resp.status_code}")
        if not resp.content:
            raise MediaError(image_url, "Failed to download image: empty body")

        file_name = _file_name_from_url(image_url)
        content_type = _content_type(resp, file_name)

        try:
            media = self._request_json(
                "POST",
                "/media",
                files={"file": (file_name, resp.content, content_type)},
                data={"post": post_id},
                retry=False,
            )
            return int(media["id"])
        except BackendRequestError as e:
            raise MediaError(image_url, f"Failed to upload media: {e.message}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise MediaError(image_url, f"Failed to upload media: respuesta invalida ({e})") from e

    # ------------------------------------------------------------------
    # Archivado
    # ------------------------------------------------------------------

    def archive_stale(self, current_ids: Iterable[str]) -> int:
        """
        Pasa a draft los posts publicados cuyo external id ya no esta en el feed.

        Returns:
            int: Numero de posts archivados (0 si no se pudo listar)
        """
        current = set(current_ids)
        try:
            published = list(self._iter_published_posts())
        except BackendRequestError as e:
            error = ArchiveError(e.message)
            logger.error(f"[WORDPRESS] {error.message}")
            return 0

        archived = 0
        for post in published:
            external_id = post.external_id(self._meta_key)
            if not external_id or external_id in current:
                continue
            try:
                self._request_json("POST", f"/posts/{post.id}", json_body={"status": "draft"})
            except BackendRequestError as e:
                logger.error(f"[WORDPRESS] No se pudo archivar post {post.id} ({external_id}): {e.message}")
                continue
            archived += 1
            logger.debug(f"[WORDPRESS] Post {post.id} ({external_id}) archivado")
        return archived

    def _iter_published_posts(self) -> Iterable[BackendPost]:
        """Itera todos los posts publicados del tipo listado, pagina por pagina."""
        page = 1
        while True:
            resp = self._request(
                "GET",
                "/posts",
                params={
                    "type": self._post_type,
                    "status": "publish",
                    "per_page": self._page_size,
                    "page": page,
                    "context": "edit",
                },
            )
            try:
                posts = resp.json() or []
            except ValueError as e:
                raise BackendRequestError(
                    f"WordPress API Error: listado no JSON (pagina {page})",
                    url=resp.url or "",
                    status=resp.status_code,
                ) from e
            for raw in posts:
                yield BackendPost.from_api(raw)

            total_pages = _int_header(resp, "X-WP-TotalPages", default=page)
            if not posts or page >= total_pages:
                break
            page += 1

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _request_json(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        resp = self._request(method, endpoint, **kwargs)
        try:
            return resp.json()
        except ValueError as e:
            raise BackendRequestError(
                f"WordPress API Error: respuesta no JSON en {endpoint}",
                url=resp.url or endpoint,
                status=resp.status_code,
            ) from e

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[dict[str, Any]] = None,
        files: Optional[dict[str, Any]] = None,
        data: Optional[dict[str, Any]] = None,
        retry: bool = True,
    ) -> requests.Response:
        """
        Request HTTP con backoff para 429/5xx.

        Estrategia:
        - 429: respeta Retry-After si existe, si no exponencial con jitter simple.
        - 5xx: exponencial con jitter.
        - 4xx (no 429): error inmediato (config/auth mal o payload rechazado).
        - Error de transporte (timeout, conexion): error inmediato.
        """
        url = f"{self._api_url}{endpoint}"
        max_retries = self._max_retries if retry else 0

        for attempt in range(max_retries + 1):
            try:
                resp = self._session.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json_body,
                    files=files,
                    data=data,
                    auth=self._auth,
                    timeout=self._timeout_s,
                )
            except requests.RequestException as e:
                raise BackendRequestError(f"WordPress API Error: {e}", url=url) from e

            if 200 <= resp.status_code < 300:
                return resp

            # Errores recuperables
            if (resp.status_code == 429 or 500 <= resp.status_code < 600) and attempt < max_retries:
                time.sleep(self._backoff_seconds(resp, attempt))
                continue

            raise BackendRequestError(
                f"WordPress API Error ({resp.status_code}): {resp.text[:500]}",
                url=url,
                status=resp.status_code,
                body=resp.text,
            )

        raise BackendRequestError(f"WordPress API Error: sin respuesta para {url}", url=url)

    def _backoff_seconds(self, resp: requests.Response, attempt: int) -> float:
        retry_after = resp.headers.get("Retry-After")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                return self._min_backoff_s
        # Exponencial simple + jitter proporcional
        base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
        return base + (0.15 * base)


def _match_term(terms: list[dict[str, Any]], label: str) -> Optional[int]:
    """Id del termino cuyo nombre coincide exactamente (sin mayusculas ni entidades HTML)."""
    wanted = label.strip().casefold()
    for term in terms:
        name = html.unescape(str(term.get("name") or "")).strip().casefold()
        if name == wanted:
            return int(term["id"])
    return None


def _term_exists_id(error: BackendRequestError) -> Optional[int]:
    if error.status != 400 or not error.body:
        return None
    try:
        payload = json.loads(error.body)
    except ValueError:
        return None
    if not isinstance(payload, dict) or payload.get("code") != "term_exists":
        return None
    data = payload.get("data")
    term_id = data.get("term_id") if isinstance(data, dict) else None
    return int(term_id) if term_id is not None else None


def _file_name_from_url(image_url: str) -> str:
    name = unquote(posixpath.basename(urlparse(image_url).path))
    return name or DEFAULT_IMAGE_NAME


def _content_type(resp: requests.Response, file_name: str) -> str:
    header = (resp.headers.get("Content-Type") or "").split(";", 1)[0].strip()
    if header.startswith("image/"):
        return header
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or DEFAULT_IMAGE_TYPE


def _int_header(resp: requests.Response, name: str, *, default: int) -> int:
    try:
        return int(resp.headers.get(name, default))
    except (TypeError, ValueError):
        return default
