"""
Cliente HTTP minimo para descargar el feed XML de propiedades.
"""
from __future__ import annotations

from typing import Optional

import requests
from loguru import logger

from propsync.shared.exceptions.sync import FetchError

# Algunos origenes del feed rechazan clientes sin User-Agent de navegador
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
)


class FeedClient:
    """
    Descarga el documento del feed en una sola peticion.

    No reintenta: un fallo aqui aborta la corrida y el siguiente intento
    queda a cargo del scheduler o de una ejecucion manual.
    """

    def __init__(
        self,
        feed_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout_s: float = 60.0,
    ) -> None:
        self._feed_url = feed_url
        self._timeout_s = timeout_s
        self._session = session or requests.Session()

    @property
    def feed_url(self) -> str:
        return self._feed_url

    def fetch(self) -> bytes:
        """
        Descarga el feed.

        Returns:
            bytes: Cuerpo crudo del documento

        Raises:
            FetchError: Error de transporte, status no-2xx o cuerpo vacio
        """
        logger.info(f"[FEED] Descargando feed: {self._feed_url}")
        try:
            resp = self._session.get(
                self._feed_url,
                headers={"User-Agent": BROWSER_USER_AGENT},
                timeout=self._timeout_s,
            )
        except requests.RequestException as e:
            raise FetchError(
                f"XML Import Error: Failed to fetch XML: {e}", url=self._feed_url
            ) from e

        if not 200 <= resp.status_code < 300:
            raise FetchError(
                f"XML Import Error: Failed to fetch XML: HTTP {resp.status_code}",
                url=self._feed_url,
                status=resp.status_code,
            )

        body = resp.content
        if not body or not body.strip():
            raise FetchError("XML Import Error: XML response is empty", url=self._feed_url)

        logger.debug(f"[FEED] Feed descargado ({len(body)} bytes)")
        return body
