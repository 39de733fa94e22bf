# wcdiag/schema/source_fetcher.py

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from urllib.parse import unquote, urlparse

import requests

from ..models.types import SchemaSource, SchemaSourceError


class SourceFetcher:
    """Retrieves manifest JSON for schema sources, local or remote."""

    def __init__(self, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.logger = logging.getLogger(__name__)
        self.timeout = timeout
        self.session = session or requests.Session()

    async def fetch(self, source: SchemaSource) -> Mapping[str, Any]:
        """
        Fetch and decode one source's manifest without blocking the loop.

        Raises:
            SchemaSourceError: If retrieval or decoding fails
        """
        if source.manifest is not None:
            return source.manifest
        if not source.location:
            raise SchemaSourceError(source, "no manifest location")

        location = source.location
        if location.lower().startswith("file://"):
            path = Path(unquote(urlparse(location).path))
            return await asyncio.to_thread(self._read_local, source, path)
        if source.is_remote:
            return await asyncio.to_thread(self._fetch_remote, source, location)
        return await asyncio.to_thread(self._read_local, source, self._resolve_path(source))

    def _resolve_path(self, source: SchemaSource) -> Path:
        path = Path(source.location)
        if not path.is_absolute() and source.base_path:
            path = Path(source.base_path) / path
        return path

    def _read_local(self, source: SchemaSource, path: Path) -> Dict[str, Any]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            raise SchemaSourceError(source, f"manifest not found at {path}")
        except (OSError, json.JSONDecodeError) as e:
            raise SchemaSourceError(source, str(e))
        return self._check_manifest(source, data)

    def _fetch_remote(self, source: SchemaSource, url: str) -> Dict[str, Any]:
        self.logger.debug(f"Fetching manifest from {url} (timeout {self.timeout}s)")
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise SchemaSourceError(source, str(e))
        except ValueError as e:
            raise SchemaSourceError(source, f"invalid JSON: {str(e)}")
        return self._check_manifest(source, data)

    def _check_manifest(self, source: SchemaSource, data: Any) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise SchemaSourceError(source, "manifest root is not an object")
        return data

    def close(self) -> None:
        self.session.close()
