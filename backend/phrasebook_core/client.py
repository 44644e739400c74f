"""HTTP client for the phrasebook API"""

import logging
import os
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3001"


class APIError(Exception):
    """Non-2xx response or network failure (status 0)"""

    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.status = status


class PhrasebookClient:
    """Thin wrapper over the phrases/studied/health routes"""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise APIError(f"Network error: {e}", 0) from e

        if not response.ok:
            try:
                error = response.json().get('error')
            except ValueError:
                error = None
            raise APIError(error or f"HTTP {response.status_code}", response.status_code)

        return response.json()

    # Phrases

    def list_phrases(self, **params) -> Any:
        """All phrases, or one page when q/show_studied/page/page_size are given"""
        return self._request('GET', '/api/phrases', params=params or None)

    def add_phrase(self, korean: str, english: str, audio: str = "") -> Dict[str, Any]:
        return self._request('POST', '/api/phrases',
                             json={'korean': korean, 'english': english, 'audio': audio})

    def update_phrase(self, index: int, korean: str, english: str, audio: str = "") -> Dict[str, Any]:
        return self._request('PUT', f'/api/phrases/{index}',
                             json={'korean': korean, 'english': english, 'audio': audio})

    def delete_phrase(self, index: int) -> Dict[str, Any]:
        return self._request('DELETE', f'/api/phrases/{index}')

    def import_csv(self, path) -> Dict[str, Any]:
        with open(path, 'rb') as f:
            files = {'csvFile': (os.path.basename(path), f, 'text/csv')}
            return self._request('POST', '/api/import', files=files)

    # Studied progress

    def get_studied(self) -> Dict[str, bool]:
        return self._request('GET', '/api/studied')

    def replace_studied(self, studied: Dict[str, bool]) -> Dict[str, bool]:
        return self._request('PUT', '/api/studied', json=studied)

    def set_studied(self, phrase_id: str, studied: bool) -> Dict[str, Any]:
        return self._request('POST', f'/api/studied/{phrase_id}', json={'studied': studied})

    def clear_studied(self) -> Dict[str, Any]:
        return self._request('DELETE', '/api/studied')

    def migrate_studied(self) -> Dict[str, Any]:
        return self._request('POST', '/api/studied/migrate')

    # Health

    def health(self) -> Dict[str, Any]:
        return self._request('GET', '/api/health')

    def is_available(self) -> bool:
        try:
            self.health()
            return True
        except APIError as e:
            logger.debug(f"Backend unavailable: {e}")
            return False
