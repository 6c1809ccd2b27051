import logging
from typing import Any, Dict, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from infra_monitor.providers.exceptions import (
    ProviderAuthError,
    ProviderConnectionError,
    ProviderResponseError,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class JsonHttpClient:
    """Blocking JSON-over-HTTP client that maps requests errors to provider exceptions."""

    def __init__(self, timeout: float, verify: bool = True):
        self.timeout = timeout
        self.verify = verify
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def _send(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self.timeout,
                verify=self.verify
            )
            response.raise_for_status()
            return response
        except requests.exceptions.Timeout as e:
            raise ProviderConnectionError(f"Request to {url} timed out: {e}") from e
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code
            if status_code == 401:
                raise ProviderAuthError(f"Authentication rejected by {url}") from e
            raise ProviderResponseError(
                f"HTTP {status_code} from {url}: {e.response.text[:200]}",
                status_code=status_code
            ) from e
        except requests.exceptions.RequestException as e:
            raise ProviderConnectionError(f"Request to {url} failed: {e}") from e

    def _request(self, method: str, url: str, **kwargs) -> Any:
        response = self._send(method, url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise ProviderResponseError(f"Invalid JSON from {url}: {e}", status_code=response.status_code) from e

    @staticmethod
    def _validate(model: Type[M], data: Any, source: str) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ProviderResponseError(f"Unexpected response shape from {source}: {e}") from e
