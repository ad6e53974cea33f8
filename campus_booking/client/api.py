import logging
from typing import Any, List, Optional, Sequence, Union

import httpx

from campus_booking.core.config import settings
from campus_booking.core.security import API_KEY_HEADER
from campus_booking.schemas.booking import Record
from campus_booking.schemas.store import DataType, ServiceStatus

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A read or write against the storage facade failed; `message` is user-facing."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StoreAuthError(StoreError):
    pass


class RecordStoreClient:
    """
    Thin async wrapper over the storage facade. Every collection is read and
    written whole; there is no per-record endpoint and no version token.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.STORE_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.API_KEY
        self.timeout = timeout or settings.STORE_TIMEOUT_SECONDS
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={API_KEY_HEADER: self.api_key},
        )

    async def _request(self, method: str, url: str, error_prefix: str, **kwargs) -> Any:
        async with self._client() as client:
            try:
                response = await client.request(method, url, **kwargs)
            except httpx.HTTPError as e:
                logger.error(f"[store] {method} {url} failed: {e!r}")
                raise StoreError(f"{error_prefix}: {str(e) or type(e).__name__}") from e
        return self._handle_response(response, error_prefix)

    @staticmethod
    def _handle_response(response: httpx.Response, error_prefix: str) -> Any:
        """Raise StoreError carrying the facade's {error} text for non-2xx answers."""
        if response.is_success:
            try:
                return response.json()
            except ValueError:
                raise StoreError(f"{error_prefix}: response is not JSON", status_code=response.status_code)

        try:
            body = response.json()
            detail = body.get("error") if isinstance(body, dict) else None
        except ValueError:
            detail = None
        detail = detail or f"Server error! status: {response.status_code}"

        error_cls = StoreAuthError if response.status_code == 401 else StoreError
        raise error_cls(f"{error_prefix}: {detail}", status_code=response.status_code)

    # =====================================================
    # DATA
    # =====================================================

    async def fetch_data(self, data_type: DataType) -> List[dict]:
        data_type = DataType(data_type)
        data = await self._request(
            "GET", "/data", f"Failed to fetch {data_type.value} data",
            params={"type": data_type.value},
        )
        if not isinstance(data, list):
            raise StoreError(f"Failed to fetch {data_type.value} data: unexpected response shape")
        return data

    async def save_data(self, data_type: DataType, records: Sequence[Union[Record, dict]]) -> bool:
        data_type = DataType(data_type)
        payload = [r.to_wire() if isinstance(r, Record) else r for r in records]
        await self._request(
            "POST", "/data", f"Failed to save {data_type.value} data",
            params={"type": data_type.value}, json=payload,
        )
        return True

    # =====================================================
    # RELAY / DIAGNOSTICS / STAFF GATE
    # =====================================================

    async def notify(self, message: str) -> bool:
        await self._request("POST", "/notify", "Failed to send notification", json={"message": message})
        return True

    async def get_status(self) -> ServiceStatus:
        data = await self._request("GET", "/status", "Failed to read service status")
        return ServiceStatus.model_validate(data)

    async def login(self, password: str) -> bool:
        data = await self._request("POST", "/auth/login", "Login failed", json={"password": password})
        return isinstance(data, dict) and bool(data.get("success"))
