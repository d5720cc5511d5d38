"""Async client for the Supabase REST proxy (PostgREST).

Each call maps onto one HTTP request against ``/rest/v1/<table>``:
select is a GET, insert and upsert are POSTs, update is a PATCH and delete
is a DELETE. ``where`` clauses are equality filters (``column=eq.value``);
a list or tuple value becomes an ``in.(...)`` filter.
"""
import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx
from structlog import get_logger

from marketplace.config import settings
from marketplace.utils.retry import retry

logger = get_logger()

_CONTENT_RANGE_TOTAL = re.compile(r"/(\d+)$")


class SupabaseError(Exception):
    def __init__(self, message: str, details: Optional[str] = None, hint: Optional[str] = None,
                 code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.hint = hint
        self.code = code


class SupabaseConnectionError(SupabaseError):
    pass


class SupabaseConfigError(SupabaseError):
    pass


@dataclass
class SupabaseResponse:
    data: Any = None
    count: Optional[int] = None


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_query_params(
    select: Optional[str] = None,
    where: Optional[Dict[str, Any]] = None,
    order: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> List[Tuple[str, str]]:
    params: List[Tuple[str, str]] = []
    if select:
        params.append(("select", select))
    for column, value in (where or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            quoted = ",".join(f'"{_format_value(v)}"' for v in value)
            params.append((column, f"in.({quoted})"))
        else:
            params.append((column, f"eq.{_format_value(value)}"))
    if order:
        params.append(("order", order))
    if limit:
        params.append(("limit", str(limit)))
    if offset:
        params.append(("offset", str(offset)))
    return params


def _error_from_response(response: httpx.Response) -> SupabaseError:
    text = response.text
    try:
        body = json.loads(text)
    except ValueError:
        body = None
    if not isinstance(body, dict):
        body = {"message": text or f"HTTP {response.status_code}"}
    return SupabaseError(
        body.get("message") or "Unknown error",
        details=body.get("details"),
        hint=body.get("hint"),
        code=body.get("code") or str(response.status_code),
    )


class SupabaseClient:
    def __init__(self, url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._url = url
        self._api_key = api_key
        self._timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _credentials(self) -> Tuple[str, str]:
        url = self._url or settings.SUPABASE_URL
        api_key = self._api_key or settings.SUPABASE_SERVICE_ROLE_KEY or settings.SUPABASE_ANON_KEY
        if not url or not api_key:
            raise SupabaseConfigError("Supabase URL and API key must be provided in environment variables")
        return url.rstrip("/"), api_key

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            url, api_key = self._credentials()
            self._client = httpx.AsyncClient(
                base_url=f"{url}/rest/v1",
                headers={
                    "Content-Type": "application/json",
                    "apikey": api_key,
                    "Authorization": f"Bearer {api_key}",
                    "Prefer": "return=representation",
                },
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, data: Any = None,
                       params: Optional[List[Tuple[str, str]]] = None,
                       headers: Optional[Dict[str, str]] = None) -> SupabaseResponse:
        client = self._get_client()
        try:
            response = await client.request(method, f"/{path}", params=params, json=data, headers=headers)
        except httpx.RequestError as e:
            logger.error("Supabase request failed", method=method, path=path, error=str(e))
            raise SupabaseConnectionError(str(e) or "Network error", details="Failed to connect to Supabase") from e

        if response.is_error:
            error = _error_from_response(response)
            logger.warning(
                "Supabase returned an error",
                method=method,
                path=path,
                status_code=response.status_code,
                message=error.message,
                code=error.code,
            )
            raise error

        text = response.text
        try:
            payload = json.loads(text) if text else None
        except ValueError:
            payload = text

        result = SupabaseResponse(data=payload)
        content_range = response.headers.get("content-range")
        if content_range:
            match = _CONTENT_RANGE_TOTAL.search(content_range)
            if match:
                result.count = int(match.group(1))
        return result

    @retry(
        tries=settings.SUPABASE_READ_RETRIES,
        delay=settings.SUPABASE_RETRY_DELAY_SECONDS,
        exceptions=(SupabaseConnectionError,),
    )
    async def select(self, table: str, select: str = "*", where: Optional[Dict[str, Any]] = None,
                     order: Optional[str] = None, limit: Optional[int] = None,
                     offset: Optional[int] = None, count: bool = False) -> SupabaseResponse:
        params = build_query_params(select=select, where=where, order=order, limit=limit, offset=offset)
        headers = {"Prefer": "count=exact"} if count else None
        result = await self._request("GET", table, params=params, headers=headers)
        if result.data is None:
            result.data = []
        return result

    async def ping(self, table: str) -> None:
        """One unretried read, for readiness checks."""
        await self._request("GET", table, params=build_query_params(select="id", limit=1))

    async def insert(self, table: str, data: Any) -> SupabaseResponse:
        return await self._request("POST", table, data=data)

    async def update(self, table: str, data: Dict[str, Any], where: Dict[str, Any]) -> SupabaseResponse:
        if not where:
            raise ValueError("WHERE clause is required for UPDATE operations")
        return await self._request("PATCH", table, data=data, params=build_query_params(where=where))

    async def delete(self, table: str, where: Dict[str, Any]) -> SupabaseResponse:
        if not where:
            raise ValueError("WHERE clause is required for DELETE operations")
        return await self._request("DELETE", table, params=build_query_params(where=where))

    async def upsert(self, table: str, data: Any, on_conflict: Optional[List[str]] = None) -> SupabaseResponse:
        headers = {"Prefer": "resolution=merge-duplicates,return=representation"}
        params = [("on_conflict", ",".join(on_conflict))] if on_conflict else None
        return await self._request("POST", table, data=data, params=params, headers=headers)

    async def rpc(self, function_name: str, params: Optional[Dict[str, Any]] = None) -> SupabaseResponse:
        return await self._request("POST", f"rpc/{function_name}", data=params)


supabase = SupabaseClient()


def first_row(result: SupabaseResponse) -> Optional[Dict[str, Any]]:
    rows = result.data or []
    if isinstance(rows, dict):
        return rows
    return rows[0] if rows else None
