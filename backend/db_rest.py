# backend/db_rest.py
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx

# Timeouts
_DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0, read=20.0, write=10.0)


def _total_from_content_range(value: Optional[str]) -> int:
    # "0-9/42" or "*/0"
    if not value or "/" not in value:
        return 0
    total = value.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0


class SupabaseREST:
    """
    Minimal async PostgREST wrapper for the comments table.
    Methods:
      - select(table, params) -> list
      - select_with_count(table, params) -> (rows, exact_total)
      - insert(table, payload, *, return_representation=True)
      - update(table, filters, payload)
    Filters use PostgREST query syntax, e.g. {"id": "eq.123"}.
    """

    def __init__(
        self,
        base_url: Optional[str],
        api_key: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        if not self.base_url:
            raise RuntimeError("SUPABASE_URL not configured")
        self.api_key = api_key
        self._transport = transport

    def _auth_headers(self) -> Dict[str, str]:
        h: Dict[str, str] = {"Content-Type": "application/json"}
        if self.api_key:
            h["apikey"] = self.api_key
            h["Authorization"] = f"Bearer {self.api_key}"
        return h

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json_payload: Any = None,
        headers: Optional[Dict[str, str]] = None,
        retries: int = 0,
    ) -> httpx.Response:
        url = f"{self.base_url}/rest/v1/{path.lstrip('/')}"
        hdrs = self._auth_headers()
        if headers:
            hdrs.update(headers)

        async with httpx.AsyncClient(timeout=_DEFAULT_TIMEOUT, follow_redirects=True, transport=self._transport) as client:
            for attempt in range(retries + 1):
                try:
                    resp = await client.request(method, url, params=params, json=json_payload, headers=hdrs)
                    break
                except httpx.TransportError:
                    if attempt < retries:
                        await asyncio.sleep(0.2 * (attempt + 1))
                        continue
                    raise

        if resp.is_error:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text
            raise httpx.HTTPStatusError(
                f"{method} {path} failed: {resp.status_code} {body}",
                request=resp.request,
                response=resp,
            )
        return resp

    @staticmethod
    def _json_or_empty(resp: httpx.Response) -> Any:
        if resp.status_code == 204 or not resp.content:
            return []
        return resp.json()

    # -------------------- convenience --------------------

    async def select(self, table: str, params: Optional[Dict[str, str]] = None, *, retries: int = 1) -> List[Dict[str, Any]]:
        resp = await self._request("GET", table, params=params or {}, retries=retries)
        return self._json_or_empty(resp)

    async def select_with_count(
        self, table: str, params: Optional[Dict[str, str]] = None, *, retries: int = 1
    ) -> Tuple[List[Dict[str, Any]], int]:
        resp = await self._request(
            "GET", table, params=params or {}, headers={"Prefer": "count=exact"}, retries=retries
        )
        return self._json_or_empty(resp), _total_from_content_range(resp.headers.get("content-range"))

    async def insert(
        self,
        table: str,
        payload: Union[Dict[str, Any], List[Dict[str, Any]]],
        *,
        return_representation: bool = True,
    ) -> Any:
        hdrs = {"Prefer": f"return={'representation' if return_representation else 'minimal'}"}
        resp = await self._request("POST", table, json_payload=payload, headers=hdrs)
        return self._json_or_empty(resp)

    async def update(
        self,
        table: str,
        filters: Dict[str, str],
        payload: Dict[str, Any],
        *,
        return_representation: bool = True,
    ) -> Any:
        hdrs = {"Prefer": f"return={'representation' if return_representation else 'minimal'}"}
        resp = await self._request("PATCH", table, params=dict(filters), json_payload=payload, headers=hdrs)
        return self._json_or_empty(resp)
