"""In-memory response used for short-circuits, recoveries and tests."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Mapping
from http import HTTPStatus
from typing import Any, Optional

from multidict import CIMultiDict, CIMultiDictProxy


class StaticResponse:
    """
    RawResponse backed by an in-memory body.

    Accepts str, bytes, JSON-serializable dict/list values, or None.
    dict/list bodies are serialized and get a JSON Content-Type unless one
    is given.

    Example:
        def cached(config):
            if config.url in cache:
                return StaticResponse(cache[config.url])
            return config
    """

    CHUNK_SIZE = 8192

    def __init__(
        self,
        body: Any = None,
        status: int = 200,
        reason: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        url: str = "",
    ) -> None:
        self._headers: CIMultiDict = CIMultiDict(headers or {})

        if body is None:
            content = b""
        elif isinstance(body, (bytes, bytearray, memoryview)):
            content = bytes(body)
        elif isinstance(body, str):
            content = body.encode("utf-8")
            self._headers.setdefault("Content-Type", "text/plain; charset=utf-8")
        else:
            content = json.dumps(body).encode("utf-8")
            self._headers.setdefault("Content-Type", "application/json")

        self._content = content
        self._status = status
        if reason is None:
            try:
                reason = HTTPStatus(status).phrase
            except ValueError:
                reason = ""
        self._reason = reason
        self._url = url
        self._body_used = False

    @property
    def status(self) -> int:
        return self._status

    @property
    def reason(self) -> str:
        return self._reason

    @property
    def headers(self) -> CIMultiDictProxy:
        return CIMultiDictProxy(self._headers)

    @property
    def url(self) -> str:
        return self._url

    @property
    def body_used(self) -> bool:
        return self._body_used

    async def read(self) -> bytes:
        if self._body_used:
            raise RuntimeError("Body has already been read")
        self._body_used = True
        return self._content

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        if self._body_used:
            raise RuntimeError("Body has already been read")
        self._body_used = True
        for start in range(0, len(self._content), self.CHUNK_SIZE):
            yield self._content[start : start + self.CHUNK_SIZE]

    def release(self) -> None:
        pass
