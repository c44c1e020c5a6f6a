"""Shared fixtures for packsync tests."""

import json
from typing import Optional
from urllib.parse import unquote

import httpx
import pytest

from packsync.api import PackClient
from packsync.utils import hash_bytes

MANIFEST_URL = "https://packs.example.com/raw/pack.update-manifest"
BASE_URL = "https://packs.example.com/raw/MUSHclient/"


class FakePackServer:
    """In-memory pack repository served through httpx.MockTransport."""

    manifest_url = MANIFEST_URL
    base_url = BASE_URL

    def __init__(self, files: Optional[dict[str, bytes]] = None):
        self.files: dict[str, bytes] = dict(files or {})
        self.manifest_override: Optional[object] = None
        self.manifest_status = 200
        self.failing_paths: dict[str, int] = {}
        self.requests: list[str] = []

    def manifest(self, algorithm: str = "blake2b") -> dict[str, str]:
        return {path: hash_bytes(data, algorithm) for path, data in self.files.items()}

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url == MANIFEST_URL:
            if self.manifest_status != 200:
                return httpx.Response(self.manifest_status)
            body = self.manifest_override
            if body is None:
                body = self.manifest()
            if isinstance(body, (bytes, str)):
                return httpx.Response(200, content=body)
            return httpx.Response(200, content=json.dumps(body).encode())
        if url.startswith(BASE_URL):
            path = unquote(request.url.raw_path.decode()[len("/raw/MUSHclient/"):])
            if path in self.failing_paths:
                return httpx.Response(self.failing_paths[path])
            if path not in self.files:
                return httpx.Response(404)
            return httpx.Response(200, content=self.files[path])
        return httpx.Response(404)

    def client(self) -> PackClient:
        return PackClient(
            manifest_url=MANIFEST_URL,
            base_file_url=BASE_URL,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def pack_server():
    """Provide an empty fake pack repository."""
    return FakePackServer()
