"""
Pytest configuration and fixtures
"""
import json
import os
from typing import Callable, Dict, List, Optional

import httpx
import pytest

# Keep test runs off the real API and out of the logs/ directory
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("LOG_FILE_ENABLED", "false")

from fastapi.testclient import TestClient  # noqa: E402

from wellmed_gateway.config import GatewayPolicy  # noqa: E402
from wellmed_gateway.dependencies import get_openai_client, get_policy  # noqa: E402
from wellmed_gateway.main import app  # noqa: E402
from wellmed_gateway.services.openai_client import OpenAIClient  # noqa: E402


def _pdf_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(pages: List[str], title: Optional[str] = None) -> bytes:
    """
    Build a minimal valid PDF with one line of Helvetica text per page.

    Object layout: 1 catalog, 2 page tree, 3 font, then a page and a content
    stream per page, then the optional info dictionary.
    """
    objects: List[bytes] = []
    page_ids = [4 + 2 * i for i in range(len(pages))]

    objects.append(b"<< /Type /Catalog /Pages 2 0 R >>")
    kids = " ".join(f"{pid} 0 R" for pid in page_ids)
    objects.append(f"<< /Type /Pages /Kids [{kids}] /Count {len(pages)} >>".encode())
    objects.append(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")

    for pid, text in zip(page_ids, pages):
        stream = f"BT /F1 12 Tf 72 720 Td ({_pdf_escape(text)}) Tj ET".encode()
        objects.append(
            (
                f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                f"/Resources << /Font << /F1 3 0 R >> >> /Contents {pid + 1} 0 R >>"
            ).encode()
        )
        objects.append(
            f"<< /Length {len(stream)} >>\nstream\n".encode() + stream + b"\nendstream"
        )

    info_id = None
    if title is not None:
        objects.append(f"<< /Title ({_pdf_escape(title)}) /Producer (wellmed tests) >>".encode())
        info_id = len(objects)

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()

    trailer = f"<< /Size {len(objects) + 1} /Root 1 0 R"
    if info_id is not None:
        trailer += f" /Info {info_id} 0 R"
    trailer += " >>"
    out += f"trailer\n{trailer}\nstartxref\n{xref_offset}\n%%EOF\n".encode()
    return bytes(out)


def completion_payload(content: str, model: str = "gpt-4o-mini") -> Dict:
    """A chat completion body as the provider returns it."""
    return {
        "id": "chatcmpl-abc123",
        "object": "chat.completion",
        "created": 1700000000,
        "model": model,
        "system_fingerprint": "fp_test",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 42, "completion_tokens": 9, "total_tokens": 51},
    }


class FakeCompletionService:
    """
    Stand-in for the chat completions API behind an httpx.MockTransport.

    Records every request body and answers with the configured response.
    """

    def __init__(self):
        self.requests: List[Dict] = []
        self.headers: List[httpx.Headers] = []
        self.status_code = 200
        self.body: object = completion_payload("The CPT code is 99213.")
        self.error: Optional[Callable[[httpx.Request], Exception]] = None

    def reply(self, status_code: int, body: object) -> None:
        self.status_code = status_code
        self.body = body

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        self.headers.append(request.headers)
        if self.error is not None:
            raise self.error(request)
        if isinstance(self.body, (bytes, str)):
            return httpx.Response(self.status_code, content=self.body)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def pdf_builder():
    return build_pdf


@pytest.fixture
def fake_upstream() -> FakeCompletionService:
    return FakeCompletionService()


@pytest.fixture
def openai_client(fake_upstream):
    return OpenAIClient(
        api_key="test-key",
        base_url="https://api.test/v1",
        timeout=5.0,
        transport=httpx.MockTransport(fake_upstream.handler),
    )


@pytest.fixture
def policy() -> GatewayPolicy:
    return GatewayPolicy()


@pytest.fixture
def client(openai_client, policy):
    """TestClient with the upstream client and policy replaced."""
    app.dependency_overrides[get_openai_client] = lambda: openai_client
    app.dependency_overrides[get_policy] = lambda: policy
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()
