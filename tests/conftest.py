import fitz
import httpx
import pytest

from formscan.models.config_models import ServiceConfig
from formscan.services.llm_client import ExtractionClient


def build_pdf(sizes, colors=None) -> bytes:
    """PDF with one page per (width, height) in points, each filled with a solid colour."""
    doc = fitz.open()
    for i, (w, h) in enumerate(sizes):
        page = doc.new_page(width=w, height=h)
        if colors:
            page.draw_rect(fitz.Rect(0, 0, w, h), color=colors[i], fill=colors[i])
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def make_pdf(tmp_path):
    def _make(sizes, colors=None, name="form.pdf"):
        path = tmp_path / name
        path.write_bytes(build_pdf(sizes, colors))
        return path
    return _make


@pytest.fixture
def service_config():
    return ServiceConfig(
        endpoint="https://aoai-test.openai.azure.com/",
        api_key="secret-key",
        deployment_name="gpt-4o",
        api_version="2024-06-01",
    )


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / ".env"
    path.write_text(
        "AZURE_RESOURCE_GROUP_NAME = rg-test\n"
        "AZURE_OPENAI_ENDPOINT = https://aoai-test.openai.azure.com/\n"
        "AZURE_OPENAI_API_KEY = secret-key\n"
        "AZURE_OPENAI_VISION_MODEL_DEPLOYMENT_NAME = gpt-4o\n"
    )
    return path


def completion_body(content: str) -> dict:
    return {
        "id": "chatcmpl-1",
        "model": "gpt-4o",
        "choices": [
            {"index": 0, "finish_reason": "stop", "message": {"role": "assistant", "content": content}}
        ],
    }


@pytest.fixture
def mock_client(service_config):
    """ExtractionClient backed by an httpx.MockTransport; records every request."""
    def _make(status=200, body=None, exc=None):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if exc is not None:
                raise exc
            if isinstance(body, (bytes, str)):
                return httpx.Response(status, content=body)
            return httpx.Response(status, json=body if body is not None else completion_body("{}"))

        http = httpx.Client(transport=httpx.MockTransport(handler))
        client = ExtractionClient(service_config, http_client=http)
        client.requests = seen
        return client
    return _make
