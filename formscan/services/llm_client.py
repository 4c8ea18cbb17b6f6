import base64, logging, time
from pathlib import Path
from typing import Optional, Union

import httpx
from httpx import Timeout, Limits
from pydantic import ValidationError

from ..errors import ExtractionHTTPError, ExtractionTransportError, InputFileError, ResponseShapeError
from ..models.config_models import ServiceConfig
from ..models.llm_models import (
    ChatCompletionResponse, ChatMessage, ExtractionRequest, ImagePart, ImageUrl, TextPart,
)
from .prompts import SYSTEM_PROMPT, build_user_prompt, default_schema_text

log = logging.getLogger("formscan")

DEFAULT_MODEL = "gpt-4o"
DEFAULT_TIMEOUT = Timeout(connect=30.0, read=120.0, write=30.0, pool=120.0)


def image_data_url(image_bytes: bytes, mime: str = "image/jpeg") -> str:
    return f"data:{mime};base64,{base64.b64encode(image_bytes).decode('ascii')}"


def _http_client(timeout: Optional[Union[float, Timeout]]) -> httpx.Client:
    return httpx.Client(
        http2=False,
        timeout=timeout if timeout is not None else DEFAULT_TIMEOUT,
        limits=Limits(max_connections=10, max_keepalive_connections=2),
        trust_env=False,
    )


class ExtractionClient:
    """Sends one composite image to an Azure OpenAI chat deployment.

    One request per call, no retries. A non-2xx answer raises
    ExtractionHTTPError, a body without choices[0].message.content raises
    ResponseShapeError.
    """

    def __init__(
        self,
        config: ServiceConfig,
        *,
        http_client: Optional[httpx.Client] = None,
        model: str = DEFAULT_MODEL,
        timeout: Optional[Union[float, Timeout]] = None,
    ):
        self.config = config
        self.model = model
        self._owns_client = http_client is None
        self._http = http_client or _http_client(timeout)

    def __enter__(self) -> "ExtractionClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def build_url(self) -> str:
        c = self.config
        return (
            f"{c.endpoint.rstrip('/')}/openai/deployments/{c.deployment_name}"
            f"/chat/completions?api-version={c.api_version}"
        )

    def build_request(self, image_bytes: bytes, schema_text: Optional[str] = None) -> ExtractionRequest:
        schema_text = schema_text if schema_text is not None else default_schema_text()
        return ExtractionRequest(
            model=self.model,
            messages=[
                ChatMessage(role="system", content=SYSTEM_PROMPT),
                ChatMessage(role="user", content=[
                    TextPart(text=build_user_prompt(schema_text)),
                    ImagePart(image_url=ImageUrl(url=image_data_url(image_bytes))),
                ]),
            ],
        )

    def extract_bytes(self, image_bytes: bytes, schema_text: Optional[str] = None) -> str:
        body = self.build_request(image_bytes, schema_text).model_dump()
        url = self.build_url()
        headers = {"api-key": self.config.api_key, "Content-Type": "application/json"}

        log.info(f"[llm] POST deployment={self.config.deployment_name} image={len(image_bytes)} bytes")
        t0 = time.time()
        try:
            resp = self._http.post(url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise ExtractionTransportError(f"request to {self.config.endpoint} failed: {type(e).__name__}: {e}") from e
        dt = int((time.time() - t0) * 1000)

        if not resp.is_success:
            err_txt = resp.text[:200]
            log.error(f"[llm] HTTP {resp.status_code} in {dt}ms body={err_txt!r}")
            raise ExtractionHTTPError(resp)
        log.info(f"[llm] HTTP {resp.status_code} in {dt}ms")
        return parse_completion(resp)

    def extract(self, image_path: Union[str, Path], schema_text: Optional[str] = None) -> str:
        path = Path(image_path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise InputFileError(f"cannot read {path}: {e.strerror or e}") from e
        return self.extract_bytes(data, schema_text)


def parse_completion(resp: httpx.Response) -> str:
    """Return choices[0].message.content verbatim (not checked for JSON)."""
    try:
        data = resp.json()
    except ValueError as e:
        raise ResponseShapeError(f"response body is not JSON: {e}") from e
    try:
        parsed = ChatCompletionResponse.model_validate(data)
    except ValidationError as e:
        raise ResponseShapeError(f"response lacks choices[0].message.content: {e}") from e
    return parsed.choices[0].message.content
