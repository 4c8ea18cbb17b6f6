# formscan/main.py
from fastapi import FastAPI, HTTPException, Depends
from fastapi.responses import JSONResponse
import base64, binascii, json, os, tempfile, time, logging, traceback
from functools import lru_cache
from pathlib import Path

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response as StarletteResponse

from formscan.errors import (
    ConfigError, DocumentDecodeError, EmptyDocumentError, ExtractionHTTPError,
    ExtractionTransportError, ResponseShapeError,
)
from formscan.logging_setup import setup_logging
from formscan.models.api_models import ExtractB64In, ExtractResponse
from formscan.models.config_models import ServiceConfig
from formscan.services.config_store import load_service_config
from formscan.services.llm_client import ExtractionClient
from formscan.services.orchestrator import run_pipeline

log = logging.getLogger("formscan")

ENV_FILE = os.environ.get("FORMSCAN_ENV_FILE") or ".env"
UPLOAD_NAME = "document.pdf"


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: StarletteRequest, call_next):
        t0 = time.time()
        clen = request.headers.get("content-length", "-")
        try:
            log.info(f"[req] {request.method} {request.url.path} q={dict(request.query_params)} len={clen}")
            resp: StarletteResponse = await call_next(request)
            dt = int((time.time() - t0) * 1000)
            log.info(f"[res] {request.method} {request.url.path} -> {resp.status_code} {dt}ms")
            return resp
        except Exception:
            dt = int((time.time() - t0) * 1000)
            log.error(f"[res] {request.method} {request.url.path} -> 500 {dt}ms\n{traceback.format_exc()}")
            raise


@lru_cache(maxsize=1)
def get_service_config() -> ServiceConfig:
    try:
        return load_service_config(ENV_FILE)
    except ConfigError as e:
        log.error(f"[config] {e}")
        raise HTTPException(status_code=503, detail="inference endpoint is not configured")


def get_extraction_client(config: ServiceConfig = Depends(get_service_config)):
    client = ExtractionClient(config)
    try:
        yield client
    finally:
        client.close()


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title="Form Extraction Backend", version="0.1.0")
    app.add_middleware(AccessLogMiddleware)

    @app.get("/health", tags=["meta"])
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/", tags=["meta"])
    def root() -> dict:
        return {"message": "Form Extraction Backend is running"}

    @app.post("/extract", tags=["extract"], response_model=ExtractResponse)
    def extract(p: ExtractB64In, client: ExtractionClient = Depends(get_extraction_client)) -> JSONResponse:
        """
        Accepts { filename, b64, schema_example? } where `b64` is the PDF file.
        The composite image lives in a temp dir for the duration of the call.
        """
        try:
            raw = base64.b64decode(p.b64, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=400, detail="b64 is not valid base64")
        schema_text = json.dumps(p.schema_example, indent=2) if p.schema_example else None
        # client filename is only used in logs; the temp file name is fixed
        name = p.filename
        log.info(f"[extract] file={name!r} pdf={len(raw)} bytes custom_schema={schema_text is not None}")

        with tempfile.TemporaryDirectory(prefix="formscan-") as tmp:
            pdf_path = Path(tmp) / UPLOAD_NAME
            pdf_path.write_bytes(raw)
            try:
                result = run_pipeline(pdf_path, client.config, schema_text=schema_text, client=client)
            except (DocumentDecodeError, EmptyDocumentError) as e:
                log.warning(f"[extract] {name!r}: {e}")
                return JSONResponse(status_code=422, content=ExtractResponse(ok=False, error=str(e)).model_dump())
            except ExtractionHTTPError as e:
                return JSONResponse(
                    status_code=502,
                    content=ExtractResponse(ok=False, error=f"upstream returned HTTP {e.status_code}").model_dump(),
                )
            except (ExtractionTransportError, ResponseShapeError) as e:
                log.error(f"[extract] {name!r}: {type(e).__name__}: {e}")
                return JSONResponse(status_code=502, content=ExtractResponse(ok=False, error=str(e)).model_dump())

        return JSONResponse(
            status_code=200,
            content=ExtractResponse(ok=True, content=result.content, meta=result.composite).model_dump(),
        )

    return app


app = create_app()
