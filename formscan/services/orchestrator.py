# formscan/services/orchestrator.py
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..models.config_models import ServiceConfig
from ..models.extract_models import CompositeMeta
from .llm_client import ExtractionClient
from .pdf_render import rasterize_pdf

log = logging.getLogger("formscan")


@dataclass
class PipelineResult:
    composite: CompositeMeta
    content: str


def run_pipeline(
    pdf_path: Union[str, Path],
    config: ServiceConfig,
    *,
    schema_text: Optional[str] = None,
    client: Optional[ExtractionClient] = None,
    output_path: Optional[Union[str, Path]] = None,
    dpi: Optional[int] = None,
) -> PipelineResult:
    # 1) pdf -> composite jpeg
    composite = rasterize_pdf(pdf_path, output_path, dpi=dpi)

    # 2) composite -> model output (verbatim)
    own = client is None
    client = client or ExtractionClient(config)
    try:
        content = client.extract(composite.path, schema_text)
    finally:
        if own:
            client.close()
    log.info(f"[pipeline] {Path(pdf_path).name}: {len(content)} chars extracted")
    return PipelineResult(composite=composite, content=content)
