import fitz, logging
from pathlib import Path
from typing import List, Optional, Sequence, Union
from PIL import Image

from ..errors import DocumentDecodeError, EmptyDocumentError, InputFileError
from ..models.extract_models import CompositeMeta, PageImageMeta

log = logging.getLogger("formscan")

JPEG_QUALITY = 100
COMPOSITE_SUFFIX = "_composite.jpg"
# documented input ceiling of the vision deployment; reported, not enforced
MAX_IMAGE_BYTES = 20 * 1024 * 1024


def render_pages(data: bytes, *, dpi: Optional[int] = None) -> List[Image.Image]:
    """Render every page of a PDF to an RGB image, in page order.

    With `dpi=None` PyMuPDF's own default resolution (72 dpi) is used.
    """
    if dpi is not None and dpi <= 0:
        raise ValueError(f"dpi must be positive, got {dpi}")
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise DocumentDecodeError(f"Cannot open as PDF: {e}") from e

    pages: List[Image.Image] = []
    try:
        for i in range(len(doc)):
            page = doc[i]
            try:
                if dpi is not None:
                    pix = page.get_pixmap(dpi=dpi, alpha=False)
                else:
                    pix = page.get_pixmap(alpha=False)
            except Exception as e:
                raise DocumentDecodeError(f"Cannot render page {i + 1}: {e}") from e
            img = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
            log.debug(f"[render] page {i + 1}: {pix.width}x{pix.height}")
            pages.append(img)
    finally:
        doc.close()
    return pages


def page_offsets(pages: Sequence[Image.Image]) -> List[int]:
    offsets, y = [], 0
    for p in pages:
        offsets.append(y)
        y += p.height
    return offsets


def stitch_pages(pages: Sequence[Image.Image]) -> Image.Image:
    """Stack pages top to bottom on one canvas.

    Width is the widest page, height the sum of all heights. Narrower pages
    are left-aligned on a white background.
    """
    if not pages:
        raise EmptyDocumentError("document has no pages to stitch")
    width = max(p.width for p in pages)
    height = sum(p.height for p in pages)
    canvas = Image.new("RGB", (width, height), "white")
    for page, y in zip(pages, page_offsets(pages)):
        canvas.paste(page.convert("RGB"), (0, y))
    return canvas


def composite_path_for(pdf_path: Union[str, Path]) -> Path:
    p = Path(pdf_path)
    return p.with_name(p.stem + COMPOSITE_SUFFIX)


def rasterize_pdf(
    pdf_path: Union[str, Path],
    output_path: Optional[Union[str, Path]] = None,
    *,
    dpi: Optional[int] = None,
) -> CompositeMeta:
    src = Path(pdf_path)
    out = Path(output_path) if output_path else composite_path_for(src)
    try:
        data = src.read_bytes()
    except OSError as e:
        raise InputFileError(f"cannot read {src}: {e.strerror or e}") from e
    pages = render_pages(data, dpi=dpi)
    composite = stitch_pages(pages)
    composite.save(out, format="JPEG", quality=JPEG_QUALITY)

    size = out.stat().st_size
    log.info(f"[render] {src.name}: {len(pages)} page(s) -> {out} {composite.width}x{composite.height} ({size} bytes)")
    if size > MAX_IMAGE_BYTES:
        log.warning(f"[render] {out.name} is {size} bytes, above the {MAX_IMAGE_BYTES} byte model input limit")

    return CompositeMeta(
        source=str(src),
        path=str(out),
        width=composite.width,
        height=composite.height,
        page_count=len(pages),
        size_bytes=size,
        pages=[
            PageImageMeta(page=i + 1, width=p.width, height=p.height, offset_y=y)
            for i, (p, y) in enumerate(zip(pages, page_offsets(pages)))
        ],
    )
