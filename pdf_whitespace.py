import argparse
import logging
import math
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Tuple

import fitz  # PyMuPDF
import numpy as np

log = logging.getLogger(__name__)

PDF_SUFFIX = ".pdf"
DEFAULT_DPI = 300
JPEG_QUALITY = 75
SAMPLE_SCALE = 257  # 16-bit sample -> 8-bit value


# ---------- Errors ----------
class WhitespaceError(Exception):
    """Base class for every failure of a whitespace run."""


class DiscoveryError(WhitespaceError):
    pass


class DocumentOpenError(WhitespaceError):
    def __init__(self, path, cause):
        super().__init__(f"unable to open {path}: {cause}")
        self.path = path


class RenderError(WhitespaceError):
    def __init__(self, path, page, cause):
        super().__init__(f"unable to render page {page} of {path}: {cause}")
        self.path = path
        self.page = page


# ---------- Stats ----------
@dataclass(frozen=True)
class DocumentStats:
    name: str
    white_pixels: int
    non_white_pixels: int
    pages: int = 0

    @property
    def total_pixels(self) -> int:
        return self.white_pixels + self.non_white_pixels

    @property
    def white_percentage(self) -> float:
        # NaN for a document without a single rendered pixel
        if self.total_pixels == 0:
            return math.nan
        return 100.0 * self.white_pixels / self.total_pixels


# ---------- Classification ----------
def is_white(r: int, g: int, b: int, a: int = 0xFFFF, strict: bool = False) -> bool:
    """
    Classify one pixel from 16-bit samples (0..65535). Alpha is ignored.

    The compatible rule scales the *red* sample for all three comparisons, so a
    pixel counts as white whenever its red channel is saturated. strict=True
    scales red, green and blue independently.
    """
    rc = r // SAMPLE_SCALE
    gc = (g if strict else r) // SAMPLE_SCALE
    bc = (b if strict else r) // SAMPLE_SCALE
    return rc == 255 and gc == 255 and bc == 255


def white_mask(img: np.ndarray, strict: bool = False) -> np.ndarray:
    """Vectorised is_white over an (h, w, n) uint8 bitmap."""
    # x * 257 // 257 == x, so the 8-bit samples compare directly against 255
    r = img[:, :, 0]
    if not strict:
        return r == 255
    return (r == 255) & (img[:, :, 1] == 255) & (img[:, :, 2] == 255)


def count_pixels(img: np.ndarray, strict: bool = False) -> Tuple[int, int]:
    """Return (white, non_white) for one bitmap."""
    mask = white_mask(img, strict=strict)
    wp = int(mask.sum())
    return wp, int(mask.size) - wp


# ---------- Discovery ----------
def iter_pdf_paths(source) -> Iterator[str]:
    """
    Yield the PDF paths found at source.
      - a path ending in .pdf is yielded as is (existence is checked on open)
      - otherwise source is listed as a directory, non-recursively, keeping
        non-directory entries whose name ends in .pdf, sorted by name
    """
    source = os.fspath(source)
    if source.endswith(PDF_SUFFIX):
        yield source
        return

    try:
        with os.scandir(source) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as exc:
        raise DiscoveryError(f"unable to read source directory {source}: {exc}") from exc

    for entry in entries:
        if not entry.is_dir(follow_symlinks=False) and entry.name.endswith(PDF_SUFFIX):
            yield os.path.join(source, entry.name)


# ---------- Rendering ----------
def render_page(page, dpi: int = DEFAULT_DPI, dump_path: Optional[Path] = None) -> np.ndarray:
    """Rasterise one page to an (h, w, 3) uint8 RGB array."""
    zoom = dpi / 72.0
    pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), colorspace=fitz.csRGB, alpha=False)
    if dump_path is not None:
        pix.save(str(dump_path), jpg_quality=JPEG_QUALITY)
    return np.frombuffer(pix.samples, dtype=np.uint8).reshape(pix.h, pix.w, pix.n)


def analyze_pdf(path, dpi: int = DEFAULT_DPI, strict: bool = False,
                dump_dir: Optional[Path] = None) -> DocumentStats:
    """
    Render every page of one PDF and count white vs non-white pixels.

    Raises DocumentOpenError when PyMuPDF cannot open the file and RenderError
    when a page fails to rasterise. The document is closed on every path.
    """
    name = os.path.basename(os.fspath(path))
    try:
        doc = fitz.open(path)
    except Exception as exc:  # PyMuPDF raises several unrelated types here
        raise DocumentOpenError(path, exc) from exc

    white_px = 0
    non_white_px = 0
    with doc:
        page_count = doc.page_count
        for n in range(page_count):
            dump_path = Path(dump_dir) / f"{name}-{n:03d}.jpeg" if dump_dir else None
            try:
                img = render_page(doc[n], dpi=dpi, dump_path=dump_path)
            except Exception as exc:
                raise RenderError(path, n, exc) from exc

            wp, nwp = count_pixels(img, strict=strict)
            white_px += wp
            non_white_px += nwp

    return DocumentStats(name=name, white_pixels=white_px,
                         non_white_pixels=non_white_px, pages=page_count)


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Measure white vs non-white pixels for a whole PDF.")
    ap.add_argument("pdf", help="Path to PDF")
    ap.add_argument("--dpi", type=int, default=DEFAULT_DPI, help="Render DPI (lower for speed)")
    ap.add_argument("--strict-white", action="store_true",
                    help="Require red, green and blue to be saturated instead of red only")
    args = ap.parse_args(argv)

    t0 = time.perf_counter()
    try:
        stats = analyze_pdf(args.pdf, dpi=args.dpi, strict=args.strict_white)
    except WhitespaceError as exc:
        log.error("%s", exc)
        return 1
    t1 = time.perf_counter()

    print(f"\n=== {stats.name} ({stats.pages} pages) ===\n")
    print(f"  White pixels:          {stats.white_pixels}")
    print(f"  Non-white pixels:      {stats.non_white_pixels}")
    print(f"  White share:           {stats.white_percentage:.2f}%")
    print(f"\nProcessing time: {t1 - t0:.2f} seconds")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
    raise SystemExit(main())
