from __future__ import annotations

from pathlib import Path

import fitz  # PyMuPDF
import pytest

import pdf_whitespace

PAGE_W = 200
PAGE_H = 100
TEST_DPI = 72  # one pixel per point keeps the synthetic pages exact


def make_pdf(path: Path, black_fractions, fill=(0, 0, 0)) -> Path:
    """Write a PDF with one page per entry; each page has its left part filled."""
    doc = fitz.open()
    for fraction in black_fractions:
        page = doc.new_page(width=PAGE_W, height=PAGE_H)
        if fraction:
            page.draw_rect(fitz.Rect(0, 0, PAGE_W * fraction, PAGE_H), color=None, fill=fill)
    doc.save(str(path))
    doc.close()
    return path


def page_areas(path: Path, dpi: int) -> int:
    zoom = dpi / 72.0
    total = 0
    with fitz.open(str(path)) as doc:
        for page in doc:
            pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), colorspace=fitz.csRGB, alpha=False)
            total += pix.width * pix.height
    return total


def fail_on_second_page(monkeypatch):
    """Make page index 1 of any document fail to rasterise."""
    render = pdf_whitespace.render_page

    def flaky(page, dpi=pdf_whitespace.DEFAULT_DPI, dump_path=None):
        if page.number == 1:
            raise RuntimeError("raster boom")
        return render(page, dpi=dpi, dump_path=dump_path)

    monkeypatch.setattr(pdf_whitespace, "render_page", flaky)


@pytest.fixture
def pdf_factory(tmp_path):
    def factory(name, black_fractions, fill=(0, 0, 0), folder=None):
        target = Path(folder) if folder else tmp_path
        target.mkdir(parents=True, exist_ok=True)
        return make_pdf(target / name, black_fractions, fill=fill)
    return factory


@pytest.fixture
def mixed_folder(tmp_path, pdf_factory):
    """3 PDFs, 2 other files and a directory that looks like a PDF."""
    folder = tmp_path / "docs"
    pdf_factory("blank.pdf", [0], folder=folder)
    pdf_factory("half.pdf", [0.5], folder=folder)
    pdf_factory("two_pages.pdf", [0.25, 0.25], folder=folder)
    (folder / "notes.txt").write_text("not a pdf")
    (folder / "scan.png").write_bytes(b"\x89PNG")
    (folder / "nested.pdf").mkdir()
    return folder
