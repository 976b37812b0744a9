import fitz
import pytest
from PyQt6.QtGui import QColor

from conftest import make_pdf
from models.annotation_models import (AnnotationSnapshot, HighlightAnnotation,
                                      SignatureAnnotation, TextAnnotation)
from services.export_service import (ExportError, ExportService, highlight_placement,
                                     needs_fallback_font, signature_placement, text_baseline)
from utils.signature_utils import SignatureRasterizer

PAGE_HEIGHT = 842


@pytest.fixture
def signature_png(qapp):
    rasterizer = SignatureRasterizer(200, 100)
    rasterizer.image.fill(QColor("black"))
    return rasterizer.extract_png()


def signature(png, page=1, x=100, y=100, width=150, height=60):
    return SignatureAnnotation(id="s1", x=x, y=y, width=width, height=height, image=png, page=page)


def test_signature_placement_flips_y():
    placement = signature_placement(signature(b""), PAGE_HEIGHT)
    assert (placement.x, placement.y) == (100, PAGE_HEIGHT - 160)
    assert (placement.width, placement.height) == (150, 60)


def test_text_baseline_is_font_size_below_top():
    text = TextAnnotation(id="t1", x=20, y=30, text="Hi", font_size=16, color="#1a1a2e", page=1)
    placement = text_baseline(text, PAGE_HEIGHT)
    assert (placement.x, placement.y) == (20, PAGE_HEIGHT - 46)


def test_highlight_placement_flips_y():
    highlight = HighlightAnnotation(id="h1", x=10, y=20, width=100, height=15, page=1)
    placement = highlight_placement(highlight, PAGE_HEIGHT)
    assert (placement.x, placement.y, placement.width, placement.height) == (10, PAGE_HEIGHT - 35, 100, 15)


def test_bake_places_signature_at_document_position(signature_png):
    original = make_pdf()
    result = ExportService().bake(original, AnnotationSnapshot(signatures=(signature(signature_png),)))

    with fitz.open(stream=result.data, filetype="pdf") as doc:
        infos = doc[0].get_image_info()
    assert len(infos) == 1
    bbox = fitz.Rect(infos[0]["bbox"])
    assert bbox.x0 == pytest.approx(100, abs=0.5)
    assert bbox.y0 == pytest.approx(100, abs=0.5)
    assert bbox.width == pytest.approx(150, abs=0.5)
    assert bbox.height == pytest.approx(60, abs=0.5)
    assert result.skipped == 0


def test_bake_does_not_modify_original(signature_png):
    original = make_pdf()
    copy = bytes(original)
    ExportService().bake(original, AnnotationSnapshot(signatures=(signature(signature_png),)))
    assert original == copy


def test_bake_writes_text_and_skips_blank_text():
    texts = (
        TextAnnotation(id="t1", x=50, y=60, text="Approved", font_size=16, color="#1a1a2e", page=1),
        TextAnnotation(id="t2", x=50, y=120, text="   ", font_size=16, color="#1a1a2e", page=1),
    )
    result = ExportService().bake(make_pdf(), AnnotationSnapshot(texts=texts))

    with fitz.open(stream=result.data, filetype="pdf") as doc:
        words = doc[0].get_text("words")
    assert [w[4] for w in words] == ["Approved"]
    x0, y0, x1, y1 = words[0][:4]
    assert x0 == pytest.approx(50, abs=1)
    assert y0 < 60 + 16 < y1


def test_bake_writes_japanese_text_with_embedded_font():
    texts = (
        TextAnnotation(id="t1", x=50, y=60, text="承認済み", font_size=16, color="#1a1a2e", page=1),
        TextAnnotation(id="t2", x=50, y=120, text="確認 OK", font_size=16, color="#1a1a2e", page=1),
    )
    result = ExportService().bake(make_pdf(), AnnotationSnapshot(texts=texts))

    with fitz.open(stream=result.data, filetype="pdf") as doc:
        lines = doc[0].get_text().split()
        font_names = [font[4] for font in doc[0].get_fonts()]
    assert lines == ["承認済み", "確認", "OK"]
    assert font_names.count("cjk") == 1


def test_fallback_font_only_for_text_outside_latin1():
    assert needs_fallback_font("Approved") is False
    assert needs_fallback_font("Café") is False
    assert needs_fallback_font("承認") is True


def test_bake_draws_translucent_highlight():
    highlight = HighlightAnnotation(id="h1", x=40, y=50, width=200, height=20, page=2)
    result = ExportService().bake(make_pdf(page_count=2), AnnotationSnapshot(highlights=(highlight,)))

    with fitz.open(stream=result.data, filetype="pdf") as doc:
        assert doc[0].get_drawings() == []
        drawings = doc[1].get_drawings()
    assert len(drawings) == 1
    drawing = drawings[0]
    assert drawing["fill"] == pytest.approx((0.98, 0.8, 0.08), abs=0.01)
    assert drawing["fill_opacity"] == pytest.approx(0.4, abs=0.01)
    assert tuple(drawing["rect"]) == pytest.approx((40, 50, 240, 70), abs=0.5)


def test_out_of_range_page_is_skipped_and_counted(signature_png):
    snapshot = AnnotationSnapshot(
        signatures=(signature(signature_png, page=5),),
        highlights=(HighlightAnnotation(id="h1", x=0, y=0, width=50, height=20, page=1),),
    )
    result = ExportService().bake(make_pdf(), snapshot)

    assert result.skipped == 1
    with fitz.open(stream=result.data, filetype="pdf") as doc:
        assert doc.page_count == 1
        assert doc[0].get_image_info() == []


def test_undecodable_signature_raises_export_error():
    snapshot = AnnotationSnapshot(signatures=(signature(b"not an image"),))
    with pytest.raises(ExportError):
        ExportService().bake(make_pdf(), snapshot)


def test_unreadable_pdf_raises_export_error():
    with pytest.raises(ExportError):
        ExportService().bake(b"%PDF-garbage", AnnotationSnapshot())
