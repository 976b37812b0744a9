import fitz
import pytest
from PyQt6.QtCore import QPoint, Qt
from PyQt6.QtTest import QTest
from PyQt6.QtWidgets import QMessageBox

from conftest import make_pdf
from models.session_models import TOOL_HIGHLIGHT, TOOL_SIGN, TOOL_TEXT
from ui.dialogs import SignatureDialog
from ui.main_window import MainWindow

PNG_HEADER = b"\x89PNG"


@pytest.fixture
def window(qapp, tmp_path, monkeypatch):
    monkeypatch.setattr(QMessageBox, "information", lambda *args, **kwargs: QMessageBox.StandardButton.Ok)
    monkeypatch.setattr(QMessageBox, "warning", lambda *args, **kwargs: QMessageBox.StandardButton.Ok)
    monkeypatch.setattr(QMessageBox, "critical", lambda *args, **kwargs: QMessageBox.StandardButton.Ok)
    pdf_path = tmp_path / "contract.pdf"
    pdf_path.write_bytes(make_pdf(page_count=3))
    main = MainWindow()
    main.show()
    assert main.pdf_handler.load_pdf(str(pdf_path))
    yield main
    main.close()


def test_signature_dialog_typed_flow(qapp):
    dialog = SignatureDialog(None)
    assert not dialog.apply_button.isEnabled()
    assert not dialog.generate_button.isEnabled()

    dialog.tab_bar.setCurrentIndex(1)
    dialog.name_input.setText("Jane Doe")
    assert dialog.generate_button.isEnabled()
    dialog.generate_button.click()
    assert dialog.apply_button.isEnabled()

    dialog.apply_button.click()
    assert dialog.signature_png.startswith(PNG_HEADER)


def test_signature_dialog_tab_switch_clears(qapp):
    dialog = SignatureDialog(None)
    dialog.tab_bar.setCurrentIndex(1)
    dialog.name_input.setText("Jane")
    dialog.generate_button.click()

    dialog.tab_bar.setCurrentIndex(0)
    assert not dialog.rasterizer.has_content
    assert not dialog.apply_button.isEnabled()


def test_non_pdf_is_rejected(window, tmp_path):
    other = tmp_path / "notes.txt"
    other.write_text("hello")
    assert window.pdf_handler.load_pdf(str(other)) is False
    assert window.pdf_handler.current_pdf_path.endswith("contract.pdf")


def test_navigation_and_zoom_are_clamped(window):
    handler = window.pdf_handler
    handler.show_prev_page()
    assert handler.current_page == 1
    handler.show_page(10)
    assert handler.current_page == 3
    assert not window.next_page_action.isEnabled()

    for _ in range(20):
        handler.zoom_in()
    assert window.controller.view.scale == 3.0
    assert not window.zoom_in_action.isEnabled()
    handler.reset_zoom()
    assert window.controller.view.scale == 1.0


def test_click_places_pending_signature(window):
    window.controller.set_pending_stamp(PNG_HEADER + b"stamp")
    window.annotation_handler.select_tool(TOOL_SIGN)
    window.pdf_handler.show_page(2)

    QTest.mouseClick(window.pdf_display_label, Qt.MouseButton.LeftButton, pos=QPoint(100, 120))

    signatures = window.store.signatures
    assert len(signatures) == 1
    assert (signatures[0].x, signatures[0].y, signatures[0].page) == (100, 120, 2)
    assert not window.controller.pending_stamp.has_value


def test_click_position_is_scaled_to_document_space(window):
    window.pdf_handler.zoom_in()
    window.pdf_handler.zoom_in()
    window.annotation_handler.select_tool(TOOL_TEXT)

    QTest.mouseClick(window.pdf_display_label, Qt.MouseButton.LeftButton, pos=QPoint(150, 90))

    text = window.store.texts[0]
    assert (text.x, text.y) == (100, 60)
    assert window.pdf_display_label.text_editor.isVisible()


def test_rubber_band_drag_adds_highlight(window):
    window.annotation_handler.select_tool(TOOL_HIGHLIGHT)
    label = window.pdf_display_label

    QTest.mousePress(label, Qt.MouseButton.LeftButton, pos=QPoint(20, 20))
    QTest.mouseMove(label, QPoint(80, 50))
    QTest.mouseRelease(label, Qt.MouseButton.LeftButton, pos=QPoint(80, 50))

    assert len(window.store.highlights) == 1


def test_reset_clears_annotations(window):
    window.store.add_highlight(0, 0, 50, 20, page=1)
    window.annotation_handler.reset_annotations()
    assert len(window.store) == 0


def test_export_writes_edited_pdf(window, qapp, tmp_path):
    window.store.add_highlight(10, 10, 100, 20, page=1)
    out_path = tmp_path / "edited_contract.pdf"

    assert window.export_handler.start_export(str(out_path))
    assert window.export_handler.is_processing
    assert "1 件" in window.statusBar().currentMessage()
    assert not window.download_action.isEnabled()
    assert window.export_handler.start_export(str(out_path)) is False

    window.export_handler.export_thread.wait(5000)
    qapp.processEvents()

    assert not window.export_handler.is_processing
    with fitz.open(str(out_path)) as doc:
        assert doc.page_count == 3
        assert len(doc[0].get_drawings()) == 1


def test_finished_worker_does_not_release_newer_export(window, qapp, tmp_path):
    handler = window.export_handler
    assert handler.start_export(str(tmp_path / "first.pdf"))
    assert "注釈がない" in window.statusBar().currentMessage()
    first = handler.export_thread
    first.wait(5000)
    qapp.processEvents()
    assert handler.export_thread is None

    assert handler.start_export(str(tmp_path / "second.pdf"))
    second = handler.export_thread
    handler._on_thread_finished(first)
    assert handler.export_thread is second

    second.wait(5000)
    qapp.processEvents()
    assert handler.export_thread is None
    assert (tmp_path / "second.pdf").exists()
