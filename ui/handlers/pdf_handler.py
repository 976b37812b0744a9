from __future__ import annotations
import logging
import os
from typing import TYPE_CHECKING, Optional

import fitz
from PyQt6.QtWidgets import QFileDialog, QMessageBox

from utils.coordinate_utils import CoordinateUtils
from utils.pdf_utils import PDFUtils

if TYPE_CHECKING:
    from ..main_window import MainWindow

logger = logging.getLogger(__name__)


class PDFHandler:
    """
    PDF文書の読み込み、表示、ページ移動、ズームなど、
    PDFレンダリングに関する中心的な処理を担うハンドラクラス。
    """
    def __init__(self, main_window: MainWindow) -> None:
        """
        PDFHandlerのコンストラクタ。

        Args:
            main_window (MainWindow): 親となるメインウィンドウインスタンス。
        """
        self.main: MainWindow = main_window
        self.pdf_document: Optional[fitz.Document] = None
        self.pdf_bytes: Optional[bytes] = None
        self.current_pdf_path: Optional[str] = None

    @property
    def view(self):
        return self.main.controller.view

    @property
    def current_page(self) -> int:
        return self.view.current_page

    @property
    def total_pages(self) -> int:
        return self.view.page_count

    def open_pdf_file(self) -> None:
        """
        ファイルダイアログを開き、ユーザーにPDFファイルを選択させる。
        """
        file_path, _ = QFileDialog.getOpenFileName(self.main, "PDFファイルを開く", "", "PDF Files (*.pdf)")
        if not file_path:
            return
        self.load_pdf(file_path)

    def load_pdf(self, file_path: str) -> bool:
        """
        PDFファイルを読み込み、注釈と表示状態をリセットして1ページ目を表示する。

        PDF以外のファイルは読み込む前に拒否されます。

        Args:
            file_path (str): 読み込むファイルのパス。

        Returns:
            bool: 読み込みに成功した場合はTrue。
        """
        if not PDFUtils.is_pdf_file(file_path):
            logger.warning("PDF以外のファイルが選択されました: %s", file_path)
            QMessageBox.warning(self.main, "ファイル形式", "PDFファイルを選択してください。")
            return False

        try:
            with open(file_path, "rb") as f:
                data = f.read()
            document = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            logger.exception("PDFファイルを開けませんでした: %s", file_path)
            QMessageBox.critical(self.main, "PDFエラー", f"PDFファイルを開けませんでした: {e}")
            return False

        if self.pdf_document is not None:
            self.pdf_document.close()
        self.pdf_document = document
        self.pdf_bytes = data
        self.current_pdf_path = file_path

        self.main.pdf_display_label.clear_page()
        self.main.controller.reset_session(clear_stamp=True)
        self.view.page_count = document.page_count
        self.view.current_page = 1
        self.view.scale = 1.0

        self.main.file_label.setText(os.path.basename(file_path))
        logger.info("PDFを読み込みました: %s (%dページ)", file_path, document.page_count)
        self.show_page(1)
        return True

    def show_page(self, page_number: int) -> None:
        """
        指定されたページ番号（1始まり）のPDFページを現在のズーム倍率で表示する。
        範囲外の番号は先頭・末尾に丸められます。
        """
        if not self.pdf_document:
            return

        page_number = CoordinateUtils.clamp_page(page_number, self.total_pages)
        if page_number != self.current_page:
            self.main.pdf_display_label.finish_text_edit()
            self.main.controller.release()
        self.view.current_page = page_number

        page = self.pdf_document.load_page(page_number - 1)
        dpr = self.main.windowHandle().devicePixelRatio() if self.main.windowHandle() else 1.0
        image = PDFUtils.render_page(page, self.view.scale * dpr)
        self.main.pdf_display_label.set_page_image(image, dpr)
        self.main.update_navigation_state()

    def show_prev_page(self) -> None:
        """前のページを表示する。"""
        self.show_page(self.current_page - 1)

    def show_next_page(self) -> None:
        """次のページを表示する。"""
        self.show_page(self.current_page + 1)

    def adjust_zoom(self, steps: int) -> None:
        """ズーム倍率を0.25刻みで増減する。"""
        config = self.main.config
        new_scale = CoordinateUtils.step_zoom(
            self.view.scale, steps, config.zoom_step, config.min_zoom, config.max_zoom
        )
        self._apply_zoom(new_scale)

    def zoom_in(self) -> None:
        self.adjust_zoom(1)

    def zoom_out(self) -> None:
        self.adjust_zoom(-1)

    def reset_zoom(self) -> None:
        """ズーム倍率を等倍に戻す。"""
        self._apply_zoom(1.0)

    def _apply_zoom(self, scale: float) -> None:
        if abs(scale - self.view.scale) < 1e-9:
            return
        self.view.scale = scale
        if self.pdf_document:
            self.show_page(self.current_page)
        else:
            self.main.update_navigation_state()

    def close_document(self) -> None:
        if self.pdf_document is not None:
            self.pdf_document.close()
            self.pdf_document = None
