from __future__ import annotations
import logging
import os
from typing import TYPE_CHECKING, Optional

from PyQt6.QtWidgets import QFileDialog, QMessageBox

from services.export_service import ExportResult
from utils.export_worker import ExportWorker
from utils.pdf_utils import PDFUtils

if TYPE_CHECKING:
    from ..main_window import MainWindow

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "PDFの処理に失敗しました。もう一度お試しください。"


class ExportHandler:
    """
    注釈を焼き込んだPDFをファイルとして書き出す機能を提供します。

    書き出しは一度に一つだけ実行され、処理中は書き出しボタンが無効になります。
    """
    def __init__(self, main_window: MainWindow) -> None:
        """
        ExportHandlerのコンストラクタ。

        Args:
            main_window (MainWindow): 親となるメインウィンドウインスタンス。
        """
        self.main: MainWindow = main_window
        self.is_processing: bool = False
        self.export_thread: Optional[ExportWorker] = None
        self._target_path: Optional[str] = None

    def save_edited_pdf(self) -> None:
        """
        保存先を選択させ、注釈を焼き込んだPDFの書き出しをバックグラウンドで開始する。
        ファイル名の初期値は `edited_<元のファイル名>` です。
        """
        if self.is_processing:
            return
        pdf_handler = self.main.pdf_handler
        if pdf_handler.pdf_bytes is None or pdf_handler.current_pdf_path is None:
            return

        self.main.pdf_display_label.finish_text_edit()

        default_name = PDFUtils.output_file_name(pdf_handler.current_pdf_path, self.main.config.export_prefix)
        initial_path = os.path.join(os.path.dirname(pdf_handler.current_pdf_path), default_name)
        file_path, _ = QFileDialog.getSaveFileName(
            self.main, "編集したPDFを保存", initial_path, "PDF Files (*.pdf)"
        )
        if not file_path:
            return
        if not file_path.lower().endswith('.pdf'):
            file_path += '.pdf'

        self.start_export(file_path)

    def start_export(self, file_path: str) -> bool:
        """
        現在の注釈のスナップショットを取り、書き出しスレッドを開始する。

        Args:
            file_path (str): 出力先のパス。

        Returns:
            bool: 書き出しを開始した場合はTrue。処理中または文書がない場合はFalse。
        """
        if self.is_processing or self.main.pdf_handler.pdf_bytes is None:
            return False

        snapshot = self.main.store.snapshot()
        self._set_processing(True)
        self._target_path = file_path
        worker = ExportWorker(
            self.main.export_service,
            self.main.pdf_handler.pdf_bytes,
            snapshot,
            self.main,
        )
        worker.result_ready.connect(self.on_export_ready)
        worker.error_occurred.connect(self.on_export_error)
        worker.finished.connect(worker.deleteLater)
        worker.finished.connect(lambda: self._on_thread_finished(worker))
        self.export_thread = worker
        worker.start()
        if snapshot.is_empty():
            self.main.show_status("注釈がないため、元のPDFと同じ内容で書き出しています...")
        else:
            self.main.show_status(f"注釈 {snapshot.count()} 件を焼き込んだPDFを書き出しています...")
        return True

    def on_export_ready(self, result: ExportResult) -> None:
        """書き出し結果をファイルに保存し、完了を通知する。"""
        file_path = self._target_path
        try:
            with open(file_path, "wb") as f:
                f.write(result.data)
        except OSError:
            logger.exception("書き出したPDFを保存できませんでした: %s", file_path)
            self._finish()
            QMessageBox.critical(self.main, "保存エラー", GENERIC_FAILURE_MESSAGE)
            return

        logger.info("編集したPDFを保存しました: %s", file_path)
        self._finish()
        message = f"編集したPDFを保存しました。\n{file_path}"
        if result.skipped:
            message += f"\n\n存在しないページを参照していた注釈 {result.skipped} 件は書き出されませんでした。"
        self.main.show_status("PDFを保存しました。")
        QMessageBox.information(self.main, "保存完了", message)

    def on_export_error(self, error_message: str) -> None:
        """書き出しの失敗を通知する。詳細はログに記録済みのため、利用者には共通の文言を表示する。"""
        logger.error("書き出しに失敗しました: %s", error_message)
        self._finish()
        self.main.show_status("PDFの書き出しに失敗しました。")
        QMessageBox.critical(self.main, "保存エラー", GENERIC_FAILURE_MESSAGE)

    def _finish(self) -> None:
        self._target_path = None
        self._set_processing(False)

    def _on_thread_finished(self, worker: ExportWorker) -> None:
        # 終了したのが現在のワーカーの場合のみ参照を外す
        if self.export_thread is worker:
            self.export_thread = None

    def _set_processing(self, processing: bool) -> None:
        self.is_processing = processing
        self.main.update_navigation_state()
