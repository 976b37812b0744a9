# utils/export_worker.py
"""注釈の焼き込み処理をバックグラウンドで実行するためのスレッド機能を提供します。"""

import logging
from typing import Optional

from PyQt6.QtCore import QObject, QThread, pyqtSignal

from models.annotation_models import AnnotationSnapshot
from services.export_service import ExportError, ExportService

logger = logging.getLogger(__name__)


class ExportWorker(QThread):
    """注釈を元のPDFに焼き込むためのワーカースレッド。

    大きなPDFでもUIがフリーズしないよう、焼き込みとシリアライズをバックグラウンドで実行します。
    開始時点の不変スナップショットを受け取るため、実行中の編集は結果に影響しません。

    Signals:
        result_ready (pyqtSignal):
            書き出しに成功した際に、ExportResultを送信します。
        error_occurred (pyqtSignal):
            書き出し中にエラーが発生した際に、エラーメッセージ（str）を送信します。
    """
    result_ready = pyqtSignal(object)
    error_occurred = pyqtSignal(str)

    def __init__(
        self,
        service: ExportService,
        original: bytes,
        snapshot: AnnotationSnapshot,
        parent: Optional[QObject] = None,
    ) -> None:
        """ExportWorkerのコンストラクタ。

        Args:
            service (ExportService): 焼き込みを行うサービス。
            original (bytes): 元のPDFのバイト列。
            snapshot (AnnotationSnapshot): 焼き込む注釈のスナップショット。
            parent (Optional[QObject]): 親オブジェクト。デフォルトはNone。
        """
        super().__init__(parent)
        self.service = service
        self.original = original
        self.snapshot = snapshot

    def run(self) -> None:
        """スレッドのメイン処理。焼き込みを実行し、結果をシグナルで通知する。"""
        try:
            result = self.service.bake(self.original, self.snapshot)
            self.result_ready.emit(result)
        except ExportError as e:
            logger.exception("PDFの書き出しに失敗しました。")
            self.error_occurred.emit(str(e))
        except Exception as e:
            logger.exception("PDFの書き出し中に予期せぬエラーが発生しました。")
            self.error_occurred.emit(f"予期せぬエラーが発生しました: {e}")
