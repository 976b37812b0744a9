from __future__ import annotations
from typing import Optional

from PyQt6.QtCore import Qt, QPointF, pyqtSignal
from PyQt6.QtGui import QColor, QMouseEvent, QPainter, QPaintEvent, QPen
from PyQt6.QtWidgets import QWidget

from utils.signature_utils import MODE_DRAW, SignatureRasterizer


class SignaturePadWidget(QWidget):
    """
    署名の描画面を表示し、手書き入力をSignatureRasterizerに中継するウィジェット。

    手書きモードの場合のみマウス操作でストロークを描画します。
    描画面の外にポインタが出た時点でストロークを終了します。
    """
    content_changed = pyqtSignal(bool)

    def __init__(self, rasterizer: SignatureRasterizer, parent: Optional[QWidget] = None) -> None:
        """
        SignaturePadWidgetのコンストラクタ。

        Args:
            rasterizer (SignatureRasterizer): 描画先のラスタ面。
            parent (Optional[QWidget]): 親ウィジェット。
        """
        super().__init__(parent)
        self.rasterizer: SignatureRasterizer = rasterizer
        self.setFixedSize(rasterizer.width, rasterizer.height)
        self.setCursor(Qt.CursorShape.CrossCursor)

    def refresh(self) -> None:
        """ラスタ面の変更を画面に反映し、内容の有無を通知する。"""
        self.update()
        self.content_changed.emit(self.rasterizer.has_content)

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if event.button() != Qt.MouseButton.LeftButton or self.rasterizer.mode != MODE_DRAW:
            return super().mousePressEvent(event)
        pos = event.position()
        self.rasterizer.begin_stroke(pos.x(), pos.y())
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        if not self.rasterizer.is_drawing:
            return super().mouseMoveEvent(event)
        pos = event.position()
        if not self.rect().contains(pos.toPoint()):
            self._finish_stroke()
            return
        had_content = self.rasterizer.has_content
        self.rasterizer.extend_stroke(pos.x(), pos.y())
        self.update()
        if not had_content:
            self.content_changed.emit(True)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        if event.button() == Qt.MouseButton.LeftButton and self.rasterizer.is_drawing:
            self._finish_stroke()
            event.accept()
            return
        super().mouseReleaseEvent(event)

    def leaveEvent(self, event) -> None:
        if self.rasterizer.is_drawing:
            self._finish_stroke()
        super().leaveEvent(event)

    def _finish_stroke(self) -> None:
        self.rasterizer.end_stroke()
        self.refresh()

    def paintEvent(self, event: QPaintEvent) -> None:
        """白い背景と署名ガイド線の上に、ラスタ面の内容を重ねて描画する。"""
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor("white"))

        guide_y = self.height() * 0.75
        painter.setPen(QPen(QColor("#d0d0d8"), 1, Qt.PenStyle.DashLine))
        painter.drawLine(QPointF(20, guide_y), QPointF(self.width() - 20, guide_y))

        painter.drawImage(0, 0, self.rasterizer.image)
        painter.setPen(QPen(QColor("#c0c0c0"), 1))
        painter.drawRect(self.rect().adjusted(0, 0, -1, -1))
        painter.end()
