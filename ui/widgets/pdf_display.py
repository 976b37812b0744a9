from __future__ import annotations
import logging
from typing import Dict, Optional, Tuple

from PyQt6.QtCore import Qt, QPointF, QRectF, pyqtSignal
from PyQt6.QtGui import (QColor, QFont, QImage, QMouseEvent, QPainter, QPaintEvent,
                         QPen, QPixmap)
from PyQt6.QtWidgets import QLabel, QLineEdit, QWidget

from models.annotation_models import (HIGHLIGHT, SIGNATURE, TEXT, AnnotationSnapshot, Point,
                                      SignatureAnnotation, TextAnnotation)
from models.gesture_models import PART_BODY, PART_DELETE, HitTarget
from models.session_models import TOOL_HIGHLIGHT, TOOL_SELECT, TOOL_SIGN, TOOL_TEXT
from services.interaction_service import TEXT_PADDING, InteractionController
from utils.coordinate_utils import CoordinateUtils

logger = logging.getLogger(__name__)

# クリックとドラッグを区別する移動量（ピクセル）
CLICK_SLOP = 3.0

CURSOR_MAP = {
    TOOL_SIGN: Qt.CursorShape.CrossCursor,
    TOOL_TEXT: Qt.CursorShape.IBeamCursor,
    TOOL_HIGHLIGHT: Qt.CursorShape.CrossCursor,
}


class PDFDisplayLabel(QLabel):
    """
    PDFページ画像を表示し、注釈の描画とポインタ操作の中継を行うカスタムラベル。

    ポインタ座標を文書空間に変換してInteractionControllerに渡し、注釈ストアの変更通知を
    受けて再描画します。テキスト注釈の編集にはラベル上に重ねたQLineEditを使用します。
    """
    status_message = pyqtSignal(str)

    def __init__(self, controller: InteractionController, parent: Optional[QWidget] = None) -> None:
        """
        PDFDisplayLabelのコンストラクタ。

        Args:
            controller (InteractionController): ポインタ操作を解釈する状態機械。
            parent (Optional[QWidget]): 親ウィジェット。通常はMainWindow。
        """
        super().__init__(parent)
        self.controller: InteractionController = controller
        self.setAlignment(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop)
        self.setMouseTracking(True)

        # --- 状態変数の型定義 ---
        self._press_view_pos: Optional[QPointF] = None
        self._press_target: Optional[HitTarget] = None
        self._moved: bool = False
        self._signature_cache: Dict[str, Tuple[bytes, QImage]] = {}

        self.text_editor: QLineEdit = QLineEdit(self)
        self.text_editor.setFrame(False)
        self.text_editor.setPlaceholderText("テキストを入力")
        self.text_editor.setStyleSheet(
            "QLineEdit { background: rgba(255, 255, 255, 220); border: 1px dashed #2563eb; }"
        )
        self.text_editor.hide()
        self.text_editor.textEdited.connect(self._on_editor_text_edited)
        self.text_editor.editingFinished.connect(self.finish_text_edit)

        unsubscribe = controller.store.subscribe(self.on_store_changed)
        self.destroyed.connect(lambda *_: unsubscribe())

    # --- 座標 ---
    @property
    def scale(self) -> float:
        return self.controller.view.scale

    def to_document(self, pos: QPointF) -> Point:
        """ラベル上の座標を文書空間の座標に変換する。ラベル左上がコンテナの原点。"""
        return CoordinateUtils.to_document_space(
            pos.x(), pos.y(), (0.0, 0.0), self.scale, (self.width(), self.height())
        )

    def to_view(self, x: float, y: float) -> QPointF:
        view_x, view_y = CoordinateUtils.to_view_space(x, y, (0.0, 0.0), self.scale)
        return QPointF(view_x, view_y)

    # --- ページ画像 ---
    def set_page_image(self, image: QImage, device_pixel_ratio: float = 1.0) -> None:
        """レンダリング済みのページ画像を表示する。"""
        pixmap = QPixmap.fromImage(image)
        pixmap.setDevicePixelRatio(device_pixel_ratio)
        self.setPixmap(pixmap)
        self.adjustSize()
        self._place_text_editor()

    def clear_page(self) -> None:
        self.finish_text_edit()
        self.clear()
        self._signature_cache.clear()

    def has_page(self) -> bool:
        return self.pixmap() is not None and not self.pixmap().isNull()

    def update_cursor(self) -> None:
        self.setCursor(CURSOR_MAP.get(self.controller.active_tool, Qt.CursorShape.ArrowCursor))

    # --- ストアの変更通知 ---
    def on_store_changed(self, snapshot: AnnotationSnapshot) -> None:
        """注釈の変更を受けて、画像キャッシュとテキストエディタを同期し再描画する。"""
        live_ids = {signature.id for signature in snapshot.signatures}
        for stale_id in set(self._signature_cache) - live_ids:
            del self._signature_cache[stale_id]

        editing_id = self.controller.editing_text_id
        if self.text_editor.isVisible() and not any(t.id == editing_id for t in snapshot.texts):
            self._hide_text_editor()
        else:
            self._place_text_editor()
        self.update()

    # --- マウス操作 ---
    def mousePressEvent(self, event: QMouseEvent) -> None:
        """
        マウスボタンが押されたときのイベントハンドラ。
        削除ボタン・ハイライトのクリックを処理し、それ以外はジェスチャの開始をコントローラに委ねる。
        """
        if event.button() != Qt.MouseButton.LeftButton or not self.has_page():
            return super().mousePressEvent(event)

        point = self.to_document(event.position())
        target = self.controller.hit_test(point)
        if self.text_editor.isVisible() and not self._targets_edited_text(target):
            self.finish_text_edit()
            target = self.controller.hit_test(point)

        self._press_view_pos = event.position()
        self._press_target = target
        self._moved = False

        if target is not None and target.part == PART_DELETE:
            self.controller.delete(target.kind, target.annotation_id)
            self._press_target = None
            event.accept()
            return

        if target is not None and target.kind == HIGHLIGHT and self.controller.active_tool == TOOL_SELECT:
            self.controller.click_highlight(target.annotation_id)
            self._press_target = None
            event.accept()
            return

        self.controller.press(point, target)
        self.update()
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        """マウス移動イベント。ボタン押下中はジェスチャを更新し、それ以外はカーソルを更新する。"""
        if not self.has_page():
            return super().mouseMoveEvent(event)

        point = self.to_document(event.position())
        if self._press_view_pos is not None:
            delta = event.position() - self._press_view_pos
            if abs(delta.x()) > CLICK_SLOP or abs(delta.y()) > CLICK_SLOP:
                self._moved = True
            self.controller.move(point)
            if self.controller.live_highlight() is not None:
                self.update()
            return

        self._update_hover_cursor(point)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        """
        マウスボタンが離されたときのイベント。
        ジェスチャを終了し、移動を伴わない押下はクリック（配置・編集開始）として扱う。
        """
        if event.button() != Qt.MouseButton.LeftButton or self._press_view_pos is None:
            return super().mouseReleaseEvent(event)

        point = self.to_document(event.position())
        target, moved = self._press_target, self._moved
        self._press_view_pos = None
        self._press_target = None

        if self.controller.release() is not None:
            self.status_message.emit("ハイライトを追加しました。")
        self.update()
        if moved:
            event.accept()
            return

        tool = self.controller.active_tool
        if target is not None and target.kind == TEXT and target.part == PART_BODY:
            if tool in (TOOL_SELECT, TOOL_TEXT) and self.controller.begin_text_edit(target.annotation_id):
                self._show_text_editor()
        elif target is None and tool in (TOOL_SIGN, TOOL_TEXT):
            self._handle_click(point)
        event.accept()

    def leaveEvent(self, event) -> None:
        """ポインタがラベル外に出た場合、進行中のジェスチャを解放と同様に終了する。"""
        if self._press_view_pos is not None:
            self._press_view_pos = None
            self._press_target = None
            if self.controller.cancel() is not None:
                self.status_message.emit("ハイライトを追加しました。")
            self.update()
        super().leaveEvent(event)

    def _handle_click(self, point: Point) -> None:
        tool = self.controller.active_tool
        if tool == TOOL_SIGN and not self.controller.pending_stamp.has_value:
            self.status_message.emit("配置する署名がありません。署名ツールを選び直して署名を作成してください。")
            return
        created = self.controller.click(point)
        if created is None:
            return
        if tool == TOOL_SIGN:
            self.status_message.emit("署名を配置しました。")
        elif tool == TOOL_TEXT:
            self._show_text_editor()

    def _update_hover_cursor(self, point: Point) -> None:
        target = self.controller.hit_test(point)
        if target is None:
            self.update_cursor()
        elif target.corner in ("nw", "se"):
            self.setCursor(Qt.CursorShape.SizeFDiagCursor)
        elif target.corner in ("ne", "sw"):
            self.setCursor(Qt.CursorShape.SizeBDiagCursor)
        elif target.part == PART_DELETE:
            self.setCursor(Qt.CursorShape.PointingHandCursor)
        elif target.kind in (SIGNATURE, TEXT) and self.controller.active_tool != TOOL_HIGHLIGHT:
            self.setCursor(Qt.CursorShape.SizeAllCursor)
        else:
            self.update_cursor()

    def _targets_edited_text(self, target: Optional[HitTarget]) -> bool:
        return target is not None and target.annotation_id == self.controller.editing_text_id

    # --- テキスト編集 ---
    def _editing_text(self) -> Optional[TextAnnotation]:
        editing_id = self.controller.editing_text_id
        if editing_id is None:
            return None
        annotation = self.controller.store.find(editing_id)
        return annotation if isinstance(annotation, TextAnnotation) else None

    def _show_text_editor(self) -> None:
        text = self._editing_text()
        if text is None:
            return
        self.text_editor.setText(text.text)
        self._place_text_editor()
        self.text_editor.show()
        self.text_editor.setFocus()
        self.update()

    def _place_text_editor(self) -> None:
        text = self._editing_text()
        if text is None:
            return
        x, y, width, height = self.controller.text_rect(text)
        font = QFont(self.text_editor.font())
        font.setPixelSize(max(1, round(text.font_size * self.scale)))
        self.text_editor.setFont(font)
        top_left = self.to_view(x, y)
        self.text_editor.setGeometry(
            round(top_left.x()), round(top_left.y()),
            round(width * self.scale), round(height * self.scale),
        )

    def _on_editor_text_edited(self, value: str) -> None:
        editing_id = self.controller.editing_text_id
        if editing_id is not None:
            self.controller.edit_text(editing_id, value)

    def finish_text_edit(self) -> None:
        """テキスト編集を確定する。Enterキーやフォーカス喪失でも呼ばれる。"""
        if self.controller.editing_text_id is None:
            self._hide_text_editor()
            return
        if self.controller.commit_text_edit():
            self.status_message.emit("空のテキストを削除しました。")
        self._hide_text_editor()
        self.update()

    def _hide_text_editor(self) -> None:
        if self.text_editor.isVisible():
            self.text_editor.blockSignals(True)
            self.text_editor.hide()
            self.text_editor.blockSignals(False)

    # --- 描画 ---
    def paintEvent(self, event: QPaintEvent) -> None:
        """
        再描画イベント。ページ画像の上に、ハイライト・作成中の矩形・署名・テキストの順で描画する。
        """
        super().paintEvent(event)
        if not self.has_page():
            return

        on_page = self.controller.store.annotations_on_page(self.controller.view.current_page)
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.scale(self.scale, self.scale)

        self._paint_highlights(painter, on_page)
        self._paint_live_highlight(painter)
        for signature in on_page.signatures:
            self._paint_signature(painter, signature)
        for text in on_page.texts:
            self._paint_text(painter, text)
        painter.end()

    def _paint_highlights(self, painter: QPainter, on_page: AnnotationSnapshot) -> None:
        r, g, b = self.controller.config.highlight_color
        fill = QColor.fromRgbF(r, g, b, self.controller.config.highlight_opacity)
        for highlight in on_page.highlights:
            painter.fillRect(QRectF(highlight.x, highlight.y, highlight.width, highlight.height), fill)

    def _paint_live_highlight(self, painter: QPainter) -> None:
        rect = self.controller.live_highlight()
        if rect is None:
            return
        r, g, b = self.controller.config.highlight_color
        painter.fillRect(QRectF(*rect), QColor.fromRgbF(r, g, b, 0.25))
        painter.setPen(QPen(QColor.fromRgbF(r, g, b), 1 / self.scale, Qt.PenStyle.DashLine))
        painter.drawRect(QRectF(*rect))

    def _paint_signature(self, painter: QPainter, signature: SignatureAnnotation) -> None:
        rect = QRectF(signature.x, signature.y, signature.width, signature.height)
        image = self._signature_image(signature)
        if image is not None:
            painter.drawImage(rect, image)

        tool = self.controller.active_tool
        if tool == TOOL_HIGHLIGHT:
            return
        painter.setPen(QPen(QColor("#2563eb"), 1 / self.scale, Qt.PenStyle.DashLine))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(rect)

        radius = self.controller.config.handle_radius / 2
        painter.setPen(QPen(QColor("#2563eb"), 1 / self.scale))
        painter.setBrush(QColor("white"))
        for corner in (rect.topLeft(), rect.topRight(), rect.bottomLeft(), rect.bottomRight()):
            painter.drawEllipse(corner, radius, radius)

        if tool == TOOL_SELECT:
            self._paint_delete_button(painter, self.controller.delete_anchor(signature))

    def _paint_text(self, painter: QPainter, text: TextAnnotation) -> None:
        if text.id == self.controller.editing_text_id and self.text_editor.isVisible():
            return
        x, y, width, height = self.controller.text_rect(text)
        font = QFont()
        font.setPixelSize(max(1, round(text.font_size)))
        painter.setFont(font)
        painter.setPen(QColor(text.color))
        painter.drawText(
            QRectF(x + TEXT_PADDING, y, width - TEXT_PADDING * 2, height),
            Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter,
            text.text,
        )
        if self.controller.active_tool == TOOL_SELECT and self.controller.editing_text_id is None:
            self._paint_delete_button(painter, self.controller.delete_anchor(text))

    def _paint_delete_button(self, painter: QPainter, center: Point) -> None:
        radius = self.controller.config.delete_radius * 0.8
        cx, cy = center
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QColor("#dc2626"))
        painter.drawEllipse(QPointF(cx, cy), radius, radius)
        painter.setPen(QPen(QColor("white"), 1.5))
        arm = radius * 0.45
        painter.drawLine(QPointF(cx - arm, cy - arm), QPointF(cx + arm, cy + arm))
        painter.drawLine(QPointF(cx - arm, cy + arm), QPointF(cx + arm, cy - arm))

    def _signature_image(self, signature: SignatureAnnotation) -> Optional[QImage]:
        """署名のPNGをデコードした画像を返す。同じバイト列は再デコードしない。"""
        cached = self._signature_cache.get(signature.id)
        if cached is not None and cached[0] is signature.image:
            return cached[1]
        image = QImage.fromData(signature.image, "PNG")
        if image.isNull():
            logger.warning("署名画像 %s をデコードできませんでした。", signature.id)
            return None
        self._signature_cache[signature.id] = (signature.image, image)
        return image
