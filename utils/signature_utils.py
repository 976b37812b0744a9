# utils/signature_utils.py
"""手書き・タイプ入力の署名をラスタ画像として生成し、余白を切り詰めて書き出す機能を提供します。"""

import math
from typing import List, Optional, Tuple

import numpy as np
from PyQt6.QtCore import QBuffer, QByteArray, QIODevice, QPointF, QRect, Qt
from PyQt6.QtGui import (QColor, QFont, QFontMetricsF, QImage, QPainter,
                         QPainterPath, QPen, QTransform)

from utils.editor_config import EditorConfig

Bounds = Tuple[int, int, int, int]
UnderlinePoint = Tuple[float, float, float]  # (x, y, pressure)

MODE_DRAW = "draw"
MODE_TYPE = "type"

MAX_TYPED_FONT_SIZE = 56.0
# 斜体風のせん断変換 (m11, m12, m21, m22, dx, dy)
SLANT_TRANSFORM = (1.0, -0.02, 0.08, 1.0, 0.0, 0.0)


def typed_font_size(surface_width: float, text: str) -> float:
    """入力文字数と描画面の幅から署名のフォントサイズを決定する。"""
    return min(surface_width / (len(text) * 0.5), MAX_TYPED_FONT_SIZE)


def underline_points(center_x: float, center_y: float, text_width: float,
                     font_size: float) -> List[UnderlinePoint]:
    """タイプ入力署名の下線を構成する点列を計算する。

    なだらかな弧（振幅2）、手の震え（周波数12・振幅0.8）、終端15%でのペン先の持ち上げ、
    中央で最大となる筆圧を組み合わせます。

    Args:
        center_x (float): テキスト中心のX座標。
        center_y (float): テキスト中心のY座標。
        text_width (float): 傾きを考慮したテキスト幅。
        font_size (float): フォントサイズ。

    Returns:
        List[UnderlinePoint]: (x, y, 筆圧) のリスト。
    """
    start_x = center_x - text_width / 2 - 10
    end_x = center_x + text_width / 2 + 20
    base_y = center_y + font_size * 0.35
    steps = max(1, math.floor((end_x - start_x) / 3))

    points: List[UnderlinePoint] = []
    for i in range(steps + 1):
        t = i / steps
        x = start_x + (end_x - start_x) * t
        curve = math.sin(t * math.pi) * 2
        wave = math.sin(t * 12) * 0.8
        end_lift = (t - 0.85) * 30 if t > 0.85 else 0.0
        pressure = math.sin(t * math.pi) * 0.8 + 0.4
        points.append((x, base_y - curve + wave - end_lift, pressure))
    return points


def content_bounds(image: QImage) -> Optional[Bounds]:
    """完全透明でないピクセルの外接矩形 (min_x, min_y, max_x, max_y) を返す。

    内容が一つもない場合はNoneを返します。
    """
    width, height = image.width(), image.height()
    if width == 0 or height == 0:
        return None

    rgba = image.convertToFormat(QImage.Format.Format_RGBA8888)
    ptr = rgba.constBits()
    ptr.setsize(rgba.sizeInBytes())
    rows = np.frombuffer(ptr, np.uint8).reshape((height, rgba.bytesPerLine()))
    alpha = rows[:, :width * 4].reshape((height, width, 4))[:, :, 3]

    ys, xs = np.nonzero(alpha)
    if xs.size == 0:
        return None
    return int(xs.min()), int(ys.min()), int(xs.max()), int(ys.max())


def crop_bounds(bounds: Bounds, width: int, height: int, padding: int = 20) -> Bounds:
    """外接矩形に余白を加え、描画面の範囲に収めた切り出し範囲を返す。

    右端・下端は排他的な座標として扱います。
    """
    min_x, min_y, max_x, max_y = bounds
    return (
        max(0, min_x - padding),
        max(0, min_y - padding),
        min(width, max_x + padding),
        min(height, max_y + padding),
    )


def image_to_png(image: QImage) -> bytes:
    """QImageをPNG形式のバイト列にエンコードする。"""
    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    if not image.save(buffer, "PNG"):
        raise ValueError("署名画像をPNGに変換できませんでした。")
    buffer.close()
    return bytes(data)


class SignatureRasterizer:
    """
    署名を描画する透明なラスタ面。

    手書き（ストローク）とタイプ入力の2つのモードを持ちます。モードを切り替えると
    内容は消去され、二つのモードの内容が一つの署名に混在することはありません。
    `has_content` は描画操作に合わせて更新され、保存ボタンの有効化に使用します。
    """

    def __init__(self, width: int, height: int, config: Optional[EditorConfig] = None,
                 device_pixel_ratio: float = 1.0) -> None:
        """
        SignatureRasterizerのコンストラクタ。

        Args:
            width (int): 描画面の幅（論理ピクセル）。
            height (int): 描画面の高さ（論理ピクセル）。
            config (Optional[EditorConfig]): エディタ設定。
            device_pixel_ratio (float): 画面のデバイスピクセル比。ラスタ面はこの倍率の解像度で確保されます。
        """
        self.config: EditorConfig = config or EditorConfig()
        self.device_pixel_ratio: float = max(1.0, device_pixel_ratio)
        self._width = width
        self._height = height
        self.image: QImage = QImage(round(width * self.device_pixel_ratio), round(height * self.device_pixel_ratio),
                                    QImage.Format.Format_ARGB32_Premultiplied)
        # 描画は論理座標で行い、QPainterがデバイスピクセルに拡大する
        self.image.setDevicePixelRatio(self.device_pixel_ratio)
        self.image.fill(Qt.GlobalColor.transparent)
        self.mode: str = MODE_DRAW
        self.color: QColor = QColor(self.config.default_signature_color())
        self.has_content: bool = False
        self._points: List[QPointF] = []
        self._drawing: bool = False

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def is_drawing(self) -> bool:
        return self._drawing

    def set_color(self, color: str) -> None:
        """以降の描画に使用する色を設定する。"""
        self.color = QColor(color)

    def switch_mode(self, mode: str) -> None:
        """手書き/タイプ入力モードを切り替え、描画面を消去する。"""
        if mode not in (MODE_DRAW, MODE_TYPE):
            raise ValueError(f"不明な署名モードです: {mode}")
        self.clear()
        self.mode = mode

    def clear(self) -> None:
        """描画面を透明に戻し、内容フラグをリセットする。"""
        self.image.fill(Qt.GlobalColor.transparent)
        self.has_content = False
        self._points = []
        self._drawing = False

    # --- 手書き ---
    def begin_stroke(self, x: float, y: float) -> None:
        self._points = [QPointF(x, y)]
        self._drawing = True

    def extend_stroke(self, x: float, y: float) -> None:
        """ストロークに点を追加し、直近3点から二次曲線で滑らかに描画する。"""
        if not self._drawing or not self._points:
            return
        last = self._points[-1]
        self._points.append(QPointF(x, y))

        path = QPainterPath()
        if len(self._points) >= 3:
            p0, p1, p2 = self._points[-3:]
            mid = QPointF((p1.x() + p2.x()) / 2, (p1.y() + p2.y()) / 2)
            path.moveTo(p0)
            path.quadTo(p1, mid)
        else:
            path.moveTo(last)
            path.lineTo(self._points[-1])
        self._stroke_path(path, self.config.stroke_width)
        self.has_content = True

    def end_stroke(self) -> None:
        """ストロークを終了する。後続の点がない最後の区間は直線で描き足す。"""
        if self._drawing and len(self._points) >= 2:
            path = QPainterPath(self._points[-2])
            path.lineTo(self._points[-1])
            self._stroke_path(path, self.config.stroke_width)
        self._drawing = False
        self._points = []

    # --- タイプ入力 ---
    def render_typed(self, text: str) -> bool:
        """入力された文字列から手書き風の署名を生成する。

        影、斜体風のせん断、ペン質感の輪郭線、筆圧の変化する下線と終端の飾りを描画します。
        空白のみの文字列は無視されます。

        Args:
            text (str): 署名にする文字列。

        Returns:
            bool: 描画した場合はTrue。
        """
        if not text.strip():
            return False
        self.image.fill(Qt.GlobalColor.transparent)

        font_size = typed_font_size(self.width, text)
        font = self._signature_font(font_size)
        metrics = QFontMetricsF(font)
        center_x, center_y = self.width / 2, self.height / 2

        # 中央揃え・垂直中央のテキストパス（原点がテキスト中心）
        text_path = QPainterPath()
        text_path.addText(-metrics.horizontalAdvance(text) / 2,
                          (metrics.ascent() - metrics.descent()) / 2, font, text)

        painter = QPainter(self.image)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setPen(Qt.PenStyle.NoPen)

        # 奥行きを出すための薄い影
        painter.save()
        painter.setOpacity(0.1)
        painter.translate(center_x + 1, center_y + 1)
        painter.fillPath(text_path, self.color)
        painter.restore()

        # 本体と輪郭線
        painter.save()
        painter.translate(center_x, center_y)
        painter.setTransform(QTransform(*SLANT_TRANSFORM), True)
        painter.fillPath(text_path, self.color)
        painter.setOpacity(0.3)
        painter.strokePath(text_path, self._pen(0.5))
        painter.restore()

        # 下線
        points = underline_points(center_x, center_y, metrics.horizontalAdvance(text) * 1.1, font_size)
        painter.setOpacity(0.9)
        for i in range(1, len(points)):
            prev_x, prev_y, _ = points[i - 1]
            curr_x, curr_y, pressure = points[i]
            segment = QPainterPath(QPointF(prev_x, prev_y))
            if i < len(points) - 1:
                next_x, next_y, _ = points[i + 1]
                segment.quadTo(QPointF(curr_x, curr_y),
                               QPointF((curr_x + next_x) / 2, (curr_y + next_y) / 2))
            else:
                segment.lineTo(curr_x, curr_y)
            painter.strokePath(segment, self._pen(pressure * 2.5))

        # 終端の飾り
        last_x, last_y, _ = points[-1]
        flourish = QPainterPath(QPointF(last_x, last_y))
        flourish.quadTo(QPointF(last_x + 8, last_y - 8), QPointF(last_x + 12, last_y - 3))
        painter.setOpacity(0.7)
        painter.strokePath(flourish, self._pen(1.0))
        painter.end()

        self.has_content = True
        return True

    # --- 書き出し ---
    def extract_image(self) -> Optional[QImage]:
        """内容の外接矩形に余白を付けて切り出した画像を返す。内容がなければNone。"""
        bounds = content_bounds(self.image)
        if bounds is None:
            return None
        # 外接矩形と余白はデバイスピクセル単位
        padding = round(self.config.crop_padding * self.device_pixel_ratio)
        left, top, right, bottom = crop_bounds(bounds, self.image.width(), self.image.height(), padding)
        return self.image.copy(QRect(left, top, right - left, bottom - top))

    def extract_png(self) -> Optional[bytes]:
        """切り出した署名をPNGバイト列として返す。内容がなければNone。"""
        cropped = self.extract_image()
        if cropped is None:
            return None
        return image_to_png(cropped)

    # --- 内部処理 ---
    def _pen(self, width: float) -> QPen:
        pen = QPen(self.color, width)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
        return pen

    def _stroke_path(self, path: QPainterPath, width: float) -> None:
        painter = QPainter(self.image)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.strokePath(path, self._pen(width))
        painter.end()

    def _signature_font(self, size: float) -> QFont:
        font = QFont()
        font.setFamilies(self.config.signature_font_families)
        font.setItalic(True)
        font.setWeight(QFont.Weight.DemiBold)
        font.setPixelSize(max(1, round(size)))
        return font
