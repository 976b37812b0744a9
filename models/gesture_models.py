# models/gesture_models.py
"""ポインタ操作中のジェスチャ状態を表すタグ付きバリアント。

操作中のジェスチャは常に以下のいずれか一つだけです。
ドラッグ・リサイズ・ラバーバンドが同時に有効になることは型の上で起こり得ません。
"""
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from models.annotation_models import Point

# リサイズハンドル（署名の四隅）
CORNER_NW = "nw"
CORNER_NE = "ne"
CORNER_SW = "sw"
CORNER_SE = "se"
CORNERS: Tuple[str, ...] = (CORNER_NW, CORNER_NE, CORNER_SW, CORNER_SE)

# ヒットテストで判定される注釈の部位
PART_BODY = "body"
PART_DELETE = "delete"


@dataclass(frozen=True)
class Idle:
    """ジェスチャが進行していない状態。"""


@dataclass(frozen=True)
class Dragging:
    """注釈を移動中の状態。

    Attributes:
        annotation_id (str): 移動対象の注釈ID。
        kind (str): 注釈の種類（'signature' または 'text'）。
        offset (Point): 押下時のポインタと注釈原点との差分。
    """
    annotation_id: str
    kind: str
    offset: Point


@dataclass(frozen=True)
class ResizeAnchor:
    """リサイズ開始時の幾何情報。

    Attributes:
        start_x (float): 押下時のポインタX座標。
        start_y (float): 押下時のポインタY座標。
        left (float): 開始時の注釈の左端。
        top (float): 開始時の注釈の上端。
        width (float): 開始時の幅。
        height (float): 開始時の高さ。
    """
    start_x: float
    start_y: float
    left: float
    top: float
    width: float
    height: float

    def fixed_corner(self, corner: str) -> Point:
        """ドラッグ中のハンドルと対角にある、固定される角の座標を返す。"""
        right = self.left + self.width
        bottom = self.top + self.height
        return {
            CORNER_SE: (self.left, self.top),
            CORNER_SW: (right, self.top),
            CORNER_NE: (self.left, bottom),
            CORNER_NW: (right, bottom),
        }[corner]


@dataclass(frozen=True)
class Resizing:
    """署名を四隅のハンドルでリサイズ中の状態。"""
    annotation_id: str
    corner: str
    anchor: ResizeAnchor


@dataclass(frozen=True)
class Highlighting:
    """ハイライトのラバーバンド矩形を作成中の状態。"""
    start: Point
    current: Point

    @property
    def rect(self) -> Tuple[float, float, float, float]:
        """開始点と現在点の軸平行外接矩形 (x, y, width, height) を返す。"""
        (x0, y0), (x1, y1) = self.start, self.current
        return min(x0, x1), min(y0, y1), abs(x1 - x0), abs(y1 - y0)


Gesture = Union[Idle, Dragging, Resizing, Highlighting]
IDLE = Idle()


@dataclass(frozen=True)
class HitTarget:
    """ヒットテストの結果。

    Attributes:
        kind (str): 注釈の種類。
        annotation_id (str): 注釈ID。
        part (str): 'body'、'delete'、または四隅のいずれか（'nw' など）。
    """
    kind: str
    annotation_id: str
    part: str = PART_BODY

    @property
    def corner(self) -> Optional[str]:
        return self.part if self.part in CORNERS else None
