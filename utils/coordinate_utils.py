# utils/coordinate_utils.py
"""画面上のポインタ座標と文書空間の座標を相互に変換するユーティリティ機能を提供します。

文書空間はページ左上を原点とし、ズーム倍率に依存しません。
ズームを変更しても注釈の座標は変わらず、描画時の変換だけが変わります。
"""
from typing import Optional, Tuple

Point = Tuple[float, float]
Size = Tuple[float, float]


class CoordinateUtils:
    """座標変換とズーム倍率の制御に関する共通機能を提供するユーティリティクラス。"""

    MIN_ZOOM: float = 0.5
    MAX_ZOOM: float = 3.0
    ZOOM_STEP: float = 0.25

    @staticmethod
    def to_document_space(
        pointer_x: float,
        pointer_y: float,
        container_origin: Point,
        scale: float,
        container_size: Optional[Size] = None,
    ) -> Point:
        """ポインタのビューポート座標を文書空間の座標に変換する。

        コンテナがまだ計測されていない（サイズが0）場合、または倍率が不正な場合は
        (0, 0) を返します。呼び出し側は1回分の無効な操作を許容する必要があります。

        Args:
            pointer_x (float): ポインタのX座標（ビューポート基準）。
            pointer_y (float): ポインタのY座標（ビューポート基準）。
            container_origin (Point): 文書コンテナ左上のビューポート座標。
            scale (float): 現在のズーム倍率。
            container_size (Optional[Size]): コンテナの表示サイズ。省略時は計測済みとみなす。

        Returns:
            Point: 文書空間の (x, y)。
        """
        if scale <= 0:
            return 0.0, 0.0
        if container_size is not None and (container_size[0] <= 0 or container_size[1] <= 0):
            return 0.0, 0.0
        origin_x, origin_y = container_origin
        return (pointer_x - origin_x) / scale, (pointer_y - origin_y) / scale

    @staticmethod
    def to_view_space(x: float, y: float, container_origin: Point, scale: float) -> Point:
        """文書空間の座標をビューポート座標に変換する（順方向の変換）。

        拡大縮小されたコンテナの外側に重ねて表示する要素の配置に使用します。
        """
        origin_x, origin_y = container_origin
        return x * scale + origin_x, y * scale + origin_y

    @staticmethod
    def clamp_zoom(scale: float, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM) -> float:
        """ズーム倍率を [min_zoom, max_zoom] の範囲に収める。"""
        return max(min_zoom, min(max_zoom, scale))

    @staticmethod
    def step_zoom(
        scale: float,
        steps: int,
        step: float = ZOOM_STEP,
        min_zoom: float = MIN_ZOOM,
        max_zoom: float = MAX_ZOOM,
    ) -> float:
        """ズーム倍率を指定段数だけ増減し、範囲内にクランプした値を返す。

        Args:
            scale (float): 現在の倍率。
            steps (int): 段数。正で拡大、負で縮小。
            step (float): 1段あたりの増減量。
            min_zoom (float): 下限。
            max_zoom (float): 上限。

        Returns:
            float: 新しい倍率。
        """
        return CoordinateUtils.clamp_zoom(scale + steps * step, min_zoom, max_zoom)

    @staticmethod
    def can_zoom_in(scale: float, max_zoom: float = MAX_ZOOM) -> bool:
        return scale < max_zoom

    @staticmethod
    def can_zoom_out(scale: float, min_zoom: float = MIN_ZOOM) -> bool:
        return scale > min_zoom

    @staticmethod
    def clamp_page(page: int, page_count: int) -> int:
        """ページ番号を [1, page_count] に収める。文書が空の場合は1を返す。"""
        if page_count <= 0:
            return 1
        return max(1, min(page_count, page))
