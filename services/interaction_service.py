# services/interaction_service.py
"""ポインタ操作と選択中のツールから注釈ストアへの変更を生成する状態機械を提供します。

座標はすべて文書空間で受け取ります。ビューポート座標からの変換は
CoordinateUtils.to_document_space を通して呼び出し側で行います。
"""
import dataclasses
import logging
from typing import Optional, Tuple

from models.annotation_models import (
    HIGHLIGHT, SIGNATURE, TEXT, Annotation, Point, SignatureAnnotation, TextAnnotation,
)
from models.gesture_models import (
    CORNER_NE, CORNER_NW, CORNER_SE, CORNER_SW, CORNERS, IDLE, PART_BODY, PART_DELETE,
    Dragging, Gesture, Highlighting, HitTarget, ResizeAnchor, Resizing,
)
from models.session_models import (
    TOOL_HIGHLIGHT, TOOL_SELECT, TOOL_SIGN, TOOL_TEXT, TOOLS, PendingStamp, ViewState,
)
from services.annotation_service import AnnotationStore
from utils.editor_config import EditorConfig

logger = logging.getLogger(__name__)

Rect = Tuple[float, float, float, float]

# テキスト注釈の表示枠の概算（フォントサイズに対する比率）
TEXT_CHAR_WIDTH_RATIO = 0.6
TEXT_LINE_HEIGHT_RATIO = 1.5
TEXT_MIN_WIDTH = 100.0
TEXT_PADDING = 4.0


def resize_rect(anchor: ResizeAnchor, corner: str, pointer: Point,
                min_width: float, min_height: float) -> Rect:
    """リサイズ中のポインタ位置から新しい矩形 (x, y, width, height) を計算する。

    幅と高さは開始時のポインタ位置からの差分で求め、最小サイズでクランプします。
    ドラッグ中のハンドルの対角にある角は常に固定されます。

    Args:
        anchor (ResizeAnchor): リサイズ開始時の幾何情報。
        corner (str): 操作中のハンドル（'nw', 'ne', 'sw', 'se'）。
        pointer (Point): 現在のポインタ位置（文書空間）。
        min_width (float): 最小幅。
        min_height (float): 最小高さ。

    Returns:
        Rect: 新しい矩形。
    """
    if corner not in CORNERS:
        raise ValueError(f"不明なリサイズハンドルです: {corner}")
    delta_x = pointer[0] - anchor.start_x
    delta_y = pointer[1] - anchor.start_y

    # 左側のハンドルは右方向の移動で幅が縮む。上側も同様。
    grow_x = -delta_x if corner in (CORNER_NW, CORNER_SW) else delta_x
    grow_y = -delta_y if corner in (CORNER_NW, CORNER_NE) else delta_y
    width = max(min_width, anchor.width + grow_x)
    height = max(min_height, anchor.height + grow_y)

    fixed_x, fixed_y = anchor.fixed_corner(corner)
    x = fixed_x - width if corner in (CORNER_NW, CORNER_SW) else fixed_x
    y = fixed_y - height if corner in (CORNER_NW, CORNER_NE) else fixed_y
    return x, y, width, height


class InteractionController:
    """
    ポインタイベントを解釈し、注釈ストアを変更する直接操作の状態機械。

    ツールの状態、配置待ちの署名、進行中のジェスチャ、テキスト編集中の注釈を管理します。
    ジェスチャは Idle / Dragging / Resizing / Highlighting のいずれか一つで、
    release() と cancel() は常に Idle に戻します。
    """

    def __init__(self, store: AnnotationStore, config: Optional[EditorConfig] = None,
                 view: Optional[ViewState] = None) -> None:
        """
        InteractionControllerのコンストラクタ。

        Args:
            store (AnnotationStore): 変更対象の注釈ストア。
            config (Optional[EditorConfig]): エディタ設定。省略時は既定値。
            view (Optional[ViewState]): 表示状態。省略時は新規作成。
        """
        self.store: AnnotationStore = store
        self.config: EditorConfig = config or EditorConfig()
        self.view: ViewState = view or ViewState()
        self.pending_stamp: PendingStamp = PendingStamp()
        self.editing_text_id: Optional[str] = None
        self._gesture: Gesture = IDLE

    # --- 状態参照 ---
    @property
    def active_tool(self) -> str:
        return self.view.active_tool

    @property
    def gesture(self) -> Gesture:
        return self._gesture

    def is_manipulating(self) -> bool:
        """ドラッグまたはリサイズが進行中かどうかを返す。"""
        return isinstance(self._gesture, (Dragging, Resizing))

    def live_highlight(self) -> Optional[Rect]:
        """作成中のラバーバンド矩形を返す。作成中でなければNone。"""
        if isinstance(self._gesture, Highlighting):
            return self._gesture.rect
        return None

    # --- ツール・署名 ---
    def select_tool(self, tool: str) -> bool:
        """ツールを切り替える。

        配置待ちの署名はツールを切り替えても破棄されません。

        Args:
            tool (str): 切り替え先のツール。

        Returns:
            bool: 署名作成ダイアログを開く必要がある場合はTrue。
        """
        if tool not in TOOLS:
            raise ValueError(f"不明なツールです: {tool}")
        self.release()
        self.commit_text_edit()
        self.view.active_tool = tool
        return tool == TOOL_SIGN and not self.pending_stamp.has_value

    def set_pending_stamp(self, image: bytes) -> None:
        """生成された署名画像を配置待ちにする。前の署名が未配置なら上書きされる。"""
        if self.pending_stamp.has_value:
            logger.info("未配置の署名を新しい署名で置き換えます。")
        self.pending_stamp.put(image)

    # --- クリック ---
    def click(self, point: Point) -> Optional[str]:
        """文書上のクリック（配置操作）を処理する。

        Args:
            point (Point): クリック位置（文書空間）。

        Returns:
            Optional[str]: 新しく作成された注釈のID。作成されなかった場合はNone。
        """
        if self.is_manipulating():
            return None
        x, y = point
        tool = self.active_tool

        if tool == TOOL_SIGN:
            image = self.pending_stamp.take()
            if image is None:
                return None
            return self.store.add_signature(
                x=x, y=y,
                width=self.config.signature_width,
                height=self.config.signature_height,
                image=image,
                page=self.view.current_page,
            )

        if tool == TOOL_TEXT:
            self.commit_text_edit()
            text_id = self.store.add_text(
                x=x, y=y, text="",
                font_size=self.config.text_font_size,
                color=self.config.text_color,
                page=self.view.current_page,
            )
            self.editing_text_id = text_id
            return text_id

        return None

    def click_highlight(self, annotation_id: str) -> bool:
        """ハイライトの直接クリック。選択ツールの場合のみ削除する。"""
        if self.active_tool != TOOL_SELECT:
            return False
        self.store.delete_highlight(annotation_id)
        return True

    def delete(self, kind: str, annotation_id: str) -> bool:
        """削除ボタンによる注釈の削除。選択ツールの場合のみ有効。"""
        if self.active_tool != TOOL_SELECT:
            return False
        self._end_gesture_on(annotation_id)
        if self.editing_text_id == annotation_id:
            self.editing_text_id = None
        self.store.delete(kind, annotation_id)
        return True

    # --- ジェスチャ ---
    def press(self, point: Point, target: Optional[HitTarget] = None) -> None:
        """ポインタの押下を処理し、必要に応じてジェスチャを開始する。

        Args:
            point (Point): 押下位置（文書空間）。
            target (Optional[HitTarget]): 押下位置にある注釈のヒットテスト結果。
        """
        if self.active_tool == TOOL_HIGHLIGHT:
            self._gesture = Highlighting(start=point, current=point)
            return
        if target is None:
            return

        annotation = self.store.find(target.annotation_id)
        if annotation is None:
            return

        if target.corner is not None and isinstance(annotation, SignatureAnnotation):
            anchor = ResizeAnchor(
                start_x=point[0], start_y=point[1],
                left=annotation.x, top=annotation.y,
                width=annotation.width, height=annotation.height,
            )
            self._gesture = Resizing(annotation.id, target.corner, anchor)
        elif target.part == PART_BODY and isinstance(annotation, (SignatureAnnotation, TextAnnotation)):
            offset = (point[0] - annotation.x, point[1] - annotation.y)
            self._gesture = Dragging(annotation.id, target.kind, offset)

    def move(self, point: Point) -> None:
        """ポインタの移動を処理し、進行中のジェスチャを更新する。"""
        gesture = self._gesture
        if isinstance(gesture, Highlighting):
            self._gesture = dataclasses.replace(gesture, current=point)
        elif isinstance(gesture, Resizing):
            if self.store.find(gesture.annotation_id) is None:
                return
            x, y, width, height = resize_rect(
                gesture.anchor, gesture.corner, point,
                self.config.min_signature_width, self.config.min_signature_height,
            )
            self.store.update_signature(gesture.annotation_id, x=x, y=y, width=width, height=height)
        elif isinstance(gesture, Dragging):
            new_x = point[0] - gesture.offset[0]
            new_y = point[1] - gesture.offset[1]
            if gesture.kind == SIGNATURE:
                self.store.update_signature(gesture.annotation_id, x=new_x, y=new_y)
            elif gesture.kind == TEXT:
                self.store.update_text(gesture.annotation_id, x=new_x, y=new_y)

    def release(self) -> Optional[str]:
        """ポインタの解放を処理し、進行中のジェスチャを終了する。

        ラバーバンドが最小サイズを超えていればハイライトを作成します。

        Returns:
            Optional[str]: 作成されたハイライトのID。作成されなかった場合はNone。
        """
        gesture, self._gesture = self._gesture, IDLE
        if not isinstance(gesture, Highlighting):
            return None
        x, y, width, height = gesture.rect
        if width > self.config.min_highlight_width and height > self.config.min_highlight_height:
            return self.store.add_highlight(x=x, y=y, width=width, height=height,
                                            page=self.view.current_page)
        return None

    def cancel(self) -> Optional[str]:
        """ポインタがコンテナ外に出た場合などにジェスチャを終了する。解放と同じ扱い。"""
        return self.release()

    def _end_gesture_on(self, annotation_id: str) -> None:
        gesture = self._gesture
        if isinstance(gesture, (Dragging, Resizing)) and gesture.annotation_id == annotation_id:
            self._gesture = IDLE

    # --- テキスト編集 ---
    def begin_text_edit(self, annotation_id: str) -> bool:
        """既存のテキスト注釈を編集モードにする。"""
        if not isinstance(self.store.find(annotation_id), TextAnnotation):
            return False
        if self.editing_text_id not in (None, annotation_id):
            self.commit_text_edit()
        self.editing_text_id = annotation_id
        return True

    def edit_text(self, annotation_id: str, text: str) -> None:
        self.store.update_text(annotation_id, text=text)

    def commit_text_edit(self) -> bool:
        """テキスト編集を確定する。

        前後の空白を除いて内容が空になった注釈は削除されます。

        Returns:
            bool: 空の注釈が削除された場合はTrue。
        """
        annotation_id, self.editing_text_id = self.editing_text_id, None
        if annotation_id is None:
            return False
        annotation = self.store.find(annotation_id)
        if isinstance(annotation, TextAnnotation) and not annotation.text.strip():
            self.store.delete_text(annotation_id)
            return True
        return False

    # --- セッション ---
    def reset_session(self, clear_stamp: bool = False) -> None:
        """ジェスチャと編集状態を破棄し、すべての注釈を削除する。"""
        self._gesture = IDLE
        self.editing_text_id = None
        if clear_stamp:
            self.pending_stamp.clear()
        self.store.reset()

    # --- ヒットテスト ---
    def hit_test(self, point: Point, page: Optional[int] = None) -> Optional[HitTarget]:
        """指定位置にある注釈の部位を判定する。

        後から追加された注釈ほど手前に描画されるため、逆順に判定します。
        署名の四隅のハンドルはハイライトツール以外で、削除ボタンは選択ツールでのみ有効です。

        Args:
            point (Point): 判定位置（文書空間）。
            page (Optional[int]): 対象ページ。省略時は現在のページ。

        Returns:
            Optional[HitTarget]: ヒットした部位。何もなければNone。
        """
        on_page = self.store.annotations_on_page(page or self.view.current_page)
        tool = self.active_tool

        for signature in reversed(on_page.signatures):
            if tool == TOOL_SELECT and self._near(point, self._delete_anchor(signature)):
                return HitTarget(SIGNATURE, signature.id, PART_DELETE)
            if tool != TOOL_HIGHLIGHT:
                for corner, corner_point in self._corner_points(signature):
                    if self._near(point, corner_point, self.config.handle_radius):
                        return HitTarget(SIGNATURE, signature.id, corner)
            if self._contains(point, (signature.x, signature.y, signature.width, signature.height)):
                return HitTarget(SIGNATURE, signature.id)

        for text in reversed(on_page.texts):
            rect = self.text_rect(text)
            if tool == TOOL_SELECT and self.editing_text_id is None:
                if self._near(point, (rect[0] + rect[2], rect[1])):
                    return HitTarget(TEXT, text.id, PART_DELETE)
            if self._contains(point, rect):
                return HitTarget(TEXT, text.id)

        for highlight in reversed(on_page.highlights):
            if self._contains(point, (highlight.x, highlight.y, highlight.width, highlight.height)):
                return HitTarget(HIGHLIGHT, highlight.id)
        return None

    def text_rect(self, text: TextAnnotation) -> Rect:
        """テキスト注釈の表示枠を概算する。"""
        width = max(TEXT_MIN_WIDTH, len(text.text) * text.font_size * TEXT_CHAR_WIDTH_RATIO) + TEXT_PADDING * 2
        height = text.font_size * TEXT_LINE_HEIGHT_RATIO + TEXT_PADDING * 2
        return text.x, text.y, width, height

    def _delete_anchor(self, signature: SignatureAnnotation) -> Point:
        # 削除ボタンは右上ハンドルと重ならないよう外側にずらして配置する
        offset = self.config.handle_radius + self.config.delete_radius
        return signature.x + signature.width + offset, signature.y - offset

    def delete_anchor(self, annotation: Annotation) -> Point:
        """注釈の削除ボタンの中心座標を返す（描画用）。"""
        if isinstance(annotation, SignatureAnnotation):
            return self._delete_anchor(annotation)
        if isinstance(annotation, TextAnnotation):
            x, y, width, _ = self.text_rect(annotation)
            return x + width, y
        raise TypeError(f"削除ボタンを持たない注釈です: {type(annotation).__name__}")

    @staticmethod
    def _corner_points(signature: SignatureAnnotation):
        right = signature.x + signature.width
        bottom = signature.y + signature.height
        return (
            (CORNER_NW, (signature.x, signature.y)),
            (CORNER_NE, (right, signature.y)),
            (CORNER_SW, (signature.x, bottom)),
            (CORNER_SE, (right, bottom)),
        )

    def _near(self, point: Point, center: Point, radius: Optional[float] = None) -> bool:
        radius = self.config.delete_radius if radius is None else radius
        return abs(point[0] - center[0]) <= radius and abs(point[1] - center[1]) <= radius

    @staticmethod
    def _contains(point: Point, rect: Rect) -> bool:
        x, y, width, height = rect
        return x <= point[0] <= x + width and y <= point[1] <= y + height
