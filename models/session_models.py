# models/session_models.py
from dataclasses import dataclass
from typing import Optional, Tuple

# 編集ツール
TOOL_SELECT = "select"
TOOL_SIGN = "sign"
TOOL_TEXT = "text"
TOOL_HIGHLIGHT = "highlight"
TOOLS: Tuple[str, ...] = (TOOL_SELECT, TOOL_SIGN, TOOL_TEXT, TOOL_HIGHLIGHT)


@dataclass
class ViewState:
    """編集セッション中の表示状態を表現するデータモデル。

    注釈データとは異なり、保存や書き出しの対象にはなりません。

    Attributes:
        current_page (int): 現在表示しているページ番号（1始まり）。
        scale (float): ズーム倍率。
        active_tool (str): 選択中のツール（'select', 'sign', 'text', 'highlight'）。
        page_count (int): 読み込まれている文書の総ページ数。
    """
    current_page: int = 1
    scale: float = 1.0
    active_tool: str = TOOL_SELECT
    page_count: int = 0


class PendingStamp:
    """配置待ちの署名画像を一つだけ保持するメールボックス。

    新しい署名を生成すると前の値は破棄されます（キューイングしない）。
    配置クリック時は take() で取り出しと同時に空にします。
    """

    def __init__(self) -> None:
        self._image: Optional[bytes] = None

    def put(self, image: bytes) -> None:
        """署名画像を格納する。既存の値は上書きされる。"""
        self._image = image

    def peek(self) -> Optional[bytes]:
        return self._image

    def take(self) -> Optional[bytes]:
        """格納されている画像を返し、メールボックスを空にする。"""
        image, self._image = self._image, None
        return image

    def clear(self) -> None:
        self._image = None

    @property
    def has_value(self) -> bool:
        return self._image is not None
