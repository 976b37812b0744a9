# models/annotation_models.py
from dataclasses import dataclass, field
from typing import Tuple, Union

# 注釈の種類を表す識別子
SIGNATURE = "signature"
TEXT = "text"
HIGHLIGHT = "highlight"
ANNOTATION_KINDS: Tuple[str, ...] = (SIGNATURE, TEXT, HIGHLIGHT)

Point = Tuple[float, float]


@dataclass(frozen=True)
class SignatureAnnotation:
    """文書上に配置された署名画像を表現するデータモデル。

    座標はすべて文書空間（ページ左上を原点とし、ズームに依存しない単位）で保持します。

    Attributes:
        id (str): 注釈の一意なID。
        x (float): 左上隅のX座標。
        y (float): 左上隅のY座標。
        width (float): 幅。
        height (float): 高さ。
        image (bytes): 署名のラスタ画像（PNGエンコード済み）。
        page (int): 配置先のページ番号（1始まり）。
    """
    id: str
    x: float
    y: float
    width: float
    height: float
    image: bytes = field(repr=False)
    page: int


@dataclass(frozen=True)
class TextAnnotation:
    """文書上に配置されたテキスト注釈を表現するデータモデル。

    Attributes:
        id (str): 注釈の一意なID。
        x (float): 左上隅のX座標。
        y (float): 左上隅のY座標。
        text (str): 入力された文字列。
        font_size (float): フォントサイズ（文書空間の単位）。
        color (str): 表示色（'#rrggbb'形式）。
        page (int): 配置先のページ番号（1始まり）。
    """
    id: str
    x: float
    y: float
    text: str
    font_size: float
    color: str
    page: int


@dataclass(frozen=True)
class HighlightAnnotation:
    """ラバーバンド操作で作成されたハイライト矩形を表現するデータモデル。

    Attributes:
        id (str): 注釈の一意なID。
        x (float): 左上隅のX座標。
        y (float): 左上隅のY座標。
        width (float): 幅。
        height (float): 高さ。
        page (int): 配置先のページ番号（1始まり）。
    """
    id: str
    x: float
    y: float
    width: float
    height: float
    page: int


Annotation = Union[SignatureAnnotation, TextAnnotation, HighlightAnnotation]


@dataclass(frozen=True)
class AnnotationSnapshot:
    """ある時点での注釈ストア全体の不変コピー。

    書き出し処理や再描画のオブザーバーに渡されます。各タプルはストア内の挿入順を保持します。
    """
    signatures: Tuple[SignatureAnnotation, ...] = ()
    texts: Tuple[TextAnnotation, ...] = ()
    highlights: Tuple[HighlightAnnotation, ...] = ()

    def is_empty(self) -> bool:
        """注釈が一つも含まれていない場合にTrueを返す。"""
        return not (self.signatures or self.texts or self.highlights)

    def count(self) -> int:
        return len(self.signatures) + len(self.texts) + len(self.highlights)
