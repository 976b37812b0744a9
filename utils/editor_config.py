from dataclasses import dataclass, field
from typing import List, Tuple

RGB = Tuple[float, float, float]


@dataclass
class EditorConfig:
    """
    注釈エディタ全体で共有する設定値をカプセル化するデータクラス。

    座標・サイズは文書空間の単位（PDFポイント）、ラスタ関連はピクセル単位です。
    """
    # 署名
    signature_width: float = 150.0
    signature_height: float = 60.0
    min_signature_width: float = 50.0
    min_signature_height: float = 30.0

    # テキスト
    text_font_size: float = 16.0
    text_color: str = "#1a1a2e"
    text_ink: RGB = (0.1, 0.1, 0.18)
    # 書き出し時のフォント。Latin-1 外の文字を含むテキストは CJK フォントを埋め込む
    text_font: str = "helv"
    text_fallback_font: str = "cjk"

    # ハイライト（最小サイズはこの値を「超える」必要がある）
    min_highlight_width: float = 10.0
    min_highlight_height: float = 5.0
    highlight_color: RGB = (0.98, 0.8, 0.08)
    highlight_opacity: float = 0.4

    # ズーム
    min_zoom: float = 0.5
    max_zoom: float = 3.0
    zoom_step: float = 0.25

    # ハンドル・削除ボタンの当たり判定（中心からの半径）
    handle_radius: float = 6.0
    delete_radius: float = 9.0

    # 署名パッド
    signature_surface_size: Tuple[int, int] = (460, 192)
    stroke_width: float = 2.5
    crop_padding: int = 20
    signature_palette: List[Tuple[str, str]] = field(default_factory=lambda: [
        ("黒", "#1a1a2e"),
        ("青", "#2563eb"),
        ("赤", "#dc2626"),
        ("緑", "#16a34a"),
    ])
    signature_font_families: List[str] = field(default_factory=lambda: [
        "Segoe Script", "Lucida Handwriting", "Brush Script MT", "cursive",
    ])

    # 書き出し
    export_prefix: str = "edited_"

    def default_signature_color(self) -> str:
        return self.signature_palette[0][1]
