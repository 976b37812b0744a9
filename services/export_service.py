# services/export_service.py
"""注釈を元のPDFに焼き込み、新しいPDFのバイト列を生成するサービスを提供します。

配置の計算はPDF空間（左下原点・Y軸上向き）で行い、描画時に
`page.transformation_matrix` でPyMuPDFのページ空間（左上原点）へ変換します。
"""
import logging
from dataclasses import dataclass
from typing import Optional

import fitz  # PyMuPDF

from models.annotation_models import (AnnotationSnapshot, HighlightAnnotation,
                                      SignatureAnnotation, TextAnnotation)
from utils.editor_config import EditorConfig

logger = logging.getLogger(__name__)


class ExportError(Exception):
    """PDFの読み込み・画像の埋め込み・書き出しのいずれかに失敗したことを示す例外。"""


@dataclass(frozen=True)
class ExportResult:
    """書き出し結果。

    Attributes:
        data (bytes): 注釈を焼き込んだPDFのバイト列。
        skipped (int): 存在しないページを参照していたため書き出されなかった注釈の数。
    """
    data: bytes
    skipped: int = 0


@dataclass(frozen=True)
class PdfPlacement:
    """PDF空間（左下原点）での配置。テキストの場合、(x, y) はベースラインの始点。"""
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0

    def to_page_rect(self, page: fitz.Page) -> fitz.Rect:
        """PyMuPDFのページ空間の矩形に変換する。"""
        rect = fitz.Rect(self.x, self.y, self.x + self.width, self.y + self.height)
        return rect * page.transformation_matrix

    def to_page_point(self, page: fitz.Page) -> fitz.Point:
        return fitz.Point(self.x, self.y) * page.transformation_matrix


def signature_placement(annotation: SignatureAnnotation, page_height: float) -> PdfPlacement:
    """署名画像の配置を計算する。Y座標は下辺の位置になる。"""
    return PdfPlacement(
        x=annotation.x,
        y=page_height - annotation.y - annotation.height,
        width=annotation.width,
        height=annotation.height,
    )


def text_baseline(annotation: TextAnnotation, page_height: float) -> PdfPlacement:
    """テキストのベースライン位置を計算する。注釈の上端からフォントサイズ分下がった位置。"""
    return PdfPlacement(x=annotation.x, y=page_height - annotation.y - annotation.font_size)


def needs_fallback_font(text: str) -> bool:
    """標準フォント（Latin-1）で表せない文字を含むかどうかを返す。"""
    return any(ord(ch) > 0xFF for ch in text)


def highlight_placement(annotation: HighlightAnnotation, page_height: float) -> PdfPlacement:
    return PdfPlacement(
        x=annotation.x,
        y=page_height - annotation.y - annotation.height,
        width=annotation.width,
        height=annotation.height,
    )


class ExportService:
    """
    注釈のスナップショットを元のPDFに焼き込むサービスクラス。

    署名・テキスト・ハイライトの順に、各種類内では追加された順に描画します。
    焼き込んだ内容はページのコンテンツそのものになり、PDFの注釈オブジェクトとしては残りません。
    """

    def __init__(self, config: Optional[EditorConfig] = None) -> None:
        """
        ExportServiceのコンストラクタ。

        Args:
            config (Optional[EditorConfig]): 色や不透明度などの設定。
        """
        self.config: EditorConfig = config or EditorConfig()
        self._fallback_buffer: Optional[bytes] = None

    def bake(self, original: bytes, snapshot: AnnotationSnapshot) -> ExportResult:
        """注釈を焼き込んだ新しいPDFを生成する。

        元のバイト列は変更されません。存在しないページを参照する注釈は警告を記録して
        スキップし、その数を結果に含めます。

        Args:
            original (bytes): 元のPDFのバイト列。
            snapshot (AnnotationSnapshot): 焼き込む注釈の不変スナップショット。

        Returns:
            ExportResult: 生成したPDFのバイト列とスキップした注釈の数。

        Raises:
            ExportError: PDFや署名画像の読み込み、またはPDFの書き出しに失敗した場合。
        """
        try:
            doc = fitz.open(stream=original, filetype="pdf")
        except Exception as exc:
            raise ExportError(f"PDFを読み込めませんでした: {exc}") from exc

        skipped = 0
        try:
            for signature in snapshot.signatures:
                page = self._page_for(doc, signature.page, signature.id)
                if page is None:
                    skipped += 1
                    continue
                self._draw_signature(page, signature)

            for text in snapshot.texts:
                page = self._page_for(doc, text.page, text.id)
                if page is None:
                    skipped += 1
                    continue
                if text.text.strip():
                    self._draw_text(page, text)

            for highlight in snapshot.highlights:
                page = self._page_for(doc, highlight.page, highlight.id)
                if page is None:
                    skipped += 1
                    continue
                self._draw_highlight(page, highlight)

            data = doc.tobytes(garbage=3, deflate=True)
        except ExportError:
            raise
        except Exception as exc:
            raise ExportError(f"PDFの書き出しに失敗しました: {exc}") from exc
        finally:
            doc.close()

        logger.info("注釈を焼き込みました: %d件 (署名%d件, テキスト%d件, ハイライト%d件, スキップ%d件)",
                    snapshot.count(), len(snapshot.signatures), len(snapshot.texts),
                    len(snapshot.highlights), skipped)
        return ExportResult(data=data, skipped=skipped)

    # --- 内部処理 ---
    @staticmethod
    def _page_for(doc: fitz.Document, page_number: int, annotation_id: str) -> Optional[fitz.Page]:
        index = page_number - 1
        if 0 <= index < doc.page_count:
            return doc.load_page(index)
        logger.warning("存在しないページ %d を参照する注釈 %s をスキップします。", page_number, annotation_id)
        return None

    def _draw_signature(self, page: fitz.Page, signature: SignatureAnnotation) -> None:
        rect = signature_placement(signature, page.mediabox.height).to_page_rect(page)
        try:
            page.insert_image(rect, stream=signature.image, keep_proportion=False)
        except Exception as exc:
            raise ExportError(f"署名画像 {signature.id} を埋め込めませんでした: {exc}") from exc

    def _draw_text(self, page: fitz.Page, text: TextAnnotation) -> None:
        point = text_baseline(text, page.mediabox.height).to_page_point(page)
        page.insert_text(point, text.text, fontsize=text.font_size,
                         fontname=self._font_for(page, text.text), color=self.config.text_ink)

    def _font_for(self, page: fitz.Page, text: str) -> str:
        """テキストの描画に使うフォント名を返す。

        Latin-1 の範囲に収まる文字列は標準フォントで描画し、それ以外は
        CJK フォントをページに埋め込んで使用します。
        """
        if not needs_fallback_font(text):
            return self.config.text_font
        fontname = self.config.text_fallback_font
        if not any(font[4] == fontname for font in page.get_fonts()):
            if self._fallback_buffer is None:
                self._fallback_buffer = fitz.Font(fontname).buffer
            page.insert_font(fontname=fontname, fontbuffer=self._fallback_buffer)
        return fontname

    def _draw_highlight(self, page: fitz.Page, highlight: HighlightAnnotation) -> None:
        rect = highlight_placement(highlight, page.mediabox.height).to_page_rect(page)
        page.draw_rect(rect, color=None, fill=self.config.highlight_color,
                       fill_opacity=self.config.highlight_opacity, width=0)
