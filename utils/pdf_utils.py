# utils/pdf_utils.py
"""PDFのレンダリングやファイル種別の判定など、PDF操作に関連するユーティリティ機能を提供します。"""

import mimetypes
import os

import fitz  # PyMuPDF
from PyQt6.QtGui import QImage

PDF_MIME_TYPE = "application/pdf"


class PDFUtils:
    """PDF処理に関する共通機能を提供するユーティリティクラス。"""

    @staticmethod
    def render_page(page: fitz.Page, scale: float = 1.0) -> QImage:
        """PDFの指定されたページをQImageオブジェクトにレンダリングする。

        倍率1.0で1ポイントが1ピクセルになり、画像上の座標はズーム倍率で割るだけで
        文書空間の座標になります。

        Args:
            page (fitz.Page): レンダリング対象のPyMuPDFページオブジェクト。
            scale (float): レンダリング時の拡大率。

        Returns:
            QImage: レンダリングされたページのQImageオブジェクト。
        """
        matrix = fitz.Matrix(scale, scale)
        pix = page.get_pixmap(matrix=matrix)

        if pix.alpha:
            image_format = QImage.Format.Format_RGBA8888
        else:
            image_format = QImage.Format.Format_RGB888

        qimage = QImage(pix.samples, pix.width, pix.height, pix.stride, image_format)

        # pixmapのバッファを参照したままにしないよう、データをコピーして返す
        return qimage.copy()

    @staticmethod
    def is_pdf_file(path: str) -> bool:
        """ファイル名からPDFかどうかを判定する。

        拡張子が `.pdf`、または推定されるメディアタイプが `application/pdf` の場合にTrueを返します。
        """
        if path.lower().endswith(".pdf"):
            return True
        mime_type, _ = mimetypes.guess_type(path)
        return mime_type == PDF_MIME_TYPE

    @staticmethod
    def output_file_name(path: str, prefix: str = "edited_") -> str:
        """書き出し用のファイル名（例: `edited_contract.pdf`）を返す。"""
        return f"{prefix}{os.path.basename(path)}"
