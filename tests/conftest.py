import os

# Qtをヘッドレス環境で動かすため、QApplication生成前に設定する
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import fitz
import pytest
from PyQt6.QtWidgets import QApplication


@pytest.fixture(scope="session")
def qapp():
    """テストセッション全体で共有するQApplication。"""
    app = QApplication.instance() or QApplication([])
    yield app


def make_pdf(page_count: int = 1, width: float = 595, height: float = 842) -> bytes:
    """指定サイズの白紙ページを持つPDFをメモリ上で生成する。"""
    doc = fitz.open()
    for _ in range(page_count):
        doc.new_page(width=width, height=height)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def blank_pdf() -> bytes:
    return make_pdf(page_count=2)
