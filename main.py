"""
アプリケーションのエントリーポイント。

このスクリプトは、ログ出力とPyQt6アプリケーションを初期化し、メインウィンドウである
MainWindowを生成・表示して、アプリケーションのイベントループを開始します。
コマンドライン引数にPDFファイルのパスが指定された場合は起動時に読み込みます。
"""
import logging
import os
import sys
from PyQt6.QtWidgets import QApplication

# プロジェクト内モジュール（ui, utilsなど）を正しく見つけられるよう、
# このファイルのディレクトリをsys.pathに追加します。
current_dir: str = os.path.dirname(os.path.abspath(__file__))
if current_dir not in sys.path:
    sys.path.append(current_dir)

from ui.main_window import MainWindow

LOG_LEVEL_ENV = "PDF_EDITOR_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    """環境変数 PDF_EDITOR_LOG_LEVEL（既定: INFO）に従ってログ出力を設定する。"""
    level_name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


def main() -> int:
    configure_logging()

    app: QApplication = QApplication(sys.argv)
    window: MainWindow = MainWindow()
    window.show()

    # 引数で渡されたPDFを開く（Qtのオプションを除いた最初の引数）
    args = app.arguments()[1:]
    if args:
        window.pdf_handler.load_pdf(args[0])

    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
