# ui/main_window.py
from PyQt6.QtWidgets import QLabel, QMainWindow, QScrollArea, QToolBar
from PyQt6.QtGui import QAction, QActionGroup, QKeySequence
from PyQt6.QtCore import Qt

from services.annotation_service import AnnotationStore
from services.export_service import ExportService
from services.interaction_service import InteractionController
from models.session_models import ViewState
from ui.handlers.annotation_handler import AnnotationHandler
from ui.handlers.export_handler import ExportHandler
from ui.handlers.pdf_handler import PDFHandler
from ui.widgets import PDFDisplayLabel
from utils.coordinate_utils import CoordinateUtils
from utils.editor_config import EditorConfig

STATUS_TIMEOUT_MS = 4000


class MainWindow(QMainWindow):
    """
    PDF注釈エディタのメインウィンドウ。

    注釈ストア・状態機械・書き出しサービスを生成して各ハンドラに共有し、
    ツールバーとPDF表示領域を配置します。
    """
    def __init__(self, config: EditorConfig = None):
        super().__init__()
        self.setWindowTitle("PDF署名・注釈エディタ")
        self.setGeometry(80, 60, 1200, 900)

        self.config = config or EditorConfig()
        self.store = AnnotationStore()
        self.controller = InteractionController(self.store, self.config, ViewState())
        self.export_service = ExportService(self.config)

        self.pdf_display_label = PDFDisplayLabel(self.controller, self)
        self.pdf_scroll_area = QScrollArea()
        self.pdf_scroll_area.setWidget(self.pdf_display_label)
        self.pdf_scroll_area.setWidgetResizable(False)
        self.pdf_scroll_area.setAlignment(Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignTop)
        self.pdf_scroll_area.setStyleSheet("QScrollArea { background-color: #e5e7eb; }")
        self.setCentralWidget(self.pdf_scroll_area)

        self.pdf_handler = PDFHandler(self)
        self.annotation_handler = AnnotationHandler(self)
        self.export_handler = ExportHandler(self)

        self.setup_toolbar()
        self.connect_signals()
        self.statusBar().showMessage("PDFファイルを開いてください。")
        self.update_navigation_state()

    def createPopupMenu(self):
        return None

    def setup_toolbar(self):
        toolbar = QToolBar("メインツールバー")
        toolbar.setMovable(False)
        self.addToolBar(Qt.ToolBarArea.TopToolBarArea, toolbar)
        toolbar.setStyleSheet("""
            QToolBar { spacing: 4px; }
            QToolButton {
                background-color: #f0f0f0;
                border: 1px solid #c0c0c0;
                padding: 5px 10px;
                border-radius: 4px;
            }
            QToolButton:checked {
                background-color: #cde;
                border: 1px solid #9ac;
            }
        """)

        self.open_action = QAction("開く", self)
        self.open_action.setShortcut(QKeySequence.StandardKey.Open)
        toolbar.addAction(self.open_action)

        self.file_label = QLabel("PDFファイルを開いてください...")
        toolbar.addWidget(self.file_label)
        toolbar.addSeparator()

        self.select_action = QAction("選択", self); self.select_action.setCheckable(True)
        self.sign_action = QAction("署名", self); self.sign_action.setCheckable(True)
        self.text_action = QAction("テキスト", self); self.text_action.setCheckable(True)
        self.highlight_action = QAction("ハイライト", self); self.highlight_action.setCheckable(True)
        for action, key in ((self.select_action, "V"), (self.sign_action, "S"),
                            (self.text_action, "T"), (self.highlight_action, "H")):
            action.setShortcut(QKeySequence(key))
            action.setToolTip(f"{action.text()} ({key})")

        self.tool_group = QActionGroup(self)
        self.tool_group.setExclusive(True)
        for action in (self.select_action, self.sign_action, self.text_action, self.highlight_action):
            self.tool_group.addAction(action)
            toolbar.addAction(action)
        self.select_action.setChecked(True)
        toolbar.addSeparator()

        self.prev_page_action = QAction("<", self)
        self.prev_page_action.setShortcut(QKeySequence(Qt.Key.Key_PageUp))
        self.page_label = QLabel("- / -")
        self.page_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.page_label.setMinimumWidth(60)
        self.next_page_action = QAction(">", self)
        self.next_page_action.setShortcut(QKeySequence(Qt.Key.Key_PageDown))
        toolbar.addAction(self.prev_page_action)
        toolbar.addWidget(self.page_label)
        toolbar.addAction(self.next_page_action)
        toolbar.addSeparator()

        self.zoom_out_action = QAction("縮小", self)
        self.zoom_out_action.setShortcut(QKeySequence.StandardKey.ZoomOut)
        self.zoom_label = QLabel("100%")
        self.zoom_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.zoom_label.setMinimumWidth(48)
        self.zoom_in_action = QAction("拡大", self)
        self.zoom_in_action.setShortcut(QKeySequence.StandardKey.ZoomIn)
        self.zoom_reset_action = QAction("等倍", self)
        toolbar.addAction(self.zoom_out_action)
        toolbar.addWidget(self.zoom_label)
        toolbar.addAction(self.zoom_in_action)
        toolbar.addAction(self.zoom_reset_action)
        toolbar.addSeparator()

        self.reset_action = QAction("リセット", self)
        self.download_action = QAction("ダウンロード", self)
        self.download_action.setShortcut(QKeySequence.StandardKey.Save)
        toolbar.addAction(self.reset_action)
        toolbar.addAction(self.download_action)

    def connect_signals(self):
        self.open_action.triggered.connect(self.pdf_handler.open_pdf_file)
        self.tool_group.triggered.connect(self.annotation_handler.on_tool_selected)
        self.prev_page_action.triggered.connect(self.pdf_handler.show_prev_page)
        self.next_page_action.triggered.connect(self.pdf_handler.show_next_page)
        self.zoom_in_action.triggered.connect(self.pdf_handler.zoom_in)
        self.zoom_out_action.triggered.connect(self.pdf_handler.zoom_out)
        self.zoom_reset_action.triggered.connect(self.pdf_handler.reset_zoom)
        self.reset_action.triggered.connect(self.annotation_handler.reset_annotations)
        self.download_action.triggered.connect(self.export_handler.save_edited_pdf)
        self.pdf_display_label.status_message.connect(self.show_status)

    def show_status(self, message: str):
        self.statusBar().showMessage(message, STATUS_TIMEOUT_MS)

    def update_navigation_state(self):
        """文書の有無・ページ位置・ズーム倍率・書き出し状態に応じてツールバーの状態を更新する。"""
        view = self.controller.view
        has_document = self.pdf_handler.pdf_document is not None
        if has_document:
            self.page_label.setText(f"{view.current_page} / {view.page_count}")
        else:
            self.page_label.setText("- / -")
        self.zoom_label.setText(f"{round(view.scale * 100)}%")

        self.prev_page_action.setEnabled(has_document and view.current_page > 1)
        self.next_page_action.setEnabled(has_document and view.current_page < view.page_count)
        self.zoom_in_action.setEnabled(CoordinateUtils.can_zoom_in(view.scale, self.config.max_zoom))
        self.zoom_out_action.setEnabled(CoordinateUtils.can_zoom_out(view.scale, self.config.min_zoom))
        self.reset_action.setEnabled(has_document)
        self.download_action.setEnabled(has_document and not self.export_handler.is_processing)
        self.download_action.setText("処理中..." if self.export_handler.is_processing else "ダウンロード")

    def closeEvent(self, event):
        thread = self.export_handler.export_thread
        if thread is not None and thread.isRunning():
            thread.wait()
        self.pdf_handler.close_document()
        super().closeEvent(event)
