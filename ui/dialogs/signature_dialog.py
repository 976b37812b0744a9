# ui/dialogs/signature_dialog.py
"""
署名作成用のダイアログウィンドウを提供します。

このモジュールには、手書きまたはタイプ入力で署名を作成し、余白を切り詰めた
PNG画像として呼び出し元に返す SignatureDialog クラスが含まれています。
"""
from __future__ import annotations
from typing import Optional

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import (
    QButtonGroup, QDialog, QHBoxLayout, QLabel, QLineEdit, QMessageBox,
    QPushButton, QTabBar, QVBoxLayout, QWidget
)

from ui.widgets.signature_pad import SignaturePadWidget
from utils.editor_config import EditorConfig
from utils.signature_utils import MODE_DRAW, MODE_TYPE, SignatureRasterizer

TAB_MODES = (MODE_DRAW, MODE_TYPE)


class SignatureDialog(QDialog):
    """
    署名を作成するモーダルダイアログ。

    「手書き」「タイプ入力」の2つのタブ、4色のカラーパレット、クリア/キャンセル/適用ボタンで
    構成されます。タブを切り替えると描画面は消去されます。
    適用ボタンは描画面に内容がある場合のみ、生成ボタンは入力が空白でない場合のみ有効です。
    """
    def __init__(self, parent: Optional[QWidget], config: Optional[EditorConfig] = None) -> None:
        """
        SignatureDialogのコンストラクタ。

        Args:
            parent (Optional[QWidget]): 親ウィジェット。通常はMainWindow。
            config (Optional[EditorConfig]): エディタ設定。
        """
        super().__init__(parent)
        self.setWindowTitle("署名の作成")
        self.setModal(True)
        self.setWindowModality(Qt.WindowModality.WindowModal)

        self.config: EditorConfig = config or EditorConfig()
        width, height = self.config.signature_surface_size
        self.rasterizer: SignatureRasterizer = SignatureRasterizer(width, height, self.config,
                                                                   self.devicePixelRatioF())
        self.signature_png: Optional[bytes] = None

        # UIコンポーネントの型ヒント
        self.tab_bar: QTabBar
        self.pad: SignaturePadWidget
        self.type_row: QWidget
        self.name_input: QLineEdit
        self.generate_button: QPushButton
        self.color_group: QButtonGroup
        self.clear_button: QPushButton
        self.cancel_button: QPushButton
        self.apply_button: QPushButton

        layout = QVBoxLayout(self)

        self.tab_bar = QTabBar()
        self.tab_bar.addTab("手書き")
        self.tab_bar.addTab("タイプ入力")
        layout.addWidget(self.tab_bar)

        self.type_row = QWidget()
        type_layout = QHBoxLayout(self.type_row)
        type_layout.setContentsMargins(0, 0, 0, 0)
        self.name_input = QLineEdit()
        self.name_input.setPlaceholderText("氏名を入力")
        self.generate_button = QPushButton("生成")
        self.generate_button.setEnabled(False)
        type_layout.addWidget(self.name_input)
        type_layout.addWidget(self.generate_button)
        self.type_row.setVisible(False)
        layout.addWidget(self.type_row)

        self.pad = SignaturePadWidget(self.rasterizer)
        layout.addWidget(self.pad, alignment=Qt.AlignmentFlag.AlignCenter)

        palette_layout = QHBoxLayout()
        palette_layout.addWidget(QLabel("色:"))
        self.color_group = QButtonGroup(self)
        self.color_group.setExclusive(True)
        for index, (label, color) in enumerate(self.config.signature_palette):
            button = QPushButton(label)
            button.setCheckable(True)
            button.setFixedWidth(48)
            button.setProperty("signature_color", color)
            button.setStyleSheet(
                f"QPushButton {{ color: {color}; font-weight: bold; }}"
                f"QPushButton:checked {{ border: 2px solid {color}; }}"
            )
            self.color_group.addButton(button, index)
            palette_layout.addWidget(button)
        self.color_group.button(0).setChecked(True)
        palette_layout.addStretch()
        layout.addLayout(palette_layout)

        button_layout = QHBoxLayout()
        self.clear_button = QPushButton("クリア")
        self.cancel_button = QPushButton("キャンセル")
        self.apply_button = QPushButton("適用")
        self.apply_button.setDefault(True)
        self.apply_button.setEnabled(False)
        button_layout.addWidget(self.clear_button)
        button_layout.addStretch()
        button_layout.addWidget(self.cancel_button)
        button_layout.addWidget(self.apply_button)
        layout.addLayout(button_layout)

        self.tab_bar.currentChanged.connect(self.on_tab_changed)
        self.name_input.textChanged.connect(self.on_name_changed)
        self.name_input.returnPressed.connect(self.generate_typed_signature)
        self.generate_button.clicked.connect(self.generate_typed_signature)
        self.color_group.idClicked.connect(self.on_color_selected)
        self.pad.content_changed.connect(self.apply_button.setEnabled)
        self.clear_button.clicked.connect(self.clear_signature)
        self.cancel_button.clicked.connect(self.reject)
        self.apply_button.clicked.connect(self.apply_signature)

    @property
    def mode(self) -> str:
        return self.rasterizer.mode

    def on_tab_changed(self, index: int) -> None:
        """タブの切り替えに合わせて署名モードを変更する。描画面は消去される。"""
        mode = TAB_MODES[index]
        self.rasterizer.switch_mode(mode)
        self.type_row.setVisible(mode == MODE_TYPE)
        self.pad.setCursor(Qt.CursorShape.CrossCursor if mode == MODE_DRAW else Qt.CursorShape.ArrowCursor)
        self.pad.refresh()
        if mode == MODE_TYPE:
            self.name_input.setFocus()

    def on_name_changed(self, text: str) -> None:
        self.generate_button.setEnabled(bool(text.strip()))

    def on_color_selected(self, button_id: int) -> None:
        """パレットの色を選択する。タイプ入力の署名は新しい色で再生成する。"""
        color = self.config.signature_palette[button_id][1]
        self.rasterizer.set_color(color)
        if self.mode == MODE_TYPE and self.rasterizer.has_content:
            self.generate_typed_signature()

    def generate_typed_signature(self) -> None:
        """入力された文字列から署名を生成する。"""
        if self.rasterizer.render_typed(self.name_input.text()):
            self.pad.refresh()

    def clear_signature(self) -> None:
        self.rasterizer.clear()
        self.pad.refresh()

    def apply_signature(self) -> None:
        """署名を切り出してPNGに変換し、ダイアログを閉じる。"""
        png = self.rasterizer.extract_png()
        if png is None:
            QMessageBox.warning(self, "署名", "署名が入力されていません。")
            return
        self.signature_png = png
        self.accept()
