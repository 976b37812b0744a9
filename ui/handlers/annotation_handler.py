from __future__ import annotations
import logging
from typing import TYPE_CHECKING

from PyQt6.QtGui import QAction
from PyQt6.QtWidgets import QDialog

from models.session_models import TOOL_HIGHLIGHT, TOOL_SELECT, TOOL_SIGN, TOOL_TEXT
from ui.dialogs import SignatureDialog

if TYPE_CHECKING:
    from ..main_window import MainWindow

logger = logging.getLogger(__name__)


class AnnotationHandler:
    """
    ツールバーからの操作を注釈の状態機械に中継するハンドラクラス。

    ツールの切り替え、署名作成ダイアログの表示、配置待ち署名の設定、
    注釈のリセットを担当します。
    """
    def __init__(self, main_window: MainWindow) -> None:
        """
        AnnotationHandlerのコンストラクタ。

        Args:
            main_window (MainWindow): 親となるメインウィンドウインスタンス。
        """
        self.main: MainWindow = main_window

    @property
    def current_tool(self) -> str:
        return self.main.controller.active_tool

    def on_tool_selected(self, action: QAction) -> None:
        """ツールバーで選択されたツールに応じて状態を更新する。"""
        tool_map = {
            self.main.select_action: TOOL_SELECT,
            self.main.sign_action: TOOL_SIGN,
            self.main.text_action: TOOL_TEXT,
            self.main.highlight_action: TOOL_HIGHLIGHT,
        }
        self.select_tool(tool_map.get(action, TOOL_SELECT))

    def select_tool(self, tool: str) -> None:
        """ツールを切り替える。署名がまだ作成されていなければ署名作成ダイアログを開く。"""
        self.main.pdf_display_label.finish_text_edit()
        needs_signature = self.main.controller.select_tool(tool)
        self._sync_tool_actions()
        self.main.pdf_display_label.update_cursor()
        self.main.pdf_display_label.update()
        if needs_signature:
            self.open_signature_dialog()
        elif tool == TOOL_SIGN:
            self.main.show_status("クリックした位置に署名を配置します。")

    def open_signature_dialog(self) -> bool:
        """
        署名作成ダイアログを表示し、作成された署名を配置待ちにする。

        Returns:
            bool: 署名が作成された場合はTrue。
        """
        dialog = SignatureDialog(self.main, self.main.config)
        if dialog.exec() != QDialog.DialogCode.Accepted or dialog.signature_png is None:
            return False
        self.main.controller.set_pending_stamp(dialog.signature_png)
        logger.info("署名を作成しました (%d bytes)", len(dialog.signature_png))
        self.main.show_status("クリックした位置に署名を配置します。")
        return True

    def reset_annotations(self) -> None:
        """すべての注釈を削除する。配置待ちの署名は保持される。"""
        self.main.pdf_display_label.finish_text_edit()
        self.main.controller.reset_session()
        self.main.show_status("すべての注釈を削除しました。")

    def _sync_tool_actions(self) -> None:
        action_map = {
            TOOL_SELECT: self.main.select_action,
            TOOL_SIGN: self.main.sign_action,
            TOOL_TEXT: self.main.text_action,
            TOOL_HIGHLIGHT: self.main.highlight_action,
        }
        action = action_map[self.current_tool]
        if not action.isChecked():
            action.setChecked(True)
