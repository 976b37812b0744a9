# services/annotation_service.py
import dataclasses
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional

from models.annotation_models import (
    ANNOTATION_KINDS, HIGHLIGHT, SIGNATURE, TEXT,
    Annotation, AnnotationSnapshot, HighlightAnnotation, SignatureAnnotation, TextAnnotation,
)

logger = logging.getLogger(__name__)

Listener = Callable[[AnnotationSnapshot], None]


class AnnotationStore:
    """署名・テキスト・ハイライトの3種類の注釈を保持し、CRUD操作を管理するストア。

    アプリケーション内で注釈状態を保持する唯一の場所です。変更はすべて同期的に即時反映され、
    変更後のスナップショットが購読者（再描画処理など）に通知されます。

    存在しないIDに対する更新・削除は何もせずに終了します。ドラッグ中の更新と削除が
    同じフレームで競合しても例外にならないようにするためです。
    """

    ID_LENGTH = 7

    def __init__(self) -> None:
        """AnnotationStoreのコンストラクタ。"""
        self._collections: Dict[str, List[Annotation]] = {kind: [] for kind in ANNOTATION_KINDS}
        self._listeners: List[Listener] = []

    # --- 購読 ---
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """変更通知のリスナーを登録する。

        Args:
            listener (Listener): 変更後のスナップショットを受け取る関数。

        Returns:
            Callable[[], None]: 登録を解除する関数。
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    # --- 追加 ---
    def add_signature(self, x: float, y: float, width: float, height: float, image: bytes, page: int) -> str:
        """署名注釈を追加し、新しいIDを返す。"""
        return self._add(SignatureAnnotation, SIGNATURE,
                         x=x, y=y, width=width, height=height, image=image, page=page)

    def add_text(self, x: float, y: float, text: str, font_size: float, color: str, page: int) -> str:
        """テキスト注釈を追加し、新しいIDを返す。"""
        return self._add(TextAnnotation, TEXT,
                         x=x, y=y, text=text, font_size=font_size, color=color, page=page)

    def add_highlight(self, x: float, y: float, width: float, height: float, page: int) -> str:
        """ハイライト注釈を追加し、新しいIDを返す。"""
        return self._add(HighlightAnnotation, HIGHLIGHT,
                         x=x, y=y, width=width, height=height, page=page)

    def _add(self, model: type, kind: str, **fields: Any) -> str:
        self._validate_page(fields["page"])
        annotation_id = self._generate_id()
        self._collections[kind].append(model(id=annotation_id, **fields))
        self._notify()
        return annotation_id

    # --- 更新 ---
    def update_signature(self, annotation_id: str, **changes: Any) -> None:
        self._update(SIGNATURE, annotation_id, changes)

    def update_text(self, annotation_id: str, **changes: Any) -> None:
        self._update(TEXT, annotation_id, changes)

    def update_highlight(self, annotation_id: str, **changes: Any) -> None:
        self._update(HIGHLIGHT, annotation_id, changes)

    def _update(self, kind: str, annotation_id: str, changes: Dict[str, Any]) -> None:
        """指定IDの注釈の一部フィールドを置き換える。

        Raises:
            ValueError: IDの変更や不正なページ番号が指定された場合。
            TypeError: 注釈に存在しないフィールドが指定された場合。
        """
        if "id" in changes:
            raise ValueError("注釈IDは変更できません。")
        if "page" in changes:
            self._validate_page(changes["page"])
        items = self._collections[kind]
        for index, item in enumerate(items):
            if item.id == annotation_id:
                items[index] = dataclasses.replace(item, **changes)
                self._notify()
                return
        logger.debug("更新対象の注釈が見つかりません: %s (%s)", annotation_id, kind)

    # --- 削除 ---
    def delete_signature(self, annotation_id: str) -> None:
        self._delete(SIGNATURE, annotation_id)

    def delete_text(self, annotation_id: str) -> None:
        self._delete(TEXT, annotation_id)

    def delete_highlight(self, annotation_id: str) -> None:
        self._delete(HIGHLIGHT, annotation_id)

    def delete(self, kind: str, annotation_id: str) -> None:
        """種類を指定して注釈を削除する。"""
        if kind not in self._collections:
            raise ValueError(f"不明な注釈の種類です: {kind}")
        self._delete(kind, annotation_id)

    def _delete(self, kind: str, annotation_id: str) -> None:
        items = self._collections[kind]
        remaining = [item for item in items if item.id != annotation_id]
        if len(remaining) == len(items):
            return
        self._collections[kind] = remaining
        self._notify()

    def reset(self) -> None:
        """すべての注釈を一度に削除する。通知は一回だけ行われる。"""
        self._collections = {kind: [] for kind in ANNOTATION_KINDS}
        self._notify()

    # --- 参照 ---
    @property
    def signatures(self) -> List[SignatureAnnotation]:
        return list(self._collections[SIGNATURE])

    @property
    def texts(self) -> List[TextAnnotation]:
        return list(self._collections[TEXT])

    @property
    def highlights(self) -> List[HighlightAnnotation]:
        return list(self._collections[HIGHLIGHT])

    def snapshot(self) -> AnnotationSnapshot:
        """現在の注釈の不変スナップショットを返す。"""
        return AnnotationSnapshot(
            signatures=tuple(self._collections[SIGNATURE]),
            texts=tuple(self._collections[TEXT]),
            highlights=tuple(self._collections[HIGHLIGHT]),
        )

    def annotations_on_page(self, page: int) -> AnnotationSnapshot:
        """指定ページに配置された注釈だけを含むスナップショットを返す。"""
        return AnnotationSnapshot(
            signatures=tuple(s for s in self._collections[SIGNATURE] if s.page == page),
            texts=tuple(t for t in self._collections[TEXT] if t.page == page),
            highlights=tuple(h for h in self._collections[HIGHLIGHT] if h.page == page),
        )

    def find(self, annotation_id: str) -> Optional[Annotation]:
        """IDに一致する注釈を種類を問わず検索する。見つからない場合はNone。"""
        for items in self._collections.values():
            for item in items:
                if item.id == annotation_id:
                    return item
        return None

    def __len__(self) -> int:
        return sum(len(items) for items in self._collections.values())

    # --- 内部処理 ---
    def _generate_id(self) -> str:
        """ストア内で重複しない短いランダムIDを生成する。"""
        while True:
            candidate = uuid.uuid4().hex[:self.ID_LENGTH]
            if self.find(candidate) is None:
                return candidate

    @staticmethod
    def _validate_page(page: Any) -> None:
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise ValueError(f"ページ番号は1以上の整数である必要があります: {page!r}")
