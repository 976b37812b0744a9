import pytest

from models.annotation_models import SIGNATURE, TEXT
from services.annotation_service import AnnotationStore


@pytest.fixture
def store():
    return AnnotationStore()


def test_add_returns_unique_ids(store):
    ids = {store.add_highlight(0, 0, 20, 10, page=1) for _ in range(50)}
    assert len(ids) == 50
    assert len(store) == 50


def test_update_replaces_only_given_fields(store):
    sig_id = store.add_signature(10, 20, 150, 60, b"png", page=1)
    store.update_signature(sig_id, x=30)

    signature = store.find(sig_id)
    assert (signature.x, signature.y, signature.width, signature.height) == (30, 20, 150, 60)
    assert signature.image == b"png"


def test_update_unknown_id_is_noop(store):
    notified = []
    store.subscribe(notified.append)
    store.update_text("missing", text="x")
    assert notified == []


def test_update_rejects_id_change_and_bad_page(store):
    text_id = store.add_text(0, 0, "a", 16, "#000000", page=1)
    with pytest.raises(ValueError):
        store.update_text(text_id, id="other")
    with pytest.raises(ValueError):
        store.update_text(text_id, page=0)
    with pytest.raises(TypeError):
        store.update_text(text_id, colour="#fff")


def test_add_rejects_invalid_page(store):
    with pytest.raises(ValueError):
        store.add_highlight(0, 0, 20, 10, page=0)
    with pytest.raises(ValueError):
        store.add_highlight(0, 0, 20, 10, page=True)


def test_delete_unknown_id_is_noop(store):
    store.add_highlight(0, 0, 20, 10, page=1)
    before = store.snapshot()
    notified = []
    store.subscribe(notified.append)

    store.delete_highlight("nope")
    store.delete(SIGNATURE, "nope")

    assert store.snapshot() == before
    assert notified == []


def test_delete_by_kind(store):
    sig_id = store.add_signature(0, 0, 150, 60, b"png", page=1)
    text_id = store.add_text(0, 0, "a", 16, "#000000", page=1)
    store.delete(SIGNATURE, sig_id)
    store.delete(TEXT, text_id)
    assert len(store) == 0
    with pytest.raises(ValueError):
        store.delete("stamp", sig_id)


def test_reset_empties_all_collections_with_one_notification(store):
    store.add_signature(0, 0, 150, 60, b"png", page=1)
    store.add_text(0, 0, "a", 16, "#000000", page=2)
    store.add_highlight(0, 0, 20, 10, page=1)
    notified = []
    store.subscribe(notified.append)

    store.reset()

    assert store.signatures == [] and store.texts == [] and store.highlights == []
    assert len(notified) == 1
    assert notified[0].is_empty()


def test_listener_receives_snapshot_and_can_unsubscribe(store):
    received = []
    unsubscribe = store.subscribe(received.append)
    store.add_highlight(1, 2, 30, 10, page=1)
    unsubscribe()
    store.add_highlight(1, 2, 30, 10, page=1)

    assert len(received) == 1
    assert received[0].count() == 1
    assert received[0].highlights[0].x == 1


def test_annotations_on_page(store):
    first = store.add_highlight(0, 0, 20, 10, page=1)
    store.add_highlight(0, 0, 20, 10, page=2)
    assert [h.id for h in store.annotations_on_page(1).highlights] == [first]
