import json
from datetime import datetime, timedelta, timezone

import pytest

from talknotes.errors import PersistenceError, StorageError, ValidationError
from talknotes.models import NoteFilter, PALETTE, UNTITLED
from talknotes.note_store import ACTIVE_KEY, TRASH_KEY, NoteStore
from talknotes.storage import MemoryStore


class StepClock:
    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        value = self.now
        self.now = self.now + self.step
        return value


class FlakyStore(MemoryStore):
    def __init__(self):
        super().__init__()
        self.broken = False

    def set(self, key, value):
        if self.broken:
            raise StorageError("disk full")
        super().set(key, value)


def make_store(kv=None, clock=None):
    return NoteStore(kv if kv is not None else MemoryStore(), clock=clock or StepClock())


def stored(kv, key):
    return json.loads(kv.get(key))


def test_create_adds_note_at_head_and_persists():
    kv = MemoryStore()
    store = make_store(kv)
    first = store.create("Buy milk", "Groceries")
    second = store.create("Call Sam", "", "work")

    assert [n.id for n in store.active] == [second.id, first.id]
    assert first.title == "Groceries"
    assert first.text == "Buy milk"
    assert first.category == "personal"
    assert first.is_favorited is False
    assert second.title == UNTITLED
    assert [r["id"] for r in stored(kv, ACTIVE_KEY)] == [second.id, first.id]
    assert stored(kv, ACTIVE_KEY)[0]["createdAt"] == second.created_at


def test_create_rejects_empty_text_without_touching_store():
    kv = MemoryStore()
    store = make_store(kv)

    with pytest.raises(ValidationError):
        store.create("", "X")
    with pytest.raises(ValidationError):
        store.create("   \n ", "X")

    assert store.active == ()
    assert kv.get(ACTIVE_KEY) is None


def test_create_rejects_view_categories():
    store = make_store()
    for view in ("all", "favorites", "trash", "bogus"):
        with pytest.raises(ValidationError):
            store.create("text", "title", view)
    assert store.active == ()


def test_color_index_cycles_through_palette():
    store = make_store()
    notes = [store.create(f"note {i}") for i in range(len(PALETTE) + 2)]
    assert [n.color_index for n in notes] == [0, 1, 2, 3, 4, 0, 1]
    assert notes[1].color == PALETTE[1]


def test_ids_are_unique_across_active_and_trash_with_frozen_clock():
    frozen = StepClock(step=timedelta(0))
    store = make_store(clock=frozen)
    a = store.create("a")
    store.soft_delete(a.id)
    b = store.create("b")
    c = store.create("c")

    ids = [a.id, b.id, c.id]
    assert len(set(ids)) == 3
    assert b.id > a.id and c.id > b.id


def test_update_applies_partial_patch():
    store = make_store()
    note = store.create("old text", "Old title")

    updated = store.update(note.id, title="New title")
    assert updated.title == "New title"
    assert updated.text == "old text"

    updated = store.update(note.id, text="new text", title="  ")
    assert updated.text == "new text"
    assert updated.title == UNTITLED
    assert updated.created_at == note.created_at
    assert updated.color_index == note.color_index

    assert store.update(12345, text="nope") is None


def test_toggle_favorite_flips_flag():
    store = make_store()
    note = store.create("text")
    assert store.toggle_favorite(note.id).is_favorited is True
    assert store.toggle_favorite(note.id).is_favorited is False
    assert store.toggle_favorite(999) is None


def test_toggle_todo_line_cycles_markers():
    store = make_store()
    note = store.create("[ ] Milk\n[x] Eggs\nBread", "Groceries", "todo")

    assert store.toggle_todo_line(note.id, 0).text == "[x] Milk\n[x] Eggs\nBread"
    assert store.toggle_todo_line(note.id, 0).text == "[ ] Milk\n[x] Eggs\nBread"
    assert store.toggle_todo_line(note.id, 1).text == "[ ] Milk\n[ ] Eggs\nBread"


def test_toggle_todo_line_plain_line_does_not_return_to_plain():
    store = make_store()
    note = store.create("first\nBread", "List", "todo")

    once = store.toggle_todo_line(note.id, 1)
    assert once.text.split("\n")[1] == "[ ] Bread"
    twice = store.toggle_todo_line(note.id, 1)
    assert twice.text.split("\n")[1] == "[x] Bread"


def test_toggle_todo_line_out_of_range_is_noop():
    kv = MemoryStore()
    store = make_store(kv)
    note = store.create("[ ] one", "List", "todo")
    before = kv.get(ACTIVE_KEY)

    assert store.toggle_todo_line(note.id, 1) is None
    assert store.toggle_todo_line(note.id, -1) is None
    assert store.get(note.id).text == "[ ] one"
    assert kv.get(ACTIVE_KEY) == before


def test_soft_delete_then_restore_preserves_fields():
    kv = MemoryStore()
    store = make_store(kv)
    other = store.create("other")
    note = store.create("keep me", "Keep", "ideas")
    store.toggle_favorite(note.id)
    before = store.get(note.id)

    store.soft_delete(note.id)
    assert store.get(note.id) is None
    assert store.trash[0] == before
    assert [r["id"] for r in stored(kv, TRASH_KEY)] == [note.id]

    store.soft_delete(other.id)
    restored = store.restore(note.id)
    assert restored == before
    assert store.active[0] == before
    assert store.get_trashed(note.id) is None
    assert [r["id"] for r in stored(kv, ACTIVE_KEY)] == [note.id]


def test_soft_delete_and_restore_unknown_ids_are_noops():
    store = make_store()
    note = store.create("text")
    assert store.soft_delete(999) is None
    assert store.restore(note.id) is None
    assert len(store.active) == 1


def test_purge_after_soft_delete_is_permanent():
    kv = MemoryStore()
    store = make_store(kv)
    note = store.create("Buy milk", "Groceries")
    store.soft_delete(note.id)

    assert store.purge(note.id).id == note.id
    assert store.trash == ()
    assert store.restore(note.id) is None
    assert store.active == ()
    assert stored(kv, TRASH_KEY) == []
    assert store.purge(note.id) is None


def test_clear_trash_purges_everything():
    store = make_store()
    for text in ("a", "b"):
        store.soft_delete(store.create(text).id)
    assert store.clear_trash() == 2
    assert store.trash == ()
    assert store.clear_trash() == 0


def test_favorites_view_ignores_search_and_sorts_newest_first():
    store = make_store()
    old = store.create("alpha", "Old")
    store.create("beta", "Plain")
    new = store.create("gamma", "New")
    store.toggle_favorite(old.id)
    store.toggle_favorite(new.id)

    result = store.query(NoteFilter("favorites", search="no match anywhere"))
    assert [n.id for n in result] == [new.id, old.id]


def test_search_is_case_insensitive_over_title_and_text():
    store = make_store()
    a = store.create("Remember the MILK", "Errands")
    b = store.create("unrelated", "Milk run", "work")
    store.create("nothing here", "Other")

    assert [n.id for n in store.query(NoteFilter("all", "milk"))] == [b.id, a.id]
    assert [n.id for n in store.query(NoteFilter("work", "milk"))] == [b.id]
    assert store.query(NoteFilter("ideas", "")) == []


def test_query_puts_favorites_first_then_newest():
    store = make_store()
    a = store.create("a")
    b = store.create("b")
    c = store.create("c")
    store.toggle_favorite(a.id)

    assert [n.id for n in store.query()] == [a.id, c.id, b.id]


def test_trash_view_returns_trash_verbatim():
    store = make_store()
    a = store.create("apple")
    b = store.create("banana")
    store.soft_delete(a.id)
    store.soft_delete(b.id)

    result = store.query(NoteFilter("trash", search="apple"))
    assert [n.id for n in result] == [b.id, a.id]


def test_query_rejects_unknown_view():
    with pytest.raises(ValidationError):
        make_store().query(NoteFilter("archive"))


def test_query_results_are_copies():
    store = make_store()
    note = store.create("text", "Title")
    store.query()[0].title = "changed"
    assert store.get(note.id).title == "Title"


def test_export_import_roundtrip():
    store = make_store()
    store.create("one", "One", "work")
    fav = store.create("two\nlines", "Two", "todo")
    store.toggle_favorite(fav.id)
    before = sorted(store.active, key=lambda n: n.id)

    exported = store.export_all()
    other = make_store()
    assert other.import_all(exported) == 2
    assert sorted(other.active, key=lambda n: n.id) == before

    assert store.import_all(exported) == 2
    assert sorted(store.active, key=lambda n: n.id) == before


def test_import_rejects_malformed_input_and_keeps_state():
    kv = MemoryStore()
    store = make_store(kv)
    note = store.create("keep")
    before = kv.get(ACTIVE_KEY)

    for bad in ("{not json", '{"a": 1}', "[1, 2]"):
        with pytest.raises(ValidationError):
            store.import_all(bad)

    assert [n.id for n in store.active] == [note.id]
    assert kv.get(ACTIVE_KEY) == before


def test_import_replaces_null_and_mistyped_fields_with_defaults():
    store = make_store()
    payload = json.dumps(
        [
            {"id": 1, "title": None, "text": None, "category": "todo",
             "createdAt": None, "isFavorited": "false", "colorIndex": "2"},
            {"id": 2, "title": 7, "text": ["a"], "category": None,
             "createdAt": 12, "isFavorited": 1, "colorIndex": True},
        ]
    )
    assert store.import_all(payload) == 2

    first, second = store.get(1), store.get(2)
    assert (first.title, first.text, first.created_at) == (UNTITLED, "", "")
    assert first.is_favorited is False
    assert first.color_index == 0
    assert first.color == PALETTE[0]
    assert (second.title, second.text, second.category) == (UNTITLED, "", "personal")
    assert second.is_favorited is False
    assert second.color_index == 0

    assert store.query(NoteFilter(view="all", search="none")) == []
    assert [n.id for n in store.query()] == [2, 1]
    assert store.toggle_todo_line(1, 0).text == "[ ] "


def test_import_leaves_trash_alone_and_reassigns_colliding_ids():
    store = make_store()
    trashed = store.create("trashed")
    store.soft_delete(trashed.id)
    payload = json.dumps(
        [
            {"id": trashed.id, "title": "Clash", "text": "x", "category": "work",
             "createdAt": "2025-01-01T00:00:00.000Z", "isFavorited": False, "colorIndex": 2},
            {"id": 7, "title": "Seven", "text": "y"},
            {"id": 7, "title": "Seven again", "text": "z"},
        ]
    )

    assert store.import_all(payload) == 3
    ids = [n.id for n in store.active]
    assert len(set(ids + [trashed.id])) == 4
    assert ids[1] == 7
    assert store.trash[0].id == trashed.id
    assert store.active[1].category == "personal"


def test_persistence_failure_keeps_memory_and_reports():
    kv = FlakyStore()
    store = make_store(kv)
    store.create("saved")
    kv.broken = True

    with pytest.raises(PersistenceError) as info:
        store.create("unsaved")
    assert info.value.result.text == "unsaved"
    assert len(store.active) == 2
    assert len(stored(kv, ACTIVE_KEY)) == 1

    kv.broken = False
    store.toggle_favorite(info.value.result.id)
    assert len(stored(kv, ACTIVE_KEY)) == 2


def test_store_loads_existing_collections():
    kv = MemoryStore()
    first = make_store(kv)
    note = first.create("persisted", "P")
    gone = first.create("gone")
    first.soft_delete(gone.id)

    second = make_store(kv)
    assert second.get(note.id) == note
    assert second.get_trashed(gone.id).text == "gone"


def test_store_ignores_corrupt_saved_data():
    kv = MemoryStore({ACTIVE_KEY: "{oops", TRASH_KEY: "[]"})
    store = make_store(kv)
    assert store.active == ()
    assert store.trash == ()


def test_export_and_import_files(tmp_path):
    store = make_store()
    store.create("file note", "File")
    path = store.export_to_file(str(tmp_path), datetime(2026, 5, 4))
    assert path.endswith("talknotes_2026-05-04.json")

    other = make_store()
    assert other.import_from_file(path) == 1
    assert other.active[0].title == "File"

    with pytest.raises(ValidationError):
        other.import_from_file(str(tmp_path / "missing.json"))


def test_end_to_end_typed_note_lifecycle():
    store = make_store()
    with pytest.raises(ValidationError):
        store.create("", "X")
    assert store.active == ()

    note = store.create("Buy milk", "Groceries")
    assert len(store.active) == 1
    assert (note.title, note.text, note.is_favorited) == ("Groceries", "Buy milk", False)

    store.soft_delete(note.id)
    store.purge(note.id)
    assert store.get(note.id) is None
    assert store.get_trashed(note.id) is None
