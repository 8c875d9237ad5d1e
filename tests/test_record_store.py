"""Tests for the local quote store."""

import json

import pytest

from quotesync.store import (
    ALL_CATEGORIES,
    ParseError,
    PersistenceError,
    Record,
    RecordOrigin,
    RecordStore,
    SessionSlots,
    ValidationError,
    default_seed
)
from quotesync.store.record_store import LAST_CATEGORY_KEY, QUOTES_KEY


class BrokenSlots:
    """Slot repository whose storage always fails."""

    def get(self, key):
        raise PersistenceError("disk unavailable")

    def set(self, key, value):
        raise PersistenceError("quota exceeded")


def texts(store):
    return [r.text for r in store.records]


class TestLoad:
    """Hydration from the persisted slot."""

    def test_empty_database_uses_seed(self, slots):
        store = RecordStore.open(slots)
        assert [r.text for r in store.records] == [r.text for r in default_seed()]
        assert store.categories() == ["Inspiration", "Life", "Philosophy", "Technology", "Wisdom"]

    def test_persisted_collection_is_restored(self, slots):
        slots.set(QUOTES_KEY, json.dumps([
            {"text": "hello", "category": "life", "author": "anon"},
            {"text": "from server", "category": "Server-1", "origin": "remote"}
        ]))

        store = RecordStore.open(slots)

        assert texts(store) == ["hello", "from server"]
        assert store.records[0].extra == {"author": "anon"}
        assert store.records[1].origin == RecordOrigin.REMOTE

    @pytest.mark.parametrize("raw", [
        "not json at all",
        json.dumps({"text": "x", "category": "y"}),
        json.dumps([]),
        json.dumps([{"text": "ok", "category": "c"}, {"text": 5, "category": "c"}]),
    ])
    def test_malformed_state_falls_back_to_seed(self, slots, seed, raw):
        slots.set(QUOTES_KEY, raw)

        store = RecordStore.open(slots, seed=seed)

        assert texts(store) == ["t1"]

    def test_missing_slot_reads_as_nothing_persisted(self, slots, seed):
        store = RecordStore(slots, seed=seed)
        assert store._read_persisted() is None

    @pytest.mark.parametrize("raw,reason", [
        ("[{", "not valid JSON"),
        ("\"quotes\"", "must be an array"),
        (json.dumps([{"text": "ok", "category": "c"}, {"category": "c"}]), "index 1"),
    ])
    def test_malformed_slot_raises_parse_error(self, slots, seed, raw, reason):
        slots.set(QUOTES_KEY, raw)
        store = RecordStore(slots, seed=seed)

        with pytest.raises(ParseError, match=reason):
            store._read_persisted()

    def test_unreadable_storage_falls_back_to_seed(self, seed):
        store = RecordStore.open(BrokenSlots(), seed=seed)
        assert texts(store) == ["t1"]


class TestSave:
    """Writing the persisted image."""

    def test_save_load_round_trip_is_stable(self, slots):
        slots.set(QUOTES_KEY, json.dumps([
            {"text": "a", "category": "X", "author": "someone"},
            {"text": "b", "category": "Y", "origin": "remote"}
        ]))
        store = RecordStore.open(slots)
        store.save()
        first_image = slots.get(QUOTES_KEY)

        RecordStore.open(slots).save()

        assert slots.get(QUOTES_KEY) == first_image

    def test_rewrite_keeps_foreign_key_order_and_explicit_origin(self, slots):
        image = json.dumps([
            {"category": "X", "author": "someone", "text": "a", "origin": "local"},
            {"origin": "remote", "text": "b", "category": "Y"},
            {"text": "c", "category": "Z"}
        ], ensure_ascii=False)
        slots.set(QUOTES_KEY, image)

        store = RecordStore.open(slots)
        assert store.save() is True

        assert slots.get(QUOTES_KEY) == image
        assert store.records[0].origin == RecordOrigin.LOCAL
        assert store.records[1].origin == RecordOrigin.REMOTE

    def test_unserializable_quote_does_not_escape_add(self, store, slots):
        image = slots.get(QUOTES_KEY)

        added = store.add(Record(text="x", category="c", extra={"obj": object()}))

        assert added is True
        assert texts(store) == ["t1", "x"]
        assert store.save() is False
        assert slots.get(QUOTES_KEY) == image

    def test_unserializable_quote_fails_export(self, store):
        store.add(Record(text="x", category="c", extra={"when": {1, 2}}))

        with pytest.raises(PersistenceError, match="cannot be serialized"):
            store.export_json()

    def test_save_failure_is_swallowed(self, seed):
        store = RecordStore(BrokenSlots(), seed=seed)
        store.load()

        assert store.save() is False
        assert store.add(Record(text="still works", category="c")) is True
        assert "still works" in texts(store)


class TestAdd:
    """Single-quote additions."""

    def test_add_appends_persists_and_indexes(self, slots):
        store = RecordStore.open(slots, seed=[])

        assert store.add(Record(text="hello", category="life")) is True

        assert store.categories() == ["life"]
        assert len(store) == 1
        persisted = json.loads(slots.get(QUOTES_KEY))
        assert persisted == [{"text": "hello", "category": "life"}]

    def test_add_trims_whitespace(self, store):
        store.add(Record(text="  spaced  ", category=" Cat "))
        assert store.records[-1].text == "spaced"
        assert store.records[-1].category == "Cat"

    @pytest.mark.parametrize("text,category", [
        ("", "x"),
        ("x", ""),
        ("   ", "x"),
        ("x", "\t"),
    ])
    def test_add_rejects_empty_fields(self, store, slots, text, category):
        before_records = store.records
        before_categories = store.categories()
        before_image = slots.get(QUOTES_KEY)

        assert store.add(Record(text=text, category=category)) is False

        assert store.records == before_records
        assert store.categories() == before_categories
        assert slots.get(QUOTES_KEY) == before_image


class TestMergeRemote:
    """Dedup-by-text merge of remote quotes."""

    def test_merge_skips_existing_text_regardless_of_category(self, store):
        added = store.merge_remote([
            Record(text="t1", category="X", origin=RecordOrigin.REMOTE),
            Record(text="t2", category="B", origin=RecordOrigin.REMOTE)
        ])

        assert added == 1
        assert [(r.text, r.category) for r in store.records] == [("t1", "A"), ("t2", "B")]
        assert store.categories() == ["A", "B"]

    def test_merge_dedups_within_one_batch(self, store):
        added = store.merge_remote([
            Record(text="new", category="first"),
            Record(text="new", category="second")
        ])

        assert added == 1
        assert store.records[-1].category == "first"

    def test_merge_is_idempotent(self, store):
        batch = [Record(text="t2", category="B"), Record(text="t3", category="C")]

        assert store.merge_remote(batch) == 2
        assert store.merge_remote(batch) == 0
        assert len(store) == 3

    def test_merge_compares_text_exactly(self, store):
        added = store.merge_remote([Record(text="T1", category="A"), Record(text="t1 ", category="A")])
        assert added == 2

    def test_merge_does_not_persist(self, store, slots):
        before = slots.get(QUOTES_KEY)
        store.merge_remote([Record(text="t2", category="B")])
        assert slots.get(QUOTES_KEY) == before


class TestCategories:
    """Category index and filtering."""

    def test_categories_are_sorted_and_case_sensitive(self, store):
        store.add(Record(text="q2", category="b"))
        store.add(Record(text="q3", category="B"))
        store.add(Record(text="q4", category="A"))

        assert store.categories() == ["A", "B", "b"]

    def test_filter_exact_match(self, store):
        store.add(Record(text="q2", category="a"))

        assert [r.text for r in store.filter_by_category("A")] == ["t1"]
        assert [r.text for r in store.filter_by_category(ALL_CATEGORIES)] == ["t1", "q2"]

    def test_filter_case_insensitive_when_configured(self, slots, seed):
        store = RecordStore.open(slots, seed=seed, category_case_sensitive=False)
        store.add(Record(text="q2", category="a"))

        assert [r.text for r in store.filter_by_category("A")] == ["t1", "q2"]

    def test_random_record_respects_filter(self, store):
        store.add(Record(text="q2", category="B"))

        assert store.random_record("B").text == "q2"
        assert store.random_record("missing") is None


class TestImportExport:
    """File-based import and export."""

    def test_import_never_dedups(self, store):
        result = store.import_records(json.dumps([{"text": "t1", "category": "A"}]))

        assert result.imported == 1
        assert len(store) == 2
        assert texts(store) == ["t1", "t1"]

    def test_import_keeps_only_valid_elements(self, store, slots):
        payload = json.dumps([
            {"text": "ok", "category": "c"},
            {"text": 123, "category": "c"},
            "garbage"
        ])

        result = store.import_records(payload)

        assert result.imported == 1
        assert result.rejected == 2
        assert len(store) == 2
        assert store.categories() == ["A", "c"]
        assert json.loads(slots.get(QUOTES_KEY))[-1] == {"text": "ok", "category": "c"}

    def test_import_rejects_non_array(self, store):
        with pytest.raises(ParseError):
            store.import_records(json.dumps({"text": "x", "category": "y"}))
        assert len(store) == 1

    def test_import_rejects_invalid_json(self, store):
        with pytest.raises(ParseError):
            store.import_records("[{")
        assert len(store) == 1

    def test_import_without_valid_elements_is_rejected(self, store):
        with pytest.raises(ValidationError):
            store.import_records(json.dumps([{"text": "", "category": "c"}, 7]))
        assert len(store) == 1

    def test_export_is_pretty_printed_collection(self, store):
        store.add(Record(text="hello", category="life", extra={"author": "me"}))

        exported = store.export_json()

        assert exported.startswith("[\n  {")
        assert json.loads(exported) == [
            {"text": "t1", "category": "A"},
            {"text": "hello", "category": "life", "author": "me"}
        ]


class TestPreferences:
    """Filter preference and session-scoped last quote."""

    def test_selected_category_is_restored_if_present(self, slots, seed, store):
        store.last_selected_category = "A"

        reopened = RecordStore.open(slots, seed=seed)

        assert slots.get(LAST_CATEGORY_KEY) == "A"
        assert reopened.restore_selected_category() == "A"

    def test_stale_selected_category_falls_back_to_all(self, store):
        store.last_selected_category = "gone"
        assert store.restore_selected_category() == ALL_CATEGORIES

    def test_last_displayed_lives_only_for_the_session(self, slots, seed):
        session = SessionSlots()
        store = RecordStore.open(slots, seed=seed, session_slots=session)

        store.last_displayed = store.records[0]
        assert store.last_displayed.text == "t1"

        store.close()
        assert store.last_displayed is None
