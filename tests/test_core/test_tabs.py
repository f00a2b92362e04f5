"""
Tests for query tabs and their persistence
"""

import json

import pytest

from filequery.core.errors import ValidationError
from filequery.core.tabs import (
    DEFAULT_TAB_SQL,
    JsonTabStore,
    MemoryTabStore,
    QueryTab,
    TabCategory,
    TabList,
    TabsSnapshot,
    migrate_state,
)


class TestTabList:
    """Test tab operations and invariants"""

    def test_default_tab(self):
        tabs = TabList()
        assert len(tabs) == 1
        assert tabs.active.sql_text == DEFAULT_TAB_SQL
        assert tabs.active.name == "Query 1"

    def test_new_tab_activates(self):
        tabs = TabList()
        tab = tabs.new_tab("SELECT 1")
        assert tabs.active_tab_id == tab.id
        assert tab.name == "Query 2"
        assert not tab.dirty

    def test_update_marks_dirty_and_execute_clears(self):
        tabs = TabList()
        tab = tabs.active
        tabs.update_text(tab.id, tab.sql_text)
        assert not tab.dirty
        tabs.update_text(tab.id, "SELECT 2")
        assert tab.dirty
        tabs.mark_executed(tab.id)
        assert not tab.dirty

    def test_rename(self):
        tabs = TabList()
        tabs.rename(tabs.active_tab_id, "  Report  ")
        assert tabs.active.name == "Report"
        with pytest.raises(ValidationError):
            tabs.rename(tabs.active_tab_id, "   ")

    def test_close_active_picks_right_neighbour(self):
        tabs = TabList()
        first = tabs.active
        second = tabs.new_tab()
        third = tabs.new_tab()
        tabs.activate(second.id)
        assert tabs.close_tab(second.id) is third
        assert tabs.close_tab(third.id) is first

    def test_close_inactive_keeps_active(self):
        tabs = TabList()
        first = tabs.active
        second = tabs.new_tab()
        tabs.close_tab(first.id)
        assert tabs.active_tab_id == second.id

    def test_close_last_creates_fresh(self):
        tabs = TabList()
        only = tabs.active
        fresh = tabs.close_tab(only.id)
        assert len(tabs) == 1
        assert fresh.id != only.id
        assert tabs.active_tab_id == fresh.id

    def test_unknown_tab(self):
        with pytest.raises(ValidationError):
            TabList().activate("nope")

    def test_bookmark_and_template(self):
        tabs = TabList()
        active = tabs.active
        bookmark = tabs.bookmark(active.id, name="Saved")
        assert bookmark.category is TabCategory.BOOKMARKS
        assert tabs.active_tab_id == active.id
        assert tabs.by_category("bookmarks") == [bookmark]

        template = tabs.new_tab("SELECT * FROM 'x.csv'", name="Peek", category=TabCategory.TEMPLATES)
        script = tabs.from_template(template.id)
        assert script.category is TabCategory.SCRIPTS
        assert script.sql_text == template.sql_text
        with pytest.raises(ValidationError):
            tabs.from_template(script.id)

    def test_duplicate_ids_rejected(self):
        tab = QueryTab(id="a", name="A")
        with pytest.raises(ValidationError):
            TabList([tab, QueryTab(id="a", name="B")])

    def test_unknown_active_falls_back(self):
        tabs = TabList([QueryTab(id="a", name="A"), QueryTab(id="b", name="B")], active_tab_id="zzz")
        assert tabs.active_tab_id == "a"


class TestPersistence:
    """Test snapshot storage and migration"""

    def test_json_roundtrip(self, tmp_path):
        store = JsonTabStore(tmp_path / "state.json")
        tabs = TabList()
        tabs.update_text(tabs.active_tab_id, "SELECT 7")
        tabs.bookmark(tabs.active_tab_id)
        store.save(tabs.snapshot())

        restored = TabList.from_snapshot(store.load())
        assert [t.to_dict() for t in restored] == [t.to_dict() for t in tabs]
        assert restored.active_tab_id == tabs.active_tab_id

    def test_missing_file(self, tmp_path):
        assert JsonTabStore(tmp_path / "none.json").load() is None
        assert len(TabList.from_snapshot(None)) == 1

    def test_legacy_list_migrated(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps([{"title": "Old", "content": "SELECT 1"}, {"content": "SELECT 2"}]))
        snapshot = JsonTabStore(path).load()
        assert [t.name for t in snapshot.tabs] == ["Old", "Query 2"]
        assert [t.sql_text for t in snapshot.tabs] == ["SELECT 1", "SELECT 2"]
        assert snapshot.active_tab_id == snapshot.tabs[0].id
        assert snapshot.version == 1

    def test_unknown_version(self):
        with pytest.raises(ValidationError):
            migrate_state({"version": 99, "tabs": []})

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")
        with pytest.raises(ValidationError):
            JsonTabStore(path).load()

    def test_invalid_tab_entry(self):
        with pytest.raises(ValidationError):
            migrate_state({"version": 1, "tabs": [{"id": "a", "name": ""}]})
        with pytest.raises(ValidationError):
            migrate_state({"version": 1, "tabs": [{"id": "a", "name": "A", "category": "junk"}]})

    def test_memory_store(self):
        store = MemoryTabStore()
        assert store.load() is None
        snapshot = TabsSnapshot(tabs=[QueryTab(id="a", name="A")], active_tab_id="a")
        store.save(snapshot)
        assert store.load().tabs[0].name == "A"
