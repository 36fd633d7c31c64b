"""Tests for the loaded-row cache."""

from tablesession.page_store import PageStore

COLUMNS = ["id", "name", "city"]


def people(count):
    return [[i, f"person {i}", "Oslo" if i % 2 else "Bergen"] for i in range(1, count + 1)]


def make_store(count=10, total=40):
    store = PageStore(COLUMNS, ["id"])
    store.replace_page(people(count), total)
    return store


class TestPaging:
    """Test page replacement and appending."""

    def test_replace_page(self):
        store = make_store()
        assert len(store) == 10
        assert store.total_count == 40
        assert store.has_more

    def test_append_keeps_order(self):
        """Appended rows follow the cached ones in response order."""
        store = make_store()
        added = store.append_page([[12, "x", None], [11, "y", None]])
        assert added == 2
        assert [row[0] for row in store.rows][-2:] == [12, 11]

    def test_has_more_needs_count(self):
        """Without a count there is nothing more to load."""
        store = PageStore(COLUMNS, ["id"])
        store.replace_page(people(3), None)
        assert not store.has_more

    def test_has_more_false_when_all_loaded(self):
        store = make_store(count=5, total=5)
        assert not store.has_more

    def test_set_columns_drops_rows(self):
        """Changing the layout forgets cached rows and count."""
        store = make_store()
        store.set_columns(["id"], ["id"])
        assert store.rows == []
        assert store.total_count is None


class TestLookup:
    """Test identity lookups."""

    def test_find_and_key_values(self):
        store = make_store()
        assert store.find("5") == 4
        assert store.primary_key_values("5") == [5]

    def test_unknown_identity(self):
        store = make_store()
        assert store.find("999") is None
        assert store.primary_key_values("999") is None

    def test_empty_identity_never_matches(self):
        """Keyless rows are not addressable."""
        store = PageStore(COLUMNS, [])
        store.replace_page(people(3), 3)
        assert store.identities() == ["", "", ""]
        assert store.find("") is None


class TestMutations:
    """Test local mirroring of remote writes."""

    def test_cell_update_touches_one_cell(self):
        """Renaming row 5 to Bob leaves every other cell alone."""
        store = make_store()
        before = [list(row) for row in store.rows]

        assert store.apply_cell_update("5", "name", "Bob")

        assert store.rows[4] == [5, "Bob", "Oslo"]
        for index, row in enumerate(store.rows):
            if index != 4:
                assert row == before[index]
        assert store.total_count == 40

    def test_cell_update_unknown_row_or_column(self):
        store = make_store()
        assert not store.apply_cell_update("999", "name", "Bob")
        assert not store.apply_cell_update("5", "nope", "Bob")

    def test_remove_lowers_count(self):
        """Deleting rows 5 and 9 takes the count from 40 to 38."""
        store = make_store()

        removed = store.remove_by_identities({"5", "9"})

        assert removed == 2
        assert store.total_count == 38
        assert len(store) == 8
        assert store.find("5") is None
        assert store.find("9") is None
        assert [row[0] for row in store.rows] == [1, 2, 3, 4, 6, 7, 8, 10]

    def test_remove_counts_only_cached_rows(self):
        """Identities that are not loaded do not change the count."""
        store = make_store()
        assert store.remove_by_identities({"5", "777"}) == 1
        assert store.total_count == 39

    def test_count_never_negative(self):
        store = PageStore(COLUMNS, ["id"])
        store.replace_page(people(3), 1)
        store.remove_by_identities({"1", "2", "3"})
        assert store.total_count == 0

    def test_increment_on_insert(self):
        store = make_store()
        store.increment_count_on_insert()
        assert store.total_count == 41

    def test_snapshot_is_a_copy(self):
        store = make_store(count=2, total=2)
        snapshot = store.snapshot(generation=3)
        snapshot.rows[0][1] = "changed"
        assert store.rows[0][1] == "person 1"
        assert snapshot.generation == 3
