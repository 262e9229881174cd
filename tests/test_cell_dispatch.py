import gc
import weakref

import pytest

from portal.datasheet.cell_dispatch import Cell, CellDispatcher, DuplicateColumnError
from portal.datasheet.columns import ColumnDescriptor, int_column, text_column
from portal.datasheet.key_column import EmptyCell, key_column


def _columns():
    return [
        key_column("name", text_column(title="Name")),
        key_column("seats", int_column(disabled=lambda ctx: ctx.row_data is not None and ctx.row_data > 100)),
        ColumnDescriptor(id="status", cell_class_name=lambda ctx: "warn" if ctx.row_data.get("seats") == 0 else None),
    ]


def _rows():
    return [{"id": 1, "name": "Acme", "seats": 10}, {"id": 2, "name": "", "seats": 500}]


def test_duplicate_column_ids_rejected():
    with pytest.raises(DuplicateColumnError):
        CellDispatcher([key_column("name", text_column()), key_column("name", int_column())])


def test_column_without_id_rejected():
    with pytest.raises(ValueError):
        CellDispatcher([text_column()])


def test_resolution_of_props():
    d = CellDispatcher(_columns(), _rows())
    assert d.is_disabled(0, "seats") is False
    assert d.is_disabled(1, "seats") is True
    assert d.is_empty(1, "name") is True
    assert d.is_empty(0, "name") is False
    assert d.class_name(0, "status") is None


def test_paste_commits_and_notifies():
    changes = []
    d = CellDispatcher(_columns(), _rows(), on_row_change=lambda i, row: changes.append((i, row)))
    assert d.paste(0, "seats", "1,250") is True
    assert d.rows[0] == {"id": 1, "name": "Acme", "seats": 1250}
    assert changes == [(0, d.rows[0])]


def test_paste_into_disabled_cell_is_refused():
    d = CellDispatcher(_columns(), _rows())
    before = d.rows[1]
    assert d.paste(1, "seats", "3") is False
    assert d.rows[1] is before


def test_paste_without_paste_fn_is_refused():
    d = CellDispatcher(_columns(), _rows())
    assert d.paste(0, "status", "x") is False


def test_delete_reports_whether_row_changed():
    d = CellDispatcher(_columns(), _rows())
    assert d.delete(0, "name") is True
    assert d.rows[0]["name"] is None
    assert d.delete(0, "status") is False


def test_commit_same_row_object_is_silent():
    changes = []
    rows = _rows()
    d = CellDispatcher(_columns(), rows, on_row_change=lambda i, row: changes.append(i))
    d.commit_row(0, d.rows[0])
    assert changes == []


def test_render_builds_cell():
    d = CellDispatcher(_columns(), _rows())
    cell = d.render(1, "seats", active=True, focus=True)
    assert isinstance(cell, Cell)
    assert cell.disabled is True
    assert cell.content == EmptyCell(row_index=1, column_id="seats")
    status = d.render(0, "status")
    assert status.content == EmptyCell(row_index=0, column_id="status")


def test_render_passes_stable_setter_to_component():
    seen = []
    inner = text_column(component=lambda p: seen.append(p) or p.row_data)
    d = CellDispatcher([key_column("name", inner)], _rows())
    assert d.render(0, "name").content == "Acme"
    d.render(0, "name")
    assert seen[0].set_row_data is seen[1].set_row_data
    seen[0].set_row_data("Acme Ltd")
    assert d.rows[0]["name"] == "Acme Ltd"


def test_render_focus_suppressed_on_disabled_cell():
    props = []
    inner = int_column(component=lambda p: props.append(p), disabled=True)
    d = CellDispatcher([key_column("seats", inner)], _rows())
    d.render(0, "seats", focus=True)
    assert props[0].focus is False and props[0].disabled is True


def test_copy_and_paste_ranges():
    d = CellDispatcher(_columns(), _rows())
    assert d.copy_range([0, 1], ["name", "seats"]) == [["Acme", "10"], ["", "500"]]
    written = d.paste_range(0, ["name", "seats"], [["A", "1"], ["B", "2"], ["C", "3"]])
    # second row's seats cell is disabled, third line has no row
    assert written == 3
    assert [r["name"] for r in d.rows] == ["A", "B"]
    assert d.rows[1]["seats"] == 500


def _capturing_name_column(seen):
    return key_column("name", text_column(component=lambda p: seen.append(p.set_row_data)))


def test_captured_setter_keeps_later_edits_to_other_columns():
    seen = []
    d = CellDispatcher([_capturing_name_column(seen), key_column("seats", int_column())], _rows())
    d.render(0, "name")
    d.paste(0, "seats", "99")
    seen[0]("Acme Ltd")
    assert d.rows[0] == {"id": 1, "name": "Acme Ltd", "seats": 99}


def test_captured_setter_follows_its_row_after_reorder():
    seen = []
    rows = _rows()
    d = CellDispatcher([_capturing_name_column(seen)], rows)
    d.render(0, "name")
    d.set_rows([rows[1], rows[0]])
    seen[0]("Acme Ltd")
    assert [r["id"] for r in d.rows] == [2, 1]
    assert d.rows[0]["name"] == ""
    assert d.rows[1]["name"] == "Acme Ltd"


def test_setter_stays_stable_across_reorder():
    seen = []
    rows = _rows()
    d = CellDispatcher([_capturing_name_column(seen)], rows)
    d.render(0, "name")
    d.set_rows([rows[1], rows[0]])
    d.render(1, "name")
    assert seen[0] is seen[1]


def test_setter_for_removed_row_is_ignored():
    seen = []
    changes = []
    rows = _rows()
    d = CellDispatcher([_capturing_name_column(seen)], rows, on_row_change=lambda i, row: changes.append(i))
    d.render(0, "name")
    d.set_rows([rows[1]])
    seen[0]("Acme Ltd")
    assert d.rows == [rows[1]]
    assert changes == []


def test_positional_setter_expires_when_rows_replaced():
    seen = []
    rows = [{"name": "a"}, {"name": "b"}]
    d = CellDispatcher([_capturing_name_column(seen)], rows)
    d.render(0, "name")
    d.set_rows([{"name": "c"}, {"name": "d"}])
    seen[0]("x")
    assert [r["name"] for r in d.rows] == ["c", "d"]


def test_dispatchers_are_freed_after_rendering_shared_columns():
    shared = [key_column("name", text_column(component=lambda p: p.row_data))]
    refs = []
    for _ in range(50):
        d = CellDispatcher(shared, _rows())
        d.render(0, "name")
        d.render(1, "name")
        refs.append(weakref.ref(d))
    del d
    gc.collect()
    assert all(r() is None for r in refs)
