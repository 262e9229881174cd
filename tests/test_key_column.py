import logging
from typing import Annotated

from pydantic import StringConstraints

from portal.datasheet.columns import CellProps, ColumnDescriptor, text_column
from portal.datasheet.key_column import EmptyCell, KeyCellComponent, KeyColumnData, field_setter, key_column
from portal.datasheet.props import CellContext, Computed, Static, resolve
from portal.datasheet.validation import PydanticSchema

NonEmpty = PydanticSchema(Annotated[str, StringConstraints(min_length=1)])


def _identity_column(**kwargs):
    return ColumnDescriptor(
        copy_value=lambda value, index: value,
        delete_value=lambda value, index: "",
        paste_value=lambda value, pasted, index: pasted,
        **kwargs,
    )


def test_paste_writes_only_the_bound_field():
    col = key_column("email", _identity_column())
    row = {"id": 1, "email": "old@x.com"}
    assert col.paste_value(row, "new@x.com", 0) == {"id": 1, "email": "new@x.com"}
    assert row == {"id": 1, "email": "old@x.com"}


def test_copy_reads_the_bound_field():
    col = key_column("email", _identity_column())
    assert col.copy_value({"id": 1, "email": "a@b.c"}, 0) == "a@b.c"


def test_missing_inner_operations():
    col = key_column("email", ColumnDescriptor())
    row = {"id": 1, "email": "a@b.c"}
    assert col.copy_value(row, 0) is None
    assert col.paste_value(row, "x", 0) == {"id": 1, "email": None}
    assert col.delete_value(row, 0) == {"id": 1, "email": None}


def test_other_fields_untouched_by_every_operation():
    col = key_column("email", text_column())
    row = {"id": 7, "name": "Acme", "email": "a@b.c", "tags": ["x"]}
    for result in (col.paste_value(row, " new@b.c\n", 0), col.delete_value(row, 0)):
        assert {k: v for k, v in result.items() if k != "email"} == {"id": 7, "name": "Acme", "tags": ["x"]}


def test_descriptor_identity():
    col = key_column("email", text_column(title="E-mail"))
    assert col.id == "email"
    assert col.title == "E-mail"
    assert isinstance(col.column_data, KeyColumnData)
    assert key_column("phone", text_column()).title == "phone"


def test_delete_vetoed_by_validation_returns_same_row(caplog):
    col = key_column("name", _identity_column(validation_schema=NonEmpty))
    row = {"id": 1, "name": ""}
    with caplog.at_level(logging.WARNING, logger="portal.datasheet.key_column"):
        result = col.delete_value(row, 0)
    assert result is row
    assert "Change prevented" in caplog.text
    assert "'name'" in caplog.text


def test_vetoed_delete_is_idempotent():
    col = key_column("name", _identity_column(validation_schema=NonEmpty))
    row = {"id": 1, "name": "Acme"}
    once = col.delete_value(row, 0)
    twice = col.delete_value(once, 0)
    assert once is row and twice is row


def test_schema_found_in_column_data():
    inner = ColumnDescriptor(
        delete_value=lambda value, index: "",
        column_data={"validation_schema": NonEmpty},
    )
    row = {"id": 1, "name": "Acme"}
    assert key_column("name", inner).delete_value(row, 0) is row


def test_valid_delete_applies():
    col = key_column("email", text_column(validation_schema=PydanticSchema(str | None)))
    row = {"id": 1, "email": "a@b.c"}
    assert col.delete_value(row, 0) == {"id": 1, "email": None}


def test_computed_props_see_the_field_value():
    seen = []

    def disabled(ctx):
        seen.append(ctx.row_data)
        return ctx.row_data == "locked"

    col = key_column("status", ColumnDescriptor(disabled=disabled, cell_class_name=lambda ctx: f"s-{ctx.row_data}"))
    assert resolve(col.disabled, CellContext({"id": 1, "status": "locked"}, 0)) is True
    assert resolve(col.disabled, CellContext({"id": 2, "status": "open"}, 1)) is False
    assert seen == ["locked", "open"]
    assert resolve(col.cell_class_name, CellContext({"status": "open"}, 0)) == "s-open"
    assert isinstance(col.disabled, Computed)


def test_static_props_pass_through():
    col = key_column("status", ColumnDescriptor(disabled=True))
    assert col.disabled == Static(True)


def _props(row, set_row, component_col, index=0, memo=None):
    return CellProps(
        row_data=row,
        set_row_data=set_row,
        row_index=index,
        column_id="email",
        column_data=KeyColumnData("email", component_col),
        memo=memo,
    )


class _RowHolder:
    """Minimal row owner: applies a new row or an updater to its current row."""

    def __init__(self, row):
        self.row = row

    def set_row(self, update):
        self.row = update(self.row) if callable(update) else update


def test_component_missing_renders_empty_cell():
    component = KeyCellComponent()
    out = component(_props({"email": "a"}, lambda r: None, ColumnDescriptor()))
    assert out == EmptyCell(row_index=0, column_id="email")


def test_inner_component_receives_field_value_and_default_column_data():
    received = []
    inner = ColumnDescriptor(component=lambda p: received.append(p) or "rendered")
    out = KeyCellComponent()(_props({"email": "a@b.c"}, lambda r: None, inner))
    assert out == "rendered"
    assert received[0].row_data == "a@b.c"
    assert received[0].column_data == {}


def test_setter_is_stable_across_renders_of_one_cell():
    setters = []
    inner = ColumnDescriptor(component=lambda p: setters.append(p.set_row_data))
    component = KeyCellComponent()
    holder = _RowHolder({"id": 1, "email": "a"})
    memo = {}
    set_row = holder.set_row
    component(_props(holder.row, set_row, inner, memo=memo))
    component(_props(holder.row, set_row, inner, memo=memo))
    assert setters[0] is setters[1]


def test_setter_rebuilt_when_row_setter_changes():
    setters = []
    inner = ColumnDescriptor(component=lambda p: setters.append(p.set_row_data))
    component = KeyCellComponent()
    memo = {}
    first, second = _RowHolder({"email": "a"}), _RowHolder({"email": "a"})
    component(_props(first.row, first.set_row, inner, memo=memo))
    component(_props(second.row, second.set_row, inner, memo=memo))
    assert setters[0] is not setters[1]
    setters[1]("b")
    assert second.row == {"email": "b"} and first.row == {"email": "a"}


def test_captured_setter_merges_into_row_current_at_commit():
    setters = []
    inner = ColumnDescriptor(component=lambda p: setters.append(p.set_row_data))
    holder = _RowHolder({"id": 1, "email": "a", "name": "old"})
    KeyCellComponent()(_props(holder.row, holder.set_row, inner, memo={}))

    # the row changes without a re-render of this cell
    holder.set_row({**holder.row, "name": "renamed"})
    setters[0]("b")
    assert holder.row == {"id": 1, "email": "b", "name": "renamed"}


def test_component_keeps_no_per_table_state():
    component = KeyCellComponent()
    inner = ColumnDescriptor(component=lambda p: None)
    for _ in range(5):
        component(_props({"email": "a"}, _RowHolder({}).set_row, inner, memo={}))
    assert vars(component) == {}


def test_field_setter_without_memo_still_writes():
    holder = _RowHolder({"id": 1, "email": "a"})
    field_setter("email", holder.set_row)("z")
    assert holder.row == {"id": 1, "email": "z"}
