import asyncio
from typing import Annotated

import pytest
from pydantic import StringConstraints

from core.entity_client import NetworkError
from portal.datasheet.validation import PydanticSchema
from portal.repositories.memory_impl import InMemoryEntityRepository
from portal.repositories.protocols import EntityRepository
from portal.services.event_bus import PortalEvent
from portal.stores.mutations import MutationPipeline, MutationState, MutationValidationError


def _ids(rows):
    return [r["id"] for r in rows]


@pytest.fixture
def repo(client_rows):
    return InMemoryEntityRepository(client_rows)


@pytest.fixture
def pipeline(store, repo, bus):
    p = MutationPipeline(store, repo, event_bus=bus)
    asyncio.run(p.refresh())
    return p


def test_memory_repository_satisfies_protocol(repo):
    assert isinstance(repo, EntityRepository)


def test_refresh_loads_store(pipeline, store, bus):
    assert _ids(store.state.data) == [1, 2, 3, 4]
    assert store.state.is_loading is False and store.state.error is None


def test_refresh_failure_records_error(pipeline, store, repo, bus):
    errors = []
    bus.subscribe(PortalEvent.ERROR_OCCURRED, lambda e: errors.append(e.payload))
    repo.fail_next("fetch_all", "Database offline", status=503)
    with pytest.raises(NetworkError):
        asyncio.run(pipeline.refresh())
    assert store.state.error == "Database offline"
    assert store.state.is_loading is False
    assert errors == [{"entity": "clients", "error": "Database offline"}]
    # data from the previous successful load is kept
    assert _ids(store.state.data) == [1, 2, 3, 4]


def test_update_commits_server_row(pipeline, store, repo):
    saved = asyncio.run(pipeline.update(2, {"name": "Beta Logistics"}))
    assert saved["name"] == "Beta Logistics"
    assert store.find_row(2)["name"] == "Beta Logistics"
    assert pipeline.history[-1].state is MutationState.COMMITTED
    assert repo.calls[-1] == "update"


def test_update_failure_rolls_back(pipeline, store, repo, bus):
    states = []
    bus.subscribe(PortalEvent.MUTATION_STATE_CHANGED, lambda e: states.append(e.payload["state"]))
    original = store.find_row(2)
    repo.fail_next("update", "Name already taken", status=409)
    with pytest.raises(NetworkError):
        asyncio.run(pipeline.update(2, {"name": "Acme Trading"}))
    assert store.find_row(2) == original
    m = pipeline.history[-1]
    assert m.state is MutationState.ROLLED_BACK
    assert m.error == "Name already taken"
    assert states == ["pending", "rolled_back"]


def test_update_of_unknown_row_raises(pipeline):
    with pytest.raises(KeyError):
        asyncio.run(pipeline.update(99, {"name": "x"}))


def test_validation_rejects_before_anything_is_sent(store, repo, bus):
    pipeline = MutationPipeline(
        store,
        repo,
        validators={"name": PydanticSchema(Annotated[str, StringConstraints(min_length=1)])},
        event_bus=bus,
    )
    asyncio.run(pipeline.refresh())
    repo.calls.clear()
    with pytest.raises(MutationValidationError) as exc:
        asyncio.run(pipeline.update(1, {"name": ""}))
    assert exc.value.field_name == "name"
    assert repo.calls == []
    assert store.find_row(1)["name"] == "Acme Trading"


def test_create_adds_row_with_server_id(pipeline, store):
    row = asyncio.run(pipeline.create({"name": "Delta Co"}))
    assert row["id"] == 5
    assert store.find_row(5)["name"] == "Delta Co"
    assert pipeline.history[-1].row_ids == (5,)


def test_create_failure_leaves_store_unchanged(pipeline, store, repo):
    repo.fail_next("create")
    with pytest.raises(NetworkError):
        asyncio.run(pipeline.create({"name": "Delta Co"}))
    assert _ids(store.state.data) == [1, 2, 3, 4]
    assert pipeline.history[-1].state is MutationState.ROLLED_BACK


def test_bulk_delete_commits_and_refetches(pipeline, store, repo):
    store.set_selected_rows([1, 2, 3])
    asyncio.run(pipeline.bulk_delete([1, 3]))
    assert _ids(store.state.data) == [2, 4]
    assert store.state.selected_rows == (2,)
    assert store.state.pending_delete_ids == frozenset()
    assert repo.calls[-2:] == ["bulk_delete", "fetch_all"]


def test_single_delete_uses_item_endpoint(pipeline, store, repo):
    asyncio.run(pipeline.delete(4))
    assert _ids(store.state.data) == [1, 2, 3]
    assert "delete" in repo.calls


def test_bulk_delete_failure_restores_rows_in_place(pipeline, store, repo):
    repo.fail_next("bulk_delete", "Forbidden", status=403)
    with pytest.raises(NetworkError) as exc:
        asyncio.run(pipeline.bulk_delete([1, 3]))
    assert exc.value.status == 403
    assert _ids(store.state.data) == [1, 2, 3, 4]
    assert store.state.pending_delete_ids == frozenset()
    assert pipeline.history[-1].state is MutationState.ROLLED_BACK


def test_rows_hidden_while_delete_is_pending(store, repo, bus):
    seen = []

    class SlowRepo:
        def __getattr__(self, name):
            return getattr(repo, name)

        async def bulk_delete(self, ids):
            seen.append(_ids(store.get_visible_rows()))
            await repo.bulk_delete(ids)

    pipeline = MutationPipeline(store, SlowRepo(), event_bus=bus)
    asyncio.run(pipeline.refresh())
    asyncio.run(pipeline.bulk_delete([2, 4]))
    assert seen == [[1, 3]]


def test_empty_bulk_delete_is_a_no_op(pipeline, repo):
    before = list(repo.calls)
    asyncio.run(pipeline.bulk_delete([]))
    assert repo.calls == before
