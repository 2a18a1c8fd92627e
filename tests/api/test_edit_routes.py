"""Edit route tests"""
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from vudl_admin.api.dependencies import get_resolver
from vudl_admin.api.edit import propagate_state, router, running_propagations
from vudl_admin.api.schemas import PropagateStateRequest
from vudl_admin.auth import verify_token
from vudl_admin.config import config
from vudl_admin.hierarchy import ModelTag, ObjectState, SortOn, StatePropagator, TreeNode

PID = "foo:123"
PARENT = "foo:100"
TEXT = {"Content-Type": "text/plain"}


@pytest.fixture
def index(solr_reply):
    mock = AsyncMock()
    mock.query.return_value = solr_reply(foo="bar")
    return mock


@pytest.fixture
def app(index):
    """FastAPI app with the edit router and an authenticated caller"""
    app = FastAPI()
    app.include_router(router)
    app.state.index = index
    app.dependency_overrides[verify_token] = lambda: "test"
    yield app
    app.dependency_overrides = {}


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def use_objects(app, make_store):
    """Serve the given descriptors from a mock repository store"""

    def _use(*descriptors):
        store = make_store(*descriptors)
        app.state.repository = store
        return store

    return _use


def test_requires_bearer_token(app, use_objects, monkeypatch):
    monkeypatch.setattr(config, "API_TOKENS", ["secret"])
    app.dependency_overrides = {}
    use_objects()
    client = TestClient(app)

    assert client.get(f"/edit/object/{PID}/children").status_code == 401
    denied = client.get(
        f"/edit/object/{PID}/children", headers={"Authorization": "Bearer wrong"}
    )
    assert denied.status_code == 401
    allowed = client.get(
        f"/edit/object/{PID}/children", headers={"Authorization": "Bearer secret"}
    )
    assert allowed.status_code == 200


def test_uninitialized_repository(client):
    response = client.put(f"/edit/object/{PID}/parent/{PARENT}", content="2", headers=TEXT)
    assert response.status_code == 500


class TestCreateObject:
    def test_missing_model(self, client, use_objects):
        use_objects()
        response = client.post("/edit/object/new", json={})

        assert response.status_code == 400
        assert response.text == "Missing model parameter."

    def test_missing_parent(self, client, use_objects):
        use_objects()
        response = client.post(
            "/edit/object/new",
            json={"model": "vudl-system:FolderCollection", "title": "t", "state": "Active", "parent": "pid:123"},
        )

        assert response.status_code == 404
        assert response.text == "Error loading parent PID: pid:123"

    def test_success_returns_pid(self, client, use_objects, make_object):
        store = use_objects(make_object(PARENT, models={ModelTag.CORE, ModelTag.COLLECTION, ModelTag.FOLDER}))
        response = client.post(
            "/edit/object/new",
            json={"model": "vudl-system:FolderCollection", "title": "Letters", "state": "Inactive", "parent": PARENT},
        )

        assert response.status_code == 200
        assert response.text == "vudl:new"
        store.create_object.assert_awaited_once_with(
            ModelTag.FOLDER, "Letters", ObjectState.INACTIVE, PARENT
        )


class TestAddParent:
    def test_own_parent(self, client, use_objects):
        store = use_objects()
        response = client.put(f"/edit/object/{PID}/parent/{PID}", content="2", headers=TEXT)

        assert response.status_code == 400
        assert response.text == "Object cannot be its own parent."
        store.add_parent_relationship.assert_not_awaited()

    def test_own_grandparent(self, client, use_objects, make_object):
        store = use_objects(make_object(PARENT, parents=[PID]), make_object(PID))
        response = client.put(f"/edit/object/{PID}/parent/{PARENT}", content="2", headers=TEXT)

        assert response.status_code == 400
        assert response.text == "Object cannot be its own grandparent."
        store.add_parent_relationship.assert_not_awaited()

    def test_non_collection_parent(self, client, use_objects, make_object):
        use_objects(make_object(PARENT, models={ModelTag.CORE}), make_object(PID))
        response = client.put(f"/edit/object/{PID}/parent/{PARENT}", content="2", headers=TEXT)

        assert response.status_code == 400
        assert response.text == "Illegal parent foo:100; not a collection!"

    def test_adds_parent_only(self, client, use_objects, make_object):
        store = use_objects(make_object(PARENT), make_object(PID))
        response = client.put(f"/edit/object/{PID}/parent/{PARENT}", content="2", headers=TEXT)

        assert response.status_code == 200
        assert response.text == "ok"
        store.add_parent_relationship.assert_awaited_once_with(PID, PARENT)
        store.add_sequence_relationship.assert_not_awaited()

    def test_adds_parent_and_sequence(self, client, use_objects, make_object):
        store = use_objects(make_object(PARENT, sort_on=SortOn.CUSTOM), make_object(PID))
        response = client.put(f"/edit/object/{PID}/parent/{PARENT}", content="2", headers=TEXT)

        assert response.status_code == 200
        store.add_parent_relationship.assert_awaited_once_with(PID, PARENT)
        store.add_sequence_relationship.assert_awaited_once_with(PID, PARENT, 2)

    def test_store_exception(self, client, use_objects, make_object):
        store = use_objects(make_object(PARENT), make_object(PID))
        store.add_parent_relationship.side_effect = Exception("kaboom")
        response = client.put(f"/edit/object/{PID}/parent/{PARENT}", content="2", headers=TEXT)

        assert response.status_code == 500
        assert response.text == "kaboom"

    def test_unknown_child(self, client, use_objects, make_object):
        store = use_objects(make_object(PARENT))
        response = client.put(f"/edit/object/nope:1/parent/{PARENT}", content="", headers=TEXT)

        assert response.status_code == 404
        assert response.text == "Object not found: nope:1"
        store.add_parent_relationship.assert_not_awaited()


class TestMoveToParent:
    def test_own_parent(self, client, use_objects):
        store = use_objects()
        response = client.post(f"/edit/object/{PID}/moveToParent/{PID}", content="2", headers=TEXT)

        assert response.status_code == 400
        store.move_pid_to_parent.assert_not_awaited()

    @pytest.mark.parametrize("sort_on, position", [(SortOn.TITLE, None), (SortOn.CUSTOM, 2)])
    def test_moves(self, client, use_objects, make_object, sort_on, position):
        store = use_objects(make_object(PARENT, sort_on=sort_on), make_object(PID))
        response = client.post(f"/edit/object/{PID}/moveToParent/{PARENT}", content="2", headers=TEXT)

        assert response.status_code == 200
        store.move_pid_to_parent.assert_awaited_once_with(PID, PARENT, position)


class TestRemoveParent:
    def test_not_immediate_parent(self, client, use_objects, make_object):
        store = use_objects(make_object(PID))
        response = client.delete(f"/edit/object/{PID}/parent/{PARENT}")

        assert response.status_code == 400
        assert response.text == "foo:100 is not an immediate parent of foo:123."
        store.delete_parent_relationship.assert_not_awaited()
        store.delete_sequence_relationship.assert_not_awaited()

    def test_deletes_parent_and_sequence(self, client, use_objects, make_object):
        store = use_objects(make_object(PID, parents=[PARENT]), make_object(PARENT, sort_on=SortOn.CUSTOM))
        response = client.delete(f"/edit/object/{PID}/parent/{PARENT}")

        assert response.status_code == 200
        store.delete_parent_relationship.assert_awaited_once_with(PID, PARENT)
        store.delete_sequence_relationship.assert_awaited_once_with(PID, PARENT)


class TestPositionInParent:
    def test_put_not_immediate_parent(self, client, use_objects, make_object):
        use_objects(make_object(PID))
        response = client.put(f"/edit/object/{PID}/positionInParent/{PARENT}", content="2", headers=TEXT)

        assert response.status_code == 400
        assert response.text == "foo:100 is not an immediate parent of foo:123."

    def test_put_requires_custom_sort(self, client, use_objects, make_object):
        use_objects(make_object(PID, parents=[PARENT]), make_object(PARENT))
        response = client.put(f"/edit/object/{PID}/positionInParent/{PARENT}", content="2", headers=TEXT)

        assert response.status_code == 400
        assert response.text == "foo:100 has sort value of title; custom is required."

    def test_put_rejects_non_numeric_position(self, client, use_objects, make_object):
        store = use_objects(make_object(PID, parents=[PARENT]), make_object(PARENT, sort_on=SortOn.CUSTOM))
        response = client.put(f"/edit/object/{PID}/positionInParent/{PARENT}", content="x", headers=TEXT)

        assert response.status_code == 400
        store.update_sequence_relationship.assert_not_awaited()

    def test_put_updates_sequence(self, client, use_objects, make_object):
        store = use_objects(make_object(PID, parents=[PARENT]), make_object(PARENT, sort_on=SortOn.CUSTOM))
        response = client.put(f"/edit/object/{PID}/positionInParent/{PARENT}", content="2", headers=TEXT)

        assert response.status_code == 200
        store.update_sequence_relationship.assert_awaited_once_with(PID, PARENT, 2)

    def test_delete_sequence(self, client, use_objects, make_object):
        store = use_objects(make_object(PID, parents=[PARENT]), make_object(PARENT, sort_on=SortOn.CUSTOM))
        response = client.delete(f"/edit/object/{PID}/positionInParent/{PARENT}")

        assert response.status_code == 200
        store.delete_sequence_relationship.assert_awaited_once_with(PID, PARENT)

    def test_delete_handles_store_exceptions(self, client, use_objects, make_object):
        store = use_objects(make_object(PID, parents=[PARENT]), make_object(PARENT, sort_on=SortOn.CUSTOM))
        store.delete_sequence_relationship.side_effect = Exception("Kaboom")
        response = client.delete(f"/edit/object/{PID}/positionInParent/{PARENT}")

        assert response.status_code == 500


class TestParents:
    @pytest.fixture
    def resolver(self, app, make_object):
        mock = MagicMock()
        mock.get_hierarchy = AsyncMock(return_value=TreeNode(make_object(PID)))
        app.dependency_overrides[get_resolver] = lambda: mock
        return mock

    def test_deep_by_default(self, client, resolver):
        response = client.get(f"/edit/object/{PID}/parents")

        assert response.status_code == 200
        assert response.json() == {"parents": [], "pid": PID, "title": ""}
        resolver.get_hierarchy.assert_awaited_once_with(PID, False)

    def test_shallow_on_request(self, client, resolver):
        response = client.get(f"/edit/object/{PID}/parents?shallow=1")

        assert response.status_code == 200
        resolver.get_hierarchy.assert_awaited_once_with(PID, True)

    def test_errors(self, client, resolver):
        resolver.get_hierarchy.side_effect = Exception("kaboom")
        response = client.get(f"/edit/object/{PID}/parents")

        assert response.status_code == 500


class TestState:
    def test_rejects_invalid_state_before_fetching(self, client, use_objects):
        store = use_objects()
        response = client.put(f"/edit/object/{PID}/state", content="Illegal", headers=TEXT)

        assert response.status_code == 400
        assert response.text == "Illegal state: Illegal"
        store.get_object_data.assert_not_awaited()

    def test_writes_new_state(self, client, use_objects, make_object):
        store = use_objects(make_object(PID, state=ObjectState.INACTIVE))
        response = client.put(f"/edit/object/{PID}/state", content="Active", headers=TEXT)

        assert response.status_code == 200
        assert response.text == "ok"
        store.modify_object_state.assert_awaited_once_with(PID, ObjectState.ACTIVE)

    def test_skips_existing_state(self, client, use_objects, make_object):
        store = use_objects(make_object(PID, state=ObjectState.ACTIVE))
        response = client.put(f"/edit/object/{PID}/state", content="Active", headers=TEXT)

        assert response.status_code == 200
        store.modify_object_state.assert_not_awaited()

    def test_unexpected_errors(self, client, use_objects, make_object):
        store = use_objects(make_object(PID, state=ObjectState.INACTIVE))
        store.modify_object_state.side_effect = Exception("kaboom")
        response = client.put(f"/edit/object/{PID}/state", content="Active", headers=TEXT)

        assert response.status_code == 500
        assert response.text == "kaboom"

    def test_unknown_object(self, client, use_objects):
        store = use_objects()
        response = client.put(f"/edit/object/{PID}/state", content="Active", headers=TEXT)

        assert response.status_code == 404
        assert response.text == "Object not found: foo:123"
        store.modify_object_state.assert_not_awaited()


class TestPropagateState:
    def test_streams_progress_and_result(self, client, use_objects, make_object, index, solr_reply):
        store = use_objects(make_object(PID, state=ObjectState.ACTIVE))
        index.query.return_value = solr_reply(docs=[{"id": "foo:1"}, {"id": "foo:2"}])

        response = client.post(
            f"/edit/object/{PID}/state/propagate",
            json={"state": "Deleted", "expectedDescendants": 2},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/event-stream; charset=utf-8"
        body = response.text
        assert "event: progress" in body
        assert "data: Saving status for foo:2 (0 more remaining)..." in body
        assert "data: Saving status for foo:123 (0 more remaining)..." in body
        assert "event: result" in body
        result_line = next(line for line in body.splitlines() if line.startswith("data: {"))
        assert json.loads(result_line[len("data: "):]) == {
            "message": "Status saved successfully.",
            "severity": "success",
        }
        assert store.modify_object_state.await_count == 3

    @pytest.mark.asyncio
    async def test_closed_stream_does_not_stop_the_writes(self, make_store, make_object, solr_reply):
        store = make_store(make_object(PID, state=ObjectState.INACTIVE))

        async def slow_write(*args):
            await asyncio.sleep(0.01)

        store.modify_object_state.side_effect = slow_write
        index = AsyncMock()
        index.query.return_value = solr_reply(docs=[{"id": f"foo:{i}"} for i in range(20)])

        response = await propagate_state(
            PID,
            PropagateStateRequest(state="Active", expected_descendants=20),
            StatePropagator(store, index),
        )
        first = await response.body_iterator.__anext__()
        assert first["event"] == "progress"

        await response.body_iterator.aclose()
        await asyncio.wait_for(asyncio.gather(*list(running_propagations)), timeout=5)

        assert store.modify_object_state.await_count == 21
        store.modify_object_state.assert_awaited_with(PID, ObjectState.ACTIVE)
        assert not running_propagations

    def test_rejects_invalid_state(self, client, use_objects):
        store = use_objects()
        response = client.post(
            f"/edit/object/{PID}/state/propagate", json={"state": "Illegal"}
        )

        assert response.status_code == 400
        assert response.text == "Illegal state: Illegal"
        store.get_object_data.assert_not_awaited()

    def test_rejects_negative_count(self, client, use_objects):
        use_objects()
        response = client.post(
            f"/edit/object/{PID}/state/propagate",
            json={"state": "Active", "expectedDescendants": -1},
        )

        assert response.status_code == 422


class TestSortOn:
    def test_rejects_invalid_value(self, client, use_objects):
        store = use_objects()
        response = client.put(f"/edit/object/{PID}/sortOn", content="Illegal", headers=TEXT)

        assert response.status_code == 400
        assert response.text == "Unrecognized sortOn value: Illegal. Legal values: custom, title"
        store.update_sort_on.assert_not_awaited()

    def test_accepts_valid_value(self, client, use_objects):
        store = use_objects()
        response = client.put(f"/edit/object/{PID}/sortOn", content="custom", headers=TEXT)

        assert response.status_code == 200
        store.update_sort_on.assert_awaited_once_with(PID, SortOn.CUSTOM)

    def test_store_exceptions(self, client, use_objects):
        store = use_objects()
        store.update_sort_on.side_effect = Exception("kaboom")
        response = client.put(f"/edit/object/{PID}/sortOn", content="custom", headers=TEXT)

        assert response.status_code == 500


class TestChildListings:
    def test_top_level_objects(self, client, index):
        response = client.get("/edit/topLevelObjects", params={"start": "10", "rows": "20"})

        assert response.status_code == 200
        assert response.json() == {"foo": "bar"}
        index.query.assert_awaited_once_with(
            "biblio",
            "-fedora_parent_id_str_mv:*",
            {"fl": "id,title", "rows": "20", "sort": "title_sort ASC", "start": "10"},
        )

    def test_children(self, client, index):
        response = client.get(f"/edit/object/{PID}/children")

        assert response.status_code == 200
        assert response.text == '{"foo":"bar"}'
        index.query.assert_awaited_once_with(
            "biblio",
            'fedora_parent_id_str_mv:"foo:123"',
            {
                "fl": "id,title",
                "rows": "100000",
                "sort": "sequence_foo_123_str ASC,title_sort ASC",
                "start": "0",
            },
        )

    def test_children_index_error(self, client, index, solr_reply):
        index.query.return_value = solr_reply(status_code=500)
        response = client.get(f"/edit/object/{PID}/children", params={"rows": "100", "start": "200"})

        assert response.status_code == 500
        assert response.text == "Unexpected Solr response code."

    def test_child_counts(self, client, index, solr_reply):
        index.query.side_effect = [solr_reply(numFound=5), solr_reply(numFound=100)]
        response = client.get(f"/edit/object/{PID}/childCounts")

        assert response.status_code == 200
        assert response.text == '{"directChildren":5,"totalDescendants":100}'

    def test_child_counts_index_error(self, client, index, solr_reply):
        index.query.side_effect = [solr_reply(numFound=5), solr_reply(status_code=500)]
        response = client.get(f"/edit/object/{PID}/childCounts")

        assert response.status_code == 500

    def test_last_child_position(self, client, index, solr_reply):
        index.query.return_value = solr_reply(docs=[{"sequence_foo_123_str": "100"}])
        response = client.get(f"/edit/object/{PID}/lastChildPosition")

        assert response.status_code == 200
        assert response.text == "100"

    def test_recursive_child_pids(self, client, index):
        response = client.get(f"/edit/object/{PID}/recursiveChildPids", params={"start": "5"})

        assert response.status_code == 200
        index.query.assert_awaited_once_with(
            "biblio",
            'hierarchy_all_parents_str_mv:"foo:123"',
            {"fl": "id", "rows": "100000", "sort": "id ASC", "start": "5"},
        )

    def test_direct_child_pids_sort_override(self, client, index):
        response = client.get(
            f"/edit/object/{PID}/directChildPids",
            params={"sort": "title ASC", "start": "1", "rows": "2"},
        )

        assert response.status_code == 200
        index.query.assert_awaited_once_with(
            "biblio",
            'fedora_parent_id_str_mv:"foo:123"',
            {"fl": "id", "rows": "2", "sort": "title ASC", "start": "1"},
        )

    def test_direct_child_pids_index_error(self, client, index, solr_reply):
        index.query.return_value = solr_reply(status_code=500)
        response = client.get(f"/edit/object/{PID}/directChildPids")

        assert response.status_code == 500
