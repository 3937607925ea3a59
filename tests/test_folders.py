"""Tests for envault.folders — tree traversal and folder-version lookups."""

import pytest

from envault.folders import (
    get_all_folder_ids,
    get_folder,
    get_latest_folder_version,
    search_by_folder_id,
)
from envault.store.base import FOLDER_VERSIONS


@pytest.fixture
def tree(node):
    return node(
        "root",
        "root",
        children=[
            node("api", "api", children=[node("api-v2", "v2")]),
            node("web", "web"),
        ],
    )


class TestSearchByFolderId:
    def test_finds_root_itself(self, tree):
        assert search_by_folder_id(tree, "root") is tree

    def test_finds_nested_node(self, tree):
        found = search_by_folder_id(tree, "api-v2")
        assert found["name"] == "v2"

    def test_returns_live_reference(self, tree):
        search_by_folder_id(tree, "web")["version"] = 9
        assert tree["children"][1]["version"] == 9

    def test_missing(self, tree):
        assert search_by_folder_id(tree, "nope") is None


class TestGetAllFolderIds:
    def test_includes_node_and_descendants(self, tree):
        api = search_by_folder_id(tree, "api")
        found = get_all_folder_ids(api)
        assert {f["id"] for f in found} == {"api", "api-v2"}
        assert {"id": "api-v2", "name": "v2"} in found

    def test_leaf(self, node):
        assert get_all_folder_ids(node("web", "web")) == [{"id": "web", "name": "web"}]

    def test_whole_tree(self, tree):
        assert len(get_all_folder_ids(tree)) == 4


class TestFolderLookups:
    def test_get_folder(self, seed, store, node, tree):
        seed.folder(tree, workspace="ws1", environment="dev")
        seed.folder(node("root", "root"), workspace="ws1", environment="prod")
        folder = get_folder(store, "ws1", "dev")
        assert len(folder["nodes"]["children"]) == 2
        assert get_folder(store, "ws2", "dev") is None

    def test_latest_folder_version_by_node_version(self, store, node):
        for version in (1, 3, 2):
            store.insert_one(
                FOLDER_VERSIONS,
                {"workspace": "ws1", "environment": "dev", "nodes": node("api", "api", version=version)},
            )
        store.insert_one(
            FOLDER_VERSIONS,
            {"workspace": "ws1", "environment": "dev", "nodes": node("web", "web", version=7)},
        )
        latest = get_latest_folder_version(store, "ws1", "dev", "api")
        assert latest["nodes"]["version"] == 3

    def test_latest_folder_version_none(self, store):
        assert get_latest_folder_version(store, "ws1", "dev", "api") is None
