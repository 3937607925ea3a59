"""Tests for envault.snapshots — capture, listing and lookup."""

import pytest

from envault.models import BLIND_INDEX_FIELD
from envault.snapshots import (
    count_secret_snapshots,
    find_secret_snapshot,
    get_secret_snapshot,
    list_secret_snapshots,
    snapshot_filter,
    take_secret_snapshot,
)
from envault.store.base import FOLDER_VERSIONS, SECRET_SNAPSHOTS, SECRET_VERSIONS

WS = "ws-test"


@pytest.fixture
def tree(node):
    return node(
        "root",
        "root",
        children=[node("api", "api", children=[node("api-v2", "v2")])],
    )


class TestSnapshotFilter:
    def test_defaults_to_root_folder(self):
        assert snapshot_filter(WS, "dev", None) == {
            "workspace": WS,
            "environment": "dev",
            "folderId": "root",
        }

    def test_missing_environment_is_dropped(self):
        assert snapshot_filter(WS, None, "api") == {"workspace": WS, "folderId": "api"}


class TestTakeSecretSnapshot:
    def test_root_captures_every_secret_in_environment(self, seed, store):
        a = seed.secret("a", folder="root")
        b = seed.secret("b", folder="api")
        seed.version(b, 2, "b2")
        seed.secret("other-env", environment="prod")

        snap = take_secret_snapshot(store, workspace_id=WS, environment="dev")
        versions = store.find_by_ids(SECRET_VERSIONS, snap["secretVersions"])
        assert {(v["secret"], v["version"]) for v in versions} == {(a["_id"], 1), (b["_id"], 2)}
        assert snap["version"] == 1
        assert snap["folderId"] == "root"

    def test_versions_increment_per_folder(self, seed, store):
        seed.secret("a")
        assert take_secret_snapshot(store, workspace_id=WS, environment="dev")["version"] == 1
        assert take_secret_snapshot(store, workspace_id=WS, environment="dev")["version"] == 2
        assert (
            take_secret_snapshot(store, workspace_id=WS, environment="dev", folder_id="api")["version"]
            == 1
        )

    def test_subtree_scope(self, seed, store, tree):
        seed.folder(tree)
        seed.secret("root-secret", folder="root")
        api = seed.secret("api-secret", folder="api")
        v2 = seed.secret("v2-secret", folder="api-v2")

        snap = take_secret_snapshot(store, workspace_id=WS, environment="dev", folder_id="api")
        versions = store.find_by_ids(SECRET_VERSIONS, snap["secretVersions"])
        assert {v["secret"] for v in versions} == {api["_id"], v2["_id"]}

    def test_unknown_folder_matches_folder_field_only(self, seed, store, tree):
        seed.folder(tree)
        lone = seed.secret("lone", folder="detached")
        seed.secret("api-secret", folder="api")

        snap = take_secret_snapshot(store, workspace_id=WS, environment="dev", folder_id="detached")
        versions = store.find_by_ids(SECRET_VERSIONS, snap["secretVersions"])
        assert [v["secret"] for v in versions] == [lone["_id"]]
        assert snap["folderVersion"] is None

    def test_captures_folder_subtree(self, seed, store, tree):
        seed.folder(tree)
        snap = take_secret_snapshot(store, workspace_id=WS, environment="dev", folder_id="api")
        fv = store.find_one(FOLDER_VERSIONS, {"_id": snap["folderVersion"]})
        assert fv["nodes"]["id"] == "api"
        assert fv["nodes"]["children"][0]["id"] == "api-v2"

    def test_no_folder_document(self, seed, store):
        seed.secret("a")
        snap = take_secret_snapshot(store, workspace_id=WS, environment="dev")
        assert snap["folderVersion"] is None
        assert store.count(FOLDER_VERSIONS) == 0


class TestListAndCount:
    def _seed_snapshots(self, seed):
        for i, ts in enumerate(["2024-01-01", "2024-03-01", "2024-02-01"], start=1):
            seed.snapshot([], version=i, created_at=f"{ts}T00:00:00.000000+00:00")
        seed.snapshot([], version=1, folder_id="api")
        seed.snapshot([], version=1, environment="prod")
        seed.snapshot([], version=1, workspace="ws-other")

    def test_newest_first(self, seed, store):
        self._seed_snapshots(seed)
        snaps = list_secret_snapshots(store, WS, environment="dev")
        assert [s["version"] for s in snaps] == [2, 3, 1]

    def test_skip_and_limit(self, seed, store):
        self._seed_snapshots(seed)
        snaps = list_secret_snapshots(store, WS, environment="dev", skip=1, limit=1)
        assert [s["version"] for s in snaps] == [3]

    def test_folder_scope(self, seed, store):
        self._seed_snapshots(seed)
        assert len(list_secret_snapshots(store, WS, environment="dev", folder_id="api")) == 1

    def test_count(self, seed, store):
        self._seed_snapshots(seed)
        assert count_secret_snapshots(store, WS, environment="dev") == 3
        assert count_secret_snapshots(store, WS, environment="dev", folder_id="api") == 1
        assert count_secret_snapshots(store, WS, environment="qa") == 0

    def test_count_without_environment(self, seed, store):
        self._seed_snapshots(seed)
        assert count_secret_snapshots(store, WS, environment=None) == 4


class TestSnapshotLookup:
    def test_get_populates_references(self, seed, store, tree):
        seed.folder(tree)
        seed.secret("a")
        snap = take_secret_snapshot(store, workspace_id=WS, environment="dev")

        populated = get_secret_snapshot(store, snap["_id"], workspace_id=WS)
        assert populated["secretVersions"][0]["secretKeyCiphertext"] == "a:secretKeyCiphertext"
        assert BLIND_INDEX_FIELD not in populated["secretVersions"][0]
        assert populated["folderVersion"]["nodes"]["id"] == "root"

    def test_get_other_workspace(self, seed, store):
        snap = seed.snapshot([], workspace="ws-other")
        assert get_secret_snapshot(store, snap["_id"], workspace_id=WS) is None
        assert get_secret_snapshot(store, snap["_id"]) is not None

    def test_get_missing(self, store):
        assert get_secret_snapshot(store, "nope") is None

    def test_find_by_composite_key_keeps_blind_index(self, seed, store):
        seed.secret("a")
        take_secret_snapshot(store, workspace_id=WS, environment="dev")

        found = find_secret_snapshot(store, workspace_id=WS, version=1, environment="dev")
        assert found["secretVersions"][0][BLIND_INDEX_FIELD] == "blind:a"
        assert find_secret_snapshot(store, workspace_id=WS, version=2, environment="dev") is None

    def test_stored_snapshot_is_not_populated(self, seed, store):
        seed.secret("a")
        snap = take_secret_snapshot(store, workspace_id=WS, environment="dev")
        stored = store.find_one(SECRET_SNAPSHOTS, {"_id": snap["_id"]})
        assert all(isinstance(v, str) for v in stored["secretVersions"])
