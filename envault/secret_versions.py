"""Latest-version lookups over the secret_versions collection."""

from __future__ import annotations

from collections.abc import Iterable

from envault.store.base import SECRET_VERSIONS, DocumentStore


def get_latest_secret_versions(
    store: DocumentStore,
    secret_ids: Iterable[str],
) -> dict[str, dict]:
    """Map each secret id to its highest-numbered SecretVersion.

    Secrets without any recorded version are absent from the result.
    """
    ids = list(dict.fromkeys(str(s) for s in secret_ids))
    if not ids:
        return {}

    latest: dict[str, dict] = {}
    for sv in store.find(SECRET_VERSIONS, {"secret": {"$in": ids}}):
        current = latest.get(sv["secret"])
        if current is None or sv["version"] > current["version"]:
            latest[sv["secret"]] = sv
    return latest


def get_latest_secret_version_numbers(
    store: DocumentStore,
    secret_ids: Iterable[str],
) -> dict[str, int]:
    """Map each secret id to its latest version number."""
    return {
        secret_id: sv["version"]
        for secret_id, sv in get_latest_secret_versions(store, secret_ids).items()
    }
