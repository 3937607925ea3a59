"""
Document shapes and response converters.

Store documents are plain dicts; these helpers name the fields shared between
secrets and their versions and strip the fields that are hidden by default.

Usage:
    from envault.models import secret_to_dict

    payload = [secret_to_dict(s) for s in secrets]
"""

from __future__ import annotations

ROOT_FOLDER_ID = "root"

BLIND_INDEX_FIELD = "secretBlindIndex"

# Encrypted key/value material, copied verbatim between secrets and versions.
SECRET_CRYPTO_FIELDS = (
    "secretKeyCiphertext",
    "secretKeyIV",
    "secretKeyTag",
    "secretKeyHash",
    "secretValueCiphertext",
    "secretValueIV",
    "secretValueTag",
    "secretValueHash",
)

SECRET_COMMENT_FIELDS = (
    "secretCommentCiphertext",
    "secretCommentIV",
    "secretCommentTag",
)

# Ownership/scope fields shared by secrets and secret versions.
SECRET_SCOPE_FIELDS = (
    "workspace",
    "type",
    "user",
    "environment",
    "folder",
)

# Never returned for principals resolved into audit logs.
PRINCIPAL_HIDDEN_FIELDS = ("secretHash", "keyHash", "password", "refreshVersion")


def _without(doc: dict, fields: tuple[str, ...] | set[str]) -> dict:
    return {k: v for k, v in doc.items() if k not in fields}


def secret_to_dict(doc: dict, *, include_blind_index: bool = False) -> dict:
    """Secret or SecretVersion document to API shape."""
    if include_blind_index:
        return dict(doc)
    return _without(doc, {BLIND_INDEX_FIELD})


def principal_to_dict(doc: dict | None) -> dict | None:
    if doc is None:
        return None
    return _without(doc, PRINCIPAL_HIDDEN_FIELDS)
