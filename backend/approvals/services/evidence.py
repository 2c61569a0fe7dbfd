"""Payment-evidence storage collaborator.

The engine hands over an opaque blob (a payment screenshot, a receipt PDF) and
keeps only the returned reference on the enrollment request. Bytes are never
inspected beyond their size.
"""
from __future__ import annotations
import hashlib
import os
from typing import Dict, Optional

from flask import current_app

from approvals.errors import ValidationError

REF_PREFIX = 'evidence:'


class EvidenceStore:
    def put(self, blob: bytes, content_type: Optional[str] = None) -> str:
        raise NotImplementedError

    def exists(self, ref: str) -> bool:
        raise NotImplementedError


class LocalEvidenceStore(EvidenceStore):
    """Content-addressed files under a root directory; identical uploads share a ref."""

    def __init__(self, root: str):
        self.root = root

    def _path(self, digest: str) -> str:
        return os.path.join(self.root, digest[:2], digest)

    def put(self, blob: bytes, content_type: Optional[str] = None) -> str:
        digest = hashlib.sha256(blob).hexdigest()
        path = self._path(digest)
        if not os.path.exists(path):
            os.makedirs(os.path.dirname(path), exist_ok=True)
            tmp = path + '.tmp'
            with open(tmp, 'wb') as fh:
                fh.write(blob)
            os.replace(tmp, path)
        return REF_PREFIX + digest

    def exists(self, ref: str) -> bool:
        if not ref.startswith(REF_PREFIX):
            return False
        return os.path.exists(self._path(ref[len(REF_PREFIX):]))


class MemoryEvidenceStore(EvidenceStore):
    def __init__(self):
        self.blobs: Dict[str, bytes] = {}

    def put(self, blob: bytes, content_type: Optional[str] = None) -> str:
        ref = REF_PREFIX + hashlib.sha256(blob).hexdigest()
        self.blobs[ref] = blob
        return ref

    def exists(self, ref: str) -> bool:
        return ref in self.blobs


def store_evidence(blob: bytes, content_type: Optional[str] = None) -> str:
    if not blob:
        raise ValidationError('evidence payload is empty')
    limit = current_app.config.get('EVIDENCE_MAX_BYTES')
    if limit and len(blob) > limit:
        raise ValidationError(f'evidence exceeds {limit} bytes')
    store: EvidenceStore = current_app.extensions['approvals.evidence_store']
    return store.put(blob, content_type)


def require_evidence(ref: str) -> str:
    """Return `ref` if the configured store holds it, else ValidationError."""
    if not isinstance(ref, str) or not ref:
        raise ValidationError('payment_evidence_ref must be a non-empty string')
    store: EvidenceStore = current_app.extensions['approvals.evidence_store']
    if not store.exists(ref):
        raise ValidationError(f'Unknown payment evidence {ref}')
    return ref


__all__ = ['EvidenceStore', 'LocalEvidenceStore', 'MemoryEvidenceStore', 'store_evidence', 'require_evidence', 'REF_PREFIX']
