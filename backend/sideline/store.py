"""Document store adapter.

A small realtime document database over the ``document`` table: named
collections of JSON documents, merge-patch writes, and live query
subscriptions that receive a full snapshot on subscribe and again after every
write touching the subscribed collection.

Whether the store may be used at all is decided once at startup by
:func:`store_configured`. Callers must check :meth:`DocumentStore.is_available`
and fall back to local, single-session state when it is ``False``.
"""

import copy
import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from sideline import db
from sideline.models import Document


PLACEHOLDER_API_KEY = 'REPLACE_WITH_YOUR_STORE_API_KEY'


class StoreUnavailable(RuntimeError):
    """Raised when the store is used without live credentials."""


class _ServerTimestamp:
    def __repr__(self):
        return 'SERVER_TIMESTAMP'


# Replaced by the store clock (epoch ms) when the write is applied
SERVER_TIMESTAMP = _ServerTimestamp()


def now_ms() -> int:
    return int(time.time() * 1000)


def store_configured(config) -> bool:
    """Shape check on the store credentials. Says nothing about whether they work."""
    api_key = str(config.get('STORE_API_KEY') or '')
    project_id = str(config.get('STORE_PROJECT_ID') or '')
    return (
        bool(api_key)
        and api_key != PLACEHOLDER_API_KEY
        and len(api_key) > 10
        and bool(project_id.strip())
    )


@dataclass(frozen=True)
class Query:
    collection: str
    doc_id: Optional[str] = None
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None
    where: Tuple[Tuple[str, Any], ...] = ()

    def matches(self, doc_id: str, data: Dict[str, Any]) -> bool:
        if self.doc_id is not None and doc_id != self.doc_id:
            return False
        return all(data.get(k) == v for k, v in self.where)


@dataclass
class DocumentSnapshot:
    id: str
    data: Dict[str, Any]


@dataclass
class Snapshot:
    query: Query
    docs: List[DocumentSnapshot] = field(default_factory=list)

    def __iter__(self):
        return iter(self.docs)

    def __len__(self):
        return len(self.docs)

    @property
    def first(self) -> Optional[DocumentSnapshot]:
        return self.docs[0] if self.docs else None


class Subscription:
    def __init__(self, store: 'DocumentStore', query: Query, callback: Callable[[Snapshot], None]):
        self.store = store
        self.query = query
        self.callback = callback
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self.store._remove_listener(self)

    def deliver(self, snapshot: Snapshot) -> None:
        if self.active:
            self.callback(snapshot)


class DocumentStore:
    def __init__(self, app, available: bool, clock: Optional[Callable[[], int]] = None):
        self.app = app
        self._available = bool(available)
        self.clock = clock or now_ms
        self._lock = threading.RLock()
        self._last_stamp = 0
        self._listeners: Dict[str, List[Subscription]] = {}

    def is_available(self) -> bool:
        return self._available

    def _require(self) -> None:
        if not self._available:
            raise StoreUnavailable('document store is not configured')

    def _stamp(self) -> int:
        # Server timestamps are unique and increasing so ordering by them is total
        with self._lock:
            self._last_stamp = max(self.clock(), self._last_stamp + 1)
            return self._last_stamp

    def _resolve(self, data: Dict[str, Any], stamp: int) -> Dict[str, Any]:
        return {k: (stamp if v is SERVER_TIMESTAMP else copy.deepcopy(v)) for k, v in data.items()}

    # ---- writes ----

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Create a document with a generated id and return that id."""
        self._require()
        doc_id = secrets.token_hex(10)
        with self._lock, self.app.app_context():
            stamp = self._stamp()
            doc = Document(
                collection=collection,
                doc_id=doc_id,
                data=self._resolve(data, stamp),
                created_at=stamp,
                updated_at=stamp,
            )
            db.session.add(doc)
            self._commit()
        self._notify(collection)
        return doc_id

    def write(self, collection: str, doc_id: str, patch: Dict[str, Any], merge: bool = True) -> None:
        """Merge ``patch`` into the document (or replace it when ``merge`` is False).

        Fields not named in the patch are left untouched. The document is
        created when missing.
        """
        self._require()
        with self._lock, self.app.app_context():
            stamp = self._stamp()
            resolved = self._resolve(patch, stamp)
            doc = Document.query.filter_by(collection=collection, doc_id=doc_id).first()
            if doc is None:
                doc = Document(collection=collection, doc_id=doc_id, data=resolved, created_at=stamp, updated_at=stamp)
            else:
                base = dict(doc.data or {}) if merge else {}
                base.update(resolved)
                doc.data = base
                doc.updated_at = stamp
            db.session.add(doc)
            self._commit()
        self._notify(collection)

    def ensure(self, collection: str, doc_id: str, defaults: Dict[str, Any]) -> bool:
        """Create the document with ``defaults`` unless it already exists."""
        self._require()
        with self._lock, self.app.app_context():
            if Document.query.filter_by(collection=collection, doc_id=doc_id).first() is not None:
                return False
            stamp = self._stamp()
            db.session.add(Document(
                collection=collection,
                doc_id=doc_id,
                data=self._resolve(defaults, stamp),
                created_at=stamp,
                updated_at=stamp,
            ))
            self._commit()
        self._notify(collection)
        return True

    def _commit(self) -> None:
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    # ---- reads ----

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        self._require()
        with self.app.app_context():
            doc = Document.query.filter_by(collection=collection, doc_id=doc_id).first()
            return copy.deepcopy(doc.data) if doc is not None else None

    def query(self, query: Query) -> Snapshot:
        """Run ``query``; ``order_by`` must name a numeric field.

        Documents missing the order field sort after the rest (before them
        when descending); equal values fall back to the document id.
        """
        self._require()
        if query.order_by:
            value = Document.data[query.order_by].as_float()
            keys = [value.is_(None), value, Document.doc_id]
        else:
            keys = [Document.doc_id]
        if query.descending:
            keys = [k.desc() for k in keys]
        with self._lock, self.app.app_context():
            rows = Document.query.filter_by(collection=query.collection)
            if query.doc_id is not None:
                rows = rows.filter_by(doc_id=query.doc_id)
            rows = rows.order_by(*keys)
            # where filters run on the loaded rows, so the limit only goes to SQL without them
            if query.limit is not None and not query.where:
                rows = rows.limit(query.limit)
            docs = [
                DocumentSnapshot(id=row.doc_id, data=copy.deepcopy(row.data or {}))
                for row in rows.all()
                if query.matches(row.doc_id, row.data or {})
            ]
        if query.limit is not None:
            docs = docs[:query.limit]
        return Snapshot(query=query, docs=docs)

    # ---- subscriptions ----

    def subscribe(self, query: Query, callback: Callable[[Snapshot], None]) -> Subscription:
        """Deliver ``query``'s snapshot now and after every later change, until cancelled."""
        self._require()
        sub = Subscription(self, query, callback)
        with self._lock:
            self._listeners.setdefault(query.collection, []).append(sub)
        self._deliver(sub)
        return sub

    def _remove_listener(self, sub: Subscription) -> None:
        with self._lock:
            listeners = self._listeners.get(sub.query.collection, [])
            if sub in listeners:
                listeners.remove(sub)

    def listener_count(self, collection: Optional[str] = None) -> int:
        with self._lock:
            if collection is not None:
                return len(self._listeners.get(collection, []))
            return sum(len(v) for v in self._listeners.values())

    def _notify(self, collection: str) -> None:
        with self._lock:
            listeners = list(self._listeners.get(collection, []))
        for sub in listeners:
            self._deliver(sub)

    def _deliver(self, sub: Subscription) -> None:
        if not sub.active:
            return
        snapshot = self.query(sub.query)
        try:
            sub.deliver(snapshot)
        except Exception:
            self.app.logger.exception(f"[store-listener-error] collection={sub.query.collection}")
