import copy
import itertools
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from wastewise.schemas import UserSession

UNIQUE_KEYS = {
    'complaint_upvotes': ('complaint_id', 'user_id'),
    'event_participants': ('event_id', 'user_id'),
    'user_points': ('user_id',),
}

_clock = itertools.count()


def _timestamp():
    # strictly increasing so ordering by created_at is deterministic
    return datetime.fromtimestamp(1_700_000_000 + next(_clock), tz=timezone.utc).isoformat()


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = 'select'
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self.orders = []
        self.limit_n = None
        self.count = None

    def select(self, columns='*', count=None):
        self.op = 'select'
        self.count = count
        return self

    def insert(self, payload):
        self.op, self.payload = 'insert', payload
        return self

    def upsert(self, payload, on_conflict=None):
        self.op, self.payload, self.on_conflict = 'upsert', payload, on_conflict
        return self

    def update(self, payload):
        self.op, self.payload = 'update', payload
        return self

    def delete(self):
        self.op = 'delete'
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def _matches(self, row):
        return all(str(row.get(column)) == str(value) for column, value in self.filters)

    def execute(self):
        self.db.calls.append((self.table, self.op))
        failure = self.db.failures.get((self.table, self.op))
        if failure is not None:
            raise failure

        rows = self.db.tables.setdefault(self.table, [])
        if self.op == 'select':
            result = [copy.deepcopy(r) for r in rows if self._matches(r)]
            for column, desc in reversed(self.orders):
                result.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
            total = len(result)
            if self.limit_n is not None:
                result = result[:self.limit_n]
            return SimpleNamespace(data=result, count=total if self.count else None)

        if self.op in ('insert', 'upsert'):
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            written = []
            for item in payload:
                written.append(self._write(rows, dict(item)))
            return SimpleNamespace(data=copy.deepcopy(written), count=None)

        if self.op == 'update':
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(copy.deepcopy(self.payload))
                    updated.append(copy.deepcopy(row))
            return SimpleNamespace(data=updated, count=None)

        deleted = [r for r in rows if self._matches(r)]
        self.db.tables[self.table] = [r for r in rows if not self._matches(r)]
        return SimpleNamespace(data=deleted, count=None)

    def _write(self, rows, item):
        keys = UNIQUE_KEYS.get(self.table)
        if keys:
            existing = next((r for r in rows if all(str(r.get(k)) == str(item.get(k)) for k in keys)), None)
            if existing is not None:
                if self.op == 'upsert':
                    existing.update(item)
                    return existing
                raise APIError({'code': '23505', 'message': 'duplicate key value violates unique constraint',
                                'details': None, 'hint': None})
        item.setdefault('id', str(uuid.uuid4()))
        item.setdefault('created_at', _timestamp())
        rows.append(item)
        return item


class FakeBucket:
    def __init__(self, storage, name):
        self.storage = storage
        self.name = name

    def upload(self, path, file, file_options=None):
        if self.storage.fail_upload:
            raise RuntimeError("storage unavailable")
        self.storage.objects[(self.name, path)] = file
        return SimpleNamespace(path=path, full_path=f"{self.name}/{path}")

    def get_public_url(self, path):
        return f"https://example.supabase.co/storage/v1/object/public/{self.name}/{path}"

    def remove(self, paths):
        for path in paths:
            self.storage.objects.pop((self.name, path), None)
        return []


class FakeStorage:
    def __init__(self):
        self.objects = {}
        self.fail_upload = False

    def from_(self, bucket):
        return FakeBucket(self, bucket)


class FakeAuth:
    def __init__(self):
        self.tokens = {}
        self.signed_out = []
        self.admin = SimpleNamespace(sign_out=self.signed_out.append)

    def get_user(self, token):
        user = self.tokens.get(token)
        if user is None:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id=user.id, email=user.email))


class FakeSupabase:
    """In-memory stand-in for the parts of the Supabase client the services use"""

    def __init__(self):
        self.tables = {}
        self.failures = {}
        self.calls = []
        self.storage = FakeStorage()
        self.auth = FakeAuth()

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, name):
        return self.tables.get(name, [])

    def seed(self, name, *rows):
        stored = []
        for row in rows:
            row = dict(row)
            row.setdefault('id', str(uuid.uuid4()))
            row.setdefault('created_at', _timestamp())
            self.tables.setdefault(name, []).append(row)
            stored.append(row)
        return stored[0] if len(stored) == 1 else stored


class FakeModel:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.requests = []

    def generate_content(self, parts):
        self.requests.append(parts)
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


ORGANIC_RESPONSE = "Category: Organic\nConfidence: 0.82\n---\n- Compost it\n- Keep it dry\n- Use a green bin"


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def alice():
    return UserSession(id='user-alice', email='alice.smith@example.com', access_token='token-alice')


@pytest.fixture
def bob():
    return UserSession(id='user-bob', email='bob@example.com', access_token='token-bob')


@pytest.fixture
def fake_model():
    return FakeModel(text=ORGANIC_RESPONSE)


@pytest.fixture
def api(supabase, alice, bob, fake_model):
    from wastewise.app import app, get_classifier
    from wastewise.database import get_supabase
    from wastewise.services.classification import GeminiClassifier

    supabase.auth.tokens = {alice.access_token: alice, bob.access_token: bob}
    app.dependency_overrides[get_supabase] = lambda: supabase
    app.dependency_overrides[get_classifier] = lambda: GeminiClassifier(model=fake_model)
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(user):
    return {"Authorization": f"Bearer {user.access_token}"}
