"""
Shared pytest fixtures: in-memory bills collection, mocked Gemini transport.
"""
import json
from types import SimpleNamespace

import httpx
import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from billscan.config.settings import GeminiSettings
from billscan.services.bill_store import BillStore
from billscan.services.gemini_client import GeminiBillExtractor

GEMINI_ENDPOINT = "https://gemini.test/v1beta/models/gemini-pro-vision:generateContent"
GEMINI_API_KEY = "test-key"


def gemini_envelope(text):
    """Wrap generated text the way the Gemini API does."""
    return json.dumps({"candidates": [{"content": {"parts": [{"text": text}]}}]})


def _matches(document, query):
    if not query:
        return True
    wanted = query["_id"]
    if isinstance(wanted, dict):
        return document["_id"] in wanted["$in"]
    return document["_id"] == wanted


class _Cursor:
    def __init__(self, documents):
        self._documents = documents

    async def to_list(self, length=None):
        return list(self._documents)


class FakeBillsCollection:
    """Just enough of an async pymongo collection for BillStore."""

    def __init__(self):
        self.documents = []
        self.calls = []

    async def insert_one(self, document):
        self.calls.append("insert_one")
        document = dict(document)
        document.setdefault("_id", ObjectId())
        if any(existing["_id"] == document["_id"] for existing in self.documents):
            raise DuplicateKeyError("E11000 duplicate key error")
        self.documents.append(document)
        return SimpleNamespace(inserted_id=document["_id"])

    async def find_one(self, query):
        self.calls.append("find_one")
        for document in self.documents:
            if _matches(document, query):
                return dict(document)
        return None

    def find(self, query):
        self.calls.append("find")
        return _Cursor([dict(d) for d in self.documents if _matches(d, query)])

    async def replace_one(self, query, replacement):
        self.calls.append("replace_one")
        for index, document in enumerate(self.documents):
            if _matches(document, query):
                self.documents[index] = {"_id": document["_id"], **replacement}
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def delete_one(self, query):
        self.calls.append("delete_one")
        for index, document in enumerate(self.documents):
            if _matches(document, query):
                del self.documents[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


@pytest.fixture()
def collection():
    return FakeBillsCollection()


@pytest.fixture()
def store(collection):
    return BillStore(collection, timeout_seconds=1.0)


@pytest.fixture()
def gemini_settings():
    return GeminiSettings(api_key=GEMINI_API_KEY, endpoint=GEMINI_ENDPOINT, timeout_seconds=5.0)


@pytest.fixture()
def gemini_requests():
    """Requests seen by the mocked Gemini transport."""
    return []


@pytest.fixture()
def make_extractor(gemini_settings, gemini_requests):
    """Build an extractor whose HTTP calls are answered by *handler*."""
    def _make(handler):
        def _record(request):
            gemini_requests.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
        return GeminiBillExtractor(gemini_settings, client=client)

    return _make


@pytest.fixture()
def reply_with_text(make_extractor):
    """Build an extractor whose model output is *text*."""
    def _make(text):
        return make_extractor(lambda request: httpx.Response(200, text=gemini_envelope(text)))

    return _make
