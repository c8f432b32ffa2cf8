"""
Integration tests for the bills API.
"""
import httpx
import pytest
from fastapi.testclient import TestClient

from billscan.api.v1.bills import get_bill_store, get_pipeline
from billscan.main import app
from billscan.services.bill_pipeline import BillIngestionPipeline
from conftest import gemini_envelope

IMAGE = b"\xff\xd8\xff\xe0" + b"\x02" * 256
BILL_TEXT = '```json\n{"vendor":"Cafe X","date":"2024-01-01T00:00:00Z","totalAmount":12.5,"paymentMethod":"Cash","lineItems":[]}\n```'


@pytest.fixture()
def gemini_reply():
    """Mutable response the mocked Gemini endpoint returns."""
    return {"status": 200, "text": gemini_envelope(BILL_TEXT)}


@pytest.fixture()
def client(make_extractor, store, gemini_reply):
    extractor = make_extractor(lambda request: httpx.Response(gemini_reply["status"], text=gemini_reply["text"]))
    pipeline = BillIngestionPipeline(extractor, store)

    app.dependency_overrides[get_bill_store] = lambda: store
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(client, filename="receipt.jpg", data=IMAGE):
    return client.post("/api/bills/upload", files={"file": (filename, data, "image/jpeg")})


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestUpload:
    def test_upload_creates_bill(self, client, collection):
        response = _upload(client)

        assert response.status_code == 201
        body = response.json()
        assert body["vendor"] == "Cafe X"
        assert body["totalAmount"] == 12.5
        assert body["paymentMethod"] == "Cash"
        assert body["lineItems"] == []
        assert body["id"]
        assert body["date"].startswith("2024-01-01T00:00:00")
        assert collection.documents[0]["_id"] == body["id"]

    def test_unsupported_file_is_bad_request(self, client, gemini_requests, collection):
        response = _upload(client, filename="receipt.pdf")

        assert response.status_code == 400
        assert response.json()["kind"] == "ValidationError"
        assert gemini_requests == []
        assert collection.documents == []

    def test_upstream_failure_is_server_error(self, client, gemini_reply, collection):
        gemini_reply.update(status=500, text="boom")

        response = _upload(client)

        assert response.status_code == 500
        detail = response.json()
        assert detail["kind"] == "UpstreamError"
        assert "boom" not in detail["message"]
        assert collection.documents == []

    def test_insufficient_fields_are_bad_request(self, client, gemini_reply, collection):
        gemini_reply["text"] = gemini_envelope('{"vendor":"","totalAmount":0}')

        response = _upload(client)

        assert response.status_code == 400
        assert response.json()["kind"] == "ValidationError"
        assert collection.documents == []

    def test_malformed_output_is_server_error(self, client, gemini_reply):
        gemini_reply["text"] = gemini_envelope("not json at all")

        response = _upload(client)

        assert response.status_code == 500
        assert response.json()["kind"] == "DeserializationError"

    def test_empty_output_is_server_error(self, client, gemini_reply):
        gemini_reply["text"] = '{"candidates": []}'

        response = _upload(client)

        assert response.status_code == 500
        assert response.json()["kind"] == "ExtractionEmptyError"

    def test_rejection_reason_is_top_level(self, client):
        response = _upload(client, filename="receipt.pdf")

        body = response.json()
        assert set(body) == {"kind", "message"}
        assert body["kind"] == "ValidationError"
        assert "image files" in body["message"]

    def test_unstorable_amount_is_server_error(self, client, gemini_reply, collection):
        gemini_reply["text"] = gemini_envelope('{"vendor":"Cafe X","totalAmount":1e7000}')

        response = _upload(client)

        assert response.status_code == 500
        assert response.json()["kind"] == "DeserializationError"
        assert collection.calls == []


class TestCrud:
    def _create(self, client, **overrides):
        body = {"vendor": "Shop", "totalAmount": 9.99, "paymentMethod": "Card", "lineItems": []}
        body.update(overrides)
        return client.post("/api/bills", json=body)

    def test_create_and_get(self, client):
        created = self._create(client)
        assert created.status_code == 201
        bill_id = created.json()["id"]

        response = client.get(f"/api/bills/{bill_id}")

        assert response.status_code == 200
        assert response.json()["vendor"] == "Shop"
        assert response.json()["totalAmount"] == 9.99

    def test_create_keeps_supplied_id(self, client):
        assert self._create(client, id="abc").json()["id"] == "abc"

    def test_create_rejects_zero_total(self, client, collection):
        response = self._create(client, totalAmount=0)
        assert response.status_code == 400
        assert response.json()["kind"] == "ValidationError"
        assert collection.documents == []

    def test_create_rejects_unstorable_amount(self, client, collection):
        response = self._create(client, totalAmount="1e7000")
        assert response.status_code == 422
        assert collection.calls == []

    def test_list(self, client):
        self._create(client, vendor="A")
        self._create(client, vendor="B")

        response = client.get("/api/bills")

        assert response.status_code == 200
        assert [bill["vendor"] for bill in response.json()] == ["A", "B"]

    def test_get_missing(self, client):
        assert client.get("/api/bills/missing").status_code == 404

    def test_update(self, client):
        bill_id = self._create(client).json()["id"]

        response = client.put(
            f"/api/bills/{bill_id}",
            json={"id": "other", "vendor": "Shop 2", "totalAmount": 20, "lineItems": []},
        )

        assert response.status_code == 200
        assert response.json()["id"] == bill_id
        assert client.get(f"/api/bills/{bill_id}").json()["vendor"] == "Shop 2"

    def test_update_missing(self, client):
        response = client.put("/api/bills/missing", json={"vendor": "Shop", "totalAmount": 1})
        assert response.status_code == 404

    def test_delete(self, client):
        bill_id = self._create(client).json()["id"]

        assert client.delete(f"/api/bills/{bill_id}").status_code == 204
        assert client.get(f"/api/bills/{bill_id}").status_code == 404
        assert client.delete(f"/api/bills/{bill_id}").status_code == 404
