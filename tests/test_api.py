import json
from collections.abc import Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from statement_importer.app import create_app
from statement_importer.main import app
from statement_importer.manager import CategorizerService
from statement_importer.providers.factory import LLMProviderFactory
from statement_importer.services.categorization import CategorizationPipeline
from statement_importer.services.cost import AICostTracker

client = TestClient(app)

CSV = b"Date,Amount,Description\n2024-01-15,-50.00,MAGNUM ALMATY\n2024-01-16,-9.99,NETFLIX\n"


@pytest.fixture
def remote_provider() -> MagicMock:
    provider = MagicMock()
    provider.name = "openai-gpt-4o-mini"
    provider.is_available.return_value = True
    return provider


@pytest.fixture
def service(tmp_path, remote_provider: MagicMock) -> Generator[CategorizerService, None, None]:
    had_service = hasattr(app.state, "service")
    had_pipeline = hasattr(app.state, "pipeline")
    original_service = getattr(app.state, "service", None)
    original_pipeline = getattr(app.state, "pipeline", None)

    service = CategorizerService(
        data_dir=str(tmp_path),
        factory=LLMProviderFactory(openai=remote_provider),
        cost_tracker=AICostTracker(daily_budget=0.0, monthly_budget=0.0),
        enable_enrichment=False,
    )
    app.state.service = service
    app.state.pipeline = CategorizationPipeline(service=service)
    yield service
    if had_service:
        app.state.service = original_service
    else:
        delattr(app.state, "service")
    if had_pipeline:
        app.state.pipeline = original_pipeline
    else:
        delattr(app.state, "pipeline")


def test_health() -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_not_initialized() -> None:
    bare = TestClient(create_app())
    response = bare.post("/api/categorize", json={"description": "MAGNUM"})
    assert response.status_code == 500
    assert response.json()["detail"] == "Service not initialized"


def test_categorize_known_merchant(service: CategorizerService) -> None:
    response = client.post("/api/categorize", json={"description": "MAGNUM ALMATY", "transaction_id": 5})
    assert response.status_code == 200
    data = response.json()
    assert data["transaction_id"] == 5
    assert data["category_id"] == "groceries"
    assert data["source"] == "merchant_database"


def test_categorize_unknown_with_no_budget(service: CategorizerService, remote_provider: MagicMock) -> None:
    response = client.post("/api/categorize", json={"description": "XYZZY"})
    assert response.status_code == 200
    assert response.json() is None
    # Zero budget keeps the model tier from being called
    remote_provider.complete.assert_not_called()


def test_learn_then_categorize(service: CategorizerService) -> None:
    response = client.post("/api/learn", json={"description": "KOFEINIA #12", "category_id": "restaurants"})
    assert response.status_code == 200
    assert response.json()["merchant_pattern"] == "KOFEINIA"
    assert response.json()["created"] is True

    response = client.post("/api/categorize", json={"description": "KOFEINIA ALMATY"})
    assert response.json()["category_id"] == "restaurants"
    assert response.json()["source"] == "user_learned"


def test_learn_rejects_blank_name(service: CategorizerService) -> None:
    response = client.post("/api/learn", json={"description": "  ", "category_id": "restaurants"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Merchant name required for learning"


def test_categorize_batch(service: CategorizerService) -> None:
    response = client.post(
        "/api/categorize-batch",
        json={
            "items": [
                {"transaction_id": 1, "description": "GLOVO ORDER"},
                {"transaction_id": 2, "description": "XYZZY"},
            ]
        },
    )
    assert response.status_code == 200
    data = response.json()
    assert [r["category_id"] for r in data["results"]] == ["food_delivery"]
    assert data["uncategorized_ids"] == [2]


def test_import_preview(service: CategorizerService) -> None:
    existing = [{"id": 77, "date": "2024-01-15", "amount": -5000, "description": "Magnum Almaty"}]
    response = client.post(
        "/api/import",
        files={"file": ("statement.csv", CSV, "text/csv")},
        data={"existing": json.dumps(existing)},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["document_type"]["kind"] == "csv"
    assert data["duplicate_count"] == 1
    first, second = data["transactions"]
    assert first["duplicate_status"] == {"kind": "exact", "matching_transaction_id": 77}
    assert first["is_selected"] is False
    assert second["transaction"]["category"] == "entertainment"
    assert second["categorization"]["source"] == "merchant_database"
    assert data["total_expenses"] == -999


def test_import_without_categorization(service: CategorizerService) -> None:
    response = client.post(
        "/api/import",
        files={"file": ("statement.csv", CSV, "text/csv")},
        data={"categorize": "false"},
    )
    assert response.status_code == 200
    assert all(row["categorization"] is None for row in response.json()["transactions"])


def test_import_needs_mapping(service: CategorizerService) -> None:
    content = b"Col1,Col2\n2024-01-15,-1.00\n"
    response = client.post("/api/import", files={"file": ("x.csv", content, "text/csv")})
    assert response.status_code == 200
    assert response.json()["issues"] == ["Could not detect date or amount columns. Headers: Col1, Col2"]

    response = client.post(
        "/api/import",
        files={"file": ("x.csv", content, "text/csv")},
        data={"mapping": json.dumps({"date": 0, "amount": 1})},
    )
    assert response.status_code == 200
    assert response.json()["transactions"][0]["transaction"]["amount"] == -100


def test_import_unknown_format(service: CategorizerService) -> None:
    response = client.post("/api/import", files={"file": ("notes.xyz", b"?", "application/octet-stream")})
    assert response.status_code == 422
    assert response.json()["detail"] == "Unknown file format: xyz"


def test_import_invalid_form_field(service: CategorizerService) -> None:
    response = client.post(
        "/api/import",
        files={"file": ("statement.csv", CSV, "text/csv")},
        data={"mapping": "{not json"},
    )
    assert response.status_code == 400


def test_providers(service: CategorizerService) -> None:
    response = client.get("/api/providers")
    assert response.status_code == 200
    data = response.json()
    assert data["providers"] == [{"name": "openai-gpt-4o-mini", "available": True}]
    assert data["tiers"] == ["llm_tier2:openai-gpt-4o-mini"]
    assert data["usage"]["daily_budget"] == 0.0
