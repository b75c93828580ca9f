from fastapi.testclient import TestClient

from managertc.core.security import _claims_to_token_data
from managertc.main import app


def test_claims_from_metadata():
    user = _claims_to_token_data(
        {
            "sub": "user_1",
            "email": "ann@acme.io",
            "metadata": {"companyId": "acme_corp", "role": "HR"},
            "given_name": "Ann",
        }
    )

    assert user.company_id == "acme_corp"
    assert user.role == "hr"
    assert user.snapshot()["firstName"] == "Ann"
    assert user.user_metadata() == {"companyId": "acme_corp", "role": "hr"}


def test_unknown_role_is_guest():
    assert _claims_to_token_data({"sub": "user_1", "role": "wizard"}).role == "guest"


def test_missing_bearer_token_is_401():
    app.dependency_overrides.clear()

    response = TestClient(app).get("/api/departments/")

    assert response.status_code == 401


def test_health():
    assert TestClient(app).get("/health").json()["status"] == "healthy"
