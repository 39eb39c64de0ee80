from fastapi.testclient import TestClient
from bizcase_service.app import app

client = TestClient(app)

def test_api_422():
    response = client.post("/business-case/metrics", json={"wrong_key": {}})
    assert response.status_code == 422

def test_evidence_requires_metric_key():
    response = client.post("/business-case/evidence", json={"business_case": {}})
    assert response.status_code == 422

def test_evidence_month_is_one_based():
    response = client.post("/business-case/evidence", json={"business_case": {}, "metric_key": "npv", "month": 0})
    assert response.status_code == 422

def test_unknown_business_model_422():
    response = client.post("/business-case/metrics", json={"business_case": {"meta": {"business_model": "barter"}}})
    assert response.status_code == 422

def test_empty_update_path_422():
    response = client.post("/business-case/metrics", json={"business_case": {}, "updates": [{"path": "", "value": 1}]})
    assert response.status_code == 422
