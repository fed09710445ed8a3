import pytest
from fastapi.testclient import TestClient

from gourmet.main import app


@pytest.fixture
def client():
    """FastAPI test client bound to the enrichment app."""
    with TestClient(app) as test_client:
        yield test_client
