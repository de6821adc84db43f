from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from app.core.security import create_access_token
from main import app

ALL_PERMISSIONS = ["*"]


class FakeGateway:
    """Stands in for db_request and records every procedure call"""

    def __init__(self):
        self.calls = []
        self.result = None
        self.error = None

    def __call__(self, procedure, parameters, expected_return, transaction=None, result_set_names=None):
        self.calls.append(SimpleNamespace(
            procedure=procedure,
            parameters=dict(parameters),
            expected_return=expected_return,
        ))
        if self.error is not None:
            raise self.error
        return self.result

    @property
    def last(self):
        return self.calls[-1]


@pytest.fixture
def gateway(monkeypatch):
    fake = FakeGateway()
    monkeypatch.setattr("app.services.stock_service.db_request", fake)
    return fake


@pytest.fixture
def client():
    return TestClient(app)


def make_headers(permissions=ALL_PERMISSIONS, id_account=1, id_user=7):
    token = create_access_token(id_account, id_user, permissions)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return make_headers()


@pytest.fixture
def headers_for():
    return make_headers
