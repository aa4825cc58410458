"""
Fixtures for API tests

Auth dependencies are overridden per test; services are patched in the
router modules that instantiate them.
"""
import pytest
from fastapi.testclient import TestClient

from snackzo.core.auth import TokenUser, get_current_user, require_admin, require_runner
from snackzo.core.rate_limit import rate_limiter
from snackzo.main import app


@pytest.fixture
def client():
    rate_limiter.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def customer(client):
    """Signed-in customer"""
    user = TokenUser(id="user-1", email="asha@campus.edu")
    app.dependency_overrides[get_current_user] = lambda: user
    return user


@pytest.fixture
def admin(client):
    """Signed-in admin (also passes runner checks)"""
    user = TokenUser(id="admin-1", email="admin@snackzo.test", role="admin")
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[require_admin] = lambda: user
    app.dependency_overrides[require_runner] = lambda: user
    return user
