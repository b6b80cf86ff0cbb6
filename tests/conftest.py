import pytest

from storefront import create_app
from storefront.config import TestConfig
from storefront.services import EXTENSION_KEY

ADMIN = {'email': 'admin@example.com', 'password': 'admin123'}


@pytest.fixture
def app(tmp_path):
    return create_app(
        TestConfig,
        DATA_DIR=str(tmp_path / 'data'),
        MEDIA_DIR=str(tmp_path / 'media'),
    )


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions[EXTENSION_KEY]


def auth_header(token):
    return {'Authorization': f'Bearer {token}'}


def login(client, email, password, **extra):
    res = client.post('/login', json={'email': email, 'password': password, **extra})
    assert res.status_code == 200, res.get_json()
    return res.get_json()['token']


@pytest.fixture
def admin_headers(client):
    res = client.post('/register', json={**ADMIN, 'roleRequested': 'admin'})
    assert res.status_code == 201
    return auth_header(login(client, ADMIN['email'], ADMIN['password']))


@pytest.fixture
def affiliate(client, services):
    """An approved affiliate, returned as (user id, auth headers)."""
    res = client.post('/register', json={
        'email': 'partner@example.com', 'password': 'partner123', 'roleRequested': 'affiliate'
    })
    user_id = res.get_json()['userId']
    services.ledger.approve(user_id)
    return user_id, auth_header(login(client, 'partner@example.com', 'partner123'))
