import json

import pytest

from cube_api.core import create_app

SECRET = 'test-signing-key-0123456789abcdef0123456789'


@pytest.fixture
def cube_app(tmp_path):
    """App on an in-memory SQLite database, routes served without prefix"""
    app = create_app(
        database_url='sqlite://',
        jwt_secret_key=SECRET,
        api_prefix='',
        log_dir=str(tmp_path / 'log'),
        otel_exporter_url=None,
    )
    app.flask_app.testing = True
    app.create_schema()
    yield app
    app.database.drop_all()
    app.close()


@pytest.fixture
def client(cube_app):
    return cube_app.flask_app.test_client()


@pytest.fixture
def repository(cube_app):
    return cube_app.repository


def post_json(client, path, payload, token=None):
    headers = {'Authorization': f'Bearer {token}'} if token else {}
    return client.post(path, data=json.dumps(payload), content_type='application/json',
                       headers=headers)


def put_json(client, path, payload, token=None):
    headers = {'Authorization': f'Bearer {token}'} if token else {}
    return client.put(path, data=json.dumps(payload), content_type='application/json',
                      headers=headers)


def create_user(client, email='jane@x.com', password='pw', name='Jane'):
    response = post_json(client, '/users', {'name': name, 'email': email, 'password': password})
    assert response.status_code == 201, response.data
    return response


def login(client, email='jane@x.com', password='pw'):
    response = post_json(client, '/login', {'email': email, 'password': password})
    assert response.status_code == 200, response.data
    return json.loads(response.data)['token']


@pytest.fixture
def token(client):
    """Bearer token of a freshly registered user"""
    create_user(client)
    return login(client)
