import json

import pytest
from flask import Flask

from cube_api.errors import (ConflictError, MethodNotAllowedError,
                             NotFoundError, PersistenceError, ValidationError)
from cube_api.responses import Envelope, RequestLog, Responder


@pytest.fixture
def flask_app():
    return Flask(__name__)


@pytest.fixture
def request_log(tmp_path):
    log = RequestLog(str(tmp_path))
    yield log
    log.close()


def read_log(tmp_path, name):
    path = tmp_path / name
    return path.read_text(encoding='utf-8').splitlines() if path.exists() else []


def test_payload_shapes():
    assert Envelope(201, 'User created').payload() == {'result': 'User created'}
    assert Envelope(200, [{'id': 1}], is_data=True).payload() == [{'id': 1}]
    assert Envelope(204, 'ignored').payload() is None


def test_status_envelope(flask_app, request_log):
    responder = Responder(request_log)

    with flask_app.test_request_context('/users', method='POST'):
        response = responder.write(responder.status(201, 'User created'))

    assert response.status_code == 201
    assert json.loads(response.data) == {'result': 'User created'}


def test_data_envelope(flask_app):
    responder = Responder()

    with flask_app.test_request_context('/users/1'):
        response = responder.write(responder.data(200, {'id': 1, 'name': 'Jane'}, 'User found'))

    assert response.status_code == 200
    assert json.loads(response.data) == {'id': 1, 'name': 'Jane'}


def test_no_content(flask_app):
    responder = Responder()
    with flask_app.test_request_context('/'):
        response = responder.write(responder.no_content())

    assert response.status_code == 204
    assert response.data == b''


@pytest.mark.parametrize('error, status, body', [
    (ValidationError('Missing required fields: email'), 400, 'Missing required fields: email'),
    (NotFoundError('User not found'), 404, 'User not found'),
    (PersistenceError('Duplicate entry for key PRIMARY'), 500, 'Internal server error'),
    (ConflictError('UNIQUE constraint failed: user.email'), 409, 'Resource conflicts with an existing one'),
])
def test_error_envelope(flask_app, error, status, body):
    responder = Responder()
    with flask_app.test_request_context('/'):
        response = responder.write(responder.error(error))

    assert response.status_code == status
    assert json.loads(response.data) == {'result': body}


def test_method_not_allowed_sets_allow_header(flask_app):
    responder = Responder()
    with flask_app.test_request_context('/users', method='DELETE'):
        response = responder.write(responder.error(MethodNotAllowedError(['POST', 'GET'])))

    assert response.status_code == 405
    assert response.headers['Allow'] == 'GET, POST'
    assert json.loads(response.data) == {'result': 'Method not allowed. Allowed methods: GET, POST'}


def test_request_log_sinks(flask_app, request_log, tmp_path):
    responder = Responder(request_log)

    with flask_app.test_request_context('/users?x=1', method='POST', headers={'User-Agent': 'pytest'}):
        responder.write(responder.status(201, 'User created'))
    with flask_app.test_request_context('/users/9'):
        responder.write(responder.error(PersistenceError('connection refused')))

    success = read_log(tmp_path, 'success.log')
    errors = read_log(tmp_path, 'error.log')

    assert len(success) == 1
    assert '/users?x=1 - POST - ' in success[0]
    assert 'pytest' in success[0]
    assert success[0].endswith(' - User created')

    # The internal message is logged, not the public one
    assert len(errors) == 1
    assert errors[0].endswith(' - connection refused')


def test_request_log_appends(flask_app, tmp_path):
    for _ in range(2):
        log = RequestLog(str(tmp_path))
        with flask_app.test_request_context('/'):
            Responder(log).write(Envelope(200, 'ok', message='ok'))
        log.close()

    assert len(read_log(tmp_path, 'success.log')) == 2
