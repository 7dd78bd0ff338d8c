from behave import given, when, then
import json


def auth_headers(context):
    if context.token:
        return {'Authorization': f'Bearer {context.token}'}
    return {}


def send(context, method, path, payload=None):
    kwargs = {'headers': auth_headers(context)}
    if payload is not None:
        kwargs['data'] = json.dumps(payload)
        kwargs['content_type'] = 'application/json'
    context.response = context.client.open(path, method=method, **kwargs)


@given('a registered user "{email}" with password "{password}"')
def step_impl(context, email, password):
    send(context, 'POST', '/users', {'name': email.split('@')[0], 'email': email, 'password': password})
    assert context.response.status_code == 201, context.response.data


@given('I am logged in as "{email}" with password "{password}"')
def step_impl(context, email, password):
    send(context, 'POST', '/login', {'email': email, 'password': password})
    assert context.response.status_code == 200, context.response.data
    context.token = json.loads(context.response.data)['token']


@given('I use the token "{token}"')
def step_impl(context, token):
    context.token = token


@given('a license "{name}" exists')
def step_impl(context, name):
    send(context, 'POST', '/licenses', {
        'name': name, 'description': name, 'price': 10.0, 'maxUsers': 5, 'validityPeriod': 365,
    })
    assert context.response.status_code == 201, context.response.data


@when('I send a {method} request to "{path}"')
def step_impl(context, method, path):
    send(context, method, path)


@when('I send a {method} request to "{path}" with')
def step_impl(context, method, path):
    send(context, method, path, json.loads(context.text))


@when('I log in as "{email}" with password "{password}"')
def step_impl(context, email, password):
    send(context, 'POST', '/login', {'email': email, 'password': password})


@then('the status code should be {status_code:d}')
def step_impl(context, status_code):
    assert context.response.status_code == status_code, \
        f"{context.response.status_code}: {context.response.data}"


@then('the response should contain message "{msg}"')
def step_impl(context, msg):
    data = json.loads(context.response.data)
    assert data == {'result': msg}, data


@then('the "{header}" header should be "{value}"')
def step_impl(context, header, value):
    assert context.response.headers.get(header) == value, context.response.headers


@then('the response should have a bearer token')
def step_impl(context):
    data = json.loads(context.response.data)
    assert data['tokenType'] == 'Bearer'
    assert data['token'].count('.') == 2


@then('the response field "{field}" should be "{value}"')
def step_impl(context, field, value):
    data = json.loads(context.response.data)
    assert str(data[field]) == value, data


@then('the response should not contain "{field}"')
def step_impl(context, field):
    data = json.loads(context.response.data)
    assert field not in data, data


@then('the response should be a list of {count:d} items')
def step_impl(context, count):
    data = json.loads(context.response.data)
    assert isinstance(data, list) and len(data) == count, data
