import pytest

from cube_api.routes import build_route_table
from cube_api.routing import (HandlerId, Matched, MethodNotAllowed, NotFound,
                              RouteTable, parse_pattern, split_request_path)


def make_table():
    table = RouteTable()
    table.register('GET', '/users', HandlerId('users', 'list'))
    table.register('POST', '/users', HandlerId('users', 'create'))
    table.register('GET', '/users/{id:int}', HandlerId('users', 'get'))
    table.register('PUT', '/users/{id:int}', HandlerId('users', 'update'))
    table.register('GET', '/users/{email}', HandlerId('users', 'get_by_email'))
    table.register('GET', '/users/me', HandlerId('users', 'me'))
    table.register('GET', '/projects/{project_id:int}/tasks/{task_id:int}', HandlerId('tasks', 'get'))
    return table.freeze()


def test_match_returns_declared_params():
    result = make_table().match('GET', '/users/42')

    assert isinstance(result, Matched)
    assert result.handler == HandlerId('users', 'get')
    assert result.params == {'id': '42'}
    assert result.route.convert(result.params) == [42]


def test_match_several_params_in_declared_order():
    result = make_table().match('GET', '/projects/7/tasks/3')

    assert isinstance(result, Matched)
    assert result.params == {'project_id': '7', 'task_id': '3'}
    assert result.route.convert(result.params) == [7, 3]


def test_static_segment_beats_placeholders():
    result = make_table().match('GET', '/users/me')
    assert result.handler == HandlerId('users', 'me')


def test_int_placeholder_beats_str_placeholder():
    table = make_table()
    assert table.match('GET', '/users/12').handler == HandlerId('users', 'get')
    assert table.match('GET', '/users/jane@x.com').handler == HandlerId('users', 'get_by_email')


def test_percent_decoding_per_segment():
    result = make_table().match('GET', '/users/jane%40x.com')
    assert result.params == {'email': 'jane@x.com'}

    # An encoded slash stays inside its segment
    result = make_table().match('GET', '/users/a%2Fb')
    assert isinstance(result, Matched)
    assert result.params == {'email': 'a/b'}


def test_query_string_and_trailing_slash_ignored():
    table = make_table()
    assert table.match('GET', '/users/?order_by=name').handler == HandlerId('users', 'list')
    assert table.match('GET', '/users/5?x=1').params == {'id': '5'}


def test_method_not_allowed_lists_every_method_for_the_path():
    result = make_table().match('DELETE', '/users')

    assert isinstance(result, MethodNotAllowed)
    assert result.allowed_methods == ('GET', 'POST')


def test_method_not_allowed_unions_overlapping_patterns():
    # '/users/5' is matched by {id:int} (GET, PUT) and {email} (GET)
    result = make_table().match('DELETE', '/users/5')
    assert result.allowed_methods == ('GET', 'PUT')


def test_method_is_case_insensitive():
    assert isinstance(make_table().match('get', '/users'), Matched)


def test_unregistered_path_not_found():
    table = make_table()
    assert isinstance(table.match('GET', '/nonexistent'), NotFound)
    assert isinstance(table.match('GET', '/users/1/2/3'), NotFound)
    assert isinstance(table.match('GET', '/'), NotFound)


def test_int_placeholder_outside_bigint_range_not_found():
    table = make_table()
    assert isinstance(table.match('GET', '/projects/9223372036854775807/tasks/1'), Matched)
    assert isinstance(table.match('GET', '/projects/9223372036854775808/tasks/1'), NotFound)
    assert isinstance(table.match('GET', '/projects/1/tasks/99999999999999999999999'), NotFound)
    # Falls through to the str placeholder
    assert table.match('GET', '/users/99999999999999999999999').handler == HandlerId('users', 'get_by_email')


def test_duplicate_route_rejected():
    table = RouteTable()
    table.register('GET', '/users/{id:int}', HandlerId('users', 'get'))
    with pytest.raises(ValueError):
        table.register('GET', '/users/{user_id:int}', HandlerId('users', 'other'))

    # Same pattern, other method is fine
    table.register('DELETE', '/users/{id:int}', HandlerId('users', 'delete'))


def test_frozen_table_rejects_registration():
    table = make_table()
    with pytest.raises(RuntimeError):
        table.register('GET', '/late', HandlerId('late', 'list'))


def test_unsupported_method_rejected():
    with pytest.raises(ValueError):
        RouteTable().register('TRACE', '/users', HandlerId('users', 'list'))


def test_group_prefix():
    table = RouteTable()
    with table.group('/api/v1/'):
        table.register('GET', '/users', HandlerId('users', 'list'))
    table.register('GET', '/health', HandlerId('health', 'get'))

    assert [r.pattern for r in table] == ['/api/v1/users', '/health']
    assert isinstance(table.match('GET', '/api/v1/users'), Matched)
    assert isinstance(table.match('GET', '/users'), NotFound)


@pytest.mark.parametrize('pattern', [
    'users',
    '/users/{id:float}',
    '/users/{id',
    '/users//x',
    '/a/{x}/{x}',
])
def test_invalid_patterns(pattern):
    with pytest.raises(ValueError):
        parse_pattern(pattern)


def test_split_request_path():
    assert split_request_path('/') == ()
    assert split_request_path('/a/b/') == ('a', 'b')
    assert split_request_path('/a%20b/c?d=e#f') == ('a b', 'c')


def test_api_route_table():
    table = build_route_table('/api/v1')

    assert table.frozen
    assert table.match('POST', '/api/v1/login').handler == HandlerId('users', 'login')
    assert table.match('GET', '/api/v1/users/by-email/jane%40x.com').params == {'email': 'jane@x.com'}
    assert table.match('GET', '/api/v1/tasks/user/3').handler == HandlerId('tasks', 'list_by_user')
    assert table.match('DELETE', '/api/v1/users').allowed_methods == ('GET', 'POST')
    assert table.match('PATCH', '/api/v1/users/3').allowed_methods == ('DELETE', 'GET', 'PUT')
    assert isinstance(table.match('GET', '/api/v1/users/by-email'), NotFound)
