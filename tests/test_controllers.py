import pytest

from cube_api.controller import ControllerRegistry, Field, ResourceController
from cube_api.errors import ValidationError
from cube_api.models import Role, Vat
from cube_api.resources import RoleController, UserController, VatController
from cube_api.routes import RESOURCES, build_registry, build_route_table
from cube_api.routing import HandlerId, RouteTable


def services():
    return {'repository': object(), 'responder': object(), 'auth': object()}


def test_register_and_lookup():
    registry = ControllerRegistry()
    registry.register('roles', RoleController)

    assert registry.has_controller('roles')
    assert registry.get_controller('roles') is RoleController
    assert registry.get_controller('nope') is None
    assert registry.list_controllers() == {'roles': 'RoleController'}


def test_register_rejects_duplicates_and_non_controllers():
    registry = ControllerRegistry()
    registry.register('roles', RoleController)

    with pytest.raises(ValueError):
        registry.register('roles', VatController)
    with pytest.raises(TypeError):
        registry.register('things', object)


def test_resolve_builds_controller_with_its_services():
    registry = build_registry(services())

    controller, action = registry.resolve(HandlerId('users', 'login'))
    assert isinstance(controller, UserController)
    assert action == 'login'
    assert controller.auth is not None

    controller, _ = registry.resolve(HandlerId('roles', 'list'))
    assert not hasattr(controller, 'auth')


def test_resolve_builds_a_fresh_controller_per_call():
    registry = build_registry(services())
    first, _ = registry.resolve(HandlerId('roles', 'get'))
    second, _ = registry.resolve(HandlerId('roles', 'get'))
    assert first is not second


def test_resolve_unknown_controller():
    with pytest.raises(LookupError):
        build_registry(services()).resolve(HandlerId('nope', 'list'))


def test_resolve_missing_service():
    registry = build_registry({'repository': object(), 'responder': object()})
    with pytest.raises(LookupError):
        registry.resolve(HandlerId('users', 'get'))


def test_controller_requires_declared_services():
    with pytest.raises(TypeError):
        RoleController(repository=object())


def test_api_route_table_is_consistent_with_controllers():
    registry = build_registry(services())
    registry.check_routes(build_route_table())

    assert set(registry.list_controllers()) == set(RESOURCES)


def test_check_routes_reports_every_broken_route():
    table = RouteTable()
    table.register('GET', '/roles', HandlerId('roles', 'list'))
    table.register('GET', '/ghosts', HandlerId('ghosts', 'list'))
    table.register('GET', '/roles/{id:int}/x', HandlerId('roles', 'explode'))
    table.register('GET', '/roles/{id:int}', HandlerId('roles', 'list'))
    table.register('POST', '/roles/{id:int}', HandlerId('roles', '_private'))
    table.freeze()

    with pytest.raises(LookupError) as excinfo:
        build_registry(services()).check_routes(table)

    message = str(excinfo.value)
    assert "unknown controller 'ghosts'" in message
    assert "unknown operation 'roles.explode'" in message
    assert "'roles.list' takes 0 argument(s), route provides 1" in message
    assert "unknown operation 'roles._private'" in message
    assert 'GET /roles:' not in message


def test_check_routes_follows_decorated_signatures():
    table = RouteTable()
    table.register('PUT', '/users/{id:int}', HandlerId('users', 'update'))
    table.register('PUT', '/users/by-email/{email}', HandlerId('users', 'update_by_email'))
    table.freeze()

    build_registry(services()).check_routes(table)


def test_controller_name():
    assert RoleController(**services()).name == 'Role'
    assert VatController(**services()).name == 'VAT'


class TestField:

    def test_kinds(self):
        assert Field('name').coerce('name', 'x') == 'x'
        assert Field('n', 'int').coerce('n', 3) == 3
        assert Field('p', 'float').coerce('p', 3) == 3.0
        assert Field('b', 'bool').coerce('b', False) is False
        assert Field('d', 'datetime').coerce('d', '2024-05-01 10:00:00').year == 2024
        assert Field('d', 'datetime').coerce('d', '2024-05-01T10:00:00').hour == 10

    @pytest.mark.parametrize('field, value', [
        (Field('name'), 3),
        (Field('n', 'int'), '3'),
        (Field('n', 'int'), True),
        (Field('n', 'int'), 1.5),
        (Field('p', 'float'), 'cheap'),
        (Field('b', 'bool'), 1),
        (Field('d', 'datetime'), 'yesterday'),
        (Field('role_id', 'ref', ref=Role), 'admin'),
        (Field('name'), None),
        (Field('n', 'int'), 2 ** 63),
        (Field('role_id', 'ref', ref=Role), -2 ** 63 - 1),
        (Field('name', max_length=3), 'abcd'),
    ])
    def test_wrong_type(self, field, value):
        with pytest.raises(ValidationError):
            field.coerce('field', value)

    def test_optional_accepts_null(self):
        assert Field('job', required=False).coerce('job', None) is None

    def test_integer_bounds(self):
        assert Field('n', 'int').coerce('n', 2 ** 63 - 1) == 2 ** 63 - 1
        assert Field('n', 'int').coerce('n', -2 ** 63) == -2 ** 63

    def test_string_length_follows_the_column(self):
        assert VatController.fields['name'].max_length == 255
        assert UserController.fields['password'].max_length == 128
        assert Field('rate', 'float').sized_for(Vat).max_length is None
        assert Field('name').coerce('name', 'x' * 1000) == 'x' * 1000

    def test_query_values(self):
        assert Field('n', 'int').coerce_query('n', '4') == 4
        assert Field('b', 'bool').coerce_query('b', 'TRUE') is True
        assert Field('b', 'bool').coerce_query('b', '0') is False
        assert Field('name').coerce_query('name', 'Jane') == 'Jane'
        with pytest.raises(ValidationError):
            Field('n', 'int').coerce_query('n', 'four')
        with pytest.raises(ValidationError):
            Field('n', 'int').coerce_query('n', '99999999999999999999999')
        with pytest.raises(ValidationError):
            Field('b', 'bool').coerce_query('b', 'maybe')

    def test_invalid_declarations(self):
        with pytest.raises(ValueError):
            Field('x', 'decimal')
        with pytest.raises(ValueError):
            Field('vat_id', 'ref')
        with pytest.raises(ValueError):
            Field('name', ref=Vat)


def test_validate_create_and_update():
    controller = VatController(**services())

    with pytest.raises(ValidationError) as excinfo:
        controller.validate({'name': '20%'}, partial=False)
    assert excinfo.value.message == 'Missing required fields: rate, description'

    assert controller.validate({'name': 'std', 'rate': 20, 'description': 'x', 'junk': 1},
                               partial=False) == {'name': 'std', 'rate': 20.0, 'description': 'x'}

    assert controller.validate({'rate': 5.5}, partial=True) == {'rate': 5.5}
    with pytest.raises(ValidationError):
        controller.validate({'junk': 1}, partial=True)


class Plain(ResourceController):
    model = Vat
    fields = {'name': Field('name')}


def test_generic_controller_defaults():
    controller = Plain(**services())
    assert controller.name == 'Vat'
    assert controller.requires == ('repository', 'responder')


def test_validate_rejects_overlong_strings():
    controller = VatController(**services())
    with pytest.raises(ValidationError) as excinfo:
        controller.validate({'name': 'x' * 256}, partial=True)
    assert excinfo.value.message == "Field 'name' must be at most 255 characters"
    assert controller.validate({'name': 'x' * 255}, partial=True) == {'name': 'x' * 255}
