import pytest
from sqlalchemy.exc import OperationalError

from cube_api.errors import ConflictError, PersistenceError
from cube_api.models import Company, License, Role, User, Vat


def make_license(repository, name='Pro'):
    return repository.add(License(name=name, description='Pro plan', price=9.5,
                                  max_users=10, validity_period=365))


def test_add_assigns_id_and_get_one_returns_equal_entity(repository):
    role = repository.add(Role(name='admin', description='Administrator'))

    assert role.id is not None
    found = repository.get_one(Role, role.id)
    assert found.to_dict() == role.to_dict()
    assert found.name == 'admin'
    assert found.created_at is not None


def test_get_one_missing_returns_none(repository):
    assert repository.get_one(Role, 999) is None


def test_get_all_by_empty_criteria_returns_everything(repository):
    names = {f'vat-{i}' for i in range(5)}
    for name in names:
        repository.add(Vat(name=name, rate=20.0, description='standard'))

    assert {v.name for v in repository.get_all_by(Vat, {})} == names
    assert len(repository.get_all(Vat)) == 5
    assert repository.get_all_by(Vat, None) != []


def test_get_all_by_is_a_conjunction(repository):
    repository.add(Vat(name='a', rate=20.0, description='x'))
    repository.add(Vat(name='b', rate=20.0, description='y'))
    repository.add(Vat(name='c', rate=5.5, description='x'))

    assert [v.name for v in repository.get_all_by(Vat, {'rate': 20.0, 'description': 'x'})] == ['a']
    assert repository.get_all_by(Vat, {'rate': 1.0}) == []


def test_get_one_by(repository):
    repository.add(Role(name='admin', description='Administrator'))

    assert repository.get_one_by(Role, {'name': 'admin'}).description == 'Administrator'
    assert repository.get_one_by(Role, {'name': 'nobody'}) is None


def test_get_by_order(repository):
    for name, rate in (('b', 5.5), ('a', 20.0), ('c', 10.0)):
        repository.add(Vat(name=name, rate=rate, description='x'))

    assert [v.name for v in repository.get_by_order(Vat, {}, {'name': 'ASC'})] == ['a', 'b', 'c']
    assert [v.name for v in repository.get_by_order(Vat, {}, {'rate': 'desc'})] == ['a', 'c', 'b']
    assert [v.name for v in repository.get_by_order(Vat, {'description': 'x'}, {'name': 'DESC'})] == \
        ['c', 'b', 'a']


def test_get_by_order_rejects_unknown_field_and_direction(repository):
    with pytest.raises(PersistenceError):
        repository.get_by_order(Vat, {}, {'nope': 'ASC'})
    with pytest.raises(PersistenceError):
        repository.get_by_order(Vat, {}, {'name': 'SIDEWAYS'})


def test_update(repository):
    role = repository.add(Role(name='admin', description='Administrator'))
    role.description = 'Root'
    repository.update(role)

    found = repository.get_one(Role, role.id)
    assert found.description == 'Root'
    assert found.updated_at is not None


def test_delete(repository):
    role = repository.add(Role(name='admin', description='Administrator'))
    role_id = role.id
    repository.delete(role)

    assert repository.get_one(Role, role_id) is None


def test_update_and_delete_require_persistent_entity(repository):
    with pytest.raises(PersistenceError):
        repository.update(Role(name='x', description='y'))
    with pytest.raises(PersistenceError):
        repository.delete(Role(name='x', description='y'))


def test_unique_violation_is_a_conflict(repository):
    repository.add(Role(name='admin', description='Administrator'))

    with pytest.raises(ConflictError):
        repository.add(Role(name='admin', description='Duplicate'))

    # The session was rolled back and is usable again
    assert len(repository.get_all(Role)) == 1


def test_missing_required_column_is_a_persistence_error(repository):
    with pytest.raises(PersistenceError):
        repository.add(Role(name='no description'))


def test_dangling_reference_is_a_conflict(repository):
    company = Company(name='Acme', address='1 road', city='Paris', country='FR',
                      zip_code='75000', phone='0102030405', language='fr', license_id=404)
    with pytest.raises(ConflictError):
        repository.add(company)


def test_references_and_cascade(repository):
    license = make_license(repository)
    company = repository.add(Company(name='Acme', address='1 road', city='Paris', country='FR',
                                     zip_code='75000', phone='0102030405', language='fr',
                                     license=license))
    user = repository.add(User(name='Jane', email='jane@x.com', password='hash', company=company))
    user_id = user.id

    assert repository.get_all_by(User, {'company_id': company.id})[0].email == 'jane@x.com'

    repository.delete(company)
    assert repository.get_one(User, user_id) is None


def test_store_failure_is_translated(repository, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError('SELECT 1', {}, Exception('server has gone away'))

    monkeypatch.setattr(repository.session, 'scalars', broken)

    with pytest.raises(PersistenceError) as excinfo:
        repository.get_all(Role)
    assert not isinstance(excinfo.value, ConflictError)
    assert excinfo.value.client_message == 'Internal server error'


def test_id_beyond_driver_range_is_a_persistence_error(repository):
    with pytest.raises(PersistenceError):
        repository.get_one(Role, 10 ** 30)
    # The session is still usable
    assert repository.get_all(Role) == []
