"""
Route declarations

Every resource gets the same five CRUD routes under its collection path;
extra lookups and per-parent listings are declared next to them.
"""

from typing import Dict

from .controller import ControllerRegistry
from .resources import (CompanyController, CompanySettingsController,
                        CustomerController, CustomerStatusController,
                        EstimateController, EstimateStatusController,
                        InvoiceController, LicenseController,
                        MessageController, OrderFormController,
                        ProductController, ProductFamilyController,
                        ProjectController, ProjectStatusController,
                        QuantityUnitController, RoleController,
                        SupplierController, TaskController,
                        TaskStatusController, TaskTypeController,
                        UserController, UserSettingsController, VatController)
from .routing import HandlerId, RouteTable

# Collection path (also the controller name) -> controller class
RESOURCES = {
    'licenses': LicenseController,
    'roles': RoleController,
    'companies': CompanyController,
    'company-settings': CompanySettingsController,
    'users': UserController,
    'user-settings': UserSettingsController,
    'vats': VatController,
    'quantity-units': QuantityUnitController,
    'product-families': ProductFamilyController,
    'suppliers': SupplierController,
    'products': ProductController,
    'customer-statuses': CustomerStatusController,
    'customers': CustomerController,
    'project-statuses': ProjectStatusController,
    'projects': ProjectController,
    'task-statuses': TaskStatusController,
    'task-types': TaskTypeController,
    'tasks': TaskController,
    'messages': MessageController,
    'estimate-statuses': EstimateStatusController,
    'estimates': EstimateController,
    'invoices': InvoiceController,
    'order-forms': OrderFormController,
}

# (method, pattern, controller, action)
EXTRA_ROUTES = [
    ('POST', '/login', 'users', 'login'),
    ('GET', '/users/by-email/{email}', 'users', 'get_by_email'),
    ('PUT', '/users/by-email/{email}', 'users', 'update_by_email'),
    ('GET', '/companies/by-name/{name}', 'companies', 'get_by_name'),
    ('GET', '/products/company/{company_id:int}', 'products', 'list_by_company'),
    ('GET', '/customers/company/{company_id:int}', 'customers', 'list_by_company'),
    ('GET', '/projects/company/{company_id:int}', 'projects', 'list_by_company'),
    ('GET', '/tasks/project/{project_id:int}', 'tasks', 'list_by_project'),
    ('GET', '/tasks/user/{user_id:int}', 'tasks', 'list_by_user'),
    ('GET', '/messages/project/{project_id:int}', 'messages', 'list_by_project'),
    ('GET', '/estimates/project/{project_id:int}', 'estimates', 'list_by_project'),
    ('GET', '/invoices/project/{project_id:int}', 'invoices', 'list_by_project'),
    ('GET', '/order-forms/project/{project_id:int}', 'order-forms', 'list_by_project'),
]


def register_resource(table: RouteTable, name: str):
    """The five CRUD routes of one resource"""
    table.register('POST', f'/{name}', HandlerId(name, 'create'))
    table.register('GET', f'/{name}', HandlerId(name, 'list'))
    table.register('GET', f'/{name}/{{id:int}}', HandlerId(name, 'get'))
    table.register('PUT', f'/{name}/{{id:int}}', HandlerId(name, 'update'))
    table.register('DELETE', f'/{name}/{{id:int}}', HandlerId(name, 'delete'))


def build_route_table(prefix: str = '/api/v1') -> RouteTable:
    """Every route of the API, frozen"""
    table = RouteTable()
    with table.group(prefix):
        for name in RESOURCES:
            register_resource(table, name)
        for method, pattern, controller, action in EXTRA_ROUTES:
            table.register(method, pattern, HandlerId(controller, action))
    return table.freeze()


def build_registry(services: Dict[str, object], logger=None) -> ControllerRegistry:
    """
    Controller registry wired with the shared services

    Args:
        services: {'repository': ..., 'responder': ..., 'auth': ...}
    """
    registry = ControllerRegistry(logger=logger)
    for name, service in services.items():
        registry.provide(name, service)
    for name, controller_class in RESOURCES.items():
        registry.register(name, controller_class)
    return registry
