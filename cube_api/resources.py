"""
Concrete resource controllers

Most resources are fully described by their model and fields. Users and
companies guard their mutating operations behind a bearer token.
"""

from flask import g

from .auth import authenticated
from .controller import Field, ResourceController
from .errors import AuthError, NotFoundError, ValidationError
from .models import (Company, CompanySettings, Customer, CustomerStatus,
                     Estimate, EstimateStatus, Invoice, License, Message,
                     OrderForm, Product, ProductFamily, Project,
                     ProjectStatus, QuantityUnit, Role, Supplier, Task,
                     TaskStatus, TaskType, User, UserSettings, Vat)

NAME_AND_DESCRIPTION = {
    'name': Field('name'),
    'description': Field('description'),
}

ADDRESS = {
    'address': Field('address'),
    'city': Field('city'),
    'country': Field('country'),
    'zipCode': Field('zip_code'),
    'phone': Field('phone'),
}


class GuardedController(ResourceController):
    """Controller whose mutating operations need an authenticated user"""

    requires = ('repository', 'responder', 'auth')

    def principal_user(self) -> User:
        """
        The user behind the verified token

        The token only proves it was signed by us; the account must still
        exist and be enabled.
        """
        user = self.repository.get_one_by(User, {'email': g.principal.identity})
        if user is None or not user.is_enabled:
            raise AuthError('Unknown or disabled account')
        return user


class UserController(GuardedController):
    model = User
    fields = {
        'name': Field('name'),
        'email': Field('email'),
        'password': Field('password', max_length=128),
        'job': Field('job', required=False),
        'phone': Field('phone', required=False),
        'isEnabled': Field('is_enabled', 'bool', required=False),
        'role': Field('role_id', 'ref', required=False, ref=Role),
        'company': Field('company_id', 'ref', required=False, ref=Company),
    }

    def before_insert(self, entity, values):
        entity.password = self.auth.hash_password(values['password'])

    def before_update(self, entity, values):
        if 'password' in values:
            entity.password = self.auth.hash_password(values['password'])

    def login(self):
        data = self.json_body()
        email = data.get('email')
        password = data.get('password')
        if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
            raise ValidationError('Missing required fields: email, password')

        user = self.repository.get_one_by(User, {'email': email})
        if user is None or not self.auth.verify_password(password, user.password):
            raise AuthError('Invalid credentials')
        if not user.is_enabled:
            raise AuthError('Account disabled')

        token = self.auth.issue_token(user.email)
        return self.responder.data(200, {'token': token, 'tokenType': 'Bearer'}, 'User logged in')

    def get_by_email(self, email: str):
        return self.responder.data(200, self.serialize(self.load_by_email(email)), 'User found')

    @authenticated
    def update(self, id: int):
        self.principal_user()
        return super().update(id)

    @authenticated
    def delete(self, id: int):
        self.principal_user()
        return super().delete(id)

    @authenticated
    def update_by_email(self, email: str):
        self.principal_user()
        values = self.validate(self.json_body(), partial=True)
        user = self.load_by_email(email)
        self.apply(user, self.resolve_references(values))
        self.before_update(user, values)
        self.repository.update(user)
        return self.responder.status(200, 'User updated successfully')

    def load_by_email(self, email: str) -> User:
        user = self.repository.get_one_by(User, {'email': email})
        if user is None:
            raise NotFoundError('User not found')
        return user


class CompanyController(GuardedController):
    model = Company
    fields = {
        'name': Field('name'),
        **ADDRESS,
        'slogan': Field('slogan', required=False),
        'logoPath': Field('logo_path', required=False),
        'language': Field('language'),
        'isEnabled': Field('is_enabled', 'bool', required=False),
        'license': Field('license_id', 'ref', ref=License),
    }

    def get_by_name(self, name: str):
        company = self.repository.get_one_by(Company, {'name': name})
        if company is None:
            raise NotFoundError('Company not found')
        return self.responder.data(200, self.serialize(company), 'Company found')

    @authenticated
    def create(self):
        self.principal_user()
        return super().create()

    @authenticated
    def update(self, id: int):
        self.principal_user()
        return super().update(id)

    @authenticated
    def delete(self, id: int):
        self.principal_user()
        return super().delete(id)


class LicenseController(ResourceController):
    model = License
    fields = {
        **NAME_AND_DESCRIPTION,
        'price': Field('price', 'float'),
        'maxUsers': Field('max_users', 'int'),
        'validityPeriod': Field('validity_period', 'int'),
    }


class RoleController(ResourceController):
    model = Role
    fields = NAME_AND_DESCRIPTION


class CompanySettingsController(ResourceController):
    model = CompanySettings
    label = 'Company settings'
    fields = {
        'primaryColor': Field('primary_color'),
        'secondaryColor': Field('secondary_color'),
        'tertiaryColor': Field('tertiary_color'),
        'company': Field('company_id', 'ref', ref=Company),
    }


class UserSettingsController(ResourceController):
    model = UserSettings
    label = 'User settings'
    fields = {
        'theme': Field('theme'),
        'language': Field('language'),
        'user': Field('user_id', 'ref', ref=User),
    }


class VatController(ResourceController):
    model = Vat
    label = 'VAT'
    fields = {
        'name': Field('name'),
        'rate': Field('rate', 'float'),
        'description': Field('description'),
    }


class QuantityUnitController(ResourceController):
    model = QuantityUnit
    label = 'Quantity unit'
    fields = NAME_AND_DESCRIPTION


class ProductFamilyController(ResourceController):
    model = ProductFamily
    label = 'Product family'
    fields = {
        **NAME_AND_DESCRIPTION,
        'company': Field('company_id', 'ref', ref=Company),
    }


class SupplierController(ResourceController):
    model = Supplier
    fields = {
        'name': Field('name'),
        'firstName': Field('first_name'),
        'lastName': Field('last_name'),
        'email': Field('email'),
        **ADDRESS,
        'supplierCompanyName': Field('supplier_company_name', required=False),
        'company': Field('company_id', 'ref', ref=Company),
    }


class ProductController(ResourceController):
    model = Product
    fields = {
        **NAME_AND_DESCRIPTION,
        'buyPrice': Field('buy_price', 'float'),
        'sellPrice': Field('sell_price', 'float'),
        'quantity': Field('quantity', 'float'),
        'discount': Field('discount', 'float'),
        'isDiscount': Field('is_discount', 'bool'),
        'productFamily': Field('product_family_id', 'ref', ref=ProductFamily),
        'vat': Field('vat_id', 'ref', ref=Vat),
        'company': Field('company_id', 'ref', ref=Company),
        'quantityUnit': Field('quantity_unit_id', 'ref', ref=QuantityUnit),
        'supplier': Field('supplier_id', 'ref', ref=Supplier),
    }

    def list_by_company(self, company_id: int):
        return self.list_by('company_id', company_id)


class CustomerStatusController(ResourceController):
    model = CustomerStatus
    label = 'Customer status'
    fields = NAME_AND_DESCRIPTION


class CustomerController(ResourceController):
    model = Customer
    fields = {
        'firstName': Field('first_name'),
        'lastName': Field('last_name'),
        'email': Field('email'),
        **ADDRESS,
        'customerCompanyName': Field('customer_company_name', required=False),
        'company': Field('company_id', 'ref', ref=Company),
        'user': Field('user_id', 'ref', ref=User),
        'status': Field('status_id', 'ref', ref=CustomerStatus),
    }

    def list_by_company(self, company_id: int):
        return self.list_by('company_id', company_id)


class ProjectStatusController(ResourceController):
    model = ProjectStatus
    label = 'Project status'
    fields = NAME_AND_DESCRIPTION


class ProjectController(ResourceController):
    model = Project
    fields = {
        **NAME_AND_DESCRIPTION,
        'company': Field('company_id', 'ref', ref=Company),
        'creator': Field('creator_id', 'ref', ref=User),
        'customer': Field('customer_id', 'ref', ref=Customer),
        'projectStatus': Field('project_status_id', 'ref', ref=ProjectStatus),
    }

    def list_by_company(self, company_id: int):
        return self.list_by('company_id', company_id)


class TaskStatusController(ResourceController):
    model = TaskStatus
    label = 'Task status'
    fields = NAME_AND_DESCRIPTION


class TaskTypeController(ResourceController):
    model = TaskType
    label = 'Task type'
    fields = NAME_AND_DESCRIPTION


class TaskController(ResourceController):
    model = Task
    fields = {
        'title': Field('title'),
        'description': Field('description'),
        'location': Field('location'),
        'dueDate': Field('due_date'),
        'project': Field('project_id', 'ref', ref=Project),
        'user': Field('user_id', 'ref', ref=User),
        'taskStatus': Field('task_status_id', 'ref', ref=TaskStatus),
        'taskType': Field('task_type_id', 'ref', required=False, ref=TaskType),
    }

    def list_by_project(self, project_id: int):
        return self.list_by('project_id', project_id)

    def list_by_user(self, user_id: int):
        return self.list_by('user_id', user_id)


class MessageController(ResourceController):
    model = Message
    fields = {
        'sender': Field('sender_id', 'ref', ref=User),
        'project': Field('project_id', 'ref', ref=Project),
        'message': Field('message'),
        'isRead': Field('is_read', 'bool', required=False),
    }

    def list_by_project(self, project_id: int):
        return self.list_by('project_id', project_id)


class EstimateStatusController(ResourceController):
    model = EstimateStatus
    label = 'Estimate status'
    fields = NAME_AND_DESCRIPTION


class EstimateController(ResourceController):
    model = Estimate
    fields = {
        **NAME_AND_DESCRIPTION,
        'expiredAt': Field('expired_at', 'datetime', required=False),
        'project': Field('project_id', 'ref', ref=Project),
        'estimateStatus': Field('estimate_status_id', 'ref', ref=EstimateStatus),
    }

    def list_by_project(self, project_id: int):
        return self.list_by('project_id', project_id)


class InvoiceController(ResourceController):
    model = Invoice
    fields = {
        **NAME_AND_DESCRIPTION,
        'project': Field('project_id', 'ref', ref=Project),
    }

    def list_by_project(self, project_id: int):
        return self.list_by('project_id', project_id)


class OrderFormController(ResourceController):
    model = OrderForm
    label = 'Order form'
    fields = {
        **NAME_AND_DESCRIPTION,
        'project': Field('project_id', 'ref', ref=Project),
    }

    def list_by_project(self, project_id: int):
        return self.list_by('project_id', project_id)
