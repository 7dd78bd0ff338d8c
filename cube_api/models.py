"""
ORM models for the Cube API

Python attributes are snake_case, the JSON representation uses camelCase
keys (`zip_code` -> `zipCode`, `company_id` -> `companyId`). Columns listed
in `__hidden__` are never serialized.
"""

from datetime import datetime, timezone

from sqlalchemy import (Boolean, Column, DateTime, Float, ForeignKey, Integer,
                        String)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

DATETIME_FORMAT = '%Y-%m-%d %H:%M:%S'


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def camel_case(name: str) -> str:
    head, *tail = name.split('_')
    return head + ''.join(word.capitalize() for word in tail)


class Entity(Base):
    """Columns and serialization shared by every table"""

    __abstract__ = True
    __hidden__ = ()

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    def to_dict(self) -> dict:
        data = {}
        for column in self.__table__.columns:
            if column.key in self.__hidden__:
                continue
            value = getattr(self, column.key)
            if isinstance(value, datetime):
                value = value.strftime(DATETIME_FORMAT)
            data[camel_case(column.key)] = value
        return data

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.id}>"


class License(Entity):
    __tablename__ = 'license'

    name = Column(String(255), nullable=False, unique=True)
    description = Column(String(255), nullable=False)
    price = Column(Float, nullable=False)
    max_users = Column(Integer, nullable=False)
    validity_period = Column(Integer, nullable=False)


class Role(Entity):
    __tablename__ = 'role'

    name = Column(String(255), nullable=False, unique=True)
    description = Column(String(255), nullable=False)


class Company(Entity):
    __tablename__ = 'company'

    name = Column(String(255), nullable=False, unique=True)
    address = Column(String(255), nullable=False)
    city = Column(String(255), nullable=False)
    country = Column(String(255), nullable=False)
    zip_code = Column(String(32), nullable=False)
    phone = Column(String(64), nullable=False)
    slogan = Column(String(255), nullable=True)
    logo_path = Column(String(255), nullable=True)
    language = Column(String(16), nullable=False)
    is_enabled = Column(Boolean, nullable=False, default=True)
    license_id = Column(Integer, ForeignKey('license.id', ondelete='CASCADE'), nullable=False)

    license = relationship('License')


class CompanySettings(Entity):
    __tablename__ = 'company_settings'

    primary_color = Column(String(32), nullable=False)
    secondary_color = Column(String(32), nullable=False)
    tertiary_color = Column(String(32), nullable=False)
    company_id = Column(Integer, ForeignKey('company.id', ondelete='CASCADE'), nullable=False, unique=True)

    company = relationship('Company')


class User(Entity):
    __tablename__ = 'user'
    __hidden__ = ('password',)

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    password = Column(String(255), nullable=False)
    job = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    is_enabled = Column(Boolean, nullable=False, default=True)
    role_id = Column(Integer, ForeignKey('role.id', ondelete='SET NULL'), nullable=True)
    company_id = Column(Integer, ForeignKey('company.id', ondelete='CASCADE'), nullable=True)

    role = relationship('Role')
    company = relationship('Company')


class UserSettings(Entity):
    __tablename__ = 'user_settings'

    theme = Column(String(64), nullable=False)
    language = Column(String(16), nullable=False)
    user_id = Column(Integer, ForeignKey('user.id', ondelete='CASCADE'), nullable=False, unique=True)

    user = relationship('User')


class Vat(Entity):
    __tablename__ = 'vat'

    name = Column(String(255), nullable=False)
    rate = Column(Float, nullable=False)
    description = Column(String(255), nullable=False)


class QuantityUnit(Entity):
    __tablename__ = 'quantity_unit'

    name = Column(String(255), nullable=False)
    description = Column(String(255), nullable=False)


class ProductFamily(Entity):
    __tablename__ = 'product_family'

    name = Column(String(255), nullable=False)
    description = Column(String(255), nullable=False)
    company_id = Column(Integer, ForeignKey('company.id', ondelete='CASCADE'), nullable=False)

    company = relationship('Company')


class Supplier(Entity):
    __tablename__ = 'supplier'

    name = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    address = Column(String(255), nullable=False)
    city = Column(String(255), nullable=False)
    country = Column(String(255), nullable=False)
    zip_code = Column(String(32), nullable=False)
    phone = Column(String(64), nullable=False)
    supplier_company_name = Column(String(255), nullable=True)
    company_id = Column(Integer, ForeignKey('company.id', ondelete='CASCADE'), nullable=False)

    company = relationship('Company')


class Product(Entity):
    __tablename__ = 'product'

    name = Column(String(255), nullable=False)
    description = Column(String(255), nullable=False)
    buy_price = Column(Float, nullable=False)
    sell_price = Column(Float, nullable=False)
    quantity = Column(Float, nullable=False)
    discount = Column(Float, nullable=False, default=0)
    is_discount = Column(Boolean, nullable=False, default=False)
    product_family_id = Column(Integer, ForeignKey('product_family.id', ondelete='CASCADE'), nullable=False)
    vat_id = Column(Integer, ForeignKey('vat.id', ondelete='CASCADE'), nullable=False)
    company_id = Column(Integer, ForeignKey('company.id', ondelete='CASCADE'), nullable=False)
    quantity_unit_id = Column(Integer, ForeignKey('quantity_unit.id', ondelete='CASCADE'), nullable=False)
    supplier_id = Column(Integer, ForeignKey('supplier.id', ondelete='CASCADE'), nullable=False)

    product_family = relationship('ProductFamily')
    vat = relationship('Vat')
    company = relationship('Company')
    quantity_unit = relationship('QuantityUnit')
    supplier = relationship('Supplier')


class CustomerStatus(Entity):
    __tablename__ = 'customer_status'

    name = Column(String(255), nullable=False)
    description = Column(String(255), nullable=False)


class Customer(Entity):
    __tablename__ = 'customer'

    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    address = Column(String(255), nullable=False)
    city = Column(String(255), nullable=False)
    country = Column(String(255), nullable=False)
    zip_code = Column(String(32), nullable=False)
    phone = Column(String(64), nullable=False)
    customer_company_name = Column(String(255), nullable=True)
    company_id = Column(Integer, ForeignKey('company.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Integer, ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    status_id = Column(Integer, ForeignKey('customer_status.id', ondelete='CASCADE'), nullable=False)

    company = relationship('Company')
    user = relationship('User')
    status = relationship('CustomerStatus')


class ProjectStatus(Entity):
    __tablename__ = 'project_status'

    name = Column(String(255), nullable=False)
    description = Column(String(255), nullable=False)


class Project(Entity):
    __tablename__ = 'project'

    name = Column(String(255), nullable=False)
    description = Column(String(255), nullable=False)
    company_id = Column(Integer, ForeignKey('company.id', ondelete='CASCADE'), nullable=False)
    creator_id = Column(Integer, ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    customer_id = Column(Integer, ForeignKey('customer.id', ondelete='CASCADE'), nullable=False)
    project_status_id = Column(Integer, ForeignKey('project_status.id', ondelete='CASCADE'), nullable=False)

    company = relationship('Company')
    creator = relationship('User')
    customer = relationship('Customer')
    project_status = relationship('ProjectStatus')


class TaskStatus(Entity):
    __tablename__ = 'task_status'

    name = Column(String(255), nullable=False)
    description = Column(String(255), nullable=False)


class TaskType(Entity):
    __tablename__ = 'task_type'

    name = Column(String(255), nullable=False)
    description = Column(String(255), nullable=False)


class Task(Entity):
    __tablename__ = 'task'

    title = Column(String(255), nullable=False)
    description = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    due_date = Column(String(32), nullable=False)
    project_id = Column(Integer, ForeignKey('project.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Integer, ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    task_status_id = Column(Integer, ForeignKey('task_status.id', ondelete='CASCADE'), nullable=False)
    task_type_id = Column(Integer, ForeignKey('task_type.id', ondelete='CASCADE'), nullable=True)

    project = relationship('Project')
    user = relationship('User')
    task_status = relationship('TaskStatus')
    task_type = relationship('TaskType')


class Message(Entity):
    __tablename__ = 'message'

    message = Column(String(2000), nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    sender_id = Column(Integer, ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    project_id = Column(Integer, ForeignKey('project.id', ondelete='CASCADE'), nullable=False)

    sender = relationship('User')
    project = relationship('Project')


class EstimateStatus(Entity):
    __tablename__ = 'estimate_status'

    name = Column(String(255), nullable=False)
    description = Column(String(255), nullable=False)


class Estimate(Entity):
    __tablename__ = 'estimate'

    name = Column(String(255), nullable=False)
    description = Column(String(255), nullable=False)
    expired_at = Column(DateTime, nullable=True)
    project_id = Column(Integer, ForeignKey('project.id', ondelete='CASCADE'), nullable=False)
    estimate_status_id = Column(Integer, ForeignKey('estimate_status.id', ondelete='CASCADE'), nullable=False)

    project = relationship('Project')
    estimate_status = relationship('EstimateStatus')


class Invoice(Entity):
    __tablename__ = 'invoice'

    name = Column(String(255), nullable=False)
    description = Column(String(255), nullable=False)
    project_id = Column(Integer, ForeignKey('project.id', ondelete='CASCADE'), nullable=False)

    project = relationship('Project')


class OrderForm(Entity):
    __tablename__ = 'order_form'

    name = Column(String(255), nullable=False)
    description = Column(String(255), nullable=False)
    project_id = Column(Integer, ForeignKey('project.id', ondelete='CASCADE'), nullable=False)

    project = relationship('Project')
