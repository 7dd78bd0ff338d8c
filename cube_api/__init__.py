"""
Cube API

REST backend for managing companies, their users, customers, products,
projects and everything hanging off a project (tasks, messages, estimates,
invoices, order forms).

Key Features:
- Declarative route table with typed path parameters and 404 / 405 dispatch
- Generic CRUD controllers built per request from a registry of services
- Bearer token (JWT) authentication, salted password hashes
- One repository over SQLAlchemy; store failures never leak to clients
- Uniform `{"result": ...}` envelope plus success / error request logs

Quick Start:
    from cube_api import create_app

    app = create_app()          # reads .env / environment
    app.create_schema()
    app.run()
"""

__version__ = "1.0.0"

from .auth import CredentialService, Principal, authenticated
from .config import Settings
from .controller import ControllerRegistry, Field, ResourceController
from .core import CubeApp, create_app
from .repository import Repository
from .routing import HandlerId, RouteTable

__all__ = [
    'CubeApp',
    'create_app',
    'Settings',
    'RouteTable',
    'HandlerId',
    'ControllerRegistry',
    'ResourceController',
    'Field',
    'CredentialService',
    'Principal',
    'authenticated',
    'Repository',
    '__version__'
]
