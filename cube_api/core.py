# Cube API
# Multi-tenant business management REST API on Flask + SQLAlchemy

import logging
from typing import Optional
from urllib.parse import quote

from flask import Flask, Response, jsonify, request
from opentelemetry import trace

from .auth import CredentialService
from .config import Settings
from .database import Database
from .errors import (ApiError, MethodNotAllowedError, PersistenceError,
                     RouteNotFoundError, UnexpectedError)
from .repository import Repository
from .responses import Envelope, RequestLog, Responder
from .routes import build_registry, build_route_table
from .routing import MethodNotAllowed, NotFound, RouteTable

# Configure basic logging
logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

DISPATCH_METHODS = ['GET', 'POST', 'PUT', 'DELETE', 'PATCH', 'OPTIONS']

CORS_HEADERS = {
    'Access-Control-Allow-Credentials': 'true',
    'Access-Control-Max-Age': '1000',
    'Access-Control-Allow-Methods': 'POST, GET, OPTIONS, PUT, DELETE',
    'Access-Control-Allow-Headers': (
        'Accept, Content-Type, Content-Length, Accept-Encoding, X-CSRF-Token, Authorization'),
}


class CubeApp:
    """
    The Cube API service

    Features:
    - Route table built and validated against the controllers at startup
    - One SQLAlchemy session per request, rolled back on failure
    - Bearer token authentication on guarded operations
    - Every error answered with the `{"result": ...}` envelope
    - success.log / error.log request sinks, optional OpenTelemetry export

    Usage:
        app = CubeApp(Settings.from_env())
        app.run()

        # or, for tests
        app = create_app(database_url='sqlite://', jwt_secret_key='...')
        app.create_schema()
        client = app.flask_app.test_client()
    """

    def __init__(self, settings: Settings, routes: Optional[RouteTable] = None):
        """
        Args:
            settings: Resolved configuration
            routes: Frozen route table; defaults to every API route under
                `settings.api_prefix`
        """
        settings.validate()
        self.settings = settings
        self.name = settings.service_name

        # Initialize Flask app
        self.flask_app = Flask(self.name)

        # Setup logging first
        self.log_level = settings.log_level
        self._setup_logging()

        # Setup OTEL
        self.otel_exporter_url = settings.otel_exporter_url
        self._setup_otel()
        self.tracer = trace.get_tracer(__name__)

        # Shared services
        self.database = Database(settings.sqlalchemy_url, logger=self.logger)
        self.repository = Repository(self.database.session, logger=self.logger)
        self.request_log = RequestLog(settings.log_dir)
        self.responder = Responder(self.request_log)
        self.auth = CredentialService(
            settings.jwt_secret_key, token_ttl=settings.jwt_ttl_seconds, logger=self.logger)

        # Routes and controllers; a broken table fails here, not on a request
        self.routes = routes if routes is not None else build_route_table(settings.api_prefix)
        if not self.routes.frozen:
            raise RuntimeError('Route table must be frozen before serving')
        self.registry = build_registry({
            'repository': self.repository,
            'responder': self.responder,
            'auth': self.auth,
        }, logger=self.logger)
        self.registry.check_routes(self.routes)
        self.logger.info(f"{len(self.routes)} routes registered")

        # Register middleware
        self._setup_middleware()

        # Add built-in routes
        self._register_built_in_routes()
        self._register_dispatcher()

    def _setup_logging(self):
        """Configure logging level and format"""
        # Convert string log level to logging constant
        if isinstance(self.log_level, str):
            self.log_level = getattr(logging, self.log_level.upper(), logging.INFO)

        # Configure root logger
        logging.getLogger().setLevel(self.log_level)

        # Configure Flask app logger
        self.flask_app.logger.setLevel(self.log_level)
        self.logger = self.flask_app.logger

        self.logger.info(f"Logging initialized at level: {logging.getLevelName(self.log_level)}")

    def _setup_otel(self):
        """Configure OpenTelemetry tracing"""
        if not self.otel_exporter_url:
            self.logger.info("OTEL_EXPORTER_OTLP_ENDPOINT not set, tracing disabled.")
            return

        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.flask import FlaskInstrumentor
        from opentelemetry.sdk.resources import SERVICE_NAME, Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        # Set up resource
        resource = Resource(attributes={
            SERVICE_NAME: self.name
        })

        # Set up tracer provider
        provider = TracerProvider(resource=resource)
        processor = BatchSpanProcessor(OTLPSpanExporter(endpoint=self.otel_exporter_url))
        provider.add_span_processor(processor)
        trace.set_tracer_provider(provider)

        # Instrument Flask
        FlaskInstrumentor().instrument_app(self.flask_app)

        self.logger.info(f"OpenTelemetry tracing enabled. Sending to: {self.otel_exporter_url}")

    def _setup_middleware(self):
        """CORS pre-flight, CORS headers and per-request session cleanup"""

        @self.flask_app.before_request
        def answer_preflight():
            if request.method == 'OPTIONS':
                return Response(status=204)
            return None

        @self.flask_app.after_request
        def add_cors_headers(response):
            if self.settings.allow_cors:
                response.headers['Access-Control-Allow-Origin'] = self.settings.allow_cors
                for name, value in CORS_HEADERS.items():
                    response.headers.setdefault(name, value)
            return response

        @self.flask_app.teardown_appcontext
        def remove_session(exc):
            if exc is not None:
                self.database.session.rollback()
            self.database.remove()

    def _register_built_in_routes(self):
        """Register standard service endpoints"""

        @self.flask_app.route('/health', methods=['GET'])
        def health():
            return jsonify({
                "status": "healthy",
                "service": self.name,
            })

    def _register_dispatcher(self):
        """Send every other request through the route table"""
        self.flask_app.add_url_rule('/', 'dispatch', self.dispatch,
                                    defaults={'path': ''}, methods=DISPATCH_METHODS)
        self.flask_app.add_url_rule('/<path:path>', 'dispatch', self.dispatch,
                                    methods=DISPATCH_METHODS)

    @staticmethod
    def request_uri() -> str:
        """
        The request target as sent by the client, still percent-encoded

        Segments are decoded one by one after splitting, so an encoded `/`
        stays inside its segment.
        """
        raw = request.environ.get('RAW_URI') or request.environ.get('REQUEST_URI')
        if raw:
            return raw
        return quote(request.path)

    def dispatch(self, path: str = ''):
        """Flask view: one request in, exactly one envelope out"""
        try:
            envelope = self.handle(request.method, self.request_uri())
        except PersistenceError as e:
            self.logger.error(f"Persistence failure on {request.method} {request.path}: {e}",
                              exc_info=True)
            self._rollback()
            envelope = self.responder.error(e)
        except ApiError as e:
            self.logger.warning(f"{request.method} {request.path} -> {e.status_code}: {e.message}")
            self._rollback()
            envelope = self.responder.error(e)
        except Exception as e:
            self.logger.error(f"Unexpected error on {request.method} {request.path}: {e}",
                              exc_info=True)
            self._rollback()
            envelope = self.responder.error(UnexpectedError(f"{type(e).__name__}: {e}"))
        return self.responder.write(envelope)

    def handle(self, method: str, uri: str) -> Envelope:
        """
        Match, resolve and invoke

        Raises:
            ApiError: Anything the request can fail with
        """
        if method.upper() == 'HEAD':
            # Answered as GET; the body is dropped on the way out
            method = 'GET'
        result = self.routes.match(method, uri)
        if isinstance(result, NotFound):
            raise RouteNotFoundError()
        if isinstance(result, MethodNotAllowed):
            raise MethodNotAllowedError(result.allowed_methods)

        controller, action = self.registry.resolve(result.handler)
        args = result.route.convert(result.params)
        with self.tracer.start_as_current_span(f"handler.{result.handler}") as span:
            span.set_attribute("http.route", result.route.pattern)
            return getattr(controller, action)(*args)

    def _rollback(self):
        try:
            self.database.session.rollback()
        except Exception as e:
            self.logger.error(f"Rollback failed: {e}", exc_info=True)

    def create_schema(self):
        """Create every table that does not exist yet"""
        self.database.create_all()

    def close(self):
        self.request_log.close()
        self.database.dispose()

    def run(self, **kwargs):
        """Start the service"""
        self.logger.info("=" * 60)
        self.logger.info(f"Starting {self.name}")
        self.logger.info("=" * 60)
        self.logger.info(f"Database: {self.database.url.render_as_string(hide_password=True)}")
        self.logger.info(f"API prefix: {self.settings.api_prefix or '/'}")
        self.logger.info(f"Port: {self.settings.port}")
        self.logger.info("=" * 60)

        self.flask_app.run(
            host=self.settings.host,
            port=self.settings.port,
            debug=False,
            **kwargs
        )


# Convenience function for quick setup
def create_app(routes: Optional[RouteTable] = None, **overrides) -> CubeApp:
    """
    Build the service from the environment

    Usage:
        app = create_app(database_url='sqlite://', api_prefix='')
        app.run()
    """
    return CubeApp(Settings.from_env(**overrides), routes=routes)
