import shutil
import tempfile

from cube_api.core import create_app

SECRET = 'behave-signing-key-0123456789abcdefghijkl'


def before_scenario(context, scenario):
    """Fresh app and in-memory database for every scenario"""
    context.log_dir = tempfile.mkdtemp(prefix='cube-api-logs-')
    context.app = create_app(
        database_url='sqlite://',
        jwt_secret_key=SECRET,
        api_prefix='',
        log_dir=context.log_dir,
        otel_exporter_url=None,
    )
    context.app.flask_app.testing = True
    context.app.create_schema()
    context.client = context.app.flask_app.test_client()
    context.token = None


def after_scenario(context, scenario):
    context.app.close()
    shutil.rmtree(context.log_dir, ignore_errors=True)
