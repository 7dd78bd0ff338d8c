"""
Engine and per-request session management

One `scoped_session` per process; each request (thread) gets its own
session, which the app removes on teardown.
"""

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base


class Database:
    """
    Usage:
        db = Database('sqlite://')
        db.create_all()
        session = db.session        # thread-local Session
        db.remove()                 # at the end of the request
    """

    def __init__(self, url: str, logger=None, **engine_options):
        self.logger = logger or logging.getLogger(__name__)
        self.url = make_url(url)

        if self.url.get_backend_name() == 'sqlite':
            if self.url.database in (None, '', ':memory:'):
                # Every session must see the same in-memory database
                engine_options.setdefault('poolclass', StaticPool)
            engine_options.setdefault('connect_args', {'check_same_thread': False})
        else:
            engine_options.setdefault('pool_pre_ping', True)

        self.engine = create_engine(self.url, **engine_options)

        if self.url.get_backend_name() == 'sqlite':
            event.listen(self.engine, 'connect', _enable_sqlite_foreign_keys)

        self.session = scoped_session(sessionmaker(bind=self.engine))
        self.logger.info(
            f"Database engine ready: {self.url.render_as_string(hide_password=True)}")

    def create_all(self):
        Base.metadata.create_all(self.engine)

    def drop_all(self):
        Base.metadata.drop_all(self.engine)

    def remove(self):
        self.session.remove()

    def dispose(self):
        self.session.remove()
        self.engine.dispose()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()
