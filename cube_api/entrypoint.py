"""
Minimal entrypoint for the Cube API.
Builds the app from the environment, optionally creates the schema, serves.
"""

import argparse
import sys

from .core import create_app


def run_app(app, create_schema=False):
    """
    Start a Cube API app.

        from cube_api import create_app
        from cube_api.entrypoint import run_app
        run_app(create_app())
    """
    if create_schema:
        app.create_schema()
        app.logger.info("Database schema created")
    app.run()


def main(argv=None):
    parser = argparse.ArgumentParser(prog='cube-api', description='Run the Cube API server')
    parser.add_argument('--create-schema', action='store_true',
                        help='create missing tables before serving')
    parser.add_argument('--host', help='interface to bind (HOST)')
    parser.add_argument('--port', type=int, help='port to listen on (PORT)')
    args = parser.parse_args(argv)

    overrides = {}
    if args.host:
        overrides['host'] = args.host
    if args.port:
        overrides['port'] = args.port

    try:
        app = create_app(**overrides)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    run_app(app, create_schema=args.create_schema)


if __name__ == '__main__':
    main()
