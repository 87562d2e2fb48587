"""
Entry point for the course catalog API.
Development uses the Flask server; production uses gunicorn, or waitress on Windows.
"""
import os
import sys
import logging
from course_catalog import create_app
from course_catalog.env_config import ENVIRONMENT
from course_catalog.utils.logger import build_console_handler, custom_logger

HOST = os.getenv('HOST', '0.0.0.0')
PORT = int(os.getenv('PORT', '5000'))
THREADS = int(os.getenv('THREADS', '8'))

log = custom_logger.logger


def setup_logging():
    """Route every module logger through the colored console handler"""
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    if not root.handlers:
        root.addHandler(build_console_handler(logging.INFO))


def package_files(package='course_catalog'):
    return [
        os.path.join(dirname, filename)
        for dirname, _, filenames in os.walk(package)
        for filename in filenames
        if filename.endswith('.py')
    ]


def serve_development(app):
    log.info(f"Serving {ENVIRONMENT} build on http://{HOST}:{PORT}")
    app.run(host=HOST, port=PORT, debug=True, use_reloader=False, extra_files=package_files())


def serve_waitress(app):
    from waitress import serve
    log.info(f"Serving with waitress ({THREADS} threads)")
    serve(app, host=HOST, port=PORT, threads=THREADS)


def serve_gunicorn(app):
    from gunicorn.app.base import BaseApplication

    class CatalogServer(BaseApplication):
        def __init__(self, application, options):
            self.options = options
            self.application = application
            super().__init__()

        def load_config(self):
            for key, value in self.options.items():
                self.cfg.set(key, value)

        def load(self):
            return self.application

    # Session contexts are held in process memory: one worker, many threads
    CatalogServer(app, {
        'bind': f'{HOST}:{PORT}',
        'workers': 1,
        'threads': THREADS,
        'worker_class': 'gthread',
    }).run()


@custom_logger.log_function_call
def main():
    try:
        app = create_app()
    except Exception as e:
        log.error(f"Failed to build application: {str(e)}")
        sys.exit(1)

    if ENVIRONMENT != 'production':
        serve_development(app)
        return

    serve = serve_waitress if sys.platform == 'win32' else serve_gunicorn
    try:
        serve(app)
    except ImportError as e:
        log.error(f"Production server unavailable: {str(e)}")
        log.error("Run: pip install course-catalog[server]")
        sys.exit(1)


if __name__ == '__main__':
    setup_logging()
    main()
