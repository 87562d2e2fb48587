"""
Main application initialization module.
Sets up Flask app with all necessary configurations and extensions.
"""
from flask import Flask, jsonify
from flask_cors import CORS
from dotenv import load_dotenv
import logging
from flask_caching import Cache

from .config import Config
from .errors import CatalogError

# Load environment variables
load_dotenv()

cache = Cache()
logger = logging.getLogger(__name__)


def create_app(config_object=None, client_factory=None):
    """
    Create and configure the Flask application
    @param config_object: object - Configuration class or object, defaults to Config
    @param client_factory: callable - Returns a new Supabase client per session context
    @returns: Flask - Configured Flask application instance
    """
    app = Flask(__name__)
    app.config.from_object(config_object or Config)

    if client_factory is None:
        from .utils.supabase_utils import create_supabase_client
        config = config_object or Config
        config.validate()

        def client_factory():
            return create_supabase_client(config)

    CORS(app, supports_credentials=True, resources={
        r"/api/*": {
            "origins": app.config['CORS_ORIGINS']
        }
    })
    cache.init_app(app)

    from .services.session_context import ContextRegistry
    app.extensions['catalog_contexts'] = ContextRegistry(client_factory, app.config)

    @app.errorhandler(CatalogError)
    def handle_catalog_error(error):
        logger.warning(f"{error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status

    # Register blueprints with error handling
    try:
        from .controllers.auth_controller import auth_bp
        app.register_blueprint(auth_bp, url_prefix='/api/auth')
        logger.info("Successfully registered auth blueprint")

        from .controllers.course_controller import course_bp
        app.register_blueprint(course_bp, url_prefix='/api/courses')
        logger.info("Successfully registered course blueprint")

        from .controllers.enrollment_controller import enrollment_bp
        app.register_blueprint(enrollment_bp, url_prefix='/api/enrollments')
        logger.info("Successfully registered enrollment blueprint")

        from .controllers.dashboard_controller import dashboard_bp
        app.register_blueprint(dashboard_bp, url_prefix='/api/dashboard')
        logger.info("Successfully registered dashboard blueprint")

        @app.route('/health', methods=['GET'])
        def health_check():
            return {'status': 'healthy'}, 200

        @app.route('/health/database', methods=['GET'])
        def database_check():
            from .utils.guards import get_context
            from .utils.supabase_utils import check_connection
            results = check_connection(get_context().client)
            healthy = all(result['success'] for result in results.values())
            return jsonify({'status': 'healthy' if healthy else 'degraded', 'data': results}), \
                200 if healthy else 503

    except Exception as e:
        logger.error(f"Error registering blueprints: {str(e)}")
        raise

    return app
