"""
EventWatch Flask Application.

Main entry point for the web application. Initializes:
- Service container (caches, event store, reconciler)
- Periodic event refresh loop
- API routes
- Error handlers

Usage:
    python -m eventwatch.app

Or with gunicorn:
    gunicorn "eventwatch.app:create_app()"
"""

import logging
import os

from flask import Flask
from flask_cors import CORS

from eventwatch.api import events_bp, flights_bp, metrics_bp, statsim_bp
from eventwatch.config import config
from eventwatch.errors import EventNotFound, InvalidQueryWindow, UpstreamUnavailable
from eventwatch.ingestion import RefreshScheduler
from eventwatch.services import Services, build_services

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def create_app(services: Services = None, start_scheduler: bool = True) -> Flask:
    """
    Application factory for Flask.

    Args:
        services: Pre-built service container. Built from config (and the
                  event cache file loaded) if None.
        start_scheduler: Whether to start the background event refresh.
                         Set to False for testing.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Browser clients only read
    CORS(app, resources={r'/api/*': {'origins': config.cors_origin, 'methods': ['GET']}})

    if services is None:
        logger.info('Building services...')
        services = build_services()
    app.config['SERVICES'] = services

    # Register API blueprints
    app.register_blueprint(flights_bp)
    app.register_blueprint(statsim_bp)
    app.register_blueprint(events_bp)
    app.register_blueprint(metrics_bp)

    if start_scheduler:
        scheduler = RefreshScheduler(services.reconciler.refresh)
        scheduler.start_background()
        app.config['REFRESH_SCHEDULER'] = scheduler
    else:
        app.config['REFRESH_SCHEDULER'] = None

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {'status': 'ok', 'cached_events': len(services.event_store)}

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(InvalidQueryWindow)
    def invalid_query(e):
        return {'error': e.message, 'field': e.field}, 400

    @app.errorhandler(EventNotFound)
    def event_not_found(e):
        return {'error': str(e)}, 404

    @app.errorhandler(UpstreamUnavailable)
    def upstream_unavailable(e):
        logger.error(f'Upstream unavailable: {e}')
        status = 504 if e.timed_out else 502
        return {'error': f'{e.source} unavailable', 'details': e.message}, status

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'Not found'}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    port = int(os.environ.get('PORT', 3001))

    logger.info(f'Starting EventWatch on http://localhost:{port}')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=config.debug,
        use_reloader=False,  # Disable reloader to prevent duplicate refresh threads
    )


if __name__ == '__main__':
    run_development_server()
