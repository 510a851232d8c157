import logging

from .app import create_app
from .ports import find_available_port

logger = logging.getLogger(__name__)


def main():
    app = create_app()
    try:
        port = find_available_port(app.config['PORT'])
    except RuntimeError:
        logger.exception('Failed to start server')
        raise SystemExit(1)
    logger.info('Server running on port %s', port)
    logger.info('Health check available at http://localhost:%s/health', port)
    app.run(host='0.0.0.0', port=port, debug=app.config.get('DEBUG', False))


if __name__ == '__main__':
    main()
