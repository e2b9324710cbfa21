# app.py
"""
Main application entry point.
This module creates the Flask application instance for gunicorn and the development server.
"""

import os

from flextime import create_app

# Create the application instance
app = create_app(os.environ.get('FLASK_ENV', 'development'))


# Development server configuration
if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    debug = os.environ.get('FLASK_ENV') == 'development'

    app.logger.info(f"Starting development server on port {port}, debug={debug}")

    app.run(
        host='0.0.0.0',
        port=port,
        debug=debug,
        threaded=True
    )
