"""
WSGI entrypoint for production (gunicorn/systemd).

This module should have no side effects beyond creating the Flask app (which connects
the printer) and registering the printer disconnect for interpreter shutdown.
"""
import atexit
import logging

from spooler.config import load_environment, load_settings
from web.app import create_app

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

settings = load_settings(load_environment())
app = create_app(settings=settings)
atexit.register(app.print_service.stop)

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=settings.port, threaded=True)
