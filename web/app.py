"""
Flask application for the receipt printer HTTP API.
"""
import hmac
import logging

from flask import Flask, jsonify, request
from flask_cors import CORS

from spooler.config import ServiceSettings, load_settings
from spooler.errors import PrinterError
from spooler.service import PrintService

logger = logging.getLogger(__name__)


def _key_matches(candidate: str, expected: str) -> bool:
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def _failure(message: str, error: str, status: int):
    return jsonify({"success": False, "message": message, "error": error}), status


def create_app(service: PrintService | None = None, settings: ServiceSettings | None = None):
    if settings is None:
        settings = load_settings()

    app = Flask(__name__)
    app.config["PRINT_KEY"] = settings.print_key
    app.config["DEVELOPMENT"] = settings.development

    CORS(app)

    if service is None:
        service = PrintService(settings.printer)
        service.start()
    app.print_service = service

    def _has_valid_key() -> bool:
        expected = app.config["PRINT_KEY"]

        header_key = request.headers.get("X-Print-Key")
        if header_key and _key_matches(header_key, expected):
            return True

        body = request.get_json(silent=True)
        if isinstance(body, dict) and isinstance(body.get("key"), str):
            if _key_matches(body["key"], expected):
                return True

        if app.config["DEVELOPMENT"]:
            logger.debug(
                "Print key validation failed (header key %s, body key %s)",
                "provided" if header_key else "not provided",
                "provided" if isinstance(body, dict) and body.get("key") else "not provided",
            )
        return False

    def _extract_print_data() -> str | None:
        if request.mimetype == "text/plain":
            return request.get_data(as_text=True)

        body = request.get_json(silent=True)
        if isinstance(body, dict) and isinstance(body.get("data"), str):
            return body["data"]
        return None

    @app.after_request
    def log_request(response):
        logger.info(
            '%s "%s %s" %s',
            request.remote_addr,
            request.method,
            request.full_path.rstrip("?"),
            response.status_code,
        )
        return response

    @app.route("/print", methods=["POST"])
    def print_receipt():
        if not _has_valid_key():
            return _failure("Unauthorized", "Invalid or missing print key", 401)

        data = _extract_print_data()
        if data is None:
            return _failure("Invalid request", 'Print data is required in "data" field', 400)
        if not data.strip():
            return _failure("Invalid request", "Print data cannot be empty", 400)

        logger.info(
            "New print job received (queue position: %d, processing: %s)",
            app.print_service.pending_count() + 1,
            app.print_service.is_dispatching(),
        )

        try:
            app.print_service.submit(data).result()
        except PrinterError as e:
            logger.error("Print error: %s", e)
            return _failure("Print job failed", str(e), 500)

        return jsonify({"success": True, "message": "Print job completed successfully"})

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify(app.print_service.get_health().to_dict())

    @app.errorhandler(404)
    def not_found(_error):
        return _failure("Not found", f"Route {request.path} not found", 404)

    @app.errorhandler(500)
    def internal_error(error):
        cause = getattr(error, "original_exception", None) or error
        logger.error("Unhandled error: %s", cause)
        return _failure("Internal server error", str(cause), 500)

    return app
