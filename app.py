from flask import Flask, request, jsonify, g, Blueprint, current_app, send_file
from io import BytesIO
import os
import logging
import threading
import uuid
from flask_compress import Compress

from exceptions import (
    BookAPIError,
    ConfigurationError,
    CoverGenerationError,
    FormatError,
    ImportInProgressError,
    NotFoundError,
    ReadingLogError,
    SyncError,
    ValidationError,
)
from models import BookSortKey, SearchType, SentenceSortKey
from query_engine import use_system_collation
from reading_log import ReadingLog
from settings import get_settings

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
use_system_collation()

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# Most specific first
ERROR_STATUS = [
    (ValidationError, 400),
    (FormatError, 400),
    (NotFoundError, 404),
    (ImportInProgressError, 409),
    (ConfigurationError, 503),
    (SyncError, 502),
    (BookAPIError, 502),
    (CoverGenerationError, 502),
]


def get_log() -> ReadingLog:
    """Return the app's reading log, loading it from the sheet on first use."""
    state = current_app.extensions["reading_log"]
    log = state["log"]
    if state["loaded"]:
        return log
    with state["lock"]:
        if not state["loaded"]:
            if not log.client.configured:
                raise ConfigurationError(
                    "Configuration needed: set READING_LOG_API_URL to your Google Apps Script Web App URL."
                )
            log.load()
            state["loaded"] = True
    return log


def parse_choice(enum_cls, value, default):
    if value is None or value == "":
        return default
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid value {value!r}. Expected one of: {choices}")


def parse_page_input(value):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    # JSON true/false and 12.5 would otherwise coerce silently
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"Page must be a positive integer, got {value!r}.")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Page must be a positive integer, got {value!r}.")


def handle_reading_log_error(error):
    status = next((code for cls, code in ERROR_STATUS if isinstance(error, cls)), 500)
    if status >= 500:
        logger.error(f"Request {g.get('request_id')} failed: {error}")
    return jsonify({"error": str(error)}), status


# Define function to register routes
def register_routes(api_v1):
    """Registers all the routes for the api_v1 blueprint."""

    @api_v1.route("/books", methods=["GET"])
    def list_books():
        sort = parse_choice(BookSortKey, request.args.get("sort"), BookSortKey.CREATED_AT)
        books = get_log().books(sort)
        return jsonify({"books": [book.to_record() for book in books], "count": len(books)})

    @api_v1.route("/books", methods=["POST"])
    def create_book():
        payload = request.get_json(silent=True) or {}
        book = get_log().add_book(
            payload.get("title", ""),
            payload.get("author", ""),
            publisher=payload.get("publisher") or "",
            isbn=payload.get("isbn") or "",
            cover_image=payload.get("coverImage"),
        )
        return jsonify({"book": book.to_record()}), 201

    @api_v1.route("/books/<book_id>", methods=["DELETE"])
    def delete_book(book_id):
        get_log().delete_book(book_id)
        return jsonify({"deleted": book_id})

    @api_v1.route("/books/<book_id>/sentences", methods=["GET"])
    def list_sentences(book_id):
        sort = parse_choice(SentenceSortKey, request.args.get("sort"), SentenceSortKey.PAGE)
        sentences = get_log().sentences(book_id, sort)
        return jsonify({"sentences": [s.to_record() for s in sentences], "count": len(sentences)})

    @api_v1.route("/books/<book_id>/sentences", methods=["POST"])
    def create_sentence(book_id):
        payload = request.get_json(silent=True) or {}
        sentence = get_log().add_sentence(
            book_id,
            payload.get("text", ""),
            page=parse_page_input(payload.get("page")),
        )
        return jsonify({"sentence": sentence.to_record()}), 201

    @api_v1.route("/sentences/<sentence_id>", methods=["DELETE"])
    def delete_sentence(sentence_id):
        get_log().delete_sentence(sentence_id)
        return jsonify({"deleted": sentence_id})

    @api_v1.route("/search")
    def search():
        search_type = parse_choice(SearchType, request.args.get("type"), SearchType.SENTENCE)
        log = get_log()
        results = log.search(request.args.get("query", ""), search_type)

        records = []
        for item in results:
            record = item.to_record()
            if search_type is SearchType.SENTENCE:
                book = log.store.get_book(item.book_id)
                record["bookTitle"] = book.title if book else None
                record["bookAuthor"] = book.author if book else None
            records.append(record)
        return jsonify({"type": search_type.value, "results": records, "count": len(records)})

    @api_v1.route("/export")
    def export_log():
        buffer = BytesIO()
        if not get_log().export_workbook(buffer):
            return "", 204
        buffer.seek(0)
        return send_file(
            buffer,
            mimetype=XLSX_MIMETYPE,
            as_attachment=True,
            download_name=get_settings().EXPORT_FILENAME,
        )

    @api_v1.route("/import", methods=["POST"])
    def import_log():
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            raise ValidationError("An .xlsx file is required in the 'file' field.")
        result = get_log().import_workbook(BytesIO(upload.read()))
        return jsonify({
            "booksAdded": result.books_added,
            "sentencesAdded": result.sentences_added,
            "nothingToImport": result.nothing_to_import,
            "message": result.message,
        })

    @api_v1.route("/isbn/<isbn>")
    def lookup_isbn(isbn):
        book_data = current_app.extensions["reading_log"]["log"].lookup_isbn(isbn)
        if book_data is None:
            return jsonify({"error": f"No book found for ISBN: {isbn}"}), 404
        return jsonify(book_data)

    @api_v1.route("/covers", methods=["POST"])
    def generate_cover():
        payload = request.get_json(silent=True) or {}
        log = current_app.extensions["reading_log"]["log"]
        cover = log.generate_cover(payload.get("title", ""), payload.get("author", ""))
        return jsonify({"coverImage": cover})


# Define create_app function
def create_app(reading_log=None):
    """Application factory pattern"""
    app = Flask(__name__)
    settings = get_settings()

    # Configure app with settings
    app.config.update(
        READING_LOG_API_URL=settings.READING_LOG_API_URL,
        REQUEST_TIMEOUT=settings.REQUEST_TIMEOUT,
    )
    app.extensions["reading_log"] = {"log": reading_log or ReadingLog(), "loaded": False,
                                    "lock": threading.Lock()}

    # Initialize extensions
    compress = Compress()
    compress.init_app(app)

    # Register routes with the blueprint
    api_v1 = Blueprint('api_v1', __name__, url_prefix='/api/v1')
    register_routes(api_v1)
    app.register_blueprint(api_v1)
    app.register_error_handler(ReadingLogError, handle_reading_log_error)

    @app.before_request
    def before_request():
        g.request_id = request.headers.get('X-Request-ID', str(uuid.uuid4()))
        logger.info(f"Processing request {g.request_id}")

    # Define a basic index route
    @app.route("/")
    def index():
        return "<h1>Welcome to the Reading Log API!</h1>"

    return app, settings


# Create app instance
app, settings = create_app()


# Define validate_port function
def validate_port(port_str):
    if not port_str.isdigit():
        raise RuntimeError(f"Invalid PORT environment variable: {port_str}. Must be a numeric value.")
    port = int(port_str)
    if port <= 0 or port > 65535:
        raise ValueError("Port number must be between 1 and 65535.")
    return port


# Run the app
if __name__ == "__main__":
    port_env = os.environ.get("PORT", "5000")
    try:
        port = validate_port(port_env)
        debug_mode = os.environ.get("FLASK_ENV", "production") == "development"
        app.run(host="0.0.0.0", port=port, debug=debug_mode)
    except (ValueError, RuntimeError) as e:
        logger.error(f"Failed to start application: {e}")
