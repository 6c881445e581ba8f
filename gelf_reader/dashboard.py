"""Flask monitoring endpoints for the GELF server."""

from flask import Flask, jsonify, request

from gelf_reader.error_tracker import ErrorTracker
from gelf_reader.metrics import Metrics


def create_dashboard_app(metrics: Metrics, error_tracker: ErrorTracker) -> Flask:
    app = Flask(__name__)

    @app.route("/stats")
    def stats():
        snap = metrics.snapshot()
        snap["recent_errors"] = error_tracker.get_recent(10)
        return jsonify(snap)

    @app.route("/errors")
    def errors():
        limit = request.args.get("limit", default=10, type=int)
        return jsonify(errors=error_tracker.get_recent(limit), tracked=error_tracker.count)

    @app.route("/health")
    def health():
        return jsonify(status="ok")

    return app


def run_dashboard(app: Flask, port: int):
    """Run the Flask app (intended for use in a daemon thread)."""
    app.run(host="0.0.0.0", port=port, use_reloader=False)
