"""HTTP surface: dashboard, session controls and analysis endpoints."""

import logging
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, jsonify, render_template, request

from focus_fade.ai import ModelClient, ModelError
from focus_fade.capture import Activity, CaptureError
from focus_fade.classifier import RelevanceClassifier
from focus_fade.config import AISettings, load_settings
from focus_fade.log_store import LogValidationError
from focus_fade.monitor import FocusMonitor
from focus_fade.summarizer import ActivitySummarizer

logger = logging.getLogger("FocusFade.server")


def create_app(monitor: Optional[FocusMonitor] = None, settings_path: Optional[str] = None) -> Flask:
    app = Flask(__name__)
    monitor = monitor or FocusMonitor(load_settings(settings_path))
    app.extensions["focus_monitor"] = monitor

    def model_client() -> ModelClient:
        # settings are re-read for every analysis request
        config = load_settings(settings_path)
        return ModelClient(AISettings.from_config(config), timeout=config.get("api_timeout", 60))

    @app.route("/")
    def dashboard():
        return render_template("dashboard.html", state=monitor.snapshot())

    @app.route("/api/state")
    def state():
        return jsonify(monitor.snapshot())

    @app.route("/api/session/start", methods=["POST"])
    def start_session():
        monitor.start_session()
        return jsonify(monitor.snapshot())

    @app.route("/api/session/stop", methods=["POST"])
    def stop_session():
        monitor.stop_session()
        return jsonify(monitor.snapshot())

    @app.route("/api/focus-task", methods=["POST"])
    def focus_task():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        task = data.get("task")
        if not isinstance(task, str):
            return jsonify({"error": "Missing task"}), 400
        monitor.set_focus_task(task)
        return jsonify({"focusTask": monitor.focus_task})

    @app.route("/api/current-app")
    def current_app():
        try:
            app_name = monitor.capture.current_app()
        except CaptureError as e:
            logger.error(f"Error fetching current app: {e}")
            return jsonify({"error": "Failed to fetch current app"}), 500
        if app_name is None:
            return jsonify({"currentApp": None, "message": "No UI events found."})
        return jsonify({"currentApp": app_name})

    @app.route("/api/logs", methods=["GET"])
    def get_logs():
        try:
            logs = monitor.log_store.get_logs()
        except (OSError, ValueError) as e:
            logger.error(f"Error in GET /api/logs: {e}")
            return jsonify({"error": "Failed to retrieve logs"}), 500
        return jsonify({"logs": logs})

    @app.route("/api/logs", methods=["POST"])
    def save_log():
        try:
            log = monitor.log_store.append(request.get_json(silent=True))
        except LogValidationError as e:
            return jsonify({"error": str(e)}), 400
        except (OSError, ValueError) as e:
            logger.error(f"Error in POST /api/logs: {e}")
            return jsonify({"error": "Failed to save log"}), 500
        return jsonify({"message": "Log saved successfully", "newLog": log})

    @app.route("/api/analyze-task", methods=["POST"])
    def analyze_task():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        task, apps = data.get("task"), data.get("apps")
        if not task or not apps:
            return jsonify({"error": "Missing task or apps"}), 400
        if not isinstance(task, str) or not isinstance(apps, list) or not all(isinstance(a, str) for a in apps):
            return jsonify({"error": "Expecting { task: string, apps: string[] }"}), 400

        try:
            result = RelevanceClassifier(model_client()).classify(task, apps)
        except ModelError as e:
            logger.error(f"Error in task analysis: {e}")
            return jsonify({"error": "Failed to analyze task relevance"}), 500
        return jsonify(result.to_dict())

    @app.route("/api/analyze-activity", methods=["POST"])
    def analyze_activity():
        try:
            data = request.get_json(silent=True)
            if not isinstance(data, dict) or not data:
                raise ValueError("Empty request body")
            activities = data.get("activities")
            if not isinstance(activities, list):
                raise ValueError("Missing activities")
            focus_task = data.get("focusTask") or monitor.focus_task

            analysis = ActivitySummarizer(model_client()).summarize(
                [Activity.from_item(a) for a in activities], focus_task)
        except (ValueError, ModelError) as e:
            logger.error(f"Error in activity analysis: {e}")
            return jsonify({"error": str(e)}), 400

        return jsonify({
            "analysis": analysis,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    return app
