"""Route handlers — maps API URLs to session and statistics functions."""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request

from ccview.sessions import get_all_projects, get_session_detail
from ccview.stats.report import get_overall_statistics, get_project_statistics

logger = logging.getLogger(__name__)

bp = Blueprint("api", __name__, url_prefix="/api")


def _days() -> str:
    return request.args.get("days") or current_app.config["DEFAULT_DAYS"]


@bp.route("/sessions")
def sessions():
    """All main sessions grouped by project."""
    projects_dir = current_app.config["PROJECTS_DIR"]
    return jsonify({"projects": [g.to_dict() for g in get_all_projects(projects_dir)]})


@bp.route("/sessions/<session_id>")
def session_detail(session_id):
    """Single session with its records and agent sessions."""
    projects_dir = current_app.config["PROJECTS_DIR"]
    detail = get_session_detail(projects_dir, session_id)
    if detail is None:
        return jsonify({"error": "Session not found"}), 404
    return jsonify({"session": detail})


@bp.route("/statistics/overall")
def overall_statistics():
    """Usage statistics across all projects for ?days=7|30|all|N."""
    projects_dir = current_app.config["PROJECTS_DIR"]
    try:
        statistics = get_overall_statistics(projects_dir, _days())
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(statistics)


@bp.route("/statistics/projects/<project_id>")
def project_statistics(project_id):
    """Usage statistics for one project."""
    projects_dir = current_app.config["PROJECTS_DIR"]
    try:
        statistics = get_project_statistics(projects_dir, project_id, _days())
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    if statistics is None:
        logger.info("Statistics requested for unknown project %s", project_id)
        return jsonify({"error": "Project not found"}), 404
    return jsonify(statistics)
