"""
Blueprint registration for the study tracker API.

Blueprints carry their full ``/api/...`` paths and are registered without URL prefixes.
"""

from __future__ import annotations


def register_blueprints(app):
    from blueprints.dashboard import bp as dashboard_bp
    from blueprints.subjects import bp as subjects_bp
    from blueprints.focus import bp as focus_bp
    from blueprints.planner import bp as planner_bp
    from blueprints.insights import bp as insights_bp
    from blueprints.ai import bp as ai_bp

    app.register_blueprint(dashboard_bp)
    app.register_blueprint(subjects_bp)
    app.register_blueprint(focus_bp)
    app.register_blueprint(planner_bp)
    app.register_blueprint(insights_bp)
    app.register_blueprint(ai_bp)
