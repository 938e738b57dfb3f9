"""Admin routes for the application."""

from flask import current_app, jsonify

from bracketeer.extensions import get_services

from . import bp
from .decorators import admin_required
from .services import AdminService


@bp.route("/stats")
@admin_required
def stats():
    """Return high-level counts for the admin dashboard."""
    return jsonify(AdminService.get_admin_stats(get_services().store))


@bp.route("/auto-tournaments/status")
@admin_required
def auto_tournament_status():
    """Show the open auto tournament of every configured game and size."""
    return jsonify(get_services().scheduler.status())


@bp.route("/auto-tournaments/ensure", methods=["POST"])
@admin_required
def ensure_auto_tournaments():
    """Create any missing auto tournaments now."""
    created = get_services().scheduler.ensure()
    current_app.logger.info(f"Admin ensured auto tournaments, {len(created)} created")
    return jsonify(
        {
            "message": "Auto tournaments checked.",
            "created": [t["id"] for t in created],
        }
    )


@bp.route("/auto-tournaments/cleanup", methods=["POST"])
@admin_required
def cleanup_auto_tournaments():
    """Delete finished auto tournaments past the retention window."""
    removed = get_services().scheduler.cleanup()
    current_app.logger.info(f"Admin cleanup removed {removed} auto tournaments")
    return jsonify({"message": "Cleanup finished.", "removed": removed})
