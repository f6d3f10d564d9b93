from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context

from ..routes.auth_routes import token_required
from ..services.analytics_service import (
    aggregate,
    export_csv,
    export_filename,
    get_owned_link,
    parse_analytics_date_range,
)

analytics_bp = Blueprint("analytics", __name__)


def _date_range_from_args():
    return parse_analytics_date_range(request.args.get("from"), request.args.get("to"))


@analytics_bp.route("/api/links/<link_id>/analytics")
@token_required
def link_analytics(current_user, link_id):
    link = get_owned_link(link_id, current_user.id)
    date_range = _date_range_from_args()
    return jsonify(aggregate(link.id, date_range))


@analytics_bp.route("/api/links/<link_id>/analytics/export")
@token_required
def export_link_analytics(current_user, link_id):
    link = get_owned_link(link_id, current_user.id)
    date_range = _date_range_from_args()
    page_size = int(current_app.config.get("EXPORT_PAGE_SIZE", 1000))

    return Response(
        stream_with_context(export_csv(link.id, date_range, page_size)),
        content_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename(link.short_code)}"',
            "Cache-Control": "no-store",
        },
    )
