"""
Serializer functions for converting service results to JSON-ready dictionaries.
"""

from datetime import datetime
from typing import Any, Optional

from flask import jsonify

from social_rss.core.aggregator import PassResult
from social_rss.core.feed_store import FeedFileInfo
from social_rss.core.services import StatusSnapshot


def serialize_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to ISO format string."""
    return dt.isoformat() if dt else None


def feed_file_to_dict(info: FeedFileInfo) -> dict:
    if not info.exists:
        return {"exists": False}
    return {
        "exists": True,
        "lastModified": serialize_datetime(info.last_modified),
        "size": info.size,
    }


def pass_result_to_dict(result: Optional[PassResult]) -> Optional[dict]:
    if result is None:
        return None
    return {
        "count": result.total_items,
        "location": str(result.location),
        "startedAt": serialize_datetime(result.started_at),
        "finishedAt": serialize_datetime(result.finished_at),
        "listsFailed": result.lists_failed,
        "lists": [
            {
                "listId": r.list_id,
                "success": r.success,
                "count": r.items_count,
                "error": r.error,
            }
            for r in result.lists
        ],
    }


def status_to_dict(snapshot: StatusSnapshot) -> dict:
    """Convert a status snapshot to the /status response body."""
    return {
        "running": snapshot.running,
        "state": snapshot.state,
        "feedFileInfo": feed_file_to_dict(snapshot.feed_file),
        "monitoring": {
            "listCount": snapshot.monitoring.list_count,
            "lists": snapshot.monitoring.lists,
            "intervalMinutes": snapshot.monitoring.interval_minutes,
            "maxPerList": snapshot.monitoring.max_per_list,
        },
        "lastPass": pass_result_to_dict(snapshot.last_pass),
        "lastError": snapshot.last_error,
        "uptime": round(snapshot.uptime_seconds, 3),
    }


def api_response(
    success: bool = True,
    error: Optional[str] = None,
    status: int = 200,
    **fields: Any,
) -> tuple:
    """Standard API response format.

    Args:
        success: Whether the request was successful
        error: Human-readable error message
        status: HTTP status code
        **fields: Additional top-level response fields

    Returns:
        Flask response with JSON data
    """
    response_data = {"success": success}
    if error is not None:
        response_data["error"] = error
    response_data.update(fields)
    return jsonify(response_data), status
