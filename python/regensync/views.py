"""
HTTP surface for the offline worker.

    POST control/  {"type": "GET_VERSION"}       -> {"success": true, "reply": {...}}
    POST sync/     {"tag": "background-sync"}    -> SyncResult as JSON

Both views are async and share the process-wide worker from
``regensync.registry``.
"""

import json
import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from .exceptions import QueueStorageError
from .registry import get_worker

logger = logging.getLogger(__name__)


def _parse_body(request, allow_empty=False):
    if not request.body:
        if allow_empty:
            return {}
        raise ValueError("Empty request body")
    data = json.loads(request.body)
    if not isinstance(data, dict):
        raise ValueError("Invalid payload format")
    return data


@csrf_exempt
async def control_message_view(request):
    """
    Deliver a control message to the worker.

    Expected POST data:
    {
        "type": "SKIP_WAITING" | "GET_VERSION" | "CLEAR_CACHE"
    }

    Unknown types are accepted and ignored, as the worker ignores them.
    """
    if request.method != "POST":
        return JsonResponse({"error": "Method not allowed"}, status=405)

    try:
        data = _parse_body(request)
    except json.JSONDecodeError:
        return JsonResponse({"success": False, "error": "Invalid JSON"}, status=400)
    except ValueError as e:
        return JsonResponse({"success": False, "error": str(e)}, status=400)

    if not isinstance(data.get("type"), str):
        return JsonResponse({"success": False, "error": "type must be a string"}, status=400)

    try:
        reply = await get_worker().message(data)
    except Exception as e:
        logger.error("Control message error: %s", e, exc_info=True)
        return JsonResponse({"success": False, "error": "Internal server error"}, status=500)

    return JsonResponse({"success": True, "reply": reply})


@csrf_exempt
async def sync_trigger_view(request):
    """
    Run a replay cycle, e.g. when a client reports connectivity again.

    Expected POST data (optional):
    {
        "tag": "background-sync"
    }

    Returns:
    {
        "success": bool,
        "skipped": bool,
        "processed_count": int,
        "failed_count": int,
        "replayed_ids": [...],
        "failed_ids": [...],
        "errors": [...],
        "duration_seconds": float
    }
    """
    if request.method != "POST":
        return JsonResponse({"error": "Method not allowed"}, status=405)

    try:
        data = _parse_body(request, allow_empty=True)
    except json.JSONDecodeError:
        return JsonResponse({"success": False, "error": "Invalid JSON"}, status=400)
    except ValueError as e:
        return JsonResponse({"success": False, "error": str(e)}, status=400)

    tag = data.get("tag")
    if tag is not None and not isinstance(tag, str):
        return JsonResponse({"success": False, "error": "tag must be a string"}, status=400)

    try:
        result = await get_worker().sync(tag)
    except QueueStorageError as e:
        logger.error("Sync trigger failed: %s", e.message)
        return JsonResponse({"success": False, "error": "Queue storage unavailable"}, status=503)
    except Exception as e:
        logger.error("Sync trigger error: %s", e, exc_info=True)
        return JsonResponse({"success": False, "error": "Internal server error"}, status=500)

    if result is None:
        return JsonResponse({"success": False, "error": "Unknown sync tag"}, status=400)

    return JsonResponse(result.to_dict())
