"""
Workflow Blueprint: n8n automation for contact requests.

    GET  /api/v1/n8n/workflows
    POST /api/v1/n8n/trigger-workflow        {"request_id", "workflow_name" | "webhook_url", "data"}
    GET  /api/v1/n8n/workflow-status/<execution_id>
    POST /api/v1/webhooks/n8n                progress events sent by n8n

The inbound webhook carries no bearer token. When N8N_WEBHOOK_SECRET is
set, the raw body must be signed with it (HMAC-SHA256, hex) in the
X-N8N-Signature header.
"""

import logging

from flask import Blueprint, current_app, request

from servicehub import limiter
from servicehub.blueprints import current_workflow_config
from servicehub.core.permission_codes import SystemPermission
from servicehub.middleware.permission_required import require_permission
from servicehub.services import workflow_service as svc
from servicehub.utils.errors import E, api_error
from servicehub.utils.helpers import api_success, parse_int

logger = logging.getLogger(__name__)

workflow_bp = Blueprint("workflow", __name__, url_prefix="/api/v1")

_webhook_limit = limiter.limit(lambda: current_app.config.get("WEBHOOK_RATE_LIMIT", "120 per minute"))


@workflow_bp.route("/n8n/workflows", methods=["GET"])
@require_permission(SystemPermission.REQUESTS_MANAGE)
def list_workflows():
    return api_success(svc.list_workflows(current_workflow_config()), "Workflows retrieved successfully")


@workflow_bp.route("/n8n/trigger-workflow", methods=["POST"])
@require_permission(SystemPermission.REQUESTS_MANAGE)
def trigger_workflow():
    data = request.get_json(silent=True) or {}
    if not data.get("request_id"):
        return api_error(E.VALIDATION_REQUIRED, "Missing request_id parameter")
    request_id = parse_int(data["request_id"])
    if request_id is None:
        return api_error(E.VALIDATION_INVALID, "Invalid request_id parameter: must be a number")

    workflow_name = data.get("workflow_name")
    webhook_url = data.get("webhook_url")
    if not workflow_name and not webhook_url:
        return api_error(E.VALIDATION_REQUIRED, "Missing workflow_name parameter")

    config = current_workflow_config()
    if webhook_url:
        result = svc.trigger_webhook_workflow(request_id, webhook_url, data.get("data"), config=config)
    else:
        result = svc.trigger_workflow(request_id, workflow_name, data.get("data"), config=config)
    return api_success(result, "Workflow triggered successfully")


@workflow_bp.route("/n8n/workflow-status/<execution_id>", methods=["GET"])
@require_permission(SystemPermission.REQUESTS_VIEW)
def workflow_status(execution_id):
    status = svc.get_workflow_status(execution_id, config=current_workflow_config())
    return api_success(status, "Workflow status retrieved successfully")


@workflow_bp.route("/webhooks/n8n", methods=["POST"])
@_webhook_limit
def n8n_webhook():
    config = current_workflow_config()
    body = request.get_data()
    if not svc.verify_signature(config.webhook_secret, body, request.headers.get(svc.SIGNATURE_HEADER)):
        logger.warning("Rejected n8n webhook: bad signature", extra={"remote_addr": request.remote_addr})
        return api_error(E.UNAUTHORIZED, "Invalid webhook signature")

    event = request.get_json(silent=True)
    if event is None:
        return api_error(E.VALIDATION_INVALID, "Request body must be JSON")
    logger.info(
        "n8n webhook received",
        extra={"action": event.get("action") if isinstance(event, dict) else None},
    )
    result = svc.handle_webhook_event(event)
    return api_success(result, result["message"])
