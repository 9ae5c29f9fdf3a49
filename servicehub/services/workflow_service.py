"""
Workflow Service: n8n automation for contact requests.

Outbound: look up a workflow by name and activate it with the request's
data, or post straight to a webhook URL. Inbound: record the progress
events n8n sends back (start, update, complete, error) in the request's
``workflow_meta``.

Gateway failures surface as WorkflowError (HTTP 502); unknown requests as
NotFoundError; malformed webhook input as ValidationError.
"""

import hashlib
import hmac
import logging
from datetime import datetime, timezone

from servicehub.config import WorkflowConfig
from servicehub.core.exceptions import NotFoundError, ValidationError, WorkflowError
from servicehub.integrations.workflow_gateway import WorkflowGateway
from servicehub.models import db
from servicehub.models.service_request import ContactRequest

logger = logging.getLogger(__name__)

WEBHOOK_ACTIONS = ("process-start", "process-update", "process-complete", "process-error")
SIGNATURE_HEADER = "X-N8N-Signature"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_request(request_id: int) -> ContactRequest:
    req = db.session.get(ContactRequest, request_id)
    if req is None:
        raise NotFoundError(resource="ContactRequest", resource_id=request_id)
    return req


def _merge_meta(req: ContactRequest, updates: dict) -> dict:
    # Reassign so SQLAlchemy sees the JSON column change
    meta = dict(req.workflow_meta or {})
    meta.update(updates)
    req.workflow_meta = meta
    return meta


def _gateway(config: WorkflowConfig, gateway: WorkflowGateway | None) -> WorkflowGateway:
    if not config.enabled:
        raise WorkflowError("n8n configuration is incomplete")
    return gateway or WorkflowGateway(config)


# ═════════════════════════════════════════════════════════════════════════════
# Outbound
# ═════════════════════════════════════════════════════════════════════════════

def list_workflows(config: WorkflowConfig, *, gateway: WorkflowGateway | None = None) -> list[dict]:
    """Active n8n workflows, reduced to id / name / description / tags / active."""
    result = _gateway(config, gateway).list_workflows(active=True)
    if not result.ok:
        raise WorkflowError(f"Failed to fetch workflows: {result.error}", status_code=result.status_code)
    return [
        {
            "id": wf.get("id"),
            "name": wf.get("name"),
            "description": wf.get("description") or "",
            "tags": wf.get("tags") or [],
            "active": wf.get("active"),
        }
        for wf in (result.data or {}).get("data", [])
    ]


def trigger_workflow(
    request_id: int,
    workflow_name: str,
    data: dict | None = None,
    *,
    config: WorkflowConfig,
    gateway: WorkflowGateway | None = None,
) -> dict:
    """Find *workflow_name* in n8n and activate it for contact request *request_id*.

    Returns ``{"execution_id": ..., "workflow_id": ...}`` and marks the
    request's workflow_meta as processing.
    """
    gw = _gateway(config, gateway)
    req = _get_request(request_id)

    found = gw.find_workflows(workflow_name)
    if not found.ok:
        raise WorkflowError(f"Failed to find workflow: {found.error}", status_code=found.status_code)
    matches = (found.data or {}).get("data") or []
    if not matches:
        raise WorkflowError(f"No workflow found with name: {workflow_name}")
    workflow_id = matches[0]["id"]

    payload = {
        "data": {
            "request_id": req.id,
            "request_data": req.to_dict(),
            "additional_data": data or {},
        }
    }
    activated = gw.activate_workflow(workflow_id, payload)
    if not activated.ok:
        raise WorkflowError(f"Failed to activate workflow: {activated.error}", status_code=activated.status_code)
    execution_id = (activated.data or {}).get("executionId")

    _merge_meta(req, {
        "workflow_triggered": True,
        "workflow_name": workflow_name,
        "workflow_id": workflow_id,
        "execution_id": execution_id,
        "trigger_timestamp": _now_iso(),
        "status": "processing",
    })
    db.session.commit()

    logger.info(
        "Triggered workflow",
        extra={"request_id": req.id, "workflow_id": workflow_id, "execution_id": execution_id},
    )
    return {"execution_id": execution_id, "workflow_id": workflow_id, "success": True}


def trigger_webhook_workflow(
    request_id: int,
    webhook_url: str,
    data: dict | None = None,
    *,
    config: WorkflowConfig,
    gateway: WorkflowGateway | None = None,
) -> dict:
    """POST the request's data straight to an n8n webhook URL."""
    gw = gateway or WorkflowGateway(config)
    req = _get_request(request_id)

    result = gw.post_webhook(webhook_url, {
        "request_id": req.id,
        "request_data": req.to_dict(),
        "additional_data": data or {},
    })
    if not result.ok:
        raise WorkflowError(f"Failed to trigger webhook: {result.error}", status_code=result.status_code)

    _merge_meta(req, {
        "webhook_triggered": True,
        "webhook_url": webhook_url,
        "trigger_timestamp": _now_iso(),
        "status": "processing",
    })
    db.session.commit()
    return {"success": True, "response": result.data}


def get_workflow_status(execution_id: str, *, config: WorkflowConfig, gateway: WorkflowGateway | None = None):
    result = _gateway(config, gateway).get_execution(execution_id)
    if not result.ok:
        raise WorkflowError(f"Failed to fetch execution status: {result.error}", status_code=result.status_code)
    return result.data


# ═════════════════════════════════════════════════════════════════════════════
# Inbound webhook
# ═════════════════════════════════════════════════════════════════════════════

def sign_payload(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(secret: str, body: bytes, signature: str | None) -> bool:
    """True when no secret is configured, or *signature* matches the body's HMAC-SHA256."""
    if not secret:
        return True
    if not signature:
        return False
    if signature.startswith("sha256="):
        signature = signature[len("sha256="):]
    expected = sign_payload(secret, body).encode()
    return hmac.compare_digest(expected, signature.encode("utf-8", "surrogateescape"))


def _validate_event(event: dict) -> tuple[int, str]:
    if not isinstance(event, dict):
        raise ValidationError("Webhook body must be a JSON object")

    raw_id = event.get("request_id")
    if raw_id is None or raw_id == "":
        raise ValidationError("Missing request_id parameter")
    try:
        request_id = int(raw_id)
    except (TypeError, ValueError):
        raise ValidationError("Invalid request_id parameter: must be a number") from None

    action = event.get("action")
    if not action:
        raise ValidationError("Missing action parameter")
    if action not in WEBHOOK_ACTIONS:
        raise ValidationError(f"Unknown action: {action}")

    if not event.get("execution_id"):
        raise ValidationError(f"Missing execution_id parameter for {action} action")
    if action == "process-start" and not event.get("workflow_id"):
        raise ValidationError("Missing workflow_id parameter for process-start action")
    return request_id, action


def handle_webhook_event(event: dict) -> dict:
    """Apply one n8n progress event to its contact request.

    Raises:
        ValidationError: malformed event or unknown action.
        NotFoundError: the referenced request does not exist.
    """
    request_id, action = _validate_event(event)
    payload = event.get("payload") or {}
    if not isinstance(payload, dict):
        raise ValidationError("payload must be a JSON object")
    extracted = payload.get("extracted_data")
    if extracted is not None and not isinstance(extracted, dict):
        raise ValidationError("extracted_data must be a JSON object")
    req = _get_request(request_id)
    execution_id = event["execution_id"]

    if action == "process-start":
        updates = {
            "workflow_status": "started",
            "workflow_id": event["workflow_id"],
            "execution_id": execution_id,
            "start_timestamp": _now_iso(),
        }
        message = "Process start recorded"
    elif action == "process-update":
        updates = {
            "workflow_status": "in_progress",
            "progress": payload.get("progress"),
            "current_step": payload.get("step"),
            "update_timestamp": _now_iso(),
        }
        message = "Process update recorded"
    elif action == "process-complete":
        updates = {
            "workflow_status": "completed",
            "completion_timestamp": _now_iso(),
            "results": payload.get("results") or {},
        }
        message = "Process completion recorded"
    else:
        error = payload.get("error") or {}
        if not isinstance(error, dict):
            error = {"message": str(error)}
        updates = {
            "workflow_status": "error",
            "error_timestamp": _now_iso(),
            "error": {
                "message": error.get("message") or "Unknown error",
                "code": error.get("code"),
                "details": error.get("details"),
            },
        }
        message = "Process error recorded"

    if extracted and action in ("process-update", "process-complete"):
        stored = dict((req.workflow_meta or {}).get("extracted_data") or {})
        stored.update(extracted)
        updates["extracted_data"] = stored
        updates["processed_by"] = f"n8n:{execution_id}"

    _merge_meta(req, updates)
    db.session.commit()

    logger.info(
        "Recorded workflow event",
        extra={"request_id": req.id, "action": action, "execution_id": execution_id},
    )
    return {"success": True, "message": message, "request_id": req.id}
