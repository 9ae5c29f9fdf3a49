"""
n8n Workflow Gateway.

All outbound HTTP calls to the n8n workflow engine go through this class:
  - API key injected as ``X-N8N-API-KEY`` on REST calls
  - one attempt per call, bounded by ``WorkflowConfig.timeout``
  - structured ``GatewayResult`` returned to the service, never raises

Testability: pass a mock ``session`` to WorkflowGateway() in tests instead of
letting it create a real requests.Session internally.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from servicehub.config import WorkflowConfig

logger = logging.getLogger(__name__)


class GatewayResult:
    """Structured return value from WorkflowGateway calls.

    Attributes:
        ok:             True if the call succeeded (HTTP 2xx + no exception).
        status_code:    HTTP status code (None if network-level failure).
        data:           Parsed JSON response body (dict or list), else None.
        error:          Human-readable error message or None.
        duration_ms:    Round-trip latency in milliseconds.
    """

    def __init__(
        self,
        ok: bool,
        status_code: int | None,
        data: dict | list | None,
        error: str | None,
        duration_ms: int,
    ) -> None:
        self.ok = ok
        self.status_code = status_code
        self.data = data
        self.error = error
        self.duration_ms = duration_ms

    def __repr__(self) -> str:
        return f"<GatewayResult ok={self.ok} status={self.status_code}>"


class WorkflowGateway:
    """n8n REST API gateway.

    Usage:
        gateway = WorkflowGateway(workflow_config_from_app_config(app.config))
        result = gateway.list_workflows()
        if result.ok:
            ...
    """

    def __init__(self, config: WorkflowConfig, session: requests.Session | None = None) -> None:
        self.config = config
        # Inject custom session for testing; create real one lazily otherwise.
        self._session: requests.Session | None = session

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    # ── Core request dispatcher ───────────────────────────────────────────────

    def request(
        self,
        method: str,
        url: str,
        *,
        json_body: dict | list | None = None,
        params: dict | None = None,
        authenticated: bool = True,
    ) -> GatewayResult:
        """Execute one HTTP request against n8n.

        Args:
            method:         HTTP verb ("GET", "POST", ...).
            url:            Full target URL.
            json_body:      JSON-serialisable request body (optional).
            params:         URL query params (optional).
            authenticated:  Send the API key header (False for webhook URLs).

        Returns:
            GatewayResult, never raises. Callers check .ok.
        """
        headers = {"Accept": "application/json"}
        if authenticated:
            headers["X-N8N-API-KEY"] = self.config.api_key
        kwargs: dict[str, Any] = {"headers": headers, "timeout": self.config.timeout}
        if json_body is not None:
            kwargs["json"] = json_body
        if params:
            kwargs["params"] = params

        t0 = time.perf_counter()
        try:
            resp = self.session.request(method, url, **kwargs)
        except requests.Timeout:
            logger.warning("n8n request timed out url=%s", url)
            return GatewayResult(
                ok=False, status_code=None, data=None,
                error=f"Request timed out after {self.config.timeout}s",
                duration_ms=self.config.timeout * 1000,
            )
        except requests.RequestException as exc:
            logger.warning("n8n network error url=%s error=%s", url, str(exc)[:500])
            return GatewayResult(
                ok=False, status_code=None, data=None,
                error=str(exc)[:500],
                duration_ms=int((time.perf_counter() - t0) * 1000),
            )
        duration_ms = int((time.perf_counter() - t0) * 1000)

        if not resp.ok:
            logger.warning("n8n request failed status=%d url=%s", resp.status_code, url)
            return GatewayResult(
                ok=False,
                status_code=resp.status_code,
                data=None,
                error=f"HTTP {resp.status_code}: {resp.text[:500]}",
                duration_ms=duration_ms,
            )

        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {}
        return GatewayResult(
            ok=True,
            status_code=resp.status_code,
            data=data,
            error=None,
            duration_ms=duration_ms,
        )

    # ── n8n specific operations ───────────────────────────────────────────────

    def _api(self, path: str) -> str:
        return f"{self.config.base_url}/api/v1{path}"

    def find_workflows(self, name: str) -> GatewayResult:
        return self.request("GET", self._api("/workflows"), params={"name": name})

    def list_workflows(self, active: bool = True) -> GatewayResult:
        return self.request("GET", self._api("/workflows"), params={"active": str(active).lower()})

    def activate_workflow(self, workflow_id: str, payload: dict) -> GatewayResult:
        return self.request("POST", self._api(f"/workflows/{workflow_id}/activate"), json_body=payload)

    def get_execution(self, execution_id: str) -> GatewayResult:
        return self.request("GET", self._api(f"/executions/{execution_id}"))

    def post_webhook(self, webhook_url: str, payload: dict) -> GatewayResult:
        return self.request("POST", webhook_url, json_body=payload, authenticated=False)
