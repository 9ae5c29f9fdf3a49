"""servicehub.integrations: outbound gateways to external services.

All outbound HTTP calls to third-party APIs go through a gateway in this
package, never via bare `requests` calls in services or blueprints.
Gateways take an optional `requests.Session` so tests can intercept calls,
and return a structured `GatewayResult` instead of raising.

Current gateways:
  workflow_gateway.WorkflowGateway: n8n REST API and webhook URLs
"""
