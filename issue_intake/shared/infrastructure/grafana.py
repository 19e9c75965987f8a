"""
Grafana OTLP Metrics Exporter
==============================

Pushes triage metrics to Grafana Cloud via OTLP.

Metrics exported:
- llm_tokens_total / llm_prompt_tokens / llm_completion_tokens: token usage per model call
- llm_latency_ms: model call latency
- triage_dispatch_latency_ms: end-to-end triage run latency, labelled with
  whether the submission merged into a duplicate
"""

import base64
import time
from typing import Optional, Dict, Any, List

import httpx

from issue_intake.config import settings
from issue_intake.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _attributes(values: Dict[str, Any]) -> List[dict]:
    return [{"key": key, "value": {"stringValue": str(value)}} for key, value in values.items()]


def _gauge(name: str, unit: str, description: str, value: int, attributes: List[dict], timestamp_ns: int) -> dict:
    return {
        "name": name,
        "unit": unit,
        "description": description,
        "gauge": {
            "dataPoints": [
                {"asInt": value, "timeUnixNano": timestamp_ns, "attributes": attributes}
            ]
        }
    }


class GrafanaOTLPExporter:
    """
    Export metrics to Grafana Cloud via OTLP HTTP endpoint.

    Disabled (every export returns False) unless host, api key and
    instance id are all configured.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        api_key: Optional[str] = None,
        instance_id: Optional[str] = None
    ):
        self._host = host or settings.grafana_host
        self._api_key = api_key or settings.grafana_api_key
        self._instance_id = instance_id or settings.grafana_instance_id
        self._enabled = bool(self._host and self._api_key and self._instance_id)

        if self._enabled:
            auth_pair = f"{self._instance_id}:{self._api_key}"
            self._auth_encoded = base64.b64encode(auth_pair.encode()).decode()
            if "/otlp/v1/metrics" in self._host:
                self._url = self._host
            else:
                self._url = f"{self._host.rstrip('/')}/otlp/v1/metrics"
            logger.info(
                "Grafana OTLP exporter initialized",
                extra={"host": self._host, "instance_id": self._instance_id}
            )

    def is_enabled(self) -> bool:
        """Check if exporter is properly configured."""
        return self._enabled

    async def export_llm_metrics(
        self,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int,
        operation: str = "chat_completion",
        attributes: Optional[Dict[str, str]] = None
    ) -> bool:
        """
        Export LLM usage metrics.

        Args:
            model: Model name (e.g., "gpt-4.1-mini")
            prompt_tokens: Number of prompt tokens used
            completion_tokens: Number of completion tokens generated
            latency_ms: Request latency in milliseconds
            operation: Operation type (synthesis, transcription)
            attributes: Additional attributes to attach to metrics

        Returns:
            True if export succeeded, False otherwise
        """
        if not self._enabled:
            return False

        timestamp_ns = time.time_ns()
        labels = _attributes({
            "model": model,
            "operation": operation,
            "service": settings.app_name,
            **(attributes or {}),
        })
        metrics = [
            _gauge("llm_tokens_total", "1", "Total tokens used in LLM requests",
                   prompt_tokens + completion_tokens, labels, timestamp_ns),
            _gauge("llm_prompt_tokens", "1", "Number of prompt tokens in LLM requests",
                   prompt_tokens, labels, timestamp_ns),
            _gauge("llm_completion_tokens", "1", "Number of completion tokens generated",
                   completion_tokens, labels, timestamp_ns),
            _gauge("llm_latency_ms", "ms", "LLM request latency in milliseconds",
                   latency_ms, labels, timestamp_ns),
        ]
        return await self._push(metrics, operation=operation)

    async def export_dispatch_metrics(
        self,
        duplicate: bool,
        latency_ms: int,
        attachments: int = 0
    ) -> bool:
        """Export the outcome and latency of one triage run."""
        if not self._enabled:
            return False

        timestamp_ns = time.time_ns()
        labels = _attributes({
            "duplicate": str(duplicate).lower(),
            "attachments": attachments,
            "service": settings.app_name,
        })
        metrics = [
            _gauge("triage_dispatch_latency_ms", "ms", "Triage run latency in milliseconds",
                   latency_ms, labels, timestamp_ns),
        ]
        return await self._push(metrics, operation="dispatch")

    async def _push(self, metrics: List[dict], operation: str) -> bool:
        payload = {
            "resourceMetrics": [
                {
                    "resource": {
                        "attributes": _attributes({
                            "service.name": settings.app_name,
                            "service.version": settings.app_version,
                            "deployment.environment": settings.environment,
                        })
                    },
                    "scopeMetrics": [{"metrics": metrics}]
                }
            ]
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Basic {self._auth_encoded}",
            "X-Grafana-Org-Id": str(self._instance_id)
        }

        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(self._url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(
                "Error exporting metrics to Grafana",
                extra={"error": str(e), "operation": operation}
            )
            return False

        if response.status_code in (200, 202):
            logger.debug(
                "Metrics exported to Grafana",
                extra={"operation": operation, "metrics_count": len(metrics)}
            )
            return True

        logger.warning(
            "Failed to export metrics to Grafana",
            extra={
                "status_code": response.status_code,
                "response": response.text[:500],
                "operation": operation
            }
        )
        return False


# Global exporter instance
_grafana_exporter: Optional[GrafanaOTLPExporter] = None


def get_grafana_exporter() -> GrafanaOTLPExporter:
    """Get or create global Grafana exporter instance."""
    global _grafana_exporter
    if _grafana_exporter is None:
        _grafana_exporter = GrafanaOTLPExporter()
    return _grafana_exporter


def init_grafana_exporter(
    host: str,
    api_key: str,
    instance_id: str
) -> GrafanaOTLPExporter:
    """Initialize Grafana exporter with credentials."""
    global _grafana_exporter
    _grafana_exporter = GrafanaOTLPExporter(
        host=host,
        api_key=api_key,
        instance_id=instance_id
    )
    return _grafana_exporter
