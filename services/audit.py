"""Best-effort audit records, written after the response is sent."""

import logging
from pathlib import Path

import httpx
from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool

from core.config import AuditSettings
from core.protocols import AuditSink
from core.request_types import AuditRecord
from ui.log_utils import write_audit_log

logger = logging.getLogger(__name__)

PIPELINE_ERROR_ROUTE = "__pipeline_error__"


class FileAuditSink:
    """One JSON document per record under ``log_dir/<day>/``."""

    def __init__(self, log_dir: Path) -> None:
        self._log_dir = log_dir

    async def write(self, record: AuditRecord) -> None:
        await run_in_threadpool(write_audit_log, record.to_dict(), log_dir=self._log_dir)


class HttpAuditSink:
    """POST each record as JSON to a remote sink."""

    def __init__(self, client: httpx.AsyncClient, url: str, api_key: str | None = None) -> None:
        self._client = client
        self._url = url
        self._api_key = api_key

    async def write(self, record: AuditRecord) -> None:
        headers = {"apikey": self._api_key} if self._api_key else {}
        response = await self._client.post(self._url, json=record.to_dict(), headers=headers)
        response.raise_for_status()


def build_audit_sink(settings: AuditSettings, client: httpx.AsyncClient) -> AuditSink:
    if settings.sink_url:
        return HttpAuditSink(client, settings.sink_url, settings.sink_api_key)
    return FileAuditSink(settings.log_dir)


class AuditLogger:
    """Fire-and-forget writer; failures never reach the caller."""

    def __init__(self, sink: AuditSink | None) -> None:
        self._sink = sink

    async def write(self, record: AuditRecord) -> None:
        if self._sink is None:
            return
        try:
            await self._sink.write(record)
        except Exception as e:  # noqa: BLE001
            logger.debug("Audit write failed for %s %s: %s", record.method, record.route, e)

    def task(self, record: AuditRecord) -> BackgroundTask:
        """Background task to attach to the response, run after it is sent."""
        return BackgroundTask(self.write, record)
