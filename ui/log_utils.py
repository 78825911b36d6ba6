"""Shared logging utilities."""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

LOG_ROOT = Path.cwd() / "logs"
CLI_LOG_FILE = LOG_ROOT / "proxy.log"


def write_audit_log(record: dict[str, Any], *, log_dir: Path) -> Path:
    """Write a single audit record, one file per day-folder."""
    day = datetime.now(UTC).strftime("%Y-%m-%d")
    return _write_json(log_dir / day, record)


def write_cli_log(
    level: str,
    message: str,
    **extra: Any,
) -> None:
    """Append a line to the rolling CLI log file."""
    CLI_LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
    extra_str = " ".join(f"{k}={v}" for k, v in extra.items() if v is not None) if extra else ""
    line = f"[{timestamp}] {level}: {message}"
    if extra_str:
        line += f" {extra_str}"
    line += "\n"
    with CLI_LOG_FILE.open("a") as f:
        f.write(line)


def clear_logs() -> None:
    """Remove the previous run's CLI log (audit records are kept)."""
    if CLI_LOG_FILE.exists():
        CLI_LOG_FILE.unlink()


def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Redact sensitive headers."""
    redacted = {}
    for key, value in headers.items():
        if "key" in key.lower() or "authorization" in key.lower():
            redacted[key] = _mask(value)
        else:
            redacted[key] = value
    return redacted


class FileRequestLogger:
    """Headless RequestLogger that only appends to the CLI log file."""

    def log_request(
        self,
        method: str,
        route: str,
        status: int,
        *,
        user_id: str | None = None,
        duration_ms: float = 0.0,
    ) -> None:
        write_cli_log(
            "REQUEST",
            f"{method} {route}",
            status=status,
            user=user_id,
            ms=f"{duration_ms:.1f}",
        )

    def log_error(self, route: str, status: int, message: str) -> None:
        write_cli_log("ERROR", message[:200], route=route, status=status)


def _write_json(folder: Path, payload: dict[str, Any]) -> Path:
    """Write payload to a unique JSON file in the given folder."""
    folder.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S.%fZ")
    file_path = folder / f"{timestamp}_{uuid4().hex}.json"
    file_path.write_text(json.dumps(payload, indent=2, default=str))
    return file_path


def _mask(value: str) -> str:
    if len(value) <= 10:
        return "***"
    return value[:6] + "..." + value[-4:]
