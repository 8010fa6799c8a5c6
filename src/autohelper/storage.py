"""File storage helpers for helper session logs and status."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class SessionPaths:
    session_id: str
    session_dir: Path
    helper_log: Path
    status_path: Path


def create_session_paths(runs_dir: Path) -> SessionPaths:
    runs_dir.mkdir(parents=True, exist_ok=True)
    session_dir: Path | None = None
    session_id = ""
    for attempt in range(100):
        base = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        suffix = f"-{attempt:02d}" if attempt else ""
        session_id = f"{base}{suffix}"
        candidate = runs_dir / session_id
        if candidate.exists():
            continue
        candidate.mkdir(parents=True, exist_ok=False)
        session_dir = candidate
        break
    if session_dir is None:
        raise RuntimeError("Could not allocate unique session directory")
    return SessionPaths(
        session_id=session_id,
        session_dir=session_dir,
        helper_log=session_dir / "helper.log",
        status_path=runs_dir / "status.json",
    )


def append_log(path: Path, message: str) -> None:
    with path.open("a", encoding="utf-8") as fh:
        fh.write(message.rstrip() + "\n")


def write_json(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, ensure_ascii=False)
        fh.write("\n")


def write_status(paths: SessionPaths, *, state: str, snapshot: dict[str, Any]) -> None:
    payload: dict[str, Any] = {
        "session_id": paths.session_id,
        "session_dir": str(paths.session_dir),
        "log_path": str(paths.helper_log),
        "state": state,
        "updated_at_utc": datetime.now(timezone.utc).isoformat(),
    }
    payload.update(snapshot)
    write_json(paths.status_path, payload)


def status_payload(runs_dir: Path) -> dict[str, Any]:
    path = runs_dir / "status.json"
    if not path.exists():
        return {"status": "no-sessions"}
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def latest_log_path(runs_dir: Path) -> Path | None:
    payload = status_payload(runs_dir)
    raw = str(payload.get("log_path", "") or "")
    if not raw:
        return None
    return Path(raw)


def tail_lines(path: Path, line_count: int) -> list[str]:
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8") as fh:
        lines = fh.readlines()
    return [line.rstrip("\n") for line in lines[-line_count:]]
