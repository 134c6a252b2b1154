from __future__ import annotations
import json, logging, sys, time, contextvars
from typing import Any, Dict
from relay.core.config import settings

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "request_id", default="-"
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base: Dict[str, Any] = {
            "ts": time.strftime(
                "%Y-%m-%dT%H:%M:%S",
                time.gmtime(getattr(record, "created", time.time())),
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", request_id_var.get("-")),
        }
        # Add common extras if present
        for k in ("participant_id", "event", "recipients", "delivered", "dropped", "pings"):
            if hasattr(record, k):
                base[k] = getattr(record, k)
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def setup_logging(level: str | None = None) -> None:
    # root -> JSON to stdout
    root = logging.getLogger()
    root.setLevel(logging.getLevelName((level or settings.LOG_LEVEL or "INFO").upper()))
    # Route uvicorn logs through root JSON handler
    for lg in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lgr = logging.getLogger(lg)
        # Remove their own handlers to avoid duplicate emission
        lgr.handlers.clear()
        lgr.propagate = True
        lgr.setLevel(root.level)
    # stdout handler, installed once per process
    if any(isinstance(h.formatter, JsonFormatter) for h in root.handlers):
        return
    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(JsonFormatter())
    root.addHandler(sh)
