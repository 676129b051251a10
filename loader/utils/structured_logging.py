"""
Logging structuré et métriques du chargeur.

- `StructuredLogger` : message lisible `texte clé=valeur ...`; les champs sont
  aussi attachés au record (`record.fields`) pour `JsonFormatter`.
- `StructuredLogger.operation()` : début / fin / échec d'une opération avec durée.
- `MetricsCollector` : agrégats par opération, partagés entre les workers.
- `configure_logging()` : handlers console (et fichier) sur le root logger.
"""
import json
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


class StructuredLogger:
    """Enveloppe d'un `logging.Logger` acceptant des champs nommés."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)

    def _log(self, level: int, message: str, fields: Dict[str, Any]):
        if not self.logger.isEnabledFor(level):
            return
        text = " ".join([message] + [f"{key}={value}" for key, value in fields.items()])
        self.logger.log(level, text, extra={"event": message, "fields": fields})

    def debug(self, message: str, **fields):
        self._log(logging.DEBUG, message, fields)

    def info(self, message: str, **fields):
        self._log(logging.INFO, message, fields)

    def warning(self, message: str, **fields):
        self._log(logging.WARNING, message, fields)

    def error(self, message: str, **fields):
        self._log(logging.ERROR, message, fields)

    @contextmanager
    def operation(self, name: str, **fields):
        """
        Encadre une opération longue.

        Usage:
            with logger.operation("populate", ehr=100):
                ...

        Log `Starting <name>` puis `Completed <name>` ou `Failed <name>`
        (l'exception est propagée), avec la durée en secondes.
        """
        started = time.time()
        self.info(f"Starting {name}", **fields)
        try:
            yield
        except Exception as e:
            self.error(
                f"Failed {name}",
                duration_seconds=round(time.time() - started, 3),
                error_type=type(e).__name__,
                error=str(e),
                **fields,
            )
            raise
        self.info(f"Completed {name}", duration_seconds=round(time.time() - started, 3), **fields)


class JsonFormatter(logging.Formatter):
    """Une ligne JSON par record; reprend les champs de `StructuredLogger`."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": getattr(record, "event", record.getMessage()),
        }
        payload.update(getattr(record, "fields", {}))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


@dataclass
class OperationStats:
    count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_duration: float = 0.0
    min_duration: float = float("inf")
    max_duration: float = 0.0

    def add(self, duration: float, success: bool):
        self.count += 1
        if success:
            self.success_count += 1
        else:
            self.error_count += 1
        self.total_duration += duration
        self.min_duration = min(self.min_duration, duration)
        self.max_duration = max(self.max_duration, duration)

    def as_dict(self) -> Dict[str, Any]:
        data = dict(vars(self))
        if self.count:
            data["avg_duration"] = self.total_duration / self.count
            data["success_rate"] = self.success_count / self.count
        return data


class MetricsCollector:
    """Agrégats de durée par opération (thread-safe)."""

    def __init__(self):
        self._stats: Dict[str, OperationStats] = {}
        self._lock = threading.Lock()
        self.logger = StructuredLogger("loader.metrics")

    def record_operation(self, operation: str, duration: float, status: str = "success", **fields):
        with self._lock:
            stats = self._stats.setdefault(operation, OperationStats())
            stats.add(duration, status == "success")
        self.logger.debug(f"Operation metric: {operation}", duration=duration, status=status, **fields)

    def get_metrics(self, operation: Optional[str] = None) -> Dict[str, Any]:
        """Copie des agrégats: tous, ou ceux d'une opération (`{}` si inconnue)."""
        with self._lock:
            if operation is not None:
                stats = self._stats.get(operation)
                return stats.as_dict() if stats else {}
            return {name: stats.as_dict() for name, stats in self._stats.items()}

    def reset(self):
        with self._lock:
            self._stats.clear()


# Collecteur global du processus
metrics = MetricsCollector()


def configure_logging(level: str = "INFO", json_format: bool = False, log_file: Optional[str] = None):
    """
    Configure le root logger.

    Args:
        level: DEBUG, INFO, WARNING ou ERROR
        json_format: une ligne JSON par record au lieu du texte
        log_file: fichier de log additionnel (optionnel)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = JsonFormatter() if json_format else logging.Formatter(TEXT_FORMAT)

    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
