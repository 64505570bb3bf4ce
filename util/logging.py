"""
Structured operation logging for the translation-memory service.
Every vector, embedding and translation call reports through here so a failed
lookup is visible in logs even though callers only ever see an empty result.
"""

import logging
from typing import Any, Dict, List

class StructuredLogger:
    """Structured logger for vector, embedding, retry and translation operations."""

    def __init__(self, name: str = "transmem"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_vector_operation(self, operation: str, record_id: str = None, details: Dict[str, Any] = None, status: str = "success"):
        """Log a vector index operation."""
        log_details = {}
        if record_id is not None:
            log_details["record_id"] = record_id
        if details:
            log_details.update(details)

        level = logging.INFO if status == "success" else logging.WARNING
        self.log_operation(f"vector.{operation}", status, log_details, level)

    def log_embedding(self, model: str, text: str, status: str = "success", details: Dict[str, Any] = None):
        """Log an embedding request without leaking the whole text."""
        log_details = {"model": model, "text": truncate(text, 30)}
        if details:
            log_details.update(details)

        level = logging.DEBUG if status == "success" else logging.WARNING
        self.log_operation("embedding.generate", status, log_details, level)

    def log_retry(self, label: str, attempt: int, max_attempts: int, cause: str, delay: float):
        """Log a retry attempt scheduled after a transient failure."""
        log_details = {
            "attempt": attempt,
            "max_attempts": max_attempts,
            "cause": cause,
            "next_delay_sec": round(delay, 2)
        }
        self.log_operation(f"retry.{label}", "retrying", log_details, logging.WARNING)

    def log_schema_drift(self, collection: str, reason: str):
        """Log a destructive collection recreation caused by schema drift."""
        log_details = {"collection": collection, "reason": reason}
        self.log_operation("vector.schema_drift", "recreating", log_details, logging.WARNING)

    def log_translation_memory(self, text: str, source_language: str, target_language: str,
                               hits: int, kept: int, status: str = "success", error: str = None):
        """Log a translation-memory lookup."""
        log_details = {
            "text": truncate(text, 30),
            "source_language": source_language,
            "target_language": target_language,
            "hits": hits,
            "kept": kept
        }
        if error:
            log_details["error"] = truncate(error, 200)

        level = logging.INFO if status == "success" else logging.WARNING
        self.log_operation("translation_memory.lookup", status, log_details, level)

    def log_translation_batch(self, batch_id: int, source_language: str, target_language: str,
                              task_count: int, status: str = "started", details: Dict[str, Any] = None):
        """Log a batch translation step."""
        log_details = {
            "batch_id": batch_id,
            "source_language": source_language,
            "target_language": target_language,
            "task_count": task_count
        }
        if details:
            log_details.update(details)

        level = logging.ERROR if status == "failed" else logging.INFO
        self.log_operation("translation.batch", status, log_details, level)

    def log_service_state(self, service: str, available: bool, reason: str = None):
        """Log a change of availability for an optional service."""
        log_details = {"service": service, "available": available}
        if reason:
            log_details["reason"] = truncate(reason, 200)

        level = logging.INFO if available else logging.WARNING
        self.log_operation("service.state", "available" if available else "unavailable", log_details, level)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


def truncate(value: Any, limit: int = 50) -> str:
    """Shorten a value for log output."""
    text = str(value) if value is not None else ""
    return text[:limit] + "..." if len(text) > limit else text


# Global logger instance
logger = StructuredLogger()


def sanitize_payload(payload: Any, limit: int = 100, sensitive_fields: List[str] = None) -> Any:
    """Truncate long strings in a payload before it is logged."""
    if sensitive_fields is None:
        sensitive_fields = ['api_key', 'authorization', 'password', 'secret']

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if str(k).lower() in sensitive_fields:
                sanitized[k] = "[REDACTED]"
            else:
                sanitized[k] = sanitize_payload(v, limit, sensitive_fields)
        return sanitized
    elif isinstance(payload, str):
        return truncate(payload, limit)
    elif isinstance(payload, list):
        return [sanitize_payload(item, limit, sensitive_fields) for item in payload]
    else:
        return payload
