"""
Google Maps Crawler - Structured Logging

Job lifecycle logging with JSON formatting and separate log files for
different aspects of a crawl session.

Features:
- JSON-formatted structured logging
- Separate log files for crawling, errors, metrics, and operations
- Context-aware logging with metadata (e.g. job id, query)
"""

import logging
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional
from logging.handlers import RotatingFileHandler


class GmapsScraperLogger:
    """
    Structured logger for Google Maps crawl sessions.

    Creates 4 separate log files:
    - gmaps_scrape.log: Page navigation and job progress
    - gmaps_errors.log: Errors and exceptions only
    - gmaps_metrics.log: Performance metrics and session summaries
    - gmaps_operations.log: Engine operations (start, stop, retries)
    """

    def __init__(self, log_dir: str = "logs"):
        """
        Args:
            log_dir: Directory to store log files (default: logs/)
        """
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.scrape_logger = self._setup_logger("gmaps_scrape", "gmaps_scrape.log")
        self.error_logger = self._setup_logger("gmaps_errors", "gmaps_errors.log", level=logging.ERROR)
        self.metrics_logger = self._setup_logger("gmaps_metrics", "gmaps_metrics.log")
        self.ops_logger = self._setup_logger("gmaps_operations", "gmaps_operations.log")

        # Track current operation context
        self.current_context: Dict[str, Any] = {}

    def _setup_logger(
        self,
        name: str,
        filename: str,
        level: int = logging.INFO,
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
    ) -> logging.Logger:
        """Set up a logger writing to a rotating file under ``log_dir``."""
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.propagate = False

        # Close handlers left over from a previous instance
        for old_handler in logger.handlers:
            old_handler.close()
        logger.handlers = []

        handler = RotatingFileHandler(
            self.log_dir / filename,
            maxBytes=max_bytes,
            backupCount=backup_count
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))

        logger.addHandler(handler)

        return logger

    def set_context(self, **kwargs):
        """
        Set context for subsequent log messages.

        Example:
            logger.set_context(session="run-1", lang_code="en")
        """
        self.current_context.update(kwargs)

    def clear_context(self):
        """Clear the current logging context."""
        self.current_context = {}

    def _format_log_data(self, message: str, extra_data: Optional[Dict] = None) -> str:
        log_data = {
            "timestamp": datetime.now().isoformat(),
            "message": message,
            **self.current_context
        }

        if extra_data:
            log_data.update(extra_data)

        return json.dumps(log_data, default=str)

    # Job lifecycle

    def job_started(self, job_id: str, job_type: str, url: str, attempt: int = 1):
        """Log the start of one job attempt."""
        data = {"job_id": job_id, "job_type": job_type, "url": url, "attempt": attempt}
        msg = self._format_log_data("Job started", data)
        self.scrape_logger.info(msg)

    def page_settled(self, job_id: str, url: str, status_code: int, load_time_ms: int):
        """Log a page that reached its settled state."""
        data = {
            "job_id": job_id,
            "url": url,
            "status_code": status_code,
            "load_time_ms": load_time_ms
        }
        msg = self._format_log_data("Page settled", data)
        self.scrape_logger.info(msg)

    def places_found(self, job_id: str, query: str, count: int):
        """Log the fan-out of a search job."""
        data = {"job_id": job_id, "query": query, "places_found": count}
        msg = self._format_log_data("Places found", data)
        self.scrape_logger.info(msg)

    def job_completed(self, job_id: str, job_type: str, duration_seconds: float):
        data = {
            "job_id": job_id,
            "job_type": job_type,
            "duration_seconds": round(duration_seconds, 2),
            "status": "success"
        }
        msg = self._format_log_data("Job completed", data)
        self.scrape_logger.info(msg)

    # Error Logging

    def error(self, message: str, error: Exception = None, context: Dict = None):
        """
        Log an error with full context.

        Args:
            message: Error description
            error: Exception object (if available)
            context: Additional context data
        """
        data = {"error_type": "general"}
        if error:
            data.update({
                "exception_type": type(error).__name__,
                "exception_message": str(error)
            })
        if context:
            data.update(context)

        msg = self._format_log_data(message, data)
        self.error_logger.error(msg)
        # Also log to scrape logger for complete audit trail
        self.scrape_logger.error(msg)

    def page_load_failed(self, job_id: str, url: str, error: Exception, attempt: int = 1):
        """Log a navigation that ended in the FAILED state."""
        data = {
            "job_id": job_id,
            "url": url,
            "attempt": attempt,
            "error_type": type(error).__name__,
            "error_message": str(error)
        }
        msg = self._format_log_data("Page load failed", data)
        self.error_logger.error(msg)
        self.scrape_logger.warning(msg)

    def job_failed(self, job_id: str, job_type: str, error: Exception, attempts: int):
        """Log a job given up after its final attempt."""
        data = {
            "job_id": job_id,
            "job_type": job_type,
            "attempts": attempts,
            "error_type": type(error).__name__,
            "error_message": str(error)
        }
        msg = self._format_log_data("Job failed", data)
        self.error_logger.error(msg)
        self.scrape_logger.error(msg)

    # Metrics Logging

    def crawl_throughput(self, duration_seconds: float, jobs_processed: int, results: int, stopped: bool):
        """Log job and result rates for a finished crawl."""
        data = {
            "duration_seconds": round(duration_seconds, 2),
            "jobs_processed": jobs_processed,
            "results": results,
            "stopped": stopped,
        }
        if duration_seconds > 0:
            data["jobs_per_minute"] = round(jobs_processed * 60 / duration_seconds, 1)
            data["results_per_minute"] = round(results * 60 / duration_seconds, 1)
        msg = self._format_log_data("Crawl throughput", data)
        self.metrics_logger.info(msg)

    def session_summary(
        self,
        total_jobs: int,
        completed: int,
        failed: int,
        places_found: int,
        duration_minutes: float
    ):
        """Log session summary metrics."""
        data = {
            "total_jobs": total_jobs,
            "completed": completed,
            "failed": failed,
            "success_rate_pct": round((completed / total_jobs) * 100, 1) if total_jobs > 0 else 0,
            "places_found": places_found,
            "duration_minutes": round(duration_minutes, 2)
        }
        msg = self._format_log_data("Session summary", data)
        self.metrics_logger.info(msg)

    # Operations Logging

    def operation_started(self, operation: str, parameters: Dict = None):
        """Log start of an engine operation."""
        data = {"operation": operation}
        if parameters:
            data["parameters"] = parameters
        msg = self._format_log_data("Operation started", data)
        self.ops_logger.info(msg)

    def operation_completed(self, operation: str, result: str = "success"):
        """Log completion of an engine operation."""
        data = {"operation": operation, "result": result}
        msg = self._format_log_data("Operation completed", data)
        self.ops_logger.info(msg)

    def job_retry(self, job_id: str, attempt: int, max_retries: int, wait_seconds: float):
        """Log a job scheduled for another attempt."""
        data = {
            "job_id": job_id,
            "attempt": attempt,
            "max_retries": max_retries,
            "wait_seconds": round(wait_seconds, 2)
        }
        msg = self._format_log_data("Job retry scheduled", data)
        self.ops_logger.warning(msg)
