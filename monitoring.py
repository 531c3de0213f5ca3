"""
Logging setup, runtime metrics and health checks for Site Audit
"""
import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List

import psutil

# Response times kept in memory for averaging
MAX_RESPONSE_SAMPLES = 500


def setup_logging(log_level: str = "INFO", log_dir: str = "logs"):
    """Setup console, full-log and error-log handlers on the root logger"""

    # Create logs directory if it doesn't exist
    os.makedirs(log_dir, exist_ok=True)

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    simple_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Clear existing handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(simple_formatter)
    root_logger.addHandler(console_handler)

    file_handler = logging.FileHandler(
        os.path.join(log_dir, 'site_audit.log'),
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(file_handler)

    error_handler = logging.FileHandler(
        os.path.join(log_dir, 'errors.log'),
        encoding='utf-8'
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(error_handler)

    return root_logger


@dataclass
class SystemMetrics:
    """Host resource usage"""
    timestamp: str
    cpu_usage: float
    memory_usage: float
    disk_usage: float


@dataclass
class AuditMetrics:
    """Analysis counters since startup"""
    timestamp: str
    scans_completed: int
    unreachable_sites: int
    jobs_failed: int
    success_rate: float
    avg_response_time_ms: float


class MetricsCollector:
    """Thread-safe counters for analyses and background jobs"""

    def __init__(self):
        self.metrics_lock = Lock()
        self.scans_completed = 0
        self.unreachable_sites = 0
        self.jobs_failed = 0
        self.response_times: List[int] = []

    def record_scan(self, response_time_ms: int, reachable: bool = True):
        """Record a finished analysis"""
        with self.metrics_lock:
            self.scans_completed += 1
            if not reachable:
                self.unreachable_sites += 1
            self.response_times.append(response_time_ms)
            if len(self.response_times) > MAX_RESPONSE_SAMPLES:
                self.response_times.pop(0)

    def record_job_failure(self):
        """Record a background job that raised"""
        with self.metrics_lock:
            self.jobs_failed += 1

    def get_audit_metrics(self) -> AuditMetrics:
        with self.metrics_lock:
            attempts = self.scans_completed + self.jobs_failed
            failures = self.unreachable_sites + self.jobs_failed
            success_rate = ((attempts - failures) / attempts * 100) if attempts > 0 else 100.0
            avg_response_time = sum(self.response_times) / len(self.response_times) if self.response_times else 0.0

            return AuditMetrics(
                timestamp=datetime.now(timezone.utc).isoformat(),
                scans_completed=self.scans_completed,
                unreachable_sites=self.unreachable_sites,
                jobs_failed=self.jobs_failed,
                success_rate=success_rate,
                avg_response_time_ms=avg_response_time,
            )

    @staticmethod
    def collect_system_metrics() -> SystemMetrics:
        """Sample host CPU, memory and disk usage"""
        return SystemMetrics(
            timestamp=datetime.now(timezone.utc).isoformat(),
            cpu_usage=psutil.cpu_percent(interval=None),
            memory_usage=psutil.virtual_memory().percent,
            disk_usage=psutil.disk_usage(os.path.abspath(os.sep)).percent,
        )


class HealthChecker:
    """Combines host resources, audit counters and service capacity"""

    def __init__(self, metrics_collector: MetricsCollector, throttler=None, scan_queue=None):
        self.metrics_collector = metrics_collector
        self.throttler = throttler
        self.scan_queue = scan_queue

    def check_health(self) -> Dict[str, Any]:
        """Perform health check"""
        health_status = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'overall_status': 'healthy',
            'components': {
                'system': self._check_system_health(),
                'audits': self._check_audit_health(),
                'capacity': self._check_capacity(),
            }
        }

        component_statuses = [comp['status'] for comp in health_status['components'].values()]
        if 'critical' in component_statuses:
            health_status['overall_status'] = 'critical'
        elif 'warning' in component_statuses:
            health_status['overall_status'] = 'warning'

        return health_status

    def _check_system_health(self) -> Dict[str, Any]:
        latest = self.metrics_collector.collect_system_metrics()

        status = 'healthy'
        issues = []

        if latest.cpu_usage > 90:
            status = 'critical'
            issues.append(f"CPU usage critical: {latest.cpu_usage:.1f}%")
        elif latest.cpu_usage > 80:
            status = 'warning'
            issues.append(f"CPU usage high: {latest.cpu_usage:.1f}%")

        if latest.memory_usage > 95:
            status = 'critical'
            issues.append(f"Memory usage critical: {latest.memory_usage:.1f}%")
        elif latest.memory_usage > 85:
            if status != 'critical':
                status = 'warning'
            issues.append(f"Memory usage high: {latest.memory_usage:.1f}%")

        return {'status': status, 'issues': issues, **asdict(latest)}

    def _check_audit_health(self) -> Dict[str, Any]:
        latest = self.metrics_collector.get_audit_metrics()

        status = 'healthy'
        issues = []

        if latest.jobs_failed > 0 and latest.success_rate < 80:
            status = 'warning'
            issues.append(f"Success rate low: {latest.success_rate:.1f}%")

        return {'status': status, 'issues': issues, **asdict(latest)}

    def _check_capacity(self) -> Dict[str, Any]:
        capacity: Dict[str, Any] = {'status': 'healthy'}
        if self.throttler is not None:
            capacity['available_slots'] = self.throttler.available
            capacity['max_concurrent'] = self.throttler.max_concurrent
        if self.scan_queue is not None:
            capacity['pending_jobs'] = self.scan_queue.pending_count
        return capacity
