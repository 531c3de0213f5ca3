"""
Main application for Site Audit - wires components together and exposes the CLI
"""
import argparse
import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from config import SiteAuditConfig, config as default_config
from history_store import HistoryStore
from models import AnalysisReport, AnalysisRequest, AnalysisResult, ScanJobStatus, ScanMode, ScanRecord
from monitoring import HealthChecker, MetricsCollector, setup_logging
from recommendations import build_report
from scan_queue import ScanQueue, ScanWorker
from site_auditor import SiteAuditor
from throttler import AnalysisThrottler
from utils import InvalidUrlError, try_normalize_url

logger = logging.getLogger(__name__)


class SiteAuditApp:
    """Composition root: one throttler, history store, auditor, queue and worker per process"""

    def __init__(self, settings: Optional[SiteAuditConfig] = None, auditor: Optional[SiteAuditor] = None,
                 configure_logging: bool = True):
        self.config = settings or default_config

        if configure_logging:
            setup_logging(self.config.log_level, self.config.log_dir)

        self.metrics_collector = MetricsCollector()
        self.throttler = AnalysisThrottler(settings=self.config)
        self.history_store = HistoryStore(self.config.history_path)
        self.auditor = auditor or SiteAuditor(
            self.throttler,
            self.history_store,
            settings=self.config,
            metrics_collector=self.metrics_collector,
        )
        self.scan_queue = ScanQueue(self.config.scan_queue_max_pending)
        self.worker = ScanWorker(self.scan_queue, self.auditor, self.metrics_collector)
        self.health_checker = HealthChecker(self.metrics_collector, self.throttler, self.scan_queue)

        logger.info("Site Audit application initialized")

    async def analyze(self, url: str, mode: ScanMode = ScanMode.FAST, save_history: bool = True) -> AnalysisResult:
        return await self.auditor.analyze(AnalysisRequest(url=url, mode=mode), save_history)

    async def report(self, url: str, mode: ScanMode = ScanMode.FAST) -> AnalysisReport:
        """Analyze without saving history and derive the report"""
        analysis = await self.auditor.analyze(AnalysisRequest(url=url, mode=mode), save_history=False)
        return build_report(analysis)

    def get_history(self, url: str) -> List[ScanRecord]:
        return self.history_store.get_history(self._normalize_history_url(url))

    def get_latest(self, url: str) -> Optional[ScanRecord]:
        return self.history_store.get_latest(self._normalize_history_url(url))

    def enqueue(self, url: str, mode: ScanMode = ScanMode.FAST) -> str:
        return self.scan_queue.enqueue(AnalysisRequest(url=url, mode=mode), save_history=True)

    def get_job_status(self, job_id: str) -> Optional[ScanJobStatus]:
        return self.scan_queue.get_status(job_id)

    def get_system_status(self) -> Dict[str, Any]:
        return self.health_checker.check_health()

    @staticmethod
    def _normalize_history_url(url: Optional[str]) -> str:
        if url is None or not url.strip():
            raise InvalidUrlError("A URL is required.")
        normalized = try_normalize_url(url)
        if normalized is None:
            raise InvalidUrlError("A valid URL is required.")
        return normalized

    async def start(self):
        """Start the background scan worker"""
        self.worker.start()

    async def shutdown(self):
        """Gracefully shutdown the application"""
        logger.info("Shutting down Site Audit application")
        await self.worker.stop()
        logger.info("Application shutdown completed")


def create_cli():
    """Create command line interface"""
    parser = argparse.ArgumentParser(description="Site Audit - performance, SEO and accessibility checks for a URL")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    modes = [mode.value for mode in ScanMode]

    analyze_parser = subparsers.add_parser("analyze", help="Analyze a URL and save it to history")
    analyze_parser.add_argument("url", help="URL to analyze")
    analyze_parser.add_argument("--mode", choices=modes, default=ScanMode.FAST.value, help="Scan depth")
    analyze_parser.add_argument("--no-history", action="store_true", help="Do not save a history record")

    report_parser = subparsers.add_parser("report", help="Analyze a URL and print the report")
    report_parser.add_argument("url", help="URL to analyze")
    report_parser.add_argument("--mode", choices=modes, default=ScanMode.FAST.value, help="Scan depth")

    history_parser = subparsers.add_parser("history", help="Show saved scans for a URL")
    history_parser.add_argument("url", help="URL to look up")
    history_parser.add_argument("--latest", action="store_true", help="Only show the most recent scan")

    server_parser = subparsers.add_parser("server", help="Run the HTTP API")
    server_parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    server_parser.add_argument("--port", type=int, default=8000, help="Server port")

    return parser


async def run_command(args, app: SiteAuditApp) -> Any:
    """Execute a non-server CLI command and return its JSON-ready output"""
    if args.command == "analyze":
        result = await app.analyze(args.url, ScanMode.parse(args.mode), save_history=not args.no_history)
        return result.to_dict()

    if args.command == "report":
        report = await app.report(args.url, ScanMode.parse(args.mode))
        return report.to_dict()

    if args.command == "history":
        if args.latest:
            latest = app.get_latest(args.url)
            return latest.to_dict() if latest else None
        return [record.to_dict() for record in app.get_history(args.url)]

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point"""
    parser = create_cli()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "server":
        import uvicorn

        setup_logging(default_config.log_level, default_config.log_dir)
        uvicorn.run("api:app", host=args.host, port=args.port, log_level="info")
        return 0

    app = SiteAuditApp()
    try:
        output = asyncio.run(run_command(args, app))
        print(json.dumps(output, indent=2, default=str))
        return 0
    except InvalidUrlError as e:
        print(f"Error: {e}")
        return 2
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Application error: {e}")
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
