"""
Tests for the application wiring and command line interface
"""
import json
from unittest.mock import AsyncMock, Mock, patch

import pytest

from app import SiteAuditApp, create_cli, main, run_command
from models import AnalysisRequest, ScanMode
from utils import InvalidUrlError


@pytest.fixture
def site_audit(test_config, sample_analysis):
    auditor = Mock()
    auditor.analyze = AsyncMock(return_value=sample_analysis)
    return SiteAuditApp(settings=test_config, auditor=auditor, configure_logging=False)


class TestSiteAuditApp:
    """Tests for SiteAuditApp"""

    def test_shares_one_throttler(self, test_config):
        site_audit = SiteAuditApp(settings=test_config, configure_logging=False)

        assert site_audit.auditor.throttler is site_audit.throttler
        assert site_audit.health_checker.throttler is site_audit.throttler
        assert site_audit.throttler.max_concurrent == test_config.max_concurrent_scans

    @pytest.mark.asyncio
    async def test_report_does_not_save_history(self, site_audit, sample_analysis):
        report = await site_audit.report("https://example.com", ScanMode.DEEP)

        site_audit.auditor.analyze.assert_awaited_once_with(
            AnalysisRequest(url="https://example.com", mode=ScanMode.DEEP), save_history=False
        )
        assert report.analysis is sample_analysis

    @pytest.mark.parametrize("url,message", [
        (None, "A URL is required."),
        ("", "A URL is required."),
        ("javascript:alert(1)", "A valid URL is required."),
    ])
    def test_history_url_validation(self, site_audit, url, message):
        with pytest.raises(InvalidUrlError, match=message):
            site_audit.get_history(url)

    @pytest.mark.asyncio
    async def test_start_and_shutdown_worker(self, site_audit):
        await site_audit.start()
        assert site_audit.worker.is_running

        await site_audit.shutdown()
        assert not site_audit.worker.is_running


class TestCommandLine:
    """Tests for CLI parsing and dispatch"""

    def test_parse_analyze(self):
        args = create_cli().parse_args(["analyze", "example.com", "--mode", "Deep", "--no-history"])

        assert args.command == "analyze"
        assert args.mode == "Deep"
        assert args.no_history is True

    def test_rejects_unknown_mode(self):
        with pytest.raises(SystemExit):
            create_cli().parse_args(["analyze", "example.com", "--mode", "Standard"])

    @pytest.mark.asyncio
    async def test_run_analyze(self, site_audit):
        args = create_cli().parse_args(["analyze", "example.com", "--no-history"])

        output = await run_command(args, site_audit)

        assert output["score"]["overall"] == 90
        site_audit.auditor.analyze.assert_awaited_once_with(
            AnalysisRequest(url="example.com", mode=ScanMode.FAST), False
        )

    @pytest.mark.asyncio
    async def test_run_history_latest_empty(self, site_audit):
        args = create_cli().parse_args(["history", "https://example.com", "--latest"])
        assert await run_command(args, site_audit) is None

    def test_main_without_command(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_main_prints_json(self, site_audit, capsys):
        with patch("app.SiteAuditApp", return_value=site_audit):
            exit_code = main(["report", "https://example.com"])

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["summary"]["url"] == "https://example.com/"

    def test_main_reports_invalid_url(self, site_audit, capsys):
        with patch("app.SiteAuditApp", return_value=site_audit):
            exit_code = main(["history", "  "])

        assert exit_code == 2
        assert "A URL is required." in capsys.readouterr().out
