import pytest
from unittest.mock import AsyncMock, MagicMock

from src.domain.portfolio.jobs.daily_report_job import DailyReportJob
from src.domain.portfolio.jobs.portfolio_record_job import PortfolioRecordJob


@pytest.fixture
def portfolio_service():
    service = MagicMock()
    service.record_all_portfolio_values = AsyncMock(return_value={"recorded": 2, "total": 2})
    service.get_model_reports = AsyncMock(return_value=[])
    return service


@pytest.mark.asyncio
async def test_record_job_returns_result(portfolio_service, notifier):
    sleep = AsyncMock()
    job = PortfolioRecordJob(portfolio_service, notifier, sleep=sleep)

    assert await job.run() == {"recorded": 2, "total": 2}
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_record_job_retries_then_succeeds(portfolio_service, notifier):
    portfolio_service.record_all_portfolio_values.side_effect = [
        RuntimeError("timeout"),
        {"recorded": 1, "total": 1},
    ]
    sleep = AsyncMock()
    job = PortfolioRecordJob(portfolio_service, notifier, retries=2, retry_delay=5.0, sleep=sleep)

    assert await job.run() == {"recorded": 1, "total": 1}
    sleep.assert_awaited_once_with(5.0)
    notifier.send_error_notification.assert_not_awaited()


@pytest.mark.asyncio
async def test_record_job_reports_final_failure(portfolio_service, notifier):
    portfolio_service.record_all_portfolio_values.side_effect = RuntimeError("db down")
    sleep = AsyncMock()
    job = PortfolioRecordJob(portfolio_service, notifier, retries=2, sleep=sleep)

    assert await job.run() is None
    assert portfolio_service.record_all_portfolio_values.await_count == 3
    assert sleep.await_count == 2
    notifier.send_error_notification.assert_awaited_once_with("Portfolio Record", "db down")


@pytest.mark.asyncio
async def test_daily_report_sent_when_models_exist(portfolio_service, notifier):
    reports = [{"model_name": "GPT", "total_value": 1.0, "return_rate": 0.0}]
    portfolio_service.get_model_reports.return_value = reports

    await DailyReportJob(portfolio_service, notifier).run()

    notifier.send_daily_report.assert_awaited_once_with(reports)


@pytest.mark.asyncio
async def test_daily_report_skipped_without_models(portfolio_service, notifier):
    await DailyReportJob(portfolio_service, notifier).run()

    notifier.send_daily_report.assert_not_awaited()
