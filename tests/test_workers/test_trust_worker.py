"""Tests for the trust maintenance worker."""

from unittest.mock import AsyncMock
from unittest.mock import patch

import pytest

from emuready_api.workers.trust_worker import TrustWorker
from emuready_api.workers.trust_worker import apply_monthly_active_bonus


class TestMonthlyActiveBonusJob:
    """Test the scheduled bonus job."""

    @pytest.mark.asyncio
    async def test_runs_trust_service(self):
        trust_service = AsyncMock()
        trust_service.apply_monthly_active_bonus.return_value = 42

        with patch(
            "emuready_api.workers.trust_worker.get_trust_service",
            return_value=trust_service,
        ):
            credited = await apply_monthly_active_bonus({})

        assert credited == 42
        trust_service.apply_monthly_active_bonus.assert_called_once_with()

    def test_scheduled_monthly(self):
        [job] = TrustWorker.cron_jobs

        assert job.coroutine is apply_monthly_active_bonus
        assert job.day == 1
        assert job.hour == 0
        assert job.minute == 5
        assert not job.run_at_startup

    def test_single_job_at_a_time(self):
        assert TrustWorker.max_jobs == 1
