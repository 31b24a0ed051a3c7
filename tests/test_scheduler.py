import logging
import unittest
from unittest.mock import Mock

from app.scheduler import SYNC_JOB_ID, SyncScheduler


class SyncSchedulerTests(unittest.TestCase):
    def setUp(self):
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        logging.disable(logging.NOTSET)

    def test_job_runs_configured_mode(self):
        for mode, method in (("issues", "sync_issues"), ("projects", "sync_projects"), ("full", "full_sync")):
            service = Mock()
            getattr(service, method).return_value = {"status": "success"}
            scheduler = SyncScheduler("0 */6 * * *", mode, service_factory=lambda: service)

            scheduler._sync_job()

            getattr(service, method).assert_called_once_with()

    def test_job_failure_is_logged_not_raised(self):
        service = Mock()
        service.full_sync.side_effect = RuntimeError("boom")
        scheduler = SyncScheduler("0 */6 * * *", "full", service_factory=lambda: service)

        scheduler._sync_job()

        service.full_sync.assert_called_once_with()

    def test_unknown_mode_rejected(self):
        with self.assertRaises(ValueError):
            SyncScheduler("0 */6 * * *", "everything", service_factory=Mock())

    def test_start_registers_cron_job(self):
        scheduler = SyncScheduler("15 3 * * *", "issues", service_factory=Mock())
        scheduler.start()
        try:
            job = scheduler.scheduler.get_job(SYNC_JOB_ID)
            self.assertIsNotNone(job)
            self.assertIsNotNone(scheduler.next_run_time())
        finally:
            scheduler.stop()
        self.assertFalse(scheduler.scheduler.running)


if __name__ == "__main__":
    unittest.main()
