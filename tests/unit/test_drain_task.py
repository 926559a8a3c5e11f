"""Unit tests for the matrix queue drain actor and scheduler wiring."""

from unittest.mock import MagicMock, patch

from jobs import scheduler
from jobs.tasks import matrix_queue_drain


class TestDrainActor:
    """drain_matrix_queue actor."""

    def test_returns_summary(self):
        summary = {"success": True, "processed": 3, "failed": 0}

        with patch.object(matrix_queue_drain, "run_async", return_value=summary) as run:
            result = matrix_queue_drain.drain_matrix_queue.fn(10)

        assert result == summary
        run.assert_called_once()
        run.call_args.args[0].close()

    def test_failure_is_reported(self):
        with patch.object(
            matrix_queue_drain, "run_async", side_effect=RuntimeError("boom")
        ) as run:
            result = matrix_queue_drain.drain_matrix_queue.fn()

        assert result == {"success": False, "error": "boom"}
        run.call_args.args[0].close()

    def test_runs_with_current_message(self):
        summary = {"success": True, "processed": 0, "failed": 0}
        message = MagicMock(message_id="m-1")

        with (
            patch.object(
                matrix_queue_drain.CurrentMessage,
                "get_current_message",
                return_value=message,
            ) as current,
            patch.object(matrix_queue_drain, "run_async", return_value=summary) as run,
        ):
            result = matrix_queue_drain.drain_matrix_queue.fn()

        assert result == summary
        current.assert_called_once_with()
        run.call_args.args[0].close()


class TestScheduler:
    """APScheduler job registration."""

    def test_drain_job_registered(self):
        sched = scheduler.create_scheduler()

        job = sched.get_job(scheduler.DRAIN_JOB_ID)
        assert job is not None
        assert job.max_instances == 1
        assert job.trigger.interval.total_seconds() == scheduler.settings.drain_interval_seconds

    def test_enqueue_drain_sends_message(self):
        with patch.object(scheduler, "drain_matrix_queue", MagicMock()) as actor:
            scheduler.enqueue_drain()

        actor.send.assert_called_once_with()
