import io
import logging
import unittest
from unittest import mock

from quotepoll import main as entrypoint
from quotepoll.data.quotes_client import FatalResponseError
from quotepoll.infra.config import DEFAULT_ENDPOINT, PollSchedule, Settings
from tests.stubs import StubResponse, StubSession, connection_refused, homer_response


class RunTest(unittest.TestCase):
    def test_polls_default_endpoint_when_unconfigured(self) -> None:
        session = StubSession(homer_response())
        output = io.StringIO()
        settings = Settings(schedule=PollSchedule(interval=60, lifetime=0.05))

        with mock.patch("quotepoll.data.quotes_client.requests.Session", return_value=session):
            entrypoint.run(settings, environ={}, output=output)

        self.assertEqual([DEFAULT_ENDPOINT], session.calls)
        self.assertEqual("\"D'oh!\" - Homer Simpson\n", output.getvalue())
        self.assertTrue(session.closed)

    def test_fatal_status_propagates_and_closes_session(self) -> None:
        session = StubSession(StubResponse(status_code=502, reason="Bad Gateway"))
        settings = Settings(schedule=PollSchedule(interval=60, lifetime=0.05))

        with mock.patch("quotepoll.data.quotes_client.requests.Session", return_value=session):
            with self.assertRaises(FatalResponseError):
                entrypoint.run(settings, environ={}, output=io.StringIO())

        self.assertTrue(session.closed)


    def test_client_logs_under_its_module_name(self) -> None:
        session = StubSession(connection_refused())
        settings = Settings(schedule=PollSchedule(interval=60, lifetime=0.05))

        with mock.patch("quotepoll.data.quotes_client.requests.Session", return_value=session):
            with self.assertLogs("quotepoll.data.quotes_client", level="ERROR") as logs:
                entrypoint.run(settings, environ={}, output=io.StringIO())

        self.assertIn("error querying API", logs.output[0])


class MainTest(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch.object(entrypoint, "configure_logging")
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_cli_flags_override_schedule(self) -> None:
        with mock.patch.object(entrypoint, "run") as run:
            entrypoint.main(["--interval", "2", "--lifetime", "20"])

        settings = run.call_args.args[0]
        self.assertEqual(PollSchedule(interval=2.0, lifetime=20.0), settings.schedule)

    def test_fatal_response_exits_with_status_one(self) -> None:
        error = FatalResponseError(500, "Internal Server Error", DEFAULT_ENDPOINT)
        with mock.patch.object(entrypoint, "run", side_effect=error):
            with self.assertLogs("quotepoll", level=logging.CRITICAL):
                with self.assertRaises(SystemExit) as ctx:
                    entrypoint.main([])
        self.assertEqual(1, ctx.exception.code)

    def test_invalid_schedule_exits_with_status_two(self) -> None:
        with mock.patch.object(entrypoint, "run") as run:
            with self.assertRaises(SystemExit) as ctx:
                entrypoint.main(["--interval", "0"])
        self.assertEqual(2, ctx.exception.code)
        run.assert_not_called()

    def test_non_finite_interval_exits_with_status_two(self) -> None:
        with mock.patch.object(entrypoint, "run") as run:
            with self.assertRaises(SystemExit) as ctx:
                entrypoint.main(["--interval", "nan"])
        self.assertEqual(2, ctx.exception.code)
        run.assert_not_called()


if __name__ == "__main__":
    unittest.main()
