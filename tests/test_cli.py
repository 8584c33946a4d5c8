import unittest
from unittest import mock

from click.testing import CliRunner

from capture.dummy_backend import DummySession
from sipwatch_cli.main import cli


class CliTests(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        # Keep the CLI from reconfiguring the root logger under the test runner
        patcher = mock.patch("sipwatch_cli.main.setup_logging")
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_interfaces_dummy(self):
        result = self.runner.invoke(cli, ["interfaces", "--backend", "dummy"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("dummy0", result.output)
        self.assertIn("Dummy Wi-Fi Interface", result.output)

    def test_listen_requires_interface(self):
        result = self.runner.invoke(cli, ["listen", "--backend", "dummy"])
        self.assertNotEqual(result.exit_code, 0)

    def test_listen_session_failure_exits_1(self):
        result = self.runner.invoke(cli, ["listen", "-i", "nosuch0", "--backend", "dummy"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Failed to start packet capture", result.output)

    def test_listen_dummy_prints_messages_and_summary(self):
        result = self.runner.invoke(cli, ["listen", "-i", "dummy0", "--backend", "dummy", "--duration", "1"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Listening on 'dummy0' with filter 'udp port 5060 or tcp port 5060'", result.output)
        self.assertIn("--- SIP message [UDP] ---", result.output)
        self.assertIn("1: REGISTER sip:example.com SIP/2.0", result.output)
        self.assertIn("CAPTURE SUMMARY", result.output)
        self.assertIn("Processing Errors: 0", result.output)

    def test_listen_no_raw(self):
        result = self.runner.invoke(cli, ["listen", "-i", "dummy0", "--backend", "dummy",
                                          "--duration", "1", "--no-raw"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertNotIn("\nREGISTER sip:example.com SIP/2.0", result.output)
        self.assertIn("1: REGISTER sip:example.com SIP/2.0", result.output)

    def test_listen_reports_close_failure(self):
        real_close = DummySession.close

        def failing_close(session):
            real_close(session)
            raise OSError("device gone")

        with mock.patch.object(DummySession, "close", autospec=True, side_effect=failing_close):
            result = self.runner.invoke(cli, ["listen", "-i", "dummy0", "--backend", "dummy", "--duration", "1"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Error stopping capture: Failed to close session", result.output)
        self.assertIn("CAPTURE SUMMARY", result.output)


if __name__ == "__main__":
    unittest.main()
