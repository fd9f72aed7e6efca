import unittest

from taskboard.session_gate import LOGIN_ROUTE, RecordingNavigator, SessionGate
from taskboard.tests.fakes import ScriptedAuthProvider


class SessionGateTests(unittest.TestCase):
    def setUp(self):
        self.provider = ScriptedAuthProvider()
        self.navigator = RecordingNavigator()
        self.gate = SessionGate(self.provider, self.navigator)

    def tearDown(self):
        self.gate.close()

    def test_redirects_when_no_identity(self):
        self.gate.open()
        self.assertEqual(self.navigator.history, [LOGIN_ROUTE])
        self.assertIsNone(self.gate.current_identity())

    def test_redirects_once_per_transition(self):
        self.gate.open()
        self.provider.emit(None)
        self.provider.emit(None)
        self.assertEqual(self.navigator.history, [LOGIN_ROUTE])

        self.provider.emit("a@x.com")
        self.provider.emit(None)
        self.provider.emit(None)
        self.assertEqual(self.navigator.history, [LOGIN_ROUTE, LOGIN_ROUTE])

    def test_publishes_identity_to_dependents(self):
        seen = []
        self.gate.on_change(seen.append)
        self.gate.open()

        self.provider.emit("a@x.com")
        self.provider.emit("a@x.com")
        self.provider.emit("b@x.com")

        self.assertEqual(seen, ["a@x.com", "b@x.com"])
        self.assertEqual(self.gate.current_identity(), "b@x.com")

    def test_signed_in_user_is_not_redirected(self):
        self.provider.identity = "a@x.com"
        self.gate.open()
        self.assertEqual(self.navigator.history, [])
        self.assertEqual(self.gate.current_identity(), "a@x.com")

    def test_on_change_unsubscribe(self):
        seen = []
        unsubscribe = self.gate.on_change(seen.append)
        self.gate.open()
        unsubscribe()
        self.provider.emit("a@x.com")
        self.assertEqual(seen, [])

    def test_close_releases_subscription(self):
        self.gate.open()
        self.assertTrue(self.gate.is_open)
        self.gate.close()
        self.gate.close()

        self.assertFalse(self.gate.is_open)
        self.assertEqual(self.provider.listeners, [])
        self.provider.emit("a@x.com")
        self.assertIsNone(self.gate.current_identity())

    def test_logout_signs_out_and_redirects_once(self):
        self.provider.identity = "a@x.com"
        self.gate.open()

        self.gate.logout()

        self.assertEqual(self.provider.sign_outs, 1)
        self.assertEqual(self.navigator.history, [LOGIN_ROUTE])
        self.assertIsNone(self.gate.current_identity())
        self.assertEqual(self.navigator.take_pending(), LOGIN_ROUTE)
        self.assertIsNone(self.navigator.take_pending())

    def test_logout_redirects_when_sign_out_fails(self):
        self.provider.identity = "a@x.com"
        self.provider.sign_out_error = RuntimeError("network down")
        self.gate.open()

        with self.assertLogs("taskboard.session_gate", level="ERROR"):
            self.gate.logout()

        self.assertEqual(self.navigator.history, [LOGIN_ROUTE])
        self.assertIsNone(self.gate.current_identity())

    def test_custom_login_route(self):
        gate = SessionGate(self.provider, self.navigator, login_route="/signin")
        gate.open()
        self.assertEqual(self.navigator.history, ["/signin"])
        gate.close()


if __name__ == "__main__":
    unittest.main()
