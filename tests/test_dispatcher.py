import unittest
from unittest.mock import MagicMock, patch

from usb_drive_detector.core.dispatcher import EventDispatcher
from usb_drive_detector.core.errors import ObserverError
from usb_drive_detector.core.events import DeviceEventType, StorageDevice, StorageEvent

EVENT = StorageEvent(StorageDevice("/media/usb/A"), DeviceEventType.CONNECTED)


class Recorder:
    def __init__(self):
        self.events = []

    def on_event(self, event):
        self.events.append(event)


class TestEventDispatcher(unittest.TestCase):
    def setUp(self):
        self.dispatcher = EventDispatcher()

    def test_register_twice_returns_false(self):
        listener = MagicMock()
        self.assertTrue(self.dispatcher.register(listener))
        self.assertFalse(self.dispatcher.register(listener))
        self.assertEqual(len(self.dispatcher), 1)

    def test_bound_method_registered_once(self):
        recorder = Recorder()
        self.assertTrue(self.dispatcher.register(recorder.on_event))
        self.assertFalse(self.dispatcher.register(recorder.on_event))
        self.assertTrue(self.dispatcher.unregister(recorder.on_event))
        self.assertEqual(len(self.dispatcher), 0)

    def test_unregister_unknown_returns_false(self):
        self.assertFalse(self.dispatcher.unregister(MagicMock()))

    def test_register_rejects_non_callable(self):
        with self.assertRaises(TypeError):
            self.dispatcher.register("not a listener")

    def test_dispatch_in_registration_order(self):
        order = []
        self.dispatcher.register(lambda e: order.append("first"))
        self.dispatcher.register(lambda e: order.append("second"))
        self.dispatcher.dispatch(EVENT)
        self.assertEqual(order, ["first", "second"])

    @patch("usb_drive_detector.core.dispatcher.logger")
    def test_failing_observer_does_not_block_others(self, mock_logger):
        failing = MagicMock(side_effect=RuntimeError("boom"))
        healthy = MagicMock()
        self.dispatcher.register(failing)
        self.dispatcher.register(healthy)

        failures = self.dispatcher.dispatch(EVENT)

        healthy.assert_called_once_with(EVENT)
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], ObserverError)
        self.assertIs(failures[0].observer, failing)
        self.assertIsInstance(failures[0].cause, RuntimeError)
        mock_logger.error.assert_called_once()

    def test_observer_can_unregister_itself_mid_dispatch(self):
        received = []

        def once(event):
            received.append(event)
            self.dispatcher.unregister(once)

        later = MagicMock()
        self.dispatcher.register(once)
        self.dispatcher.register(later)

        self.dispatcher.dispatch(EVENT)
        self.dispatcher.dispatch(EVENT)

        self.assertEqual(received, [EVENT])
        self.assertEqual(later.call_count, 2)

    def test_observer_registered_mid_dispatch_waits_for_next_event(self):
        late = MagicMock()
        self.dispatcher.register(lambda e: self.dispatcher.register(late))
        self.dispatcher.dispatch(EVENT)
        late.assert_not_called()
        self.dispatcher.dispatch(EVENT)
        late.assert_called_once_with(EVENT)

    def test_clear(self):
        self.dispatcher.register(MagicMock())
        self.dispatcher.clear()
        self.assertEqual(self.dispatcher.observers(), [])


if __name__ == "__main__":
    unittest.main()
