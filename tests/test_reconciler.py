import threading
import unittest

from usb_drive_detector.core.events import DeviceEventType, StorageDevice
from usb_drive_detector.core.reconciler import StateReconciler

A = StorageDevice("/media/usb/A", volume_name="A")
B = StorageDevice("/media/usb/B", volume_name="B")
C = StorageDevice("/media/usb/C", volume_name="C")


class TestStateReconciler(unittest.TestCase):
    def setUp(self):
        self.events = []
        self.reconciler = StateReconciler(sink=self.events.append)

    def drain(self):
        emitted = [(e.event_type, e.device) for e in self.events]
        self.events.clear()
        return emitted

    def test_snapshot_sequence_emits_one_event_per_transition(self):
        self.reconciler.reconcile([])
        self.assertEqual(self.drain(), [])

        self.reconciler.reconcile([A])
        self.assertEqual(self.drain(), [(DeviceEventType.CONNECTED, A)])

        self.reconciler.reconcile([A, B])
        self.assertEqual(self.drain(), [(DeviceEventType.CONNECTED, B)])
        self.assertEqual(self.reconciler.connected_devices(), frozenset({A, B}))

        self.reconciler.reconcile([A])
        self.assertEqual(self.drain(), [(DeviceEventType.REMOVED, B)])

        self.reconciler.reconcile([])
        self.assertEqual(self.drain(), [(DeviceEventType.REMOVED, A)])
        self.assertEqual(self.reconciler.connected_devices(), frozenset())

    def test_unchanged_snapshot_emits_nothing(self):
        self.reconciler.reconcile([A, B])
        self.drain()
        result = self.reconciler.reconcile([B, A])
        self.assertFalse(result.changed)
        self.assertEqual(self.drain(), [])

    def test_same_identifier_different_instances_is_one_device(self):
        twin = StorageDevice("/media/usb/A", volume_name="other label", total_size=42)
        self.assertIsNot(twin, A)

        result = self.reconciler.reconcile([A, twin])
        self.assertEqual(result.added, (A,))
        self.assertEqual(self.drain(), [(DeviceEventType.CONNECTED, A)])

        self.reconciler.reconcile([twin])
        self.assertEqual(self.drain(), [])
        self.assertEqual(len(self.reconciler.connected_devices()), 1)

    def test_empty_snapshot_removes_everything(self):
        self.reconciler.reconcile([A, B, C])
        self.drain()
        result = self.reconciler.reconcile([])
        self.assertEqual(set(result.removed), {A, B, C})
        self.assertTrue(all(kind == DeviceEventType.REMOVED for kind, _ in self.drain()))

    def test_connected_events_precede_removed_events(self):
        self.reconciler.reconcile([A])
        self.drain()
        self.reconciler.reconcile([B, C])
        self.assertEqual(self.drain(), [
            (DeviceEventType.CONNECTED, B),
            (DeviceEventType.CONNECTED, C),
            (DeviceEventType.REMOVED, A),
        ])

    def test_connected_devices_is_a_copy(self):
        self.reconciler.reconcile([A])
        snapshot = self.reconciler.connected_devices()
        self.reconciler.reconcile([])
        self.assertEqual(snapshot, frozenset({A}))

    def test_lock_is_released_while_sink_runs(self):
        seen = []

        def sink(event):
            # Would deadlock if emission happened inside the critical section
            result = []
            t = threading.Thread(target=lambda: result.append(reconciler.connected_devices()))
            t.start()
            t.join(2)
            seen.append(result)

        reconciler = StateReconciler(sink=sink)
        reconciler.reconcile([A])
        self.assertEqual(seen, [[frozenset({A})]])

    def test_without_sink(self):
        reconciler = StateReconciler()
        result = reconciler.reconcile([A])
        self.assertEqual(result.added, (A,))
        self.assertEqual(result.removed, ())


if __name__ == "__main__":
    unittest.main()
