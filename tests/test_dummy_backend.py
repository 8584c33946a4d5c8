"""
Live capture -> listener pipeline tests using DummyBackend.
"""
import itertools
import unittest

from capture.dummy_backend import DummyBackend, sip_traffic
from capture.frame_builder import build_udp_frame
from capture.icapture_backend import CaptureConfig
from capture.packet_decoder import decode_frame
from listener.packet_capture import SipPacketCapture


class DummyBackendTests(unittest.TestCase):
    def test_lists_dummy_interfaces(self):
        names = [iface['name'] for iface in DummyBackend().list_interfaces()]
        self.assertEqual(names, ['dummy0', 'dummy1'])

    def test_unknown_interface_is_rejected(self):
        with self.assertRaises(ValueError):
            DummyBackend().open(CaptureConfig(interface='eth9'))

    def test_unsupported_event(self):
        session = DummyBackend(frames=[]).open(CaptureConfig(interface='dummy0'))
        try:
            with self.assertRaises(ValueError):
                session.on('close', lambda raw: None)
        finally:
            session.close()

    def test_replays_frames_to_handler(self):
        frames = [build_udp_frame("10.0.0.1", "10.0.0.2", 5060, 5060, b"SIP/2.0 200 OK")] * 3
        session = DummyBackend(frames=frames, interval=0).open(CaptureConfig(interface='dummy0'))
        received = []
        session.on('packet', received.append)

        self.assertTrue(session.wait_finished(timeout=2.0))
        metadata = session.close()

        self.assertEqual(received, frames)
        self.assertEqual(metadata['backend'], 'dummy')
        self.assertEqual(metadata['stats_summary']['packets_total'], 3)

    def test_generated_traffic_decodes(self):
        for frame in itertools.islice(sip_traffic(), 12):
            packet = decode_frame(frame)
            self.assertIn(packet.payload.protocol, (6, 17))


class DummyPipelineTests(unittest.TestCase):
    def test_listener_recovers_generated_messages(self):
        # One full round: UDP REGISTER, 200 OK, segmented TCP REGISTER, HTTP noise
        frames = list(itertools.takewhile(
            lambda frame: b"GET / HTTP/1.1" not in frame, sip_traffic(segment_size=64)))
        backend = DummyBackend(frames=frames, interval=0)
        events = []
        listener = SipPacketCapture(backend, 'dummy0', sink=events.append)
        self.assertTrue(listener.start())
        self.assertTrue(listener.session.wait_finished(timeout=2.0))
        listener.stop()

        transports = [event.transport for event in events]
        self.assertEqual(transports, ['UDP', 'UDP', 'TCP'])
        self.assertTrue(events[0].message.startswith("REGISTER sip:example.com SIP/2.0"))
        self.assertTrue(events[1].message.startswith("SIP/2.0 200 OK"))
        self.assertTrue(events[2].message.endswith("m=audio 49170 RTP/AVP 0\r\n"))
        self.assertEqual(listener.stats['pending_streams'], 0)


if __name__ == "__main__":
    unittest.main()
