"""
Tests for the caller-fed audio producer.
"""
import numpy as np
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from chord_listener.producers import PushProducer


class TestPushProducer:
    """Test the caller-fed producer."""

    def test_push_delivers_when_acquired(self):
        producer = PushProducer(48000)
        received = []
        producer.set_callback(received.append)
        producer.acquire()
        assert producer.push([0.1, 0.2])
        assert len(received) == 1
        assert received[0].dtype == np.float32

    def test_push_dropped_when_released(self):
        producer = PushProducer()
        received = []
        producer.set_callback(received.append)
        assert not producer.push([0.1])
        producer.acquire()
        producer.release()
        assert not producer.push([0.1])
        assert received == []

    def test_no_callback(self):
        producer = PushProducer()
        producer.acquire()
        assert producer.push([0.1])

    def test_unregistered_callback_stops_delivery(self):
        producer = PushProducer()
        received = []
        producer.set_callback(received.append)
        producer.acquire()
        producer.set_callback(None)
        assert producer.push([0.1])
        assert received == []
