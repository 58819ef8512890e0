from duplexbuffer.streams import SequentialStream
from duplexbuffer.buffers import FlushError, WriteBuffer
from duplexbuffer.macros import socketStream
import io
import socket
import pytest

def carriedOver(channel, incoming=b'0123456789', consumed=3):
    """Build a stream which read `consumed` bytes and then switched to writing with the rest still buffered"""
    channel.feed(incoming)
    stream = SequentialStream.newReader(channel, capacity=64)
    assert stream.read(consumed) == incoming[:consumed]
    stream.write(b'ping')
    return stream

def test_unread_bytes_are_carried_over(channel):
    stream = carriedOver(channel)
    assert stream.isWriter()
    assert stream.getPending() == b'3456789'

    stream.flush()
    assert channel.written == b'ping'

def test_carry_over_served_without_channel_access(channel):
    stream = carriedOver(channel)
    reads = channel.reads

    assert stream.read(4) == b'3456'
    assert stream.isReader()
    assert stream.getPending() == b'789'
    # reading exactly what is left drops the carry-over
    assert stream.read(3) == b'789'
    assert len(stream.getPending()) == 0
    assert channel.reads == reads

    channel.feed(b'abc')
    assert stream.read(10) == b'abc'

def test_short_carry_over_issues_one_channel_read(channel):
    stream = carriedOver(channel, b'abcdef', 2)
    channel.feed(b'gh', b'ij')
    reads = channel.reads

    result = bytearray(10)
    assert stream.readinto(result) == 6
    assert result[:6] == b'cdefgh'
    assert channel.reads == reads + 1
    assert len(stream.getPending()) == 0

    assert stream.read(10) == b'ij'

def test_end_of_stream_still_drops_carry_over(channel):
    stream = carriedOver(channel, b'abc', 1)
    assert stream.read(10) == b'bc'
    assert len(stream.getPending()) == 0
    assert stream.read(10) == b''

def test_channel_error_does_not_replay_carry_over(channel):
    stream = carriedOver(channel, b'abcdef', 2)
    channel.readError = ConnectionResetError('reset by peer')

    with pytest.raises(ConnectionResetError):
        stream.read(10)
    assert len(stream.getPending()) == 0

    channel.readError = None
    channel.feed(b'zz')
    assert stream.read(10) == b'zz'

def test_stalled_channel_keeps_carried_over_bytes(channel):
    stream = carriedOver(channel)
    stream.flush()
    channel.readStalled = True

    assert stream.read(20) == b'3456789'
    assert len(stream.getPending()) == 0

    # with nothing carried over, the stall itself is reported
    with pytest.raises(BlockingIOError):
        stream.read(1)

    channel.readStalled = False
    channel.feed(b'later')
    assert stream.read(5) == b'later'

def test_consume(channel):
    stream = carriedOver(channel)
    stream.consume(3)
    assert stream.getPending() == b'6789'

    stream.consume(100)
    assert len(stream.getPending()) == 0

    channel.feed(b'next')
    assert stream.read(4) == b'next'

def test_consume_without_carry_over(channel):
    stream = SequentialStream.newReader(channel)
    stream.consume(5)
    assert len(stream.getPending()) == 0

def test_nothing_carried_when_lookahead_empty(channel):
    channel.feed(b'ab')
    stream = SequentialStream.newReader(channel)
    assert stream.read(2) == b'ab'
    stream.write(b'x')
    assert len(stream.getPending()) == 0

def test_zero_byte_read_keeps_carry_over(channel):
    stream = carriedOver(channel, b'abcdef', 2)
    # a zero byte read switches back without touching the carry-over
    assert stream.read(0) == b''
    assert stream.isReader()
    stream.write(b'x')
    assert stream.getPending() == b'cdef'

def test_write_switch_flushes_before_reading(channel):
    stream = SequentialStream.newWriter(channel, capacity=32)
    stream.write(b'request')
    assert channel.written == b''

    channel.feed(b'response')
    assert stream.read(8) == b'response'
    assert channel.written == b'request'

def test_failed_flush_aborts_switch(channel):
    stream = SequentialStream.newWriter(channel)
    stream.write(b'request')
    channel.writeError = BrokenPipeError()

    with pytest.raises(BrokenPipeError):
        stream.read(1)
    assert stream.isWriter()

    channel.writeError = None
    stream.flush()
    assert channel.written == b'request'

def test_read1_makes_one_channel_read(channel):
    channel.feed(b'abc', b'def')
    stream = SequentialStream.newReader(channel)
    assert stream.read1() == b'abc'
    assert channel.reads == 1
    assert stream.read1(-1) == b'def'
    assert channel.reads == 2

def test_flush_in_read_mode_is_a_noop(channel):
    channel.feed(b'abc')
    stream = SequentialStream.newReader(channel)
    stream.read(1)
    stream.flush()
    assert channel.flushes == 0
    assert channel.written == b''
    assert stream.isReader()

def test_capacity_survives_switches(channel):
    stream = SequentialStream.newReader(channel, capacity=128)
    for _ in range(5):
        channel.feed(b'chunk')
        stream.read(2)
        stream.write(b'ack')
        assert stream.getCapacity() == 128
    assert stream.getCapacity() == 128

def test_not_seekable(channel):
    stream = SequentialStream.newReader(channel)
    assert not stream.seekable()
    with pytest.raises(io.UnsupportedOperation):
        stream.seek(0)
    with pytest.raises(io.UnsupportedOperation):
        stream.tell()

def test_take_writer(channel):
    stream = carriedOver(channel)
    with pytest.raises(ValueError):
        stream.takeReader()

    writer = stream.takeWriter()
    assert isinstance(writer, WriteBuffer)
    assert writer.getBuffered() == b'ping'
    with pytest.raises(ValueError):
        stream.getPending()

def test_detach_failure_hands_over_writer(channel):
    stream = SequentialStream.newWriter(channel)
    stream.write(b'data')
    channel.writeError = OSError('connection lost')

    with pytest.raises(FlushError) as info:
        stream.detach()
    assert info.value.writer.getBuffered() == b'data'
    assert info.value.writer.getRaw() is channel

def test_loopback_replays_unread_bytes_in_order():
    left, right = socket.socketpair()
    left.settimeout(5)
    right.settimeout(5)
    with left, right:
        stream = socketStream(left, capacity=64)
        message = b'The quick brown fox jumps over the lazy dog!'
        assert len(message) == 44
        right.sendall(message)

        received = stream.readExactly(10)

        stream.write(b'ack1')
        stream.write(b'ack2')
        stream.flush()
        acks = b''
        while len(acks) < 8:
            acks += right.recv(8 - len(acks))
        assert acks == b'ack1ack2'

        right.sendall(b' and then some more')
        expected = message + b' and then some more'

        received += stream.readExactly(5)
        received += stream.readExactly(len(expected) - len(received))
        assert received == expected

        stream.close()
