from duplexbuffer import RandomAccessStream, SequentialStream
import logging
import socket
import tempfile

logging.basicConfig(level=logging.DEBUG, format='%(name)s - %(levelname)s - %(message)s')

data = b"The quick brown fox jumps over the lazy dog"

# Seekable channel: unread lookahead is thrown away and re-read after seeking
with tempfile.TemporaryFile(buffering=0) as file:
    stream = RandomAccessStream.newWriter(file)
    stream.write(data)
    stream.seek(0)
    assert stream.read(len(data)) == data

    stream.seek(4)
    stream.write(b"QUICK")
    stream.seek(0)
    assert stream.read() == b"The QUICK brown fox jumps over the lazy dog"
    stream.detach()

# Non-seekable channel: unread lookahead is carried over across the write
left, right = socket.socketpair()
with left, right:
    stream = SequentialStream.newReader(left.makefile('rwb', buffering=0))
    right.sendall(b"HELLO from the other side")
    assert stream.read(5) == b"HELLO"

    # the rest of the greeting was already buffered, it is kept for the next read
    stream.write(b"ACK")
    stream.flush()
    assert right.recv(3) == b"ACK"
    assert stream.getPending() == b" from the other side"

    assert stream.read(20) == b" from the other side"
    stream.close()
