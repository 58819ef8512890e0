import io
import pytest

class ScriptedChannel():
    """A non-seekable channel fed with chunks. Each read returns at most one chunk, like a socket recv"""

    def __init__(self):
        self.incoming = []
        self.written = bytearray()
        self.reads = 0
        self.writes = 0
        self.flushes = 0
        self.readError = None
        self.writeError = None
        self.writeLimit = None
        # non-blocking behavior: reads return None, writes return None once the budget runs out
        self.readStalled = False
        self.writeBudget = None
        self.closed = False

    def feed(self, *chunks: bytes):
        self.incoming.extend(chunks)

    def readinto(self, b) -> int:
        self.reads += 1
        if self.readError is not None:
            raise self.readError
        if self.readStalled:
            return None
        if not self.incoming:
            return 0
        chunk = self.incoming[0]
        n = min(len(b), len(chunk))
        b[:n] = chunk[:n]
        if n < len(chunk):
            self.incoming[0] = chunk[n:]
        else:
            self.incoming.pop(0)
        return n

    def write(self, b) -> int:
        self.writes += 1
        if self.writeError is not None:
            raise self.writeError
        data = bytes(b)
        if self.writeLimit is not None:
            data = data[:self.writeLimit]
        if self.writeBudget is not None:
            if self.writeBudget == 0:
                return None
            data = data[:self.writeBudget]
            self.writeBudget -= len(data)
        self.written += data
        return len(data)

    def flush(self):
        self.flushes += 1

    def seek(self, offset, whence=io.SEEK_SET):
        raise io.UnsupportedOperation('channel is not seekable')

    def close(self):
        self.closed = True

@pytest.fixture
def channel():
    return ScriptedChannel()
