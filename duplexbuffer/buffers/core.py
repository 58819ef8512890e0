from typing import TYPE_CHECKING, Any
if TYPE_CHECKING:
    from _typeshed import ReadableBuffer, WriteableBuffer
else:
    ReadableBuffer = None
    WriteableBuffer = None
import errno
import io
import logging

DEFAULT_BUFFER_SIZE = io.DEFAULT_BUFFER_SIZE

logger = logging.getLogger(__name__)

def _checkCapacity(capacity: int | None) -> int:
    if capacity is None:
        return DEFAULT_BUFFER_SIZE
    if capacity <= 0:
        raise ValueError('buffer size must be strictly positive')
    return capacity

def _readInto(raw: Any, view: memoryview) -> int:
    """Issue exactly one read against the channel, filling the front of `view`"""
    readinto = getattr(raw, 'readinto', None)
    if readinto is not None:
        n = readinto(view)
    else:
        data = raw.read(len(view))
        if data is None:
            n = None
        else:
            n = len(data)
            view[:n] = data
    if n is None:
        raise BlockingIOError(errno.EAGAIN, 'channel has no data available without blocking')
    return n

def _writeAll(raw: Any, data: memoryview) -> int:
    """Write until the channel has taken everything or stops accepting, returning how much it took"""
    written = 0
    while written < len(data):
        n = raw.write(data[written:])
        if not n:
            break
        written += n
    return written


class FlushError(IOError):
    """Raised when a WriteBuffer could not push its pending bytes out while giving up its channel.
    The writer still owns the channel and the unflushed bytes, so nothing is lost"""

    def __init__(self, error: Exception, writer: 'WriteBuffer'):
        super().__init__(f'failed to flush buffered data: {error}')
        self.error = error
        self.writer = writer


class ReadBuffer():
    """Buffers reads from a channel with a fixed capacity and exposes the unconsumed lookahead"""

    def __init__(self, raw: Any, capacity: int | None = None) -> None:
        self._raw = raw
        self._capacity = _checkCapacity(capacity)
        self._buf = bytearray()
        self._pos = 0

    def getCapacity(self) -> int:
        return self._capacity

    def getRaw(self):
        """Returns the underlying channel"""
        return self._raw

    def getLookahead(self) -> bytes:
        """Returns the bytes already pulled from the channel but not yet delivered. Never touches the channel"""
        return bytes(self._buf[self._pos:])

    def _remaining(self) -> int:
        return len(self._buf) - self._pos

    def _discard(self):
        self._buf = bytearray()
        self._pos = 0

    def _fill(self):
        chunk = bytearray(self._capacity)
        n = _readInto(self._raw, memoryview(chunk))
        del chunk[n:]
        self._buf = chunk
        self._pos = 0

    def readinto(self, __buffer: WriteableBuffer) -> int:
        """Read into a buffer, issuing at most one read against the channel"""
        view = memoryview(__buffer).cast('B')
        if len(view) == 0:
            return 0
        if self._remaining() == 0:
            if len(view) >= self._capacity:
                # nothing buffered and the request is large, skip our buffer entirely
                logger.debug(f'bypassing read buffer for a {len(view)} byte read')
                return _readInto(self._raw, view)
            self._fill()
        n = min(self._remaining(), len(view))
        view[:n] = self._buf[self._pos:self._pos + n]
        self._pos += n
        return n

    def read(self, __size: int | None = -1) -> bytes:
        if __size is None or __size < 0:
            chunks = [self.getLookahead()]
            self._discard()
            while True:
                chunk = bytearray(self._capacity)
                n = _readInto(self._raw, memoryview(chunk))
                if n == 0:
                    break
                chunks.append(bytes(chunk[:n]))
            return b''.join(chunks)
        chunk = bytearray(__size)
        n = self.readinto(chunk)
        return bytes(chunk[:n])

    def seek(self, __offset: int, __whence: int = io.SEEK_SET) -> int:
        if __whence == io.SEEK_CUR:
            # the channel is ahead of the logical position by the size of the lookahead
            result = self._raw.seek(__offset - self._remaining(), io.SEEK_CUR)
        else:
            result = self._raw.seek(__offset, __whence)
        self._discard()
        return result

    def tell(self) -> int:
        return self._raw.tell() - self._remaining()

    def detach(self):
        """Give up the channel. Any lookahead is dropped"""
        raw = self._raw
        self._raw = None
        self._discard()
        return raw


class WriteBuffer():
    """Buffers writes to a channel with a fixed capacity until flushed"""

    def __init__(self, raw: Any, capacity: int | None = None) -> None:
        self._raw = raw
        self._capacity = _checkCapacity(capacity)
        self._pending = bytearray()

    def getCapacity(self) -> int:
        return self._capacity

    def getRaw(self):
        """Returns the underlying channel"""
        return self._raw

    def getBuffered(self) -> bytes:
        """Returns the bytes accepted by write() that have not reached the channel yet"""
        return bytes(self._pending)

    def _flushBuffer(self):
        while self._pending:
            n = self._raw.write(self._pending)
            if n is None:
                raise BlockingIOError(errno.EAGAIN, 'channel cannot accept data without blocking')
            if n == 0:
                raise IOError('failed to write buffered data')
            # keep whatever did not make it out so a later flush can retry
            del self._pending[:n]

    def write(self, __buffer: ReadableBuffer) -> int:
        data = memoryview(__buffer).cast('B')
        if len(self._pending) + len(data) > self._capacity:
            self._flushBuffer()
        if len(data) >= self._capacity:
            logger.debug(f'bypassing write buffer for a {len(data)} byte write')
            written = _writeAll(self._raw, data)
            if written < len(data):
                # the channel stalled part way, the rest goes out with the next flush
                logger.debug(f'channel took {written} of {len(data)} bytes, buffering the rest')
                self._pending += data[written:]
        else:
            self._pending += data
        return len(data)

    def flush(self):
        """Push all pending bytes to the channel, then flush the channel itself"""
        self._flushBuffer()
        flush = getattr(self._raw, 'flush', None)
        if flush is not None:
            flush()

    def seek(self, __offset: int, __whence: int = io.SEEK_SET) -> int:
        self._flushBuffer()
        return self._raw.seek(__offset, __whence)

    def tell(self) -> int:
        return self._raw.tell() + len(self._pending)

    def detach(self):
        """Flush pending bytes and give up the channel. Raises FlushError if the flush fails"""
        try:
            self._flushBuffer()
        except OSError as error:
            raise FlushError(error, self) from error
        raw = self._raw
        self._raw = None
        return raw


class CarryOverBuffer():
    """Bytes rescued from a ReadBuffer's lookahead, replayed before the channel is read again"""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self.pos = 0

    def __len__(self):
        return len(self._data)

    def remaining(self) -> int:
        return len(self._data) - self.pos

    def isExhausted(self) -> bool:
        return self.pos >= len(self._data)

    def getPending(self) -> memoryview:
        """Zero-copy view of the bytes not consumed yet"""
        return memoryview(self._data)[self.pos:]

    def take(self, size: int) -> memoryview:
        """Return up to `size` pending bytes and mark them consumed"""
        chunk = memoryview(self._data)[self.pos:self.pos + size]
        self.pos += len(chunk)
        return chunk

    def consume(self, amt: int):
        if amt < 0:
            raise ValueError('cannot consume a negative number of bytes')
        self.pos = min(self.pos + amt, len(self._data))
