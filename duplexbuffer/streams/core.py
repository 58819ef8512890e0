from typing import TYPE_CHECKING, Any
if TYPE_CHECKING:
    from _typeshed import ReadableBuffer, WriteableBuffer
else:
    ReadableBuffer = None
    WriteableBuffer = None
import io
import logging

from ..buffers import ReadBuffer, WriteBuffer, CarryOverBuffer

logger = logging.getLogger(__name__)

class DuplexStream(io.BufferedIOBase):
    """Abstract base class for streams which buffer either reads or writes over a single channel,
    switching between a ReadBuffer and a WriteBuffer as the caller alternates between reading and writing.

    Exactly one of the two buffers owns the channel at any time. Subclasses decide what happens to
    unread lookahead when switching from reading to writing"""

    def __init__(self, raw: Any, reading: bool = True, capacity: int | None = None):
        super().__init__()
        self._active: ReadBuffer | WriteBuffer | None = None
        self._capacity = capacity
        if reading:
            self._active = ReadBuffer(raw, capacity)
        else:
            self._active = WriteBuffer(raw, capacity)

    @classmethod
    def newReader(cls, raw: Any, capacity: int | None = None):
        """Returns a new stream expecting a read as the first operation"""
        return cls(raw, reading=True, capacity=capacity)

    @classmethod
    def newWriter(cls, raw: Any, capacity: int | None = None):
        """Returns a new stream expecting a write as the first operation"""
        return cls(raw, reading=False, capacity=capacity)

    def _checkAttached(self):
        if self._active is None:
            raise ValueError('raw stream has been detached')

    def isReader(self) -> bool:
        self._checkAttached()
        return isinstance(self._active, ReadBuffer)

    def isWriter(self) -> bool:
        self._checkAttached()
        return isinstance(self._active, WriteBuffer)

    def getCapacity(self) -> int:
        """Capacity of the active buffer, which is the same for every buffer built during this stream's lifetime"""
        if self._active is None:
            return 0
        return self._active.getCapacity()

    def getRaw(self):
        """Returns the underlying channel without changing modes. Reading from or writing to it directly
        bypasses whatever the active buffer is holding"""
        self._checkAttached()
        return self._active.getRaw()

    def _switchToReader(self):
        writer = self._active
        # a failed flush leaves the writer installed
        writer.flush()
        raw = writer.detach()
        self._active = ReadBuffer(raw, self._capacity)
        logger.debug(f'{type(self).__name__} switched to read mode')

    def _switchToWriter(self):
        raise NotImplementedError()

    def _readActive(self, view: memoryview) -> int:
        return self._active.readinto(view)

    def readinto(self, __buffer: WriteableBuffer) -> int:
        """Read into a buffer, switching to read mode if needed. At most one read is issued against the channel,
        so a short count does not mean the end of the stream has been reached"""
        self._checkAttached()
        if isinstance(self._active, WriteBuffer):
            self._switchToReader()
        return self._readActive(memoryview(__buffer).cast('B'))

    def readinto1(self, __buffer: WriteableBuffer) -> int:
        return self.readinto(__buffer)

    def read(self, __size: int | None = -1) -> bytes:
        """Read up to `size` bytes with at most one channel read. With no size, read until the end of the stream"""
        self._checkAttached()
        if __size is None or __size < 0:
            return self.readall()
        data = bytearray(__size)
        n = self.readinto(data)
        del data[n:]
        return bytes(data)

    def read1(self, __size: int | None = -1) -> bytes:
        """Like read(), but with no size a single channel read of up to one buffer's worth"""
        if __size is None or __size < 0:
            __size = max(self.getCapacity(), 1)
        return self.read(__size)

    def readall(self) -> bytes:
        chunks = []
        while True:
            chunk = self.read(max(self.getCapacity(), 1))
            if not chunk:
                break
            chunks.append(chunk)
        return b''.join(chunks)

    def readExactly(self, size: int) -> bytes:
        """Read exactly `size` bytes, raising an EOFError if the stream ends first"""
        data = bytearray()
        while len(data) < size:
            chunk = self.read(size - len(data))
            if not chunk:
                raise EOFError(f'Expected {size} bytes, got {len(data)}')
            data += chunk
        return bytes(data)

    def write(self, __buffer: ReadableBuffer) -> int:
        self._checkAttached()
        if isinstance(self._active, ReadBuffer):
            self._switchToWriter()
        return self._active.write(__buffer)

    def flush(self):
        """Flush the writer if one is active. There is nothing to flush in read mode"""
        self._checkAttached()
        if isinstance(self._active, WriteBuffer):
            self._active.flush()

    def readable(self) -> bool:
        self._checkAttached()
        return True

    def writable(self) -> bool:
        self._checkAttached()
        return True

    @property
    def closed(self) -> bool:
        self._checkAttached()
        return getattr(self._active.getRaw(), 'closed', False)

    def close(self):
        if self._active is None or self.closed:
            return
        raw = self._active.getRaw()
        try:
            self.flush()
        finally:
            if hasattr(raw, 'close'):
                raw.close()

    def _dissolve(self) -> ReadBuffer | WriteBuffer:
        active = self._active
        self._active = None
        return active

    def detach(self):
        """Dissolve this stream and return the channel, flushing first if writing.
        If the flush fails, a FlushError carrying the writer is raised and the stream is still dissolved"""
        self._checkAttached()
        return self._dissolve().detach()

    def takeReader(self) -> ReadBuffer:
        """Dissolve this stream and return its ReadBuffer. Only valid in read mode"""
        if not self.isReader():
            raise ValueError('stream is not in read mode')
        return self._dissolve()

    def takeWriter(self) -> WriteBuffer:
        """Dissolve this stream and return its WriteBuffer. Only valid in write mode"""
        if not self.isWriter():
            raise ValueError('stream is not in write mode')
        return self._dissolve()

    def __repr__(self):
        if self._active is None:
            return f'<{type(self).__name__} detached>'
        mode = 'read' if self.isReader() else 'write'
        return f'<{type(self).__name__} mode={mode} capacity={self.getCapacity()}>'

class RandomAccessStream(DuplexStream):
    """Dual-mode stream over a seekable channel such as a file.

    Switching from reading to writing throws away the unread lookahead and seeks the channel back to the
    logical read position, since those bytes can always be read again later"""

    def _switchToWriter(self):
        reader = self._active
        # realign the channel with the logical position, discarding the lookahead
        reader.seek(0, io.SEEK_CUR)
        raw = reader.detach()
        self._active = WriteBuffer(raw, self._capacity)
        logger.debug(f'{type(self).__name__} switched to write mode')

    def seekable(self) -> bool:
        self._checkAttached()
        seekable = getattr(self._active.getRaw(), 'seekable', None)
        return True if seekable is None else seekable()

    def seek(self, __offset: int, __whence: int = io.SEEK_SET) -> int:
        """Seek through whichever buffer is active. Does not change modes"""
        self._checkAttached()
        return self._active.seek(__offset, __whence)

    def tell(self) -> int:
        self._checkAttached()
        return self._active.tell()

    def truncate(self, __size: int | None = None) -> int:
        self._checkAttached()
        if __size is None:
            __size = self.tell()
        if isinstance(self._active, WriteBuffer):
            self._active.flush()
        else:
            self._active.seek(0, io.SEEK_CUR)
        return self._active.getRaw().truncate(__size)

class SequentialStream(DuplexStream):
    """Dual-mode stream over a non-seekable channel such as a socket or pipe.

    Bytes the reader pulled from the channel but did not deliver can never be read from the channel again,
    so switching to write mode moves them into a CarryOverBuffer. Later reads are served from the
    carry-over bytes first and only then from the channel"""

    def __init__(self, raw: Any, reading: bool = True, capacity: int | None = None):
        self._carryOver: CarryOverBuffer | None = None
        super().__init__(raw, reading=reading, capacity=capacity)

    def _switchToWriter(self):
        reader = self._active
        lookahead = reader.getLookahead()
        # the reader only pulls from the channel once the previous carry-over is used up
        if lookahead:
            self._carryOver = CarryOverBuffer(lookahead)
            logger.debug(f'{type(self).__name__} carried over {len(lookahead)} unread bytes')
        raw = reader.detach()
        self._active = WriteBuffer(raw, self._capacity)
        logger.debug(f'{type(self).__name__} switched to write mode')

    def _readActive(self, view: memoryview) -> int:
        carryOver = self._carryOver
        if carryOver is None:
            return self._active.readinto(view)
        wanted = len(view)
        available = carryOver.remaining()
        if available >= wanted:
            view[:] = carryOver.take(wanted)
            if carryOver.isExhausted():
                self._carryOver = None
            return wanted
        view[:available] = carryOver.take(available)
        # dropped before touching the channel so an error cannot replay these bytes
        self._carryOver = None
        try:
            n = self._active.readinto(view[available:])
        except BlockingIOError:
            # nothing new on the channel yet, the carried over bytes are already in the caller's buffer
            return available
        return available + n

    def getPending(self) -> memoryview:
        """Zero-copy view of the carried over bytes not yet read. Empty when there are none"""
        self._checkAttached()
        if self._carryOver is None:
            return memoryview(b'')
        return self._carryOver.getPending()

    def consume(self, amt: int):
        """Mark `amt` carried over bytes as read without copying them out"""
        self._checkAttached()
        if self._carryOver is None:
            return
        self._carryOver.consume(amt)
        if self._carryOver.isExhausted():
            self._carryOver = None

    def seekable(self) -> bool:
        self._checkAttached()
        return False

    def _dissolve(self) -> ReadBuffer | WriteBuffer:
        self._carryOver = None
        return super()._dissolve()
