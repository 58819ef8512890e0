from ..streams import RandomAccessStream, SequentialStream
from functools import partial
import tempfile

__all__ = [
    'openFile', 'temporaryFile', 'socketStream',
    'fileReader', 'fileWriter', 'socketReader', 'socketWriter'
]

def openFile(path, mode: str = 'r+b', capacity: int = None, reading: bool = True) -> RandomAccessStream:
    """Open a file unbuffered and wrap it in a RandomAccessStream. The mode must allow both reading and writing"""
    if 'b' not in mode:
        mode += 'b'
    raw = open(path, mode, buffering=0)
    return RandomAccessStream(raw, reading=reading, capacity=capacity)

def temporaryFile(capacity: int = None) -> RandomAccessStream:
    """An anonymous temporary file, ready to be written"""
    raw = tempfile.TemporaryFile(buffering=0)
    return RandomAccessStream.newWriter(raw, capacity=capacity)

def socketStream(sock, capacity: int = None, reading: bool = True) -> SequentialStream:
    """Wrap a connected socket in a SequentialStream. Closing the stream does not close the socket itself"""
    raw = sock.makefile('rwb', buffering=0)
    return SequentialStream(raw, reading=reading, capacity=capacity)

# files
fileReader = partial(openFile, mode='r+b', reading=True)
fileWriter = partial(openFile, mode='w+b', reading=False)

# sockets
socketReader = partial(socketStream, reading=True)
socketWriter = partial(socketStream, reading=False)
