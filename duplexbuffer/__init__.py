"""Buffered streams which switch between reading and writing over a single channel"""

from .buffers import DEFAULT_BUFFER_SIZE, FlushError, ReadBuffer, WriteBuffer, CarryOverBuffer
from .streams import DuplexStream, RandomAccessStream, SequentialStream
from .macros import openFile, temporaryFile, socketStream

__version__ = '1.0.0'
