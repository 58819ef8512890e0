from .core import DEFAULT_BUFFER_SIZE, FlushError, ReadBuffer, WriteBuffer, CarryOverBuffer
