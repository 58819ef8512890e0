from .core import DuplexStream, RandomAccessStream, SequentialStream
