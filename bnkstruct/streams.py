import io
import logging
import os
from contextlib import contextmanager

from .exceptions import TruncatedChunk


logger = logging.getLogger(__name__)

# block size used when copying views into a sink
CHUNK_SIZE = 64 * 1024


class Stream(object):
    '''This is a simple wrapper around bytes/file object to
    uniform its properties: mainly we need random access reads and
    the total size of the underlying data.'''
    def __init__(self, obj, flags='rb'):
        '''Here we normalize the object in order to be accessed as a normal file object'''
        self._type = type(obj)
        self.flags = flags
        self.obj = obj
        self.history = []
        # we close only what we opened
        self._owned = False

        init_method_name = 'init_%s' % self.obj.__class__.__name__

        init_method = getattr(self, init_method_name, self.init_file)

        init_method()

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self._type.__name__)

    def __getattr__(self, name):
        if name == 'obj':
            raise AttributeError(name)
        return getattr(self.obj, name)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def init_str(self):
        '''We think this is a path'''
        logger.debug('opening path \'%s\'' % self.obj)
        self.obj = open(self.obj, self.flags)
        self._owned = True

    def init_PosixPath(self):
        self.obj = str(self.obj)
        self.init_str()

    init_WindowsPath = init_PosixPath

    def init_bytes(self):
        '''We think these are raw bytes'''
        self.obj = io.BytesIO(self.obj)

    init_bytearray = init_bytes

    def init_Stream(self):
        '''Wrap the same underlying object of another stream'''
        self.obj = self.obj.obj

    def init_file(self):
        '''Anything else must quack like a binary file object'''
        for method in ('read', 'seek', 'tell'):
            if not hasattr(self.obj, method):
                raise ValueError('\'%s\' cannot be used as a stream' % self._type.__name__)

    def close(self):
        if self._owned:
            self.obj.close()
            self._owned = False

    def seek(self, offset, whence=os.SEEK_SET):
        if not isinstance(offset, int):
            raise ValueError('\'%s\' is the wrong kind of offset to use' % offset.__class__.__name__)

        self.obj.seek(offset, whence)

        return self

    def tell(self):
        return self.obj.tell()

    def read(self, size=-1):
        return self.obj.read(size)

    def write(self, data):
        return self.obj.write(data)

    @property
    def size(self):
        '''The total number of bytes available, the cursor is left untouched.'''
        with self.saved():
            return self.obj.seek(0, os.SEEK_END)

    @property
    def remaining(self):
        return self.size - self.tell()

    def read_at(self, offset, size):
        '''Read exactly size bytes at the given offset without moving the cursor.'''
        with self.saved():
            self.seek(offset)
            data = self.read(size)

        if len(data) != size:
            raise TruncatedChunk(f'expected {size} bytes at offset {offset}, got {len(data)}')

        return data

    def save(self):
        self.history.append(self.obj.tell())

    def restore(self):
        old_seek = self.history.pop()
        self.obj.seek(old_seek)

    @contextmanager
    def saved(self):
        self.save()
        try:
            yield self
        finally:
            self.restore()


class View(object):
    '''A lazy window of length bytes starting at offset in a stream: the data
    is read only when needed, i.e. when packing or extracting.'''

    def __init__(self, stream, offset, length):
        if offset < 0 or length < 0:
            raise TruncatedChunk(f'invalid window of {length} bytes at offset {offset}')

        end = offset + length
        available = stream.size
        if end > available:
            raise TruncatedChunk(f'window [{offset:#x}, {end:#x}) exceeds the {available} bytes available')

        self.stream = stream
        self.offset = offset
        self.length = length

    def __repr__(self):
        return '<%s(offset=%#x, length=%d)>' % (self.__class__.__name__, self.offset, self.length)

    def __len__(self):
        return self.length

    def read(self):
        return self.stream.read_at(self.offset, self.length)

    def iter_chunks(self, chunk_size=CHUNK_SIZE):
        position = self.offset
        end = self.offset + self.length

        while position < end:
            size = min(chunk_size, end - position)
            yield self.stream.read_at(position, size)
            position += size

    def copy_to(self, sink, chunk_size=CHUNK_SIZE):
        '''Write the contents of the window into sink and return the number
        of bytes written.'''
        written = 0
        for data in self.iter_chunks(chunk_size=chunk_size):
            sink.write(data)
            written += len(data)

        return written


class ZeroView(View):
    '''Synthetic window filled with a single value: it doesn't need an
    underlying stream since every request of N bytes emits exactly N bytes.'''

    def __init__(self, length, value=0):
        if length < 0:
            raise ValueError(f'the length of {self.__class__.__name__} cannot be negative')

        self.stream = None
        self.offset = 0
        self.length = length
        self.value = value

    def __repr__(self):
        return '<%s(length=%d, value=%#x)>' % (self.__class__.__name__, self.length, self.value)

    def read(self):
        return bytes([self.value]) * self.length

    def iter_chunks(self, chunk_size=CHUNK_SIZE):
        remaining = self.length
        block = bytes([self.value]) * min(chunk_size, remaining)

        while remaining > 0:
            size = min(chunk_size, remaining)
            yield block[:size]
            remaining -= size
