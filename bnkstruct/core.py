"""
Core module for the abstraction of a file format

"""
import io
from typing import Tuple, List, Dict

from .fields import Field
from .meta import MetaChunk
from .streams import Stream
from .exceptions import BnkStructException


class Chunk(Field, metaclass=MetaChunk):
    """
    Together with Field is the main class that defines a format: its main attributes
    are offset and size that identify a Chunk.

    A Chunk can contain sub-chunks, declared as class attributes in the order
    they appear in the binary data.
    """

    def __init__(self, source=None, **kwargs):
        self.stream = Stream(source) if source is not None else None
        super().__init__(**kwargs)

        # now we have setup all the fields necessary and we can unpack if
        # some data is passed with the constructor
        if self.stream is not None:
            self.logger.debug('unpacking \'%s\' from %s' % (self.__class__.__name__, self.stream))
            self.unpack(self.stream)

    def init(self):
        pass

    def get_ordered_fields_name(self) -> List[str]:
        return self._meta.fields

    def get_fields(self) -> List[Tuple[str, Field]]:
        '''It returns a list of couples (name, instance) for each field.'''
        return [(_, getattr(self, _)) for _ in self.get_ordered_fields_name()]

    def __repr__(self):
        msg = []
        for field_name, field in self.get_fields():
            msg.append('%s=%s' % (field_name, repr(field)))
        return '<%s(%s)>' % (self.__class__.__name__, ','.join(msg))

    def __str__(self):
        msg = ''
        for field_name, field in self.get_fields():
            msg += '%s: %s\n' % (field_name, repr(field))
        return msg

    def _get_value(self):
        return self

    def _set_value(self, value):
        pass

    def _get_size(self):
        '''the size MUST be derived from the subchunks'''
        return sum(field.size for _, field in self.get_fields())

    def _get_raw(self):
        value = b''
        for field_name, field_instance in self.get_fields():
            value += field_instance.raw

        return value

    @property
    def layout(self) -> Dict[str, Tuple[int, int]]:
        result = {}
        for name, field in self.get_fields():
            result[name] = (field.offset, field.size)

        return result

    def pack(self, stream=None):
        '''Encode the chunk: without a stream the raw data is returned, otherwise
        the data is written into the stream and the number of bytes written is returned.
        '''
        sink = io.BytesIO() if stream is None else stream

        written = 0
        for field_name, field_instance in self.get_fields():
            self.logger.debug('packing %s.%s' % (self.__class__.__name__, field_name))
            written += field_instance.pack(sink)

        return sink.getvalue() if stream is None else written

    def unpack(self, stream):
        '''This is one of the main APIs to take care of: its aim is to take a binary
        data and transform in the representation given by the class this method
        is implemented.

        Each field is unpacked sequentially from the actual position of the stream;
        if a field fails its name is added to the chain of the exception so that
        the caller knows exactly where the data is broken.
        '''
        self.offset = stream.tell()

        for field_name, field in self.get_fields():
            self.logger.debug('unpacking %s.%s at offset %d' % (self.__class__.__name__, field_name, stream.tell()))

            field.offset = stream.tell()

            try:
                field.unpack(stream)
            except BnkStructException as e:
                e.chain.insert(0, field_name)
                raise

