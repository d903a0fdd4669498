'''
# Wwise SoundBank sections

Every section starts with an 8 bytes header: a four characters identifier
followed by the little-endian length of the data that follows (the header
itself excluded).

The sections understood are

 1. BKHD: the bank header, version and id of the bank followed by platform
    specific data that is preserved as it is
 2. DIDX: the data index, an array of 12 bytes records (wem id, offset, length)
 3. DATA: the wems, located via the offsets of the DIDX relative to the start
    of the data of this section

everything else is kept opaque.
'''
import io

from ..core import Chunk
from ..enum import Compliant
from ..exceptions import (
    DataBeforeIndex,
    DuplicateWemId,
    MalformedIndexLength,
    OverlappingWems,
    SpanMismatch,
    TruncatedChunk,
    TruncatedHeader,
    UnsupportedGrowth,
)
from ..properties import Dependency, OffsetDependency, RatioDependency
from ..streams import View, ZeroView
from .. import fields


# The number of bytes used to describe the header of a section.
SECTION_HEADER_BYTES = 8

# The number of bytes of the known portion of a BKHD section, excluding its own header.
BKHD_SECTION_BYTES = 8

# The number of bytes used by a single entry of the DIDX section.
DIDX_ENTRY_BYTES = 12

BKHD_IDENTIFIER = b'BKHD'
DIDX_IDENTIFIER = b'DIDX'
DATA_IDENTIFIER = b'DATA'


class SectionHeader(Chunk):
    identifier = fields.StringField(4)
    length     = fields.StructField('I')

    def __init__(self, *args, identifier=None, **kwargs):
        super().__init__(*args, **kwargs)

        # a section of a known kind checks that the data really belongs to it
        if identifier is not None:
            self.identifier.default = identifier
            self.identifier.is_magic = True
            self.identifier.value = identifier

    def __str__(self):
        return '%s: len(%d)' % (self.identifier.value.decode('latin1'), self.length.value)

    @classmethod
    def peek(cls, stream):
        '''Read the header at the actual position without consuming it.

        It returns None if there are no more data.'''
        remaining = stream.remaining
        if remaining == 0:
            return None

        if remaining < SECTION_HEADER_BYTES:
            raise TruncatedHeader(f'only {remaining} bytes left at offset {stream.tell():#x} for a section header')

        header = cls()
        with stream.saved():
            header.unpack(stream)

        return header


class Section(Chunk):
    '''Base for all the sections: the known ones redeclare the header
    with their own identifier.'''

    IDENTIFIER = None

    header = SectionHeader()

    def __init__(self, *args, **kwargs):
        # the identifier of a known section must match
        kwargs.setdefault('compliant', Compliant.MAGIC | Compliant.INHERIT)
        super().__init__(*args, **kwargs)

    @property
    def identifier(self):
        return self.header.identifier.value

    def __str__(self):
        return str(self.header)


class UnknownSection(Section):
    '''A section we know nothing about: its data is kept as it is.'''
    data = fields.ViewField(Dependency('.header.length'))


class BankDescriptor(Chunk):
    '''Metadata about the overall SoundBank file.'''
    version = fields.StructField('I')
    bank_id = fields.StructField('I')


class BankHeaderSection(Section):
    IDENTIFIER = BKHD_IDENTIFIER

    header     = SectionHeader(identifier=BKHD_IDENTIFIER)
    descriptor = BankDescriptor()
    # platform specific fields unknown to us
    remaining  = fields.ViewField(OffsetDependency(BKHD_SECTION_BYTES, '.header.length'))

    def __str__(self):
        return '%s version(%d) id(%d)' % (
            super().__str__(),
            self.descriptor.version.value,
            self.descriptor.bank_id.value,
        )

    def unpack(self, stream):
        # the check is done before the descriptor eats the data of the next section
        header = SectionHeader.peek(stream)
        if header is not None and header.length.value < BKHD_SECTION_BYTES:
            raise TruncatedChunk(
                f'BKHD declares {header.length.value} bytes but at least {BKHD_SECTION_BYTES} are needed')

        super().unpack(stream)


class WemDescriptor(Chunk):
    '''The location of a single wem inside the data of the DATA section.'''
    wem_id = fields.StructField('I')
    # bytes from the start of the DATA section's data (after its header)
    data_offset = fields.StructField('I')
    length = fields.StructField('I')

    def __repr__(self):
        return '<%s(wem_id=%d, data_offset=%#x, length=%d)>' % (
            self.__class__.__name__,
            self.wem_id.value,
            self.data_offset.value,
            self.length.value,
        )


class DataIndexSection(Section):
    IDENTIFIER = DIDX_IDENTIFIER

    header      = SectionHeader(identifier=DIDX_IDENTIFIER)
    descriptors = fields.ArrayField(WemDescriptor(), n=RatioDependency(DIDX_ENTRY_BYTES, '.header.length'))

    def __init__(self, *args, **kwargs):
        # a list of all wem IDs, in order of their offset into the file
        self.wem_ids = []
        # wem ID -> WemDescriptor, the same instances contained in descriptors
        self.descriptor_map = {}
        # bytes that don't make a whole entry
        self.leftover = ZeroView(0)
        super().__init__(*args, **kwargs)

    def __str__(self):
        total = sum(_.length.value for _ in self.descriptor_map.values())
        return '%s wem_count(%d)\nDIDX WEM total size: %d' % (
            super().__str__(),
            self.wem_count,
            total,
        )

    @property
    def wem_count(self):
        return len(self.wem_ids)

    def _get_size(self):
        return SECTION_HEADER_BYTES + self.header.length.value

    def _get_raw(self):
        return self.pack()

    def unpack(self, stream):
        header = SectionHeader.peek(stream)
        if header is not None and header.length.value % DIDX_ENTRY_BYTES:
            msg = 'DIDX length %d is not a multiple of %d, the last %d bytes are kept as they are' % (
                header.length.value,
                DIDX_ENTRY_BYTES,
                header.length.value % DIDX_ENTRY_BYTES,
            )
            if self.is_compliant(Compliant.INDEX):
                raise MalformedIndexLength(msg)
            self.logger.warning(msg)

        super().unpack(stream)

        # skip what the truncation of the count left behind
        end = self.offset + SECTION_HEADER_BYTES + self.header.length.value
        if end > stream.size:
            raise TruncatedChunk(f'DIDX ends at {end:#x} but only {stream.size} bytes are available')
        leftover = self.header.length.value % DIDX_ENTRY_BYTES
        self.leftover = View(stream, end - leftover, leftover)
        stream.seek(end)

        self.wem_ids = []
        self.descriptor_map = {}

        for descriptor in self.descriptors:
            wem_id = descriptor.wem_id.value
            if wem_id in self.descriptor_map:
                raise DuplicateWemId(wem_id, chain=['descriptors'])

            self.wem_ids.append(wem_id)
            self.descriptor_map[wem_id] = descriptor

    def pack(self, stream=None):
        '''The records are written following the original order of the IDs.'''
        sink = io.BytesIO() if stream is None else stream

        written = self.header.pack(sink)
        for wem_id in self.wem_ids:
            written += self.descriptor_map[wem_id].pack(sink)
        written += self.leftover.copy_to(sink)

        return sink.getvalue() if stream is None else written


class Wem(object):
    '''A single sound contained in the DATA section: a lazy view of its data
    followed by the bytes that remain until the next wem, or the end of the
    section; these bytes are generally NUL padding.'''

    def __init__(self, descriptor, payload, padding, index=None):
        self.descriptor = descriptor
        # position inside the DATA section, zero is the first wem
        self.index = index
        self.payload = payload
        self.padding = padding

    def __repr__(self):
        return '<%s(id=%d, offset=%#x, length=%d, padding=%d)>' % (
            self.__class__.__name__,
            self.wem_id,
            self.offset,
            self.length,
            self.padding_length,
        )

    def __len__(self):
        return self.length

    @property
    def wem_id(self):
        return self.descriptor.wem_id.value

    @property
    def offset(self):
        return self.descriptor.data_offset.value

    @property
    def length(self):
        return self.descriptor.length.value

    @property
    def padding_length(self):
        return len(self.padding)

    @property
    def span(self):
        return len(self.payload) + len(self.padding)

    def read(self):
        return self.payload.read()

    def copy_to(self, sink):
        return self.payload.copy_to(sink)

    def replace(self, payload):
        '''Swap the data with a view that must not be larger than the original:
        the bytes released become zero padding so that the next wem doesn't move.'''
        if len(payload) > self.length:
            raise UnsupportedGrowth(self.index, len(payload), self.length)

        shrink = self.length - len(payload)
        self.padding = ZeroView(shrink + self.padding_length)
        self.payload = payload
        self.descriptor.length.value = len(payload)


class DataSection(Section):
    IDENTIFIER = DATA_IDENTIFIER

    header = SectionHeader(identifier=DATA_IDENTIFIER)

    def __init__(self, *args, index=None, **kwargs):
        self.index = index
        # the offset into the file where the data of the section begins
        self.data_start = None
        # whatever precedes the first wem, usually nothing
        self.leading = ZeroView(0)
        self.wems = []
        super().__init__(*args, **kwargs)

    def __len__(self):
        return len(self.wems)

    def __getitem__(self, item):
        return self.wems[item]

    def __iter__(self):
        return iter(self.wems)

    def __str__(self):
        return '%s wems(%d)' % (super().__str__(), len(self.wems))

    def _get_size(self):
        return SECTION_HEADER_BYTES + self.header.length.value

    def _get_raw(self):
        return self.pack()

    @property
    def span(self):
        '''The number of bytes that packing the wems would write.'''
        return len(self.leading) + sum(_.span for _ in self.wems)

    def unpack(self, stream):
        # the wems can be located only via the descriptors of the DIDX
        if self.index is None:
            raise DataBeforeIndex('the DATA section can be unpacked only after the DIDX section')

        super().unpack(stream)

        length = self.header.length.value
        self.data_start = stream.tell()
        data_end = self.data_start + length

        if data_end > stream.size:
            raise TruncatedChunk(
                f'DATA declares {length} bytes but only {stream.size - self.data_start} are available',
                chain=['data'])

        descriptors = [self.index.descriptor_map[_] for _ in self.index.wem_ids]

        first_start = self.data_start + descriptors[0].data_offset.value if descriptors else data_end
        if first_start > data_end:
            raise TruncatedChunk(f'the first wem starts at {first_start:#x} after the end of DATA', chain=['wems', '0'])
        self.leading = View(stream, self.data_start, first_start - self.data_start)

        self.wems = []
        for idx, descriptor in enumerate(descriptors):
            start = self.data_start + descriptor.data_offset.value
            end = start + descriptor.length.value

            # the last wem is followed by the end of the section
            if idx == len(descriptors) - 1:
                next_start = data_end
            else:
                next_start = self.data_start + descriptors[idx + 1].data_offset.value

            if end > data_end:
                raise TruncatedChunk(
                    f'wem {descriptor.wem_id.value} [{start:#x}, {end:#x}) exceeds the end of DATA at {data_end:#x}',
                    chain=['wems', str(idx)])

            if next_start < end:
                raise OverlappingWems(
                    f'wem {descriptor.wem_id.value} [{start:#x}, {end:#x}) overflows into the next one at {next_start:#x}',
                    chain=['wems', str(idx)])

            payload = View(stream, start, descriptor.length.value)
            padding = View(stream, end, next_start - end)

            self.wems.append(Wem(descriptor, payload, padding, index=idx))

        self.logger.debug('found %d wems starting at offset %#x' % (len(self.wems), self.data_start))

        stream.seek(data_end)

    def pack(self, stream=None):
        length = self.header.length.value
        if self.span != length:
            raise SpanMismatch(f'the wems cover {self.span} bytes but DATA declares {length} bytes')

        sink = io.BytesIO() if stream is None else stream

        written = self.header.pack(sink)
        written += self.leading.copy_to(sink)
        for wem in self.wems:
            written += wem.payload.copy_to(sink)
            written += wem.padding.copy_to(sink)

        return sink.getvalue() if stream is None else written
