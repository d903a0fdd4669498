'''
# Wwise SoundBank

A SoundBank (usually with extension ".bnk") is a sequence of sections, each one
with a header made of a four characters identifier and the length of its data

  .------------------------------.
  | BKHD  bank header            |
  | DIDX  index of the wems      |
  | DATA  the wems               |
  | ....  other sections         |
  '------------------------------'

The wems (the audio files) are located via the DIDX entries, with offsets
relative to the start of the data of the DATA section; between a wem and the
next one there can be some alignment padding.

Since the offsets are never recomputed, a wem can be replaced only with data
not larger than the original: the bytes not used anymore become zero padding
and all the other wems stay where they are.
'''
import logging
from collections import namedtuple

from ..enum import Compliant
from ..exceptions import (
    BnkStructException,
    DataBeforeIndex,
    IndexOutOfRange,
    MissingDataChunk,
    UnsupportedGrowth,
)
from ..streams import Stream, View
from .sections import (
    BKHD_IDENTIFIER,
    DIDX_IDENTIFIER,
    DATA_IDENTIFIER,
    SectionHeader,
    UnknownSection,
    BankHeaderSection,
    DataIndexSection,
    DataSection,
    Wem,
    WemDescriptor,
    BankDescriptor,
)


__all__ = [
    'SoundBank',
    'ReplacementWem',
    'SectionHeader',
    'UnknownSection',
    'BankHeaderSection',
    'BankDescriptor',
    'DataIndexSection',
    'WemDescriptor',
    'DataSection',
    'Wem',
    'identifier2section',
]


identifier2section = {
    BKHD_IDENTIFIER: BankHeaderSection,
    DIDX_IDENTIFIER: DataIndexSection,
    DATA_IDENTIFIER: DataSection,
}


# wem can be a path, bytes, a file object or a Stream; length None means all of it
ReplacementWem = namedtuple('ReplacementWem', ['wem', 'wem_index', 'length'], defaults=[None])


class SoundBank(object):
    '''An open Wwise SoundBank.

    The sections are unpacked lazily: the data of the wems and of the unknown
    sections is read from the source only when packing or extracting, so the
    source must stay open until the bank is packed.
    '''

    def __init__(self, source=None, compliant=Compliant.NONE):
        self.logger = logging.getLogger(__name__)
        # sections look here for their compliance
        self.father = None
        self.compliant = compliant

        self.bank_header = None
        self.index = None
        self.data = None
        self.others = []

        self.stream = None
        # streams opened for the replacements, closed together with the bank
        self._sources = []

        if source is not None:
            self.stream = source if isinstance(source, Stream) else Stream(source)
            try:
                self.unpack(self.stream)
            except Exception:
                self.close()
                raise

    @classmethod
    def open(cls, path, **kwargs):
        '''Open the file at the given path: the bank owns the file and
        close() must be called when done.'''
        return cls(Stream(path), **kwargs)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        for source in self._sources:
            source.close()
        self._sources = []

        if self.stream is not None:
            self.stream.close()

    def __str__(self):
        lines = [str(_) for _ in self.sections]

        return '\n'.join(lines) + '\n'

    def __repr__(self):
        return '<%s(wems=%d, others=%d)>' % (
            self.__class__.__name__,
            self.wem_count,
            len(self.others),
        )

    @property
    def sections(self):
        '''The sections in the order they are packed.'''
        known = [self.bank_header, self.index, self.data]

        return [_ for _ in known if _ is not None] + self.others

    @property
    def wems(self):
        return self.data.wems if self.data is not None else []

    @property
    def wem_count(self):
        return len(self.wems)

    def unpack(self, stream):
        while True:
            header = SectionHeader.peek(stream)
            if header is None:
                break

            identifier = header.identifier.value
            section_cls = identifier2section.get(identifier, UnknownSection)

            self.logger.debug('found section %r of %d bytes at offset %#x' % (
                identifier, header.length.value, stream.tell()))

            kwargs = {}
            if section_cls is DataSection:
                if self.index is None:
                    raise DataBeforeIndex('the DATA section is found before the DIDX section')
                kwargs['index'] = self.index

            section = section_cls(father=self, **kwargs)
            try:
                section.unpack(stream)
            except BnkStructException as e:
                e.chain.insert(0, identifier.decode('latin1'))
                raise

            if section_cls is BankHeaderSection:
                self.bank_header = section
            elif section_cls is DataIndexSection:
                self.index = section
            elif section_cls is DataSection:
                self.data = section
            else:
                self.others.append(section)

        if self.data is None:
            raise MissingDataChunk('There are no wems stored within this SoundBank.')

        if self.bank_header is None:
            self.logger.warning('this SoundBank has no BKHD section')

    def pack(self, stream=None):
        '''Write the BKHD, DIDX and DATA sections followed by the unknown ones
        in the order they were found.

        Without a stream the packed data is returned, otherwise the number of
        bytes written.'''
        if stream is None:
            return b''.join(_.pack() for _ in self.sections)

        written = 0
        for section in self.sections:
            self.logger.debug('packing section %r' % section.identifier)
            written += section.pack(stream)

        return written

    def save(self, path):
        with open(path, 'wb') as f:
            return self.pack(f)

    def _get_wem(self, index):
        if not 0 <= index < self.wem_count:
            raise IndexOutOfRange(index, self.wem_count)

        return self.wems[index]

    def _prepare_replacement(self, replacement, lengths):
        index = replacement.wem_index
        wem = self._get_wem(index)

        source = replacement.wem
        if not isinstance(source, Stream):
            source = Stream(source)
            self._sources.append(source)

        length = source.size if replacement.length is None else replacement.length

        # a previous replacement in the same batch counts as the original
        old_length = lengths.get(index, wem.length)
        if length > old_length:
            raise UnsupportedGrowth(index, length, old_length)

        lengths[index] = length

        return wem, View(source, 0, length)

    def replace_wems(self, *replacements):
        '''Replace the wems indicated by each ReplacementWem.

        All the replacements are checked before touching anything: if one of
        them is not valid the bank is left as it is.'''
        lengths = {}
        prepared = [self._prepare_replacement(_, lengths) for _ in replacements]

        for wem, payload in prepared:
            self.logger.debug('replacing wem %d (%d bytes) with %d bytes' % (wem.wem_id, wem.length, len(payload)))
            wem.replace(payload)

    def replace_wem(self, index, wem, length=None):
        '''Replace the wem at the given index (zero is the first wem) with
        length bytes read from wem.'''
        self.replace_wems(ReplacementWem(wem, index, length))
