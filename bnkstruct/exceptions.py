class BnkStructException(Exception):
    '''Base class to extend in order to throw exception in bnkstruct.

    It takes an optional argument that represents the chain of the fields
    that were being unpacked when the exception was raised: it's filled
    while the exception bubbles up through the chunks.
    '''

    def __init__(self, message='', chain=None):
        self.message = message
        self.chain = chain if chain is not None else []
        super().__init__(message)

    def __str__(self):
        if not self.chain:
            return self.message

        return '%s (at %s)' % (self.message, '.'.join(self.chain))


class UnpackException(BnkStructException):
    pass


class TruncatedHeader(UnpackException):
    '''Less than 8 bytes remain where a section header is expected.'''
    pass


class TruncatedChunk(UnpackException):
    '''The data available is less than what a section declares.'''
    pass


class MagicException(UnpackException):
    pass


class OverlappingWems(UnpackException):
    '''A wem ends after the start of the following one: the DIDX entries
    overlap or are not sorted by offset.'''
    pass


class DuplicateWemId(UnpackException):

    def __init__(self, wem_id, chain=None):
        self.wem_id = wem_id
        super().__init__(f'{wem_id} is an illegal repeated wem ID in the DIDX', chain=chain)


class MalformedIndexLength(UnpackException):
    pass


class DataBeforeIndex(UnpackException):
    pass


class MissingDataChunk(UnpackException):
    pass


class ReplaceException(BnkStructException):
    pass


class UnsupportedGrowth(ReplaceException):

    def __init__(self, index, length, old_length):
        self.index = index
        self.length = length
        self.old_length = old_length
        super().__init__(
            f'Target wem at index {index} ({length} bytes) is larger than the '
            f'original wem ({old_length} bytes): using target wems that are larger '
            'than the original wem is not supported')


class IndexOutOfRange(ReplaceException):

    def __init__(self, index, count):
        self.index = index
        self.count = count
        super().__init__(f'there is no wem at index {index} (the bank has {count} wems)')


class PackException(BnkStructException):
    pass


class SpanMismatch(PackException):
    '''The wems plus their padding don't cover exactly the DATA section.'''
    pass
