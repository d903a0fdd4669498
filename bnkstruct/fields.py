"""
A Field is "fundamental" datatype from the format point of view, something directly
packable/unpackable.
"""
import logging
import struct
from enum import Enum
from typing import Dict

from .enum import Compliant
from .meta import FieldBase
from .properties import Dependency, PropertyDescriptor
from .streams import View, ZeroView
from .exceptions import BnkStructException, TruncatedChunk, MagicException


class Field(FieldBase):
    """Base class to subclass from"""

    def __init__(self, name=None, father=None, default=None, offset=None,
                 compliant=Compliant.INHERIT, is_magic=False):
        super().__init__()
        self.logger = logging.getLogger(__name__)
        self.name = name
        self.father = father
        self.default = default
        self.offset = offset
        self.compliant = compliant
        self.is_magic = is_magic

        self.init()

    def init(self):
        self.value = self.value_from_default()

    def value_from_default(self):
        return self.default

    def __str__(self):
        return str(self.value)

    def get_dependencies(self) -> Dict[str, Dependency]:
        """Return the dictionary containing as key the name of the attribute
        that is a Dependency."""
        return {_k: _v for _k, _v in self.__dict__.items() if isinstance(_v, Dependency)}

    def is_compliant(self, level):
        '''Walk up the hierarchy as long as the compliance is inherited'''
        instance = self
        while instance is not None:
            if instance.compliant & level:
                return True
            if not instance.compliant & Compliant.INHERIT:
                break

            instance = instance.father

        return False

    def _get_value(self):
        return self._value

    def _set_value(self, value):
        self._value = value

    value = property(
        fget=lambda self: self._get_value(),
        fset=lambda self, value: self._set_value(value))

    def _get_size(self):
        raise NotImplementedError(f"method {self.__class__.__name__}._get_size() not implemented")

    size = property(
        fget=lambda self: self._get_size(),
    )

    def _get_raw(self) -> bytes:
        raise NotImplementedError(f"method {self.__class__.__name__}._get_raw() not implemented")

    raw = property(
        fget=lambda self: self._get_raw(),
    )

    def _read(self, stream, size):
        data = stream.read(size)
        if len(data) != size:
            raise TruncatedChunk(f'field \'{self.name}\' needs {size} bytes but only {len(data)} are available')

        return data

    def _check_magic(self, value):
        if not self.is_magic or value == self.default:
            return

        self.logger.warning(f'the magic for field \'{self.name}\' doesn\'t correspond: {value!r} != {self.default!r}')
        if self.is_compliant(Compliant.MAGIC):
            raise MagicException(f'expected {self.default!r} but found {value!r}')

    def pack(self, stream):
        '''Write the field into stream and return the number of bytes written'''
        raw = self.raw
        stream.write(raw)

        return len(raw)

    def unpack(self, stream):
        raise NotImplementedError('you need to implement this in the subclass')


class StructField(Field):
    """
    Simplest of the fields: mimic the behaviour of the struct module packing/unpacking
    integers to/from bytes.

    The main advantage is the possibility to indicate via the "enum" argument some subclass
    of enum.Enum so to have directly a representation of the integer value of the field itself.
    """

    def __init__(self, format, default=0, enum=None, **kw):
        self.format = format
        self.enum = enum
        super().__init__(default=default, **kw)

    def __repr__(self):
        if not self.enum:
            return '<%s(%s)>' % (self.__class__.__name__, hex(self.value))

        return f'<{self.__class__.__name__}({self.value!r})>'

    def __str__(self):
        width = self.size * 2
        formatter = '0x%%0%dx' % width
        return formatter % (self.value if not self.enum else self.value.value,)

    def value_from_default(self):
        if not self.enum or isinstance(self.default, Enum):
            return super().value_from_default()

        return self.enum(self.default)

    def get_format(self):
        # all the integers of a SoundBank are little-endian
        return '<%s' % self.format

    def _get_size(self):
        return struct.calcsize(self.get_format())

    def _get_raw(self) -> bytes:
        return struct.pack(self.get_format(), self.value if not self.enum else self.value.value)

    def unpack(self, stream):
        raw = self._read(stream, self.size)
        value = struct.unpack(self.get_format(), raw)[0]

        if self.enum:
            value = self.enum(value)

        self._check_magic(value)

        self.value = value


class StringField(Field):
    """Represent a contiguous chunk of bytes, read as soon as the field is unpacked."""

    length = PropertyDescriptor('length', int)

    def __init__(self, n=None, **kw):
        if n is None and 'default' not in kw:
            raise ValueError("StringField must have 'n' or 'default' indicated!")

        self.length = n if n is not None else len(kw['default'])

        super().__init__(**kw)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, repr(self.value))

    def __len__(self):
        return len(self.value)

    def value_from_default(self):
        if self.default:
            return self.default

        # a dependent length can be resolved only inside a chunk
        if 'length' in self.get_dependencies():
            return b''

        return b'\x00' * self.length

    def _set_value(self, value) -> None:
        """The StringField has the size as a parameter and we must follow that indication
        unless it's a Dependency."""
        if 'length' not in self.get_dependencies() and len(value) != self.length:
            raise ValueError(f'you are trying to set a value with the wrong size (that is {self.length} bytes)')

        super()._set_value(value)

    def _get_size(self):
        return len(self.value)

    def _get_raw(self):
        return self.value

    def unpack(self, stream):
        value = self._read(stream, self.length)

        self._check_magic(value)

        self.value = value


class ViewField(Field):
    """Represent a contiguous chunk of bytes that is not read while unpacking:
    the value is a View over the stream, copied only when packing."""

    length = PropertyDescriptor('length', int)

    def __init__(self, n, **kw):
        self.length = n
        super().__init__(**kw)

    def __repr__(self):
        return '<%s(%r)>' % (self.__class__.__name__, self.value)

    def __len__(self):
        return len(self.value)

    def value_from_default(self):
        if 'length' in self.get_dependencies():
            return ZeroView(0)

        return ZeroView(self.length)

    def _set_value(self, value):
        if not isinstance(value, View):
            raise ValueError(f'{self.__class__.__name__} accepts only View instances, not {value.__class__.__name__}')

        super()._set_value(value)

    def _get_size(self):
        return len(self.value)

    def _get_raw(self):
        return self.value.read()

    def pack(self, stream):
        return self.value.copy_to(stream)

    def unpack(self, stream):
        length = self.length
        if length < 0:
            raise TruncatedChunk(f'field \'{self.name}\' has a negative length ({length})')

        offset = stream.tell()
        self.value = View(stream, offset, length)
        stream.seek(offset + length)


class ArrayField(Field):
    '''Un/Pack an array of Chunks.

    You indicate the number of elements via the parameter named "n", that can be
    a Dependency. The field behaves like a list in python.
    '''

    def __init__(self, field, n=0, **kw):
        self.field = field
        if not isinstance(n, (Dependency, int)):
            raise ValueError('n is \'%s\' must be of the right type' % n.__class__.__name__)

        self._n = n

        kw.setdefault('default', [])
        super().__init__(**kw)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.value!r})>'

    def __getitem__(self, item):
        return self.value[item]

    def __len__(self):
        return len(self.value)

    def __iter__(self):
        return iter(self.value)

    @property
    def n(self):
        if isinstance(self._n, Dependency):
            return self._n.resolve(self)

        return self._n

    def value_from_default(self):
        # each instance must have its own list
        return list(self.default)

    def instance_element(self):
        return self.field.create(father=self)  # pass the father so that we don't lose the hierarchy

    def append(self, element):
        element.father = self
        self.value.append(element)

    def clear(self):
        self.value.clear()

    def _get_size(self):
        return sum(_.size for _ in self.value)

    def _get_raw(self):
        return b''.join(_.raw for _ in self.value)

    def pack(self, stream):
        return sum(_.pack(stream) for _ in self.value)

    def unpack(self, stream):
        self.clear()
        n = self.n

        self.logger.debug('unpacking %d elements of type %s' % (n, self.field.__class__.__name__))
        for idx in range(n):
            element = self.instance_element()
            element.offset = stream.tell()
            try:
                element.unpack(stream)
            except BnkStructException as e:
                e.chain.insert(0, str(idx))
                raise
            self.value.append(element)
