import copy
import logging


# attributes that every field sets on itself: a sub-field with one of these
# names would hide them
RESERVED_NAMES = (
    'name',
    'father',
    'default',
    'offset',
    'compliant',
    'is_magic',
    'logger',
    'stream',
)


class FieldDescriptor(object):
    """Wrapper around field access of a Chunk: each instance gets its own copy
    of the field declared in the class body."""

    def __init__(self, field_instance: "Field", field_name: str):
        self.logger = logging.getLogger(f"{self.__module__}.{self.__class__.__name__}")
        self.field = field_instance
        self.field.name = field_name

    def __get__(self, instance, type=None):
        if instance is None:
            return self.field

        data = instance.__dict__

        if self.field.name not in data:
            self.logger.debug("create new field for field named '%s'", self.field.name)
            data[self.field.name] = self.field.create(father=instance)

        return data[self.field.name]

    def __set__(self, instance, value):
        data = instance.__dict__

        if isinstance(value, self.field.__class__):
            value.father = instance
            value.name = self.field.name
            data[self.field.name] = value
        else:
            self.__get__(instance).value = value


class FieldBase(object):

    def contribute_to_chunk(self, cls, name):
        if name in RESERVED_NAMES:
            raise AttributeError(f'field {name} of class {cls.__name__} would hide the attribute of the same name')

        # only another field can be redeclared
        shadowed = getattr(cls, name, None)
        if name in cls.__dict__ or (shadowed is not None and not isinstance(shadowed, FieldBase)):
            raise AttributeError(f'field {name} is already present in class {cls.__name__}')

        setattr(cls, name, FieldDescriptor(self, name))

    def create(self, father):
        # the template never has a father so the deepcopy doesn't drag the hierarchy along
        instance = copy.deepcopy(self)
        instance.father = father
        return instance


class Meta(object):
    """Class containing metadata about the format: the names of the fields in
    the order they appear in the data."""

    def __init__(self, fields=None):
        self.fields = list(fields) if fields else []

    def __contains__(self, name):
        return name in self.fields


class MetaChunk(type):

    def __new__(cls, names, bases, attrs):
        '''Collect the fields in declaration order, in the same spirit of what
        Django does with its models.

        A field inherited from a parent chunk can be declared again, e.g. to
        change its default, and it keeps the position it had in the parent.'''
        module = attrs.pop('__module__')
        classcell = attrs.pop('__classcell__', None)

        new_attrs = {
            '__module__': module,
        }
        if classcell is not None:
            new_attrs['__classcell__'] = classcell
        new_cls = super(MetaChunk, cls).__new__(cls, names, bases, new_attrs)

        cls.logger = logging.getLogger(__name__)

        new_cls._meta = Meta()

        parents = [_ for _ in bases if isinstance(_, MetaChunk)]
        for parent in parents:
            for obj_name in parent._meta.fields:
                if obj_name in new_cls._meta:
                    continue
                setattr(new_cls, obj_name, parent.__dict__[obj_name])
                new_cls._meta.fields.append(obj_name)

        for obj_name, obj in attrs.items():
            new_cls.add_to_class(obj_name, obj)

        return new_cls

    def add_to_class(cls, name, value):
        if not hasattr(value, 'contribute_to_chunk') or isinstance(value, type):
            setattr(cls, name, value)
            return

        if name in cls._meta:
            cls.logger.debug('field \'%s\' of %s overrides the inherited one' % (name, cls.__name__))
            delattr(cls, name)
            value.contribute_to_chunk(cls, name)
            return

        cls.logger.debug('contribute_to_chunk() found for field \'%s\'' % name)
        value.contribute_to_chunk(cls, name)
        cls._meta.fields.append(name)
