import logging
from typing import Type


def get_root_from_chunk(instance):
    return get_instance_from_chunk(instance, condition=lambda x: x.father is None)


def get_instance_from_chunk(instance, condition):
    is_root = condition(instance)
    father = instance

    while not is_root:
        father = instance.father

        is_root = condition(father)
        instance = father

    return father


class Dependency:
    '''This makes the relation between fields possible.

    The relation is defined in the unpacking direction: a field whose size
    depends on the value of another field. In practice this class allows to
    write something like

        class Simple(Chunk):
            length = fields.StructField('I')
            data = fields.StringField(n=Dependency('.length'))

    and have the (internal) length of the string contained in the field named
    'data' strictly connected to the field named 'length'.

    The syntax for the expression is inspired from module resolution:

     - '.' as first char indicates we refer to a field at the same level
     - otherwise the resolution starts from the root chunk
    '''
    def __init__(self, expression):
        self.expression = expression
        self.logger = logging.getLogger(__name__)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.expression})>'

    def resolve_field(self, instance):
        self.logger.debug('trying to resolve \'%s\' using class \'%s\'' % (
            self.expression,
            self.__class__.__name__,
        ))

        # '.miao'.split(".") -> ['', 'miao']
        # 'miao'.split(".") -> ['miao']
        fields_path = self.expression.split('.')

        if fields_path[0] != '':
            field = get_root_from_chunk(instance)
            self.logger.debug(' resolve from root: \'%s\'' % field.__class__.__name__)
        else:  # we have a relative dependency
            field = instance.father
            fields_path = fields_path[1:]  # skip the first one that is empty

        if field is None:
            raise AttributeError(f"cannot resolve '{self.expression}' for a field without a father")

        for component_name in fields_path:
            field = getattr(field, component_name)

        return field

    def resolve(self, instance):
        '''With this method we resolve the attribute with respect to the instance
        passed as argument.'''
        value = self.resolve_field(instance).value

        self.logger.debug(' resolved with value %s' % value)

        return value


class RatioDependency(Dependency):
    '''The value is the integer division of the referenced field by a given ratio.'''

    def __init__(self, ratio, expression):
        super().__init__(expression)
        self._ratio = ratio

    def resolve(self, instance):
        value = super().resolve(instance)

        return value // self._ratio


class OffsetDependency(Dependency):
    '''The value is the referenced field minus a constant, useful when a length
    counts also some fixed fields that precede the dependent one.'''

    def __init__(self, delta, expression):
        super().__init__(expression)
        self._delta = delta

    def resolve(self, instance):
        value = super().resolve(instance)

        return value - self._delta


class PropertyDescriptor(object):
    """This the glue for dependency management: reading the attribute resolves
    the Dependency (if any) with respect to the field it belongs to."""

    def __init__(self, name: str, _type: Type):
        self.name = name
        self.type = _type

    def __get__(self, instance, owner):
        if instance is None:
            return self

        data = instance.__dict__
        if self.name not in data:
            raise AttributeError(f"no '{self.name}' here!")

        value = data[self.name]

        if isinstance(value, Dependency):
            return value.resolve(instance)

        return value

    def __set__(self, instance, value):
        if not isinstance(value, (self.type, Dependency)):
            raise ValueError(f"A property must be of type {self.type} or a Dependency")

        instance.__dict__[self.name] = value

