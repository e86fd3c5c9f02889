class UnboundVariable(Exception):
    def __init__(self, names):
        if isinstance(names, str):
            names = [names]
        self.names = sorted(set(names))

    def __str__(self):
        return f"Undefined variable: {', '.join(self.names)}"


def _pairs(bindings):
    if isinstance(bindings, Assignment):
        return bindings.items()
    if isinstance(bindings, dict):
        return bindings.items()
    return bindings


class Assignment:
    """
    Ordered variable -> bool bindings

    An assignment can sit inside a parent assignment. Lookups fall through
    to the parent, so the tautology checker holds the caller's bindings
    fixed in the parent and only varies the free variables in the child.
    """

    def __init__(self, parent=None, bindings=None):
        if not isinstance(parent, Assignment):
            if parent is not None and bindings is None:
                bindings = parent
                parent = None
        self.parent = parent
        self._bindings = {}
        for name, value in _pairs(bindings or ()):
            self.init_identifier(name, value)

    def get_identifier_scope(self, name):
        if name in self._bindings:
            return self
        if self.parent is not None:
            return self.parent.get_identifier_scope(name)
        return None

    def get_identifier(self, name):
        if (i := self.get_identifier_scope(name)) is not None:
            return i._bindings[name]
        raise UnboundVariable(name)

    def is_bound(self, name):
        return self.get_identifier_scope(name) is not None

    def init_identifier(self, name, value):
        """
        Names are unique across the whole chain
        """
        if self.is_bound(name):
            raise ValueError(f"variable {name!r} is already bound")
        self._bindings[name] = bool(value)

    def inner_scope(self, bindings):
        return Assignment(self, bindings)

    def items(self):
        if self.parent is not None:
            yield from self.parent.items()
        yield from self._bindings.items()

    def __contains__(self, name):
        return self.is_bound(name)

    def __repr__(self):
        return f"Assignment({list(self.items())!r})"


class NullAssignment(Assignment):
    def __init__(self):
        super().__init__(None, None)

    def init_identifier(self, name, value):
        raise TypeError("cannot change object - object is immutable")
