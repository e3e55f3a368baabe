"""
Compiled pattern/replacement pairs and ordered chains of them.

All matching is done on bytes, file contents are never decoded. Replacement
bytes are inserted as they are, except for group references: ``$1`` or
``${1}`` for numbered groups, ``$name`` or ``${name}`` for named groups, and
``$$`` for a single dollar sign. A reference to a group the pattern does not
have, or one that did not take part in the match, inserts nothing. A ``$``
that does not start a reference is kept as is.
"""
import os
import re

__all__ = ['Transform', 'TransformChain']

# $$, ${name}, or $name where name is letters, digits, and underscores
REFERENCE = re.compile(rb'\$(?:(\$)|\{(\w+)\}|(\w+))')


class Transform(object):

    """A compiled regular expression and the bytes that replace its matches.

    Raises re.error on construction if the pattern is invalid.
    """

    def __init__(self, pattern, replacement):
        """Compile pattern and split replacement into literals and groups.

        :pattern:     str or bytes regular expression.
        :replacement: str or bytes, may hold group references.
        """
        if isinstance(pattern, str):
            pattern = os.fsencode(pattern)
        if isinstance(replacement, str):
            replacement = os.fsencode(replacement)
        self.pattern     = re.compile(pattern)
        self.replacement = replacement
        self.template    = self._parse(replacement)

        if all(isinstance(piece, bytes) for piece in self.template):
            # Escaped so re.sub inserts the bytes without reading escapes
            self._repl = b''.join(self.template).replace(b'\\', b'\\\\')
        else:
            self._repl = self._expand

    def _parse(self, replacement):
        """Return replacement as a list of bytes and group keys."""
        pieces = []
        last = 0
        for ref in REFERENCE.finditer(replacement):
            pieces.append(replacement[last:ref.start()])
            dollar, braced, bare = ref.groups()
            if dollar:
                pieces.append(b'$')
            else:
                key = self._group_key(braced or bare)
                if key is not None:
                    pieces.append(key)
            last = ref.end()
        pieces.append(replacement[last:])
        return [piece for piece in pieces if piece != b'']

    def _group_key(self, name):
        """Return the group number or name for name, None if missing."""
        if name.isdigit():
            number = int(name)
            return number if number <= self.pattern.groups else None
        name = name.decode('ascii')
        return name if name in self.pattern.groupindex else None

    def _expand(self, match):
        return b''.join(
            piece if isinstance(piece, bytes) else (match.group(piece) or b'')
            for piece in self.template
        )

    def match(self, src):
        """Return True if the pattern occurs anywhere in src."""
        return self.pattern.search(src) is not None

    def replace_all(self, src):
        """Return a copy of src with every match replaced."""
        return self.pattern.sub(self._repl, src)

    def __str__(self):
        return "['{}', '{}']".format(
            os.fsdecode(self.pattern.pattern),
            os.fsdecode(self.replacement))

    def __repr__(self):
        return 'Transform({!r}, {!r})'.format(self.pattern.pattern,
                                              self.replacement)


class TransformChain(object):

    """An ordered list of Transforms applied one after another.

    Each Transform sees the output of the one before it, so the order the
    pairs were given in changes the result.
    """

    def __init__(self, transforms=None):
        self.transforms = tuple(transforms) if transforms else ()

    @classmethod
    def from_pairs(cls, pairs):
        """Build a chain from (pattern, replacement) pairs or Transforms."""
        return cls(pair if isinstance(pair, Transform) else Transform(*pair)
                   for pair in pairs)

    def match(self, src):
        """Return True if any Transform matches the unmodified src."""
        return any(transform.match(src) for transform in self.transforms)

    def replace_all(self, src):
        """Apply every Transform in order, feeding each the last result."""
        for transform in self.transforms:
            src = transform.replace_all(src)
        return src

    def __len__(self):
        return len(self.transforms)

    def __iter__(self):
        return iter(self.transforms)

    def __str__(self):
        return ' '.join(str(transform) for transform in self.transforms)
