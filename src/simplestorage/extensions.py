"""
Fluent Helpers
==============

Call-site sugar over ``Storage.write`` so code can read ``save(value, path)``
or ``value.save(path)``.

Examples:
    save(numbers, "numbers.bin", "deflate")

    class Person(StorableMixin):
        ...

    me.save("people.bin", CompressionAlgorithm.GZIP)
    me = Person.load("people.bin", CompressionAlgorithm.GZIP)
"""

from typing import Any, Optional

from .storage import PathLike, Storage, get_storage


def save(
    value: Any, path: PathLike, compression=None, *, storage: Optional[Storage] = None
) -> None:
    """Write ``value`` to ``path``; same as ``storage.write(value, path, compression)``."""
    (storage or get_storage()).write(value, path, compression)


class StorableMixin:
    """Mixin adding ``save`` and ``load`` to a class whose instances are stored."""

    def save(
        self, path: PathLike, compression=None, *, storage: Optional[Storage] = None
    ) -> None:
        """Write this object to ``path``; same as ``save(self, path, compression)``."""
        save(self, path, compression, storage=storage)

    @classmethod
    def load(
        cls, path: PathLike, compression=None, *, storage: Optional[Storage] = None
    ):
        """Read an instance of this class from ``path``.

        Raises:
            TypeMismatchError: If the file holds a value of another type
        """
        return (storage or get_storage()).read(path, compression, expected_type=cls)
