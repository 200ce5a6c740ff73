from typing import Callable


class LimitedReader:
    """Reads at most `limit` bytes from the wrapped reader."""

    def __init__(self, reader, limit: int):
        self._reader = reader
        self._remaining = max(limit, 0)

    def __len__(self):
        return self._remaining

    def read(self, n: int = -1) -> bytes:
        if self._remaining <= 0:
            return b""
        if n is None or n < 0 or n > self._remaining:
            n = self._remaining
        data = self._reader.read(n)
        self._remaining -= len(data)
        return data


class CallbackReader:
    """Calls `callback(len(chunk))` for every chunk read."""

    def __init__(self, reader, callback: Callable[[int], None]):
        self._reader = reader
        self._callback = callback

    def __len__(self):
        return len(self._reader)

    def read(self, n: int = -1) -> bytes:
        data = self._reader.read(n)
        if data:
            self._callback(len(data))
        return data
