"""Runtime library bridge: the fixed host functions programs may call."""

from __future__ import annotations

from .types import CHAR_T, INT_T, VOID_T, Type, pointer_to

# name -> (parameter types, return type)
BUILTINS: dict[str, tuple[list[Type], Type]] = {
    "print_i": ([INT_T], VOID_T),
    "print_c": ([CHAR_T], VOID_T),
    "print_s": ([pointer_to(CHAR_T)], VOID_T),
    "read_i": ([], INT_T),
    "read_c": ([], CHAR_T),
    "mcmalloc": ([INT_T], pointer_to(VOID_T)),
}


class Host:
    """I/O side of the runtime library. The engine handles `mcmalloc` itself."""

    def print_i(self, value: int) -> None:
        raise NotImplementedError

    def print_c(self, code: int) -> None:
        raise NotImplementedError

    def print_s(self, data: bytes) -> None:
        raise NotImplementedError

    def read_i(self) -> int:
        raise NotImplementedError

    def read_c(self) -> int:
        raise NotImplementedError

    def write_err(self, text: str) -> None:
        raise NotImplementedError


class BufferedHost(Host):
    """Reads from an in-memory stdin and collects output in byte buffers."""

    def __init__(self, stdin: bytes = b""):
        self._data: bytes = stdin
        self._pos: int = 0
        self.stdout: bytearray = bytearray()
        self.stderr: bytearray = bytearray()

    def print_i(self, value: int) -> None:
        self.stdout.extend(str(value).encode("ascii"))

    def print_c(self, code: int) -> None:
        self.stdout.append(code & 0xFF)

    def print_s(self, data: bytes) -> None:
        self.stdout.extend(data)

    def read_i(self) -> int:
        """Skip whitespace, then an optional '-' and digits. 0 if none follow."""
        data = self._data
        while self._pos < len(data) and data[self._pos] in b" \t\r\n\f\v":
            self._pos += 1
        negative = False
        if self._pos < len(data) and data[self._pos] == ord("-"):
            negative = True
            self._pos += 1
        value = 0
        while self._pos < len(data) and ord("0") <= data[self._pos] <= ord("9"):
            value = value * 10 + (data[self._pos] - ord("0"))
            self._pos += 1
        return -value if negative else value

    def read_c(self) -> int:
        """Next byte of input, or 0 at end of input."""
        if self._pos >= len(self._data):
            return 0
        code = self._data[self._pos]
        self._pos += 1
        return code

    def write_err(self, text: str) -> None:
        self.stderr.extend(text.encode("utf-8"))
