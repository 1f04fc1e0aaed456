"""
evm_engine.vm.memory - byte-addressed, word-expanding frame memory.

Expansion is always billed before the access happens: handlers call
`Memory.expand(meter, schedule, offset, size)` first, which charges the delta
between the old and the new quadratic memory cost and only then grows the
buffer. A zero-size access never expands memory, whatever its offset.
"""

from __future__ import annotations

from evm_engine.errors import OutOfGas
from evm_engine.gas.meter import GasMeter
from evm_engine.gas.schedule import GasSchedule
from evm_engine.types.word import U64_MAX, ceil32, words_for


class Memory:
    __slots__ = ("_data",)

    def __init__(self) -> None:
        self._data = bytearray()

    def __len__(self) -> int:
        return len(self._data)

    @property
    def words(self) -> int:
        return len(self._data) // 32

    def expansion_cost(self, schedule: GasSchedule, offset: int, size: int) -> int:
        """Extra gas needed to make [offset, offset+size) addressable."""
        if size == 0:
            return 0
        end = offset + size
        if end > U64_MAX:
            raise OutOfGas("memory offset out of range", data={"end": end})
        new_words = words_for(end)
        if new_words <= self.words:
            return 0
        return schedule.memory_cost(new_words) - schedule.memory_cost(self.words)

    def expand(self, meter: GasMeter, schedule: GasSchedule, offset: int, size: int) -> None:
        cost = self.expansion_cost(schedule, offset, size)
        if cost:
            meter.debit(cost, reason="memory expansion")
        if size:
            end = ceil32(offset + size)
            if end > len(self._data):
                self._data.extend(b"\x00" * (end - len(self._data)))

    def read(self, offset: int, size: int) -> bytes:
        if size == 0:
            return b""
        return bytes(self._data[offset:offset + size])

    def read_word(self, offset: int) -> int:
        return int.from_bytes(self._data[offset:offset + 32], "big")

    def write(self, offset: int, data: bytes) -> None:
        if data:
            self._data[offset:offset + len(data)] = data

    def write_padded(self, offset: int, size: int, src: bytes, src_offset: int) -> None:
        """Copy `size` bytes of `src` starting at `src_offset`, zero-padding past its end."""
        if size == 0:
            return
        chunk = src[src_offset:src_offset + size] if src_offset < len(src) else b""
        self._data[offset:offset + size] = chunk + b"\x00" * (size - len(chunk))


__all__ = ["Memory"]
