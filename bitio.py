#Bradford Arrington 2025
from typing import BinaryIO, Callable, Optional

PACIFIER_COUNT = 2047
MAX_BIT_WIDTH = 32


class BitFileError(IOError):
    """The underlying byte stream failed to read, write or flush."""


class EndOfBitFile(EOFError):
    """The source ran out of bytes while more bits were expected."""


class BitFile:
    """Bit-level reader/writer over a byte stream, MSB first in each byte.

    ``rack`` holds the byte being assembled (output) or consumed (input) and
    ``mask`` selects the current bit inside it. Every full byte that passes
    through the channel bumps ``pacifier_counter``; once every 2048 bytes the
    optional ``pacifier`` callable is invoked.
    """

    def __init__(self, file_stream: BinaryIO, input_mode: bool,
                 pacifier: Optional[Callable[[], None]] = None):
        self.is_input = input_mode
        self.file_stream = file_stream
        self.rack: int = 0
        self.mask: int = 0x80
        self.pacifier_counter: int = 0
        self.pacifier = pacifier

    @staticmethod
    def open_output_bit_file(name: str, pacifier: Optional[Callable[[], None]] = None) -> 'BitFile':
        return BitFile(open(name, "wb"), False, pacifier)

    @staticmethod
    def open_input_bit_file(name: str, pacifier: Optional[Callable[[], None]] = None) -> 'BitFile':
        return BitFile(open(name, "rb"), True, pacifier)

    def __enter__(self) -> 'BitFile':
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close_bit_file()

    def _tick(self):
        self.pacifier_counter += 1
        if (self.pacifier_counter & PACIFIER_COUNT) == 0 and self.pacifier is not None:
            self.pacifier()

    def _write_rack(self):
        try:
            self.file_stream.write(bytes([self.rack]))
        except OSError as e:
            raise BitFileError(f"Fatal error in OutputBit! {e}") from e
        self._tick()
        self.rack = 0
        self.mask = 0x80

    def _read_rack(self, where: str):
        try:
            read = self.file_stream.read(1)
        except OSError as e:
            raise BitFileError(f"Fatal error in {where}! {e}") from e
        if not read:
            raise EndOfBitFile(f"Fatal error in {where}! End of file reached.")
        self.rack = read[0]
        self._tick()

    def close_bit_file(self):
        try:
            if not self.is_input:
                self.flush_bits()
        finally:
            self.file_stream.close()

    def flush_bits(self):
        """Write out a partially filled rack, zero padded, and flush the sink."""
        if self.mask == 0x80:
            return
        try:
            self.file_stream.write(bytes([self.rack]))
            self.file_stream.flush()
        except OSError as e:
            raise BitFileError(f"Fatal error in FlushBits! {e}") from e
        self._tick()
        self.rack = 0
        self.mask = 0x80

    def output_bit(self, bit: int):
        if self.is_input:
            raise ValueError("output_bit called on an input bit file")
        if bit != 0:
            self.rack |= self.mask
        self.mask >>= 1
        if self.mask == 0:
            self._write_rack()

    def output_bits(self, code: int, count: int):
        if self.is_input:
            raise ValueError("output_bits called on an input bit file")
        if not 1 <= count <= MAX_BIT_WIDTH:
            raise ValueError(f"bit count must be in [1, {MAX_BIT_WIDTH}], got {count}")
        mask_code: int = 1 << (count - 1)
        while mask_code != 0:
            if (mask_code & code) != 0:
                self.rack |= self.mask
            self.mask >>= 1
            if self.mask == 0:
                self._write_rack()
            mask_code >>= 1

    def output_byte(self, value: int):
        """Write one whole byte straight to the sink; the rack must be empty."""
        if self.mask != 0x80:
            raise ValueError("output_byte called with pending bits in the rack")
        try:
            self.file_stream.write(bytes([value & 0xFF]))
        except OSError as e:
            raise BitFileError(f"Fatal error in OutputByte! {e}") from e
        self._tick()

    def input_bit(self) -> int:
        if not self.is_input:
            raise ValueError("input_bit called on an output bit file")
        if self.mask == 0x80:
            self._read_rack("InputBit")
        value = self.rack & self.mask
        self.mask >>= 1
        if self.mask == 0:
            self.mask = 0x80
        return 1 if value != 0 else 0

    def input_bits(self, bit_count: int) -> int:
        if not self.is_input:
            raise ValueError("input_bits called on an output bit file")
        if not 1 <= bit_count <= MAX_BIT_WIDTH:
            raise ValueError(f"bit count must be in [1, {MAX_BIT_WIDTH}], got {bit_count}")
        mask_code: int = 1 << (bit_count - 1)
        return_value: int = 0
        while mask_code != 0:
            if self.mask == 0x80:
                self._read_rack("InputBits")
            if (self.rack & self.mask) != 0:
                return_value |= mask_code
            mask_code >>= 1
            self.mask >>= 1
            if self.mask == 0:
                self.mask = 0x80
        return return_value

    def input_byte(self) -> int:
        """Read one whole byte straight from the source; the rack must be empty."""
        if self.mask != 0x80:
            raise ValueError("input_byte called in the middle of a rack")
        try:
            read = self.file_stream.read(1)
        except OSError as e:
            raise BitFileError(f"Fatal error in InputByte! {e}") from e
        if not read:
            raise EndOfBitFile("Fatal error in InputByte! End of file reached.")
        self._tick()
        return read[0]
