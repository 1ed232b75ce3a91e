import io
import random

import pytest

from bitio import BitFile, BitFileError, EndOfBitFile


class BrokenStream(io.RawIOBase):
	def writable(self):
		return True

	def readable(self):
		return True

	def write(self, b):
		raise OSError("disk full")

	def readinto(self, b):
		raise OSError("device gone")


class FlushCountingStream(io.BytesIO):
	def __init__(self):
		super().__init__()
		self.flushes = 0

	def flush(self):
		self.flushes += 1
		super().flush()


def _writer():
	sink = io.BytesIO()
	return sink, BitFile(sink, False)


def _reader(data):
	return BitFile(io.BytesIO(data), True)


def test_output_bit_msb_first():
	sink, bf = _writer()
	for bit in (1, 0, 1, 1, 0, 0, 0, 1):
		bf.output_bit(bit)
	assert sink.getvalue() == bytes([0b10110001])
	assert bf.mask == 0x80 and bf.rack == 0


def test_flush_pads_partial_byte_with_zeros():
	sink = FlushCountingStream()
	bf = BitFile(sink, False)
	bf.output_bits(0b101, 3)
	assert sink.getvalue() == b""
	assert sink.flushes == 0
	bf.flush_bits()
	assert sink.getvalue() == bytes([0b10100000])
	assert sink.flushes == 1
	assert bf.pacifier_counter == 1


def test_header_bytes_count_toward_pacifier():
	sink, bf = _writer()
	for i in range(5):
		bf.output_byte(i)
	bf.output_bits(0b1, 3)
	bf.flush_bits()
	assert bf.pacifier_counter == 6

	reader = _reader(sink.getvalue())
	for i in range(5):
		assert reader.input_byte() == i
	reader.input_bit()
	assert reader.pacifier_counter == 6


def test_close_after_write_failure_still_closes():
	stream = BrokenStream()
	with pytest.raises(BitFileError):
		with BitFile(stream, False) as bf:
			bf.output_byte(0x41)
	assert stream.closed


def test_flush_without_pending_bits_is_noop():
	sink, bf = _writer()
	bf.flush_bits()
	bf.output_bits(0xAB, 8)
	bf.flush_bits()
	assert sink.getvalue() == b"\xab"


def test_output_bits_matches_output_bit():
	pairs = [(0x3, 2), (0x1FF, 9), (0xDEADBEEF, 32), (0, 5), (1, 1), (0x55, 7)]
	sink_a, a = _writer()
	sink_b, b = _writer()
	for value, width in pairs:
		a.output_bits(value, width)
		for shift in range(width - 1, -1, -1):
			b.output_bit((value >> shift) & 1)
	a.flush_bits()
	b.flush_bits()
	assert sink_a.getvalue() == sink_b.getvalue()


def test_bits_roundtrip_random_widths():
	rng = random.Random(1234)
	pairs = []
	for _ in range(500):
		width = rng.randint(1, 32)
		pairs.append((rng.getrandbits(width), width))

	sink, bf = _writer()
	for value, width in pairs:
		bf.output_bits(value, width)
	bf.flush_bits()

	reader = _reader(sink.getvalue())
	for value, width in pairs:
		assert reader.input_bits(width) == value


def test_input_bit_reads_msb_first():
	reader = _reader(bytes([0b10010000]))
	assert [reader.input_bit() for _ in range(8)] == [1, 0, 0, 1, 0, 0, 0, 0]


def test_reading_past_end_raises_end_of_bit_file():
	reader = _reader(b"\xff")
	assert reader.input_bits(8) == 0xFF
	with pytest.raises(EndOfBitFile):
		reader.input_bit()
	with pytest.raises(EOFError):
		_reader(b"").input_bits(3)


def test_exhaustion_is_not_an_io_failure():
	with pytest.raises(EndOfBitFile) as excinfo:
		_reader(b"").input_byte()
	assert not isinstance(excinfo.value, BitFileError)


def test_write_failure_raises_bit_file_error():
	bf = BitFile(BrokenStream(), False)
	with pytest.raises(BitFileError):
		bf.output_bits(0xFF, 8)


def test_read_failure_raises_bit_file_error():
	bf = BitFile(BrokenStream(), True)
	with pytest.raises(BitFileError):
		bf.input_bit()


@pytest.mark.parametrize("width", [0, 33, -1])
def test_bad_widths_rejected(width):
	_, bf = _writer()
	with pytest.raises(ValueError):
		bf.output_bits(1, width)
	with pytest.raises(ValueError):
		_reader(b"\x00" * 8).input_bits(width)


def test_direction_is_enforced():
	_, writer = _writer()
	with pytest.raises(ValueError):
		writer.input_bit()
	with pytest.raises(ValueError):
		_reader(b"\x00").output_bit(1)


def test_bytes_interleave_with_bits():
	sink, bf = _writer()
	bf.output_byte(0x12)
	bf.output_bits(0x3, 2)
	with pytest.raises(ValueError):
		bf.output_byte(0x34)
	bf.flush_bits()
	bf.output_byte(0x34)
	assert sink.getvalue() == bytes([0x12, 0xC0, 0x34])

	reader = _reader(sink.getvalue())
	assert reader.input_byte() == 0x12
	assert reader.input_bits(8) == 0xC0
	assert reader.input_byte() == 0x34


def test_pacifier_ticks_every_2048_bytes_without_touching_output():
	ticks = []
	sink = io.BytesIO()
	bf = BitFile(sink, False, lambda: ticks.append(1))
	for i in range(4096):
		bf.output_bits(i & 0xFF, 8)
	assert len(ticks) == 2
	assert bf.pacifier_counter == 4096

	quiet_sink, quiet = _writer()
	for i in range(4096):
		quiet.output_bits(i & 0xFF, 8)
	assert sink.getvalue() == quiet_sink.getvalue()

	reader = BitFile(io.BytesIO(sink.getvalue()), True, lambda: ticks.append(1))
	for _ in range(2048):
		reader.input_bits(8)
	assert len(ticks) == 3


def test_close_flushes_and_closes(tmp_path):
	path = tmp_path / "bits.bin"
	with BitFile.open_output_bit_file(str(path)) as bf:
		bf.output_bits(0b11, 2)
	assert bf.file_stream.closed
	assert path.read_bytes() == b"\xc0"

	with BitFile.open_input_bit_file(str(path)) as reader:
		assert reader.input_bits(2) == 0b11
	assert reader.file_stream.closed
