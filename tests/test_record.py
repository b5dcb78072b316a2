import copy
import math
import random
import struct
import unittest

from miilevels.codes import Behavior, LevelType, Map, coerce, is_known
from miilevels.errors import FormatError, TruncatedRecord
from miilevels.record import (
    FIELD_NAMES,
    LAYOUT,
    RECORD_SIZE,
    Level,
    NanBits,
    decode_record,
    encode_record,
    f32_bits,
    float_from_bits,
    level_from_dict,
    level_to_dict,
    round_f32,
)


def _random_record(rng: random.Random) -> bytes:
    ints = [rng.getrandbits(32) for _ in range(4)]
    floats = [round_f32(rng.uniform(-1e6, 1e6)) for _ in range(12)]
    return struct.pack(">4I12f", *ints, *floats)


class TestRecordCodec(unittest.TestCase):
    def test_layout_is_contiguous(self):
        self.assertEqual([off for _, _, off in LAYOUT], list(range(0, RECORD_SIZE, 4)))
        self.assertEqual(len(FIELD_NAMES), 16)

    def test_all_zero_record(self):
        level = decode_record(bytes(RECORD_SIZE))
        self.assertEqual(level, Level())
        for name in FIELD_NAMES:
            self.assertEqual(getattr(level, name), 0)
        self.assertEqual(encode_record(level), bytes(RECORD_SIZE))

    def test_fields_decode_big_endian_in_order(self):
        data = struct.pack(
            ">4I12f", 12, 3, 6, 2, 40.0, 10.0, 1.0, 20.5, 7.25, 0.5, 1.125, 0.0, -1.0, 2.0, 3.0, 4.0
        )
        level = decode_record(data)
        self.assertEqual((level.num_miis, level.behavior, level.level_type, level.map), (12, 3, 6, 2))
        self.assertEqual(level.zoom_out_max, 40.0)
        self.assertEqual(level.horiz_dist, 20.5)
        self.assertEqual(level.darkness, 0.5)
        self.assertEqual(level.head_size, 1.125)
        self.assertEqual(level.unk13, -1.0)
        self.assertEqual(level.unk16, 4.0)
        self.assertEqual(data[:4], b"\x00\x00\x00\x0c")

    def test_random_records_round_trip(self):
        rng = random.Random(1234)
        for _ in range(200):
            data = _random_record(rng)
            level = decode_record(data)
            self.assertEqual(encode_record(level), data)
            self.assertEqual(decode_record(encode_record(level)), level)

    def test_non_finite_floats_round_trip(self):
        for bits in (0x7F800000, 0xFF800000, 0x7FC00000, 0x80000000, 0x7F800001, 0x7FA00000, 0xFF800123, 0x7FC00123):
            data = bytes(16) + struct.pack(">I", bits) + bytes(44)
            self.assertEqual(encode_record(decode_record(data)), data)
        nan = decode_record(bytes(16) + struct.pack(">I", 0x7FC00000) + bytes(44))
        self.assertTrue(math.isnan(nan.zoom_out_max))

    def test_signalling_nan_keeps_its_bits(self):
        data = bytes(16) + struct.pack(">I", 0x7F800001) + bytes(40) + struct.pack(">I", 0xFFBFFFFF)
        level = decode_record(data)
        self.assertIsInstance(level.zoom_out_max, NanBits)
        self.assertEqual(level.zoom_out_max.bits, 0x7F800001)
        self.assertEqual(f32_bits(level.unk16), 0xFFBFFFFF)
        self.assertTrue(math.isnan(level.unk16))
        self.assertEqual(encode_record(copy.deepcopy(level)), data)

    def test_float_from_bits(self):
        self.assertEqual(float_from_bits(0x3F800000), 1.0)
        self.assertEqual(float_from_bits(0xFF800000), float("-inf"))
        self.assertNotIsInstance(float_from_bits(0x7F800000), NanBits)
        self.assertEqual(float_from_bits(0x7FC00123).bits, 0x7FC00123)

    def test_decode_at_offset(self):
        data = bytes(RECORD_SIZE) + struct.pack(">I", 7) + bytes(RECORD_SIZE - 4)
        self.assertEqual(decode_record(data, RECORD_SIZE).num_miis, 7)

    def test_short_input_is_truncated(self):
        with self.assertRaises(TruncatedRecord):
            decode_record(bytes(63))
        with self.assertRaises(TruncatedRecord):
            decode_record(bytes(100), 40)

    def test_out_of_range_values_do_not_encode(self):
        with self.assertRaises(FormatError):
            encode_record(Level(num_miis=-1))
        with self.assertRaises(FormatError):
            encode_record(Level(map=1 << 32))
        with self.assertRaises(FormatError):
            encode_record(Level(head_size=1e39))


class TestLevelDict(unittest.TestCase):
    def test_projection_keeps_field_order_and_types(self):
        obj = level_to_dict(Level(num_miis=3, zoom_out_max=40))
        self.assertEqual(list(obj), list(FIELD_NAMES))
        self.assertIsInstance(obj["num_miis"], int)
        self.assertIsInstance(obj["zoom_out_max"], float)
        self.assertIsInstance(obj["unk16"], float)

    def test_from_dict_accepts_whole_numbers_for_floats(self):
        obj = level_to_dict(Level())
        obj["zoom_out_max"] = 40
        level = level_from_dict(obj)
        self.assertIsInstance(level.zoom_out_max, float)
        self.assertEqual(level.zoom_out_max, 40.0)

    def test_from_dict_rejects_malformed_entries(self):
        base = level_to_dict(Level())
        cases = []
        missing = dict(base)
        del missing["map"]
        cases.append(missing)
        cases.append(dict(base, extra=1))
        cases.append(dict(base, behavior=True))
        cases.append(dict(base, behavior=1.5))
        cases.append(dict(base, num_miis=-3))
        cases.append(dict(base, darkness="dark"))
        cases.append(dict(base, darkness=1e40))
        cases.append(dict(base, darkness="0xZZ"))
        cases.append(dict(base, darkness="0x1FFFFFFFF"))
        cases.append(dict(base, darkness="7fc00000"))
        for obj in cases:
            with self.assertRaises(FormatError):
                level_from_dict(obj)
        with self.assertRaises(FormatError):
            level_from_dict([1, 2, 3])

    def test_error_names_location(self):
        obj = dict(level_to_dict(Level()), num_miis="many")
        with self.assertRaisesRegex(FormatError, r"levels\[4\]\.num_miis"):
            level_from_dict(obj, where="levels[4]")

    def test_non_finite_floats_use_bit_patterns(self):
        level = Level(zoom_out_max=float("inf"), unk12=NanBits(0x7F800001), unk13=float("-inf"))
        obj = level_to_dict(level)
        self.assertEqual(obj["zoom_out_max"], "0x7f800000")
        self.assertEqual(obj["unk12"], "0x7f800001")
        self.assertEqual(obj["unk13"], "0xff800000")
        self.assertEqual(obj["darkness"], 0.0)
        back = level_from_dict(obj)
        self.assertEqual(back.zoom_out_max, float("inf"))
        self.assertEqual(encode_record(back), encode_record(level))

    def test_bit_pattern_strings_accept_finite_values(self):
        obj = dict(level_to_dict(Level()), head_size="0x3F800000")
        self.assertEqual(level_from_dict(obj).head_size, 1.0)


class TestCodes(unittest.TestCase):
    def test_coerce_accepts_members_codes_and_names(self):
        self.assertIs(coerce(Map, Map.POOL, where="x"), Map.POOL)
        self.assertIs(coerce(Map, 3, where="x"), Map.POOL)
        self.assertIs(coerce(Behavior, " drift ", where="x"), Behavior.DRIFT)

    def test_coerce_rejects_unknown_values(self):
        for value in (True, 6, "MOON", 1.0, None):
            with self.assertRaises(FormatError):
                coerce(Map, value, where="rules.map")
        with self.assertRaises(FormatError) as ctx:
            coerce(LevelType, 12, where="levels[2].level_type")
        self.assertIn("levels[2].level_type", str(ctx.exception))

    def test_is_known(self):
        self.assertTrue(is_known(LevelType, 9))
        self.assertFalse(is_known(LevelType, 10))
        self.assertFalse(is_known(Behavior, 0xFFFFFFFF))


if __name__ == "__main__":
    unittest.main()
