import random
import unittest

from miilevels.constraints import ConstrainedSet, ConstrainedValue
from miilevels.errors import Conflict, EmptySet


class TestConstrainedValue(unittest.TestCase):
    def test_narrow_min_above_max_conflicts_and_keeps_state(self):
        v = ConstrainedValue.between(0, 10)
        with self.assertRaises(Conflict):
            v.narrow_min(11)
        self.assertEqual(repr(v), "Range(0, 10)")

    def test_narrow_min_never_lowers(self):
        v = ConstrainedValue.between(0, 10)
        v.narrow_min(4)
        v.narrow_min(2)
        v.narrow_min(4)
        self.assertEqual((v.minimum, v.maximum), (4, 10))

    def test_narrow_max_never_raises(self):
        v = ConstrainedValue.between(0, 10)
        v.narrow_max(7)
        v.narrow_max(9)
        self.assertEqual((v.minimum, v.maximum), (0, 7))
        with self.assertRaises(Conflict):
            v.narrow_max(-1)
        self.assertEqual((v.minimum, v.maximum), (0, 7))

    def test_narrowing_an_exact_value(self):
        v = ConstrainedValue.exactly(5)
        v.narrow_min(3)
        v.narrow_max(8)
        v.constrain(5, 5)
        self.assertEqual(v.value, 5)
        with self.assertRaises(Conflict):
            v.narrow_min(6)
        with self.assertRaises(Conflict):
            v.narrow_max(4)
        self.assertEqual(repr(v), "Exact(5)")

    def test_constrain_is_atomic(self):
        v = ConstrainedValue.between(0, 10)
        v.constrain(5, 20)
        self.assertEqual((v.minimum, v.maximum), (5, 10))
        with self.assertRaises(Conflict):
            v.constrain(11, 20)
        self.assertEqual((v.minimum, v.maximum), (5, 10))

    def test_set_exact_outside_range_conflicts_and_keeps_state(self):
        v = ConstrainedValue.between(1.0, 2.0)
        with self.assertRaises(Conflict):
            v.set_exact(2.5)
        self.assertFalse(v.is_exact)
        self.assertEqual((v.minimum, v.maximum), (1.0, 2.0))

    def test_set_exact_collapses_and_refuses_a_different_value(self):
        v = ConstrainedValue.between(0, 10)
        v.set_exact(3)
        v.set_exact(3)
        self.assertTrue(v.is_decided)
        self.assertEqual(v.value, 3)
        with self.assertRaises(Conflict):
            v.set_exact(4)
        self.assertEqual(v.value, 3)

    def test_exact_sample_is_verbatim_and_consumes_nothing(self):
        v = ConstrainedValue.exactly(0.5)
        for seed in range(50):
            rng = random.Random(seed)
            before = rng.getstate()
            self.assertEqual(v.sample(rng), 0.5)
            self.assertEqual(rng.getstate(), before)

    def test_range_sample_stays_in_bounds(self):
        rng = random.Random(1)
        ints = ConstrainedValue.between(3, 5)
        floats = ConstrainedValue.between(0.25, 0.75)
        self.assertTrue(ints.integral)
        self.assertFalse(floats.integral)
        for _ in range(200):
            n = ints.sample(rng)
            self.assertIsInstance(n, int)
            self.assertTrue(3 <= n <= 5)
            self.assertTrue(0.25 <= floats.sample(rng) <= 0.75)

    def test_empty_range_is_rejected(self):
        with self.assertRaises(ValueError):
            ConstrainedValue.between(2, 1)


class TestConstrainedSet(unittest.TestCase):
    def test_remove_last_member_fails(self):
        s = ConstrainedSet([1, 2])
        s.remove(1)
        s.remove(1)
        with self.assertRaises(EmptySet):
            s.remove(2)
        self.assertEqual(s.members, (2,))
        self.assertTrue(s.is_decided)
        self.assertEqual(s.value, 2)

    def test_subtract_failure_leaves_set_untouched(self):
        s = ConstrainedSet([1, 2, 3])
        with self.assertRaises(EmptySet):
            s.subtract([1, 2, 3])
        self.assertEqual(s.members, (1, 2, 3))
        s.subtract([3, 9])
        self.assertEqual(s.members, (1, 2))

    def test_intersect_keeps_own_order(self):
        s = ConstrainedSet([5, 4, 3, 2])
        s.intersect([2, 4, 7])
        self.assertEqual(s.members, (4, 2))
        with self.assertRaises(EmptySet):
            s.intersect([7])
        self.assertEqual(s.members, (4, 2))

    def test_set_exact(self):
        s = ConstrainedSet([0, 1, 2])
        with self.assertRaises(Conflict):
            s.set_exact(9)
        s.set_exact(1)
        self.assertEqual(s.members, (1,))

    def test_sample(self):
        rng = random.Random(3)
        s = ConstrainedSet(["a", "b", "c"])
        drawn = {s.sample(rng) for _ in range(100)}
        self.assertEqual(drawn, {"a", "b", "c"})
        with self.assertRaises(EmptySet):
            ConstrainedSet([]).sample(rng)

    def test_duplicates_collapse(self):
        self.assertEqual(ConstrainedSet([1, 1, 2]).members, (1, 2))


if __name__ == "__main__":
    unittest.main()
