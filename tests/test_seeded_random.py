"""Tests for the deterministic random number generator."""

from roomforge.seeded_random import SeededRandom


class TestSeededRandom:
    """Test SeededRandom sequences."""

    def test_first_value_follows_the_recurrence(self):
        """next() should apply seed = (seed * 9301 + 49297) % 233280."""
        random = SeededRandom(0)
        assert random.next() == 49297 / 233280
        assert random.seed == 49297

        expected_seed = (49297 * 9301 + 49297) % 233280
        assert random.next() == expected_seed / 233280

    def test_same_seed_gives_same_sequence(self):
        first = SeededRandom(1234)
        second = SeededRandom(1234)
        assert [first.next() for _ in range(100)] == [second.next() for _ in range(100)]

    def test_different_seeds_diverge(self):
        first = SeededRandom(1)
        second = SeededRandom(2)
        assert [first.next() for _ in range(10)] != [second.next() for _ in range(10)]

    def test_values_stay_in_unit_interval(self):
        random = SeededRandom(42)
        for _ in range(1000):
            value = random.next()
            assert 0.0 <= value < 1.0

    def test_negative_seed_stays_in_unit_interval(self):
        """Python's modulo keeps negative seeds in range."""
        random = SeededRandom(-987654)
        for _ in range(100):
            value = random.next()
            assert 0.0 <= value < 1.0

    def test_next_int_is_inclusive(self):
        random = SeededRandom(7)
        values = {random.next_int(2, 5) for _ in range(500)}
        assert values == {2, 3, 4, 5}

    def test_next_int_with_equal_bounds(self):
        random = SeededRandom(7)
        assert all(random.next_int(3, 3) == 3 for _ in range(20))

    def test_choice_returns_an_element(self):
        random = SeededRandom(99)
        items = ["a", "b", "c"]
        for _ in range(50):
            assert random.choice(items) in items

    def test_shuffle_returns_permutation_without_mutating(self):
        random = SeededRandom(5)
        items = list(range(20))
        shuffled = random.shuffle(items)

        assert items == list(range(20))
        assert sorted(shuffled) == items

    def test_shuffle_is_deterministic(self):
        items = list(range(10))
        assert SeededRandom(11).shuffle(items) == SeededRandom(11).shuffle(items)

    def test_shuffle_accepts_tuples(self):
        shuffled = SeededRandom(3).shuffle(("n", "s", "e", "w"))
        assert isinstance(shuffled, list)
        assert sorted(shuffled) == ["e", "n", "s", "w"]
