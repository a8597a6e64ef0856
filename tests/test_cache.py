"""
Tests for the derived-state cache.
"""

from src.dashboard.cache import DerivedStateCache


class Counter:
    """Compute function that records how often it ran."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> int:
        self.calls += 1
        return self.calls


class TestDerivedStateCache:
    """Tests for DerivedStateCache."""

    def test_hit_on_same_inputs(self) -> None:
        cache = DerivedStateCache()
        compute = Counter()

        first = cache.get_or_compute("bar", "v1", 1, (), compute)
        second = cache.get_or_compute("bar", "v1", 1, (), compute)

        assert first == second == 1
        assert compute.calls == 1
        assert (cache.hits, cache.misses) == (1, 1)

    def test_params_are_part_of_key(self) -> None:
        cache = DerivedStateCache()
        compute = Counter()

        cache.get_or_compute("sankey", "v1", 1, ("Low",), compute)
        cache.get_or_compute("sankey", "v1", 1, ("High",), compute)
        cache.get_or_compute("sankey", "v1", 1, ("Low",), compute)

        assert compute.calls == 2
        assert len(cache) == 2

    def test_size_change_recomputes(self) -> None:
        cache = DerivedStateCache()
        compute = Counter()

        cache.get_or_compute("hexbin", "v1", 1, (0,), compute)
        value = cache.get_or_compute("hexbin", "v1", 2, (0,), compute)

        assert value == 2

    def test_version_change_drops_old_entries(self) -> None:
        cache = DerivedStateCache()
        compute = Counter()

        cache.get_or_compute("sankey", "v1", 1, ("Low",), compute)
        cache.get_or_compute("sankey", "v1", 1, ("High",), compute)
        cache.get_or_compute("sankey", "v2", 1, ("Low",), compute)

        assert len(cache) == 1

    def test_namespaces_independent(self) -> None:
        cache = DerivedStateCache()
        compute = Counter()

        cache.get_or_compute("bar", "v1", 1, (), compute)
        cache.get_or_compute("sankey", "v1", 2, (), compute)
        cache.get_or_compute("bar", "v1", 1, (), compute)

        assert compute.calls == 2

    def test_invalidate_namespace(self) -> None:
        cache = DerivedStateCache()
        compute = Counter()

        cache.get_or_compute("bar", "v1", 1, (), compute)
        cache.get_or_compute("sankey", "v1", 1, (), compute)
        cache.invalidate("bar")

        assert len(cache) == 1
        cache.get_or_compute("bar", "v1", 1, (), compute)
        assert compute.calls == 3

    def test_invalidate_all(self) -> None:
        cache = DerivedStateCache()
        cache.get_or_compute("bar", "v1", 1, (), Counter())
        cache.invalidate()
        assert len(cache) == 0
