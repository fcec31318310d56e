"""Tests for emuhost.stream.guard.OutputGuard."""

from __future__ import annotations

from emuhost.stream.guard import MAX_TOTAL_OUTPUT, OutputGuard


class TestOutputGuard:
    def test_default_limit(self) -> None:
        assert MAX_TOTAL_OUTPUT == 65536
        assert OutputGuard().limit == 65536

    def test_within_limit(self) -> None:
        guard = OutputGuard(limit=100)
        assert guard.observe(40) is True
        assert guard.observe(60) is True
        assert guard.total_bytes == 100
        assert guard.tripped is False

    def test_exceeding_trips(self) -> None:
        guard = OutputGuard(limit=100)
        guard.observe(100)
        assert guard.observe(1) is False
        assert guard.tripped is True
        assert guard.total_bytes == 101

    def test_stays_tripped(self) -> None:
        guard = OutputGuard(limit=10)
        guard.observe(11)
        assert guard.observe(0) is False
        assert guard.observe(1) is False

    def test_cumulative_over_many_small_chunks(self) -> None:
        guard = OutputGuard()
        results = [guard.observe(100) for _ in range(700)]
        # 655 * 100 = 65500 fits, the 656th chunk crosses the ceiling
        assert results.index(False) == 655
        assert all(results[:655])
        assert not any(results[655:])

    def test_reset(self) -> None:
        guard = OutputGuard(limit=10)
        guard.observe(50)
        guard.reset()
        assert guard.total_bytes == 0
        assert guard.tripped is False
        assert guard.observe(10) is True
