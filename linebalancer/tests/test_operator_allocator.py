"""
Tests for the operation allocator and the packing policy seam.
"""
import pytest

from linebalancer.balancing.errors import InvalidParameter
from linebalancer.balancing.models import Operation, Style
from linebalancer.balancing.operator_allocator import (
    OperationAllocator,
    PackingPolicy,
    SequentialPackingPolicy,
    normalize_overrides,
)
from linebalancer.balancing.workload_balance import derive_operators


def assignment(entries):
    return {entry.step: entry.operator_number for entry in entries}


class TestAutomaticAllocation:
    """Sequential greedy packing in declaration order."""

    def test_jogger_at_cycle_two(self, jogger_style):
        entries = OperationAllocator().allocate(jogger_style, 2.0)

        assert assignment(entries) == {1: 1, 2: 1, 3: 1, 40: 2, 43: 3, 60: 4}
        first = entries[0]
        assert (first.start_offset, first.end_offset) == (0.0, pytest.approx(0.429))
        assert entries[2].start_offset == pytest.approx(0.879)
        assert entries[3].start_offset == 0.0

    def test_every_step_exactly_once(self, jogger_style, tshirt_style):
        for style in (jogger_style, tshirt_style):
            for cycle in (0.5, 1.0, 2.0, 3.3, 10.0):
                entries = OperationAllocator().allocate(style, cycle)
                steps = [entry.step for entry in entries]
                assert sorted(steps) == sorted(op.step for op in style.operations)
                assert len(steps) == len(set(steps))

    def test_operator_numbers_contiguous(self, tshirt_style):
        for cycle in (1.5, 2.0, 2.6):
            numbers = {entry.operator_number for entry in OperationAllocator().allocate(tshirt_style, cycle)}
            assert numbers == set(range(1, max(numbers) + 1))

    def test_entry_span_equals_standard_time(self, tshirt_style):
        for entry in OperationAllocator().allocate(tshirt_style, 2.0):
            assert entry.end_offset - entry.start_offset == pytest.approx(entry.standard_time)

    def test_workload_matches_entries(self, tshirt_style):
        entries = OperationAllocator().allocate(tshirt_style, 2.0)
        for op in derive_operators(entries, 2.0):
            own = [e.standard_time for e in entries if e.operator_number == op.operator_number]
            assert op.workload == pytest.approx(sum(own))

    def test_operation_longer_than_cycle_placed_alone(self, jogger_style):
        entries = OperationAllocator().allocate(jogger_style, 1.0)
        by_step = {entry.step: entry for entry in entries}

        assert assignment(entries) == {1: 1, 2: 1, 3: 1, 40: 2, 43: 3, 60: 4}
        assert by_step[40].start_offset == 0.0
        assert by_step[40].end_offset == pytest.approx(2.0)

    def test_exact_fill_does_not_open_operator(self):
        """Floating-point sums that land on the cycle time stay on the same operator."""
        style = Style(name="Thirds", operations=tuple(
            Operation(step, f"Op {step}", "Overlock", 0.1) for step in range(1, 11)
        ))
        entries = OperationAllocator().allocate(style, 1.0)
        assert {entry.operator_number for entry in entries} == {1}

    def test_empty_style(self):
        assert OperationAllocator().allocate(Style(name="Empty"), 2.0) == []

    @pytest.mark.parametrize("cycle", [0, -1.0, None])
    def test_non_positive_cycle_rejected(self, jogger_style, cycle):
        with pytest.raises(InvalidParameter):
            OperationAllocator().allocate(jogger_style, cycle)


class TestManualAllocation:
    """Manual pins merged with automatic packing."""

    def test_full_override_round_trip(self, jogger_style):
        overrides = {(0, 1): 2, (0, 2): 1, (0, 3): 1, (0, 40): 3, (0, 43): 4, (0, 60): 2}
        entries = OperationAllocator().allocate(jogger_style, 2.0, overrides, use_manual=True)

        assert {(0, e.step): e.operator_number for e in entries} == overrides
        assert all(e.is_manually_assigned for e in entries)

    def test_offsets_relaid_per_operator(self, jogger_style):
        overrides = {(0, 1): 2, (0, 2): 1, (0, 3): 1, (0, 40): 3, (0, 43): 4, (0, 60): 2}
        entries = OperationAllocator().allocate(jogger_style, 2.0, overrides, use_manual=True)
        by_step = {entry.step: entry for entry in entries}

        assert by_step[1].start_offset == 0.0
        assert by_step[60].start_offset == pytest.approx(0.429)
        assert by_step[60].end_offset == pytest.approx(2.429)
        assert by_step[2].start_offset == 0.0
        assert by_step[3].start_offset == pytest.approx(0.45)

    def test_partial_override_falls_back_to_automatic(self, jogger_style):
        """Steps without a pin are packed automatically, never defaulted to operator 1."""
        entries = OperationAllocator().allocate(jogger_style, 2.0, {(0, 3): 4}, use_manual=True)
        by_step = {entry.step: entry for entry in entries}

        assert assignment(entries) == {1: 1, 2: 1, 3: 4, 40: 2, 43: 3, 60: 4}
        assert by_step[3].is_manually_assigned
        assert not by_step[60].is_manually_assigned
        # operator 4 lays out step 3 then step 60
        assert by_step[3].start_offset == 0.0
        assert by_step[60].start_offset == pytest.approx(0.083)

    def test_overrides_ignored_without_use_manual(self, jogger_style):
        entries = OperationAllocator().allocate(jogger_style, 2.0, {(0, 1): 5})
        assert assignment(entries)[1] == 1

    def test_overrides_keyed_by_style_index(self, jogger_style):
        entries = OperationAllocator().allocate(jogger_style, 2.0, {(1, 1): 5}, use_manual=True)
        assert assignment(entries)[1] == 1

        entries = OperationAllocator().allocate(jogger_style, 2.0, {(1, 1): 5}, use_manual=True, style_index=1)
        assert assignment(entries)[1] == 5

    def test_gap_allowed_under_pinning(self, jogger_style):
        entries = OperationAllocator().allocate(jogger_style, 2.0, {(0, 60): 9}, use_manual=True)
        assert assignment(entries)[60] == 9

    @pytest.mark.parametrize("operator", [0, -1, 1.5, "2"])
    def test_invalid_operator_number(self, jogger_style, operator):
        with pytest.raises(InvalidParameter):
            OperationAllocator().allocate(jogger_style, 2.0, {(0, 1): operator}, use_manual=True)


class TestOverrideNormalization:

    def test_nested_form(self):
        assert normalize_overrides({0: {1: 2, 40: 3}, 1: {7: 1}}) == {(0, 1): 2, (0, 40): 3, (1, 7): 1}

    def test_flat_form(self):
        assert normalize_overrides({(0, 1): 2}) == {(0, 1): 2}

    def test_empty(self):
        assert normalize_overrides(None) == {}

    def test_bad_key(self):
        with pytest.raises(InvalidParameter):
            normalize_overrides({"step-1": 2})


class TestPackingPolicy:
    """The packing policy is replaceable without touching the allocator."""

    def test_default_policy_is_sequential(self):
        assert isinstance(OperationAllocator().policy, SequentialPackingPolicy)

    def test_custom_policy(self, jogger_style):
        class OneOperatorEach(PackingPolicy):
            name = "one-each"

            def place(self, items, cycle_time):
                return [(index + 1, 0.0) for index in range(len(items))]

        entries = OperationAllocator(OneOperatorEach()).allocate(jogger_style, 2.0)
        assert [e.operator_number for e in entries] == [1, 2, 3, 4, 5, 6]

    def test_policy_only_sees_unpinned_items(self, jogger_style):
        seen = []

        class Recording(SequentialPackingPolicy):
            def place(self, items, cycle_time):
                seen.extend(item.step for item in items)
                return super().place(items, cycle_time)

        OperationAllocator(Recording()).allocate(jogger_style, 2.0, {(0, 40): 1}, use_manual=True)
        assert seen == [1, 2, 3, 43, 60]
