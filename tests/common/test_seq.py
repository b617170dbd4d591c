import pytest

from csvpipe.common.seq import Seq


def test_chained_operations_are_deferred_until_terminal_pull():
    calls: list[str] = []

    def source():
        calls.append("open")
        yield from [1, 2, 3]

    seq = (
        Seq.from_factory(source)
        .peek(lambda x: calls.append(f"peek:{x}"))
        .map(lambda x: x * 10)
        .filter(lambda x: x > 10)
    )
    assert calls == []

    assert seq.to_list() == [20, 30]
    assert calls == ["open", "peek:1", "peek:2", "peek:3"]


def test_peek_runs_only_for_pulled_elements():
    seen: list[int] = []
    seq = Seq.range(0, 100).peek(seen.append)

    assert seq.first() == 0
    assert seen == [0]


def test_each_terminal_operation_restarts_the_source():
    opened = []

    def source():
        opened.append(1)
        return [1, 2, 3]

    seq = Seq.from_factory(source)
    assert seq.count() == 3
    assert seq.to_list() == [1, 2, 3]
    assert len(opened) == 2


def test_force_on_demand_traverses_source_once():
    opened = []

    def source():
        opened.append(1)
        yield from ["a", "b"]

    cached = Seq.from_factory(source).force_on_demand()
    assert opened == []

    assert cached.count() == 2
    assert cached.to_list() == ["a", "b"]
    assert cached.map(str.upper).to_list() == ["A", "B"]
    assert len(opened) == 1


def test_force_on_demand_stays_pending_after_failed_pull():
    attempts = []

    def source():
        attempts.append(1)
        if len(attempts) == 1:
            raise OSError("disk gone")
        yield from [1, 2]

    cached = Seq.from_factory(source).force_on_demand()
    with pytest.raises(OSError):
        cached.to_list()
    assert cached.to_list() == [1, 2]
    assert cached.count() == 2
    assert len(attempts) == 2


def test_flat_map_preserves_outer_then_inner_order():
    seq = Seq.of("F1", "F2").flat_map(lambda f: [f"{f}:A", f"{f}:B"])
    assert seq.to_list() == ["F1:A", "F1:B", "F2:A", "F2:B"]


def test_sorted_distinct_prepend_append():
    seq = Seq.of(3, 1, 2, 3, 1).distinct().sorted().prepend(0).append(9)
    assert seq.to_list() == [0, 1, 2, 3, 9]
    assert Seq.of("bb", "a", "ccc").sorted(key=len, reverse=True).to_list() == ["ccc", "bb", "a"]


def test_distinct_by_key():
    assert Seq.of("apple", "avocado", "banana").distinct(key=lambda s: s[0]).to_list() == ["apple", "banana"]


def test_limit_closes_upstream_generator():
    state = {"closed": False, "produced": 0}

    def source():
        try:
            for i in range(1000):
                state["produced"] += 1
                yield i
        finally:
            state["closed"] = True

    assert Seq.from_factory(source).map(lambda x: x + 1).limit(3).to_list() == [1, 2, 3]
    assert state["closed"] is True
    assert state["produced"] == 3


def test_first_closes_upstream_generator():
    state = {"closed": False}

    def source():
        try:
            yield from [1, 2, 3]
        finally:
            state["closed"] = True

    assert Seq.from_factory(source).first() == 1
    assert state["closed"] is True


def test_skip_reject_and_reject_nones():
    assert Seq.of(1, None, 2, None, 3).reject_nones().skip(1).to_list() == [2, 3]
    assert Seq.range(0, 6).reject(lambda x: x % 2).to_list() == [0, 2, 4]


def test_terminal_helpers():
    seq = Seq.of(1, 2, 3, 4)
    assert seq.reduce(lambda acc, x: acc + x, 0) == 10
    assert seq.to_tuple() == (1, 2, 3, 4)
    assert Seq.empty().first("none") == "none"
    assert Seq.empty().is_empty()
    assert not seq.is_empty()

    collected: list[int] = []
    seq.for_each(collected.append)
    assert collected == [1, 2, 3, 4]


def test_concat_and_from_iterable_identity():
    left = Seq.of(1, 2)
    assert Seq.from_iterable(left) is left
    assert left.concat([3, 4]).to_list() == [1, 2, 3, 4]


def test_sequential_marker_is_inherited():
    seq = Seq.of(1, 2).sequential()
    assert seq.is_sequential
    assert seq.map(lambda x: x).is_sequential
    assert not Seq.of(1).is_sequential


def test_errors_propagate_to_terminal_consumer():
    def boom(x):
        if x == 2:
            raise ValueError("bad element")
        return x

    with pytest.raises(ValueError, match="bad element"):
        Seq.of(1, 2, 3).map(boom).to_list()


def test_negative_limit_and_skip_rejected():
    with pytest.raises(ValueError):
        Seq.of(1).limit(-1)
    with pytest.raises(ValueError):
        Seq.of(1).skip(-1)
