"""Tests for tags: lazily created side values keyed by data identity."""

import gc

import pytest

from looseleaf import ReentrantTagCreation, _anchor, define_tag, release
from looseleaf.proxy import wrap


class Record(dict):
    pass


def _counting_tag():
    calls = []

    def init(data):
        calls.append(data)
        return {"selected": False}

    return define_tag(init), calls


class TestFor:
    def test_init_runs_lazily_once(self):
        tag, calls = _counting_tag()
        data = Record()
        assert calls == []
        first = tag.for_(data)
        second = tag.for_(data)
        assert first is second
        assert len(calls) == 1
        assert calls[0] is data

    def test_value_is_mutable_state(self):
        tag, _ = _counting_tag()
        data = Record()
        tag.for_(data)["selected"] = True
        assert tag.for_(data) == {"selected": True}
        assert data == {}  # nothing written onto the data

    def test_distinct_data_distinct_values(self):
        tag, calls = _counting_tag()
        a, b = Record(), Record()
        assert tag.for_(a) is not tag.for_(b)
        assert len(calls) == 2

    def test_distinct_tags_on_same_data(self):
        first, _ = _counting_tag()
        second, _ = _counting_tag()
        data = Record()
        assert first.for_(data) is not second.for_(data)

    def test_equal_but_distinct_data(self):
        tag, calls = _counting_tag()
        tag.for_(Record(a=1))
        other = Record(a=1)
        tag.for_(other)
        assert len(calls) == 2

    def test_proxy_resolves_to_data(self):
        tag, calls = _counting_tag()
        data = {"a": 1}
        assert tag.for_(wrap(data)) is tag.for_(data)
        assert calls == [data]
        release(data)

    def test_has(self):
        tag, _ = _counting_tag()
        data = Record()
        assert not tag.has(data)
        tag.for_(data)
        assert tag.has(data)


class TestCreationErrors:
    def test_reentrant_creation(self):
        def init(data):
            return tag.for_(data)

        tag = define_tag(init)
        data = Record()
        with pytest.raises(ReentrantTagCreation):
            tag.for_(data)
        assert not tag.has(data)

    def test_other_tags_may_be_created_during_init(self):
        inner = define_tag(lambda data: "inner")
        outer = define_tag(lambda data: inner.for_(data) + "+outer")
        data = Record()
        assert outer.for_(data) == "inner+outer"
        assert inner.has(data)

    def test_failed_init_leaves_nothing(self):
        def init(data):
            raise ValueError("bad init")

        tag = define_tag(init)
        data = Record()
        with pytest.raises(ValueError):
            tag.for_(data)
        assert not tag.has(data)
        assert id(data) not in _anchor.tag_slots

    def test_failed_init_can_be_retried(self):
        attempts = []

        def init(data):
            attempts.append(1)
            if len(attempts) == 1:
                raise ValueError("first try")
            return "ok"

        tag = define_tag(init)
        data = Record()
        with pytest.raises(ValueError):
            tag.for_(data)
        assert tag.for_(data) == "ok"

    @pytest.mark.parametrize("value", [1, "text", None, (1, 2), 2.5])
    def test_primitives_cannot_be_tagged(self, value):
        tag, _ = _counting_tag()
        with pytest.raises(TypeError):
            tag.for_(value)


class TestLifetime:
    def test_slot_dropped_with_data(self):
        tag = define_tag(lambda data: {"selected": False})
        data = Record()
        tag.for_(data)
        key = id(data)
        assert key in _anchor.tag_slots
        del data
        gc.collect()
        assert key not in _anchor.tag_slots

    def test_builtin_dict_pinned_until_release(self):
        tag, _ = _counting_tag()
        data = {"a": 1}
        tag.for_(data)
        assert id(data) in _anchor.tag_slots
        release(data)
        assert id(data) not in _anchor.tag_slots
        assert not tag.has(data)

    def test_release_drops_every_tag(self):
        first, _ = _counting_tag()
        second, _ = _counting_tag()
        data = Record()
        first.for_(data)
        second.for_(data)
        release(data)
        assert not first.has(data)
        assert not second.has(data)

    def test_release_untagged_is_noop(self):
        release({"a": 1})
        release(Record())

    def test_value_recreated_after_release(self):
        tag, calls = _counting_tag()
        data = Record()
        tag.for_(data)
        release(data)
        tag.for_(data)
        assert len(calls) == 2
