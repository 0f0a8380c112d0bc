"""Tests for the built-in object and sequence mutators."""

from dataclasses import dataclass
from types import SimpleNamespace

import pytest

from looseleaf import (
    IndexOutOfRange,
    ShapeMismatch,
    define_model,
    dispatch,
    object_mutator,
    sequence_mutator,
    set_global_config,
)


@dataclass
class Point:
    x: int
    y: int

    def move(self, dx):
        self.x += dx
        return self.x


class TestObjectMutator:
    def test_set_adds_key(self, changes):
        data = {"a": 1}
        object_mutator.set(data, "b", 2)
        assert data == {"a": 1, "b": 2}
        assert [(c.kind, c.key) for c in changes] == [("add", "b")]

    def test_set_overwrites(self, changes):
        data = {"a": 1}
        object_mutator.set(data, "a", 5)
        assert data == {"a": 5}
        assert changes[0].kind == "update"

    def test_set_attribute(self):
        p = Point(1, 2)
        object_mutator.set(p, "y", 7)
        assert p == Point(1, 7)

    def test_delete(self, changes):
        data = {"a": 1, "b": 2}
        object_mutator.delete(data, "a")
        assert data == {"b": 2}
        assert changes[0].kind == "delete"
        assert changes[0].old_value == 1

    def test_delete_missing_key(self):
        with pytest.raises(KeyError):
            object_mutator.delete({}, "a")

    def test_delete_attribute(self):
        ns = SimpleNamespace(a=1, b=2)
        object_mutator.delete(ns, "a")
        assert vars(ns) == {"b": 2}

    def test_call_function_field(self, changes):
        def bump(counter, by):
            counter["n"] += by
            return counter["n"]

        data = {"n": 1, "bump": bump}
        assert object_mutator.call(data, "bump", 2) == 3
        assert data["n"] == 3
        assert len(changes) == 1

    def test_call_method(self, changes):
        p = Point(1, 2)
        assert object_mutator.call(p, "move", 4) == 5
        assert p.x == 5
        assert changes[0].target is p

    def test_assign(self, changes):
        data = {"a": 1}
        object_mutator.assign(data, {"a": 2, "b": 3})
        assert data == {"a": 2, "b": 3}
        assert len(changes) == 2

    def test_rejects_sequences(self):
        with pytest.raises(ShapeMismatch):
            object_mutator.set([1], 0, 2)

    def test_registered(self):
        data = {}
        dispatch("$$objectMutator", "set", data, "a", 1)
        assert data == {"a": 1}


class TestSequenceBounds:
    @pytest.mark.parametrize("index", [-1, 3, 10])
    def test_delete_out_of_range(self, index, changes):
        items = [1, 2, 3]
        with pytest.raises(IndexOutOfRange):
            sequence_mutator.delete(items, index)
        assert items == [1, 2, 3]
        assert changes == []

    def test_out_of_range_is_index_error(self):
        with pytest.raises(IndexError):
            sequence_mutator.delete([], 0)

    def test_error_reports_index_and_length(self):
        with pytest.raises(IndexOutOfRange) as info:
            sequence_mutator.delete([1, 2], 5)
        assert (info.value.index, info.value.length) == (5, 2)

    def test_non_integer_index(self):
        with pytest.raises(TypeError):
            sequence_mutator.delete([1, 2], "0")
        with pytest.raises(TypeError):
            sequence_mutator.delete([1, 2], True)

    def test_set_at_length_appends(self):
        items = [1, 2]
        sequence_mutator.set(items, 2, 3)
        assert items == [1, 2, 3]

    def test_set_past_length(self):
        items = [1, 2]
        with pytest.raises(IndexOutOfRange):
            sequence_mutator.set(items, 3, 4)
        assert items == [1, 2]

    @pytest.mark.parametrize("index", [-1, 4])
    def test_insert_out_of_range(self, index):
        items = [1, 2, 3]
        with pytest.raises(IndexOutOfRange):
            sequence_mutator.insert(items, index, "x")
        assert items == [1, 2, 3]

    def test_splice_start_past_length(self):
        items = [1]
        with pytest.raises(IndexOutOfRange):
            sequence_mutator.splice(items, 2, 0, "x")
        assert items == [1]


class TestSequenceMutator:
    def test_set(self, changes):
        items = ["a", "b"]
        sequence_mutator.set(items, 0, "z")
        assert items == ["z", "b"]
        assert (changes[0].kind, changes[0].key) == ("update", 0)

    def test_delete(self, changes):
        items = ["a", "b", "c"]
        sequence_mutator.delete(items, 1)
        assert items == ["a", "c"]
        assert changes[0].kind == "splice"
        assert changes[0].old_value == ["b"]

    def test_set_length_truncates(self):
        items = [1, 2, 3]
        sequence_mutator.set_length(items, 1)
        assert items == [1]

    def test_set_length_pads(self):
        items = [1]
        sequence_mutator.set_length(items, 3)
        assert items == [1, None, None]

    def test_set_length_uses_configured_fill(self):
        set_global_config(sequence_fill=0)
        items = [1]
        sequence_mutator.set_length(items, 3)
        assert items == [1, 0, 0]

    def test_set_length_negative(self):
        items = [1]
        with pytest.raises(IndexOutOfRange):
            sequence_mutator.set_length(items, -1)
        assert items == [1]

    def test_append(self, changes):
        items = [1]
        sequence_mutator.append(items, 2, 3)
        assert items == [1, 2, 3]
        assert len(changes) == 1

    def test_pop(self):
        items = [1, 2]
        assert sequence_mutator.pop(items) == 2
        assert items == [1]

    def test_pop_front(self):
        items = [1, 2]
        assert sequence_mutator.pop_front(items) == 1
        assert items == [2]

    @pytest.mark.parametrize("name", ["pop", "pop_front"])
    def test_pop_empty(self, name):
        with pytest.raises(IndexOutOfRange):
            getattr(sequence_mutator, name)([])

    def test_prepend(self):
        items = [3]
        sequence_mutator.prepend(items, 1, 2)
        assert items == [1, 2, 3]

    def test_insert(self):
        items = [1, 3]
        sequence_mutator.insert(items, 1, 2)
        sequence_mutator.insert(items, 3, 4)
        assert items == [1, 2, 3, 4]

    def test_sort(self, changes):
        items = ["bb", "a", "ccc"]
        sequence_mutator.sort(items, key=len, reverse=True)
        assert items == ["ccc", "bb", "a"]
        assert len(changes) == 1

    def test_sort_already_sorted(self, changes):
        items = [1, 2, 3]
        sequence_mutator.sort(items)
        assert changes == []

    def test_reverse(self):
        items = [1, 2, 3]
        sequence_mutator.reverse(items)
        assert items == [3, 2, 1]

    def test_splice(self, changes):
        items = [1, 2, 3, 4]
        removed = sequence_mutator.splice(items, 1, 2, "x", "y", "z")
        assert removed == [2, 3]
        assert items == [1, "x", "y", "z", 4]
        assert len(changes) == 1
        assert changes[0].key == 1

    def test_splice_to_end(self):
        items = [1, 2, 3]
        assert sequence_mutator.splice(items, 1) == [2, 3]
        assert items == [1]

    def test_extend(self):
        items = [1]
        sequence_mutator.extend(items, (n for n in (2, 3)))
        assert items == [1, 2, 3]

    def test_remove(self):
        items = ["a", "b", "a"]
        sequence_mutator.remove(items, "a")
        assert items == ["b", "a"]

    def test_remove_missing(self):
        with pytest.raises(ValueError):
            sequence_mutator.remove([1], 2)

    def test_clear(self, changes):
        items = [1, 2]
        sequence_mutator.clear(items)
        assert items == []
        assert len(changes) == 1

    def test_rejects_records(self):
        with pytest.raises(ShapeMismatch):
            sequence_mutator.append({}, 1)


class TestNesting:
    def test_inside_user_action(self, changes):
        def tag(todo, name):
            sequence_mutator.append(todo["tags"], name)
            object_mutator.set(todo, "tagged", True)

        T = define_model("T").actions({"tag": tag})
        data = {"tags": []}
        T.tag(data, "urgent")
        assert data == {"tags": ["urgent"], "tagged": True}
        assert len(changes) == 2

    def test_nested_pop_returns_writable_item(self):
        def finish_first(todos):
            first = sequence_mutator.pop_front(todos["items"])
            first["done"] = True
            todos["finished"].append(first)

        T = define_model("T").actions({"finish_first": finish_first})
        item = {"done": False}
        data = {"items": [item], "finished": []}
        T.finish_first(data)
        assert data["items"] == []
        assert data["finished"] == [{"done": True}]
        assert data["finished"][0] is item
