"""Tests for perch.views.context — ViewContext, ModelState, merge policy."""

import asyncio

import pytest

from perch.views.context import (
    ModelState,
    ViewContext,
    get_view_context,
    merge_view_data,
    view_context_var,
)


class TestMergeViewData:
    def test_union(self) -> None:
        assert merge_view_data({"a": 1, "b": 2}, {"b": 2, "c": 3}) == {"a": 1, "b": 2, "c": 3}

    def test_duplicate_values_dropped(self) -> None:
        assert merge_view_data({"a": 1}, {"b": 1}) == {"a": 1}

    def test_later_key_overwrites(self) -> None:
        assert merge_view_data({"a": 1}, {"a": 2}) == {"a": 2}

    def test_overwrite_then_dedupe(self) -> None:
        # "a" becomes 2, which "b" already holds later; the first holder wins
        assert merge_view_data({"a": 1, "b": 2}, {"a": 2}) == {"a": 2}

    def test_equality_not_identity(self) -> None:
        assert merge_view_data({"a": [1]}, {"b": [1]}) == {"a": [1]}

    def test_unhashable_values(self) -> None:
        merged = merge_view_data({"a": {"x": 1}}, {"b": {"y": 2}})
        assert merged == {"a": {"x": 1}, "b": {"y": 2}}

    def test_inputs_untouched(self) -> None:
        existing = {"a": 1}
        merge_view_data(existing, {"b": 1})
        assert existing == {"a": 1}


class TestModelState:
    def test_valid_by_default(self) -> None:
        state = ModelState()
        assert state.is_valid is True
        assert state.exception is None

    def test_add_error(self) -> None:
        state = ModelState()
        state.add_error("email", "required")
        state.add_error("email", "invalid")
        assert state.errors == {"email": ["required", "invalid"]}
        assert state.is_valid is False

    def test_exception_invalidates(self) -> None:
        state = ModelState(exception=ValueError("boom"))
        assert state.is_valid is False


class TestViewContextVar:
    def test_outside_dispatch_raises(self) -> None:
        with pytest.raises(LookupError):
            get_view_context()

    def test_set_and_reset(self) -> None:
        vc = ViewContext(controller="Home", action="index")
        token = view_context_var.set(vc)
        try:
            assert get_view_context() is vc
        finally:
            view_context_var.reset(token)
        with pytest.raises(LookupError):
            get_view_context()

    async def test_tasks_are_isolated(self) -> None:
        async def run(name: str) -> str:
            view_context_var.set(ViewContext(controller=name))
            await asyncio.sleep(0)
            return get_view_context().controller

        results = await asyncio.gather(run("A"), run("B"))
        assert results == ["A", "B"]
