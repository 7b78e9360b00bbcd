"""Tests for chart-of-accounts cycle prevention."""

from uuid import uuid4

import pytest

from erp_kernel.domain.hierarchy import ensure_no_cycle, iter_ancestors
from erp_kernel.exceptions import AccountHierarchyCycleError, ValidationError


@pytest.fixture
def chain():
    """root <- mid <- leaf"""
    root, mid, leaf = uuid4(), uuid4(), uuid4()
    parents = {root: None, mid: root, leaf: mid}
    return root, mid, leaf, parents.get


class TestIterAncestors:
    def test_walks_to_root(self, chain):
        root, mid, leaf, parent_of = chain
        assert list(iter_ancestors(leaf, parent_of)) == [leaf, mid, root]

    def test_stops_on_stored_loop(self):
        a, b = uuid4(), uuid4()
        parents = {a: b, b: a}
        assert list(iter_ancestors(a, parents.get)) == [a, b]


class TestEnsureNoCycle:
    def test_root_parent_is_fine(self, chain):
        _, _, leaf, parent_of = chain
        ensure_no_cycle(leaf, None, parent_of)

    def test_unrelated_parent_is_fine(self, chain):
        root, _, _, parent_of = chain
        other = uuid4()
        ensure_no_cycle(other, root, parent_of)

    def test_self_parent_rejected(self, chain):
        _, mid, _, parent_of = chain
        with pytest.raises(AccountHierarchyCycleError):
            ensure_no_cycle(mid, mid, parent_of)

    def test_descendant_parent_rejected(self, chain):
        root, _, leaf, parent_of = chain
        with pytest.raises(AccountHierarchyCycleError) as exc_info:
            ensure_no_cycle(root, leaf, parent_of)
        assert exc_info.value.field == "parent_id"

    def test_cycle_error_is_validation_error(self, chain):
        root, _, leaf, parent_of = chain
        with pytest.raises(ValidationError):
            ensure_no_cycle(root, leaf, parent_of)
