import pytest

from block_editor.core.exceptions import StructuralViolation
from block_editor.core.models import Block, BlockPath, BlockTree, ContainerKind, ContainerRef, PathStep
from block_editor.core.path_resolver import (
    check_tree,
    find_block,
    find_parent,
    get_sibling_list,
    is_descendant,
    iter_blocks,
    locate,
    read_path,
    resolve_container,
    resolve_path,
)


def test_iter_blocks_is_preorder(sample_tree, sample_order):
    assert [b.id for b, _ in iter_blocks(sample_tree)] == sample_order


def test_resolution_round_trip(sample_tree):
    for block, _ in iter_blocks(sample_tree):
        path = resolve_path(sample_tree, block.id)
        assert path is not None
        assert read_path(sample_tree, path) is block


def test_resolve_path_steps(sample_tree):
    path = resolve_path(sample_tree, "c1")
    assert path.steps == (
        PathStep(ContainerKind.ROOT, 3),
        PathStep(ContainerKind.ITEM, 0, slot=0),
    )
    assert path.depth == 1
    assert path.parent == BlockPath.top_level(3)

    path = resolve_path(sample_tree, "div")
    assert path.steps[-1] == PathStep(ContainerKind.INNER, 1)


def test_unknown_id_is_none(sample_tree):
    assert resolve_path(sample_tree, "nope") is None
    assert find_block(sample_tree, "nope") is None
    assert find_block(sample_tree, None) is None
    assert locate(sample_tree, "nope") is None


def test_sibling_list_is_the_live_list(sample_tree):
    path = resolve_path(sample_tree, "a")
    siblings = get_sibling_list(sample_tree, path)
    cols = find_block(sample_tree, "cols")
    assert siblings is cols.inner.slots[0]
    assert get_sibling_list(sample_tree, resolve_path(sample_tree, "t1")) is sample_tree.blocks


def test_locate_reports_container(sample_tree):
    loc = locate(sample_tree, "a")
    assert loc.container == ContainerRef("cols", 0)
    assert loc.index == 0
    assert loc.parent.id == "cols"
    assert loc.block.id == "a"

    loc = locate(sample_tree, "g1")
    assert loc.container == ContainerRef("grp", None)

    loc = locate(sample_tree, "h1")
    assert loc.container.is_root
    assert loc.parent is None


def test_find_parent(sample_tree):
    assert find_parent(sample_tree, "c1").id == "grid"
    assert find_parent(sample_tree, "h1") is None
    assert find_parent(sample_tree, "nope") is None


def test_resolve_container(sample_tree):
    assert resolve_container(sample_tree, ContainerRef.root()) is sample_tree.blocks
    assert [b.id for b in resolve_container(sample_tree, ContainerRef("grp"))] == ["g1", "div"]
    assert resolve_container(sample_tree, ContainerRef("cols", 1)) == []
    assert resolve_container(sample_tree, ContainerRef("cols", 5)) is None
    assert resolve_container(sample_tree, ContainerRef("missing")) is None


@pytest.mark.parametrize("ref", [
    ContainerRef("grp", 0),     # slot on a plain list
    ContainerRef("cols"),       # plain access on a slotted container
    ContainerRef("h1"),         # leaf
])
def test_resolve_container_shape_mismatch(sample_tree, ref):
    with pytest.raises(StructuralViolation):
        resolve_container(sample_tree, ref)


def test_stale_path_raises(sample_tree):
    path = resolve_path(sample_tree, "t1")
    sample_tree.blocks.pop()
    with pytest.raises(StructuralViolation):
        read_path(sample_tree, path)


def test_path_step_kind_mismatch_raises(sample_tree):
    bad = BlockPath((PathStep(ContainerKind.ROOT, 2), PathStep(ContainerKind.SLOT, 0, slot=0)))
    with pytest.raises(StructuralViolation):
        read_path(sample_tree, bad)


def test_is_descendant(sample_tree):
    grid = find_block(sample_tree, "grid")
    assert is_descendant(grid, "grid")
    assert is_descendant(grid, "c1")
    assert not is_descendant(grid, "a")


def test_deep_nesting():
    tree = BlockTree.from_dicts(_nested(30))
    path = resolve_path(tree, "leaf")
    assert path.depth == 30
    assert read_path(tree, path).id == "leaf"


def _nested(depth):
    node = {"id": "leaf", "type": "text"}
    for level in range(depth):
        node = {"id": f"g{level}", "type": "group", "content": {"inner_blocks": [node]}}
    return [node]


def test_check_tree_accepts_sample(sample_tree, catalog):
    check_tree(sample_tree, catalog)


def test_check_tree_rejects_duplicates(catalog):
    tree = BlockTree([Block("x", "text"), Block("x", "text")])
    with pytest.raises(StructuralViolation):
        check_tree(tree, catalog)


def test_check_tree_rejects_desynchronised_slots(sample_tree, catalog):
    find_block(sample_tree, "cols").settings["preset"] = "33-33-33"
    with pytest.raises(StructuralViolation) as exc_info:
        check_tree(sample_tree, catalog)
    assert exc_info.value.expected == 3
    assert exc_info.value.found == 2


def test_empty_path_raises(sample_tree):
    with pytest.raises(StructuralViolation):
        read_path(sample_tree, BlockPath(()))
