import pytest
from typing import List

from block_editor.core.models import Block, BlockTree, ContainerRef
from block_editor.core.path_resolver import find_block
from block_editor.core.services.block_editing_service import BlockEditingService, OperationResult
from block_editor.core.services.navigation_service import NavigationService
from block_editor.core.services.reorder_service import ReorderService
from block_editor.core.services.undo_service import UndoService
from block_editor.ui.controllers.editor_controller import EditorController, EditorStatus


# ---------------------------
# Fakes / Mocks
# ---------------------------

class FakeUndoService:
    def __init__(self):
        self.counters = {"capture": 0, "push": 0, "undo": 0, "redo": 0}

    def capture(self, tree):
        self.counters["capture"] += 1
        return object()

    def push(self, snapshot) -> None:
        self.counters["push"] += 1

    def undo(self, tree) -> bool:
        self.counters["undo"] += 1
        return False

    def redo(self, tree) -> bool:
        self.counters["redo"] += 1
        return False

    def can_undo(self) -> bool:
        return self.counters["push"] > 0

    def can_redo(self) -> bool:
        return False


class FakeEditingService:
    def __init__(self, result: OperationResult):
        self.result = result
        self.calls = []

    def delete(self, tree, block_id: str) -> OperationResult:
        self.calls.append(("delete", block_id))
        return self.result


class Recorder:
    def __init__(self):
        self.statuses: List[EditorStatus] = []
        self.commits: List[list] = []

    def on_status(self, status: EditorStatus) -> None:
        self.statuses.append(status)

    def on_commit(self, blocks) -> None:
        self.commits.append(blocks)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def controller(catalog, sample_tree, recorder):
    ctrl = EditorController(
        tree=sample_tree,
        editing_service=BlockEditingService(catalog),
        reorder_service=ReorderService(catalog=catalog),
        navigation_service=NavigationService(catalog),
        undo_service=UndoService(max_history=10),
        on_commit=recorder.on_commit,
    )
    ctrl.subscribe(recorder.on_status)
    return ctrl


def top_ids(ctrl):
    return [b.id for b in ctrl.tree.blocks]


# ---------------------------
# History recording policy
# ---------------------------

def test_successful_edit_records_history_and_commits(controller, recorder):
    res = controller.delete_block("t1")
    assert res.success
    assert controller.undo_service.undo_depth == 1
    assert controller.is_dirty
    assert len(recorder.commits) == 1
    assert "t1" not in [d["id"] for d in recorder.commits[0]]
    assert recorder.statuses[-1] == EditorStatus(selected_block_id=None, can_undo=True, can_redo=False)


def test_failed_edit_records_nothing(controller, recorder):
    res = controller.delete_block("ghost")
    assert not res.success
    assert controller.undo_service.undo_depth == 0
    assert not controller.is_dirty
    assert recorder.commits == []


def test_boundary_move_records_nothing(controller):
    res = controller.move_block_up("h1")
    assert not res.success
    assert controller.undo_service.can_undo() is False


def test_recorded_edit_with_fakes(catalog):
    undo = FakeUndoService()
    editing = FakeEditingService(OperationResult(False, "nope", {"reason": "not_found"}))
    ctrl = EditorController(BlockTree(), editing, ReorderService(), NavigationService(catalog), undo)
    ctrl.delete_block("x")
    assert undo.counters == {"capture": 1, "push": 0, "undo": 0, "redo": 0}

    editing.result = OperationResult(True, "ok")
    ctrl.delete_block("x")
    assert undo.counters["capture"] == 2
    assert undo.counters["push"] == 1
    assert editing.calls == [("delete", "x"), ("delete", "x")]


def test_commit_payload_is_a_copy(controller, recorder):
    controller.save_inline_edit("h1", "Edited")
    payload = recorder.commits[-1]
    payload[0]["content"]["text"] = "tampered"
    assert find_block(controller.tree, "h1").content["text"] == "Edited"


def test_mark_saved(controller):
    controller.delete_block("t1")
    controller.mark_saved()
    assert not controller.is_dirty


def test_unsubscribe(controller, recorder):
    extra = []
    unsubscribe = controller.subscribe(extra.append)
    controller.select_block("h1")
    unsubscribe()
    controller.select_block("t1")
    assert len(extra) == 1


# ---------------------------
# Selection
# ---------------------------

def test_select_and_deselect(controller, recorder):
    assert controller.select_block("a")
    assert controller.tree.selected_block_id == "a"
    assert recorder.statuses[-1].selected_block_id == "a"
    controller.deselect_all()
    assert controller.tree.selected_block_id is None
    assert controller.select_block("ghost") is False


def test_start_inline_edit(controller):
    assert controller.start_inline_edit("h1")
    assert controller.tree.selected_block_id == "h1"
    assert controller.tree.editing_block_id == "h1"
    assert controller.select_block("t1")
    assert controller.tree.editing_block_id is None


# ---------------------------
# Edits
# ---------------------------

def test_insert_block_appends_and_selects(controller):
    res = controller.insert_block("image")
    assert res.success
    assert controller.tree.blocks[-1].type == "image"
    assert controller.tree.selected_block_id == res.details["block_id"]


def test_insert_block_into_slot_at_index(controller):
    res = controller.insert_block("text", ContainerRef("cols", 0), 0)
    assert res.success
    assert find_block(controller.tree, "cols").inner.slots[0][0].id == res.details["block_id"]


def test_insert_block_with_content(controller):
    res = controller.insert_block_with_content("heading", "Hello")
    block = find_block(controller.tree, res.details["block_id"])
    assert block.content["text"] == "Hello"
    assert block.content["level"] == "h2"


def test_insert_block_after_saves_text_and_edits_new_block(controller):
    res = controller.insert_block_after("g1", "Saved text")
    assert res.success
    new_id = res.details["block_id"]
    group = find_block(controller.tree, "grp")
    assert [b.id for b in group.inner.blocks] == ["g1", new_id, "div"]
    assert find_block(controller.tree, "g1").content["text"] == "Saved text"
    assert find_block(controller.tree, new_id).type == "text"
    assert controller.tree.editing_block_id == new_id
    # One history entry for the combined edit.
    assert controller.undo_service.undo_depth == 1
    controller.undo()
    assert find_block(controller.tree, "g1").content["text"] == "G1"
    assert find_block(controller.tree, new_id) is None


def test_delete_selected(controller):
    assert controller.delete_selected().reason == "no_selection"
    controller.select_block("grid")
    assert controller.delete_selected().success
    assert find_block(controller.tree, "c1") is None
    assert controller.tree.selected_block_id is None


def test_move_block_to(controller):
    res = controller.move_block_to("h1", ContainerRef("grid", 1), 0)
    assert res.success
    assert find_block(controller.tree, "grid").inner.items[1][0].id == "h1"


def test_replace_block(controller):
    controller.select_block("t1")
    res = controller.replace_block("t1", Block("q", "quote"))
    assert res.success
    assert controller.tree.selected_block_id == "q"


def test_save_inline_edit_leaves_edit_mode(controller):
    controller.start_inline_edit("t1")
    assert controller.save_inline_edit("t1", "Bye").success
    assert controller.tree.editing_block_id is None
    assert find_block(controller.tree, "t1").content["text"] == "Bye"


def test_update_block_setting_uses_selection(controller):
    assert controller.update_block_setting("styles.color", "red").reason == "no_selection"
    controller.select_block("cols")
    assert controller.update_block_setting("preset", "33-33-33").success
    assert len(find_block(controller.tree, "cols").inner.slots) == 3
    assert controller.update_block_setting("align", "center", block_id="h1").success
    assert find_block(controller.tree, "h1").settings["align"] == "center"


# ---------------------------
# Reordering
# ---------------------------

def test_reorder_blocks_never_drops(controller):
    res = controller.reorder_blocks(["grid", "h1"])
    assert res.success
    assert top_ids(controller) == ["grid", "h1", "cols", "grp", "t1"]


def test_reorder_blocks_in_slot_and_item(controller):
    controller.insert_block("text", ContainerRef("grid", 0))
    new_id = controller.tree.selected_block_id
    controller.reorder_blocks([new_id], parent_id="grid", slot=0)
    assert [b.id for b in find_block(controller.tree, "grid").inner.items[0]] == [new_id, "c1"]


def test_reorder_layers_partial_payload(controller):
    controller.reorder_layers(["t1"])
    assert top_ids(controller) == ["t1", "h1", "cols", "grp", "grid"]


def test_reorder_without_change_records_nothing(controller):
    controller.reorder_blocks(["h1", "cols", "grp", "grid", "t1"])
    assert controller.undo_service.undo_depth == 0
    assert not controller.is_dirty


def test_reorder_slots_is_undoable(controller):
    controller.update_block_setting("preset", "25-75", block_id="cols")
    before = controller.tree.to_dicts()
    res = controller.reorder_slots("cols", [1, 0])
    assert res.success
    cols = find_block(controller.tree, "cols")
    assert cols.settings["preset"] == "75-25"
    assert cols.inner.slots[1][0].id == "a"
    controller.undo()
    assert controller.tree.to_dicts() == before


def test_move_slot_left_and_right(controller):
    assert controller.move_slot("cols", 0, "right").success
    assert find_block(controller.tree, "cols").inner.slots[1][0].id == "a"
    assert controller.move_slot("cols", 1, "right").reason == "boundary"
    assert controller.move_slot("cols", 0, "left").reason == "boundary"
    assert controller.move_slot("ghost", 0, "left").reason == "not_found"


def test_delete_slot_keeps_blocks_and_records_history(controller):
    controller.insert_block("text", ContainerRef("cols", 1))
    new_id = controller.tree.selected_block_id
    depth = controller.undo_service.undo_depth
    res = controller.delete_slot("cols", 1)
    assert res.success
    cols = find_block(controller.tree, "cols")
    assert cols.settings["preset"] == "50"
    assert [b.id for b in cols.inner.slots[0]] == ["a", new_id]
    assert controller.undo_service.undo_depth == depth + 1
    controller.undo()
    assert len(find_block(controller.tree, "cols").inner.slots) == 2


# ---------------------------
# Keyboard navigation
# ---------------------------

def test_navigate_from_nothing(controller):
    assert controller.navigate("down") == "h1"
    assert controller.tree.editing_block_id == "h1"
    controller.deselect_all()
    assert controller.navigate("up") == "t1"


def test_navigate_into_non_editable_only_selects(controller):
    controller.select_block("g1")
    assert controller.navigate("down") == "div"
    assert controller.tree.selected_block_id == "div"
    assert controller.tree.editing_block_id is None


def test_navigate_stays_at_boundary(controller):
    controller.select_block("t1")
    assert controller.navigate("down") == "t1"


def test_navigate_empty_tree(catalog):
    ctrl = EditorController.from_dicts([], catalog)
    assert ctrl.navigate("down") is None


def test_save_and_navigate_down_past_last_returns_none(controller):
    controller.start_inline_edit("t1")
    assert controller.save_and_navigate("t1", "Last words", "down") is None
    assert controller.tree.selected_block_id is None
    assert controller.tree.editing_block_id is None
    assert find_block(controller.tree, "t1").content["text"] == "Last words"


def test_save_and_navigate_up_at_top_stays(controller):
    controller.start_inline_edit("h1")
    assert controller.save_and_navigate("h1", "Top", "up") == "h1"
    assert controller.tree.editing_block_id == "h1"


def test_save_and_navigate_moves_into_next(controller):
    controller.start_inline_edit("g1")
    assert controller.save_and_navigate("g1", "x", "up") == "grp"
    assert controller.tree.editing_block_id is None
    assert controller.tree.selected_block_id == "grp"


# ---------------------------
# Undo / redo
# ---------------------------

def test_undo_redo_round_trip(controller, recorder):
    original = controller.tree.to_dicts()
    controller.delete_block("cols")
    controller.insert_block_with_content("text", "new")
    after = controller.tree.to_dicts()

    assert controller.undo()
    assert controller.undo()
    assert controller.tree.to_dicts() == original
    assert controller.undo() is False
    assert recorder.statuses[-1] == EditorStatus(selected_block_id=None, can_undo=False, can_redo=True)

    assert controller.redo()
    assert controller.redo()
    assert controller.tree.to_dicts() == after
    assert controller.redo() is False


def test_undo_clears_stale_selection(controller):
    controller.insert_block("image")
    new_id = controller.tree.selected_block_id
    assert new_id is not None
    controller.undo()
    assert controller.tree.selected_block_id is None


def test_undo_marks_dirty_and_commits(controller, recorder):
    controller.delete_block("t1")
    controller.mark_saved()
    controller.undo()
    assert controller.is_dirty
    assert "t1" in [d["id"] for d in recorder.commits[-1]]


def test_from_dicts_uses_configured_history(sample_dicts, catalog):
    ctrl = EditorController.from_dicts(sample_dicts, catalog)
    assert ctrl.undo_service.max_history == 50
    assert ctrl.default_block_type == "text"
    assert [b.id for b in ctrl.tree.blocks][0] == "h1"
