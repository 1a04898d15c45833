"""
Unit tests for the snapshot history manager.
"""

from services.editor.domain.history import HistoryManager
from shared.types import Flow, FlowNode, NodeData, NodeType, Position


def test_push_identical_state_is_noop():
    """init(S) then push(S) keeps a single snapshot"""
    history = HistoryManager()
    state = {"nodes": ["a"]}

    history.init(state)
    history.push({"nodes": ["a"]})

    assert len(history) == 1
    assert not history.can_undo
    assert not history.can_redo


def test_push_after_undo_discards_redo_branch():
    """Two undos followed by a new push drop the undone snapshots"""
    history = HistoryManager()
    history.init({"v": 0})
    history.push({"v": 1})
    history.push({"v": 2})

    assert history.undo() == {"v": 1}
    assert history.undo() == {"v": 0}
    assert history.can_redo

    history.push({"v": 3})

    assert len(history) == 2
    assert not history.can_redo
    assert history.current == {"v": 3}
    assert history.undo() == {"v": 0}


def test_undo_redo_walk():
    """Undo and redo move the cursor and return the snapshot there"""
    history = HistoryManager()
    history.init("a")
    history.push("b")
    history.push("c")

    assert history.undo() == "b"
    assert history.redo() == "c"
    assert history.cursor == 2


def test_bounds_are_noops():
    """Undo at the first snapshot and redo at the last return None"""
    history = HistoryManager()
    history.init([1])

    assert history.undo() is None
    assert history.redo() is None
    assert history.cursor == 0
    assert len(history) == 1


def test_uninitialized_history():
    """An empty manager has nothing to undo, redo or show"""
    history = HistoryManager()

    assert history.undo() is None
    assert history.redo() is None
    assert history.current is None
    assert len(history) == 0


def test_push_without_init_starts_history():
    """The first push behaves like init"""
    history = HistoryManager()
    history.push({"v": 1})

    assert len(history) == 1
    assert history.cursor == 0
    assert history.current == {"v": 1}


def test_push_equal_to_current_keeps_redo_branch():
    """A no-op push after undo does not truncate the redo branch"""
    history = HistoryManager()
    history.init({"v": 0})
    history.push({"v": 1})
    history.undo()

    history.push({"v": 0})

    assert len(history) == 2
    assert history.can_redo


def test_caller_mutation_after_push_does_not_leak():
    """Mutating live state after push leaves stored snapshots intact"""
    history = HistoryManager()
    state = {"nodes": [{"id": "a"}]}
    history.init(state)

    state["nodes"].append({"id": "b"})
    history.push(state)
    state["nodes"].append({"id": "c"})

    assert history.current == {"nodes": [{"id": "a"}, {"id": "b"}]}
    assert history.undo() == {"nodes": [{"id": "a"}]}


def test_returned_values_are_independent_copies():
    """Mutating what undo/redo return never touches history"""
    history = HistoryManager()
    history.init({"items": [1]})
    history.push({"items": [1, 2]})

    undone = history.undo()
    undone["items"].append(99)
    redone = history.redo()
    redone["items"].clear()

    assert history.current == {"items": [1, 2]}
    assert history.undo() == {"items": [1]}


def test_history_of_flow_models():
    """Flow models compare by value, so unchanged flows are not re-recorded"""
    def make_flow(label):
        return Flow(
            id="f1",
            name="demo",
            nodes=[FlowNode(id="s", type=NodeType.START, position=Position(x=10, y=20),
                            data=NodeData(label=label))]
        )

    history = HistoryManager()
    flow = make_flow("Begin")
    history.init(flow)
    history.push(make_flow("Begin"))

    assert len(history) == 1

    flow.nodes[0].data.label = "Start here"
    history.push(flow)
    restored = history.undo()

    assert len(history) == 2
    assert restored.nodes[0].data.label == "Begin"
    assert restored is not flow


def test_clear_resets_history():
    history = HistoryManager()
    history.init(1)
    history.push(2)

    history.clear()

    assert len(history) == 0
    assert history.cursor == -1
