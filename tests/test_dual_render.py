import itertools
import logging
import threading

import pytest

from blockkit.block_registry import BlockRegistry
from blockkit.block_types import BlockDescriptor, BlockSupports, CallbackRenderer
from blockkit.engine.render import DefaultRenderRecorder, DualRenderer, NullRenderRecorder
from blockkit.engine.serialization import parse
from blockkit.engine.tree import BlockNode, CompositionTree
from blockkit.errors import NonDeterministicSave, NotFound, RenderCancelled


def _edit(name):
    def _fn(attributes, children):
        return {"block": name, "attributes": dict(attributes), "children": [c.output for c in children]}

    return _fn


def _wrap_children(attributes, children):
    return "".join(children)


def _paragraph_save(attributes, children):
    return f"<p>{attributes.get('content', '')}</p>"


def _descriptor(name, *, parent=(), light=False, save=_wrap_children):
    return BlockDescriptor(
        name=name,
        parent=frozenset(parent),
        supports=BlockSupports(light_block_wrapper=light),
        renderer=CallbackRenderer(edit=_edit(name), save=save),
    )


def _make_registry() -> BlockRegistry:
    return BlockRegistry(
        [
            _descriptor("core/columns"),
            _descriptor("core/column", parent=["core/columns"], light=True, save=lambda a, c: f"<section>{''.join(c)}</section>"),
            _descriptor("core/paragraph", light=True, save=_paragraph_save),
            _descriptor("acme/card"),
        ]
    )


def _make_tree(registry: BlockRegistry) -> CompositionTree:
    tree = CompositionTree(registry)
    tree.insert(BlockNode("core/columns"))
    tree.insert(BlockNode("core/column"), (0,))
    tree.insert(BlockNode("core/paragraph", {"content": "Hi"}), (0, 0))
    return tree


def _renderer(registry: BlockRegistry) -> DualRenderer:
    return DualRenderer(registry, recorder=NullRenderRecorder())


def test_edit_traversal_renders_children_first_and_keeps_structure():
    registry = _make_registry()
    tree = _make_tree(registry)

    result = _renderer(registry).render_edit(tree)

    assert result.ok
    (columns,) = result.output
    assert columns.name == "core/columns"
    assert columns.path == (0,)
    assert columns.output["children"][0]["block"] == "core/column"
    assert columns.children[0].children[0].output == {
        "block": "core/paragraph",
        "attributes": {"content": "Hi"},
        "children": [],
    }
    assert [view.path for view in columns.iter_views()] == [(0,), (0, 0), (0, 0, 0)]


def test_save_wraps_only_blocks_without_light_container():
    registry = _make_registry()
    tree = _make_tree(registry)

    output = _renderer(registry).render_save(tree).output

    assert output == (
        "<!-- wp:columns -->\n"
        '<div class="wp-block-columns">'
        "<!-- wp:column -->\n"
        "<section>"
        '<!-- wp:paragraph {"content":"Hi"} -->\n<p>Hi</p>\n<!-- /wp:paragraph -->'
        "</section>\n"
        "<!-- /wp:column -->"
        "</div>\n"
        "<!-- /wp:columns -->"
    )


def test_container_class_keeps_foreign_namespace():
    renderer = _renderer(_make_registry())
    assert renderer.container_class("core/group") == "wp-block-group"
    assert renderer.container_class("acme/card") == "wp-block-acme-card"


def test_empty_block_is_written_in_void_form():
    registry = _make_registry()
    tree = CompositionTree(registry)
    tree.insert(BlockNode("acme/card"))

    assert _renderer(registry).render_save(tree).output == "<!-- wp:acme/card /-->"


def test_save_is_idempotent():
    registry = _make_registry()
    tree = _make_tree(registry)
    renderer = _renderer(registry)

    first = renderer.render_save(tree).output
    second = renderer.render_save(tree).output

    assert first == second
    assert renderer.verify_save(tree) == first


def test_verify_save_reports_non_deterministic_block():
    registry = _make_registry()
    counter = itertools.count()
    registry.register(
        _descriptor("core/paragraph", light=True, save=lambda a, c: f"<p>{next(counter)}</p>")
    )
    tree = _make_tree(registry)

    with pytest.raises(NonDeterministicSave) as excinfo:
        _renderer(registry).verify_save(tree)

    assert excinfo.value.path == (0, 0, 0)
    assert excinfo.value.name == "core/paragraph"


def test_reregistered_descriptor_is_used_by_next_render():
    registry = _make_registry()
    tree = _make_tree(registry)
    renderer = _renderer(registry)
    assert "<p>Hi</p>" in renderer.render_save(tree).output

    registry.register(_descriptor("core/paragraph", light=True, save=lambda a, c: "<p>v2</p>"))

    assert "<p>v2</p>" in renderer.render_save(tree).output


def test_unregistered_block_surfaces_not_found_without_stopping_traversal():
    registry = _make_registry()
    tree = _make_tree(registry)
    registry.unregister("core/column")
    renderer = _renderer(registry)

    edit = renderer.render_edit(tree)
    assert not edit.ok
    (problem,) = edit.problems
    assert isinstance(problem, NotFound)
    assert problem.name == "core/column"
    assert problem.path == (0, 0)
    (columns,) = edit.output
    placeholder = columns.children[0]
    assert placeholder.placeholder is True
    assert placeholder.children[0].output["attributes"] == {"content": "Hi"}

    save = renderer.render_save(tree)
    assert [p.path for p in save.problems] == [(0, 0)]
    assert "<!-- wp:column -->" in save.output
    assert "<p>Hi</p>" in save.output
    with pytest.raises(NotFound):
        save.raise_for_problems()


def test_render_does_not_let_descriptors_mutate_attributes():
    registry = _make_registry()

    def _mutating_edit(attributes, children):
        attributes["content"] = "changed"  # type: ignore[index]

    registry.register(
        BlockDescriptor(
            name="core/paragraph",
            renderer=CallbackRenderer(edit=_mutating_edit, save=_paragraph_save),
        )
    )
    tree = _make_tree(registry)

    with pytest.raises(TypeError) as excinfo:
        _renderer(registry).render_edit(tree)

    assert getattr(excinfo.value, "render_path") == (0, 0, 0)
    assert tree.get((0, 0, 0)).attributes == {"content": "Hi"}


def test_non_string_save_output_is_rejected():
    registry = _make_registry()
    registry.register(_descriptor("acme/card", save=lambda a, c: 42))
    tree = CompositionTree(registry)
    tree.insert(BlockNode("acme/card"))

    with pytest.raises(TypeError, match=r"non-string output"):
        _renderer(registry).render_save(tree)


def test_cancelled_render_raises_and_produces_no_result():
    registry = _make_registry()
    tree = _make_tree(registry)
    cancel = threading.Event()

    class CancelOnSecondNode(NullRenderRecorder):
        def __init__(self):
            self.started = 0

        def on_node_start(self, mode, path, name):
            self.started += 1
            if self.started == 2:
                cancel.set()

    renderer = DualRenderer(registry, recorder=CancelOnSecondNode())
    with pytest.raises(RenderCancelled, match=r"save render cancelled at 0/0/0"):
        renderer.render_save(tree, cancel=cancel)


def test_default_recorder_logs_missing_blocks(caplog):
    registry = _make_registry()
    tree = _make_tree(registry)
    registry.unregister("core/paragraph")
    logger = logging.getLogger("test.dual_render")

    with caplog.at_level(logging.DEBUG, logger="test.dual_render"):
        DualRenderer(registry, recorder=DefaultRenderRecorder(logger)).render_save(tree)

    assert any("Unresolvable block during save render" in record.getMessage() for record in caplog.records)


def test_renderer_rejects_incomplete_recorder():
    class Partial:
        def on_node_start(self, mode, path, name):
            return None

    with pytest.raises(TypeError, match=r"on_node_end"):
        DualRenderer(_make_registry(), recorder=Partial())  # type: ignore[arg-type]


PARAGRAPH_HI = '<!-- wp:paragraph {"content":"Hi"} -->\n<p>Hi</p>\n<!-- /wp:paragraph -->'


def _card_with_two_paragraphs(save) -> tuple[BlockRegistry, CompositionTree]:
    registry = _make_registry()
    registry.register(_descriptor("acme/card", light=True, save=save))
    tree = CompositionTree(registry)
    tree.insert(BlockNode("acme/card"))
    tree.insert(BlockNode("core/paragraph", {"content": "Hi"}), (0,))
    tree.insert(BlockNode("core/paragraph", {"content": "Hi"}), (0,))
    return registry, tree


def test_save_keeps_children_a_block_leaves_out(caplog):
    registry, tree = _card_with_two_paragraphs(lambda a, c: "<div>card</div>")
    logger = logging.getLogger("test.dual_render.children")

    with caplog.at_level(logging.WARNING, logger="test.dual_render.children"):
        output = DualRenderer(registry, recorder=DefaultRenderRecorder(logger)).render_save(tree).output

    assert output == (
        "<!-- wp:acme/card -->\n"
        "<div>card</div>\n"
        f"{PARAGRAPH_HI}\n"
        f"{PARAGRAPH_HI}\n"
        "<!-- /wp:acme/card -->"
    )
    assert parse(output, registry).structure() == tree.structure()
    assert "Block acme/card at 0 left 2 child block(s) out of its save markup" in caplog.text


def test_save_counts_identical_children_separately():
    registry, tree = _card_with_two_paragraphs(lambda a, c: c[0] if c else "")

    output = _renderer(registry).render_save(tree).output

    assert output == f"<!-- wp:acme/card -->\n{PARAGRAPH_HI}\n{PARAGRAPH_HI}\n<!-- /wp:acme/card -->"
    assert parse(output, registry).structure() == tree.structure()
