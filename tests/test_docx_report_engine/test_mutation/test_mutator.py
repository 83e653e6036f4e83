"""Tests for the tree mutator."""

import pytest

from docx_report_engine.commands import CommandNode, classify, link, scan_document
from docx_report_engine.mutation import ResourceRegistry, TreeMutator
from docx_report_engine.shared import (
    DelimiterConfig,
    InternalError,
    NullishCommandResultError,
    ObjectCommandResultError,
    RunConfig,
)
from docx_report_engine.tree import TextNode, element, parse_xml, serialize
from docx_report_engine.tree.ooxml import text_element

PNG = b"\x89PNG\r\n\x1a\nfake"


class FakeRegistry(ResourceRegistry):
    """Hands out predictable relationship IDs."""

    def __init__(self):
        self.count = 0

    def add_image(self, data, extension):
        self.count += 1
        return f"rId{self.count}"

    def add_hyperlink(self, url):
        self.count += 1
        return f"rId{self.count}"

    def next_drawing_id(self):
        return 1


def _tree(docx, body):
    root = parse_xml(docx.document_xml(body))
    commands = link(scan_document(root, DelimiterConfig()))
    return root, commands


def _paragraphs(root):
    return [p.text_content for p in root.find_all("w:p")]


def _command(text, anchor):
    command = classify(text)
    return CommandNode(command=command, anchor=anchor, expression=command.code)


class TestInsertText:
    """Test text insertion."""

    def test_replaces_command_text(self, docx):
        """Test the run's text is replaced and its formatting kept."""
        root = parse_xml(docx.document_xml("<w:p>" + docx.run("+++INS x+++", bold=True) + "</w:p>"))
        run = root.find("w:r")

        TreeMutator(RunConfig()).insert_text(run, "value")

        assert run.text_content == "value"
        assert run.find_child("w:rPr") is not None

    def test_line_breaks(self, docx):
        """Test newlines become breaks when enabled."""
        root = parse_xml(docx.document_xml(docx.paragraph("+++INS x+++")))
        run = root.find("w:r")

        TreeMutator(RunConfig()).insert_text(run, "a\nb")

        assert [child.tag for child in run.children] == ["w:t", "w:br", "w:t"]

    def test_line_breaks_disabled(self, docx):
        """Test newlines are kept as text when disabled."""
        root = parse_xml(docx.document_xml(docx.paragraph("+++INS x+++")))
        run = root.find("w:r")
        config = RunConfig.from_options(process_line_breaks=False)

        TreeMutator(config).insert_text(run, "a\nb")

        assert run.find_child("w:br") is None
        assert run.text_content == "a\nb"

    def test_text_node_anchor(self):
        """Test text anchors outside runs are rewritten in place."""
        anchor = TextNode("+++x+++")

        TreeMutator(RunConfig()).insert_text(anchor, "y")

        assert anchor.text == "y"


class TestRemovalAndPruning:
    """Test marker removal and pruning."""

    def test_empty_paragraph_is_removed(self, docx):
        """Test a paragraph holding only a marker disappears."""
        root, _ = _tree(docx, docx.paragraph("keep") + docx.paragraph("+++QUERY q+++"))

        TreeMutator(RunConfig()).remove_marker(root.find_all("w:r")[1])

        assert _paragraphs(root) == ["keep"]

    def test_paragraph_with_text_is_kept(self, docx):
        """Test other runs keep the paragraph."""
        root, _ = _tree(docx, docx.paragraph("A +++EXEC x = 1+++"))

        TreeMutator(RunConfig()).remove_marker(root.find_all("w:r")[1])

        assert _paragraphs(root) == ["A "]

    def test_last_cell_paragraph_is_kept(self, docx):
        """Test a cell keeps its last paragraph."""
        root, _ = _tree(docx, docx.table([["+++EXEC x = 1+++"]]))

        TreeMutator(RunConfig()).remove_marker(root.find("w:r"))

        assert root.find("w:tc").find_child("w:p") is not None

    def test_section_break_paragraph_is_kept(self, docx):
        """Test paragraphs with section properties survive."""
        body = (
            "<w:p><w:pPr><w:sectPr/></w:pPr>"
            + docx.run("+++QUERY q+++")
            + "</w:p>"
        )
        root, _ = _tree(docx, body)

        TreeMutator(RunConfig()).remove_marker(root.find("w:r"))

        assert root.find("w:sectPr") is not None

    def test_prune_table_without_rows(self):
        """Test tables emptied of rows are removed."""
        table = element("w:tbl", children=[element("w:tblPr")])
        body = element("w:body", children=[table])

        TreeMutator(RunConfig()).prune(table)

        assert body.children == []

    def test_prune_refills_cell(self):
        """Test cells left without block content get a paragraph."""
        cell = element("w:tc", children=[element("w:tcPr")])
        element("w:tr", children=[cell])

        TreeMutator(RunConfig()).prune(cell)

        assert cell.find_child("w:p") is not None


class TestBlockSpans:
    """Test FOR/IF span handling."""

    def test_paragraph_span(self, docx):
        """Test the span covers the paragraphs from start to end marker."""
        root, tree = _tree(
            docx,
            docx.paragraph("before")
            + docx.paragraph("+++IF x+++")
            + docx.paragraph("inside")
            + docx.paragraph("+++END-IF+++")
            + docx.paragraph("after"),
        )

        parent, span = TreeMutator(RunConfig()).block_span(tree.roots[0])

        assert parent.tag == "w:body"
        assert [p.text_content for p in span] == ["+++IF x+++", "inside", "+++END-IF+++"]

    def test_inline_span(self, docx):
        """Test blocks within one paragraph span runs."""
        root, tree = _tree(docx, docx.paragraph("a +++IF x+++b+++END-IF+++ c"))

        parent, span = TreeMutator(RunConfig()).block_span(tree.roots[0])

        assert parent.tag == "w:p"
        assert [run.text_content for run in span] == ["+++IF x+++", "b", "+++END-IF+++"]

    def test_table_row_span(self, docx):
        """Test a block inside one row spans the whole row."""
        root, tree = _tree(docx, docx.table([["+++FOR r IN rows+++", "+++INS r+++", "+++END-FOR r+++"]]))

        parent, span = TreeMutator(RunConfig()).block_span(tree.roots[0])

        assert parent.tag == "w:tbl"
        assert [node.tag for node in span] == ["w:tr"]

    def test_unlinked_block(self, docx):
        """Test blocks without an end marker are internal errors."""
        anchor = element("w:r")

        with pytest.raises(InternalError):
            TreeMutator(RunConfig()).block_span(_command("IF x", anchor))

    def test_clone_span(self, docx):
        """Test copies are inserted before the original span."""
        root, tree = _tree(
            docx,
            docx.paragraph("+++IF x+++") + docx.paragraph("inside") + docx.paragraph("+++END-IF+++"),
        )
        mutator = TreeMutator(RunConfig())
        parent, span = mutator.block_span(tree.roots[0])

        copies, mapping = mutator.clone_span(span)

        assert len(parent.children) == 6
        assert parent.children[:3] == copies
        assert mapping[id(span[1])] is copies[1]

    def test_remove_span(self, docx):
        """Test the span is detached."""
        root, tree = _tree(
            docx,
            docx.paragraph("+++IF x+++") + docx.paragraph("inside")
            + docx.paragraph("+++END-IF+++") + docx.paragraph("after"),
        )
        mutator = TreeMutator(RunConfig())

        mutator.remove_span(*mutator.block_span(tree.roots[0]))

        assert _paragraphs(root) == ["after"]

    def test_substitute_span(self, docx):
        """Test a failed block is replaced by a substitute paragraph."""
        root, tree = _tree(
            docx,
            docx.paragraph("+++IF x+++") + docx.paragraph("inside") + docx.paragraph("+++END-IF+++"),
        )
        mutator = TreeMutator(RunConfig())

        mutator.substitute_span(*mutator.block_span(tree.roots[0]), "n/a")

        assert _paragraphs(root) == ["n/a"]


class TestApply:
    """Test applying command results."""

    def test_ins(self, docx):
        """Test INS writes its text."""
        root, tree = _tree(docx, docx.paragraph("Hi +++INS name+++"))

        TreeMutator(RunConfig()).apply(tree.roots[0], "Ada")

        assert _paragraphs(root) == ["Hi Ada"]

    def test_ins_nullish_rejected(self, docx):
        """Test reject_nullish turns None into an error."""
        root, tree = _tree(docx, docx.paragraph("+++INS name+++"))

        with pytest.raises(NullishCommandResultError):
            TreeMutator(RunConfig.strict()).apply(tree.roots[0], None)

    def test_ins_object_rejected(self, docx):
        """Test mapping results are not inserted."""
        root, tree = _tree(docx, docx.paragraph("+++INS data+++"))

        with pytest.raises(ObjectCommandResultError):
            TreeMutator(RunConfig()).apply(tree.roots[0], {"a": 1})

    def test_exec_leaves_nothing(self, docx):
        """Test EXEC markers are removed."""
        root, tree = _tree(docx, docx.paragraph("A+++EXEC x = 1+++"))

        TreeMutator(RunConfig()).apply(tree.roots[0], 1)

        assert _paragraphs(root) == ["A"]

    def test_exec_emits_result(self, docx):
        """Test EXEC output when exec_emits_result is set."""
        root, tree = _tree(docx, docx.paragraph("+++EXEC 1 + 1+++"))
        config = RunConfig.from_options(exec_emits_result=True)

        TreeMutator(config).apply(tree.roots[0], 2)

        assert _paragraphs(root) == ["2"]

    def test_image(self, docx):
        """Test IMAGE replaces the command run with a drawing."""
        root, tree = _tree(docx, docx.paragraph("+++IMAGE logo+++"))
        mutator = TreeMutator(RunConfig(), FakeRegistry())

        mutator.apply(tree.roots[0], {"width": 1, "height": 1, "data": PNG, "extension": ".png"})

        assert root.find("w:r").find_child("w:drawing") is not None
        assert mutator.images_added == 1

    def test_image_requires_registry(self, docx):
        """Test IMAGE without a registry is an internal error."""
        root, tree = _tree(docx, docx.paragraph("+++IMAGE logo+++"))

        with pytest.raises(InternalError):
            TreeMutator(RunConfig()).apply(
                tree.roots[0], {"width": 1, "height": 1, "data": PNG, "extension": ".png"}
            )

    def test_link(self, docx):
        """Test LINK replaces the run with a hyperlink."""
        root, tree = _tree(docx, docx.paragraph("See +++LINK site+++"))
        mutator = TreeMutator(RunConfig(), FakeRegistry())

        mutator.apply(tree.roots[0], {"url": "https://example.com", "label": "here"})

        paragraph = root.find("w:p")
        assert paragraph.children[-1].tag == "w:hyperlink"
        assert _paragraphs(root) == ["See here"]
        assert mutator.links_added == 1

    def test_html_single_block(self, docx):
        """Test inline HTML replaces the command run."""
        root, tree = _tree(docx, docx.paragraph("Note: +++HTML body+++"))

        TreeMutator(RunConfig()).apply(tree.roots[0], "<b>bold</b> text")

        assert _paragraphs(root) == ["Note: bold text"]
        assert root.find("w:b") is not None

    def test_html_splits_paragraph(self, docx):
        """Test block HTML splits the host paragraph."""
        root, tree = _tree(docx, docx.paragraph("A +++HTML body+++ Z"))

        TreeMutator(RunConfig()).apply(tree.roots[0], "<p>one</p><p>two</p>")

        assert _paragraphs(root) == ["A one", "two Z"]

    def test_html_nothing(self, docx):
        """Test empty HTML removes the command."""
        root, tree = _tree(docx, docx.paragraph("x+++HTML body+++"))

        TreeMutator(RunConfig()).apply(tree.roots[0], "")

        assert _paragraphs(root) == ["x"]

    def test_markers_removed(self, docx):
        """Test marker commands leave nothing behind."""
        root, tree = _tree(docx, docx.paragraph("+++ALIAS a INS x+++") + docx.paragraph("text"))

        TreeMutator(RunConfig()).apply(tree.roots[0], None)

        assert _paragraphs(root) == ["text"]

    def test_block_commands_rejected(self, docx):
        """Test block commands cannot be applied directly."""
        with pytest.raises(InternalError):
            TreeMutator(RunConfig()).apply(_command("FOR x IN y", element("w:r")), [])

    def test_serializes_after_mutation(self, docx):
        """Test mutated trees serialize to well-formed markup."""
        root, tree = _tree(docx, docx.paragraph("+++INS x+++"))
        TreeMutator(RunConfig()).apply(tree.roots[0], "a < b")

        assert "a &lt; b" in serialize(root)
