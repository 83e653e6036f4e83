"""Tests for run normalization."""

import pytest

from docx_report_engine.commands.preprocess import (
    group_by_paragraph,
    isolate_commands,
    merge_split_commands,
    normalize_runs,
)
from docx_report_engine.shared import CommandSyntaxError, DelimiterConfig
from docx_report_engine.tree import parse_xml

DEFAULT = DelimiterConfig()


def _texts(root):
    return [t.text_content for t in root.find_all("w:t")]


class TestMergeSplitCommands:
    """Test merging commands split over several runs."""

    def test_command_moves_into_first_node(self, docx):
        """Test the command text gathers where it starts."""
        root = parse_xml(docx.document_xml(docx.paragraph("+++INS ", "name", "+++ tail")))
        group = group_by_paragraph(root)[0]

        assert merge_split_commands(group, DEFAULT) is True
        assert [node.text for node in group] == ["+++INS name+++", "", " tail"]

    def test_unsplit_command_is_untouched(self, docx):
        """Test commands already in one node are not reported as moved."""
        root = parse_xml(docx.document_xml(docx.paragraph("+++INS name+++", " x")))
        group = group_by_paragraph(root)[0]

        assert merge_split_commands(group, DEFAULT) is False

    def test_split_literal_xml(self, docx):
        """Test literal-XML spans are merged like commands."""
        root = parse_xml(docx.document_xml(docx.paragraph("||<w:br/", ">||")))
        group = group_by_paragraph(root)[0]

        merge_split_commands(group, DEFAULT)

        assert group[0].text == "||<w:br/>||"

    def test_command_unterminated_in_paragraph(self, docx):
        """Test commands cannot span paragraphs."""
        root = parse_xml(docx.document_xml(
            docx.paragraph("+++INS ") + docx.paragraph("name+++")
        ))

        with pytest.raises(CommandSyntaxError):
            merge_split_commands(group_by_paragraph(root)[0], DEFAULT)


class TestIsolateCommands:
    """Test isolating commands in their own runs."""

    def test_command_gets_own_run(self, docx):
        """Test surrounding text is split into separate runs."""
        root = parse_xml(docx.document_xml(docx.paragraph("Hello +++INS name+++ world")))
        paragraph = root.find("w:p")

        assert isolate_commands(group_by_paragraph(root)[0], DEFAULT) == 1
        assert [run.text_content for run in paragraph.find_children("w:r")] == [
            "Hello ", "+++INS name+++", " world",
        ]

    def test_run_properties_are_copied(self, docx):
        """Test split runs keep the original formatting."""
        xml = docx.document_xml("<w:p>" + docx.run("a +++INS b+++", bold=True) + "</w:p>")
        root = parse_xml(xml)

        isolate_commands(group_by_paragraph(root)[0], DEFAULT)

        runs = root.find("w:p").find_children("w:r")
        assert len(runs) == 2
        assert all(run.find_child("w:rPr") is not None for run in runs)

    def test_lone_command_run_is_kept(self, docx):
        """Test a run holding only the command is not split."""
        root = parse_xml(docx.document_xml(docx.paragraph("+++INS name+++")))

        assert isolate_commands(group_by_paragraph(root)[0], DEFAULT) == 0


def test_normalize_runs(docx):
    """Test merge and isolation together."""
    root = parse_xml(docx.document_xml(docx.paragraph("A +++INS ", "name+++ B")))

    normalize_runs(root, DEFAULT)

    assert "+++INS name+++" in _texts(root)
    assert "".join(_texts(root)) == "A +++INS name+++ B"
