"""Tests for image and hyperlink markup."""

from docx_report_engine.evaluation import ImageDescriptor, LinkDescriptor
from docx_report_engine.mutation import (
    ResourceRegistry,
    build_drawing,
    build_hyperlink,
    hyperlink_for,
    image_run_content,
)
from docx_report_engine.tree import element

PNG = b"\x89PNG\r\n\x1a\nfake"


class FakeRegistry(ResourceRegistry):
    """Records resources instead of writing package parts."""

    def __init__(self):
        self.images = []
        self.links = []
        self.drawing_ids = 0

    def add_image(self, data, extension):
        self.images.append((data, extension))
        return f"rIdImg{len(self.images)}"

    def add_hyperlink(self, url):
        self.links.append(url)
        return f"rIdLink{len(self.links)}"

    def next_drawing_id(self):
        self.drawing_ids += 1
        return self.drawing_ids


class TestBuildDrawing:
    """Test DrawingML generation."""

    def test_size_in_emu(self):
        """Test centimetres are converted to EMU."""
        image = ImageDescriptor(width=2, height=1.5, data=PNG, extension=".png", alt="Logo")

        drawing = build_drawing(image, "rId5", 3)

        extent = drawing.find("wp:extent")
        assert extent.get_attribute("cx") == "720000"
        assert extent.get_attribute("cy") == "540000"
        assert drawing.find("wp:docPr").get_attribute("id") == "3"
        assert drawing.find("wp:docPr").get_attribute("descr") == "Logo"
        assert drawing.find("a:blip").get_attribute("r:embed") == "rId5"

    def test_rotation(self):
        """Test rotation is written in 60000ths of a degree."""
        image = ImageDescriptor(width=1, height=1, data=PNG, extension=".png", rotation=90)

        drawing = build_drawing(image, "rId1", 1)

        assert drawing.find("a:xfrm").get_attribute("rot") == "5400000"

    def test_svg_extension(self):
        """Test svg originals are referenced from the blip."""
        image = ImageDescriptor(width=1, height=1, data=b"<svg/>", extension=".svg")

        drawing = build_drawing(image, "rId1", 1, svg_rel_id="rId2")

        assert drawing.find("asvg:svgBlip").get_attribute("r:embed") == "rId2"


class TestImageRunContent:
    """Test image registration."""

    def test_registers_image(self):
        """Test the image part is registered and drawn."""
        registry = FakeRegistry()
        image = ImageDescriptor(width=1, height=1, data=PNG, extension=".png")

        content = image_run_content(image, registry)

        assert registry.images == [(PNG, ".png")]
        assert [node.tag for node in content] == ["w:drawing"]

    def test_caption(self):
        """Test captions follow the drawing after a break."""
        image = ImageDescriptor(width=1, height=1, data=PNG, extension=".png", caption="Figure 1")

        content = image_run_content(image, FakeRegistry())

        assert [node.tag for node in content] == ["w:drawing", "w:br", "w:t"]
        assert content[2].text_content == "Figure 1"

    def test_svg_registers_thumbnail(self):
        """Test svg images register both the original and the thumbnail."""
        registry = FakeRegistry()
        thumbnail = ImageDescriptor(width=1, height=1, data=PNG, extension=".png")
        image = ImageDescriptor(
            width=1, height=1, data=b"<svg/>", extension=".svg", thumbnail=thumbnail
        )

        content = image_run_content(image, registry)

        assert registry.images == [(b"<svg/>", ".svg"), (PNG, ".png")]
        assert content[0].find("a:blip").get_attribute("r:embed") == "rIdImg2"


class TestHyperlinks:
    """Test hyperlink markup."""

    def test_build_hyperlink(self):
        """Test the hyperlink references its relationship and is styled."""
        hyperlink = build_hyperlink(LinkDescriptor("https://example.com", "Example"), "rId9")

        assert hyperlink.tag == "w:hyperlink"
        assert hyperlink.get_attribute("r:id") == "rId9"
        assert hyperlink.text_content == "Example"
        assert hyperlink.find("w:u") is not None
        assert hyperlink.find("w:color").get_attribute("w:val") == "0000FF"

    def test_keeps_template_formatting(self):
        """Test the command run's formatting is kept."""
        template = element("w:r", children=[element("w:rPr", children=[element("w:b")])])

        hyperlink = build_hyperlink(LinkDescriptor("https://example.com"), "rId1", template)

        assert hyperlink.find("w:b") is not None

    def test_hyperlink_for_registers_url(self):
        """Test the url is registered as a relationship."""
        registry = FakeRegistry()

        hyperlink = hyperlink_for(LinkDescriptor("https://example.com"), registry)

        assert registry.links == ["https://example.com"]
        assert hyperlink.get_attribute("r:id") == "rIdLink1"
