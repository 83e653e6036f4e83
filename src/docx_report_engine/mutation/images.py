"""DrawingML markup for IMAGE commands."""

from typing import List, Optional

from docx_report_engine.evaluation import ImageDescriptor
from docx_report_engine.tree import Node, NonTextNode, element
from docx_report_engine.tree.ooxml import (
    A_NS,
    ASVG_NS,
    BREAK,
    DRAWING,
    PIC_NS,
    R_NS,
    WP_NS,
    text_element,
)

from .resources import ResourceRegistry

EMU_PER_CM = 360000
ROTATION_UNITS_PER_DEGREE = 60000
PICTURE_URI = "http://schemas.openxmlformats.org/drawingml/2006/picture"
SVG_BLIP_EXTENSION_URI = "{96DAC541-7B7A-43D3-8B79-37D633B846F1}"


def _blip(rel_id: str, svg_rel_id: Optional[str]) -> NonTextNode:
    blip = element("a:blip", {"xmlns:r": R_NS, "r:embed": rel_id})
    if svg_rel_id is not None:
        blip.add_child(element("a:extLst", children=[
            element("a:ext", {"uri": SVG_BLIP_EXTENSION_URI}, [
                element("asvg:svgBlip", {"xmlns:asvg": ASVG_NS, "r:embed": svg_rel_id}),
            ]),
        ]))
    return blip


def build_drawing(
    image: ImageDescriptor,
    rel_id: str,
    drawing_id: int,
    svg_rel_id: Optional[str] = None,
) -> NonTextNode:
    """Build an inline ``w:drawing`` element referencing ``rel_id``.

    Args:
        image: Validated image descriptor (sizes in centimetres)
        rel_id: Relationship ID of the raster image
        drawing_id: Document-unique drawing object ID
        svg_rel_id: Relationship ID of the SVG original, if any
    """
    cx = str(int(round(image.width * EMU_PER_CM)))
    cy = str(int(round(image.height * EMU_PER_CM)))
    name = f"Picture {drawing_id}"

    xfrm = element("a:xfrm")
    if image.rotation:
        xfrm.set_attribute("rot", str(int(round(image.rotation * ROTATION_UNITS_PER_DEGREE))))
    xfrm.add_child(element("a:off", {"x": "0", "y": "0"}))
    xfrm.add_child(element("a:ext", {"cx": cx, "cy": cy}))

    picture = element("pic:pic", {"xmlns:pic": PIC_NS}, [
        element("pic:nvPicPr", children=[
            element("pic:cNvPr", {"id": "0", "name": name, "descr": image.alt}),
            element("pic:cNvPicPr", children=[
                element("a:picLocks", {"noChangeAspect": "1", "noChangeArrowheads": "1"}),
            ]),
        ]),
        element("pic:blipFill", children=[
            _blip(rel_id, svg_rel_id),
            element("a:srcRect"),
            element("a:stretch", children=[element("a:fillRect")]),
        ]),
        element("pic:spPr", {"bwMode": "auto"}, [
            xfrm,
            element("a:prstGeom", {"prst": "rect"}, [element("a:avLst")]),
            element("a:noFill"),
            element("a:ln", children=[element("a:noFill")]),
        ]),
    ])

    inline = element("wp:inline", {
        "xmlns:wp": WP_NS,
        "distT": "0",
        "distB": "0",
        "distL": "0",
        "distR": "0",
    }, [
        element("wp:extent", {"cx": cx, "cy": cy}),
        element("wp:docPr", {"id": str(drawing_id), "name": name, "descr": image.alt}),
        element("wp:cNvGraphicFramePr", children=[
            element("a:graphicFrameLocks", {"xmlns:a": A_NS, "noChangeAspect": "1"}),
        ]),
        element("a:graphic", {"xmlns:a": A_NS}, [
            element("a:graphicData", {"uri": PICTURE_URI}, [picture]),
        ]),
    ])
    return element(DRAWING, children=[inline])


def image_run_content(image: ImageDescriptor, registry: ResourceRegistry) -> List[Node]:
    """Register the image's parts and return the run content showing it."""
    svg_rel_id = None
    raster = image
    if image.thumbnail is not None:
        svg_rel_id = registry.add_image(image.data, image.extension)
        raster = image.thumbnail
    rel_id = registry.add_image(raster.data, raster.extension)

    content: List[Node] = [
        build_drawing(image, rel_id, registry.next_drawing_id(), svg_rel_id)
    ]
    if image.caption:
        content.append(element(BREAK))
        content.append(text_element(str(image.caption)))
    return content
