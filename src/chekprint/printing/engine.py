"""Receipt rendering facade.

``render`` lays a receipt out with the template renderer and encodes
the result for a protocol profile. It is pure: no I/O, no clock reads,
no state kept between calls.
"""

import logging
from typing import Any, List, Mapping, Optional, Union

from chekprint.printing.document import ReceiptDocument
from chekprint.printing.elements import Element
from chekprint.printing.encoder import (
    CharacterProtocol,
    PreviewEncoder,
    PreviewProtocol,
    Profile,
    encode,
)
from chekprint.printing.template import TemplateRenderer

logger = logging.getLogger(__name__)

DocumentInput = Union[ReceiptDocument, Mapping[str, Any]]

_renderer = TemplateRenderer()


def as_document(document: DocumentInput) -> ReceiptDocument:
    """Accept either a ReceiptDocument or a host-application map."""
    if isinstance(document, ReceiptDocument):
        return document
    if isinstance(document, Mapping):
        return ReceiptDocument.from_mapping(document)
    raise TypeError(f"Expected a receipt document or mapping, got {type(document).__name__}")


def render_elements(document: DocumentInput) -> List[Element]:
    """Lay out a receipt without encoding it.

    Raises:
        StructuralError: If the page geometry is unusable
    """
    return _renderer.render(as_document(document))


def render(document: DocumentInput, profile: Optional[Profile] = None) -> bytes:
    """Render a receipt to printer command bytes.

    Args:
        document: Receipt to print
        profile: Target protocol profile (ESC/POS by default)

    Returns:
        The complete command buffer for one print job

    Raises:
        StructuralError: If the page geometry is unusable
    """
    profile = profile or CharacterProtocol()
    elements = render_elements(document)
    data = encode(elements, profile)
    logger.debug(f"Rendered {len(elements)} elements to {len(data)} bytes ({type(profile).__name__})")
    return data


def preview(document: DocumentInput) -> str:
    """Text preview of a receipt at its own page width."""
    doc = as_document(document)
    elements = _renderer.render(doc)
    profile = PreviewProtocol(columns=doc.template_settings.page_width)
    return PreviewEncoder(profile).preview_text(elements)
